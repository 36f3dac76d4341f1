"""
Translation between adjustment parameters and PSD adjustment blocks.

Only the fixed-layout blocks are written. Descriptor based kinds (black &
white, vibrance, gradient map, photo filter) are recognized when reading
and restored with default parameters.
"""

import copy
import logging
from typing import Any, Callable, Optional

from layerstack.api.adjustments import DEFAULTS, Adjustment
from layerstack.constants import AdjustmentKind, Tag
from layerstack.psd.adjustments import (
    BrightnessContrast,
    ColorBalance,
    Curves,
    CurvesExtraItem,
    CurvesExtraMarker,
    HueSaturation,
    LevelRecord,
    Levels,
)
from layerstack.psd.base import BaseElement, EmptyElement, ShortIntegerElement
from layerstack.registry import new_registry

logger = logging.getLogger(__name__)

#: Tagged block key to adjustment kind.
TAG_KINDS = {
    Tag.BRIGHTNESS_AND_CONTRAST: AdjustmentKind.BRIGHTNESS_CONTRAST,
    Tag.LEVELS: AdjustmentKind.LEVELS,
    Tag.CURVES: AdjustmentKind.CURVES,
    Tag.HUE_SATURATION: AdjustmentKind.HUE_SATURATION,
    Tag.HUE_SATURATION_V4: AdjustmentKind.HUE_SATURATION,
    Tag.COLOR_BALANCE: AdjustmentKind.COLOR_BALANCE,
    Tag.BLACK_AND_WHITE: AdjustmentKind.BLACK_WHITE,
    Tag.INVERT: AdjustmentKind.INVERT,
    Tag.POSTERIZE: AdjustmentKind.POSTERIZE,
    Tag.THRESHOLD: AdjustmentKind.THRESHOLD,
    Tag.GRADIENT_MAP: AdjustmentKind.GRADIENT_MAP,
    Tag.PHOTO_FILTER: AdjustmentKind.PHOTO_FILTER,
    Tag.VIBRANCE: AdjustmentKind.VIBRANCE,
}

DECODERS, register_decoder = new_registry()
ENCODERS, register_encoder = new_registry()

#: Channel names in the order of levels records and curves bits.
CHANNELS = ("rgb", "red", "green", "blue")


def _clamp(value: Any, minimum: int, maximum: int) -> int:
    return min(max(int(round(float(value))), minimum), maximum)


def find_adjustment(tagged_blocks: Any) -> Optional[tuple[Tag, Any]]:
    """
    Find the adjustment block of a layer.

    :return: (key, data) or None.
    """
    for key in TAG_KINDS:
        if key in tagged_blocks:
            return key, tagged_blocks.get_data(key)
    return None


def decode_adjustment(key: Tag, data: Any) -> Adjustment:
    """
    Build an :py:class:`~layerstack.api.adjustments.Adjustment` from a block.

    Blocks that could not be parsed, and descriptor based kinds, give the
    default parameters of their kind.
    """
    kind = TAG_KINDS[key]
    decoder: Optional[Callable] = DECODERS.get(kind)
    if decoder is None:
        logger.info("Adjustment %s restored with default parameters" % kind.value)
        return Adjustment(kind)
    if isinstance(data, bytes):
        logger.warning("Unreadable %s block, using default parameters" % kind.value)
        return Adjustment(kind)
    return Adjustment(kind, decoder(data))


def encode_adjustment(adjustment: Adjustment) -> Optional[tuple[Tag, BaseElement]]:
    """
    Build the PSD block of an adjustment.

    :return: (key, block), or None for kinds without a fixed-layout block.
    """
    encoder: Optional[Callable] = ENCODERS.get(adjustment.kind)
    if encoder is None:
        logger.warning(
            "Adjustment type '%s' is not written to PSD" % adjustment.kind.value
        )
        return None
    return encoder(adjustment.params)


@register_decoder(AdjustmentKind.BRIGHTNESS_CONTRAST)
def _decode_brightness_contrast(data: BrightnessContrast) -> dict:
    return {"brightness": data.brightness, "contrast": data.contrast}


@register_encoder(AdjustmentKind.BRIGHTNESS_CONTRAST)
def _encode_brightness_contrast(params: dict) -> tuple[Tag, BaseElement]:
    return Tag.BRIGHTNESS_AND_CONTRAST, BrightnessContrast(
        brightness=_clamp(params["brightness"], -150, 150),
        contrast=_clamp(params["contrast"], -100, 100),
    )


@register_decoder(AdjustmentKind.LEVELS)
def _decode_levels(data: Levels) -> dict:
    channel, record = "rgb", data[0]
    for name, item in zip(CHANNELS, data):
        if not item.is_identity:
            channel, record = name, item
            break
    return {
        "input_black": record.input_floor,
        "input_white": record.input_ceiling,
        "gamma": record.gamma / 100.0,
        "output_black": record.output_floor,
        "output_white": record.output_ceiling,
        "channel": channel,
    }


@register_encoder(AdjustmentKind.LEVELS)
def _encode_levels(params: dict) -> tuple[Tag, BaseElement]:
    levels = Levels.new()
    channel = params.get("channel", "rgb")
    if channel not in CHANNELS:
        logger.warning("Unknown levels channel %r, using rgb" % channel)
        channel = "rgb"
    levels[CHANNELS.index(channel)] = LevelRecord(
        input_floor=_clamp(params["input_black"], 0, 253),
        input_ceiling=_clamp(params["input_white"], 2, 255),
        output_floor=_clamp(params["output_black"], 0, 255),
        output_ceiling=_clamp(params["output_white"], 0, 255),
        gamma=_clamp(float(params["gamma"]) * 100, 10, 999),
    )
    return Tag.LEVELS, levels


def _points_from_pairs(pairs: Any) -> list:
    return [{"x": int(x), "y": int(y)} for y, x in pairs]


def _pairs_from_points(points: Any) -> list:
    pairs = sorted(
        (_clamp(p["x"], 0, 255), _clamp(p["y"], 0, 255)) for p in points
    )[:19]
    if len(pairs) < 2:
        pairs = [(0, 0), (255, 255)]
    return [(y, x) for x, y in pairs]


@register_decoder(AdjustmentKind.CURVES)
def _decode_curves(data: Curves) -> dict:
    points = copy.deepcopy(DEFAULTS[AdjustmentKind.CURVES]["points"])
    if data.extra is not None:
        for item in data.extra:
            if 0 <= item.channel_id < len(CHANNELS):
                points[CHANNELS[item.channel_id]] = _points_from_pairs(item.points)
    else:
        present = [i for i in range(32) if data.count_map & (1 << i)]
        for channel_id, pairs in zip(present, data.data):
            if channel_id < len(CHANNELS):
                points[CHANNELS[channel_id]] = _points_from_pairs(pairs)
    return {"points": points}


@register_encoder(AdjustmentKind.CURVES)
def _encode_curves(params: dict) -> tuple[Tag, BaseElement]:
    curves = params.get("points", {})
    data = []
    for name in CHANNELS:
        data.append(_pairs_from_points(curves.get(name, [])))
    extra = CurvesExtraMarker(
        version=4,
        items=[CurvesExtraItem(index, pairs) for index, pairs in enumerate(data)],
    )
    return Tag.CURVES, Curves(
        is_map=False, version=1, count_map=0b1111, data=data, extra=extra
    )


@register_decoder(AdjustmentKind.HUE_SATURATION)
def _decode_hue_saturation(data: HueSaturation) -> dict:
    colorize = bool(data.enable)
    lightness = data.colorization[2] if colorize else data.master[2]
    return {
        "hue": data.master[0],
        "saturation": data.master[1],
        "lightness": lightness,
        "colorize": colorize,
        "colorize_hue": data.colorization[0],
        "colorize_saturation": data.colorization[1],
    }


@register_encoder(AdjustmentKind.HUE_SATURATION)
def _encode_hue_saturation(params: dict) -> tuple[Tag, BaseElement]:
    lightness = _clamp(params["lightness"], -100, 100)
    return Tag.HUE_SATURATION, HueSaturation(
        enable=int(bool(params["colorize"])),
        colorization=(
            _clamp(params["colorize_hue"], 0, 360),
            _clamp(params["colorize_saturation"], 0, 100),
            lightness,
        ),
        master=(
            _clamp(params["hue"], -180, 180),
            _clamp(params["saturation"], -100, 100),
            lightness,
        ),
    )


def _tone(values: Any) -> dict:
    return dict(zip(("cyan", "magenta", "yellow"), (int(v) for v in values)))


@register_decoder(AdjustmentKind.COLOR_BALANCE)
def _decode_color_balance(data: ColorBalance) -> dict:
    return {
        "shadows": _tone(data.shadows),
        "midtones": _tone(data.midtones),
        "highlights": _tone(data.highlights),
        "preserve_luminosity": data.luminosity,
    }


@register_encoder(AdjustmentKind.COLOR_BALANCE)
def _encode_color_balance(params: dict) -> tuple[Tag, BaseElement]:
    def tone(name: str) -> tuple:
        values = params.get(name, {})
        return tuple(
            _clamp(values.get(key, 0), -100, 100)
            for key in ("cyan", "magenta", "yellow")
        )

    return Tag.COLOR_BALANCE, ColorBalance(
        shadows=tone("shadows"),
        midtones=tone("midtones"),
        highlights=tone("highlights"),
        luminosity=bool(params.get("preserve_luminosity", True)),
    )


@register_decoder(AdjustmentKind.INVERT)
def _decode_invert(data: Any) -> dict:
    return {}


@register_encoder(AdjustmentKind.INVERT)
def _encode_invert(params: dict) -> tuple[Tag, BaseElement]:
    return Tag.INVERT, EmptyElement()


@register_decoder(AdjustmentKind.POSTERIZE)
def _decode_posterize(data: Any) -> dict:
    return {"levels": int(data)}


@register_encoder(AdjustmentKind.POSTERIZE)
def _encode_posterize(params: dict) -> tuple[Tag, BaseElement]:
    return Tag.POSTERIZE, ShortIntegerElement(_clamp(params["levels"], 2, 255))


@register_decoder(AdjustmentKind.THRESHOLD)
def _decode_threshold(data: Any) -> dict:
    return {"level": int(data)}


@register_encoder(AdjustmentKind.THRESHOLD)
def _encode_threshold(params: dict) -> tuple[Tag, BaseElement]:
    return Tag.THRESHOLD, ShortIntegerElement(_clamp(params["level"], 1, 255))

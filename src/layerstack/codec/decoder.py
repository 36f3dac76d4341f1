"""
PSD decoder.

Reads the low-level :py:class:`~layerstack.psd.PSD` structure and rebuilds
the layer tree of a :py:class:`~layerstack.api.document.Document`. The
document is assembled off to the side and only returned once every record
has been converted.
"""

import io
import logging
import struct
import zlib
from typing import Any, Optional, Union

import numpy as np

from layerstack.api.document import Document
from layerstack.api.layers import (
    LAYER_IDS,
    MAX_LAYER_ID,
    AdjustmentLayer,
    Group,
    Layer,
    RasterLayer,
)
from layerstack.api.mask import Mask
from layerstack.api.surface import RasterSurface
from layerstack.codec.adjustments import decode_adjustment, find_adjustment
from layerstack.codec.blend_modes import from_tag
from layerstack.constants import (
    ChannelID,
    Clipping,
    ColorMode,
    Resource,
    SectionDivider,
    Tag,
)
from layerstack.errors import (
    DecodeError,
    LayerStackError,
    TruncatedData,
    UnsupportedColorMode,
    UnsupportedDepth,
)
from layerstack.psd import PSD
from layerstack.psd.tagged_blocks import SectionDividerSetting

logger = logging.getLogger(__name__)

#: Color channel ids of the supported color modes.
COLOR_CHANNELS = {
    ColorMode.RGB: (ChannelID.CHANNEL_0, ChannelID.CHANNEL_1, ChannelID.CHANNEL_2),
    ColorMode.GRAYSCALE: (ChannelID.CHANNEL_0,) * 3,
}


def decode(
    data: bytes, encoding: str = "macroman", cancel_token: Any = None
) -> Document:
    """
    Decode PSD or PSB bytes into a document.

    :param data: file content.
    :param encoding: encoding of pascal strings, default macroman.
    :param cancel_token: optional
        :py:class:`~layerstack.worker.CancellationToken`, checked between
        layers.
    :return: :py:class:`~layerstack.api.document.Document`
    :raise DecodeError: or one of its subclasses when the data is not a
        supported PSD document.
    :raise Cancelled: when the token was cancelled.
    """
    try:
        with io.BytesIO(data) as f:
            psd = PSD.read(f, encoding=encoding, cancel_token=cancel_token)
        check_header(psd.header)
        return _build_document(psd, cancel_token)
    except LayerStackError:
        raise
    except (struct.error, EOFError) as e:
        raise TruncatedData("Unexpected end of data: %s" % e) from e
    except (zlib.error, ValueError) as e:
        raise DecodeError("Failed to decode PSD data: %s" % e) from e


def check_header(header: Any) -> None:
    """Raise for header fields layerstack cannot handle."""
    if header.depth != 8:
        raise UnsupportedDepth("Unsupported depth: %d" % header.depth)
    if header.color_mode not in COLOR_CHANNELS:
        raise UnsupportedColorMode(
            "Unsupported color mode: %s" % ColorMode(header.color_mode).name
        )


def _build_document(psd: PSD, cancel_token: Any = None) -> Document:
    header = psd.header
    document = Document(header.width, header.height)
    document.thumbnail = _read_thumbnail(psd)

    seen_ids: set = set()
    group_stack: list[Union[Group, Document]] = [document]
    for record, channels in psd._iter_layers():
        if cancel_token is not None:
            cancel_token.check()
        current_group = group_stack[-1]
        blocks = record.tagged_blocks

        divider = _get_block(blocks, Tag.SECTION_DIVIDER_SETTING, SectionDividerSetting)
        divider = _get_block(
            blocks, Tag.NESTED_SECTION_DIVIDER_SETTING, SectionDividerSetting, divider
        )
        if divider is not None and divider.kind is not SectionDivider.OTHER:
            if divider.kind == SectionDivider.BOUNDING_SECTION_DIVIDER:
                group_stack.append(Group(layer_id=-1))
                continue
            if len(group_stack) == 1:
                logger.warning("Group end without a matching start, ignored")
                continue
            group = group_stack.pop()
            assert isinstance(group, Group)
            layer: Layer = _finish_group(group, record, divider, seen_ids)
            current_group = group_stack[-1]
        else:
            key_data = find_adjustment(blocks)
            if key_data is not None:
                layer = AdjustmentLayer(
                    decode_adjustment(*key_data),
                    width=record.width,
                    height=record.height,
                    **_layer_kwargs(record, seen_ids),
                )
            else:
                layer = RasterLayer(
                    _read_surface(record, channels, header),
                    **_layer_kwargs(record, seen_ids),
                )
        layer.mask = _read_mask(record, channels, header)
        current_group._layers.append(layer)

    if len(group_stack) > 1:
        logger.warning("%d group(s) not closed, closing them" % (len(group_stack) - 1))
        while len(group_stack) > 1:
            group = group_stack.pop()
            assert isinstance(group, Group)
            group._layer_id = _unique_id(None, seen_ids)
            group_stack[-1]._layers.append(group)

    document._update_children()
    document.preview = _read_preview(psd)
    logger.debug("decoded %r" % document)
    return document


def _finish_group(group: Group, record: Any, divider: Any, seen_ids: set) -> Group:
    kwargs = _layer_kwargs(record, seen_ids)
    group._layer_id = kwargs.pop("layer_id")
    group.name = kwargs["name"]
    group.visible = kwargs["visible"]
    group.opacity = kwargs["opacity"]
    group.blend_mode = kwargs["blend_mode"]
    group.locked = kwargs["locked"]
    group._clipped = kwargs["clipped"]
    group.expanded = divider.kind == SectionDivider.OPEN_FOLDER
    return group


def _get_block(blocks: Any, key: Tag, kind: Any, default: Any = None) -> Any:
    """Data of a tagged block, or `default` when absent or unreadable."""
    data = blocks.get_data(key, default)
    if data is not default and not isinstance(data, kind):
        logger.warning("Ignoring unreadable %s block" % key.name)
        return default
    return data


def _unique_id(layer_id: Optional[int], seen_ids: set) -> int:
    if layer_id is not None and not 1 <= layer_id <= MAX_LAYER_ID:
        logger.info("Layer id %d out of range, assigning a new one" % layer_id)
        layer_id = None
    if layer_id is None or layer_id in seen_ids:
        if layer_id is not None:
            logger.info("Duplicate layer id %d, assigning a new one" % layer_id)
        layer_id = LAYER_IDS.next()
    else:
        LAYER_IDS.reserve(layer_id)
    seen_ids.add(layer_id)
    return layer_id


def _layer_kwargs(record: Any, seen_ids: set) -> dict:
    blocks = record.tagged_blocks
    name = _get_block(blocks, Tag.UNICODE_LAYER_NAME, str, record.name)
    protected = _get_block(blocks, Tag.PROTECTED_SETTING, int, 0)
    return dict(
        name=name[:255],
        visible=record.flags.visible,
        opacity=record.opacity / 255.0,
        blend_mode=from_tag(record.blend_mode),
        left=record.left,
        top=record.top,
        locked=bool(protected),
        clipped=record.clipping == Clipping.NON_BASE,
        layer_id=_unique_id(_get_block(blocks, Tag.LAYER_ID, int), seen_ids),
    )


def _channel_map(record: Any, channels: Any) -> dict:
    return dict((info.id, data) for info, data in zip(record.channel_info, channels))


def _read_plane(
    data: Any, width: int, height: int, version: int
) -> np.ndarray:
    raw = data.get_data(width, height, 8, version)
    return np.frombuffer(raw, dtype=np.uint8).reshape((height, width))


def _read_surface(record: Any, channels: Any, header: Any) -> RasterSurface:
    width, height = record.width, record.height
    if width == 0 or height == 0:
        return RasterSurface.new(width, height)

    channel_map = _channel_map(record, channels)
    planes = []
    for channel_id in COLOR_CHANNELS[header.color_mode]:
        if channel_id in channel_map:
            planes.append(
                _read_plane(channel_map[channel_id], width, height, header.version)
            )
        else:
            logger.warning("Missing channel %d in %r" % (channel_id, record.name))
            planes.append(np.zeros((height, width), dtype=np.uint8))
    if ChannelID.TRANSPARENCY_MASK in channel_map:
        planes.append(
            _read_plane(
                channel_map[ChannelID.TRANSPARENCY_MASK], width, height, header.version
            )
        )
    else:
        planes.append(np.full((height, width), 255, dtype=np.uint8))
    return RasterSurface(np.stack(planes, axis=2))


def _read_mask(record: Any, channels: Any, header: Any) -> Optional[Mask]:
    mask_data = record.mask_data
    if mask_data is None:
        return None
    channel_map = _channel_map(record, channels)
    if ChannelID.USER_LAYER_MASK not in channel_map:
        logger.debug("Mask record without mask channel in %r" % record.name)
        return None

    width, height = mask_data.width, mask_data.height
    if width and height:
        data = _read_plane(
            channel_map[ChannelID.USER_LAYER_MASK], width, height, header.version
        )
    else:
        data = np.zeros((height, width), dtype=np.uint8)

    density = 1.0
    parameters = mask_data.parameters
    if parameters is not None and parameters.user_mask_density is not None:
        density = parameters.user_mask_density / 255.0

    background_color = mask_data.background_color
    if background_color not in (0, 255):
        logger.warning("Unexpected mask background %d" % background_color)
        background_color = 255 if background_color >= 128 else 0

    return Mask(
        data,
        left=mask_data.left,
        top=mask_data.top,
        background_color=background_color,
        enabled=not mask_data.flags.mask_disabled,
        linked=not mask_data.flags.pos_relative_to_layer,
        density=density,
    )


def _read_thumbnail(psd: PSD) -> Optional[RasterSurface]:
    resources = psd.image_resources
    for key in (Resource.THUMBNAIL_RESOURCE, Resource.THUMBNAIL_RESOURCE_PS4):
        resource = resources.get_data(key)
        if resource is None or isinstance(resource, bytes):
            continue
        try:
            image = resource.topil()
        except OSError as e:
            logger.warning("Failed to read thumbnail: %s" % e)
            continue
        if image is not None:
            return RasterSurface.frompil(image)
    return None


def _read_preview(psd: PSD) -> Optional[RasterSurface]:
    header = psd.header
    if not psd.image_data.data:
        return None
    planes = [
        np.frombuffer(plane, dtype=np.uint8).reshape((header.height, header.width))
        for plane in psd.image_data.get_data(header)
    ]
    if header.color_mode == ColorMode.GRAYSCALE:
        color = [planes[0]] * 3
        alpha = planes[1:2]
    else:
        color = planes[:3]
        alpha = planes[3:4]
    if not alpha:
        alpha = [np.full((header.height, header.width), 255, dtype=np.uint8)]
    return RasterSurface(np.stack(color + alpha, axis=2))

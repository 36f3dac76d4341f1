"""
Adjustment layer structures.

Only the fixed-layout adjustment blocks are parsed here. Descriptor based
adjustments (black & white, vibrance) are kept as raw bytes by the tagged
block reader.
"""

import logging
from typing import Any, BinaryIO, Optional, TypeVar

from attrs import astuple, define, field

from layerstack.constants import Tag
from layerstack.psd.base import (
    BaseElement,
    EmptyElement,
    ListElement,
    ShortIntegerElement,
)
from layerstack.psd.bin_utils import is_readable, read_fmt, write_fmt, write_padding
from layerstack.registry import new_registry
from layerstack.validators import in_, range_

logger = logging.getLogger(__name__)

T = TypeVar("T", bound="BaseElement")

ADJUSTMENT_TYPES, register = new_registry()

ADJUSTMENT_TYPES.update(
    {
        Tag.INVERT: EmptyElement,
        Tag.POSTERIZE: ShortIntegerElement,
        Tag.THRESHOLD: ShortIntegerElement,
    }
)


@register(Tag.BRIGHTNESS_AND_CONTRAST)
@define(repr=False)
class BrightnessContrast(BaseElement):
    """
    BrightnessContrast structure.

    .. py:attribute:: brightness
    .. py:attribute:: contrast
    .. py:attribute:: mean
    .. py:attribute:: lab_only
    """

    brightness: int = field(default=0, validator=range_(-150, 150))
    contrast: int = field(default=0, validator=range_(-100, 100))
    mean: int = 127
    lab_only: int = 0

    @classmethod
    def read(cls: type[T], fp: BinaryIO, **kwargs: Any) -> T:
        return cls(*read_fmt("2hHBx", fp))  # type: ignore[call-arg]

    def write(self, fp: BinaryIO, **kwargs: Any) -> int:
        return write_fmt(fp, "2hHBx", *astuple(self))


@register(Tag.COLOR_BALANCE)
@define(repr=False)
class ColorBalance(BaseElement):
    """
    ColorBalance structure.

    Each tone range holds the cyan-red, magenta-green and yellow-blue
    sliders in ``[-100, 100]``.

    .. py:attribute:: shadows
    .. py:attribute:: midtones
    .. py:attribute:: highlights
    .. py:attribute:: luminosity
    """

    shadows: tuple = (0,) * 3
    midtones: tuple = (0,) * 3
    highlights: tuple = (0,) * 3
    luminosity: bool = field(default=True, converter=bool)

    @classmethod
    def read(cls: type[T], fp: BinaryIO, **kwargs: Any) -> T:
        shadows = read_fmt("3h", fp)
        midtones = read_fmt("3h", fp)
        highlights = read_fmt("3h", fp)
        luminosity = read_fmt("B", fp)[0]
        return cls(shadows, midtones, highlights, luminosity)  # type: ignore[call-arg]

    def write(self, fp: BinaryIO, **kwargs: Any) -> int:
        written = write_fmt(fp, "3h", *self.shadows)
        written += write_fmt(fp, "3h", *self.midtones)
        written += write_fmt(fp, "3h", *self.highlights)
        written += write_fmt(fp, "B", self.luminosity)
        written += write_padding(fp, written, 4)
        return written


@register(Tag.CURVES)
@define(repr=False)
class Curves(BaseElement):
    """
    Curves structure.

    ``count_map`` is a bit field of the channels present (bit 0 is the
    composite, then red, green and blue). Each curve is a list of
    ``(output, input)`` points.

    .. py:attribute:: version
    .. py:attribute:: count_map
    .. py:attribute:: data
    .. py:attribute:: extra
    """

    is_map: bool = field(default=False, converter=bool)
    version: int = field(default=1, validator=in_((1, 4)))
    count_map: int = 0
    data: list = field(factory=list, converter=list)
    extra: Optional["CurvesExtraMarker"] = None

    @classmethod
    def read(cls: type[T], fp: BinaryIO, **kwargs: Any) -> T:
        is_map, version, count_map = read_fmt("BHI", fp)
        if version not in (1, 4):
            raise ValueError("Invalid version %d" % (version))
        if is_map:
            raise ValueError("Curves lookup maps are not supported")

        count = bin(count_map).count("1") if version == 1 else count_map
        data = []
        for _ in range(count):
            point_count = read_fmt("H", fp)[0]
            if not 2 <= point_count <= 19:
                raise ValueError("Curves point count not in [2, 19]")
            data.append([read_fmt("2H", fp) for _ in range(point_count)])

        extra = None
        if version == 1 and is_readable(fp, 10):
            extra = CurvesExtraMarker.read(fp)

        return cls(is_map, version, count_map, data, extra)  # type: ignore[call-arg]

    def write(self, fp: BinaryIO, **kwargs: Any) -> int:
        written = write_fmt(fp, "BHI", self.is_map, self.version, self.count_map)
        for points in self.data:
            written += write_fmt(fp, "H", len(points))
            written += sum(write_fmt(fp, "2H", *item) for item in points)

        if self.extra is not None:
            written += self.extra.write(fp)

        written += write_padding(fp, written, 4)
        return written


@define(repr=False)
class CurvesExtraMarker(ListElement):
    """
    Curves extra marker structure, a list of :py:class:`CurvesExtraItem`.

    .. py:attribute:: version
    """

    version: int = field(default=4, validator=in_((3, 4)))

    @classmethod
    def read(cls: type[T], fp: BinaryIO, **kwargs: Any) -> T:
        signature, version, count = read_fmt("4sHI", fp)
        if signature != b"Crv ":
            raise ValueError("Invalid signature %r" % (signature))
        items = [CurvesExtraItem.read(fp) for _ in range(count)]
        return cls(version=version, items=items)  # type: ignore[call-arg]

    def write(self, fp: BinaryIO, **kwargs: Any) -> int:
        written = write_fmt(fp, "4sHI", b"Crv ", self.version, len(self))
        written += sum(item.write(fp) for item in self)
        return written


@define(repr=False)
class CurvesExtraItem(BaseElement):
    """
    Curves extra item.

    .. py:attribute:: channel_id
    .. py:attribute:: points
    """

    channel_id: int = 0
    points: list = field(factory=list, converter=list)

    @classmethod
    def read(cls: type[T], fp: BinaryIO, **kwargs: Any) -> T:
        channel_id, point_count = read_fmt("2H", fp)
        points = [read_fmt("2H", fp) for _ in range(point_count)]
        return cls(channel_id, points)  # type: ignore[call-arg]

    def write(self, fp: BinaryIO, **kwargs: Any) -> int:
        written = write_fmt(fp, "2H", self.channel_id, len(self.points))
        written += sum(write_fmt(fp, "2H", *p) for p in self.points)
        return written


#: Default hue ranges of the six color items, in degrees.
HUE_RANGES = (
    (315, 345, 15, 45),
    (15, 45, 75, 105),
    (75, 105, 135, 165),
    (135, 165, 195, 225),
    (195, 225, 255, 285),
    (255, 285, 315, 345),
)


@register(Tag.HUE_SATURATION_V4)
@register(Tag.HUE_SATURATION)
@define(repr=False)
class HueSaturation(BaseElement):
    """
    HueSaturation structure.

    .. py:attribute:: version
    .. py:attribute:: enable

        1 when the colorization settings are in use.

    .. py:attribute:: colorization

        Colorize hue, saturation and lightness.

    .. py:attribute:: master

        Master hue, saturation and lightness.

    .. py:attribute:: items

        Six ``[range_values, settings_values]`` pairs for the color ranges.
    """

    version: int = 2
    enable: int = 0
    colorization: tuple = (0, 25, 0)
    master: tuple = (0, 0, 0)
    items: list = field(
        factory=lambda: [[values, (0, 0, 0)] for values in HUE_RANGES],
        converter=list,
    )

    @classmethod
    def read(cls: type[T], fp: BinaryIO, **kwargs: Any) -> T:
        version, enable = read_fmt("HBx", fp)
        if version != 2:
            raise ValueError("Invalid version %d" % (version))
        colorization = read_fmt("3h", fp)
        master = read_fmt("3h", fp)
        items = []
        for _ in range(6):
            range_values = read_fmt("4h", fp)
            settings_values = read_fmt("3h", fp)
            items.append([range_values, settings_values])
        return cls(version, enable, colorization, master, items)  # type: ignore[call-arg]

    def write(self, fp: BinaryIO, **kwargs: Any) -> int:
        written = write_fmt(fp, "HBx", self.version, self.enable)
        written += write_fmt(fp, "3h", *self.colorization)
        written += write_fmt(fp, "3h", *self.master)
        for range_values, settings_values in self.items:
            written += write_fmt(fp, "4h", *range_values)
            written += write_fmt(fp, "3h", *settings_values)
        written += write_padding(fp, written, 4)
        return written


@register(Tag.LEVELS)
@define(repr=False)
class Levels(ListElement):
    """
    List of level records. See :py:class:`LevelRecord`.

    Record 0 is the composite, records 1 to 3 are red, green and blue.

    .. py:attribute:: version
    .. py:attribute:: extra_version
    """

    version: int = field(default=2, validator=in_((2,)))
    extra_version: Optional[int] = None

    @classmethod
    def new(cls) -> "Levels":
        return cls(items=[LevelRecord() for _ in range(29)])  # type: ignore[call-arg]

    @classmethod
    def read(cls: type[T], fp: BinaryIO, **kwargs: Any) -> T:
        version = read_fmt("H", fp)[0]
        if version != 2:
            raise ValueError("Invalid version %d" % (version))
        items = [LevelRecord.read(fp) for _ in range(29)]

        extra_version = None
        if is_readable(fp, 6):
            signature, extra_version = read_fmt("4sH", fp)
            if signature != b"Lvls":
                raise ValueError("Invalid signature %r" % (signature))
            count = read_fmt("H", fp)[0]
            items += [LevelRecord.read(fp) for _ in range(count - 29)]

        return cls(version=version, extra_version=extra_version, items=items)  # type: ignore[call-arg]

    def write(self, fp: BinaryIO, **kwargs: Any) -> int:
        written = write_fmt(fp, "H", self.version)
        for index in range(29):
            written += self[index].write(fp)

        if self.extra_version is not None:
            written += write_fmt(fp, "4sHH", b"Lvls", self.extra_version, len(self))
            for index in range(29, len(self)):
                written += self[index].write(fp)

        written += write_padding(fp, written, 4)
        return written


@define(repr=False)
class LevelRecord(BaseElement):
    """
    Level record.

    .. py:attribute:: input_floor
    .. py:attribute:: input_ceiling
    .. py:attribute:: output_floor
    .. py:attribute:: output_ceiling
    .. py:attribute:: gamma

        Gamma times 100, from 10 to 999.
    """

    input_floor: int = 0
    input_ceiling: int = 255
    output_floor: int = 0
    output_ceiling: int = 255
    gamma: int = 100

    @classmethod
    def read(cls: type[T], fp: BinaryIO, **kwargs: Any) -> T:
        return cls(*read_fmt("5H", fp))  # type: ignore[call-arg]

    def write(self, fp: BinaryIO, **kwargs: Any) -> int:
        return write_fmt(fp, "5H", *astuple(self))

    @property
    def is_identity(self) -> bool:
        return astuple(self) == (0, 255, 0, 255, 100)

"""
Layer and mask data structure.

The section holds the layer records (geometry, blending and per-layer tagged
blocks), the compressed channel image data of every layer, the global layer
mask info and trailing global tagged blocks.
"""

import io
import logging
from typing import Any, BinaryIO, Optional, TypeVar

from attrs import define, field

from layerstack.compression import compress, decompress
from layerstack.constants import (
    BlendKey,
    ChannelID,
    Clipping,
    Compression,
    GlobalLayerMaskKind,
)
from layerstack.psd.base import BaseElement, ListElement
from layerstack.psd.bin_utils import (
    is_readable,
    read_bytes,
    read_fmt,
    read_length_block,
    read_pascal_string,
    write_bytes,
    write_fmt,
    write_length_block,
    write_padding,
    write_pascal_string,
)
from layerstack.psd.image_data import read_compression
from layerstack.psd.tagged_blocks import TaggedBlocks
from layerstack.validators import in_, range_

logger = logging.getLogger(__name__)

T_LayerAndMaskInformation = TypeVar(
    "T_LayerAndMaskInformation", bound="LayerAndMaskInformation"
)
T_LayerInfo = TypeVar("T_LayerInfo", bound="LayerInfo")
T_LayerRecord = TypeVar("T_LayerRecord", bound="LayerRecord")
T_MaskData = TypeVar("T_MaskData", bound="MaskData")
T_ChannelData = TypeVar("T_ChannelData", bound="ChannelData")


@define(repr=False)
class LayerAndMaskInformation(BaseElement):
    """
    Layer and mask information section.

    .. py:attribute:: layer_info

        See :py:class:`.LayerInfo`.

    .. py:attribute:: global_layer_mask_info

        See :py:class:`.GlobalLayerMaskInfo`.

    .. py:attribute:: tagged_blocks

        See :py:class:`~layerstack.psd.tagged_blocks.TaggedBlocks`.
    """

    layer_info: Optional["LayerInfo"] = None
    global_layer_mask_info: Optional["GlobalLayerMaskInfo"] = None
    tagged_blocks: Optional[TaggedBlocks] = None

    @classmethod
    def read(
        cls: type[T_LayerAndMaskInformation],
        fp: BinaryIO,
        encoding: str = "macroman",
        version: int = 1,
        **kwargs: Any,
    ) -> T_LayerAndMaskInformation:
        start_pos = fp.tell()
        length = read_fmt(("I", "Q")[version - 1], fp)[0]
        end_pos = fp.tell() + length
        logger.debug(
            "reading layer and mask info, len=%d, offset=%d" % (length, start_pos)
        )
        if length == 0:
            self = cls()
        else:
            self = cls._read_body(fp, end_pos, encoding, version, **kwargs)
        if fp.tell() > end_pos:
            logger.warning(
                "LayerAndMaskInformation is broken: current fp=%d, expected=%d"
                % (fp.tell(), end_pos)
            )
        fp.seek(end_pos, 0)
        return self

    @classmethod
    def _read_body(
        cls: type[T_LayerAndMaskInformation],
        fp: BinaryIO,
        end_pos: int,
        encoding: str,
        version: int,
        **kwargs: Any,
    ) -> T_LayerAndMaskInformation:
        layer_info = LayerInfo.read(fp, encoding, version, **kwargs)

        global_layer_mask_info = None
        if is_readable(fp, 17) and fp.tell() < end_pos:
            global_layer_mask_info = GlobalLayerMaskInfo.read(fp)

        tagged_blocks = None
        if is_readable(fp) and fp.tell() < end_pos:
            # Global tagged blocks align to 4 bytes.
            tagged_blocks = TaggedBlocks.read(
                fp, version=version, padding=4, end_pos=end_pos
            )

        return cls(layer_info, global_layer_mask_info, tagged_blocks)

    def write(
        self,
        fp: BinaryIO,
        encoding: str = "macroman",
        version: int = 1,
        padding: int = 4,
        **kwargs: Any,
    ) -> int:
        def writer(f: BinaryIO) -> int:
            written = 0
            if self.layer_info:
                written += self.layer_info.write(f, encoding, version, padding)
            if self.global_layer_mask_info:
                written += self.global_layer_mask_info.write(f)
            if self.tagged_blocks:
                written += self.tagged_blocks.write(f, version=version, padding=4)
            logger.debug("writing layer and mask info, len=%d" % (written))
            return written

        return write_length_block(fp, writer, fmt=("I", "Q")[version - 1])


@define(repr=False)
class LayerInfo(BaseElement):
    """
    High-level organization of the layer information.

    .. py:attribute:: layer_count

        Layer count. If it is a negative number, its absolute value is the
        number of layers and the first alpha channel contains the transparency
        data for the merged result.

    .. py:attribute:: layer_records

        List of :py:class:`.LayerRecord`.

    .. py:attribute:: channel_image_data

        List of :py:class:`.ChannelDataList`, one per record.
    """

    layer_count: int = 0
    layer_records: list = field(factory=list)
    channel_image_data: list = field(factory=list)

    @classmethod
    def read(
        cls: type[T_LayerInfo],
        fp: BinaryIO,
        encoding: str = "macroman",
        version: int = 1,
        cancel_token: Any = None,
        **kwargs: Any,
    ) -> T_LayerInfo:
        length = read_fmt(("I", "Q")[version - 1], fp)[0]
        logger.debug("reading layer info, len=%d" % length)
        end_pos = fp.tell() + length
        if length == 0:
            return cls()

        start_pos = fp.tell()
        layer_count = read_fmt("h", fp)[0]
        layer_records = []
        for _ in range(abs(layer_count)):
            if cancel_token is not None:
                cancel_token.check()
            layer_records.append(LayerRecord.read(fp, encoding, version))
        logger.debug("  read layer records, len=%d" % (fp.tell() - start_pos))

        start_pos = fp.tell()
        channel_image_data = []
        for record in layer_records:
            if cancel_token is not None:
                cancel_token.check()
            channel_image_data.append(ChannelDataList.read(fp, record.channel_info))
        logger.debug("  read channel image data, len=%d" % (fp.tell() - start_pos))

        if fp.tell() > end_pos:
            logger.warning(
                "LayerInfo is broken: current fp=%d, expected=%d"
                % (fp.tell(), end_pos)
            )
        fp.seek(end_pos, 0)
        return cls(layer_count, layer_records, channel_image_data)

    def write(
        self,
        fp: BinaryIO,
        encoding: str = "macroman",
        version: int = 1,
        padding: int = 4,
        **kwargs: Any,
    ) -> int:
        fmt = ("I", "Q")[version - 1]
        if self.layer_count == 0:
            return write_fmt(fp, fmt, 0)

        def writer(f: BinaryIO) -> int:
            written = self._write_body(f, encoding, version, padding)
            logger.debug("writing layer info, len=%d" % (written))
            return written

        return write_length_block(fp, writer, fmt=fmt)

    def _write_body(
        self, fp: BinaryIO, encoding: str, version: int, padding: int
    ) -> int:
        start_pos = fp.tell()
        self._update_channel_length()
        written = write_fmt(fp, "h", self.layer_count)
        written += sum(
            record.write(fp, encoding, version) for record in self.layer_records
        )
        logger.debug("  wrote layer records, len=%d" % (fp.tell() - start_pos))
        start_pos = fp.tell()
        written += sum(item.write(fp) for item in self.channel_image_data)
        logger.debug("  wrote channel image data, len=%d" % (fp.tell() - start_pos))
        written += write_padding(fp, written, padding)
        return written

    def _update_channel_length(self) -> None:
        for record, channels in zip(self.layer_records, self.channel_image_data):
            for channel_info, channel in zip(record.channel_info, channels):
                channel_info.length = channel._length


@define(repr=False)
class ChannelInfo(BaseElement):
    """
    Channel information.

    .. py:attribute:: id

        Channel ID: 0 = red, 1 = green, etc.; -1 = transparency mask; -2 =
        user supplied layer mask, -3 real user supplied layer mask. See
        :py:class:`~layerstack.constants.ChannelID`.

    .. py:attribute:: length

        Length of the corresponding channel data.
    """

    id: int = ChannelID.CHANNEL_0
    length: int = 0

    @classmethod
    def read(cls, fp: BinaryIO, version: int = 1, **kwargs: Any) -> "ChannelInfo":
        channel_id, length = read_fmt(("hI", "hQ")[version - 1], fp)
        try:
            channel_id = ChannelID(channel_id)
        except ValueError:
            logger.debug("Unknown channel id %d" % channel_id)
        return cls(id=channel_id, length=length)

    def write(self, fp: BinaryIO, version: int = 1, **kwargs: Any) -> int:
        return write_fmt(fp, ("hI", "hQ")[version - 1], int(self.id), self.length)


@define(repr=False)
class LayerFlags(BaseElement):
    """
    Layer flags.

    .. py:attribute:: transparency_protected
    .. py:attribute:: visible
    .. py:attribute:: pixel_data_irrelevant
    """

    transparency_protected: bool = False
    visible: bool = True
    photoshop_v5_later: bool = field(default=True, repr=False)
    pixel_data_irrelevant: bool = False
    undocumented: int = field(default=0, repr=False)

    @classmethod
    def read(cls, fp: BinaryIO, **kwargs: Any) -> "LayerFlags":
        flags = read_fmt("B", fp)[0]
        return cls(
            bool(flags & 1),
            not bool(flags & 2),  # The bit means hidden.
            bool(flags & 8),
            bool(flags & 16),
            flags & 0xE4,
        )

    def write(self, fp: BinaryIO, **kwargs: Any) -> int:
        flags = (
            (self.transparency_protected * 1)
            | ((not self.visible) * 2)
            | (self.photoshop_v5_later * 8)
            | (self.pixel_data_irrelevant * 16)
            | self.undocumented
        )
        return write_fmt(fp, "B", flags)


#: Composite gray plus four channels, each with full black and white ranges.
DEFAULT_BLENDING_RANGES = b"\x00\x00\x00\x00\xff\xff\xff\xff" * 2 * 5


@define(repr=False)
class LayerRecord(BaseElement):
    """
    Layer record.

    .. py:attribute:: top
    .. py:attribute:: left
    .. py:attribute:: bottom
    .. py:attribute:: right
    .. py:attribute:: channel_info

        List of :py:class:`.ChannelInfo`.

    .. py:attribute:: blend_mode

        Raw 4-byte blend key. See :py:class:`~layerstack.constants.BlendKey`.

    .. py:attribute:: opacity

        Opacity, 0 = transparent, 255 = opaque.

    .. py:attribute:: clipping

        See :py:class:`~layerstack.constants.Clipping`.

    .. py:attribute:: flags

        See :py:class:`.LayerFlags`.

    .. py:attribute:: mask_data

        :py:class:`.MaskData` or None.

    .. py:attribute:: blending_ranges

        Raw blending ranges block.

    .. py:attribute:: name

        Pascal layer name. The unicode name lives in the tagged blocks.

    .. py:attribute:: tagged_blocks

        See :py:class:`~layerstack.psd.tagged_blocks.TaggedBlocks`.
    """

    top: int = 0
    left: int = 0
    bottom: int = 0
    right: int = 0
    channel_info: list = field(factory=list)
    signature: bytes = field(default=b"8BIM", repr=False, validator=in_((b"8BIM",)))
    blend_mode: bytes = BlendKey.NORMAL.value
    opacity: int = field(default=255, validator=range_(0, 255))
    clipping: Clipping = field(
        default=Clipping.BASE, converter=Clipping, validator=in_(Clipping)
    )
    flags: LayerFlags = field(factory=LayerFlags)
    mask_data: Optional["MaskData"] = None
    blending_ranges: bytes = field(default=DEFAULT_BLENDING_RANGES, repr=False)
    name: str = ""
    tagged_blocks: TaggedBlocks = field(factory=TaggedBlocks)

    @classmethod
    def read(
        cls: type[T_LayerRecord],
        fp: BinaryIO,
        encoding: str = "macroman",
        version: int = 1,
        **kwargs: Any,
    ) -> T_LayerRecord:
        start_pos = fp.tell()
        top, left, bottom, right, num_channels = read_fmt("4iH", fp)
        channel_info = [ChannelInfo.read(fp, version) for _ in range(num_channels)]
        signature, blend_mode, opacity, clipping = read_fmt("4s4sBB", fp)
        if clipping not in (0, 1):
            logger.warning("Unknown clipping value %d, assuming base" % clipping)
            clipping = Clipping.BASE
        flags = LayerFlags.read(fp)

        data = read_length_block(fp, fmt="xI")
        logger.debug("  read layer record, len=%d" % (fp.tell() - start_pos))
        with io.BytesIO(data) as f:
            mask_data = MaskData.read(f)
            blending_ranges = read_length_block(f)
            name = read_pascal_string(f, encoding, padding=4)
            tagged_blocks = TaggedBlocks.read(f, version=version, padding=1)

        return cls(
            top=top,
            left=left,
            bottom=bottom,
            right=right,
            channel_info=channel_info,
            signature=signature,
            blend_mode=blend_mode,
            opacity=opacity,
            clipping=clipping,
            flags=flags,
            mask_data=mask_data,
            blending_ranges=blending_ranges,
            name=name,
            tagged_blocks=tagged_blocks,
        )

    def write(
        self, fp: BinaryIO, encoding: str = "macroman", version: int = 1, **kwargs: Any
    ) -> int:
        written = write_fmt(
            fp,
            "4iH",
            self.top,
            self.left,
            self.bottom,
            self.right,
            len(self.channel_info),
        )
        written += sum(c.write(fp, version) for c in self.channel_info)
        written += write_fmt(
            fp,
            "4s4sBB",
            self.signature,
            self.blend_mode,
            self.opacity,
            self.clipping.value,
        )
        written += self.flags.write(fp)

        def writer(f: BinaryIO) -> int:
            written = 0
            if self.mask_data is not None:
                written += self.mask_data.write(f)
            else:
                written += write_fmt(f, "I", 0)
            written += write_length_block(
                f, lambda f2: write_bytes(f2, self.blending_ranges)
            )
            written += write_pascal_string(f, self.name, encoding, padding=4)
            written += self.tagged_blocks.write(f, version, padding=1)
            written += write_padding(f, written, 2)
            return written

        written += write_length_block(fp, writer, fmt="xI")
        return written

    @property
    def width(self) -> int:
        """Width of the layer."""
        return max(self.right - self.left, 0)

    @property
    def height(self) -> int:
        """Height of the layer."""
        return max(self.bottom - self.top, 0)

    @property
    def channel_sizes(self) -> list[tuple[int, int]]:
        """List of channel sizes: [(width, height)]."""
        sizes = []
        for channel in self.channel_info:
            if channel.id == ChannelID.USER_LAYER_MASK and self.mask_data:
                sizes.append((self.mask_data.width, self.mask_data.height))
            elif channel.id == ChannelID.REAL_USER_LAYER_MASK and self.mask_data:
                sizes.append((self.mask_data.real_width, self.mask_data.real_height))
            else:
                sizes.append((self.width, self.height))
        return sizes


@define(repr=False)
class MaskFlags(BaseElement):
    """
    Mask flags.

    .. py:attribute:: pos_relative_to_layer
    .. py:attribute:: mask_disabled
    .. py:attribute:: invert_mask
    .. py:attribute:: user_mask_from_render
    .. py:attribute:: parameters_applied
    """

    pos_relative_to_layer: bool = False
    mask_disabled: bool = False
    invert_mask: bool = False
    user_mask_from_render: bool = False
    parameters_applied: bool = False
    undocumented: int = field(default=0, repr=False)

    @classmethod
    def read(cls, fp: BinaryIO, **kwargs: Any) -> "MaskFlags":
        flags = read_fmt("B", fp)[0]
        return cls(
            bool(flags & 1),
            bool(flags & 2),
            bool(flags & 4),
            bool(flags & 8),
            bool(flags & 16),
            flags & 0xE0,
        )

    def write(self, fp: BinaryIO, **kwargs: Any) -> int:
        flags = (
            (self.pos_relative_to_layer * 1)
            | (self.mask_disabled * 2)
            | (self.invert_mask * 4)
            | (self.user_mask_from_render * 8)
            | (self.parameters_applied * 16)
            | self.undocumented
        )
        return write_fmt(fp, "B", flags)


@define(repr=False)
class MaskData(BaseElement):
    """
    Mask data.

    The real user mask fields are present when the layer also has a vector
    mask; they are preserved but not interpreted.

    .. py:attribute:: top
    .. py:attribute:: left
    .. py:attribute:: bottom
    .. py:attribute:: right
    .. py:attribute:: background_color

        Value outside of the mask rectangle, 0 or 255.

    .. py:attribute:: flags

        See :py:class:`.MaskFlags`.

    .. py:attribute:: parameters

        :py:class:`.MaskParameters` or None.
    """

    top: int = 0
    left: int = 0
    bottom: int = 0
    right: int = 0
    background_color: int = 0
    flags: MaskFlags = field(factory=MaskFlags)
    parameters: Optional["MaskParameters"] = None
    real_flags: Optional[MaskFlags] = None
    real_background_color: Optional[int] = None
    real_top: Optional[int] = None
    real_left: Optional[int] = None
    real_bottom: Optional[int] = None
    real_right: Optional[int] = None

    @classmethod
    def read(
        cls: type[T_MaskData], fp: BinaryIO, **kwargs: Any
    ) -> Optional[T_MaskData]:
        data = read_length_block(fp)
        if len(data) == 0:
            return None

        with io.BytesIO(data) as f:
            return cls._read_body(f, len(data))

    @classmethod
    def _read_body(cls: type[T_MaskData], fp: BinaryIO, length: int) -> T_MaskData:
        top, left, bottom, right, background_color = read_fmt("4iB", fp)
        flags = MaskFlags.read(fp)

        real_flags, real_background_color = None, None
        real_top, real_left, real_bottom, real_right = None, None, None, None
        if length >= 36:
            real_flags = MaskFlags.read(fp)
            real_background_color = read_fmt("B", fp)[0]
            real_top, real_left, real_bottom, real_right = read_fmt("4i", fp)

        parameters = None
        if flags.parameters_applied:
            parameters = MaskParameters.read(fp)

        return cls(
            top=top,
            left=left,
            bottom=bottom,
            right=right,
            background_color=background_color,
            flags=flags,
            parameters=parameters,
            real_flags=real_flags,
            real_background_color=real_background_color,
            real_top=real_top,
            real_left=real_left,
            real_bottom=real_bottom,
            real_right=real_right,
        )

    def write(self, fp: BinaryIO, **kwargs: Any) -> int:
        return write_length_block(fp, self._write_body)

    def _write_body(self, fp: BinaryIO) -> int:
        written = write_fmt(
            fp,
            "4iB",
            self.top,
            self.left,
            self.bottom,
            self.right,
            self.background_color,
        )
        written += self.flags.write(fp)

        if self.real_flags is not None:
            written += self.real_flags.write(fp)
            written += write_fmt(
                fp,
                "B4i",
                self.real_background_color or 0,
                self.real_top or 0,
                self.real_left or 0,
                self.real_bottom or 0,
                self.real_right or 0,
            )

        if self.flags.parameters_applied and self.parameters is not None:
            written += self.parameters.write(fp)

        written += write_padding(fp, written, 4)
        return written

    @property
    def width(self) -> int:
        """Width of the mask."""
        return max(self.right - self.left, 0)

    @property
    def height(self) -> int:
        """Height of the mask."""
        return max(self.bottom - self.top, 0)

    @property
    def real_width(self) -> int:
        """Width of real user mask."""
        return max((self.real_right or 0) - (self.real_left or 0), 0)

    @property
    def real_height(self) -> int:
        """Height of real user mask."""
        return max((self.real_bottom or 0) - (self.real_top or 0), 0)


@define(repr=False)
class MaskParameters(BaseElement):
    """
    Mask parameters.

    .. py:attribute:: user_mask_density

        0 to 255.

    .. py:attribute:: user_mask_feather
    .. py:attribute:: vector_mask_density
    .. py:attribute:: vector_mask_feather
    """

    user_mask_density: Optional[int] = None
    user_mask_feather: Optional[float] = None
    vector_mask_density: Optional[int] = None
    vector_mask_feather: Optional[float] = None

    @classmethod
    def read(cls, fp: BinaryIO, **kwargs: Any) -> "MaskParameters":
        parameters = read_fmt("B", fp)[0]
        return cls(
            read_fmt("B", fp)[0] if parameters & 1 else None,
            read_fmt("d", fp)[0] if parameters & 2 else None,
            read_fmt("B", fp)[0] if parameters & 4 else None,
            read_fmt("d", fp)[0] if parameters & 8 else None,
        )

    def write(self, fp: BinaryIO, **kwargs: Any) -> int:
        values = (
            ("B", self.user_mask_density),
            ("d", self.user_mask_feather),
            ("B", self.vector_mask_density),
            ("d", self.vector_mask_feather),
        )
        bits = sum(1 << index for index, (_, v) in enumerate(values) if v is not None)
        written = write_fmt(fp, "B", bits)
        for fmt, value in values:
            if value is not None:
                written += write_fmt(fp, fmt, value)
        return written


class ChannelDataList(ListElement):
    """
    List of channel image data of one layer, in the order of its
    :py:class:`.ChannelInfo` list. See :py:class:`.ChannelData`.
    """

    @classmethod
    def read(  # type: ignore[override]
        cls, fp: BinaryIO, channel_info: list, **kwargs: Any
    ) -> "ChannelDataList":
        return cls([ChannelData.read(fp, c.length - 2) for c in channel_info])


@define(repr=False)
class ChannelData(BaseElement):
    """
    Channel data.

    .. py:attribute:: compression

        Compression type. See :py:class:`~layerstack.constants.Compression`.

    .. py:attribute:: data

        Data.
    """

    compression: Compression = field(
        default=Compression.RAW, converter=Compression, validator=in_(Compression)
    )
    data: bytes = b""

    @classmethod
    def read(
        cls: type[T_ChannelData], fp: BinaryIO, length: int = 0, **kwargs: Any
    ) -> T_ChannelData:
        compression = read_compression(fp)
        data = read_bytes(fp, max(length, 0))
        return cls(compression=compression, data=data)

    def write(self, fp: BinaryIO, **kwargs: Any) -> int:
        written = write_fmt(fp, "H", self.compression.value)
        written += write_bytes(fp, self.data)
        return written

    def get_data(self, width: int, height: int, depth: int, version: int = 1) -> bytes:
        """Get decompressed channel data."""
        return decompress(self.data, self.compression, width, height, depth, version)

    def set_data(
        self, data: bytes, width: int, height: int, depth: int, version: int = 1
    ) -> int:
        """Set raw channel data and compress to store."""
        self.data = compress(data, self.compression, width, height, depth, version)
        return len(self.data)

    @property
    def _length(self) -> int:
        """Length of channel data block."""
        return 2 + len(self.data)


@define(repr=False)
class GlobalLayerMaskInfo(BaseElement):
    """
    Global mask information.

    .. py:attribute:: overlay_color
    .. py:attribute:: opacity
    .. py:attribute:: kind

        See :py:class:`~layerstack.constants.GlobalLayerMaskKind`.
    """

    overlay_color: Optional[list] = None
    opacity: int = 0
    kind: GlobalLayerMaskKind = field(
        default=GlobalLayerMaskKind.PER_LAYER,
        converter=GlobalLayerMaskKind,
        validator=in_(GlobalLayerMaskKind),
    )

    @classmethod
    def read(cls, fp: BinaryIO, **kwargs: Any) -> "GlobalLayerMaskInfo":
        pos = fp.tell()
        data = read_length_block(fp)
        logger.debug("reading global layer mask info, len=%d" % (len(data)))
        if len(data) == 0:
            return cls(overlay_color=None)
        elif len(data) < 13:
            logger.warning(
                "global layer mask info is broken, expected 13 bytes but found"
                " only %d" % (len(data))
            )
            fp.seek(pos)
            return cls(overlay_color=None)

        with io.BytesIO(data) as f:
            overlay_color = list(read_fmt("5H", f))
            opacity, kind = read_fmt("HB", f)
        return cls(overlay_color, opacity, kind)

    def write(self, fp: BinaryIO, **kwargs: Any) -> int:
        def writer(f: BinaryIO) -> int:
            written = 0
            if self.overlay_color is not None:
                written = write_fmt(f, "5H", *self.overlay_color)
                written += write_fmt(f, "HB", self.opacity, self.kind.value)
                written += write_padding(f, written, 4)
            logger.debug("writing global layer mask info, len=%d" % (written))
            return written

        return write_length_block(fp, writer)

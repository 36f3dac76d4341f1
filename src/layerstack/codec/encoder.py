"""
PSD encoder.

Flattens the layer tree of a :py:class:`~layerstack.api.document.Document`
into bottom-first layer records, builds the low-level
:py:class:`~layerstack.psd.PSD` structure and serializes it. Output is
always an 8-bit RGB PSD (version 1) with a transparency channel.
"""

import io
import logging
from typing import Any, Optional

import numpy as np

from layerstack.api.document import Document
from layerstack.api.layers import (
    MAX_LAYER_ID,
    AdjustmentLayer,
    Group,
    GroupMixin,
    Layer,
    RasterLayer,
)
from layerstack.api.mask import Mask
from layerstack.api.surface import RasterSurface
from layerstack.codec.adjustments import encode_adjustment
from layerstack.codec.blend_modes import to_tag
from layerstack.composite import composite, make_thumbnail
from layerstack.constants import (
    ChannelID,
    Clipping,
    ColorMode,
    Compression,
    ProtectedFlags,
    Resource,
    SectionDivider,
    Tag,
)
from layerstack.errors import DimensionOverflow, EncodeError
from layerstack.psd import PSD
from layerstack.psd.color_mode_data import ColorModeData
from layerstack.psd.header import FileHeader
from layerstack.psd.image_data import ImageData
from layerstack.psd.image_resources import ImageResources, ThumbnailResource
from layerstack.psd.layer_and_mask import (
    ChannelData,
    ChannelDataList,
    ChannelInfo,
    GlobalLayerMaskInfo,
    LayerAndMaskInformation,
    LayerFlags,
    LayerInfo,
    LayerRecord,
    MaskData,
    MaskFlags,
    MaskParameters,
)
from layerstack.psd.tagged_blocks import TaggedBlocks

logger = logging.getLogger(__name__)

#: Largest width or height of a version 1 PSD file.
MAX_DIMENSION = 30000

#: Layer count above which other applications may refuse the file.
MAX_LAYER_COUNT = 8000

#: Long side of the embedded thumbnail.
THUMBNAIL_SIZE = 160

#: Ratio between the raw and the stored size used by :py:func:`estimate_size`.
COMPRESSION_RATIO = 0.3

GROUP_END_NAME = "</Layer group>"

_LAYER_CHANNELS = (
    ChannelID.TRANSPARENCY_MASK,
    ChannelID.CHANNEL_0,
    ChannelID.CHANNEL_1,
    ChannelID.CHANNEL_2,
)


def encode(
    document: Document,
    preview: Optional[RasterSurface] = None,
    compression: Compression = Compression.RLE,
    encoding: str = "macroman",
    include_hidden: bool = True,
    cancel_token: Any = None,
) -> bytes:
    """
    Encode a document as PSD bytes.

    :param document: :py:class:`~layerstack.api.document.Document`
    :param preview: composite image to store, rendered with
        :py:func:`~layerstack.composite.composite` when omitted.
    :param compression: compression of channel and image data, see
        :py:class:`~layerstack.constants.Compression`.
    :param encoding: encoding of pascal strings, default macroman.
    :param include_hidden: write invisible layers too.
    :param cancel_token: optional
        :py:class:`~layerstack.worker.CancellationToken`, checked between
        layers.
    :return: `bytes`
    :raise DimensionOverflow: if the document is larger than 30000 pixels.
    :raise UnsupportedBlendMode: if a layer has an unknown blend mode.
    :raise EncodeError: if a layer id does not fit in 32 bits.
    :raise Cancelled: when the token was cancelled.
    """
    if document.width > MAX_DIMENSION or document.height > MAX_DIMENSION:
        raise DimensionOverflow(
            "Document size %dx%d exceeds %d pixels"
            % (document.width, document.height, MAX_DIMENSION)
        )
    compression = Compression(compression)

    header = FileHeader(
        version=1,
        channels=4,
        height=document.height,
        width=document.width,
        depth=8,
        color_mode=ColorMode.RGB,
    )
    records, channels = _build_record_tree(
        document, compression, include_hidden, cancel_token
    )
    if cancel_token is not None:
        cancel_token.check()

    preview = _get_preview(document, preview)
    image_resources = ImageResources.new()
    thumbnail = make_thumbnail(preview, THUMBNAIL_SIZE)
    if thumbnail is not None:
        image_resources.set_data(
            Resource.THUMBNAIL_RESOURCE, ThumbnailResource.frompil(thumbnail)
        )

    image_data = ImageData(compression=compression)
    data = preview.data
    image_data.set_data([data[:, :, i].tobytes() for i in range(4)], header)

    # A negative count marks the first alpha channel as merged transparency.
    layer_info = LayerInfo(
        layer_count=-len(records),
        layer_records=records,
        channel_image_data=channels,
    )
    psd = PSD(
        header=header,
        color_mode_data=ColorModeData(),
        image_resources=image_resources,
        layer_and_mask_information=LayerAndMaskInformation(
            layer_info=layer_info,
            global_layer_mask_info=GlobalLayerMaskInfo(),
            tagged_blocks=TaggedBlocks(),
        ),
        image_data=image_data,
    )
    with io.BytesIO() as f:
        psd.write(f, encoding=encoding)
        result = f.getvalue()
    logger.debug(
        "encoded %r, %d records, %d bytes" % (document, len(records), len(result))
    )
    return result


def _get_preview(
    document: Document, preview: Optional[RasterSurface]
) -> RasterSurface:
    if preview is not None and preview.is_valid():
        if preview.size != document.size:
            logger.warning(
                "Preview size %r does not match %r, resizing"
                % (preview.size, document.size)
            )
            preview = preview.resize(document.width, document.height)
        return preview
    return composite(document)


def _build_record_tree(
    layer_group: GroupMixin,
    compression: Compression,
    include_hidden: bool,
    cancel_token: Any = None,
) -> tuple[list, list]:
    """
    Flatten a layer tree into bottom-first records and channel data.
    """
    layer_records: list = []
    channel_image_data: list = []

    for layer in layer_group:
        if cancel_token is not None:
            cancel_token.check()
        if not include_hidden and not layer.visible:
            logger.debug("Skipping hidden %s" % layer)
            continue

        if isinstance(layer, Group):
            layer_records.append(_make_group_end())
            channel_image_data.append(_empty_channels())

            tmp_layer_records, tmp_channel_image_data = _build_record_tree(
                layer, compression, include_hidden, cancel_token
            )
            layer_records.extend(tmp_layer_records)
            channel_image_data.extend(tmp_channel_image_data)

        record, channels = _make_record(layer, compression)
        layer_records.append(record)
        channel_image_data.append(channels)

    return layer_records, channel_image_data


def _make_group_end() -> LayerRecord:
    record = LayerRecord(
        top=0,
        left=0,
        bottom=0,
        right=0,
        name=GROUP_END_NAME,
        channel_info=[ChannelInfo(id=i, length=2) for i in _LAYER_CHANNELS],
    )
    record.tagged_blocks.set_data(
        Tag.SECTION_DIVIDER_SETTING, SectionDivider.BOUNDING_SECTION_DIVIDER
    )
    record.tagged_blocks.set_data(Tag.UNICODE_LAYER_NAME, GROUP_END_NAME)
    return record


def _empty_channels() -> ChannelDataList:
    channels = ChannelDataList()
    for _ in _LAYER_CHANNELS:
        channels.append(ChannelData(compression=Compression.RAW, data=b""))
    return channels


def _make_record(
    layer: Layer, compression: Compression
) -> tuple[LayerRecord, ChannelDataList]:
    """Build the layer record and channel data of a single layer."""
    if not 1 <= layer.layer_id <= MAX_LAYER_ID:
        raise EncodeError(
            "Layer id %d of %r does not fit in a PSD record"
            % (layer.layer_id, layer.name)
        )
    if isinstance(layer, (RasterLayer, AdjustmentLayer)):
        left, top, right, bottom = layer.bbox
    else:
        left, top, right, bottom = 0, 0, 0, 0

    record = LayerRecord(
        top=top,
        left=left,
        bottom=bottom,
        right=right,
        blend_mode=to_tag(layer.blend_mode),
        opacity=int(round(255 * layer.opacity)),
        clipping=Clipping.NON_BASE if layer.clipped else Clipping.BASE,
        flags=LayerFlags(visible=layer.visible),
        name=layer.name,
    )
    blocks = record.tagged_blocks
    blocks.set_data(Tag.UNICODE_LAYER_NAME, layer.name)
    blocks.set_data(Tag.LAYER_ID, layer.layer_id)
    blocks.set_data(
        Tag.PROTECTED_SETTING, int(ProtectedFlags.COMPLETE) if layer.locked else 0
    )

    if isinstance(layer, Group):
        kind = (
            SectionDivider.OPEN_FOLDER
            if layer.expanded
            else SectionDivider.CLOSED_FOLDER
        )
        blocks.set_data(
            Tag.SECTION_DIVIDER_SETTING, kind, blend_mode=record.blend_mode
        )
    elif isinstance(layer, AdjustmentLayer):
        item = encode_adjustment(layer.adjustment)
        if item is not None:
            blocks.set_data(*item)

    channels = ChannelDataList()
    if isinstance(layer, RasterLayer) and layer.has_pixels():
        data = layer.surface.data
        planes = (data[:, :, 3], data[:, :, 0], data[:, :, 1], data[:, :, 2])
        for channel_id, plane in zip(_LAYER_CHANNELS, planes):
            _append_channel(record, channels, channel_id, plane, compression)
    else:
        for channel_id in _LAYER_CHANNELS:
            channel = ChannelData(compression=Compression.RAW, data=b"")
            record.channel_info.append(ChannelInfo(id=channel_id, length=2))
            channels.append(channel)

    if layer.mask is not None:
        record.mask_data = _make_mask_data(layer.mask)
        _append_channel(
            record, channels, ChannelID.USER_LAYER_MASK, layer.mask.data, compression
        )
    return record, channels


def _append_channel(
    record: LayerRecord,
    channels: ChannelDataList,
    channel_id: ChannelID,
    plane: np.ndarray,
    compression: Compression,
) -> None:
    height, width = plane.shape
    channel = ChannelData(compression=compression)
    channel.set_data(np.ascontiguousarray(plane).tobytes(), width, height, 8)
    record.channel_info.append(ChannelInfo(id=channel_id, length=channel._length))
    channels.append(channel)


def _make_mask_data(mask: Mask) -> MaskData:
    parameters = None
    if mask.density < 1.0:
        parameters = MaskParameters(user_mask_density=int(round(255 * mask.density)))
    return MaskData(
        top=mask.top,
        left=mask.left,
        bottom=mask.bottom,
        right=mask.right,
        background_color=mask.background_color,
        flags=MaskFlags(
            pos_relative_to_layer=not mask.linked,
            mask_disabled=not mask.enabled,
            parameters_applied=parameters is not None,
        ),
        parameters=parameters,
    )


def _format_bytes(size: int) -> str:
    if size < 1024:
        return "%d B" % size
    if size < 1024 * 1024:
        return "%.1f KB" % (size / 1024.0)
    return "%.2f MB" % (size / (1024.0 * 1024.0))


def estimate_size(document: Document) -> dict:
    """
    Rough size of the encoded document.

    Counts four bytes per pixel of raster layers and masks, then applies a
    typical compression ratio.

    :return: `dict` with ``raw_bytes``, ``estimated_bytes`` and a human
        readable ``formatted`` string.
    """
    total_pixels = 0
    for layer in document.descendants():
        if isinstance(layer, RasterLayer) and layer.has_pixels():
            total_pixels += layer.width * layer.height
        if layer.mask is not None:
            total_pixels += layer.mask.width * layer.mask.height

    raw_size = total_pixels * 4
    estimated_size = int(round(raw_size * COMPRESSION_RATIO))
    return {
        "raw_bytes": raw_size,
        "estimated_bytes": estimated_size,
        "formatted": _format_bytes(estimated_size),
    }


def validate_for_export(document: Document) -> dict:
    """
    Check a document for features that may not survive the export.

    The export is attempted regardless, so ``can_export`` is always True.

    :return: `dict` with ``can_export`` and a list of ``warnings``.
    """
    warnings = []
    if document.width > MAX_DIMENSION or document.height > MAX_DIMENSION:
        warnings.append("Document dimensions exceed PSD maximum (30,000 pixels)")

    layers = list(document.descendants())
    if len(layers) > MAX_LAYER_COUNT:
        warnings.append("Layer count may exceed PSD limits")

    for layer in layers:
        if (
            isinstance(layer, AdjustmentLayer)
            and not layer.adjustment.is_serializable
        ):
            warnings.append(
                "Adjustment type '%s' may not export correctly"
                % layer.adjustment.kind.value
            )
    return {"can_export": True, "warnings": warnings}

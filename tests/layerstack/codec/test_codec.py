import logging

import pytest

from layerstack import Document, Group, Mask, RasterLayer
from layerstack.api.adjustments import Adjustment
from layerstack.api.layers import MAX_LAYER_ID, AdjustmentLayer
from layerstack.api.surface import RasterSurface
from layerstack.codec import decode, encode, estimate_size, validate_for_export
from layerstack.codec.encoder import _format_bytes
from layerstack.constants import BlendMode, ColorMode, Compression, Tag
from layerstack.errors import (
    BadSignature,
    Cancelled,
    DecodeError,
    DimensionOverflow,
    EncodeError,
    TruncatedData,
    UnsupportedColorMode,
    UnsupportedDepth,
)
from layerstack.psd import PSD
from layerstack.psd.header import FileHeader
from layerstack.psd.tagged_blocks import TaggedBlock
from layerstack.worker import CancellationToken

logger = logging.getLogger(__name__)


@pytest.fixture
def rich_document(document: Document) -> Document:
    """The shared fixture with most layer attributes changed."""
    background, red, group = document
    background.locked = True
    red.opacity = 0.5
    red.mask.density = 0.5
    red.mask.linked = False
    group.expanded = False
    group[0].blend_mode = BlendMode.SCREEN
    clip = RasterLayer.new(1, 1, color=(0, 255, 0, 255), name="Clip", clipped=True)
    document.add_layer(clip, index=2)
    document.add_layer(AdjustmentLayer(Adjustment("posterize", {"levels": 5})))
    return document


def _names(container) -> list:
    return [layer.name for layer in container]


def test_round_trip_structure(rich_document: Document) -> None:
    decoded = decode(encode(rich_document))
    assert decoded.size == rich_document.size
    assert _names(decoded) == ["Background", "Red", "Clip", "Group", "Adjustment"]
    assert _names(decoded[3]) == ["Blue"]
    assert isinstance(decoded[3], Group)
    assert isinstance(decoded[4], AdjustmentLayer)
    assert decoded[4].adjustment.params["levels"] == 5

    for original, layer in zip(rich_document.descendants(), decoded.descendants()):
        assert layer.layer_id == original.layer_id
        assert layer.name == original.name
        assert layer.kind == original.kind
        assert layer.visible == original.visible
        assert layer.blend_mode == original.blend_mode
        assert layer.clipped == original.clipped
        assert layer.locked == original.locked
        assert abs(layer.opacity - original.opacity) <= 1 / 255.0
        if isinstance(original, RasterLayer):
            assert layer.bbox == original.bbox
            assert layer.surface == original.surface


def test_round_trip_attributes(rich_document: Document) -> None:
    decoded = decode(encode(rich_document))
    background, red, clip, group, _ = decoded
    assert background.locked
    assert red.opacity == 128 / 255.0
    assert clip.clipped
    assert not group.expanded
    assert group[0].blend_mode == BlendMode.SCREEN

    mask = red.mask
    assert mask.bbox == (1, 1, 3, 3)
    assert mask.get_value_at(1, 1) == 0
    assert mask.get_value_at(2, 2) == 255
    assert mask.density == 128 / 255.0
    assert not mask.linked
    assert mask.enabled


def test_round_trip_group_mask(document: Document) -> None:
    group = document[2]
    group.mask = Mask.new(0, 0, 2, 2, fill=0, background_color=255)
    group.mask.enabled = False
    decoded = decode(encode(document))
    mask = decoded[2].mask
    assert mask.bbox == (0, 0, 2, 2)
    assert mask.background_color == 255
    assert not mask.enabled


def test_preview_and_thumbnail(document: Document) -> None:
    decoded = decode(encode(document))
    assert decoded.preview == document.composite()
    assert decoded.thumbnail is not None
    assert decoded.thumbnail.size == (4, 4)


def test_explicit_preview(document: Document) -> None:
    preview = RasterSurface.new(8, 8, color=(1, 2, 3, 255))
    decoded = decode(encode(document, preview=preview))
    assert decoded.preview == RasterSurface.new(4, 4, color=(1, 2, 3, 255))


@pytest.mark.parametrize("compression", list(Compression))
def test_compression(document: Document, compression: Compression) -> None:
    decoded = decode(encode(document, compression=compression))
    assert decoded[0].surface == document[0].surface
    assert decoded[1].mask.get_value_at(1, 1) == 0
    assert decoded.preview == document.composite()


def test_include_hidden(document: Document) -> None:
    document[1].visible = False
    document[2][0].visible = False
    assert _names(decode(encode(document))) == ["Background", "Red", "Group"]

    decoded = decode(encode(document, include_hidden=False))
    assert _names(decoded) == ["Background", "Group"]
    assert len(decoded[1]) == 0


def test_encoding(document: Document) -> None:
    document[0].name = "Fond été ☃"
    decoded = decode(encode(document, encoding="utf-8"), encoding="utf-8")
    assert decoded[0].name == "Fond été ☃"


def test_empty_document() -> None:
    decoded = decode(encode(Document(3, 2)))
    assert decoded.size == (3, 2)
    assert len(decoded) == 0
    assert not decoded.preview.data.any()


def test_unwritten_adjustment(document: Document) -> None:
    document.add_layer(AdjustmentLayer("vibrance"))
    decoded = decode(encode(document))
    assert decoded[-1].name == "Adjustment"
    assert not isinstance(decoded[-1], AdjustmentLayer)


def _reencode(document: Document, callback) -> bytes:
    psd = PSD.frombytes(encode(document))
    layer_info = psd.layer_and_mask_information.layer_info
    callback(layer_info)
    layer_info.layer_count = -len(layer_info.layer_records)
    return psd.tobytes()


def test_duplicate_layer_ids(document: Document) -> None:
    def duplicate(layer_info):
        records = layer_info.layer_records
        layer_id = records[0].tagged_blocks.get_data(Tag.LAYER_ID)
        records[1].tagged_blocks.set_data(Tag.LAYER_ID, layer_id)

    decoded = decode(_reencode(document, duplicate))
    ids = [layer.layer_id for layer in decoded.descendants()]
    assert ids[0] == document[0].layer_id
    assert len(ids) == len(set(ids))


def test_unclosed_group(document: Document, caplog) -> None:
    def drop_group(layer_info):
        layer_info.layer_records.pop()
        layer_info.channel_image_data.pop()

    with caplog.at_level(logging.WARNING):
        decoded = decode(_reencode(document, drop_group))
    assert "not closed" in caplog.text
    assert _names(decoded) == ["Background", "Red", "Group"]
    assert _names(decoded[2]) == ["Blue"]


def test_stray_group_end(document: Document) -> None:
    def drop_start(layer_info):
        del layer_info.layer_records[2]
        del layer_info.channel_image_data[2]

    decoded = decode(_reencode(document, drop_start))
    assert _names(decoded) == ["Background", "Red", "Blue"]


def test_grayscale(document: Document) -> None:
    psd = PSD.frombytes(encode(document))
    psd.header.color_mode = ColorMode.GRAYSCALE
    decoded = decode(psd.tobytes())
    # The first channel is used for the three colors.
    assert tuple(decoded[1].surface.data[0, 0]) == (255, 255, 255, 255)


def test_bad_signature() -> None:
    with pytest.raises(BadSignature):
        decode(b"GIF89a" + b"\x00" * 40)


@pytest.mark.parametrize("size", [0, 10, 60, 200])
def test_truncated(document: Document, size: int) -> None:
    with pytest.raises(DecodeError):
        decode(encode(document)[:size])


def test_truncated_header(document: Document) -> None:
    with pytest.raises(TruncatedData):
        decode(encode(document)[:20])


def test_unsupported_depth() -> None:
    psd = PSD(header=FileHeader(channels=3, width=2, height=2, depth=16))
    with pytest.raises(UnsupportedDepth):
        decode(psd.tobytes())


def test_unsupported_color_mode() -> None:
    psd = PSD(header=FileHeader(width=2, height=2, color_mode=ColorMode.CMYK))
    with pytest.raises(UnsupportedColorMode):
        decode(psd.tobytes())


def test_dimension_overflow() -> None:
    with pytest.raises(DimensionOverflow):
        encode(Document(30001, 1))


def test_cancelled(document: Document) -> None:
    data = encode(document)
    token = CancellationToken()
    token.cancel()
    with pytest.raises(Cancelled):
        encode(document, cancel_token=token)
    with pytest.raises(Cancelled):
        decode(data, cancel_token=token)


def test_estimate_size(document: Document) -> None:
    estimate = estimate_size(document)
    # Background 16, red 4 and its mask 4, blue 16 pixels.
    assert estimate["raw_bytes"] == 40 * 4
    assert estimate["estimated_bytes"] == 48
    assert estimate["formatted"] == "48 B"


@pytest.mark.parametrize(
    "size, expected",
    [(0, "0 B"), (1023, "1023 B"), (2048, "2.0 KB"), (3 * 1024 * 1024, "3.00 MB")],
)
def test_format_bytes(size: int, expected: str) -> None:
    assert _format_bytes(size) == expected


def test_validate_for_export(document: Document) -> None:
    assert validate_for_export(document) == {"can_export": True, "warnings": []}

    document.add_layer(AdjustmentLayer("vibrance"))
    result = validate_for_export(document)
    assert result["can_export"]
    assert result["warnings"] == [
        "Adjustment type 'vibrance' may not export correctly"
    ]

    result = validate_for_export(Document(30001, 10))
    assert result["can_export"]
    assert len(result["warnings"]) == 1


def test_decoded_mask_is_writable(document: Document) -> None:
    decoded = decode(encode(document))
    mask = decoded[1].mask
    assert mask.data.flags.writeable
    mask.set_value_at(1, 1, 255)
    assert mask.get_value_at(1, 1) == 255
    mask.invert()
    assert mask.get_value_at(1, 1) == 0


@pytest.mark.parametrize(
    "tag",
    [
        Tag.SECTION_DIVIDER_SETTING,
        Tag.LAYER_ID,
        Tag.UNICODE_LAYER_NAME,
        Tag.PROTECTED_SETTING,
    ],
)
def test_unreadable_blocks(document: Document, tag: Tag, caplog) -> None:
    def corrupt(layer_info):
        for record in layer_info.layer_records:
            blocks = record.tagged_blocks
            blocks[tag] = TaggedBlock(key=tag, data=b"\x00\x01")

    with caplog.at_level(logging.WARNING):
        decoded = decode(_reencode(document, corrupt))
    assert "Ignoring unreadable" in caplog.text
    ids = [layer.layer_id for layer in decoded.descendants()]
    assert len(ids) == len(set(ids))
    if tag == Tag.SECTION_DIVIDER_SETTING:
        assert _names(decoded) == [
            "Background",
            "Red",
            "</Layer group>",
            "Blue",
            "Group",
        ]
    else:
        assert _names(decoded) == ["Background", "Red", "Group"]


def test_layer_id_out_of_range(document: Document) -> None:
    def large_id(layer_info):
        layer_info.layer_records[0].tagged_blocks.set_data(Tag.LAYER_ID, 2**32 - 1)

    decoded = decode(_reencode(document, large_id))
    assert 1 <= decoded[0].layer_id <= MAX_LAYER_ID
    assert RasterLayer().layer_id <= MAX_LAYER_ID

    document.add_layer(RasterLayer(layer_id=2**32))
    assert RasterLayer().layer_id <= MAX_LAYER_ID
    with pytest.raises(EncodeError):
        encode(document)

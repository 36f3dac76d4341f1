import logging

import pytest

from layerstack.constants import ChannelID, Clipping, Compression, Tag
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

from ..utils import check_read_write, check_write_read

logger = logging.getLogger(__name__)


def _make_record(name: str = "Layer 1", mask: bool = False) -> tuple:
    record = LayerRecord(top=1, left=2, bottom=3, right=5, name=name)
    record.tagged_blocks.set_data(Tag.UNICODE_LAYER_NAME, name)
    record.tagged_blocks.set_data(Tag.LAYER_ID, 3)
    channels = ChannelDataList()
    for channel_id in (-1, 0, 1, 2):
        channel = ChannelData(compression=Compression.RLE)
        channel.set_data(bytes(bytearray(range(6))), 3, 2, 8)
        record.channel_info.append(ChannelInfo(channel_id, channel._length))
        channels.append(channel)
    if mask:
        record.mask_data = MaskData(top=0, left=0, bottom=2, right=2)
        channel = ChannelData(compression=Compression.RAW, data=b"\xff\x00\x00\xff")
        record.channel_info.append(ChannelInfo(-2, channel._length))
        channels.append(channel)
    return record, channels


@pytest.mark.parametrize(
    "args",
    [
        (False, True, True, False, 0),
        (True, False, True, True, 0),
        (False, True, True, False, 32),
    ],
)
def test_layer_flags_wr(args) -> None:
    check_write_read(LayerFlags(*args))


@pytest.mark.parametrize(
    "fixture",
    [b"\x00", b"\x02", b"\x08", b"\x0a", b"\x19"],
)
def test_layer_flags_rw(fixture: bytes) -> None:
    check_read_write(LayerFlags, fixture)


def test_layer_flags_visible() -> None:
    assert LayerFlags.frombytes(b"\x08").visible
    assert not LayerFlags.frombytes(b"\x0a").visible


@pytest.mark.parametrize("version", [1, 2])
def test_channel_info(version: int) -> None:
    check_write_read(ChannelInfo(ChannelID.USER_LAYER_MASK, 10), version=version)


@pytest.mark.parametrize(
    "kwargs",
    [
        dict(),
        dict(top=-1, left=-2, bottom=10, right=12, background_color=255),
        dict(
            flags=MaskFlags(parameters_applied=True),
            parameters=MaskParameters(user_mask_density=128),
        ),
        dict(
            flags=MaskFlags(pos_relative_to_layer=True, mask_disabled=True),
            real_flags=MaskFlags(),
            real_background_color=0,
            real_top=0,
            real_left=0,
            real_bottom=4,
            real_right=4,
        ),
    ],
)
def test_mask_data(kwargs: dict) -> None:
    check_write_read(MaskData(**kwargs))


def test_mask_data_empty() -> None:
    assert MaskData.frombytes(b"\x00\x00\x00\x00") is None


@pytest.mark.parametrize(
    "args",
    [(None, None, None, None), (255, 1.0, None, None), (128, None, 64, 2.5)],
)
def test_mask_parameters(args) -> None:
    check_write_read(MaskParameters(*args))


def test_mask_data_size() -> None:
    mask_data = MaskData(top=1, left=2, bottom=4, right=10)
    assert (mask_data.width, mask_data.height) == (8, 3)


@pytest.mark.parametrize(
    "compression",
    list(Compression),
)
def test_channel_data(compression: Compression) -> None:
    raw = bytes(bytearray(range(12)))
    channel = ChannelData(compression=compression)
    channel.set_data(raw, 4, 3, 8)
    assert channel.get_data(4, 3, 8) == raw
    check_write_read(channel, length=len(channel.data))


@pytest.mark.parametrize("mask", [False, True])
def test_layer_record(mask: bool) -> None:
    record, _ = _make_record(mask=mask)
    check_write_read(record)
    assert record.width == 3
    assert record.height == 2
    if mask:
        assert record.channel_sizes[-1] == (2, 2)
    assert record.channel_sizes[0] == (3, 2)


def test_layer_record_unicode_name() -> None:
    record = LayerRecord(name="レイヤー")
    record.tagged_blocks.set_data(Tag.UNICODE_LAYER_NAME, "レイヤー")
    data = record.tobytes(encoding="utf-8")
    new_record = LayerRecord.frombytes(data, encoding="utf-8")
    assert new_record.tagged_blocks.get_data(Tag.UNICODE_LAYER_NAME) == record.name


def test_layer_record_clipping() -> None:
    record = LayerRecord(clipping=Clipping.NON_BASE)
    assert LayerRecord.frombytes(record.tobytes()).clipping == Clipping.NON_BASE


@pytest.mark.parametrize("version", [1, 2])
def test_layer_info(version: int) -> None:
    records, channels = zip(_make_record("Bottom"), _make_record("Top", mask=True))
    layer_info = LayerInfo(
        layer_count=-2, layer_records=list(records), channel_image_data=list(channels)
    )
    check_write_read(layer_info, version=version)


def test_layer_info_empty() -> None:
    assert LayerInfo().tobytes() == b"\x00\x00\x00\x00"
    check_write_read(LayerInfo())


def test_global_layer_mask_info() -> None:
    check_write_read(GlobalLayerMaskInfo())
    check_write_read(GlobalLayerMaskInfo([0, 0, 0, 0, 0], 100, 128))
    assert GlobalLayerMaskInfo().tobytes() == b"\x00\x00\x00\x00"


def test_layer_and_mask_information() -> None:
    record, channels = _make_record()
    layer_info = LayerInfo(
        layer_count=1, layer_records=[record], channel_image_data=[channels]
    )
    element = LayerAndMaskInformation(layer_info, GlobalLayerMaskInfo(), TaggedBlocks())
    new_element = LayerAndMaskInformation.frombytes(element.tobytes())
    assert new_element.layer_info == layer_info


def test_layer_and_mask_information_empty() -> None:
    element = LayerAndMaskInformation.frombytes(b"\x00\x00\x00\x00")
    assert element.layer_info is None

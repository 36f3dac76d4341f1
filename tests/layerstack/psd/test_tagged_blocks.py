import logging

import pytest

from layerstack.constants import BlendKey, SectionDivider, Tag
from layerstack.psd.tagged_blocks import (
    ProtectedSetting,
    SectionDividerSetting,
    TaggedBlock,
    TaggedBlocks,
)

from ..utils import check_read_write, check_write_read

logger = logging.getLogger(__name__)


def test_tagged_blocks_set_get() -> None:
    blocks = TaggedBlocks()
    blocks.set_data(Tag.UNICODE_LAYER_NAME, "Layer 1")
    blocks.set_data(Tag.LAYER_ID, 42)
    assert Tag.LAYER_ID in blocks
    assert b"lyid" in blocks
    assert blocks.get_data(Tag.UNICODE_LAYER_NAME) == "Layer 1"
    assert blocks.get_data(Tag.LAYER_ID) == 42
    assert blocks.get_data(Tag.PROTECTED_SETTING, 0) == 0


def test_tagged_blocks_set_unregistered() -> None:
    blocks = TaggedBlocks()
    with pytest.raises(KeyError):
        blocks.set_data(Tag.BLACK_AND_WHITE, 1)


@pytest.mark.parametrize("padding", [1, 4])
def test_tagged_blocks_write_read(padding: int) -> None:
    blocks = TaggedBlocks()
    blocks.set_data(Tag.UNICODE_LAYER_NAME, "Ebene")
    blocks.set_data(Tag.LAYER_ID, 7)
    blocks.set_data(Tag.PROTECTED_SETTING, 0x80000000)
    blocks.set_data(
        Tag.SECTION_DIVIDER_SETTING,
        SectionDivider.OPEN_FOLDER,
        blend_mode=BlendKey.MULTIPLY.value,
    )
    check_write_read(blocks, padding=padding)

    data = blocks.tobytes(padding=padding)
    new_blocks = TaggedBlocks.frombytes(data, padding=padding)
    # Keys are looked up by their byte value after a read.
    assert Tag.LAYER_ID in new_blocks
    assert new_blocks.get_data(Tag.LAYER_ID) == 7
    assert new_blocks.get_data(Tag.UNICODE_LAYER_NAME) == "Ebene"
    divider = new_blocks.get_data(Tag.SECTION_DIVIDER_SETTING)
    assert divider.kind == SectionDivider.OPEN_FOLDER
    assert divider.blend_mode == BlendKey.MULTIPLY.value


def test_tagged_block_unknown_key() -> None:
    block = TaggedBlock(key=b"abcd", data=b"\x00\x01\x02\x03")
    data = block.tobytes()
    assert data == b"8BIMabcd\x00\x00\x00\x04\x00\x01\x02\x03"
    check_read_write(TaggedBlock, data)


def test_tagged_block_invalid_signature() -> None:
    assert TaggedBlock.frombytes(b"XXXXlyid\x00\x00\x00\x04\x00\x00\x00\x01") is None


@pytest.mark.parametrize(
    "kind, blend_mode, sub_type",
    [
        (SectionDivider.OTHER, None, None),
        (SectionDivider.OPEN_FOLDER, b"norm", None),
        (SectionDivider.CLOSED_FOLDER, b"pass", 0),
        (SectionDivider.BOUNDING_SECTION_DIVIDER, None, None),
    ],
)
def test_section_divider_setting(kind, blend_mode, sub_type) -> None:
    check_write_read(
        SectionDividerSetting(kind, blend_mode=blend_mode, sub_type=sub_type)
    )


def test_section_divider_pass_through() -> None:
    setting = SectionDividerSetting(SectionDivider.OPEN_FOLDER, blend_mode=b"pass")
    assert setting.is_pass_through
    setting = SectionDividerSetting(SectionDivider.OPEN_FOLDER, blend_mode=b"norm")
    assert not setting.is_pass_through


def test_protected_setting() -> None:
    setting = ProtectedSetting(0x80000000)
    assert setting.complete
    assert setting.locked
    assert not setting.transparency
    assert not ProtectedSetting(0).locked
    check_write_read(setting)

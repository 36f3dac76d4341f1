"""
Color mode data structure.
"""

import logging
from typing import Any, BinaryIO, TypeVar

from attrs import define

from layerstack.psd.base import ValueElement
from layerstack.psd.bin_utils import read_length_block, write_bytes, write_length_block

logger = logging.getLogger(__name__)

T = TypeVar("T", bound="ColorModeData")


@define(repr=False, eq=False, order=False)
class ColorModeData(ValueElement):
    """
    Color mode data section of the PSD file.

    Only indexed and duotone images carry data here; RGB and grayscale
    documents keep it empty. The content is preserved as raw bytes.
    """

    value: bytes = b""

    @classmethod
    def read(cls: type[T], fp: BinaryIO, **kwargs: Any) -> T:
        value = read_length_block(fp)
        logger.debug("reading color mode data, len=%d" % (len(value)))
        return cls(value)  # type: ignore[call-arg]

    def write(self, fp: BinaryIO, **kwargs: Any) -> int:
        def writer(f: BinaryIO) -> int:
            return write_bytes(f, self.value)

        logger.debug("writing color mode data, len=%d" % (len(self.value)))
        return write_length_block(fp, writer)

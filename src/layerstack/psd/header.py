"""
File header structure.
"""

import logging
from typing import Any, BinaryIO, TypeVar

from attrs import astuple, define, field

from layerstack.constants import ColorMode
from layerstack.errors import BadSignature, UnsupportedColorMode
from layerstack.psd.base import BaseElement
from layerstack.psd.bin_utils import read_fmt, write_fmt
from layerstack.validators import in_, range_

logger = logging.getLogger(__name__)

T = TypeVar("T", bound="FileHeader")


@define(repr=True)
class FileHeader(BaseElement):
    """
    Header section of the PSD file.

    Example::

        from layerstack.psd.header import FileHeader
        from layerstack.constants import ColorMode

        header = FileHeader(channels=4, height=300, width=400, depth=8,
                            color_mode=ColorMode.RGB)

    .. py:attribute:: signature

        Signature: always equal to ``b'8BPS'``.

    .. py:attribute:: version

        Version number. PSD is 1, and PSB is 2.

    .. py:attribute:: channels

        Number of channels in the composite image data.

    .. py:attribute:: depth

        Bits per channel.
    """

    _FORMAT = "4sH6xHIIHH"

    signature: bytes = field(default=b"8BPS", repr=False)
    version: int = field(default=1, validator=in_((1, 2)))
    channels: int = field(default=4, validator=range_(1, 56))
    height: int = field(default=64, validator=range_(1, 300000))
    width: int = field(default=64, validator=range_(1, 300000))
    depth: int = field(default=8, validator=in_((1, 8, 16, 32)))
    color_mode: ColorMode = field(default=ColorMode.RGB, converter=ColorMode)

    @signature.validator
    def _validate_signature(self, attribute: Any, value: bytes) -> None:
        if value != b"8BPS":
            raise BadSignature("This is not a PSD or PSB file: %r" % value)

    @classmethod
    def read(cls: type[T], fp: BinaryIO, **kwargs: Any) -> T:
        values = read_fmt(cls._FORMAT, fp)
        if values[0] != b"8BPS":
            raise BadSignature("This is not a PSD or PSB file: %r" % values[0])
        if values[-1] not in set(item.value for item in ColorMode):
            raise UnsupportedColorMode("Unknown color mode: %d" % values[-1])
        logger.debug("reading header, %r" % (values,))
        return cls(*values)

    def write(self, fp: BinaryIO, **kwargs: Any) -> int:
        return write_fmt(fp, self._FORMAT, *astuple(self))

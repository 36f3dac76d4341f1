"""
Image data section structure.

:py:class:`ImageData` is the last section of the PSD/PSB file, where the
composited preview of the whole document is stored as planar channels.
"""

import io
import logging
from typing import Any, BinaryIO, Sequence, TypeVar

from attrs import define, field

from layerstack.compression import compress, decompress
from layerstack.constants import Compression
from layerstack.errors import UnsupportedCompression
from layerstack.psd.base import BaseElement
from layerstack.psd.bin_utils import read_fmt, write_bytes, write_fmt
from layerstack.psd.header import FileHeader
from layerstack.validators import in_

logger = logging.getLogger(__name__)

T = TypeVar("T", bound="ImageData")


def read_compression(fp: BinaryIO) -> Compression:
    value = read_fmt("H", fp)[0]
    try:
        return Compression(value)
    except ValueError:
        raise UnsupportedCompression("Unknown compression code %d" % value)


@define(repr=False)
class ImageData(BaseElement):
    """
    Merged channel image data.

    .. py:attribute:: compression

        See :py:class:`~layerstack.constants.Compression`.

    .. py:attribute:: data

        `bytes` as compressed in the `compression` flag.
    """

    compression: Compression = field(
        default=Compression.RAW, converter=Compression, validator=in_(Compression)
    )
    data: bytes = b""

    @classmethod
    def read(cls: type[T], fp: BinaryIO, **kwargs: Any) -> T:
        start_pos = fp.tell()
        compression = read_compression(fp)
        data = fp.read()
        logger.debug("  read image data, len=%d" % (fp.tell() - start_pos))
        return cls(compression, data)

    def write(self, fp: BinaryIO, **kwargs: Any) -> int:
        written = write_fmt(fp, "H", self.compression.value)
        written += write_bytes(fp, self.data)
        logger.debug("  wrote image data, len=%d" % written)
        return written

    def get_data(self, header: FileHeader) -> list[bytes]:
        """
        Get decompressed data.

        :param header: See :py:class:`~layerstack.psd.header.FileHeader`.
        :return: `list` of bytes corresponding each channel.
        """
        data = decompress(
            self.data,
            self.compression,
            header.width,
            header.height * header.channels,
            header.depth,
            header.version,
        )
        plane_size = len(data) // header.channels
        with io.BytesIO(data) as f:
            return [f.read(plane_size) for _ in range(header.channels)]

    def set_data(self, data: Sequence[bytes], header: FileHeader) -> int:
        """
        Set raw planes and compress them with the current compression.

        :param data: list of raw data bytes corresponding channels.
        :param header: See :py:class:`~layerstack.psd.header.FileHeader`.
        :return: length of compressed data.
        """
        self.data = compress(
            b"".join(data),
            self.compression,
            header.width,
            header.height * header.channels,
            header.depth,
            header.version,
        )
        return len(self.data)

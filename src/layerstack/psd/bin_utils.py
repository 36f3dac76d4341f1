"""
Binary reading and writing helpers.

All multi-byte values in a PSD file are big-endian; every ``fmt`` argument
below is a :py:mod:`struct` format without the byte order prefix.
"""

import logging
import struct
from typing import Any, BinaryIO, Callable

from layerstack.errors import TruncatedData

logger = logging.getLogger(__name__)


def read_fmt(fmt: str, fp: BinaryIO) -> tuple:
    """
    Reads data from ``fp`` according to ``fmt``.

    :raise TruncatedData: when the stream ends before ``fmt`` is satisfied.
    """
    fmt = ">" + fmt
    fmt_size = struct.calcsize(fmt)
    data = fp.read(fmt_size)
    if len(data) != fmt_size:
        raise TruncatedData(
            "Unexpected end of data at %d: expected %d bytes, got %d"
            % (fp.tell(), fmt_size, len(data))
        )
    return struct.unpack(fmt, data)


def write_fmt(fp: BinaryIO, fmt: str, *args: Any) -> int:
    """
    Writes data to ``fp`` according to ``fmt``.
    """
    return fp.write(struct.pack(">" + fmt, *args))


def read_bytes(fp: BinaryIO, size: int) -> bytes:
    """Reads exactly ``size`` bytes."""
    data = fp.read(size)
    if len(data) != size:
        raise TruncatedData(
            "Unexpected end of data: expected %d bytes, got %d" % (size, len(data))
        )
    return data


def write_bytes(fp: BinaryIO, data: bytes) -> int:
    """
    Write bytes to the file object and returns bytes written.

    :return: written byte size
    """
    pos = fp.tell()
    fp.write(data)
    return fp.tell() - pos


def read_length_block(fp: BinaryIO, fmt: str = "I", padding: int = 1) -> bytes:
    """
    Read a block of data with a length marker at the beginning.

    :param fp: file-like
    :param fmt: format of the length marker
    :param padding: divisor of the block alignment
    :return: bytes object
    """
    length = read_fmt(fmt, fp)[0]
    data = read_bytes(fp, length)
    read_padding(fp, length, padding)
    return data


def write_length_block(
    fp: BinaryIO,
    writer: Callable[[BinaryIO], int],
    fmt: str = "I",
    padding: int = 1,
    **kwargs: Any,
) -> int:
    """
    Writes a block of data with a length marker at the beginning.

    Example::

        with io.BytesIO() as fp:
            write_length_block(fp, lambda f: f.write(b'\\x00\\x00'))

    :param fp: file-like
    :param writer: function object that takes file-like object as an argument
    :param fmt: format of the length marker
    :param padding: divisor for padding not included in length marker
    :return: written byte size
    """
    length_position = reserve_position(fp, fmt)
    written = writer(fp, **kwargs)
    written += write_position(fp, length_position, written, fmt)
    written += write_padding(fp, written, padding)
    return written


def reserve_position(fp: BinaryIO, fmt: str = "I") -> int:
    """
    Reserves the current position for write. Use with `write_position`.
    """
    position = fp.tell()
    fp.seek(struct.calcsize(">" + fmt), 1)
    return position


def write_position(fp: BinaryIO, position: int, value: int, fmt: str = "I") -> int:
    """
    Writes a value to the specified position and returns to the current one.
    """
    current_position = fp.tell()
    fp.seek(position)
    written = write_bytes(fp, struct.pack(">" + fmt, value))
    fp.seek(current_position)
    return written


def read_padding(fp: BinaryIO, size: int, divisor: int = 2) -> bytes:
    """
    Read padding bytes for the given byte size.
    """
    remainder = size % divisor
    if remainder:
        return fp.read(divisor - remainder)
    return b""


def write_padding(fp: BinaryIO, size: int, divisor: int = 2) -> int:
    """
    Writes padding bytes given the currently written size.

    :return: written byte size
    """
    remainder = size % divisor
    if remainder:
        return write_bytes(fp, b"\x00" * (divisor - remainder))
    return 0


def is_readable(fp: BinaryIO, size: int = 1) -> bool:
    """
    Check if the file-like object has at least ``size`` bytes left.
    """
    read_size = len(fp.read(size))
    fp.seek(-read_size, 1)
    return read_size == size


def pad(number: int, divisor: int) -> int:
    if number % divisor:
        number = (number // divisor + 1) * divisor
    return number


def read_pascal_string(
    fp: BinaryIO, encoding: str = "macroman", padding: int = 2
) -> str:
    length = read_fmt("B", fp)[0]
    if length == 0:
        fp.seek(padding - 1, 1)
        return ""

    data = read_bytes(fp, length)
    # -1 accounts for the length byte
    padded_length = pad(length + 1, padding) - 1
    fp.seek(padded_length - length, 1)
    return data.decode(encoding, "replace")


def write_pascal_string(
    fp: BinaryIO, value: str, encoding: str = "macroman", padding: int = 2
) -> int:
    data = value.encode(encoding, "replace")[:255]
    written = write_fmt(fp, "B", len(data))
    written += write_bytes(fp, data)
    written += write_padding(fp, written, padding)
    return written


def read_unicode_string(fp: BinaryIO, padding: int = 1) -> str:
    num_chars = read_fmt("I", fp)[0]
    data = read_bytes(fp, num_chars * 2)
    read_padding(fp, struct.calcsize("I") + num_chars * 2, padding)
    return data.decode("utf-16-be").rstrip("\0")


def write_unicode_string(fp: BinaryIO, value: str, padding: int = 1) -> int:
    data = value.encode("utf-16-be")
    written = write_fmt(fp, "I", len(data) // 2)
    written += write_bytes(fp, data)
    written += write_padding(fp, written, padding)
    return written


def trimmed_repr(data: Any, trim_length: int = 16) -> str:
    if isinstance(data, bytes):
        if len(data) > trim_length:
            return repr(
                data[:trim_length] + b" ... =" + str(len(data)).encode("ascii")
            )
    return repr(data)

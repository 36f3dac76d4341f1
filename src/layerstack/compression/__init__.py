"""
Image compression utilities for PSD channel data.

Supported compression methods:

- **RAW** (``Compression.RAW``): uncompressed rows
- **RLE** (``Compression.RLE``): PackBits rows preceded by per-row byte counts
- **ZIP** (``Compression.ZIP``): deflate without prediction
- **ZIP_WITH_PREDICTION** (``Compression.ZIP_WITH_PREDICTION``): deflate of
  horizontally delta-encoded rows

Example usage::

    from layerstack.compression import compress, decompress
    from layerstack.constants import Compression

    compressed = compress(raw, Compression.RLE, width=100, height=100, depth=8)
    raw = decompress(compressed, Compression.RLE, width=100, height=100, depth=8)
"""

import io
import logging
import zlib

import numpy as np

from layerstack.compression import rle
from layerstack.constants import Compression

logger = logging.getLogger(__name__)


def compress(
    data: bytes,
    compression: Compression,
    width: int,
    height: int,
    depth: int,
    version: int = 1,
) -> bytes:
    """Compress raw data.

    :param data: raw data bytes to write.
    :param compression: compression type, see :py:class:`.Compression`.
    :param width: width.
    :param height: height.
    :param depth: bit depth of the pixel.
    :param version: psd file version.
    :return: compressed data bytes.
    """
    if compression == Compression.RAW:
        return data
    elif compression == Compression.RLE:
        return encode_rle(data, width, height, depth, version)
    elif compression == Compression.ZIP:
        return zlib.compress(data)
    elif compression == Compression.ZIP_WITH_PREDICTION:
        return zlib.compress(encode_prediction(data, width, height, depth))
    raise ValueError("Unknown compression %r" % (compression,))


def decompress(
    data: bytes,
    compression: Compression,
    width: int,
    height: int,
    depth: int,
    version: int = 1,
) -> bytes:
    """Decompress raw data.

    :param data: compressed data bytes.
    :param compression: compression type,
            see :py:class:`~layerstack.constants.Compression`.
    :param width: width.
    :param height: height.
    :param depth: bit depth of the pixel.
    :param version: psd file version.
    :return: decompressed data bytes.
    :raise ValueError: when the data does not decode to the expected size.
    :raise zlib.error: when deflate data is corrupt.
    """
    length = width * height * max(1, depth // 8)

    if compression == Compression.RAW:
        result = data[:length]
    elif compression == Compression.RLE:
        result = decode_rle(data, width, height, depth, version)
    elif compression == Compression.ZIP:
        result = zlib.decompress(data)
    elif compression == Compression.ZIP_WITH_PREDICTION:
        result = decode_prediction(zlib.decompress(data), width, height, depth)
    else:
        raise ValueError("Unknown compression %r" % (compression,))

    if len(result) != length:
        raise ValueError("len=%d, expected=%d" % (len(result), length))
    return result


def encode_rle(data: bytes, width: int, height: int, depth: int, version: int) -> bytes:
    row_size = width * depth // 8
    with io.BytesIO(data) as fp:
        rows = [rle.encode(fp.read(row_size)) for _ in range(height)]
    byte_counts = np.array([len(row) for row in rows], dtype=_count_dtype(version))
    return byte_counts.tobytes() + b"".join(rows)


def decode_rle(data: bytes, width: int, height: int, depth: int, version: int) -> bytes:
    try:
        row_size = max(width * depth // 8, 1)
        with io.BytesIO(data) as fp:
            dtype = _count_dtype(version)
            byte_counts = np.frombuffer(fp.read(height * dtype.itemsize), dtype=dtype)
            if len(byte_counts) != height:
                raise ValueError("RLE byte counts are truncated")
            return b"".join(
                rle.decode(fp.read(int(count)), row_size) for count in byte_counts
            )
    except ValueError as e:
        logger.error("An error occurred during RLE decoding: %s" % e)
        logger.info(
            "Decompression of RLE data failed: width=%d height=%d depth=%d "
            "version=%d size=%d" % (width, height, depth, version, len(data))
        )
        raise


def _count_dtype(version: int) -> np.dtype:
    return np.dtype((">u2", ">u4")[version - 1])


def _dtype(depth: int) -> str:
    if depth == 8:
        return "u1"
    elif depth == 16:
        return ">u2"
    raise ValueError("Invalid pixel size %d" % (depth))


def encode_prediction(data: bytes, width: int, height: int, depth: int) -> bytes:
    """Horizontal delta encoding of each row, modulo the sample size."""
    dtype = _dtype(depth)
    arr = np.frombuffer(data, dtype=dtype).reshape(height, width)
    delta = arr.copy()
    delta[:, 1:] = arr[:, 1:] - arr[:, :-1]
    return delta.astype(dtype).tobytes()


def decode_prediction(data: bytes, width: int, height: int, depth: int) -> bytes:
    dtype = _dtype(depth)
    arr = np.frombuffer(data, dtype=dtype).reshape(height, width)
    native = np.dtype(dtype).newbyteorder("=")
    return np.cumsum(arr, axis=1, dtype=native).astype(dtype).tobytes()

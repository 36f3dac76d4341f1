"""
Raster surface module.

:py:class:`RasterSurface` is the RGBA8 pixel buffer owned by raster layers
and produced by the compositor. Pixels are stored as a
:py:class:`numpy.ndarray` of ``uint8`` with shape ``(height, width, 4)``,
row-major and non-premultiplied.

Example::

    from layerstack.api.surface import RasterSurface

    surface = RasterSurface.new(64, 32, color=(255, 0, 0, 255))
    image = surface.topil()
    alpha = surface.numpy("alpha")
"""

import logging
from typing import Any, Optional, Sequence

import numpy as np
from PIL import Image

logger = logging.getLogger(__name__)


class RasterSurface(object):
    """
    RGBA8 pixel buffer.

    :param data: `uint8` array of shape ``(height, width, 4)``.
    """

    def __init__(self, data: np.ndarray):
        self._data = data

    @classmethod
    def new(
        cls,
        width: int,
        height: int,
        color: Sequence[int] = (0, 0, 0, 0),
    ) -> "RasterSurface":
        """
        Create a new surface filled with `color`.

        :param width: width in pixels.
        :param height: height in pixels.
        :param color: RGBA tuple, fully transparent by default.
        :return: :py:class:`RasterSurface`
        """
        if width < 0 or height < 0:
            raise ValueError("Invalid surface size %dx%d" % (width, height))
        data = np.empty((height, width, 4), dtype=np.uint8)
        data[:, :] = np.asarray(color, dtype=np.uint8)
        return cls(data)

    @classmethod
    def frombytes(cls, data: bytes, width: int, height: int) -> "RasterSurface":
        """
        Create a surface from row-major RGBA8 bytes.

        :raise ValueError: when the length does not match the size.
        """
        expected = width * height * 4
        if len(data) != expected:
            raise ValueError(
                "Expected %d bytes for %dx%d RGBA, got %d"
                % (expected, width, height, len(data))
            )
        array = np.frombuffer(data, dtype=np.uint8).reshape((height, width, 4))
        return cls(array.copy())

    def tobytes(self) -> bytes:
        """Row-major RGBA8 bytes."""
        return np.ascontiguousarray(self._data).tobytes()

    @classmethod
    def frompil(cls, image: Image.Image) -> "RasterSurface":
        """
        Create a surface from a :py:class:`PIL.Image.Image` of any mode.
        """
        if image.mode != "RGBA":
            image = image.convert("RGBA")
        return cls(np.array(image, dtype=np.uint8))

    def topil(self) -> Optional[Image.Image]:
        """
        Get PIL Image.

        :return: RGBA :py:class:`PIL.Image.Image`, or `None` if the surface
            is empty.
        """
        if self.width == 0 or self.height == 0:
            return None
        return Image.fromarray(np.ascontiguousarray(self._data))

    @classmethod
    def fromnumpy(cls, array: np.ndarray) -> "RasterSurface":
        """
        Create a surface from a float array in [0, 1] or a uint8 array.

        Arrays with 3 channels get an opaque alpha channel, arrays with a
        single channel are treated as gray.
        """
        if array.ndim == 2:
            array = array[:, :, np.newaxis]
        if array.dtype != np.uint8:
            array = np.rint(np.clip(array, 0.0, 1.0) * 255.0).astype(np.uint8)
        if array.shape[2] == 1:
            array = np.concatenate([array] * 3, axis=2)
        if array.shape[2] == 3:
            alpha = np.full(array.shape[:2] + (1,), 255, dtype=np.uint8)
            array = np.concatenate([array, alpha], axis=2)
        if array.shape[2] != 4:
            raise ValueError("Unsupported channel count %d" % array.shape[2])
        return cls(np.ascontiguousarray(array))

    def numpy(self, channel: Optional[str] = None) -> np.ndarray:
        """
        Get a float32 array in the [0, 1] range.

        :param channel: `"color"` for RGB, `"alpha"` for the alpha channel
            with shape ``(height, width, 1)``, or `None` for RGBA.
        :return: :py:class:`numpy.ndarray`
        """
        array = self._data.astype(np.float32) / 255.0
        if channel == "color":
            return array[:, :, :3]
        elif channel == "alpha":
            return array[:, :, 3:4]
        elif channel is None:
            return array
        raise ValueError("Unknown channel %r" % channel)

    @property
    def data(self) -> np.ndarray:
        """Underlying `uint8` array. Mutations affect the surface."""
        return self._data

    @property
    def width(self) -> int:
        return int(self._data.shape[1])

    @property
    def height(self) -> int:
        return int(self._data.shape[0])

    @property
    def size(self) -> tuple[int, int]:
        """(width, height) tuple."""
        return self.width, self.height

    def is_valid(
        self, width: Optional[int] = None, height: Optional[int] = None
    ) -> bool:
        """
        Return True if the buffer is a well-formed RGBA8 array, optionally of
        the given size.
        """
        data = self._data
        if not isinstance(data, np.ndarray) or data.dtype != np.uint8:
            return False
        if data.ndim != 3 or data.shape[2] != 4:
            return False
        if width is not None and data.shape[1] != width:
            return False
        if height is not None and data.shape[0] != height:
            return False
        return True

    def get_region(
        self, left: int, top: int, width: int, height: int
    ) -> "RasterSurface":
        """
        Copy a rectangle. Parts outside of the surface are transparent.
        """
        region = RasterSurface.new(width, height)
        x0, y0 = max(left, 0), max(top, 0)
        x1, y1 = min(left + width, self.width), min(top + height, self.height)
        if x0 < x1 and y0 < y1:
            region._data[y0 - top : y1 - top, x0 - left : x1 - left] = self._data[
                y0:y1, x0:x1
            ]
        return region

    def set_region(self, left: int, top: int, source: "RasterSurface") -> None:
        """
        Overwrite a rectangle with `source`, clipped to the surface.
        """
        x0, y0 = max(left, 0), max(top, 0)
        x1 = min(left + source.width, self.width)
        y1 = min(top + source.height, self.height)
        if x0 < x1 and y0 < y1:
            self._data[y0:y1, x0:x1] = source._data[
                y0 - top : y1 - top, x0 - left : x1 - left
            ]

    def resize(
        self, width: int, height: int, resample: Any = Image.Resampling.LANCZOS
    ) -> "RasterSurface":
        """
        Return a resized copy, scaled with Pillow.
        """
        if (width, height) == self.size:
            return self.copy()
        if self.width == 0 or self.height == 0:
            return RasterSurface.new(width, height)
        image = self.topil()
        assert image is not None
        return RasterSurface.frompil(image.resize((width, height), resample))

    def copy(self) -> "RasterSurface":
        return RasterSurface(self._data.copy())

    def __eq__(self, other: Any) -> bool:
        if not isinstance(other, RasterSurface):
            return NotImplemented
        return self._data.shape == other._data.shape and bool(
            np.array_equal(self._data, other._data)
        )

    __hash__ = None  # type: ignore[assignment]

    def __repr__(self) -> str:
        return "%s(size=%dx%d)" % (self.__class__.__name__, self.width, self.height)

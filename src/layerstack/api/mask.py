"""
Mask module.
"""

import logging
from typing import Any, Optional

import numpy as np
from PIL import Image

logger = logging.getLogger(__name__)


class Mask(object):
    """Pixel mask attached to a layer.

    The mask is a single channel `uint8` buffer placed in document space.
    Pixels outside of its rectangle take :py:attr:`background_color`, so the
    mask can be evaluated over any rectangle, typically the owning layer's
    bounds.

    :param data: `uint8` array of shape ``(height, width)``.
    :param left: left coordinate in document space.
    :param top: top coordinate in document space.
    :param background_color: 0 or 255.
    """

    def __init__(
        self,
        data: np.ndarray,
        left: int = 0,
        top: int = 0,
        background_color: int = 0,
        enabled: bool = True,
        linked: bool = True,
        density: float = 1.0,
    ):
        if data.ndim != 2:
            raise ValueError("Mask data must be 2-dimensional, got %d" % data.ndim)
        self._data = np.array(data, dtype=np.uint8)
        self.left = int(left)
        self.top = int(top)
        self.background_color = background_color
        self.enabled = bool(enabled)
        self.linked = bool(linked)
        self.density = density

    @classmethod
    def new(
        cls,
        left: int,
        top: int,
        width: int,
        height: int,
        fill: int = 255,
        **kwargs: Any,
    ) -> "Mask":
        """
        Create a mask over the given rectangle filled with `fill`.

        The background color defaults to `fill`.
        """
        kwargs.setdefault("background_color", fill)
        data = np.full((max(height, 0), max(width, 0)), fill, dtype=np.uint8)
        return cls(data, left, top, **kwargs)

    @property
    def data(self) -> np.ndarray:
        """Underlying `uint8` array."""
        return self._data

    @data.setter
    def data(self, value: np.ndarray) -> None:
        if value.ndim != 2:
            raise ValueError("Mask data must be 2-dimensional, got %d" % value.ndim)
        self._data = np.array(value, dtype=np.uint8)

    @property
    def background_color(self) -> int:
        """Value outside of the mask rectangle, 0 or 255. Writable."""
        return self._background_color

    @background_color.setter
    def background_color(self, value: int) -> None:
        if value not in (0, 255):
            raise ValueError("Background color must be 0 or 255, got %r" % value)
        self._background_color = int(value)

    @property
    def density(self) -> float:
        """
        Mask density in [0, 1]. Values are clamped. Writable.

        :return: `float`
        """
        return self._density

    @density.setter
    def density(self, value: float) -> None:
        self._density = min(max(float(value), 0.0), 1.0)

    @property
    def width(self) -> int:
        return int(self._data.shape[1])

    @property
    def height(self) -> int:
        return int(self._data.shape[0])

    @property
    def right(self) -> int:
        return self.left + self.width

    @property
    def bottom(self) -> int:
        return self.top + self.height

    @property
    def size(self) -> tuple[int, int]:
        """(Width, Height) tuple."""
        return self.width, self.height

    @property
    def bbox(self) -> tuple[int, int, int, int]:
        """(left, top, right, bottom) tuple."""
        return self.left, self.top, self.right, self.bottom

    @property
    def disabled(self) -> bool:
        return not self.enabled

    def numpy(self, bbox: Optional[tuple[int, int, int, int]] = None) -> np.ndarray:
        """
        Get mask values as float32 in [0, 1] over `bbox`.

        Pixels outside of the mask rectangle take the background color.

        :param bbox: (left, top, right, bottom) in document space. Defaults to
            the mask's own rectangle.
        :return: array of shape ``(height, width)``.
        """
        return self._region(bbox).astype(np.float32) / 255.0

    def effective(self, bbox: Optional[tuple[int, int, int, int]] = None) -> np.ndarray:
        """
        Mask values over `bbox` with the density applied:
        ``1 - (1 - m) * density``.
        """
        values = self.numpy(bbox)
        if self._density >= 1.0:
            return values
        return 1.0 - (1.0 - values) * np.float32(self._density)

    def _region(self, bbox: Optional[tuple[int, int, int, int]]) -> np.ndarray:
        if bbox is None:
            return self._data
        left, top, right, bottom = bbox
        width, height = max(right - left, 0), max(bottom - top, 0)
        region = np.full((height, width), self._background_color, dtype=np.uint8)
        x0, y0 = max(left, self.left), max(top, self.top)
        x1, y1 = min(right, self.right), min(bottom, self.bottom)
        if x0 < x1 and y0 < y1:
            region[y0 - top : y1 - top, x0 - left : x1 - left] = self._data[
                y0 - self.top : y1 - self.top, x0 - self.left : x1 - self.left
            ]
        return region

    def fill(self, value: int) -> None:
        """Fill the mask rectangle with `value`."""
        self._data[:, :] = value

    def get_value_at(self, x: int, y: int) -> int:
        """Mask value at document coordinates."""
        if self.left <= x < self.right and self.top <= y < self.bottom:
            return int(self._data[y - self.top, x - self.left])
        return self._background_color

    def set_value_at(self, x: int, y: int, value: int) -> None:
        """Set the mask value at document coordinates inside the rectangle."""
        if not (self.left <= x < self.right and self.top <= y < self.bottom):
            raise IndexError("(%d, %d) is outside of the mask" % (x, y))
        self._data[y - self.top, x - self.left] = value

    def invert(self) -> None:
        """Invert the mask values and the background color."""
        self._data = 255 - self._data
        self._background_color = 255 - self._background_color

    def move(self, dx: int, dy: int) -> None:
        self.left += int(dx)
        self.top += int(dy)

    def copy(self) -> "Mask":
        return Mask(
            self._data,
            self.left,
            self.top,
            self._background_color,
            self.enabled,
            self.linked,
            self._density,
        )

    def to_dict(self) -> dict:
        """Snapshot record without pixels."""
        return {
            "x": self.left,
            "y": self.top,
            "width": self.width,
            "height": self.height,
            "enabled": self.enabled,
            "linked": self.linked,
            "density": self._density,
            "backgroundColor": self._background_color,
        }

    @classmethod
    def from_dict(cls, record: dict) -> "Mask":
        """Restore a mask from a snapshot record, filled with its background."""
        background_color = record.get("backgroundColor", 255)
        return cls.new(
            record.get("x", 0),
            record.get("y", 0),
            record.get("width", 0),
            record.get("height", 0),
            fill=background_color,
            enabled=record.get("enabled", True),
            linked=record.get("linked", True),
            density=record.get("density", 1.0),
        )

    def topil(self) -> Optional[Image.Image]:
        """
        Get PIL Image of the mask.

        :return: `L` mode image, or None if the mask is empty.
        """
        if self.width == 0 or self.height == 0:
            return None
        return Image.fromarray(self._data)

    def __repr__(self) -> str:
        return "%s(offset=(%d,%d) size=%dx%d)" % (
            self.__class__.__name__,
            self.left,
            self.top,
            self.width,
            self.height,
        )

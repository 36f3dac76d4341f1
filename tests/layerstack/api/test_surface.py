import numpy as np
import pytest
from PIL import Image

from layerstack.api.surface import RasterSurface


def test_new() -> None:
    surface = RasterSurface.new(3, 2, color=(1, 2, 3, 4))
    assert surface.size == (3, 2)
    assert surface.data.shape == (2, 3, 4)
    assert surface.data.dtype == np.uint8
    assert tuple(surface.data[1, 2]) == (1, 2, 3, 4)
    assert surface.is_valid()
    assert surface.is_valid(3, 2)
    assert not surface.is_valid(2, 2)


def test_new_transparent() -> None:
    surface = RasterSurface.new(2, 2)
    assert not surface.data.any()


def test_new_invalid_size() -> None:
    with pytest.raises(ValueError):
        RasterSurface.new(-1, 2)


def test_frombytes_tobytes() -> None:
    data = bytes(bytearray(range(24)))
    surface = RasterSurface.frombytes(data, 3, 2)
    assert surface.tobytes() == data
    assert tuple(surface.data[0, 1]) == (4, 5, 6, 7)
    with pytest.raises(ValueError):
        RasterSurface.frombytes(data[:-1], 3, 2)


@pytest.mark.parametrize("mode", ["RGBA", "RGB", "L", "LA"])
def test_frompil(mode: str) -> None:
    image = Image.new(mode, (4, 3))
    surface = RasterSurface.frompil(image)
    assert surface.size == (4, 3)
    assert surface.is_valid()


def test_topil() -> None:
    surface = RasterSurface.new(4, 3, color=(255, 0, 0, 128))
    image = surface.topil()
    assert image.mode == "RGBA"
    assert image.size == (4, 3)
    assert image.getpixel((0, 0)) == (255, 0, 0, 128)
    assert RasterSurface.new(0, 0).topil() is None


def test_fromnumpy() -> None:
    surface = RasterSurface.fromnumpy(np.ones((2, 3, 3), dtype=np.float32))
    assert tuple(surface.data[0, 0]) == (255, 255, 255, 255)

    surface = RasterSurface.fromnumpy(np.full((2, 3), 0.5, dtype=np.float32))
    assert tuple(surface.data[0, 0]) == (128, 128, 128, 255)

    with pytest.raises(ValueError):
        RasterSurface.fromnumpy(np.zeros((2, 2, 2), dtype=np.uint8))


def test_numpy() -> None:
    surface = RasterSurface.new(2, 2, color=(255, 0, 0, 51))
    assert surface.numpy().shape == (2, 2, 4)
    assert surface.numpy("color").shape == (2, 2, 3)
    alpha = surface.numpy("alpha")
    assert alpha.shape == (2, 2, 1)
    assert alpha.dtype == np.float32
    assert np.allclose(alpha, 0.2)
    with pytest.raises(ValueError):
        surface.numpy("shape")


def test_is_valid() -> None:
    assert not RasterSurface(np.zeros((2, 2, 3), dtype=np.uint8)).is_valid()
    assert not RasterSurface(np.zeros((2, 2, 4), dtype=np.float32)).is_valid()


def test_get_set_region() -> None:
    surface = RasterSurface.new(4, 4)
    patch = RasterSurface.new(2, 2, color=(0, 255, 0, 255))
    surface.set_region(3, 3, patch)
    assert tuple(surface.data[3, 3]) == (0, 255, 0, 255)
    assert tuple(surface.data[2, 2]) == (0, 0, 0, 0)

    region = surface.get_region(2, 2, 4, 4)
    assert region.size == (4, 4)
    assert tuple(region.data[1, 1]) == (0, 255, 0, 255)
    assert tuple(region.data[3, 3]) == (0, 0, 0, 0)


def test_resize() -> None:
    surface = RasterSurface.new(4, 2, color=(10, 20, 30, 255))
    resized = surface.resize(2, 1)
    assert resized.size == (2, 1)
    assert tuple(resized.data[0, 0]) == (10, 20, 30, 255)
    assert surface.resize(4, 2) == surface
    assert surface.resize(4, 2) is not surface


def test_copy_eq() -> None:
    surface = RasterSurface.new(2, 2, color=(1, 1, 1, 1))
    copied = surface.copy()
    assert copied == surface
    copied.data[0, 0] = 0
    assert copied != surface
    assert surface != RasterSurface.new(2, 3, color=(1, 1, 1, 1))

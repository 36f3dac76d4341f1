import logging

import pytest
from PIL import Image

from layerstack.constants import Resource
from layerstack.psd.image_resources import (
    ImageResource,
    ImageResources,
    ThumbnailResource,
    ThumbnailResourceV4,
    VersionInfo,
)

from ..utils import check_read_write, check_write_read

logger = logging.getLogger(__name__)


def test_image_resources_new() -> None:
    resources = ImageResources.new()
    version_info = resources.get_data(Resource.VERSION_INFO)
    assert version_info.has_composite
    assert version_info.writer.startswith("layerstack")
    check_write_read(resources)


def test_image_resources_unknown_resource() -> None:
    resources = ImageResources.new()
    resources[1077] = ImageResource(key=1077, data=b"\x00\x01\x02")
    data = resources.tobytes()
    check_read_write(ImageResources, data)
    new_resources = ImageResources.frombytes(data)
    assert new_resources.get_data(1077) == b"\x00\x01\x02"
    assert new_resources.get_data(Resource.ICC_PROFILE) is None


def test_version_info() -> None:
    check_write_read(VersionInfo(1, True, "writer", "reader", 1))


def test_thumbnail_frompil() -> None:
    image = Image.new("RGBA", (16, 8), (255, 0, 0, 255))
    thumbnail = ThumbnailResource.frompil(image)
    assert thumbnail.fmt == 1
    assert (thumbnail.width, thumbnail.height) == (16, 8)
    assert thumbnail.row == 48
    check_write_read(thumbnail)

    output = thumbnail.topil()
    assert output.mode == "RGB"
    assert output.size == (16, 8)
    red, green, blue = output.getpixel((8, 4))
    assert red > 200 and green < 50 and blue < 50


@pytest.mark.parametrize(
    "kls, expected",
    [
        (ThumbnailResource, (10, 20, 30)),
        (ThumbnailResourceV4, (30, 20, 10)),
    ],
)
def test_thumbnail_raw(kls, expected) -> None:
    # One pixel rows are padded to 4 bytes.
    thumbnail = kls(
        fmt=0, width=1, height=1, row=4, total_size=4, data=b"\x0a\x14\x1e\x00"
    )
    assert thumbnail.topil().getpixel((0, 0)) == expected


def test_image_resources_thumbnail() -> None:
    resources = ImageResources.new()
    image = Image.new("RGB", (4, 4), (0, 255, 0))
    resources.set_data(Resource.THUMBNAIL_RESOURCE, ThumbnailResource.frompil(image))
    new_resources = ImageResources.frombytes(resources.tobytes())
    thumbnail = new_resources.get_data(Resource.THUMBNAIL_RESOURCE)
    assert isinstance(thumbnail, ThumbnailResource)
    assert thumbnail.topil().size == (4, 4)

"""Pytest configuration for layerstack tests."""

from typing import Iterator

import pytest

from layerstack import Document, Group, Mask, RasterLayer


@pytest.fixture
def document() -> Iterator[Document]:
    """
    Small document with a background, a masked layer and a group::

        [0] Background  opaque white 4x4
        [1] Red         opaque red 2x2 at (1, 1), masked
        [2] Group
            [0] Blue    half transparent blue 4x4
    """
    document = Document(4, 4, name="Fixture")
    document.add_layer(
        RasterLayer.new(4, 4, color=(255, 255, 255, 255), name="Background")
    )
    red = RasterLayer.new(2, 2, color=(255, 0, 0, 255), name="Red", left=1, top=1)
    red.mask = Mask.new(1, 1, 2, 2, fill=255)
    red.mask.set_value_at(1, 1, 0)
    document.add_layer(red)
    group = Group(name="Group")
    group.append(RasterLayer.new(4, 4, color=(0, 0, 255, 128), name="Blue"))
    document.add_layer(group)
    yield document

import logging

import numpy as np
import pytest

from layerstack import Document, Group, Mask, RasterLayer
from layerstack.api.layers import AdjustmentLayer
from layerstack.api.surface import RasterSurface
from layerstack.composite import (
    Compositor,
    composite,
    composite_layer,
    make_thumbnail,
    merge_layers,
)

logger = logging.getLogger(__name__)


def _document(*layers, width: int = 2, height: int = 2) -> Document:
    document = Document(width, height)
    for layer in layers:
        document.add_layer(layer)
    return document


def test_empty_document() -> None:
    surface = composite(Document(3, 2))
    assert surface.size == (3, 2)
    assert not surface.data.any()


def test_normal_opacity() -> None:
    document = _document(
        RasterLayer.new(2, 2, color=(255, 0, 0, 255)),
        RasterLayer.new(2, 2, color=(0, 0, 255, 255), opacity=0.5),
    )
    data = composite(document).data
    assert np.all(data == np.array([128, 0, 128, 255], dtype=np.uint8))


def test_translucent_over_transparent() -> None:
    document = _document(RasterLayer.new(2, 2, color=(10, 20, 30, 128)))
    data = composite(document).data
    assert tuple(data[0, 0]) == (10, 20, 30, 128)


def test_multiply_white_identity() -> None:
    rng = np.random.default_rng(1)
    pixels = rng.integers(0, 256, size=(2, 2, 4), dtype=np.uint8)
    pixels[:, :, 3] = 255
    document = _document(
        RasterLayer(RasterSurface(pixels.copy())),
        RasterLayer.new(2, 2, color=(255, 255, 255, 255), blend_mode="multiply"),
    )
    assert np.array_equal(composite(document).data, pixels)


def test_hidden_and_adjustment_layers_ignored() -> None:
    document = _document(
        RasterLayer.new(2, 2, color=(255, 0, 0, 255)),
        RasterLayer.new(2, 2, color=(0, 255, 0, 255), visible=False),
        AdjustmentLayer("invert"),
    )
    data = composite(document).data
    assert np.all(data == np.array([255, 0, 0, 255], dtype=np.uint8))


def test_layer_offset_and_viewport() -> None:
    document = _document(
        RasterLayer.new(1, 1, color=(0, 255, 0, 255), left=1, top=0),
        RasterLayer.new(4, 4, color=(0, 0, 255, 255), left=5, top=5),
    )
    data = composite(document).data
    assert tuple(data[0, 1]) == (0, 255, 0, 255)
    assert tuple(data[0, 0]) == (0, 0, 0, 0)
    assert tuple(data[1, 1]) == (0, 0, 0, 0)

    view = composite(document, viewport=(1, 0, 2, 1))
    assert view.size == (1, 1)
    assert tuple(view.data[0, 0]) == (0, 255, 0, 255)


def test_layer_filter() -> None:
    red = RasterLayer.new(2, 2, color=(255, 0, 0, 255))
    document = _document(red, RasterLayer.new(2, 2, color=(0, 255, 0, 255)))
    data = composite(document, layer_filter=lambda layer: layer is red).data
    assert tuple(data[1, 1]) == (255, 0, 0, 255)


def test_mask() -> None:
    layer = RasterLayer.new(2, 2, color=(255, 0, 0, 255))
    layer.mask = Mask.new(0, 0, 1, 2, fill=255, background_color=0)
    document = _document(layer)
    data = composite(document).data
    assert data[0, 0, 3] == 255
    assert data[0, 1, 3] == 0

    layer.mask.density = 0.5
    assert composite(document).data[0, 1, 3] == 128

    layer.mask.enabled = False
    assert composite(document).data[0, 1, 3] == 255


def test_clipping() -> None:
    base = RasterLayer.new(1, 1, color=(255, 0, 0, 255))
    clipped = RasterLayer.new(2, 2, color=(0, 255, 0, 255), clipped=True)
    document = _document(base, clipped)
    data = composite(document).data
    assert tuple(data[0, 0]) == (0, 255, 0, 255)
    assert tuple(data[1, 1]) == (0, 0, 0, 0)

    clipped.opacity = 0.5
    assert tuple(composite(document).data[0, 0]) == (128, 128, 0, 255)

    base.visible = False
    assert not composite(document).data.any()


def test_clip_stack_with_hidden_member() -> None:
    base = RasterLayer.new(2, 2, color=(255, 0, 0, 255))
    hidden = RasterLayer.new(2, 2, color=(0, 255, 0, 255), clipped=True)
    hidden.visible = False
    top = RasterLayer.new(2, 2, color=(0, 0, 255, 255), clipped=True)
    document = _document(base, hidden, top)
    assert tuple(composite(document).data[0, 0]) == (0, 0, 255, 255)


def test_group_opacity_and_mode() -> None:
    group = Group(
        [RasterLayer.new(2, 2, color=(255, 0, 0, 255))], opacity=0.5
    )
    document = _document(group)
    assert tuple(composite(document).data[0, 0]) == (255, 0, 0, 128)

    group.visible = False
    assert not composite(document).data.any()


def test_nested_hidden_child() -> None:
    child = RasterLayer.new(2, 2, color=(255, 0, 0, 255), visible=False)
    document = _document(Group([child]))
    assert not composite(document).data.any()


def test_invalid_surface_skipped(caplog) -> None:
    broken = RasterLayer(RasterSurface(np.zeros((2, 2, 3), dtype=np.uint8)))
    document = _document(RasterLayer.new(2, 2, color=(0, 0, 255, 255)), broken)
    with caplog.at_level(logging.WARNING):
        data = composite(document).data
    assert tuple(data[0, 0]) == (0, 0, 255, 255)
    assert "invalid pixel buffer" in caplog.text


def test_composite_is_pure(document: Document) -> None:
    before = [
        layer.surface.copy()
        for layer in document.descendants()
        if isinstance(layer, RasterLayer)
    ]
    first = composite(document)
    second = composite(document, for_thumbnail=True)
    assert first == second
    after = [
        layer.surface
        for layer in document.descendants()
        if isinstance(layer, RasterLayer)
    ]
    assert before == after


def test_fixture_composite(document: Document) -> None:
    data = composite(document).data
    # Blue at half opacity over white, red masked at (1, 1).
    assert tuple(data[0, 0]) == (127, 127, 255, 255)
    assert tuple(data[1, 1]) == (127, 127, 255, 255)
    assert tuple(data[2, 2]) == (127, 0, 128, 255)


def test_composite_layer() -> None:
    layer = RasterLayer.new(3, 2, color=(0, 255, 0, 255), left=5, top=5)
    layer.visible = False
    layer.opacity = 0.5
    surface = composite_layer(layer)
    assert surface.size == (3, 2)
    assert tuple(surface.data[0, 0]) == (0, 255, 0, 128)


def test_composite_group_layer(document: Document) -> None:
    group = document[2]
    surface = composite_layer(group)
    assert surface.size == (4, 4)
    assert tuple(surface.data[0, 0]) == (0, 0, 255, 128)


@pytest.mark.parametrize(
    "size, expected", [((320, 160), (160, 80)), ((40, 20), (40, 20))]
)
def test_make_thumbnail(size: tuple, expected: tuple) -> None:
    image = make_thumbnail(RasterSurface.new(*size, color=(1, 2, 3, 255)))
    assert image.size == expected
    assert image.mode == "RGBA"


def test_make_thumbnail_empty() -> None:
    assert make_thumbnail(RasterSurface.new(0, 0)) is None


def test_merge_layers() -> None:
    lower = RasterLayer.new(2, 2, color=(255, 0, 0, 255), left=2, top=2)
    lower.opacity = 0.25
    upper = RasterLayer.new(1, 1, color=(0, 0, 255, 255), blend_mode="screen")
    surface, left, top = merge_layers(lower, upper)
    assert (left, top) == (0, 0)
    assert surface.size == (4, 4)
    assert tuple(surface.data[0, 0]) == (0, 0, 255, 255)
    # The lower layer's own opacity is not baked in.
    assert tuple(surface.data[3, 3]) == (255, 0, 0, 255)
    assert tuple(surface.data[0, 3]) == (0, 0, 0, 0)


def test_merge_layers_empty_lower() -> None:
    upper = RasterLayer.new(1, 2, color=(9, 9, 9, 255), left=3, top=1)
    surface, left, top = merge_layers(RasterLayer(), upper)
    assert (left, top) == (3, 1)
    assert surface == upper.surface


def test_compositor() -> None:
    compositor = Compositor((0, 0, 3, 2))
    assert (compositor.width, compositor.height) == (3, 2)
    compositor.apply(RasterLayer.new(3, 2, color=(255, 255, 255, 255)))
    compositor.apply(RasterLayer.new(3, 2, color=(0, 0, 0, 255), clipped=True))
    # Clipped layers need their base.
    assert tuple(compositor.tosurface().data[0, 0]) == (255, 255, 255, 255)


def test_clipped_bottom_layer_is_base() -> None:
    base = RasterLayer.new(1, 1, color=(255, 0, 0, 255))
    clipped = RasterLayer.new(2, 2, color=(0, 0, 255, 255), clipped=True)
    document = _document(base, clipped)
    base.clipped = True
    data = composite(document).data
    assert tuple(data[0, 0]) == (0, 0, 255, 255)
    assert data[1, 1, 3] == 0

    # Flag set below the public setter.
    base._clipped = True
    data = composite(document).data
    assert tuple(data[0, 0]) == (0, 0, 255, 255)
    assert data[1, 1, 3] == 0

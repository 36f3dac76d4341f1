import pytest

from layerstack.codec.blend_modes import from_tag, to_tag
from layerstack.constants import BlendKey, BlendMode
from layerstack.errors import UnsupportedBlendMode


@pytest.mark.parametrize("mode", list(BlendMode))
def test_blend_mode_round_trip(mode: BlendMode) -> None:
    tag = to_tag(mode)
    assert len(tag) == 4
    assert from_tag(tag) == mode
    assert to_tag(mode.value) == tag


@pytest.mark.parametrize(
    "tag, expected",
    [
        (b"mul ", BlendMode.MULTIPLY),
        (BlendKey.SCREEN, BlendMode.SCREEN),
        (b"pass", BlendMode.NORMAL),
        (b"diss", BlendMode.NORMAL),
        (b"lbrn", BlendMode.COLOR_BURN),
        (b"lddg", BlendMode.COLOR_DODGE),
        (b"dkCl", BlendMode.DARKEN),
        (b"lgCl", BlendMode.LIGHTEN),
        (b"vLit", BlendMode.HARD_LIGHT),
        (b"hMix", BlendMode.HARD_LIGHT),
        (b"fsub", BlendMode.DIFFERENCE),
        (b"fdiv", BlendMode.DIFFERENCE),
        (b"????", BlendMode.NORMAL),
    ],
)
def test_from_tag(tag, expected: BlendMode) -> None:
    assert from_tag(tag) == expected


@pytest.mark.parametrize("mode", ["dissolve", "pass-through", None])
def test_to_tag_unsupported(mode) -> None:
    with pytest.raises(UnsupportedBlendMode):
        to_tag(mode)

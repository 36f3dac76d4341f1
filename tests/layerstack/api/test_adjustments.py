import pytest

from layerstack.api.adjustments import DEFAULTS, Adjustment
from layerstack.constants import AdjustmentKind


@pytest.mark.parametrize("kind", list(AdjustmentKind))
def test_adjustment_defaults(kind: AdjustmentKind) -> None:
    adjustment = Adjustment(kind)
    assert adjustment.params == DEFAULTS[kind]
    assert adjustment.params is not DEFAULTS[kind]


def test_adjustment_params_merged() -> None:
    adjustment = Adjustment("levels", {"gamma": 1.2})
    assert adjustment.kind == AdjustmentKind.LEVELS
    assert adjustment.params["gamma"] == 1.2
    assert adjustment.params["input_black"] == 0


def test_adjustment_unknown_kind() -> None:
    with pytest.raises(ValueError):
        Adjustment("sepia")


@pytest.mark.parametrize(
    "kind, expected",
    [
        (AdjustmentKind.CURVES, True),
        (AdjustmentKind.INVERT, True),
        (AdjustmentKind.BLACK_WHITE, False),
        (AdjustmentKind.VIBRANCE, False),
        (AdjustmentKind.GRADIENT_MAP, False),
        (AdjustmentKind.PHOTO_FILTER, False),
    ],
)
def test_adjustment_serializable(kind: AdjustmentKind, expected: bool) -> None:
    assert Adjustment(kind).is_serializable is expected


def test_adjustment_copy_dict() -> None:
    adjustment = Adjustment("curves")
    copied = adjustment.copy()
    copied.params["points"]["red"].append({"x": 128, "y": 64})
    assert copied != adjustment
    assert len(adjustment.params["points"]["red"]) == 2

    record = adjustment.to_dict()
    assert record["type"] == "curves"
    assert Adjustment.from_dict(record) == adjustment

"""
Adjustment layer settings.

An :py:class:`Adjustment` is the non-destructive settings record owned by an
:py:class:`~layerstack.api.layers.AdjustmentLayer`. The compositor does not
apply adjustments; they are kept so that they survive snapshots and the PSD
codec.

Example::

    from layerstack.api.adjustments import Adjustment
    from layerstack.constants import AdjustmentKind

    levels = Adjustment(AdjustmentKind.LEVELS, {"gamma": 1.2})
    levels.params["input_black"]  # 0, filled in from the defaults
"""

import copy
import logging
from typing import Any, Optional, Union

from layerstack.constants import AdjustmentKind

logger = logging.getLogger(__name__)


def _curve() -> list:
    return [{"x": 0, "y": 0}, {"x": 255, "y": 255}]


#: Default parameters of each adjustment kind.
DEFAULTS: dict = {
    AdjustmentKind.BRIGHTNESS_CONTRAST: {
        "brightness": 0,
        "contrast": 0,
        "use_legacy": False,
    },
    AdjustmentKind.LEVELS: {
        "input_black": 0,
        "input_white": 255,
        "gamma": 1.0,
        "output_black": 0,
        "output_white": 255,
        "channel": "rgb",
    },
    AdjustmentKind.CURVES: {
        "points": {
            "rgb": _curve(),
            "red": _curve(),
            "green": _curve(),
            "blue": _curve(),
        },
        "channel": "rgb",
    },
    AdjustmentKind.HUE_SATURATION: {
        "hue": 0,
        "saturation": 0,
        "lightness": 0,
        "colorize": False,
        "colorize_hue": 0,
        "colorize_saturation": 25,
    },
    AdjustmentKind.COLOR_BALANCE: {
        "shadows": {"cyan": 0, "magenta": 0, "yellow": 0},
        "midtones": {"cyan": 0, "magenta": 0, "yellow": 0},
        "highlights": {"cyan": 0, "magenta": 0, "yellow": 0},
        "preserve_luminosity": True,
    },
    AdjustmentKind.BLACK_WHITE: {
        "reds": 40,
        "yellows": 60,
        "greens": 40,
        "cyans": 60,
        "blues": 20,
        "magentas": 80,
        "tint": False,
        "tint_color": "#a28c6e",
        "tint_amount": 50,
    },
    AdjustmentKind.INVERT: {},
    AdjustmentKind.POSTERIZE: {"levels": 4},
    AdjustmentKind.THRESHOLD: {"level": 128},
    AdjustmentKind.GRADIENT_MAP: {},
    AdjustmentKind.PHOTO_FILTER: {},
    AdjustmentKind.VIBRANCE: {"vibrance": 0, "saturation": 0},
}

#: Kinds with a fixed-layout PSD payload that the encoder writes.
SERIALIZABLE = frozenset(
    [
        AdjustmentKind.BRIGHTNESS_CONTRAST,
        AdjustmentKind.LEVELS,
        AdjustmentKind.CURVES,
        AdjustmentKind.HUE_SATURATION,
        AdjustmentKind.COLOR_BALANCE,
        AdjustmentKind.INVERT,
        AdjustmentKind.POSTERIZE,
        AdjustmentKind.THRESHOLD,
    ]
)


class Adjustment(object):
    """
    Adjustment settings.

    Parameters missing from `params` are filled from :py:data:`DEFAULTS`.

    :param kind: :py:class:`~layerstack.constants.AdjustmentKind` or its
        string value.
    :param params: `dict` of parameters.
    """

    def __init__(
        self,
        kind: Union[str, AdjustmentKind],
        params: Optional[dict] = None,
    ):
        self.kind = AdjustmentKind(kind)
        self.params = copy.deepcopy(DEFAULTS.get(self.kind, {}))
        if params:
            self.params.update(copy.deepcopy(params))

    @property
    def is_serializable(self) -> bool:
        """True if the PSD encoder writes a payload for this kind."""
        return self.kind in SERIALIZABLE

    def copy(self) -> "Adjustment":
        return Adjustment(self.kind, self.params)

    def to_dict(self) -> dict:
        return {"type": self.kind.value, "params": copy.deepcopy(self.params)}

    @classmethod
    def from_dict(cls, record: dict) -> "Adjustment":
        return cls(record["type"], record.get("params"))

    def __eq__(self, other: Any) -> bool:
        if not isinstance(other, Adjustment):
            return NotImplemented
        return self.kind == other.kind and self.params == other.params

    __hash__ = None  # type: ignore[assignment]

    def __repr__(self) -> str:
        return "%s(kind=%s)" % (self.__class__.__name__, self.kind.value)

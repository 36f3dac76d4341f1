"""
Blend mode table.

Translates between :py:class:`~layerstack.constants.BlendMode` and the
4-byte blend keys of PSD layer records. Encoding is total over the
enumeration; decoding maps PSD-only modes to their nearest internal mode and
anything unknown to normal.
"""

import logging
from typing import Any

from layerstack.constants import BlendKey, BlendMode
from layerstack.errors import UnsupportedBlendMode

logger = logging.getLogger(__name__)

#: Blend mode to PSD key.
TO_TAG = {
    BlendMode.NORMAL: BlendKey.NORMAL,
    BlendMode.MULTIPLY: BlendKey.MULTIPLY,
    BlendMode.SCREEN: BlendKey.SCREEN,
    BlendMode.OVERLAY: BlendKey.OVERLAY,
    BlendMode.DARKEN: BlendKey.DARKEN,
    BlendMode.LIGHTEN: BlendKey.LIGHTEN,
    BlendMode.COLOR_DODGE: BlendKey.COLOR_DODGE,
    BlendMode.COLOR_BURN: BlendKey.COLOR_BURN,
    BlendMode.HARD_LIGHT: BlendKey.HARD_LIGHT,
    BlendMode.SOFT_LIGHT: BlendKey.SOFT_LIGHT,
    BlendMode.DIFFERENCE: BlendKey.DIFFERENCE,
    BlendMode.EXCLUSION: BlendKey.EXCLUSION,
    BlendMode.HUE: BlendKey.HUE,
    BlendMode.SATURATION: BlendKey.SATURATION,
    BlendMode.COLOR: BlendKey.COLOR,
    BlendMode.LUMINOSITY: BlendKey.LUMINOSITY,
}

#: PSD key to blend mode, including the nearest match of PSD-only modes.
FROM_TAG = dict((key, mode) for mode, key in TO_TAG.items())
FROM_TAG.update(
    {
        BlendKey.PASS_THROUGH: BlendMode.NORMAL,
        BlendKey.DISSOLVE: BlendMode.NORMAL,
        BlendKey.LINEAR_BURN: BlendMode.COLOR_BURN,
        BlendKey.DARKER_COLOR: BlendMode.DARKEN,
        BlendKey.LINEAR_DODGE: BlendMode.COLOR_DODGE,
        BlendKey.LIGHTER_COLOR: BlendMode.LIGHTEN,
        BlendKey.VIVID_LIGHT: BlendMode.HARD_LIGHT,
        BlendKey.LINEAR_LIGHT: BlendMode.HARD_LIGHT,
        BlendKey.PIN_LIGHT: BlendMode.HARD_LIGHT,
        BlendKey.HARD_MIX: BlendMode.HARD_LIGHT,
        BlendKey.SUBTRACT: BlendMode.DIFFERENCE,
        BlendKey.DIVIDE: BlendMode.DIFFERENCE,
    }
)


def to_tag(mode: Any) -> bytes:
    """
    Blend key of a blend mode.

    :param mode: :py:class:`~layerstack.constants.BlendMode` or its value.
    :return: 4-byte key.
    :raise UnsupportedBlendMode: if `mode` is not a blend mode.
    """
    try:
        return TO_TAG[BlendMode(mode)].value
    except (ValueError, KeyError):
        raise UnsupportedBlendMode("Unsupported blend mode: %r" % (mode,))


def from_tag(tag: Any) -> BlendMode:
    """
    Blend mode of a blend key.

    :param tag: 4-byte key or :py:class:`~layerstack.constants.BlendKey`.
    :return: :py:class:`~layerstack.constants.BlendMode`, normal for unknown
        keys.
    """
    try:
        key = BlendKey(getattr(tag, "value", tag))
    except ValueError:
        logger.warning("Unknown blend mode %r, using normal" % (tag,))
        return BlendMode.NORMAL
    if key not in TO_TAG.values():
        logger.debug(
            "Blend mode %s approximated by %s" % (key.name, FROM_TAG[key].name)
        )
    return FROM_TAG[key]

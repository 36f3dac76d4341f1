"""
Low-level API that translates PSD binary data to Python structures.

All the data structures in this subpackage inherit from one of the objects
defined in :py:mod:`layerstack.psd.base`.
"""

from .document import PSD as PSD
from .layer_and_mask import (
    GlobalLayerMaskInfo as GlobalLayerMaskInfo,
    LayerInfo as LayerInfo,
    LayerRecord as LayerRecord,
)
from .tagged_blocks import TaggedBlocks as TaggedBlocks

__all__ = [
    "PSD",
    "LayerInfo",
    "LayerRecord",
    "TaggedBlocks",
    "GlobalLayerMaskInfo",
]

"""
layerstack: layered raster documents with PSD interchange.

The package keeps a tree of raster, adjustment and group layers, composites
it with the W3C blend modes, masks and clipping, and reads and writes
Photoshop PSD files.

Basic usage::

    from layerstack import Document

    # Open a PSD file
    document = Document.open('example.psd')

    # Iterate through top-level layers, bottom first
    for layer in document:
        print(layer.name)

    # Export to PNG
    document.composite().topil().save('output.png')

Architecture:

- :py:mod:`layerstack.psd`: Low-level binary structure parsing/writing
- :py:mod:`layerstack.api`: Layer model and mask editing
- :py:mod:`layerstack.composite`: Layer rendering and blending engine
- :py:mod:`layerstack.codec`: Conversion between PSD files and the model
- :py:mod:`layerstack.worker`: Background codec requests with cancellation
"""

from layerstack.api.adjustments import Adjustment
from layerstack.api.document import Document
from layerstack.api.layers import AdjustmentLayer, Group, RasterLayer
from layerstack.api.mask import Mask
from layerstack.api.mask_manager import MaskManager
from layerstack.api.surface import RasterSurface
from layerstack.version import __version__

__all__ = [
    "Adjustment",
    "AdjustmentLayer",
    "Document",
    "Group",
    "Mask",
    "MaskManager",
    "RasterLayer",
    "RasterSurface",
    "__version__",
]

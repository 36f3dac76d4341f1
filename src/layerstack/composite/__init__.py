"""
Composite module for layer rendering and blending.

This subpackage flattens a layer tree into a single RGBA8
:py:class:`~layerstack.api.surface.RasterSurface`. It implements the W3C
blend modes, layer masks with density, clipping and isolated groups.

Key modules:

- :py:mod:`layerstack.composite.composite`: Main compositing functions
- :py:mod:`layerstack.composite.blend`: Blend mode implementations

Example usage::

    from layerstack.composite import composite, make_thumbnail

    surface = composite(document)
    surface.topil().save('output.png')
    make_thumbnail(surface, 160).save('thumbnail.png')

Adjustment layers are kept in the model but not applied.
"""

from layerstack.composite.composite import (
    Compositor,
    composite,
    composite_layer,
    make_thumbnail,
    merge_layers,
)

__all__ = [
    "Compositor",
    "composite",
    "composite_layer",
    "make_thumbnail",
    "merge_layers",
]

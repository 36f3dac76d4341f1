"""
Layer model.

:py:class:`~layerstack.api.document.Document` owns a tree of
:py:class:`~layerstack.api.layers.RasterLayer`,
:py:class:`~layerstack.api.layers.AdjustmentLayer` and
:py:class:`~layerstack.api.layers.Group` objects. Pixels live in
:py:class:`~layerstack.api.surface.RasterSurface` buffers, masks in
:py:class:`~layerstack.api.mask.Mask`.
"""

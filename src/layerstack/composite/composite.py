"""Composite implementation for layer rendering and blending."""

import logging
from typing import Any, Callable, Optional

import numpy as np
from PIL import Image

from layerstack.api.layers import AdjustmentLayer, GroupMixin, Layer, RasterLayer
from layerstack.api.surface import RasterSurface
from layerstack.composite import utils
from layerstack.composite.blend import BLEND_FUNC, normal
from layerstack.constants import BlendMode

logger = logging.getLogger(__name__)


def composite(
    document: Any,
    for_thumbnail: bool = False,
    viewport: Optional[tuple[int, int, int, int]] = None,
    layer_filter: Optional[Callable] = None,
) -> RasterSurface:
    """
    Composite a document into a single RGBA8 surface.

    The input is never mutated and the result only depends on the layer
    tree, so calling this twice gives identical pixels.

    :param document: :py:class:`~layerstack.api.document.Document` or any
        layer container.
    :param for_thumbnail: hint for callers that scale the result down; does
        not change the output. See :py:func:`make_thumbnail`.
    :param viewport: (left, top, right, bottom) to render, the document
        bounds by default.
    :param layer_filter: callable(layer) -> bool selecting the layers to
        composite, visible layers by default.
    :return: :py:class:`~layerstack.api.surface.RasterSurface`
    """
    if viewport is None:
        viewport = document.bbox
    assert viewport is not None
    logger.debug(
        "Compositing %r, viewport=%r, for_thumbnail=%s"
        % (document, viewport, for_thumbnail)
    )

    compositor = Compositor(viewport, layer_filter=layer_filter)
    compositor.apply_all(document)
    return compositor.tosurface()


def composite_layer(
    layer: Layer, viewport: Optional[tuple[int, int, int, int]] = None
) -> RasterSurface:
    """
    Composite a single layer, with its mask, opacity and clip stack.

    The layer itself is rendered even when hidden; hidden children are not.

    :param viewport: (left, top, right, bottom), the layer bounds by default.
    :return: :py:class:`~layerstack.api.surface.RasterSurface`
    """
    if viewport is None:
        viewport = layer.bbox
    compositor = Compositor(
        viewport, layer_filter=lambda item: item is layer or item.visible
    )
    compositor.apply(layer, clip_compositing=True)
    return compositor.tosurface()


def make_thumbnail(
    surface: RasterSurface, max_size: int = 160
) -> Optional[Image.Image]:
    """
    Scale a composite down so that its long side is at most `max_size`.

    :return: RGBA :py:class:`PIL.Image.Image`, or None for an empty surface.
    """
    image = surface.topil()
    if image is None:
        return None
    image.thumbnail((max_size, max_size), Image.Resampling.LANCZOS)
    return image


def merge_layers(lower: RasterLayer, upper: Layer) -> tuple[RasterSurface, int, int]:
    """
    Composite `upper` onto the raw pixels of `lower`.

    The upper layer's blend mode, opacity and mask apply; the lower layer's
    own mask and opacity are left untouched. The result covers both layers.

    :return: (surface, left, top) of the merged pixels.
    """
    viewport = utils.union_bbox(lower.bbox, upper.bbox)
    left, top, right, bottom = viewport
    if left >= right or top >= bottom:
        return lower.surface.copy(), lower.left, lower.top

    compositor = Compositor(viewport)
    if lower.surface.is_valid():
        compositor._color = paste(viewport, lower.bbox, lower.numpy("color"))
        compositor._alpha = paste(viewport, lower.bbox, lower.numpy("alpha"))
    compositor.apply(upper, clip_compositing=True)
    return compositor.tosurface(), left, top


def paste(
    viewport: tuple[int, int, int, int],
    bbox: tuple[int, int, int, int],
    values: np.ndarray,
    background: Optional[float] = None,
) -> np.ndarray:
    """Change to the specified viewport."""
    shape = (viewport[3] - viewport[1], viewport[2] - viewport[0], values.shape[2])
    view = (
        np.full(shape, background, dtype=np.float32)
        if background
        else np.zeros(shape, dtype=np.float32)
    )
    inter = utils.intersect(viewport, bbox)
    if inter == (0, 0, 0, 0):
        return view

    v = (
        inter[0] - viewport[0],
        inter[1] - viewport[1],
        inter[2] - viewport[0],
        inter[3] - viewport[1],
    )
    b = (inter[0] - bbox[0], inter[1] - bbox[1], inter[2] - bbox[0], inter[3] - bbox[1])
    view[v[1] : v[3], v[0] : v[2], :] = values[b[1] : b[3], b[0] : b[2], :]
    return view


class Compositor(object):
    """Composite context.

    Holds a non-premultiplied color and alpha accumulator over the viewport,
    starting fully transparent.

    Example::

        compositor = Compositor(document.bbox)
        for layer in document:
            compositor.apply(layer)
        surface = compositor.tosurface()
    """

    def __init__(
        self,
        viewport: tuple[int, int, int, int],
        layer_filter: Optional[Callable] = None,
    ):
        self._viewport = viewport
        self._layer_filter = layer_filter
        self._color = np.zeros((self.height, self.width, 3), dtype=np.float32)
        self._alpha = np.zeros((self.height, self.width, 1), dtype=np.float32)

    def apply_all(self, group: Any) -> None:
        """
        Apply the children of a container, bottom first.

        Clipped layers are applied together with their base. The bottom layer
        is always a base.
        """
        for index, layer in enumerate(group):
            if layer.clipped and index > 0:
                continue
            self.apply(layer, clip_compositing=True)

    def apply(self, layer: Layer, clip_compositing: bool = False) -> None:
        """
        Blend a layer, together with its clip stack, onto the accumulator.

        :param clip_compositing: composite the layer even when it is clipped.
        """
        logger.debug("Compositing %s" % layer)

        if not clip_compositing and layer.clipped:
            return
        if not self._accepts(layer):
            logger.debug("Ignore %s" % layer)
            return
        if isinstance(layer, AdjustmentLayer):
            logger.debug("Ignore adjustment %s" % layer)
            return

        source = self._get_source(layer)
        if source is None:
            return
        color, alpha = source

        # Composite clip layers.
        if layer.has_clip_layers():
            color = self._apply_clip_layers(layer, color, alpha)

        # Apply masks and opacity.
        alpha = alpha * self._get_mask(layer) * np.float32(layer.opacity)
        self._apply_source(color, alpha, layer.blend_mode)

    def _accepts(self, layer: Layer) -> bool:
        if self._layer_filter is not None:
            return bool(self._layer_filter(layer))
        return layer.visible

    def _apply_source(
        self, color: np.ndarray, alpha: np.ndarray, blend_mode: BlendMode
    ) -> None:
        """Source-over with the W3C blending step."""
        color_b, alpha_b = self._color, self._alpha
        blend_fn = BLEND_FUNC.get(blend_mode, normal)
        color_s = (1.0 - alpha_b) * color + alpha_b * blend_fn(color_b, color)
        alpha_o = utils.union(alpha_b, alpha)
        color_o = alpha * color_s + (1.0 - alpha) * alpha_b * color_b
        self._color = utils.clip(utils.divide(color_o, np.repeat(alpha_o, 3, axis=2)))
        self._alpha = alpha_o

    def _apply_atop(
        self, color: np.ndarray, alpha: np.ndarray, blend_mode: BlendMode
    ) -> None:
        """Source-atop: the color changes, the backdrop alpha is kept."""
        color_b, alpha_b = self._color, self._alpha
        blend_fn = BLEND_FUNC.get(blend_mode, normal)
        color_s = (1.0 - alpha_b) * color + alpha_b * blend_fn(color_b, color)
        self._color = utils.clip(alpha * color_s + (1.0 - alpha) * color_b)

    def tosurface(self) -> RasterSurface:
        """Quantize the accumulator into a RGBA8 surface."""
        color = np.where(self._alpha > 0, self._color, 0.0)
        rgba = np.concatenate((color, self._alpha), axis=2)
        data = np.rint(utils.clip(rgba) * 255.0).astype(np.uint8)
        return RasterSurface(data)

    def finish(self) -> tuple[np.ndarray, np.ndarray]:
        return self._color, self._alpha

    @property
    def viewport(self) -> tuple[int, int, int, int]:
        return self._viewport

    @property
    def width(self) -> int:
        return self._viewport[2] - self._viewport[0]

    @property
    def height(self) -> int:
        return self._viewport[3] - self._viewport[1]

    def _get_source(self, layer: Layer) -> Optional[tuple[np.ndarray, np.ndarray]]:
        """Effective color and alpha of a layer over the viewport."""
        if isinstance(layer, GroupMixin):
            compositor = Compositor(self._viewport, layer_filter=self._layer_filter)
            compositor.apply_all(layer)
            return compositor.finish()

        if not isinstance(layer, RasterLayer):
            logger.debug("Ignore %s" % layer)
            return None
        surface = layer.surface
        if not isinstance(surface, RasterSurface) or not surface.is_valid():
            logger.warning("Skipping %s with an invalid pixel buffer" % layer)
            return None
        if utils.intersect(self._viewport, layer.bbox) == (0, 0, 0, 0):
            logger.debug("Out of viewport %s" % layer)
            return None

        color = paste(self._viewport, layer.bbox, surface.numpy("color"))
        alpha = paste(self._viewport, layer.bbox, surface.numpy("alpha"))
        return color, alpha

    def _apply_clip_layers(
        self, layer: Layer, color: np.ndarray, alpha: np.ndarray
    ) -> np.ndarray:
        compositor = Compositor(self._viewport, layer_filter=self._layer_filter)
        compositor._color, compositor._alpha = color, alpha
        for clip_layer in layer.clip_layers:
            if not compositor._accepts(clip_layer):
                continue
            if isinstance(clip_layer, AdjustmentLayer):
                logger.debug("Ignore adjustment %s" % clip_layer)
                continue
            source = compositor._get_source(clip_layer)
            if source is None:
                continue
            color_c, alpha_c = source
            alpha_c = alpha_c * compositor._get_mask(clip_layer)
            alpha_c = alpha_c * np.float32(clip_layer.opacity)
            compositor._apply_atop(color_c, alpha_c, clip_layer.blend_mode)
        return compositor._color

    def _get_mask(self, layer: Layer) -> Any:
        """Mask values over the viewport with density, or 1."""
        mask = layer.mask
        if mask is None or not mask.enabled:
            return np.float32(1.0)
        return mask.effective(self._viewport)[:, :, np.newaxis]

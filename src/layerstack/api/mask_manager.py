"""
Mask editing operations.

:py:class:`MaskManager` performs the mask operations of a
:py:class:`~layerstack.api.document.Document` and tracks the mask edit mode,
in which painting is routed to a layer's mask instead of its pixels.

Example::

    manager = MaskManager(document)
    manager.add_mask(layer.layer_id)
    manager.enter_mask_edit_mode(layer.layer_id)
    assert manager.is_editing
    manager.apply_mask(layer.layer_id)
"""

import logging
from enum import Enum
from typing import TYPE_CHECKING, Optional

import numpy as np

from layerstack.api.layers import Layer, RasterLayer
from layerstack.api.mask import Mask

if TYPE_CHECKING:
    from layerstack.api.document import Document

logger = logging.getLogger(__name__)


class MaskEditState(str, Enum):
    """Mask edit mode state."""

    INACTIVE = "inactive"
    EDITING = "editing"


class MaskManager(object):
    """
    Mask operations bound to a document.

    Every operation raises :py:class:`~layerstack.errors.LayerNotFound` for
    unknown ids and returns `True` when it changed something.
    """

    def __init__(self, document: "Document"):
        self._document = document
        self._editing_layer_id: Optional[int] = None

    @property
    def document(self) -> "Document":
        return self._document

    @property
    def state(self) -> MaskEditState:
        if self.editing_layer_id is None:
            return MaskEditState.INACTIVE
        return MaskEditState.EDITING

    @property
    def is_editing(self) -> bool:
        return self.editing_layer_id is not None

    @property
    def editing_layer_id(self) -> Optional[int]:
        """
        Id of the layer whose mask is being edited.

        Edit mode ends by itself once that layer leaves the document or loses
        its mask.
        """
        if self._editing_layer_id is not None:
            layer = self._document.get_layer_by_id(self._editing_layer_id)
            if layer is None or layer.mask is None:
                logger.debug("Leaving mask edit mode of %d" % self._editing_layer_id)
                self._editing_layer_id = None
        return self._editing_layer_id

    def _layer(self, layer_id: int) -> Layer:
        return self._document.find_layer(layer_id)

    def add_mask(self, layer_id: int, fill_white: bool = True) -> bool:
        """
        Attach an enabled, linked mask covering the layer's bounds.

        :param fill_white: reveal everything when True, hide everything
            otherwise.
        :return: `False` if the layer already has a mask.
        """
        layer = self._layer(layer_id)
        if layer.mask is not None:
            return False
        left, top, right, bottom = layer.bbox
        fill = 255 if fill_white else 0
        layer.mask = Mask.new(left, top, right - left, bottom - top, fill=fill)
        logger.debug("Added mask to layer %d" % layer_id)
        return True

    def delete_mask(self, layer_id: int) -> bool:
        """Remove the mask, leaving edit mode if the layer was being edited."""
        layer = self._layer(layer_id)
        if layer.mask is None:
            return False
        if self.editing_layer_id == layer_id:
            self.exit_mask_edit_mode()
        layer.mask = None
        return True

    def apply_mask(self, layer_id: int) -> bool:
        """
        Bake the mask into the alpha channel of a raster layer and remove it.

        The density is taken into account. Disabled masks are applied too.

        :return: `False` for layers without a mask or without pixels.
        """
        layer = self._layer(layer_id)
        if layer.mask is None or not isinstance(layer, RasterLayer):
            return False
        if not layer.surface.is_valid():
            logger.warning("Layer %d has no valid pixels, mask not applied" % layer_id)
            return False

        values = layer.mask.effective(layer.bbox)
        data = layer.surface.data
        alpha = data[:, :, 3].astype(np.float32) * values
        data[:, :, 3] = np.rint(alpha).astype(np.uint8)
        return self.delete_mask(layer_id)

    def invert_mask(self, layer_id: int) -> bool:
        layer = self._layer(layer_id)
        if layer.mask is None:
            return False
        layer.mask.invert()
        return True

    def toggle_mask_enabled(self, layer_id: int) -> bool:
        layer = self._layer(layer_id)
        if layer.mask is None:
            return False
        layer.mask.enabled = not layer.mask.enabled
        return True

    def toggle_mask_linked(self, layer_id: int) -> bool:
        layer = self._layer(layer_id)
        if layer.mask is None:
            return False
        layer.mask.linked = not layer.mask.linked
        return True

    def enter_mask_edit_mode(self, layer_id: int) -> bool:
        """
        Route painting to the layer's mask.

        Switches away from any other layer being edited. No-op if the layer
        has no mask or is already being edited.
        """
        layer = self._layer(layer_id)
        if layer.mask is None or self.editing_layer_id == layer_id:
            return False
        self._editing_layer_id = layer_id
        return True

    def exit_mask_edit_mode(self) -> bool:
        if self.editing_layer_id is None:
            return False
        self._editing_layer_id = None
        return True

    def __repr__(self) -> str:
        return "%s(state=%s, editing_layer_id=%r)" % (
            self.__class__.__name__,
            self.state.value,
            self.editing_layer_id,
        )

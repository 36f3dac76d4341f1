"""
Document module.

:py:class:`Document` is the root of the layer model: a fixed-size canvas
holding an ordered list of top-level layers (index 0 is the bottom) and the
id of the active layer. All structural edits go through the document so that
ids stay unique, the active layer stays valid and clipping stays normalized.

Example::

    from layerstack import Document, RasterLayer

    document = Document(640, 480)
    background = RasterLayer.new(640, 480, name="Background",
                                 color=(255, 255, 255, 255))
    document.add_layer(background)
    document.duplicate_layer(background.layer_id)
    document.composite().topil().save("out.png")

    with open("out.psd", "wb") as f:
        document.save(f)
"""

import logging
from typing import Any, BinaryIO, Optional, Union

from PIL import Image

from layerstack.api.layers import Group, GroupMixin, Layer, RasterLayer
from layerstack.api.surface import RasterSurface
from layerstack.errors import InvalidIndex, LayerNotFound, ModelError

logger = logging.getLogger(__name__)


class Document(GroupMixin):
    """
    Layered document.

    :param width: canvas width in pixels, positive.
    :param height: canvas height in pixels, positive.
    :param name: document name.

    .. py:attribute:: thumbnail

        :py:class:`~layerstack.api.surface.RasterSurface` decoded from the
        PSD thumbnail resource, or `None`.

    .. py:attribute:: preview

        :py:class:`~layerstack.api.surface.RasterSurface` of the composite
        image stored in the PSD file, or `None`.
    """

    def __init__(self, width: int, height: int, name: str = "Untitled"):
        if int(width) <= 0 or int(height) <= 0:
            raise ModelError("Invalid document size %rx%r" % (width, height))
        self._width = int(width)
        self._height = int(height)
        self.name = name
        self._layers: list[Layer] = []
        self._active_layer_id: Optional[int] = None
        self.thumbnail: Optional[RasterSurface] = None
        self.preview: Optional[RasterSurface] = None

    @classmethod
    def open(
        cls,
        fp: Union[BinaryIO, str, bytes, Any],
        encoding: str = "macroman",
        **kwargs: Any,
    ) -> "Document":
        """
        Open a PSD document.

        :param fp: filename, file-like object or the raw bytes.
        :param encoding: encoding of pascal strings, default macroman.
        :return: :py:class:`Document`
        """
        from layerstack.codec import decode

        if isinstance(fp, bytes):
            data = fp
        elif hasattr(fp, "read"):
            data = fp.read()
        else:
            with open(fp, "rb") as f:
                data = f.read()
        return decode(data, encoding=encoding, **kwargs)

    def save(self, fp: Union[BinaryIO, str, Any], **kwargs: Any) -> None:
        """
        Save the document as PSD.

        :param fp: filename or file-like object.
        :param kwargs: see :py:func:`layerstack.codec.encode`.
        """
        from layerstack.codec import encode

        data = encode(self, **kwargs)
        if hasattr(fp, "write"):
            fp.write(data)
        else:
            with open(fp, "wb") as f:
                f.write(data)

    @property
    def width(self) -> int:
        """Document width."""
        return self._width

    @property
    def height(self) -> int:
        """Document height."""
        return self._height

    @property
    def size(self) -> tuple[int, int]:
        """(width, height) tuple."""
        return self._width, self._height

    @property
    def bbox(self) -> tuple[int, int, int, int]:
        return 0, 0, self._width, self._height

    @property
    def kind(self) -> str:
        return "document"

    @property
    def parent(self) -> None:
        return None

    def is_visible(self) -> bool:
        return True

    @property
    def active_layer_id(self) -> Optional[int]:
        """
        Id of the active layer, `None` while the document is empty.

        If the active layer was detached through the low-level container API,
        the top-level top layer becomes active.
        """
        if self._active_layer_id is not None:
            if self.get_layer_by_id(self._active_layer_id) is None:
                self._active_layer_id = (
                    self._layers[-1].layer_id if self._layers else None
                )
        elif self._layers:
            self._active_layer_id = self._layers[-1].layer_id
        return self._active_layer_id

    @property
    def active_layer(self) -> Optional[Layer]:
        """Active layer or `None`."""
        layer_id = self.active_layer_id
        return None if layer_id is None else self.get_layer_by_id(layer_id)

    def set_active_layer(self, layer_id: int) -> None:
        """
        Make the given layer active.

        :raise LayerNotFound: if no such layer exists.
        """
        self.find_layer(layer_id)
        self._active_layer_id = layer_id

    def get_layer_by_id(self, layer_id: int) -> Optional[Layer]:
        """
        Find a layer by id, searching groups recursively.

        :return: the layer or `None`.
        """
        for layer in self.descendants():
            if layer.layer_id == layer_id:
                return layer
        return None

    def find_layer(self, layer_id: int) -> Layer:
        """
        Find a layer by id.

        :raise LayerNotFound: if no such layer exists.
        """
        layer = self.get_layer_by_id(layer_id)
        if layer is None:
            raise LayerNotFound(layer_id)
        return layer

    def _container(self, layer: Layer) -> GroupMixin:
        parent = layer.parent
        assert parent is not None
        return parent

    def add_layer(
        self,
        layer: Layer,
        index: Optional[int] = None,
        parent_id: Optional[int] = None,
    ) -> bool:
        """
        Insert a layer.

        :param layer: the layer to insert, possibly a group with children.
        :param index: position in the sibling list, top by default.
        :param parent_id: id of the group to insert into, the document
            top level by default.
        :return: `False` when an id of the layer's subtree already exists in
            the document, `True` otherwise.
        :raise InvalidIndex: if `index` is outside ``[0, len]``.
        :raise LayerNotFound: if `parent_id` does not exist.
        """
        container: GroupMixin = self
        if parent_id is not None:
            target = self.find_layer(parent_id)
            if not isinstance(target, Group):
                raise ModelError("Layer %r is not a group" % parent_id)
            container = target

        self._check_insertion([layer])
        existing = set(item.layer_id for item in self.descendants())
        subtree = [layer]
        if isinstance(layer, GroupMixin):
            subtree.extend(layer.descendants())
        duplicates = [item.layer_id for item in subtree if item.layer_id in existing]
        if duplicates:
            logger.info("Layer ids already in the document: %r" % (duplicates,))
            return False

        if index is None:
            index = len(container)
        if not 0 <= index <= len(container):
            raise InvalidIndex(
                "Index %d out of range [0, %d]" % (index, len(container))
            )

        container.insert(index, layer)
        if self._active_layer_id is None:
            self._active_layer_id = layer.layer_id
        return True

    def remove_layer(self, layer_id: int) -> Layer:
        """
        Remove a layer from wherever it resides.

        If the active layer was removed, or lived inside the removed group,
        the sibling now at the same index becomes active, else the new top
        sibling, else the parent group.

        :return: the removed layer.
        :raise LayerNotFound: if no such layer exists.
        :raise ModelError: if the document would become empty.
        """
        layer = self.find_layer(layer_id)
        container = self._container(layer)
        if container is self and len(self._layers) == 1:
            raise ModelError("Cannot remove the last layer of the document")

        active = self._active_layer_id
        subtree_ids = {layer.layer_id}
        if isinstance(layer, GroupMixin):
            subtree_ids.update(item.layer_id for item in layer.descendants())

        index = container.index(layer)
        container.remove(layer)

        if active in subtree_ids:
            if index < len(container):
                successor: Any = container[index]
            elif len(container):
                successor = container[-1]
            else:
                successor = container
            self._active_layer_id = successor.layer_id
        return layer

    def move_layer(self, layer_id: int, new_index: int) -> bool:
        """
        Move a layer within its sibling list.

        :param new_index: final index of the layer, clamped to
            ``[0, len - 1]``.
        :return: `False` if the layer already is at that index.
        :raise LayerNotFound: if no such layer exists.
        """
        layer = self.find_layer(layer_id)
        container = self._container(layer)
        index = container.index(layer)
        new_index = min(max(int(new_index), 0), len(container) - 1)
        if index == new_index:
            return False
        container._layers.pop(index)
        container._layers.insert(new_index, layer)
        container._update_children()
        return True

    def duplicate_layer(self, layer_id: int) -> Layer:
        """
        Deep copy a layer with fresh ids and insert it right above the
        original. The copy is named ``"<name> copy"`` and becomes active.

        :raise LayerNotFound: if no such layer exists.
        """
        layer = self.find_layer(layer_id)
        container = self._container(layer)
        duplicated = layer.copy()
        duplicated.name = ("%s copy" % layer.name)[:255]
        container.insert(container.index(layer) + 1, duplicated)
        self._active_layer_id = duplicated.layer_id
        return duplicated

    def merge_down(self, layer_id: int) -> Optional[RasterLayer]:
        """
        Merge a layer onto the raster layer directly below it.

        The upper layer is composited with its blend mode, opacity and mask.
        The lower layer grows to cover both layers and becomes active.

        :return: the lower layer, or `None` when there is no raster layer
            below.
        :raise LayerNotFound: if no such layer exists.
        """
        from layerstack.composite import merge_layers

        layer = self.find_layer(layer_id)
        container = self._container(layer)
        index = container.index(layer)
        if index == 0:
            return None
        lower = container[index - 1]
        if not isinstance(lower, RasterLayer):
            return None

        surface, left, top = merge_layers(lower, layer)
        container.remove(layer)
        lower.surface = surface
        lower._left, lower._top = left, top
        self._active_layer_id = lower.layer_id
        return lower

    def flatten(self) -> RasterLayer:
        """
        Replace all layers by a single locked raster layer named
        ``"Background"`` holding the composite.

        :return: the new layer.
        """
        surface = self.composite()
        flattened = RasterLayer(surface, name="Background", locked=True)
        self.clear()
        self.append(flattened)
        self._active_layer_id = flattened.layer_id
        return flattened

    def composite(self, for_thumbnail: bool = False) -> RasterSurface:
        """
        Composite the document.

        :param for_thumbnail: hint for callers that scale the result down;
            does not change the output.
        :return: :py:class:`~layerstack.api.surface.RasterSurface` of the
            document size.
        """
        from layerstack.composite import composite

        return composite(self, for_thumbnail=for_thumbnail)

    def topil(self) -> Optional[Image.Image]:
        """Composite the document into a PIL Image."""
        return self.composite().topil()

    def to_dict(self) -> dict:
        """
        Snapshot record of the document, without pixel data.

        :return: `dict`
        """
        return {
            "name": self.name,
            "width": self._width,
            "height": self._height,
            "activeLayerId": self.active_layer_id,
            "layers": [layer.to_dict() for layer in self._layers],
        }

    @classmethod
    def from_dict(cls, record: dict) -> "Document":
        """
        Restore a document from a snapshot record.

        Layer ids are kept and reserved, so layers created later never reuse
        them.
        """
        document = cls(
            record["width"], record["height"], record.get("name", "Untitled")
        )
        for layer in record.get("layers", []):
            if not document.add_layer(Layer.from_dict(layer)):
                raise ModelError("Duplicate layer id in snapshot: %r" % layer.get("id"))
        active = record.get("activeLayerId")
        if active is not None and document.get_layer_by_id(active) is not None:
            document._active_layer_id = active
        return document

    def __repr__(self) -> str:
        return "%s(%r size=%dx%d layers=%d)" % (
            self.__class__.__name__,
            self.name,
            self._width,
            self._height,
            len(self._layers),
        )

    def _repr_pretty_(self, p: Any, cycle: bool) -> None:
        if cycle:
            p.text(self.__repr__())
            return

        def _pretty(layer: Union[Layer, "Document"], p: Any) -> None:
            p.text(layer.__repr__())
            if isinstance(layer, GroupMixin):
                with p.indent(2):
                    for idx, child in enumerate(layer):
                        p.break_()
                        p.text("[%d] " % idx)
                        if child.clipped:
                            p.text("+")
                        _pretty(child, p)

        _pretty(self, p)

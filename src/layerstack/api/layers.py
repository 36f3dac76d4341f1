"""
Layer module.

This module implements the layer model of layerstack. Layers are plain
Python objects organized in a tree: a
:py:class:`~layerstack.api.document.Document` and every :py:class:`Group`
hold an ordered list of children where index 0 is the bottom.

Key classes:

- :py:class:`Layer`: Base class for all layer types
- :py:class:`GroupMixin`: Mixin for containers (groups and documents)
- :py:class:`RasterLayer`: Layer owning an RGBA8 :py:class:`RasterSurface`
- :py:class:`AdjustmentLayer`: Layer owning an :py:class:`Adjustment` record
- :py:class:`Group`: Folder of layers composited as a unit

Example usage::

    from layerstack.api.layers import Group, RasterLayer

    layer = RasterLayer.new(64, 64, name="Paint", color=(255, 0, 0, 255))
    layer.opacity = 0.5
    layer.offset = (10, 20)

    group = Group(name="Folder")
    group.append(layer)
    for child in group.descendants():
        print(child.kind, child.name)

Every layer gets a ``layer_id`` from the process-wide
:py:data:`LAYER_IDS` generator. Ids given explicitly, for example when a
snapshot is restored, are reserved so later layers never reuse them.
"""

import logging
import threading
from typing import Any, Iterable, Iterator, Optional, TypeVar, Union

import numpy as np
from PIL import Image

from layerstack.api.adjustments import Adjustment
from layerstack.api.mask import Mask
from layerstack.api.surface import RasterSurface
from layerstack.constants import AdjustmentKind, BlendMode
from layerstack.registry import new_registry

logger = logging.getLogger(__name__)

TLayer = TypeVar("TLayer", bound="Layer")

#: Registry of layer classes by snapshot ``type``.
LAYER_TYPES, register = new_registry()

#: Largest id a PSD `lyid` block can hold.
MAX_LAYER_ID = 2**32 - 2


class LayerIdGenerator(object):
    """
    Thread-safe source of layer ids.

    Example::

        ids = LayerIdGenerator()
        ids.next()     # 1
        ids.reserve(10)
        ids.next()     # 11
    """

    def __init__(self, start: int = 1):
        self._next = start
        self._lock = threading.Lock()

    def next(self) -> int:
        """Return a new id."""
        with self._lock:
            value = self._next
            self._next += 1
            return value

    def reserve(self, layer_id: int) -> int:
        """
        Make sure `layer_id` is never returned by :py:meth:`next`.

        Ids outside `[1, MAX_LAYER_ID]` are not reserved.
        """
        if not 1 <= layer_id <= MAX_LAYER_ID:
            logger.debug("Layer id %d out of range, not reserved" % layer_id)
            return layer_id
        with self._lock:
            if layer_id >= self._next:
                self._next = layer_id + 1
            return layer_id


#: Process-wide layer id generator.
LAYER_IDS = LayerIdGenerator()


class Layer(object):
    """
    Base class of all layers.

    :param name: layer name, at most 255 characters.
    :param visible: visibility flag.
    :param opacity: opacity in [0, 1], clamped.
    :param blend_mode: :py:class:`~layerstack.constants.BlendMode` or its
        string value.
    :param left: x offset in document space.
    :param top: y offset in document space.
    :param locked: lock flag.
    :param clipped: True if the layer clips to the layer below.
    :param mask: optional :py:class:`~layerstack.api.mask.Mask`.
    :param layer_id: explicit id, reserved in :py:data:`LAYER_IDS`.
    """

    def __init__(
        self,
        name: str = "Layer",
        visible: bool = True,
        opacity: float = 1.0,
        blend_mode: Union[str, BlendMode] = BlendMode.NORMAL,
        left: int = 0,
        top: int = 0,
        locked: bool = False,
        clipped: bool = False,
        mask: Optional[Mask] = None,
        layer_id: Optional[int] = None,
    ):
        self._parent: Optional["GroupMixin"] = None
        if layer_id is None:
            self._layer_id = LAYER_IDS.next()
        else:
            self._layer_id = LAYER_IDS.reserve(int(layer_id))
        self.name = name
        self.visible = visible
        self.opacity = opacity
        self.blend_mode = blend_mode  # type: ignore[assignment]
        self._left = int(left)
        self._top = int(top)
        self.locked = bool(locked)
        self._clipped = bool(clipped)
        self._mask = mask

    @property
    def layer_id(self) -> int:
        """
        Layer ID, unique in the process.

        :return: int
        """
        return self._layer_id

    @property
    def name(self) -> str:
        """
        Layer name. Writable.

        :return: `str`
        """
        return self._name

    @name.setter
    def name(self, value: str) -> None:
        if len(value) >= 256:
            raise ValueError(
                "Layer name too long (%d characters, max 255): %s" % (len(value), value)
            )
        self._name = str(value)

    @property
    def kind(self) -> str:
        """
        Kind of this layer, such as raster, adjustment, or group. Class name
        without `layer` suffix.

        :return: `str`
        """
        return self.__class__.__name__.lower().replace("layer", "")

    @property
    def visible(self) -> bool:
        """
        Layer visibility. Doesn't take group visibility in account. Writable.

        :return: `bool`
        """
        return self._visible

    @visible.setter
    def visible(self, value: bool) -> None:
        self._visible = bool(value)

    def is_visible(self) -> bool:
        """
        Layer visibility. Takes group visibility in account.

        :return: `bool`
        """
        if not self.visible:
            return False
        elif isinstance(self.parent, Layer):
            return self.parent.is_visible()
        return True

    @property
    def opacity(self) -> float:
        """
        Opacity of this layer in [0, 1] range. Writes are clamped.

        :return: float
        """
        return self._opacity

    @opacity.setter
    def opacity(self, value: float) -> None:
        self._opacity = min(max(float(value), 0.0), 1.0)

    @property
    def blend_mode(self) -> BlendMode:
        """
        Blend mode of this layer. Writable.

        Example::

            from layerstack.constants import BlendMode
            if layer.blend_mode == BlendMode.NORMAL:
                layer.blend_mode = BlendMode.SCREEN

        :return: :py:class:`~layerstack.constants.BlendMode`.
        """
        return self._blend_mode

    @blend_mode.setter
    def blend_mode(self, value: Union[str, BlendMode]) -> None:
        self._blend_mode = BlendMode(value)

    @property
    def clipped(self) -> bool:
        """
        Clipping flag. A clipped layer is painted only where the nearest
        non-clipped layer below it in the same sibling list is opaque.
        Writable.

        :return: `bool`
        """
        return self._clipped

    @clipped.setter
    def clipped(self, value: bool) -> None:
        siblings = self._parent._layers if self._parent is not None else []
        if value and siblings and siblings[0] is self:
            logger.debug("Bottom layer %r cannot be clipped" % self)
            value = False
        self._clipped = bool(value)

    @property
    def parent(self) -> Optional["GroupMixin"]:
        """Parent of this layer."""
        return self._parent

    def next_sibling(self, visible: bool = False) -> Optional["Layer"]:
        """Next sibling of this layer."""
        if self.parent is None:
            return None
        index = self.parent.index(self)
        for i in range(index + 1, len(self.parent)):
            if not visible or self.parent[i].visible:
                return self.parent[i]
        return None

    def previous_sibling(self, visible: bool = False) -> Optional["Layer"]:
        """Previous sibling of this layer."""
        if self.parent is None:
            return None
        index = self.parent.index(self)
        for i in range(index - 1, -1, -1):
            if not visible or self.parent[i].visible:
                return self.parent[i]
        return None

    def is_group(self) -> bool:
        """
        Return True if the layer is a group.

        :return: `bool`
        """
        return False

    @property
    def left(self) -> int:
        """
        Left coordinate. Writable, a linked mask moves along.

        :return: int
        """
        return self._left

    @left.setter
    def left(self, value: int) -> None:
        self._move(int(value) - self.left, 0)

    @property
    def top(self) -> int:
        """
        Top coordinate. Writable, a linked mask moves along.

        :return: int
        """
        return self._top

    @top.setter
    def top(self, value: int) -> None:
        self._move(0, int(value) - self.top)

    def _move(self, dx: int, dy: int) -> None:
        self._left += dx
        self._top += dy
        if self._mask is not None and self._mask.linked:
            self._mask.move(dx, dy)

    @property
    def width(self) -> int:
        return 0

    @property
    def height(self) -> int:
        return 0

    @property
    def right(self) -> int:
        return self.left + self.width

    @property
    def bottom(self) -> int:
        return self.top + self.height

    @property
    def offset(self) -> tuple[int, int]:
        """
        (left, top) tuple. Writable.

        :return: `tuple`
        """
        return self.left, self.top

    @offset.setter
    def offset(self, value: tuple[int, int]) -> None:
        if len(value) != 2:
            raise ValueError(
                "Offset must be a tuple of 2 integers, got %d elements" % len(value)
            )
        left, top = (int(x) for x in value)
        self._move(left - self.left, top - self.top)

    @property
    def size(self) -> tuple[int, int]:
        """
        (width, height) tuple.

        :return: `tuple`
        """
        return self.width, self.height

    @property
    def bbox(self) -> tuple[int, int, int, int]:
        """(left, top, right, bottom) tuple."""
        return self.left, self.top, self.right, self.bottom

    @property
    def mask(self) -> Optional[Mask]:
        """
        Returns mask associated with this layer. Writable.

        :return: :py:class:`~layerstack.api.mask.Mask` or `None`
        """
        return self._mask

    @mask.setter
    def mask(self, value: Optional[Mask]) -> None:
        if value is not None and not isinstance(value, Mask):
            raise TypeError("Expected Mask instance, got %s" % type(value).__name__)
        self._mask = value

    def has_mask(self) -> bool:
        """
        Returns True if the layer has a mask.

        :return: `bool`
        """
        return self._mask is not None

    def has_pixels(self) -> bool:
        return False

    @property
    def clip_layers(self) -> list["Layer"]:
        """
        Clip layers stacked on this layer, bottom first. Empty when this
        layer is itself clipped, unless it is the bottom of its siblings.

        :return: list of layers
        """
        if self.parent is None:
            return []
        siblings = self.parent._layers
        index = siblings.index(self)
        if self.clipped and index > 0:
            return []
        layers = []
        for layer in siblings[index + 1 :]:
            if not layer.clipped:
                break
            layers.append(layer)
        return layers

    def has_clip_layers(self) -> bool:
        return len(self.clip_layers) > 0

    def copy(self: TLayer) -> TLayer:
        """
        Deep copy of this layer with fresh ids. The copy has no parent.
        """
        raise NotImplementedError

    def _common_kwargs(self) -> dict:
        return dict(
            name=self.name,
            visible=self.visible,
            opacity=self.opacity,
            blend_mode=self.blend_mode,
            left=self.left,
            top=self.top,
            locked=self.locked,
            clipped=self.clipped,
            mask=self._mask.copy() if self._mask is not None else None,
        )

    def to_dict(self) -> dict:
        """
        Snapshot record of this layer, without pixel data.

        :return: `dict`
        """
        record = {
            "id": self.layer_id,
            "name": self.name,
            "type": self.kind,
            "visible": self.visible,
            "opacity": self.opacity,
            "blendMode": self.blend_mode.value,
            "x": self.left,
            "y": self.top,
            "width": self.width,
            "height": self.height,
            "locked": self.locked,
            "clipped": self.clipped,
        }
        if self._mask is not None:
            record["mask"] = self._mask.to_dict()
        return record

    @classmethod
    def _kwargs_from_dict(cls, record: dict) -> dict:
        mask = record.get("mask")
        return dict(
            name=record.get("name", "Layer"),
            visible=record.get("visible", True),
            opacity=record.get("opacity", 1.0),
            blend_mode=record.get("blendMode", BlendMode.NORMAL),
            left=record.get("x", 0),
            top=record.get("y", 0),
            locked=record.get("locked", False),
            clipped=record.get("clipped", False),
            mask=Mask.from_dict(mask) if mask else None,
            layer_id=record.get("id"),
        )

    @classmethod
    def from_dict(cls, record: dict) -> "Layer":
        """
        Restore a layer from its snapshot record.

        Dispatches on the record ``type``. Raster layers get a transparent
        buffer of the recorded size.
        """
        kind = record.get("type")
        kls = LAYER_TYPES.get(kind)
        if kls is None:
            raise ValueError("Unknown layer type %r" % kind)
        return kls.from_dict(record)

    def __repr__(self) -> str:
        has_size = self.width > 0 and self.height > 0
        return "%s(%r%s%s%s%s)" % (
            self.__class__.__name__,
            self.name,
            " size=%dx%d" % (self.width, self.height) if has_size else "",
            "" if self.visible else " hidden",
            " mask" if self.has_mask() else "",
            " clipped" if self.clipped else "",
        )


@register("raster")
class RasterLayer(Layer):
    """
    Layer that owns an RGBA8 pixel buffer.

    :param surface: :py:class:`~layerstack.api.surface.RasterSurface`. A
        transparent surface of `width` x `height` is created when omitted.
    """

    def __init__(
        self,
        surface: Optional[RasterSurface] = None,
        width: int = 0,
        height: int = 0,
        **kwargs: Any,
    ):
        super(RasterLayer, self).__init__(**kwargs)
        if surface is None:
            surface = RasterSurface.new(width, height)
        self._surface = surface

    @classmethod
    def new(
        cls,
        width: int,
        height: int,
        color: tuple[int, ...] = (0, 0, 0, 0),
        **kwargs: Any,
    ) -> "RasterLayer":
        """Create a raster layer filled with `color`."""
        return cls(RasterSurface.new(width, height, color), **kwargs)

    @classmethod
    def frompil(cls, image: Image.Image, **kwargs: Any) -> "RasterLayer":
        """
        Create a raster layer from a :py:class:`PIL.Image.Image`.

        :param image: source image, converted to RGBA.
        :param kwargs: layer attributes such as `name`, `left` or `top`.
        """
        return cls(RasterSurface.frompil(image), **kwargs)

    @property
    def surface(self) -> RasterSurface:
        """
        Pixel buffer. Writable.

        :return: :py:class:`~layerstack.api.surface.RasterSurface`
        """
        return self._surface

    @surface.setter
    def surface(self, value: RasterSurface) -> None:
        self._surface = value

    @property
    def width(self) -> int:
        try:
            return self._surface.width
        except (AttributeError, IndexError):
            return 0

    @property
    def height(self) -> int:
        try:
            return self._surface.height
        except (AttributeError, IndexError):
            return 0

    def has_pixels(self) -> bool:
        """
        Returns True if the layer has a non-empty buffer.

        :return: `bool`
        """
        return self.width > 0 and self.height > 0

    def numpy(self, channel: Optional[str] = None) -> np.ndarray:
        """
        Get float32 pixels in [0, 1].

        :param channel: `"color"`, `"alpha"` or `None`.
        """
        return self._surface.numpy(channel)

    def topil(self) -> Optional[Image.Image]:
        """
        Get PIL Image of the layer pixels, mask not applied.

        :return: :py:class:`PIL.Image.Image`, or `None` if the layer has no
            pixels.
        """
        return self._surface.topil()

    def copy(self) -> "RasterLayer":
        return RasterLayer(self._surface.copy(), **self._common_kwargs())

    @classmethod
    def from_dict(cls, record: dict) -> "RasterLayer":
        return cls(
            width=record.get("width", 0),
            height=record.get("height", 0),
            **cls._kwargs_from_dict(record),
        )


@register("adjustment")
class AdjustmentLayer(Layer):
    """
    Layer holding non-destructive adjustment settings and no pixels.

    Example::

        layer = AdjustmentLayer(Adjustment("levels", {"gamma": 1.5}))
        layer.adjustment.params["gamma"]
    """

    def __init__(
        self,
        adjustment: Union[Adjustment, str, AdjustmentKind, None] = None,
        width: int = 0,
        height: int = 0,
        **kwargs: Any,
    ):
        kwargs.setdefault("name", "Adjustment")
        super(AdjustmentLayer, self).__init__(**kwargs)
        if adjustment is None:
            adjustment = Adjustment(AdjustmentKind.BRIGHTNESS_CONTRAST)
        elif not isinstance(adjustment, Adjustment):
            adjustment = Adjustment(adjustment)
        self.adjustment = adjustment
        self._width = max(int(width), 0)
        self._height = max(int(height), 0)

    @property
    def width(self) -> int:
        return self._width

    @property
    def height(self) -> int:
        return self._height

    def copy(self) -> "AdjustmentLayer":
        return AdjustmentLayer(
            self.adjustment.copy(),
            width=self._width,
            height=self._height,
            **self._common_kwargs(),
        )

    def to_dict(self) -> dict:
        record = super(AdjustmentLayer, self).to_dict()
        record["adjustment"] = self.adjustment.to_dict()
        return record

    @classmethod
    def from_dict(cls, record: dict) -> "AdjustmentLayer":
        adjustment = record.get("adjustment")
        return cls(
            Adjustment.from_dict(adjustment) if adjustment else None,
            width=record.get("width", 0),
            height=record.get("height", 0),
            **cls._kwargs_from_dict(record),
        )

    def __repr__(self) -> str:
        return "%s(%r kind=%s%s)" % (
            self.__class__.__name__,
            self.name,
            self.adjustment.kind.value,
            "" if self.visible else " hidden",
        )


class GroupMixin(object):
    """
    Container behavior shared by :py:class:`Group` and the document.

    Children are ordered bottom first. Structural changes rewrite the
    children's parent references and reset the clipping flag of the
    bottom-most child.
    """

    _layers: list

    def __len__(self) -> int:
        return self._layers.__len__()

    def __iter__(self) -> Iterator[Layer]:
        return self._layers.__iter__()

    def __reversed__(self) -> Iterator[Layer]:
        return self._layers.__reversed__()

    def __contains__(self, item: object) -> bool:
        return item in self._layers

    def __getitem__(self, key: int) -> Layer:
        return self._layers.__getitem__(key)

    def __setitem__(self, key: int, value: Layer) -> None:
        self.insert(key, value)

    def __delitem__(self, key: int) -> None:
        self.remove(self._layers[key])

    def append(self, layer: Layer) -> None:
        """
        Add a layer to the end (top) of the group.

        :param layer: The layer to add.
        :raises TypeError: If the provided object is not a Layer instance.
        :raises ValueError: If attempting to add a group to itself.
        """
        self.extend([layer])

    def extend(self, layers: Iterable[Layer]) -> None:
        """
        Add a list of layers to the end (top) of the group.

        :param layers: The layers to add.
        :raises TypeError: If the provided object is not a Layer instance.
        :raises ValueError: If attempting to add a group to itself.
        """
        layers = list(layers)
        self._check_insertion(layers)
        for layer in layers:
            if isinstance(layer.parent, GroupMixin) and layer in layer.parent:
                layer.parent._detach(layer)
        self._layers.extend(layers)
        self._update_children()

    def insert(self, index: int, layer: Layer) -> None:
        """
        Insert the given layer at the specified index.

        :param index: The index to insert the layer at.
        :param layer: The layer to insert.
        :raises TypeError: If the provided object is not a Layer instance.
        :raises ValueError: If attempting to add a group to itself.
        """
        self._check_insertion([layer])
        if isinstance(layer.parent, GroupMixin) and layer in layer.parent:
            layer.parent._detach(layer)
        self._layers.insert(index, layer)
        self._update_children()

    def remove(self, layer: Layer) -> "GroupMixin":
        """
        Removes the specified layer from the group.

        :param layer: The layer to remove.
        :raises ValueError: If the layer is not found in the group.
        :return: self
        """
        if layer not in self:
            raise ValueError("Layer %r not found in group %r" % (layer, self))
        self._detach(layer)
        return self

    def pop(self, index: int = -1) -> Layer:
        """
        Removes the specified layer from the list and returns it.

        :param index: The index of the layer to remove. Default is -1 (the top).
        :raises IndexError: If the index is out of range.
        :return: The removed layer.
        """
        layer = self[index]
        self.remove(layer)
        return layer

    def clear(self) -> None:
        """Clears the group."""
        for layer in self._layers:
            layer._parent = None
        self._layers.clear()
        self._update_children()

    def index(self, layer: Layer) -> int:
        """
        Returns the index of the specified layer in the group.

        :param layer: The layer to find.
        """
        return self._layers.index(layer)

    def count(self, layer: Layer) -> int:
        return self._layers.count(layer)

    def _detach(self, layer: Layer) -> None:
        self._layers.remove(layer)
        layer._parent = None
        self._update_children()

    def _check_insertion(self, layers: Iterable[Layer]) -> None:
        """Check that the given layers can be added to this group.

        :raises ValueError: If attempting to add a group to itself or create a
            reference loop
        :raises TypeError: If the provided object is not a Layer instance
        """
        for layer in layers:
            if not isinstance(layer, Layer):
                raise TypeError(
                    "Expected Layer instance, got %s" % type(layer).__name__
                )
            if layer is self:
                raise ValueError("Cannot add the group %r to itself" % self)
            if isinstance(layer, GroupMixin):
                if self in list(layer.descendants()):
                    raise ValueError(
                        "This operation would create a reference loop "
                        "within the group between %r and %r" % (self, layer)
                    )

    def _update_children(self) -> None:
        """Update children's parent references and bottom clipping flag."""
        for layer in self._layers:
            layer._parent = self
            if isinstance(layer, GroupMixin):
                layer._update_children()
        if self._layers and self._layers[0].clipped:
            logger.debug("Unclipping bottom layer %r" % self._layers[0])
            self._layers[0]._clipped = False

    def is_group(self) -> bool:
        """Return True if this is a group."""
        return True

    def descendants(self) -> Iterator[Layer]:
        """
        Return a generator to iterate over all descendant layers.

        Example::

            # Iterate over all layers
            for layer in document.descendants():
                print(layer)

            # Iterate over all layers in reverse order
            for layer in reversed(list(document.descendants())):
                print(layer)
        """
        for layer in self:
            yield layer
            if isinstance(layer, GroupMixin):
                yield from layer.descendants()

    def find(self, name: str) -> Optional[Layer]:
        """
        Returns the first layer found for the given layer name

        :param name:
        """
        for layer in self.findall(name):
            return layer
        return None

    def findall(self, name: str) -> Iterator[Layer]:
        """
        Return a generator to iterate over all layers with the given name.

        :param name:
        """
        for layer in self.descendants():
            if layer.name == name:
                yield layer


def extract_bbox(layers: Iterable[Layer]) -> tuple[int, int, int, int]:
    """
    Union of the bounding boxes of the given layers, ignoring empty ones.

    :return: (left, top, right, bottom), all zero when nothing has a size.
    """
    bboxes = [
        layer.bbox for layer in layers if layer.width > 0 and layer.height > 0
    ]
    if not bboxes:
        return (0, 0, 0, 0)
    lefts, tops, rights, bottoms = zip(*bboxes)
    return min(lefts), min(tops), max(rights), max(bottoms)


@register("group")
class Group(GroupMixin, Layer):
    """
    Group of layers.

    The group's opacity and blend mode apply to its composited result as a
    unit. Its bounds are the union of its children's; moving a group moves
    the children.

    Example::

        group = document[1]
        for layer in group:
            if layer.kind == 'raster':
                print(layer.name)
    """

    def __init__(
        self,
        layers: Optional[Iterable[Layer]] = None,
        expanded: bool = True,
        **kwargs: Any,
    ):
        kwargs.setdefault("name", "Group")
        self._layers = []
        Layer.__init__(self, **kwargs)
        self.expanded = bool(expanded)
        if layers:
            self.extend(layers)

    @property
    def bbox(self) -> tuple[int, int, int, int]:
        """(left, top, right, bottom) tuple computed from children."""
        return extract_bbox(self.descendants())

    @property
    def left(self) -> int:
        """Left coordinate computed from children. Writes move the children."""
        return self.bbox[0]

    @left.setter
    def left(self, value: int) -> None:
        self._move(int(value) - self.left, 0)

    @property
    def top(self) -> int:
        """Top coordinate computed from children. Writes move the children."""
        return self.bbox[1]

    @top.setter
    def top(self, value: int) -> None:
        self._move(0, int(value) - self.top)

    @property
    def right(self) -> int:
        return self.bbox[2]

    @property
    def bottom(self) -> int:
        return self.bbox[3]

    @property
    def width(self) -> int:
        left, _, right, _ = self.bbox
        return right - left

    @property
    def height(self) -> int:
        _, top, _, bottom = self.bbox
        return bottom - top

    def _move(self, dx: int, dy: int) -> None:
        if self._mask is not None and self._mask.linked:
            self._mask.move(dx, dy)
        for layer in self._layers:
            layer._move(dx, dy)

    def copy(self) -> "Group":
        kwargs = self._common_kwargs()
        del kwargs["left"], kwargs["top"]
        return Group(
            [layer.copy() for layer in self._layers],
            expanded=self.expanded,
            **kwargs,
        )

    def to_dict(self) -> dict:
        record = super(Group, self).to_dict()
        record["expanded"] = self.expanded
        record["children"] = [layer.to_dict() for layer in self._layers]
        return record

    @classmethod
    def from_dict(cls, record: dict) -> "Group":
        kwargs = cls._kwargs_from_dict(record)
        del kwargs["left"], kwargs["top"]
        return cls(
            [Layer.from_dict(child) for child in record.get("children", [])],
            expanded=record.get("expanded", True),
            **kwargs,
        )

    def __repr__(self) -> str:
        return "%s(%r%s%s)" % (
            self.__class__.__name__,
            self.name,
            " children=%d" % len(self),
            "" if self.visible else " hidden",
        )

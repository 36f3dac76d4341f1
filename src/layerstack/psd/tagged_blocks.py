"""
Tagged block data structure.

Layer records and the layer and mask section carry a sequence of tagged
blocks keyed by a four-character code. Keys listed in
:py:class:`~layerstack.constants.Tag` with a registered type are parsed;
any other block is kept as raw bytes and written back unchanged.
"""

import logging
from typing import Any, BinaryIO, Optional, TypeVar

from attrs import define, field

from layerstack.constants import BlendKey, ProtectedFlags, SectionDivider, Tag
from layerstack.psd.adjustments import ADJUSTMENT_TYPES
from layerstack.psd.base import (
    BaseElement,
    DictElement,
    IntegerElement,
    StringElement,
    ValueElement,
)
from layerstack.psd.bin_utils import (
    is_readable,
    read_fmt,
    read_length_block,
    trimmed_repr,
    write_bytes,
    write_fmt,
    write_length_block,
)
from layerstack.registry import new_registry
from layerstack.validators import in_

logger = logging.getLogger(__name__)

T_TaggedBlocks = TypeVar("T_TaggedBlocks", bound="TaggedBlocks")
T_TaggedBlock = TypeVar("T_TaggedBlock", bound="TaggedBlock")

TYPES, register = new_registry()

TYPES.update(ADJUSTMENT_TYPES)
TYPES.update(
    {
        Tag.LAYER_ID: IntegerElement,
        Tag.UNICODE_LAYER_NAME: StringElement,
    }
)


@define(repr=False)
class TaggedBlocks(DictElement):
    """
    Dict of tagged block items.

    See :py:class:`~layerstack.constants.Tag` for available keys.

    Example::

        from layerstack.constants import Tag

        # Iterate over fields
        for key in tagged_blocks:
            print(key)

        # Get a field
        value = tagged_blocks.get_data(Tag.UNICODE_LAYER_NAME)
    """

    def get_data(self, key: Any, default: Any = None) -> Any:
        """
        Get data from the tagged blocks.

        Shortcut for the following::

            if key in tagged_blocks:
                value = tagged_blocks[key].data
        """
        if key in self:
            value = self[key].data
            if isinstance(value, ValueElement):
                return value.value
            return value
        return default

    def set_data(self, key: Any, *args: Any, **kwargs: Any) -> None:
        """
        Set data for the given key, building the registered type from
        ``args``. A single argument that already is a block structure is
        stored as is.
        """
        key = Tag(self._key_converter(key))
        if len(args) == 1 and not kwargs and isinstance(args[0], BaseElement):
            data = args[0]
        else:
            kls = TYPES.get(key)
            if kls is None:
                raise KeyError("No registered type for %r" % key)
            data = kls(*args, **kwargs)
        self[key] = TaggedBlock(key=key, data=data)

    @classmethod
    def read(
        cls: type[T_TaggedBlocks],
        fp: BinaryIO,
        version: int = 1,
        padding: int = 1,
        end_pos: Optional[int] = None,
        **kwargs: Any,
    ) -> T_TaggedBlocks:
        items = []
        while is_readable(fp, 8):  # len(signature) + len(key) = 8
            if end_pos is not None and fp.tell() >= end_pos:
                break
            block = TaggedBlock.read(fp, version, padding)
            if block is None:
                break
            items.append((cls._key_converter(block.key), block))
        return cls(items)  # type: ignore[arg-type]

    @classmethod
    def _key_converter(cls, key: Any) -> Any:
        return getattr(key, "value", key)

    def _repr_pretty_(self, p: Any, cycle: bool) -> None:
        if cycle:
            p.text("{...}")
            return

        with p.group(2, "{", "}"):
            p.breakable("")
            for idx, (key, value) in enumerate(self._items.items()):
                if idx:
                    p.text(",")
                    p.breakable()
                try:
                    p.text(Tag(key).name)
                except ValueError:
                    p.pretty(key)
                p.text(": ")
                if isinstance(value.data, bytes):
                    p.text(trimmed_repr(value.data))
                else:
                    p.pretty(value.data)
            p.breakable("")


@define(repr=False)
class TaggedBlock(BaseElement):
    """
    Layer tagged block with extra info.

    .. py:attribute:: key

        4-character code. See :py:class:`~layerstack.constants.Tag`

    .. py:attribute:: data

        Data.
    """

    _SIGNATURES = (b"8BIM", b"8B64")

    # Blocks with an 8-byte length marker in PSB files.
    _BIG_KEYS = {
        b"LMsk",
        b"Lr16",
        b"Lr32",
        b"Layr",
        b"Mt16",
        b"Mt32",
        b"Mtrn",
        b"Alph",
        b"FMsk",
        b"lnk2",
        b"FEid",
        b"FXid",
        b"PxSD",
        b"lnkE",
        b"pths",
        b"extd",
        b"extn",
        b"cinf",
        b"artd",
    }

    signature: bytes = field(default=b"8BIM", repr=False, validator=in_(_SIGNATURES))
    key: Any = b""
    data: Any = field(default=b"", repr=True)

    @classmethod
    def read(
        cls: type[T_TaggedBlock],
        fp: BinaryIO,
        version: int = 1,
        padding: int = 1,
        **kwargs: Any,
    ) -> Optional[T_TaggedBlock]:
        signature = read_fmt("4s", fp)[0]
        if signature not in cls._SIGNATURES:
            logger.warning("Invalid signature (%r)" % (signature))
            fp.seek(-4, 1)
            return None

        key = read_fmt("4s", fp)[0]
        fmt = cls._length_format(key, version)
        try:
            key = Tag(key)
        except ValueError:
            logger.debug("Unknown key: %r" % (key))

        raw_data = read_length_block(fp, fmt=fmt, padding=padding)
        kls = TYPES.get(key)
        if kls:
            try:
                data = kls.frombytes(raw_data, version=version)
            except (OSError, ValueError) as e:
                # Fallback to raw data.
                logger.error("Failed to read tagged block %r: %s" % (key, e))
                data = raw_data
        else:
            logger.debug("Unknown tagged block: %r, %s" % (key, trimmed_repr(raw_data)))
            data = raw_data
        return cls(signature, key, data)

    def write(
        self, fp: BinaryIO, version: int = 1, padding: int = 1, **kwargs: Any
    ) -> int:
        key = getattr(self.key, "value", self.key)
        written = write_fmt(fp, "4s4s", self.signature, key)

        def writer(f: BinaryIO) -> int:
            if hasattr(self.data, "write"):
                # Padding applies at the block level for the global blocks.
                inner_padding = 1 if padding == 4 else 4
                return self.data.write(f, padding=inner_padding, version=version)
            return write_bytes(f, self.data)

        fmt = self._length_format(key, version)
        written += write_length_block(fp, writer, fmt=fmt, padding=padding)
        return written

    @classmethod
    def _length_format(cls, key: bytes, version: int) -> str:
        return ("I", "Q")[int(version == 2 and key in cls._BIG_KEYS)]


@register(Tag.PROTECTED_SETTING)
@define(repr=False, eq=False, order=False)
class ProtectedSetting(IntegerElement):
    """
    ProtectedSetting structure, a bit field of
    :py:class:`~layerstack.constants.ProtectedFlags`.
    """

    @property
    def transparency(self) -> bool:
        return bool(self.value & ProtectedFlags.TRANSPARENCY)

    @property
    def composite(self) -> bool:
        return bool(self.value & ProtectedFlags.COMPOSITE)

    @property
    def position(self) -> bool:
        return bool(self.value & ProtectedFlags.POSITION)

    @property
    def complete(self) -> bool:
        return bool(self.value & ProtectedFlags.COMPLETE)

    @property
    def locked(self) -> bool:
        """Any lock, as a single flag."""
        return bool(self.value)


@register(Tag.SECTION_DIVIDER_SETTING)
@register(Tag.NESTED_SECTION_DIVIDER_SETTING)
@define(repr=False)
class SectionDividerSetting(BaseElement):
    """
    SectionDividerSetting structure.

    .. py:attribute:: kind

        See :py:class:`~layerstack.constants.SectionDivider`.

    .. py:attribute:: blend_mode

        Raw blend key of the group, see
        :py:class:`~layerstack.constants.BlendKey`.

    .. py:attribute:: sub_type
    """

    kind: SectionDivider = field(
        default=SectionDivider.OTHER,
        converter=SectionDivider,
        validator=in_(SectionDivider),
    )
    signature: Optional[bytes] = field(default=None, repr=False, eq=False)
    blend_mode: Optional[bytes] = None
    sub_type: Optional[int] = None

    @classmethod
    def read(cls, fp: BinaryIO, **kwargs: Any) -> "SectionDividerSetting":
        kind = SectionDivider(read_fmt("I", fp)[0])
        signature, blend_mode = None, None
        if is_readable(fp, 8):
            signature, blend_mode = read_fmt("4s4s", fp)
            if signature != b"8BIM":
                raise ValueError("Invalid signature %r" % signature)
        sub_type = None
        if is_readable(fp, 4):
            sub_type = read_fmt("I", fp)[0]
        return cls(kind, signature=signature, blend_mode=blend_mode, sub_type=sub_type)

    def write(self, fp: BinaryIO, **kwargs: Any) -> int:
        written = write_fmt(fp, "I", self.kind.value)
        if self.blend_mode:
            blend_mode = getattr(self.blend_mode, "value", self.blend_mode)
            written += write_fmt(fp, "4s4s", self.signature or b"8BIM", blend_mode)
            if self.sub_type is not None:
                written += write_fmt(fp, "I", self.sub_type)
        elif self.sub_type is not None:
            logger.debug(
                "Blend mode is missing in SectionDividerSetting, ignoring sub_type"
            )
        return written

    @property
    def is_pass_through(self) -> bool:
        return self.blend_mode == BlendKey.PASS_THROUGH.value

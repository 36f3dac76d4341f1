"""
Base data structures intended for inheritance.

All the binary records in :py:mod:`layerstack.psd` inherit from
:py:class:`BaseElement` and get attrs_ decoration for their fields, so each
record knows how to read itself from and write itself to a file-like object.

.. _attrs: https://www.attrs.org/en/stable/index.html
"""

import io
import logging
from collections import OrderedDict
from enum import Enum
from typing import Any, BinaryIO, TypeVar

from attrs import define, field, fields, validate

from layerstack.psd.bin_utils import (
    read_fmt,
    read_unicode_string,
    trimmed_repr,
    write_bytes,
    write_fmt,
    write_unicode_string,
)

logger = logging.getLogger(__name__)

T = TypeVar("T", bound="BaseElement")


class BaseElement:
    """
    Base element of the PSD binary records.

    .. py:classmethod:: read(cls, fp)

        Read the element from a file-like object.

    .. py:method:: write(self, fp)

        Write the element to a file-like object and return the byte count.

    .. py:classmethod:: frombytes(self, data, *args, **kwargs)

        Read the element from bytes.

    .. py:method:: tobytes(self, *args, **kwargs)

        Write the element to bytes.
    """

    @classmethod
    def read(cls: type[T], fp: BinaryIO, **kwargs: Any) -> T:
        raise NotImplementedError()

    def write(self, fp: BinaryIO, **kwargs: Any) -> int:
        raise NotImplementedError()

    @classmethod
    def frombytes(cls: type[T], data: bytes, *args: Any, **kwargs: Any) -> T:
        with io.BytesIO(data) as f:
            return cls.read(f, *args, **kwargs)

    def tobytes(self, *args: Any, **kwargs: Any) -> bytes:
        with io.BytesIO() as f:
            self.write(f, *args, **kwargs)
            return f.getvalue()

    def validate(self) -> None:
        return validate(self)  # type: ignore[arg-type]

    def _repr_pretty_(self, p: Any, cycle: bool) -> None:
        name = self.__class__.__name__
        if cycle:
            p.text("%s(...)" % name)
            return

        with p.group(2, "%s(" % name, ")"):
            p.breakable("")
            field_list = [f for f in fields(self.__class__) if f.repr]  # type: ignore[arg-type]
            for idx, field_item in enumerate(field_list):
                if idx:
                    p.text(",")
                    p.breakable()
                p.text("%s=" % field_item.name)
                value = getattr(self, field_item.name)
                if isinstance(value, bytes):
                    p.text(trimmed_repr(value))
                elif isinstance(value, Enum):
                    p.text(value.name)
                else:
                    p.pretty(value)
            p.breakable("")


@define
class EmptyElement(BaseElement):
    """
    Element without payload, such as the invert adjustment block.
    """

    @classmethod
    def read(cls: type[T], fp: BinaryIO, *args: Any, **kwargs: Any) -> T:
        return cls()

    def write(self, fp: BinaryIO, *args: Any, **kwargs: Any) -> int:
        return 0


@define(repr=False, eq=False, order=False)
class ValueElement(BaseElement):
    """
    Single value wrapper that has a `value` attribute.

    Compares and hashes like the wrapped value, so tagged block lookups can
    be checked against plain Python values. Subclasses keep this with
    `@define(repr=False, eq=False, order=False)`.
    """

    value: object = None

    def __eq__(self, other: Any) -> bool:
        if isinstance(other, ValueElement):
            other = other.value
        return self.value == other

    def __ne__(self, other: Any) -> bool:
        return not self.__eq__(other)

    def __hash__(self) -> int:
        return hash(self.value)

    def __bool__(self) -> bool:
        return bool(self.value)

    def __repr__(self) -> str:
        return self.value.__repr__()

    def _repr_pretty_(self, p: Any, cycle: bool) -> None:
        if cycle:
            p.text(self.__repr__())
        elif isinstance(self.value, bytes):
            p.text(trimmed_repr(self.value))
        else:
            p.pretty(self.value)


@define(repr=False, eq=False, order=False)
class IntegerElement(ValueElement):
    """
    Single 4-byte unsigned integer, such as a layer id.
    """

    value: int = field(default=0, converter=int)

    def __int__(self) -> int:
        return self.value

    def __index__(self) -> int:
        return self.value

    @classmethod
    def read(cls: type[T], fp: BinaryIO, **kwargs: Any) -> T:
        return cls(read_fmt("I", fp)[0])  # type: ignore[call-arg]

    def write(self, fp: BinaryIO, **kwargs: Any) -> int:
        return write_fmt(fp, "I", self.value)


@define(repr=False, eq=False, order=False)
class ShortIntegerElement(IntegerElement):
    """
    Single 2-byte integer padded to 4 bytes, as in the posterize and
    threshold blocks.
    """

    @classmethod
    def read(cls: type[T], fp: BinaryIO, **kwargs: Any) -> T:
        return cls(read_fmt("H2x", fp)[0])  # type: ignore[call-arg]

    def write(self, fp: BinaryIO, **kwargs: Any) -> int:
        return write_fmt(fp, "H2x", self.value)


@define(repr=False, eq=False, order=False)
class StringElement(ValueElement):
    """
    Single unicode string.

    .. py:attribute:: value

        `str` value
    """

    value: str = ""

    @classmethod
    def read(cls: type[T], fp: BinaryIO, padding: int = 1, **kwargs: Any) -> T:
        return cls(read_unicode_string(fp, padding=padding))  # type: ignore[call-arg]

    def write(self, fp: BinaryIO, padding: int = 1, **kwargs: Any) -> int:
        return write_unicode_string(fp, self.value, padding=padding)


@define(repr=False)
class ListElement(BaseElement):
    """
    List-like element that has `items` list.
    """

    _items: list = field(factory=list, converter=list)

    def append(self, x: Any) -> None:
        return self._items.append(x)

    def extend(self, L: Any) -> None:
        return self._items.extend(L)

    def insert(self, i: int, x: Any) -> None:
        return self._items.insert(i, x)

    def index(self, x: Any) -> int:
        return self._items.index(x)

    def __len__(self) -> int:
        return self._items.__len__()

    def __iter__(self) -> Any:
        return self._items.__iter__()

    def __getitem__(self, key: Any) -> Any:
        return self._items.__getitem__(key)

    def __setitem__(self, key: Any, value: Any) -> None:
        return self._items.__setitem__(key, value)

    def __repr__(self) -> str:
        return self._items.__repr__()

    def _repr_pretty_(self, p: Any, cycle: bool) -> None:
        if cycle:
            p.text("[...]")
            return

        with p.group(2, "[", "]"):
            p.breakable("")
            for idx, value in enumerate(self._items):
                if idx:
                    p.text(",")
                    p.breakable()
                p.pretty(trimmed_repr(value) if isinstance(value, bytes) else value)
            p.breakable("")

    def write(self, fp: BinaryIO, *args: Any, **kwargs: Any) -> int:
        written = 0
        for item in self:
            if hasattr(item, "write"):
                written += item.write(fp, *args, **kwargs)
            elif isinstance(item, bytes):
                written += write_bytes(fp, item)
        return written


@define(repr=False)
class DictElement(BaseElement):
    """
    Dict-like element that has `items` OrderedDict.
    """

    _items: OrderedDict = field(factory=OrderedDict, converter=OrderedDict)

    def get(self, key: Any, *args: Any) -> Any:
        return self._items.get(self._key_converter(key), *args)

    def items(self) -> Any:
        return self._items.items()

    def keys(self) -> Any:
        return self._items.keys()

    def values(self) -> Any:
        return self._items.values()

    def pop(self, key: Any, *args: Any) -> Any:
        return self._items.pop(self._key_converter(key), *args)

    def __len__(self) -> int:
        return self._items.__len__()

    def __iter__(self) -> Any:
        return self._items.__iter__()

    def __getitem__(self, key: Any) -> Any:
        return self._items.__getitem__(self._key_converter(key))

    def __setitem__(self, key: Any, value: Any) -> None:
        return self._items.__setitem__(self._key_converter(key), value)

    def __delitem__(self, key: Any) -> None:
        return self._items.__delitem__(self._key_converter(key))

    def __contains__(self, key: Any) -> bool:
        return self._items.__contains__(self._key_converter(key))

    def __repr__(self) -> str:
        return dict.__repr__(self._items)

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
                p.pretty(key)
                p.text(": ")
                p.pretty(trimmed_repr(value) if isinstance(value, bytes) else value)
            p.breakable("")

    @classmethod
    def _key_converter(cls, key: Any) -> Any:
        return key

    @classmethod
    def read(cls: type[T], fp: BinaryIO, *args: Any, **kwargs: Any) -> T:
        raise NotImplementedError

    def write(self, fp: BinaryIO, *args: Any, **kwargs: Any) -> int:
        written = 0
        for value in self.values():
            if hasattr(value, "write"):
                written += value.write(fp, *args, **kwargs)
            elif isinstance(value, bytes):
                written += write_bytes(fp, value)
        return written

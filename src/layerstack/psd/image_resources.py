"""
Image resources section structure. Image resources store non-pixel data
associated with the document, such as the thumbnail and version info.

Only the resources listed in :py:class:`~layerstack.constants.Resource` that
have a registered type are parsed; all other resources are kept as plain
bytes so they survive a read/write cycle.

Example::

    from layerstack.constants import Resource

    version_info = psd.image_resources.get_data(Resource.VERSION_INFO)
"""

import io
import logging
from typing import Any, BinaryIO, Optional, TypeVar

from attrs import define, field
from PIL import Image

from layerstack.constants import Resource
from layerstack.psd.base import BaseElement, DictElement, ValueElement
from layerstack.psd.bin_utils import (
    is_readable,
    read_bytes,
    read_fmt,
    read_length_block,
    read_pascal_string,
    read_unicode_string,
    trimmed_repr,
    write_bytes,
    write_fmt,
    write_length_block,
    write_pascal_string,
    write_unicode_string,
)
from layerstack.registry import new_registry
from layerstack.validators import in_
from layerstack.version import __version__

logger = logging.getLogger(__name__)

T_ImageResources = TypeVar("T_ImageResources", bound="ImageResources")
T_ImageResource = TypeVar("T_ImageResource", bound="ImageResource")

TYPES, register = new_registry()


@define(repr=False)
class ImageResources(DictElement):
    """
    Image resources section of the PSD file. Dict of
    :py:class:`.ImageResource`.
    """

    def get_data(self, key: Any, default: Any = None) -> Any:
        """
        Get data from the image resources.

        Shortcut for the following::

            if key in image_resources:
                value = image_resources[key].data
        """
        if key in self:
            value = self[key].data
            if isinstance(value, ValueElement):
                return value.value
            return value
        return default

    def set_data(self, key: Resource, data: Any) -> None:
        """Add or replace the resource ``key`` holding ``data``."""
        self[key] = ImageResource(key=key, data=data)

    @classmethod
    def new(cls: type[T_ImageResources], **kwargs: Any) -> T_ImageResources:
        """
        Create a new default image resources with version info.
        """
        writer = "layerstack %s" % __version__
        return cls(  # type: ignore[arg-type]
            [
                (
                    Resource.VERSION_INFO,
                    ImageResource(
                        key=Resource.VERSION_INFO,
                        data=VersionInfo(
                            has_composite=True, writer=writer, reader=writer
                        ),
                    ),
                ),
            ]
        )

    @classmethod
    def read(
        cls: type[T_ImageResources],
        fp: BinaryIO,
        encoding: str = "macroman",
        **kwargs: Any,
    ) -> T_ImageResources:
        data = read_length_block(fp)
        logger.debug("reading image resources, len=%d" % (len(data)))
        items = []
        with io.BytesIO(data) as f:
            while is_readable(f, 4):
                item = ImageResource.read(f, encoding=encoding)
                items.append((item.key, item))
        return cls(items)  # type: ignore[arg-type]

    def write(self, fp: BinaryIO, encoding: str = "macroman", **kwargs: Any) -> int:
        def writer(f: BinaryIO) -> int:
            written = sum(item.write(f, encoding=encoding) for item in self.values())
            logger.debug("writing image resources, len=%d" % (written))
            return written

        return write_length_block(fp, writer)

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
                    p.text(Resource(key).name)
                except ValueError:
                    p.pretty(key)
                p.text(": ")
                if isinstance(value.data, bytes):
                    p.text(trimmed_repr(value.data))
                else:
                    p.pretty(value.data)
            p.breakable("")


@define(repr=False)
class ImageResource(BaseElement):
    """
    Image resource block.

    .. py:attribute:: signature

        Binary signature, always ``b'8BIM'``.

    .. py:attribute:: key

        Unique identifier for the resource. See
        :py:class:`~layerstack.constants.Resource`.

    .. py:attribute:: name
    .. py:attribute:: data

        The resource data, parsed when the key has a registered type.
    """

    signature: bytes = field(
        default=b"8BIM",
        repr=False,
        validator=in_({b"8BIM", b"MeSa", b"AgHg", b"PHUT", b"DCSR"}),
    )
    key: int = 1000
    name: str = ""
    data: Any = field(default=b"", repr=False)

    @classmethod
    def read(
        cls: type[T_ImageResource],
        fp: BinaryIO,
        encoding: str = "macroman",
        **kwargs: Any,
    ) -> T_ImageResource:
        signature, key = read_fmt("4sH", fp)
        try:
            key = Resource(key)
        except ValueError:
            logger.debug("Unknown image resource %d" % (key))
        name = read_pascal_string(fp, encoding, padding=2)
        raw_data = read_length_block(fp, padding=2)
        if key in TYPES:
            data = TYPES[key].frombytes(raw_data)
        else:
            data = raw_data
        return cls(signature, key, name, data)

    def write(self, fp: BinaryIO, encoding: str = "macroman", **kwargs: Any) -> int:
        written = write_fmt(
            fp, "4sH", self.signature, getattr(self.key, "value", self.key)
        )
        written += write_pascal_string(fp, self.name, encoding, 2)

        def writer(f: BinaryIO) -> int:
            if hasattr(self.data, "write"):
                return self.data.write(f)
            return write_bytes(f, self.data)

        written += write_length_block(fp, writer, padding=2)
        return written


@register(Resource.THUMBNAIL_RESOURCE)
@define(repr=False)
class ThumbnailResource(BaseElement):
    """
    Thumbnail resource structure.

    ``fmt`` is 1 for JPEG data and 0 for raw RGB rows.

    .. py:attribute:: fmt
    .. py:attribute:: width
    .. py:attribute:: height
    .. py:attribute:: row
    .. py:attribute:: total_size
    .. py:attribute:: bits
    .. py:attribute:: planes
    .. py:attribute:: data
    """

    _RAW_MODE = "RGB"

    fmt: int = 1
    width: int = 0
    height: int = 0
    row: int = 0
    total_size: int = 0
    bits: int = 24
    planes: int = 1
    data: bytes = b""

    @classmethod
    def read(cls, fp: BinaryIO, **kwargs: Any) -> "ThumbnailResource":
        fmt, width, height, row, total_size, size, bits, planes = read_fmt("6I2H", fp)
        data = read_bytes(fp, size)
        return cls(fmt, width, height, row, total_size, bits, planes, data)

    def write(self, fp: BinaryIO, **kwargs: Any) -> int:
        written = write_fmt(
            fp,
            "6I2H",
            self.fmt,
            self.width,
            self.height,
            self.row,
            self.total_size,
            len(self.data),
            self.bits,
            self.planes,
        )
        written += write_bytes(fp, self.data)
        return written

    def topil(self) -> Optional[Image.Image]:
        """
        Decode the thumbnail into an RGB :py:class:`PIL.Image.Image`.
        """
        if self.fmt == 0:
            return Image.frombytes(
                "RGB",
                (self.width, self.height),
                self.data,
                "raw",
                self._RAW_MODE,
                self.row,
            )
        elif self.fmt == 1:
            image = Image.open(io.BytesIO(self.data))
            image.load()
            return image.convert("RGB")
        logger.warning("Unknown thumbnail format %d" % (self.fmt))
        return None

    @classmethod
    def frompil(cls, image: Image.Image, quality: int = 85) -> "ThumbnailResource":
        """
        Encode an image as a JPEG thumbnail resource.
        """
        image = image.convert("RGB")
        with io.BytesIO() as f:
            image.save(f, format="JPEG", quality=quality)
            data = f.getvalue()
        width, height = image.size
        row = (width * 24 + 31) // 32 * 4
        return cls(
            fmt=1,
            width=width,
            height=height,
            row=row,
            total_size=row * height,
            bits=24,
            planes=1,
            data=data,
        )


@register(Resource.THUMBNAIL_RESOURCE_PS4)
class ThumbnailResourceV4(ThumbnailResource):
    _RAW_MODE = "BGR"


@register(Resource.VERSION_INFO)
@define(repr=False)
class VersionInfo(BaseElement):
    """
    Version info structure.

    .. py:attribute:: version
    .. py:attribute:: has_composite
    .. py:attribute:: writer
    .. py:attribute:: reader
    .. py:attribute:: file_version
    """

    version: int = 1
    has_composite: bool = False
    writer: str = ""
    reader: str = ""
    file_version: int = 1

    @classmethod
    def read(cls, fp: BinaryIO, **kwargs: Any) -> "VersionInfo":
        version, has_composite = read_fmt("I?", fp)
        writer = read_unicode_string(fp)
        reader = read_unicode_string(fp)
        file_version = read_fmt("I", fp)[0]
        return cls(version, has_composite, writer, reader, file_version)

    def write(self, fp: BinaryIO, **kwargs: Any) -> int:
        written = write_fmt(fp, "I?", self.version, self.has_composite)
        written += write_unicode_string(fp, self.writer)
        written += write_unicode_string(fp, self.reader)
        written += write_fmt(fp, "I", self.file_version)
        return written

"""
Exception types raised by layerstack.

Model errors are raised by structural edits on a
:py:class:`~layerstack.api.document.Document`; decode and encode errors abort
a whole codec operation. All of them derive from :py:class:`ValueError` so
callers that only care about "bad input" can catch that.
"""


class LayerStackError(Exception):
    """Base class of all layerstack errors."""


class ModelError(LayerStackError, ValueError):
    """Invalid operation on the layer model."""


class LayerNotFound(ModelError, KeyError):
    """No layer with the given id exists in the document."""

    def __init__(self, layer_id: object):
        super().__init__("Layer not found: %r" % (layer_id,))
        self.layer_id = layer_id

    def __str__(self) -> str:
        return self.args[0]


class InvalidIndex(ModelError, IndexError):
    """Insertion index outside of the sibling list."""


class DecodeError(LayerStackError, ValueError):
    """The byte stream is not a PSD document layerstack can read."""


class BadSignature(DecodeError):
    pass


class UnsupportedDepth(DecodeError):
    pass


class UnsupportedColorMode(DecodeError):
    pass


class TruncatedData(DecodeError, EOFError):
    pass


class UnsupportedCompression(DecodeError):
    pass


class EncodeError(LayerStackError, ValueError):
    """The document cannot be serialized."""


class UnsupportedBlendMode(EncodeError):
    pass


class DimensionOverflow(EncodeError):
    pass


class Cancelled(LayerStackError):
    """The codec operation was cancelled through its token."""

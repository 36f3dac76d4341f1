"""
PSD codec.

Converts between PSD/PSB bytes and the layer model.

Example::

    from layerstack.codec import decode, encode

    with open('input.psd', 'rb') as f:
        document = decode(f.read())

    with open('output.psd', 'wb') as f:
        f.write(encode(document))
"""

from layerstack.codec.blend_modes import from_tag, to_tag
from layerstack.codec.decoder import decode
from layerstack.codec.encoder import encode, estimate_size, validate_for_export

__all__ = [
    "decode",
    "encode",
    "estimate_size",
    "from_tag",
    "to_tag",
    "validate_for_export",
]

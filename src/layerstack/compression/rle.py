"""
Apple PackBits run-length codec used for RLE channel data.

A header byte ``n`` selects the packet kind:

- ``0 <= n <= 127``: copy the next ``n + 1`` literal bytes
- ``129 <= n <= 255``: repeat the next byte ``257 - n`` times
- ``n == 128``: no-op

Example::

    from layerstack.compression.rle import encode, decode

    raw = b'\\x00' * 100 + b'\\xff' * 50
    assert decode(encode(raw), len(raw)) == raw
"""

MAX_RUN = 128


def decode(data: bytes, size: int) -> bytes:
    """decode(data, size) -> bytes

    Decode PackBits ``data`` into exactly ``size`` bytes.

    :raise ValueError: on malformed packets or a size mismatch.
    """
    i = 0
    length = len(data)
    result = bytearray()

    while i < length:
        header = data[i]
        i += 1
        if header > 128:
            count = 257 - header
            if i >= length or len(result) + count > size:
                raise ValueError("Invalid RLE compression")
            result.extend(data[i : i + 1] * count)
            i += 1
        elif header < 128:
            count = header + 1
            if i + count > length or len(result) + count > size:
                raise ValueError("Invalid RLE compression")
            result.extend(data[i : i + count])
            i += count

    if len(result) != size:
        raise ValueError("Expected %d bytes but decoded %d bytes" % (size, len(result)))

    return bytes(result)


def encode(data: bytes) -> bytes:
    """encode(data) -> bytes

    PackBits encoder. Runs of three or more equal bytes become repeat
    packets; everything else is grouped into literal packets.
    """
    length = len(data)
    result = bytearray()
    literal_start = i = 0

    def flush_literal(end: int) -> None:
        start = literal_start
        while start < end:
            chunk = data[start : min(end, start + MAX_RUN)]
            result.append(len(chunk) - 1)
            result.extend(chunk)
            start += len(chunk)

    while i < length:
        run = 1
        while i + run < length and run < MAX_RUN and data[i + run] == data[i]:
            run += 1
        if run >= 3:
            flush_literal(i)
            result.extend((257 - run, data[i]))
            i += run
            literal_start = i
        else:
            i += run
    flush_literal(length)
    return bytes(result)

"""PNG encoder for 8-bit interleaved pixel data.

Pixels are stored left to right, top to bottom, with ``comp`` channels each:
1 = grey, 2 = grey + alpha, 3 = RGB, 4 = RGBA. The output keeps the same
number of channels as the input.
"""

from __future__ import annotations

import os
import struct
import zlib
from pathlib import Path

from .deflate import zlib_compress

_SIGNATURE = bytes((137, 80, 78, 71, 13, 10, 26, 10))
_COLOR_TYPES = {1: 0, 2: 4, 3: 2, 4: 6}
_FILTER_COUNT = 5
# On the first row there is no previous row; the filters that would read it
# are replaced by equivalents that only look to the left.
_FIRST_ROW_FILTERS = (0, 1, 0, 5, 6)


def paeth(a, b, c) -> int:
    """Return the Paeth predictor of left ``a``, up ``b`` and upper-left ``c``."""
    p = a + b - c
    pa, pb, pc = abs(p - a), abs(p - b), abs(p - c)
    if pa <= pb and pa <= pc:
        return a & 0xFF
    if pb <= pc:
        return b & 0xFF
    return c & 0xFF


def _filter_line(cur: bytes, prev: bytes, n: int, filter_type: int, first: bool) -> bytes:
    kind = _FIRST_ROW_FILTERS[filter_type] if first else filter_type
    if kind == 0:
        return bytes(cur)
    out = bytearray(len(cur))
    for i, value in enumerate(cur):
        left = cur[i - n] if i >= n else 0
        up = prev[i] if prev else 0
        upleft = prev[i - n] if prev and i >= n else 0
        if kind == 1:
            predicted = left
        elif kind == 2:
            predicted = up
        elif kind == 3:
            predicted = (left + up) >> 1
        elif kind == 4:
            predicted = paeth(left, up, upleft)
        elif kind == 5:
            predicted = left >> 1
        else:
            predicted = paeth(left, 0, 0)
        out[i] = (value - predicted) & 0xFF
    return bytes(out)


def _cost(line: bytes) -> int:
    """Sum of the filtered bytes read as signed values, in magnitude."""
    return sum(v if v < 128 else 256 - v for v in line)


def _chunk(tag: bytes, payload: bytes) -> bytes:
    crc = zlib.crc32(tag + payload) & 0xFFFFFFFF
    return struct.pack(">I", len(payload)) + tag + payload + struct.pack(">I", crc)


def encode_png(pixels, width, height, comp, stride=0, force_filter=-1,
               compression_level=8, flip=False) -> bytes:
    """Return a PNG file for ``pixels``.

    ``stride`` is the distance in bytes between row starts (0 means packed
    rows). ``force_filter`` selects a filter 0..4; any other value picks the
    cheapest filter per row. ``compression_level`` bounds the match search.
    """
    if comp not in _COLOR_TYPES:
        raise ValueError(f"unsupported channel count: {comp}")
    if width < 0 or height < 0:
        raise ValueError("image dimensions must not be negative")
    row_len = width * comp
    if stride == 0:
        stride = row_len
    if stride < row_len:
        raise ValueError("stride is smaller than a row of pixels")
    data = bytes(pixels)
    if height and len(data) < (height - 1) * stride + row_len:
        raise ValueError("not enough pixel data for the image size")
    if force_filter >= _FILTER_COUNT:
        force_filter = -1

    filtered = bytearray()
    prev = b""
    for y in range(height):
        src = height - 1 - y if flip else y
        cur = data[src * stride:src * stride + row_len]
        first = y == 0
        if force_filter > -1:
            chosen = force_filter
            line = _filter_line(cur, prev, comp, chosen, first)
        else:
            chosen, line, best = 0, b"", None
            for candidate in range(_FILTER_COUNT):
                attempt = _filter_line(cur, prev, comp, candidate, first)
                cost = _cost(attempt)
                if best is None or cost < best:
                    best, chosen, line = cost, candidate, attempt
        filtered.append(chosen)
        filtered += line
        prev = cur

    compressed = zlib_compress(bytes(filtered), compression_level)
    header = struct.pack(">II", width, height) + bytes((8, _COLOR_TYPES[comp], 0, 0, 0))
    return (
        _SIGNATURE
        + _chunk(b"IHDR", header)
        + _chunk(b"IDAT", compressed)
        + _chunk(b"IEND", b"")
    )


def write_png(path, pixels, width, height, comp, stride=0, force_filter=-1,
              compression_level=8, flip=False) -> int:
    """Write a PNG file to ``path``; return the number of bytes written."""
    payload = encode_png(pixels, width, height, comp, stride, force_filter,
                         compression_level, flip)
    Path(os.fspath(path)).write_bytes(payload)
    return len(payload)
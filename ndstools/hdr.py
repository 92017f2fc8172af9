"""Radiance RGBE (.hdr) encoder for linear floating-point pixel data.

Pixels are stored left to right, top to bottom, with ``comp`` channels each:
1 = grey, 2 = grey + alpha, 3 = RGB, 4 = RGBA. Alpha is discarded and grey
is replicated across the three colour channels.
"""

from __future__ import annotations

import math
import os
import struct
from array import array
from pathlib import Path

_HEADER = b"#?RADIANCE\n# Written by stb_image_write.h\nFORMAT=32-bit_rle_rgbe\n"
_EXPOSURE = "EXPOSURE=          1.0000000000000\n\n-Y {height} +X {width}\n"
_MIN_RLE_WIDTH = 8
_MAX_RLE_WIDTH = 32768
_MAX_DUMP = 128
_MAX_RUN = 127


def _f32(value: float) -> float:
    """Round ``value`` to single precision."""
    return struct.unpack("<f", struct.pack("<f", value))[0]


_TINY = _f32(1e-32)


def _to_byte(value: float) -> int:
    return int(value) & 0xFF


def linear_to_rgbe(red, green, blue) -> bytes:
    """Encode one linear colour as four RGBE bytes."""
    red, green, blue = _f32(red), _f32(green), _f32(blue)
    maxcomp = max(red, max(green, blue))
    if maxcomp < _TINY:
        return bytes(4)
    mantissa, exponent = math.frexp(maxcomp)
    normalize = _f32(_f32(mantissa) * 256.0 / maxcomp)
    return bytes((
        _to_byte(_f32(red * normalize)),
        _to_byte(_f32(green * normalize)),
        _to_byte(_f32(blue * normalize)),
        (exponent + 128) & 0xFF,
    ))


def _pixel_rgbe(scanline, x: int, comp: int) -> bytes:
    base = x * comp
    if comp >= 3:
        return linear_to_rgbe(scanline[base], scanline[base + 1], scanline[base + 2])
    grey = scanline[base]
    return linear_to_rgbe(grey, grey, grey)


def _rle_component(values: bytes) -> bytes:
    """Run-length encode one component plane of a scanline."""
    out = bytearray()
    width = len(values)
    x = 0
    while x < width:
        r = x
        while r + 2 < width:
            if values[r] == values[r + 1] == values[r + 2]:
                break
            r += 1
        if r + 2 >= width:
            r = width
        while x < r:
            length = min(r - x, _MAX_DUMP)
            out.append(length)
            out += values[x:x + length]
            x += length
        if r + 2 < width:
            while r < width and values[r] == values[x]:
                r += 1
            while x < r:
                length = min(r - x, _MAX_RUN)
                out.append(length + 128)
                out.append(values[x])
                x += length
    return bytes(out)


def _scanline(scanline, width: int, comp: int) -> bytes:
    pixels = [_pixel_rgbe(scanline, x, comp) for x in range(width)]
    if width < _MIN_RLE_WIDTH or width >= _MAX_RLE_WIDTH:
        return b"".join(pixels)
    header = bytes((2, 2, (width & 0xFF00) >> 8, width & 0xFF))
    planes = (bytes(pixel[c] for pixel in pixels) for c in range(4))
    return header + b"".join(_rle_component(plane) for plane in planes)


def encode_hdr(width, height, comp, data, flip=False) -> bytes:
    """Return a Radiance HDR file for the given linear float pixels."""
    if data is None:
        raise ValueError("no pixel data")
    if width <= 0 or height <= 0:
        raise ValueError("image dimensions must be positive")
    if comp not in (1, 2, 3, 4):
        raise ValueError(f"unsupported channel count: {comp}")
    values = array("f", data)
    row_len = width * comp
    if len(values) < row_len * height:
        raise ValueError("not enough pixel data for the image size")

    parts = [_HEADER, _EXPOSURE.format(height=height, width=width).encode("ascii")]
    for i in range(height):
        row = height - 1 - i if flip else i
        parts.append(_scanline(values[row * row_len:(row + 1) * row_len], width, comp))
    return b"".join(parts)


def write_hdr(path, width, height, comp, data, flip=False) -> int:
    """Write a Radiance HDR file to ``path``; return the number of bytes written."""
    payload = encode_hdr(width, height, comp, data, flip)
    Path(os.fspath(path)).write_bytes(payload)
    return len(payload)
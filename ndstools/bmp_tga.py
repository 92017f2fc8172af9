"""BMP and TGA encoders for 8-bit interleaved pixel data.

Pixels are stored left to right, top to bottom, with ``comp`` channels each:
1 = grey, 2 = grey + alpha, 3 = RGB, 4 = RGBA.
"""

from __future__ import annotations

import os
from pathlib import Path

_BACKGROUND = (255, 0, 255)
_MAX_RUN = 128


def _pack(fmt: str, *values: int) -> bytes:
    """Pack little-endian fields; each character of ``fmt`` is a byte width."""
    widths = [int(ch) for ch in fmt if ch != " "]
    if len(widths) != len(values):
        raise ValueError("field count does not match the format")
    return b"".join(
        (value & ((1 << (8 * width)) - 1)).to_bytes(width, "little")
        for width, value in zip(widths, values)
    )


def _check(width: int, height: int, comp: int, data) -> bytes:
    if width < 0 or height < 0:
        raise ValueError("image dimensions must not be negative")
    if comp not in (1, 2, 3, 4):
        raise ValueError(f"unsupported channel count: {comp}")
    data = bytes(data)
    if len(data) < width * height * comp:
        raise ValueError("not enough pixel data for the image size")
    return data


def _composite(channel: int, background: int, alpha: int) -> int:
    scaled = (channel - background) * alpha
    quotient = abs(scaled) // 255
    return (background + (quotient if scaled >= 0 else -quotient)) & 0xFF


def _pixel(d: bytes, comp: int, write_alpha: bool, expand_mono: bool) -> bytes:
    """Encode one pixel in BGR order, optionally followed by its alpha."""
    out = bytearray()
    if comp <= 2:
        out += bytes((d[0],)) * (3 if expand_mono else 1)
    elif comp == 4 and not write_alpha:
        px = [_composite(d[k], bg, d[3]) for k, bg in enumerate(_BACKGROUND)]
        out += bytes((px[2], px[1], px[0]))
    else:
        out += bytes((d[2], d[1], d[0]))
    if write_alpha:
        out.append(d[comp - 1])
    return bytes(out)


def _row_order(height: int, flip: bool) -> range:
    """Rows bottom-up by default; top-down when flipped."""
    return range(height) if flip else range(height - 1, -1, -1)


def _row(data: bytes, width: int, comp: int, j: int) -> list[bytes]:
    start = j * width * comp
    return [data[start + i * comp:start + (i + 1) * comp] for i in range(width)]


def _pixel_rows(data, width, height, comp, flip, write_alpha, expand_mono, pad) -> bytes:
    padding = bytes(pad)
    return b"".join(
        b"".join(_pixel(p, comp, write_alpha, expand_mono) for p in _row(data, width, comp, j))
        + padding
        for j in _row_order(height, flip)
    )


def encode_bmp(width, height, comp, data, flip=False) -> bytes:
    """Return a BMP file: 24-bit BGR, or 32-bit BGRA with a V4 header for RGBA."""
    data = _check(width, height, comp, data)
    if comp != 4:
        pad = (-width * 3) & 3
        header = _pack(
            "11 4 22 4" "4 44 22 444444",
            ord("B"), ord("M"), 14 + 40 + (width * 3 + pad) * height, 0, 0, 14 + 40,
            40, width, height, 1, 24, 0, 0, 0, 0, 0, 0,
        )
        return header + _pixel_rows(data, width, height, comp, flip, False, True, pad)
    header = _pack(
        "11 4 22 4" "4 44 22 444444 4444 4 444 444 444 444",
        ord("B"), ord("M"), 14 + 108 + width * height * 4, 0, 0, 14 + 108,
        108, width, height, 1, 32, 3, 0, 0, 0, 0, 0,
        0xFF0000, 0xFF00, 0xFF, 0xFF000000, 0,
        0, 0, 0, 0, 0, 0, 0, 0, 0, 0, 0, 0,
    )
    return header + _pixel_rows(data, width, height, comp, flip, True, True, 0)


def _rle_row(pixels: list[bytes], comp: int, has_alpha: bool) -> bytes:
    out = bytearray()
    count = len(pixels)
    i = 0
    while i < count:
        length = 1
        differs = True
        if i < count - 1:
            length = 2
            differs = pixels[i] != pixels[i + 1]
            if differs:
                prev = i
                for k in range(i + 2, count):
                    if length >= _MAX_RUN:
                        break
                    if pixels[prev] != pixels[k]:
                        prev += 1
                        length += 1
                    else:
                        length -= 1
                        break
            else:
                for k in range(i + 2, count):
                    if length >= _MAX_RUN or pixels[i] != pixels[k]:
                        break
                    length += 1
        if differs:
            out.append((length - 1) & 0xFF)
            for pixel in pixels[i:i + length]:
                out += _pixel(pixel, comp, has_alpha, False)
        else:
            out.append((length - 129) & 0xFF)
            out += _pixel(pixels[i], comp, has_alpha, False)
        i += length
    return bytes(out)


def encode_tga(width, height, comp, data, rle=True, flip=False) -> bytes:
    """Return a TGA file, run-length encoded unless ``rle`` is false."""
    data = _check(width, height, comp, data)
    has_alpha = comp in (2, 4)
    color_bytes = comp - 1 if has_alpha else comp
    image_type = 3 if color_bytes < 2 else 2
    bits = (color_bytes + has_alpha) * 8
    alpha_bits = has_alpha * 8

    if not rle:
        header = _pack(
            "111 221 2222 11",
            0, 0, image_type, 0, 0, 0, 0, 0, width, height, bits, alpha_bits,
        )
        return header + _pixel_rows(data, width, height, comp, flip, has_alpha, False, 0)

    header = _pack(
        "111 221 2222 11",
        0, 0, image_type + 8, 0, 0, 0, 0, 0, width, height, bits, alpha_bits,
    )
    body = b"".join(
        _rle_row(_row(data, width, comp, j), comp, has_alpha)
        for j in _row_order(height, flip)
    )
    return header + body


def _write(path, payload: bytes) -> int:
    Path(os.fspath(path)).write_bytes(payload)
    return len(payload)


def write_bmp(path, width, height, comp, data, flip=False) -> int:
    """Write a BMP file to ``path``; return the number of bytes written."""
    return _write(path, encode_bmp(width, height, comp, data, flip))


def write_tga(path, width, height, comp, data, rle=True, flip=False) -> int:
    """Write a TGA file to ``path``; return the number of bytes written."""
    return _write(path, encode_tga(width, height, comp, data, rle, flip))
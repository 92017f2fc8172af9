"""Baseline JPEG encoder for 8-bit interleaved pixel data.

Pixels are stored left to right, top to bottom, with ``comp`` channels each:
1 = grey, 2 = grey + alpha, 3 = RGB, 4 = RGBA. Alpha is ignored. Arithmetic
is carried out in single precision so that output is reproducible.
"""

from __future__ import annotations

import os
import struct
from pathlib import Path

_F32 = struct.Struct("<f")


def _f(value: float) -> float:
    """Round ``value`` to single precision."""
    return _F32.unpack(_F32.pack(value))[0]


_ZIGZAG = (
    0, 1, 5, 6, 14, 15, 27, 28, 2, 4, 7, 13, 16, 26, 29, 42, 3, 8, 12, 17, 25, 30, 41, 43,
    9, 11, 18, 24, 31, 40, 44, 53, 10, 19, 23, 32, 39, 45, 52, 54, 20, 22, 33, 38, 46, 51,
    55, 60, 21, 34, 37, 47, 50, 56, 59, 61, 35, 36, 48, 49, 57, 58, 62, 63,
)

_DC_LUM_COUNTS = (0, 1, 5, 1, 1, 1, 1, 1, 1, 0, 0, 0, 0, 0, 0, 0)
_DC_LUM_VALUES = tuple(range(12))
_AC_LUM_COUNTS = (0, 2, 1, 3, 3, 2, 4, 3, 5, 5, 4, 4, 0, 0, 1, 0x7D)
_AC_LUM_VALUES = (
    0x01, 0x02, 0x03, 0x00, 0x04, 0x11, 0x05, 0x12, 0x21, 0x31, 0x41, 0x06, 0x13, 0x51, 0x61, 0x07,
    0x22, 0x71, 0x14, 0x32, 0x81, 0x91, 0xA1, 0x08, 0x23, 0x42, 0xB1, 0xC1, 0x15, 0x52, 0xD1, 0xF0,
    0x24, 0x33, 0x62, 0x72, 0x82, 0x09, 0x0A, 0x16, 0x17, 0x18, 0x19, 0x1A, 0x25, 0x26, 0x27, 0x28,
    0x29, 0x2A, 0x34, 0x35, 0x36, 0x37, 0x38, 0x39, 0x3A, 0x43, 0x44, 0x45, 0x46, 0x47, 0x48, 0x49,
    0x4A, 0x53, 0x54, 0x55, 0x56, 0x57, 0x58, 0x59, 0x5A, 0x63, 0x64, 0x65, 0x66, 0x67, 0x68, 0x69,
    0x6A, 0x73, 0x74, 0x75, 0x76, 0x77, 0x78, 0x79, 0x7A, 0x83, 0x84, 0x85, 0x86, 0x87, 0x88, 0x89,
    0x8A, 0x92, 0x93, 0x94, 0x95, 0x96, 0x97, 0x98, 0x99, 0x9A, 0xA2, 0xA3, 0xA4, 0xA5, 0xA6, 0xA7,
    0xA8, 0xA9, 0xAA, 0xB2, 0xB3, 0xB4, 0xB5, 0xB6, 0xB7, 0xB8, 0xB9, 0xBA, 0xC2, 0xC3, 0xC4, 0xC5,
    0xC6, 0xC7, 0xC8, 0xC9, 0xCA, 0xD2, 0xD3, 0xD4, 0xD5, 0xD6, 0xD7, 0xD8, 0xD9, 0xDA, 0xE1, 0xE2,
    0xE3, 0xE4, 0xE5, 0xE6, 0xE7, 0xE8, 0xE9, 0xEA, 0xF1, 0xF2, 0xF3, 0xF4, 0xF5, 0xF6, 0xF7, 0xF8,
    0xF9, 0xFA,
)
_DC_CHROM_COUNTS = (0, 3, 1, 1, 1, 1, 1, 1, 1, 1, 1, 0, 0, 0, 0, 0)
_DC_CHROM_VALUES = tuple(range(12))
_AC_CHROM_COUNTS = (0, 2, 1, 2, 4, 4, 3, 4, 7, 5, 4, 4, 0, 1, 2, 0x77)
_AC_CHROM_VALUES = (
    0x00, 0x01, 0x02, 0x03, 0x11, 0x04, 0x05, 0x21, 0x31, 0x06, 0x12, 0x41, 0x51, 0x07, 0x61, 0x71,
    0x13, 0x22, 0x32, 0x81, 0x08, 0x14, 0x42, 0x91, 0xA1, 0xB1, 0xC1, 0x09, 0x23, 0x33, 0x52, 0xF0,
    0x15, 0x62, 0x72, 0xD1, 0x0A, 0x16, 0x24, 0x34, 0xE1, 0x25, 0xF1, 0x17, 0x18, 0x19, 0x1A, 0x26,
    0x27, 0x28, 0x29, 0x2A, 0x35, 0x36, 0x37, 0x38, 0x39, 0x3A, 0x43, 0x44, 0x45, 0x46, 0x47, 0x48,
    0x49, 0x4A, 0x53, 0x54, 0x55, 0x56, 0x57, 0x58, 0x59, 0x5A, 0x63, 0x64, 0x65, 0x66, 0x67, 0x68,
    0x69, 0x6A, 0x73, 0x74, 0x75, 0x76, 0x77, 0x78, 0x79, 0x7A, 0x82, 0x83, 0x84, 0x85, 0x86, 0x87,
    0x88, 0x89, 0x8A, 0x92, 0x93, 0x94, 0x95, 0x96, 0x97, 0x98, 0x99, 0x9A, 0xA2, 0xA3, 0xA4, 0xA5,
    0xA6, 0xA7, 0xA8, 0xA9, 0xAA, 0xB2, 0xB3, 0xB4, 0xB5, 0xB6, 0xB7, 0xB8, 0xB9, 0xBA, 0xC2, 0xC3,
    0xC4, 0xC5, 0xC6, 0xC7, 0xC8, 0xC9, 0xCA, 0xD2, 0xD3, 0xD4, 0xD5, 0xD6, 0xD7, 0xD8, 0xD9, 0xDA,
    0xE2, 0xE3, 0xE4, 0xE5, 0xE6, 0xE7, 0xE8, 0xE9, 0xEA, 0xF2, 0xF3, 0xF4, 0xF5, 0xF6, 0xF7, 0xF8,
    0xF9, 0xFA,
)

_YQT = (
    16, 11, 10, 16, 24, 40, 51, 61, 12, 12, 14, 19, 26, 58, 60, 55, 14, 13, 16, 24, 40, 57, 69, 56,
    14, 17, 22, 29, 51, 87, 80, 62, 18, 22, 37, 56, 68, 109, 103, 77, 24, 35, 55, 64, 81, 104, 113,
    92, 49, 64, 78, 87, 103, 121, 120, 101, 72, 92, 95, 98, 112, 100, 103, 99,
)
_UVQT = (
    17, 18, 24, 47, 99, 99, 99, 99, 18, 21, 26, 66, 99, 99, 99, 99, 24, 26, 56, 99, 99, 99, 99, 99,
    47, 66, 99, 99, 99, 99, 99, 99,
) + (99,) * 32

_SQRT8 = _f(2.828427125)
_AASF = tuple(
    _f(_f(c) * _SQRT8)
    for c in (1.0, 1.387039845, 1.306562965, 1.175875602,
              1.0, 0.785694958, 0.541196100, 0.275899379)
)

_C4 = _f(0.707106781)
_C6 = _f(0.382683433)
_C2_MINUS_C6 = _f(0.541196100)
_C2_PLUS_C6 = _f(1.306562965)

_K_YR, _K_YG, _K_YB = _f(0.29900), _f(0.58700), _f(0.11400)
_K_UR, _K_UG, _K_UB = _f(-0.16874), _f(0.33126), _f(0.50000)
_K_VR, _K_VG, _K_VB = _f(0.50000), _f(0.41869), _f(0.08131)
_QUARTER = _f(0.25)

_HEAD0 = bytes((0xFF, 0xD8, 0xFF, 0xE0, 0, 0x10)) + b"JFIF" + bytes(
    (0, 1, 1, 0, 0, 1, 0, 1, 0, 0, 0xFF, 0xDB, 0, 0x84, 0)
)
_HEAD2 = bytes((0xFF, 0xDA, 0, 0xC, 3, 1, 0, 2, 0x11, 3, 0x11, 0, 0x3F, 0))
_FILL_BITS = (0x7F, 7)
_NO_CODE = (0, 0)


def _huffman_table(counts, values) -> dict[int, tuple[int, int]]:
    """Build canonical (code, length) pairs from JPEG DHT counts and symbols."""
    table: dict[int, tuple[int, int]] = {}
    symbols = iter(values)
    code = 0
    for length, count in enumerate(counts, start=1):
        for _ in range(count):
            table[next(symbols)] = (code, length)
            code += 1
        code <<= 1
    return table


_YDC_HT = _huffman_table(_DC_LUM_COUNTS, _DC_LUM_VALUES)
_YAC_HT = _huffman_table(_AC_LUM_COUNTS, _AC_LUM_VALUES)
_UVDC_HT = _huffman_table(_DC_CHROM_COUNTS, _DC_CHROM_VALUES)
_UVAC_HT = _huffman_table(_AC_CHROM_COUNTS, _AC_CHROM_VALUES)


class _BitWriter:
    """Most-significant-bit-first writer with 0xFF byte stuffing."""

    def __init__(self, out: bytearray) -> None:
        self.out = out
        self.buffer = 0
        self.count = 0

    def write(self, bits: tuple[int, int]) -> None:
        code, length = bits
        self.count += length
        self.buffer |= code << (24 - self.count)
        while self.count >= 8:
            byte = (self.buffer >> 16) & 0xFF
            self.out.append(byte)
            if byte == 0xFF:
                self.out.append(0)
            self.buffer = (self.buffer << 8) & 0xFFFFFF
            self.count -= 8


def _dct(block: list[float], indices: range) -> None:
    """One-dimensional AAN forward DCT over eight entries of ``block``."""
    d0, d1, d2, d3, d4, d5, d6, d7 = (block[i] for i in indices)
    tmp0, tmp7 = _f(d0 + d7), _f(d0 - d7)
    tmp1, tmp6 = _f(d1 + d6), _f(d1 - d6)
    tmp2, tmp5 = _f(d2 + d5), _f(d2 - d5)
    tmp3, tmp4 = _f(d3 + d4), _f(d3 - d4)

    tmp10, tmp13 = _f(tmp0 + tmp3), _f(tmp0 - tmp3)
    tmp11, tmp12 = _f(tmp1 + tmp2), _f(tmp1 - tmp2)
    out0, out4 = _f(tmp10 + tmp11), _f(tmp10 - tmp11)
    z1 = _f(_f(tmp12 + tmp13) * _C4)
    out2, out6 = _f(tmp13 + z1), _f(tmp13 - z1)

    tmp10 = _f(tmp4 + tmp5)
    tmp11 = _f(tmp5 + tmp6)
    tmp12 = _f(tmp6 + tmp7)
    z5 = _f(_f(tmp10 - tmp12) * _C6)
    z2 = _f(_f(tmp10 * _C2_MINUS_C6) + z5)
    z4 = _f(_f(tmp12 * _C2_PLUS_C6) + z5)
    z3 = _f(tmp11 * _C4)
    z11, z13 = _f(tmp7 + z3), _f(tmp7 - z3)

    results = (out0, _f(z11 + z4), out2, _f(z13 - z2),
               out4, _f(z13 + z2), out6, _f(z11 - z4))
    for i, value in zip(indices, results):
        block[i] = value


def _magnitude_bits(value: int) -> tuple[int, int]:
    length = max(1, abs(value).bit_length())
    if value < 0:
        value -= 1
    return value & ((1 << length) - 1), length


def _process_block(bits: _BitWriter, block: list[float], fdtbl, dc: int,
                   dc_table, ac_table) -> int:
    """Transform, quantise and entropy-code one 8x8 block; return its DC."""
    for row in range(8):
        _dct(block, range(row * 8, row * 8 + 8))
    for col in range(8):
        _dct(block, range(col, 64, 8))

    du = [0] * 64
    for j in range(64):
        v = _f(block[j] * fdtbl[j])
        du[_ZIGZAG[j]] = int(_f(v - 0.5) if v < 0 else _f(v + 0.5))

    diff = du[0] - dc
    if diff == 0:
        bits.write(dc_table.get(0, _NO_CODE))
    else:
        magnitude = _magnitude_bits(diff)
        bits.write(dc_table.get(magnitude[1], _NO_CODE))
        bits.write(magnitude)

    eob = ac_table.get(0x00, _NO_CODE)
    zero_run16 = ac_table.get(0xF0, _NO_CODE)
    end0pos = 63
    while end0pos > 0 and du[end0pos] == 0:
        end0pos -= 1
    if end0pos == 0:
        bits.write(eob)
        return du[0]

    i = 1
    while i <= end0pos:
        start = i
        while du[i] == 0 and i <= end0pos:
            i += 1
        zeros = i - start
        if zeros >= 16:
            for _ in range(zeros >> 4):
                bits.write(zero_run16)
            zeros &= 15
        magnitude = _magnitude_bits(du[i])
        bits.write(ac_table.get((zeros << 4) + magnitude[1], _NO_CODE))
        bits.write(magnitude)
        i += 1
    if end0pos != 63:
        bits.write(eob)
    return du[0]


def _quant_tables(quality: int) -> tuple[bytes, bytes]:
    y_table = bytearray(64)
    uv_table = bytearray(64)
    for i in range(64):
        yti = (_YQT[i] * quality + 50) // 100
        y_table[_ZIGZAG[i]] = min(max(yti, 1), 255)
        uvti = (_UVQT[i] * quality + 50) // 100
        uv_table[_ZIGZAG[i]] = min(max(uvti, 1), 255)
    return bytes(y_table), bytes(uv_table)


def _scale_table(table: bytes) -> list[float]:
    return [
        _f(1.0 / _f(_f(table[_ZIGZAG[k]] * _AASF[k // 8]) * _AASF[k % 8]))
        for k in range(64)
    ]


def _dht(counts, values) -> bytes:
    return bytes(counts) + bytes(values)


def _convert(r: float, g: float, b: float) -> tuple[float, float, float]:
    y = _f(_f(_f(_f(_K_YR * r) + _f(_K_YG * g)) + _f(_K_YB * b)) - 128)
    u = _f(_f(_f(_K_UR * r) - _f(_K_UG * g)) + _f(_K_UB * b))
    v = _f(_f(_f(_K_VR * r) - _f(_K_VG * g)) - _f(_K_VB * b))
    return y, u, v


def _sample(data: bytes, width: int, height: int, comp: int, flip: bool,
            x: int, y: int, size: int):
    """Return Y, U and V planes of a size x size tile, edges replicated."""
    ofs_g = 1 if comp > 2 else 0
    ofs_b = 2 if comp > 2 else 0
    planes = ([], [], [])
    for row in range(y, y + size):
        clamped = min(row, height - 1)
        src = height - 1 - clamped if flip else clamped
        base = src * width * comp
        for col in range(x, x + size):
            p = base + min(col, width - 1) * comp
            values = _convert(float(data[p]), float(data[p + ofs_g]), float(data[p + ofs_b]))
            for plane, value in zip(planes, values):
                plane.append(value)
    return planes


def _sub_block(plane: list[float], offset: int) -> list[float]:
    return [plane[offset + r * 16 + c] for r in range(8) for c in range(8)]


def _downsample(plane: list[float]) -> list[float]:
    out = []
    for yy in range(8):
        for xx in range(8):
            j = yy * 32 + xx * 2
            total = _f(_f(_f(plane[j] + plane[j + 1]) + plane[j + 16]) + plane[j + 17])
            out.append(_f(total * _QUARTER))
    return out


def encode_jpeg(width, height, comp, data, quality=90, flip=False) -> bytes:
    """Return a baseline JPEG file; ``quality`` runs 1..100 (0 means 90).

    Qualities of 90 and below subsample the chroma planes 2x2.
    """
    if data is None or not width or not height:
        raise ValueError("image data and non-zero dimensions are required")
    if width < 0 or height < 0:
        raise ValueError("image dimensions must not be negative")
    if comp < 1 or comp > 4:
        raise ValueError(f"unsupported channel count: {comp}")
    data = bytes(data)
    if len(data) < width * height * comp:
        raise ValueError("not enough pixel data for the image size")

    quality = quality or 90
    subsample = quality <= 90
    quality = min(max(quality, 1), 100)
    quality = 5000 // quality if quality < 50 else 200 - quality * 2

    y_table, uv_table = _quant_tables(quality)
    fdtbl_y = _scale_table(y_table)
    fdtbl_uv = _scale_table(uv_table)

    head1 = bytes((
        0xFF, 0xC0, 0, 0x11, 8, (height >> 8) & 0xFF, height & 0xFF,
        (width >> 8) & 0xFF, width & 0xFF, 3, 1, 0x22 if subsample else 0x11,
        0, 2, 0x11, 1, 3, 0x11, 1, 0xFF, 0xC4, 0x01, 0xA2, 0,
    ))
    out = bytearray()
    out += _HEAD0 + y_table + b"\x01" + uv_table + head1
    out += _dht(_DC_LUM_COUNTS, _DC_LUM_VALUES) + b"\x10"
    out += _dht(_AC_LUM_COUNTS, _AC_LUM_VALUES) + b"\x01"
    out += _dht(_DC_CHROM_COUNTS, _DC_CHROM_VALUES) + b"\x11"
    out += _dht(_AC_CHROM_COUNTS, _AC_CHROM_VALUES)
    out += _HEAD2

    bits = _BitWriter(out)
    dc_y = dc_u = dc_v = 0
    if subsample:
        for y in range(0, height, 16):
            for x in range(0, width, 16):
                plane_y, plane_u, plane_v = _sample(data, width, height, comp, flip, x, y, 16)
                for offset in (0, 8, 128, 136):
                    dc_y = _process_block(bits, _sub_block(plane_y, offset), fdtbl_y,
                                          dc_y, _YDC_HT, _YAC_HT)
                dc_u = _process_block(bits, _downsample(plane_u), fdtbl_uv,
                                      dc_u, _UVDC_HT, _UVAC_HT)
                dc_v = _process_block(bits, _downsample(plane_v), fdtbl_uv,
                                      dc_v, _UVDC_HT, _UVAC_HT)
    else:
        for y in range(0, height, 8):
            for x in range(0, width, 8):
                plane_y, plane_u, plane_v = _sample(data, width, height, comp, flip, x, y, 8)
                dc_y = _process_block(bits, plane_y, fdtbl_y, dc_y, _YDC_HT, _YAC_HT)
                dc_u = _process_block(bits, plane_u, fdtbl_uv, dc_u, _UVDC_HT, _UVAC_HT)
                dc_v = _process_block(bits, plane_v, fdtbl_uv, dc_v, _UVDC_HT, _UVAC_HT)

    bits.write(_FILL_BITS)
    out += b"\xff\xd9"
    return bytes(out)


def write_jpeg(path, width, height, comp, data, quality=90, flip=False) -> int:
    """Write a JPEG file to ``path``; return the number of bytes written."""
    payload = encode_jpeg(width, height, comp, data, quality, flip)
    Path(os.fspath(path)).write_bytes(payload)
    return len(payload)
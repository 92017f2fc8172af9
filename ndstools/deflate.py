"""Small zlib (RFC 1950/1951) compressor using fixed Huffman codes.

Matches are found with a hash chain over 3-byte prefixes and a one-step lazy
check. When the compressed stream would be larger than the input, the data
is stored in uncompressed blocks instead.
"""

from __future__ import annotations

import zlib

_HASH_SIZE = 16384
_WINDOW = 32768
_MAX_MATCH = 258
_MAX_STORED_BLOCK = 32767
_MIN_QUALITY = 5

_LENGTH_BASE = (
    3, 4, 5, 6, 7, 8, 9, 10, 11, 13, 15, 17, 19, 23, 27, 31, 35, 43, 51, 59,
    67, 83, 99, 115, 131, 163, 195, 227, 258, 259,
)
_LENGTH_EXTRA = (
    0, 0, 0, 0, 0, 0, 0, 0, 1, 1, 1, 1, 2, 2, 2, 2, 3, 3, 3, 3,
    4, 4, 4, 4, 5, 5, 5, 5, 0,
)
_DIST_BASE = (
    1, 2, 3, 4, 5, 7, 9, 13, 17, 25, 33, 49, 65, 97, 129, 193, 257, 385, 513,
    769, 1025, 1537, 2049, 3073, 4097, 6145, 8193, 12289, 16385, 24577, 32768,
)
_DIST_EXTRA = (
    0, 0, 0, 0, 1, 1, 2, 2, 3, 3, 4, 4, 5, 5, 6, 6, 7, 7, 8, 8,
    9, 9, 10, 10, 11, 11, 12, 12, 13, 13,
)

_MASK32 = 0xFFFFFFFF


def _bitrev(code: int, bits: int) -> int:
    result = 0
    for _ in range(bits):
        result = (result << 1) | (code & 1)
        code >>= 1
    return result


def _zhash(data: bytes, pos: int) -> int:
    h = data[pos] + (data[pos + 1] << 8) + (data[pos + 2] << 16)
    h ^= (h << 3) & _MASK32
    h = (h + (h >> 5)) & _MASK32
    h ^= (h << 4) & _MASK32
    h = (h + (h >> 17)) & _MASK32
    h ^= (h << 25) & _MASK32
    h = (h + (h >> 6)) & _MASK32
    return h & (_HASH_SIZE - 1)


def _match_length(data: bytes, a: int, b: int, limit: int) -> int:
    limit = min(limit, _MAX_MATCH)
    length = 0
    while length < limit and data[a + length] == data[b + length]:
        length += 1
    return length


class _BitWriter:
    """Least-significant-bit-first bit packer appending to a bytearray."""

    def __init__(self, out: bytearray) -> None:
        self.out = out
        self.buffer = 0
        self.count = 0

    def add(self, code: int, bits: int) -> None:
        self.buffer |= code << self.count
        self.count += bits
        while self.count >= 8:
            self.out.append(self.buffer & 0xFF)
            self.buffer >>= 8
            self.count -= 8

    def huffman(self, code: int, bits: int) -> None:
        self.add(_bitrev(code, bits), bits)

    def symbol(self, n: int) -> None:
        """Emit a literal/length symbol with the fixed Huffman table."""
        if n <= 143:
            self.huffman(0x30 + n, 8)
        elif n <= 255:
            self.huffman(0x190 + n - 144, 9)
        elif n <= 279:
            self.huffman(n - 256, 7)
        else:
            self.huffman(0xC0 + n - 280, 8)

    def pad(self) -> None:
        while self.count:
            self.add(0, 1)


def _emit_match(bits: _BitWriter, length: int, distance: int) -> None:
    j = 0
    while length > _LENGTH_BASE[j + 1] - 1:
        j += 1
    bits.symbol(j + 257)
    if _LENGTH_EXTRA[j]:
        bits.add(length - _LENGTH_BASE[j], _LENGTH_EXTRA[j])
    j = 0
    while distance > _DIST_BASE[j + 1] - 1:
        j += 1
    bits.add(_bitrev(j, 5), 5)
    if _DIST_EXTRA[j]:
        bits.add(distance - _DIST_BASE[j], _DIST_EXTRA[j])


def _stored_blocks(data: bytes) -> bytes:
    out = bytearray()
    total = len(data)
    for start in range(0, total, _MAX_STORED_BLOCK):
        block = data[start:start + _MAX_STORED_BLOCK]
        size = len(block)
        out.append(1 if total - start == size else 0)
        out += size.to_bytes(2, "little")
        out += (~size & 0xFFFF).to_bytes(2, "little")
        out += block
    return bytes(out)


def zlib_compress(data, quality=8) -> bytes:
    """Compress ``data`` into a zlib stream; ``quality`` bounds the hash chains."""
    data = bytes(data)
    quality = max(int(quality), _MIN_QUALITY)
    size = len(data)

    out = bytearray(b"\x78\x5e")
    bits = _BitWriter(out)
    bits.add(1, 1)  # BFINAL
    bits.add(1, 2)  # BTYPE: fixed Huffman

    chains: dict[int, list[int]] = {}
    i = 0
    while i < size - 3:
        h = _zhash(data, i)
        best = 3
        best_pos = None
        chain = chains.setdefault(h, [])
        for pos in chain:
            if pos > i - _WINDOW:
                d = _match_length(data, pos, i, size - i)
                if d >= best:
                    best = d
                    best_pos = pos
        if len(chain) == 2 * quality:
            del chain[:quality]
        chain.append(i)

        if best_pos is not None:
            # Lazy matching: prefer a literal if the next byte starts a longer match.
            for pos in chains.get(_zhash(data, i + 1), ()):
                if pos > i - (_WINDOW - 1):
                    if _match_length(data, pos, i + 1, size - i - 1) > best:
                        best_pos = None
                        break

        if best_pos is not None:
            _emit_match(bits, best, i - best_pos)
            i += best
        else:
            bits.symbol(data[i])
            i += 1

    for byte in data[i:]:
        bits.symbol(byte)
    bits.symbol(256)
    bits.pad()

    if len(out) > size + 2 + ((size + _MAX_STORED_BLOCK - 1) // _MAX_STORED_BLOCK) * 5:
        del out[2:]
        out += _stored_blocks(data)

    out += zlib.adler32(data).to_bytes(4, "big")
    return bytes(out)
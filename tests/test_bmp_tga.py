import random
import struct

import pytest

from ndstools.bmp_tga import encode_bmp, encode_tga, write_bmp, write_tga


def _decode_tga_rle(body: bytes, bytes_per_pixel: int) -> bytes:
    out = bytearray()
    pos = 0
    while pos < len(body):
        head = body[pos]
        pos += 1
        count = (head & 0x7F) + 1
        if head & 0x80:
            out += body[pos:pos + bytes_per_pixel] * count
            pos += bytes_per_pixel
        else:
            out += body[pos:pos + bytes_per_pixel * count]
            pos += bytes_per_pixel * count
    return bytes(out)


def _random_image(width, height, comp, seed, palette=3):
    rng = random.Random(seed)
    colours = [bytes(rng.randrange(256) for _ in range(comp)) for _ in range(palette)]
    return b"".join(rng.choice(colours) for _ in range(width * height))


def test_bmp_rgb_header_fields():
    result = encode_bmp(1, 1, 3, bytes((10, 20, 30)))
    assert result[:2] == b"BM"
    (file_size,) = struct.unpack_from("<I", result, 2)
    (offset,) = struct.unpack_from("<I", result, 10)
    header_size, width, height, planes, bpp = struct.unpack_from("<IiiHH", result, 14)
    assert file_size == len(result)
    assert offset == 54
    assert (header_size, width, height, planes, bpp) == (40, 1, 1, 1, 24)


def test_bmp_pixels_are_bgr_with_row_padding():
    result = encode_bmp(1, 1, 3, bytes((10, 20, 30)))
    assert result[54:] == bytes((30, 20, 10, 0))


def test_bmp_rows_are_bottom_up_and_flip_reverses():
    data = bytes((1, 2, 3)) + bytes((4, 5, 6))
    body = encode_bmp(1, 2, 3, data)[54:]
    assert body == bytes((6, 5, 4, 0, 3, 2, 1, 0))
    flipped = encode_bmp(1, 2, 3, data, flip=True)[54:]
    assert flipped == bytes((3, 2, 1, 0, 6, 5, 4, 0))


def test_bmp_expands_grey_to_three_channels():
    result = encode_bmp(4, 1, 1, bytes((7, 8, 9, 10)))
    assert result[54:] == bytes((7, 7, 7, 8, 8, 8, 9, 9, 9, 10, 10, 10))


def test_bmp_grey_alpha_drops_alpha():
    result = encode_bmp(4, 1, 2, bytes((7, 200, 8, 201, 9, 202, 10, 203)))
    assert result[54:] == bytes((7, 7, 7, 8, 8, 8, 9, 9, 9, 10, 10, 10))


def test_bmp_rgba_uses_v4_header_and_bgra_pixels():
    result = encode_bmp(1, 1, 4, bytes((10, 20, 30, 40)))
    (offset,) = struct.unpack_from("<I", result, 10)
    header_size, _, _, _, bpp, compression = struct.unpack_from("<IiiHHI", result, 14)
    masks = struct.unpack_from("<4I", result, 54)
    assert offset == 122
    assert (header_size, bpp, compression) == (108, 32, 3)
    assert masks == (0xFF0000, 0xFF00, 0xFF, 0xFF000000)
    assert result[122:] == bytes((30, 20, 10, 40))
    assert struct.unpack_from("<I", result, 2)[0] == len(result)


@pytest.mark.parametrize("width", [1, 2, 3, 4, 5])
def test_bmp_size_matches_padded_rows(width):
    result = encode_bmp(width, 3, 3, bytes(width * 3 * 3))
    assert (len(result) - 54) % 3 == 0
    row = (len(result) - 54) // 3
    assert row % 4 == 0
    assert width * 3 <= row < width * 3 + 4


def test_bmp_rejects_negative_size():
    with pytest.raises(ValueError):
        encode_bmp(-1, 1, 3, b"")


def test_bmp_rejects_short_data():
    with pytest.raises(ValueError):
        encode_bmp(2, 2, 3, bytes(5))


def test_bmp_rejects_bad_channel_count():
    with pytest.raises(ValueError):
        encode_bmp(1, 1, 5, bytes(5))


def test_tga_uncompressed_header_and_pixels():
    result = encode_tga(2, 1, 3, bytes((1, 2, 3, 4, 5, 6)), rle=False)
    assert len(result) == 18 + 6
    assert result[2] == 2
    assert struct.unpack_from("<HH", result, 12) == (2, 1)
    assert result[16] == 24 and result[17] == 0
    assert result[18:] == bytes((3, 2, 1, 6, 5, 4))


def test_tga_grey_uses_mono_image_type():
    result = encode_tga(2, 1, 1, bytes((9, 11)), rle=False)
    assert result[2] == 3
    assert result[16] == 8
    assert result[18:] == bytes((9, 11))


def test_tga_rgba_writes_alpha_after_colour():
    result = encode_tga(1, 1, 4, bytes((1, 2, 3, 4)), rle=False)
    assert result[16] == 32 and result[17] == 8
    assert result[18:] == bytes((3, 2, 1, 4))


def test_tga_rle_image_type():
    result = encode_tga(1, 1, 3, bytes((1, 2, 3)))
    assert result[2] == 10


def test_tga_rle_run_packet():
    result = encode_tga(4, 1, 1, bytes((5, 5, 5, 5)))
    assert result[18:] == bytes((0x83, 5))


@pytest.mark.parametrize("comp", [1, 2, 3, 4])
@pytest.mark.parametrize("flip", [False, True])
def test_tga_rle_decodes_to_uncompressed_pixels(comp, flip):
    width, height = 37, 5
    data = _random_image(width, height, comp, seed=comp * 10 + flip)
    raw = encode_tga(width, height, comp, data, rle=False, flip=flip)
    packed = encode_tga(width, height, comp, data, rle=True, flip=flip)
    assert packed[3:18] == raw[3:18]
    bytes_per_pixel = raw[16] // 8
    assert _decode_tga_rle(packed[18:], bytes_per_pixel) == raw[18:]


def test_tga_rle_long_run_is_split_and_decodes():
    width = 300
    data = bytes((42,)) * width
    packed = encode_tga(width, 1, 1, data)
    assert _decode_tga_rle(packed[18:], 1) == data
    assert all(packed[18 + k] & 0x80 for k in range(0, len(packed) - 18, 2))


def test_tga_rle_noise_decodes():
    width, height = 200, 3
    data = _random_image(width, height, 3, seed=7, palette=200)
    raw = encode_tga(width, height, 3, data, rle=False)
    packed = encode_tga(width, height, 3, data)
    assert _decode_tga_rle(packed[18:], 3) == raw[18:]


def test_tga_rows_bottom_up_and_flip():
    data = bytes((1, 2))
    assert encode_tga(1, 2, 1, data, rle=False)[18:] == bytes((2, 1))
    assert encode_tga(1, 2, 1, data, rle=False, flip=True)[18:] == bytes((1, 2))


def test_tga_rejects_negative_size():
    with pytest.raises(ValueError):
        encode_tga(1, -1, 3, b"")


def test_write_bmp_and_tga_match_encoders(tmp_path):
    data = _random_image(5, 4, 3, seed=3)
    bmp_path = tmp_path / "image.bmp"
    tga_path = tmp_path / "image.tga"
    bmp_written = write_bmp(bmp_path, 5, 4, 3, data)
    tga_written = write_tga(tga_path, 5, 4, 3, data, rle=True)
    assert bmp_path.read_bytes() == encode_bmp(5, 4, 3, data)
    assert tga_path.read_bytes() == encode_tga(5, 4, 3, data)
    assert bmp_written == bmp_path.stat().st_size
    assert tga_written == tga_path.stat().st_size
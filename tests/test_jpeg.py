import pytest

from ndstools.jpeg import encode_jpeg, write_jpeg

SOF_OFFSET = 25 + 64 + 1 + 64
SCAN_START = 607
SOS = bytes((0xFF, 0xDA, 0, 0xC, 3, 1, 0, 2, 0x11, 3, 0x11, 0, 0x3F, 0))


def gradient(width, height, comp):
    return bytes((x * 7 + y * 13 + c * 50) & 0xFF
                 for y in range(height) for x in range(width) for c in range(comp))


def test_markers_and_jfif_header():
    out = encode_jpeg(8, 8, 3, gradient(8, 8, 3))
    assert out[:2] == b"\xff\xd8"
    assert out[6:11] == b"JFIF\x00"
    assert out[-2:] == b"\xff\xd9"
    assert out[SCAN_START - len(SOS):SCAN_START] == SOS


def test_frame_header_dimensions():
    out = encode_jpeg(300, 17, 3, gradient(300, 17, 3), quality=95)
    sof = out[SOF_OFFSET:SOF_OFFSET + 24]
    assert sof[:2] == b"\xff\xc0"
    assert int.from_bytes(sof[5:7], "big") == 17
    assert int.from_bytes(sof[7:9], "big") == 300
    assert sof[-5:-1] == bytes((0xFF, 0xC4, 0x01, 0xA2))


@pytest.mark.parametrize("quality, sampling", [(90, 0x22), (50, 0x22), (91, 0x11), (100, 0x11)])
def test_chroma_subsampling_follows_quality(quality, sampling):
    out = encode_jpeg(8, 8, 3, gradient(8, 8, 3), quality=quality)
    assert out[SOF_OFFSET + 11] == sampling


def test_quality_zero_means_ninety():
    data = gradient(20, 12, 3)
    assert encode_jpeg(20, 12, 3, data, quality=0) == encode_jpeg(20, 12, 3, data, quality=90)


def test_quality_fifty_uses_standard_table():
    out = encode_jpeg(8, 8, 1, gradient(8, 8, 1), quality=50)
    assert out[25] == 16
    assert out[25 + 64] == 1


def test_quality_extremes_clamp_tables():
    top = encode_jpeg(8, 8, 3, gradient(8, 8, 3), quality=100)
    assert set(top[25:25 + 64]) == {1}
    assert set(top[90:90 + 64]) == {1}
    bottom = encode_jpeg(8, 8, 3, gradient(8, 8, 3), quality=1)
    assert set(bottom[25:25 + 64]) == {255}
    assert set(bottom[90:90 + 64]) == {255}


def test_entropy_data_is_byte_stuffed():
    out = encode_jpeg(33, 21, 3, gradient(33, 21, 3), quality=75)
    scan = out[SCAN_START:-2]
    for i, byte in enumerate(scan):
        if byte == 0xFF:
            assert scan[i + 1] == 0


def test_flip_equals_reversed_rows():
    width, height, comp = 10, 9, 3
    data = gradient(width, height, comp)
    row = width * comp
    reversed_rows = b"".join(data[r * row:(r + 1) * row] for r in reversed(range(height)))
    for quality in (80, 95):
        assert encode_jpeg(width, height, comp, data, quality, flip=True) == \
            encode_jpeg(width, height, comp, reversed_rows, quality)


def test_grey_matches_equal_rgb():
    grey = gradient(12, 12, 1)
    rgb = bytes(v for v in grey for _ in range(3))
    assert encode_jpeg(12, 12, 1, grey) == encode_jpeg(12, 12, 3, rgb)


def test_alpha_is_ignored():
    grey = gradient(9, 9, 1)
    grey_alpha = bytes(b for v in grey for b in (v, 17))
    assert encode_jpeg(9, 9, 2, grey_alpha, 95) == encode_jpeg(9, 9, 1, grey, 95)
    rgb = gradient(9, 9, 3)
    rgba = b"".join(rgb[i:i + 3] + b"\x80" for i in range(0, len(rgb), 3))
    assert encode_jpeg(9, 9, 4, rgba) == encode_jpeg(9, 9, 3, rgb)


def test_output_is_deterministic_and_content_dependent():
    a = encode_jpeg(16, 16, 3, gradient(16, 16, 3))
    b = encode_jpeg(16, 16, 3, gradient(16, 16, 3))
    c = encode_jpeg(16, 16, 3, bytes(16 * 16 * 3))
    assert a == b
    assert a[:SCAN_START] == c[:SCAN_START]
    assert a[SCAN_START:] != c[SCAN_START:]


@pytest.mark.parametrize("width, height, comp", [(0, 8, 3), (8, 0, 3), (8, 8, 0), (8, 8, 5), (-8, 8, 3)])
def test_invalid_parameters(width, height, comp):
    with pytest.raises(ValueError):
        encode_jpeg(width, height, comp, bytes(256))


def test_missing_or_short_data():
    with pytest.raises(ValueError):
        encode_jpeg(8, 8, 3, None)
    with pytest.raises(ValueError):
        encode_jpeg(8, 8, 3, bytes(8 * 8 * 3 - 1))


def test_write_jpeg(tmp_path):
    data = gradient(14, 6, 3)
    target = tmp_path / "out.jpg"
    written = write_jpeg(target, 14, 6, 3, data, quality=70)
    content = target.read_bytes()
    assert written == len(content)
    assert content == encode_jpeg(14, 6, 3, data, quality=70)
# ndstools

Small build helpers for homebrew development, in plain Python with no
dependencies. The package has a binary-to-C converter and a set of simple
image writers.

## Command-line tool: bin2c

`bin2c` turns any binary file into a C source file and a matching header.
Together they embed the file's bytes as a `const uint8_t` array:

    bin2c assets/34.my.bin.file.bin build/

This command writes two files, `build/34.my.bin.file_bin.c` and
`build/34.my.bin.file_bin.h`. They declare the array `_34_my_bin_file_bin`
and the macro `_34_my_bin_file_bin_size`.

The names follow these rules:

- The last `.` in the file name becomes `_` in the output file names.
- Any character that is not an ASCII letter or digit becomes `_` in the
  array name.
- A name that starts with a digit gets a leading underscore.

The tool rejects empty or unreadable input files. It prints a message to
standard error and exits with status 1.

The same tool can be run as `python -m ndstools.bin2c <file_in> <folder_out>`.

## Library use

### Binary to C

`ndstools.bin2c` provides these functions:

- `transform_names(path, dir_out)` returns an `OutputNames` with `c_file`,
  `h_file` and `array_name`.
- `render_c_source(array_name, data)` and `render_header(array_name, size)`
  return the generated text.
- `convert(path_in, dir_out)` writes both files and returns their
  `OutputNames`.

Failures raise `Bin2CError`.

### Image writers

Each image writer returns `bytes`. Each also has a `write_*` form that saves
the result to a path and returns the number of bytes written.

- `ndstools.bmp_tga`:
  - `encode_bmp` writes 24-bit BMP, or 32-bit BMP with a V4 header for RGBA.
  - `encode_tga` writes TGA, run-length encoded by default (`rle=True`).
- `ndstools.hdr`:
  - `encode_hdr` writes Radiance RGBE from float pixel data.
  - `linear_to_rgbe` encodes a single colour.
- `ndstools.png`:
  - `encode_png` picks the cheapest filter for each row, or uses the one
    given by `force_filter` (0 to 4).
  - `stride` sets the distance between row starts.
  - `compression_level` bounds the match search.
  - `paeth` is the Paeth predictor.
- `ndstools.jpeg`:
  - `encode_jpeg` writes baseline JPEG.
  - Quality runs from 1 to 100, and 0 means 90.
  - At quality 90 and below, chroma is subsampled 2x2.
- `ndstools.deflate`:
  - `zlib_compress(data, quality=8)` builds a zlib stream with fixed Huffman
    codes.
  - It falls back to stored blocks when compression would make the data
    larger.

Pixel data is interleaved with `comp` channels:

- 1 = Y
- 2 = YA
- 3 = RGB
- 4 = RGBA

Rows run top to bottom. Pass `flip=True` to write the rows in the other
order. Invalid dimensions, channel counts or short pixel data raise
`ValueError`.

```python
from ndstools.png import encode_png

png = encode_png(bytes([255, 0, 0] * 4), 2, 2, 3)
```

## What it does not do

The package cannot apply DLDI driver patches to application binaries. It
has no command or function for that.
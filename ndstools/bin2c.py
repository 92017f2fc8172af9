"""Turn a binary file into a C source file holding its bytes and a matching header."""

from __future__ import annotations

import os
import sys
from dataclasses import dataclass
from pathlib import Path

MAX_PATH_LEN = 2048
BYTES_PER_ROW = 12

_C_PREAMBLE = "// Autogenerated file. Do not edit.\n\n#include <stdint.h>\n\n"

_HEADER_TEMPLATE = (
    "// Autogenerated file. Do not edit.\n"
    "\n"
    "#pragma once\n"
    "\n"
    "#include <stdint.h>\n"
    "\n"
    "#define {name}_size ({size})\n"
    "extern const uint8_t {name}[{size}];\n"
)


class Bin2CError(Exception):
    """Raised when a file cannot be converted."""


@dataclass(frozen=True)
class OutputNames:
    """Names derived from an input path: the two output files and the array."""

    c_file: str
    h_file: str
    array_name: str


def _byte_length(text: str) -> int:
    return len(text.encode("utf-8", "surrogateescape"))


def _identifier_char(byte: int) -> str:
    char = chr(byte)
    return char if char.isascii() and char.isalnum() else "_"


def transform_names(path, dir_out) -> OutputNames:
    """Derive the output file names and the C array name for ``path``."""
    path = os.fspath(path)
    dir_out = os.fspath(dir_out)

    slash = path.rfind("/")
    start = slash + 1 if slash > 0 else 0
    basename = path[start:]

    stem = f"{dir_out}/{basename}"
    if _byte_length(stem) + 2 >= MAX_PATH_LEN:
        raise Bin2CError("Output file name too long")

    # Replace the last '.' of the file name (not of the directory) by '_'.
    dot = stem.rfind(".")
    if dot > 0 and dot > stem.rfind("/"):
        stem = f"{stem[:dot]}_{stem[dot + 1:]}"

    prefix = "_" if basename[:1] in "0123456789" and basename else ""
    raw_name = (prefix + basename).encode("utf-8", "surrogateescape")
    if len(raw_name) >= MAX_PATH_LEN:
        raise Bin2CError("Output array name too long")
    array_name = "".join(_identifier_char(b) for b in raw_name)

    return OutputNames(c_file=f"{stem}.c", h_file=f"{stem}.h", array_name=array_name)


def render_c_source(array_name: str, data: bytes) -> str:
    """Return the C source defining ``array_name`` with the given bytes."""
    rows = (
        "    " + ", ".join(f"0x{b:02X}" for b in data[pos:pos + BYTES_PER_ROW])
        for pos in range(0, len(data), BYTES_PER_ROW)
    )
    body = ",\n".join(rows)
    if body:
        body += "\n"
    return (
        _C_PREAMBLE
        + f"const uint8_t {array_name}[{len(data)}] __attribute__((aligned(4)))  =\n"
        + "{\n"
        + body
        + "};\n"
    )


def render_header(array_name: str, size: int) -> str:
    """Return the header declaring ``array_name`` and its size macro."""
    return _HEADER_TEMPLATE.format(name=array_name, size=size)


def _write_text(path: str, text: str) -> None:
    try:
        with open(path, "w", newline="\n") as handle:
            handle.write(text)
    except OSError as exc:
        raise Bin2CError(f"Can't open {path} for writing") from exc


def convert(path_in, dir_out) -> OutputNames:
    """Convert ``path_in`` into a .c/.h pair inside ``dir_out``."""
    path_in = os.fspath(path_in)
    try:
        data = Path(path_in).read_bytes()
    except OSError as exc:
        raise Bin2CError(f"Can't open {path_in} for reading") from exc
    if not data:
        raise Bin2CError(f"{path_in} is an empty file")

    names = transform_names(path_in, dir_out)
    _write_text(names.c_file, render_c_source(names.array_name, data))
    _write_text(names.h_file, render_header(names.array_name, len(data)))
    return names


def main(argv=None) -> int:
    """Command-line entry point: ``bin2c <file_in> <folder_out>``."""
    args = sys.argv[1:] if argv is None else list(argv)
    if len(args) < 2:
        sys.stderr.write("Invalid arguments.\nUsage: bin2c [file_in] [folder_out]\n")
        return 1
    try:
        convert(args[0], args[1])
    except Bin2CError as exc:
        sys.stderr.write(f"{exc}\n")
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
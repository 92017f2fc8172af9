[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "ndstools"
version = "0.1.0"
description = "Build helpers for homebrew ROMs: binary-to-C conversion and simple image writers"
requires-python = ">=3.10"
dependencies = []
keywords = ["bin2c", "homebrew", "png", "jpeg", "bmp", "tga", "hdr", "deflate", "zlib"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Environment :: Console",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Software Development :: Build Tools",
    "Topic :: Multimedia :: Graphics :: Graphics Conversion",
]

[project.optional-dependencies]
test = ["pytest"]

[project.scripts]
bin2c = "ndstools.bin2c:main"

[tool.hatch.build.targets.wheel]
packages = ["ndstools"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"

"""Build helpers: binary-to-C conversion and BMP, TGA, HDR, PNG and JPEG writers."""

__version__ = "0.1.0"
__all__ = ["bin2c", "bmp_tga", "hdr", "deflate", "png", "jpeg"]
"""PNG/JPEG to QIMZ converter.

This module converts images into the QIMZ monochrome format used by the
Quokka 128x64 OLED display. It can be invoked through the CLI (``python -m
qimz_converter``) or imported to convert a single image into bytes.
"""

from .codec import encode_header, encode_qimz, expected_payload_size
from .converter import (
    DEFAULT_FILENAME,
    DEFAULT_WHITE_THRESHOLD,
    OLED_HEIGHT,
    OLED_WIDTH,
    BinarizedImage,
    ConversionParams,
    binarize_image,
    convert,
    convert_file_to_qimz,
    convert_image_to_qimz,
    fit_to_display,
    is_white_pixel,
    pack_bits,
    scale_to_aspect,
)
from .errors import (
    CompressionError,
    ConversionError,
    InvalidParamsError,
    SourceUnavailableError,
)

__all__ = [
    "DEFAULT_FILENAME",
    "DEFAULT_WHITE_THRESHOLD",
    "OLED_HEIGHT",
    "OLED_WIDTH",
    "BinarizedImage",
    "CompressionError",
    "ConversionError",
    "ConversionParams",
    "InvalidParamsError",
    "SourceUnavailableError",
    "binarize_image",
    "convert",
    "convert_file_to_qimz",
    "convert_image_to_qimz",
    "encode_header",
    "encode_qimz",
    "expected_payload_size",
    "fit_to_display",
    "is_white_pixel",
    "pack_bits",
    "scale_to_aspect",
]

"""Core conversion logic for the QIMZ converter."""

# Reference: QIMZ (Quokka OLED monochrome image)
# Offset | Size | Notes
# -------|------|--------------------------------------------------------------
# 0      | 1    | Width in pixels (uint8, truncated mod 256)
# 1      | 1    | Height in pixels (uint8, truncated mod 256)
# 2      | ...  | zlib-compressed packed bitmap, ceil(width * height / 8) bytes
#
# Packed bitmap: 1 bit per pixel, row-major scan order continuing across rows
# (no per-row padding), most significant bit first. 1 = white (lit pixel).

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Sequence, Tuple

from PIL import Image

from .codec import encode_qimz
from .errors import InvalidParamsError, SourceUnavailableError

RGBA = Tuple[int, int, int, int]

OLED_WIDTH = 128
OLED_HEIGHT = 64
MAX_DIMENSION = 255
DEFAULT_WHITE_THRESHOLD = 127
DEFAULT_FILENAME = "image.qimz"

_PERCEIVED_LUMINANCE_WEIGHTS = (0.299, 0.587, 0.114)
WHITE: RGBA = (255, 255, 255, 255)
BLACK: RGBA = (0, 0, 0, 255)


@dataclass(frozen=True)
class ConversionParams:
    """Target size and binarization settings for a single conversion."""

    target_width: int
    target_height: int
    white_threshold: int = DEFAULT_WHITE_THRESHOLD
    invert: bool = False

    def validate(self) -> None:
        # The header stores each dimension in a single byte.
        for name, value in (("width", self.target_width), ("height", self.target_height)):
            if value <= 0:
                raise InvalidParamsError(f"Target {name} must be at least 1 (got {value})")
            if value > MAX_DIMENSION:
                raise InvalidParamsError(
                    f"Target {name} must be at most {MAX_DIMENSION} (got {value})"
                )
        if not (0 <= self.white_threshold <= 255):
            raise InvalidParamsError(
                f"White threshold must be between 0 and 255 (got {self.white_threshold})"
            )


@dataclass(frozen=True)
class BinarizedImage:
    """Result of the rasterize/binarize stage.

    ``preview`` is an RGBA image whose pixels are pure black or white, and
    ``packed`` holds the same pixels as a 1-bit-per-pixel buffer.
    """

    width: int
    height: int
    preview: Image.Image
    packed: bytes


def luminance(rgba: Sequence[int]) -> float:
    wr, wg, wb = _PERCEIVED_LUMINANCE_WEIGHTS
    return wr * rgba[0] + wg * rgba[1] + wb * rgba[2]


def is_white_pixel(rgba: Sequence[int], white_threshold: int, invert: bool) -> bool:
    """Return True when the pixel is lit on the display.

    A pixel is white when its luminance is strictly above ``white_threshold``;
    ``invert`` flips that decision.
    """
    return (luminance(rgba) > white_threshold) != invert


def pack_bits(bits: Sequence[bool]) -> bytes:
    """Pack pixel classifications into bytes, most significant bit first.

    Pixel ``8k + p`` of the scan order lands in byte ``k`` at bit ``7 - p``.
    When the pixel count is not a multiple of 8 the unused low bits of the
    last byte stay 0.
    """
    total = len(bits)
    packed = bytearray((total + 7) // 8)
    for start in range(0, total, 8):
        byte = 0
        for p in range(8):
            if start + p < total and bits[start + p]:
                byte |= 1 << (7 - p)
        packed[start // 8] = byte
    return bytes(packed)


def _to_8bit(image: Image.Image) -> Image.Image:
    # 16-bit samples (opened as I;16 or I) span 0-65535; RGBA conversion clips them.
    if image.mode == "I" or image.mode.startswith("I;16"):
        return image.convert("I").point(lambda v: v * (1 / 256)).convert("L")
    return image


def resample_image(image: Image.Image | None, width: int, height: int) -> Image.Image:
    """Return a new RGBA image scaled to exactly ``width`` x ``height``."""

    if image is None:
        raise SourceUnavailableError("No source image has been loaded")
    try:
        rgba = _to_8bit(image).convert("RGBA")
    except (OSError, ValueError) as exc:
        raise SourceUnavailableError(f"Source image could not be decoded: {exc}") from exc
    return rgba.resize((width, height), Image.BILINEAR)


def binarize_image(image: Image.Image | None, params: ConversionParams) -> BinarizedImage:
    params.validate()

    resampled = resample_image(image, params.target_width, params.target_height)
    data = resampled.tobytes()
    rgba_values = [data[i : i + 4] for i in range(0, len(data), 4)]

    bits = [
        is_white_pixel(rgba, params.white_threshold, params.invert) for rgba in rgba_values
    ]

    preview = Image.new("RGBA", (params.target_width, params.target_height))
    preview.putdata([WHITE if bit else BLACK for bit in bits])

    return BinarizedImage(
        width=params.target_width,
        height=params.target_height,
        preview=preview,
        packed=pack_bits(bits),
    )


def convert(source: Image.Image | None, params: ConversionParams) -> bytes:
    """Convert ``source`` into QIMZ bytes.

    Raises ``InvalidParamsError`` before any pixel work when the target size
    cannot be encoded, ``SourceUnavailableError`` when there is no decodable
    source, and ``CompressionError`` when compression fails.
    """

    binarized = binarize_image(source, params)
    return encode_qimz(binarized.packed, binarized.width, binarized.height)


def convert_image_to_qimz(image: Image.Image, params: ConversionParams) -> bytes:
    return convert(image, params)


def convert_file_to_qimz(path: str | Path, params: ConversionParams) -> bytes:
    params.validate()
    path = Path(path)
    try:
        with Image.open(path) as img:
            return convert(img, params)
    except FileNotFoundError as exc:
        raise SourceUnavailableError(f"Input file not found: {path}") from exc
    except OSError as exc:
        raise SourceUnavailableError(f"Failed to read image: {path}") from exc


def fit_to_display(
    width: int,
    height: int,
    max_width: int = OLED_WIDTH,
    max_height: int = OLED_HEIGHT,
) -> Tuple[int, int]:
    """Shrink ``width`` x ``height`` to fit the display, keeping the aspect ratio.

    Images that already fit are left at their original size.
    """
    if width <= 0 or height <= 0:
        raise InvalidParamsError(f"Source size must be positive (got {width}x{height})")
    scale = min(max_width / width, max_height / height, 1)
    return max(1, round(scale * width)), max(1, round(scale * height))


def scale_to_aspect(
    source_size: Tuple[int, int],
    width: int | None = None,
    height: int | None = None,
) -> Tuple[int, int]:
    """Fill in a missing target dimension from the source aspect ratio."""

    src_width, src_height = source_size
    if width is None and height is None:
        return fit_to_display(src_width, src_height)
    if width is None:
        width = max(1, round(src_width * height / src_height))
    elif height is None:
        height = max(1, round(src_height * width / src_width))
    return width, height

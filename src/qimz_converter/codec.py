"""QIMZ container encoding: two-byte size header plus a zlib stream."""

from __future__ import annotations

import zlib

from .errors import CompressionError, ConversionError

HEADER_SIZE = 2


def expected_payload_size(width: int, height: int) -> int:
    """Size of the packed bitmap (and of the decompressed payload) in bytes."""
    return (width * height + 7) // 8


def encode_header(width: int, height: int) -> bytes:
    """Encode the size header.

    Each dimension occupies one unsigned byte and is truncated modulo 256.
    Values above 255 do not round-trip; ``ConversionParams.validate`` rejects
    them before anything reaches this point.
    """
    return bytes([width % 256, height % 256])


def compress_bitmap(packed: bytes) -> bytes:
    try:
        return zlib.compress(packed)
    except (zlib.error, MemoryError) as exc:
        raise CompressionError(f"Failed to compress bitmap: {exc}") from exc


def encode_qimz(packed: bytes, width: int, height: int) -> bytes:
    """Build a QIMZ artifact from an already packed bitmap.

    The layout is header + compressed payload with no padding, length field,
    checksum or version tag. Readers derive the payload size from the header.
    """
    expected = expected_payload_size(width, height)
    if len(packed) != expected:
        raise ConversionError(
            f"Packed bitmap is {len(packed)} bytes; {width}x{height} needs {expected}"
        )
    return encode_header(width, height) + compress_bitmap(packed)

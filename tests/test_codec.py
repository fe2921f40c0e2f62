import zlib

import pytest

import qimz_converter.codec as codec
from qimz_converter import CompressionError, ConversionError, encode_header, encode_qimz
from qimz_converter.codec import HEADER_SIZE, expected_payload_size


def _unpack(data: bytes) -> list[bool]:
    width, height = data[0], data[1]
    payload = zlib.decompress(data[HEADER_SIZE:])
    assert len(payload) == expected_payload_size(width, height)
    return [bool(payload[i // 8] & (1 << (7 - i % 8))) for i in range(width * height)]


def test_expected_payload_size() -> None:
    assert expected_payload_size(1, 1) == 1
    assert expected_payload_size(8, 1) == 1
    assert expected_payload_size(130, 1) == 17
    assert expected_payload_size(128, 64) == 1024
    assert expected_payload_size(255, 255) == 8129


def test_header_is_width_then_height() -> None:
    assert encode_header(128, 64) == bytes([128, 64])
    assert encode_header(1, 255) == bytes([1, 255])


def test_header_truncates_wide_dimensions() -> None:
    assert encode_header(256, 300) == bytes([0, 44])


@pytest.mark.parametrize("width,height", [(1, 1), (8, 1), (3, 5), (130, 1), (128, 64), (255, 255)])
def test_payload_size_matches_header(width, height) -> None:
    packed = bytes(expected_payload_size(width, height))

    data = encode_qimz(packed, width, height)

    assert data[0] == width
    assert data[1] == height
    assert len(zlib.decompress(data[2:])) == expected_payload_size(width, height)


def test_bits_survive_compression() -> None:
    bits = [(i * 7) % 3 == 0 for i in range(5 * 3)]
    packed = bytearray(2)
    for i, bit in enumerate(bits):
        if bit:
            packed[i // 8] |= 1 << (7 - i % 8)

    data = encode_qimz(bytes(packed), 5, 3)

    assert _unpack(data) == bits


def test_payload_is_plain_zlib_stream() -> None:
    packed = b"\x12\x34\x56"

    assert encode_qimz(packed, 4, 6)[2:] == zlib.compress(packed)


def test_wrong_packed_length_rejected() -> None:
    with pytest.raises(ConversionError):
        encode_qimz(b"\x00\x00", 8, 1)


def test_compression_failure_is_reported(monkeypatch) -> None:
    def broken(data, *args, **kwargs):
        raise zlib.error("simulated failure")

    monkeypatch.setattr(codec.zlib, "compress", broken)

    with pytest.raises(CompressionError):
        encode_qimz(b"\xFF", 8, 1)


def test_out_of_memory_is_reported(monkeypatch) -> None:
    def broken(data, *args, **kwargs):
        raise MemoryError()

    monkeypatch.setattr(codec.zlib, "compress", broken)

    with pytest.raises(CompressionError):
        codec.compress_bitmap(b"\x00")

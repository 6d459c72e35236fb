import pytest

from netlabs.parity import (
    byte_parity,
    frame_is_valid,
    message_parity,
    pack_frame,
    unpack_frame,
)


def test_byte_parity_zero():
    assert byte_parity(0) == 0


@pytest.mark.parametrize("bit", range(8))
def test_byte_parity_single_bit(bit):
    assert byte_parity(1 << bit) == 1


@pytest.mark.parametrize("a,b", [(0x61, 0x62), (0xFF, 0x01), (0x80, 0x7F), (0x3C, 0xA5)])
def test_byte_parity_is_linear(a, b):
    assert byte_parity(a ^ b) == byte_parity(a) ^ byte_parity(b)


def test_message_parity_empty():
    assert message_parity(b"") == 0


def test_message_parity_of_doubled_text_is_zero():
    assert message_parity(b"payload" * 2) == 0


def test_message_parity_stops_at_nul():
    assert message_parity(b"abc\x00\x01") == message_parity(b"abc")


def test_pack_frame_length():
    assert len(pack_frame(b"payload")) == 4 + len(b"payload") + 1


def test_frame_round_trip():
    parity, payload = unpack_frame(pack_frame(b"payload"))
    assert payload == b"payload"
    assert parity == message_parity(b"payload")


def test_packed_frame_is_valid():
    assert frame_is_valid(pack_frame(b"payload")) is True


@pytest.mark.parametrize("index,bit", [(4, 0), (6, 3), (10, 6)])
def test_single_bit_flip_is_detected(index, bit):
    frame = bytearray(pack_frame(b"payload"))
    frame[index] ^= 1 << bit
    assert frame_is_valid(bytes(frame)) is False


def test_unpack_short_frame_raises():
    with pytest.raises(ValueError):
        unpack_frame(b"\x01\x00")
"""Parity-protected frames: a 4-byte parity word followed by a C string."""

from __future__ import annotations

import struct
from functools import reduce

_PARITY = struct.Struct("<i")


def byte_parity(value: int) -> int:
    """Return 1 if ``value`` has an odd number of set bits, else 0."""
    return bin(value & 0xFF).count("1") & 1


def _c_string(payload: bytes) -> bytes:
    end = payload.find(b"\x00")
    return payload if end < 0 else payload[:end]


def message_parity(payload: bytes) -> int:
    """Return the XOR of the bit parities of ``payload`` up to its first NUL."""
    return reduce(lambda acc, b: acc ^ byte_parity(b), _c_string(payload), 0)


def pack_frame(payload: bytes) -> bytes:
    """Build a frame: the parity word, the payload and a terminating NUL."""
    text = _c_string(payload)
    return _PARITY.pack(message_parity(text)) + text + b"\x00"


def unpack_frame(data: bytes) -> tuple[int, bytes]:
    """Split a frame into its parity word and its payload string."""
    if len(data) < _PARITY.size:
        raise ValueError(f"frame too short: {len(data)} bytes")
    (parity,) = _PARITY.unpack_from(data)
    return parity, _c_string(data[_PARITY.size :])


def frame_is_valid(data: bytes) -> bool:
    """Return True if the frame's parity word matches its payload."""
    parity, payload = unpack_frame(data)
    return parity == message_parity(payload)
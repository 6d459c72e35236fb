"""Internet checksums for IPv4 and ICMP headers, and a hex dump helper."""

from __future__ import annotations


def _words(data: bytes) -> list[int]:
    """Split ``data`` into big-endian 16-bit words, zero-padding the tail."""
    if len(data) % 2:
        data = bytes(data) + b"\x00"
    return [int.from_bytes(data[i : i + 2], "big") for i in range(0, len(data), 2)]


def ip_checksum(data: bytes) -> int:
    """Return the IPv4 header checksum of ``data`` as a 16-bit number.

    The accumulator starts at 0xffff, so an all-zero input yields 0.
    A header whose checksum field is correct yields 0.
    """
    acc = 0xFFFF + sum(_words(data))
    while acc >> 16:
        acc = (acc & 0xFFFF) + (acc >> 16)
    return ~acc & 0xFFFF


def icmp_checksum(data: bytes) -> int:
    """Return the ICMP checksum of ``data`` as a 16-bit number."""
    acc = sum(_words(data))
    acc = (acc >> 16) + (acc & 0xFFFF)
    acc += acc >> 16
    return ~acc & 0xFFFF


def hex_dump(data: bytes) -> str:
    """Return a hex and ASCII dump of ``data``, sixteen bytes per line."""
    lines = []
    for start in range(0, len(data), 16):
        row = data[start : start + 16]
        is_last = start + len(row) == len(data)
        parts = []
        for k, byte in enumerate(row):
            parts.append(f"{byte:02X} ")
            if (k + 1) % 8 == 0 or (is_last and k + 1 == len(row)):
                parts.append(" ")
        if len(row) < 16:
            if len(row) <= 8:
                parts.append(" ")
            parts.append("   " * (16 - len(row)))
        ascii_text = "".join(chr(b) if 0x20 <= b <= 0x7E else "." for b in row)
        parts.append(f"|  {ascii_text} \n")
        lines.append("".join(parts))
    return "".join(lines)
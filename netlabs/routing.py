"""Routing table parsing and lookup, and ARP table lookup.

Addresses are held as unsigned 32-bit integers whose most significant
byte is the first octet of the dotted form.
"""

from __future__ import annotations

import socket
from collections.abc import Iterable, Sequence
from dataclasses import dataclass

ETH_ALEN = 6


def _parse_ip(text: str) -> int:
    try:
        return int.from_bytes(socket.inet_aton(text), "big")
    except OSError:
        raise ValueError(f"invalid IPv4 address: {text!r}") from None


@dataclass(frozen=True)
class RouteEntry:
    """One routing table entry."""

    prefix: int
    next_hop: int
    mask: int
    interface: int

    def matches(self, ip: int) -> bool:
        """Return True if ``ip`` falls inside this entry's network."""
        return ip & self.mask == self.prefix


@dataclass(frozen=True)
class ArpEntry:
    """One ARP table entry: an IP address and its hardware address."""

    ip: int
    mac: bytes

    def __post_init__(self) -> None:
        if len(self.mac) != ETH_ALEN:
            raise ValueError(f"MAC address must be {ETH_ALEN} bytes, got {len(self.mac)}")
        object.__setattr__(self, "mac", bytes(self.mac))


def count_set_bits(mask: int) -> int:
    """Return the number of one bits in ``mask``."""
    if mask < 0:
        raise ValueError(f"mask must not be negative: {mask}")
    return bin(mask).count("1")


def read_rtable(lines: Iterable[str]) -> list[RouteEntry]:
    """Parse lines of ``prefix next_hop mask interface``; blank lines are skipped."""
    entries = []
    for number, line in enumerate(lines, start=1):
        fields = line.split()
        if not fields:
            continue
        if len(fields) != 4:
            raise ValueError(f"line {number}: expected 4 fields, got {len(fields)}")
        prefix, next_hop, mask, interface = fields
        try:
            interface_number = int(interface)
        except ValueError:
            raise ValueError(f"line {number}: invalid interface {interface!r}") from None
        entries.append(
            RouteEntry(_parse_ip(prefix), _parse_ip(next_hop), _parse_ip(mask), interface_number)
        )
    return entries


def sort_rtable(entries: Iterable[RouteEntry]) -> list[RouteEntry]:
    """Return the entries ordered by prefix, then by mask, ascending."""
    return sorted(entries, key=lambda entry: (entry.prefix, entry.mask))


def get_best_route(dest_ip: int, rtable: Sequence[RouteEntry]) -> RouteEntry | None:
    """Binary-search a table sorted by :func:`sort_rtable` for a route to ``dest_ip``.

    Among the matching entries met during the search the last one wins,
    which in a sorted table is the one with the longest mask.
    """
    found: RouteEntry | None = None
    low, high = 0, len(rtable) - 1
    while low <= high:
        mid = (low + high) // 2
        entry = rtable[mid]
        masked = dest_ip & entry.mask
        if masked > entry.prefix:
            low = mid + 1
        elif masked < entry.prefix:
            high = mid - 1
        else:
            found = entry
            low = mid + 1
    return found


def get_best_route_linear(dest_ip: int, rtable: Iterable[RouteEntry]) -> RouteEntry | None:
    """Return the matching entry with the longest mask; the first one on ties."""
    candidates = (entry for entry in rtable if entry.matches(dest_ip))
    return max(candidates, key=lambda entry: count_set_bits(entry.mask), default=None)


def get_arp_entry(ip: int, arp_table: Iterable[ArpEntry]) -> ArpEntry | None:
    """Return the first ARP entry for ``ip``, or None."""
    return next((entry for entry in arp_table if entry.ip == ip), None)
"""Ethernet, IPv4, ICMP and ARP headers, and builders for router replies."""

from __future__ import annotations

import struct
from dataclasses import dataclass
from typing import ClassVar

from netlabs.checksum import icmp_checksum, ip_checksum

ETH_ALEN = 6
ETHERTYPE_IP = 0x0800
ETHERTYPE_ARP = 0x0806
ARPHRD_ETHER = 1
ARPOP_REQUEST = 1
ARPOP_REPLY = 2
IPPROTO_ICMP = 1
ICMP_ECHOREPLY = 0
ICMP_DEST_UNREACH = 3
ICMP_ECHO = 8
ICMP_TIME_EXCEEDED = 11
BROADCAST_MAC_ADDRESS = "ff:ff:ff:ff:ff:ff"
DEFAULT_TTL = 64

_HEX = "0123456789abcdefABCDEF"


def _check_mac(value: bytes, name: str) -> bytes:
    value = bytes(value)
    if len(value) != ETH_ALEN:
        raise ValueError(f"{name} must be {ETH_ALEN} bytes, got {len(value)}")
    return value


def _need(data: bytes, size: int, what: str) -> None:
    if len(data) < size:
        raise ValueError(f"{what} needs {size} bytes, got {len(data)}")


def hwaddr_aton(text: str) -> bytes:
    """Convert a colon-separated MAC address such as '00:11:22:33:44:55' to bytes."""
    octets = bytearray()
    pos = 0
    for i in range(ETH_ALEN):
        pair = text[pos : pos + 2]
        if len(pair) != 2 or any(ch not in _HEX for ch in pair):
            raise ValueError(f"invalid MAC address: {text!r}")
        octets.append(int(pair, 16))
        pos += 2
        if i < ETH_ALEN - 1:
            if text[pos : pos + 1] != ":":
                raise ValueError(f"invalid MAC address: {text!r}")
            pos += 1
    return bytes(octets)


@dataclass
class EthernetHeader:
    """An Ethernet II header."""

    dhost: bytes
    shost: bytes
    ether_type: int

    _STRUCT: ClassVar[struct.Struct] = struct.Struct("!6s6sH")
    SIZE: ClassVar[int] = _STRUCT.size

    def __post_init__(self) -> None:
        self.dhost = _check_mac(self.dhost, "destination MAC")
        self.shost = _check_mac(self.shost, "source MAC")

    def pack(self) -> bytes:
        """Return the wire form."""
        return self._STRUCT.pack(self.dhost, self.shost, self.ether_type)

    @classmethod
    def unpack(cls, data: bytes) -> EthernetHeader:
        """Parse the header at the start of ``data``."""
        _need(data, cls.SIZE, "Ethernet header")
        return cls(*cls._STRUCT.unpack_from(data))


@dataclass
class IpHeader:
    """An IPv4 header without options; addresses are 32-bit integers."""

    version: int = 4
    ihl: int = 5
    tos: int = 0
    tot_len: int = 20
    ident: int = 0
    frag_off: int = 0
    ttl: int = DEFAULT_TTL
    protocol: int = 0
    check: int = 0
    saddr: int = 0
    daddr: int = 0

    _STRUCT: ClassVar[struct.Struct] = struct.Struct("!BBHHHBBHII")
    SIZE: ClassVar[int] = _STRUCT.size

    def pack(self) -> bytes:
        """Return the wire form."""
        return self._STRUCT.pack(
            (self.version << 4) | (self.ihl & 0x0F),
            self.tos,
            self.tot_len,
            self.ident,
            self.frag_off,
            self.ttl,
            self.protocol,
            self.check,
            self.saddr,
            self.daddr,
        )

    @classmethod
    def unpack(cls, data: bytes) -> IpHeader:
        """Parse the first twenty bytes of ``data``."""
        _need(data, cls.SIZE, "IPv4 header")
        first, tos, tot_len, ident, frag_off, ttl, protocol, check, saddr, daddr = (
            cls._STRUCT.unpack_from(data)
        )
        return cls(first >> 4, first & 0x0F, tos, tot_len, ident, frag_off, ttl, protocol, check, saddr, daddr)


@dataclass
class IcmpHeader:
    """An ICMP header with the echo identifier and sequence number."""

    type: int
    code: int = 0
    checksum: int = 0
    ident: int = 0
    sequence: int = 0

    _STRUCT: ClassVar[struct.Struct] = struct.Struct("!BBHHH")
    SIZE: ClassVar[int] = _STRUCT.size

    def pack(self) -> bytes:
        """Return the wire form."""
        return self._STRUCT.pack(self.type, self.code, self.checksum, self.ident, self.sequence)

    @classmethod
    def unpack(cls, data: bytes) -> IcmpHeader:
        """Parse the header at the start of ``data``."""
        _need(data, cls.SIZE, "ICMP header")
        return cls(*cls._STRUCT.unpack_from(data))


@dataclass
class ArpHeader:
    """An Ethernet/IPv4 ARP packet as in RFC 826."""

    op: int
    sha: bytes
    spa: int
    tha: bytes
    tpa: int
    htype: int = ARPHRD_ETHER
    ptype: int = ETHERTYPE_IP
    hlen: int = ETH_ALEN
    plen: int = 4

    _STRUCT: ClassVar[struct.Struct] = struct.Struct("!HHBBH6sI6sI")
    SIZE: ClassVar[int] = _STRUCT.size

    def __post_init__(self) -> None:
        self.sha = _check_mac(self.sha, "sender MAC")
        self.tha = _check_mac(self.tha, "target MAC")

    def pack(self) -> bytes:
        """Return the wire form."""
        return self._STRUCT.pack(
            self.htype, self.ptype, self.hlen, self.plen, self.op, self.sha, self.spa, self.tha, self.tpa
        )

    @classmethod
    def unpack(cls, data: bytes) -> ArpHeader:
        """Parse the ARP packet at the start of ``data``."""
        _need(data, cls.SIZE, "ARP header")
        htype, ptype, hlen, plen, op, sha, spa, tha, tpa = cls._STRUCT.unpack_from(data)
        return cls(op, sha, spa, tha, tpa, htype, ptype, hlen, plen)


def build_icmp_packet(
    daddr: int,
    saddr: int,
    sha: bytes,
    dha: bytes,
    icmp_type: int,
    code: int,
    ident: int = 0,
    seq: int = 0,
) -> bytes:
    """Return an Ethernet frame holding an IPv4/ICMP packet with valid checksums."""
    eth = EthernetHeader(dhost=dha, shost=sha, ether_type=ETHERTYPE_IP)
    ip = IpHeader(
        tot_len=IpHeader.SIZE + IcmpHeader.SIZE,
        ident=1,
        ttl=DEFAULT_TTL,
        protocol=IPPROTO_ICMP,
        saddr=saddr,
        daddr=daddr,
    )
    ip.check = ip_checksum(ip.pack())
    icmp = IcmpHeader(icmp_type, code, 0, ident, seq)
    icmp.checksum = icmp_checksum(icmp.pack())
    return eth.pack() + ip.pack() + icmp.pack()


def build_arp_packet(daddr: int, saddr: int, eth: EthernetHeader, op: int) -> bytes:
    """Return a frame with ``eth`` and an ARP packet taking its MACs from ``eth``."""
    arp = ArpHeader(op=op, sha=eth.shost, spa=saddr, tha=eth.dhost, tpa=daddr)
    return eth.pack() + arp.pack()


def parse_arp(frame: bytes) -> ArpHeader | None:
    """Return the ARP header of an ARP frame, or None for other frames."""
    eth = EthernetHeader.unpack(frame)
    if eth.ether_type != ETHERTYPE_ARP:
        return None
    return ArpHeader.unpack(frame[EthernetHeader.SIZE :])


def parse_icmp(frame: bytes) -> IcmpHeader | None:
    """Return the ICMP header of an IPv4/ICMP frame, or None for other frames."""
    eth = EthernetHeader.unpack(frame)
    if eth.ether_type != ETHERTYPE_IP:
        return None
    ip = IpHeader.unpack(frame[EthernetHeader.SIZE :])
    if ip.protocol != IPPROTO_ICMP:
        return None
    return IcmpHeader.unpack(frame[EthernetHeader.SIZE + IpHeader.SIZE :])
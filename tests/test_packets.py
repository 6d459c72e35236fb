import ipaddress

import pytest

from netlabs import packets
from netlabs.checksum import icmp_checksum, ip_checksum
from netlabs.packets import (
    ArpHeader,
    EthernetHeader,
    IcmpHeader,
    IpHeader,
    build_arp_packet,
    build_icmp_packet,
    hwaddr_aton,
    parse_arp,
    parse_icmp,
)

MAC_A = bytes.fromhex("020000000001")
MAC_B = bytes.fromhex("020000000002")


def ip(text):
    return int(ipaddress.IPv4Address(text))


def test_hwaddr_aton_broadcast():
    assert hwaddr_aton(packets.BROADCAST_MAC_ADDRESS) == b"\xff" * 6


def test_hwaddr_aton_mixed_case():
    assert hwaddr_aton("02:00:00:00:00:0A") == hwaddr_aton("02:00:00:00:00:0a")
    assert hwaddr_aton("02:00:00:00:00:01") == MAC_A


@pytest.mark.parametrize(
    "text", ["zz:00:00:00:00:01", "02-00-00-00-00-01", "02:00:00", "", "0:00:00:00:00:01"]
)
def test_hwaddr_aton_rejects_invalid(text):
    with pytest.raises(ValueError):
        hwaddr_aton(text)


def test_ethernet_round_trip_and_layout():
    header = EthernetHeader(MAC_B, MAC_A, packets.ETHERTYPE_ARP)
    data = header.pack()
    assert len(data) == EthernetHeader.SIZE == 14
    assert data[:6] == MAC_B
    assert data[12:14] == b"\x08\x06"
    assert EthernetHeader.unpack(data) == header


def test_ethernet_rejects_bad_mac():
    with pytest.raises(ValueError):
        EthernetHeader(b"\x00", MAC_A, packets.ETHERTYPE_IP)


def test_ip_round_trip_and_first_byte():
    header = IpHeader(ident=7, protocol=packets.IPPROTO_ICMP, saddr=ip("10.0.0.1"), daddr=ip("10.0.0.2"))
    data = header.pack()
    assert len(data) == IpHeader.SIZE
    assert data[0] == 0x45
    assert IpHeader.unpack(data) == header


def test_icmp_round_trip():
    header = IcmpHeader(packets.ICMP_ECHO, 0, 0, 77, 3)
    data = header.pack()
    assert len(data) == IcmpHeader.SIZE
    assert IcmpHeader.unpack(data) == header


def test_arp_round_trip():
    header = ArpHeader(packets.ARPOP_REPLY, MAC_A, ip("10.0.0.1"), MAC_B, ip("10.0.0.2"))
    data = header.pack()
    assert len(data) == ArpHeader.SIZE == 28
    assert ArpHeader.unpack(data) == header


@pytest.mark.parametrize("cls", [EthernetHeader, IpHeader, IcmpHeader, ArpHeader])
def test_unpack_too_short(cls):
    with pytest.raises(ValueError):
        cls.unpack(b"\x00" * (cls.SIZE - 1))


def test_build_icmp_packet_headers():
    frame = build_icmp_packet(
        ip("10.0.0.2"), ip("10.0.0.1"), MAC_A, MAC_B, packets.ICMP_ECHOREPLY, 0, 42, 5
    )
    assert len(frame) == EthernetHeader.SIZE + IpHeader.SIZE + IcmpHeader.SIZE
    eth = EthernetHeader.unpack(frame)
    assert (eth.dhost, eth.shost, eth.ether_type) == (MAC_B, MAC_A, packets.ETHERTYPE_IP)
    ip_header = IpHeader.unpack(frame[EthernetHeader.SIZE :])
    assert ip_header.ttl == packets.DEFAULT_TTL
    assert ip_header.protocol == packets.IPPROTO_ICMP
    assert ip_header.tot_len == IpHeader.SIZE + IcmpHeader.SIZE
    assert (ip_header.saddr, ip_header.daddr) == (ip("10.0.0.1"), ip("10.0.0.2"))


def test_build_icmp_packet_checksums_verify():
    frame = build_icmp_packet(
        ip("192.168.1.1"), ip("192.168.1.254"), MAC_A, MAC_B, packets.ICMP_TIME_EXCEEDED, 0
    )
    start = EthernetHeader.SIZE
    assert ip_checksum(frame[start : start + IpHeader.SIZE]) == 0
    assert icmp_checksum(frame[start + IpHeader.SIZE :]) == 0


def test_parse_icmp_returns_fields():
    frame = build_icmp_packet(
        ip("10.0.0.2"), ip("10.0.0.1"), MAC_A, MAC_B, packets.ICMP_ECHO, 0, 9, 4
    )
    icmp = parse_icmp(frame)
    assert (icmp.type, icmp.code, icmp.ident, icmp.sequence) == (packets.ICMP_ECHO, 0, 9, 4)
    assert parse_arp(frame) is None


def test_parse_icmp_ignores_other_protocols():
    eth = EthernetHeader(MAC_B, MAC_A, packets.ETHERTYPE_IP)
    ip_header = IpHeader(protocol=6, saddr=ip("10.0.0.1"), daddr=ip("10.0.0.2"))
    frame = eth.pack() + ip_header.pack() + bytes(IcmpHeader.SIZE)
    assert parse_icmp(frame) is None


def test_build_and_parse_arp_packet():
    eth = EthernetHeader(hwaddr_aton(packets.BROADCAST_MAC_ADDRESS), MAC_A, packets.ETHERTYPE_ARP)
    frame = build_arp_packet(ip("10.0.0.9"), ip("10.0.0.1"), eth, packets.ARPOP_REQUEST)
    assert len(frame) == EthernetHeader.SIZE + ArpHeader.SIZE
    arp = parse_arp(frame)
    assert arp.op == packets.ARPOP_REQUEST
    assert (arp.spa, arp.tpa) == (ip("10.0.0.1"), ip("10.0.0.9"))
    assert (arp.sha, arp.tha) == (eth.shost, eth.dhost)
    assert (arp.htype, arp.ptype) == (packets.ARPHRD_ETHER, packets.ETHERTYPE_IP)
    assert parse_icmp(frame) is None
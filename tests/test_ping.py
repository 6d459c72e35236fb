import socket
import subprocess
from unittest.mock import patch

import pytest

from netlabs.checksum import ip_checksum
from netlabs.packets import (
    ARPOP_REQUEST,
    ETHERTYPE_ARP,
    ETHERTYPE_IP,
    ICMP_ECHO,
    IPPROTO_ICMP,
    EthernetHeader,
    IcmpHeader,
    IpHeader,
    build_arp_packet,
    hwaddr_aton,
)
from netlabs.ping import build_echo_request, dns_lookup, get_default_gateway_ip, main, relevant_packet

SRC_MAC = hwaddr_aton("02:00:00:00:00:01")
DST_MAC = hwaddr_aton("02:00:00:00:00:02")
SADDR = int.from_bytes(socket.inet_aton("10.0.0.2"), "big")
DADDR = int.from_bytes(socket.inet_aton("10.0.0.9"), "big")
IP_START = EthernetHeader.SIZE
IP_END = IP_START + IpHeader.SIZE


def completed(stdout):
    return subprocess.CompletedProcess(args=["ip", "route"], returncode=0, stdout=stdout, stderr="")


def test_echo_request_layout():
    frame = build_echo_request(SRC_MAC, DST_MAC, SADDR, DADDR, 42, 5, 17)
    assert len(frame) == 42
    eth = EthernetHeader.unpack(frame)
    assert (eth.dhost, eth.shost, eth.ether_type) == (DST_MAC, SRC_MAC, ETHERTYPE_IP)
    ip = IpHeader.unpack(frame[IP_START:])
    assert ip.version == 4
    assert ip.ttl == 17
    assert ip.protocol == IPPROTO_ICMP
    assert ip.tot_len == IpHeader.SIZE + IcmpHeader.SIZE
    assert (ip.saddr, ip.daddr) == (SADDR, DADDR)
    icmp = IcmpHeader.unpack(frame[IP_END:])
    assert icmp.type == ICMP_ECHO
    assert (icmp.ident, icmp.sequence) == (42, 5)


def test_echo_request_checksums_verify():
    frame = build_echo_request(SRC_MAC, DST_MAC, SADDR, DADDR, 1234, 9)
    assert ip_checksum(frame[IP_START:IP_END]) == 0
    assert ip_checksum(frame[IP_END:]) == 0


def test_echo_request_masks_identifier():
    frame = build_echo_request(SRC_MAC, DST_MAC, SADDR, DADDR, 0x12345, 0)
    assert IcmpHeader.unpack(frame[IP_END:]).ident == 0x2345


def test_echo_request_rejects_bad_ttl():
    with pytest.raises(ValueError):
        build_echo_request(SRC_MAC, DST_MAC, SADDR, DADDR, 1, 1, 300)


def test_relevant_packet_accepts_icmp_for_us():
    frame = build_echo_request(SRC_MAC, DST_MAC, SADDR, DADDR, 1, 1)
    assert relevant_packet(frame, DST_MAC) is True
    assert relevant_packet(frame, SRC_MAC) is False


def test_relevant_packet_rejects_other_traffic():
    arp = build_arp_packet(DADDR, SADDR, EthernetHeader(DST_MAC, SRC_MAC, ETHERTYPE_ARP), ARPOP_REQUEST)
    assert relevant_packet(arp, DST_MAC) is False
    tcp = bytearray(build_echo_request(SRC_MAC, DST_MAC, SADDR, DADDR, 1, 1))
    tcp[IP_START + 9] = 6
    assert relevant_packet(bytes(tcp), DST_MAC) is False
    assert relevant_packet(b"\x00" * 8, DST_MAC) is False


def test_dns_lookup_numeric_address():
    assert dns_lookup("127.0.0.1") == "127.0.0.1"


def test_dns_lookup_failure_raises():
    with patch("netlabs.ping.socket.gethostbyname", side_effect=socket.gaierror("no such host")):
        with pytest.raises(OSError):
            dns_lookup("host.invalid")


def test_default_gateway_parsed():
    output = "10.0.0.0/24 dev eth0 proto kernel\ndefault via 10.0.0.1 dev eth0\n"
    with patch("netlabs.ping.subprocess.run", return_value=completed(output)):
        assert get_default_gateway_ip() == 0x0A000001


def test_default_gateway_missing():
    with patch("netlabs.ping.subprocess.run", return_value=completed("10.0.0.0/24 dev eth0\n")):
        with pytest.raises(RuntimeError):
            get_default_gateway_ip()


@pytest.mark.parametrize(
    "argv",
    [[], ["ping"], ["bogus", "127.0.0.1"], ["traceroute", "127.0.0.1", "3"], ["ping", "1.2.3.4", "1", "x"]],
)
def test_main_usage_errors(argv, capsys):
    assert main(argv) == 1
    assert "Usage" in capsys.readouterr().err
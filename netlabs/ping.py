"""Ping and traceroute built from raw Ethernet frames."""

from __future__ import annotations

import os
import re
import socket
import struct
import subprocess
import sys
import time
from collections.abc import Sequence

from netlabs.checksum import ip_checksum
from netlabs.packets import (
    ARPOP_REPLY,
    ARPOP_REQUEST,
    BROADCAST_MAC_ADDRESS,
    DEFAULT_TTL,
    ETHERTYPE_ARP,
    ETHERTYPE_IP,
    ICMP_ECHO,
    ICMP_TIME_EXCEEDED,
    IPPROTO_ICMP,
    EthernetHeader,
    IcmpHeader,
    IpHeader,
    build_arp_packet,
    hwaddr_aton,
    parse_arp,
)

IFNAME = os.environ.get("NETLABS_IFNAME", "eno2")
PACKET_LEN = 1500
ETH_P_ALL = 0x0003
SIOCGIFADDR = 0x8915
SIOCGIFHWADDR = 0x8927
IP_OFF = EthernetHeader.SIZE
ICMP_OFF = IP_OFF + IpHeader.SIZE

_LEADING_INT = re.compile(r"\s*([+-]?\d+)")


def _atoi(text: str) -> int:
    match = _LEADING_INT.match(text)
    return int(match.group(1)) if match else 0


def _ip_to_int(text: str) -> int:
    try:
        return int.from_bytes(socket.inet_aton(text), "big")
    except OSError:
        raise ValueError(f"invalid IPv4 address: {text!r}") from None


def _int_to_ip(value: int) -> str:
    return socket.inet_ntoa(value.to_bytes(4, "big"))


def build_echo_request(
    src_mac: bytes,
    dst_mac: bytes,
    saddr: int,
    daddr: int,
    ident: int,
    sequence: int,
    ttl: int = DEFAULT_TTL,
) -> bytes:
    """Return an Ethernet frame holding an ICMP echo request with valid checksums."""
    if not 0 <= ttl <= 0xFF:
        raise ValueError(f"TTL out of range: {ttl}")
    eth = EthernetHeader(dhost=dst_mac, shost=src_mac, ether_type=ETHERTYPE_IP)
    ip = IpHeader(
        tot_len=IpHeader.SIZE + IcmpHeader.SIZE,
        ident=ident & 0xFFFF,
        ttl=ttl,
        protocol=IPPROTO_ICMP,
        saddr=saddr,
        daddr=daddr,
    )
    ip.check = ip_checksum(ip.pack())
    icmp = IcmpHeader(ICMP_ECHO, 0, 0, ident & 0xFFFF, sequence & 0xFFFF)
    icmp.checksum = ip_checksum(icmp.pack())
    return eth.pack() + ip.pack() + icmp.pack()


def relevant_packet(frame: bytes, own_mac: bytes) -> bool:
    """Return True for an IPv4/ICMP frame addressed to ``own_mac``."""
    try:
        eth = EthernetHeader.unpack(frame)
        ip = IpHeader.unpack(frame[IP_OFF:])
    except ValueError:
        return False
    return eth.dhost == bytes(own_mac) and eth.ether_type == ETHERTYPE_IP and ip.protocol == IPPROTO_ICMP


def dns_lookup(host: str) -> str:
    """Resolve ``host`` to a dotted IPv4 address; raises OSError on failure."""
    return socket.gethostbyname(host)


def get_default_gateway_ip() -> int:
    """Return the address of the default gateway as reported by ``ip route``."""
    result = subprocess.run(["ip", "route"], capture_output=True, text=True, check=True)
    for line in result.stdout.splitlines():
        if "default" not in line:
            continue
        fields = line.split()
        if len(fields) < 3:
            break
        return _ip_to_int(fields[2])
    raise RuntimeError("no default route")


def _ifreq(sock: socket.socket, request: int, ifname: str) -> bytes:
    import fcntl

    return fcntl.ioctl(sock.fileno(), request, struct.pack("256s", ifname.encode()[:15]))


def _interface_mac(sock: socket.socket, ifname: str) -> bytes:
    return bytes(_ifreq(sock, SIOCGIFHWADDR, ifname)[18:24])


def _interface_ip(sock: socket.socket, ifname: str) -> int:
    return int.from_bytes(_ifreq(sock, SIOCGIFADDR, ifname)[20:24], "big")


def _arp_resolve(sock: socket.socket, own_mac: bytes, own_ip: int, target: int) -> bytes:
    eth = EthernetHeader(dhost=hwaddr_aton(BROADCAST_MAC_ADDRESS), shost=own_mac, ether_type=ETHERTYPE_ARP)
    sock.send(build_arp_packet(target, own_ip, eth, ARPOP_REQUEST))
    while True:
        frame = sock.recv(PACKET_LEN)
        try:
            arp = parse_arp(frame)
        except ValueError:
            continue
        if arp is not None and arp.op == ARPOP_REPLY and arp.spa == target:
            return arp.sha


def _time_packet(sock: socket.socket, frame: bytes, own_mac: bytes) -> tuple[float, bytes]:
    start = time.monotonic()
    sock.send(frame)
    while True:
        reply = sock.recv(PACKET_LEN)
        if relevant_packet(reply, own_mac):
            return time.monotonic() - start, reply


def _prepare(sock: socket.socket, ifname: str) -> tuple[bytes, int, bytes]:
    own_mac = _interface_mac(sock, ifname)
    own_ip = _interface_ip(sock, ifname)
    gateway_mac = _arp_resolve(sock, own_mac, own_ip, get_default_gateway_ip())
    return own_mac, own_ip, gateway_mac


def ping(sock: socket.socket, ifname: str, ip: str, count: int = 1) -> list[float]:
    """Send ``count`` echo requests to ``ip``; return the round-trip times in ms."""
    target = _ip_to_int(ip)
    own_mac, own_ip, gateway_mac = _prepare(sock, ifname)
    print(f"PING {ip} ...")
    ident = os.getpid() & 0xFFFF
    times = []
    for sequence in range(max(count, 1)):
        frame = build_echo_request(own_mac, gateway_mac, own_ip, target, ident, sequence)
        elapsed, reply = _time_packet(sock, frame, own_mac)
        millis = elapsed * 1000
        print(f"{len(reply)} bytes from {ip}: icmp sequence={sequence + 1}, time={millis:f} ms")
        times.append(millis)
    return times


def traceroute(sock: socket.socket, ifname: str, ip: str) -> list[str]:
    """Probe ``ip`` with increasing TTLs; return the address answering each hop."""
    target = _ip_to_int(ip)
    own_mac, own_ip, gateway_mac = _prepare(sock, ifname)
    print(f"TRACEROUTE {ip} ...")
    ident = os.getpid() & 0xFFFF
    hops = []
    for ttl in range(1, 0x100):
        frame = build_echo_request(own_mac, gateway_mac, own_ip, target, ident, ttl, ttl)
        _, reply = _time_packet(sock, frame, own_mac)
        source = _int_to_ip(IpHeader.unpack(reply[IP_OFF:]).saddr)
        print(f"{ttl}\t{source}")
        hops.append(source)
        if IcmpHeader.unpack(reply[ICMP_OFF:]).type != ICMP_TIME_EXCEEDED:
            break
    return hops


def _open_socket(ifname: str) -> socket.socket:
    family = getattr(socket, "AF_PACKET", None)
    if family is None:
        raise OSError("raw packet sockets are not supported on this system")
    sock = socket.socket(family, socket.SOCK_RAW, socket.htons(ETH_P_ALL))
    try:
        sock.bind((ifname, 0))
    except OSError:
        sock.close()
        raise
    return sock


def _usage(prog: str) -> int:
    print(f"Usage:\n{prog} ping <ip> [<count>]\nOR\n{prog} traceroute <ip>", file=sys.stderr)
    return 1


def main(argv: Sequence[str] | None = None) -> int:
    """Command entry point: ``icmp ping <ip> [<count>]`` or ``icmp traceroute <ip>``."""
    args = sys.argv[1:] if argv is None else list(argv)
    prog = "icmp"
    if not args or args[0] not in ("ping", "traceroute"):
        return _usage(prog)
    mode = args[0]
    if not (len(args) == 2 or (mode == "ping" and len(args) == 3)):
        return _usage(prog)
    try:
        ip = dns_lookup(args[1])
    except OSError as exc:
        print(f"dns_lookup failed: {exc}", file=sys.stderr)
        return 1
    count = _atoi(args[2]) if len(args) == 3 else -1
    try:
        with _open_socket(IFNAME) as sock:
            if mode == "ping":
                ping(sock, IFNAME, ip, count)
            else:
                traceroute(sock, IFNAME, ip)
    except (OSError, RuntimeError, ValueError, subprocess.CalledProcessError) as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1
    except KeyboardInterrupt:
        pass
    return 0
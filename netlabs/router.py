"""A software IPv4 router: ARP replies, ICMP messages and prefix forwarding."""

from __future__ import annotations

import select
import socket
import struct
import sys
from collections import deque
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field

from netlabs.checksum import ip_checksum
from netlabs.packets import (
    ARPOP_REPLY,
    ARPOP_REQUEST,
    BROADCAST_MAC_ADDRESS,
    ETH_ALEN,
    ETHERTYPE_ARP,
    ICMP_DEST_UNREACH,
    ICMP_ECHO,
    ICMP_ECHOREPLY,
    ICMP_TIME_EXCEEDED,
    ArpHeader,
    EthernetHeader,
    IpHeader,
    build_arp_packet,
    build_icmp_packet,
    hwaddr_aton,
    parse_arp,
    parse_icmp,
)
from netlabs.routing import (
    ArpEntry,
    RouteEntry,
    get_arp_entry,
    get_best_route,
    read_rtable,
    sort_rtable,
)

MAX_LEN = 1600
ETH_P_ALL = 0x0003
SIOCGIFADDR = 0x8915
SIOCGIFHWADDR = 0x8927

Output = tuple[int, bytes]


def _ifreq(sock: socket.socket, request: int, name: str) -> bytes:
    import fcntl

    return fcntl.ioctl(sock.fileno(), request, struct.pack("256s", name.encode()[:15]))


def _open_raw_socket(name: str) -> socket.socket:
    family = getattr(socket, "AF_PACKET", None)
    if family is None:
        raise OSError("raw packet sockets are not supported on this system")
    sock = socket.socket(family, socket.SOCK_RAW, socket.htons(ETH_P_ALL))
    try:
        sock.bind((name, 0))
    except OSError:
        sock.close()
        raise
    return sock


@dataclass
class RouterInterface:
    """A router port: its name, IPv4 address, hardware address and socket."""

    name: str
    ip: int
    mac: bytes
    sock: socket.socket | None = field(default=None, repr=False, compare=False)

    def __post_init__(self) -> None:
        self.mac = bytes(self.mac)
        if len(self.mac) != ETH_ALEN:
            raise ValueError(f"MAC address must be {ETH_ALEN} bytes, got {len(self.mac)}")

    @classmethod
    def open(cls, name: str) -> RouterInterface:
        """Bind a raw socket to the network interface ``name`` and read its addresses."""
        sock = _open_raw_socket(name)
        try:
            ip = int.from_bytes(_ifreq(sock, SIOCGIFADDR, name)[20:24], "big")
            mac = bytes(_ifreq(sock, SIOCGIFHWADDR, name)[18:24])
        except OSError:
            sock.close()
            raise
        return cls(name, ip, mac, sock)

    def send(self, frame: bytes) -> None:
        """Write ``frame`` to the interface."""
        if self.sock is None:
            raise RuntimeError(f"interface {self.name} has no socket")
        self.sock.send(frame)

    def close(self) -> None:
        """Close the interface socket, if any."""
        if self.sock is not None:
            self.sock.close()
            self.sock = None


class Router:
    """Routes IPv4 frames between interfaces, resolving next hops with ARP.

    Frames whose next hop has no known hardware address wait in a queue;
    each ARP reply addressed to the router releases the oldest of them.
    """

    def __init__(self, rtable: Iterable[RouteEntry], interfaces: Sequence[RouterInterface]) -> None:
        self.rtable: list[RouteEntry] = sort_rtable(rtable)
        self.interfaces = list(interfaces)
        if not self.interfaces:
            raise ValueError("a router needs at least one interface")
        self.arp_table: list[ArpEntry] = []
        self.queue: deque[bytes] = deque()

    def handle_packet(self, frame: bytes, interface: int) -> list[Output]:
        """Process a frame received on ``interface``.

        Returns the frames to transmit as ``(interface, frame)`` pairs.
        Raises ValueError for a frame too short to hold its headers.
        """
        if not 0 <= interface < len(self.interfaces):
            raise ValueError(f"no interface {interface}")
        frame = bytes(frame)
        arp = parse_arp(frame)
        if arp is not None:
            return self._handle_arp(frame, arp, interface)
        return self._handle_ip(frame, interface)

    def _handle_arp(self, frame: bytes, arp: ArpHeader, interface: int) -> list[Output]:
        local = self.interfaces[interface]
        eth = EthernetHeader.unpack(frame)
        if arp.op == ARPOP_REQUEST:
            if arp.tpa != local.ip:
                return []
            reply_eth = EthernetHeader(dhost=eth.shost, shost=local.mac, ether_type=eth.ether_type)
            return [(interface, build_arp_packet(arp.spa, local.ip, reply_eth, ARPOP_REPLY))]

        if get_arp_entry(arp.spa, self.arp_table) is None:
            self.arp_table.append(ArpEntry(arp.spa, arp.sha))
        if arp.tpa != local.ip or not self.queue:
            return []
        pending = self.queue.popleft()
        pending_type = EthernetHeader.unpack(pending).ether_type
        out_eth = EthernetHeader(dhost=eth.shost, shost=eth.dhost, ether_type=pending_type)
        return [(interface, out_eth.pack() + pending[EthernetHeader.SIZE :])]

    def _icmp_error(self, daddr: int, interface: int, dha: bytes, icmp_type: int) -> Output:
        local = self.interfaces[interface]
        return interface, build_icmp_packet(daddr, local.ip, local.mac, dha, icmp_type, 0)

    def _handle_ip(self, frame: bytes, interface: int) -> list[Output]:
        local = self.interfaces[interface]
        eth = EthernetHeader.unpack(frame)
        ip_start = EthernetHeader.SIZE
        ip_end = ip_start + IpHeader.SIZE
        ip = IpHeader.unpack(frame[ip_start:])
        route = get_best_route(ip.daddr, self.rtable)

        if ip.ttl <= 1:
            return [self._icmp_error(ip.saddr, interface, eth.shost, ICMP_TIME_EXCEEDED)]
        if ip_checksum(frame[ip_start:ip_end]) != 0:
            return []

        ip.ttl -= 1
        ip.check = 0
        ip.check = ip_checksum(ip.pack())
        frame = frame[:ip_start] + ip.pack() + frame[ip_end:]

        if ip.daddr == local.ip:
            icmp = parse_icmp(frame)
            if icmp is None or icmp.type != ICMP_ECHO:
                return []
            reply = build_icmp_packet(
                ip.saddr, local.ip, local.mac, eth.shost, ICMP_ECHOREPLY, 0, icmp.ident, icmp.sequence
            )
            return [(interface, reply)]

        if route is None:
            return [self._icmp_error(ip.saddr, interface, eth.shost, ICMP_DEST_UNREACH)]

        out = self.interfaces[route.interface]
        neighbour = get_arp_entry(route.next_hop, self.arp_table)
        if neighbour is not None:
            out_eth = EthernetHeader(dhost=neighbour.mac, shost=out.mac, ether_type=eth.ether_type)
            return [(route.interface, out_eth.pack() + frame[EthernetHeader.SIZE :])]

        self.queue.append(frame)
        request_eth = EthernetHeader(
            dhost=hwaddr_aton(BROADCAST_MAC_ADDRESS), shost=out.mac, ether_type=ETHERTYPE_ARP
        )
        return [(route.interface, build_arp_packet(route.next_hop, out.ip, request_eth, ARPOP_REQUEST))]

    def run(self) -> None:
        """Receive and route frames on all interfaces until interrupted."""
        by_socket: dict[socket.socket, int] = {}
        for index, iface in enumerate(self.interfaces):
            if iface.sock is None:
                raise RuntimeError(f"interface {iface.name} has no socket")
            by_socket[iface.sock] = index
        while True:
            ready, _, _ = select.select(list(by_socket), [], [])
            for sock in ready:
                frame = sock.recv(MAX_LEN)
                try:
                    outputs = self.handle_packet(frame, by_socket[sock])
                except ValueError:
                    continue
                for index, data in outputs:
                    self.interfaces[index].send(data)


def main(argv: Sequence[str] | None = None) -> int:
    """Command entry point: ``router rtable_file interface...``."""
    args = sys.argv[1:] if argv is None else list(argv)
    if len(args) < 2:
        print("Usage: router rtable_file interface...", file=sys.stderr)
        return 1
    try:
        with open(args[0]) as source:
            rtable = read_rtable(source)
    except OSError as exc:
        print(f"Error! Could not open file: {exc}", file=sys.stderr)
        return 1
    except ValueError as exc:
        print(f"Invalid routing table: {exc}", file=sys.stderr)
        return 1

    interfaces: list[RouterInterface] = []
    try:
        for name in args[1:]:
            print(f"Setting up interface: {name}")
            interfaces.append(RouterInterface.open(name))
        Router(rtable, interfaces).run()
    except (OSError, RuntimeError) as exc:
        print(f"Router error: {exc}", file=sys.stderr)
        return 1
    except KeyboardInterrupt:
        pass
    finally:
        for iface in interfaces:
            iface.close()
    return 0
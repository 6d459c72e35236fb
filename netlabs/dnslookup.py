"""Forward and reverse name lookups using the system resolver."""

from __future__ import annotations

import socket
import sys
from collections.abc import Sequence

PORT = 8080


def get_ip(name: str) -> list[str]:
    """Return the addresses ``name`` resolves to, in resolver order."""
    results = socket.getaddrinfo(
        name, None, socket.AF_UNSPEC, 0, 0, socket.AI_PASSIVE | socket.AI_CANONNAME
    )
    addresses = []
    for family, _, _, _, sockaddr in results:
        if family not in (socket.AF_INET, socket.AF_INET6):
            continue
        addresses.append(str(sockaddr[0]).split("%", 1)[0])
    return addresses


def get_name(ip: str, port: int = PORT) -> tuple[str, str]:
    """Return the host name and service name for an IPv4 address and port."""
    try:
        normalized = socket.inet_ntoa(socket.inet_aton(ip))
    except OSError:
        raise ValueError(f"invalid IPv4 address: {ip!r}") from None
    host, service = socket.getnameinfo((normalized, port), 0)
    return host, service


def _usage(name: str) -> int:
    print(f"Usage:\n\t{name} -n <NAME>\n\t{name} -a <IP>")
    return 1


def main(argv: Sequence[str] | None = None) -> int:
    """Command entry point: ``dns -n NAME`` or ``dns -a IP``."""
    args = sys.argv[1:] if argv is None else list(argv)
    prog = "dns"
    if len(args) < 2:
        return _usage(prog)
    option, target = args[0], args[1]
    try:
        if option.startswith("-n"):
            for address in get_ip(target):
                print(f"IP is {address}")
        elif option.startswith("-a"):
            host, service = get_name(target)
            print(f"Name is {host}\nService is {service}")
        else:
            return _usage(prog)
    except (OSError, ValueError) as exc:
        print(f"Lookup failed: {exc}", file=sys.stderr)
        return 1
    return 0
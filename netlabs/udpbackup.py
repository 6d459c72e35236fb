"""A file backup service over UDP: a client sends a file, a server stores it."""

from __future__ import annotations

import os
import re
import socket
import sys
from collections.abc import Sequence
from dataclasses import dataclass
from pathlib import Path

BUFLEN = 1500
EXIT = b"EXIT"

_LEADING_INT = re.compile(r"\s*([+-]?\d+)")


@dataclass
class Backup:
    """A file received by the backup server."""

    filename: str
    sender: tuple[str, int]
    data: bytes


def _c_string(data: bytes) -> bytes:
    return data.split(b"\x00", 1)[0]


def _atoi(text: str) -> int:
    match = _LEADING_INT.match(text)
    return int(match.group(1)) if match else 0


def send_file(sock: socket.socket, address: tuple[str, int], path: str | os.PathLike[str]) -> int:
    """Send the name and contents of ``path`` to ``address``, then EXIT.

    The name travels in a datagram padded to BUFLEN bytes; the contents
    follow in datagrams of at most BUFLEN bytes. Returns the number of
    content bytes sent.
    """
    path = Path(path)
    total = 0
    with open(path, "rb") as source:
        name = os.fsencode(path.name)[: BUFLEN - 1]
        sock.sendto(name.ljust(BUFLEN, b"\x00"), address)
        while chunk := source.read(BUFLEN):
            sock.sendto(chunk, address)
            total += len(chunk)
    sock.sendto(EXIT + b"\x00", address)
    return total


def receive_backup(sock: socket.socket) -> Backup:
    """Receive one file: a name datagram, data datagrams, then EXIT."""
    data, sender = sock.recvfrom(BUFLEN)
    filename = os.fsdecode(_c_string(data))
    print(f"Received from client with address {sender[0]} and port {sender[1]} the file named {filename}")
    chunks = []
    while True:
        data, _ = sock.recvfrom(BUFLEN)
        if _c_string(data) == EXIT:
            break
        chunks.append(data)
    return Backup(filename, (sender[0], sender[1]), b"".join(chunks))


def main_client(argv: Sequence[str] | None = None) -> int:
    """Command entry point: ``client ip_server port_server file``."""
    args = sys.argv[1:] if argv is None else list(argv)
    if len(args) != 3:
        print("Usage: client ip_server port_server file", file=sys.stderr)
        return 1
    host, port, path = args[0], _atoi(args[1]), args[2]
    try:
        with socket.socket(socket.AF_INET, socket.SOCK_DGRAM) as sock:
            send_file(sock, (host, port), path)
    except OSError as exc:
        print(f"Transfer error: {exc}", file=sys.stderr)
        return 1
    return 0


def main_server(argv: Sequence[str] | None = None) -> int:
    """Command entry point: ``server server_port file``."""
    args = sys.argv[1:] if argv is None else list(argv)
    if len(args) != 2:
        print("Usage: server server_port file", file=sys.stderr)
        return 1
    try:
        with socket.socket(socket.AF_INET, socket.SOCK_DGRAM) as sock:
            sock.bind(("", _atoi(args[0])))
            Path(args[1]).open("wb").close()
            backup = receive_backup(sock)
        Path(Path(backup.filename).name).write_bytes(backup.data)
    except OSError as exc:
        print(f"Backup error: {exc}", file=sys.stderr)
        return 1
    return 0
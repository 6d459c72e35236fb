"""A select-based chat server that forwards messages between clients."""

from __future__ import annotations

import re
import select
import socket
import sys
from collections.abc import Sequence
from typing import TextIO

BUFLEN = 256
MAX_CLIENTS = 5

CONNECTED = "Client {id} connected to the server\n"
DISCONNECTED = "Client {id} disconnected from the server\n"
CLIENT_LIST = "Clients connected to the server: {ids}\n"

_FORWARD = re.compile(rb"\s*([+-]?\d+)")
_LEADING_INT = re.compile(r"\s*([+-]?\d+)")


def _c_text(data: bytes) -> str:
    return data.split(b"\x00", 1)[0].decode("utf-8", errors="replace")


def _atoi(text: str) -> int:
    match = _LEADING_INT.match(text)
    return int(match.group(1)) if match else 0


def parse_forward(data: bytes) -> tuple[int, bytes]:
    """Split ``<id> <message>`` into the destination id and the message."""
    match = _FORWARD.match(data)
    if match is None:
        raise ValueError(f"message has no destination: {data!r}")
    return int(match.group(1)), bytes(data[match.end() + 1 :])


def _stdin_fd() -> int | None:
    try:
        return sys.stdin.fileno()
    except (AttributeError, OSError, ValueError):
        return None


class ChatServer:
    """Accepts clients and forwards ``<id> <message>`` lines between them.

    Clients are identified by the number of their socket on the server.
    Typing 'exit' on standard input sends it to every client and stops.
    """

    def __init__(self, port: int) -> None:
        self._listener = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        try:
            self._listener.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
            self._listener.bind(("", port))
            self._listener.listen(MAX_CLIENTS)
        except OSError:
            self._listener.close()
            raise
        self.port = self._listener.getsockname()[1]
        self._clients: dict[int, socket.socket] = {}
        self._wake_r, self._wake_w = socket.socketpair()
        self._stopped = False
        self._serving = False
        self._closed = False

    def _send(self, client_id: int, data: bytes) -> None:
        try:
            self._clients[client_id].sendall(data)
        except OSError as exc:
            print(f"send to {client_id} failed: {exc}", file=sys.stderr)

    def _accept(self) -> None:
        conn, (host, port) = self._listener.accept()
        new_id = conn.fileno()
        print(f"New connection from {host}, port {port}, client socket {new_id}")
        others = sorted(self._clients)
        for other in others:
            self._send(other, CONNECTED.format(id=new_id).encode() + b"\x00")
        self._clients[new_id] = conn
        ids = "".join(f"{other} " for other in others)
        self._send(new_id, CLIENT_LIST.format(ids=ids).encode() + b"\x00")

    def _handle_client(self, conn: socket.socket) -> None:
        client_id = conn.fileno()
        try:
            data = conn.recv(BUFLEN)
        except OSError:
            data = b""
        if not data:
            print(f"Client socket {client_id} closed the connection")
            del self._clients[client_id]
            conn.close()
            for other in sorted(self._clients):
                self._send(other, DISCONNECTED.format(id=client_id).encode() + b"\x00")
            return
        print(f"Received from client on socket {client_id} the message: {_c_text(data)}")
        try:
            destination, message = parse_forward(data)
        except ValueError as exc:
            print(exc, file=sys.stderr)
            return
        if destination not in self._clients:
            print(f"No client on socket {destination}", file=sys.stderr)
            return
        self._send(destination, message)

    def _handle_command(self, line: str) -> None:
        print(f"server received command: {line}")
        if not line.startswith("exit"):
            return
        for client_id in sorted(self._clients):
            self._send(client_id, line.encode() + b"\x00")
            print(f"Sending to {client_id} : {line}")
        self._stopped = True

    def serve_forever(self) -> None:
        """Serve until 'exit' is read from standard input or :meth:`close`."""
        self._serving = True
        stdin_fd = _stdin_fd()
        try:
            while not self._stopped:
                watched: list = [self._listener, self._wake_r, *self._clients.values()]
                if stdin_fd is not None:
                    watched.append(stdin_fd)
                ready, _, _ = select.select(watched, [], [])
                for item in ready:
                    if self._stopped:
                        break
                    if item is self._listener:
                        self._accept()
                    elif item is self._wake_r:
                        self._stopped = True
                    elif isinstance(item, int):
                        line = sys.stdin.readline()
                        if not line:
                            stdin_fd = None
                        else:
                            self._handle_command(line)
                    else:
                        self._handle_client(item)
        finally:
            self._serving = False
            self._release()

    def close(self) -> None:
        """Stop a running server, or release an idle one."""
        self._stopped = True
        try:
            self._wake_w.send(b"\x00")
        except OSError:
            pass
        if not self._serving:
            self._release()

    def _release(self) -> None:
        if self._closed:
            return
        self._closed = True
        for conn in self._clients.values():
            conn.close()
        self._clients.clear()
        self._listener.close()
        self._wake_r.close()
        self._wake_w.close()

    def __enter__(self) -> ChatServer:
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()


def run_client(sock: socket.socket, stream: TextIO) -> list[str]:
    """Send lines from ``stream`` and print messages from the server.

    Stops on an 'exit' line from either side, at the end of ``stream``, or
    when the server closes the connection. Returns the messages received.
    """
    received = []
    while True:
        ready, _, _ = select.select([stream, sock], [], [])
        if stream in ready:
            line = stream.readline(BUFLEN - 2)
            if not line or line.startswith("exit"):
                break
            sock.sendall(line.encode())
        if sock in ready:
            data = sock.recv(BUFLEN)
            if not data:
                break
            text = _c_text(data)
            print(f"R : {text}")
            received.append(text)
            if text.startswith("exit"):
                break
    return received


def main_server(argv: Sequence[str] | None = None) -> int:
    """Command entry point: ``server server_port``."""
    args = sys.argv[1:] if argv is None else list(argv)
    if not args:
        print("Usage: server server_port", file=sys.stderr)
        return 1
    port = _atoi(args[0])
    if port == 0:
        print(f"invalid port: {args[0]}", file=sys.stderr)
        return 1
    try:
        ChatServer(port).serve_forever()
    except OSError as exc:
        print(f"Server error: {exc}", file=sys.stderr)
        return 1
    return 0


def main_client(argv: Sequence[str] | None = None) -> int:
    """Command entry point: ``client server_address server_port``."""
    args = sys.argv[1:] if argv is None else list(argv)
    if len(args) < 2:
        print("Usage: client server_address server_port", file=sys.stderr)
        return 1
    try:
        socket.inet_aton(args[0])
        with socket.create_connection((args[0], _atoi(args[1]))) as sock:
            run_client(sock, sys.stdin)
    except OSError as exc:
        print(f"Client error: {exc}", file=sys.stderr)
        return 1
    return 0
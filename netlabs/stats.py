"""A server that collects numbers over UDP and reports them to TCP clients."""

from __future__ import annotations

import re
import select
import socket
import struct
import sys
from collections.abc import Sequence

BUFLEN = 1024
EMPTY_LIST = "The list is empty.\n"

_LEADING_INT = re.compile(r"\s*([+-]?\d+)")


def _c_text(data: bytes) -> str:
    return data.split(b"\x00", 1)[0].decode("utf-8", errors="replace")


def _leading_int(text: str) -> int | None:
    match = _LEADING_INT.match(text)
    return int(match.group(1)) if match else None


def _atoi(text: str) -> int:
    value = _leading_int(text)
    return 0 if value is None else value


def _float32(value: float) -> float:
    return struct.unpack("f", struct.pack("f", value))[0]


def _stdin_fd() -> int | None:
    try:
        return sys.stdin.fileno()
    except (AttributeError, OSError, ValueError):
        return None


def compute_payload(numbers: Sequence[int]) -> str:
    """Return the list of ``numbers`` and their average in single precision."""
    if not numbers:
        raise ValueError("no numbers to report")
    total = 0.0
    for number in numbers:
        total = _float32(total + number)
    average = _float32(total / len(numbers))
    listed = "".join(f"{number} " for number in numbers)
    return f"{{ {listed}}}\nMedia: {average:f}\n"


class StatsServer:
    """Listens on one port for UDP numbers and TCP clients.

    Each new TCP client is sent the numbers received so far and their
    average. Typing 'exit' on standard input stops the server.
    """

    def __init__(self, port: int) -> None:
        self._tcp = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        self._udp = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
        try:
            self._tcp.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
            self._tcp.bind(("", port))
            self.port = self._tcp.getsockname()[1]
            self._udp.bind(("", self.port))
            self._tcp.listen(socket.SOMAXCONN)
        except OSError:
            self._tcp.close()
            self._udp.close()
            raise
        self._numbers: list[int] = []
        self._clients: list[socket.socket] = []
        self._wake_r, self._wake_w = socket.socketpair()
        self._stopped = False
        self._serving = False
        self._closed = False

    @property
    def numbers(self) -> list[int]:
        """The numbers received so far, in arrival order."""
        return list(self._numbers)

    def snapshot(self) -> str:
        """Return the report a newly connected client is sent."""
        numbers = list(self._numbers)
        return compute_payload(numbers) if numbers else EMPTY_LIST

    def _accept(self) -> None:
        conn, _ = self._tcp.accept()
        self._clients.append(conn)
        try:
            conn.sendall(self.snapshot().encode() + b"\x00")
        except OSError as exc:
            print(f"send failed: {exc}", file=sys.stderr)

    def _receive_number(self) -> None:
        data, (host, port) = self._udp.recvfrom(BUFLEN)
        number = _leading_int(_c_text(data))
        if number is None:
            print(f"ignored datagram without a number from {host}:{port}", file=sys.stderr)
            return
        self._numbers.append(number)
        print(f"Received {number} from {host}:{port}")

    def _handle_client(self, conn: socket.socket) -> None:
        try:
            data = conn.recv(BUFLEN)
        except OSError:
            data = b""
        if not data:
            self._clients.remove(conn)
            conn.close()

    def _handle_command(self, line: str) -> None:
        if line.startswith("exit"):
            self._stopped = True
        else:
            print('ERROR: The only accepted command is "exit".', file=sys.stderr)

    def serve_forever(self) -> None:
        """Serve until 'exit' is read from standard input or :meth:`close`."""
        self._serving = True
        stdin_fd = _stdin_fd()
        try:
            while not self._stopped:
                watched: list = [self._tcp, self._udp, self._wake_r, *self._clients]
                if stdin_fd is not None:
                    watched.append(stdin_fd)
                ready, _, _ = select.select(watched, [], [])
                for item in ready:
                    if self._stopped:
                        break
                    if item is self._tcp:
                        self._accept()
                    elif item is self._udp:
                        self._receive_number()
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
        for conn in self._clients:
            conn.close()
        self._clients.clear()
        self._tcp.close()
        self._udp.close()
        self._wake_r.close()
        self._wake_w.close()

    def __enter__(self) -> StatsServer:
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()


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
        StatsServer(port).serve_forever()
    except OSError as exc:
        print(f"Server error: {exc}", file=sys.stderr)
        return 1
    return 0


def _await_report(sock: socket.socket) -> str | None:
    stdin_fd = _stdin_fd()
    while True:
        watched: list = [sock]
        if stdin_fd is not None:
            watched.append(stdin_fd)
        ready, _, _ = select.select(watched, [], [])
        if stdin_fd is not None and stdin_fd in ready:
            line = sys.stdin.readline(BUFLEN - 1)
            if not line:
                stdin_fd = None
            elif line.startswith("exit"):
                return None
            else:
                print("Wait for the server's reply!")
        if sock in ready:
            text = _c_text(sock.recv(BUFLEN))
            print(text, end="")
            return text


def main_tcp_client(argv: Sequence[str] | None = None) -> int:
    """Command entry point: ``tcp_client server_address server_port``."""
    args = sys.argv[1:] if argv is None else list(argv)
    if len(args) < 2:
        print("Usage: tcp_client server_address server_port", file=sys.stderr)
        return 1
    try:
        socket.inet_aton(args[0])
        with socket.create_connection((args[0], _atoi(args[1]))) as sock:
            _await_report(sock)
    except OSError as exc:
        print(f"Client error: {exc}", file=sys.stderr)
        return 1
    return 0


def main_udp_sender(argv: Sequence[str] | None = None) -> int:
    """Command entry point: ``udp_sender ip_server port_server number``."""
    args = sys.argv[1:] if argv is None else list(argv)
    if len(args) != 3:
        print("Usage: udp_sender ip_server port_server number", file=sys.stderr)
        return 1
    host, port, text = args[0], _atoi(args[1]), args[2]
    datagram = text.encode()[: BUFLEN - 1].ljust(BUFLEN, b"\x00")
    try:
        with socket.socket(socket.AF_INET, socket.SOCK_DGRAM) as sock:
            sock.sendto(datagram, (host, port))
    except OSError as exc:
        print(f"Error sending data: {exc}", file=sys.stderr)
        return 1
    print(f"Number {_atoi(text)} was sent successfully to the server!")
    return 0
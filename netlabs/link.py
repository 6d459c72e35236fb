"""A UDP link emulator with bandwidth, delay, loss and corruption."""

from __future__ import annotations

import random
import re
import socket
import sys
import threading
import time
from collections import deque
from collections.abc import Sequence
from dataclasses import dataclass

from netlabs.linklib import MESSAGE_SIZE, Message

LOCAL_PORT1 = 10000
LOCAL_PORT2 = 10001
_POLL_INTERVAL = 0.1
_PARAMS = ("speed", "delay", "loss", "corrupt")
_FLOAT = re.compile(r"\s*[+-]?(?:\d+(?:\.\d*)?|\.\d+)(?:[eE][+-]?\d+)?")
_USAGE = (
    "Usage {prog} speed=[speed in mb/s] delay=[delay in ms] "
    "loss=[percent of packets] corrupt=[percent of packets]"
)


@dataclass
class LinkSettings:
    """Link characteristics; delays are in microseconds, rates in percent."""

    serialization_delay: int = 1000
    delay: int = 1000
    loss: int = 0
    corrupt: int = 0
    buffer_size: int = 1000


def _atof(text: str) -> float:
    match = _FLOAT.match(text)
    return float(match.group(0)) if match else 0.0


def parse_param(text: str) -> tuple[str, float]:
    """Split ``name=value`` into a lower-case known name and a number."""
    name, sep, rest = text.partition("=")
    if not sep:
        raise ValueError(f"missing '=' in parameter {text!r}")
    key = name.lower()
    if key not in _PARAMS:
        raise ValueError(f"Unknown parameter {name}")
    return key, _atof(rest)


def _apply(settings: LinkSettings, name: str, value: float) -> str:
    if name == "speed":
        if value == 0:
            raise ValueError("speed must not be zero")
        settings.serialization_delay = int(2 * 11200 / value)
        return f"Setting speed to {value:f} Mb/s"
    if name == "delay":
        settings.delay = int(value * 1000)
        return f"Setting delay {value:f} to ms"
    if name == "loss":
        settings.loss = int(value)
        return f"Setting loss rate to {value:f}%"
    settings.corrupt = int(value)
    return f"Setting corruption rate to {value:f}%"


def parse_settings(args: Sequence[str]) -> LinkSettings:
    """Build settings from ``name=value`` arguments, applied in order."""
    settings = LinkSettings()
    for arg in args:
        _apply(settings, *parse_param(arg))
    return settings


class LinkEmulator:
    """Forwards port1 -> port2 through a shaped link, port2 -> port1 directly."""

    def __init__(
        self,
        settings: LinkSettings | None = None,
        port1: int = LOCAL_PORT1,
        port2: int = LOCAL_PORT2,
    ) -> None:
        self.settings = settings if settings is not None else LinkSettings()
        self._rng = random.Random()
        self._socks = [self._bind(port1)]
        try:
            self._socks.append(self._bind(port2))
        except OSError:
            self._socks[0].close()
            raise
        self.port1 = self._socks[0].getsockname()[1]
        self.port2 = self._socks[1].getsockname()[1]
        self._remotes: list[tuple[str, int] | None] = [None, None]
        self._buffer: deque[bytes] = deque()
        self._cond = threading.Condition()
        self._stopped = threading.Event()
        self._running = False

    @staticmethod
    def _bind(port: int) -> socket.socket:
        sock = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
        try:
            sock.bind(("", port))
            sock.settimeout(_POLL_INTERVAL)
        except OSError:
            sock.close()
            raise
        return sock

    def corrupt(self, payload: bytes) -> bytes:
        """Return ``payload`` with one random bit of one random byte flipped."""
        if not payload:
            return bytes(payload)
        data = bytearray(payload)
        data[self._rng.randrange(len(data))] ^= 1 << self._rng.randrange(8)
        return bytes(data)

    def _receive(self, index: int) -> bytes | None:
        sock = self._socks[index]
        while not self._stopped.is_set():
            try:
                data, address = sock.recvfrom(MESSAGE_SIZE)
            except socket.timeout:
                continue
            if self._remotes[index] is None:
                # The first datagram only announces the peer's address.
                self._remotes[index] = address
                continue
            return data
        return None

    def _send(self, index: int, data: bytes) -> None:
        remote = self._remotes[index]
        if remote is None:
            port = self._socks[index].getsockname()[1]
            print(f"Trying to send a message but remote peer is not connected on my port {port}")
            return
        try:
            self._socks[index].sendto(data, remote)
        except OSError as exc:
            print(f"SNDMSG{index + 1}: {exc}", file=sys.stderr)

    def _forward(self) -> None:
        while (data := self._receive(0)) is not None:
            with self._cond:
                overflow = len(self._buffer) >= self.settings.buffer_size
            if overflow or self._rng.randrange(100) < self.settings.loss:
                print("Dropped packet")
                continue
            if self._rng.randrange(100) < self.settings.corrupt:
                try:
                    message = Message.unpack(data)
                except ValueError:
                    pass
                else:
                    data = Message(self.corrupt(message.payload), message.length).pack()
            with self._cond:
                self._buffer.append(data)
                self._cond.notify()

    def _schedule(self) -> None:
        in_flight: deque[tuple[float, bytes]] = deque()
        idle_time = 0.0
        serialization = self.settings.serialization_delay / 1e6
        delay = self.settings.delay / 1e6
        while not self._stopped.is_set():
            now = time.monotonic()
            while in_flight and now >= in_flight[0][0]:
                self._send(1, in_flight.popleft()[1])
            with self._cond:
                if self._buffer and now >= idle_time:
                    idle_time = now + serialization
                    in_flight.append((now + serialization + delay, self._buffer.popleft()))
                deadlines = [idle_time]
                if in_flight:
                    deadlines.append(in_flight[0][0])
                waits = [deadline - now for deadline in deadlines if deadline > now]
                if waits:
                    self._cond.wait(min(waits))
                elif not in_flight and not self._buffer and not self._stopped.is_set():
                    self._cond.wait()

    def _reverse(self) -> None:
        while (data := self._receive(1)) is not None:
            self._send(0, data)

    def run(self) -> None:
        """Run the emulator until :meth:`stop` is called."""
        self._running = True
        workers = [
            threading.Thread(target=self._schedule, daemon=True),
            threading.Thread(target=self._forward, daemon=True),
        ]
        for worker in workers:
            worker.start()
        try:
            self._reverse()
        finally:
            self.stop()
            for worker in workers:
                worker.join()
            self._close()
            self._running = False

    def stop(self) -> None:
        """Ask a running emulator to finish, or release an idle one."""
        self._stopped.set()
        with self._cond:
            self._cond.notify_all()
        if not self._running:
            self._close()

    def _close(self) -> None:
        for sock in self._socks:
            sock.close()


def main(argv: Sequence[str] | None = None) -> int:
    """Command entry point for the link emulator."""
    args = sys.argv[1:] if argv is None else list(argv)
    settings = LinkSettings()
    for arg in args:
        try:
            print(_apply(settings, *parse_param(arg)))
        except ValueError as exc:
            print(exc)
            print(_USAGE.format(prog="link"))
            return 1
    emulator = LinkEmulator(settings)
    try:
        emulator.run()
    except KeyboardInterrupt:
        emulator.stop()
    return 0
"""Client side of the emulated link: fixed-size messages over UDP."""

from __future__ import annotations

import socket
import struct
from dataclasses import dataclass

MSGSIZE = 1400
_LENGTH = struct.Struct("<i")
MESSAGE_SIZE = _LENGTH.size + MSGSIZE


@dataclass
class Message:
    """A link message: a declared length and up to MSGSIZE payload bytes."""

    payload: bytes = b""
    length: int | None = None

    def __post_init__(self) -> None:
        self.payload = bytes(self.payload)
        if len(self.payload) > MSGSIZE:
            raise ValueError(f"payload too long: {len(self.payload)} > {MSGSIZE} bytes")
        if self.length is None:
            self.length = len(self.payload)

    def pack(self) -> bytes:
        """Return the wire form: the length word and a zero-padded payload."""
        return _LENGTH.pack(self.length) + self.payload.ljust(MSGSIZE, b"\x00")

    @classmethod
    def unpack(cls, data: bytes) -> Message:
        """Parse the wire form, keeping the payload bytes covered by the length."""
        if len(data) < _LENGTH.size:
            raise ValueError(f"message too short: {len(data)} bytes")
        (length,) = _LENGTH.unpack_from(data)
        body = bytes(data[_LENGTH.size : _LENGTH.size + MSGSIZE])
        end = max(0, min(length, len(body)))
        return cls(body[:end], length)


class LinkClient:
    """A UDP endpoint talking to one port of the link emulator."""

    def __init__(self, remote: str, port: int) -> None:
        try:
            socket.inet_aton(remote)
        except OSError:
            raise ValueError(f"invalid IPv4 address: {remote!r}") from None
        self.remote = (remote, port)
        self._sock = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
        try:
            self._sock.bind(("", 0))
            # The first datagram tells the emulator where this endpoint lives.
            self.send_message(Message())
        except OSError:
            self._sock.close()
            raise

    def send_message(self, message: Message) -> int:
        """Send ``message``; return the number of bytes written."""
        return self._sock.sendto(message.pack(), self.remote)

    def recv_message(self) -> Message:
        """Block until a message arrives and return it."""
        data = self._sock.recv(MESSAGE_SIZE)
        return Message.unpack(data)

    def close(self) -> None:
        """Close the socket."""
        self._sock.close()

    def __enter__(self) -> LinkClient:
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()
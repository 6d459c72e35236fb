"""Send a file over the emulated link and store a copy on the other side."""

from __future__ import annotations

import os
import re
import sys
from collections.abc import Sequence
from pathlib import Path

from netlabs.linklib import MSGSIZE, LinkClient, Message

HOST = "127.0.0.1"
SEND_PORT = 10000
RECV_PORT = 10001
CHUNK_SIZE = MSGSIZE - 1

_LEADING_INT = re.compile(r"\s*([+-]?\d+)")


def _text(message: Message) -> bytes:
    return message.payload.split(b"\x00", 1)[0]


def _decode(message: Message) -> str:
    return _text(message).decode("utf-8", errors="replace")


def _make(text: bytes) -> Message:
    return Message(text + b"\x00")


def _atoi(text: str) -> int:
    match = _LEADING_INT.match(text)
    return int(match.group(1)) if match else 0


def copy_name(filename: str) -> str:
    """Replace the four-character extension of ``filename`` with '_copy.txt'."""
    if len(filename) < 4:
        raise ValueError(f"file name too short: {filename!r}")
    return filename[:-4] + "_copy.txt"


def send_file(client, path: str | os.PathLike[str]) -> list[str]:
    """Send the name, size and contents of ``path``; return the replies."""
    path = Path(path)
    replies = []

    def exchange(message: Message) -> None:
        client.send_message(message)
        reply = _decode(client.recv_message())
        print(f"[send] Got reply with payload: {reply}")
        replies.append(reply)

    with open(path, "rb") as source:
        print("[send] Sending filename...")
        exchange(_make(os.fsencode(path.name)))

        print("[send] Computing file size...")
        filesize = source.seek(0, os.SEEK_END)
        source.seek(0)

        print("[send] Sending file size...")
        exchange(_make(str(filesize).encode()))

        while filesize > 0:
            chunk = source.read(CHUNK_SIZE)
            if not chunk:
                break
            print("[send] Sending package...")
            exchange(_make(chunk))
            filesize -= len(chunk)
    return replies


def receive_file(client, directory: str | os.PathLike[str] = ".") -> Path:
    """Receive a file from the link and write it as a copy in ``directory``."""
    name = os.fsdecode(_text(client.recv_message()))
    print(f"[recv] Received filename: <{name}>")
    print("[recv] Creating copy...")
    target = Path(directory) / copy_name(name)
    fd = os.open(target, os.O_CREAT | os.O_WRONLY, 0o755)

    with os.fdopen(fd, "wb") as out:
        client.send_message(_make(b"File copy created"))
        print("[recv] ACK sent")

        size_text = _decode(client.recv_message())
        print(f"[recv] Got msg with filesize: <{size_text} bytes>")
        filesize = _atoi(size_text)

        client.send_message(_make(b"File size received"))
        print("[recv] ACK sent")

        count = 1
        while filesize > 0:
            data = _text(client.recv_message())
            print(f"[recv] Got msg with the following content: \n{data.decode(errors='replace')}")
            print(f"[recv] Writing package {count} in file copy...")
            filesize -= out.write(data)
            client.send_message(_make(f"Package {count} received".encode()))
            count += 1
            print("[recv] ACK sent")
    return target


def main_send(argv: Sequence[str] | None = None) -> int:
    """Command entry point for the sending side."""
    args = sys.argv[1:] if argv is None else list(argv)
    path = args[0] if args else "file.txt"
    try:
        with LinkClient(HOST, SEND_PORT) as client:
            send_file(client, path)
    except OSError as exc:
        print(f"Transfer error: {exc}", file=sys.stderr)
        return 1
    return 0


def main_recv(argv: Sequence[str] | None = None) -> int:
    """Command entry point for the receiving side."""
    args = sys.argv[1:] if argv is None else list(argv)
    directory = args[0] if args else "."
    try:
        with LinkClient(HOST, RECV_PORT) as client:
            receive_file(client, directory)
    except (OSError, ValueError) as exc:
        print(f"Receive error: {exc}", file=sys.stderr)
        return 1
    return 0
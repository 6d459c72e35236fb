"""Sliding-window sender and parity-checking receiver over the emulated link."""

from __future__ import annotations

import re
import sys
from collections.abc import Sequence

from netlabs.linklib import MESSAGE_SIZE, LinkClient, Message
from netlabs.parity import frame_is_valid, pack_frame

HOST = "127.0.0.1"
SEND_PORT = 10000
RECV_PORT = 10001
COUNT = 100
FRAME_TEXT = b"payload"

_LEADING_INT = re.compile(r"\s*([+-]?\d+)")


def _atoi(text: str) -> int:
    match = _LEADING_INT.match(text)
    return int(match.group(1)) if match else 0


def window_size(bdp: int) -> int:
    """Return how many frames fit in a bandwidth-delay product, at most COUNT."""
    if bdp < 0:
        raise ValueError(f"bandwidth-delay product must not be negative: {bdp}")
    return min(bdp * 1000 // (MESSAGE_SIZE * 8), COUNT)


def run_sender(client, bdp: int) -> int:
    """Send COUNT parity frames keeping a window in flight; return its size."""
    print(f"[SENDER]: BDP = {bdp}")
    window = window_size(bdp)
    print(f"[SENDER]: w = {window}")

    frame = Message(pack_frame(FRAME_TEXT))
    for _ in range(window):
        client.send_message(frame)
    for _ in range(COUNT - window):
        client.recv_message()
        client.send_message(frame)
    for _ in range(window):
        client.recv_message()

    print("[SENDER] Job done, all sent.")
    return window


def run_receiver(client) -> tuple[int, int]:
    """Receive COUNT frames, acknowledge each, and count valid and corrupt ones."""
    ok = corrupt = 0
    for _ in range(COUNT):
        message = client.recv_message()
        try:
            valid = frame_is_valid(message.payload)
        except ValueError:
            valid = False
        if valid:
            ok += 1
        else:
            corrupt += 1
        client.send_message(Message(b"ACK\x00" + message.payload[4:], message.length))

    rate = ok * 100 / (ok + corrupt)
    print(f"[RECEIVER] OK = {ok}; CORRUPT = {corrupt} => {rate:.2f}% success rate")
    return ok, corrupt


def main_send(argv: Sequence[str] | None = None) -> int:
    """Command entry point for the sender: takes the BDP as its argument."""
    args = sys.argv[1:] if argv is None else list(argv)
    if not args:
        print("usage: send BDP", file=sys.stderr)
        return 1
    print("[SENDER] Starting.")
    try:
        with LinkClient(HOST, SEND_PORT) as client:
            run_sender(client, _atoi(args[0]))
    except (OSError, ValueError) as exc:
        print(f"[SENDER] Error: {exc}", file=sys.stderr)
        return 1
    return 0


def main_recv(argv: Sequence[str] | None = None) -> int:
    """Command entry point for the receiver."""
    print("[RECEIVER] Starting.")
    try:
        with LinkClient(HOST, RECV_PORT) as client:
            run_receiver(client)
    except OSError as exc:
        print(f"[RECEIVER] Error: {exc}", file=sys.stderr)
        return 1
    print("[RECEIVER] Finished receiving..")
    return 0
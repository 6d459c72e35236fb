"""Print a file forwards (cat) or line by line backwards (tac)."""

from __future__ import annotations

import os
import shutil
import sys
from collections.abc import Iterator, Sequence
from pathlib import Path
from typing import BinaryIO

CHUNK_SIZE = 1024
_NEWLINE = ord("\n")


def cat(path: str | os.PathLike[str], out: BinaryIO) -> None:
    """Copy the contents of ``path`` to the binary stream ``out``."""
    with open(path, "rb") as source:
        shutil.copyfileobj(source, out, CHUNK_SIZE)


def _reversed_lines(data: bytes) -> Iterator[bytes]:
    """Yield the lines of ``data`` from last to first.

    The scan starts two bytes before the end, so the final byte (normally
    the trailing newline) is never part of a line, and it stops once fewer
    than three bytes remain before the current line.
    """
    pos = len(data)
    while pos > 1:
        pos -= 2
        if pos <= 2:
            break
        chars = bytearray()
        ch = data[pos]
        pos += 1
        while ch != _NEWLINE:
            chars.append(ch)
            if pos < 2:
                break
            pos -= 2
            ch = data[pos]
            pos += 1
        chars.reverse()
        yield bytes(chars)


def tac(path: str | os.PathLike[str], out: BinaryIO) -> None:
    """Write the lines of ``path`` to ``out`` in reverse order."""
    data = Path(path).read_bytes()
    for line in _reversed_lines(data):
        out.write(line + b"\n")


def _run(action, argv: Sequence[str] | None, prog: str) -> int:
    args = sys.argv[1:] if argv is None else list(argv)
    if not args:
        print(f"usage: {prog} FILE", file=sys.stderr)
        return 1
    out = sys.stdout.buffer
    try:
        action(args[0], out)
    except OSError as exc:
        print(f"cannot open file: {exc}", file=sys.stderr)
        return 1
    out.flush()
    return 0


def main_cat(argv: Sequence[str] | None = None) -> int:
    """Command entry point for cat."""
    return _run(cat, argv, "cat")


def main_tac(argv: Sequence[str] | None = None) -> int:
    """Command entry point for tac."""
    return _run(tac, argv, "tac")
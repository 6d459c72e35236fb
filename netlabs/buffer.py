"""A growable byte buffer with substring search."""

from __future__ import annotations


class Buffer:
    """Accumulates bytes and finds byte sequences within them."""

    def __init__(self) -> None:
        self._data = bytearray()

    def add(self, data: bytes) -> None:
        """Append ``data`` to the buffer."""
        self._data += data

    def find(self, data: bytes) -> int:
        """Return the position of the first occurrence of ``data``, or -1."""
        return self._data.find(data)

    def find_insensitive(self, data: bytes) -> int:
        """Like :meth:`find`, ignoring ASCII case."""
        return self._data.lower().find(bytes(data).lower())

    def is_empty(self) -> bool:
        """Return True if nothing has been added."""
        return not self._data

    def clear(self) -> None:
        """Discard the contents."""
        self._data.clear()

    @property
    def data(self) -> bytes:
        """The buffered bytes."""
        return bytes(self._data)

    def __len__(self) -> int:
        return len(self._data)

    def __bytes__(self) -> bytes:
        return bytes(self._data)
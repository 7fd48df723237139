"""A sorted key/value store holding copies of byte payloads.

The amount of each value that is stored is decided by a length function,
either :func:`strlen` for NUL-terminated strings or :func:`blob_len` for
blob attributes.
"""

from __future__ import annotations

from typing import Callable, Iterator, Optional, Union

from ubox.avl import AvlTree, strcmp
from ubox.blob import BlobAttr

__all__ = ["KvList", "strlen", "blob_len"]

Data = Union[bytes, bytearray, memoryview, str, BlobAttr]


def _as_bytes(data: Data) -> bytes:
    if isinstance(data, str):
        return data.encode("utf-8")
    return bytes(data)


def strlen(data: Data) -> int:
    """Length of a NUL-terminated string, terminator included."""
    raw = _as_bytes(data)
    nul = raw.find(b"\0")
    return (len(raw) if nul < 0 else nul) + 1


def blob_len(data: Data) -> int:
    """Padded length of a blob attribute."""
    attr = data if isinstance(data, BlobAttr) else BlobAttr(_as_bytes(data))
    return attr.pad_len


class KvList:
    """Mapping of names to byte values, iterated in name order."""

    def __init__(self, get_len: Callable[[Data], int] = strlen) -> None:
        self._get_len = get_len
        self._tree = AvlTree(strcmp)

    def get(self, name: str) -> Optional[bytes]:
        """Return the stored value for ``name``, or None."""
        node = self._tree.find(name)
        return None if node is None else node.value

    def set(self, name: str, data: Data) -> None:
        """Store a copy of ``data`` under ``name``, replacing any old value."""
        length = self._get_len(data)
        raw = _as_bytes(data)[:length].ljust(length, b"\0")
        self.delete(name)
        self._tree.insert(name, raw)

    def delete(self, name: str) -> bool:
        """Remove ``name``; return whether it was present."""
        node = self._tree.find(name)
        if node is None:
            return False
        self._tree.delete(node)
        return True

    def clear(self) -> None:
        """Remove every entry."""
        self._tree.clear()

    def __len__(self) -> int:
        return len(self._tree)

    def __contains__(self, name: object) -> bool:
        return isinstance(name, str) and self._tree.find(name) is not None

    def __iter__(self) -> Iterator[str]:
        for node in self._tree:
            yield node.key

    def items(self) -> Iterator[tuple[str, bytes]]:
        """Iterate over ``(name, value)`` pairs in name order."""
        for node in self._tree:
            yield node.key, node.value
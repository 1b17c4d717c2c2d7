"""A fixed-capacity cache that evicts the least recently read entry, and list helpers."""

from __future__ import annotations

from collections import OrderedDict
from typing import Generic, Hashable, Iterator, Optional, Sequence, TypeVar

K = TypeVar("K", bound=Hashable)
V = TypeVar("V")
L = TypeVar("L")
R = TypeVar("R")
T = TypeVar("T")


def left_shift(items: list[T], start: int, count: int) -> None:
    """Move ``count`` items one place left starting at ``start``, in place."""
    if not items or start + count > len(items):
        return
    for offset in range(count):
        items[start + offset] = items[start + offset + 1]


def zip_strict(left: Sequence[L], right: Sequence[R]) -> Iterator[tuple[L, R]]:
    """Pair items of two sequences of equal length."""
    if len(left) != len(right):
        raise ValueError("out of bounds")
    return zip(left, right)


class LRU(Generic[K, V]):
    """Reading an entry makes it most recent; updating a value in place does not."""

    def __init__(self, capacity: int) -> None:
        if capacity < 1:
            raise ValueError("capacity must be at least 1")
        self.capacity = capacity
        self._entries: OrderedDict[K, V] = OrderedDict()

    def get(self, key: K) -> Optional[V]:
        """Return the value for ``key`` and mark it most recent; None if absent."""
        if key not in self._entries:
            return None
        self._entries.move_to_end(key)
        return self._entries[key]

    def put(self, key: K, value: V) -> None:
        """Store a value, evicting the least recent entry when full."""
        if key in self._entries:
            self._entries[key] = value
            return
        if len(self._entries) >= self.capacity:
            self._entries.popitem(last=False)
        self._entries[key] = value

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: object) -> bool:
        return key in self._entries

    def __repr__(self) -> str:
        body = "".join(f"({key}, {value}) " for key, value in self._entries.items())
        return f"[{body}]"
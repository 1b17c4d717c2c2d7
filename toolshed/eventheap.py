"""Events ordered by remaining delay, with the soonest at the end of a sorted list."""

from __future__ import annotations

import bisect
from dataclasses import dataclass
from typing import Generic, TypeVar

K = TypeVar("K")


@dataclass
class Event(Generic[K]):
    key: K
    delay: int


class EventHeap(Generic[K]):
    """Keeps events sorted by delay, longest first; events of equal delay leave in arrival order."""

    def __init__(self) -> None:
        self._items: list[Event[K]] = []

    def __len__(self) -> int:
        return len(self._items)

    def min(self) -> int:
        """The smallest delay, or -1 when empty."""
        if not self._items:
            return -1
        return self._items[-1].delay

    def push(self, event: Event[K]) -> None:
        index = bisect.bisect_left(self._items, -event.delay, key=lambda item: -item.delay)
        self._items.insert(index, event)

    def pop(self) -> Event[K]:
        """Remove and return the event with the smallest delay."""
        if not self._items:
            raise IndexError("pop from an empty event heap")
        return self._items.pop()

    def decrement(self, seconds: int) -> list[Event[K]]:
        """Let ``seconds`` pass: remove and return due events, shorten the others."""
        ready: list[Event[K]] = []
        while self._items and self._items[-1].delay <= seconds:
            event = self._items.pop()
            event.delay -= seconds
            ready.append(event)
        for event in self._items:
            event.delay -= seconds
        return ready
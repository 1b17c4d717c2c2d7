"""String interning backed by a bounded LRU cache."""

from __future__ import annotations

import threading

from toolshed.lru import LRU


class StringIntern:
    """Returns one shared string object for equal strings while they stay cached."""

    def __init__(self, capacity: int) -> None:
        self._cache: LRU[str, str] = LRU(capacity)

    def intern(self, text: str) -> str:
        cached = self._cache.get(text)
        if cached is not None:
            return cached
        self._cache.put(text, text)
        return text


class ConcurrentStringIntern(StringIntern):
    """A StringIntern safe to share between threads."""

    def __init__(self, capacity: int) -> None:
        super().__init__(capacity)
        self._lock = threading.Lock()

    def intern(self, text: str) -> str:
        with self._lock:
            return super().intern(text)
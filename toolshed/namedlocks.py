"""Reader-writer locks looked up by name, created on first use."""

from __future__ import annotations

import argparse
import logging
import sys
import threading
import time
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Iterator, Optional

logger = logging.getLogger(__name__)


class RWLock:
    """Many readers or one writer; a waiting writer keeps new readers out."""

    def __init__(self) -> None:
        self._cond = threading.Condition(threading.Lock())
        self._readers = 0
        self._writer = False
        self._waiting_writers = 0

    def acquire_read(self) -> None:
        with self._cond:
            while self._writer or self._waiting_writers:
                self._cond.wait()
            self._readers += 1

    def release_read(self) -> None:
        with self._cond:
            if self._readers == 0:
                raise RuntimeError("release_read of an RWLock not held for reading")
            self._readers -= 1
            if self._readers == 0:
                self._cond.notify_all()

    def acquire_write(self) -> None:
        with self._cond:
            self._waiting_writers += 1
            try:
                while self._writer or self._readers:
                    self._cond.wait()
            finally:
                self._waiting_writers -= 1
            self._writer = True

    def release_write(self) -> None:
        with self._cond:
            if not self._writer:
                raise RuntimeError("release_write of an RWLock not held for writing")
            self._writer = False
            self._cond.notify_all()

    @contextmanager
    def reading(self) -> Iterator[None]:
        self.acquire_read()
        try:
            yield
        finally:
            self.release_read()

    @contextmanager
    def writing(self) -> Iterator[None]:
        self.acquire_write()
        try:
            yield
        finally:
            self.release_write()


@dataclass
class _Locker:
    lock: RWLock = field(default_factory=RWLock)
    created: threading.Event = field(default_factory=threading.Event)


class LockRegistry:
    """Hands out one RWLock per name; callers wait while a new lock is set up."""

    def __init__(self, init_delay: float = 0.1) -> None:
        self.init_delay = init_delay
        self._guard = threading.Lock()
        self._lockers: dict[str, _Locker] = {}

    def _get_or_create(self, name: str) -> _Locker:
        with self._guard:
            locker = self._lockers.get(name)
            creator = locker is None
            if locker is None:
                locker = _Locker()
                self._lockers[name] = locker

        if creator:
            time.sleep(self.init_delay)
            locker.created.set()
            logger.info("Locker for '%s' initialized", name)
        elif not locker.created.is_set():
            logger.info("waiting for locker '%s' to be initialized", name)
            locker.created.wait()
        return locker

    def _existing(self, name: str) -> Optional[_Locker]:
        with self._guard:
            return self._lockers.get(name)

    def lock(self, name: str) -> None:
        locker = self._get_or_create(name)
        logger.info("lock %s", name)
        locker.lock.acquire_write()

    def unlock(self, name: str) -> None:
        """Release the write lock of ``name``; unknown names are ignored."""
        locker = self._existing(name)
        logger.info("unlock %s", name)
        if locker is not None:
            locker.lock.release_write()

    def rlock(self, name: str) -> None:
        locker = self._get_or_create(name)
        logger.info("rlock %s", name)
        locker.lock.acquire_read()

    def runlock(self, name: str) -> None:
        """Release a read lock of ``name``; unknown names are ignored."""
        locker = self._existing(name)
        logger.info("runlock %s", name)
        if locker is not None:
            locker.lock.release_read()


def main(argv: Optional[list[str]] = None) -> int:
    parser = argparse.ArgumentParser(description="Exercise named reader-writer locks.")
    parser.add_argument("--init-delay", type=float, default=0.1)
    options = parser.parse_args(argv)
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(message)s")

    registry = LockRegistry(options.init_delay)
    names = ["a", "b", "c", "d"]

    def writer() -> None:
        for name in names:
            registry.lock(name)
            registry.unlock(name)

    def reader_then_writer() -> None:
        for name in names:
            registry.rlock(name)
            registry.runlock(name)
            registry.lock(name)
            registry.unlock(name)

    def writer_then_reader() -> None:
        for name in names:
            registry.lock(name)
            registry.unlock(name)
            registry.rlock(name)
            registry.runlock(name)

    threads = [
        threading.Thread(target=target)
        for target in (writer, reader_then_writer, writer_then_reader)
    ]
    for thread in threads:
        thread.start()

    for name in names:
        registry.rlock(name)
        registry.runlock(name)

    for thread in threads:
        thread.join()
    return 0


if __name__ == "__main__":
    sys.exit(main())
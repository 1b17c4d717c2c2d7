"""Message topics stored in SQLite, and an in-memory store with the same reading rules."""

from __future__ import annotations

import logging
import os
import sqlite3
import threading
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Union

logger = logging.getLogger(__name__)

DEFAULT_DIRECTORY = "./_msq_"
GC_INTERVAL = 300.0

PathLike = Union[str, "os.PathLike[str]"]


class StoppedError(RuntimeError):
    """The topic or exchange is not running."""

    def __init__(self, message: str = "stopped") -> None:
        super().__init__(message)


def encode_timestamp(millis: int) -> str:
    """Zero-pad milliseconds to 24 digits so that ids sort in time order."""
    return f"{millis:024d}"


def _now_millis() -> int:
    return time.time_ns() // 1_000_000


@dataclass(frozen=True)
class Metrics:
    total_messages: int
    total_channels: int


class Topic:
    """A durable stream of messages; each named channel remembers the last id it read.

    A channel reading for the first time starts after the newest message, so it only
    sees what is sent from then on. Messages up to the furthest read position of any
    channel are removed when garbage is collected and when the topic stops.
    """

    def __init__(self, name: str, directory: PathLike = DEFAULT_DIRECTORY) -> None:
        self.name = name
        folder = Path(directory)
        folder.mkdir(parents=True, exist_ok=True)
        self._db = sqlite3.connect(
            str(folder / f"{name}.db"), check_same_thread=False, isolation_level=None
        )
        self._lock = threading.RLock()
        self._changed = threading.Condition(self._lock)
        self._halt = threading.Event()
        self._running = False
        self._closed = False

        try:
            self._db.execute(
                "create table if not exists messages (id text not null, "
                "timestamp int not null, msg blob not null, primary key (id))"
            )
            self._db.execute(
                "create table if not exists channels (id text not null, "
                "last_read text not null, primary key (id))"
            )
            self._last = self._max_last_read() or ""
            newest = self._db.execute("select max(id) from messages").fetchone()[0]
        except sqlite3.Error:
            self._db.close()
            raise

        try:
            self._last_millis = int(newest) if newest else 0
        except ValueError:
            self._last_millis = 0

        self._gc_thread = threading.Thread(
            target=self._gc_loop, name=f"topic-gc-{name}", daemon=True
        )
        self._gc_thread.start()

    @property
    def last(self) -> str:
        """The id of the newest message sent, or the furthest read position on opening."""
        return self._last

    def _max_last_read(self) -> Optional[str]:
        row = self._db.execute(
            "select last_read from channels order by last_read desc limit 1"
        ).fetchone()
        return row[0] if row else None

    def metrics(self) -> Metrics:
        with self._lock:
            messages = self._db.execute("select count(*) from messages").fetchone()[0]
            channels = self._db.execute("select count(*) from channels").fetchone()[0]
        return Metrics(total_messages=messages, total_channels=channels)

    def run(self) -> None:
        with self._lock:
            self._running = True

    def collect_garbage(self) -> None:
        """Delete messages up to the furthest position any channel has read."""
        with self._lock:
            if self._closed:
                return
            last = self._max_last_read()
            if last is None:
                return
            self._db.execute("delete from messages where id <= ?", (last,))

    def _gc_loop(self) -> None:
        while True:
            try:
                self.collect_garbage()
            except sqlite3.Error:
                logger.exception("garbage collection of topic %s failed", self.name)
            if self._halt.wait(GC_INTERVAL):
                return

    def send(self, msg: bytes) -> str:
        """Store a message and wake waiting readers; returns the new message id."""
        data = bytes(msg)
        with self._lock:
            if not self._running:
                raise StoppedError()
            now = max(_now_millis(), self._last_millis + 1)
            self._last_millis = now
            msg_id = encode_timestamp(now)
            self._db.execute(
                "insert into messages (id, timestamp, msg) values (?, ?, ?)",
                (msg_id, now, data),
            )
            self._last = msg_id
            self._changed.notify_all()
        return msg_id

    def read_next(self, channel: str) -> tuple[str, bytes]:
        """Return the first message after the channel's position, waiting for one if needed."""
        with self._lock:
            if self._closed:
                raise StoppedError()
            row = self._db.execute(
                "select last_read from channels where id = ?", (channel,)
            ).fetchone()
            if row is not None:
                last = row[0]
            else:
                last = ""
                if self._last:
                    self.mark_read(channel, self._last)
                    last = self._last

            while True:
                if not self._running:
                    raise StoppedError()
                found = self._db.execute(
                    "select id, msg from messages where id > ? order by id asc limit 1",
                    (last,),
                ).fetchone()
                logger.debug("get next %s %s %s", channel, found[0] if found else "", last)
                if found is not None:
                    return found[0], bytes(found[1])
                self._changed.wait()

    def mark_read(self, channel: str, msg_id: str) -> None:
        with self._lock:
            if self._closed:
                raise StoppedError()
            self._db.execute(
                "insert into channels (id, last_read) values (?, ?) "
                "on conflict(id) do update set last_read = excluded.last_read",
                (channel, msg_id),
            )

    def clear(self) -> None:
        """Remove every message and every channel position in one transaction."""
        with self._lock:
            if self._closed:
                raise StoppedError()
            self._db.execute("BEGIN")
            try:
                self._db.execute("delete from messages")
                self._db.execute("delete from channels")
            except BaseException:
                self._db.execute("ROLLBACK")
                raise
            self._db.execute("COMMIT")

    def stop(self) -> None:
        """Stop the topic, wake waiting readers, drop read messages and close the store."""
        with self._lock:
            if self._closed:
                return
            self._running = False
            self._halt.set()
            self._changed.notify_all()
            try:
                last = self._max_last_read()
                if last is not None:
                    self._db.execute("delete from messages where id <= ?", (last,))
            finally:
                self._db.close()
                self._closed = True


class MemoryStore:
    """A topic kept in memory, following the same reading rules as Topic."""

    def __init__(self, name: str) -> None:
        self.name = name
        self._messages: dict[str, bytes] = {}
        self._order: list[str] = []
        self._last_read: dict[str, str] = {}
        self._last = ""
        self._last_millis = 0
        self._running = False
        self._lock = threading.RLock()
        self._changed = threading.Condition(self._lock)

    def run(self) -> None:
        with self._lock:
            self._running = True

    def send(self, msg: bytes) -> str:
        data = bytes(msg)
        with self._lock:
            if not self._running:
                raise StoppedError()
            now = max(_now_millis(), self._last_millis + 1)
            self._last_millis = now
            msg_id = encode_timestamp(now)
            self._messages[msg_id] = data
            self._order.append(msg_id)
            self._last = msg_id
            self._changed.notify_all()
        return msg_id

    def read_next(self, channel: str) -> tuple[str, bytes]:
        with self._lock:
            if not self._last_read.get(channel) and self._last:
                self.mark_read(channel, self._last)
                last = self._last
            else:
                last = self._last_read.get(channel, "")

            while True:
                if not self._running:
                    raise StoppedError()
                for msg_id in self._order:
                    if msg_id > last:
                        return msg_id, self._messages[msg_id]
                self._changed.wait()

    def mark_read(self, channel: str, msg_id: str) -> None:
        with self._lock:
            self._last_read[channel] = msg_id

    def clear(self) -> None:
        with self._lock:
            self._messages = {}
            self._order = []
            self._last_read = {}
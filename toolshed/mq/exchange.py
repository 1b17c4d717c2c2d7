"""An exchange of named topics with publishers and retrying consumers."""

from __future__ import annotations

import logging
import math
import sqlite3
import threading
from pathlib import Path
from typing import Callable

from toolshed.mq.topic import DEFAULT_DIRECTORY, PathLike, StoppedError, Topic

logger = logging.getLogger(__name__)

Handler = Callable[[str, bytes], None]


class TopicNotFound(LookupError):
    def __init__(self, message: str = "topic not found") -> None:
        super().__init__(message)


class Consumer:
    """A handler attached to one channel of a topic; a raised exception means failure."""

    def __init__(self, handler: Handler) -> None:
        self.handler = handler
        self._stopped = threading.Event()

    @property
    def stopped(self) -> bool:
        return self._stopped.is_set()

    def _pause(self, seconds: float) -> bool:
        """Wait, returning True early if the consumer is stopped."""
        return self._stopped.wait(seconds)

    def stop(self) -> None:
        """Stop delivering messages; calling it again does nothing more."""
        self._stopped.set()


class Publisher:
    """Sends messages to topics of an exchange, creating topics as needed."""

    def __init__(self, exchange: "Exchange", topics: tuple[str, ...] = ()) -> None:
        self._exchange = exchange
        self.topics = topics

    def publish(self, topic: str, msg: bytes) -> str:
        try:
            target = self._exchange._ensure_topic(topic)
        except StoppedError as exc:
            raise StoppedError(f"error creating topic - {exc}") from exc
        return target.send(msg)


class Exchange:
    """Owns topics stored under one directory and the threads that feed consumers."""

    retry_base: float = 1.0

    def __init__(self, max_retries: int = 3, directory: PathLike = DEFAULT_DIRECTORY) -> None:
        logger.info("creating exchange...")
        self.max_retries = max_retries
        self.directory = Path(directory)
        self.directory.mkdir(parents=True, exist_ok=True)
        self._metadata = sqlite3.connect(
            str(self.directory / "metadata.db"), check_same_thread=False, isolation_level=None
        )
        self._metadata.execute(
            "create table if not exists topics (id text not null, name text not null, "
            "primary key (id))"
        )
        self._topics: dict[str, Topic] = {}
        self._consumers: dict[tuple[str, str], list[Consumer]] = {}
        self._lock = threading.RLock()
        self._running = False
        self._closed = False

    def _check_running(self) -> None:
        if not self._running:
            raise StoppedError()

    def run(self) -> None:
        self._running = True

    def stop(self) -> None:
        """Stop every consumer and topic and close the metadata store."""
        self._running = False
        with self._lock:
            if self._closed:
                return
            self._closed = True
            self._metadata.close()
            for consumers in self._consumers.values():
                for consumer in consumers:
                    consumer.stop()
            for topic in self._topics.values():
                topic.stop()
            self._topics.clear()
            self._consumers.clear()

    def _create(self, name: str) -> Topic:
        existing = self._topics.get(name)
        if existing is not None:
            return existing
        if not name.endswith("#temp"):
            try:
                self._metadata.execute(
                    "insert into topics (id, name) values (?, ?)", (0, name)
                )
            except sqlite3.Error:
                pass
        topic = Topic(name, self.directory)
        self._topics[name] = topic
        topic.run()
        return topic

    def _ensure_topic(self, name: str) -> Topic:
        with self._lock:
            self._check_running()
            return self._create(name)

    def create_topic(self, name: str) -> None:
        """Create and start a topic; creating an existing topic leaves it as it is."""
        self._ensure_topic(name)

    def _lookup(self, name: str) -> Topic:
        topic = self._topics.get(name)
        if topic is None:
            raise TopicNotFound()
        return topic

    def clear_topic(self, name: str) -> None:
        self._check_running()
        with self._lock:
            topic = self._lookup(name)
        topic.clear()

    def delete_topic(self, name: str) -> None:
        """Stop a topic and its consumers and forget it."""
        self._check_running()
        with self._lock:
            topic = self._lookup(name)
            del self._topics[name]
            for key in [key for key in self._consumers if key[0] == name]:
                for consumer in self._consumers.pop(key):
                    consumer.stop()
            topic.stop()
            self._metadata.execute("delete from topics where name = ?", (name,))

    def delete_consumer(self, topic: str, channel: str) -> None:
        """Stop every consumer reading ``channel`` of ``topic``."""
        self._check_running()
        with self._lock:
            for consumer in self._consumers.pop((topic, channel), []):
                consumer.stop()

    def new_publisher(self, *args: str) -> Publisher:
        self._check_running()
        return Publisher(self, tuple(args))

    def new_consumer(self, topic: str, channel: str, handler: Handler) -> Consumer:
        """Deliver each message of ``topic`` read through ``channel`` to ``handler``."""
        self._check_running()
        consumer = Consumer(handler)
        target = self._ensure_topic(topic)
        with self._lock:
            self._consumers.setdefault((topic, channel), []).append(consumer)
        threading.Thread(
            target=self._consume,
            args=(target, topic, channel, consumer),
            name=f"consumer-{topic}-{channel}",
            daemon=True,
        ).start()
        return consumer

    def _consume(self, target: Topic, topic: str, channel: str, consumer: Consumer) -> None:
        while not consumer.stopped:
            try:
                msg_id, payload = target.read_next(channel)
            except (StoppedError, sqlite3.Error) as exc:
                logger.warning("%s", exc)
                return
            if consumer.stopped:
                return
            self._deliver(consumer, topic, msg_id, payload)
            if consumer.stopped:
                return
            try:
                target.mark_read(channel, msg_id)
            except (StoppedError, sqlite3.Error) as exc:
                logger.warning("%s", exc)
                return

    def _deliver(self, consumer: Consumer, topic: str, msg_id: str, payload: bytes) -> None:
        for attempt in range(self.max_retries):
            try:
                consumer.handler(msg_id, payload)
                return
            except Exception as exc:
                if attempt == self.max_retries - 1:
                    logger.warning("max retries reached: %s %s", topic, exc)
                    return
                if consumer._pause(int(math.exp(attempt)) * self.retry_base):
                    return

    def get_topic(self, name: str) -> Topic:
        self._check_running()
        with self._lock:
            return self._lookup(name)
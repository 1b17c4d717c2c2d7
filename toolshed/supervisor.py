"""Runs queued jobs one at a time, reporting each outcome and retrying failures."""

from __future__ import annotations

import logging
import queue
import threading
import time
import traceback
from dataclasses import dataclass, field
from datetime import datetime
from typing import Callable, Optional

logger = logging.getLogger(__name__)

_POLL_SECONDS = 0.05


@dataclass
class JobContext:
    """What a running job is told about itself."""

    name: str


@dataclass
class Job:
    """A unit of work; ``func`` returns an exception to report failure, or None."""

    name: str
    func: Callable[[JobContext], Optional[BaseException]]
    retries: int = 0


@dataclass
class Event:
    """The outcome of one run of a job: finished, error or panic."""

    name: str
    status: str
    err: Optional[BaseException] = None
    stack_trace: str = ""
    timestamp: datetime = field(default_factory=datetime.now)
    retry: int = 0


class Supervisor:
    """Takes jobs from a bounded queue and requeues failed ones every retry interval."""

    retry_interval: float = 5.0

    def __init__(self, buffer_size: int = 32) -> None:
        if buffer_size < 0:
            raise ValueError("buffer size must not be negative")
        self._jobs: queue.Queue[Job] = queue.Queue(maxsize=buffer_size)
        self._retry: list[Job] = []
        self._lock = threading.Lock()
        self._stopped = threading.Event()
        self._handler: Callable[[Event], None] = lambda event: None

    def use_event_handler(self, handler: Callable[[Event], None]) -> None:
        self._handler = handler

    @property
    def stopped(self) -> bool:
        return self._stopped.is_set()

    def stop(self) -> None:
        """Make ``run`` return; calling it again does nothing more."""
        self._stopped.set()

    def push(self, job: Job) -> None:
        """Queue a job, waiting while the queue is full."""
        self._jobs.put(job)

    def run(self) -> None:
        """Process jobs until ``stop`` is called."""
        next_tick = time.monotonic() + self.retry_interval
        while not self._stopped.is_set():
            now = time.monotonic()
            if now >= next_tick:
                next_tick = now + self.retry_interval
                self._schedule_retries()
                continue
            try:
                job = self._jobs.get(timeout=min(next_tick - now, _POLL_SECONDS))
            except queue.Empty:
                continue
            self._handle(job)

    def _schedule_retries(self) -> None:
        with self._lock:
            jobs, self._retry = self._retry, []
        if not jobs:
            return
        logger.info("[supervisor] retrying jobs")

        def requeue() -> None:
            for job in jobs:
                self._jobs.put(job)

        threading.Thread(target=requeue, daemon=True).start()

    def _handle(self, job: Job) -> None:
        panicked = False
        trace = ""
        try:
            err = job.func(JobContext(job.name))
        except Exception as exc:
            err = exc
            trace = traceback.format_exc()
            panicked = True

        event = Event(name=job.name, status="finished", err=err, retry=job.retries)
        if err is not None:
            event.status = "panic" if panicked else "error"
            event.stack_trace = trace
            if job.retries > 0:
                job.retries -= 1
                with self._lock:
                    self._retry.append(job)

        self._handler(event)
"""
Counting admission gate for concurrent brew invocations.
"""

from __future__ import annotations

import threading
from contextlib import contextmanager
from typing import Iterator


class ConcurrencyLimiter:
    """
    Bound how many operations run at once.

    Waiters are admitted as slots free up. Admission is not FIFO, but the
    same slots cycle through every queued operation, so no waiter starves.

    Attributes:
        limit: Maximum concurrent holders, or None for no bound
    """

    def __init__(self, limit: int | None = 4):
        if limit is not None and limit < 1:
            raise ValueError(f"Invalid concurrency limit: {limit}. Must be >= 1 or None")
        self.limit = limit
        self._semaphore = threading.BoundedSemaphore(limit) if limit is not None else None
        self._lock = threading.Lock()
        self._in_flight = 0
        self._peak = 0

    @property
    def in_flight(self) -> int:
        with self._lock:
            return self._in_flight

    @property
    def peak(self) -> int:
        """Highest number of simultaneous holders seen so far."""
        with self._lock:
            return self._peak

    def acquire(self) -> None:
        """Block until a slot is free, then take it."""
        if self._semaphore is not None:
            self._semaphore.acquire()
        with self._lock:
            self._in_flight += 1
            self._peak = max(self._peak, self._in_flight)

    def release(self) -> None:
        """Return a slot taken by acquire()."""
        with self._lock:
            if self._in_flight == 0:
                raise RuntimeError("release() called without a matching acquire()")
            self._in_flight -= 1
        if self._semaphore is not None:
            self._semaphore.release()

    @contextmanager
    def slot(self) -> Iterator[None]:
        """Hold a slot for the duration of the block, releasing it on any exit."""
        self.acquire()
        try:
            yield
        finally:
            self.release()

    def __repr__(self) -> str:
        limit = "unbounded" if self.limit is None else self.limit
        return f"ConcurrencyLimiter(limit={limit}, in_flight={self.in_flight})"

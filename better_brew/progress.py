"""
Progress sinks for batch execution.

The engine reports through the ProgressSink interface only, so it can run
against a terminal progress bar, a recorder in tests, or nothing at all.
All sinks are safe to call from several worker threads.
"""

from __future__ import annotations

import threading
import time
from dataclasses import dataclass, field
from typing import Callable, Protocol

from rich.console import Console
from rich.progress import (
    BarColumn,
    MofNCompleteColumn,
    Progress,
    SpinnerColumn,
    TaskID,
    TextColumn,
    TimeElapsedColumn,
    TimeRemainingColumn,
)


class ProgressSink(Protocol):
    """Receiver of progress events from the batch engine."""

    def start(self, total: int, description: str = "") -> None: ...

    def advance(self, count: int = 1) -> None: ...

    def set_message(self, message: str) -> None: ...

    def println(self, line: str) -> None: ...

    def finish(self, message: str = "") -> None: ...


class NullProgress:
    """Sink that discards every event."""

    def start(self, total: int, description: str = "") -> None:
        pass

    def advance(self, count: int = 1) -> None:
        pass

    def set_message(self, message: str) -> None:
        pass

    def println(self, line: str) -> None:
        pass

    def finish(self, message: str = "") -> None:
        pass


@dataclass
class ProgressTracker:
    """
    Thread-safe recorder of progress events.

    Attributes:
        total: Expected number of packages
        position: Packages completed so far
        message: Last status message
        lines: Lines printed, in emission order
        finished: Final message, once finish() was called
    """
    total: int = 0
    position: int = 0
    message: str = ""
    lines: list[str] = field(default_factory=list)
    finished: str | None = None
    _lock: threading.Lock = field(default_factory=threading.Lock, repr=False)
    _callbacks: list[Callable[[str, str], None]] = field(default_factory=list, repr=False)
    _events: list[tuple[str, str, float]] = field(default_factory=list, repr=False)

    def register_callback(self, callback: Callable[[str, str], None]) -> None:
        """Register a callback invoked with (event, value) on every update."""
        with self._lock:
            self._callbacks.append(callback)

    def _record(self, event: str, value: str) -> list[Callable[[str, str], None]]:
        # Caller holds the lock; callbacks run after it is released.
        self._events.append((event, value, time.time()))
        return list(self._callbacks)

    def _notify(self, callbacks: list[Callable[[str, str], None]], event: str, value: str) -> None:
        for callback in callbacks:
            callback(event, value)

    def start(self, total: int, description: str = "") -> None:
        with self._lock:
            self.total = total
            self.position = 0
            self.message = description
            callbacks = self._record("start", description)
        self._notify(callbacks, "start", description)

    def advance(self, count: int = 1) -> None:
        with self._lock:
            self.position += count
            callbacks = self._record("advance", str(count))
        self._notify(callbacks, "advance", str(count))

    def set_message(self, message: str) -> None:
        with self._lock:
            self.message = message
            callbacks = self._record("message", message)
        self._notify(callbacks, "message", message)

    def println(self, line: str) -> None:
        with self._lock:
            self.lines.append(line)
            callbacks = self._record("line", line)
        self._notify(callbacks, "line", line)

    def finish(self, message: str = "") -> None:
        with self._lock:
            self.finished = message
            callbacks = self._record("finish", message)
        self._notify(callbacks, "finish", message)

    def get_events(self) -> list[tuple[str, str]]:
        """Get (event, value) pairs in the order they were recorded."""
        with self._lock:
            return [(event, value) for event, value, _ in self._events]


class RichProgress:
    """
    Terminal progress bar backed by rich.

    Lines printed while the bar is live are written above it.
    """

    def __init__(self, console: Console | None = None):
        self.console = console or Console()
        self._lock = threading.Lock()
        self._progress: Progress | None = None
        self._task: TaskID | None = None

    def start(self, total: int, description: str = "") -> None:
        with self._lock:
            self._progress = Progress(
                SpinnerColumn(style="green"),
                TimeElapsedColumn(),
                BarColumn(complete_style="cyan", finished_style="blue"),
                MofNCompleteColumn(),
                TimeRemainingColumn(),
                TextColumn("{task.description}"),
                console=self.console,
            )
            self._progress.start()
            self._task = self._progress.add_task(description, total=total)

    def advance(self, count: int = 1) -> None:
        with self._lock:
            if self._progress is not None and self._task is not None:
                self._progress.advance(self._task, count)

    def set_message(self, message: str) -> None:
        with self._lock:
            if self._progress is not None and self._task is not None:
                self._progress.update(self._task, description=message)

    def println(self, line: str) -> None:
        with self._lock:
            console = self._progress.console if self._progress is not None else self.console
            console.print(line, markup=False, highlight=False)

    def finish(self, message: str = "") -> None:
        with self._lock:
            if self._progress is None:
                return
            if self._task is not None:
                self._progress.update(self._task, description=message)
            self._progress.stop()
            self._progress = None
            self._task = None

"""
Shared fixtures for better_brew tests.
"""

from __future__ import annotations

import threading
import time

import pytest

from better_brew.config import Config, Preferences
from better_brew.gateway import CommandOutcome, CommandSpec


class FakeGateway:
    """
    In-memory command gateway.

    Outcomes are looked up by argument tuple; anything unscripted succeeds.
    Tracks how many run() calls are in flight at once.
    """

    def __init__(self, outcomes=None, available=True, delay=0.0, streaming_codes=None):
        self.outcomes = dict(outcomes or {})
        self.available = available
        self.delay = delay
        self.streaming_codes = dict(streaming_codes or {})
        self.calls: list[tuple[str, ...]] = []
        self.streamed: list[tuple[str, ...]] = []
        self.active = 0
        self.peak = 0
        self._lock = threading.Lock()

    def is_available(self, binary: str) -> bool:
        return self.available

    def run(self, spec: CommandSpec) -> CommandOutcome:
        with self._lock:
            self.calls.append(spec.args)
            self.active += 1
            self.peak = max(self.peak, self.active)
        try:
            if self.delay:
                time.sleep(self.delay)
            outcome = self.outcomes.get(spec.args, CommandOutcome(success=True))
            if isinstance(outcome, Exception):
                raise outcome
            return outcome
        finally:
            with self._lock:
                self.active -= 1

    def run_streaming(self, spec: CommandSpec) -> int:
        self.streamed.append(spec.args)
        return self.streaming_codes.get(spec.args, 0)


@pytest.fixture
def fake_gateway():
    """Factory for FakeGateway instances."""
    return FakeGateway


@pytest.fixture
def config():
    """Default configuration with no files or environment involved."""
    return Config(preferences=Preferences())


def failed(stderr: bytes = b"Error: boom", exit_code: int = 1) -> CommandOutcome:
    return CommandOutcome(success=False, stderr=stderr, exit_code=exit_code)


@pytest.fixture
def failed_outcome():
    return failed

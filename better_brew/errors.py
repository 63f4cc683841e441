"""
Error taxonomy for better-brew.

Phase-level errors (availability, query, parse, usage) abort the running
command. Per-item errors raised while a batch is executing are folded into
the run result by the engine and never reach the caller.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .engine import RunResult


class BetterBrewError(Exception):
    """
    Base exception for better-brew errors.

    Attributes:
        message: Human-readable error message
        remediation: Suggested fix for the error
    """
    def __init__(self, message: str, remediation: str | None = None):
        self.message = message
        self.remediation = remediation
        super().__init__(message)


class AvailabilityError(BetterBrewError):
    """The package-management binary is not on PATH."""


class LaunchError(BetterBrewError):
    """A command could not be started (not found, permission denied)."""


class QueryError(BetterBrewError):
    """A query command ran but exited non-zero."""


class ParseError(BetterBrewError):
    """Query output was not in the expected shape."""


class UsageError(BetterBrewError):
    """Required arguments are missing for a command."""


class CommandError(BetterBrewError):
    """A non-parallel phase command exited non-zero."""


class BatchFailedError(BetterBrewError):
    """
    One or more packages failed during a parallel phase.

    Attributes:
        result: The aggregate run result of the failed phase
    """
    def __init__(self, message: str, result: RunResult):
        self.result = result
        super().__init__(message)

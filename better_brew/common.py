"""
Common utilities shared across better_brew modules.
"""

from __future__ import annotations

import os
import sys


def is_debug_enabled() -> bool:
    """Check whether BBREW_DEBUG forces verbose logging."""
    return os.environ.get("BBREW_DEBUG", "0") == "1"


def format_argv(argv: tuple[str, ...] | list[str]) -> str:
    """Render an argument vector for display."""
    return " ".join(argv)


def vlog(msg: str, verbose: bool = False) -> None:
    """
    Log verbose message using structured logging.

    Args:
        msg: Message to log
        verbose: Whether verbose mode is enabled
    """
    if verbose or is_debug_enabled():
        try:
            from .logging_config import get_logger
            get_logger().info(msg)
        except Exception:
            # Fallback to stderr if logging fails
            print(f"[bbrew] {msg}", file=sys.stderr)

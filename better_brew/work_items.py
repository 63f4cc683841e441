"""
Work items and the queries that produce them.

A work item covers one or more package names and maps to exactly one
brew invocation. Package lists come from the command line or from brew
itself (outdated and installed queries).
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any, Iterable, Sequence

from .common import vlog
from .errors import ParseError, QueryError
from .gateway import CommandGateway, CommandSpec


OUTDATED_ARGS = ("outdated", "--json")
INSTALLED_ARGS = ("list", "--formula", "-1")


@dataclass(frozen=True)
class WorkItem:
    """
    One unit of work: a single package or a batch of packages.

    Attributes:
        packages: Package names covered by this item, in order
    """
    packages: tuple[str, ...]

    def __post_init__(self):
        if not self.packages:
            raise ValueError("WorkItem requires at least one package")
        if any(not name for name in self.packages):
            raise ValueError(f"WorkItem contains an empty package name: {self.packages}")

    @staticmethod
    def single(name: str) -> WorkItem:
        return WorkItem(packages=(name,))

    @property
    def is_batch(self) -> bool:
        return len(self.packages) > 1

    def label(self) -> str:
        return ", ".join(self.packages)

    def __len__(self) -> int:
        return len(self.packages)


def unique_names(names: Iterable[str]) -> list[str]:
    """Drop duplicate names, keeping the first occurrence of each."""
    return list(dict.fromkeys(names))


def single_items(names: Sequence[str]) -> list[WorkItem]:
    """One work item per package name."""
    return [WorkItem.single(name) for name in names]


def partition_batches(names: Sequence[str], batch_size: int = 10) -> list[WorkItem]:
    """
    Split names into consecutive batches of at most `batch_size`.

    Concatenating the batches reproduces `names`; only the last batch can
    be shorter than `batch_size`.

    Raises:
        ValueError: If batch_size is less than 1
    """
    if batch_size < 1:
        raise ValueError(f"Invalid batch_size: {batch_size}. Must be >= 1")
    return [
        WorkItem(packages=tuple(names[start:start + batch_size]))
        for start in range(0, len(names), batch_size)
    ]


def _package_names(data: dict[str, Any], key: str) -> list[str]:
    entries = data.get(key)
    if not isinstance(entries, list):
        raise ParseError(f"Expected a list under '{key}' in brew outdated output")
    names = []
    for entry in entries:
        name = entry.get("name") if isinstance(entry, dict) else None
        if not isinstance(name, str) or not name:
            raise ParseError(f"Entry under '{key}' has no package name: {entry!r}")
        names.append(name)
    return names


def parse_outdated(payload: str | bytes) -> list[str]:
    """
    Parse `brew outdated --json` output.

    Returns:
        Outdated formula names followed by outdated cask names

    Raises:
        ParseError: If the payload is not JSON of the expected shape
    """
    try:
        data = json.loads(payload)
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        raise ParseError(f"Failed to parse JSON output from brew outdated: {e}") from e

    if not isinstance(data, dict):
        raise ParseError("Expected a JSON object from brew outdated")

    return _package_names(data, "formulae") + _package_names(data, "casks")


def parse_installed(text: str) -> list[str]:
    """Parse newline-separated package names, skipping blank lines."""
    return [line.strip() for line in text.splitlines() if line.strip()]


def query_outdated(gateway: CommandGateway, binary: str = "brew", verbose: bool = False) -> list[str]:
    """
    Ask brew for outdated formulae and casks.

    Raises:
        LaunchError: If brew cannot be started
        QueryError: If brew exits non-zero
        ParseError: If the output cannot be parsed
    """
    print("Checking for outdated packages...")
    outcome = gateway.run(CommandSpec(binary=binary, args=OUTDATED_ARGS))
    if not outcome.success:
        raise QueryError(f"Failed to get outdated packages: {outcome.stderr_text().strip()}")

    names = parse_outdated(outcome.stdout)
    vlog(f"Outdated packages: {names}", verbose)
    return names


def query_installed(gateway: CommandGateway, binary: str = "brew", verbose: bool = False) -> list[str]:
    """
    Ask brew for installed formulae (casks are not included).

    Raises:
        LaunchError: If brew cannot be started
        QueryError: If brew exits non-zero
    """
    print("Getting list of installed packages...")
    outcome = gateway.run(CommandSpec(binary=binary, args=INSTALLED_ARGS))
    if not outcome.success:
        raise QueryError(f"Failed to get installed packages: {outcome.stderr_text().strip()}")

    names = parse_installed(outcome.stdout_text())
    vlog(f"Installed packages: {len(names)}", verbose)
    return names

"""
Batch execution engine.

Runs a list of work items through the command gateway in parallel, with a
concurrency limiter bounding how many brew processes are alive at once.
Every item yields exactly one ItemResult; the results are reduced into a
RunResult only after all items have finished.
"""

from __future__ import annotations

import time
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field, replace
from functools import reduce
from typing import Callable, Iterable, Sequence

from .common import vlog
from .errors import LaunchError
from .gateway import CommandGateway, CommandOutcome, CommandSpec
from .limiter import ConcurrencyLimiter
from .logging_config import get_logger
from .progress import NullProgress, ProgressSink
from .work_items import WorkItem

# Upper bound on worker threads
MAX_POOL_WORKERS = 32


def exited_cleanly(outcome: CommandOutcome) -> bool:
    return outcome.success


@dataclass(frozen=True)
class Verb:
    """
    A brew verb and how to describe and judge it.

    Attributes:
        name: Brew subcommand (e.g., "install")
        progress: Present participle shown while running ("Installing")
        done: Label for a succeeded package ("Installed")
        failed: Label for a failed package ("Failed to install")
        interpret: Decides success from a command outcome
    """
    name: str
    progress: str
    done: str
    failed: str
    interpret: Callable[[CommandOutcome], bool] = exited_cleanly


FETCH = Verb("fetch", "Fetching", "Fetched", "Failed to fetch")
INSTALL = Verb("install", "Installing", "Installed", "Failed to install")
REINSTALL = Verb("reinstall", "Reinstalling", "Reinstalled", "Failed to reinstall")


@dataclass(frozen=True)
class ItemResult:
    """
    Outcome of one work item.

    A failed batch fails every package in it: brew reports a single exit
    status per invocation, so per-package state is not observable.

    Attributes:
        item: The work item
        success: Whether the invocation succeeded
        error_message: Why it failed (None on success)
    """
    item: WorkItem
    success: bool
    error_message: str | None = None

    @property
    def failed_packages(self) -> tuple[str, ...]:
        return () if self.success else self.item.packages


@dataclass(frozen=True)
class RunResult:
    """
    Aggregate outcome of a parallel phase.

    Attributes:
        succeeded: Packages that succeeded, in input order
        failed: Packages that failed, in input order
        attempted: Number of packages attempted
        errors: Failure message per failed package
        duration_seconds: Wall time of the phase
    """
    succeeded: tuple[str, ...] = ()
    failed: tuple[str, ...] = ()
    attempted: int = 0
    errors: dict[str, str] = field(default_factory=dict)
    duration_seconds: float = 0.0

    @property
    def ok(self) -> bool:
        return not self.failed

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        return {
            "succeeded": list(self.succeeded),
            "failed": list(self.failed),
            "attempted": self.attempted,
            "errors": dict(self.errors),
            "duration_seconds": self.duration_seconds,
        }

    def summary(self, verb: Verb) -> list[str]:
        """Human-readable end-of-phase report lines."""
        lines = []
        if self.succeeded:
            lines.append(f"✓ {verb.done} {len(self.succeeded)} package(s)")
        if self.failed:
            lines.append(
                f"✗ {len(self.failed)} package(s) failed ({verb.name}): {', '.join(self.failed)}"
            )
        return lines


def _fold(acc: RunResult, result: ItemResult) -> RunResult:
    names = result.item.packages
    attempted = acc.attempted + len(names)
    if result.success:
        return replace(acc, succeeded=acc.succeeded + names, attempted=attempted)

    message = result.error_message or "failed"
    errors = {**acc.errors, **{name: message for name in names}}
    return replace(acc, failed=acc.failed + names, attempted=attempted, errors=errors)


def reduce_results(item_results: Iterable[ItemResult], duration_seconds: float = 0.0) -> RunResult:
    """
    Reduce per-item results into a RunResult.

    Package order follows the order of `item_results`, so passing them in
    input order makes the result independent of completion order.
    """
    result = reduce(_fold, item_results, RunResult())
    return replace(result, duration_seconds=duration_seconds)


def _run_item(
    item: WorkItem,
    verb: Verb,
    gateway: CommandGateway,
    limiter: ConcurrencyLimiter,
    progress: ProgressSink,
    binary: str,
    verbose: bool,
) -> ItemResult:
    spec = CommandSpec.for_packages(binary, verb.name, item.packages)

    with limiter.slot():
        progress.set_message(f"{verb.progress} {item.label()}")
        try:
            outcome = gateway.run(spec)
        except LaunchError as e:
            success, error_message = False, e.message
        else:
            success = verb.interpret(outcome)
            error_message = None if success else outcome.error_summary()

        if success:
            for name in item.packages:
                progress.println(f"✓ {verb.done}: {name}")
        else:
            for name in item.packages:
                progress.println(f"✗ {verb.failed}: {name}")
            get_logger().warning(f"{spec}: {error_message}")
        progress.advance(len(item))

    vlog(f"{spec} -> {'ok' if success else 'failed'}", verbose)
    return ItemResult(item=item, success=success, error_message=error_message)


def execute_items(
    items: Sequence[WorkItem],
    verb: Verb,
    gateway: CommandGateway,
    limiter: ConcurrencyLimiter | None = None,
    progress: ProgressSink | None = None,
    binary: str = "brew",
    max_workers: int | None = None,
    verbose: bool = False,
) -> RunResult:
    """
    Run `<binary> <verb> <packages>` for every work item in parallel.

    Individual failures (non-zero exit, launch failure) are recorded and
    never stop sibling items. The call returns only after every item has
    finished.

    Args:
        items: Work items; no package may appear twice
        verb: Verb to run for each item
        gateway: Command gateway used to launch brew
        limiter: Concurrency limiter (defaults to 4 slots)
        progress: Progress sink (defaults to discarding events)
        binary: Brew executable
        max_workers: Thread pool size (defaults to the smaller of the item
            count, the limit and 32)
        verbose: Enable verbose logging

    Returns:
        RunResult over every package of every item

    Raises:
        ValueError: If a package name appears in more than one place
    """
    items = list(items)
    start_time = time.time()
    if not items:
        return RunResult()

    names = [name for item in items for name in item.packages]
    if len(set(names)) != len(names):
        raise ValueError(f"Duplicate package names in work items: {names}")

    if limiter is None:
        limiter = ConcurrencyLimiter()
    if progress is None:
        progress = NullProgress()
    if max_workers is None:
        max_workers = min(len(items), limiter.limit or MAX_POOL_WORKERS, MAX_POOL_WORKERS)

    vlog(f"{verb.progress} {len(names)} package(s) in {len(items)} item(s), limit={limiter.limit}", verbose)

    results: list[ItemResult | None] = [None] * len(items)
    progress.start(len(names), f"{verb.progress} packages...")
    try:
        with ThreadPoolExecutor(max_workers=max_workers) as executor:
            future_to_index = {
                executor.submit(
                    _run_item, item, verb, gateway, limiter, progress, binary, verbose
                ): index
                for index, item in enumerate(items)
            }

            for future in as_completed(future_to_index):
                index = future_to_index[future]
                try:
                    results[index] = future.result()
                except Exception as e:
                    get_logger().error(f"Unexpected error while running {verb.name} for {items[index].label()}: {e}")
                    results[index] = ItemResult(
                        item=items[index],
                        success=False,
                        error_message=f"Unexpected error: {e}",
                    )
    finally:
        progress.finish(f"{verb.progress} complete")

    return reduce_results(
        (result for result in results if result is not None),
        duration_seconds=time.time() - start_time,
    )

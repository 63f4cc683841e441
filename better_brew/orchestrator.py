"""
Run orchestration for the bbrew commands.

Each command checks that brew is available, runs its phases in order,
and raises a BetterBrewError subclass for anything that should end the
command with a non-zero exit. Parallel phases go through the batch
engine; update and upgrade invocations run one at a time with output
streamed to the terminal.
"""

from __future__ import annotations

from typing import Sequence

from .common import vlog
from .config import Config, load_config
from .engine import FETCH, INSTALL, REINSTALL, RunResult, Verb, execute_items
from .errors import AvailabilityError, BatchFailedError, CommandError, UsageError
from .gateway import CommandGateway, CommandSpec
from .limiter import ConcurrencyLimiter
from .logging_config import get_logger
from .progress import ProgressSink, RichProgress
from .work_items import (
    partition_batches,
    query_installed,
    query_outdated,
    single_items,
    unique_names,
)


def _resolve(
    config: Config | None,
    gateway: CommandGateway | None,
    verbose: bool,
) -> tuple[Config, CommandGateway]:
    if config is None:
        config = load_config(verbose=verbose)
    if gateway is None:
        gateway = CommandGateway(timeout=config.preferences.timeout_seconds, verbose=verbose)
    return config, gateway


def check_available(gateway: CommandGateway, binary: str) -> None:
    """
    Raises:
        AvailabilityError: If `binary` is not on PATH
    """
    if not gateway.is_available(binary):
        raise AvailabilityError(
            "Homebrew is not installed or not in PATH.",
            remediation="Please install Homebrew first: https://brew.sh",
        )


def _run_phase(gateway: CommandGateway, binary: str, *args: str) -> None:
    spec = CommandSpec(binary=binary, args=args)
    exit_code = gateway.run_streaming(spec)
    if exit_code != 0:
        raise CommandError(f"Command failed: {spec} (exit code {exit_code})")


def _print_lines(lines: Sequence[str]) -> None:
    for line in lines:
        print(line)


def update(
    config: Config | None = None,
    gateway: CommandGateway | None = None,
    verbose: bool = False,
) -> None:
    """Update Homebrew and fetch the latest package definitions."""
    print("=== Better Brew Update ===\n")
    config, gateway = _resolve(config, gateway, verbose)
    binary = config.preferences.brew_binary

    check_available(gateway, binary)
    _run_phase(gateway, binary, "update")

    print("\n✓ Update complete!")


def upgrade(
    config: Config | None = None,
    gateway: CommandGateway | None = None,
    progress: ProgressSink | None = None,
    dry_run: bool = False,
    verbose: bool = False,
) -> RunResult:
    """
    Fetch every outdated package in parallel, then run `brew upgrade`.

    Fetch failures are reported as warnings; `brew upgrade` runs regardless
    and downloads whatever the fetch phase missed. A dry run leaves the
    package definitions as they are and lists the outdated packages
    against them.

    Returns:
        RunResult of the fetch phase (empty when everything is up to date)
    """
    print("=== Better Brew Upgrade ===\n")
    config, gateway = _resolve(config, gateway, verbose)
    prefs = config.preferences
    binary = prefs.brew_binary

    check_available(gateway, binary)

    print("Updating package definitions...")
    if dry_run:
        print(f"  Would run: {CommandSpec(binary=binary, args=('update',))}")
    else:
        _run_phase(gateway, binary, "update")
    print()

    packages = query_outdated(gateway, binary, verbose)
    if not packages:
        print("✓ All packages are up to date!")
        return RunResult()

    print(f"Found {len(packages)} outdated package(s): {', '.join(packages)}\n")

    items = single_items(unique_names(packages))
    if dry_run:
        for item in items:
            print(f"  Would run: {CommandSpec.for_packages(binary, FETCH.name, item.packages)}")
        print(f"  Would run: {CommandSpec(binary=binary, args=('upgrade',))}")
        return RunResult()

    print(f"Fetching packages with {prefs.max_concurrent} concurrent operations...")
    result = execute_items(
        items,
        FETCH,
        gateway,
        limiter=ConcurrencyLimiter(prefs.max_concurrent),
        progress=progress if progress is not None else RichProgress(),
        binary=binary,
        verbose=verbose,
    )

    print()
    _print_lines(result.summary(FETCH))
    if not result.ok:
        get_logger().warning(
            f"{len(result.failed)} package(s) failed to fetch: {', '.join(result.failed)}"
        )

    print("\n=== Installing upgrades ===\n")
    _run_phase(gateway, binary, "upgrade")

    print("\n✓ Upgrade complete!")
    return result


def _run_batches(
    packages: Sequence[str],
    verb: Verb,
    config: Config,
    gateway: CommandGateway,
    progress: ProgressSink | None,
    dry_run: bool,
    verbose: bool,
) -> RunResult:
    prefs = config.preferences
    batches = partition_batches(packages, prefs.batch_size)

    print(f"{verb.progress} {len(packages)} package(s)\n")
    print(
        f"{verb.progress} in {len(batches)} batch(es) "
        f"with {prefs.max_concurrent} concurrent operations..."
    )

    if dry_run:
        for batch in batches:
            print(f"  Would run: {CommandSpec.for_packages(prefs.brew_binary, verb.name, batch.packages)}")
        return RunResult()

    result = execute_items(
        batches,
        verb,
        gateway,
        limiter=ConcurrencyLimiter(prefs.max_concurrent),
        progress=progress if progress is not None else RichProgress(),
        binary=prefs.brew_binary,
        verbose=verbose,
    )

    print()
    _print_lines(result.summary(verb))

    if not result.ok:
        raise BatchFailedError(f"Some packages failed to {verb.name}", result)

    print(f"\n✓ {verb.name.capitalize()} complete!")
    return result


def install(
    packages: Sequence[str],
    config: Config | None = None,
    gateway: CommandGateway | None = None,
    progress: ProgressSink | None = None,
    dry_run: bool = False,
    verbose: bool = False,
) -> RunResult:
    """
    Install packages in parallel batches.

    Raises:
        UsageError: If no packages were given
        BatchFailedError: If any package failed to install
    """
    print("=== Better Brew Install ===\n")
    if not packages:
        raise UsageError("No packages specified to install")

    config, gateway = _resolve(config, gateway, verbose)
    check_available(gateway, config.preferences.brew_binary)

    return _run_batches(unique_names(packages), INSTALL, config, gateway, progress, dry_run, verbose)


def reinstall(
    packages: Sequence[str],
    all_installed: bool = False,
    config: Config | None = None,
    gateway: CommandGateway | None = None,
    progress: ProgressSink | None = None,
    dry_run: bool = False,
    verbose: bool = False,
) -> RunResult:
    """
    Reinstall packages in parallel batches.

    With `all_installed`, the explicit list is ignored and every installed
    formula is reinstalled instead.

    Raises:
        UsageError: If neither packages nor all_installed were given
        QueryError: If the installed-package query fails
        BatchFailedError: If any package failed to reinstall
    """
    print("=== Better Brew Reinstall ===\n")
    if not all_installed and not packages:
        raise UsageError(
            "No packages specified to reinstall",
            remediation="Use --all to reinstall all packages",
        )

    config, gateway = _resolve(config, gateway, verbose)
    binary = config.preferences.brew_binary
    check_available(gateway, binary)

    if all_installed:
        if packages:
            vlog(f"--all given, ignoring explicit packages: {list(packages)}", verbose)
        print("Reinstalling ALL installed packages...\n")
        targets = query_installed(gateway, binary, verbose)
    else:
        targets = list(packages)

    if not targets:
        print("✓ No packages to reinstall!")
        return RunResult()

    return _run_batches(unique_names(targets), REINSTALL, config, gateway, progress, dry_run, verbose)

#!/usr/bin/env python3
"""
Better Brew - Parallel Homebrew package downloads and upgrades.

Usage:
    bbrew.py update                    # Update Homebrew and package definitions
    bbrew.py upgrade                   # Fetch outdated packages in parallel, then upgrade
    bbrew.py install PKG [PKG ...]     # Install packages in parallel batches
    bbrew.py reinstall PKG [PKG ...]   # Reinstall packages in parallel batches
    bbrew.py reinstall --all           # Reinstall every installed formula
"""

from __future__ import annotations

import argparse
import sys

from better_brew import orchestrator
from better_brew.config import load_config, validate_config
from better_brew.errors import BetterBrewError
from better_brew.logging_config import get_logger, setup_logging


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="bbrew",
        description="Parallel Homebrew package downloads and upgrades",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("--verbose", "-v", action="store_true", help="Verbose output")
    parser.add_argument("--quiet", "-q", action="store_true", help="Only log warnings and errors")
    parser.add_argument("--log-file", help="Also write a debug log to this file")
    parser.add_argument("--config", help="Path to a YAML configuration file")
    parser.add_argument(
        "--jobs", "-j",
        type=int,
        help="Maximum concurrent brew operations (default: 4)",
    )
    parser.add_argument(
        "--batch-size",
        type=int,
        help="Packages per install/reinstall batch (default: 10)",
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Show the brew commands that would run without running them",
    )

    subparsers = parser.add_subparsers(dest="command", required=True)
    subparsers.add_parser("update", help="Update Homebrew and fetch latest package definitions")
    subparsers.add_parser("upgrade", help="Upgrade outdated packages in parallel")

    install_parser = subparsers.add_parser("install", help="Install packages in parallel")
    install_parser.add_argument("packages", nargs="*", help="List of packages to install")

    reinstall_parser = subparsers.add_parser("reinstall", help="Reinstall packages in parallel")
    reinstall_parser.add_argument(
        "--all", "-a",
        action="store_true",
        dest="all_installed",
        help="Reinstall all installed packages",
    )
    reinstall_parser.add_argument(
        "packages",
        nargs="*",
        help="List of packages to reinstall (ignored if --all is specified)",
    )
    return parser


def run(args: argparse.Namespace) -> int:
    """Dispatch a parsed command line and map errors to an exit code."""
    try:
        config = load_config(custom_path=args.config, verbose=args.verbose).with_overrides(
            max_concurrent=args.jobs,
            batch_size=args.batch_size,
        )
    except ValueError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    for warning in validate_config(config):
        get_logger().warning(warning)

    try:
        if args.command == "update":
            orchestrator.update(config=config, verbose=args.verbose)
        elif args.command == "upgrade":
            orchestrator.upgrade(config=config, dry_run=args.dry_run, verbose=args.verbose)
        elif args.command == "install":
            orchestrator.install(
                args.packages, config=config, dry_run=args.dry_run, verbose=args.verbose
            )
        elif args.command == "reinstall":
            orchestrator.reinstall(
                args.packages,
                all_installed=args.all_installed,
                config=config,
                dry_run=args.dry_run,
                verbose=args.verbose,
            )
    except BetterBrewError as e:
        print(f"Error: {e.message}", file=sys.stderr)
        if e.remediation:
            print(e.remediation, file=sys.stderr)
        return 1

    return 0


def main(argv: list[str] | None = None) -> int:
    """Main entry point for bbrew."""
    args = build_parser().parse_args(argv)
    setup_logging(log_file=args.log_file, verbose=args.verbose, quiet=args.quiet)
    try:
        return run(args)
    except KeyboardInterrupt:
        print("\nInterrupted", file=sys.stderr)
        return 130


if __name__ == "__main__":
    sys.exit(main())

"""
External command gateway.

Runs the package-management binary and returns structured outcomes. A
non-zero exit is data, reported through CommandOutcome.success; only a
failure to start the process raises.
"""

from __future__ import annotations

import shutil
import subprocess
import time
from dataclasses import dataclass
from typing import Sequence

from .common import format_argv, vlog
from .errors import LaunchError


@dataclass(frozen=True)
class CommandSpec:
    """
    A command to run: binary plus ordered arguments.

    Attributes:
        binary: Executable name or path
        args: Arguments passed after the binary
    """
    binary: str
    args: tuple[str, ...] = ()

    @property
    def argv(self) -> tuple[str, ...]:
        return (self.binary,) + self.args

    @staticmethod
    def for_packages(binary: str, verb: str, packages: Sequence[str]) -> CommandSpec:
        """Build `<binary> <verb> <pkg>...`."""
        return CommandSpec(binary=binary, args=(verb, *packages))

    def __str__(self) -> str:
        return format_argv(self.argv)


@dataclass(frozen=True)
class CommandOutcome:
    """
    Result of running one command.

    Attributes:
        success: Whether the process exited with status 0
        stdout: Captured standard output
        stderr: Captured standard error
        exit_code: Process exit code (-1 on timeout)
        duration_seconds: Wall time spent waiting for the process
        timed_out: Whether the process was killed after the timeout
    """
    success: bool
    stdout: bytes = b""
    stderr: bytes = b""
    exit_code: int = 0
    duration_seconds: float = 0.0
    timed_out: bool = False

    def stdout_text(self) -> str:
        return self.stdout.decode("utf-8", errors="replace")

    def stderr_text(self) -> str:
        return self.stderr.decode("utf-8", errors="replace")

    def error_summary(self, limit: int = 200) -> str:
        """Short description of why the command failed."""
        if self.timed_out:
            return f"Command timed out after {self.duration_seconds:.0f}s"
        message = f"Command failed with exit code {self.exit_code}"
        stderr = self.stderr_text().strip()
        if stderr:
            message += f": {stderr[:limit]}"
        return message


class CommandGateway:
    """
    Subprocess-backed gateway to the external tool.

    Attributes:
        timeout: Per-invocation timeout in seconds for captured runs
        verbose: Enable verbose logging
    """

    def __init__(self, timeout: float | None = None, verbose: bool = False):
        self.timeout = timeout
        self.verbose = verbose

    def is_available(self, binary: str) -> bool:
        """Check whether `binary` can be located on PATH."""
        path = shutil.which(binary)
        vlog(f"Locating {binary}: {path or 'not found'}", self.verbose)
        return path is not None

    def run(self, spec: CommandSpec) -> CommandOutcome:
        """
        Run a command to completion, capturing its output.

        Args:
            spec: Command to run

        Returns:
            CommandOutcome describing the exit status and output

        Raises:
            LaunchError: If the process cannot be started
        """
        vlog(f"Executing: {spec}", self.verbose)
        start_time = time.time()

        try:
            result = subprocess.run(
                list(spec.argv),
                capture_output=True,
                timeout=self.timeout,
                check=False,
            )
        except subprocess.TimeoutExpired as e:
            return CommandOutcome(
                success=False,
                stdout=e.stdout or b"",
                stderr=e.stderr or b"",
                exit_code=-1,
                duration_seconds=time.time() - start_time,
                timed_out=True,
            )
        except FileNotFoundError as e:
            raise LaunchError(f"Command not found: {spec.binary}") from e
        except OSError as e:
            raise LaunchError(f"Could not start {spec}: {e}") from e

        return CommandOutcome(
            success=result.returncode == 0,
            stdout=result.stdout or b"",
            stderr=result.stderr or b"",
            exit_code=result.returncode,
            duration_seconds=time.time() - start_time,
        )

    def run_streaming(self, spec: CommandSpec) -> int:
        """
        Run a command with output going straight to this process's terminal.

        Returns:
            The process exit code

        Raises:
            LaunchError: If the process cannot be started
        """
        print(f"Running: {spec}", flush=True)
        try:
            result = subprocess.run(list(spec.argv), check=False)
        except FileNotFoundError as e:
            raise LaunchError(f"Command not found: {spec.binary}") from e
        except OSError as e:
            raise LaunchError(f"Could not start {spec}: {e}") from e
        return result.returncode

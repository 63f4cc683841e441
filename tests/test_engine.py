"""
Tests for the batch execution engine (better_brew/engine.py).
"""

from __future__ import annotations

import logging
import random
import time

import pytest

from better_brew.engine import (
    FETCH,
    INSTALL,
    ItemResult,
    RunResult,
    Verb,
    execute_items,
    reduce_results,
)
from better_brew.errors import LaunchError
from better_brew.gateway import CommandOutcome
from better_brew.limiter import ConcurrencyLimiter
from better_brew.logging_config import setup_logging
from better_brew.progress import ProgressTracker
from better_brew.work_items import WorkItem, partition_batches, single_items


def _assert_partition(result: RunResult, names: list[str]) -> None:
    assert set(result.succeeded) | set(result.failed) == set(names)
    assert set(result.succeeded) & set(result.failed) == set()
    assert result.attempted == len(names)


class TestReduceResults:
    """Tests for reduce_results in isolation from threading."""

    def test_empty(self):
        result = reduce_results([])
        assert result == RunResult()
        assert result.ok is True

    def test_mixed(self):
        """Test batch results flatten into succeeded and failed names."""
        results = [
            ItemResult(WorkItem(("wget", "curl")), success=False, error_message="exit 1"),
            ItemResult(WorkItem(("firefox",)), success=True),
        ]
        result = reduce_results(results, duration_seconds=1.5)

        assert result.failed == ("wget", "curl")
        assert result.succeeded == ("firefox",)
        assert result.attempted == 3
        assert result.errors == {"wget": "exit 1", "curl": "exit 1"}
        assert result.duration_seconds == 1.5
        assert result.ok is False

    def test_failed_without_message(self):
        """Test a failure with no message still records an error."""
        result = reduce_results([ItemResult(WorkItem.single("jq"), success=False)])
        assert result.errors == {"jq": "failed"}

    def test_failed_packages(self):
        assert ItemResult(WorkItem(("a", "b")), success=False).failed_packages == ("a", "b")
        assert ItemResult(WorkItem(("a", "b")), success=True).failed_packages == ()

    def test_to_dict(self):
        result = reduce_results([ItemResult(WorkItem.single("jq"), success=True)])
        data = result.to_dict()
        assert data["succeeded"] == ["jq"]
        assert data["failed"] == []
        assert data["attempted"] == 1

    def test_summary(self):
        result = RunResult(succeeded=("jq",), failed=("wget", "curl"), attempted=3)
        lines = result.summary(INSTALL)
        assert lines[0] == "✓ Installed 1 package(s)"
        assert lines[1] == "✗ 2 package(s) failed (install): wget, curl"


class TestExecuteItems:
    """Tests for execute_items."""

    def test_batch_failure_scenario(self, fake_gateway, failed_outcome):
        """Test a failing batch marks all of its members failed."""
        gateway = fake_gateway(outcomes={("install", "wget", "curl"): failed_outcome()})
        items = partition_batches(["wget", "curl", "firefox"], 2)

        result = execute_items(items, INSTALL, gateway)

        assert set(result.failed) == {"wget", "curl"}
        assert set(result.succeeded) == {"firefox"}
        assert result.attempted == 3
        assert sorted(gateway.calls) == [("install", "firefox"), ("install", "wget", "curl")]

    def test_empty_items(self, fake_gateway):
        """Test no items means no invocations."""
        gateway = fake_gateway()
        tracker = ProgressTracker()

        result = execute_items([], FETCH, gateway, progress=tracker)

        assert result == RunResult()
        assert gateway.calls == []
        assert tracker.get_events() == []

    def test_duplicate_names_rejected(self, fake_gateway):
        """Test a package may not appear in two items."""
        gateway = fake_gateway()
        items = [WorkItem(("wget", "curl")), WorkItem.single("wget")]
        with pytest.raises(ValueError, match="Duplicate"):
            execute_items(items, INSTALL, gateway)
        assert gateway.calls == []

    @pytest.mark.parametrize("limit", [1, 2, 4])
    def test_limit_is_never_exceeded(self, fake_gateway, limit):
        """Test concurrent gateway calls stay within the limiter bound."""
        gateway = fake_gateway(delay=0.02)
        limiter = ConcurrencyLimiter(limit)
        items = single_items([f"pkg{i}" for i in range(12)])

        result = execute_items(items, FETCH, gateway, limiter=limiter, max_workers=12)

        assert gateway.peak <= limit
        assert limiter.peak <= limit
        assert limiter.in_flight == 0
        assert len(gateway.calls) == 12
        assert result.ok

    def test_unbounded_limiter(self, fake_gateway):
        """Test an unbounded limiter runs everything and still completes."""
        gateway = fake_gateway(delay=0.01)
        items = single_items([f"pkg{i}" for i in range(40)])

        result = execute_items(items, FETCH, gateway, limiter=ConcurrencyLimiter(None))

        assert len(gateway.calls) == 40
        assert result.attempted == 40
        assert result.ok

    def test_limit_one_is_serial_and_ordered(self, fake_gateway):
        """Test N=1 invokes items one at a time in input order."""
        gateway = fake_gateway()
        names = ["wget", "curl", "jq", "htop"]

        execute_items(single_items(names), FETCH, gateway, limiter=ConcurrencyLimiter(1))

        assert gateway.peak == 1
        assert gateway.calls == [("fetch", name) for name in names]

    def test_partition_invariant_random_failures(self, fake_gateway, failed_outcome):
        """Test succeeded and failed always partition the input."""
        rng = random.Random(1234)
        names = [f"pkg{i}" for i in range(37)]
        batches = partition_batches(names, 5)
        outcomes = {
            ("reinstall",) + batch.packages: failed_outcome()
            for batch in batches
            if rng.random() < 0.4
        }
        gateway = fake_gateway(outcomes=outcomes)
        reinstall = Verb("reinstall", "Reinstalling", "Reinstalled", "Failed to reinstall")

        result = execute_items(batches, reinstall, gateway, limiter=ConcurrencyLimiter(3))

        _assert_partition(result, names)
        for batch in batches:
            failed = ("reinstall",) + batch.packages in outcomes
            members = set(batch.packages)
            assert members <= (set(result.failed) if failed else set(result.succeeded))

    def test_result_order_follows_input(self, fake_gateway):
        """Test result order is input order even when completion order differs."""

        class SlowFirst(fake_gateway):
            def run(self, spec):
                if spec.args[1] == "a":
                    time.sleep(0.05)
                return super().run(spec)

        gateway = SlowFirst()
        result = execute_items(single_items(["a", "b", "c"]), FETCH, gateway, limiter=ConcurrencyLimiter(3))
        assert result.succeeded == ("a", "b", "c")

    def test_launch_error_does_not_abort_siblings(self, fake_gateway):
        """Test a launch failure is recorded and other items still run."""
        gateway = fake_gateway(outcomes={("fetch", "broken"): LaunchError("Command not found: brew")})
        names = ["wget", "broken", "curl"]

        result = execute_items(single_items(names), FETCH, gateway)

        assert result.failed == ("broken",)
        assert result.succeeded == ("wget", "curl")
        assert result.errors["broken"] == "Command not found: brew"
        assert len(gateway.calls) == 3

    def test_unexpected_error_is_recorded(self, fake_gateway):
        """Test an internal fault still yields a failed result and frees the slot."""
        gateway = fake_gateway(outcomes={("fetch", "odd"): RuntimeError("boom")})
        limiter = ConcurrencyLimiter(1)

        result = execute_items(single_items(["odd", "wget"]), FETCH, gateway, limiter=limiter)

        assert result.failed == ("odd",)
        assert result.succeeded == ("wget",)
        assert "boom" in result.errors["odd"]
        assert limiter.in_flight == 0

    def test_custom_interpretation(self, fake_gateway):
        """Test a verb can judge success from output rather than exit status."""
        gateway = fake_gateway(outcomes={
            ("fetch", "wget"): CommandOutcome(success=True, stderr=b"Warning: checksum mismatch"),
        })
        strict = Verb(
            "fetch", "Fetching", "Fetched", "Failed to fetch",
            interpret=lambda outcome: outcome.success and b"mismatch" not in outcome.stderr,
        )

        result = execute_items(single_items(["wget", "curl"]), strict, gateway)

        assert result.failed == ("wget",)
        assert result.succeeded == ("curl",)

    def test_binary_is_used(self, fake_gateway):
        """Test the configured binary is passed to the gateway."""
        seen = []

        class Recording(fake_gateway):
            def run(self, spec):
                seen.append(spec.binary)
                return super().run(spec)

        execute_items(single_items(["wget"]), FETCH, Recording(), binary="/opt/homebrew/bin/brew")
        assert seen == ["/opt/homebrew/bin/brew"]


class TestProgressEvents:
    """Tests for progress reporting during execution."""

    def test_progress_totals_and_lines(self, fake_gateway, failed_outcome):
        """Test progress advances by package count with one line per package."""
        gateway = fake_gateway(outcomes={("install", "wget", "curl"): failed_outcome()})
        tracker = ProgressTracker()

        execute_items(
            partition_batches(["wget", "curl", "firefox"], 2),
            INSTALL,
            gateway,
            progress=tracker,
        )

        assert tracker.total == 3
        assert tracker.position == 3
        assert sorted(tracker.lines) == sorted([
            "✗ Failed to install: wget",
            "✗ Failed to install: curl",
            "✓ Installed: firefox",
        ])
        assert tracker.finished == "Installing complete"

        advances = [value for event, value in tracker.get_events() if event == "advance"]
        assert sorted(advances) == ["1", "2"]

    def test_messages_name_the_item(self, fake_gateway):
        """Test the status message names the packages being worked on."""
        tracker = ProgressTracker()
        execute_items([WorkItem(("wget", "curl"))], INSTALL, fake_gateway(), progress=tracker)
        messages = [value for event, value in tracker.get_events() if event == "message"]
        assert messages == ["Installing wget, curl"]

    def test_finish_called_when_sink_fails(self, fake_gateway):
        """Test a faulty sink does not lose items or skip finish()."""

        class FlakySink(ProgressTracker):
            def println(self, line):
                if "wget" in line:
                    raise OSError("terminal closed")
                super().println(line)

        sink = FlakySink()
        result = execute_items(single_items(["wget", "curl"]), FETCH, fake_gateway(), progress=sink)

        assert result.attempted == 2
        assert result.failed == ("wget",)
        assert result.succeeded == ("curl",)
        assert sink.finished == "Fetching complete"

    def test_progress_is_thread_safe(self, fake_gateway):
        """Test concurrent advances are all counted."""
        tracker = ProgressTracker()
        items = single_items([f"pkg{i}" for i in range(50)])

        execute_items(items, FETCH, fake_gateway(delay=0.001), limiter=ConcurrencyLimiter(8), progress=tracker)

        assert tracker.position == 50
        assert len(tracker.lines) == 50

    def test_failure_reason_is_logged(self, fake_gateway, failed_outcome, caplog):
        """Test brew's stderr for a failed batch reaches the log as a warning."""
        setup_logging(propagate=True)
        gateway = fake_gateway(outcomes={
            ("install", "nosuch"): failed_outcome(b"Error: No available formula with the name \"nosuch\"."),
        })

        with caplog.at_level(logging.WARNING, logger="better_brew"):
            execute_items(single_items(["nosuch", "wget"]), INSTALL, gateway)

        warnings = [r.getMessage() for r in caplog.records if r.levelno == logging.WARNING]
        assert len(warnings) == 1
        assert "brew install nosuch" in warnings[0]
        assert "No available formula" in warnings[0]

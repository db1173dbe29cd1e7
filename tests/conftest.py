"""
Shared pytest fixtures and configuration for runguard tests.

This module provides:
- A logger wired to in-memory sinks (FATAL does not exit)
- A recording sleep so retry tests never actually wait
- ``ScriptedOperation`` factory returning outcomes from a script

Usage:
    Fixtures are auto-discovered by pytest. Simply use them as function
    arguments (pytest injects them automatically).

    def test_something(logger, memory_sink, scripted):
        op = scripted(["retry", "ok"])
"""

import sys
from collections.abc import Callable
from pathlib import Path
from typing import Any

import pytest

# Ensure runguard package is importable
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from runguard.execution.operation import FatalFailure, RetryableFailure, Success
from runguard.logging import LoggerConfig, MemorySink, StructuredLogger


# =============================================================================
# Test Markers Configuration
# =============================================================================


def pytest_collection_modifyitems(config: pytest.Config, items: list[pytest.Item]) -> None:
    """Auto-mark tests based on their location."""
    for item in items:
        test_path = Path(item.fspath).relative_to(Path(__file__).parent)

        if "integration" in str(test_path):
            item.add_marker(pytest.mark.integration)

        # Mark all tests without explicit markers as unit tests
        markers = {mark.name for mark in item.iter_markers()}
        if not markers.intersection({"unit", "integration", "slow"}):
            item.add_marker(pytest.mark.unit)


# =============================================================================
# Logging Fixtures
# =============================================================================


@pytest.fixture
def memory_sink() -> MemorySink:
    return MemorySink()


@pytest.fixture
def logger(memory_sink: MemorySink) -> StructuredLogger:
    """DEBUG-level logger writing to ``memory_sink``; FATAL does not exit."""
    return StructuredLogger(
        LoggerConfig(min_level="DEBUG", sinks=[memory_sink], exit_on_fatal=False)
    )


# =============================================================================
# Retry Fixtures
# =============================================================================


class SleepRecorder:
    """Stand-in for ``time.sleep`` that records requested delays."""

    def __init__(self) -> None:
        self.calls: list[float] = []

    def __call__(self, seconds: float) -> None:
        self.calls.append(seconds)


class AsyncSleepRecorder(SleepRecorder):
    async def __call__(self, seconds: float) -> None:  # type: ignore[override]
        self.calls.append(seconds)


@pytest.fixture
def sleep() -> SleepRecorder:
    return SleepRecorder()


@pytest.fixture
def async_sleep() -> AsyncSleepRecorder:
    return AsyncSleepRecorder()


class ScriptedOperation:
    """
    Operation whose attempts follow a script.

    Script entries: ``"ok"`` (Success with the attempt number), ``"retry"``
    or ``"fatal"``.  The last entry repeats once the script runs out.
    ``before_attempt`` runs with the attempt number before each attempt.
    """

    def __init__(self, script: list[str], before_attempt: Callable[[int], Any] | None = None):
        self.script = script
        self.before_attempt = before_attempt
        self.calls = 0
        self.cancelled = False

    def attempt(self):
        self.calls += 1
        if self.before_attempt is not None:
            self.before_attempt(self.calls)
        step = self.script[min(self.calls, len(self.script)) - 1]
        if step == "ok":
            return Success(self.calls)
        if step == "fatal":
            return FatalFailure(f"fatal on attempt {self.calls}")
        return RetryableFailure(f"failed attempt {self.calls}")

    def is_cancelled(self) -> bool:
        return self.cancelled


@pytest.fixture
def scripted() -> Callable[..., ScriptedOperation]:
    return ScriptedOperation

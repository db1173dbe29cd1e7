"""Tests for runguard.execution.runner module."""

import pytest

from runguard.core.errors import (
    Cancelled,
    ExecutionFailed,
    Fatal,
    InvalidInput,
    OutOfRange,
    PathNotFound,
)
from runguard.core.validation import PathType, ValidationRule
from runguard.execution.retry import RetryExecutor, RetryPolicy
from runguard.execution.runner import CommandRunner
from runguard.logging import LoggerConfig, MemorySink, StructuredLogger


@pytest.fixture
def runner(logger, sleep):
    return CommandRunner(logger, RetryPolicy(max_attempts=3), executor=RetryExecutor(sleep=sleep))


def _messages(sink: MemorySink) -> list[str]:
    return [line.split("] ", 1)[1] for line in sink.lines]


class TestValidationStage:
    """Inputs are checked before the operation is ever invoked."""

    def test_invalid_input_never_attempts(self, runner, scripted, memory_sink):
        op = scripted(["ok"])
        result = runner.execute(
            "resize",
            op,
            inputs={"percent": "150"},
            rules={"percent": ValidationRule.integer_range(0, 100)},
        )

        error = result.unwrap_err()
        assert isinstance(error, InvalidInput)
        assert error.input_name == "percent"
        assert isinstance(error.cause, OutOfRange)
        assert op.calls == 0
        assert runner.last_report.status == "invalid_input"
        assert runner.last_report.attempt_count == 0

    def test_invalid_input_logged_once(self, runner, scripted, memory_sink):
        runner.execute(
            "resize",
            scripted(["ok"]),
            inputs={"percent": "abc"},
            rules={"percent": ValidationRule.integer_range(0, 100)},
        )
        assert len(memory_sink) == 1
        line = memory_sink.lines[0]
        assert "[ERROR] invalid input" in line
        assert "name=resize" in line
        assert "input=percent" in line

    def test_missing_input_rejected(self, runner, scripted):
        result = runner.execute(
            "backup",
            scripted(["ok"]),
            inputs={},
            rules={"target": ValidationRule.path(PathType.DIRECTORY)},
        )
        assert result.unwrap_err().input_name == "target"

    def test_first_failing_rule_reported(self, runner, scripted, tmp_path):
        result = runner.execute(
            "backup",
            scripted(["ok"]),
            inputs={"target": str(tmp_path / "gone"), "port": "x"},
            rules={
                "target": ValidationRule.path(PathType.DIRECTORY),
                "port": ValidationRule.integer_range(1, 65535),
            },
        )
        error = result.unwrap_err()
        assert error.input_name == "target"
        assert isinstance(error.cause, PathNotFound)

    def test_valid_inputs_run(self, runner, scripted, tmp_path):
        op = scripted(["ok"])
        result = runner.execute(
            "backup",
            op,
            inputs={"target": str(tmp_path), "port": "5432"},
            rules={
                "target": ValidationRule.path(PathType.DIRECTORY),
                "port": ValidationRule.integer_range(1, 65535),
            },
        )
        assert result.is_ok()
        assert op.calls == 1


class TestExecutionStage:
    """Outcomes are mapped to command errors and logged exactly once."""

    def test_completed(self, runner, scripted, memory_sink):
        result = runner.execute("sync", scripted(["retry", "ok"]))

        assert result.unwrap() == 2
        assert _messages(memory_sink) == [
            "command started name=sync",
            "command completed name=sync attempts=2",
        ]
        assert runner.last_report.status == "completed"
        assert runner.last_report.delays == [1.0]

    def test_exhausted(self, runner, scripted, memory_sink):
        result = runner.execute("sync", scripted(["retry"]))

        error = result.unwrap_err()
        assert isinstance(error, ExecutionFailed)
        assert error.attempts == 3
        assert error.last_detail == "failed attempt 3"
        assert len(memory_sink) == 2
        assert "[ERROR] command failed name=sync attempts=3" in memory_sink.lines[1]
        assert "lastError=" in memory_sink.lines[1]
        assert runner.last_report.status == "failed"

    def test_fatal(self, runner, scripted, memory_sink, sleep):
        result = runner.execute("sync", scripted(["fatal"]))

        error = result.unwrap_err()
        assert isinstance(error, Fatal)
        assert error.attempts == 1
        assert sleep.calls == []
        assert "[ERROR] command failed name=sync" in memory_sink.lines[-1]
        assert runner.last_report.status == "fatal"

    def test_cancelled(self, runner, scripted, memory_sink):
        op = scripted(["retry"])
        op.before_attempt = lambda n: setattr(op, "cancelled", n == 2)
        result = runner.execute("sync", op, policy=RetryPolicy(max_attempts=5))

        error = result.unwrap_err()
        assert isinstance(error, Cancelled)
        assert error.attempts == 2
        assert "[WARN] command cancelled name=sync attempts=2" in memory_sink.lines[-1]
        assert runner.last_report.status == "cancelled"

    def test_policy_override(self, runner, scripted):
        op = scripted(["retry"])
        runner.execute("sync", op, policy=RetryPolicy.no_retry())
        assert op.calls == 1

    def test_fatal_outcome_does_not_exit(self, scripted, sleep):
        """Runner failures log at ERROR, so exit_on_fatal never triggers."""
        sink = MemorySink()
        log = StructuredLogger(LoggerConfig(sinks=[sink]))
        runner = CommandRunner(log, executor=RetryExecutor(sleep=sleep))
        assert runner.execute("sync", scripted(["fatal"])).is_err()

    def test_min_level_filters_lifecycle(self, scripted, sleep):
        sink = MemorySink()
        log = StructuredLogger(LoggerConfig(min_level="WARN", sinks=[sink], exit_on_fatal=False))
        runner = CommandRunner(log, executor=RetryExecutor(sleep=sleep))
        runner.execute("sync", scripted(["ok"]))
        assert len(sink) == 0


class TestAsyncRunner:
    @pytest.mark.asyncio
    async def test_execute_async(self, logger, memory_sink, scripted, async_sleep):
        runner = CommandRunner(logger, executor=RetryExecutor(async_sleep=async_sleep))
        result = await runner.execute_async("sync", scripted(["retry", "retry", "ok"]))

        assert result.unwrap() == 3
        assert async_sleep.calls == [1.0, 2.0]
        assert _messages(memory_sink)[-1] == "command completed name=sync attempts=3"

    @pytest.mark.asyncio
    async def test_execute_async_invalid_input(self, logger, scripted):
        op = scripted(["ok"])
        runner = CommandRunner(logger)
        result = await runner.execute_async(
            "sync", op, inputs={"n": "x"}, rules={"n": ValidationRule.integer_range(0, 1)}
        )
        assert isinstance(result.unwrap_err(), InvalidInput)
        assert op.calls == 0

"""Command runner: validate inputs, run under a retry policy, report once.

Manifesto:
    The runner executes operations with a consistent lifecycle
    (validate → start → retry → record outcome) so operation code never
    manages its own retry loop, logging, or error classification.

Lifecycle::

    inputs ──► Validator ──✗──► ERROR "invalid input"    → Err(InvalidInput)
                  │ ✓
                  ▼
           INFO "command started"
                  │
                  ▼
            RetryExecutor ──► Ok        → INFO  "command completed" → Ok(value)
                          ──► exhausted → ERROR "command failed"    → Err(ExecutionFailed)
                          ──► fatal     → ERROR "command failed"    → Err(Fatal)
                          ──► cancelled → WARN  "command cancelled" → Err(Cancelled)

Each failure is logged exactly once, here; the validator and the executor
never log.

Tags:
    runguard, runner, retry, validation, lifecycle
"""

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any, TypeVar

from runguard.core.errors import (
    Cancelled,
    CancelledError,
    Fatal,
    FatalFailureError,
    ExecutionFailed,
    InvalidInput,
    RetryExhaustedError,
    ValidationError,
)
from runguard.core.result import Err, Result
from runguard.core.validation import ValidationRule, Validator
from runguard.execution.operation import Operation
from runguard.execution.retry import AttemptResult, RetryExecutor, RetryPolicy, RetryReport
from runguard.logging.logger import StructuredLogger

T = TypeVar("T")


@dataclass
class CommandReport:
    """Per-command summary of the latest ``execute`` call."""

    name: str
    status: str = "pending"
    attempts: list[AttemptResult] = field(default_factory=list)
    delays: list[float] = field(default_factory=list)

    @property
    def attempt_count(self) -> int:
        return len(self.attempts)


class CommandRunner:
    """
    Composition root wiring Validator → RetryExecutor → StructuredLogger.

    Not safe for concurrent use: callers must serialize ``execute`` calls on
    one instance.

    Args:
        logger: Structured logger receiving lifecycle events
        policy: Default retry policy (``RetryPolicy()`` when omitted)
        validator: Input validator
        executor: Retry executor
    """

    def __init__(
        self,
        logger: StructuredLogger,
        policy: RetryPolicy | None = None,
        validator: Validator | None = None,
        executor: RetryExecutor | None = None,
    ):
        self.logger = logger
        self.policy = policy or RetryPolicy()
        self.validator = validator or Validator()
        self.executor = executor or RetryExecutor()
        self.last_report: CommandReport | None = None

    def _validate(
        self,
        name: str,
        inputs: Mapping[str, Any] | None,
        rules: Mapping[str, ValidationRule] | None,
    ) -> Result[Any] | None:
        if not rules:
            return None
        inputs = inputs or {}
        checks = [(input_name, inputs.get(input_name), rule) for input_name, rule in rules.items()]
        result = self.validator.validate_all(checks)
        if result.is_ok():
            return None

        error = result.unwrap_err()
        if not isinstance(error, ValidationError):
            error = ValidationError(str(error), cause=error)
        input_name = error.context.input_name or "?"
        self.logger.error("invalid input", name=name, input=input_name, error=error.message)
        self.last_report.status = "invalid_input"
        return Err(InvalidInput(name, input_name, error))

    def _finish(self, name: str, result: Result[T], run: RetryReport | None) -> Result[T]:
        report = self.last_report
        if run is not None:
            report.attempts = list(run.attempts)
            report.delays = list(run.delays)

        if result.is_ok():
            report.status = "completed"
            self.logger.info("command completed", name=name, attempts=report.attempt_count)
            return result

        error = result.unwrap_err()
        if isinstance(error, RetryExhaustedError):
            report.status = "failed"
            self.logger.error(
                "command failed",
                name=name,
                attempts=error.attempts,
                lastError=error.last_detail,
            )
            return Err(ExecutionFailed(name, error))
        if isinstance(error, FatalFailureError):
            report.status = "fatal"
            self.logger.error("command failed", name=name, error=error.detail)
            return Err(Fatal(name, error))
        if isinstance(error, CancelledError):
            report.status = "cancelled"
            self.logger.warn("command cancelled", name=name, attempts=error.attempts)
            return Err(Cancelled(name, error))
        raise TypeError(f"unexpected executor error: {error!r}")

    def execute(
        self,
        name: str,
        operation: Operation[T],
        inputs: Mapping[str, Any] | None = None,
        rules: Mapping[str, ValidationRule] | None = None,
        policy: RetryPolicy | None = None,
    ) -> Result[T]:
        """
        Validate ``inputs`` against ``rules``, then run ``operation``.

        Args:
            name: Command name used in log events and errors
            operation: Unit of work (``attempt()`` / ``is_cancelled()``)
            inputs: Named input values
            rules: Input name → rule; every rule is checked before running
            policy: Overrides the runner's default policy for this call

        Returns:
            ``Ok(value)`` or ``Err`` with an ``InvalidInput``,
            ``ExecutionFailed``, ``Fatal`` or ``Cancelled`` error
        """
        self.last_report = CommandReport(name=name)
        invalid = self._validate(name, inputs, rules)
        if invalid is not None:
            return invalid

        self.logger.info("command started", name=name)
        result = self.executor.run(operation, policy or self.policy)
        return self._finish(name, result, self.executor.last_report)

    async def execute_async(
        self,
        name: str,
        operation: Operation[T],
        inputs: Mapping[str, Any] | None = None,
        rules: Mapping[str, ValidationRule] | None = None,
        policy: RetryPolicy | None = None,
    ) -> Result[T]:
        """Async variant of ``execute`` (backoff awaits instead of blocking)."""
        self.last_report = CommandReport(name=name)
        invalid = self._validate(name, inputs, rules)
        if invalid is not None:
            return invalid

        self.logger.info("command started", name=name)
        result = await self.executor.run_async(operation, policy or self.policy)
        return self._finish(name, result, self.executor.last_report)


__all__ = ["CommandReport", "CommandRunner"]

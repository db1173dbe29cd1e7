"""Retry policy and executor with exponential backoff.

The executor runs an operation until it succeeds, reports a fatal failure,
exhausts the attempt budget, or is cancelled.  Attempts run strictly one
after another; the only blocking call is the backoff delay (``time.sleep``
in ``run``, ``asyncio.sleep`` in ``run_async``).

Delay before attempt ``n + 1``::

    delay(2) = min(initial_delay, max_delay)
    delay(n + 1) = min(delay(n) * backoff_multiplier, max_delay)

Example:
    >>> from runguard.execution.retry import RetryExecutor, RetryPolicy
    >>> from runguard.execution.operation import ShellOperation
    >>>
    >>> policy = RetryPolicy(max_attempts=5, initial_delay=1.0, max_delay=5.0)
    >>> list(policy.delays())
    [1.0, 2.0, 4.0, 5.0]
    >>> result = RetryExecutor().run(ShellOperation(["curl", "-fsS", url]), policy)
"""

import asyncio
import functools
import inspect
import math
import time
from collections.abc import Awaitable, Callable, Iterable, Iterator
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum
from typing import Any, TypeVar

from runguard.core.errors import (
    CancelledError,
    ConfigError,
    FatalFailureError,
    RetryExhaustedError,
)
from runguard.core.result import Err, Ok, Result
from runguard.execution.operation import (
    FatalFailure,
    FunctionOperation,
    Operation,
    RetryableFailure,
    Success,
)

T = TypeVar("T")


def utcnow() -> datetime:
    """Return timezone-aware UTC datetime."""
    return datetime.now(UTC)


@dataclass(frozen=True)
class RetryPolicy:
    """
    Exponential backoff policy.

    Attributes:
        max_attempts: Total attempts allowed, including the first (>= 1)
        initial_delay: Delay in seconds before the first retry (>= 0)
        backoff_multiplier: Factor applied to the delay after each retry (>= 1.0)
        max_delay: Optional cap on any single delay (>= 0)

    Raises:
        ConfigError: If a parameter is out of range
    """

    max_attempts: int = 3
    initial_delay: float = 1.0
    backoff_multiplier: float = 2.0
    max_delay: float | None = None

    def __post_init__(self) -> None:
        if isinstance(self.max_attempts, bool) or not isinstance(self.max_attempts, int):
            raise ConfigError(f"max_attempts must be an integer, got {self.max_attempts!r}")
        if self.max_attempts < 1:
            raise ConfigError(f"max_attempts must be >= 1, got {self.max_attempts}")
        if not math.isfinite(self.initial_delay) or self.initial_delay < 0:
            raise ConfigError(f"initial_delay must be >= 0, got {self.initial_delay}")
        if not math.isfinite(self.backoff_multiplier) or self.backoff_multiplier < 1.0:
            raise ConfigError(f"backoff_multiplier must be >= 1.0, got {self.backoff_multiplier}")
        if self.max_delay is not None and (math.isnan(self.max_delay) or self.max_delay < 0):
            raise ConfigError(f"max_delay must be >= 0, got {self.max_delay}")

    @classmethod
    def no_retry(cls) -> "RetryPolicy":
        """A single attempt, failures returned immediately."""
        return cls(max_attempts=1, initial_delay=0.0)

    @classmethod
    def from_settings(cls, settings: Any = None, **overrides: Any) -> "RetryPolicy":
        """Build a policy from ``RunguardSettings`` (keyword overrides win)."""
        if settings is None:
            from runguard.core.settings import RunguardSettings

            settings = RunguardSettings()
        values = {
            "max_attempts": settings.max_attempts,
            "initial_delay": settings.initial_delay,
            "backoff_multiplier": settings.backoff_multiplier,
            "max_delay": settings.max_delay,
        }
        values.update({k: v for k, v in overrides.items() if v is not None})
        return cls(**values)

    def _cap(self, delay: float) -> float:
        if self.max_delay is None:
            return delay
        return min(delay, self.max_delay)

    @property
    def first_delay(self) -> float:
        """Delay before attempt 2."""
        return self._cap(self.initial_delay)

    def next_delay(self, delay: float) -> float:
        """Delay that follows ``delay``."""
        return self._cap(delay * self.backoff_multiplier)

    def delays(self) -> Iterator[float]:
        """Yield the delay before each retry (``max_attempts - 1`` values)."""
        delay = self.first_delay
        for _ in range(self.max_attempts - 1):
            yield delay
            delay = self.next_delay(delay)


class AttemptOutcome(str, Enum):
    """Classification of a single attempt."""

    SUCCESS = "success"
    RETRYABLE_FAILURE = "retryable_failure"
    FATAL_FAILURE = "fatal_failure"


@dataclass(frozen=True)
class AttemptResult:
    """Outcome of one attempt."""

    attempt_number: int
    outcome: AttemptOutcome
    detail: str | None = None
    finished_at: datetime = field(default_factory=utcnow, compare=False)


@dataclass
class RetryReport:
    """
    What happened during one ``run``.

    Attributes:
        attempts: One ``AttemptResult`` per attempt made, in order
        delays: Delays (seconds) waited between attempts
        cancelled: Whether the run stopped on a cancellation request
        started_at: When the run began
    """

    attempts: list[AttemptResult] = field(default_factory=list)
    delays: list[float] = field(default_factory=list)
    cancelled: bool = False
    started_at: datetime = field(default_factory=utcnow)

    @property
    def attempt_count(self) -> int:
        return len(self.attempts)

    @property
    def outcome(self) -> AttemptOutcome | None:
        """Outcome of the final attempt (None if no attempt was made)."""
        return self.attempts[-1].outcome if self.attempts else None

    @property
    def last_detail(self) -> str | None:
        return self.attempts[-1].detail if self.attempts else None

    @property
    def elapsed_seconds(self) -> float:
        return (utcnow() - self.started_at).total_seconds()


class RetryExecutor:
    """
    Run operations under a ``RetryPolicy``.

    The executor does not log; it returns a ``Result`` and keeps the
    per-attempt record of the latest run in ``last_report``.

    Args:
        sleep: Blocking sleep used by ``run`` (injectable for tests)
        async_sleep: Coroutine sleep used by ``run_async``
        on_retry: Callback ``(attempt_result, delay)`` before each delay
    """

    def __init__(
        self,
        sleep: Callable[[float], None] = time.sleep,
        async_sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        on_retry: Callable[[AttemptResult, float], None] | None = None,
    ):
        self._sleep = sleep
        self._async_sleep = async_sleep
        self.on_retry = on_retry
        self.last_report: RetryReport | None = None

    # ── Shared bookkeeping ───────────────────────────────────────

    def _settle(
        self,
        report: RetryReport,
        attempt: int,
        outcome: Any,
        policy: RetryPolicy,
    ) -> Result[Any] | None:
        """Record an attempt; return the terminal result, or None to retry."""
        if isinstance(outcome, Success):
            report.attempts.append(AttemptResult(attempt, AttemptOutcome.SUCCESS))
            return Ok(outcome.value)
        if isinstance(outcome, FatalFailure):
            report.attempts.append(AttemptResult(attempt, AttemptOutcome.FATAL_FAILURE, outcome.detail))
            return Err(FatalFailureError(attempt, outcome.detail))
        if isinstance(outcome, RetryableFailure):
            report.attempts.append(
                AttemptResult(attempt, AttemptOutcome.RETRYABLE_FAILURE, outcome.detail)
            )
            if attempt >= policy.max_attempts:
                return Err(RetryExhaustedError(attempt, outcome.detail))
            return None
        raise TypeError(
            f"operation returned {outcome!r}; expected Success, RetryableFailure or FatalFailure"
        )

    def _cancelled(self, report: RetryReport) -> Result[Any]:
        report.cancelled = True
        return Err(CancelledError(report.attempt_count))

    def _before_delay(self, report: RetryReport, delay: float) -> None:
        report.delays.append(delay)
        if self.on_retry is not None:
            self.on_retry(report.attempts[-1], delay)

    # ── Execution ────────────────────────────────────────────────

    def run(self, operation: Operation[T], policy: RetryPolicy) -> Result[T]:
        """
        Run ``operation`` until success, fatal failure, exhaustion or cancellation.

        Returns:
            ``Ok(value)`` on success; ``Err`` with ``FatalFailureError``,
            ``RetryExhaustedError`` or ``CancelledError`` otherwise

        Raises:
            TypeError: If the operation returns an awaitable (use ``run_async``)
                or something that is not an outcome
        """
        report = RetryReport()
        self.last_report = report
        attempt = 1
        delay = policy.first_delay

        while True:
            if operation.is_cancelled():
                return self._cancelled(report)

            outcome = operation.attempt()
            if inspect.isawaitable(outcome):
                if inspect.iscoroutine(outcome):
                    outcome.close()
                raise TypeError("operation.attempt() returned an awaitable; use run_async()")

            terminal = self._settle(report, attempt, outcome, policy)
            if terminal is not None:
                return terminal

            if operation.is_cancelled():
                return self._cancelled(report)

            self._before_delay(report, delay)
            if delay > 0:
                self._sleep(delay)
            delay = policy.next_delay(delay)
            attempt += 1

    async def run_async(self, operation: Operation[T], policy: RetryPolicy) -> Result[T]:
        """
        Async variant of ``run``.

        ``attempt()`` may return an outcome or an awaitable of one.  Delays
        await ``asyncio.sleep`` so the event loop keeps running; attempts are
        still made one at a time.
        """
        report = RetryReport()
        self.last_report = report
        attempt = 1
        delay = policy.first_delay

        while True:
            if operation.is_cancelled():
                return self._cancelled(report)

            outcome = operation.attempt()
            if inspect.isawaitable(outcome):
                outcome = await outcome

            terminal = self._settle(report, attempt, outcome, policy)
            if terminal is not None:
                return terminal

            if operation.is_cancelled():
                return self._cancelled(report)

            self._before_delay(report, delay)
            if delay > 0:
                await self._async_sleep(delay)
            delay = policy.next_delay(delay)
            attempt += 1


def with_retry(
    policy: RetryPolicy | None = None,
    retry_on: Iterable[type[BaseException]] = (),
    executor: RetryExecutor | None = None,
) -> Callable[[Callable[..., T]], Callable[..., T]]:
    """
    Decorator factory running a function under a retry policy.

    Exceptions flagged ``retryable`` (``TransientError``) or listed in
    ``retry_on`` are retried; anything else stops immediately.  On failure
    the ``RetryError`` is raised, chained to the last exception.

    Example:
        >>> @with_retry(RetryPolicy(max_attempts=3), retry_on=(ConnectionError,))
        ... def fetch_status():
        ...     return call_api()
    """
    if policy is None:
        policy = RetryPolicy()

    def decorator(func: Callable[..., T]) -> Callable[..., T]:
        if inspect.iscoroutinefunction(func):

            @functools.wraps(func)
            async def async_wrapper(*args: Any, **kwargs: Any) -> T:
                op = FunctionOperation(lambda: func(*args, **kwargs), retry_on=retry_on)
                result = await (executor or RetryExecutor()).run_async(op, policy)
                if result.is_err():
                    raise result.unwrap_err() from op.last_error
                return result.unwrap()

            return async_wrapper

        @functools.wraps(func)
        def sync_wrapper(*args: Any, **kwargs: Any) -> T:
            op = FunctionOperation(lambda: func(*args, **kwargs), retry_on=retry_on)
            result = (executor or RetryExecutor()).run(op, policy)
            if result.is_err():
                raise result.unwrap_err() from op.last_error
            return result.unwrap()

        return sync_wrapper

    return decorator


__all__ = [
    "RetryPolicy",
    "AttemptOutcome",
    "AttemptResult",
    "RetryReport",
    "RetryExecutor",
    "with_retry",
]

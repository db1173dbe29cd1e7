"""Tests for the retry policy and executor."""

import asyncio

import pytest

from runguard.core.errors import (
    CancelledError,
    ConfigError,
    FatalFailureError,
    RetryExhaustedError,
    TransientError,
)
from runguard.execution.operation import FunctionOperation, RetryableFailure, Success
from runguard.execution.retry import (
    AttemptOutcome,
    RetryExecutor,
    RetryPolicy,
    with_retry,
)


class TestRetryPolicy:
    """Tests for RetryPolicy construction and delay schedule."""

    def test_defaults(self):
        policy = RetryPolicy()
        assert policy.max_attempts == 3
        assert policy.initial_delay == 1.0
        assert policy.backoff_multiplier == 2.0
        assert policy.max_delay is None

    def test_capped_schedule(self):
        """{initial=1, multiplier=2, max=5} gives 1, 2, 4, 5."""
        policy = RetryPolicy(max_attempts=5, initial_delay=1.0, backoff_multiplier=2.0, max_delay=5.0)
        assert list(policy.delays()) == [1.0, 2.0, 4.0, 5.0]

    def test_uncapped_schedule(self):
        policy = RetryPolicy(max_attempts=4, initial_delay=0.5, backoff_multiplier=3.0)
        assert list(policy.delays()) == [0.5, 1.5, 4.5]

    def test_initial_delay_capped(self):
        policy = RetryPolicy(max_attempts=3, initial_delay=10.0, max_delay=2.0)
        assert list(policy.delays()) == [2.0, 2.0]

    def test_single_attempt_has_no_delays(self):
        assert list(RetryPolicy.no_retry().delays()) == []

    @pytest.mark.parametrize(
        "kwargs",
        [
            {"max_attempts": 0},
            {"max_attempts": -1},
            {"max_attempts": 2.5},
            {"max_attempts": True},
            {"initial_delay": -0.1},
            {"initial_delay": float("inf")},
            {"backoff_multiplier": 0.5},
            {"max_delay": -1.0},
            {"max_delay": float("nan")},
        ],
    )
    def test_invalid_parameters_rejected(self, kwargs):
        with pytest.raises(ConfigError):
            RetryPolicy(**kwargs)

    def test_multiplier_of_one_is_constant(self):
        assert list(RetryPolicy(max_attempts=4, backoff_multiplier=1.0).delays()) == [1.0, 1.0, 1.0]


class TestRetryExecutor:
    """Tests for RetryExecutor.run."""

    def test_exhausts_attempts(self, scripted, sleep):
        op = scripted(["retry"])
        result = RetryExecutor(sleep=sleep).run(op, RetryPolicy(max_attempts=4, initial_delay=1.0))

        error = result.unwrap_err()
        assert isinstance(error, RetryExhaustedError)
        assert error.attempts == 4
        assert error.last_detail == "failed attempt 4"
        assert op.calls == 4
        assert sleep.calls == [1.0, 2.0, 4.0]

    def test_success_on_attempt_k(self, scripted, sleep):
        op = scripted(["retry", "retry", "ok"])
        executor = RetryExecutor(sleep=sleep)
        result = executor.run(op, RetryPolicy(max_attempts=5))

        assert result.unwrap() == 3
        assert op.calls == 3
        # No delay after the success
        assert sleep.calls == [1.0, 2.0]
        assert [a.outcome for a in executor.last_report.attempts] == [
            AttemptOutcome.RETRYABLE_FAILURE,
            AttemptOutcome.RETRYABLE_FAILURE,
            AttemptOutcome.SUCCESS,
        ]

    def test_fatal_on_attempt_k(self, scripted, sleep):
        op = scripted(["retry", "fatal", "ok"])
        result = RetryExecutor(sleep=sleep).run(op, RetryPolicy(max_attempts=5))

        error = result.unwrap_err()
        assert isinstance(error, FatalFailureError)
        assert error.attempts == 2
        assert error.detail == "fatal on attempt 2"
        assert op.calls == 2
        assert sleep.calls == [1.0]

    def test_single_attempt_no_sleep(self, scripted, sleep):
        op = scripted(["retry"])
        result = RetryExecutor(sleep=sleep).run(op, RetryPolicy.no_retry())
        assert isinstance(result.unwrap_err(), RetryExhaustedError)
        assert op.calls == 1
        assert sleep.calls == []

    def test_zero_delay_not_slept(self, scripted, sleep):
        op = scripted(["retry", "retry", "ok"])
        executor = RetryExecutor(sleep=sleep)
        executor.run(op, RetryPolicy(max_attempts=3, initial_delay=0.0))
        assert sleep.calls == []
        assert executor.last_report.delays == [0.0, 0.0]

    def test_capped_delays_observed(self, scripted, sleep):
        op = scripted(["retry"])
        policy = RetryPolicy(max_attempts=5, initial_delay=1.0, backoff_multiplier=2.0, max_delay=5.0)
        RetryExecutor(sleep=sleep).run(op, policy)
        assert sleep.calls == [1.0, 2.0, 4.0, 5.0]

    def test_cancel_between_attempts(self, scripted, sleep):
        """Cancelling after attempt 2 of 5 stops before attempt 3."""
        op = scripted(["retry"])

        def cancel_after_second(seconds):
            sleep(seconds)
            if op.calls == 2:
                op.cancelled = True

        executor = RetryExecutor(sleep=cancel_after_second)
        result = executor.run(op, RetryPolicy(max_attempts=5))

        error = result.unwrap_err()
        assert isinstance(error, CancelledError)
        assert error.attempts == 2
        assert op.calls == 2
        assert executor.last_report.cancelled is True

    def test_cancel_before_delay(self, scripted, sleep):
        op = scripted(["retry"])
        op.before_attempt = lambda n: setattr(op, "cancelled", n == 1)
        result = RetryExecutor(sleep=sleep).run(op, RetryPolicy(max_attempts=3))

        assert isinstance(result.unwrap_err(), CancelledError)
        assert op.calls == 1
        assert sleep.calls == []

    def test_cancelled_before_first_attempt(self, scripted, sleep):
        op = scripted(["ok"])
        op.cancelled = True
        result = RetryExecutor(sleep=sleep).run(op, RetryPolicy())
        assert result.unwrap_err().attempts == 0
        assert op.calls == 0

    def test_on_retry_callback(self, scripted, sleep):
        seen = []
        executor = RetryExecutor(
            sleep=sleep,
            on_retry=lambda attempt, delay: seen.append((attempt.attempt_number, delay)),
        )
        executor.run(scripted(["retry", "retry", "ok"]), RetryPolicy(max_attempts=3))
        assert seen == [(1, 1.0), (2, 2.0)]

    def test_report(self, scripted, sleep):
        executor = RetryExecutor(sleep=sleep)
        executor.run(scripted(["retry", "ok"]), RetryPolicy())
        report = executor.last_report
        assert report.attempt_count == 2
        assert report.outcome == AttemptOutcome.SUCCESS
        assert report.last_detail is None
        assert report.delays == [1.0]
        assert report.elapsed_seconds >= 0

    def test_exception_from_attempt_propagates(self, sleep):
        class Exploding:
            def attempt(self):
                raise RuntimeError("bug in operation")

            def is_cancelled(self):
                return False

        with pytest.raises(RuntimeError, match="bug in operation"):
            RetryExecutor(sleep=sleep).run(Exploding(), RetryPolicy())

    def test_non_outcome_rejected(self, sleep):
        class Wrong:
            def attempt(self):
                return "done"

            def is_cancelled(self):
                return False

        with pytest.raises(TypeError):
            RetryExecutor(sleep=sleep).run(Wrong(), RetryPolicy())

    def test_awaitable_rejected_by_sync_run(self, sleep):
        async def work():
            return 1

        with pytest.raises(TypeError, match="run_async"):
            RetryExecutor(sleep=sleep).run(FunctionOperation(work), RetryPolicy())


class TestRetryExecutorAsync:
    """Tests for RetryExecutor.run_async."""

    @pytest.mark.asyncio
    async def test_async_operation_retried(self, async_sleep):
        calls = 0

        async def flaky():
            nonlocal calls
            calls += 1
            if calls < 3:
                raise TransientError("not yet")
            return "ready"

        executor = RetryExecutor(async_sleep=async_sleep)
        result = await executor.run_async(FunctionOperation(flaky), RetryPolicy(max_attempts=5))

        assert result.unwrap() == "ready"
        assert calls == 3
        assert async_sleep.calls == [1.0, 2.0]

    @pytest.mark.asyncio
    async def test_sync_outcomes_accepted(self, scripted, async_sleep):
        op = scripted(["retry", "fatal"])
        result = await RetryExecutor(async_sleep=async_sleep).run_async(op, RetryPolicy(max_attempts=5))
        assert isinstance(result.unwrap_err(), FatalFailureError)
        assert async_sleep.calls == [1.0]

    @pytest.mark.asyncio
    async def test_async_exhaustion(self, async_sleep):
        class AlwaysBusy:
            calls = 0

            async def attempt(self):
                self.calls += 1
                await asyncio.sleep(0)
                return RetryableFailure("busy")

            def is_cancelled(self):
                return False

        op = AlwaysBusy()
        result = await RetryExecutor(async_sleep=async_sleep).run_async(
            op, RetryPolicy(max_attempts=3, initial_delay=0.5)
        )
        assert result.unwrap_err().attempts == 3
        assert async_sleep.calls == [0.5, 1.0]


class TestWithRetry:
    """Tests for the with_retry decorator."""

    def test_retries_listed_exceptions(self, sleep):
        calls = []

        @with_retry(RetryPolicy(max_attempts=3), retry_on=(ConnectionError,), executor=RetryExecutor(sleep=sleep))
        def fetch():
            calls.append(1)
            if len(calls) < 2:
                raise ConnectionError("reset")
            return "payload"

        assert fetch() == "payload"
        assert len(calls) == 2

    def test_exhaustion_raises_chained(self, sleep):
        @with_retry(RetryPolicy(max_attempts=2), executor=RetryExecutor(sleep=sleep))
        def always_busy():
            raise TransientError("busy")

        with pytest.raises(RetryExhaustedError) as exc:
            always_busy()
        assert isinstance(exc.value.__cause__, TransientError)

    def test_unlisted_exception_is_fatal(self, sleep):
        calls = []

        @with_retry(RetryPolicy(max_attempts=5), executor=RetryExecutor(sleep=sleep))
        def broken():
            calls.append(1)
            raise KeyError("missing")

        with pytest.raises(FatalFailureError):
            broken()
        assert len(calls) == 1

    def test_preserves_metadata(self):
        @with_retry()
        def documented():
            """Docstring."""

        assert documented.__name__ == "documented"
        assert documented.__doc__ == "Docstring."

    @pytest.mark.asyncio
    async def test_async_function(self, async_sleep):
        calls = []

        @with_retry(RetryPolicy(max_attempts=3), executor=RetryExecutor(async_sleep=async_sleep))
        async def fetch():
            calls.append(1)
            if len(calls) < 3:
                raise TransientError("later")
            return 42

        assert await fetch() == 42
        assert async_sleep.calls == [1.0, 2.0]


def test_success_value_passthrough(sleep):
    class Once:
        def attempt(self):
            return Success({"rows": 10})

        def is_cancelled(self):
            return False

    assert RetryExecutor(sleep=sleep).run(Once(), RetryPolicy()).unwrap() == {"rows": 10}

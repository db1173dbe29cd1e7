"""
Operation capability consumed by the retry executor.

An operation is a unit of work supplied by the caller.  It exposes two
methods:

- ``attempt()`` runs the work once and returns ``Success(value)``,
  ``RetryableFailure(detail)`` or ``FatalFailure(detail)``.
- ``is_cancelled()`` tells the executor to stop before the next attempt or
  delay.

The executor trusts the classification and never reclassifies it.  Each
attempt acquires and releases its own resources.

Two adapters cover the common cases:

- ``FunctionOperation`` wraps a Python callable and classifies exceptions
  by their ``retryable`` flag (see ``TransientError``) or by type.
- ``ShellOperation`` runs an external command with ``subprocess.run``,
  classifying exit codes.
"""

from __future__ import annotations

import os
import subprocess
import threading
import time
from collections.abc import Awaitable, Callable, Iterable, Mapping, Sequence
from dataclasses import dataclass
from pathlib import Path
from typing import Generic, Protocol, TypeVar, runtime_checkable

from runguard.logging.config import get_logger

T = TypeVar("T")

log = get_logger(__name__)

# Exit status conventionally reported for a timed-out command
TIMEOUT_EXIT_CODE = 124


@dataclass(frozen=True, slots=True)
class Success(Generic[T]):
    """The attempt succeeded with ``value``."""

    value: T


@dataclass(frozen=True, slots=True)
class RetryableFailure:
    """Transient failure; the attempt may be repeated."""

    detail: str | None = None


@dataclass(frozen=True, slots=True)
class FatalFailure:
    """Non-recoverable failure; remaining attempts are skipped."""

    detail: str | None = None


Outcome = Success[T] | RetryableFailure | FatalFailure


@runtime_checkable
class Operation(Protocol[T]):
    """A fallible unit of work run under a retry policy."""

    def attempt(self) -> Outcome[T] | Awaitable[Outcome[T]]: ...

    def is_cancelled(self) -> bool: ...


class CancellationToken:
    """
    Thread-safe cancellation flag.

    Shared between the code that requests cancellation (a signal handler,
    another thread, a UI) and the operations it should stop.
    """

    def __init__(self) -> None:
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    def is_cancelled(self) -> bool:
        return self._event.is_set()

    def wait(self, seconds: float) -> bool:
        """
        Sleep up to ``seconds``, waking early on cancellation.

        Usable as the executor's ``sleep`` so a backoff delay ends as soon as
        cancellation is requested.  Returns True if cancelled.
        """
        return self._event.wait(seconds)

    def __repr__(self) -> str:
        return f"CancellationToken(cancelled={self.is_cancelled()})"


class FunctionOperation(Generic[T]):
    """
    Adapt a zero-argument callable to the operation capability.

    Classification of a raised exception:
        - ``retryable`` attribute true (``TransientError`` and friends), or
          an instance of a type in ``retry_on``: retryable
        - anything else: fatal

    Coroutine functions are supported by ``RetryExecutor.run_async``.

    Example:
        >>> op = FunctionOperation(lambda: fetch(url), retry_on=(ConnectionError,))
    """

    def __init__(
        self,
        func: Callable[[], T],
        retry_on: Iterable[type[BaseException]] = (),
        token: CancellationToken | None = None,
    ):
        self.func = func
        self.retry_on = tuple(retry_on)
        self.token = token
        self.calls = 0
        self.last_error: Exception | None = None

    def classify(self, error: Exception) -> RetryableFailure | FatalFailure:
        self.last_error = error
        detail = f"{type(error).__name__}: {error}"
        if getattr(error, "retryable", False) or isinstance(error, self.retry_on):
            return RetryableFailure(detail)
        return FatalFailure(detail)

    def attempt(self) -> Outcome[T] | Awaitable[Outcome[T]]:
        self.calls += 1
        try:
            value = self.func()
        except Exception as e:
            return self.classify(e)
        if isinstance(value, Awaitable):
            return self._await(value)
        return Success(value)

    async def _await(self, awaitable: Awaitable[T]) -> Outcome[T]:
        try:
            return Success(await awaitable)
        except Exception as e:
            return self.classify(e)

    def is_cancelled(self) -> bool:
        return self.token is not None and self.token.is_cancelled()


@dataclass(frozen=True)
class CommandOutput:
    """Captured result of one external command run."""

    argv: tuple[str, ...]
    exit_code: int
    stdout: str
    stderr: str
    duration_ms: int

    @property
    def combined_output(self) -> str:
        return (self.stdout + self.stderr).strip()


class ShellOperation:
    """
    Run an external command; one process per attempt.

    Classification:
        - exit code 0: ``Success(CommandOutput)``
        - executable missing, or exit code in ``fatal_exit_codes``: fatal
        - timeout: retryable (reported as exit code 124)
        - other non-zero codes: retryable, or, when ``retryable_exit_codes``
          is given, retryable only if listed and fatal otherwise

    Example:
        >>> op = ShellOperation(["ping", "-c", "1", "8.8.8.8"], timeout=5)
        >>> executor.run(op, RetryPolicy(max_attempts=3))
    """

    def __init__(
        self,
        argv: Sequence[str],
        *,
        cwd: str | Path | None = None,
        env: Mapping[str, str] | None = None,
        timeout: float | None = None,
        retryable_exit_codes: Iterable[int] | None = None,
        fatal_exit_codes: Iterable[int] = (126, 127),
        token: CancellationToken | None = None,
    ):
        if not argv:
            raise ValueError("argv must name a command")
        self.argv = tuple(str(a) for a in argv)
        self.cwd = Path(cwd) if cwd is not None else None
        self.env = dict(env) if env is not None else None
        self.timeout = timeout
        self.retryable_exit_codes = (
            frozenset(retryable_exit_codes) if retryable_exit_codes is not None else None
        )
        self.fatal_exit_codes = frozenset(fatal_exit_codes)
        self.token = token
        self.outputs: list[CommandOutput] = []

    def _run(self) -> CommandOutput:
        started = time.monotonic()
        env = {**os.environ, **self.env} if self.env is not None else None
        try:
            proc = subprocess.run(
                self.argv,
                cwd=self.cwd,
                env=env,
                text=True,
                capture_output=True,
                check=False,
                timeout=self.timeout,
            )
        except subprocess.TimeoutExpired as exc:
            return CommandOutput(
                argv=self.argv,
                exit_code=TIMEOUT_EXIT_CODE,
                stdout=_text(exc.stdout),
                stderr=(_text(exc.stderr) + f"\ncommand timed out after {self.timeout}s").strip(),
                duration_ms=int((time.monotonic() - started) * 1000),
            )
        return CommandOutput(
            argv=self.argv,
            exit_code=proc.returncode,
            stdout=proc.stdout or "",
            stderr=proc.stderr or "",
            duration_ms=int((time.monotonic() - started) * 1000),
        )

    def classify(self, output: CommandOutput) -> Outcome[CommandOutput]:
        code = output.exit_code
        if code == 0:
            return Success(output)
        detail = f"exit code {code}"
        if output.stderr.strip():
            detail = f"{detail}: {output.stderr.strip().splitlines()[-1]}"
        if code == TIMEOUT_EXIT_CODE and code not in self.fatal_exit_codes:
            return RetryableFailure(detail)
        if code in self.fatal_exit_codes:
            return FatalFailure(detail)
        if self.retryable_exit_codes is not None and code not in self.retryable_exit_codes:
            return FatalFailure(detail)
        return RetryableFailure(detail)

    def attempt(self) -> Outcome[CommandOutput]:
        try:
            output = self._run()
        except FileNotFoundError as e:
            return FatalFailure(f"command not found: {self.argv[0]} ({e.strerror})")
        except PermissionError as e:
            return FatalFailure(f"command not executable: {self.argv[0]} ({e.strerror})")
        self.outputs.append(output)
        log.debug(
            "shell.attempt",
            command=" ".join(self.argv),
            cwd=str(self.cwd) if self.cwd else None,
            exit_code=output.exit_code,
            duration_ms=output.duration_ms,
        )
        return self.classify(output)

    def is_cancelled(self) -> bool:
        return self.token is not None and self.token.is_cancelled()

    def __repr__(self) -> str:
        return f"ShellOperation({' '.join(self.argv)!r})"


def _text(value: str | bytes | None) -> str:
    if value is None:
        return ""
    if isinstance(value, bytes):
        return value.decode("utf-8", errors="replace")
    return value


__all__ = [
    "Success",
    "RetryableFailure",
    "FatalFailure",
    "Outcome",
    "Operation",
    "CancellationToken",
    "FunctionOperation",
    "CommandOutput",
    "ShellOperation",
    "TIMEOUT_EXIT_CODE",
]

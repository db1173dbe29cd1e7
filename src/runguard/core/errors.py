"""
Structured error types for runguard.

Every failure the library can report is a ``RunguardError`` subclass carrying
a category, an explicit ``retryable`` flag, structured context and an optional
chained cause. Errors are usually returned inside ``Err`` values rather than
raised; only configuration mistakes (``ConfigError``) are raised, since they
are programming errors detected when a policy or rule is constructed.

Manifesto:
    - **Typed Error Hierarchy:** Callers branch on error type, never on text
    - **Explicit Retry Semantics:** Each error knows if it's retryable
    - **Rich Context:** Errors carry metadata for logging
    - **Error Chaining:** Command errors wrap the condition that caused them

Architecture:
    ::

        ┌─────────────────────────────────────────────────────────────────┐
        │                       RunguardError                              │
        │  (category, retryable, context, cause)                           │
        ├─────────────────────────────────────────────────────────────────┤
        │                                                                  │
        │  ConfigError       ValidationError          TransientError       │
        │  (CONFIG)          (VALIDATION)             (retryable=True)     │
        │                        │                                         │
        │                    PatternMismatch   NotAnInteger   OutOfRange   │
        │                    PathNotFound      WrongType  PermissionDenied │
        │                                                                  │
        │  RetryError        (EXECUTION)                                   │
        │      │                                                           │
        │  RetryExhaustedError   FatalFailureError   CancelledError        │
        │                                                                  │
        │  CommandError      (COMMAND)                                     │
        │      │                                                           │
        │  InvalidInput   ExecutionFailed   Fatal   Cancelled              │
        └─────────────────────────────────────────────────────────────────┘

Usage:
    from runguard.core.errors import CommandError, InvalidInput

    result = runner.execute("backup", operation, inputs, rules)
    match result:
        case Err(InvalidInput() as error):
            print(error.input_name, error.cause)
        case Err(CommandError() as error):
            print(error.to_dict())

Tags:
    error-handling, exception-hierarchy, retry-logic, runguard
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class ErrorCategory(str, Enum):
    """Standard error categories for classification and routing."""

    CONFIG = "CONFIG"             # Invalid policy or rule parameters
    VALIDATION = "VALIDATION"     # Input rejected before execution
    TRANSIENT = "TRANSIENT"       # Temporary condition, worth retrying
    EXECUTION = "EXECUTION"       # Operation failed under the retry policy
    COMMAND = "COMMAND"           # Outward-facing command outcome
    INTERNAL = "INTERNAL"         # Bugs, unexpected state


@dataclass
class ErrorContext:
    """
    Structured metadata attached to an error.

    Attributes:
        command: Name of the command being executed
        input_name: Name of the input that failed validation
        value: Offending input value (stringified)
        attempts: Number of attempts made when the error was produced
        metadata: Additional key-value pairs
    """

    command: str | None = None
    input_name: str | None = None
    value: str | None = None
    attempts: int | None = None
    metadata: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for logging."""
        result = {}
        for key in ["command", "input_name", "value", "attempts"]:
            value = getattr(self, key)
            if value is not None:
                result[key] = value
        if self.metadata:
            result.update(self.metadata)
        return result


class RunguardError(Exception):
    """
    Base exception for all runguard errors.

    Subclasses set ``default_category`` and ``default_retryable`` to provide
    sensible defaults for their domain.

    Examples:
        >>> error = RunguardError("Something went wrong")
        >>> error.category
        <ErrorCategory.INTERNAL: 'INTERNAL'>
        >>> error.retryable
        False
        >>> error.with_context(command="backup").context.command
        'backup'
    """

    default_category: ErrorCategory = ErrorCategory.INTERNAL
    default_retryable: bool = False

    def __init__(
        self,
        message: str,
        *,
        category: ErrorCategory | None = None,
        retryable: bool | None = None,
        context: ErrorContext | None = None,
        cause: Exception | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.category = category or self.default_category
        self.retryable = retryable if retryable is not None else self.default_retryable
        self.context = context or ErrorContext()
        self.cause = cause

        if cause is not None:
            self.__cause__ = cause

    def with_context(self, **kwargs: Any) -> RunguardError:
        """
        Add context to this error (fluent API).

        Usage:
            return Err(OutOfRange(...).with_context(input_name="port"))
        """
        for key, value in kwargs.items():
            if hasattr(self.context, key) and key != "metadata":
                setattr(self.context, key, value)
            else:
                self.context.metadata[key] = value
        return self

    def to_dict(self) -> dict[str, Any]:
        """Convert error to dictionary for logging/serialization."""
        result = {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "category": self.category.value,
            "retryable": self.retryable,
        }
        context_dict = self.context.to_dict()
        if context_dict:
            result["context"] = context_dict
        if self.cause is not None:
            result["cause"] = str(self.cause)
        return result

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.message!r}, category={self.category.value})"


# =============================================================================
# CONFIGURATION ERRORS (Raised at construction time)
# =============================================================================


class ConfigError(RunguardError):
    """Invalid configuration: rejected when the policy or rule is built."""

    default_category = ErrorCategory.CONFIG


# =============================================================================
# TRANSIENT ERRORS (Retryable)
# =============================================================================


class TransientError(RunguardError):
    """
    Temporary error that may succeed on retry.

    Raise it from a function wrapped by ``FunctionOperation`` (or
    ``with_retry``) to mark the failure as retryable.
    """

    default_category = ErrorCategory.TRANSIENT
    default_retryable = True


# =============================================================================
# VALIDATION ERRORS (Never retryable)
# =============================================================================


class ValidationError(RunguardError):
    """Input failed a validation rule. Never retried."""

    default_category = ErrorCategory.VALIDATION
    default_retryable = False

    def __init__(self, message: str, *, value: Any = None, **kwargs: Any):
        super().__init__(message, **kwargs)
        self.value = value
        if value is not None and self.context.value is None:
            self.context.value = str(value)


class PatternMismatch(ValidationError):
    """Value does not fully match the configured expression."""

    def __init__(self, value: str, pattern: str, **kwargs: Any):
        super().__init__(f"{value!r} does not match pattern {pattern!r}", value=value, **kwargs)
        self.pattern = pattern


class NotAnInteger(ValidationError):
    """Value cannot be parsed as a base-10 integer."""

    def __init__(self, value: Any, **kwargs: Any):
        super().__init__(f"{value!r} is not a base-10 integer", value=value, **kwargs)


class OutOfRange(ValidationError):
    """Integer value lies outside the inclusive [minimum, maximum] range."""

    def __init__(self, value: int, minimum: int | None, maximum: int | None, **kwargs: Any):
        low = "-inf" if minimum is None else str(minimum)
        high = "inf" if maximum is None else str(maximum)
        super().__init__(f"{value} is outside [{low}, {high}]", value=value, **kwargs)
        self.minimum = minimum
        self.maximum = maximum


class PathNotFound(ValidationError):
    """Path does not exist (after following symbolic links)."""

    def __init__(self, path: str, **kwargs: Any):
        super().__init__(f"{path} does not exist", value=path, **kwargs)


class WrongType(ValidationError):
    """Existing path is not of the required type (file or directory)."""

    def __init__(self, path: str, expected: str, actual: str, **kwargs: Any):
        super().__init__(f"{path} is a {actual}, expected a {expected}", value=path, **kwargs)
        self.expected = expected
        self.actual = actual


class PermissionDenied(ValidationError):
    """Existing path lacks a required permission bit."""

    def __init__(self, path: str, missing: str, **kwargs: Any):
        super().__init__(f"{path} is not {missing}", value=path, **kwargs)
        self.missing = missing


# =============================================================================
# RETRY ERRORS (Produced by RetryExecutor)
# =============================================================================


class RetryError(RunguardError):
    """Base for outcomes synthesized by the retry executor."""

    default_category = ErrorCategory.EXECUTION

    def __init__(self, message: str, *, attempts: int, **kwargs: Any):
        super().__init__(message, **kwargs)
        self.attempts = attempts
        self.context.attempts = attempts


class RetryExhaustedError(RetryError):
    """Attempt budget consumed; carries the detail of the final failure."""

    def __init__(self, attempts: int, last_detail: str | None, **kwargs: Any):
        super().__init__(
            f"gave up after {attempts} attempt(s): {last_detail or 'unknown error'}",
            attempts=attempts,
            **kwargs,
        )
        self.last_detail = last_detail


class FatalFailureError(RetryError):
    """Operation reported a non-recoverable failure."""

    def __init__(self, attempt: int, detail: str | None, **kwargs: Any):
        super().__init__(
            f"fatal failure on attempt {attempt}: {detail or 'unknown error'}",
            attempts=attempt,
            **kwargs,
        )
        self.detail = detail


class CancelledError(RetryError):
    """Cancellation was requested before an attempt or a delay."""

    def __init__(self, attempts: int, **kwargs: Any):
        super().__init__(f"cancelled after {attempts} attempt(s)", attempts=attempts, **kwargs)


# =============================================================================
# COMMAND ERRORS (Returned by CommandRunner)
# =============================================================================


class CommandError(RunguardError):
    """Outward-facing failure of ``CommandRunner.execute``."""

    default_category = ErrorCategory.COMMAND

    def __init__(self, message: str, *, command: str, **kwargs: Any):
        super().__init__(message, **kwargs)
        self.command = command
        self.context.command = command


class InvalidInput(CommandError):
    """An input failed validation; the operation was never invoked."""

    def __init__(self, command: str, input_name: str, cause: ValidationError):
        super().__init__(
            f"invalid input {input_name!r}: {cause.message}",
            command=command,
            cause=cause,
        )
        self.input_name = input_name
        self.context.input_name = input_name


class ExecutionFailed(CommandError):
    """Retry budget exhausted."""

    def __init__(self, command: str, cause: RetryExhaustedError):
        super().__init__(f"{command} failed: {cause.message}", command=command, cause=cause)
        self.attempts = cause.attempts
        self.last_detail = cause.last_detail
        self.context.attempts = cause.attempts


class Fatal(CommandError):
    """Operation signalled a fatal failure."""

    def __init__(self, command: str, cause: FatalFailureError):
        super().__init__(f"{command} failed: {cause.message}", command=command, cause=cause)
        self.attempts = cause.attempts
        self.detail = cause.detail
        self.context.attempts = cause.attempts


class Cancelled(CommandError):
    """Execution was cancelled."""

    def __init__(self, command: str, cause: CancelledError):
        super().__init__(f"{command} cancelled", command=command, cause=cause)
        self.attempts = cause.attempts
        self.context.attempts = cause.attempts


__all__ = [
    "ErrorCategory",
    "ErrorContext",
    "RunguardError",
    "ConfigError",
    "TransientError",
    "ValidationError",
    "PatternMismatch",
    "NotAnInteger",
    "OutOfRange",
    "PathNotFound",
    "WrongType",
    "PermissionDenied",
    "RetryError",
    "RetryExhaustedError",
    "FatalFailureError",
    "CancelledError",
    "CommandError",
    "InvalidInput",
    "ExecutionFailed",
    "Fatal",
    "Cancelled",
]

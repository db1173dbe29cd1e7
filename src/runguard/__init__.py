"""
runguard - run fallible commands with input validation, retries and
structured logging.

Example:
    >>> from runguard import (
    ...     CommandRunner, LoggerConfig, RetryPolicy, ShellOperation,
    ...     StructuredLogger, ValidationRule,
    ... )
    >>> log = StructuredLogger(LoggerConfig(min_level="INFO"))
    >>> runner = CommandRunner(log, RetryPolicy(max_attempts=3, initial_delay=1.0))
    >>> result = runner.execute(
    ...     "find-large",
    ...     ShellOperation(["find", "/var/log", "-size", "+100M"]),
    ...     inputs={"directory": "/var/log"},
    ...     rules={"directory": ValidationRule.path("directory")},
    ... )
"""

__version__ = "0.3.0"

from runguard.core import (
    Cancelled,
    CommandError,
    Err,
    ExecutionFailed,
    Fatal,
    InvalidInput,
    Ok,
    Result,
    ValidationRule,
    Validator,
    validate,
)
from runguard.execution import (
    CancellationToken,
    CommandRunner,
    FatalFailure,
    FunctionOperation,
    RetryableFailure,
    RetryExecutor,
    RetryPolicy,
    ShellOperation,
    Success,
    with_retry,
)
from runguard.logging import (
    ConsoleSink,
    FileSink,
    LoggerConfig,
    LogLevel,
    StructuredLogger,
)

__all__ = [
    "__version__",
    "CommandRunner",
    "CommandError",
    "InvalidInput",
    "ExecutionFailed",
    "Fatal",
    "Cancelled",
    "Ok",
    "Err",
    "Result",
    "ValidationRule",
    "Validator",
    "validate",
    "RetryPolicy",
    "RetryExecutor",
    "with_retry",
    "Success",
    "RetryableFailure",
    "FatalFailure",
    "CancellationToken",
    "FunctionOperation",
    "ShellOperation",
    "StructuredLogger",
    "LoggerConfig",
    "LogLevel",
    "ConsoleSink",
    "FileSink",
]

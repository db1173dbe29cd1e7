"""
runguard core - errors, results, validation and settings.

``settings`` is not imported here: it needs pydantic-settings, which only
hosts load.
"""

from runguard.core.errors import (
    Cancelled,
    CancelledError,
    CommandError,
    ConfigError,
    ErrorCategory,
    ErrorContext,
    ExecutionFailed,
    Fatal,
    FatalFailureError,
    InvalidInput,
    NotAnInteger,
    OutOfRange,
    PathNotFound,
    PatternMismatch,
    PermissionDenied,
    RetryError,
    RetryExhaustedError,
    RunguardError,
    TransientError,
    ValidationError,
    WrongType,
)
from runguard.core.result import Err, Ok, Result, try_result
from runguard.core.validation import (
    PathType,
    Permission,
    RuleKind,
    ValidationRule,
    Validator,
    validate,
)

__all__ = [
    # Errors
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
    # Result
    "Ok",
    "Err",
    "Result",
    "try_result",
    # Validation
    "RuleKind",
    "PathType",
    "Permission",
    "ValidationRule",
    "Validator",
    "validate",
]

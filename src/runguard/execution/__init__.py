"""
runguard execution - operations, retry policy and the command runner.

Usage:
    from runguard.execution import CommandRunner, RetryPolicy, ShellOperation

    runner = CommandRunner(logger, RetryPolicy(max_attempts=3, initial_delay=1.0))
    result = runner.execute("ping", ShellOperation(["ping", "-c", "1", "8.8.8.8"]))
"""

from runguard.execution.operation import (
    CancellationToken,
    CommandOutput,
    FatalFailure,
    FunctionOperation,
    Operation,
    Outcome,
    RetryableFailure,
    ShellOperation,
    Success,
)
from runguard.execution.retry import (
    AttemptOutcome,
    AttemptResult,
    RetryExecutor,
    RetryPolicy,
    RetryReport,
    with_retry,
)
from runguard.execution.runner import CommandReport, CommandRunner

__all__ = [
    # Operations
    "Operation",
    "Outcome",
    "Success",
    "RetryableFailure",
    "FatalFailure",
    "CancellationToken",
    "FunctionOperation",
    "ShellOperation",
    "CommandOutput",
    # Retry
    "RetryPolicy",
    "RetryExecutor",
    "RetryReport",
    "AttemptOutcome",
    "AttemptResult",
    "with_retry",
    # Runner
    "CommandRunner",
    "CommandReport",
]

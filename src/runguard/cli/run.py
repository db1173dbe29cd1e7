"""
CLI: ``runguard run`` - execute an external command with retries.

    runguard run --attempts 5 --delay 1 --max-delay 5 \\
        --require-dir /var/backups --require-int port=5432:1:65535 \\
        -- pg_dump -h db -p 5432 app
"""

from __future__ import annotations

from pathlib import Path

import typer

from runguard.cli.utils import (
    EXIT_INVALID_INPUT,
    build_logger,
    cancel_on_interrupt,
    collect_requirements,
    exit_code_for,
    load_settings,
    print_error,
    print_report,
)
from runguard.core.errors import ConfigError
from runguard.execution.operation import CancellationToken, ShellOperation
from runguard.execution.retry import RetryExecutor, RetryPolicy
from runguard.execution.runner import CommandRunner
from runguard.logging.config import configure_logging


def run_command(
    command: list[str] = typer.Argument(..., help="Command and arguments (after --)."),
    name: str | None = typer.Option(None, "--name", "-n", help="Name used in log events."),
    attempts: int | None = typer.Option(None, "--attempts", "-a", help="Maximum attempts."),
    delay: float | None = typer.Option(None, "--delay", help="Initial delay in seconds."),
    multiplier: float | None = typer.Option(None, "--multiplier", help="Backoff multiplier."),
    max_delay: float | None = typer.Option(None, "--max-delay", help="Cap on any delay."),
    timeout: float | None = typer.Option(None, "--timeout", help="Per-attempt timeout in seconds."),
    log_file: Path | None = typer.Option(None, "--log-file", help="Also append events to this file."),
    log_level: str | None = typer.Option(None, "--log-level", help="DEBUG, INFO, WARN, ERROR or FATAL."),
    json_out: bool = typer.Option(False, "--json", help="Log events as JSON."),
    debug: bool = typer.Option(False, "--debug", "-d", help="Log at DEBUG, including each process spawned."),
    report: bool = typer.Option(False, "--report", help="Print the attempt table when done."),
    require_int: list[str] | None = typer.Option(
        None, "--require-int", help="NAME=VALUE:MIN:MAX integer input (repeatable)."
    ),
    require_match: list[str] | None = typer.Option(
        None, "--require-match", help="NAME=VALUE:REGEX pattern input (repeatable)."
    ),
    require_dir: list[Path] | None = typer.Option(
        None, "--require-dir", help="Directory that must exist (repeatable)."
    ),
    require_file: list[Path] | None = typer.Option(
        None, "--require-file", help="Regular file that must exist (repeatable)."
    ),
) -> None:
    """Run COMMAND, retrying failures with exponential backoff."""
    configure_logging(level="DEBUG" if debug else None)
    try:
        settings = load_settings()
        inputs, rules = collect_requirements(
            require_int or [], require_match or [], require_dir or [], require_file or []
        )
        policy = RetryPolicy.from_settings(
            settings,
            max_attempts=attempts,
            initial_delay=delay,
            backoff_multiplier=multiplier,
            max_delay=max_delay,
        )
        logger = build_logger(
            settings,
            log_level="DEBUG" if debug else log_level,
            log_file=log_file,
            json_out=json_out,
        )
    except ConfigError as e:
        print_error(e)
        raise typer.Exit(code=EXIT_INVALID_INPUT) from e

    token = CancellationToken()
    operation = ShellOperation(
        command,
        timeout=timeout if timeout is not None else settings.command_timeout,
        token=token,
    )
    runner = CommandRunner(logger, policy, executor=RetryExecutor(sleep=token.wait))

    with cancel_on_interrupt(token):
        result = runner.execute(name or Path(command[0]).name, operation, inputs, rules)

    if report and runner.last_report is not None:
        print_report(runner.last_report, as_json=json_out)

    if result.is_err():
        raise typer.Exit(code=exit_code_for(result.unwrap_err()))

    output = result.unwrap()
    if output.stdout:
        typer.echo(output.stdout, nl=False)
    if output.stderr:
        typer.echo(output.stderr, nl=False, err=True)

"""
CLI utility helpers: consoles, option parsing and host wiring.
"""

from __future__ import annotations

import json
import signal
import sys
from collections.abc import Iterator, Sequence
from contextlib import contextmanager
from pathlib import Path
from typing import Any

from pydantic import ValidationError as PydanticValidationError

try:
    import typer
    from rich.console import Console
    from rich.markup import escape
    from rich.table import Table
except ImportError as e:  # pragma: no cover
    raise SystemExit("Missing CLI deps.  Install with:  pip install runguard") from e

from runguard.core.errors import Cancelled, ConfigError, InvalidInput, RunguardError
from runguard.core.settings import RunguardSettings
from runguard.core.validation import PathType, ValidationRule
from runguard.execution.operation import CancellationToken
from runguard.execution.runner import CommandReport
from runguard.logging.logger import LoggerConfig, StructuredLogger
from runguard.logging.sinks import ConsoleSink

console = Console()
err_console = Console(stderr=True)

EXIT_FAILED = 1
EXIT_INVALID_INPUT = 2
EXIT_CANCELLED = 130


# ── Host wiring ──────────────────────────────────────────────────────────


def load_settings() -> RunguardSettings:
    """Load ``RUNGUARD_*`` settings, reporting bad values as ``ConfigError``."""
    try:
        return RunguardSettings()
    except PydanticValidationError as e:
        first = e.errors()[0]
        field = ".".join(str(part) for part in first["loc"]) or "settings"
        raise ConfigError(f"invalid setting {field}: {first['msg']}", cause=e) from e


def build_logger(
    settings: RunguardSettings,
    *,
    log_level: str | None = None,
    log_file: Path | None = None,
    json_out: bool = False,
) -> StructuredLogger:
    """Logger writing to stderr (stdout carries command output), plus the log file."""
    updates: dict[str, Any] = {}
    if log_level is not None:
        updates["log_level"] = log_level
    if log_file is not None:
        updates["log_file"] = log_file
    if json_out:
        updates["log_format"] = "json"
    settings = settings.model_copy(update=updates)

    config = LoggerConfig.from_settings(settings, console=False)
    config.sinks.insert(0, ConsoleSink(sys.stderr))
    return StructuredLogger(config)


def exit_code_for(error: RunguardError) -> int:
    """Map a runner error to the process exit status."""
    if isinstance(error, InvalidInput):
        return EXIT_INVALID_INPUT
    if isinstance(error, Cancelled):
        return EXIT_CANCELLED
    return EXIT_FAILED


@contextmanager
def cancel_on_interrupt(token: CancellationToken) -> Iterator[CancellationToken]:
    """Turn SIGINT into a cancellation request for the duration of the block."""
    try:
        previous = signal.signal(signal.SIGINT, lambda signum, frame: token.cancel())
    except ValueError:
        # signal handlers can only be installed from the main thread
        yield token
        return
    try:
        yield token
    finally:
        signal.signal(signal.SIGINT, previous)


# ── Requirement options ──────────────────────────────────────────────────


def _split_named(raw: str, option: str) -> tuple[str, str]:
    name, sep, rest = raw.partition("=")
    if not sep or not name:
        raise typer.BadParameter(f"expected NAME=..., got {raw!r}", param_hint=option)
    return name, rest


def _optional_int(bound: str, raw: str, option: str) -> int | None:
    if bound == "":
        return None
    try:
        return int(bound)
    except ValueError:
        raise typer.BadParameter(f"bound {bound!r} in {raw!r} is not an integer", param_hint=option) from None


def parse_int_requirement(raw: str) -> tuple[str, str, ValidationRule]:
    """Parse ``NAME=VALUE:MIN:MAX`` (either bound may be empty)."""
    name, rest = _split_named(raw, "--require-int")
    parts = rest.split(":")
    if len(parts) != 3:
        raise typer.BadParameter(f"expected NAME=VALUE:MIN:MAX, got {raw!r}", param_hint="--require-int")
    value, low, high = parts
    rule = ValidationRule.integer_range(
        _optional_int(low, raw, "--require-int"),
        _optional_int(high, raw, "--require-int"),
    )
    return name, value, rule


def parse_match_requirement(raw: str) -> tuple[str, str, ValidationRule]:
    """Parse ``NAME=VALUE:REGEX``; the value ends at the first colon."""
    name, rest = _split_named(raw, "--require-match")
    value, sep, pattern = rest.partition(":")
    if not sep:
        raise typer.BadParameter(f"expected NAME=VALUE:REGEX, got {raw!r}", param_hint="--require-match")
    return name, value, ValidationRule.pattern_rule(pattern)


def collect_requirements(
    ints: Sequence[str] = (),
    matches: Sequence[str] = (),
    dirs: Sequence[Path] = (),
    files: Sequence[Path] = (),
) -> tuple[dict[str, Any], dict[str, ValidationRule]]:
    """Turn ``--require-*`` options into the runner's inputs and rules."""
    inputs: dict[str, Any] = {}
    rules: dict[str, ValidationRule] = {}
    for raw in ints:
        name, value, rule = parse_int_requirement(raw)
        inputs[name], rules[name] = value, rule
    for raw in matches:
        name, value, rule = parse_match_requirement(raw)
        inputs[name], rules[name] = value, rule
    for path in dirs:
        name = f"dir:{path}"
        inputs[name], rules[name] = str(path), ValidationRule.path(PathType.DIRECTORY)
    for path in files:
        name = f"file:{path}"
        inputs[name], rules[name] = str(path), ValidationRule.path(PathType.FILE)
    return inputs, rules


# ── Output helpers ───────────────────────────────────────────────────────


def print_error(error: RunguardError) -> None:
    err_console.print(f"[bold red]Error[/bold red] ({error.category.value}): {escape(error.message)}")


def print_report(report: CommandReport, *, as_json: bool = False) -> None:
    """Render the per-attempt record of a run on stderr."""
    rows = []
    for index, attempt in enumerate(report.attempts):
        delay = report.delays[index] if index < len(report.delays) else None
        rows.append(
            {
                "attempt": attempt.attempt_number,
                "outcome": attempt.outcome.value,
                "detail": attempt.detail or "",
                "delay": "" if delay is None else f"{delay:g}s",
            }
        )

    if as_json:
        payload = {"name": report.name, "status": report.status, "attempts": rows}
        err_console.print_json(json.dumps(payload, default=str))
        return

    table = Table(title=escape(f"{report.name}: {report.status}"), show_lines=False, pad_edge=False)
    for col in ("attempt", "outcome", "detail", "delay"):
        table.add_column(col, overflow="fold")
    for row in rows:
        table.add_row(*(escape(str(v)) for v in row.values()))
    err_console.print(table)

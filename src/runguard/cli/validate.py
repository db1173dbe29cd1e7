"""
CLI: ``runguard validate`` - check one value against one rule.

Exit status is 0 when the value is valid and 2 when it is not, so the
commands slot into shell conditionals::

    runguard validate int "$PORT" --min 1 --max 65535 || exit 2
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import typer
from rich.markup import escape

from runguard.cli.utils import EXIT_INVALID_INPUT, console, err_console, print_error
from runguard.core.errors import ConfigError
from runguard.core.result import Result
from runguard.core.validation import PathType, Permission, ValidationRule, Validator

app = typer.Typer(no_args_is_help=True)


def _output(result: Result[Any], value: str, *, as_json: bool) -> None:
    if result.is_ok():
        if as_json:
            console.print_json(json.dumps({"valid": True, "value": value}))
        else:
            console.print(f"[green]valid[/green]: {escape(value)}")
        return

    error = result.unwrap_err()
    if as_json:
        console.print_json(json.dumps({"valid": False, **error.to_dict()}, default=str))
    else:
        err_console.print(f"[bold red]invalid[/bold red] ({type(error).__name__}): {escape(str(error))}")
    raise typer.Exit(code=EXIT_INVALID_INPUT)


def _check(value: str, rule: ValidationRule, *, as_json: bool) -> None:
    _output(Validator().validate(value, rule), value, as_json=as_json)


@app.command("int")
def validate_int(
    value: str = typer.Argument(..., help="Value to check."),
    minimum: int | None = typer.Option(None, "--min", help="Inclusive lower bound."),
    maximum: int | None = typer.Option(None, "--max", help="Inclusive upper bound."),
    json_out: bool = typer.Option(False, "--json"),
) -> None:
    """Check that VALUE is an integer within [--min, --max]."""
    try:
        rule = ValidationRule.integer_range(minimum, maximum)
    except ConfigError as e:
        print_error(e)
        raise typer.Exit(code=EXIT_INVALID_INPUT) from e
    _check(value, rule, as_json=json_out)


@app.command("match")
def validate_match(
    value: str = typer.Argument(..., help="Value to check."),
    pattern: str = typer.Argument(..., help="Regular expression VALUE must fully match."),
    json_out: bool = typer.Option(False, "--json"),
) -> None:
    """Check that VALUE fully matches PATTERN."""
    try:
        rule = ValidationRule.pattern_rule(pattern)
    except ConfigError as e:
        print_error(e)
        raise typer.Exit(code=EXIT_INVALID_INPUT) from e
    _check(value, rule, as_json=json_out)


@app.command("path")
def validate_path(
    path: Path = typer.Argument(..., help="Path to check."),
    directory: bool = typer.Option(False, "--dir", help="Must be a directory."),
    file: bool = typer.Option(False, "--file", help="Must be a regular file."),
    readable: bool = typer.Option(False, "--readable", "-r"),
    writable: bool = typer.Option(False, "--writable", "-w"),
    executable: bool = typer.Option(False, "--executable", "-x"),
    json_out: bool = typer.Option(False, "--json"),
) -> None:
    """Check that PATH exists, optionally with a type and permissions."""
    if directory and file:
        raise typer.BadParameter("--dir and --file are mutually exclusive")

    path_type = PathType.DIRECTORY if directory else PathType.FILE if file else None
    permission = Permission.NONE
    if readable:
        permission |= Permission.READ
    if writable:
        permission |= Permission.WRITE
    if executable:
        permission |= Permission.EXECUTE

    _check(str(path), ValidationRule.path(path_type, permission), as_json=json_out)

"""
Root Typer application for the runguard CLI.
"""

from __future__ import annotations

import sys

try:
    import typer
    from typer import Typer
except ImportError:  # pragma: no cover
    print("typer is required for the CLI.  Install with:  pip install runguard")
    sys.exit(1)

app = Typer(
    name="runguard",
    help="runguard: run commands with input validation, retries and structured logs.",
    no_args_is_help=True,
    rich_markup_mode="rich",
)


# ── Version callback ─────────────────────────────────────────────────────


def _version_callback(value: bool) -> None:
    if value:
        from importlib.metadata import PackageNotFoundError
        from importlib.metadata import version as pkg_version

        try:
            v = pkg_version("runguard")
        except PackageNotFoundError:
            from runguard import __version__ as v
        typer.echo(f"runguard {v}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool | None = typer.Option(  # noqa: UP007
        None,
        "--version",
        "-V",
        help="Show version and exit.",
        callback=_version_callback,
        is_eager=True,
    ),
) -> None:
    """runguard CLI: run and validate."""


# ── Sub-command registration ─────────────────────────────────────────────

from runguard.cli.run import run_command  # noqa: E402
from runguard.cli.validate import app as validate_app  # noqa: E402

app.command(
    "run",
    context_settings={"allow_interspersed_args": False},
)(run_command)
app.add_typer(validate_app, name="validate", help="Check a value against a rule.")


if __name__ == "__main__":
    app()

"""
CLI layer for runguard.

Provides a Typer application whose commands wire ``RunguardSettings``,
``StructuredLogger`` and ``CommandRunner`` together.  All behaviour lives in
the library packages; this package handles only terminal transport:
argument parsing, exit codes and table output.

Entry point::

    runguard --help
"""

from runguard.cli.app import app

__all__ = ["app"]

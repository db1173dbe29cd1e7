"""
Diagnostics logging configuration.

runguard's own internals (for example ``ShellOperation`` tracing each
spawned process at DEBUG) log through structlog, separately from the
``StructuredLogger`` event pipeline that hosts configure explicitly.

Configuration is read from arguments or environment variables:
- RUNGUARD_DIAG_LEVEL: DEBUG | INFO | WARNING | ERROR (default: WARNING)
- RUNGUARD_DIAG_FORMAT: json | console (default: console)

Usage:
    from runguard.logging.config import configure_logging, get_logger

    configure_logging(level="DEBUG")
    log = get_logger(__name__)
    log.debug("shell.attempt", argv=["ls"], exit_code=0)
"""

import logging
import os
import sys
from typing import Any, Literal

import structlog
from structlog.types import Processor

# Track if logging has been configured
_configured = False


def configure_logging(
    level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] | None = None,
    format: Literal["json", "console"] | None = None,
    force: bool = False,
) -> None:
    """
    Configure structlog for runguard diagnostics.

    Should be called once at application startup.  Subsequent calls are
    no-ops unless force=True.

    Args:
        level: Log level (overrides RUNGUARD_DIAG_LEVEL env var)
        format: Output format (overrides RUNGUARD_DIAG_FORMAT env var)
        force: Reconfigure even if already configured
    """
    global _configured

    if _configured and not force:
        return

    log_level = (level or os.environ.get("RUNGUARD_DIAG_LEVEL", "WARNING")).upper()
    log_format = (format or os.environ.get("RUNGUARD_DIAG_FORMAT", "console")).lower()

    processors: list[Processor] = [
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        # Timestamp in UTC ISO-8601 with Z suffix
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.format_exc_info,
        structlog.processors.StackInfoRenderer(),
    ]

    if log_format == "json":
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(
            structlog.dev.ConsoleRenderer(
                colors=False,
                exception_formatter=structlog.dev.plain_traceback,
            )
        )

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    # Diagnostics go to stderr; stdout carries command output
    logging.basicConfig(
        format="%(message)s",
        stream=sys.stderr,
        level=getattr(logging, log_level),
        force=True,
    )
    logging.getLogger("runguard").setLevel(getattr(logging, log_level))

    _configured = True


def get_logger(name: str | None = None) -> Any:
    """Get a structlog logger (usually ``get_logger(__name__)``)."""
    return structlog.get_logger(name)


def is_configured() -> bool:
    """Check if logging has been configured."""
    return _configured


__all__ = ["configure_logging", "get_logger", "is_configured"]

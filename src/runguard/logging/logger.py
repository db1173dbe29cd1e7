"""
Structured event logger.

``StructuredLogger`` is configured by an explicit ``LoggerConfig`` passed at
construction; there is no process-wide logger state.  A host typically builds
one instance at startup and hands it to the collaborators that need it.

Behaviour:
    - Events below ``min_level`` are dropped before an event is built.
    - Every sink gets its own formatted copy (a sink's own ``formatter``
      attribute wins over the logger's).
    - A sink that raises is reported on the fallback error stream; ``emit``
      never raises because of a sink and the remaining sinks still receive
      the event.
    - FATAL exits the process (``SystemExit``) after every sink was
      attempted, unless ``exit_on_fatal`` is false.

Usage:
    from runguard.logging import LoggerConfig, StructuredLogger, FileSink, ConsoleSink

    log = StructuredLogger(LoggerConfig(
        min_level="INFO",
        sinks=[ConsoleSink(), FileSink("/tmp/system_check.log")],
    ))
    log.info("command started", name="backup")
"""

from __future__ import annotations

import sys
from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path
from types import FrameType
from typing import Any, TextIO

import structlog

from runguard.core.errors import ConfigError
from runguard.logging.events import LogEvent, LogLevel
from runguard.logging.formatters import Formatter, KeyValueFormatter, get_formatter
from runguard.logging.sinks import ConsoleSink, FileSink, Sink

_THIS_FILE = str(Path(__file__).resolve())


@dataclass
class LoggerConfig:
    """
    Configuration of a ``StructuredLogger``.

    Attributes:
        min_level: Events below this level are dropped
        sinks: Destinations; each gets its own formatted copy of every event
        formatter: Default formatter for sinks without one
        exit_on_fatal: Exit the process after a FATAL event
        fatal_exit_code: Exit status used for FATAL (must be non-zero)
        capture_caller: Record the ``function:line`` of the emitting code
        fallback_stream: Where sink failures are reported (stderr when None)
    """

    min_level: LogLevel | str = LogLevel.INFO
    sinks: list[Sink] = field(default_factory=lambda: [ConsoleSink()])
    formatter: Formatter = field(default_factory=KeyValueFormatter)
    exit_on_fatal: bool = True
    fatal_exit_code: int = 1
    capture_caller: bool = False
    fallback_stream: TextIO | None = None

    def __post_init__(self) -> None:
        try:
            self.min_level = LogLevel.parse(self.min_level)
        except ValueError as e:
            raise ConfigError(str(e), cause=e) from e
        if self.fatal_exit_code == 0:
            raise ConfigError("fatal_exit_code must be non-zero")

    @classmethod
    def from_settings(
        cls,
        settings: Any = None,
        *,
        console: bool = True,
        **overrides: Any,
    ) -> LoggerConfig:
        """
        Build a config from ``RunguardSettings``.

        The console sink and, when ``log_file`` is set, a file sink are
        configured, mirroring the tee-to-logfile behaviour of shell scripts.
        """
        if settings is None:
            from runguard.core.settings import RunguardSettings

            settings = RunguardSettings()

        sinks: list[Sink] = []
        if console:
            sinks.append(ConsoleSink())
        if settings.log_file is not None:
            sinks.append(FileSink(settings.log_file))

        values: dict[str, Any] = {
            "min_level": settings.log_level,
            "sinks": sinks,
            "formatter": get_formatter(settings.log_format),
            "exit_on_fatal": settings.exit_on_fatal,
        }
        values.update(overrides)
        return cls(**values)


def _caller_label() -> str | None:
    frame: FrameType | None = sys._getframe(1)
    while frame is not None and frame.f_code.co_filename == _THIS_FILE:
        frame = frame.f_back
    if frame is None:
        return None
    return f"{frame.f_code.co_name}:{frame.f_lineno}"


class StructuredLogger:
    """Leveled, timestamped key/value event logger."""

    def __init__(self, config: LoggerConfig | None = None):
        self.config = config or LoggerConfig()

    @property
    def min_level(self) -> LogLevel:
        return LogLevel.parse(self.config.min_level)

    @property
    def sinks(self) -> list[Sink]:
        return self.config.sinks

    def is_enabled_for(self, level: LogLevel | str) -> bool:
        """Check whether events of ``level`` would reach the sinks."""
        return LogLevel.parse(level) >= self.min_level

    def emit(
        self,
        level: LogLevel | str,
        message: str,
        fields: Mapping[str, Any] | None = None,
        *,
        caller: str | None = None,
    ) -> None:
        """
        Emit one event to every configured sink.

        Args:
            level: Event severity
            message: Human-readable message
            fields: Key/value pairs; values are stringified, order is kept
            caller: Optional ``function:line`` label (captured automatically
                when ``capture_caller`` is enabled)

        Raises:
            SystemExit: For FATAL events when ``exit_on_fatal`` is set
        """
        level = LogLevel.parse(level)
        if level < self.min_level:
            return

        if caller is None and self.config.capture_caller:
            caller = _caller_label()

        event = LogEvent.create(level, message, fields, caller)

        for sink in self.config.sinks:
            try:
                formatter = getattr(sink, "formatter", None) or self.config.formatter
                sink.write(formatter.format(event))
            except Exception as e:
                self._report_sink_failure(sink, e, event)

        if level == LogLevel.FATAL and self.config.exit_on_fatal:
            sys.exit(self.config.fatal_exit_code)

    def _report_sink_failure(self, sink: Sink, error: Exception, event: LogEvent) -> None:
        stream = self.config.fallback_stream or sys.stderr
        fallback = structlog.wrap_logger(
            structlog.PrintLogger(file=stream),
            wrapper_class=structlog.BoundLogger,
            processors=[
                structlog.processors.TimeStamper(fmt="iso", utc=True),
                structlog.processors.add_log_level,
                structlog.processors.KeyValueRenderer(
                    key_order=["timestamp", "level", "event"],
                ),
            ],
        )
        try:
            fallback.error(
                "log sink failed",
                sink=repr(sink),
                error=str(error),
                error_type=type(error).__name__,
                dropped_level=event.level.name,
                dropped_message=event.message,
            )
        except Exception:
            # The fallback stream itself is broken; nothing left to report to
            pass

    # ── Shorthands ───────────────────────────────────────────────

    def debug(self, message: str, /, **fields: Any) -> None:
        self.emit(LogLevel.DEBUG, message, fields)

    def info(self, message: str, /, **fields: Any) -> None:
        self.emit(LogLevel.INFO, message, fields)

    def warn(self, message: str, /, **fields: Any) -> None:
        self.emit(LogLevel.WARN, message, fields)

    warning = warn

    def error(self, message: str, /, **fields: Any) -> None:
        self.emit(LogLevel.ERROR, message, fields)

    def fatal(self, message: str, /, **fields: Any) -> None:
        self.emit(LogLevel.FATAL, message, fields)

    def __repr__(self) -> str:
        return f"StructuredLogger(min_level={self.min_level.name}, sinks={self.config.sinks!r})"


__all__ = ["LoggerConfig", "StructuredLogger"]

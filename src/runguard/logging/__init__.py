"""
runguard logging - structured, leveled event logging.

This package provides:
- ``StructuredLogger`` configured by an explicit ``LoggerConfig``
- ``LogEvent`` / ``LogLevel`` data types
- Key/value and JSON formatters
- Console, file and in-memory sinks
- structlog diagnostics setup for the library's own internals

Usage:
    from runguard.logging import ConsoleSink, FileSink, LoggerConfig, StructuredLogger

    log = StructuredLogger(LoggerConfig(min_level="WARN", sinks=[ConsoleSink()]))
    log.warn("disk usage high", usage="91%")
"""

from runguard.logging.config import configure_logging, get_logger
from runguard.logging.events import LogEvent, LogLevel
from runguard.logging.formatters import Formatter, JsonFormatter, KeyValueFormatter, get_formatter
from runguard.logging.logger import LoggerConfig, StructuredLogger
from runguard.logging.sinks import ConsoleSink, FileSink, MemorySink, Sink

__all__ = [
    # Events
    "LogEvent",
    "LogLevel",
    # Logger
    "LoggerConfig",
    "StructuredLogger",
    # Formatting
    "Formatter",
    "KeyValueFormatter",
    "JsonFormatter",
    "get_formatter",
    # Sinks
    "Sink",
    "ConsoleSink",
    "FileSink",
    "MemorySink",
    # Diagnostics
    "configure_logging",
    "get_logger",
]

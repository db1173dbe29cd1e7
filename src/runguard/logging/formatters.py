"""
Log event formatters.

Formatters turn a ``LogEvent`` into one line of text.  Both built-in
formatters delegate value encoding to structlog renderers so quoting and JSON
serialization follow the same rules as the rest of the stack:

- ``KeyValueFormatter``:  ``2026-01-05T10:00:00.123Z [INFO] command started name=backup``
- ``JsonFormatter``:      ``{"timestamp": "...", "level": "INFO", "message": "...", "name": "backup"}``
"""

from __future__ import annotations

import re
from typing import Protocol, runtime_checkable

import structlog

from runguard.logging.events import LogEvent, unique_key

_UNSAFE_KEY_CHARS = re.compile(r"[\s\x00-\x20\x7f]+")


@runtime_checkable
class Formatter(Protocol):
    """Renders an event as a single line (no trailing newline)."""

    def format(self, event: LogEvent) -> str: ...


def _clean_key(key: str) -> str:
    # logfmt keys cannot contain whitespace or control characters
    return _UNSAFE_KEY_CHARS.sub("_", key) or "_"


class KeyValueFormatter:
    """``<timestamp> [<LEVEL>] <message> key1=value1 key2=value2``."""

    def __init__(self) -> None:
        self._renderer = structlog.processors.LogfmtRenderer(sort_keys=False)

    def format(self, event: LogEvent) -> str:
        head = f"{event.iso_timestamp} [{event.level.name}] {event.message}"
        reserved = set() if event.caller is None else {"caller"}
        pairs: dict[str, object] = {}
        for key, value in event.fields.items():
            pairs[unique_key(_clean_key(key), reserved | set(pairs))] = value
        if event.caller is not None:
            pairs["caller"] = event.caller
        line = head
        if pairs:
            line = f"{head} {self._renderer(None, event.level.name.lower(), pairs)}"
        # one event per line
        return line.replace("\r", "\\r").replace("\n", "\\n")


class JsonFormatter:
    """One JSON object per event, keys in event order."""

    def __init__(self) -> None:
        self._renderer = structlog.processors.JSONRenderer()

    def format(self, event: LogEvent) -> str:
        return self._renderer(None, event.level.name.lower(), event.to_dict())


def get_formatter(name: str) -> Formatter:
    """Look up a built-in formatter by name (``text`` or ``json``)."""
    if name == "json":
        return JsonFormatter()
    if name in ("text", "kv", "console"):
        return KeyValueFormatter()
    raise ValueError(f"unknown log format: {name!r}")


__all__ = ["Formatter", "KeyValueFormatter", "JsonFormatter", "get_formatter"]

"""
Log events and severity levels.

A ``LogEvent`` is built once per emitted message, handed to every sink, and
discarded. It is immutable: the fields mapping is a read-only view over a
private copy of the caller's values.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import IntEnum
from types import MappingProxyType
from typing import Any


class LogLevel(IntEnum):
    """Ordered severity levels."""

    DEBUG = 10
    INFO = 20
    WARN = 30
    ERROR = 40
    FATAL = 50

    @classmethod
    def parse(cls, value: str | int | LogLevel) -> LogLevel:
        """
        Parse a level name or number.

        Names are case-insensitive; ``WARNING`` and ``CRITICAL`` are accepted
        as aliases of ``WARN`` and ``FATAL``.

        Raises:
            ValueError: If the level is unknown
        """
        if isinstance(value, LogLevel):
            return value
        if isinstance(value, int):
            return cls(value)
        name = value.strip().upper()
        name = _ALIASES.get(name, name)
        try:
            return cls[name]
        except KeyError:
            raise ValueError(f"unknown log level: {value!r}") from None


_ALIASES = {"WARNING": "WARN", "CRITICAL": "FATAL"}


def _utcnow() -> datetime:
    return datetime.now(UTC)


def unique_key(key: str, taken: set[str]) -> str:
    """
    Return ``key``, or a ``field.``-prefixed variant when it is already taken.

    Used when flattening fields next to header keys so no value is dropped:
    a field named ``level`` renders as ``field.level``.
    """
    if key not in taken:
        return key
    candidate = f"field.{key}"
    n = 2
    while candidate in taken:
        candidate = f"field.{key}.{n}"
        n += 1
    return candidate


@dataclass(frozen=True, slots=True)
class LogEvent:
    """
    One structured log record.

    Attributes:
        level: Severity
        message: Human-readable message
        fields: Key/value pairs in insertion order (values stringified)
        caller: Optional ``function:line`` label of the emitting code
        timestamp: UTC creation time
    """

    level: LogLevel
    message: str
    fields: Mapping[str, str] = field(default_factory=dict)
    caller: str | None = None
    timestamp: datetime = field(default_factory=_utcnow)

    def __post_init__(self) -> None:
        frozen = MappingProxyType({str(k): str(v) for k, v in self.fields.items()})
        object.__setattr__(self, "fields", frozen)
        if self.timestamp.tzinfo is None:
            object.__setattr__(self, "timestamp", self.timestamp.replace(tzinfo=UTC))
        else:
            object.__setattr__(self, "timestamp", self.timestamp.astimezone(UTC))

    @classmethod
    def create(
        cls,
        level: LogLevel,
        message: str,
        fields: Mapping[str, Any] | None = None,
        caller: str | None = None,
    ) -> LogEvent:
        """Build an event stamped with the current time."""
        return cls(level=level, message=message, fields=fields or {}, caller=caller)

    @property
    def iso_timestamp(self) -> str:
        """Timestamp in ISO-8601 with millisecond precision and ``Z`` suffix."""
        return self.timestamp.strftime("%Y-%m-%dT%H:%M:%S.%f")[:-3] + "Z"

    def to_dict(self) -> dict[str, str]:
        """Flatten to an ordered dict: timestamp, level, message, fields, caller."""
        result = {
            "timestamp": self.iso_timestamp,
            "level": self.level.name,
            "message": self.message,
        }
        reserved = set(result) if self.caller is None else {*result, "caller"}
        for key, value in self.fields.items():
            result[unique_key(key, reserved | set(result))] = value
        if self.caller is not None:
            result["caller"] = self.caller
        return result


__all__ = ["LogLevel", "LogEvent", "unique_key"]

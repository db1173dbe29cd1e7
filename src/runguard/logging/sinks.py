"""
Log sinks: destinations for formatted events.

A sink receives one already-formatted line per event.  Sinks may raise on
failure (an unwritable file, a closed stream); ``StructuredLogger`` isolates
those errors so one broken sink never affects another.
"""

from __future__ import annotations

import sys
import threading
from pathlib import Path
from typing import TextIO, Protocol, runtime_checkable

from runguard.logging.formatters import Formatter


@runtime_checkable
class Sink(Protocol):
    """Where formatted log lines get written."""

    def write(self, line: str) -> None: ...


class ConsoleSink:
    """Writes lines to a text stream (stdout by default)."""

    def __init__(self, stream: TextIO | None = None, formatter: Formatter | None = None):
        self._stream = stream
        self.formatter = formatter

    @property
    def stream(self) -> TextIO:
        # sys.stdout is looked up on every write
        return self._stream if self._stream is not None else sys.stdout

    def write(self, line: str) -> None:
        self.stream.write(line + "\n")
        self.stream.flush()

    def __repr__(self) -> str:
        return f"ConsoleSink({getattr(self.stream, 'name', '<stream>')!r})"


class FileSink:
    """
    Appends lines to a file.

    The file is opened for each write and closed again, so the handle is
    never held between events and a path that becomes unwritable fails only
    the affected events.
    """

    def __init__(self, path: str | Path, formatter: Formatter | None = None, encoding: str = "utf-8"):
        self.path = Path(path)
        self.formatter = formatter
        self.encoding = encoding
        self._lock = threading.Lock()

    def write(self, line: str) -> None:
        with self._lock:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with self.path.open("a", encoding=self.encoding) as fh:
                fh.write(line + "\n")

    def __repr__(self) -> str:
        return f"FileSink({str(self.path)!r})"


class MemorySink:
    """Keeps lines in a list. Useful for tests and for hosts that collect output."""

    def __init__(self, formatter: Formatter | None = None):
        self.formatter = formatter
        self.lines: list[str] = []

    def write(self, line: str) -> None:
        self.lines.append(line)

    def clear(self) -> None:
        self.lines.clear()

    def __len__(self) -> int:
        return len(self.lines)

    def __repr__(self) -> str:
        return f"MemorySink(lines={len(self.lines)})"


__all__ = ["Sink", "ConsoleSink", "FileSink", "MemorySink"]

"""Bounded, thread-safe history of formatted diagnostic records.

Any number of producers append through :meth:`LogHistory.record` while a
single renderer copies a scroll window through :meth:`LogHistory.window`.
Both hold the same lock only for the evict-and-append step or for copying
the visible slice, never while rendering.
"""

from __future__ import annotations

import enum
import threading
from collections import deque
from dataclasses import dataclass
from itertools import islice
from typing import Deque, Iterator, Tuple, Union

__all__ = [
    "DEFAULT_HISTORY_CAPACITY",
    "LogHistory",
    "LogRecord",
    "LogWindow",
    "SeverityHint",
    "format_record",
    "severity_hint",
]


DEFAULT_HISTORY_CAPACITY = 1000

Location = Union[Tuple[str, int], str, None]


class SeverityHint(enum.Enum):
    """Rendering hint derived from a record's level."""

    ERROR = "error"
    WARN = "warn"
    DEBUG = "debug"
    TRACE = "trace"
    INFO = "info"


_HINT_ORDER: Tuple[Tuple[str, SeverityHint], ...] = (
    ("ERROR", SeverityHint.ERROR),
    ("WARN", SeverityHint.WARN),
    ("DEBUG", SeverityHint.DEBUG),
    ("TRACE", SeverityHint.TRACE),
)


def severity_hint(text: str) -> SeverityHint:
    """Return the hint for ``text`` by plain substring match."""

    for needle, hint in _HINT_ORDER:
        if needle in text:
            return hint
    return SeverityHint.INFO


def _format_location(location: Location) -> str:
    if location is None:
        return "unknown:0"
    if isinstance(location, str):
        return location
    filename, line = location
    return f"{filename or 'unknown'}:{line or 0}"


def format_record(level: str, target: str, message: str, location: Location = None) -> str:
    where = _format_location(location)
    if message:
        return f"[{level}] {target}: {message} ({where})"
    return f"[{level}] {target} ({where})"


@dataclass(frozen=True)
class LogRecord:
    """One formatted diagnostic event."""

    text: str
    level: str = ""

    @property
    def hint(self) -> SeverityHint:
        return severity_hint(self.level or self.text)

    def __str__(self) -> str:
        return self.text


@dataclass(frozen=True)
class LogWindow:
    """Scroll-clamped slice of the history, oldest first."""

    offset: int
    total: int
    entries: Tuple[Tuple[LogRecord, SeverityHint], ...]

    def __len__(self) -> int:
        return len(self.entries)

    def __iter__(self) -> Iterator[Tuple[LogRecord, SeverityHint]]:
        return iter(self.entries)

    @property
    def records(self) -> Tuple[LogRecord, ...]:
        return tuple(record for record, _ in self.entries)


class LogHistory:
    """Fixed-capacity history; inserting beyond capacity evicts the oldest."""

    def __init__(self, capacity: int = DEFAULT_HISTORY_CAPACITY) -> None:
        if capacity <= 0:
            raise ValueError("LogHistory requires a positive capacity")
        self._capacity = int(capacity)
        self._records: Deque[LogRecord] = deque()
        self._lock = threading.Lock()
        self._evicted = 0

    @property
    def capacity(self) -> int:
        return self._capacity

    @property
    def evicted(self) -> int:
        return self._evicted

    def __len__(self) -> int:
        with self._lock:
            return len(self._records)

    def record(
        self,
        level: str,
        target: str,
        message: str,
        location: Location = None,
    ) -> LogRecord:
        level_name = str(level).upper()
        entry = LogRecord(format_record(level_name, target, message, location), level_name)
        self.append(entry)
        return entry

    def append(self, entry: LogRecord) -> None:
        with self._lock:
            if len(self._records) >= self._capacity:
                self._records.popleft()
                self._evicted += 1
            self._records.append(entry)

    def snapshot(self) -> Tuple[LogRecord, ...]:
        with self._lock:
            return tuple(self._records)

    def clear(self) -> None:
        with self._lock:
            self._records.clear()

    def window(self, scroll_offset: int, visible_height: int) -> LogWindow:
        """Return at most ``visible_height`` records starting at the clamped offset.

        The offset is clamped to ``max(0, len - visible_height)`` so the
        window never scrolls past the last full page.
        """

        height = max(int(visible_height), 0)
        requested = max(int(scroll_offset), 0)
        with self._lock:
            total = len(self._records)
            offset = min(requested, max(0, total - height))
            selected = list(islice(self._records, offset, offset + height))
        return LogWindow(
            offset=offset,
            total=total,
            entries=tuple((entry, entry.hint) for entry in selected),
        )

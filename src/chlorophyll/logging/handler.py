"""``logging`` handler that mirrors records into a :class:`LogHistory`."""

from __future__ import annotations

import logging
from typing import Callable, Mapping, Sequence

from .history import LogHistory

__all__ = ["FIELD_EXTRACTORS", "HistoryHandler", "TRACE", "level_label"]


TRACE = 5
logging.addLevelName(TRACE, "TRACE")

_LEVEL_LABELS: Mapping[str, str] = {
    "WARNING": "WARN",
    "CRITICAL": "ERROR",
    "FATAL": "ERROR",
}

_MISSING = object()

FieldExtractor = Callable[[logging.LogRecord], str]


def level_label(record: logging.LogRecord) -> str:
    return _LEVEL_LABELS.get(record.levelname, record.levelname)


def _extract_message(record: logging.LogRecord) -> str:
    return record.getMessage()


def _extract_value(record: logging.LogRecord) -> str:
    # Structured payload passed as ``extra={"value": ...}``.
    value = record.__dict__.get("value", _MISSING)
    if value is _MISSING:
        return ""
    return repr(value)


FIELD_EXTRACTORS: Mapping[str, FieldExtractor] = {
    "message": _extract_message,
    "value": _extract_value,
}


class HistoryHandler(logging.Handler):
    """Format each record as ``[LEVEL] target: message (file:line)``."""

    def __init__(
        self,
        history: LogHistory,
        *,
        level: int = logging.NOTSET,
        fields: Sequence[str] = ("message", "value"),
    ) -> None:
        super().__init__(level)
        unknown = [name for name in fields if name not in FIELD_EXTRACTORS]
        if unknown:
            raise ValueError(f"unknown log fields: {', '.join(unknown)}")
        self._history = history
        self._extractors = tuple(FIELD_EXTRACTORS[name] for name in fields)

    @property
    def history(self) -> LogHistory:
        return self._history

    def emit(self, record: logging.LogRecord) -> None:
        try:
            parts = [extract(record) for extract in self._extractors]
            message = " ".join(part for part in parts if part)
            self._history.record(
                level_label(record),
                record.name,
                message,
                (record.filename, record.lineno),
            )
        except Exception:
            self.handleError(record)

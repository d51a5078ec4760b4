"""Logging utilities for chlorophyll."""

from chlorophyll.logging.config import JsonFormatter, setup_logging
from chlorophyll.logging.handler import HistoryHandler
from chlorophyll.logging.history import LogHistory, LogRecord, LogWindow, SeverityHint

__all__ = [
    "HistoryHandler",
    "JsonFormatter",
    "LogHistory",
    "LogRecord",
    "LogWindow",
    "SeverityHint",
    "setup_logging",
]

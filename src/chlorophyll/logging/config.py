"""Logging configuration for the chlorophyll tools.

The ``[logging]`` configuration table selects the level, the destination
(``stderr``, ``stdout``, ``file`` for the data directory, or an explicit
path) and the formatter (``text`` or ``json``).  When a
:class:`~chlorophyll.logging.history.LogHistory` is passed the records are
also mirrored into it for the dashboard's log panel.
"""

from __future__ import annotations

import json
import logging
import os
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Mapping, Optional

from .handler import TRACE, HistoryHandler
from .history import LogHistory

__all__ = [
    "DATA_ENV",
    "JsonFormatter",
    "LOG_ENV",
    "LOG_FILE",
    "get_data_dir",
    "resolve_level",
    "setup_logging",
]


LOG_ENV = "CHLOROPHYLL_LOGLEVEL"
DATA_ENV = "CHLOROPHYLL_DATA"
LOG_FILE = "chlorophyll.log"
ROOT_LOGGER = "chlorophyll"

_TEXT_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s (%(filename)s:%(lineno)d)"
_INSTALLED_MARKER = "_chlorophyll_installed"

_RESERVED_ATTRIBUTES = frozenset(
    vars(logging.LogRecord("", logging.INFO, "", 0, "", (), None))
) | {"message", "asctime"}

_LEVEL_ALIASES: Mapping[str, int] = {
    "trace": TRACE,
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warn": logging.WARNING,
    "warning": logging.WARNING,
    "error": logging.ERROR,
    "critical": logging.CRITICAL,
}


class JsonFormatter(logging.Formatter):
    """Render records as one JSON object per line, including ``extra`` fields."""

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "file": record.filename,
            "line": record.lineno,
        }
        for key, value in record.__dict__.items():
            if key in _RESERVED_ATTRIBUTES or key.startswith("_"):
                continue
            payload[key] = value
        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(payload, default=str)


def get_data_dir() -> Path:
    override = os.environ.get(DATA_ENV)
    if override:
        return Path(override).expanduser()
    return Path.cwd() / ".data"


def resolve_level(value: Any) -> int:
    """Map ``value`` (name or number) to a ``logging`` level, default INFO."""

    if isinstance(value, int):
        return value
    if value is None:
        return logging.INFO
    text = str(value).strip().lower()
    if text.isdigit():
        return int(text)
    return _LEVEL_ALIASES.get(text, logging.INFO)


def _build_output_handler(output: str, reopened: frozenset[str] = frozenset()) -> logging.Handler:
    target = output.strip()
    if target.lower() == "stderr":
        return logging.StreamHandler(sys.stderr)
    if target.lower() == "stdout":
        return logging.StreamHandler(sys.stdout)
    if target.lower() == "file":
        path = get_data_dir() / LOG_FILE
    else:
        path = Path(target).expanduser()
    path.parent.mkdir(parents=True, exist_ok=True)
    # A file replaced within the same run keeps the lines already written.
    mode = "a" if os.path.abspath(path) in reopened else "w"
    return logging.FileHandler(path, mode=mode, encoding="utf8")


def setup_logging(
    config: Optional[Mapping[str, Any]] = None,
    *,
    history: Optional[LogHistory] = None,
) -> list[logging.Handler]:
    """Configure the ``chlorophyll`` logger from ``config["logging"]``.

    Handlers installed by a previous call are removed first, so the
    function can be called again when the configuration changes.  Returns
    the handlers that were installed.
    """

    logging_cfg = dict((config or {}).get("logging", {}) or {})
    level = resolve_level(os.environ.get(LOG_ENV) or logging_cfg.get("level", "info"))
    output = str(logging_cfg.get("output", "stderr"))
    fmt = str(logging_cfg.get("format", "text")).lower()

    logger = logging.getLogger(ROOT_LOGGER)
    reopened: set[str] = set()
    for existing in list(logger.handlers):
        if getattr(existing, _INSTALLED_MARKER, False):
            if isinstance(existing, logging.FileHandler):
                reopened.add(existing.baseFilename)
            logger.removeHandler(existing)
            existing.close()

    output_handler = _build_output_handler(output, frozenset(reopened))
    if fmt == "json":
        output_handler.setFormatter(JsonFormatter())
    else:
        output_handler.setFormatter(logging.Formatter(_TEXT_FORMAT))
    handlers: list[logging.Handler] = [output_handler]
    if history is not None:
        handlers.append(HistoryHandler(history))

    for handler in handlers:
        setattr(handler, _INSTALLED_MARKER, True)
        logger.addHandler(handler)
    logger.setLevel(level)
    # Records must not reach root handlers that would draw over the dashboard.
    logger.propagate = False
    return handlers

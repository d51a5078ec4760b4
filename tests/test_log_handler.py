"""Tests for the logging handler feeding the dashboard history."""

from __future__ import annotations

import logging

import pytest

from chlorophyll.logging.handler import TRACE, HistoryHandler, level_label
from chlorophyll.logging.history import LogHistory, SeverityHint


@pytest.fixture
def history_logger(history: LogHistory):
    logger = logging.getLogger("chlorophyll.tests.handler")
    handler = HistoryHandler(history)
    logger.addHandler(handler)
    logger.setLevel(TRACE)
    logger.propagate = False
    yield logger
    logger.removeHandler(handler)
    logger.propagate = True


def test_records_are_formatted_with_target_and_location(history_logger, history) -> None:
    history_logger.info("Got msg from %s:%s", "10.0.0.2", 5000)

    (entry,) = history.snapshot()
    assert entry.text.startswith("[INFO] chlorophyll.tests.handler: Got msg from 10.0.0.2:5000 (")
    assert "test_log_handler.py:" in entry.text


@pytest.mark.parametrize(
    ("level", "label", "hint"),
    [
        (logging.WARNING, "WARN", SeverityHint.WARN),
        (logging.CRITICAL, "ERROR", SeverityHint.ERROR),
        (logging.ERROR, "ERROR", SeverityHint.ERROR),
        (logging.DEBUG, "DEBUG", SeverityHint.DEBUG),
        (TRACE, "TRACE", SeverityHint.TRACE),
    ],
)
def test_level_names_are_normalised(history_logger, history, level: int, label: str, hint) -> None:
    history_logger.log(level, "message")

    (entry,) = history.snapshot()
    assert entry.text.startswith(f"[{label}] ")
    assert entry.hint is hint


def test_level_label_of_plain_record() -> None:
    record = logging.LogRecord("x", logging.WARNING, "f.py", 1, "m", (), None)

    assert level_label(record) == "WARN"
    assert logging.getLevelName(TRACE) == "TRACE"


def test_structured_value_is_rendered_with_repr(history_logger, history) -> None:
    history_logger.debug("Sent reading", extra={"value": {"celsius": 21.5}})

    (entry,) = history.snapshot()
    assert "Sent reading {'celsius': 21.5}" in entry.text


def test_value_only_record(history) -> None:
    handler = HistoryHandler(history, fields=("value",))
    record = logging.LogRecord("chlorophyll.x", logging.INFO, "f.py", 3, "ignored", (), None)
    record.value = 7

    handler.emit(record)

    assert history.snapshot()[0].text == "[INFO] chlorophyll.x: 7 (f.py:3)"


def test_missing_value_leaves_message_alone(history) -> None:
    handler = HistoryHandler(history, fields=("value",))
    record = logging.LogRecord("chlorophyll.x", logging.INFO, "f.py", 3, "ignored", (), None)

    handler.emit(record)

    assert history.snapshot()[0].text == "[INFO] chlorophyll.x (f.py:3)"


def test_unknown_field_extractor_is_rejected(history) -> None:
    with pytest.raises(ValueError):
        HistoryHandler(history, fields=("message", "thread"))


def test_handler_level_filters_records(history) -> None:
    handler = HistoryHandler(history, level=logging.WARNING)
    logger = logging.getLogger("chlorophyll.tests.filtered")
    logger.addHandler(handler)
    logger.setLevel(logging.DEBUG)
    try:
        logger.info("quiet")
        logger.warning("loud")
    finally:
        logger.removeHandler(handler)

    assert [entry.level for entry in history.snapshot()] == ["WARN"]

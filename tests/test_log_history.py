"""Tests for the bounded log history and its scroll window."""

from __future__ import annotations

import threading

import pytest

from chlorophyll.logging.history import (
    DEFAULT_HISTORY_CAPACITY,
    LogHistory,
    LogRecord,
    SeverityHint,
    format_record,
    severity_hint,
)


def _fill(history: LogHistory, count: int, *, start: int = 1) -> None:
    for index in range(start, start + count):
        history.append(LogRecord(str(index)))


def test_default_capacity() -> None:
    assert LogHistory().capacity == DEFAULT_HISTORY_CAPACITY == 1000


def test_capacity_must_be_positive() -> None:
    with pytest.raises(ValueError):
        LogHistory(0)


def test_record_formats_level_target_message_and_location() -> None:
    history = LogHistory(10)

    entry = history.record("info", "chlorophyll.telemetry", "Got msg", ("ingestion.py", 42))

    assert entry.text == "[INFO] chlorophyll.telemetry: Got msg (ingestion.py:42)"
    assert entry.level == "INFO"
    assert history.snapshot() == (entry,)


@pytest.mark.parametrize(
    ("message", "location", "expected"),
    [
        pytest.param("", ("app.py", 7), "[WARN] target (app.py:7)", id="empty-message"),
        pytest.param("boom", None, "[WARN] target: boom (unknown:0)", id="no-location"),
        pytest.param("boom", ("", None), "[WARN] target: boom (unknown:0)", id="blank-location"),
    ],
)
def test_format_record_variants(message: str, location, expected: str) -> None:
    assert format_record("WARN", "target", message, location) == expected


def test_history_never_exceeds_capacity() -> None:
    history = LogHistory(5)
    _fill(history, 12)

    assert len(history) == 5
    assert [record.text for record in history.snapshot()] == ["8", "9", "10", "11", "12"]
    assert history.evicted == 7


def test_overflow_keeps_most_recent_thousand() -> None:
    history = LogHistory(1000)
    _fill(history, 1500)

    window = history.window(0, 1000)

    assert len(window) == 1000
    assert window.records[0].text == "501"
    assert window.records[-1].text == "1500"


@pytest.mark.parametrize(
    ("total", "offset", "height", "expected_offset", "expected_len"),
    [
        pytest.param(10, 0, 4, 0, 4, id="top"),
        pytest.param(10, 3, 4, 3, 4, id="middle"),
        pytest.param(10, 6, 4, 6, 4, id="last-page"),
        pytest.param(10, 50, 4, 6, 4, id="past-end-clamped"),
        pytest.param(3, 5, 10, 0, 3, id="shorter-than-window"),
        pytest.param(0, 5, 10, 0, 0, id="empty"),
        pytest.param(10, 2, 0, 2, 0, id="zero-height"),
        pytest.param(10, -4, 3, 0, 3, id="negative-offset"),
    ],
)
def test_window_clamps_offset(
    total: int, offset: int, height: int, expected_offset: int, expected_len: int
) -> None:
    history = LogHistory(100)
    _fill(history, total)

    window = history.window(offset, height)

    assert window.offset == expected_offset
    assert window.total == total
    assert len(window) == expected_len == min(total, height)
    assert [record.text for record in window.records] == [
        str(index) for index in range(expected_offset + 1, expected_offset + 1 + expected_len)
    ]


def test_window_pairs_records_with_hints() -> None:
    history = LogHistory(10)
    history.record("ERROR", "a", "x")
    history.record("INFO", "b", "y")

    hints = [hint for _record, hint in history.window(0, 10)]

    assert hints == [SeverityHint.ERROR, SeverityHint.INFO]


@pytest.mark.parametrize(
    ("text", "hint"),
    [
        ("[ERROR] x: y (f:1)", SeverityHint.ERROR),
        ("[WARN] x: y (f:1)", SeverityHint.WARN),
        ("[DEBUG] x: y (f:1)", SeverityHint.DEBUG),
        ("[TRACE] x: y (f:1)", SeverityHint.TRACE),
        ("[INFO] x: y (f:1)", SeverityHint.INFO),
        ("[INFO] x: ERROR in payload (f:1)", SeverityHint.ERROR),
        ("[DEBUG] x: WARN then ERROR (f:1)", SeverityHint.ERROR),
        ("plain text", SeverityHint.INFO),
    ],
)
def test_severity_hint_precedence(text: str, hint: SeverityHint) -> None:
    assert severity_hint(text) is hint
    assert severity_hint(text) is severity_hint(text)


def test_record_hint_prefers_parsed_level() -> None:
    assert LogRecord("[INFO] x: ERROR in payload (f:1)", "INFO").hint is SeverityHint.INFO
    assert LogRecord("[INFO] x: ERROR in payload (f:1)").hint is SeverityHint.ERROR


def test_clear_empties_history() -> None:
    history = LogHistory(3)
    _fill(history, 3)

    history.clear()

    assert len(history) == 0
    assert history.window(0, 3).total == 0


def test_concurrent_producers_respect_capacity() -> None:
    history = LogHistory(1000)
    producers = 8
    per_producer = 500
    barrier = threading.Barrier(producers + 1)
    windows = []

    def produce(worker: int) -> None:
        barrier.wait()
        for index in range(per_producer):
            history.record("INFO", f"worker-{worker}", str(index))

    def render() -> None:
        barrier.wait()
        for _ in range(200):
            windows.append(history.window(10_000, 20))

    threads = [threading.Thread(target=produce, args=(worker,)) for worker in range(producers)]
    threads.append(threading.Thread(target=render))
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert len(history) == 1000
    assert history.evicted == producers * per_producer - 1000
    assert all(len(window) <= 20 for window in windows)
    assert all(window.total <= 1000 for window in windows)
    for worker in range(producers):
        mine = [r.text for r in history.snapshot() if f"worker-{worker}:" in r.text]
        indices = [int(text.split(": ")[1].split(" ")[0]) for text in mine]
        assert indices == sorted(indices)

"""Tests for the per-tick ingestion state machine."""

from __future__ import annotations

import errno
import logging

import pytest

from chlorophyll.protocol.codec import DataReading, Humidity, Temperature, encode
from chlorophyll.telemetry import ingestion as ingestion_module
from chlorophyll.telemetry.ingestion import IngestOutcome, IngestState, ReadingIngestor
from chlorophyll.telemetry.multicast import MulticastEndpoint
from tests.helpers import FakeClock, QueueUDPSocket, receiver_factory


SENDER = ("192.168.1.50", 40123)


def _ingestor(sock: QueueUDPSocket, **kwargs) -> ReadingIngestor:
    return ReadingIngestor(MulticastEndpoint("239.0.0.1", 5000), receiver_factory=receiver_factory(sock), **kwargs)


def _events(caplog) -> list[str]:
    return [getattr(record, "event", "") for record in caplog.records]


@pytest.fixture
def ingest_logs(caplog):
    caplog.set_level(logging.INFO, logger=ingestion_module.__name__)
    return caplog


def test_first_tick_binds_without_receiving(ingest_logs) -> None:
    sock = QueueUDPSocket([encode(Temperature(21.5))], source=SENDER)
    ingestor = _ingestor(sock)

    assert ingestor.state is IngestState.UNBOUND
    assert ingestor.tick() is IngestOutcome.BOUND
    assert ingestor.state is IngestState.BOUND
    assert len(sock.queue) == 1
    assert "Listening for multicast on 239.0.0.1:5000" in ingest_logs.messages


def test_reading_is_decoded_and_sender_logged(ingest_logs) -> None:
    sock = QueueUDPSocket([bytes([0x00, 0x00, 0x00, 0xAC, 0x41])], source=SENDER)
    ingestor = _ingestor(sock)
    ingestor.tick()
    ingest_logs.clear()

    outcome = ingestor.tick()

    assert outcome is IngestOutcome.RECEIVED
    assert ingestor.last_reading == DataReading(Temperature(21.5))
    assert ingestor.last_sender == SENDER
    info = [record for record in ingest_logs.records if record.levelno == logging.INFO]
    assert len(info) == 1
    assert "192.168.1.50:40123" in info[0].getMessage()
    assert info[0].event == "ingest.reading"


def test_one_datagram_per_tick_and_latest_value_wins() -> None:
    sock = QueueUDPSocket([encode(Temperature(20.0)), encode(Humidity(50.0))], source=SENDER)
    ingestor = _ingestor(sock)
    ingestor.tick()

    ingestor.tick()
    assert ingestor.last_reading == DataReading(Temperature(20.0))
    assert len(sock.queue) == 1

    ingestor.tick()
    assert ingestor.last_reading == DataReading(Humidity(50.0))
    assert ingestor.statistics["received"] == 2


def test_idle_tick_when_nothing_pending() -> None:
    ingestor = _ingestor(QueueUDPSocket())
    ingestor.tick()

    assert ingestor.tick() is IngestOutcome.IDLE
    assert ingestor.last_reading is None


def test_corrupted_datagrams_keep_last_reading(ingest_logs) -> None:
    sock = QueueUDPSocket([encode(Temperature(21.5))], source=SENDER)
    ingestor = _ingestor(sock)
    ingestor.tick()
    ingestor.tick()
    sock.extend([b"", b"\x00\x01", b"garbage!"])
    ingest_logs.clear()

    outcomes = [ingestor.tick() for _ in range(3)]

    assert outcomes == [IngestOutcome.DECODE_FAILED] * 3
    assert ingestor.last_reading == DataReading(Temperature(21.5))
    errors = [record for record in ingest_logs.records if record.levelno == logging.ERROR]
    assert len(errors) == 3
    assert all(record.getMessage().startswith("Error parsing msg from 192.168.1.50:40123") for record in errors)
    assert ingestor.statistics["decode_errors"] == 3
    assert ingestor.state is IngestState.BOUND


def test_bind_failure_is_logged_and_retried(ingest_logs) -> None:
    sock = QueueUDPSocket(failures={"bind": [OSError(errno.EADDRINUSE, "busy")]})
    ingestor = _ingestor(sock)

    assert ingestor.tick() is IngestOutcome.BIND_FAILED
    assert ingestor.state is IngestState.UNBOUND
    assert ingestor.last_reading is None
    assert "ingest.bind_failed" in _events(ingest_logs)

    assert ingestor.tick() is IngestOutcome.BOUND
    assert ingestor.statistics["bind_failures"] == 1


def test_bind_retry_interval_paces_attempts() -> None:
    clock = FakeClock()
    sock = QueueUDPSocket(failures={"join": [OSError(errno.ENODEV, "no device")] * 2})
    ingestor = _ingestor(sock, bind_retry_interval=2.0, clock=clock)

    assert ingestor.tick() is IngestOutcome.BIND_FAILED
    clock.advance(1.0)
    assert ingestor.tick() is IngestOutcome.IDLE
    clock.advance(1.0)
    assert ingestor.tick() is IngestOutcome.BIND_FAILED
    clock.advance(2.0)
    assert ingestor.tick() is IngestOutcome.BOUND


def test_read_error_keeps_socket(ingest_logs) -> None:
    sock = QueueUDPSocket(
        [OSError(errno.ECONNREFUSED, "refused"), encode(Humidity(33.0))],
        source=SENDER,
    )
    ingestor = _ingestor(sock)
    ingestor.tick()

    assert ingestor.tick() is IngestOutcome.READ_FAILED
    assert ingestor.state is IngestState.BOUND
    assert "ingest.read_failed" in _events(ingest_logs)

    assert ingestor.tick() is IngestOutcome.RECEIVED
    assert ingestor.last_reading == DataReading(Humidity(33.0))
    assert ingestor.statistics["read_errors"] == 1


def test_rebind_after_consecutive_read_errors(ingest_logs) -> None:
    errors = [OSError(errno.EIO, "io") for _ in range(2)]
    sock = QueueUDPSocket(errors)
    ingestor = _ingestor(sock, rebind_after_errors=2)
    ingestor.tick()

    ingestor.tick()
    assert ingestor.state is IngestState.BOUND
    ingestor.tick()

    assert ingestor.state is IngestState.UNBOUND
    assert sock.closed
    assert "ingest.rebind" in _events(ingest_logs)
    assert ingestor.tick() is IngestOutcome.BOUND


def test_read_errors_never_rebind_by_default() -> None:
    sock = QueueUDPSocket([OSError(errno.EIO, "io") for _ in range(10)])
    ingestor = _ingestor(sock)
    ingestor.tick()

    for _ in range(10):
        ingestor.tick()

    assert ingestor.state is IngestState.BOUND


def test_staleness_is_opt_in() -> None:
    clock = FakeClock()
    sock = QueueUDPSocket([encode(Temperature(21.5))])
    ingestor = _ingestor(sock, clock=clock)
    ingestor.tick()
    ingestor.tick()
    clock.advance(3600.0)

    assert ingestor.is_stale() is False


def test_reading_goes_stale_after_configured_age() -> None:
    clock = FakeClock()
    sock = QueueUDPSocket([encode(Temperature(21.5))])
    ingestor = _ingestor(sock, clock=clock, stale_after=15.0)

    assert ingestor.is_stale() is False
    ingestor.tick()
    ingestor.tick()
    assert ingestor.last_seen == clock.now
    clock.advance(10.0)
    assert ingestor.is_stale() is False
    clock.advance(10.0)
    assert ingestor.is_stale() is True


def test_close_releases_socket() -> None:
    sock = QueueUDPSocket()
    ingestor = _ingestor(sock)
    ingestor.tick()

    ingestor.close()

    assert sock.closed
    assert ingestor.state is IngestState.UNBOUND

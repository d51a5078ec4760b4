"""Per-tick ingestion of multicast readings on the dashboard client.

:class:`ReadingIngestor` is driven by the client's fixed-period tick.  It
starts *unbound*, binds lazily on the first tick and retries on later ticks
when binding fails.  Once bound every tick performs exactly one
non-blocking receive, so a producer faster than the tick rate is bounded by
the OS receive buffer and the latest value wins.

Failures never escape :meth:`ReadingIngestor.tick`; they are turned into
log events at the point where they happen.
"""

from __future__ import annotations

import enum
import logging
import time
from typing import Callable, Optional

from ..protocol.codec import DataReading, DecodeError, decode
from .multicast import (
    DEFAULT_ENDPOINT,
    BindError,
    MulticastEndpoint,
    MulticastReceiver,
    ReadError,
)

__all__ = ["IngestOutcome", "IngestState", "ReadingIngestor"]


logger = logging.getLogger(__name__)

ReceiverFactory = Callable[[MulticastEndpoint], MulticastReceiver]


class IngestState(enum.Enum):
    UNBOUND = "unbound"
    BOUND = "bound"


class IngestOutcome(enum.Enum):
    """What a single :meth:`ReadingIngestor.tick` did."""

    IDLE = "idle"
    BOUND = "bound"
    BIND_FAILED = "bind_failed"
    RECEIVED = "received"
    DECODE_FAILED = "decode_failed"
    READ_FAILED = "read_failed"


class ReadingIngestor:
    """Own the multicast socket and keep the last decoded reading."""

    def __init__(
        self,
        endpoint: MulticastEndpoint = DEFAULT_ENDPOINT,
        *,
        receiver_factory: ReceiverFactory = MulticastReceiver,
        bind_retry_interval: float = 0.0,
        stale_after: Optional[float] = None,
        rebind_after_errors: Optional[int] = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        """Create an unbound ingestor.

        Parameters
        ----------
        endpoint:
            Multicast group and port to listen on.
        receiver_factory:
            Callable building the receiver for ``endpoint``.
        bind_retry_interval:
            Minimum number of seconds between two bind attempts.  ``0``
            retries on every tick.
        stale_after:
            Optional age in seconds after which :meth:`is_stale` reports the
            last reading as stale.  ``None`` never marks readings stale.
        rebind_after_errors:
            Optional number of consecutive read errors after which the
            socket is closed and bound again on the next tick.  ``None``
            keeps the socket regardless of read errors.
        clock:
            Monotonic clock used for retry pacing and staleness.
        """

        self._endpoint = endpoint
        self._receiver_factory = receiver_factory
        self._bind_retry_interval = max(float(bind_retry_interval), 0.0)
        self._stale_after = stale_after
        self._rebind_after_errors = rebind_after_errors if rebind_after_errors else None
        self._clock = clock
        self._receiver: Optional[MulticastReceiver] = None
        self._next_bind_attempt: Optional[float] = None
        self._consecutive_read_errors = 0
        self._last_reading: Optional[DataReading] = None
        self._last_sender: Optional[tuple[str, int]] = None
        self._last_seen: Optional[float] = None
        self._received = 0
        self._decode_errors = 0
        self._read_errors = 0
        self._bind_failures = 0

    @property
    def endpoint(self) -> MulticastEndpoint:
        return self._endpoint

    @property
    def state(self) -> IngestState:
        return IngestState.BOUND if self._receiver is not None else IngestState.UNBOUND

    @property
    def last_reading(self) -> Optional[DataReading]:
        return self._last_reading

    @property
    def last_sender(self) -> Optional[tuple[str, int]]:
        return self._last_sender

    @property
    def last_seen(self) -> Optional[float]:
        return self._last_seen

    @property
    def statistics(self) -> dict[str, int]:
        return {
            "received": self._received,
            "decode_errors": self._decode_errors,
            "read_errors": self._read_errors,
            "bind_failures": self._bind_failures,
        }

    def is_stale(self, now: Optional[float] = None) -> bool:
        if self._stale_after is None or self._last_seen is None:
            return False
        current = self._clock() if now is None else now
        return current - self._last_seen > self._stale_after

    def tick(self) -> IngestOutcome:
        if self._receiver is None:
            return self._try_bind()
        return self._poll_once(self._receiver)

    def close(self) -> None:
        receiver = self._receiver
        self._receiver = None
        if receiver is not None:
            receiver.close()

    def _try_bind(self) -> IngestOutcome:
        now = self._clock()
        if self._next_bind_attempt is not None and now < self._next_bind_attempt:
            return IngestOutcome.IDLE
        receiver = self._receiver_factory(self._endpoint)
        try:
            receiver.bind()
        except BindError as exc:
            self._bind_failures += 1
            self._next_bind_attempt = now + self._bind_retry_interval
            logger.error(
                "%s",
                exc,
                extra={
                    "event": "ingest.bind_failed",
                    "stage": exc.stage,
                    "group": self._endpoint.group,
                    "port": self._endpoint.port,
                },
            )
            return IngestOutcome.BIND_FAILED
        self._receiver = receiver
        self._next_bind_attempt = None
        self._consecutive_read_errors = 0
        logger.info(
            "Listening for multicast on %s:%s",
            self._endpoint.group,
            self._endpoint.port,
            extra={
                "event": "ingest.bound",
                "group": self._endpoint.group,
                "port": self._endpoint.port,
            },
        )
        return IngestOutcome.BOUND

    def _poll_once(self, receiver: MulticastReceiver) -> IngestOutcome:
        try:
            datagram = receiver.try_receive()
        except ReadError as exc:
            return self._on_read_error(exc)
        self._consecutive_read_errors = 0
        if datagram is None:
            return IngestOutcome.IDLE

        payload, (host, port) = datagram
        try:
            reading = decode(payload)
        except DecodeError as exc:
            self._decode_errors += 1
            logger.error(
                "Error parsing msg from %s:%s: %s",
                host,
                port,
                exc,
                extra={
                    "event": "ingest.decode_failed",
                    "reason": exc.reason,
                    "length": exc.length,
                    "source_host": host,
                },
            )
            return IngestOutcome.DECODE_FAILED

        self._received += 1
        self._last_reading = reading
        self._last_sender = (host, port)
        self._last_seen = self._clock()
        logger.info(
            "Got msg from %s:%s",
            host,
            port,
            extra={"event": "ingest.reading", "source_host": host, "source_port": port},
        )
        return IngestOutcome.RECEIVED

    def _on_read_error(self, exc: ReadError) -> IngestOutcome:
        self._read_errors += 1
        self._consecutive_read_errors += 1
        logger.error(
            "%s",
            exc,
            extra={
                "event": "ingest.read_failed",
                "consecutive": self._consecutive_read_errors,
            },
        )
        limit = self._rebind_after_errors
        if limit is not None and self._consecutive_read_errors >= limit:
            logger.warning(
                "Closing multicast socket after %d consecutive read errors.",
                self._consecutive_read_errors,
                extra={"event": "ingest.rebind", "limit": limit},
            )
            self.close()
            self._consecutive_read_errors = 0
        return IngestOutcome.READ_FAILED

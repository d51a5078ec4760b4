"""Producer side: sample readings periodically and broadcast them."""

from __future__ import annotations

import logging
import time
from collections.abc import Iterable
from typing import Callable, Optional, Protocol

import numpy as np

from ..protocol.codec import Humidity, Reading, Temperature
from ..telemetry.multicast import MulticastSender

__all__ = ["DEFAULT_INTERVAL", "ReadingSource", "SensorNode", "SimulatedSource"]


logger = logging.getLogger(__name__)

DEFAULT_INTERVAL = 5.0


class ReadingSource(Protocol):
    def __call__(self) -> Iterable[Reading]:
        """Return the readings measured in one cycle."""


class SimulatedSource:
    """Bounded random walk around a base temperature and humidity.

    Stands in for the physical sensor; seeded runs are reproducible.
    """

    def __init__(
        self,
        seed: Optional[int] = None,
        *,
        base_celsius: float = 21.5,
        base_humidity: float = 45.0,
        step_celsius: float = 0.2,
        step_humidity: float = 1.0,
        spread_celsius: float = 5.0,
        spread_humidity: float = 20.0,
    ) -> None:
        self._rng = np.random.default_rng(seed)
        self._base = np.array([base_celsius, base_humidity], dtype=np.float64)
        self._step = np.array([step_celsius, step_humidity], dtype=np.float64)
        low = self._base - np.array([spread_celsius, spread_humidity])
        high = self._base + np.array([spread_celsius, spread_humidity])
        # Relative humidity is a percentage.
        self._low = np.array([low[0], max(low[1], 0.0)])
        self._high = np.array([high[0], min(high[1], 100.0)])
        self._current = self._base.copy()

    def __call__(self) -> list[Reading]:
        delta = self._rng.normal(0.0, 1.0, size=2) * self._step
        self._current = np.clip(self._current + delta, self._low, self._high)
        celsius, humidity = (float(value) for value in self._current)
        return [Temperature(celsius), Humidity(humidity)]


class SensorNode:
    """Send every reading from ``source`` once per ``interval`` seconds."""

    def __init__(
        self,
        source: ReadingSource,
        sender: MulticastSender,
        *,
        interval: float = DEFAULT_INTERVAL,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        if interval < 0:
            raise ValueError("interval must be non-negative")
        self._source = source
        self._sender = sender
        self._interval = float(interval)
        self._sleep = sleep
        self._failures = 0

    @property
    def interval(self) -> float:
        return self._interval

    @property
    def failures(self) -> int:
        return self._failures

    def run_once(self) -> int:
        """Sample the source and send one datagram per reading.

        Send failures are logged and counted; the remaining readings of the
        cycle are still sent.  Returns the number of datagrams sent.
        """

        sent = 0
        for reading in self._source():
            try:
                self._sender.send(reading)
            except OSError as exc:
                self._failures += 1
                logger.error(
                    "Failed to send %r to %s: %s",
                    reading,
                    self._sender.endpoint,
                    exc,
                    extra={"event": "sensor.send_failed", "endpoint": str(self._sender.endpoint)},
                )
                continue
            sent += 1
            logger.debug(
                "Sent reading",
                extra={"event": "sensor.sent", "value": reading},
            )
        return sent

    def run(self, cycles: Optional[int] = None) -> int:
        """Run ``cycles`` sampling cycles, or forever when ``None``."""

        completed = 0
        total = 0
        logger.info(
            "Broadcasting readings to %s every %.1fs",
            self._sender.endpoint,
            self._interval,
            extra={"event": "sensor.start", "endpoint": str(self._sender.endpoint)},
        )
        while cycles is None or completed < cycles:
            total += self.run_once()
            completed += 1
            if cycles is not None and completed >= cycles:
                break
            self._sleep(self._interval)
        return total

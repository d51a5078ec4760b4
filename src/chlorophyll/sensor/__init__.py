"""Sensor node broadcasting readings to the multicast group."""

from __future__ import annotations

from .node import DEFAULT_INTERVAL, ReadingSource, SensorNode, SimulatedSource

__all__ = ["DEFAULT_INTERVAL", "ReadingSource", "SensorNode", "SimulatedSource"]

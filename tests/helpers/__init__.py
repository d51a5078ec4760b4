"""Convenience re-exports for test helpers."""

from __future__ import annotations

from .client import FakeClock, FakeScreen, ScriptedInput, StubIngestor
from .udp import (
    QueueUDPSocket,
    build_reading_payload,
    make_select_stub,
    receiver_factory,
    socket_factory,
)

__all__ = [
    "FakeClock",
    "FakeScreen",
    "QueueUDPSocket",
    "ScriptedInput",
    "StubIngestor",
    "build_reading_payload",
    "make_select_stub",
    "receiver_factory",
    "socket_factory",
]

"""Multicast transport and client-side ingestion of sensor readings."""

from __future__ import annotations

from .ingestion import IngestOutcome, IngestState, ReadingIngestor
from .multicast import (
    DEFAULT_ENDPOINT,
    DEFAULT_GROUP,
    DEFAULT_PORT,
    BindError,
    MulticastEndpoint,
    MulticastReceiver,
    MulticastSender,
    ReadError,
    TransportError,
)

__all__ = [
    "BindError",
    "DEFAULT_ENDPOINT",
    "DEFAULT_GROUP",
    "DEFAULT_PORT",
    "IngestOutcome",
    "IngestState",
    "MulticastEndpoint",
    "MulticastReceiver",
    "MulticastSender",
    "ReadError",
    "ReadingIngestor",
    "TransportError",
]

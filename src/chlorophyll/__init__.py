"""Multicast sensor telemetry.

A sensor node broadcasts :class:`~chlorophyll.protocol.DataReading`
datagrams to a UDP multicast group; listeners and the terminal dashboard
join the group, decode each datagram and keep the last reading.
"""

from ._version import __version__
from .logging import LogHistory, setup_logging
from .protocol import DataReading, DecodeError, Humidity, Temperature, decode, encode
from .telemetry import MulticastEndpoint, MulticastReceiver, MulticastSender, ReadingIngestor

__all__ = [
    "DataReading",
    "DecodeError",
    "Humidity",
    "LogHistory",
    "MulticastEndpoint",
    "MulticastReceiver",
    "MulticastSender",
    "ReadingIngestor",
    "Temperature",
    "__version__",
    "decode",
    "encode",
    "setup_logging",
]

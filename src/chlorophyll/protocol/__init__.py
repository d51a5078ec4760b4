"""Reading types and their datagram encoding."""

from __future__ import annotations

from .codec import (
    MAX_DATAGRAM_SIZE,
    DataReading,
    DecodeError,
    Humidity,
    Reading,
    Temperature,
    decode,
    describe,
    encode,
    register_variant,
    registered_variants,
)
from .units import celsius_to_fahrenheit, fahrenheit_to_celsius

__all__ = [
    "DataReading",
    "DecodeError",
    "Humidity",
    "MAX_DATAGRAM_SIZE",
    "Reading",
    "Temperature",
    "celsius_to_fahrenheit",
    "decode",
    "describe",
    "encode",
    "fahrenheit_to_celsius",
    "register_variant",
    "registered_variants",
]

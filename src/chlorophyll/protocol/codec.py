"""Wire codec for sensor readings.

Every datagram carries exactly one :class:`DataReading`.  The encoding is
self-describing per value: the reading kind is written as an unsigned
LEB128 varint tag followed by the payload, a little-endian IEEE-754
``float32``.  The layout matches the postcard encoding used by the
embedded producer so both sides agree without a shared schema::

    Temperature(21.5) -> 00 | 00 00 ac 41
                         tag  float32 (LE)

New reading kinds are appended to the tag space with
:func:`register_variant`; existing tags never change, so adding a kind
leaves the encoding of the others untouched.
"""

from __future__ import annotations

import struct
from dataclasses import dataclass
from typing import ClassVar, Union

import numpy as np

from .units import celsius_to_fahrenheit, fahrenheit_to_celsius

__all__ = [
    "DataReading",
    "DecodeError",
    "Humidity",
    "MAX_DATAGRAM_SIZE",
    "Reading",
    "Temperature",
    "decode",
    "describe",
    "encode",
    "register_variant",
    "registered_variants",
]


MAX_DATAGRAM_SIZE = 1500

_FLOAT_STRUCT = struct.Struct("<f")
# A u32 discriminant never needs more than five 7-bit groups.
_MAX_VARINT_BYTES = 5
_U32_MAX = 0xFFFFFFFF


class DecodeError(ValueError):
    """Raised when a datagram does not hold a valid encoded reading."""

    def __init__(self, message: str, *, reason: str, length: int) -> None:
        super().__init__(message)
        self.reason = reason
        self.length = length


def _as_float32(value: float) -> float:
    # Overflow to +/-inf is the float32 semantics the producer has as well.
    with np.errstate(over="ignore"):
        return float(np.float32(value))


@dataclass(frozen=True)
class Reading:
    """Base class for the reading variants of the tagged union."""

    value: float

    tag: ClassVar[int] = -1

    def __post_init__(self) -> None:
        object.__setattr__(self, "value", _as_float32(self.value))


_VARIANTS: dict[int, type[Reading]] = {}


def register_variant(tag: int):
    """Class decorator assigning ``tag`` to a :class:`Reading` subclass."""

    if not 0 <= tag <= _U32_MAX:
        raise ValueError(f"variant tag out of range: {tag}")

    def decorator(cls: type[Reading]) -> type[Reading]:
        existing = _VARIANTS.get(tag)
        if existing is not None and existing is not cls:
            raise ValueError(
                f"tag {tag} already registered for {existing.__name__}"
            )
        cls.tag = tag
        _VARIANTS[tag] = cls
        return cls

    return decorator


def registered_variants() -> dict[int, type[Reading]]:
    return dict(_VARIANTS)


@register_variant(0)
@dataclass(frozen=True)
class Temperature(Reading):
    """Air temperature in degrees Celsius."""

    @property
    def celsius(self) -> float:
        return self.value

    @property
    def fahrenheit(self) -> float:
        return celsius_to_fahrenheit(self.value)

    @classmethod
    def from_fahrenheit(cls, value: float) -> "Temperature":
        return cls(fahrenheit_to_celsius(value))


@register_variant(1)
@dataclass(frozen=True)
class Humidity(Reading):
    """Relative humidity in percent."""


@dataclass(frozen=True)
class DataReading:
    """Top-level record transmitted in every datagram."""

    value: Reading


Encodable = Union[Reading, DataReading]
BytesLike = Union[bytes, bytearray, memoryview]


def _encode_varint(value: int) -> bytes:
    out = bytearray()
    while True:
        byte = value & 0x7F
        value >>= 7
        if value:
            out.append(byte | 0x80)
        else:
            out.append(byte)
            return bytes(out)


def _decode_varint(view: memoryview) -> tuple[int, int]:
    result = 0
    for index in range(min(len(view), _MAX_VARINT_BYTES)):
        byte = view[index]
        result |= (byte & 0x7F) << (7 * index)
        if not byte & 0x80:
            if result > _U32_MAX:
                break
            return result, index + 1
    if len(view) < _MAX_VARINT_BYTES and view[len(view) - 1] & 0x80:
        raise DecodeError(
            "reading tag is truncated",
            reason="truncated",
            length=len(view),
        )
    raise DecodeError(
        "reading tag is not a valid u32 varint",
        reason="varint",
        length=len(view),
    )


def encode(reading: Encodable) -> bytes:
    """Return the wire representation of ``reading``."""

    if isinstance(reading, DataReading):
        reading = reading.value
    if not isinstance(reading, Reading):
        raise TypeError(f"cannot encode {type(reading).__name__}")
    if _VARIANTS.get(reading.tag) is not type(reading):
        raise TypeError(f"{type(reading).__name__} is not a registered reading variant")
    return _encode_varint(reading.tag) + _FLOAT_STRUCT.pack(reading.value)


def decode(payload: BytesLike) -> DataReading:
    """Decode ``payload`` into a :class:`DataReading`.

    Raises
    ------
    DecodeError
        When ``payload`` is empty, truncated, carries an unknown tag or has
        bytes left over after the reading.
    """

    view = memoryview(payload).cast("B")
    length = len(view)
    if not length:
        raise DecodeError("empty datagram", reason="empty", length=0)

    tag, offset = _decode_varint(view)
    variant = _VARIANTS.get(tag)
    if variant is None:
        raise DecodeError(
            f"unknown reading tag {tag}", reason="unknown_tag", length=length
        )

    end = offset + _FLOAT_STRUCT.size
    if length < end:
        raise DecodeError(
            f"{variant.__name__} payload truncated: {length} bytes (expected {end})",
            reason="truncated",
            length=length,
        )
    if length > end:
        raise DecodeError(
            f"{length - end} trailing bytes after {variant.__name__}",
            reason="trailing",
            length=length,
        )
    (value,) = _FLOAT_STRUCT.unpack_from(view, offset)
    return DataReading(variant(value))


def describe(reading: Encodable | None) -> str:
    """Human readable form used by the dashboard and the listener."""

    if reading is None:
        return ""
    if isinstance(reading, DataReading):
        reading = reading.value
    if isinstance(reading, Temperature):
        return f"{reading.celsius:.2f}C ({reading.fahrenheit:.2f}F)"
    if isinstance(reading, Humidity):
        return f"{reading.value:.2f}%"
    return f"{type(reading).__name__}({reading.value:.2f})"

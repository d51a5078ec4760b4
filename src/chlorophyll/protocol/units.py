"""Temperature unit helpers shared by the sensor node and the dashboard."""

from __future__ import annotations

__all__ = ["celsius_to_fahrenheit", "fahrenheit_to_celsius"]


def celsius_to_fahrenheit(value: float) -> float:
    return value * 9.0 / 5.0 + 32.0


def fahrenheit_to_celsius(value: float) -> float:
    return (value - 32.0) * 5.0 / 9.0

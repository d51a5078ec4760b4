"""State owned by the dashboard's single-threaded application loop."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional

from ..protocol.codec import DataReading

__all__ = ["COUNTER_MAX", "ClientState", "ScrollState"]


COUNTER_MAX = 255


@dataclass
class ScrollState:
    """Log panel visibility and scroll offset.

    The offset counts records from the oldest entry.  It is only clamped
    against the history length when a window is rendered.
    """

    enabled: bool = True
    offset: int = 0

    def toggle(self) -> None:
        self.enabled = not self.enabled

    def scroll_up(self, amount: int = 1) -> None:
        self.offset += max(int(amount), 0)

    def scroll_down(self, amount: int = 1) -> None:
        self.offset = max(self.offset - max(int(amount), 0), 0)


@dataclass
class ClientState:
    running: bool = True
    counter: int = 0
    last_reading: Optional[DataReading] = None
    scroll: ScrollState = field(default_factory=ScrollState)

    def increment_counter(self) -> None:
        self.counter = min(self.counter + 1, COUNTER_MAX)

    def decrement_counter(self) -> None:
        self.counter = max(self.counter - 1, 0)

    def quit(self) -> None:
        self.running = False

"""Event source for the dashboard loop.

:meth:`EventHandler.next` hands out exactly one event per call: queued
application events first, then terminal input that arrives before the next
tick deadline, otherwise the tick itself.
"""

from __future__ import annotations

import curses
import enum
import time
from collections import deque
from dataclasses import dataclass
from typing import Callable, Deque, Optional, Protocol, Union

__all__ = [
    "AppEvent",
    "CursesInput",
    "Event",
    "EventHandler",
    "InputSource",
    "KeyEvent",
    "TickEvent",
    "normalize_key",
]


class AppEvent(enum.Enum):
    INCREMENT = "increment"
    DECREMENT = "decrement"
    QUIT = "quit"


@dataclass(frozen=True)
class TickEvent:
    pass


@dataclass(frozen=True)
class KeyEvent:
    key: str


Event = Union[TickEvent, KeyEvent, AppEvent]

TICK = TickEvent()

_ESCAPE = 27
_CTRL_C = 3

_SPECIAL_KEYS = {
    curses.KEY_UP: "up",
    curses.KEY_DOWN: "down",
    curses.KEY_LEFT: "left",
    curses.KEY_RIGHT: "right",
    curses.KEY_PPAGE: "pageup",
    curses.KEY_NPAGE: "pagedown",
    _ESCAPE: "esc",
    _CTRL_C: "ctrl-c",
}


def normalize_key(code: int) -> Optional[str]:
    """Translate a ``getch`` code into the key names used by the app."""

    if code < 0:
        return None
    name = _SPECIAL_KEYS.get(code)
    if name is not None:
        return name
    if 32 <= code < 127:
        return chr(code)
    return None


class InputSource(Protocol):
    def read_key(self, timeout: float) -> Optional[str]:
        """Wait up to ``timeout`` seconds for one key press."""


class CursesInput:
    """Read key presses from a curses window."""

    def __init__(self, window) -> None:
        self._window = window
        self._window.keypad(True)

    def read_key(self, timeout: float) -> Optional[str]:
        self._window.timeout(max(int(timeout * 1000), 0))
        return normalize_key(self._window.getch())


class EventHandler:
    """Produce ticks at a fixed rate and interleave input and app events."""

    def __init__(
        self,
        input_source: Optional[InputSource] = None,
        *,
        tick_rate: float = 0.25,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        if tick_rate <= 0:
            raise ValueError("tick_rate must be positive")
        self._input = input_source
        self._tick_rate = float(tick_rate)
        self._clock = clock
        self._sleep = sleep
        self._app_events: Deque[AppEvent] = deque()
        self._next_tick: Optional[float] = None

    @property
    def tick_rate(self) -> float:
        return self._tick_rate

    def attach_input(self, input_source: InputSource) -> None:
        self._input = input_source

    def send(self, event: AppEvent) -> None:
        self._app_events.append(event)

    def next(self) -> Event:
        if self._app_events:
            return self._app_events.popleft()
        if self._next_tick is None:
            self._next_tick = self._clock()
        while True:
            now = self._clock()
            remaining = self._next_tick - now
            if remaining <= 0:
                self._next_tick += self._tick_rate
                if self._next_tick <= now:
                    self._next_tick = now + self._tick_rate
                return TICK
            if self._input is None:
                self._sleep(remaining)
                continue
            key = self._input.read_key(remaining)
            if key is not None:
                return KeyEvent(key)

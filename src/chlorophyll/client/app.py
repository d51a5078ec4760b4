"""Dashboard application: one event per loop iteration, single-threaded."""

from __future__ import annotations

import curses
import logging
from typing import Optional

from ..logging.history import LogHistory
from ..telemetry.ingestion import IngestOutcome, ReadingIngestor
from .events import AppEvent, CursesInput, Event, EventHandler, KeyEvent, TickEvent
from .state import ClientState, ScrollState
from .ui import Palette, render

__all__ = ["App", "FAST_SCROLL", "build_app", "run_dashboard"]


logger = logging.getLogger(__name__)

FAST_SCROLL = 10


class App:
    """Dashboard state machine.

    The ingestor owns the multicast socket; the history is shared with the
    logging subsystem, which may append to it from any thread.
    """

    def __init__(
        self,
        ingestor: ReadingIngestor,
        history: LogHistory,
        *,
        state: Optional[ClientState] = None,
        events: Optional[EventHandler] = None,
    ) -> None:
        self.ingestor = ingestor
        self.history = history
        self.state = state or ClientState()
        self.events = events or EventHandler()

    @property
    def running(self) -> bool:
        return self.state.running

    def handle_key(self, key: str) -> None:
        scroll = self.state.scroll
        if key in ("esc", "q", "ctrl-c"):
            self.events.send(AppEvent.QUIT)
        elif key == "L":
            scroll.toggle()
        elif key == "up":
            if scroll.enabled:
                scroll.scroll_up(1)
        elif key == "down":
            if scroll.enabled:
                scroll.scroll_down(1)
        elif key == "pageup":
            if scroll.enabled:
                scroll.scroll_up(FAST_SCROLL)
        elif key == "pagedown":
            if scroll.enabled:
                scroll.scroll_down(FAST_SCROLL)
        elif key == "right":
            self.events.send(AppEvent.INCREMENT)
        elif key == "left":
            self.events.send(AppEvent.DECREMENT)

    def handle_event(self, event: Event) -> None:
        if isinstance(event, TickEvent):
            self.tick()
        elif isinstance(event, KeyEvent):
            self.handle_key(event.key)
        elif event is AppEvent.INCREMENT:
            self.state.increment_counter()
        elif event is AppEvent.DECREMENT:
            self.state.decrement_counter()
        elif event is AppEvent.QUIT:
            self.state.quit()

    def tick(self) -> IngestOutcome:
        outcome = self.ingestor.tick()
        self.state.last_reading = self.ingestor.last_reading
        return outcome

    def run(self, screen, palette: Optional[Palette] = None) -> None:
        """Draw, wait for the next event, dispatch it; until quit."""

        while self.state.running:
            render(self, screen, palette)
            self.handle_event(self.events.next())

    def close(self) -> None:
        self.ingestor.close()


def run_dashboard(app: App) -> None:
    """Run ``app`` inside a curses session and restore the terminal after."""

    def _main(screen) -> None:
        # Raw mode delivers Ctrl-C as key code 3 instead of SIGINT.
        curses.raw()
        try:
            curses.curs_set(0)
        except curses.error:
            logger.debug("Terminal cannot hide the cursor.", extra={"event": "dashboard.cursor"})
        app.events.attach_input(CursesInput(screen))
        app.run(screen, Palette.from_curses())

    try:
        curses.wrapper(_main)
    finally:
        app.close()


def build_app(
    ingestor: ReadingIngestor,
    history: LogHistory,
    *,
    show_logs: bool = True,
    tick_rate: float = 0.25,
) -> App:
    state = ClientState(scroll=ScrollState(enabled=show_logs))
    return App(ingestor, history, state=state, events=EventHandler(tick_rate=tick_rate))

"""curses rendering for the dashboard.

The layout is a bordered main panel with the last reading and, when
enabled, a log panel taking the bottom third of the screen.  The log
window is copied out of the history under its lock before anything is
drawn.
"""

from __future__ import annotations

import curses
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Mapping

from ..logging.history import SeverityHint
from ..protocol.codec import describe
from ..telemetry.ingestion import IngestState

if TYPE_CHECKING:  # pragma: no cover - typing only
    from .app import App

__all__ = ["Palette", "render"]


TITLE = "chlorophyll"
LOG_TITLE = "Logs"
MIN_MAIN_HEIGHT = 3
MIN_LOG_WIDTH = 10
MIN_LOG_HEIGHT = 3

_COLOR_PAIRS = {
    SeverityHint.ERROR: (1, curses.COLOR_RED),
    SeverityHint.WARN: (2, curses.COLOR_YELLOW),
    SeverityHint.DEBUG: (3, curses.COLOR_GREEN),
    SeverityHint.TRACE: (4, curses.COLOR_BLACK),
    SeverityHint.INFO: (5, curses.COLOR_WHITE),
}
_MAIN_PAIR = 6


@dataclass(frozen=True)
class Palette:
    """curses attributes per severity hint; plain attributes by default."""

    hints: Mapping[SeverityHint, int] = field(default_factory=dict)
    main: int = 0
    border: int = 0

    def for_hint(self, hint: SeverityHint) -> int:
        return self.hints.get(hint, 0)

    @classmethod
    def from_curses(cls) -> "Palette":
        """Initialise color pairs; requires an active curses screen."""

        if not curses.has_colors():
            return cls()
        curses.start_color()
        curses.use_default_colors()
        hints = {}
        for hint, (pair, color) in _COLOR_PAIRS.items():
            curses.init_pair(pair, color, -1)
            attr = curses.color_pair(pair)
            if hint is SeverityHint.TRACE:
                attr |= curses.A_BOLD
            hints[hint] = attr
        curses.init_pair(_MAIN_PAIR, curses.COLOR_CYAN, -1)
        return cls(hints=hints, main=curses.color_pair(_MAIN_PAIR), border=curses.A_DIM)


def _put(screen, y: int, x: int, text: str, attr: int = 0) -> None:
    height, width = screen.getmaxyx()
    if y < 0 or y >= height or x < 0 or x >= width:
        return
    available = width - x
    if y == height - 1:
        # Writing the bottom-right cell moves the cursor off screen.
        available -= 1
    if available <= 0:
        return
    try:
        screen.addnstr(y, x, text, available, attr)
    except curses.error:
        pass


def _draw_box(screen, top: int, left: int, height: int, width: int, title: str, attr: int) -> None:
    if height < 2 or width < 2:
        return
    inner = width - 2
    caption = f" {title} " if title else ""
    caption = caption[:inner]
    pad = inner - len(caption)
    top_line = "╭" + "─" * (pad // 2) + caption + "─" * (pad - pad // 2) + "╮"
    _put(screen, top, left, top_line, attr)
    for row in range(top + 1, top + height - 1):
        _put(screen, row, left, "│", attr)
        _put(screen, row, left + width - 1, "│", attr)
    _put(screen, top + height - 1, left, "╰" + "─" * inner + "╯", attr)


def split_layout(height: int, logs_enabled: bool) -> tuple[int, int]:
    """Return ``(main_height, log_height)`` for a screen of ``height`` rows."""

    if not logs_enabled:
        return height, 0
    log_height = height // 3
    main_height = height - log_height
    if main_height < MIN_MAIN_HEIGHT:
        main_height = min(height, MIN_MAIN_HEIGHT)
        log_height = height - main_height
    return main_height, log_height


def main_panel_lines(app: "App") -> list[str]:
    state = app.state
    ingestor = app.ingestor
    last = describe(state.last_reading)
    if last and ingestor.is_stale():
        last = f"{last} (stale)"
    if ingestor.last_sender is not None and last:
        host, port = ingestor.last_sender
        last = f"{last} from {host}:{port}"
    endpoint = ingestor.endpoint
    status = (
        f"Listening on {endpoint.group}:{endpoint.port}"
        if ingestor.state is IngestState.BOUND
        else f"Waiting for multicast socket {endpoint.group}:{endpoint.port}"
    )
    return [
        "Multicast sensor dashboard.",
        "Press `Esc`, `Ctrl-C` or `q` to stop running.",
        "Press left and right to increment and decrement the counter respectively.",
        f"Counter: {state.counter}",
        f"Last Reading: '{last}'",
        status,
        "Press Shift+L to toggle log panel, Up/Down to scroll, PgUp/PgDn for fast scroll",
    ]


def _render_main(app: "App", screen, height: int, width: int, palette: Palette) -> None:
    _draw_box(screen, 0, 0, height, width, TITLE, palette.border)
    inner_width = width - 2
    inner_height = height - 2
    if inner_width <= 0 or inner_height <= 0:
        return
    for row, line in enumerate(main_panel_lines(app)[:inner_height], start=1):
        text = line[:inner_width]
        left = 1 + (inner_width - len(text)) // 2
        _put(screen, row, left, text, palette.main)


def _render_logs(app: "App", screen, top: int, height: int, width: int, palette: Palette) -> None:
    if width < MIN_LOG_WIDTH or height < MIN_LOG_HEIGHT:
        return
    _draw_box(screen, top, 0, height, width, LOG_TITLE, palette.border)
    visible = height - 2
    window = app.history.window(app.state.scroll.offset, visible)
    for row, (record, hint) in enumerate(window, start=top + 1):
        _put(screen, row, 1, record.text[: width - 2], palette.for_hint(hint))


def render(app: "App", screen, palette: Palette | None = None) -> None:
    """Draw one frame of ``app`` onto ``screen``."""

    palette = palette or Palette()
    screen.erase()
    height, width = screen.getmaxyx()
    main_height, log_height = split_layout(height, app.state.scroll.enabled)
    _render_main(app, screen, main_height, width, palette)
    if log_height:
        _render_logs(app, screen, main_height, log_height, width, palette)
    screen.refresh()

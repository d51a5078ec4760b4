"""Terminal dashboard consuming the multicast reading stream."""

from __future__ import annotations

from .app import App, build_app, run_dashboard
from .events import AppEvent, EventHandler, KeyEvent, TickEvent
from .state import ClientState, ScrollState

__all__ = [
    "App",
    "AppEvent",
    "ClientState",
    "EventHandler",
    "KeyEvent",
    "ScrollState",
    "TickEvent",
    "build_app",
    "run_dashboard",
]

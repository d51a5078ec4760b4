"""Argument parsing for the ``chlorophyll`` command."""

from __future__ import annotations

import argparse
from pathlib import Path
from typing import Any, Mapping, Optional

from ..sensor.node import DEFAULT_INTERVAL
from ..telemetry.multicast import DEFAULT_GROUP, DEFAULT_PORT
from .commands import handle_broadcast, handle_dashboard, handle_listen

__all__ = ["build_parser"]


def _section(config: Mapping[str, Any], name: str) -> dict[str, Any]:
    value = config.get(name, {})
    if isinstance(value, Mapping):
        return dict(value)
    return {}


def _float_option(section: Mapping[str, Any], key: str, default: float) -> float:
    try:
        return float(section.get(key, default))
    except (TypeError, ValueError):
        return default


def _add_endpoint_arguments(parser: argparse.ArgumentParser, multicast_cfg: Mapping[str, Any]) -> None:
    parser.add_argument(
        "--group",
        default=str(multicast_cfg.get("group", DEFAULT_GROUP)),
        help=f"IPv4 multicast group (default: {DEFAULT_GROUP}).",
    )
    parser.add_argument(
        "--port",
        type=int,
        default=int(multicast_cfg.get("port", DEFAULT_PORT)),
        help=f"UDP port of the multicast group (default: {DEFAULT_PORT}).",
    )


def build_parser(config: Optional[Mapping[str, Any]] = None) -> argparse.ArgumentParser:
    config = dict(config or {})
    logging_cfg = _section(config, "logging")
    multicast_cfg = _section(config, "multicast")
    dashboard_cfg = _section(config, "dashboard")
    sensor_cfg = _section(config, "sensor")

    parser = argparse.ArgumentParser(
        prog="chlorophyll",
        description="Broadcast and display sensor readings over UDP multicast.",
    )
    parser.add_argument(
        "--config",
        dest="config_path",
        type=Path,
        default=None,
        help="Path to the pyproject.toml (or its directory) holding [tool.chlorophyll].",
    )
    parser.add_argument(
        "--log-level",
        dest="log_level",
        default=logging_cfg.get("level", "info"),
        help="Logging level (trace, debug, info, warn, error).",
    )
    parser.add_argument(
        "--log-output",
        dest="log_output",
        default=logging_cfg.get("output", "file"),
        help="Logging destination (file, stdout, stderr or a path).",
    )
    parser.add_argument(
        "--log-format",
        dest="log_format",
        choices=("json", "text"),
        default=logging_cfg.get("format", "text"),
        help="Logging formatter (json or text).",
    )
    _add_endpoint_arguments(parser, multicast_cfg)

    subparsers = parser.add_subparsers(dest="command", required=True)

    dashboard_parser = subparsers.add_parser(
        "dashboard",
        help="Show the last reading and the log panel in the terminal.",
    )
    logs_group = dashboard_parser.add_mutually_exclusive_group()
    logs_group.add_argument(
        "--show-logs",
        dest="show_logs",
        action="store_true",
        help="Start with the log panel visible.",
    )
    logs_group.add_argument(
        "--hide-logs",
        dest="show_logs",
        action="store_false",
        help="Start with the log panel hidden.",
    )
    dashboard_parser.add_argument(
        "--tick-rate",
        type=float,
        default=_float_option(dashboard_cfg, "tick_rate", 0.25),
        help="Seconds between socket polls and redraws (default: 0.25).",
    )
    dashboard_parser.set_defaults(
        show_logs=bool(dashboard_cfg.get("show_logs", True)),
        handler=handle_dashboard,
    )

    listen_parser = subparsers.add_parser(
        "listen",
        help="Print every datagram received from the multicast group.",
    )
    listen_parser.add_argument(
        "--count",
        type=int,
        default=None,
        help="Stop after this many datagrams (default: run until interrupted).",
    )
    listen_parser.add_argument(
        "--timeout",
        type=float,
        default=None,
        help="Stop when no datagram arrives within this many seconds.",
    )
    listen_parser.set_defaults(handler=handle_listen)

    broadcast_parser = subparsers.add_parser(
        "broadcast",
        help="Run a simulated sensor node sending readings to the group.",
    )
    broadcast_parser.add_argument(
        "--interval",
        type=float,
        default=_float_option(sensor_cfg, "interval", DEFAULT_INTERVAL),
        help=f"Seconds between measurement cycles (default: {DEFAULT_INTERVAL:g}).",
    )
    broadcast_parser.add_argument(
        "--cycles",
        type=int,
        default=None,
        help="Number of measurement cycles (default: run until interrupted).",
    )
    broadcast_parser.add_argument(
        "--seed",
        type=int,
        default=sensor_cfg.get("seed"),
        help="Seed for the simulated readings.",
    )
    broadcast_parser.add_argument(
        "--ttl",
        type=int,
        default=int(multicast_cfg.get("ttl", 1)),
        help="Multicast time-to-live (default: 1, local network only).",
    )
    broadcast_parser.set_defaults(handler=handle_broadcast)

    return parser

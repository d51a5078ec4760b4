"""Handlers for the ``chlorophyll`` sub-commands.

Each handler receives the parsed namespace and the loaded configuration
and returns the text the CLI prints once the command finishes.
"""

from __future__ import annotations

import argparse
import logging
import sys
from typing import Any, Mapping, Optional

from ..client.app import build_app, run_dashboard
from ..logging.config import setup_logging
from ..logging.history import DEFAULT_HISTORY_CAPACITY, LogHistory
from ..protocol.codec import DecodeError, decode, describe
from ..sensor.node import SensorNode, SimulatedSource
from ..telemetry.ingestion import ReadingIngestor
from ..telemetry.multicast import (
    BindError,
    MulticastEndpoint,
    MulticastReceiver,
    MulticastSender,
    ReadError,
)
from .errors import CliError

__all__ = ["handle_broadcast", "handle_dashboard", "handle_listen", "resolve_endpoint"]


logger = logging.getLogger(__name__)


def _section(config: Mapping[str, Any], name: str) -> dict[str, Any]:
    value = config.get(name, {})
    return dict(value) if isinstance(value, Mapping) else {}


def resolve_endpoint(namespace: argparse.Namespace) -> MulticastEndpoint:
    try:
        return MulticastEndpoint(group=namespace.group, port=namespace.port)
    except ValueError as exc:
        raise CliError(
            str(exc),
            category="usage",
            context={"group": namespace.group, "port": namespace.port},
        ) from exc


def _write_line(text: str) -> None:
    sys.stdout.write(text)
    sys.stdout.write("\n")
    sys.stdout.flush()


def handle_dashboard(namespace: argparse.Namespace, *, config: Mapping[str, Any]) -> str:
    endpoint = resolve_endpoint(namespace)
    dashboard_cfg = _section(config, "dashboard")
    if namespace.tick_rate <= 0:
        raise CliError(
            "--tick-rate must be positive",
            category="usage",
            context={"tick_rate": namespace.tick_rate},
        )

    history = LogHistory(int(dashboard_cfg.get("history_capacity", DEFAULT_HISTORY_CAPACITY)))
    logging_cfg = _section(config, "logging")
    if str(logging_cfg.get("output", "file")).lower() in {"stdout", "stderr"}:
        # Stream output would draw over the curses screen.
        logging_cfg["output"] = "file"
    setup_logging({**config, "logging": logging_cfg}, history=history)

    ingestor = ReadingIngestor(
        endpoint,
        bind_retry_interval=float(dashboard_cfg.get("bind_retry_interval", 0.0)),
        stale_after=dashboard_cfg.get("stale_after"),
        rebind_after_errors=dashboard_cfg.get("rebind_after_errors"),
    )
    app = build_app(
        ingestor,
        history,
        show_logs=bool(namespace.show_logs),
        tick_rate=float(namespace.tick_rate),
    )
    try:
        run_dashboard(app)
    except KeyboardInterrupt:
        logger.info("Dashboard interrupted.", extra={"event": "dashboard.interrupted"})
    return ""


def _describe_payload(payload: bytes, source: tuple[str, int]) -> str:
    try:
        reading = decode(payload)
    except DecodeError as exc:
        logger.warning(
            "Undecodable datagram from %s:%s: %s",
            source[0],
            source[1],
            exc,
            extra={"event": "listen.decode_failed", "reason": exc.reason, "length": exc.length},
        )
        return payload.decode("utf-8", errors="replace")
    return describe(reading)


def handle_listen(namespace: argparse.Namespace, *, config: Mapping[str, Any]) -> str:
    endpoint = resolve_endpoint(namespace)
    count: Optional[int] = namespace.count
    timeout: Optional[float] = namespace.timeout
    receiver = MulticastReceiver(endpoint)
    try:
        receiver.bind()
    except BindError as exc:
        raise CliError(
            str(exc),
            category="io",
            context={"endpoint": str(endpoint), "stage": exc.stage},
        ) from exc

    received = 0
    _write_line(f"Listening for multicast on {endpoint}")
    try:
        while count is None or received < count:
            datagram = receiver.receive(timeout)
            if datagram is None:
                logger.info(
                    "No datagram within %.1fs, stopping.",
                    timeout,
                    extra={"event": "listen.timeout", "endpoint": str(endpoint)},
                )
                break
            payload, source = datagram
            received += 1
            _write_line(f"Received from {source[0]}:{source[1]}: {_describe_payload(payload, source)}")
    except ReadError as exc:
        raise CliError(
            str(exc),
            category="io",
            context={"endpoint": str(endpoint), "received": received},
        ) from exc
    except KeyboardInterrupt:
        logger.info("Listener interrupted.", extra={"event": "listen.interrupted"})
    finally:
        receiver.close()
    return f"Received {received} datagram(s) from {endpoint}"


def handle_broadcast(namespace: argparse.Namespace, *, config: Mapping[str, Any]) -> str:
    endpoint = resolve_endpoint(namespace)
    if namespace.interval < 0:
        raise CliError(
            "--interval must be non-negative",
            category="usage",
            context={"interval": namespace.interval},
        )
    try:
        sender = MulticastSender(endpoint, ttl=namespace.ttl)
    except OSError as exc:
        raise CliError(
            f"Couldn't open multicast sender for {endpoint}: {exc}",
            category="io",
            context={"endpoint": str(endpoint)},
        ) from exc

    node = SensorNode(SimulatedSource(namespace.seed), sender, interval=namespace.interval)
    try:
        node.run(namespace.cycles)
    except KeyboardInterrupt:
        logger.info("Broadcast interrupted.", extra={"event": "sensor.interrupted"})
    finally:
        sender.close()
    return f"Sent {sender.sent} datagram(s) to {endpoint}"

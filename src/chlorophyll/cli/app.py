"""Entry point of the ``chlorophyll`` command."""

from __future__ import annotations

import argparse
import sys
from pathlib import Path
from typing import Any, Callable, Mapping, Optional, Sequence

from ..logging.config import setup_logging
from .errors import CliError, log_cli_error
from .io import load_cli_config
from .parser import build_parser

__all__ = ["main", "run_cli"]


CommandHandler = Callable[..., str]


def _preliminary_parser() -> argparse.ArgumentParser:
    # Options needed before the full parser can be built from the config.
    parser = argparse.ArgumentParser(add_help=False)
    parser.add_argument("--config", dest="config_path", type=Path, default=None)
    parser.add_argument("--log-level", dest="log_level", default=None)
    parser.add_argument("--log-output", dest="log_output", default=None)
    parser.add_argument("--log-format", dest="log_format", choices=("json", "text"), default=None)
    return parser


def _logging_config(config: Mapping[str, Any], preliminary: argparse.Namespace) -> dict[str, Any]:
    raw = config.get("logging", {})
    logging_config = dict(raw) if isinstance(raw, Mapping) else {}
    for option in ("level", "output", "format"):
        value = getattr(preliminary, f"log_{option}")
        if value is not None:
            logging_config[option] = value
    logging_config.setdefault("level", "info")
    logging_config.setdefault("output", "file")
    logging_config.setdefault("format", "text")
    return logging_config


def _emit(text: str) -> None:
    if not text:
        return
    sys.stdout.write(text)
    if not text.endswith("\n"):
        sys.stdout.write("\n")


def run_cli(args: Optional[Sequence[str]] = None) -> str:
    """Execute the ``chlorophyll`` command line interface."""

    preliminary, remaining = _preliminary_parser().parse_known_args(args)
    config = load_cli_config(preliminary.config_path)
    config["logging"] = _logging_config(config, preliminary)
    setup_logging(config)

    parser = build_parser(config)
    preliminary.log_level = config["logging"]["level"]
    preliminary.log_output = config["logging"]["output"]
    preliminary.log_format = config["logging"]["format"]
    namespace = parser.parse_args(list(remaining), namespace=preliminary)
    namespace.config = config

    handler: Optional[CommandHandler] = getattr(namespace, "handler", None)
    if handler is None:
        raise CliError(
            f"Unknown command '{getattr(namespace, 'command', None)}'.",
            category="usage",
            context={"command": getattr(namespace, "command", None)},
        )

    try:
        result = handler(namespace, config=config)
    except CliError as exc:
        if not exc.logged:
            log_cli_error(exc.payload, exc_info=exc)
            exc.logged = True
        _emit(exc.payload.message)
        raise SystemExit(exc.status_code) from exc
    _emit(result)
    return result


def main() -> None:  # pragma: no cover - thin wrapper
    run_cli()


if __name__ == "__main__":  # pragma: no cover - CLI invocation guard
    main()

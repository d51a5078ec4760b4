"""Command line interface for chlorophyll."""

from chlorophyll.cli.app import main, run_cli

__all__ = ["main", "run_cli"]

"""Command line utilities for fightlog."""

from fightlog.cli.app import main, run_cli

__all__ = ["main", "run_cli"]

"""Logging utilities for fightlog."""

from fightlog.logging.config import JsonFormatter, setup_logging

__all__ = ["JsonFormatter", "setup_logging"]

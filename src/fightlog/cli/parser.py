"""Command-line grammar of ``fightlog``."""

from __future__ import annotations

import argparse
from pathlib import Path
from typing import Any, Mapping, Optional

from fightlog.exporters import exporters_registry
from fightlog.jobs import available_jobs

from .workflows import _handle_analyze, _handle_modules

__all__ = ["build_parser"]


# (option, fallback, help); ``--log-format`` additionally restricts its choices.
_LOGGING_OPTIONS = (
    ("level", "info", "Logging level such as debug, info or warning."),
    ("output", "stderr", "Where log records go: stdout, stderr or a file path."),
    ("format", "json", "Log record layout."),
)
_LOG_FORMATS = ("json", "text")


def _global_options(parser: argparse.ArgumentParser, logging_cfg: Mapping[str, Any]) -> None:
    parser.add_argument(
        "--config",
        dest="config_path",
        type=Path,
        help="pyproject.toml (or its directory) holding '[tool.fightlog]'.",
    )
    for option, fallback, text in _LOGGING_OPTIONS:
        parser.add_argument(
            f"--log-{option}",
            dest=f"log_{option}",
            default=logging_cfg.get(option, fallback),
            choices=_LOG_FORMATS if option == "format" else None,
            help=f"{text} (default: %(default)s)",
        )


def _module_selection(parser: argparse.ArgumentParser, config: Mapping[str, Any]) -> None:
    parser.add_argument(
        "--job",
        choices=available_jobs(),
        default=config.get("job"),
        help="Job whose modules specialise the core set; defaults to the recording's job.",
    )
    parser.add_argument(
        "--profile",
        default=config.get("profile"),
        help="Module profile from '[tool.fightlog.profiles]' to activate.",
    )


def build_parser(config: Optional[Mapping[str, Any]] = None) -> argparse.ArgumentParser:
    config = config or {}
    parser = argparse.ArgumentParser(
        prog="fightlog",
        description="Derive resource gauges and suggestions from combat recordings.",
    )
    _global_options(parser, config.get("logging", {}))
    commands = parser.add_subparsers(dest="command", required=True)

    analyze = commands.add_parser("analyze", help="Analyse one recording and render the result.")
    analyze.add_argument("recording", type=Path, help="JSON or JSONL recording, optionally gzip compressed.")
    _module_selection(analyze, config)
    export = config.get("export")
    analyze.add_argument(
        "--export",
        choices=sorted(exporters_registry),
        default=export if export in exporters_registry else "json",
        help="Renderer for the result (default: %(default)s).",
    )
    analyze.add_argument("--output", type=Path, help="Write the rendering here instead of stdout.")
    analyze.set_defaults(handler=_handle_analyze)

    modules = commands.add_parser("modules", help="List the modules in dispatch order.")
    _module_selection(modules, config)
    modules.set_defaults(handler=_handle_modules)

    return parser

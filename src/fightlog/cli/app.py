"""``fightlog`` console entry point."""

from __future__ import annotations

import argparse
import sys
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Sequence

from fightlog.cli.errors import CliError, log_cli_error
from fightlog.cli.io import load_cli_config
from fightlog.cli.parser import build_parser
from fightlog.logging.config import setup_logging

_LOGGING_DEFAULTS: Mapping[str, str] = {"level": "info", "output": "stderr", "format": "json"}


def _emit(text: str) -> None:
    sys.stdout.write(text if text.endswith("\n") else f"{text}\n")


def _bootstrap_parser() -> argparse.ArgumentParser:
    # Options needed before the full parser can be built from the configuration.
    bootstrap = argparse.ArgumentParser(add_help=False)
    bootstrap.add_argument("--config", dest="config_path", type=Path)
    for option in _LOGGING_DEFAULTS:
        bootstrap.add_argument(f"--log-{option}", dest=f"log_{option}")
    return bootstrap


def _logging_settings(config: Mapping[str, Any], overrides: argparse.Namespace) -> Dict[str, Any]:
    settings = {**_LOGGING_DEFAULTS, **dict(config.get("logging", {}))}
    for option in _LOGGING_DEFAULTS:
        value = getattr(overrides, f"log_{option}")
        if value is not None:
            settings[option] = value
    return settings


def _fail(error: CliError) -> SystemExit:
    log_cli_error(error)
    if error.report.message:
        _emit(error.report.message)
    return SystemExit(error.status_code)


def run_cli(args: Optional[Sequence[str]] = None) -> str:
    """Run one ``fightlog`` command and return the text it printed."""

    early, remaining = _bootstrap_parser().parse_known_args(args)
    try:
        config = load_cli_config(early.config_path)
    except CliError as exc:
        raise _fail(exc) from exc

    config["logging"] = _logging_settings(config, early)
    try:
        setup_logging(config)
    except ValueError as exc:
        raise _fail(CliError(str(exc), category="usage", context={"logging": str(config["logging"])})) from exc

    namespace = build_parser(config).parse_args(list(remaining), namespace=early)
    for option, value in config["logging"].items():
        setattr(namespace, f"log_{option}", value)
    if namespace.config_path is None:
        namespace.config_path = config.get("_config_path")

    try:
        result = namespace.handler(namespace, config=config)
    except CliError as exc:
        raise _fail(exc) from exc
    if result:
        _emit(result)
    return result


def main() -> None:  # pragma: no cover - console script
    run_cli()


if __name__ == "__main__":  # pragma: no cover
    main()

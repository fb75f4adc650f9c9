"""Command handlers for the fightlog CLI."""

from __future__ import annotations

import argparse
import logging
from pathlib import Path
from typing import Any, Mapping

from fightlog.analysis import analyze_recording, prepare_registry
from fightlog.cli.errors import CliError
from fightlog.cli.io import load_module_config
from fightlog.events import EventDataError
from fightlog.exporters import exporters_registry
from fightlog.io.recordings import RecordingFormatError, load_recording
from fightlog.modules.config import ModuleConfigError
from fightlog.modules.registry import ModuleConfigurationError

__all__ = ["_handle_analyze", "_handle_modules"]


logger = logging.getLogger(__name__)


def _render(payload: Mapping[str, Any], export: str) -> str:
    try:
        exporter = exporters_registry[export]
    except KeyError:
        raise CliError(
            f"Unknown exporter '{export}'",
            category="usage",
            context={"export": export},
        ) from None
    return exporter(payload)


def _handle_analyze(namespace: argparse.Namespace, *, config: Mapping[str, Any]) -> str:
    recording_path = Path(namespace.recording)
    try:
        recording = load_recording(recording_path)
    except (FileNotFoundError, RecordingFormatError, EventDataError, OSError) as exc:
        raise CliError.from_exception(exc, context={"path": str(recording_path)}) from exc

    module_config = load_module_config(config, profile=namespace.profile)
    try:
        result = analyze_recording(recording, job=namespace.job, config=module_config)
    except (ModuleConfigurationError, ModuleConfigError, LookupError) as exc:
        raise CliError.from_exception(exc, context={"job": namespace.job}) from exc

    rendered = _render(result.as_dict(), namespace.export)
    if namespace.output is None:
        return rendered

    destination = Path(namespace.output)
    try:
        destination.parent.mkdir(parents=True, exist_ok=True)
        destination.write_text(rendered if rendered.endswith("\n") else rendered + "\n", encoding="utf8")
    except OSError as exc:
        raise CliError.from_exception(exc, context={"output": str(destination)}) from exc
    logger.info(
        "Analysis written",
        extra={"event": "cli.analyze.written", "output": str(destination), "export": namespace.export},
    )
    return f"Analysis written to {destination}"


def _handle_modules(namespace: argparse.Namespace, *, config: Mapping[str, Any]) -> str:
    module_config = load_module_config(config, profile=namespace.profile)
    try:
        descriptors = prepare_registry(namespace.job, module_config).resolve()
    except (ModuleConfigurationError, LookupError) as exc:
        raise CliError.from_exception(exc, context={"job": namespace.job}) from exc

    lines = []
    for position, descriptor in enumerate(descriptors, start=1):
        requires = ", ".join(descriptor.dependencies + descriptor.after)
        suffix = f" (after {requires})" if requires else ""
        lines.append(f"{position:2d}. {descriptor.handle}{suffix}")
    return "\n".join(lines)

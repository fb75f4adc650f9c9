"""High-level helpers running a full analysis over a recording."""

from __future__ import annotations

import logging
from time import monotonic
from typing import Iterable, Sequence

from fightlog.events import CombatEvent, EventIssue, Fight
from fightlog.io.recordings import Recording
from fightlog.jobs import JOB_MODULES, build_registry
from fightlog.modules.config import ModuleConfig
from fightlog.modules.parser import AnalysisResult, EncounterParser
from fightlog.modules.registry import ModuleRegistry

__all__ = ["analyze_events", "analyze_recording", "prepare_registry"]


logger = logging.getLogger(__name__)


def prepare_registry(job: str | None, config: ModuleConfig | None = None) -> ModuleRegistry:
    """Registry for ``job`` with ``config`` applied when provided."""

    registry = build_registry(job)
    if config is not None:
        registry = config.apply(registry)
    return registry


def analyze_events(
    fight: Fight,
    events: Sequence[CombatEvent],
    *,
    job: str | None = None,
    config: ModuleConfig | None = None,
    issues: Iterable[EventIssue] = (),
) -> AnalysisResult:
    """Analyse ``events`` for ``fight``; ``job`` defaults to ``fight.job``."""

    started = monotonic()
    resolved_job = job
    if resolved_job is None and fight.job is not None:
        if fight.job in JOB_MODULES:
            resolved_job = fight.job
        else:
            logger.warning(
                "No modules for job '%s'; analysing with the core modules only",
                fight.job,
                extra={"event": "analysis.unknown_job", "job": fight.job},
            )
    registry = prepare_registry(resolved_job, config)
    parser = EncounterParser(registry, fight)
    result = parser.parse(events, issues=issues)
    logger.info(
        "Analysed encounter",
        extra={
            "event": "analysis.completed",
            "job": resolved_job,
            "events": len(result.timeline),
            "issues": len(result.issues),
            "failures": len(result.failures),
            "elapsed_ms": round((monotonic() - started) * 1000.0, 3),
        },
    )
    return result


def analyze_recording(
    recording: Recording,
    *,
    job: str | None = None,
    config: ModuleConfig | None = None,
) -> AnalysisResult:
    return analyze_events(
        recording.fight,
        recording.events,
        job=job,
        config=config,
        issues=recording.issues,
    )

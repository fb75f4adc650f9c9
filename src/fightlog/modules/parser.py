"""Encounter parser driving the construct / init / normalise / dispatch phases."""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Dict, List, Tuple

from fightlog.events import COMPLETE, CombatEvent, EventIssue, Fight, Timeline
from fightlog.modules.base import AnalysisModule, ModuleContext
from fightlog.modules.hooks import HandlerFailure, HookContext, HookDispatcher
from fightlog.modules.registry import ModuleDescriptor, ModuleRegistry

__all__ = ["AnalysisResult", "EncounterParser"]


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AnalysisResult:
    """Everything an analysis produced for the rendering collaborator."""

    fight: Fight
    timeline: Timeline
    module_order: Tuple[str, ...]
    outputs: Mapping[str, Any] = field(default_factory=dict)
    series: Mapping[str, Tuple[Tuple[int, float], ...]] = field(default_factory=dict)
    suggestions: Tuple[Dict[str, Any], ...] = ()
    issues: Tuple[EventIssue, ...] = ()
    failures: Tuple[HandlerFailure, ...] = ()

    def as_dict(self) -> Dict[str, Any]:
        return {
            "fight": self.fight.as_dict(),
            "modules": list(self.module_order),
            "events": len(self.timeline),
            "outputs": dict(self.outputs),
            "series": {
                handle: [list(pair) for pair in samples]
                for handle, samples in self.series.items()
            },
            "suggestions": [dict(entry) for entry in self.suggestions],
            "issues": [issue.as_dict() for issue in self.issues],
            "failures": [failure.as_dict() for failure in self.failures],
        }


class EncounterParser:
    """Build the module set for ``fight`` and run one analysis pass.

    Resolution happens at construction time so configuration errors surface
    before any event is touched. Every module is constructed in resolved
    order, then every :meth:`AnalysisModule.init` runs, so a module may rely
    on its dependencies having registered their hooks first.
    """

    def __init__(self, registry: ModuleRegistry, fight: Fight) -> None:
        self.fight = fight
        self._descriptors: Tuple[ModuleDescriptor, ...] = registry.resolve()
        self.module_order: Tuple[str, ...] = tuple(
            descriptor.handle for descriptor in self._descriptors
        )
        self.dispatcher = HookDispatcher(
            self.module_order,
            {descriptor.handle: descriptor.dependencies for descriptor in self._descriptors},
        )
        self._issues: List[EventIssue] = []
        self._modules: Dict[str, AnalysisModule] = {}
        self._initialised = False

    @property
    def modules(self) -> Mapping[str, AnalysisModule]:
        return MappingProxyType(self._modules)

    def _report_issue(self, issue: EventIssue) -> None:
        self._issues.append(issue)

    def _build(self) -> None:
        if self._initialised:
            raise RuntimeError("an EncounterParser can only run once")
        for descriptor in self._descriptors:
            context = ModuleContext(
                descriptor,
                self.fight,
                self.dispatcher,
                self._modules,
                report_issue=self._report_issue,
            )
            self._modules[descriptor.handle] = descriptor.factory(context)
        for handle in self.module_order:
            self._modules[handle].init()
        self._initialised = True
        logger.debug(
            "Initialised %d modules",
            len(self._modules),
            extra={"event": "parser.initialised", "modules": list(self.module_order)},
        )

    def normalise(self, events: Iterable[CombatEvent]) -> Timeline:
        """Run every module normaliser in resolved order and freeze the result."""

        working: List[CombatEvent] = list(events)
        for handle in self.module_order:
            if handle in self.dispatcher.disabled:
                continue
            try:
                working = list(self._modules[handle].normalise(working))
            except Exception as exc:
                logger.exception(
                    "Module '%s' failed while normalising events",
                    handle,
                    extra={"event": "parser.normalise_failed", "handle": handle},
                )
                self.dispatcher.record_failure(
                    handle, event_index=-1, event_type="normalise", error=exc
                )

        if not any(event.type == COMPLETE for event in working):
            # Events recorded past the fight's end must still precede it.
            last = max((event.timestamp for event in working), default=self.fight.end_time)
            working.append(
                CombatEvent(
                    timestamp=max(self.fight.end_time, last),
                    type=COMPLETE,
                    sequence=len(working),
                    fabricated=True,
                )
            )
        return Timeline(working, start_time=self.fight.start_time, end_time=self.fight.end_time)

    def parse(
        self,
        events: Sequence[CombatEvent],
        *,
        issues: Iterable[EventIssue] = (),
    ) -> AnalysisResult:
        """Analyse ``events``; ``issues`` carries decode errors found upstream."""

        self._issues.extend(issues)
        self._build()
        timeline = self.normalise(events)
        context = HookContext(self.fight)
        invocations = self.dispatcher.dispatch(timeline, context)
        logger.info(
            "Dispatched %d events to %d handlers",
            len(timeline),
            invocations,
            extra={
                "event": "parser.dispatched",
                "events": len(timeline),
                "invocations": invocations,
                "failures": len(self.dispatcher.failures),
            },
        )
        return self._collect(timeline)

    def _collect(self, timeline: Timeline) -> AnalysisResult:
        disabled = self.dispatcher.disabled
        outputs: Dict[str, Any] = {}
        series: Dict[str, Tuple[Tuple[int, float], ...]] = {}
        suggestions: Tuple[Dict[str, Any], ...] = ()

        for handle in self.module_order:
            if handle in disabled:
                continue
            module = self._modules[handle]
            payload = module.output()
            if payload is not None:
                outputs[handle] = payload
            samples = module.series()
            if samples is not None:
                series[handle] = tuple(samples)

        recorder = self._modules.get("suggestions")
        if recorder is not None and "suggestions" not in disabled:
            suggestions = tuple(recorder.output() or ())

        return AnalysisResult(
            fight=self.fight,
            timeline=timeline,
            module_order=self.module_order,
            outputs=MappingProxyType(outputs),
            series=MappingProxyType(series),
            suggestions=suggestions,
            issues=tuple(self._issues),
            failures=self.dispatcher.failures,
        )

"""Suggestion records surfaced to the reader at the end of an encounter."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any, Dict, List, Tuple

from fightlog.modules.base import AnalysisModule

__all__ = [
    "MAJOR",
    "MEDIUM",
    "MINOR",
    "SEVERITIES",
    "Suggestion",
    "Suggestions",
    "TieredSuggestion",
    "parse_severity_tiers",
]


MINOR = "minor"
MEDIUM = "medium"
MAJOR = "major"

SEVERITIES: Tuple[str, ...] = (MINOR, MEDIUM, MAJOR)
_SEVERITY_RANK = {name: rank for rank, name in enumerate(SEVERITIES)}


def parse_severity_tiers(tiers: Mapping[Any, str]) -> Tuple[Tuple[float, str], ...]:
    """Validate ``{threshold: severity}`` pairs and sort them by threshold."""

    if not tiers:
        raise ValueError("at least one severity tier is required")
    parsed: List[Tuple[float, str]] = []
    for threshold, severity in tiers.items():
        try:
            value = float(threshold)
        except (TypeError, ValueError):
            raise ValueError(f"tier threshold {threshold!r} is not a number") from None
        if severity not in _SEVERITY_RANK:
            raise ValueError(f"unknown severity '{severity}'")
        parsed.append((value, severity))
    parsed.sort(key=lambda item: item[0])
    return tuple(parsed)


@dataclass(frozen=True)
class Suggestion:
    """Actionable advice produced by a module."""

    identifier: str
    severity: str
    content: str
    rationale: str = ""
    value: float | None = None

    def __post_init__(self) -> None:
        if self.severity not in _SEVERITY_RANK:
            raise ValueError(f"unknown severity '{self.severity}'")

    @property
    def rank(self) -> int:
        return _SEVERITY_RANK[self.severity]

    def as_dict(self) -> Dict[str, Any]:
        return {
            "identifier": self.identifier,
            "severity": self.severity,
            "value": self.value,
            "content": self.content,
            "rationale": self.rationale,
        }


@dataclass(frozen=True)
class TieredSuggestion:
    """Suggestion whose severity is chosen by comparing ``value`` to thresholds.

    The highest threshold not exceeding ``value`` wins. Values below every
    threshold produce no suggestion.
    """

    identifier: str
    content: str
    tiers: Mapping[Any, str]
    value: float
    rationale: str = ""
    _parsed: Tuple[Tuple[float, str], ...] = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "_parsed", parse_severity_tiers(self.tiers))

    @property
    def severity(self) -> str | None:
        matched = None
        for threshold, severity in self._parsed:
            if self.value >= threshold:
                matched = severity
        return matched

    def resolve(self) -> Suggestion | None:
        severity = self.severity
        if severity is None:
            return None
        return Suggestion(
            identifier=self.identifier,
            severity=severity,
            content=self.content,
            rationale=self.rationale,
            value=self.value,
        )


class Suggestions(AnalysisModule):
    handle = "suggestions"
    title = "Suggestions"

    def __init__(self, context) -> None:
        super().__init__(context)
        self._records: List[Suggestion] = []

    def add(self, suggestion: Suggestion | TieredSuggestion) -> Suggestion | None:
        if isinstance(suggestion, TieredSuggestion):
            resolved = suggestion.resolve()
        else:
            resolved = suggestion
        if resolved is not None:
            self._records.append(resolved)
        return resolved

    def records(self) -> Tuple[Suggestion, ...]:
        """Suggestions ordered by descending severity, then identifier."""

        return tuple(
            sorted(self._records, key=lambda item: (-item.rank, item.identifier))
        )

    def output(self) -> List[Dict[str, Any]]:
        return [record.as_dict() for record in self.records()]

"""Timeline repair passes executed before hooks are dispatched."""

from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence
from dataclasses import dataclass

from fightlog.events import (
    APPLY_STATUS,
    CombatEvent,
    EventIssue,
    STATUS_FOLLOW_UP_TYPES,
)

__all__ = [
    "NormalisationResult",
    "merge_insertions",
    "normalise_status_history",
]


logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class NormalisationResult:
    """Repaired events plus the raw events excluded as data errors."""

    events: tuple[CombatEvent, ...]
    issues: tuple[EventIssue, ...] = ()
    fabricated: int = 0


def merge_insertions(
    events: Sequence[CombatEvent],
    insertions: Iterable[tuple[int, CombatEvent]],
) -> list[CombatEvent]:
    """Return ``events`` with each ``(index, event)`` spliced in before ``events[index]``.

    Several insertions at the same index behave like consecutive splices at
    that position: the most recently scheduled one ends up first.
    """

    pending: dict[int, list[CombatEvent]] = {}
    for index, event in insertions:
        pending.setdefault(index, []).append(event)

    merged: list[CombatEvent] = []
    for index, event in enumerate(events):
        scheduled = pending.pop(index, None)
        if scheduled:
            merged.extend(reversed(scheduled))
        merged.append(event)
    for index in sorted(pending):
        merged.extend(reversed(pending[index]))
    return merged


def normalise_status_history(
    events: Sequence[CombatEvent],
    start_time: int,
) -> NormalisationResult:
    """Make every status follow-up event causally preceded by an application.

    Statuses applied before the pull never produce an application event, yet
    their removal, refresh or stack changes show up in the recording. For the
    first such event of every ``(target, status)`` pair without a known
    application, a synthetic ``apply_status`` copy stamped ``start_time - 1``
    is placed at the head of the timeline. Real events are never dropped or
    reordered, except status events lacking a target or status identifier,
    which are excluded and reported.
    """

    ledger: dict[int, set[int]] = {}
    insertions: list[tuple[int, CombatEvent]] = []
    issues: list[EventIssue] = []
    kept: list[CombatEvent] = []

    for index, event in enumerate(events):
        if event.type != APPLY_STATUS and event.type not in STATUS_FOLLOW_UP_TYPES:
            kept.append(event)
            continue

        if event.target_id is None or event.ability_id is None:
            issues.append(
                EventIssue(
                    index=event.sequence,
                    reason=f"'{event.type}' event without target or status identifier",
                    payload=event.as_dict(),
                )
            )
            logger.warning(
                "Excluding malformed status event at position %d",
                index,
                extra={"event": "normalise.invalid_status", "type": event.type},
            )
            continue

        kept.append(event)
        known = ledger.setdefault(event.target_id, set())

        if event.type == APPLY_STATUS:
            known.add(event.ability_id)
            continue

        if event.ability_id in known:
            continue

        synthetic = event.fabricate(type=APPLY_STATUS, timestamp=start_time - 1)
        insertions.append((0, synthetic))
        known.add(event.ability_id)
        logger.debug(
            "Fabricated pre-pull application of status %s on target %s",
            event.ability_id,
            event.target_id,
            extra={"event": "normalise.precast_status"},
        )

    return NormalisationResult(
        events=tuple(merge_insertions(kept, insertions)),
        issues=tuple(issues),
        fabricated=len(insertions),
    )

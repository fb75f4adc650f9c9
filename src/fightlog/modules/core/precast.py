"""Normalisers that make pre-pull state explicit in the timeline."""

from __future__ import annotations

import logging

from fightlog.events import BEGIN_CAST, CAST, DAMAGE, CombatEvent
from fightlog.modules.base import AnalysisModule
from fightlog.normalisation import merge_insertions, normalise_status_history

__all__ = ["PrecastAction", "PrecastStatus"]


logger = logging.getLogger(__name__)

# Auto-attacks never have a cast event.
_DEFAULT_IGNORED_ABILITIES = (7, 8)


class PrecastAction(AnalysisModule):
    """Fabricate the cast of an action started before the pull.

    When the tracked player's first action-bearing event is damage without a
    cast, the cast happened before recording began.
    """

    handle = "precast_action"

    def normalise(self, events: list[CombatEvent]) -> list[CombatEvent]:
        player_id = self.fight.player_id
        ignored = frozenset(self.settings.get("ignored_abilities", _DEFAULT_IGNORED_ABILITIES))

        for event in events:
            if event.source_id != player_id or event.ability_id is None:
                continue
            if event.ability_id in ignored:
                continue
            if event.type in {BEGIN_CAST, CAST}:
                return events
            if event.type == DAMAGE:
                synthetic = event.fabricate(
                    type=CAST,
                    timestamp=self.fight.start_time - 1,
                    amount=None,
                )
                logger.debug(
                    "Fabricated pre-pull cast of action %s",
                    event.ability_id,
                    extra={"event": "normalise.precast_action"},
                )
                return merge_insertions(events, [(0, synthetic)])
        return events


class PrecastStatus(AnalysisModule):
    """Fabricate applications of statuses that were active before the pull."""

    handle = "precast_status"
    # Statuses must be spliced in ahead of the fabricated cast.
    after = ("precast_action",)

    def normalise(self, events: list[CombatEvent]) -> list[CombatEvent]:
        result = normalise_status_history(events, self.fight.start_time)
        for issue in result.issues:
            self.context.report_issue(issue)
        if result.fabricated:
            logger.info(
                "Fabricated %d pre-pull status applications",
                result.fabricated,
                extra={"event": "normalise.precast_status_summary"},
            )
        return list(result.events)

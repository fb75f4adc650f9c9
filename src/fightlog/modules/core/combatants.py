"""Status tracking for every actor taking part in the encounter."""

from __future__ import annotations

from typing import Dict

from fightlog.events import APPLY_STATUS, REMOVE_STATUS, CombatEvent
from fightlog.modules.base import AnalysisModule
from fightlog.modules.hooks import HookContext

__all__ = ["Combatants"]


class Combatants(AnalysisModule):
    """Know which statuses each actor holds at the current dispatch position."""

    handle = "combatants"

    def __init__(self, context) -> None:
        super().__init__(context)
        self._statuses: Dict[int, set[int]] = {}

    def init(self) -> None:
        self.add_hook(APPLY_STATUS, self._on_apply)
        self.add_hook(REMOVE_STATUS, self._on_remove)

    def _on_apply(self, event: CombatEvent, context: HookContext) -> None:
        self._statuses.setdefault(event.target_id, set()).add(event.ability_id)

    def _on_remove(self, event: CombatEvent, context: HookContext) -> None:
        self._statuses.get(event.target_id, set()).discard(event.ability_id)

    # ------------------------------------------------------------------
    # Read accessors
    # ------------------------------------------------------------------
    @property
    def selected_id(self) -> int:
        return self.fight.player_id

    def has_status(self, actor_id: int, status_id: int) -> bool:
        return status_id in self._statuses.get(actor_id, ())

    def selected_has_status(self, status_id: int) -> bool:
        return self.has_status(self.selected_id, status_id)

    def statuses_of(self, actor_id: int) -> frozenset[int]:
        return frozenset(self._statuses.get(actor_id, ()))

    def party_size(self) -> int:
        return len(self.fight.party_members())

    def output(self) -> Dict[str, object]:
        return {
            "party_size": self.party_size(),
            "selected_statuses": sorted(self.statuses_of(self.selected_id)),
        }

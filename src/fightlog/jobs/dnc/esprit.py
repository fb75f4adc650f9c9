"""Esprit gauge estimate for Dancer."""

from __future__ import annotations

import logging
from types import MappingProxyType
from typing import Any, Dict

from fightlog.events import APPLY_STATUS, CAST, COMPLETE, DAMAGE, DEATH, REMOVE_STATUS, CombatEvent
from fightlog.gauge import ResourceGauge
from fightlog.jobs.dnc import data
from fightlog.modules.base import AnalysisModule
from fightlog.modules.core.combatants import Combatants
from fightlog.modules.core.suggestions import (
    MAJOR,
    MEDIUM,
    MINOR,
    Suggestions,
    TieredSuggestion,
)
from fightlog.modules.hooks import HookContext

__all__ = ["DEFAULT_SEVERITY_TIERS", "EspritGauge"]


logger = logging.getLogger(__name__)

DEFAULT_SEVERITY_TIERS = MappingProxyType({1: MINOR, 5: MEDIUM, 10: MAJOR})


class EspritGauge(AnalysisModule):
    """Rough estimate of the Esprit gauge over the encounter.

    Esprit is generated for the Dancer whenever a dance partner or, under
    Technical Finish, any party member lands a weaponskill. The recording
    only exposes the player's own actions, so party generation is
    approximated from the player's damage events scaled by headcount.
    """

    handle = "esprit_gauge"
    dependencies = ("combatants", "suggestions")
    title = "Esprit Gauge"

    def __init__(self, context) -> None:
        super().__init__(context)
        self._combatants: Combatants = context.dependency("combatants")
        self._suggestions: Suggestions = context.dependency("suggestions")
        self.gauge = ResourceGauge(data.MAX_ESPRIT)
        self._total_generated = 0.0
        self._improvisation_start = self.fight.start_time
        self._tiers = self.settings.get("severity_tiers", DEFAULT_SEVERITY_TIERS)

    def init(self) -> None:
        self.add_hook(DAMAGE, self._on_damage, by="player")
        self.add_hook(CAST, self._on_consume, by="player", ability_id=data.SABER_DANCE)
        self.add_hook(
            APPLY_STATUS,
            self._on_improvisation_start,
            by="player",
            ability_id=data.STATUS_IMPROVISATION,
        )
        self.add_hook(
            REMOVE_STATUS,
            self._on_improvisation_end,
            by="player",
            ability_id=data.STATUS_IMPROVISATION,
        )
        self.add_hook(DEATH, self._on_death, to="player")
        self.add_hook(COMPLETE, self._on_complete)

    # ------------------------------------------------------------------
    # Generation
    # ------------------------------------------------------------------
    def generated_amount(self, ability_id: int) -> float:
        """Esprit credited for one hit of ``ability_id`` in the current state."""

        multiplier = data.ESPRIT_GENERATION_MULTIPLIERS.get(ability_id)
        if not multiplier:
            return 0.0
        base = multiplier * data.ESPRIT_GENERATION_AMOUNT
        amount = 0.0
        if self._combatants.selected_has_status(data.STATUS_TECHNICAL_FINISH):
            amount += base * data.ESPRIT_RATE_PARTY * (self._combatants.party_size() - 1)
            amount += base * data.ESPRIT_RATE_SELF
        elif self._combatants.selected_has_status(data.STATUS_ESPRIT):
            amount += base * data.ESPRIT_RATE_SELF
            if self._combatants.selected_has_status(data.STATUS_CLOSED_POSITION):
                amount += base * data.ESPRIT_RATE_PARTY
        return amount

    def _on_damage(self, event: CombatEvent, context: HookContext) -> None:
        if not event.amount:
            return
        amount = self.generated_amount(event.ability_id)
        self._total_generated += amount
        if amount > 0:
            self.gauge.generate(amount, context.elapsed)

    def _on_consume(self, event: CombatEvent, context: HookContext) -> None:
        self.gauge.consume(data.SABER_DANCE_COST, context.elapsed)

    def _on_improvisation_start(self, event: CombatEvent, context: HookContext) -> None:
        self._improvisation_start = event.timestamp

    def _on_improvisation_end(self, event: CombatEvent, context: HookContext) -> None:
        # Everyone is assumed in range, so each tick grants the full amount.
        self.gauge.apply_ticks(
            event.timestamp - self._improvisation_start,
            tick_interval=data.IMPROVISATION_TICK_INTERVAL,
            max_ticks=data.IMPROVISATION_MAX_TICKS,
            per_tick=data.IMPROVISATION_TICK_AMOUNT,
            elapsed=context.elapsed,
        )

    def _on_death(self, event: CombatEvent, context: HookContext) -> None:
        self.gauge.reset(context.elapsed)

    def _on_complete(self, event: CombatEvent, context: HookContext) -> None:
        missed = self.missed_uses
        added = self._suggestions.add(
            TieredSuggestion(
                identifier="esprit.overcapped",
                content=(
                    "You may have lost uses of Saber Dance due to overcapping your "
                    "Esprit gauge. Make sure you use it, especially if your gauge is above 80."
                ),
                tiers=self._tiers,
                value=missed,
                rationale=f"{missed} Saber Dance{'' if missed == 1 else 's'} may have been missed.",
            )
        )
        if added is not None:
            logger.info(
                "Esprit overcap suggestion raised",
                extra={"event": "esprit.overcapped", "missed": missed, "severity": added.severity},
            )

    # ------------------------------------------------------------------
    # Read accessors
    # ------------------------------------------------------------------
    @property
    def total_generated(self) -> float:
        return self._total_generated

    @property
    def missed_uses(self) -> int:
        return self.gauge.missed_uses(data.SABER_DANCE_COST)

    def series(self) -> tuple[tuple[int, float], ...]:
        return self.gauge.series()

    def output(self) -> Dict[str, Any]:
        return {
            "series": [list(pair) for pair in self.gauge.series()],
            "overflow": self.gauge.overflow,
            "missed_uses": self.missed_uses,
            "consumed": self.gauge.consumption_count,
            "total_generated": self._total_generated,
        }

"""Modules shared by every job analysis."""

from fightlog.modules.core.combatants import Combatants
from fightlog.modules.core.cooldowns import CooldownGroup, CooldownRow, Cooldowns
from fightlog.modules.core.precast import PrecastAction, PrecastStatus
from fightlog.modules.core.suggestions import (
    MAJOR,
    MEDIUM,
    MINOR,
    Suggestion,
    Suggestions,
    TieredSuggestion,
)

CORE_MODULES = (
    PrecastAction,
    PrecastStatus,
    Combatants,
    Suggestions,
    Cooldowns,
)

__all__ = [
    "CORE_MODULES",
    "Combatants",
    "CooldownGroup",
    "CooldownRow",
    "Cooldowns",
    "MAJOR",
    "MEDIUM",
    "MINOR",
    "PrecastAction",
    "PrecastStatus",
    "Suggestion",
    "Suggestions",
    "TieredSuggestion",
]

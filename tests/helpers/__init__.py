"""Convenience re-exports for test helpers."""

from __future__ import annotations

from tests.helpers.events import (
    ENEMY_ID,
    PARTY_IDS,
    PET_ID,
    PLAYER_ID,
    apply_status,
    build_fight,
    cast,
    damage,
    death,
    remove_status,
    sequenced,
    status,
)
from tests.helpers.modules import Journal, journaling_module, registry_for, run_analysis

__all__ = [
    "ENEMY_ID",
    "Journal",
    "PARTY_IDS",
    "PET_ID",
    "PLAYER_ID",
    "apply_status",
    "build_fight",
    "cast",
    "damage",
    "death",
    "journaling_module",
    "registry_for",
    "remove_status",
    "run_analysis",
    "sequenced",
    "status",
]

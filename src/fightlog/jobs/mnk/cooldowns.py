"""Monk cooldown ordering."""

from __future__ import annotations

from fightlog.jobs.mnk import data
from fightlog.modules.core.cooldowns import CooldownGroup, Cooldowns
from fightlog.modules.registry import ModuleDescriptor

__all__ = ["COOLDOWN_ORDER", "descriptor"]


COOLDOWN_ORDER = (
    CooldownGroup(
        name="Fists",
        actions=(data.FISTS_OF_FIRE, data.FISTS_OF_WIND, data.FISTS_OF_EARTH),
        merge=True,
    ),
    data.RIDDLE_OF_FIRE,
    data.BROTHERHOOD,
    data.THE_FORBIDDEN_CHAKRA,
    data.ELIXIR_FIELD,
    data.TORNADO_KICK,
    data.PERFECT_BALANCE,
    data.RIDDLE_OF_EARTH,
    data.MANTRA,
)


def descriptor() -> ModuleDescriptor:
    """Descriptor replacing the core ``cooldowns`` slot with the Monk ordering."""

    return ModuleDescriptor.for_module(Cooldowns, policy={"cooldown_order": COOLDOWN_ORDER})

"""Monk analysis modules."""

from fightlog.jobs.mnk.cooldowns import COOLDOWN_ORDER, descriptor

MODULES = (descriptor(),)

__all__ = ["COOLDOWN_ORDER", "MODULES"]

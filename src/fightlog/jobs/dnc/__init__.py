"""Dancer analysis modules."""

from fightlog.jobs.dnc.esprit import EspritGauge
from fightlog.modules.registry import ModuleDescriptor

MODULES = (ModuleDescriptor.for_module(EspritGauge),)

__all__ = ["EspritGauge", "MODULES"]

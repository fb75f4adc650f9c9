"""Job catalogue mapping job names to their module descriptors."""

from __future__ import annotations

from types import MappingProxyType
from typing import Mapping, Tuple

from fightlog.jobs import dnc, mnk
from fightlog.modules.core import CORE_MODULES as _CORE_MODULE_CLASSES
from fightlog.modules.registry import ModuleDescriptor, ModuleRegistry

__all__ = ["CORE_MODULES", "JOB_MODULES", "available_jobs", "build_registry"]


CORE_MODULES: Tuple[ModuleDescriptor, ...] = tuple(
    ModuleDescriptor.for_module(module_cls) for module_cls in _CORE_MODULE_CLASSES
)

JOB_MODULES: Mapping[str, Tuple[ModuleDescriptor, ...]] = MappingProxyType(
    {
        "dnc": dnc.MODULES,
        "mnk": mnk.MODULES,
    }
)


def available_jobs() -> Tuple[str, ...]:
    return tuple(sorted(JOB_MODULES))


def build_registry(job: str | None = None) -> ModuleRegistry:
    """Registry with the core modules plus the specialisations of ``job``.

    Job descriptors with a new handle are registered; descriptors sharing a
    core handle replace the core descriptor.
    """

    registry = ModuleRegistry(CORE_MODULES)
    if job is None:
        return registry
    key = job.strip().lower()
    try:
        descriptors = JOB_MODULES[key]
    except KeyError:
        raise LookupError(
            f"Unknown job '{job}'. Available jobs: {', '.join(available_jobs())}"
        ) from None
    for descriptor in descriptors:
        registry.register_or_override(descriptor)
    return registry

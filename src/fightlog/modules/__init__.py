"""Analysis module infrastructure: registry, hooks and the encounter parser."""

from fightlog.modules.base import AnalysisModule, ModuleContext
from fightlog.modules.hooks import (
    EventFilter,
    HandlerFailure,
    HookContext,
    HookDispatcher,
    HookRegistration,
)
from fightlog.modules.parser import AnalysisResult, EncounterParser
from fightlog.modules.registry import (
    DependencyCycleError,
    DuplicateModuleError,
    ModuleConfigurationError,
    ModuleDescriptor,
    ModuleRegistry,
    UnresolvedDependencyError,
)

__all__ = [
    "AnalysisModule",
    "AnalysisResult",
    "DependencyCycleError",
    "DuplicateModuleError",
    "EncounterParser",
    "EventFilter",
    "HandlerFailure",
    "HookContext",
    "HookDispatcher",
    "HookRegistration",
    "ModuleConfigurationError",
    "ModuleContext",
    "ModuleDescriptor",
    "ModuleRegistry",
    "UnresolvedDependencyError",
]

"""Module descriptors and dependency resolution."""

from __future__ import annotations

from collections.abc import Iterable, Iterator, Mapping
from dataclasses import dataclass, field, replace
from types import MappingProxyType
from typing import Any, Dict, Tuple, Type

from fightlog.modules.base import AnalysisModule

__all__ = [
    "DependencyCycleError",
    "DuplicateModuleError",
    "ModuleConfigurationError",
    "ModuleDescriptor",
    "ModuleRegistry",
    "UnresolvedDependencyError",
]


class ModuleConfigurationError(ValueError):
    """Raised when the module set cannot be assembled into a valid analysis."""


class DuplicateModuleError(ModuleConfigurationError):
    """Raised when a handle is registered twice."""


class UnresolvedDependencyError(ModuleConfigurationError):
    """Raised when a module depends on a handle that is not registered."""


class DependencyCycleError(ModuleConfigurationError):
    """Raised when module dependencies form a cycle."""

    def __init__(self, cycle: Tuple[str, ...]) -> None:
        super().__init__("Dependency cycle detected: " + " -> ".join(cycle))
        self.cycle = cycle


def _ensure_handle(value: str, *, field_name: str = "handle") -> str:
    if not isinstance(value, str):
        raise ModuleConfigurationError(f"{field_name} must be a string")
    normalised = value.strip()
    if not normalised:
        raise ModuleConfigurationError(f"{field_name} must not be empty")
    return normalised


def _normalise_handles(handles: Iterable[str]) -> Tuple[str, ...]:
    seen: set[str] = set()
    ordered: list[str] = []
    for name in handles:
        normalised = _ensure_handle(name, field_name="dependency")
        if normalised in seen:
            continue
        seen.add(normalised)
        ordered.append(normalised)
    return tuple(ordered)


def _freeze(mapping: Mapping[str, Any] | None) -> Mapping[str, Any]:
    if not mapping:
        return MappingProxyType({})
    return MappingProxyType(dict(mapping))


@dataclass(frozen=True)
class ModuleDescriptor:
    """Immutable description of one module slot.

    ``policy`` carries ordered tables a specialisation may swap out (for
    example a cooldown ordering); ``settings`` carries user configuration.
    ``after`` orders the module behind others without requiring them.
    """

    handle: str
    factory: Type[AnalysisModule]
    dependencies: Tuple[str, ...] = ()
    policy: Mapping[str, Any] = field(default_factory=dict)
    settings: Mapping[str, Any] = field(default_factory=dict)
    after: Tuple[str, ...] = ()

    def __post_init__(self) -> None:
        handle = _ensure_handle(self.handle)
        if not isinstance(self.factory, type) or not issubclass(self.factory, AnalysisModule):
            raise ModuleConfigurationError("factory must be an AnalysisModule subclass")
        dependencies = _normalise_handles(self.dependencies)
        after = _normalise_handles(self.after)
        if handle in dependencies or handle in after:
            raise DependencyCycleError((handle, handle))
        object.__setattr__(self, "handle", handle)
        object.__setattr__(self, "dependencies", dependencies)
        object.__setattr__(self, "after", after)
        object.__setattr__(self, "policy", _freeze(self.policy))
        object.__setattr__(self, "settings", _freeze(self.settings))

    @classmethod
    def for_module(
        cls,
        module_cls: Type[AnalysisModule],
        *,
        handle: str | None = None,
        dependencies: Iterable[str] | None = None,
        policy: Mapping[str, Any] | None = None,
        settings: Mapping[str, Any] | None = None,
    ) -> "ModuleDescriptor":
        """Build a descriptor from the class attributes of ``module_cls``."""

        return cls(
            handle=handle if handle is not None else module_cls.handle,
            factory=module_cls,
            dependencies=tuple(
                dependencies if dependencies is not None else module_cls.dependencies
            ),
            policy=policy if policy is not None else module_cls.policy,
            settings=settings or {},
            after=tuple(module_cls.after),
        )

    def with_dependency(self, handle: str) -> "ModuleDescriptor":
        return replace(self, dependencies=self.dependencies + (handle,))

    def with_settings(self, settings: Mapping[str, Any]) -> "ModuleDescriptor":
        return replace(self, settings=settings)


class ModuleRegistry:
    """Ordered collection of module descriptors keyed by handle."""

    def __init__(self, descriptors: Iterable[ModuleDescriptor] = ()) -> None:
        self._descriptors: Dict[str, ModuleDescriptor] = {}
        for descriptor in descriptors:
            self.register(descriptor)

    def __contains__(self, handle: object) -> bool:
        return handle in self._descriptors

    def __iter__(self) -> Iterator[ModuleDescriptor]:
        return iter(self._descriptors.values())

    def __len__(self) -> int:
        return len(self._descriptors)

    @property
    def handles(self) -> Tuple[str, ...]:
        return tuple(self._descriptors)

    def get(self, handle: str) -> ModuleDescriptor:
        try:
            return self._descriptors[handle]
        except KeyError:
            raise LookupError(f"Module '{handle}' is not registered") from None

    def register(self, descriptor: ModuleDescriptor) -> ModuleDescriptor:
        if descriptor.handle in self._descriptors:
            raise DuplicateModuleError(
                f"Module handle '{descriptor.handle}' is already registered"
            )
        self._descriptors[descriptor.handle] = descriptor
        return descriptor

    def override(self, descriptor: ModuleDescriptor) -> ModuleDescriptor:
        """Replace the descriptor bound to ``descriptor.handle``.

        The replacement keeps the original registration position; nothing from
        the previous descriptor is merged in.
        """

        if descriptor.handle not in self._descriptors:
            raise LookupError(
                f"Cannot override unknown module '{descriptor.handle}'"
            )
        self._descriptors[descriptor.handle] = descriptor
        return descriptor

    def register_or_override(self, descriptor: ModuleDescriptor) -> ModuleDescriptor:
        if descriptor.handle in self._descriptors:
            return self.override(descriptor)
        return self.register(descriptor)

    def declare_dependency(self, handle: str, dependency: str) -> ModuleDescriptor:
        """Force ``handle`` to be initialised after ``dependency``."""

        descriptor = self.get(handle)
        if dependency == handle:
            raise DependencyCycleError((handle, handle))
        updated = descriptor.with_dependency(dependency)
        self._descriptors[handle] = updated
        return updated

    def without(self, handles: Iterable[str]) -> "ModuleRegistry":
        excluded = set(handles)
        return ModuleRegistry(
            descriptor for descriptor in self if descriptor.handle not in excluded
        )

    def resolve(self) -> Tuple[ModuleDescriptor, ...]:
        """Return descriptors ordered so dependencies precede their dependants.

        Registration order is preserved wherever dependencies allow it, which
        keeps the result deterministic.
        """

        resolved: Dict[str, ModuleDescriptor] = {}
        resolving: list[str] = []

        def visit(handle: str, requested_by: str | None) -> None:
            if handle in resolved:
                return
            if handle in resolving:
                start = resolving.index(handle)
                raise DependencyCycleError(tuple(resolving[start:]) + (handle,))
            descriptor = self._descriptors.get(handle)
            if descriptor is None:
                raise UnresolvedDependencyError(
                    f"Module '{requested_by}' depends on unknown module '{handle}'"
                )
            resolving.append(handle)
            for dependency in descriptor.dependencies:
                visit(dependency, handle)
            for predecessor in descriptor.after:
                if predecessor in self._descriptors:
                    visit(predecessor, handle)
            resolving.pop()
            resolved[handle] = descriptor

        for handle in self._descriptors:
            visit(handle, None)

        return tuple(resolved.values())

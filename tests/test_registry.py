"""Tests for :mod:`fightlog.modules.registry`."""

from __future__ import annotations

from types import MappingProxyType

import pytest

from fightlog.modules.base import AnalysisModule
from fightlog.modules.registry import (
    DependencyCycleError,
    DuplicateModuleError,
    ModuleConfigurationError,
    ModuleDescriptor,
    ModuleRegistry,
    UnresolvedDependencyError,
)


class _Module(AnalysisModule):
    """Placeholder factory; descriptors override handle and dependencies."""


def _descriptor(handle: str, *dependencies: str, **kwargs) -> ModuleDescriptor:
    return ModuleDescriptor(handle=handle, factory=_Module, dependencies=dependencies, **kwargs)


def _order(registry: ModuleRegistry) -> list[str]:
    return [descriptor.handle for descriptor in registry.resolve()]


def test_resolve_places_dependencies_first_and_keeps_registration_order() -> None:
    registry = ModuleRegistry(
        [
            _descriptor("gauge", "combatants", "suggestions"),
            _descriptor("timeline"),
            _descriptor("combatants"),
            _descriptor("suggestions"),
        ]
    )

    assert _order(registry) == ["combatants", "suggestions", "gauge", "timeline"]


def test_resolve_is_deterministic() -> None:
    registry = ModuleRegistry(
        [_descriptor("c", "a"), _descriptor("b"), _descriptor("a"), _descriptor("d", "b", "c")]
    )

    assert _order(registry) == _order(registry) == ["a", "c", "b", "d"]


def test_unknown_dependency_is_reported() -> None:
    registry = ModuleRegistry([_descriptor("gauge", "combatants")])

    with pytest.raises(UnresolvedDependencyError, match="combatants"):
        registry.resolve()


def test_after_orders_without_requiring() -> None:
    registry = ModuleRegistry(
        [_descriptor("statuses", after=("casts",)), _descriptor("casts")]
    )

    assert _order(registry) == ["casts", "statuses"]
    assert _order(registry.without(["casts"])) == ["statuses"]
    assert registry.get("statuses").dependencies == ()

    with pytest.raises(DependencyCycleError):
        _descriptor("loop", after=("loop",))
    cyclic = ModuleRegistry([_descriptor("a", "b"), _descriptor("b", after=("a",))])
    with pytest.raises(DependencyCycleError):
        cyclic.resolve()


def test_cycle_is_reported_with_its_path() -> None:
    registry = ModuleRegistry(
        [_descriptor("a", "b"), _descriptor("b", "c"), _descriptor("c", "a")]
    )

    with pytest.raises(DependencyCycleError) as excinfo:
        registry.resolve()

    assert excinfo.value.cycle == ("a", "b", "c", "a")
    assert isinstance(excinfo.value, ModuleConfigurationError)


def test_self_dependency_is_a_cycle() -> None:
    with pytest.raises(DependencyCycleError):
        _descriptor("a", "a")


def test_duplicate_handles_are_rejected() -> None:
    registry = ModuleRegistry([_descriptor("a")])

    with pytest.raises(DuplicateModuleError):
        registry.register(_descriptor("a"))


def test_override_replaces_descriptor_in_place() -> None:
    registry = ModuleRegistry(
        [
            _descriptor("first"),
            _descriptor("cooldowns", policy={"cooldown_order": (1, 2)}),
            _descriptor("last"),
        ]
    )

    registry.override(_descriptor("cooldowns", policy={"cooldown_order": (9,)}))

    assert registry.handles == ("first", "cooldowns", "last")
    assert registry.get("cooldowns").policy["cooldown_order"] == (9,)


def test_override_of_unknown_handle_fails() -> None:
    with pytest.raises(LookupError):
        ModuleRegistry().override(_descriptor("missing"))


def test_declare_dependency_reorders_resolution() -> None:
    registry = ModuleRegistry([_descriptor("a"), _descriptor("b")])

    registry.declare_dependency("a", "b")

    assert registry.get("a").dependencies == ("b",)
    assert _order(registry) == ["b", "a"]


def test_without_drops_modules_and_breaks_dependants() -> None:
    registry = ModuleRegistry([_descriptor("a"), _descriptor("b", "a"), _descriptor("c")])

    assert _order(registry.without(["b"])) == ["a", "c"]
    with pytest.raises(UnresolvedDependencyError):
        registry.without(["a"]).resolve()


def test_descriptor_tables_are_immutable() -> None:
    descriptor = _descriptor("a", policy={"order": [1]}, settings={"limit": 3})

    assert isinstance(descriptor.policy, MappingProxyType)
    assert isinstance(descriptor.settings, MappingProxyType)
    with pytest.raises(TypeError):
        descriptor.settings["limit"] = 4  # type: ignore[index]


def test_for_module_reads_class_attributes() -> None:
    class Gauge(AnalysisModule):
        handle = "gauge"
        dependencies = ("combatants",)

    descriptor = ModuleDescriptor.for_module(Gauge, settings={"cap": 100})

    assert descriptor.handle == "gauge"
    assert descriptor.dependencies == ("combatants",)
    assert descriptor.factory is Gauge
    assert descriptor.settings["cap"] == 100


def test_descriptor_requires_module_factory() -> None:
    with pytest.raises(ModuleConfigurationError):
        ModuleDescriptor(handle="a", factory=object)  # type: ignore[arg-type]
    with pytest.raises(ModuleConfigurationError):
        ModuleDescriptor(handle="  ", factory=_Module)

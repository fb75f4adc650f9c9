"""Base class and construction context for analysis modules."""

from __future__ import annotations

from abc import ABC
from collections.abc import Mapping
from types import MappingProxyType
from typing import TYPE_CHECKING, Any, Callable, ClassVar, Sequence

from fightlog.events import CombatEvent, EventIssue, Fight
from fightlog.modules.hooks import EventFilter, HookDispatcher, HookHandler, HookRegistration

if TYPE_CHECKING:  # pragma: no cover - typing only
    from fightlog.modules.registry import ModuleDescriptor

__all__ = ["AnalysisModule", "ModuleContext"]


class ModuleContext:
    """Collaborators available to a module while it is built and initialised.

    Modules only reach the modules they declared as dependencies; any other
    handle is refused so module state stays behind its accessor methods.
    """

    def __init__(
        self,
        descriptor: "ModuleDescriptor",
        fight: Fight,
        dispatcher: HookDispatcher,
        instances: Mapping[str, "AnalysisModule"],
        *,
        report_issue: Callable[[EventIssue], None] | None = None,
    ) -> None:
        self._descriptor = descriptor
        self.fight = fight
        self._dispatcher = dispatcher
        self._instances = instances
        self._report_issue = report_issue

    @property
    def handle(self) -> str:
        return self._descriptor.handle

    @property
    def policy(self) -> Mapping[str, Any]:
        return self._descriptor.policy

    @property
    def settings(self) -> Mapping[str, Any]:
        return self._descriptor.settings

    def dependency(self, handle: str) -> "AnalysisModule":
        if handle not in self._descriptor.dependencies:
            raise LookupError(
                f"Module '{self.handle}' did not declare a dependency on '{handle}'"
            )
        try:
            return self._instances[handle]
        except KeyError:  # pragma: no cover - resolution guarantees presence
            raise LookupError(f"Module '{handle}' has not been initialised") from None

    def add_hook(
        self,
        event_type: str,
        handler: HookHandler,
        filter: EventFilter | None = None,
    ) -> HookRegistration:
        return self._dispatcher.register_hook(self.handle, event_type, handler, filter)

    def remove_hook(self, registration: HookRegistration) -> None:
        if registration.handle != self.handle:
            raise LookupError(
                f"Module '{self.handle}' cannot remove a hook owned by '{registration.handle}'"
            )
        self._dispatcher.remove_hook(registration)

    def report_issue(self, issue: EventIssue) -> None:
        if self._report_issue is not None:
            self._report_issue(issue)


class AnalysisModule(ABC):
    """Abstract analysis module.

    Subclasses declare a unique ``handle`` and the handles they depend on.
    ``after`` names modules that must merely run earlier when present; a
    failure in one of them does not disable this module. The parser builds modules in dependency order, then calls :meth:`init`
    (where hooks are registered), then :meth:`normalise` on the raw event
    list, dispatches the timeline and finally collects :meth:`output`.
    """

    handle: ClassVar[str] = ""
    dependencies: ClassVar[Sequence[str]] = ()
    after: ClassVar[Sequence[str]] = ()
    policy: ClassVar[Mapping[str, Any]] = MappingProxyType({})
    title: ClassVar[str] = ""

    def __init__(self, context: ModuleContext) -> None:
        self.context = context

    @property
    def fight(self) -> Fight:
        return self.context.fight

    @property
    def settings(self) -> Mapping[str, Any]:
        return self.context.settings

    # ------------------------------------------------------------------
    # Lifecycle hooks
    # ------------------------------------------------------------------
    def init(self) -> None:
        """Register hooks. Executed once every module has been constructed."""

    def normalise(self, events: list[CombatEvent]) -> list[CombatEvent]:
        """Return a repaired copy of the raw event list."""

        return events

    def output(self) -> Any:
        """Return the module payload handed to exporters."""

        return None

    def series(self) -> tuple[tuple[int, float], ...] | None:
        """Return an ``(elapsed, value)`` time series when the module has one."""

        return None

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------
    def add_hook(
        self,
        event_type: str,
        handler: HookHandler,
        *,
        by: str | int | None = None,
        to: str | int | None = None,
        ability_id: Any = None,
    ) -> HookRegistration:
        if by is None and to is None and ability_id is None:
            event_filter = None
        else:
            event_filter = EventFilter(by=by, to=to, ability_id=ability_id)
        return self.context.add_hook(event_type, handler, event_filter)

    def remove_hook(self, registration: HookRegistration) -> None:
        self.context.remove_hook(registration)

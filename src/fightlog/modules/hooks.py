"""Hook registrations and the single-pass event dispatcher."""

from __future__ import annotations

import itertools
import logging
from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List

from fightlog.events import ACTOR_ROLES, ANY_EVENT, EVENT_TYPES, CombatEvent, Fight

__all__ = [
    "EventFilter",
    "HandlerFailure",
    "HookContext",
    "HookDispatcher",
    "HookHandler",
    "HookRegistration",
]


logger = logging.getLogger(__name__)

HookHandler = Callable[[CombatEvent, "HookContext"], Any]
ActorSelector = str | int | None


def _normalise_actor_selector(value: ActorSelector, *, field_name: str) -> ActorSelector:
    if value is None or isinstance(value, int) and not isinstance(value, bool):
        return value
    if isinstance(value, str) and value in ACTOR_ROLES:
        return value
    raise ValueError(
        f"{field_name} must be an actor id or one of {', '.join(ACTOR_ROLES)}"
    )


@dataclass(frozen=True, slots=True)
class EventFilter:
    """Predicate evaluated against an event before its handler runs.

    ``by`` and ``to`` select the source and target, either by role
    (``"player"``, ``"party"``, ...) or by explicit actor id. ``ability_id``
    accepts a single identifier or a collection of identifiers.
    """

    by: ActorSelector = None
    to: ActorSelector = None
    ability_id: int | frozenset[int] | None = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "by", _normalise_actor_selector(self.by, field_name="by"))
        object.__setattr__(self, "to", _normalise_actor_selector(self.to, field_name="to"))
        ability = self.ability_id
        if ability is None or isinstance(ability, frozenset):
            return
        if isinstance(ability, int) and not isinstance(ability, bool):
            object.__setattr__(self, "ability_id", frozenset({ability}))
        elif isinstance(ability, Iterable):
            object.__setattr__(self, "ability_id", frozenset(int(item) for item in ability))
        else:
            raise TypeError("ability_id must be an integer or a collection of integers")

    @staticmethod
    def _actor_matches(selector: ActorSelector, actor_id: int | None, fight: Fight) -> bool:
        if selector is None:
            return True
        if isinstance(selector, int):
            return actor_id == selector
        return fight.role_of(actor_id) == selector

    def matches(self, event: CombatEvent, fight: Fight) -> bool:
        if self.ability_id is not None and event.ability_id not in self.ability_id:
            return False
        if not self._actor_matches(self.by, event.source_id, fight):
            return False
        return self._actor_matches(self.to, event.target_id, fight)


_MATCH_ALL = EventFilter()


@dataclass(frozen=True, slots=True)
class HookRegistration:
    """Subscription of ``handler`` to ``event_type`` owned by module ``handle``."""

    handle: str
    event_type: str
    handler: HookHandler = field(compare=False)
    filter: EventFilter = _MATCH_ALL
    index: int = 0


@dataclass(frozen=True, slots=True)
class HandlerFailure:
    """A handler exception isolated during dispatch."""

    handle: str
    event_index: int
    event_type: str
    message: str
    disabled: tuple[str, ...] = ()

    def as_dict(self) -> Dict[str, Any]:
        return {
            "handle": self.handle,
            "event_index": self.event_index,
            "event_type": self.event_type,
            "message": self.message,
            "disabled": list(self.disabled),
        }


class HookContext:
    """Read-only view of the dispatch position handed to every handler."""

    __slots__ = ("fight", "_index", "_timestamp")

    def __init__(self, fight: Fight) -> None:
        self.fight = fight
        self._index = -1
        self._timestamp = fight.start_time

    @property
    def index(self) -> int:
        return self._index

    @property
    def timestamp(self) -> int:
        return self._timestamp

    @property
    def elapsed(self) -> int:
        return self._timestamp - self.fight.start_time

    def _advance(self, index: int, timestamp: int) -> None:
        self._index = index
        self._timestamp = timestamp


def _transitive_dependants(
    dependencies: Mapping[str, Sequence[str]],
) -> Dict[str, frozenset[str]]:
    direct: Dict[str, set[str]] = {handle: set() for handle in dependencies}
    for handle, requirements in dependencies.items():
        for requirement in requirements:
            direct.setdefault(requirement, set()).add(handle)

    closure: Dict[str, frozenset[str]] = {}
    for handle in direct:
        seen: set[str] = set()
        stack = list(direct[handle])
        while stack:
            current = stack.pop()
            if current in seen:
                continue
            seen.add(current)
            stack.extend(direct.get(current, ()))
        closure[handle] = frozenset(seen)
    return closure


class HookDispatcher:
    """Replay a timeline once, invoking handlers in module order.

    Handlers for the same event run ordered by the rank of their owning module
    in ``module_order`` and, within a module, by registration order. A handler
    raising an exception disables its module and every module depending on it
    for the remainder of the pass; the rest of the analysis continues.
    """

    def __init__(
        self,
        module_order: Sequence[str],
        dependencies: Mapping[str, Sequence[str]] | None = None,
    ) -> None:
        self._rank = {handle: rank for rank, handle in enumerate(module_order)}
        self._dependants = _transitive_dependants(
            dependencies or {handle: () for handle in module_order}
        )
        self._hooks: Dict[str, List[HookRegistration]] = {}
        self._resolved: Dict[str, tuple[HookRegistration, ...]] = {}
        self._counter = itertools.count()
        self._dispatching = False
        self._disabled: set[str] = set()
        self._failures: List[HandlerFailure] = []

    # ------------------------------------------------------------------
    # Registration
    # ------------------------------------------------------------------
    def register_hook(
        self,
        handle: str,
        event_type: str,
        handler: HookHandler,
        filter: EventFilter | None = None,
    ) -> HookRegistration:
        if self._dispatching:
            raise RuntimeError("hooks cannot be registered while dispatching")
        if handle not in self._rank:
            raise LookupError(f"Module '{handle}' is not part of the resolved module order")
        if event_type != ANY_EVENT and event_type not in EVENT_TYPES:
            raise ValueError(f"unknown event type '{event_type}'")
        if not callable(handler):
            raise TypeError("handler must be callable")

        registration = HookRegistration(
            handle=handle,
            event_type=event_type,
            handler=handler,
            filter=filter or _MATCH_ALL,
            index=next(self._counter),
        )
        bucket = self._hooks.setdefault(event_type, [])
        bucket.append(registration)
        bucket.sort(key=self._sort_key)
        self._resolved.clear()
        return registration

    def remove_hook(self, registration: HookRegistration) -> None:
        bucket = self._hooks.get(registration.event_type, [])
        for position, candidate in enumerate(bucket):
            if candidate.index == registration.index:
                del bucket[position]
                self._resolved.clear()
                return
        raise LookupError(f"Hook {registration.index} is not registered")

    def hooks_for(self, event_type: str) -> tuple[HookRegistration, ...]:
        """Registrations receiving ``event_type`` in invocation order."""

        cached = self._resolved.get(event_type)
        if cached is None:
            combined = list(self._hooks.get(event_type, ()))
            if event_type != ANY_EVENT:
                combined.extend(self._hooks.get(ANY_EVENT, ()))
            cached = tuple(sorted(combined, key=self._sort_key))
            self._resolved[event_type] = cached
        return cached

    def _sort_key(self, registration: HookRegistration) -> tuple[int, int]:
        return (self._rank[registration.handle], registration.index)

    # ------------------------------------------------------------------
    # Isolation
    # ------------------------------------------------------------------
    @property
    def disabled(self) -> frozenset[str]:
        return frozenset(self._disabled)

    @property
    def failures(self) -> tuple[HandlerFailure, ...]:
        return tuple(self._failures)

    def disable(self, handle: str) -> tuple[str, ...]:
        """Disable ``handle`` and its dependants, returning the newly disabled handles."""

        dependants = sorted(
            self._dependants.get(handle, ()),
            key=lambda name: self._rank.get(name, len(self._rank)),
        )
        affected = [handle, *dependants]
        newly = tuple(name for name in affected if name not in self._disabled)
        self._disabled.update(newly)
        return newly

    def record_failure(
        self,
        handle: str,
        *,
        event_index: int,
        event_type: str,
        error: BaseException,
    ) -> HandlerFailure:
        disabled = self.disable(handle)
        failure = HandlerFailure(
            handle=handle,
            event_index=event_index,
            event_type=event_type,
            message=f"{type(error).__name__}: {error}",
            disabled=disabled,
        )
        self._failures.append(failure)
        if len(disabled) > 1:
            logger.warning(
                "Disabled modules depending on '%s': %s",
                handle,
                ", ".join(disabled[1:]),
                extra={"event": "dispatch.cascade_disable", "handle": handle},
            )
        return failure

    # ------------------------------------------------------------------
    # Dispatch
    # ------------------------------------------------------------------
    def dispatch(self, timeline: Iterable[CombatEvent], context: HookContext) -> int:
        """Replay ``timeline`` once; returns the number of handler invocations."""

        if self._dispatching:
            raise RuntimeError("dispatch is not re-entrant")

        invocations = 0
        previous = None
        self._dispatching = True
        try:
            for index, event in enumerate(timeline):
                if previous is not None and event.timestamp < previous:
                    raise ValueError(
                        f"timeline is not ordered: event {index} at {event.timestamp} "
                        f"follows {previous}"
                    )
                previous = event.timestamp
                context._advance(index, event.timestamp)

                for registration in self.hooks_for(event.type):
                    if registration.handle in self._disabled:
                        continue
                    if not registration.filter.matches(event, context.fight):
                        continue
                    invocations += 1
                    try:
                        registration.handler(event, context)
                    except Exception as exc:
                        logger.exception(
                            "Module '%s' failed while handling '%s' event %d",
                            registration.handle,
                            event.type,
                            index,
                            extra={"event": "dispatch.handler_failed", "handle": registration.handle},
                        )
                        self.record_failure(
                            registration.handle,
                            event_index=index,
                            event_type=event.type,
                            error=exc,
                        )
        finally:
            self._dispatching = False

        return invocations

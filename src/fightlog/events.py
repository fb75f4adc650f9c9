"""Combat event records, encounter metadata and the read-only timeline."""

from __future__ import annotations

import math
from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass, field, replace
from types import MappingProxyType
from typing import Any, Iterator, overload

__all__ = [
    "ACTION_EVENT_TYPES",
    "ACTOR_ROLES",
    "ANY_EVENT",
    "APPLY_STATUS",
    "APPLY_STATUS_STACK",
    "BEGIN_CAST",
    "CAST",
    "COMPLETE",
    "CombatEvent",
    "DAMAGE",
    "DEATH",
    "EVENT_TYPES",
    "EventDataError",
    "EventIssue",
    "Fight",
    "HEAL",
    "REFRESH_STATUS",
    "REMOVE_STATUS",
    "REMOVE_STATUS_STACK",
    "STATUS_EVENT_TYPES",
    "STATUS_FOLLOW_UP_TYPES",
    "Timeline",
    "canonical_event_type",
]


APPLY_STATUS = "apply_status"
REMOVE_STATUS = "remove_status"
APPLY_STATUS_STACK = "apply_status_stack"
REMOVE_STATUS_STACK = "remove_status_stack"
REFRESH_STATUS = "refresh_status"
DAMAGE = "damage"
HEAL = "heal"
BEGIN_CAST = "begin_cast"
CAST = "cast"
DEATH = "death"
COMPLETE = "complete"

ANY_EVENT = "*"

EVENT_TYPES: frozenset[str] = frozenset(
    {
        APPLY_STATUS,
        REMOVE_STATUS,
        APPLY_STATUS_STACK,
        REMOVE_STATUS_STACK,
        REFRESH_STATUS,
        DAMAGE,
        HEAL,
        BEGIN_CAST,
        CAST,
        DEATH,
        COMPLETE,
    }
)

# Events that only make sense once the status has been applied.
STATUS_FOLLOW_UP_TYPES: frozenset[str] = frozenset(
    {REMOVE_STATUS, APPLY_STATUS_STACK, REMOVE_STATUS_STACK, REFRESH_STATUS}
)
STATUS_EVENT_TYPES: frozenset[str] = STATUS_FOLLOW_UP_TYPES | {APPLY_STATUS}
ACTION_EVENT_TYPES: frozenset[str] = frozenset({BEGIN_CAST, CAST, DAMAGE, HEAL})

ACTOR_ROLES: tuple[str, ...] = ("player", "party", "pet", "enemy")

# Vocabulary used by the upstream log exports.
_EVENT_TYPE_ALIASES: Mapping[str, str] = MappingProxyType(
    {
        "applybuff": APPLY_STATUS,
        "applydebuff": APPLY_STATUS,
        "removebuff": REMOVE_STATUS,
        "removedebuff": REMOVE_STATUS,
        "applybuffstack": APPLY_STATUS_STACK,
        "applydebuffstack": APPLY_STATUS_STACK,
        "removebuffstack": REMOVE_STATUS_STACK,
        "removedebuffstack": REMOVE_STATUS_STACK,
        "refreshbuff": REFRESH_STATUS,
        "refreshdebuff": REFRESH_STATUS,
        "begincast": BEGIN_CAST,
        "calculateddamage": DAMAGE,
    }
)


class EventDataError(ValueError):
    """Raised when a raw event payload cannot be turned into a :class:`CombatEvent`."""


@dataclass(frozen=True, slots=True)
class EventIssue:
    """A raw event that was excluded from analysis together with the reason."""

    index: int
    reason: str
    payload: Mapping[str, Any] = field(default_factory=dict)

    def as_dict(self) -> dict[str, Any]:
        return {"index": self.index, "reason": self.reason, "payload": dict(self.payload)}


def canonical_event_type(value: str) -> str:
    """Return the canonical event type for ``value`` or raise :class:`EventDataError`."""

    if not isinstance(value, str) or not value:
        raise EventDataError("event type must be a non-empty string")
    lowered = value.strip().lower()
    if lowered in EVENT_TYPES:
        return lowered
    try:
        return _EVENT_TYPE_ALIASES[lowered]
    except KeyError:
        raise EventDataError(f"unknown event type '{value}'") from None


def _optional_int(payload: Mapping[str, Any], *keys: str) -> int | None:
    for key in keys:
        if key not in payload or payload[key] is None:
            continue
        value = payload[key]
        if isinstance(value, Mapping):
            # Upstream exports nest the ability as {"guid": ..., "name": ...}.
            value = value.get("guid")
            if value is None:
                continue
        if isinstance(value, bool) or not isinstance(value, (int, float, str)):
            raise EventDataError(f"'{key}' must be an integer identifier")
        try:
            return int(value)
        except (OverflowError, ValueError):
            raise EventDataError(f"'{key}' must be an integer identifier") from None
    return None


@dataclass(frozen=True, slots=True)
class CombatEvent:
    """Single combat log entry.

    ``sequence`` is the position of the event in the raw recording and breaks
    ties between events sharing a timestamp. ``fabricated`` marks events the
    normalisers synthesised.
    """

    timestamp: int
    type: str
    source_id: int | None = None
    target_id: int | None = None
    ability_id: int | None = None
    amount: float | None = None
    sequence: int = 0
    fabricated: bool = False

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any], *, sequence: int = 0) -> "CombatEvent":
        """Decode ``payload`` validating the fields required by its event type."""

        if not isinstance(payload, Mapping):
            raise EventDataError("event payload must be a mapping")

        raw_timestamp = payload.get("timestamp")
        if isinstance(raw_timestamp, bool) or not isinstance(raw_timestamp, (int, float)):
            raise EventDataError("'timestamp' must be a number")
        if not math.isfinite(raw_timestamp):
            raise EventDataError("'timestamp' must be finite")
        event_type = canonical_event_type(payload.get("type"))  # type: ignore[arg-type]

        source_id = _optional_int(payload, "source_id", "sourceID")
        target_id = _optional_int(payload, "target_id", "targetID")
        ability_id = _optional_int(payload, "ability_id", "abilityID", "ability")

        amount = payload.get("amount")
        if amount is not None:
            if isinstance(amount, bool) or not isinstance(amount, (int, float)):
                raise EventDataError("'amount' must be a number")
            if not math.isfinite(amount):
                raise EventDataError("'amount' must be finite")
            amount = float(amount)

        if event_type in STATUS_EVENT_TYPES:
            if target_id is None:
                raise EventDataError(f"'{event_type}' events require a target")
            if ability_id is None:
                raise EventDataError(f"'{event_type}' events require a status identifier")
        elif event_type in ACTION_EVENT_TYPES:
            if source_id is None:
                raise EventDataError(f"'{event_type}' events require a source")
            if ability_id is None:
                raise EventDataError(f"'{event_type}' events require an ability identifier")
            if event_type == DAMAGE and amount is None:
                raise EventDataError("'damage' events require an amount")
        elif event_type == DEATH and target_id is None:
            raise EventDataError("'death' events require a target")

        return cls(
            timestamp=int(raw_timestamp),
            type=event_type,
            source_id=source_id,
            target_id=target_id,
            ability_id=ability_id,
            amount=amount,
            sequence=sequence,
            fabricated=bool(payload.get("fabricated", False)),
        )

    def as_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "timestamp": self.timestamp,
            "type": self.type,
            "source_id": self.source_id,
            "target_id": self.target_id,
            "ability_id": self.ability_id,
        }
        if self.amount is not None:
            payload["amount"] = self.amount
        if self.fabricated:
            payload["fabricated"] = True
        return payload

    def fabricate(self, **changes: Any) -> "CombatEvent":
        """Return a synthetic copy of this event with ``changes`` applied."""

        return replace(self, fabricated=True, **changes)


@dataclass(frozen=True)
class Fight:
    """Encounter metadata supplied alongside the raw events."""

    start_time: int
    end_time: int
    player_id: int
    job: str | None = None
    actors: Mapping[int, str] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if self.end_time < self.start_time:
            raise ValueError("fight end_time must not precede start_time")
        actors: dict[int, str] = {}
        for actor_id, role in dict(self.actors).items():
            if role not in ACTOR_ROLES:
                raise ValueError(f"unknown actor role '{role}' for actor {actor_id}")
            actors[int(actor_id)] = role
        actors.setdefault(int(self.player_id), "player")
        object.__setattr__(self, "actors", MappingProxyType(actors))

    @property
    def duration(self) -> int:
        return self.end_time - self.start_time

    def role_of(self, actor_id: int | None) -> str | None:
        if actor_id is None:
            return None
        if actor_id == self.player_id:
            return "player"
        return self.actors.get(actor_id)

    def party_members(self) -> tuple[int, ...]:
        """Return the player and party actor identifiers."""

        return tuple(
            actor_id
            for actor_id, role in self.actors.items()
            if role in {"player", "party"}
        )

    @classmethod
    def from_mapping(cls, payload: Mapping[str, Any]) -> "Fight":
        try:
            start_time = int(payload["start_time"])
            end_time = int(payload["end_time"])
            player_id = int(payload["player_id"])
        except KeyError as exc:
            raise ValueError(f"fight metadata is missing '{exc.args[0]}'") from None
        raw_actors = payload.get("actors") or {}
        if isinstance(raw_actors, Mapping):
            actors = {int(key): str(value) for key, value in raw_actors.items()}
        else:
            actors = {int(entry["id"]): str(entry["role"]) for entry in raw_actors}
        job = payload.get("job")
        return cls(
            start_time=start_time,
            end_time=end_time,
            player_id=player_id,
            job=str(job).lower() if job else None,
            actors=actors,
        )

    def as_dict(self) -> dict[str, Any]:
        return {
            "start_time": self.start_time,
            "end_time": self.end_time,
            "player_id": self.player_id,
            "job": self.job,
            "actors": [{"id": key, "role": value} for key, value in self.actors.items()],
        }


class Timeline(Sequence[CombatEvent]):
    """Immutable, timestamp-ordered sequence of :class:`CombatEvent`.

    Construction sorts stably by timestamp, so events sharing a timestamp keep
    their relative order.
    """

    __slots__ = ("_events", "start_time", "end_time")

    def __init__(
        self,
        events: Iterable[CombatEvent],
        *,
        start_time: int = 0,
        end_time: int | None = None,
    ) -> None:
        self._events: tuple[CombatEvent, ...] = tuple(
            sorted(events, key=lambda event: event.timestamp)
        )
        self.start_time = start_time
        if end_time is None:
            end_time = self._events[-1].timestamp if self._events else start_time
        self.end_time = end_time

    @overload
    def __getitem__(self, index: int) -> CombatEvent: ...

    @overload
    def __getitem__(self, index: slice) -> tuple[CombatEvent, ...]: ...

    def __getitem__(self, index):
        return self._events[index]

    def __len__(self) -> int:
        return len(self._events)

    def __iter__(self) -> Iterator[CombatEvent]:
        return iter(self._events)

    def __eq__(self, other: object) -> bool:
        if isinstance(other, Timeline):
            return self._events == other._events
        if isinstance(other, tuple):
            return self._events == other
        return NotImplemented

    def __hash__(self) -> int:
        return hash(self._events)

    def __repr__(self) -> str:
        return f"Timeline({len(self._events)} events, start_time={self.start_time})"

    @property
    def events(self) -> tuple[CombatEvent, ...]:
        return self._events

    def elapsed(self, timestamp: int) -> int:
        """Milliseconds elapsed since the start of the encounter."""

        return timestamp - self.start_time

"""Cooldown usage rows ordered by a replaceable policy table."""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from typing import Any, Dict, List, Tuple

from fightlog.events import CAST, CombatEvent
from fightlog.modules.base import AnalysisModule
from fightlog.modules.hooks import HookContext

__all__ = ["CooldownGroup", "CooldownRow", "Cooldowns", "parse_cooldown_order"]


@dataclass(frozen=True)
class CooldownGroup:
    """Several actions shown together; ``merge`` collapses them into one row."""

    name: str
    actions: Tuple[int, ...]
    merge: bool = False


@dataclass(frozen=True)
class CooldownRow:
    name: str
    action_ids: Tuple[int, ...]
    uses: Tuple[int, ...]

    def as_dict(self) -> Dict[str, Any]:
        return {"name": self.name, "action_ids": list(self.action_ids), "uses": list(self.uses)}


def parse_cooldown_order(entries: Sequence[Any]) -> Tuple[int | CooldownGroup, ...]:
    """Validate a ``cooldown_order`` table made of action ids and groups."""

    parsed: List[int | CooldownGroup] = []
    for entry in entries:
        if isinstance(entry, CooldownGroup):
            parsed.append(entry)
        elif isinstance(entry, Mapping):
            try:
                name = str(entry["name"])
                actions = tuple(int(action) for action in entry["actions"])
            except KeyError as exc:
                raise ValueError(f"cooldown group is missing '{exc.args[0]}'") from None
            if not actions:
                raise ValueError(f"cooldown group '{name}' has no actions")
            parsed.append(CooldownGroup(name=name, actions=actions, merge=bool(entry.get("merge", False))))
        elif isinstance(entry, int) and not isinstance(entry, bool):
            parsed.append(entry)
        else:
            raise ValueError(f"invalid cooldown order entry {entry!r}")
    return tuple(parsed)


class Cooldowns(AnalysisModule):
    """Record when the tracked player used each cooldown.

    Without a ``cooldown_order`` policy every cast action gets a row in order
    of first use. With a policy only the listed actions are tracked, in the
    listed order.
    """

    handle = "cooldowns"
    title = "Cooldowns"

    def __init__(self, context) -> None:
        super().__init__(context)
        self._order = parse_cooldown_order(context.policy.get("cooldown_order", ()))
        self._uses: Dict[int, List[int]] = {}

    def init(self) -> None:
        tracked = self.tracked_actions()
        self.add_hook(CAST, self._on_cast, by="player", ability_id=tracked or None)

    def tracked_actions(self) -> frozenset[int]:
        tracked: set[int] = set()
        for entry in self._order:
            if isinstance(entry, CooldownGroup):
                tracked.update(entry.actions)
            else:
                tracked.add(entry)
        return frozenset(tracked)

    def _on_cast(self, event: CombatEvent, context: HookContext) -> None:
        self._uses.setdefault(event.ability_id, []).append(context.elapsed)

    def uses_of(self, action_id: int) -> Tuple[int, ...]:
        return tuple(self._uses.get(action_id, ()))

    def rows(self) -> Tuple[CooldownRow, ...]:
        if not self._order:
            return tuple(
                CooldownRow(name=str(action), action_ids=(action,), uses=tuple(uses))
                for action, uses in self._uses.items()
            )

        rows: List[CooldownRow] = []
        for entry in self._order:
            if isinstance(entry, CooldownGroup):
                if entry.merge:
                    merged = sorted(use for action in entry.actions for use in self.uses_of(action))
                    rows.append(CooldownRow(entry.name, entry.actions, tuple(merged)))
                else:
                    rows.extend(
                        CooldownRow(f"{entry.name}/{action}", (action,), self.uses_of(action))
                        for action in entry.actions
                    )
            else:
                rows.append(CooldownRow(str(entry), (entry,), self.uses_of(entry)))
        return tuple(rows)

    def output(self) -> List[Dict[str, Any]]:
        return [row.as_dict() for row in self.rows()]

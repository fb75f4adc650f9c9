"""Tests for :mod:`fightlog.modules.hooks`."""

from __future__ import annotations

import logging

import pytest

from fightlog.events import ANY_EVENT, CAST, DAMAGE, Timeline
from fightlog.modules.hooks import EventFilter, HookContext, HookDispatcher
from tests.helpers import ENEMY_ID, PARTY_IDS, PLAYER_ID, build_fight, cast, damage


def _recorder(log: list, name: str):
    def handler(event, context: HookContext) -> None:
        log.append((name, context.index, event.ability_id))

    return handler


def test_handlers_run_in_module_rank_then_registration_order() -> None:
    fight = build_fight()
    dispatcher = HookDispatcher(["combatants", "gauge"])
    log: list = []
    dispatcher.register_hook("gauge", CAST, _recorder(log, "gauge-1"))
    dispatcher.register_hook("combatants", CAST, _recorder(log, "combatants"))
    dispatcher.register_hook("gauge", CAST, _recorder(log, "gauge-2"))

    invocations = dispatcher.dispatch(Timeline([cast(10, 1)]), HookContext(fight))

    assert [entry[0] for entry in log] == ["combatants", "gauge-1", "gauge-2"]
    assert invocations == 3


def test_wildcard_hooks_receive_every_event_in_rank_order() -> None:
    fight = build_fight()
    dispatcher = HookDispatcher(["a", "b"])
    log: list = []
    dispatcher.register_hook("b", ANY_EVENT, _recorder(log, "b-any"))
    dispatcher.register_hook("a", DAMAGE, _recorder(log, "a-damage"))

    dispatcher.dispatch(Timeline([cast(10, 1), damage(20, 2)]), HookContext(fight))

    assert log == [("b-any", 0, 1), ("a-damage", 1, 2), ("b-any", 1, 2)]


def test_filters_select_by_role_actor_and_ability() -> None:
    fight = build_fight()
    dispatcher = HookDispatcher(["m"])
    log: list = []
    dispatcher.register_hook("m", CAST, _recorder(log, "player"), EventFilter(by="player"))
    dispatcher.register_hook("m", CAST, _recorder(log, "party"), EventFilter(by="party"))
    dispatcher.register_hook("m", CAST, _recorder(log, "ability"), EventFilter(ability_id=[7, 8]))
    dispatcher.register_hook("m", CAST, _recorder(log, "to-enemy"), EventFilter(to=ENEMY_ID))

    timeline = Timeline(
        [
            cast(10, 7, source=PLAYER_ID),
            cast(20, 9, source=PARTY_IDS[0], target=PLAYER_ID),
        ]
    )
    dispatcher.dispatch(timeline, HookContext(fight))

    assert log == [
        ("player", 0, 7),
        ("ability", 0, 7),
        ("to-enemy", 0, 7),
        ("party", 1, 9),
    ]


def test_filter_rejects_unknown_roles() -> None:
    with pytest.raises(ValueError):
        EventFilter(by="boss")


def test_context_exposes_elapsed_time() -> None:
    fight = build_fight(start_time=1000)
    dispatcher = HookDispatcher(["m"])
    seen: list = []
    dispatcher.register_hook("m", CAST, lambda event, context: seen.append(context.elapsed))

    dispatcher.dispatch(Timeline([cast(1500, 1), cast(4000, 1)]), HookContext(fight))

    assert seen == [500, 3000]


def test_remove_hook_stops_delivery() -> None:
    fight = build_fight()
    dispatcher = HookDispatcher(["m"])
    log: list = []
    registration = dispatcher.register_hook("m", CAST, _recorder(log, "m"))

    dispatcher.remove_hook(registration)
    dispatcher.dispatch(Timeline([cast(10, 1)]), HookContext(fight))

    assert log == []
    with pytest.raises(LookupError):
        dispatcher.remove_hook(registration)


def test_registration_validates_module_and_event_type() -> None:
    dispatcher = HookDispatcher(["m"])

    with pytest.raises(LookupError):
        dispatcher.register_hook("other", CAST, lambda event, context: None)
    with pytest.raises(ValueError):
        dispatcher.register_hook("m", "teleport", lambda event, context: None)


def test_registering_during_dispatch_is_rejected() -> None:
    fight = build_fight()
    dispatcher = HookDispatcher(["m"])

    def greedy(event, context) -> None:
        dispatcher.register_hook("m", DAMAGE, lambda *_: None)

    dispatcher.register_hook("m", CAST, greedy)
    dispatcher.dispatch(Timeline([cast(10, 1)]), HookContext(fight))

    (failure,) = dispatcher.failures
    assert failure.message.startswith("RuntimeError")
    assert dispatcher.hooks_for(DAMAGE) == ()


def test_failing_module_and_dependants_are_disabled(caplog: pytest.LogCaptureFixture) -> None:
    fight = build_fight()
    dispatcher = HookDispatcher(
        ["base", "dependant", "independent"],
        {"base": (), "dependant": ("base",), "independent": ()},
    )
    log: list = []

    def explode(event, context) -> None:
        raise ZeroDivisionError("boom")

    dispatcher.register_hook("base", CAST, explode)
    dispatcher.register_hook("dependant", CAST, _recorder(log, "dependant"))
    dispatcher.register_hook("independent", CAST, _recorder(log, "independent"))

    with caplog.at_level(logging.ERROR, logger="fightlog"):
        dispatcher.dispatch(Timeline([cast(10, 1), cast(20, 2)]), HookContext(fight))

    assert log == [("independent", 0, 1), ("independent", 1, 2)]
    assert dispatcher.disabled == {"base", "dependant"}
    (failure,) = dispatcher.failures
    assert failure.handle == "base"
    assert failure.event_index == 0
    assert failure.event_type == CAST
    assert failure.disabled == ("base", "dependant")
    assert failure.message == "ZeroDivisionError: boom"
    assert any(record.exc_info for record in caplog.records)


def test_unordered_input_is_rejected() -> None:
    fight = build_fight()
    dispatcher = HookDispatcher(["m"])

    with pytest.raises(ValueError):
        dispatcher.dispatch([cast(20, 1), cast(10, 1)], HookContext(fight))

"""Tests for the pre-pull status history repair."""

from __future__ import annotations

import pytest

pytest.importorskip("hypothesis")
from hypothesis import given, settings
from hypothesis import strategies as st

from fightlog.events import (
    APPLY_STATUS,
    APPLY_STATUS_STACK,
    REFRESH_STATUS,
    REMOVE_STATUS,
    REMOVE_STATUS_STACK,
    CombatEvent,
)
from fightlog.normalisation import merge_insertions, normalise_status_history
from tests.helpers import cast, sequenced, status


def test_removal_without_application_gets_synthetic_application() -> None:
    removal = status(REMOVE_STATUS, 5000, 100, target=5)

    result = normalise_status_history([removal], start_time=0)

    assert [(e.type, e.target_id, e.ability_id, e.timestamp) for e in result.events] == [
        (APPLY_STATUS, 5, 100, -1),
        (REMOVE_STATUS, 5, 100, 5000),
    ]
    assert result.events[0].fabricated is True
    assert result.events[1] is removal
    assert result.fabricated == 1
    assert result.issues == ()


def test_known_application_prevents_synthesis() -> None:
    events = [
        status(APPLY_STATUS, 100, 100, target=5),
        status(REFRESH_STATUS, 200, 100, target=5),
        status(REMOVE_STATUS, 300, 100, target=5),
    ]

    result = normalise_status_history(events, start_time=0)

    assert list(result.events) == events
    assert result.fabricated == 0


def test_one_synthesis_per_target_and_status() -> None:
    events = [
        status(APPLY_STATUS_STACK, 100, 100, target=5),
        status(REMOVE_STATUS_STACK, 200, 100, target=5),
        status(REMOVE_STATUS, 300, 100, target=5),
        status(REMOVE_STATUS, 400, 100, target=6),
    ]

    result = normalise_status_history(events, start_time=1000)

    synthetic = [event for event in result.events if event.fabricated]
    assert [(e.target_id, e.ability_id, e.timestamp) for e in synthetic] == [
        (6, 100, 999),
        (5, 100, 999),
    ]
    assert list(result.events[2:]) == events


def test_head_insertions_land_in_reverse_discovery_order() -> None:
    events = [
        status(REMOVE_STATUS, 10, 1, target=5),
        status(REMOVE_STATUS, 20, 2, target=5),
        status(REMOVE_STATUS, 30, 3, target=5),
    ]

    result = normalise_status_history(events, start_time=0)

    assert [event.ability_id for event in result.events[:3]] == [3, 2, 1]


def test_malformed_status_events_are_excluded_and_reported() -> None:
    good = status(REMOVE_STATUS, 50, 100, target=5)
    broken = CombatEvent(timestamp=20, type=REMOVE_STATUS, target_id=5, sequence=7)

    result = normalise_status_history([broken, good], start_time=0)

    assert broken not in result.events
    assert len(result.issues) == 1
    assert result.issues[0].index == 7
    assert "status identifier" in result.issues[0].reason


def test_non_status_events_pass_through_untouched() -> None:
    events = [cast(10, 1), cast(20, 2)]

    result = normalise_status_history(events, start_time=0)

    assert list(result.events) == events


def test_merge_insertions_splices_before_index() -> None:
    events = [cast(10, 1), cast(20, 2)]
    first = cast(15, 10)
    second = cast(15, 11)

    merged = merge_insertions(events, [(1, first), (1, second), (5, cast(30, 12))])

    assert [event.ability_id for event in merged] == [1, 11, 10, 2, 12]


_STATUS_TYPES = st.sampled_from(
    [APPLY_STATUS, REMOVE_STATUS, APPLY_STATUS_STACK, REMOVE_STATUS_STACK, REFRESH_STATUS]
)
_STATUS_EVENTS = st.lists(
    st.builds(
        lambda event_type, timestamp, target, ability: status(
            event_type, timestamp, ability, target=target
        ),
        _STATUS_TYPES,
        st.integers(min_value=0, max_value=10_000),
        st.integers(min_value=1, max_value=4),
        st.integers(min_value=100, max_value=103),
    ),
    max_size=40,
).map(lambda events: sequenced(sorted(events, key=lambda event: event.timestamp)))


@settings(max_examples=150, deadline=None)
@given(_STATUS_EVENTS)
def test_every_follow_up_is_preceded_by_an_application(events: list[CombatEvent]) -> None:
    result = normalise_status_history(events, start_time=0)

    applied: set[tuple[int, int]] = set()
    for event in result.events:
        pair = (event.target_id, event.ability_id)
        if event.type == APPLY_STATUS:
            applied.add(pair)
        else:
            assert pair in applied


@settings(max_examples=150, deadline=None)
@given(_STATUS_EVENTS)
def test_normalisation_is_idempotent(events: list[CombatEvent]) -> None:
    once = normalise_status_history(events, start_time=0)
    twice = normalise_status_history(once.events, start_time=0)

    assert twice.events == once.events
    assert twice.fabricated == 0


@settings(max_examples=100, deadline=None)
@given(_STATUS_EVENTS)
def test_real_events_keep_their_relative_order(events: list[CombatEvent]) -> None:
    result = normalise_status_history(events, start_time=0)

    assert [event for event in result.events if not event.fabricated] == events

"""Tests for recording persistence."""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from fightlog.events import CAST, DAMAGE, EventDataError
from fightlog.io import (
    RecordingFormatError,
    decode_recording,
    iter_events,
    load_recording,
    write_recording,
)
from tests.helpers import apply_status, build_fight, cast, damage


def _events():
    return [apply_status(100, 1823), cast(1000, 15989), damage(1100, 15989, amount=2500.0)]


@pytest.mark.parametrize(
    "filename",
    ["recording.json", "recording.json.gz", "recording.jsonl", "recording.jsonl.gz"],
)
def test_written_recordings_load_back(tmp_path: Path, filename: str) -> None:
    fight = build_fight(job="dnc")
    events = _events()

    path = write_recording(fight, events, tmp_path / filename)
    recording = load_recording(path)

    assert recording.fight == fight
    assert [event.as_dict() for event in recording.events] == [event.as_dict() for event in events]
    assert [event.sequence for event in recording.events] == [0, 1, 2]
    assert recording.issues == ()


def test_gzip_is_detected_from_content(tmp_path: Path) -> None:
    path = write_recording(build_fight(), _events(), tmp_path / "recording.json", compress=True)

    assert path.read_bytes()[:2] == b"\x1f\x8b"
    assert len(load_recording(path).events) == 3


def test_jsonl_layout_has_fight_header(tmp_path: Path) -> None:
    path = write_recording(build_fight(), _events(), tmp_path / "recording.jsonl")

    lines = path.read_text(encoding="utf8").splitlines()
    assert list(json.loads(lines[0])) == ["fight"]
    assert len(lines) == 4


def test_malformed_events_become_issues(tmp_path: Path) -> None:
    document = {
        "fight": {"start_time": 0, "end_time": 1000, "player_id": 1, "job": "DNC"},
        "events": [
            {"timestamp": 10, "type": "cast", "sourceID": 1, "ability": {"guid": 16005}},
            {"timestamp": 20, "type": "limitbreak"},
            {"timestamp": 30, "type": "damage", "source_id": 1, "ability_id": 5},
            {"timestamp": 40, "type": "applybuff", "targetID": 1, "abilityID": 1847},
        ],
    }
    path = tmp_path / "upstream.json"
    path.write_text(json.dumps(document), encoding="utf8")

    recording = load_recording(path)

    assert recording.fight.job == "dnc"
    assert [event.ability_id for event in recording.events] == [16005, 1847]
    assert [event.sequence for event in recording.events] == [0, 3]
    assert [issue.index for issue in recording.issues] == [1, 2]
    assert "unknown event type" in recording.issues[0].reason
    assert recording.issues[1].payload["ability_id"] == 5


@pytest.mark.parametrize(
    "document",
    [
        [],
        {"events": []},
        {"fight": {"start_time": 0, "end_time": 10, "player_id": 1}},
        {"fight": {"start_time": 0, "end_time": 10}, "events": []},
        {"fight": {"start_time": 10, "end_time": 0, "player_id": 1}, "events": []},
    ],
)
def test_invalid_documents_are_rejected(document) -> None:
    with pytest.raises(RecordingFormatError):
        decode_recording(document)


def test_invalid_json_is_a_format_error(tmp_path: Path) -> None:
    path = tmp_path / "broken.json"
    path.write_text("{not json", encoding="utf8")

    with pytest.raises(RecordingFormatError):
        load_recording(path)

    empty = tmp_path / "empty.jsonl"
    empty.write_text("", encoding="utf8")
    with pytest.raises(RecordingFormatError):
        load_recording(empty)


def test_missing_recording(tmp_path: Path) -> None:
    with pytest.raises(FileNotFoundError):
        load_recording(tmp_path / "absent.json")


def test_iter_events_streams_and_fails_on_bad_lines(tmp_path: Path) -> None:
    path = write_recording(build_fight(), _events(), tmp_path / "recording.jsonl.gz")

    assert [event.type for event in iter_events(path)][1:] == [CAST, DAMAGE]

    bad = tmp_path / "bad.jsonl"
    bad.write_text(
        '{"fight": {"start_time": 0, "end_time": 10, "player_id": 1}}\n'
        '{"timestamp": 1, "type": "cast", "source_id": 1, "ability_id": 2}\n'
        '{"timestamp": 2, "type": "damage", "source_id": 1, "ability_id": 2}\n',
        encoding="utf8",
    )
    with pytest.raises(EventDataError, match="bad.jsonl:3"):
        list(iter_events(bad))


def test_non_finite_numbers_become_issues(tmp_path: Path) -> None:
    path = tmp_path / "overflow.json"
    path.write_text(
        '{"fight": {"start_time": 0, "end_time": 1000, "player_id": 1},'
        ' "events": ['
        '{"timestamp": 10, "type": "cast", "source_id": 1, "ability_id": 16005},'
        '{"timestamp": NaN, "type": "cast", "source_id": 1, "ability_id": 16005},'
        '{"timestamp": 20, "type": "damage", "source_id": 1, "ability_id": 5, "amount": Infinity},'
        '{"timestamp": 30, "type": "cast", "source_id": Infinity, "ability_id": 16005}'
        "]}",
        encoding="utf8",
    )

    recording = load_recording(path)

    assert [event.timestamp for event in recording.events] == [10]
    assert [issue.index for issue in recording.issues] == [1, 2, 3]
    assert "finite" in recording.issues[0].reason
    assert "finite" in recording.issues[1].reason
    assert "integer identifier" in recording.issues[2].reason


def test_non_finite_fight_metadata_is_a_format_error() -> None:
    document = {"fight": {"start_time": float("inf"), "end_time": 10, "player_id": 1}, "events": []}

    with pytest.raises(RecordingFormatError):
        decode_recording(document)


def test_undecodable_bytes_are_format_errors(tmp_path: Path) -> None:
    binary = tmp_path / "binary.json"
    binary.write_bytes(b"\xff\xfe{}")
    with pytest.raises(RecordingFormatError, match="UTF-8"):
        load_recording(binary)

    written = write_recording(build_fight(), _events(), tmp_path / "full.json.gz")
    compressed = written.read_bytes()
    truncated = tmp_path / "truncated.json.gz"
    truncated.write_bytes(compressed[: len(compressed) // 2])
    with pytest.raises(RecordingFormatError, match="gzip"):
        load_recording(truncated)

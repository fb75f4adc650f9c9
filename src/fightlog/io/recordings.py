"""Persistence helpers for encounter recordings.

Two layouts are supported. A JSON document ``{"fight": {...}, "events":
[...]}`` and a newline-delimited layout whose first line is the ``{"fight":
{...}}`` header followed by one event per line. Either may be gzip
compressed; readers detect compression from the file content.
"""

from __future__ import annotations

import gzip
import json
import logging
import zlib
from collections.abc import Iterable, Iterator, Mapping, Sequence
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Tuple

from fightlog.events import CombatEvent, EventDataError, EventIssue, Fight

__all__ = [
    "Recording",
    "RecordingFormatError",
    "decode_events",
    "decode_recording",
    "iter_events",
    "load_recording",
    "write_recording",
]


logger = logging.getLogger(__name__)

_GZIP_MAGIC = b"\x1f\x8b"
_JSONL_SUFFIXES = {".jsonl", ".ndjson"}
_GZIP_SUFFIXES = {".gz", ".gzip"}


class RecordingFormatError(ValueError):
    """Raised when a recording cannot be parsed as a whole."""


@dataclass(frozen=True)
class Recording:
    """Encounter metadata plus decoded events and the raw events rejected."""

    fight: Fight
    events: Tuple[CombatEvent, ...]
    issues: Tuple[EventIssue, ...] = ()


def decode_events(
    payloads: Iterable[Any],
) -> tuple[Tuple[CombatEvent, ...], Tuple[EventIssue, ...]]:
    """Decode raw event payloads, collecting malformed ones as issues."""

    events: list[CombatEvent] = []
    issues: list[EventIssue] = []
    for index, payload in enumerate(payloads):
        try:
            events.append(CombatEvent.from_payload(payload, sequence=index))
        except EventDataError as exc:
            issues.append(
                EventIssue(
                    index=index,
                    reason=str(exc),
                    payload=dict(payload) if isinstance(payload, Mapping) else {"raw": payload},
                )
            )
            logger.warning(
                "Skipping malformed event %d: %s",
                index,
                exc,
                extra={"event": "recording.invalid_event", "index": index},
            )
    return tuple(events), tuple(issues)


def decode_recording(document: Mapping[str, Any]) -> Recording:
    if not isinstance(document, Mapping):
        raise RecordingFormatError("recording must be a JSON object")
    fight_payload = document.get("fight")
    if not isinstance(fight_payload, Mapping):
        raise RecordingFormatError("recording is missing the 'fight' object")
    raw_events = document.get("events")
    if not isinstance(raw_events, list):
        raise RecordingFormatError("recording is missing the 'events' array")
    try:
        fight = Fight.from_mapping(fight_payload)
    except (KeyError, OverflowError, TypeError, ValueError) as exc:
        raise RecordingFormatError(f"invalid fight metadata: {exc}") from exc
    events, issues = decode_events(raw_events)
    return Recording(fight=fight, events=events, issues=issues)


def _is_jsonl(path: Path) -> bool:
    suffixes = [suffix.lower() for suffix in path.suffixes]
    if suffixes and suffixes[-1] in _GZIP_SUFFIXES:
        suffixes = suffixes[:-1]
    return bool(suffixes) and suffixes[-1] in _JSONL_SUFFIXES


def _read_text(source: Path) -> str:
    raw = source.read_bytes()
    try:
        if raw[:2] == _GZIP_MAGIC:
            raw = gzip.decompress(raw)
        return raw.decode("utf8")
    except (EOFError, gzip.BadGzipFile, zlib.error) as exc:
        raise RecordingFormatError(f"{source}: corrupt gzip stream ({exc})") from exc
    except UnicodeDecodeError as exc:
        raise RecordingFormatError(f"{source}: not UTF-8 text ({exc.reason})") from exc


def _iter_lines(source: Path) -> Iterator[tuple[int, Any]]:
    for number, line in enumerate(_read_text(source).splitlines(), start=1):
        if not line.strip():
            continue
        try:
            yield number, json.loads(line)
        except json.JSONDecodeError as exc:
            raise RecordingFormatError(f"{source}:{number}: invalid JSON ({exc.msg})") from exc


def load_recording(path: str | Path) -> Recording:
    """Load a recording persisted with :func:`write_recording`."""

    source = Path(path)
    if not source.exists():
        raise FileNotFoundError(f"Recording {source} does not exist")

    if _is_jsonl(source):
        lines = _iter_lines(source)
        try:
            _, header = next(lines)
        except StopIteration:
            raise RecordingFormatError(f"Recording {source} is empty") from None
        if not isinstance(header, Mapping) or "fight" not in header:
            raise RecordingFormatError(f"Recording {source} does not start with a fight header")
        document = {"fight": header["fight"], "events": [payload for _, payload in lines]}
    else:
        try:
            document = json.loads(_read_text(source))
        except json.JSONDecodeError as exc:
            raise RecordingFormatError(f"{source}: invalid JSON ({exc.msg})") from exc

    recording = decode_recording(document)
    logger.debug(
        "Loaded recording",
        extra={
            "event": "recording.loaded",
            "path": str(source),
            "events": len(recording.events),
            "issues": len(recording.issues),
        },
    )
    return recording


def iter_events(path: str | Path) -> Iterator[CombatEvent]:
    """Yield the events of a newline-delimited recording one at a time.

    Unlike :func:`load_recording` a malformed event raises
    :class:`~fightlog.events.EventDataError` naming its line.
    """

    source = Path(path)
    if not source.exists():
        raise FileNotFoundError(f"Recording {source} does not exist")

    sequence = 0
    for number, payload in _iter_lines(source):
        if isinstance(payload, Mapping) and "fight" in payload and "type" not in payload:
            continue
        try:
            yield CombatEvent.from_payload(payload, sequence=sequence)
        except EventDataError as exc:
            raise EventDataError(f"{source}:{number}: {exc}") from exc
        sequence += 1


def write_recording(
    fight: Fight,
    events: Sequence[CombatEvent],
    path: str | Path,
    *,
    compress: bool | None = None,
) -> Path:
    """Persist ``fight`` and ``events``.

    The layout follows the destination suffix (``.jsonl`` selects the
    newline-delimited layout). ``compress`` defaults to ``True`` when the
    destination ends in ``.gz``.
    """

    destination = Path(path)
    destination.parent.mkdir(parents=True, exist_ok=True)
    if compress is None:
        compress = destination.suffix.lower() in _GZIP_SUFFIXES
    opener = gzip.open if compress else open

    with opener(destination, "wt", encoding="utf8") as handle:
        if _is_jsonl(destination):
            json.dump({"fight": fight.as_dict()}, handle, sort_keys=True)
            handle.write("\n")
            for event in events:
                json.dump(event.as_dict(), handle, sort_keys=True)
                handle.write("\n")
        else:
            json.dump(
                {"fight": fight.as_dict(), "events": [event.as_dict() for event in events]},
                handle,
                sort_keys=True,
            )
            handle.write("\n")
    return destination

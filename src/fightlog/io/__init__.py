"""Reading and writing encounter recordings."""

from fightlog.io.recordings import (
    Recording,
    RecordingFormatError,
    decode_events,
    decode_recording,
    iter_events,
    load_recording,
    write_recording,
)

__all__ = [
    "Recording",
    "RecordingFormatError",
    "decode_events",
    "decode_recording",
    "iter_events",
    "load_recording",
    "write_recording",
]

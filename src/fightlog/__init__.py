"""Top-level package for fightlog.

fightlog replays the combat events of a single encounter through a set of
dependency-ordered analysis modules. A normalisation pass repairs status
history the recording could not capture, then modules subscribe to the
read-only timeline to derive resource gauges, cooldown usage and
suggestions for the tracked player.
"""

from ._version import __version__
from .analysis import analyze_events, analyze_recording
from .events import CombatEvent, EventIssue, Fight, Timeline
from .exporters import exporters_registry
from .gauge import ResourceGauge
from .io import Recording, load_recording, write_recording
from .jobs import available_jobs, build_registry
from .modules import (
    AnalysisModule,
    AnalysisResult,
    EncounterParser,
    ModuleDescriptor,
    ModuleRegistry,
)
from .modules.config import ModuleConfig
from .normalisation import normalise_status_history

__all__ = [
    "AnalysisModule",
    "AnalysisResult",
    "CombatEvent",
    "EncounterParser",
    "EventIssue",
    "Fight",
    "ModuleConfig",
    "ModuleDescriptor",
    "ModuleRegistry",
    "Recording",
    "ResourceGauge",
    "Timeline",
    "__version__",
    "analyze_events",
    "analyze_recording",
    "available_jobs",
    "build_registry",
    "exporters_registry",
    "load_recording",
    "normalise_status_history",
    "write_recording",
]

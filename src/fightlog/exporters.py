"""Renderers turning analysis results into text."""

from __future__ import annotations

import csv
import json
from dataclasses import asdict, is_dataclass
from io import StringIO
from types import MappingProxyType
from typing import Any, Callable, Iterator, Mapping, Tuple

__all__ = ["Exporter", "csv_exporter", "exporters_registry", "json_exporter"]


Exporter = Callable[[Mapping[str, Any]], str]

_SERIES_HEADER = ("module", "elapsed", "value")


def _to_builtin(value: Any) -> Any:
    # Results expose ``as_dict``; plain dataclasses are converted field by field.
    if hasattr(value, "as_dict"):
        value = value.as_dict()
    elif is_dataclass(value) and not isinstance(value, type):
        value = asdict(value)
    if isinstance(value, Mapping):
        return {str(key): _to_builtin(item) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [_to_builtin(item) for item in value]
    return value


def _series_rows(document: Mapping[str, Any]) -> Iterator[Tuple[str, Any, Any]]:
    for handle, samples in document.get("series", {}).items():
        for elapsed, value in samples:
            yield handle, elapsed, value


def json_exporter(results: Mapping[str, Any]) -> str:
    return json.dumps(_to_builtin(results), indent=2, sort_keys=True)


def csv_exporter(results: Mapping[str, Any]) -> str:
    """One ``module,elapsed,value`` row per time series sample."""

    out = StringIO()
    writer = csv.writer(out, lineterminator="\n")
    writer.writerow(_SERIES_HEADER)
    writer.writerows(_series_rows(_to_builtin(results)))
    return out.getvalue()


exporters_registry: Mapping[str, Exporter] = MappingProxyType({"json": json_exporter, "csv": csv_exporter})

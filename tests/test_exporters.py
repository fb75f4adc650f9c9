from __future__ import annotations

import csv
import io
import json
from dataclasses import dataclass

from fightlog.exporters import csv_exporter, exporters_registry, json_exporter
from fightlog.jobs import build_registry
from fightlog.jobs.dnc import data as dnc
from tests.helpers import apply_status, build_fight, damage, run_analysis


def _result():
    events = [
        apply_status(0, dnc.STATUS_ESPRIT),
        damage(1000, dnc.CASCADE),
        damage(2000, dnc.FOUNTAIN),
    ]
    _, result = run_analysis(build_registry("dnc"), build_fight(job="dnc"), events)
    return result


@dataclass
class _Sample:
    name: str
    values: tuple


def test_registry_lists_json_and_csv() -> None:
    assert set(exporters_registry) == {"json", "csv"}
    assert exporters_registry["json"] is json_exporter


def test_json_exporter_accepts_results_and_dataclasses() -> None:
    payload = json.loads(json_exporter({"result": _result(), "sample": _Sample("a", (1, 2))}))

    assert payload["sample"] == {"name": "a", "values": [1, 2]}
    assert payload["result"]["series"]["esprit_gauge"] == [[1000, 2.5], [2000, 5.0]]
    assert payload["result"]["outputs"]["esprit_gauge"]["total_generated"] == 5.0


def test_csv_exporter_flattens_series() -> None:
    rows = list(csv.reader(io.StringIO(csv_exporter(_result().as_dict()))))

    assert rows[0] == ["module", "elapsed", "value"]
    assert rows[1:] == [["esprit_gauge", "1000", "2.5"], ["esprit_gauge", "2000", "5.0"]]


def test_csv_exporter_without_series() -> None:
    assert csv_exporter({"outputs": {}}) == "module,elapsed,value\n"

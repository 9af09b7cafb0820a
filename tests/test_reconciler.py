"""Tests for priority-based reconciliation."""

from __future__ import annotations

import io
import json
import random
from pathlib import Path

import pytest

from codemeta_harvester.config import ReconcileOptions
from codemeta_harvester.errors import NoSourcesError, ReconcileError
from codemeta_harvester.models import PartialRecord
from codemeta_harvester.reconciler import OverrideFields, Reconciler, merge_records, order_records


def _record(rank: int, kind: str, sequence: int, data) -> PartialRecord:
    payload = data if isinstance(data, str) else json.dumps(data)
    return PartialRecord(rank=rank, kind=kind, identifier="demo", sequence=sequence, payload=payload)


def _records() -> list[PartialRecord]:
    return [
        _record(2, "citation", 1, {"name": "Frog", "version": "1.0"}),
        _record(3, "pyproject", 2, {"name": "frog-nlp", "description": "Tagger", "version": "0.9"}),
        _record(8, "readme", 3, {"readme": "README.md", "name": "readme-name"}),
    ]


def test_lowest_rank_wins_regardless_of_input_order(tmp_path: Path) -> None:
    reconciler = Reconciler()
    records = _records()
    expected = None
    for seed in range(5):
        shuffled = list(records)
        random.Random(seed).shuffle(shuffled)
        final = reconciler.reconcile("demo", shuffled, OverrideFields(identifier="demo"))
        if expected is None:
            expected = final.data
        assert final.data == expected

    assert expected["name"] == "Frog"
    assert expected["version"] == "1.0"
    assert expected["description"] == "Tagger"
    assert expected["readme"] == "README.md"


def test_order_records_applies_highest_rank_first() -> None:
    ordered = order_records(
        [
            _record(3, "pyproject", 4, {}),
            _record(8, "readme", 1, {}),
            _record(3, "setup-cfg", 2, {}),
            _record(0, "codemeta", 3, {}),
        ]
    )

    assert [(record.rank, record.sequence) for record in ordered] == [(8, 1), (3, 2), (3, 4), (0, 3)]


def test_merge_records_accumulates_help_links_and_context() -> None:
    base = {
        "@context": "https://w3id.org/codemeta/3.0",
        "softwareHelp": [{"@type": "WebSite", "url": "https://a.example.org"}],
        "name": "old",
    }
    update = {
        "@context": ["https://w3id.org/codemeta/3.0", "https://w3id.org/software-types"],
        "softwareHelp": [
            {"@type": "WebSite", "url": "https://a.example.org"},
            {"@type": "WebSite", "url": "https://b.example.org"},
        ],
        "name": "new",
    }

    merged = merge_records(base, update)

    assert merged["@context"] == ["https://w3id.org/codemeta/3.0", "https://w3id.org/software-types"]
    assert [item["url"] for item in merged["softwareHelp"]] == ["https://a.example.org", "https://b.example.org"]
    assert merged["name"] == "new"
    assert base["name"] == "old"


def test_overrides_for_released_ref(tmp_path: Path) -> None:
    reconciler = Reconciler()
    records = [_record(8, "readme", 1, {"identifier": "something-else", "codeRepository": "x"})]

    final = reconciler.reconcile(
        "frog",
        records,
        OverrideFields(
            identifier="frog",
            code_repository="https://github.com/LanguageMachines/frog",
            released=True,
            ref_name="v0.26.1",
            base_uri="https://tools.example.org/",
        ),
    )

    assert final.data["identifier"] == "frog"
    assert final.data["codeRepository"] == "https://github.com/LanguageMachines/frog"
    assert final.data["version"] == "0.26.1"
    assert final.data["@id"] == "https://tools.example.org/frog/0.26.1"
    assert final.data["@context"] == "https://w3id.org/codemeta/3.0"
    assert final.data["@type"] == "SoftwareSourceCode"


def test_overrides_for_mainline_ref() -> None:
    final = Reconciler().reconcile(
        "frog",
        [_record(2, "citation", 1, {"version": "0.26"})],
        OverrideFields(identifier="frog", released=False, ref_name="master", base_uri="https://tools.example.org"),
    )

    assert final.data["@id"] == "https://tools.example.org/frog"
    assert final.data["version"] == "0.26"


def test_written_output_honours_options(tmp_path: Path) -> None:
    output = tmp_path / "out" / "demo.codemeta.json"
    reconciler = Reconciler(ReconcileOptions(indent=4, sort_keys=True, drop=["readme"]))

    final = reconciler.reconcile("demo", _records(), OverrideFields(identifier="demo"), output)

    text = output.read_text(encoding="utf-8")
    assert json.loads(text) == final.data
    assert "readme" not in final.data
    assert text.startswith('{\n    "@context"')
    assert final.path == output
    assert final.sources == ["readme", "pyproject", "citation"]
    assert [path.name for path in output.parent.iterdir()] == ["demo.codemeta.json"]


def test_stream_output() -> None:
    stream = io.StringIO()

    Reconciler().reconcile("demo", _records(), OverrideFields(identifier="demo"), stream=stream)

    assert json.loads(stream.getvalue())["identifier"] == "demo"


def test_no_sources_removes_stale_output(tmp_path: Path) -> None:
    output = tmp_path / "demo.codemeta.json"
    output.write_text('{"stale": true}', encoding="utf-8")

    with pytest.raises(NoSourcesError) as excinfo:
        Reconciler().reconcile("demo", [], OverrideFields(identifier="demo"), output)

    assert "no metadata sources" in str(excinfo.value)
    assert not output.exists()


def test_merge_failure_removes_output(tmp_path: Path) -> None:
    output = tmp_path / "demo.codemeta.json"
    output.write_text('{"stale": true}', encoding="utf-8")
    records = _records() + [_record(4, "authors", 9, "[not an object]")]

    with pytest.raises(ReconcileError):
        Reconciler().reconcile("demo", records, OverrideFields(identifier="demo"), output)

    assert not output.exists()
    assert list(tmp_path.iterdir()) == []

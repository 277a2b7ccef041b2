"""Test CSV and JSON export."""
import csv
import io
import json

import pytest

from kgpath.export import ExportError, to_csv, to_json, write_export
from kgpath.flatten import flatten

from tests.helpers.messages import treats_message


def test_csv():
    """Every key is a column and every value is quoted."""
    rows = flatten({"message": treats_message()}, pk="pk1").rows
    text = to_csv(rows)
    assert text.startswith('"')
    records = list(csv.DictReader(io.StringIO(text)))
    assert len(records) == 3
    assert "support_graph_id" in records[0]
    assert records[0]["support_graph_id"] == ""
    assert records[1]["support_graph_id"] == "g1"
    assert records[0]["publications"] == "PMID:1;PMID:2"
    assert records[0]["clinical_trials"] == ""


def test_csv_nested_values():
    """Nested values are JSON encoded."""
    text = to_csv(
        [
            {
                "edge_id": "e0",
                "clinical_trials": [{"id": "NCT01", "description": "x"}],
                "clinical_trials_count": 1,
            }
        ]
    )
    record = next(csv.DictReader(io.StringIO(text)))
    assert json.loads(record["clinical_trials"]) == [{"id": "NCT01", "description": "x"}]


def test_json():
    """JSON exports wrap rows with metadata."""
    flattened = flatten({"message": treats_message()}, pk="pk1")
    exported = to_json(flattened.rows, flattened.metadata)
    assert exported["metadata"]["pk"] == "pk1"
    assert len(exported["data"]) == 3
    assert exported["exportInfo"]["rowCount"] == 3
    assert exported["exportInfo"]["format"] == "json"
    json.dumps(exported)


def test_nothing_to_export():
    """Empty row lists are refused."""
    with pytest.raises(ExportError):
        to_csv([])
    with pytest.raises(ExportError):
        to_json([])


def test_write_export(tmp_path):
    """Exports are written to timestamped files."""
    flattened = flatten({"message": treats_message()}, pk="pk1")
    path = write_export(flattened.rows, tmp_path / "out", "json", flattened.metadata)
    assert path.name.startswith("ars_data_pk1_")
    assert path.suffix == ".json"
    assert json.loads(path.read_text())["exportInfo"]["rowCount"] == 3

    path = write_export(flattened.rows, tmp_path, "csv")
    assert path.name.startswith("ars_data_unknown_")

    with pytest.raises(ValueError):
        write_export(flattened.rows, tmp_path, "xlsx")

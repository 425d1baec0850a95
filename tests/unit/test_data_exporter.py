"""Unit tests for DataExporter."""

import csv
import json

import pytest

from contextflow.errors import ExtractionError
from contextflow.models.insight import Insight
from contextflow.models.note import Note, NoteType, Priority
from contextflow.services.data_exporter import DataExporter


@pytest.fixture
def exporter():
    return DataExporter()


@pytest.fixture
def populated(workspace, repository):
    """Workspace with two notes and one insight."""
    workspace.add_notes(
        [
            Note(owner_id="alice", title="Launch", summary="Ship v2", priority=Priority.HIGH),
            Note(owner_id="alice", title="Read", note_type=NoteType.PERSONAL),
        ]
    )
    workspace.insights = [
        repository.create_insight("alice", Insight(owner_id="alice", title="T", message="M"))
    ]
    return workspace


class TestBuildExport:
    def test_document_keys(self, exporter, populated):
        document = exporter.build_export(populated)

        assert set(document) == {"contexts", "insights", "exportedAt"}
        assert [c["title"] for c in document["contexts"]] == ["Launch", "Read"]
        assert document["insights"][0]["title"] == "T"


class TestWriteFiles:
    def test_write_json(self, exporter, populated, tmp_path):
        path = exporter.write_json(populated, tmp_path / "out" / "export.json")

        data = json.loads(path.read_text(encoding="utf-8"))
        assert len(data["contexts"]) == 2
        assert data["contexts"][0]["priority"] == "high"

    def test_write_csv(self, exporter, populated, tmp_path):
        path = exporter.write_csv(populated.snapshot_notes(), tmp_path / "export.csv")

        with path.open(newline="", encoding="utf-8") as handle:
            rows = list(csv.reader(handle))
        assert rows[0] == ["title", "summary", "type", "priority"]
        assert rows[1] == ["Launch", "Ship v2", "custom", "high"]
        assert rows[2] == ["Read", "", "personal", "medium"]

    def test_default_filename(self, exporter):
        name = exporter.default_filename("csv")
        assert name.startswith("contextflow-export-")
        assert name.endswith(".csv")


class TestRestore:
    def test_restore_round_trip(self, exporter, populated, workspace, repository, tmp_path):
        """Test that an exported document re-creates its notes."""
        path = exporter.write_json(populated, tmp_path / "export.json")
        document = exporter.load_document(path)

        restored = exporter.restore(document, workspace)

        assert [n.title for n in restored] == ["Launch", "Read"]
        assert all(n.id is not None for n in restored)
        assert restored[0].priority == Priority.HIGH
        assert len(repository.list_notes("alice")) == 4

    def test_restore_skips_non_objects(self, exporter, workspace):
        restored = exporter.restore({"contexts": ["junk", {"title": "Keep"}]}, workspace)
        assert [n.title for n in restored] == ["Keep"]

    def test_missing_contexts(self, exporter, workspace):
        with pytest.raises(ExtractionError, match="contexts"):
            exporter.restore({"insights": []}, workspace)

    def test_load_invalid_file(self, exporter, tmp_path):
        path = tmp_path / "bad.json"
        path.write_text("not json")
        with pytest.raises(ExtractionError, match="bad.json"):
            exporter.load_document(path)

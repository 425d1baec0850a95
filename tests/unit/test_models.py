"""Unit tests for ContextFlow models."""

from datetime import datetime

import pytest

from contextflow.errors import UnsupportedFormatError
from contextflow.models.chat import ChatMessage, DailySummary, Role
from contextflow.models.extraction import FileFormat, UploadedFile, extension_of
from contextflow.models.insight import Insight, InsightType
from contextflow.models.note import Note, NoteMetadata, NoteType, Priority, normalize_title


class TestNote:
    """Tests for the Note dataclass."""

    def test_defaults(self):
        """Test default type, priority and connections."""
        note = Note(owner_id="alice", title="Groceries")
        assert note.note_type == NoteType.CUSTOM
        assert note.priority == Priority.MEDIUM
        assert note.connections == []
        assert note.metadata is None

    def test_blank_title_becomes_untitled(self):
        """Test that a blank title is normalized."""
        note = Note(owner_id="alice", title="   ")
        assert note.title == "Untitled"

    def test_string_enums_are_coerced(self):
        """Test that string values are converted to enums."""
        note = Note(owner_id="alice", title="X", note_type="project", priority="HIGH")
        assert note.note_type == NoteType.PROJECT
        assert note.priority == Priority.HIGH

    def test_unknown_enum_values_fall_back(self):
        """Test fallback for unrecognized type and priority."""
        note = Note(owner_id="alice", title="X", note_type="weird", priority="urgent")
        assert note.note_type == NoteType.CUSTOM
        assert note.priority == Priority.MEDIUM

    def test_to_dict(self):
        """Test export serialization."""
        stamp = datetime(2024, 5, 1, 9, 30)
        note = Note(
            owner_id="alice",
            title="Trip",
            summary="Book flights",
            priority=Priority.LOW,
            connections=["travel"],
            id=3,
            created_at=stamp,
            updated_at=stamp,
        )
        data = note.to_dict()
        assert data["id"] == 3
        assert data["type"] == "custom"
        assert data["priority"] == "low"
        assert data["connections"] == ["travel"]
        assert data["last_updated"] == "2024-05-01T09:30:00"
        assert data["metadata"] is None


class TestNormalizeTitle:
    """Tests for title normalization."""

    def test_keeps_title(self):
        assert normalize_title("  Report ") == "Report"

    def test_uses_fallback(self):
        assert normalize_title("", "report.pdf") == "report.pdf"

    def test_untitled_when_everything_blank(self):
        assert normalize_title(None, " ") == "Untitled"


class TestNoteMetadata:
    """Tests for note provenance."""

    def test_round_trip(self):
        """Test that metadata survives dict conversion."""
        metadata = NoteMetadata(
            source="PDF Document",
            original_filename="report.pdf",
            imported_at=datetime(2024, 1, 2, 3, 4, 5),
        )
        restored = NoteMetadata.from_dict(metadata.to_dict())
        assert restored == metadata
        assert metadata.to_dict()["originalFilename"] == "report.pdf"


class TestInsight:
    """Tests for the Insight dataclass."""

    def test_type_parsing(self):
        assert InsightType.parse("Opportunity") == InsightType.OPPORTUNITY
        assert InsightType.parse("nonsense") == InsightType.ANALYSIS
        assert InsightType.parse(None) == InsightType.ANALYSIS

    def test_post_init_coerces(self):
        insight = Insight(
            owner_id="alice", title="T", message="M", insight_type="conflict", actionable=1
        )
        assert insight.insight_type == InsightType.CONFLICT
        assert insight.actionable is True


class TestFileFormat:
    """Tests for format resolution."""

    @pytest.mark.parametrize(
        "filename,expected",
        [
            ("notes.txt", FileFormat.TXT),
            ("DATA.CSV", FileFormat.CSV),
            ("dump.json", FileFormat.JSON),
            ("letter.docx", FileFormat.DOCX),
            ("scan.PNG", FileFormat.PNG),
        ],
    )
    def test_from_filename(self, filename, expected):
        assert FileFormat.from_filename(filename) == expected

    def test_unsupported_extension(self):
        """Test that unknown extensions are rejected."""
        with pytest.raises(UnsupportedFormatError, match="Unsupported file type: exe"):
            FileFormat.from_filename("setup.exe")

    def test_missing_extension(self):
        with pytest.raises(UnsupportedFormatError, match=r"\(none\)"):
            FileFormat.from_filename("README")

    def test_remote_formats(self):
        assert FileFormat.PDF.is_remote
        assert FileFormat.JPEG.is_remote
        assert not FileFormat.CSV.is_remote

    def test_source_labels(self):
        assert FileFormat.DOCX.source_label == "Word Document"
        assert FileFormat.PNG.source_label == "Image (OCR)"
        assert FileFormat.TXT.source_label == "TXT File"


class TestUploadedFile:
    """Tests for uploaded files."""

    def test_extension_and_stem(self):
        upload = UploadedFile(filename="Meeting.Notes.TXT", data=b"")
        assert upload.extension == "txt"
        assert upload.stem == "Meeting.Notes"

    def test_stem_without_extension(self):
        assert UploadedFile(filename="README", data=b"").stem == "README"

    def test_extension_of_dotfile(self):
        assert extension_of(".bashrc") == ""

    def test_from_path(self, tmp_path):
        path = tmp_path / "plan.txt"
        path.write_text("hello")
        upload = UploadedFile.from_path(path)
        assert upload.filename == "plan.txt"
        assert upload.data == b"hello"
        assert upload.media_type == "text/plain"


class TestChatModels:
    """Tests for chat and summary models."""

    def test_to_wire(self):
        message = ChatMessage(role="user", content="Hi")
        assert message.role == Role.USER
        assert message.to_wire() == {"role": "user", "content": "Hi"}

    def test_empty_summary(self):
        summary = DailySummary.empty(datetime(2024, 1, 1).date())
        assert summary.is_empty
        assert summary.count == 0

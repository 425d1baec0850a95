"""Pytest fixtures for ContextFlow tests."""

import tempfile
from pathlib import Path
from unittest.mock import MagicMock

import pytest

from contextflow.database.repository import Repository
from contextflow.models.note import Note, NoteType, Priority
from contextflow.services.insight_generator import InsightGenerator
from contextflow.services.workspace import Workspace


@pytest.fixture
def temp_db_path():
    """Provide a temporary database path."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir) / "test.db"


@pytest.fixture
def repository(temp_db_path):
    """Provide a repository with a temporary database."""
    return Repository(f"sqlite:///{temp_db_path}")


@pytest.fixture
def mock_llm():
    """Language-model service stand-in answering with a fixed insight."""
    llm = MagicMock()
    llm.chat.return_value = (
        '{"type": "reminder", "title": "Follow up", '
        '"message": "Check in on this soon.", "actionable": true}'
    )
    return llm


@pytest.fixture
def workspace(repository, mock_llm):
    """Workspace for owner "alice" backed by the temporary repository."""
    ws = Workspace(
        owner_id="alice",
        repository=repository,
        insight_generator=InsightGenerator(mock_llm),
        max_workers=2,
    )
    yield ws
    ws.close()


@pytest.fixture
def sample_note():
    """A note that has not been persisted yet."""
    return Note(
        owner_id="alice",
        title="Quarterly planning",
        summary="Draft the Q3 roadmap with the team",
        note_type=NoteType.PROJECT,
        priority=Priority.HIGH,
        connections=["team", "roadmap"],
    )

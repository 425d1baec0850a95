"""Unit tests for the per-user Workspace."""

import threading
from datetime import date, datetime
from unittest.mock import MagicMock

import pytest

from contextflow.errors import StoreError, TransportError
from contextflow.models.chat import DailySummary
from contextflow.models.insight import Insight, InsightType
from contextflow.models.note import Note, Priority
from contextflow.services.insight_generator import InsightGenerator
from contextflow.services.workspace import Workspace


@pytest.fixture
def failing_repository():
    """Repository whose writes always fail."""
    repo = MagicMock()
    repo.list_notes.return_value = []
    repo.list_insights.return_value = []
    error = StoreError("disk full")
    repo.create_notes.side_effect = error
    repo.update_note.side_effect = error
    repo.delete_note.side_effect = error
    repo.create_insight.side_effect = error
    return repo


class TestNotes:
    """Tests for note mutations."""

    def test_add_note_persists(self, workspace, repository, sample_note):
        note = workspace.add_note(sample_note)

        assert note.id is not None
        assert workspace.notes == [note]
        assert repository.get_note("alice", note.id) is not None

    def test_add_notes_prepends(self, workspace):
        workspace.add_note(Note(owner_id="alice", title="Old"))
        workspace.add_notes([Note(owner_id="alice", title="A"), Note(owner_id="alice", title="B")])
        assert [n.title for n in workspace.notes] == ["A", "B", "Old"]

    def test_load_mirrors_store(self, workspace, repository, sample_note):
        repository.create_note("alice", sample_note)
        repository.create_note("bob", Note(owner_id="bob", title="Not mine"))

        workspace.load()

        assert [n.title for n in workspace.notes] == ["Quarterly planning"]

    def test_failed_write_keeps_local_note(self, failing_repository, sample_note):
        """Test that a store failure leaves the optimistic note and a warning."""
        with Workspace("alice", failing_repository) as ws:
            result = ws.add_note(sample_note)

            assert result is sample_note
            assert result.id is None
            assert ws.notes == [sample_note]
            warnings = ws.drain_warnings()
            assert len(warnings) == 1
            assert "disk full" in warnings[0]
            assert ws.drain_warnings() == []

    def test_add_notes_reraises_store_error(self, failing_repository, sample_note):
        with Workspace("alice", failing_repository) as ws:
            with pytest.raises(StoreError):
                ws.add_notes([sample_note])

    def test_update_note(self, workspace, sample_note):
        note = workspace.add_note(sample_note)

        updated = workspace.update_note(note.id, priority=Priority.LOW, summary="Later")

        assert updated.priority == Priority.LOW
        assert workspace.get_note(note.id).summary == "Later"

    def test_update_unknown_note(self, workspace):
        with pytest.raises(KeyError):
            workspace.update_note(999, title="Nope")

    def test_update_invalid_field(self, workspace, sample_note):
        note = workspace.add_note(sample_note)
        with pytest.raises(ValueError):
            workspace.update_note(note.id, id=5)

    def test_update_store_failure_keeps_local_change(self, failing_repository):
        with Workspace("alice", failing_repository) as ws:
            ws.notes = [Note(owner_id="alice", title="Draft", id=1)]

            updated = ws.update_note(1, title="Final")

            assert updated.title == "Final"
            assert ws.get_note(1).title == "Final"
            assert ws.drain_warnings()

    def test_delete_note(self, workspace, repository, sample_note):
        note = workspace.add_note(sample_note)

        assert workspace.delete_note(note.id) is True

        assert workspace.notes == []
        assert repository.get_note("alice", note.id) is None

    def test_delete_store_failure_is_warning(self, failing_repository):
        with Workspace("alice", failing_repository) as ws:
            ws.notes = [Note(owner_id="alice", title="Draft", id=1)]
            assert ws.delete_note(1) is True
            assert ws.notes == []
            assert ws.drain_warnings()

    def test_search(self, workspace):
        workspace.add_notes(
            [
                Note(owner_id="alice", title="Dentist", summary="Tuesday 10am"),
                Note(owner_id="alice", title="Groceries", summary="Milk, eggs"),
            ]
        )
        assert [n.title for n in workspace.search("dent")] == ["Dentist"]
        assert [n.title for n in workspace.search("EGGS")] == ["Groceries"]
        assert len(workspace.search("  ")) == 2


class TestInsights:
    """Tests for background insight generation."""

    def test_request_insight_persists(self, workspace, repository, sample_note):
        note = workspace.add_note(sample_note)
        completed = threading.Event()

        future = workspace.request_insight(note, on_complete=lambda f: completed.set())
        outcome = future.result(timeout=5)

        assert outcome.insight.id is not None
        assert outcome.insight.note_id == note.id
        assert outcome.insight.insight_type == InsightType.REMINDER
        assert workspace.insights[0] == outcome.insight
        assert repository.list_insights("alice")[0].title == "Follow up"
        assert workspace.wait_for_insights(timeout=5) is True
        assert workspace.generating is False
        assert completed.wait(timeout=5)

    def test_insight_sees_earlier_notes(self, workspace, mock_llm):
        first = workspace.add_note(Note(owner_id="alice", title="Gym plan"))
        second = workspace.add_note(Note(owner_id="alice", title="Diet"))

        workspace.request_insight(second).result(timeout=5)

        system = mock_llm.chat.call_args[1]["system"]
        assert first.title in system
        assert second.title in system

    def test_repeated_requests_produce_separate_insights(self, workspace, sample_note):
        note = workspace.add_note(sample_note)
        workspace.request_insight(note)
        workspace.request_insight(note)
        workspace.wait_for_insights(timeout=5)
        assert len(workspace.insights) == 2

    def test_unreachable_service_adds_fallback_and_warning(self, workspace, mock_llm, sample_note):
        mock_llm.chat.side_effect = TransportError("Cannot connect")
        note = workspace.add_note(sample_note)

        outcome = workspace.request_insight(note).result(timeout=5)

        assert outcome.degraded is True
        assert outcome.insight.insight_type == InsightType.ANALYSIS
        assert workspace.insights == [outcome.insight]
        assert any("Cannot connect" in w for w in workspace.drain_warnings())

    def test_insights_kept_after_note_deletion(self, workspace, repository, sample_note):
        note = workspace.add_note(sample_note)
        workspace.request_insight(note).result(timeout=5)

        workspace.delete_note(note.id)

        assert len(workspace.insights) == 1
        assert len(repository.list_insights("alice")) == 1

    def test_insight_store_failure_keeps_local_insight(
        self, failing_repository, mock_llm, sample_note
    ):
        with Workspace("alice", failing_repository, InsightGenerator(mock_llm)) as ws:
            outcome = ws.request_insight(sample_note).result(timeout=5)

            assert outcome.insight.id is None
            assert ws.insights == [outcome.insight]
            assert ws.drain_warnings()

    def test_without_generator(self, repository, sample_note):
        with Workspace("alice", repository) as ws:
            with pytest.raises(RuntimeError):
                ws.request_insight(sample_note)


class TestDailySummary:
    """Tests for the cached daily summary."""

    def test_cached_until_note_count_changes(self, workspace):
        aggregator = MagicMock()
        aggregator.summarize_today.return_value = DailySummary(
            day=date(2024, 6, 3), count=1, narrative="One note."
        )
        workspace.notes = [Note(owner_id="alice", title="A", created_at=datetime(2024, 6, 3))]

        first = workspace.daily_summary(aggregator)
        second = workspace.daily_summary(aggregator)
        assert first is second
        assert aggregator.summarize_today.call_count == 1

        workspace.notes.append(Note(owner_id="alice", title="B"))
        workspace.daily_summary(aggregator)
        assert aggregator.summarize_today.call_count == 2

    def test_cache_access_is_locked(self, workspace):
        """Test that the cache is read and written under the lock, but not the model call."""

        class RecordingLock:
            def __init__(self):
                self.held = False
                self.entries = 0

            def __enter__(self):
                self.held = True
                self.entries += 1

            def __exit__(self, *exc_info):
                self.held = False

        lock = RecordingLock()
        workspace._lock = lock
        held_during_call = []

        def summarize(notes, today=None):
            held_during_call.append(lock.held)
            return DailySummary(day=date(2024, 6, 3), count=0)

        aggregator = MagicMock()
        aggregator.summarize_today.side_effect = summarize

        workspace.daily_summary(aggregator)

        assert held_during_call == [False]
        # Note snapshot, cache read, cache write
        assert lock.entries == 3


class TestDismissInsight:
    """Tests for dismissing insights."""

    def test_dismiss_removes_locally_and_from_store(self, workspace, repository, sample_note):
        note = workspace.add_note(sample_note)
        insight = workspace.request_insight(note).result(timeout=5).insight

        assert workspace.dismiss_insight(insight.id) is True

        assert workspace.insights == []
        assert repository.list_insights("alice") == []

    def test_dismiss_unknown_insight(self, workspace):
        assert workspace.dismiss_insight(999) is False

    def test_dismiss_store_failure_is_warning(self, failing_repository):
        failing_repository.delete_insight.side_effect = StoreError("locked")
        with Workspace("alice", failing_repository) as ws:
            ws.insights = [Insight(owner_id="alice", title="T", message="M", id=4)]

            assert ws.dismiss_insight(4) is True
            assert ws.insights == []
            assert any("locked" in w for w in ws.drain_warnings())

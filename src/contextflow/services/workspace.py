"""Per-user session state mirrored from the store.

A Workspace is passed explicitly into every orchestrator call. It keeps the
owner's notes and insights in memory, applies mutations locally first and
then writes them to the store, and runs insight generation in the
background.
"""

import dataclasses
import logging
import threading
from collections.abc import Callable
from concurrent.futures import Future, ThreadPoolExecutor, wait
from datetime import date, datetime
from typing import Any, Optional

from contextflow.database.repository import EDITABLE_NOTE_FIELDS, Repository
from contextflow.errors import StoreError
from contextflow.models.chat import DailySummary
from contextflow.models.insight import Insight
from contextflow.models.note import Note
from contextflow.services.daily_summary import DailySummaryAggregator
from contextflow.services.insight_generator import InsightGenerator, InsightOutcome

logger = logging.getLogger(__name__)


class Workspace:
    """Explicit session context for one owner.

    Local collections are updated optimistically. A failed store write is
    recorded as a warning and the local change is kept.

    Args:
        owner_id (str): Authenticated user id; scopes every store call
        repository (Repository): Backing store
        insight_generator (InsightGenerator): Used by request_insight()
        max_workers (int): Concurrent insight generation requests
    """

    def __init__(
        self,
        owner_id: str,
        repository: Repository,
        insight_generator: Optional[InsightGenerator] = None,
        max_workers: int = 4,
    ):
        self.owner_id = owner_id
        self.repository = repository
        self.insight_generator = insight_generator
        self.notes: list[Note] = []
        self.insights: list[Insight] = []
        self.warnings: list[str] = []

        self._lock = threading.Lock()
        self._executor = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="insight")
        self._pending: set[Future] = set()
        self._summary_cache: Optional[tuple[int, DailySummary]] = None

    def __enter__(self) -> "Workspace":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    def close(self) -> None:
        """Wait for in-flight insight requests and stop the worker pool."""
        self._executor.shutdown(wait=True)

    # ==================== Warnings ====================

    def warn(self, message: str) -> None:
        """Record a user-visible warning."""
        logger.warning(message)
        with self._lock:
            self.warnings.append(message)

    def drain_warnings(self) -> list[str]:
        """Return and clear the recorded warnings."""
        with self._lock:
            drained, self.warnings = self.warnings, []
        return drained

    # ==================== Notes ====================

    def load(self) -> None:
        """Mirror the owner's notes and insights from the store."""
        try:
            notes = self.repository.list_notes(self.owner_id)
            insights = self.repository.list_insights(self.owner_id)
        except StoreError as e:
            self.warn(f"Could not load your data: {e}")
            return
        with self._lock:
            self.notes = notes
            self.insights = insights

    def snapshot_notes(self) -> list[Note]:
        """Copy of the current note collection."""
        with self._lock:
            return list(self.notes)

    def snapshot_insights(self) -> list[Insight]:
        """Copy of the current insight collection, newest first."""
        with self._lock:
            return list(self.insights)

    def get_note(self, note_id: int) -> Optional[Note]:
        with self._lock:
            return next((n for n in self.notes if n.id == note_id), None)

    def add_notes(self, drafts: list[Note]) -> list[Note]:
        """Add notes locally, then persist them as one batch.

        Returns:
            The persisted notes, with store-assigned ids and timestamps

        Raises:
            StoreError: If the batch write fails; the drafts stay in the
                local collection and a warning is recorded
        """
        with self._lock:
            self.notes[:0] = drafts

        try:
            persisted = self.repository.create_notes(self.owner_id, drafts)
        except StoreError as e:
            self.warn(f"Could not save {len(drafts)} note(s): {e}")
            raise

        replacements = {id(draft): note for draft, note in zip(drafts, persisted)}
        with self._lock:
            self.notes = [replacements.get(id(n), n) for n in self.notes]
        logger.info("Saved %d note(s) for %s", len(persisted), self.owner_id)
        return persisted

    def add_note(self, note: Note) -> Note:
        """Add a single note; returns the local draft if the write fails."""
        try:
            return self.add_notes([note])[0]
        except StoreError:
            return note

    def update_note(self, note_id: int, **changes: Any) -> Note:
        """Edit a note locally, then in the store.

        Raises:
            KeyError: If the note is not in the local collection
            ValueError: If a field cannot be edited
        """
        unknown = set(changes) - EDITABLE_NOTE_FIELDS
        if unknown:
            raise ValueError(f"Cannot edit note fields: {', '.join(sorted(unknown))}")

        with self._lock:
            index = next((i for i, n in enumerate(self.notes) if n.id == note_id), None)
            if index is None:
                raise KeyError(f"Note {note_id} not found")
            local = dataclasses.replace(self.notes[index], updated_at=datetime.now(), **changes)
            self.notes[index] = local

        try:
            persisted = self.repository.update_note(self.owner_id, note_id, **changes)
        except StoreError as e:
            self.warn(f"Could not save changes to '{local.title}': {e}")
            return local

        with self._lock:
            self.notes = [persisted if n.id == note_id else n for n in self.notes]
        return persisted

    def delete_note(self, note_id: int) -> bool:
        """Delete a note locally, then in the store. Its insights are kept."""
        with self._lock:
            before = len(self.notes)
            self.notes = [n for n in self.notes if n.id != note_id]
            removed = len(self.notes) != before

        try:
            self.repository.delete_note(self.owner_id, note_id)
        except StoreError as e:
            self.warn(f"Could not delete note {note_id} from the store: {e}")
        return removed

    def search(self, term: str) -> list[Note]:
        """Notes whose title or summary contains ``term`` (case-insensitive)."""
        needle = term.strip().lower()
        notes = self.snapshot_notes()
        if not needle:
            return notes
        return [n for n in notes if needle in n.title.lower() or needle in n.summary.lower()]

    # ==================== Insights ====================

    def dismiss_insight(self, insight_id: int) -> bool:
        """Remove an insight locally, then from the store."""
        with self._lock:
            before = len(self.insights)
            self.insights = [i for i in self.insights if i.id != insight_id]
            removed = len(self.insights) != before

        try:
            self.repository.delete_insight(self.owner_id, insight_id)
        except StoreError as e:
            self.warn(f"Could not delete insight {insight_id} from the store: {e}")
        return removed

    def request_insight(
        self,
        note: Note,
        on_complete: Optional[Callable[[Future], None]] = None,
    ) -> Future:
        """Start insight generation for a note without waiting for it.

        The note collection is captured at call time, so notes added before
        this call are visible to the model. The returned future resolves to
        an InsightOutcome whose insight has been persisted (when possible)
        and prepended to ``insights``. Repeated calls for the same note
        produce independent insights.
        """
        if self.insight_generator is None:
            raise RuntimeError("Workspace has no insight generator")

        all_notes = self.snapshot_notes()
        future = self._executor.submit(self._generate_and_store, note, all_notes)
        with self._lock:
            self._pending.add(future)
        future.add_done_callback(self._discard_pending)
        if on_complete is not None:
            future.add_done_callback(on_complete)
        return future

    @property
    def generating(self) -> bool:
        """True while at least one insight request is outstanding."""
        with self._lock:
            return any(not f.done() for f in self._pending)

    def wait_for_insights(self, timeout: Optional[float] = None) -> bool:
        """Block until outstanding insight requests finish.

        Returns:
            True if all requests finished within the timeout
        """
        with self._lock:
            pending = list(self._pending)
        _, not_done = wait(pending, timeout=timeout)
        return not not_done

    def _generate_and_store(self, note: Note, all_notes: list[Note]) -> InsightOutcome:
        assert self.insight_generator is not None
        try:
            outcome = self.insight_generator.generate_insight(note, all_notes)
        except Exception as e:
            logger.exception("Unexpected error generating insight for note %s", note.id)
            self.warn(f"Insight generation failed for '{note.title}': {e}")
            raise

        if outcome.warning:
            self.warn(outcome.warning)

        try:
            outcome.insight = self.repository.create_insight(self.owner_id, outcome.insight)
        except StoreError as e:
            self.warn(f"Could not save insight '{outcome.insight.title}': {e}")

        with self._lock:
            self.insights.insert(0, outcome.insight)
        logger.debug("Insight ready for note %s (degraded=%s)", note.id, outcome.degraded)
        return outcome

    def _discard_pending(self, future: Future) -> None:
        with self._lock:
            self._pending.discard(future)

    # ==================== Daily summary ====================

    def daily_summary(
        self, aggregator: DailySummaryAggregator, today: Optional[date] = None
    ) -> DailySummary:
        """Today's summary, recomputed only when the number of notes changes.

        Editing a note's text without adding or removing notes keeps the
        cached summary.
        """
        notes = self.snapshot_notes()
        with self._lock:
            cached = self._summary_cache
        if cached is not None and cached[0] == len(notes):
            return cached[1]

        summary = aggregator.summarize_today(notes, today=today)
        with self._lock:
            self._summary_cache = (len(notes), summary)
        return summary

"""Repository for owner-scoped note and insight storage."""

import dataclasses
import json
from collections.abc import Iterator
from contextlib import contextmanager
from datetime import datetime
from typing import Any, Optional

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from contextflow.database.schema import InsightRecord, NoteRecord, init_database
from contextflow.errors import StoreError
from contextflow.models.insight import Insight, InsightType
from contextflow.models.note import Note, NoteMetadata, NoteType, Priority

EDITABLE_NOTE_FIELDS = frozenset({"title", "summary", "note_type", "priority", "connections"})


class Repository:
    """Store service for notes and insights.

    Every operation is scoped by owner id; records belonging to other owners
    are never returned or modified. Database failures surface as StoreError.
    """

    def __init__(self, database_url: str):
        """Initialize repository with database connection."""
        self.session_factory = init_database(database_url)

    @contextmanager
    def _session(self) -> Iterator[Session]:
        """Open a session, translating database failures into StoreError."""
        try:
            with self.session_factory() as session:
                yield session
        except SQLAlchemyError as e:
            raise StoreError(f"Database operation failed: {e}") from e

    # ==================== Note Operations ====================

    def create_note(self, owner_id: str, note: Note) -> Note:
        """Persist a new note and return it with id and timestamps."""
        return self.create_notes(owner_id, [note])[0]

    def create_notes(self, owner_id: str, notes: list[Note]) -> list[Note]:
        """Persist several notes in a single transaction."""
        with self._session() as session:
            records = []
            for note in notes:
                record = self._note_to_record(owner_id, note)
                session.add(record)
                records.append(record)
            session.flush()
            session.commit()
            return [self._record_to_note(r) for r in records]

    def get_note(self, owner_id: str, note_id: int) -> Optional[Note]:
        """Get a note by id, or None if the owner has no such note."""
        with self._session() as session:
            record = self._owned_note(session, owner_id, note_id)
            if record:
                return self._record_to_note(record)
            return None

    def list_notes(self, owner_id: str) -> list[Note]:
        """All notes of an owner, most recently updated first."""
        with self._session() as session:
            stmt = (
                select(NoteRecord)
                .where(NoteRecord.owner_id == owner_id)
                .order_by(NoteRecord.updated_at.desc(), NoteRecord.id.desc())
            )
            return [self._record_to_note(r) for r in session.scalars(stmt).all()]

    def update_note(self, owner_id: str, note_id: int, **changes: Any) -> Note:
        """Apply field changes to a note and refresh its last-updated time.

        Raises:
            StoreError: If the owner has no such note or a field is not editable
        """
        unknown = set(changes) - EDITABLE_NOTE_FIELDS
        if unknown:
            raise StoreError(f"Cannot update note fields: {', '.join(sorted(unknown))}")

        with self._session() as session:
            record = self._owned_note(session, owner_id, note_id)
            if record is None:
                raise StoreError(f"Note {note_id} not found")

            # Re-run normalization on the merged values
            note = dataclasses.replace(self._record_to_note(record), **changes)
            record.title = note.title
            record.summary = note.summary
            record.note_type = note.note_type
            record.priority = note.priority
            record.connections = json.dumps(note.connections)
            record.updated_at = datetime.now()
            session.commit()
            return self._record_to_note(record)

    def delete_note(self, owner_id: str, note_id: int) -> bool:
        """Delete a note. Insights generated from it are kept."""
        with self._session() as session:
            record = self._owned_note(session, owner_id, note_id)
            if record is None:
                return False
            session.delete(record)
            session.commit()
            return True

    # ==================== Insight Operations ====================

    def create_insight(self, owner_id: str, insight: Insight) -> Insight:
        """Persist a new insight and return it with id and timestamp."""
        with self._session() as session:
            record = InsightRecord(
                owner_id=owner_id,
                note_id=insight.note_id,
                insight_type=insight.insight_type,
                title=insight.title,
                message=insight.message,
                actionable=insight.actionable,
                created_at=insight.created_at,
            )
            session.add(record)
            session.commit()
            return self._record_to_insight(record)

    def list_insights(self, owner_id: str) -> list[Insight]:
        """All insights of an owner, newest first."""
        with self._session() as session:
            stmt = (
                select(InsightRecord)
                .where(InsightRecord.owner_id == owner_id)
                .order_by(InsightRecord.created_at.desc(), InsightRecord.id.desc())
            )
            return [self._record_to_insight(r) for r in session.scalars(stmt).all()]

    def delete_insight(self, owner_id: str, insight_id: int) -> bool:
        """Delete an insight."""
        with self._session() as session:
            record = session.get(InsightRecord, insight_id)
            if record is None or record.owner_id != owner_id:
                return False
            session.delete(record)
            session.commit()
            return True

    # ==================== Statistics ====================

    def get_stats(self, owner_id: str) -> dict:
        """Get per-owner statistics."""
        notes = self.list_notes(owner_id)
        insights = self.list_insights(owner_id)
        return {
            "total_notes": len(notes),
            "imported_notes": sum(1 for n in notes if n.note_type == NoteType.IMPORTED),
            "high_priority_notes": sum(1 for n in notes if n.priority == Priority.HIGH),
            "connections": sum(len(n.connections) for n in notes),
            "total_insights": len(insights),
            "actionable_insights": sum(1 for i in insights if i.actionable),
        }

    # ==================== Helper Methods ====================

    @staticmethod
    def _owned_note(session: Session, owner_id: str, note_id: int) -> Optional[NoteRecord]:
        record = session.get(NoteRecord, note_id)
        if record is None or record.owner_id != owner_id:
            return None
        return record

    @staticmethod
    def _note_to_record(owner_id: str, note: Note) -> NoteRecord:
        now = datetime.now()
        return NoteRecord(
            owner_id=owner_id,
            title=note.title,
            summary=note.summary,
            note_type=note.note_type,
            priority=note.priority,
            connections=json.dumps(note.connections),
            metadata_json=json.dumps(note.metadata.to_dict()) if note.metadata else None,
            created_at=now,
            updated_at=now,
        )

    @staticmethod
    def _record_to_note(record: NoteRecord) -> Note:
        """Convert database record to Note model."""
        return Note(
            id=record.id,
            owner_id=record.owner_id,
            title=record.title,
            summary=record.summary or "",
            note_type=NoteType(
                record.note_type.value if hasattr(record.note_type, "value") else record.note_type
            ),
            priority=Priority(
                record.priority.value if hasattr(record.priority, "value") else record.priority
            ),
            connections=json.loads(record.connections) if record.connections else [],
            created_at=record.created_at,
            updated_at=record.updated_at,
            metadata=(
                NoteMetadata.from_dict(json.loads(record.metadata_json))
                if record.metadata_json
                else None
            ),
        )

    @staticmethod
    def _record_to_insight(record: InsightRecord) -> Insight:
        """Convert database record to Insight model."""
        return Insight(
            id=record.id,
            owner_id=record.owner_id,
            note_id=record.note_id,
            insight_type=InsightType(
                record.insight_type.value
                if hasattr(record.insight_type, "value")
                else record.insight_type
            ),
            title=record.title,
            message=record.message,
            actionable=record.actionable,
            created_at=record.created_at,
        )

"""Ingestion of uploaded files into notes."""

import dataclasses
import logging
from concurrent.futures import Future
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Optional

from contextflow.errors import ExtractionError, StoreError, TransportError, UnsupportedFormatError
from contextflow.models.extraction import FileFormat, UploadedFile
from contextflow.models.note import Note, NoteMetadata, NoteType, Priority, normalize_title
from contextflow.services.extractors import ContentExtractor, decode_text, parse_csv_records
from contextflow.services.workspace import Workspace

logger = logging.getLogger(__name__)

NO_TEXT_PLACEHOLDER = "(No text content could be extracted from this file)"


class IngestOutcome(str, Enum):
    """Terminal state of an ingestion batch."""

    SUCCESS = "success"  # Every file produced notes
    PARTIAL = "partial"  # Some files failed
    NOTHING_PROCESSED = "nothing_processed"  # No file produced a note
    STORE_FAILED = "store_failed"  # Notes extracted but the batch write failed


@dataclass
class FileFailure:
    """A file that could not be turned into a note."""

    filename: str
    reason: str


@dataclass
class IngestionReport:
    """Counters and results of one ingestion batch."""

    succeeded: int = 0
    failed: int = 0
    notes: list[Note] = field(default_factory=list)
    failures: list[FileFailure] = field(default_factory=list)
    store_error: Optional[str] = None
    insight_requests: list[Future] = field(default_factory=list)

    @property
    def total(self) -> int:
        return self.succeeded + self.failed

    @property
    def outcome(self) -> IngestOutcome:
        if self.succeeded == 0:
            return IngestOutcome.NOTHING_PROCESSED
        if self.store_error is not None:
            return IngestOutcome.STORE_FAILED
        if self.failed:
            return IngestOutcome.PARTIAL
        return IngestOutcome.SUCCESS

    @property
    def message(self) -> str:
        """Terminal notification for the user."""
        outcome = self.outcome
        if outcome == IngestOutcome.NOTHING_PROCESSED:
            return "No files could be processed."
        if outcome == IngestOutcome.STORE_FAILED:
            return (
                f"Extracted {self.succeeded} file(s) but saving failed: {self.store_error}"
            )
        if outcome == IngestOutcome.PARTIAL:
            return (
                f"Imported {self.succeeded} of {self.total} file(s) "
                f"({len(self.notes)} note(s)); {self.failed} could not be processed."
            )
        return f"Imported {len(self.notes)} note(s) from {self.succeeded} file(s)."


class IngestionDispatcher:
    """Turns uploaded files into persisted notes and queues their insights.

    Files are processed one at a time. A file that fails is counted and
    skipped; it never aborts the rest of the batch.
    """

    def __init__(self, extractor: ContentExtractor, generate_insights: bool = True):
        """Initialize the dispatcher.

        Args:
            extractor: Format extractor used for every file
            generate_insights: Queue insight generation for persisted notes
        """
        self.extractor = extractor
        self.generate_insights = generate_insights

    def ingest(self, files: list[UploadedFile], workspace: Workspace) -> IngestionReport:
        """Extract, persist and enqueue a batch of files.

        The whole batch is persisted before any insight request is issued, so
        each request sees the new notes alongside every existing note.

        Args:
            files: Files selected or dropped by the user
            workspace: Session context of the uploading owner

        Returns:
            IngestionReport with success/failure counts and persisted notes
        """
        report = IngestionReport()
        drafts: list[Note] = []
        imported_at = datetime.now()

        for file in files:
            try:
                file_drafts = self._drafts_for(file, workspace.owner_id, imported_at)
            except (UnsupportedFormatError, ExtractionError, TransportError) as e:
                logger.warning("Skipping %s: %s", file.filename, e)
                report.failed += 1
                report.failures.append(FileFailure(filename=file.filename, reason=str(e)))
                continue

            logger.debug("Extracted %d note(s) from %s", len(file_drafts), file.filename)
            report.succeeded += 1
            drafts.extend(file_drafts)

        if not drafts:
            logger.info("No files could be processed (%d failed)", report.failed)
            return report

        try:
            report.notes = workspace.add_notes(drafts)
        except StoreError as e:
            report.store_error = str(e)
            return report

        if self.generate_insights:
            for note in report.notes:
                report.insight_requests.append(workspace.request_insight(note))

        logger.info(
            "Ingested %d file(s) into %d note(s), %d failed",
            report.succeeded,
            len(report.notes),
            report.failed,
        )
        return report

    def _drafts_for(
        self, file: UploadedFile, owner_id: str, imported_at: datetime
    ) -> list[Note]:
        """Build draft notes for one file."""
        result = self.extractor.extract(file)
        metadata = NoteMetadata(
            source=result.source,
            original_filename=file.filename,
            imported_at=imported_at,
        )

        if FileFormat.from_filename(file.filename) == FileFormat.CSV:
            records = parse_csv_records(decode_text(file.data))
            if records:
                return [
                    self._note_from_record(record, owner_id, file, metadata)
                    for record in records
                ]

        content = result.content if result.content.strip() else NO_TEXT_PLACEHOLDER
        return [
            Note(
                owner_id=owner_id,
                title=normalize_title(result.title, file.filename),
                summary=content,
                note_type=NoteType.IMPORTED,
                priority=Priority.MEDIUM,
                connections=[],
                metadata=metadata,
            )
        ]

    @staticmethod
    def _note_from_record(
        record: dict[str, str], owner_id: str, file: UploadedFile, metadata: NoteMetadata
    ) -> Note:
        """Note from one row of the ``title,summary,type,priority`` contract."""
        return Note(
            owner_id=owner_id,
            title=normalize_title(record.get("title"), file.stem),
            summary=record.get("summary", ""),
            note_type=NoteType.parse(record.get("type")),
            priority=Priority.parse(record.get("priority")),
            metadata=dataclasses.replace(metadata),
        )

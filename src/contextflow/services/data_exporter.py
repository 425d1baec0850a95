"""Export of notes and insights, and re-import of export documents."""

import csv
import json
import logging
from datetime import datetime
from pathlib import Path
from typing import Any

from contextflow.errors import ExtractionError
from contextflow.models.note import Note
from contextflow.services.extractors import RECORD_COLUMNS
from contextflow.services.workspace import Workspace

logger = logging.getLogger(__name__)


class DataExporter:
    """Serializes a workspace for backup and restores it later.

    JSON exports carry the full note and insight collections; CSV exports
    follow the ``title,summary,type,priority`` contract understood by file
    ingestion.
    """

    def build_export(self, workspace: Workspace) -> dict[str, Any]:
        """Export document with notes, insights and the export timestamp."""
        return {
            "contexts": [n.to_dict() for n in workspace.snapshot_notes()],
            "insights": [i.to_dict() for i in workspace.snapshot_insights()],
            "exportedAt": datetime.now().isoformat(),
        }

    def write_json(self, workspace: Workspace, path: Path) -> Path:
        """Write the export document as pretty-printed JSON."""
        document = self.build_export(workspace)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(json.dumps(document, indent=2, ensure_ascii=False), encoding="utf-8")
        logger.info(
            "Exported %d note(s) and %d insight(s) to %s",
            len(document["contexts"]),
            len(document["insights"]),
            path,
        )
        return path

    def write_csv(self, notes: list[Note], path: Path) -> Path:
        """Write notes in the flat tabular contract."""
        path.parent.mkdir(parents=True, exist_ok=True)
        with path.open("w", newline="", encoding="utf-8") as handle:
            writer = csv.writer(handle)
            writer.writerow(RECORD_COLUMNS)
            for note in notes:
                writer.writerow(
                    [note.title, note.summary, note.note_type.value, note.priority.value]
                )
        logger.info("Exported %d note(s) to %s", len(notes), path)
        return path

    def default_filename(self, extension: str = "json") -> str:
        return f"contextflow-export-{datetime.now().date().isoformat()}.{extension}"

    def restore(self, document: dict[str, Any], workspace: Workspace) -> list[Note]:
        """Re-create the notes of an export document in the workspace.

        Insights are not re-created; they are regenerated on demand.

        Raises:
            ExtractionError: If the document has no ``contexts`` list
            StoreError: If the notes could not be saved
        """
        contexts = document.get("contexts") if isinstance(document, dict) else None
        if not isinstance(contexts, list):
            raise ExtractionError("Export document is missing a 'contexts' list")

        drafts = [
            Note(
                owner_id=workspace.owner_id,
                title=item.get("title", ""),
                summary=item.get("summary") or "",
                note_type=item.get("type"),
                priority=item.get("priority"),
                connections=item.get("connections") or [],
            )
            for item in contexts
            if isinstance(item, dict)
        ]
        if not drafts:
            return []
        return workspace.add_notes(drafts)

    def load_document(self, path: Path) -> dict[str, Any]:
        """Read an export document from disk."""
        try:
            document = json.loads(path.read_text(encoding="utf-8-sig"))
        except (OSError, UnicodeDecodeError, json.JSONDecodeError) as e:
            raise ExtractionError(f"Could not read export file {path.name}: {e}") from e
        if not isinstance(document, dict):
            raise ExtractionError("Export document must be a JSON object")
        return document

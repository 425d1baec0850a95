"""Note model for ContextFlow."""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Optional

UNTITLED = "Untitled"


class NoteType(str, Enum):
    """Kind of note (a "context" in the UI)."""

    CUSTOM = "custom"
    PROJECT = "project"
    PERSONAL = "personal"
    PROFESSIONAL = "professional"
    DOCUMENT = "document"
    IMPORTED = "imported"  # Created from an uploaded file
    ACTION = "action"

    @classmethod
    def parse(cls, value: Any) -> "NoteType":
        """Resolve a free-form value, falling back to CUSTOM."""
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value or "").strip().lower())
        except ValueError:
            return cls.CUSTOM


class Priority(str, Enum):
    """Priority of a note."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"

    @classmethod
    def parse(cls, value: Any) -> "Priority":
        """Resolve a free-form value, falling back to MEDIUM."""
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value or "").strip().lower())
        except ValueError:
            return cls.MEDIUM


@dataclass
class NoteMetadata:
    """Provenance of an imported note."""

    source: str = ""  # e.g. "PDF Document"
    original_filename: str = ""
    imported_at: Optional[datetime] = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "source": self.source,
            "originalFilename": self.original_filename,
            "importedAt": self.imported_at.isoformat() if self.imported_at else None,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "NoteMetadata":
        imported_at = data.get("importedAt")
        return cls(
            source=data.get("source") or "",
            original_filename=data.get("originalFilename") or "",
            imported_at=datetime.fromisoformat(imported_at) if imported_at else None,
        )


@dataclass
class Note:
    """A user-authored unit of free text with type and priority."""

    owner_id: str
    title: str
    summary: str = ""
    note_type: NoteType = NoteType.CUSTOM
    priority: Priority = Priority.MEDIUM
    connections: list[str] = field(default_factory=list)

    # Store metadata
    id: Optional[int] = None
    created_at: datetime = field(default_factory=datetime.now)
    updated_at: datetime = field(default_factory=datetime.now)

    # Provenance (imported notes only)
    metadata: Optional[NoteMetadata] = None

    def __post_init__(self) -> None:
        """Normalize title and enum fields after initialization."""
        self.title = normalize_title(self.title)
        self.summary = self.summary or ""
        self.note_type = NoteType.parse(self.note_type)
        self.priority = Priority.parse(self.priority)
        self.connections = [str(c) for c in (self.connections or []) if str(c).strip()]

    def to_dict(self) -> dict[str, Any]:
        """Serialize for export documents."""
        return {
            "id": self.id,
            "title": self.title,
            "summary": self.summary,
            "type": self.note_type.value,
            "priority": self.priority.value,
            "connections": list(self.connections),
            "created_at": self.created_at.isoformat(),
            "last_updated": self.updated_at.isoformat(),
            "metadata": self.metadata.to_dict() if self.metadata else None,
        }


def normalize_title(title: Optional[str], fallback: str = "") -> str:
    """Return a non-empty title.

    Args:
        title: Candidate title
        fallback: Used when the title is blank (typically the filename)

    Returns:
        The stripped title, the stripped fallback, or "Untitled"
    """
    for candidate in (title, fallback):
        if candidate and str(candidate).strip():
            return str(candidate).strip()
    return UNTITLED

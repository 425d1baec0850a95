"""Insight model for ContextFlow."""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Optional


class InsightType(str, Enum):
    """Type of AI-generated insight."""

    OPPORTUNITY = "opportunity"
    REMINDER = "reminder"
    CONFLICT = "conflict"
    ANALYSIS = "analysis"  # Also used for degraded/fallback insights

    @classmethod
    def parse(cls, value: Any) -> "InsightType":
        """Resolve a model-supplied value, falling back to ANALYSIS."""
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value or "").strip().lower())
        except ValueError:
            return cls.ANALYSIS


@dataclass
class Insight:
    """A short observation generated from one note in light of all notes."""

    owner_id: str
    title: str
    message: str
    insight_type: InsightType = InsightType.ANALYSIS
    actionable: bool = False

    # Generating note; not a foreign key, the insight outlives the note
    note_id: Optional[int] = None

    # Store metadata
    id: Optional[int] = None
    created_at: datetime = field(default_factory=datetime.now)

    def __post_init__(self) -> None:
        """Validate and convert fields after initialization."""
        self.insight_type = InsightType.parse(self.insight_type)
        self.actionable = bool(self.actionable)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "type": self.insight_type.value,
            "title": self.title,
            "message": self.message,
            "actionable": self.actionable,
            "note_id": self.note_id,
            "created_at": self.created_at.isoformat(),
        }

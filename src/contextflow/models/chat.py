"""Chat transcript and daily summary models."""

from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum
from typing import Optional


class Role(str, Enum):
    """Author of a chat message."""

    USER = "user"
    ASSISTANT = "assistant"


@dataclass
class ChatMessage:
    """One message of a chat transcript."""

    role: Role
    content: str
    timestamp: datetime = field(default_factory=datetime.now)

    def __post_init__(self) -> None:
        if isinstance(self.role, str):
            self.role = Role(self.role)

    def to_wire(self) -> dict[str, str]:
        """Role/content pair as sent to the language-model service."""
        return {"role": self.role.value, "content": self.content}


@dataclass
class DailySummary:
    """Narrative recap of the notes created on one calendar day.

    Recomputed on demand and never persisted. ``narrative`` is None when no
    notes were created that day (the empty marker).
    """

    day: date
    count: int = 0
    narrative: Optional[str] = None

    @classmethod
    def empty(cls, day: date) -> "DailySummary":
        return cls(day=day, count=0, narrative=None)

    @property
    def is_empty(self) -> bool:
        return self.narrative is None

"""Data models for ContextFlow."""

from contextflow.models.chat import ChatMessage, DailySummary, Role
from contextflow.models.extraction import ExtractionResult, FileFormat, UploadedFile
from contextflow.models.insight import Insight, InsightType
from contextflow.models.note import Note, NoteMetadata, NoteType, Priority

__all__ = [
    "ChatMessage",
    "DailySummary",
    "ExtractionResult",
    "FileFormat",
    "Insight",
    "InsightType",
    "Note",
    "NoteMetadata",
    "NoteType",
    "Priority",
    "Role",
    "UploadedFile",
]

"""File upload and extraction models."""

import mimetypes
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Optional

from contextflow.errors import UnsupportedFormatError


class FileFormat(str, Enum):
    """Supported upload formats, keyed by file extension."""

    TXT = "txt"
    CSV = "csv"
    JSON = "json"
    DOCX = "docx"
    PDF = "pdf"
    JPG = "jpg"
    JPEG = "jpeg"
    PNG = "png"

    @classmethod
    def from_filename(cls, filename: str) -> "FileFormat":
        """Resolve the format of a file from its extension.

        Raises:
            UnsupportedFormatError: If the extension is missing or not supported
        """
        extension = extension_of(filename)
        try:
            return cls(extension)
        except ValueError:
            raise UnsupportedFormatError(filename, extension) from None

    @property
    def is_remote(self) -> bool:
        """Binary formats are extracted by the remote service."""
        return self in _REMOTE_FORMATS

    @property
    def source_label(self) -> str:
        return _SOURCE_LABELS[self]


_REMOTE_FORMATS = frozenset(
    {FileFormat.DOCX, FileFormat.PDF, FileFormat.JPG, FileFormat.JPEG, FileFormat.PNG}
)

_SOURCE_LABELS = {
    FileFormat.TXT: "TXT File",
    FileFormat.CSV: "CSV File",
    FileFormat.JSON: "JSON File",
    FileFormat.DOCX: "Word Document",
    FileFormat.PDF: "PDF Document",
    FileFormat.JPG: "Image (OCR)",
    FileFormat.JPEG: "Image (OCR)",
    FileFormat.PNG: "Image (OCR)",
}


def extension_of(filename: str) -> str:
    """Lower-cased extension without the dot, or "" when there is none."""
    name = Path(filename).name
    if "." not in name.strip("."):
        return ""
    return name.rsplit(".", 1)[-1].lower()


@dataclass
class UploadedFile:
    """Raw bytes of a file selected or dropped by the user."""

    filename: str
    data: bytes
    media_type: Optional[str] = None

    @classmethod
    def from_path(cls, path: Path) -> "UploadedFile":
        media_type, _ = mimetypes.guess_type(path.name)
        return cls(filename=path.name, data=path.read_bytes(), media_type=media_type)

    @property
    def extension(self) -> str:
        return extension_of(self.filename)

    @property
    def stem(self) -> str:
        """Filename minus its extension."""
        name = Path(self.filename).name
        if not self.extension:
            return name
        return name[: -(len(self.extension) + 1)]


@dataclass
class ExtractionResult:
    """Transient result of extracting text from one file."""

    title: str
    content: str
    source: str

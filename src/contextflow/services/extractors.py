"""Format extractors: uploaded file bytes to (title, text, source label).

Text formats (txt, csv, json) are handled locally. Binary formats are
forwarded to the remote extraction service.
"""

import csv
import io
import json
import logging
from collections.abc import Callable
from typing import Any, Optional

from contextflow.errors import ExtractionError
from contextflow.models.extraction import ExtractionResult, FileFormat, UploadedFile
from contextflow.models.note import normalize_title
from contextflow.services.extraction_client import ExtractionClient

logger = logging.getLogger(__name__)

# Columns of the flat tabular CSV contract, in canonical order
RECORD_COLUMNS = ("title", "summary", "type", "priority")


def decode_text(data: bytes) -> str:
    """Decode uploaded bytes as UTF-8, tolerating a byte order mark."""
    return data.decode("utf-8-sig")


def extract_txt(text: str) -> str:
    return text


def extract_csv(text: str) -> str:
    """Render each data row as ``header: value`` pairs, one line per row.

    The first row holds the headers. Blank rows are skipped and values
    missing at the end of a row render empty.
    """
    rows = list(csv.reader(io.StringIO(text)))
    if not rows:
        return ""

    headers = [h.strip() for h in rows[0]]
    lines = []
    for row in rows[1:]:
        if not any(cell.strip() for cell in row):
            continue
        pairs = [
            f"{header}: {row[i].strip() if i < len(row) else ''}"
            for i, header in enumerate(headers)
        ]
        lines.append(", ".join(pairs))
    return "\n".join(lines)


def extract_json(text: str) -> str:
    """Pretty-print a JSON payload.

    Arrays become one pretty-printed block per element separated by a blank
    line, objects are pretty-printed as-is, scalars are stringified.
    """
    data = json.loads(text)
    if isinstance(data, list):
        return "\n\n".join(_pretty(item) for item in data)
    if isinstance(data, dict):
        return _pretty(data)
    if isinstance(data, str):
        return data
    if isinstance(data, float) and data.is_integer():
        return str(int(data))
    return json.dumps(data)


def _pretty(value: Any) -> str:
    return json.dumps(value, indent=2, ensure_ascii=False)


def parse_csv_records(text: str) -> Optional[list[dict[str, str]]]:
    """Parse the flat ``title,summary,type,priority`` CSV contract.

    Args:
        text: Decoded CSV text including the header row

    Returns:
        One dict per non-blank data row, keyed by lower-cased column name,
        or None when the header row does not follow the contract
    """
    try:
        rows = list(csv.reader(io.StringIO(text)))
    except csv.Error:
        return None
    if not rows:
        return None

    headers = [h.strip().lower() for h in rows[0]]
    if "title" not in headers or any(h not in RECORD_COLUMNS for h in headers):
        return None

    records = []
    for row in rows[1:]:
        if not any(cell.strip() for cell in row):
            continue
        records.append(
            {h: (row[i].strip() if i < len(row) else "") for i, h in enumerate(headers)}
        )
    return records


_LOCAL_EXTRACTORS: dict[FileFormat, Callable[[str], str]] = {
    FileFormat.TXT: extract_txt,
    FileFormat.CSV: extract_csv,
    FileFormat.JSON: extract_json,
}


class ContentExtractor:
    """Routes an uploaded file to the local or remote extractor for its format."""

    def __init__(self, remote: Optional[ExtractionClient] = None):
        """Initialize the extractor.

        Args:
            remote: Client for the remote extraction service; binary formats
                fail with ExtractionError when it is not provided
        """
        self.remote = remote

    def extract(self, file: UploadedFile) -> ExtractionResult:
        """Extract title, text and source label from a file.

        Raises:
            UnsupportedFormatError: If the extension is not recognized
            ExtractionError: If the content could not be extracted
            TransportError: If the remote extraction service is unreachable
        """
        file_format = FileFormat.from_filename(file.filename)
        default_title = normalize_title(file.stem, file.filename)

        if file_format.is_remote:
            return self._extract_remote(file, file_format, default_title)

        extractor = _LOCAL_EXTRACTORS[file_format]
        try:
            content = extractor(decode_text(file.data))
        except (ValueError, RecursionError, csv.Error) as e:
            raise ExtractionError(
                f"Failed to process {file.filename}: {e}", filename=file.filename
            ) from e

        logger.debug("Extracted %d characters from %s", len(content), file.filename)
        return ExtractionResult(
            title=default_title, content=content, source=file_format.source_label
        )

    def _extract_remote(
        self, file: UploadedFile, file_format: FileFormat, default_title: str
    ) -> ExtractionResult:
        if self.remote is None:
            raise ExtractionError(
                f"No extraction service configured for {file_format.value} files",
                filename=file.filename,
            )

        result = self.remote.extract(file)
        logger.debug(
            "Remote extraction returned %d characters for %s", len(result.content), file.filename
        )
        return ExtractionResult(
            title=normalize_title(result.title, default_title),
            content=result.content,
            source=result.source or file_format.source_label,
        )

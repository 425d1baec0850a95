"""Client for the remote text extraction service (Word, PDF, OCR)."""

import base64
import logging
from typing import Any

import requests  # type: ignore[import-untyped]

from contextflow.errors import ExtractionError, TransportError
from contextflow.models.extraction import ExtractionResult, UploadedFile

logger = logging.getLogger(__name__)


class ExtractionClient:
    """Sends binary uploads to the remote extraction service.

    The local side only base64-encodes the bytes; the service performs the
    container parsing or optical character recognition and answers with
    ``{"result": {"title", "content", "source"}}``.
    """

    def __init__(self, url: str, timeout: float = 30.0):
        """Initialize the extraction client.

        Args:
            url: Extraction endpoint URL
            timeout: Request timeout in seconds
        """
        self.url = url
        self.timeout = timeout

    def extract(self, file: UploadedFile) -> ExtractionResult:
        """Extract text from a binary file.

        Args:
            file: The uploaded file

        Returns:
            ExtractionResult as reported by the service

        Raises:
            TransportError: If the service cannot be reached or times out
            ExtractionError: If the service rejects the file or answers malformed data
        """
        payload = {
            "fileData": base64.b64encode(file.data).decode("ascii"),
            "fileName": file.filename,
            "fileType": file.media_type or "application/octet-stream",
        }
        logger.debug(
            "Sending %s to extraction service (%d base64 chars)",
            file.filename,
            len(payload["fileData"]),
        )

        try:
            response = requests.post(self.url, json=payload, timeout=self.timeout)
        except requests.exceptions.ConnectionError as e:
            raise TransportError(
                f"Cannot connect to extraction service at {self.url}"
            ) from e
        except requests.exceptions.Timeout as e:
            raise TransportError("Extraction service request timed out") from e
        except requests.exceptions.RequestException as e:
            raise TransportError(f"Extraction service request failed: {e}") from e

        data = self._json_body(response)

        if not response.ok:
            message = data.get("message") or data.get("error") or response.reason
            raise ExtractionError(
                f"Failed to process {file.filename}: {message}", filename=file.filename
            )

        result = data.get("result")
        if not isinstance(result, dict):
            raise ExtractionError(
                "Extraction service response missing result field", filename=file.filename
            )

        return ExtractionResult(
            title=str(result.get("title") or ""),
            content=str(result.get("content") or ""),
            source=str(result.get("source") or ""),
        )

    @staticmethod
    def _json_body(response: Any) -> dict[str, Any]:
        try:
            body = response.json()
        except ValueError:
            return {}
        return body if isinstance(body, dict) else {}

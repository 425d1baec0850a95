"""Error taxonomy for the ingestion and insight pipeline.

Per-file and per-note errors are caught close to where they happen and turned
into result values (counters, fallback insights). Only ``ChatServiceError`` is
meant to reach the caller, which renders it as an apology message.
"""


class ContextFlowError(Exception):
    """Base class for all ContextFlow errors."""

    pass


class UnsupportedFormatError(ContextFlowError):
    """Raised when an uploaded file has an unrecognized extension.

    Attributes:
        filename (str): Name of the rejected file
        extension (str): Lower-cased extension that was not recognized
    """

    def __init__(self, filename: str, extension: str = ""):
        self.filename = filename
        self.extension = extension
        shown = extension or "(none)"
        super().__init__(f"Unsupported file type: {shown}")


class ExtractionError(ContextFlowError):
    """Raised when text could not be extracted from a file."""

    def __init__(self, message: str, filename: str = ""):
        self.message = message
        self.filename = filename
        super().__init__(message)


class TransportError(ContextFlowError):
    """Network or service failure talking to an external service.

    Attributes:
        message (str): Human-readable description
        status_code (int): HTTP status code, 0 when no response was received
    """

    def __init__(self, message: str, status_code: int = 0):
        self.message = message
        self.status_code = status_code
        super().__init__(message)


class ConfigurationError(ContextFlowError):
    """A required credential or setting is missing; the call was not attempted."""

    pass


class ParseError(ContextFlowError):
    """A service response did not have the expected structure."""

    def __init__(self, message: str, content: str = ""):
        self.message = message
        self.content = content
        super().__init__(message)


class StoreError(ContextFlowError):
    """Persistence failure in the backing store."""

    pass


class ChatServiceError(ContextFlowError):
    """Chat request failed; ``detail`` is safe to show to the user."""

    def __init__(self, detail: str):
        self.detail = detail
        super().__init__(detail)

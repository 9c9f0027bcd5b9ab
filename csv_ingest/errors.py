"""Exception hierarchy for the CSV ingestion service.

Each stage raises its own error type so the HTTP layer can map
failures to status codes without inspecting messages.
"""


class CsvIngestError(Exception):
    """Base exception for all ingestion failures."""


class ConfigError(CsvIngestError):
    """Raised for invalid runtime configuration."""


class UnsupportedFileError(CsvIngestError):
    """Raised when an upload is rejected at intake (type or size)."""

    def __init__(self, message: str, status_code: int = 400):
        super().__init__(message)
        self.status_code = status_code


class CsvParseError(CsvIngestError):
    """Raised when the uploaded bytes cannot be read as CSV."""


class EmptyFileError(CsvIngestError):
    """Raised when a CSV has a header row but no data rows."""


class StoreError(CsvIngestError):
    """Raised for upload record store failures."""


class UploadNotFoundError(StoreError):
    """Raised when an upload id does not exist."""

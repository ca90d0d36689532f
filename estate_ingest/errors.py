from __future__ import annotations

"""Exception hierarchy shared across the ingestion pipeline."""

__all__ = [
    "IngestError",
    "ParseError",
    "UnsupportedFormatError",
    "SessionStateError",
    "ImportBlockedError",
    "CommitError",
    "ConfigError",
]


class IngestError(Exception):
    """Base exception for ingestion errors."""


class ParseError(IngestError):
    """Raised when raw input cannot be turned into row records.

    ``line`` is the 1-based physical line that failed, or None when the
    failure is not tied to a line (unreadable file, empty workbook).
    """

    def __init__(self, message: str, line: int | None = None) -> None:
        super().__init__(message)
        self.line = line


class UnsupportedFormatError(ParseError):
    """Raised when the detected format is not accepted by the target domain."""


class SessionStateError(IngestError):
    """Raised when a session operation is not allowed in the current stage."""


class ImportBlockedError(SessionStateError):
    """Raised when an import is requested while the batch still has errors."""


class CommitError(IngestError):
    """Raised by a record store when a row could not be persisted."""


class ConfigError(IngestError):
    """Raised when the config file is missing, unreadable or fails schema validation."""

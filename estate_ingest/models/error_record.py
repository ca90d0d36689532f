from __future__ import annotations

import json
from dataclasses import asdict, dataclass
from datetime import UTC, datetime

"""ErrorRecord model for the import error log.

One record per row that failed during import. Records are written as JSON
Lines with a fixed key set; ``row`` is the row's source line, or -1 when the
failure is not tied to a row (e.g. the store could not be opened).
"""

__all__ = [
    "ErrorRecord",
]


@dataclass(frozen=True)
class ErrorRecord:
    """Structured error record for JSON Lines logging.

    Attributes:
        timestamp: ISO8601 UTC timestamp with 'Z' suffix
        source: Name of the input file (or "<text>" for pasted input)
        domain: Target domain, e.g. "sales" or "assets"
        row: Source line (1-based). -1 for batch-level errors
        error_type: Error classification in UPPER_SNAKE_CASE format
        message: Error description
    """
    timestamp: str
    source: str
    domain: str
    row: int
    error_type: str
    message: str

    @staticmethod
    def create(source: str, domain: str, row: int, error_type: str, message: str) -> ErrorRecord:
        ts = datetime.now(UTC).isoformat().replace("+00:00", "Z")
        return ErrorRecord(
            timestamp=ts,
            source=source,
            domain=domain,
            row=row,
            error_type=error_type,
            message=message,
        )

    def to_json_line(self) -> str:
        return json.dumps(asdict(self), ensure_ascii=False)

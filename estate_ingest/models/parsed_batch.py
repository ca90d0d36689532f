from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum

from .finding import Finding
from .row_record import RowRecord

"""ParsedBatch model: the unit of work between parsing and import.

A batch is created once per parse. Edits and re-validation replace its
contents in place (same object, new rows/findings/summary) so callers holding
the batch always render the current state.
"""

__all__ = [
    "InputFormat",
    "BatchSummary",
    "ParsedBatch",
]


class InputFormat(Enum):
    """Detected shape of the raw input."""
    TABULAR = "tabular"
    FREEFORM = "freeform"


@dataclass(frozen=True)
class BatchSummary:
    """Counts shown to the operator after each validation pass.

    ``valid`` counts rows without any error-severity finding; rows carrying
    only warnings are still valid.
    """
    total: int
    valid: int
    error_count: int
    warning_count: int

    @classmethod
    def empty(cls) -> BatchSummary:
        return cls(total=0, valid=0, error_count=0, warning_count=0)


@dataclass
class ParsedBatch:
    """Full parse-and-validation result for one operator submission."""
    format: InputFormat
    rows: list[RowRecord]
    header_fields: list[str] = field(default_factory=list)
    findings: list[Finding] = field(default_factory=list)
    summary: BatchSummary = field(default_factory=BatchSummary.empty)

    @property
    def total(self) -> int:
        return len(self.rows)

    @property
    def has_errors(self) -> bool:
        return self.summary.error_count > 0

    def findings_for(self, source_line: int) -> list[Finding]:
        return [f for f in self.findings if f.row == source_line]

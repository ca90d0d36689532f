from __future__ import annotations

import warnings
from collections.abc import Callable, Iterable, Sequence
from enum import Enum

import pandas as pd

from ..models.categories import enum_values
from ..models.finding import Finding, Severity
from ..models.parsed_batch import BatchSummary, ParsedBatch
from ..models.row_record import RowRecord
from .derivation import parse_number

"""Row validation.

The pipeline only aggregates: each domain supplies a rule function
``(row, index) -> list[Finding]`` and this module runs it over the rows,
concatenates the findings and classifies them by severity. The check helpers
below are the building blocks the domain rule sets are written with.
"""

__all__ = [
    "RowRule",
    "row_number",
    "validate_row",
    "validate_rows",
    "summarize",
    "validate_batch",
    "check_required",
    "check_enum",
    "check_number",
    "check_date",
    "is_parseable_date",
]

RowRule = Callable[[RowRecord, int], list[Finding]]


def row_number(row: RowRecord, index: int) -> int:
    """Row number shown in findings: the source line, else 1-based position."""
    return row.source_line or index + 1


def validate_row(row: RowRecord, index: int, rule: RowRule) -> list[Finding]:
    return list(rule(row, index))


def validate_rows(rows: Sequence[RowRecord], rule: RowRule) -> list[Finding]:
    findings: list[Finding] = []
    for index, row in enumerate(rows):
        findings.extend(validate_row(row, index, rule))
    return findings


def summarize(rows: Sequence[RowRecord], findings: Iterable[Finding]) -> BatchSummary:
    """Classify findings by severity and count valid rows.

    A row is valid when it has no error-severity finding, whatever its
    warnings.
    """
    error_count = 0
    warning_count = 0
    rows_with_errors: set[int] = set()
    for f in findings:
        if f.severity is Severity.ERROR:
            error_count += 1
            rows_with_errors.add(f.row)
        else:
            warning_count += 1
    known_rows = {row_number(r, i) for i, r in enumerate(rows)}
    invalid = len(rows_with_errors & known_rows)
    return BatchSummary(
        total=len(rows),
        valid=len(rows) - invalid,
        error_count=error_count,
        warning_count=warning_count,
    )


def validate_batch(batch: ParsedBatch, rule: RowRule) -> ParsedBatch:
    """Full validation pass: replaces the batch's findings and summary."""
    batch.findings = validate_rows(batch.rows, rule)
    batch.summary = summarize(batch.rows, batch.findings)
    return batch


# ---------------------------------------------------------------------------
# Check helpers used by domain rule sets
# ---------------------------------------------------------------------------

def check_required(row: RowRecord, index: int, field: str, message: str) -> Finding | None:
    if row.has_value(field):
        return None
    return Finding.error(row_number(row, index), field, message)


def check_enum(
    row: RowRecord,
    index: int,
    field: str,
    enum_cls: type[Enum],
    severity: Severity,
    *,
    required: bool = False,
    label: str | None = None,
) -> Finding | None:
    """Membership check (case-insensitive) against a closed vocabulary.

    Blank values pass unless ``required``.
    """
    value = row.get(field).strip()
    if not value and not required:
        return None
    allowed = enum_values(enum_cls)
    if value.upper() in allowed:
        return None
    name = label or field[:1].upper() + field[1:]
    message = f"{name} must be one of: {', '.join(allowed)}"
    return Finding(row=row_number(row, index), field=field, message=message, severity=severity)


def check_number(
    row: RowRecord,
    index: int,
    field: str,
    message: str,
    severity: Severity,
    *,
    required: bool = False,
    allow_zero: bool = True,
) -> Finding | None:
    """Numeric check: the value must parse and be >= 0 (> 0 without allow_zero)."""
    raw = row.get(field).strip()
    if not raw and not required:
        return None
    value = parse_number(raw)
    if value is not None and (value > 0 or (allow_zero and value == 0)):
        return None
    return Finding(row=row_number(row, index), field=field, message=message, severity=severity)


def check_date(
    row: RowRecord,
    index: int,
    field: str,
    message: str,
    severity: Severity,
    *,
    required: bool = False,
) -> Finding | None:
    raw = row.get(field).strip()
    if not raw and not required:
        return None
    if raw and is_parseable_date(raw):
        return None
    return Finding(row=row_number(row, index), field=field, message=message, severity=severity)


def is_parseable_date(value: str) -> bool:
    with warnings.catch_warnings():
        # pandas warns when it has to guess a format per element
        warnings.simplefilter("ignore", UserWarning)
        parsed = pd.to_datetime(value, errors="coerce")
    return not pd.isna(parsed)

from __future__ import annotations

import pandas as pd

from ..models.finding import Finding
from ..models.parsed_batch import ParsedBatch

"""Tabular preview of a parsed batch.

The operator reviews a batch as a table: one line per row with its source
line, the parsed fields, a status column (ok / warning / error) and the
finding messages for that row.
"""

__all__ = [
    "batch_frame",
    "findings_frame",
    "render_preview",
]

LINE_COLUMN = "line"
STATUS_COLUMN = "status"
ISSUES_COLUMN = "issues"


def _row_status(findings: list[Finding]) -> str:
    if any(f.is_error for f in findings):
        return "error"
    if findings:
        return "warning"
    return "ok"


def batch_frame(batch: ParsedBatch) -> pd.DataFrame:
    columns = [LINE_COLUMN, *batch.header_fields, STATUS_COLUMN, ISSUES_COLUMN]
    records = []
    for row in batch.rows:
        row_findings = batch.findings_for(row.source_line)
        record = {LINE_COLUMN: row.source_line}
        for name in batch.header_fields:
            record[name] = row.get(name)
        record[STATUS_COLUMN] = _row_status(row_findings)
        record[ISSUES_COLUMN] = "; ".join(f"{f.field}: {f.message}" for f in row_findings)
        records.append(record)
    return pd.DataFrame.from_records(records, columns=columns)


def findings_frame(findings: list[Finding]) -> pd.DataFrame:
    return pd.DataFrame.from_records(
        [f.to_dict() for f in findings], columns=["row", "field", "message", "severity"]
    )


def render_preview(batch: ParsedBatch, max_rows: int | None = None) -> str:
    frame = batch_frame(batch)
    if frame.empty:
        return "(no rows)"
    if max_rows is not None:
        frame = frame.head(max_rows)
    return frame.to_string(index=False)

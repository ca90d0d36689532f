from __future__ import annotations

from ..models.import_outcome import ImportOutcome
from ..models.parsed_batch import ParsedBatch

"""SUMMARY line rendering.

Formats:
    SUMMARY format={tabular|freeform} total={n} valid={n} errors={n} warnings={n}
    SUMMARY rows={n} imported={n} skipped={n} failed={n} cancelled={true|false}
"""

__all__ = [
    "render_batch_summary",
    "render_import_summary",
]


def render_batch_summary(batch: ParsedBatch) -> str:
    """Render the validation SUMMARY line for a parsed batch.

    Examples:
        >>> from estate_ingest.models.parsed_batch import BatchSummary, InputFormat, ParsedBatch
        >>> batch = ParsedBatch(format=InputFormat.TABULAR, rows=[],
        ...                     summary=BatchSummary(total=3, valid=2, error_count=1, warning_count=0))
        >>> render_batch_summary(batch)
        'SUMMARY format=tabular total=3 valid=2 errors=1 warnings=0'
    """
    s = batch.summary
    return (
        f"SUMMARY format={batch.format.value} "
        f"total={s.total} "
        f"valid={s.valid} "
        f"errors={s.error_count} "
        f"warnings={s.warning_count}"
    )


def render_import_summary(outcome: ImportOutcome) -> str:
    rows = outcome.processed + outcome.unprocessed
    line = (
        f"SUMMARY rows={rows} "
        f"imported={outcome.imported} "
        f"skipped={outcome.skipped} "
        f"failed={outcome.failed} "
        f"cancelled={'true' if outcome.cancelled else 'false'}"
    )
    if outcome.cancelled:
        line += f" unprocessed={outcome.unprocessed}"
    return line

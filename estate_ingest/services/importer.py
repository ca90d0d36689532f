from __future__ import annotations

import logging
from collections.abc import Callable, Mapping, Sequence
from typing import Any

from ..logging.error_log import ErrorLogBuffer
from ..models.error_record import ErrorRecord
from ..models.import_outcome import ImportOutcome
from ..models.row_record import RowRecord
from .progress import ProgressTracker

"""Import executor.

Walks validated rows in input order and, for each one, builds the domain
payload, asks the duplicate probe and commits non-duplicates. A failing row
is counted and reported, never fatal for the batch: the loop always returns
a complete ImportOutcome. There is no automatic retry; re-running the batch
skips the rows that were imported the first time.
"""

__all__ = [
    "CancellationToken",
    "execute_import",
    "format_row_error",
]

logger = logging.getLogger(__name__)

PayloadBuilder = Callable[[RowRecord], Mapping[str, Any]]
DuplicateProbe = Callable[[Mapping[str, Any]], bool]
Commit = Callable[[Mapping[str, Any]], None]


class CancellationToken:
    """Cooperative cancellation flag, checked by the import loop between rows."""

    def __init__(self) -> None:
        self._cancelled = False

    def cancel(self) -> None:
        self._cancelled = True

    @property
    def cancelled(self) -> bool:
        return self._cancelled


def format_row_error(source_line: int, error: BaseException | str) -> str:
    message = str(error).strip() or (error.__class__.__name__ if isinstance(error, BaseException) else "")
    return f"Row {source_line}: {message or 'Unknown error'}"


def execute_import(
    rows: Sequence[RowRecord],
    *,
    build_payload: PayloadBuilder,
    find_duplicate: DuplicateProbe,
    commit: Commit,
    cancel_token: CancellationToken | None = None,
    progress: ProgressTracker | None = None,
    error_log: ErrorLogBuffer | None = None,
    source: str = "<text>",
    domain: str = "",
) -> ImportOutcome:
    """Import ``rows`` one at a time.

    Args:
        rows: validated rows, imported in order
        build_payload: row -> payload for the store
        find_duplicate: payload -> True when an equivalent record exists
        commit: persists a payload; any exception marks the row failed
        cancel_token: stops the loop before the next row once cancelled;
            rows already processed keep their counts
        progress: optional row progress display
        error_log: optional JSON Lines buffer receiving one record per failure
        source, domain: labels for log lines and error records

    Returns:
        ImportOutcome with imported/skipped/failed counts and row errors
    """
    imported = 0
    skipped = 0
    failed = 0
    errors: list[str] = []
    cancelled = False
    unprocessed = 0

    for position, row in enumerate(rows):
        if cancel_token is not None and cancel_token.cancelled:
            cancelled = True
            unprocessed = len(rows) - position
            logger.warning("import cancelled: %d of %d rows not processed", unprocessed, len(rows))
            break

        stage = "payload"
        try:
            payload = build_payload(row)
            stage = "duplicate_check"
            if find_duplicate(payload):
                skipped += 1
                logger.debug("row %d: duplicate, skipped", row.source_line)
            else:
                stage = "commit"
                commit(payload)
                imported += 1
                logger.debug("row %d: imported", row.source_line)
        except Exception as e:
            failed += 1
            message = format_row_error(row.source_line, e)
            errors.append(message)
            logger.error("%s", message)
            if error_log is not None:
                error_log.append(
                    ErrorRecord.create(
                        source=source,
                        domain=domain,
                        row=row.source_line,
                        error_type=f"{stage.upper()}_ERROR",
                        message=str(e),
                    )
                )

        if progress is not None:
            progress.advance(imported=imported, skipped=skipped, failed=failed)

    return ImportOutcome(
        imported=imported,
        skipped=skipped,
        failed=failed,
        errors=errors,
        cancelled=cancelled,
        unprocessed=unprocessed,
    )

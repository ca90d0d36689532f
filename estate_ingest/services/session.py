from __future__ import annotations

import logging
from collections.abc import Callable
from enum import Enum
from pathlib import Path

from ..db.store import RecordStore
from ..domains.base import IngestDomain
from ..errors import ImportBlockedError, ParseError, SessionStateError
from ..logging.error_log import ErrorLogBuffer
from ..models.config_models import IngestConfig
from ..models.import_outcome import ImportOutcome
from ..models.parsed_batch import ParsedBatch
from ..models.row_record import RowRecord
from ..parsing.detector import TokenizedInput, tokenize
from ..parsing.reader import load_source
from .importer import CancellationToken, execute_import
from .progress import ProgressTracker
from .summary import render_batch_summary
from .validation import row_number, summarize, validate_batch, validate_row

"""Interactive correction loop.

An IngestSession holds one operator's batch between pipeline steps:

    upload -> validating -> preview -> confirming -> complete

Edits go through a sparse overlay keyed by row index; the canonical rows in
the batch only change on ``save_edit``, so a cancelled edit leaves the batch
untouched. Saving re-validates the edited row alone and flags the batch so a
full pass runs before import.
"""

__all__ = [
    "Stage",
    "IngestSession",
    "SessionStore",
]

logger = logging.getLogger(__name__)


class Stage(Enum):
    UPLOAD = "upload"
    VALIDATING = "validating"
    PREVIEW = "preview"
    CONFIRMING = "confirming"
    COMPLETE = "complete"


class IngestSession:
    """Parse/validate/edit/import state for one operator submission."""

    def __init__(self, domain: IngestDomain, config: IngestConfig | None = None) -> None:
        self.domain = domain
        self.config = config or IngestConfig()
        self.stage = Stage.UPLOAD
        self.batch: ParsedBatch | None = None
        self.overlay: dict[int, RowRecord] = {}
        self.editing_row: int | None = None
        self.has_edits = False
        self.outcome: ImportOutcome | None = None
        self.source = "<text>"

    # ------------------------------------------------------------------
    # upload -> validating -> preview
    # ------------------------------------------------------------------

    def load_text(self, text: str, source: str = "<text>") -> ParsedBatch:
        parser = self.domain.freeform_parser(self.config)
        return self._load(lambda: tokenize(text, parser), source)

    def load_file(self, path: Path) -> ParsedBatch:
        parser = self.domain.freeform_parser(self.config)
        return self._load(lambda: load_source(path, parser), path.name)

    def _load(self, produce: Callable[[], TokenizedInput], source: str) -> ParsedBatch:
        if self.stage not in (Stage.UPLOAD, Stage.PREVIEW):
            raise SessionStateError(f"cannot load input in stage '{self.stage.value}'")
        self.reset()
        self.stage = Stage.VALIDATING
        self.source = source
        try:
            tokenized = produce()
        except ParseError as e:
            self.stage = Stage.UPLOAD
            logger.error("parse failed for %s: %s", source, e)
            raise
        except Exception:
            self.stage = Stage.UPLOAD
            logger.exception("reading %s failed", source)
            raise

        rows = [self._prepare(r) for r in tokenized.rows]
        header = list(tokenized.header_fields)
        for row in rows:
            for name in row.field_names:
                if name not in header:
                    header.append(name)

        batch = ParsedBatch(format=tokenized.format, rows=rows, header_fields=header)
        validate_batch(batch, self.domain.validate_row)
        self.batch = batch
        self.stage = Stage.PREVIEW
        logger.info("parsed %s as %s: %d rows", source, batch.format.value, batch.total)
        logger.debug("%s", render_batch_summary(batch))
        return batch

    # ------------------------------------------------------------------
    # preview: edit / save / cancel / re-validate
    # ------------------------------------------------------------------

    def _require_preview(self) -> ParsedBatch:
        if self.stage is not Stage.PREVIEW or self.batch is None:
            raise SessionStateError(f"operation requires stage 'preview', current stage is '{self.stage.value}'")
        return self.batch

    def _check_index(self, batch: ParsedBatch, index: int) -> None:
        if not 0 <= index < len(batch.rows):
            raise IndexError(f"row index {index} out of range (batch has {len(batch.rows)} rows)")

    def start_edit(self, index: int) -> RowRecord:
        """Open row ``index`` for editing and return its overlay copy.

        Only one row is edited at a time: an unsaved edit on another row is
        discarded.
        """
        batch = self._require_preview()
        self._check_index(batch, index)
        if self.editing_row is not None and self.editing_row != index:
            self.overlay.pop(self.editing_row, None)
        if index not in self.overlay:
            self.overlay[index] = batch.rows[index].copy()
        self.editing_row = index
        return self.overlay[index]

    def update_field(self, index: int, field: str, value: str) -> RowRecord:
        self._require_preview()
        if index not in self.overlay:
            raise SessionStateError(f"row {index} is not being edited")
        self.overlay[index] = self.overlay[index].with_field(field, value)
        return self.overlay[index]

    def save_edit(self, index: int) -> ParsedBatch:
        """Merge the overlay into the batch and re-validate that row only.

        Findings of other rows are left as they are; ``has_edits`` is set so
        a full pass runs before import.
        """
        batch = self._require_preview()
        if index not in self.overlay:
            raise SessionStateError(f"row {index} is not being edited")
        edited = self._prepare(self.overlay.pop(index))
        line = row_number(batch.rows[index], index)
        batch.rows[index] = edited

        kept = [f for f in batch.findings if f.row != line]
        fresh = validate_row(edited, index, self.domain.validate_row)
        # stable sort: findings stay grouped in row order, rule order within a row
        batch.findings = sorted(kept + fresh, key=lambda f: f.row)
        batch.summary = summarize(batch.rows, batch.findings)

        if self.editing_row == index:
            self.editing_row = None
        self.has_edits = True
        logger.info("row %d saved: %d finding(s)", line, len(fresh))
        return batch

    def cancel_edit(self, index: int) -> None:
        self.overlay.pop(index, None)
        if self.editing_row == index:
            self.editing_row = None

    def revalidate_all(self) -> ParsedBatch:
        batch = self._require_preview()
        batch.rows = [self._prepare(r) for r in batch.rows]
        validate_batch(batch, self.domain.validate_row)
        self.has_edits = False
        return batch

    def _prepare(self, row: RowRecord) -> RowRecord:
        if self.domain.prepare_row is None:
            return row
        return self.domain.prepare_row(row)

    # ------------------------------------------------------------------
    # preview -> confirming -> complete
    # ------------------------------------------------------------------

    def confirm(self) -> ParsedBatch:
        """Move to 'confirming'; only allowed when the batch has no errors.

        Raises:
            ImportBlockedError: error-severity findings remain
            SessionStateError: an edit is still open
        """
        batch = self._require_preview()
        if self.editing_row is not None:
            raise SessionStateError(f"row {self.editing_row} is still being edited")
        if self.has_edits:
            self.revalidate_all()
        if batch.summary.error_count > 0:
            raise ImportBlockedError(
                f"{batch.summary.error_count} validation error(s) must be fixed before import"
            )
        self.stage = Stage.CONFIRMING
        return batch

    def run_import(
        self,
        store: RecordStore,
        *,
        cancel_token: CancellationToken | None = None,
        progress: ProgressTracker | None = None,
        error_log: ErrorLogBuffer | None = None,
    ) -> ImportOutcome:
        if self.stage is not Stage.CONFIRMING or self.batch is None:
            raise SessionStateError(f"import requires stage 'confirming', current stage is '{self.stage.value}'")
        batch = self.batch
        try:
            outcome = execute_import(
                batch.rows,
                build_payload=lambda row: self.domain.build_payload(row, self.config),
                find_duplicate=store.find_duplicate,
                commit=store.insert,
                cancel_token=cancel_token,
                progress=progress,
                error_log=error_log,
                source=self.source,
                domain=self.domain.name,
            )
        except Exception:
            self.stage = Stage.PREVIEW
            raise
        self.outcome = outcome
        self.stage = Stage.COMPLETE
        return outcome

    def reset(self) -> None:
        self.stage = Stage.UPLOAD
        self.batch = None
        self.overlay = {}
        self.editing_row = None
        self.has_edits = False
        self.outcome = None


class SessionStore:
    """Sessions keyed by the caller's session id.

    Created and owned by the caller (one per web worker, CLI run or test);
    nothing is kept at module level.
    """

    def __init__(self) -> None:
        self._sessions: dict[str, IngestSession] = {}

    def open(self, key: str, domain: IngestDomain, config: IngestConfig | None = None) -> IngestSession:
        """Start a fresh session for ``key``, replacing any previous one."""
        session = IngestSession(domain, config)
        self._sessions[key] = session
        return session

    def get(self, key: str) -> IngestSession | None:
        return self._sessions.get(key)

    def close(self, key: str) -> None:
        self._sessions.pop(key, None)

    def __contains__(self, key: object) -> bool:
        return key in self._sessions

    def __len__(self) -> int:
        return len(self._sessions)

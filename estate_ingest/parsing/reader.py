from __future__ import annotations

from datetime import date, datetime
from pathlib import Path
from typing import Any

import pandas as pd

from ..errors import ParseError
from ..models.parsed_batch import InputFormat
from ..models.row_record import RowRecord
from .detector import FreeformParser, TokenizedInput, tokenize

"""Source file reading.

Text files (.csv, .txt, pasted exports) are read as UTF-8 and handed to the
tokenizer. Workbooks (.xlsx) are read with pandas; the first non-blank row is
the header, the following rows are data, and every cell is converted to the
same string form the tabular tokenizer produces.
"""

__all__ = [
    "WORKBOOK_SUFFIXES",
    "read_text",
    "read_workbook",
    "load_source",
]

WORKBOOK_SUFFIXES = {".xlsx", ".xlsm"}


def read_text(path: Path) -> str:
    try:
        # utf-8-sig drops the BOM spreadsheet tools put in front of CSV exports
        return path.read_text(encoding="utf-8-sig")
    except FileNotFoundError as e:
        raise ParseError(f"file not found: {path}") from e
    except (OSError, UnicodeDecodeError) as e:
        raise ParseError(f"unreadable file {path}: {e}") from e


def read_workbook(path: Path, sheet_name: str | int = 0) -> TokenizedInput:
    """Read one worksheet as tabular rows.

    Parameters
    ----------
    path: workbook path
    sheet_name: sheet to read (default: first sheet)
    """
    try:
        df = pd.read_excel(path, sheet_name=sheet_name, header=None, dtype=object)
    except FileNotFoundError as e:
        raise ParseError(f"file not found: {path}") from e
    except Exception as e:
        # the excel engines raise their own error types for damaged workbooks
        raise ParseError(f"unreadable workbook {path}: {type(e).__name__}: {e}") from e

    header: list[str] | None = None
    rows: list[RowRecord] = []
    for position, (_, raw) in enumerate(df.iterrows(), start=1):
        cells = [_cell_to_text(v) for v in raw.tolist()]
        if not any(cells):
            continue
        if header is None:
            header = cells
            continue
        values = {h: (cells[i] if i < len(cells) else "") for i, h in enumerate(header) if h}
        rows.append(RowRecord(source_line=position, values=values))

    fields = [h for h in (header or []) if h]
    return TokenizedInput(format=InputFormat.TABULAR, rows=rows, header_fields=fields)


def load_source(path: Path, freeform_parser: FreeformParser | None = None) -> TokenizedInput:
    """Read ``path`` and tokenize it according to its type."""
    if path.suffix.lower() in WORKBOOK_SUFFIXES:
        return read_workbook(path)
    return tokenize(read_text(path), freeform_parser)


def _cell_to_text(value: Any) -> str:
    if value is None or (not isinstance(value, str) and pd.isna(value)):
        return ""
    if isinstance(value, (datetime, pd.Timestamp)):
        if value.hour == 0 and value.minute == 0 and value.second == 0:
            return value.date().isoformat()
        return value.isoformat()
    if isinstance(value, date):
        return value.isoformat()
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value).strip()

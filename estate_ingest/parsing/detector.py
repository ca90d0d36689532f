from __future__ import annotations

import re
from collections.abc import Callable
from dataclasses import dataclass, field

from ..errors import UnsupportedFormatError
from ..models.categories import SaleCategory
from ..models.parsed_batch import InputFormat
from ..models.row_record import RowRecord
from .freeform import classify_label

"""Format detection and tabular tokenizing.

Raw input is either comma-delimited text with a header line, or a free-form
daily report pasted from a messaging app. Detection looks for report section
markers: a label on its own line ending in "sales", "exp"/"expenses" or
"purchases", or a bulk-count label such as "Charcoal(30bags)", followed by a
colon. A date line followed by a "label:" line naming a known category
("SHOP: nil", "Cinema: 5000") also marks a report.
"""

__all__ = [
    "DELIMITER",
    "TokenizedInput",
    "FreeformParser",
    "detect_format",
    "parse_tabular",
    "tokenize",
]

DELIMITER = ","

FreeformParser = Callable[[str], list[RowRecord]]

_FREEFORM_MARKER = re.compile(
    r"^\s*(?:[^:,\n]*?\b(?:sales|exp|expenses|purchases?)|[^:,()\n]+\(\s*\d+(?:\.\d+)?\s*[a-z]*\s*\))\s*:",
    re.IGNORECASE | re.MULTILINE,
)
_DATE_LINE = re.compile(r"^\s*\d{1,2}/\d{1,2}/(?:\d{4}|\d{2})(?!\d)[^,\n]*$")
_LABEL_LINE = re.compile(r"^\s*(?P<label>[^:,\n]+?)\s*:")


@dataclass(frozen=True)
class TokenizedInput:
    """Output of the tokenizer: format tag, rows and column/field names."""
    format: InputFormat
    rows: list[RowRecord]
    header_fields: list[str] = field(default_factory=list)


def detect_format(text: str) -> InputFormat:
    if _FREEFORM_MARKER.search(text) or _has_dated_category_entry(text):
        return InputFormat.FREEFORM
    return InputFormat.TABULAR


def _has_dated_category_entry(text: str) -> bool:
    seen_date = False
    for line in text.splitlines():
        if _DATE_LINE.match(line):
            seen_date = True
            continue
        if not seen_date:
            continue
        label = _LABEL_LINE.match(line)
        if label and _is_known_label(label.group("label")):
            return True
    return False


def _is_known_label(label: str) -> bool:
    match = classify_label(label)
    return match.is_expense or match.category is not SaleCategory.OTHER


def parse_tabular(text: str) -> TokenizedInput:
    """Split comma-delimited text positionally against its header line.

    The first non-blank line is the header. Short lines give "" for missing
    trailing fields and surplus values are dropped. ``source_line`` is the
    physical line number, so with the header on line 1 the first data row is
    line 2. Input without data lines gives an empty result.
    """
    lines = text.splitlines()
    header_index = next((i for i, line in enumerate(lines) if line.strip()), None)
    if header_index is None:
        return TokenizedInput(format=InputFormat.TABULAR, rows=[], header_fields=[])

    headers = [h.strip() for h in lines[header_index].split(DELIMITER)]
    rows: list[RowRecord] = []
    for offset, line in enumerate(lines[header_index + 1:], start=header_index + 2):
        if not line.strip():
            continue
        cells = [c.strip() for c in line.split(DELIMITER)]
        values = {h: (cells[i] if i < len(cells) else "") for i, h in enumerate(headers)}
        rows.append(RowRecord(source_line=offset, values=values))
    return TokenizedInput(format=InputFormat.TABULAR, rows=rows, header_fields=headers)


def tokenize(text: str, freeform_parser: FreeformParser | None = None) -> TokenizedInput:
    """Detect the input format and produce row records.

    Raises:
        UnsupportedFormatError: free-form input for a domain without a
            free-form parser.
    """
    detected = detect_format(text)
    if detected is InputFormat.TABULAR:
        return parse_tabular(text)

    if freeform_parser is None:
        raise UnsupportedFormatError("free-form daily reports are not supported for this data type")
    rows = freeform_parser(text)
    header: list[str] = []
    for row in rows:
        for name in row.field_names:
            if name not in header:
                header.append(name)
    return TokenizedInput(format=InputFormat.FREEFORM, rows=rows, header_fields=header)

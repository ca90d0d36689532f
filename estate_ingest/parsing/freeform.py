from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from enum import Enum

from ..errors import ParseError
from ..models.categories import SaleCategory
from ..models.row_record import RowRecord
from ..services.derivation import canonical_category, fill_sale_defaults, format_number, parse_amount

"""Free-form daily report parser.

Operators paste the daily report they share on a messaging app, e.g.::

    20/10/25
    Shop sales: 120,000
    Salon sales: nil
    MM sales: 45000
    Charcoal(30bags): 600000
    Shop exp: 15000

The parser is a two-state line machine (NO_DATE -> HAVE_DATE). A date line
sets the current date; every following ``label: amount`` line becomes one
revenue row for that date. Expense and purchase entries are recognized and
left out, since only revenue is imported here.
"""

__all__ = [
    "ParserState",
    "LabelMatch",
    "DEFAULT_BULK_UNIT_PRICE",
    "DEFAULT_LOCATION",
    "parse_date_line",
    "classify_label",
    "parse_freeform",
]

logger = logging.getLogger(__name__)

DEFAULT_BULK_UNIT_PRICE = 20000
DEFAULT_LOCATION = "Ngoma Business Center"
IMPORT_NOTE = "Imported from daily report"

_DATE_LINE = re.compile(r"^(\d{1,2})/(\d{1,2})/(\d{4}|\d{2})(?!\d)")
_ENTRY_LINE = re.compile(r"^(?P<label>[^:]+?)\s*:\s*(?P<amount>.*)$")
_BULK_LABEL = re.compile(
    r"^(?P<name>[^()]*?)\s*\(\s*(?P<qty>\d+(?:\.\d+)?)\s*(?P<unit>[a-z]*)\s*\)\s*$",
    re.IGNORECASE,
)
_EXPENSE_LABEL = re.compile(r"\b(?:exps?|expenses?|purchases?)\b")

# Checked in order; first match wins.
_LABEL_RULES: tuple[tuple[re.Pattern[str], SaleCategory], ...] = (
    (re.compile(r"salon"), SaleCategory.SALON),
    (re.compile(r"shop.*sales|sales.*shop"), SaleCategory.SHOP),
    (re.compile(r"cinema"), SaleCategory.CINEMA),
    (re.compile(r"\bmm\b|mobile\s+money"), SaleCategory.MOBILE_MONEY),
    (re.compile(r"charcoal"), SaleCategory.CHARCOAL),
    (re.compile(r"livestock"), SaleCategory.LIVESTOCK),
    (re.compile(r"property"), SaleCategory.PROPERTY),
)


class ParserState(Enum):
    NO_DATE = "no_date"
    HAVE_DATE = "have_date"


@dataclass(frozen=True)
class LabelMatch:
    """Result of classifying an entry label.

    ``category`` is None for expense/purchase entries. ``quantity`` and
    ``unit`` are set only for bulk-count labels like "Charcoal(30bags)".
    """
    category: SaleCategory | None
    quantity: Decimal | None = None
    unit: str = ""

    @property
    def is_expense(self) -> bool:
        return self.category is None

    @property
    def is_bulk(self) -> bool:
        return self.quantity is not None


def parse_date_line(line: str, line_number: int) -> str | None:
    """Return the ISO date for a ``d/m/yy`` or ``d/m/yyyy`` line, else None.

    Raises:
        ParseError: the line looks like a date but is not a calendar date.
    """
    m = _DATE_LINE.match(line)
    if not m:
        return None
    day, month, year = m.groups()
    if len(year) == 2:
        year = "20" + year
    try:
        return date(int(year), int(month), int(day)).isoformat()
    except ValueError as e:
        raise ParseError(f"line {line_number}: invalid date '{m.group(0)}' ({e})", line=line_number) from e


def classify_label(label: str) -> LabelMatch:
    text = label.strip()
    bulk = _BULK_LABEL.match(text)
    name = bulk.group("name") if bulk else text
    if _EXPENSE_LABEL.search(name.lower()):
        return LabelMatch(category=None)
    if bulk:
        return LabelMatch(
            category=_category_for(name),
            quantity=Decimal(bulk.group("qty")),
            unit=bulk.group("unit"),
        )
    return LabelMatch(category=_category_for(text))


def _category_for(label: str) -> SaleCategory:
    exact = canonical_category(label)
    if exact is not SaleCategory.OTHER:
        return exact
    lowered = label.lower()
    for pattern, category in _LABEL_RULES:
        if pattern.search(lowered):
            return category
    return SaleCategory.OTHER


def parse_freeform(
    text: str,
    *,
    location: str = DEFAULT_LOCATION,
    bulk_default_unit_price: int | Decimal = DEFAULT_BULK_UNIT_PRICE,
) -> list[RowRecord]:
    """Parse one pasted report into revenue row records.

    Entries seen before the first date line are ignored. Labels that match no
    known category are kept as OTHER so the operator still sees them.
    """
    state = ParserState.NO_DATE
    current_date = ""
    rows: list[RowRecord] = []

    for line_number, raw in enumerate(text.splitlines(), start=1):
        line = raw.strip()
        if not line:
            continue

        iso = parse_date_line(line, line_number)
        if iso is not None:
            state = ParserState.HAVE_DATE
            current_date = iso
            continue

        if state is ParserState.NO_DATE:
            logger.debug("line %d: no date context yet, ignored", line_number)
            continue

        entry = _ENTRY_LINE.match(line)
        if not entry:
            logger.debug("line %d: not a 'label: amount' entry, ignored", line_number)
            continue

        match = classify_label(entry.group("label"))
        if match.category is None:
            logger.debug("line %d: expense entry '%s' skipped", line_number, entry.group("label"))
            continue

        amount = parse_amount(entry.group("amount"))
        rows.append(
            _build_row(
                line_number,
                current_date,
                match.category,
                match.quantity,
                match.unit,
                amount,
                location,
                Decimal(bulk_default_unit_price),
            )
        )

    return rows


def _build_row(
    line_number: int,
    current_date: str,
    category: SaleCategory,
    bulk_quantity: Decimal | None,
    unit: str,
    amount: Decimal,
    location: str,
    bulk_default_unit_price: Decimal,
) -> RowRecord:
    if bulk_quantity is not None:
        quantity = bulk_quantity
        unit_price = amount / quantity if quantity > 0 else bulk_default_unit_price
        if unit_price != unit_price.to_integral_value():
            unit_price = unit_price.quantize(Decimal("0.01"))
        units = f"{format_number(quantity)} {unit}".strip()
        notes = f"{IMPORT_NOTE} - {units}"
    else:
        # Daily aggregate: one unit priced at the whole day's takings.
        quantity = Decimal(1)
        unit_price = amount
        notes = IMPORT_NOTE

    row = RowRecord(
        source_line=line_number,
        values={
            "date": current_date,
            "category": category.value,
            "description": "",
            "quantity": format_number(quantity),
            "unitPrice": format_number(unit_price),
            "totalAmount": format_number(amount),
            "location": location,
            "notes": notes,
        },
    )
    return fill_sale_defaults(row)

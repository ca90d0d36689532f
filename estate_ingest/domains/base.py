from __future__ import annotations

import warnings
from collections.abc import Callable
from dataclasses import dataclass
from datetime import date
from functools import partial
from pathlib import Path
from typing import Any

import pandas as pd

from ..models.config_models import IngestConfig
from ..models.row_record import RowRecord
from ..parsing.detector import FreeformParser
from ..services.validation import RowRule

"""Target domain definition.

A domain bundles what the pipeline needs from the calling feature: the
validation rule, an optional free-form parser, how a row becomes a store
payload, and which payload columns identify a duplicate.
"""

__all__ = [
    "TEMPLATES_DIR",
    "IngestDomain",
    "to_date",
]

TEMPLATES_DIR = Path(__file__).resolve().parent.parent / "templates"

PayloadBuilder = Callable[[RowRecord, IngestConfig], dict[str, Any]]


@dataclass(frozen=True)
class IngestDomain:
    name: str
    validate_row: RowRule
    build_payload: PayloadBuilder
    duplicate_key: tuple[str, ...]  # payload columns compared by the duplicate probe
    table_for: Callable[[IngestConfig], str]
    template_name: str
    prepare_row: Callable[[RowRecord], RowRecord] | None = None  # derivation applied after parsing
    parse_freeform: Callable[..., list[RowRecord]] | None = None
    freeform_options: Callable[[IngestConfig], dict[str, Any]] | None = None

    @property
    def supports_freeform(self) -> bool:
        return self.parse_freeform is not None

    def freeform_parser(self, config: IngestConfig) -> FreeformParser | None:
        """Bind the free-form parser to the configured defaults."""
        if self.parse_freeform is None:
            return None
        options = self.freeform_options(config) if self.freeform_options else {}
        return partial(self.parse_freeform, **options)

    def table(self, config: IngestConfig) -> str:
        return self.table_for(config)

    @property
    def template_path(self) -> Path:
        return TEMPLATES_DIR / self.template_name


def to_date(value: str) -> date | None:
    """Parse a date field into a calendar date (None when blank).

    Raises:
        ValueError: the value is not a parseable date.
    """
    raw = value.strip()
    if not raw:
        return None
    with warnings.catch_warnings():
        warnings.simplefilter("ignore", UserWarning)
        parsed = pd.to_datetime(raw, errors="coerce")
    if pd.isna(parsed):
        raise ValueError(f"invalid date '{raw}'")
    return parsed.date()

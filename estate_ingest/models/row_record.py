from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field

"""RowRecord model for the ingestion pipeline.

A RowRecord is one parsed record: an open set of field -> string values plus
the physical source line that produced it. Records are never mutated; edits
produce a superseding copy.
"""

__all__ = [
    "RowRecord",
]


@dataclass(frozen=True)
class RowRecord:
    """One parsed row (field -> value) and its 1-based source line.

    For tabular input the header is line 1, so the first data row is line 2.
    For free-form input the line is the one that carried the ``label: amount``
    entry. ``derived`` names the fields filled by derivation rather than read
    from the source or typed by an operator; they are recomputed when the
    fields they depend on change.
    """
    source_line: int  # 1-based physical line number
    values: dict[str, str] = field(default_factory=dict)
    derived: frozenset[str] = frozenset()

    def get(self, name: str, default: str = "") -> str:
        value = self.values.get(name)
        return default if value is None else value

    def has_value(self, name: str) -> bool:
        """True when the field is present and not blank."""
        return bool(self.get(name).strip())

    def is_derived(self, name: str) -> bool:
        return name in self.derived

    def with_field(self, name: str, value: str) -> RowRecord:
        """Return a copy with one field replaced; the field is no longer derived."""
        values = dict(self.values)
        values[name] = value
        return RowRecord(source_line=self.source_line, values=values, derived=self.derived - {name})

    def with_values(self, updates: Mapping[str, str]) -> RowRecord:
        values = dict(self.values)
        values.update(updates)
        return RowRecord(source_line=self.source_line, values=values, derived=self.derived - set(updates))

    def with_derived(self, updates: Mapping[str, str]) -> RowRecord:
        """Return a copy with derived values set and marked as derived."""
        values = dict(self.values)
        values.update(updates)
        return RowRecord(source_line=self.source_line, values=values, derived=self.derived | set(updates))

    def copy(self) -> RowRecord:
        return RowRecord(source_line=self.source_line, values=dict(self.values), derived=self.derived)

    @property
    def field_names(self) -> list[str]:
        return list(self.values.keys())

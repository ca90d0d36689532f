from __future__ import annotations

from dataclasses import dataclass, field

"""ImportOutcome model: per-batch result of the import executor."""

__all__ = [
    "ImportOutcome",
]


@dataclass(frozen=True)
class ImportOutcome:
    """Aggregated import result.

    For a run that was not cancelled, ``imported + skipped + failed`` equals
    the number of rows submitted. A cancelled run reports the rows it never
    reached in ``unprocessed``.
    """
    imported: int = 0
    skipped: int = 0  # duplicates, not errors
    failed: int = 0
    errors: list[str] = field(default_factory=list)  # "Row {line}: {message}"
    cancelled: bool = False
    unprocessed: int = 0

    @property
    def processed(self) -> int:
        return self.imported + self.skipped + self.failed

    @property
    def has_failures(self) -> bool:
        return self.failed > 0

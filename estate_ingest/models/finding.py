from __future__ import annotations

from dataclasses import asdict, dataclass
from enum import Enum

"""Finding model: one validation message tied to a row, field and severity."""

__all__ = [
    "Severity",
    "Finding",
]


class Severity(Enum):
    """Finding severity.

    - ERROR: blocks the import until the row is fixed
    - WARNING: informational, import may proceed
    """
    ERROR = "error"
    WARNING = "warning"


@dataclass(frozen=True)
class Finding:
    """Validation finding. Derived only, regenerated on every validation pass."""
    row: int  # source line of the row the finding refers to
    field: str
    message: str
    severity: Severity

    @classmethod
    def error(cls, row: int, field: str, message: str) -> Finding:
        return cls(row=row, field=field, message=message, severity=Severity.ERROR)

    @classmethod
    def warning(cls, row: int, field: str, message: str) -> Finding:
        return cls(row=row, field=field, message=message, severity=Severity.WARNING)

    @property
    def is_error(self) -> bool:
        return self.severity is Severity.ERROR

    def to_dict(self) -> dict[str, object]:
        data = asdict(self)
        data["severity"] = self.severity.value
        return data

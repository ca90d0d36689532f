from __future__ import annotations

from typing import Any

from ..models.categories import AssetCategory, AssetCondition, AssetStatus
from ..models.config_models import IngestConfig
from ..models.finding import Finding, Severity
from ..models.row_record import RowRecord
from ..services.derivation import parse_number
from ..services.validation import check_date, check_enum, check_number, check_required
from .base import IngestDomain, to_date

"""Assets domain: fixed assets (property, equipment, vehicles...).

Assets are tabular-only; a name already present in the store counts as a
duplicate.
"""

__all__ = [
    "ASSETS",
    "validate_asset_row",
    "build_asset_payload",
]


def validate_asset_row(row: RowRecord, index: int) -> list[Finding]:
    checks = [
        check_required(row, index, "name", "Asset name is required"),
        check_enum(row, index, "category", AssetCategory, Severity.ERROR, required=True),
        check_enum(row, index, "condition", AssetCondition, Severity.WARNING),
        check_enum(row, index, "status", AssetStatus, Severity.WARNING),
        check_number(row, index, "purchasePrice", "Purchase price must be a positive number", Severity.WARNING),
        check_number(row, index, "currentValue", "Current value must be a positive number", Severity.WARNING),
        check_date(
            row, index, "purchaseDate", "Purchase date must be a valid date (YYYY-MM-DD format)", Severity.WARNING
        ),
        check_date(
            row, index, "warrantyExpiry", "Warranty expiry must be a valid date (YYYY-MM-DD format)",
            Severity.WARNING,
        ),
        check_date(
            row, index, "maintenanceDate", "Maintenance date must be a valid date (YYYY-MM-DD format)",
            Severity.WARNING,
        ),
    ]
    return [f for f in checks if f is not None]


def _optional_date(row: RowRecord, field: str):
    # warnings only: an unparseable optional date is stored as NULL
    try:
        return to_date(row.get(field))
    except ValueError:
        return None


def build_asset_payload(row: RowRecord, config: IngestConfig) -> dict[str, Any]:
    settings = config.assets
    name = row.get("name").strip()
    if not name:
        raise ValueError("asset name is required")
    return {
        "name": name,
        "description": row.get("description").strip() or None,
        "category": row.get("category").strip().upper() or AssetCategory.OTHER.value,
        "purchase_price": parse_number(row.get("purchasePrice")),
        "current_value": parse_number(row.get("currentValue")),
        "purchase_date": _optional_date(row, "purchaseDate"),
        "condition": row.get("condition").strip().upper() or settings.default_condition,
        "location": row.get("location").strip() or None,
        "serial_number": row.get("serialNumber").strip() or None,
        "warranty_expiry": _optional_date(row, "warrantyExpiry"),
        "maintenance_date": _optional_date(row, "maintenanceDate"),
        "status": row.get("status").strip().upper() or settings.default_status,
        "notes": row.get("notes").strip() or None,
    }


ASSETS = IngestDomain(
    name="assets",
    validate_row=validate_asset_row,
    build_payload=build_asset_payload,
    duplicate_key=("name",),
    table_for=lambda config: config.assets.table,
    template_name="assets-template.csv",
)

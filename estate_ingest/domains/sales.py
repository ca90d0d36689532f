from __future__ import annotations

from typing import Any

from ..models.categories import PaymentMethod, PaymentStatus, SaleCategory
from ..models.config_models import IngestConfig
from ..models.finding import Finding, Severity
from ..models.row_record import RowRecord
from ..parsing.freeform import parse_freeform
from ..services.derivation import (
    auto_description,
    canonical_category,
    default_payment_method,
    default_payment_status,
    fill_sale_defaults,
    parse_number,
    resolve_quantity_pricing,
    sale_type_rules,
    transaction_type,
)
from ..services.validation import check_date, check_enum, check_number
from .base import IngestDomain, to_date

"""Sales domain: daily takings and one-off sales booked against an asset."""

__all__ = [
    "SALES",
    "validate_sale_row",
    "build_sale_payload",
]


def validate_sale_row(row: RowRecord, index: int) -> list[Finding]:
    checks = [
        check_date(
            row, index, "date", "Valid date is required (YYYY-MM-DD format)", Severity.ERROR, required=True
        ),
        check_enum(row, index, "category", SaleCategory, Severity.ERROR, required=True),
        check_number(
            row, index, "totalAmount", "Total amount must be a positive number", Severity.ERROR, required=True
        ),
        check_number(
            row, index, "quantity", "Quantity must be a positive number", Severity.WARNING, allow_zero=False
        ),
        check_number(row, index, "unitPrice", "Unit price must be a positive number", Severity.WARNING),
        check_enum(row, index, "paymentMethod", PaymentMethod, Severity.WARNING, label="Payment method"),
        check_enum(row, index, "paymentStatus", PaymentStatus, Severity.WARNING, label="Payment status"),
    ]
    return [f for f in checks if f is not None]


def build_sale_payload(row: RowRecord, config: IngestConfig) -> dict[str, Any]:
    """Turn a validated sale row into the column -> value payload for the store."""
    settings = config.sales
    category = canonical_category(row.get("category"))
    total = parse_number(row.get("totalAmount"))
    if total is None:
        raise ValueError(f"totalAmount '{row.get('totalAmount')}' is not a number")
    pricing = resolve_quantity_pricing(
        category,
        parse_number(row.get("quantity")),
        parse_number(row.get("unitPrice")),
        total,
    )
    return {
        "asset_id": settings.asset_id,
        "description": row.get("description").strip() or auto_description(category),
        "sale_price": total,
        "sale_date": to_date(row.get("date")),
        "category": category.value,
        "sale_type": transaction_type(category, sale_type_rules(settings.sale_type_rules)).value,
        "payment_method": row.get("paymentMethod").strip().upper() or default_payment_method(category).value,
        "payment_status": row.get("paymentStatus").strip().upper() or default_payment_status(total).value,
        "quantity": pricing.quantity,
        "unit_price": pricing.unit_price,
        "location": row.get("location").strip() or settings.location,
        "currency": settings.currency,
        "notes": row.get("notes").strip() or None,
    }


def _freeform_options(config: IngestConfig) -> dict[str, Any]:
    return {
        "location": config.sales.location,
        "bulk_default_unit_price": config.sales.bulk_default_unit_price,
    }


SALES = IngestDomain(
    name="sales",
    validate_row=validate_sale_row,
    build_payload=build_sale_payload,
    duplicate_key=("asset_id", "sale_date", "category", "sale_price"),
    table_for=lambda config: config.sales.table,
    template_name="sales-template.csv",
    prepare_row=fill_sale_defaults,
    parse_freeform=parse_freeform,
    freeform_options=_freeform_options,
)

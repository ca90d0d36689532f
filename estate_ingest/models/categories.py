from __future__ import annotations

from enum import Enum

"""Closed vocabularies for sale and asset records.

Every enum carries an explicit OTHER/fallback handling in the functions that
map raw strings onto it, so no lookup in the pipeline is partial.
"""

__all__ = [
    "SaleCategory",
    "TransactionType",
    "PaymentMethod",
    "PaymentStatus",
    "AssetCategory",
    "AssetCondition",
    "AssetStatus",
    "enum_values",
]


class SaleCategory(Enum):
    SHOP = "SHOP"
    SALON = "SALON"
    CINEMA = "CINEMA"
    MOBILE_MONEY = "MOBILE_MONEY"
    CHARCOAL = "CHARCOAL"
    PROPERTY = "PROPERTY"
    LIVESTOCK = "LIVESTOCK"
    OTHER = "OTHER"


class TransactionType(Enum):
    SHOP_SALE = "SHOP_SALE"
    BULK_SALE = "BULK_SALE"
    PROPERTY_SALE = "PROPERTY_SALE"
    CASH_SALE = "CASH_SALE"


class PaymentMethod(Enum):
    CASH = "CASH"
    MPESA = "MPESA"
    BANK_TRANSFER = "BANK_TRANSFER"
    CHEQUE = "CHEQUE"
    CREDIT = "CREDIT"


class PaymentStatus(Enum):
    PENDING = "PENDING"
    COMPLETED = "COMPLETED"
    OVERDUE = "OVERDUE"
    CANCELLED = "CANCELLED"


class AssetCategory(Enum):
    PROPERTY = "PROPERTY"
    EQUIPMENT = "EQUIPMENT"
    FURNITURE = "FURNITURE"
    VEHICLE = "VEHICLE"
    OTHER = "OTHER"


class AssetCondition(Enum):
    EXCELLENT = "EXCELLENT"
    GOOD = "GOOD"
    FAIR = "FAIR"
    POOR = "POOR"


class AssetStatus(Enum):
    ACTIVE = "ACTIVE"
    SOLD = "SOLD"
    DAMAGED = "DAMAGED"
    DISPOSED = "DISPOSED"


def enum_values(enum_cls: type[Enum]) -> list[str]:
    """Declared values in definition order (used in finding messages)."""
    return [member.value for member in enum_cls]

from __future__ import annotations

import re
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation

from ..models.categories import PaymentMethod, PaymentStatus, SaleCategory, TransactionType
from ..models.row_record import RowRecord

"""Business-rule derivation engine.

Pure lookup functions that compute default and derived sale fields from a
category. All functions are total: unknown input falls back to
SaleCategory.OTHER (or the documented fallback value) instead of raising.
"""

__all__ = [
    "DerivedFields",
    "QuantityPricing",
    "DERIVED_FIELDS",
    "STOREFRONT_CATEGORIES",
    "BULK_CATEGORIES",
    "STANDARD_SALE_TYPES",
    "STOREFRONT_SALE_TYPES",
    "SALE_TYPE_RULE_SETS",
    "canonical_category",
    "transaction_type",
    "sale_type_rules",
    "default_payment_method",
    "default_payment_status",
    "auto_description",
    "resolve_quantity_pricing",
    "fill_sale_defaults",
    "parse_amount",
    "parse_number",
    "format_number",
]

STOREFRONT_CATEGORIES = frozenset(
    {SaleCategory.SHOP, SaleCategory.SALON, SaleCategory.CINEMA, SaleCategory.MOBILE_MONEY}
)
BULK_CATEGORIES = frozenset({SaleCategory.CHARCOAL})

_CATEGORY_ALIASES = {
    "MM": SaleCategory.MOBILE_MONEY.value,
    "MOBILEMONEY": SaleCategory.MOBILE_MONEY.value,
}

# Sale-type rules used by the upload screens: property and livestock are a
# distinct sale type.
STANDARD_SALE_TYPES: dict[SaleCategory, TransactionType] = {
    SaleCategory.SHOP: TransactionType.SHOP_SALE,
    SaleCategory.SALON: TransactionType.SHOP_SALE,
    SaleCategory.CINEMA: TransactionType.SHOP_SALE,
    SaleCategory.MOBILE_MONEY: TransactionType.SHOP_SALE,
    SaleCategory.CHARCOAL: TransactionType.BULK_SALE,
    SaleCategory.PROPERTY: TransactionType.PROPERTY_SALE,
    SaleCategory.LIVESTOCK: TransactionType.PROPERTY_SALE,
}

# Sale-type rules used by the production sales loader: everything that is not
# a storefront or bulk sale is a cash sale.
STOREFRONT_SALE_TYPES: dict[SaleCategory, TransactionType] = {
    SaleCategory.SHOP: TransactionType.SHOP_SALE,
    SaleCategory.SALON: TransactionType.SHOP_SALE,
    SaleCategory.CINEMA: TransactionType.SHOP_SALE,
    SaleCategory.MOBILE_MONEY: TransactionType.SHOP_SALE,
    SaleCategory.CHARCOAL: TransactionType.BULK_SALE,
}

SALE_TYPE_RULE_SETS: dict[str, dict[SaleCategory, TransactionType]] = {
    "standard": STANDARD_SALE_TYPES,
    "storefront": STOREFRONT_SALE_TYPES,
}


@dataclass(frozen=True)
class DerivedFields:
    transaction_type: TransactionType
    default_payment_method: PaymentMethod
    auto_description: str


# Static per-category defaults. Covers every SaleCategory member.
DERIVED_FIELDS: dict[SaleCategory, DerivedFields] = {
    SaleCategory.SHOP: DerivedFields(TransactionType.SHOP_SALE, PaymentMethod.CASH, "Daily Shop Sales"),
    SaleCategory.SALON: DerivedFields(TransactionType.SHOP_SALE, PaymentMethod.CASH, "Daily Salon Services"),
    SaleCategory.CINEMA: DerivedFields(TransactionType.SHOP_SALE, PaymentMethod.CASH, "Daily Cinema Tickets"),
    SaleCategory.MOBILE_MONEY: DerivedFields(
        TransactionType.SHOP_SALE, PaymentMethod.MPESA, "Daily Mobile Money Transactions"
    ),
    SaleCategory.CHARCOAL: DerivedFields(TransactionType.BULK_SALE, PaymentMethod.CASH, "Charcoal Bags"),
    SaleCategory.PROPERTY: DerivedFields(
        TransactionType.PROPERTY_SALE, PaymentMethod.BANK_TRANSFER, "Property Sale"
    ),
    SaleCategory.LIVESTOCK: DerivedFields(
        TransactionType.PROPERTY_SALE, PaymentMethod.BANK_TRANSFER, "Livestock Sale"
    ),
    SaleCategory.OTHER: DerivedFields(
        TransactionType.CASH_SALE, PaymentMethod.CASH, f"{SaleCategory.OTHER.value} Sale"
    ),
}


@dataclass(frozen=True)
class QuantityPricing:
    quantity: Decimal | None
    unit_price: Decimal


def canonical_category(raw: str | SaleCategory | None) -> SaleCategory:
    """Map a raw category token onto SaleCategory (unknown -> OTHER).

    >>> canonical_category(" mobile money ")
    <SaleCategory.MOBILE_MONEY: 'MOBILE_MONEY'>
    >>> canonical_category("bogus")
    <SaleCategory.OTHER: 'OTHER'>
    """
    if isinstance(raw, SaleCategory):
        return raw
    if raw is None:
        return SaleCategory.OTHER
    token = re.sub(r"[\s\-]+", "_", raw.strip().upper())
    token = _CATEGORY_ALIASES.get(token.replace("_", ""), token)
    try:
        return SaleCategory(token)
    except ValueError:
        return SaleCategory.OTHER


def sale_type_rules(name: str) -> dict[SaleCategory, TransactionType]:
    """Look up a named sale-type rule set; unknown names use ``standard``."""
    return SALE_TYPE_RULE_SETS.get(name, STANDARD_SALE_TYPES)


def transaction_type(
    category: str | SaleCategory | None,
    rules: dict[SaleCategory, TransactionType] = STANDARD_SALE_TYPES,
) -> TransactionType:
    return rules.get(canonical_category(category), TransactionType.CASH_SALE)


def default_payment_method(category: str | SaleCategory | None) -> PaymentMethod:
    return DERIVED_FIELDS[canonical_category(category)].default_payment_method


def default_payment_status(amount: Decimal | int | float | None) -> PaymentStatus:
    if amount is not None and amount > 0:
        return PaymentStatus.COMPLETED
    return PaymentStatus.PENDING


def auto_description(category: str | SaleCategory | None) -> str:
    return DERIVED_FIELDS[canonical_category(category)].auto_description


def resolve_quantity_pricing(
    category: str | SaleCategory | None,
    quantity: Decimal | None,
    unit_price: Decimal | None,
    total: Decimal,
) -> QuantityPricing:
    """Resolve the quantity/unit price pair for a sale.

    Bulk sales (and any sale with quantity > 1) keep their explicit figures,
    deriving the unit price from the total when it is missing. Storefront
    categories record a daily aggregate, so the total is the unit price of a
    single unit.
    """
    cat = canonical_category(category)
    qty = quantity if quantity else Decimal(1)
    price = unit_price if unit_price is not None and unit_price > 0 else None

    if cat in STOREFRONT_CATEGORIES:
        return QuantityPricing(quantity=Decimal(1), unit_price=total)

    if cat in BULK_CATEGORIES or qty > 1:
        if price is None:
            price = _round_price(total / qty) if qty > 0 else total
        return QuantityPricing(quantity=qty if qty > 0 else None, unit_price=price)

    return QuantityPricing(quantity=qty, unit_price=price if price is not None else total)


def fill_sale_defaults(row: RowRecord) -> RowRecord:
    """Fill description / paymentMethod / paymentStatus on a sale row.

    Blank fields and fields an earlier call derived are (re)computed from
    the current category and amount; values from the source or typed by an
    operator are kept.
    """
    category = canonical_category(row.get("category"))
    derived = {
        "description": lambda: auto_description(category),
        "paymentMethod": lambda: default_payment_method(category).value,
        "paymentStatus": lambda: default_payment_status(parse_number(row.get("totalAmount"))).value,
    }
    updates = {
        name: compute()
        for name, compute in derived.items()
        if row.is_derived(name) or not row.has_value(name)
    }
    if all(row.values.get(name) == value and row.is_derived(name) for name, value in updates.items()):
        return row
    return row.with_derived(updates)


def parse_amount(text: str | None) -> Decimal:
    """Lenient amount parsing for free-form report lines.

    ``nil`` and blank mean zero; every character other than digits and ``.``
    is dropped (thousand separators, currency labels); unparsable -> 0.
    """
    if text is None:
        return Decimal(0)
    stripped = text.strip()
    if not stripped or stripped.lower() == "nil":
        return Decimal(0)
    cleaned = re.sub(r"[^\d.]", "", stripped)
    if not cleaned:
        return Decimal(0)
    try:
        value = Decimal(cleaned)
    except InvalidOperation:
        return Decimal(0)
    return value if value.is_finite() else Decimal(0)


def parse_number(text: str | None) -> Decimal | None:
    """Strict numeric parsing for tabular fields; None when not a number."""
    if text is None:
        return None
    stripped = text.strip()
    if not stripped:
        return None
    try:
        value = Decimal(stripped)
    except InvalidOperation:
        return None
    return value if value.is_finite() else None


def format_number(value: Decimal) -> str:
    """Render a Decimal without exponent; integral values have no decimals."""
    if value == value.to_integral_value():
        return str(int(value))
    return format(value.normalize(), "f")


def _round_price(value: Decimal) -> Decimal:
    if value == value.to_integral_value():
        return value
    return value.quantize(Decimal("0.01"))

from __future__ import annotations

from decimal import Decimal

import pytest

from estate_ingest.models.categories import PaymentMethod, PaymentStatus, SaleCategory, TransactionType
from estate_ingest.models.row_record import RowRecord
from estate_ingest.services.derivation import (
    DERIVED_FIELDS,
    STOREFRONT_SALE_TYPES,
    auto_description,
    canonical_category,
    default_payment_method,
    default_payment_status,
    fill_sale_defaults,
    format_number,
    parse_amount,
    parse_number,
    resolve_quantity_pricing,
    sale_type_rules,
    transaction_type,
)


def test_every_category_has_derived_fields():
    assert set(DERIVED_FIELDS) == set(SaleCategory)


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        ("shop", SaleCategory.SHOP),
        (" Mobile Money ", SaleCategory.MOBILE_MONEY),
        ("mobile-money", SaleCategory.MOBILE_MONEY),
        ("MM", SaleCategory.MOBILE_MONEY),
        ("", SaleCategory.OTHER),
        (None, SaleCategory.OTHER),
        ("BOGUS", SaleCategory.OTHER),
        (SaleCategory.CINEMA, SaleCategory.CINEMA),
    ],
)
def test_canonical_category(raw, expected):
    assert canonical_category(raw) is expected


def test_standard_rules_distinguish_property_sales():
    assert transaction_type("SHOP") is TransactionType.SHOP_SALE
    assert transaction_type("CHARCOAL") is TransactionType.BULK_SALE
    assert transaction_type("PROPERTY") is TransactionType.PROPERTY_SALE
    assert transaction_type("LIVESTOCK") is TransactionType.PROPERTY_SALE
    assert transaction_type("OTHER") is TransactionType.CASH_SALE


def test_storefront_rules_fold_high_value_into_cash_sale():
    rules = sale_type_rules("storefront")
    assert rules is STOREFRONT_SALE_TYPES
    assert transaction_type("PROPERTY", rules) is TransactionType.CASH_SALE
    assert transaction_type("MOBILE_MONEY", rules) is TransactionType.SHOP_SALE


def test_unknown_rule_set_name_uses_standard():
    assert transaction_type("LIVESTOCK", sale_type_rules("nope")) is TransactionType.PROPERTY_SALE


def test_derivations_are_deterministic():
    for category in SaleCategory:
        assert default_payment_method(category) is default_payment_method(category.value)
        assert auto_description(category) == auto_description(category.value.lower())
        assert transaction_type(category) is transaction_type(category.value)


def test_payment_method_defaults():
    assert default_payment_method("MOBILE_MONEY") is PaymentMethod.MPESA
    assert default_payment_method("PROPERTY") is PaymentMethod.BANK_TRANSFER
    assert default_payment_method("SHOP") is PaymentMethod.CASH
    assert default_payment_method("whatever") is PaymentMethod.CASH


def test_payment_status_from_amount():
    assert default_payment_status(Decimal("1")) is PaymentStatus.COMPLETED
    assert default_payment_status(Decimal("0")) is PaymentStatus.PENDING
    assert default_payment_status(None) is PaymentStatus.PENDING


def test_quantity_pricing_storefront_is_single_unit():
    pricing = resolve_quantity_pricing("SALON", Decimal(3), Decimal(10), Decimal(5000))
    assert pricing.quantity == 1
    assert pricing.unit_price == Decimal(5000)


def test_quantity_pricing_bulk_derives_unit_price():
    pricing = resolve_quantity_pricing("CHARCOAL", Decimal(30), None, Decimal(600000))
    assert pricing.quantity == 30
    assert pricing.unit_price == Decimal(20000)


def test_quantity_pricing_rounds_to_cents():
    pricing = resolve_quantity_pricing("OTHER", Decimal(3), None, Decimal(100))
    assert pricing.unit_price == Decimal("33.33")


def test_quantity_pricing_keeps_explicit_unit_price():
    pricing = resolve_quantity_pricing("CHARCOAL", Decimal(30), Decimal(19000), Decimal(600000))
    assert pricing.unit_price == Decimal(19000)


def test_quantity_pricing_single_item_defaults_to_total():
    pricing = resolve_quantity_pricing("PROPERTY", None, None, Decimal(90000000))
    assert pricing.quantity == 1
    assert pricing.unit_price == Decimal(90000000)


def test_fill_sale_defaults_only_blank_fields():
    row = RowRecord(
        source_line=2,
        values={"category": "MOBILE_MONEY", "totalAmount": "45000", "description": "", "paymentStatus": "OVERDUE"},
    )
    filled = fill_sale_defaults(row)
    assert filled.get("description") == "Daily Mobile Money Transactions"
    assert filled.get("paymentMethod") == "MPESA"
    assert filled.get("paymentStatus") == "OVERDUE"
    assert filled.source_line == 2
    # input row is untouched
    assert row.get("description") == ""


def test_fill_sale_defaults_returns_same_row_when_complete():
    row = RowRecord(
        source_line=2,
        values={"category": "SHOP", "description": "x", "paymentMethod": "CASH", "paymentStatus": "PENDING"},
    )
    assert fill_sale_defaults(row) is row


def test_fill_sale_defaults_recomputes_derived_fields_only():
    row = fill_sale_defaults(
        RowRecord(source_line=2, values={"category": "BOGUS", "totalAmount": "", "paymentMethod": "CHEQUE"})
    )
    assert row.derived == frozenset({"description", "paymentStatus"})
    assert row.get("paymentStatus") == "PENDING"

    edited = row.with_field("category", "PROPERTY").with_field("totalAmount", "90000000")
    refreshed = fill_sale_defaults(edited)
    assert refreshed.get("description") == "Property Sale"
    assert refreshed.get("paymentStatus") == "COMPLETED"
    assert refreshed.get("paymentMethod") == "CHEQUE"
    assert fill_sale_defaults(refreshed) is refreshed


@pytest.mark.parametrize(
    ("text", "expected"),
    [
        ("120,000", Decimal(120000)),
        ("UGX 45,000/=", Decimal(45000)),
        ("nil", Decimal(0)),
        ("NIL", Decimal(0)),
        ("", Decimal(0)),
        (None, Decimal(0)),
        ("n/a", Decimal(0)),
        ("1.2.3", Decimal(0)),
    ],
)
def test_parse_amount_is_lenient(text, expected):
    assert parse_amount(text) == expected


def test_parse_number_is_strict():
    assert parse_number("12.50") == Decimal("12.50")
    assert parse_number(" 7 ") == Decimal(7)
    assert parse_number("12,000") is None
    assert parse_number("abc") is None
    assert parse_number("NaN") is None
    assert parse_number("") is None


def test_format_number():
    assert format_number(Decimal("20000.00")) == "20000"
    assert format_number(Decimal("33.330")) == "33.33"
    assert format_number(Decimal("1E+3")) == "1000"

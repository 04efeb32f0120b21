# backend/tests/test_order_calculations.py
import pytest

from storefront.core.exceptions import InvalidStatusTransitionError
from storefront.services.order_calculations import (
    calculate_order_totals,
    can_change_status,
    can_user_edit,
    format_currency,
    normalize_tax_rate,
    validate_status_change,
)


def test_totals_apply_tax_on_subtotal():
    items = [
        {"product_id": "1", "unit_price": 100, "quantity": 2},
        {"product_id": "2", "unitPrice": "50", "quantity": 1},
    ]
    totals = calculate_order_totals(items, 17)
    assert totals.subtotal == 250.0
    assert totals.tax == 42.5
    assert totals.total == 292.5
    assert totals.item_count == 3


@pytest.mark.parametrize("rate, expected", [(None, 17.0), (0, 17.0), (18, 18.0), (0.18, 18.0), ("17", 17.0)])
def test_normalize_tax_rate(rate, expected):
    assert normalize_tax_rate(rate) == expected


def test_tax_is_rounded_half_up():
    # 0.15 * 17% = 0.0255 -> 0.03
    totals = calculate_order_totals([{"unit_price": "0.15", "quantity": 1}], 17)
    assert totals.tax == 0.03
    assert totals.total == 0.18


def test_empty_order_totals_are_zero():
    totals = calculate_order_totals([], None)
    assert (totals.subtotal, totals.tax, totals.total, totals.item_count) == (0.0, 0.0, 0.0, 0)


def test_format_currency():
    assert format_currency(1234.5) == "₪1,234.50"
    assert format_currency(None) == "₪0.00"


@pytest.mark.parametrize("current, new", [
    ("pending", "confirmed"),
    ("pending", "cancelled"),
    ("confirmed", "processing"),
    ("processing", "shipped"),
    ("shipped", "delivered"),
])
def test_allowed_transitions(current, new):
    assert can_change_status(current, new)


@pytest.mark.parametrize("current, new", [
    ("pending", "shipped"),
    ("delivered", "cancelled"),
    ("cancelled", "pending"),
    ("shipped", "cancelled"),
    ("pending", "pending"),
])
def test_forbidden_transitions(current, new):
    assert not can_change_status(current, new)
    with pytest.raises(InvalidStatusTransitionError):
        validate_status_change(current, new)


def test_only_pending_and_confirmed_orders_are_editable():
    assert can_user_edit({"status": "pending"})
    assert can_user_edit({"status": "confirmed"})
    assert not can_user_edit({"status": "shipped"})

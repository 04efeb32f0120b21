# backend/tests/test_pricing_and_security.py
import pytest
from sqlalchemy.exc import ProgrammingError

from storefront.core.config import settings
from storefront.core.exceptions import AuthenticationError, is_permission_error
from storefront.core.security import AuthUser, decode_access_token
from storefront.services.pricing_service import (
    build_prices_map,
    calculate_discount_percentage,
    calculate_margin,
    calculate_profit,
    can_view_prices,
    get_effective_price,
    has_discount,
)

from conftest import make_token


@pytest.mark.parametrize("role, allowed", [
    ("standard", False),
    ("verified_members", True),
    ("customer", True),
    ("admin", True),
])
def test_price_visibility_by_role(role, allowed):
    assert can_view_prices(AuthUser(id="u", role=role)) is allowed


def test_anonymous_cannot_view_prices():
    assert not can_view_prices(None)


def test_effective_price_prefers_lower_discount():
    price = {"unit_price": 100, "discount_price": 80, "cost_price": 50}
    assert get_effective_price(price) == 80
    assert has_discount(price)
    assert calculate_discount_percentage(price) == 20.0
    assert calculate_profit(price) == 30.0
    assert calculate_margin(price) == 37.5


def test_higher_discount_price_is_ignored():
    price = {"unit_price": 100, "discount_price": 120}
    assert get_effective_price(price) == 100
    assert not has_discount(price)
    assert calculate_profit(price) is None


def test_build_prices_map():
    prices = build_prices_map([{"product_ref": "12", "unit_price": 50, "discount_price": None, "currency": "ILS"}])
    assert prices == {"12": {"unitPrice": 50.0, "discountPrice": None, "currency": "ILS", "effectivePrice": 50.0}}


def test_decode_valid_token():
    user = decode_access_token(make_token("u-1", "customer", email="a@b.co"), settings)
    assert user == AuthUser(id="u-1", email="a@b.co", role="customer")


def test_unknown_role_falls_back_to_standard():
    assert decode_access_token(make_token("u-1", "superuser"), settings).role == "standard"


def test_expired_token_is_rejected():
    with pytest.raises(AuthenticationError, match="expired"):
        decode_access_token(make_token("u-1", expires_in=-60), settings)


def test_token_with_wrong_secret_is_rejected():
    with pytest.raises(AuthenticationError):
        decode_access_token(make_token("u-1", secret="other-secret"), settings)


class _PgError(Exception):
    def __init__(self, message, sqlstate=None):
        super().__init__(message)
        self.sqlstate = sqlstate


def test_permission_errors_are_recognised():
    assert is_permission_error(ProgrammingError("SELECT", {}, _PgError("denied", sqlstate="42501")))
    assert is_permission_error(Exception("new row violates row-level security policy"))
    assert not is_permission_error(ProgrammingError("SELECT", {}, _PgError("syntax error", sqlstate="42601")))

# backend/storefront/services/pricing_service.py
"""
Reglas de visibilidad y cálculo de precios.

Solo los roles verified_members, customer y admin pueden ver precios.
"""

from typing import Any, Dict, Iterable, Optional

from storefront.core.security import AuthUser, PRICE_VIEWER_ROLES


def can_view_prices(user: Optional[AuthUser]) -> bool:
    return user is not None and user.role in PRICE_VIEWER_ROLES


def _get(price: Any, field: str) -> Optional[float]:
    value = price.get(field) if isinstance(price, dict) else getattr(price, field, None)
    return float(value) if value is not None else None


def get_effective_price(price: Any) -> float:
    """Precio con descuento si existe y es menor; si no, el precio unitario."""
    unit_price = _get(price, "unit_price") or 0.0
    discount_price = _get(price, "discount_price")
    if discount_price is not None and 0 < discount_price < unit_price:
        return discount_price
    return unit_price


def has_discount(price: Any) -> bool:
    return get_effective_price(price) < (_get(price, "unit_price") or 0.0)


def calculate_discount_percentage(price: Any) -> float:
    unit_price = _get(price, "unit_price") or 0.0
    if unit_price <= 0 or not has_discount(price):
        return 0.0
    return round((unit_price - get_effective_price(price)) / unit_price * 100, 2)


def calculate_profit(price: Any) -> Optional[float]:
    cost_price = _get(price, "cost_price")
    if cost_price is None:
        return None
    return round(get_effective_price(price) - cost_price, 2)


def calculate_margin(price: Any) -> Optional[float]:
    """Margen sobre el precio de venta, en porcentaje."""
    profit = calculate_profit(price)
    effective = get_effective_price(price)
    if profit is None or effective <= 0:
        return None
    return round(profit / effective * 100, 2)


def build_prices_map(prices: Iterable[Any]) -> Dict[str, Dict[str, Any]]:
    """{ref: {unitPrice, discountPrice, currency, effectivePrice}}"""
    result: Dict[str, Dict[str, Any]] = {}
    for price in prices:
        ref = price.get("product_ref") if isinstance(price, dict) else price.product_ref
        currency = price.get("currency") if isinstance(price, dict) else price.currency
        result[str(ref)] = {
            "unitPrice": _get(price, "unit_price"),
            "discountPrice": _get(price, "discount_price"),
            "currency": currency or "ILS",
            "effectivePrice": get_effective_price(price),
        }
    return result

# backend/storefront/services/order_calculations.py
"""
Cálculo de totales de pedido y flujo de estados.

Todas las cantidades monetarias se calculan con Decimal y se redondean a dos
decimales (ROUND_HALF_UP) antes de devolverse como float.
"""

from decimal import Decimal, ROUND_HALF_UP, InvalidOperation
from typing import Iterable, Optional, Union, Any, Dict

from storefront.core.config import settings
from storefront.core.exceptions import InvalidStatusTransitionError
from storefront.schemas.cart_schema import CartItem
from storefront.schemas.order_schema import OrderTotals

TWO_PLACES = Decimal("0.01")

Number = Union[int, float, Decimal, str, None]

# ========================================
# FLUJO DE ESTADOS
# ========================================

STATUS_FLOW: Dict[str, tuple] = {
    "pending": ("confirmed", "cancelled"),
    "confirmed": ("processing", "cancelled"),
    "processing": ("shipped", "cancelled"),
    "shipped": ("delivered",),
    "delivered": (),
    "cancelled": (),
}

# Estados que solo asigna el webhook de pagos
PAYMENT_STATUSES = ("payment_failed", "payment_expired", "refunded")

EDITABLE_STATUSES = ("pending", "confirmed")

STATUS_LABELS = {
    "pending": "ממתין",
    "confirmed": "אושר",
    "processing": "בטיפול",
    "shipped": "נשלח",
    "delivered": "נמסר",
    "cancelled": "בוטל",
    "payment_failed": "התשלום נכשל",
    "payment_expired": "פג תוקף התשלום",
    "refunded": "הוחזר",
}


def _to_decimal(value: Number) -> Decimal:
    if value is None or value == "":
        return Decimal("0")
    try:
        return Decimal(str(value))
    except (InvalidOperation, ValueError):
        return Decimal("0")


def _round(value: Decimal) -> Decimal:
    return value.quantize(TWO_PLACES, rounding=ROUND_HALF_UP)


def normalize_tax_rate(rate: Number) -> float:
    """
    Devuelve la tasa como porcentaje.

    None o 0 -> tasa por defecto; valores <= 1 se interpretan como fracción
    (0.18 -> 18).
    """
    value = _to_decimal(rate)
    if value <= 0:
        return float(settings.DEFAULT_TAX_RATE)
    if value <= 1:
        value = value * 100
    return float(value)


def calculate_order_totals(items: Iterable[Union[CartItem, Dict[str, Any]]], tax_rate: Number = None) -> OrderTotals:
    """total = Σ(precio unitario × cantidad) + impuesto."""
    subtotal = Decimal("0")
    item_count = 0
    for item in items:
        if isinstance(item, CartItem):
            unit_price, quantity = item.unit_price, item.quantity
        else:
            unit_price = item.get("unit_price", item.get("unitPrice"))
            quantity = item.get("quantity")
        qty = int(_to_decimal(quantity))
        subtotal += _to_decimal(unit_price) * qty
        item_count += qty

    rate = normalize_tax_rate(tax_rate)
    subtotal = _round(subtotal)
    tax = _round(subtotal * _to_decimal(rate) / 100)
    total = subtotal + tax

    return OrderTotals(
        subtotal=float(subtotal),
        tax=float(tax),
        total=float(total),
        item_count=item_count,
        tax_rate=rate,
    )


def format_currency(amount: Number) -> str:
    """Formatea un importe en shekels: ₪1,234.50"""
    return f"₪{_round(_to_decimal(amount)):,.2f}"


def can_change_status(current_status: str, new_status: str) -> bool:
    if current_status == new_status:
        return False
    return new_status in STATUS_FLOW.get(current_status, ())


def validate_status_change(current_status: str, new_status: str) -> None:
    if not can_change_status(current_status, new_status):
        raise InvalidStatusTransitionError(current_status, new_status)


def can_user_edit(order: Any) -> bool:
    """Un pedido solo es editable mientras está pendiente o confirmado."""
    status = order.get("status") if isinstance(order, dict) else getattr(order, "status", None)
    return status in EDITABLE_STATUSES


def get_status_label(status: Optional[str]) -> str:
    return STATUS_LABELS.get(status or "", status or "")

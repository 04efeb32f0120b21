# backend/storefront/services/order_service.py
"""
Capa de servicios para pedidos.

Orquesta el saneado de líneas, el cálculo de totales con la tasa de la
empresa, las reglas de edición y la publicación de cambios realtime.
"""
import logging
from typing import Any, Dict, List, Optional

from redis.asyncio import Redis
from sqlalchemy.ext.asyncio import AsyncSession

from storefront.core.exceptions import BadRequestError, NotFoundError, PermissionDeniedError
from storefront.core.security import AuthUser
from storefront.crud import order_crud
from storefront.db.models.order_model import Order
from storefront.schemas.order_schema import OrderCreate, OrderUpdate
from storefront.services.cart_service import sanitize_cart_item
from storefront.services.company_service import get_tax_rate
from storefront.services.order_calculations import (
    calculate_order_totals,
    can_user_edit,
    validate_status_change,
)
from storefront.services.realtime_service import publish_change

logger = logging.getLogger(__name__)


def sanitize_items(raw_items: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    items = [sanitize_cart_item(raw) for raw in raw_items]
    items = [item for item in items if item.product_id]
    if not items:
        raise BadRequestError("Order must contain at least one item")
    return [item.model_dump() for item in items]


async def create_order(db: AsyncSession, redis: Redis, user: Optional[AuthUser], order_in: OrderCreate) -> Order:
    """Los totales siempre se calculan en el servidor."""
    items = sanitize_items(order_in.items)
    totals = calculate_order_totals(items, await get_tax_rate(db))
    order = await order_crud.create_order(
        db,
        client_id=user.id if user else None,
        customer_name=order_in.customer_name,
        customer_email=order_in.customer_email or (user.email if user else None),
        customer_phone=order_in.customer_phone,
        customer_address=order_in.customer_address,
        notes=order_in.notes,
        items=items,
        subtotal=totals.subtotal,
        tax=totals.tax,
        total_amount=totals.total,
        status="pending",
    )
    logger.info(f"🧾 PEDIDO: Creado {order.id} por {totals.total} ({len(items)} líneas)")
    await publish_change(redis, "orders", "INSERT", new=order.to_dict())
    return order


def ensure_can_access(order: Optional[Order], user: AuthUser) -> Order:
    if order is None:
        raise NotFoundError("Order not found")
    if not user.is_admin and order.client_id != user.id:
        # No se revela la existencia de pedidos ajenos
        raise NotFoundError("Order not found")
    return order


async def update_order(db: AsyncSession, redis: Redis, user: AuthUser, order: Order, order_in: OrderUpdate) -> Order:
    changes = order_in.model_dump(exclude_unset=True)
    new_status = changes.pop("status", None)
    updates: Dict[str, Any] = {}

    if changes:
        if not can_user_edit(order):
            raise BadRequestError(f"Order in status '{order.status}' cannot be edited")
        if "items" in changes:
            items = sanitize_items(changes.pop("items") or [])
            totals = calculate_order_totals(items, await get_tax_rate(db))
            updates.update(items=items, subtotal=totals.subtotal, tax=totals.tax, total_amount=totals.total)
        updates.update(changes)

    if new_status is not None:
        new_status = getattr(new_status, "value", new_status)
        if not user.is_admin and not (new_status == "cancelled" and order.status == "pending"):
            raise PermissionDeniedError("Only admins can change order status")
        validate_status_change(order.status, new_status)
        updates["status"] = new_status

    if not updates:
        return order

    old = order.to_dict()
    order = await order_crud.update_order(db, order, updates)
    logger.info(f"🔄 PEDIDO: Actualizado {order.id} ({', '.join(updates)})")
    await publish_change(redis, "orders", "UPDATE", new=order.to_dict(), old=old)
    return order


async def change_status(db: AsyncSession, redis: Redis, order: Order, new_status: str) -> Order:
    validate_status_change(order.status, new_status)
    old = order.to_dict()
    order = await order_crud.update_order(db, order, {"status": new_status})
    await publish_change(redis, "orders", "UPDATE", new=order.to_dict(), old=old)
    return order


async def delete_order(db: AsyncSession, redis: Redis, order: Order) -> None:
    old = order.to_dict()
    await order_crud.delete_order(db, order)
    logger.info(f"🗑️ PEDIDO: Eliminado {old['id']}")
    await publish_change(redis, "orders", "DELETE", old=old)

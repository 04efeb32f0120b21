# backend/storefront/api/endpoints/orders.py
"""
Endpoints de pedidos.

Los administradores ven todos los pedidos; el resto de usuarios solo los suyos.
"""

import math
from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from redis.asyncio import Redis
from sqlalchemy.ext.asyncio import AsyncSession
import logging

from storefront.api import deps
from storefront.core.exceptions import NotFoundError
from storefront.core.security import AuthUser
from storefront.crud import order_crud
from storefront.schemas.common_schema import ok
from storefront.schemas.order_schema import OrderCreate, OrderResponse, OrderUpdate, OrderStatus
from storefront.services import order_service

logger = logging.getLogger(__name__)
router = APIRouter()


def _dump(order) -> dict:
    return OrderResponse.model_validate(order).model_dump(mode="json")


@router.post("/", status_code=status.HTTP_201_CREATED)
async def create_order(
    order_in: OrderCreate,
    db: AsyncSession = Depends(deps.get_db),
    redis: Redis = Depends(deps.get_redis),
    user: AuthUser = Depends(deps.require_user),
):
    order = await order_service.create_order(db, redis, user, order_in)
    return ok(_dump(order), message="Order created")


@router.get("/")
async def read_orders(
    db: AsyncSession = Depends(deps.get_db),
    user: AuthUser = Depends(deps.require_user),
    status: Optional[OrderStatus] = None,
    customer_name: Optional[str] = None,
    min_amount: Optional[float] = Query(default=None, ge=0),
    max_amount: Optional[float] = Query(default=None, ge=0),
    date_from: Optional[datetime] = None,
    date_to: Optional[datetime] = None,
    page: int = Query(default=1, ge=1),
    page_size: int = Query(default=20, ge=1, le=100),
):
    orders, total = await order_crud.get_orders(
        db,
        client_id=None if user.is_admin else user.id,
        status=status.value if status else None,
        customer_name=customer_name,
        min_amount=min_amount,
        max_amount=max_amount,
        date_from=date_from,
        date_to=date_to,
        page=page,
        page_size=page_size,
    )
    return ok({
        "orders": [_dump(o) for o in orders],
        "pagination": {
            "page": page,
            "page_size": page_size,
            "total": total,
            "total_pages": math.ceil(total / page_size) if total else 0,
            "has_more": page * page_size < total,
        },
    })


@router.get("/{order_id}")
async def read_order(
    order_id: str,
    db: AsyncSession = Depends(deps.get_db),
    user: AuthUser = Depends(deps.require_user),
):
    order = order_service.ensure_can_access(await order_crud.get_order(db, order_id), user)
    return ok(_dump(order))


@router.put("/{order_id}")
async def update_order(
    order_id: str,
    order_in: OrderUpdate,
    db: AsyncSession = Depends(deps.get_db),
    redis: Redis = Depends(deps.get_redis),
    user: AuthUser = Depends(deps.require_user),
):
    order = order_service.ensure_can_access(await order_crud.get_order(db, order_id), user)
    order = await order_service.update_order(db, redis, user, order, order_in)
    return ok(_dump(order))


@router.delete("/{order_id}")
async def delete_order(
    order_id: str,
    db: AsyncSession = Depends(deps.get_db),
    redis: Redis = Depends(deps.get_redis),
    admin: AuthUser = Depends(deps.require_admin),
):
    order = await order_crud.get_order(db, order_id)
    if order is None:
        raise NotFoundError("Order not found")
    await order_service.delete_order(db, redis, order)
    return ok({"id": order_id}, message="Order deleted")

# backend/storefront/crud/order_crud.py
"""
Operaciones CRUD para los pedidos.
"""

from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession

from storefront.db.models.order_model import Order


async def create_order(db: AsyncSession, **fields: Any) -> Order:
    db_order = Order(**fields)
    db.add(db_order)
    await db.commit()
    await db.refresh(db_order)
    return db_order


async def get_order(db: AsyncSession, order_id: str) -> Optional[Order]:
    result = await db.execute(select(Order).filter(Order.id == order_id))
    return result.scalars().first()


async def get_orders_by_ids(db: AsyncSession, order_ids: List[str]) -> List[Order]:
    result = await db.execute(select(Order).filter(Order.id.in_(order_ids)))
    return list(result.scalars().all())


async def get_order_by_payment_session(db: AsyncSession, session_id: str) -> Optional[Order]:
    result = await db.execute(select(Order).filter(Order.payment_session_id == session_id))
    return result.scalars().first()


async def get_orders(
    db: AsyncSession,
    client_id: Optional[str] = None,
    status: Optional[str] = None,
    customer_name: Optional[str] = None,
    min_amount: Optional[float] = None,
    max_amount: Optional[float] = None,
    date_from: Optional[datetime] = None,
    date_to: Optional[datetime] = None,
    page: int = 1,
    page_size: int = 20,
) -> Tuple[List[Order], int]:
    """Lista filtrada y paginada; devuelve (pedidos, total)."""
    query = select(Order)
    if client_id is not None:
        query = query.filter(Order.client_id == client_id)
    if status:
        query = query.filter(Order.status == status)
    if customer_name:
        query = query.filter(Order.customer_name.ilike(f"%{customer_name}%"))
    if min_amount is not None:
        query = query.filter(Order.total_amount >= min_amount)
    if max_amount is not None:
        query = query.filter(Order.total_amount <= max_amount)
    if date_from is not None:
        query = query.filter(Order.created_at >= date_from)
    if date_to is not None:
        query = query.filter(Order.created_at <= date_to)

    total = (await db.execute(select(func.count()).select_from(query.subquery()))).scalar_one()
    result = await db.execute(
        query.order_by(Order.created_at.desc()).offset((page - 1) * page_size).limit(page_size)
    )
    return list(result.scalars().all()), total


async def update_order(db: AsyncSession, db_order: Order, updates: Dict[str, Any]) -> Order:
    for field, value in updates.items():
        setattr(db_order, field, value)
    await db.commit()
    await db.refresh(db_order)
    return db_order


async def delete_order(db: AsyncSession, db_order: Order) -> None:
    await db.delete(db_order)
    await db.commit()


async def count_orders_by_status(db: AsyncSession) -> Dict[str, int]:
    result = await db.execute(select(Order.status, func.count(Order.id)).group_by(Order.status))
    return {status: count for status, count in result.all()}


async def get_revenue(db: AsyncSession) -> float:
    """Facturación de los pedidos no cancelados."""
    result = await db.execute(
        select(func.coalesce(func.sum(Order.total_amount), 0))
        .filter(Order.status.not_in(["cancelled", "payment_failed", "payment_expired", "refunded"]))
    )
    return float(result.scalar_one() or 0)

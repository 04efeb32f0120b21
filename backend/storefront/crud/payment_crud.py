# backend/storefront/crud/payment_crud.py
"""
Operaciones CRUD para las sesiones de pago.
"""

from datetime import datetime
from typing import Any, List, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from storefront.db.models.payment_session_model import PaymentSession


async def create_session(db: AsyncSession, **fields: Any) -> PaymentSession:
    db_session = PaymentSession(**fields)
    db.add(db_session)
    await db.commit()
    await db.refresh(db_session)
    return db_session


async def get_session(db: AsyncSession, session_id: str) -> Optional[PaymentSession]:
    result = await db.execute(select(PaymentSession).filter(PaymentSession.session_id == session_id))
    return result.scalars().first()


async def get_sessions_by_order(db: AsyncSession, order_id: str) -> List[PaymentSession]:
    result = await db.execute(
        select(PaymentSession)
        .filter(PaymentSession.order_id == order_id)
        .order_by(PaymentSession.created_at.desc())
    )
    return list(result.scalars().all())


async def update_session(db: AsyncSession, db_session: PaymentSession, **updates: Any) -> PaymentSession:
    for field, value in updates.items():
        setattr(db_session, field, value)
    await db.commit()
    await db.refresh(db_session)
    return db_session


async def get_expired_sessions(db: AsyncSession, now: datetime) -> List[PaymentSession]:
    result = await db.execute(
        select(PaymentSession).filter(PaymentSession.status == "created", PaymentSession.expires_at < now)
    )
    return list(result.scalars().all())

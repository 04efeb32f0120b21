# backend/storefront/crud/price_crud.py
"""
Operaciones CRUD para los precios de producto.
"""

from typing import List, Iterable, Optional
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from storefront.db.models.price_model import Price
from storefront.schemas.price_schema import PriceUpsert


async def get_prices_by_refs(db: AsyncSession, refs: Iterable[str], tier: str = "standard") -> List[Price]:
    refs = [r for r in refs if r]
    if not refs:
        return []
    result = await db.execute(
        select(Price).filter(Price.product_ref.in_(refs), Price.tier == tier)
    )
    return list(result.scalars().all())


async def get_price(db: AsyncSession, product_ref: str, tier: str = "standard") -> Optional[Price]:
    result = await db.execute(select(Price).filter(Price.product_ref == product_ref, Price.tier == tier))
    return result.scalars().first()


async def upsert_price(db: AsyncSession, product_ref: str, price_in: PriceUpsert) -> Price:
    """Crea o actualiza el precio de un producto para un nivel (tier)."""
    db_price = await get_price(db, product_ref, price_in.tier)
    if db_price is None:
        db_price = Price(product_ref=product_ref, **price_in.model_dump())
        db.add(db_price)
    else:
        for field, value in price_in.model_dump().items():
            setattr(db_price, field, value)
    await db.commit()
    await db.refresh(db_price)
    return db_price

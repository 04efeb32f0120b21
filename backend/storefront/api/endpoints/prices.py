# backend/storefront/api/endpoints/prices.py
"""
Endpoints de precios. Solo los roles autorizados reciben precios; el resto
recibe un mapa vacío con un mensaje.
"""

from fastapi import APIRouter, Depends, Query
from redis.asyncio import Redis
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from typing import Optional
import logging

from storefront.api import deps
from storefront.core.exceptions import NotFoundError, is_permission_error
from storefront.core.security import AuthUser
from storefront.crud import price_crud, product_crud
from storefront.schemas.common_schema import ok
from storefront.schemas.price_schema import PriceAccessResponse, PriceResponse, PriceUpsert
from storefront.services import product_cache
from storefront.services.pricing_service import build_prices_map, can_view_prices
from storefront.services.realtime_service import publish_change

logger = logging.getLogger(__name__)
router = APIRouter()


@router.get("/")
async def read_prices(
    refs: str = Query("", description="Referencias separadas por comas"),
    db: AsyncSession = Depends(deps.get_db),
    user: Optional[AuthUser] = Depends(deps.get_current_user),
):
    ref_list = [r.strip() for r in refs.split(",") if r.strip()]
    if not can_view_prices(user):
        return ok({}, message="No access to prices")
    try:
        prices = await price_crud.get_prices_by_refs(db, ref_list)
    except SQLAlchemyError as e:
        if is_permission_error(e):
            logger.warning(f"⚠️ PRECIOS: Acceso denegado para el usuario {user.id}")
            await db.rollback()
            return ok({}, message="No access to prices")
        raise
    return ok(build_prices_map(prices))


@router.get("/check-access")
async def check_price_access(user: Optional[AuthUser] = Depends(deps.get_current_user)):
    if user is None:
        access = PriceAccessResponse(canViewPrices=False, message="User not authenticated")
    elif can_view_prices(user):
        access = PriceAccessResponse(canViewPrices=True, role=user.role, userId=user.id, message="User can view prices")
    else:
        access = PriceAccessResponse(
            canViewPrices=False, role=user.role, userId=user.id,
            message="User role does not allow viewing prices",
        )
    return ok(access.model_dump())


@router.put("/{product_ref}")
async def upsert_price(
    product_ref: str,
    price_in: PriceUpsert,
    db: AsyncSession = Depends(deps.get_db),
    redis: Redis = Depends(deps.get_redis),
    admin: AuthUser = Depends(deps.require_admin),
):
    if not await product_crud.get_product_by_ref(db, product_ref):
        raise NotFoundError("Product not found")
    price = await price_crud.upsert_price(db, product_ref, price_in)
    data = PriceResponse.model_validate(price).model_dump()
    await product_cache.invalidate_products_cache(redis)
    await publish_change(redis, "prices", "UPDATE", new=data)
    logger.info(f"💰 PRECIOS: Precio de '{product_ref}' actualizado a {price_in.unit_price}")
    return ok(data)

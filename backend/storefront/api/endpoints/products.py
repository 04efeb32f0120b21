# backend/storefront/api/endpoints/products.py

"""
Endpoints REST del catálogo de productos.
"""

from fastapi import APIRouter, Depends, Query, status
from redis.asyncio import Redis
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from typing import Any, Dict, List, Optional
import logging

from storefront.api import deps
from storefront.core.config import Settings
from storefront.core.exceptions import ConflictError, NotFoundError, is_permission_error
from storefront.core.security import AuthUser
from storefront.crud import price_crud, product_crud
from storefront.db.models.product_model import Product
from storefront.schemas import product_schema
from storefront.schemas.common_schema import ok
from storefront.services import product_cache
from storefront.services.pricing_service import build_prices_map, can_view_prices
from storefront.services.realtime_service import publish_change

logger = logging.getLogger(__name__)
router = APIRouter()


async def _load_prices(db: AsyncSession, refs: List[str]) -> Dict[str, Dict[str, Any]]:
    """Mapa de precios; un rechazo por políticas de acceso devuelve un mapa vacío."""
    try:
        return build_prices_map(await price_crud.get_prices_by_refs(db, refs))
    except SQLAlchemyError as e:
        if is_permission_error(e):
            logger.warning("⚠️ PRECIOS: Acceso denegado por políticas, se omiten precios")
            await db.rollback()
            return {}
        raise


def _serialize(product: Product, prices_map: Dict[str, Dict[str, Any]], show_prices: bool) -> Dict[str, Any]:
    data = product.to_dict()
    if show_prices:
        price = prices_map.get(product.ref)
        data["price"] = price["effectivePrice"] if price else data["unit_price"]
    else:
        data["unit_price"] = None
        data["price"] = None
    return data


@router.get("/")
async def read_products(
    db: AsyncSession = Depends(deps.get_db),
    redis: Redis = Depends(deps.get_redis),
    settings: Settings = Depends(deps.get_settings),
    user: Optional[AuthUser] = Depends(deps.get_current_user),
    search: Optional[str] = None,
    line: Optional[str] = None,
    product_type: Optional[str] = Query(default=None, alias="productType"),
    skin_type: Optional[str] = Query(default=None, alias="skinType"),
    type: Optional[str] = None,
    page: int = Query(default=1, ge=1),
    page_size: int = Query(default=50, ge=1, le=200, alias="pageSize"),
):
    """Obtiene una lista filtrada y paginada de productos."""
    show_prices = can_view_prices(user)
    params = {
        "search": search, "line": line, "product_type": product_type, "skin_type": skin_type,
        "type": type, "page": page, "page_size": page_size, "prices": show_prices,
    }
    cache_key = product_cache.build_cache_key(params)
    cached = await product_cache.get_cached(redis, cache_key)
    if cached is not None:
        logger.debug("📋 PRODUCTOS: Respuesta desde caché")
        return ok(cached)

    products, has_more = await product_crud.get_products(
        db, search=search, line=line, product_type=product_type, skin_type=skin_type,
        type_=type, page=page, page_size=page_size,
    )
    prices_map = await _load_prices(db, [p.ref for p in products]) if show_prices else {}

    data = {
        "products": [_serialize(p, prices_map, show_prices) for p in products],
        "pagination": {"page": page, "page_size": page_size, "has_more": has_more},
    }
    await product_cache.set_cached(redis, cache_key, data, settings.PRODUCTS_CACHE_TTL_SECONDS)
    logger.debug(f"📋 PRODUCTOS: Encontrados {len(products)} resultados")
    return ok(data)


@router.get("/filters")
async def read_product_filters(db: AsyncSession = Depends(deps.get_db)):
    """Valores disponibles para los filtros del catálogo."""
    filters = await product_crud.get_filter_values(db)
    return ok(product_schema.ProductFilters(**filters).model_dump())


@router.get("/{ref}")
async def read_product(
    ref: str,
    db: AsyncSession = Depends(deps.get_db),
    user: Optional[AuthUser] = Depends(deps.get_current_user),
):
    """Obtiene los detalles de un producto por referencia."""
    product = await product_crud.get_product_by_ref(db, ref)
    if not product:
        logger.warning(f"⚠️ PRODUCTO: No encontrado ref '{ref}'")
        raise NotFoundError("Product not found")
    show_prices = can_view_prices(user)
    prices_map = await _load_prices(db, [product.ref]) if show_prices else {}
    return ok(_serialize(product, prices_map, show_prices))


@router.post("/", status_code=status.HTTP_201_CREATED)
async def create_product(
    product_in: product_schema.ProductCreate,
    db: AsyncSession = Depends(deps.get_db),
    redis: Redis = Depends(deps.get_redis),
    admin: AuthUser = Depends(deps.require_admin),
):
    """Crea un nuevo producto en el catálogo."""
    logger.info(f"🆕 PRODUCTO: Creando producto con ref '{product_in.ref}'")
    if await product_crud.get_product_by_ref(db, product_in.ref):
        raise ConflictError(f"Product with ref {product_in.ref} already exists")

    product = await product_crud.create_product(db, product_in)
    await product_cache.invalidate_products_cache(redis)
    await publish_change(redis, "products", "INSERT", new=product.to_dict())
    logger.info(f"✅ PRODUCTO: Creado exitosamente ref '{product.ref}'")
    return ok(product.to_dict())


@router.put("/{ref}")
async def update_product(
    ref: str,
    product_in: product_schema.ProductUpdate,
    db: AsyncSession = Depends(deps.get_db),
    redis: Redis = Depends(deps.get_redis),
    admin: AuthUser = Depends(deps.require_admin),
):
    """Actualiza un producto existente."""
    product = await product_crud.get_product_by_ref(db, ref)
    if not product:
        raise NotFoundError("Product not found")
    old = product.to_dict()
    product = await product_crud.update_product(db, product, product_in)
    await product_cache.invalidate_products_cache(redis)
    await publish_change(redis, "products", "UPDATE", new=product.to_dict(), old=old)
    logger.info(f"✅ PRODUCTO: Actualizado ref '{ref}'")
    return ok(product.to_dict())


@router.delete("/{ref}")
async def delete_product(
    ref: str,
    db: AsyncSession = Depends(deps.get_db),
    redis: Redis = Depends(deps.get_redis),
    admin: AuthUser = Depends(deps.require_admin),
):
    """Elimina un producto del catálogo."""
    product = await product_crud.get_product_by_ref(db, ref)
    if not product:
        raise NotFoundError("Product not found")
    old = product.to_dict()
    await product_crud.delete_product(db, product)
    await product_cache.invalidate_products_cache(redis)
    await publish_change(redis, "products", "DELETE", old=old)
    logger.info(f"🗑️ PRODUCTO: Eliminado ref '{ref}'")
    return ok({"ref": ref}, message="Product deleted")

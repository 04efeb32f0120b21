# backend/storefront/api/endpoints/admin.py
"""
Endpoints del panel de administración.

Todas las rutas exigen el rol admin (dependencia a nivel de router).
"""

import math
import logging
from typing import Optional, Literal

from fastapi import APIRouter, Depends, File, Query, UploadFile, status
from redis.asyncio import Redis
from sqlalchemy.ext.asyncio import AsyncSession

from storefront.api import deps
from storefront.core.exceptions import AppError, BadRequestError, ConflictError, NotFoundError
from storefront.crud import order_crud, product_crud, profile_crud
from storefront.schemas.common_schema import ok
from storefront.schemas.order_schema import BulkStatusUpdate
from storefront.schemas.profile_schema import ProfileCreate, ProfileResponse, ProfileUpdate
from storefront.services import csv_import_service, order_service, product_cache
from storefront.services.realtime_service import publish_change
from storefront.services.webhook_service import cleanup_expired_sessions

logger = logging.getLogger(__name__)
router = APIRouter(dependencies=[Depends(deps.require_admin)])


def _dump_profile(profile) -> dict:
    return ProfileResponse.model_validate(profile).model_dump(mode="json")


# ========================================
# GESTIÓN DE CLIENTES
# ========================================

@router.get("/client-management")
async def list_clients(
    db: AsyncSession = Depends(deps.get_db),
    search: Optional[str] = None,
    status: Optional[Literal["active", "inactive", "suspended"]] = None,
    page: int = Query(default=1, ge=1),
    page_size: int = Query(default=10, ge=1, le=100, alias="limit"),
):
    profiles, total = await profile_crud.get_profiles(db, search=search, status=status, page=page, page_size=page_size)
    return ok({
        "clients": [_dump_profile(p) for p in profiles],
        "pagination": {
            "page": page,
            "page_size": page_size,
            "total": total,
            "total_pages": math.ceil(total / page_size) if total else 0,
            "has_more": page * page_size < total,
        },
    })


@router.post("/client-management", status_code=status.HTTP_201_CREATED)
async def create_client(profile_in: ProfileCreate, db: AsyncSession = Depends(deps.get_db)):
    if await profile_crud.get_profile_by_email(db, profile_in.email):
        raise ConflictError("Client with this email already exists")
    profile = await profile_crud.create_profile(db, profile_in)
    logger.info(f"👤 CLIENTES: Creado {profile.email}")
    return ok(_dump_profile(profile), message="Client created")


@router.put("/client-management/{client_id}")
async def update_client(client_id: str, profile_in: ProfileUpdate, db: AsyncSession = Depends(deps.get_db)):
    profile = await profile_crud.get_profile(db, client_id)
    if profile is None:
        raise NotFoundError("Client not found")
    if profile_in.email and profile_in.email.lower() != profile.email.lower():
        if await profile_crud.get_profile_by_email(db, profile_in.email):
            raise ConflictError("Client with this email already exists")
    profile = await profile_crud.update_profile(db, profile, profile_in)
    return ok(_dump_profile(profile))


@router.delete("/client-management/{client_id}")
async def delete_client(client_id: str, db: AsyncSession = Depends(deps.get_db)):
    profile = await profile_crud.get_profile(db, client_id)
    if profile is None:
        raise NotFoundError("Client not found")
    await profile_crud.delete_profile(db, profile)
    logger.info(f"🗑️ CLIENTES: Eliminado {client_id}")
    return ok({"id": client_id}, message="Client deleted")


# ========================================
# PEDIDOS
# ========================================

@router.post("/orders/bulk-status")
async def bulk_update_order_status(
    bulk_in: BulkStatusUpdate,
    db: AsyncSession = Depends(deps.get_db),
    redis: Redis = Depends(deps.get_redis),
):
    """Cambia el estado de varios pedidos; los fallos se informan por id."""
    orders = {o.id: o for o in await order_crud.get_orders_by_ids(db, bulk_in.order_ids)}
    updated, errors = [], []
    for order_id in bulk_in.order_ids:
        order = orders.get(order_id)
        if order is None:
            errors.append({"id": order_id, "error": "Order not found"})
            continue
        try:
            await order_service.change_status(db, redis, order, bulk_in.status.value)
            updated.append(order_id)
        except AppError as e:
            errors.append({"id": order_id, "error": e.message})
    logger.info(f"🔄 PEDIDOS: {len(updated)} actualizados a '{bulk_in.status.value}', {len(errors)} errores")
    return ok({"updated": updated, "errors": errors})


# ========================================
# IMPORTACIÓN DE PRODUCTOS
# ========================================

@router.post("/products/import")
async def import_products(
    file: UploadFile = File(...),
    dry_run: bool = False,
    db: AsyncSession = Depends(deps.get_db),
    redis: Redis = Depends(deps.get_redis),
):
    """Importa productos desde CSV (cabeceras en inglés o hebreo)."""
    raw = await file.read()
    try:
        text = raw.decode("utf-8-sig")
    except UnicodeDecodeError:
        raise BadRequestError("CSV file must be UTF-8 encoded")

    prepared = csv_import_service.prepare_import(text)
    if dry_run:
        return ok({"preview": prepared["preview"], "errors": prepared["errors"]})
    if not prepared["products"]:
        return ok({"imported": 0, "created": 0, "updated": 0, "errors": prepared["errors"]}, message="No valid rows")

    created, updated = await product_crud.upsert_products(db, prepared["products"])
    await product_cache.invalidate_products_cache(redis)
    await publish_change(redis, "products", "INSERT", new={"imported": created + updated})
    return ok({
        "imported": created + updated,
        "created": created,
        "updated": updated,
        "errors": prepared["errors"],
    })


# ========================================
# PANEL Y MANTENIMIENTO
# ========================================

@router.get("/dashboard")
async def dashboard(db: AsyncSession = Depends(deps.get_db)):
    by_status = await order_crud.count_orders_by_status(db)
    return ok({
        "orders_by_status": by_status,
        "total_orders": sum(by_status.values()),
        "revenue": await order_crud.get_revenue(db),
        "product_count": await product_crud.count_products(db),
        "client_count": await profile_crud.count_profiles(db),
    })


@router.post("/payments/cleanup")
async def cleanup_payment_sessions(db: AsyncSession = Depends(deps.get_db)):
    expired = await cleanup_expired_sessions(db)
    return ok({"expired": expired})

# backend/storefront/api/endpoints/settings.py
"""
Configuración de la empresa: lectura pública, escritura solo para administradores.
"""

from fastapi import APIRouter, Depends
from redis.asyncio import Redis
from sqlalchemy.ext.asyncio import AsyncSession

from storefront.api import deps
from storefront.core.security import AuthUser
from storefront.schemas.common_schema import ok
from storefront.schemas.settings_schema import CompanySettingsUpdate
from storefront.services import company_service

router = APIRouter()


@router.get("/")
async def read_company_settings(db: AsyncSession = Depends(deps.get_db)):
    return ok(await company_service.get_company_settings(db))


@router.put("/")
async def update_company_settings(
    settings_in: CompanySettingsUpdate,
    db: AsyncSession = Depends(deps.get_db),
    redis: Redis = Depends(deps.get_redis),
    admin: AuthUser = Depends(deps.require_admin),
):
    return ok(await company_service.update_company_settings(db, redis, settings_in), message="Settings updated")

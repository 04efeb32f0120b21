# backend/storefront/services/company_service.py
"""
Configuración de la empresa (nombre, datos de contacto, tasa de impuesto).

Si la tabla está vacía se usan los valores por defecto.
"""
import logging
from typing import Any, Dict

from redis.asyncio import Redis
from sqlalchemy.ext.asyncio import AsyncSession

from storefront.core.config import settings
from storefront.crud import settings_crud
from storefront.schemas.settings_schema import CompanySettingsUpdate
from storefront.services.realtime_service import publish_change

logger = logging.getLogger(__name__)

DEFAULT_SETTINGS: Dict[str, Any] = {
    "id": None,
    "company_name": "Jean Darcel",
    "company_description": "מערכת ניהול הזמנות",
    "company_email": None,
    "company_phone": None,
    "company_address": None,
    "company_logo": None,
    "tax_rate": settings.DEFAULT_TAX_RATE,
    "currency": settings.DEFAULT_CURRENCY,
    "invoice_footer_text": None,
}


async def get_company_settings(db: AsyncSession) -> Dict[str, Any]:
    row = await settings_crud.get_settings(db)
    if row is None:
        return dict(DEFAULT_SETTINGS)
    data = row.to_dict()
    # Campos vacíos en la fila toman el valor por defecto
    return {key: (data.get(key) if data.get(key) is not None else default) for key, default in DEFAULT_SETTINGS.items()}


async def get_tax_rate(db: AsyncSession) -> float:
    return (await get_company_settings(db))["tax_rate"]


async def update_company_settings(db: AsyncSession, redis: Redis, settings_in: CompanySettingsUpdate) -> Dict[str, Any]:
    old = await get_company_settings(db)
    row = await settings_crud.upsert_settings(db, settings_in)
    new = row.to_dict()
    logger.info("✅ CONFIGURACIÓN: Datos de empresa actualizados")
    await publish_change(redis, "settings", "UPDATE", new=new, old=old)
    return await get_company_settings(db)

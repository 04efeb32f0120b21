# backend/storefront/crud/settings_crud.py
"""
Lectura y escritura de la fila única de configuración de empresa.
"""

from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from storefront.db.models.settings_model import CompanySettings
from storefront.schemas.settings_schema import CompanySettingsUpdate


async def get_settings(db: AsyncSession) -> Optional[CompanySettings]:
    result = await db.execute(select(CompanySettings).order_by(CompanySettings.created_at).limit(1))
    return result.scalars().first()


async def upsert_settings(db: AsyncSession, settings_in: CompanySettingsUpdate) -> CompanySettings:
    db_settings = await get_settings(db)
    if db_settings is None:
        db_settings = CompanySettings()
        db.add(db_settings)
    for field, value in settings_in.model_dump(exclude_unset=True).items():
        setattr(db_settings, field, value)
    await db.commit()
    await db.refresh(db_settings)
    return db_settings

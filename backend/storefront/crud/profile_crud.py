# backend/storefront/crud/profile_crud.py
"""
Operaciones CRUD para los perfiles de cliente.
"""

from typing import List, Optional, Tuple

from sqlalchemy import or_, select, func
from sqlalchemy.ext.asyncio import AsyncSession

from storefront.db.models.profile_model import Profile
from storefront.schemas.profile_schema import ProfileCreate, ProfileUpdate


async def get_profile(db: AsyncSession, profile_id: str) -> Optional[Profile]:
    result = await db.execute(select(Profile).filter(Profile.id == profile_id))
    return result.scalars().first()


async def get_profile_by_email(db: AsyncSession, email: str) -> Optional[Profile]:
    result = await db.execute(select(Profile).filter(func.lower(Profile.email) == email.lower()))
    return result.scalars().first()


async def get_profiles(
    db: AsyncSession,
    search: Optional[str] = None,
    status: Optional[str] = None,
    page: int = 1,
    page_size: int = 10,
) -> Tuple[List[Profile], int]:
    """Búsqueda por nombre, email o nombre del negocio; devuelve (perfiles, total)."""
    query = select(Profile)
    if search:
        pattern = f"%{search.strip()}%"
        query = query.filter(or_(
            Profile.name.ilike(pattern),
            Profile.email.ilike(pattern),
            Profile.business_name.ilike(pattern),
        ))
    if status:
        query = query.filter(Profile.status == status)

    total = (await db.execute(select(func.count()).select_from(query.subquery()))).scalar_one()
    result = await db.execute(
        query.order_by(Profile.created_at.desc(), Profile.email).offset((page - 1) * page_size).limit(page_size)
    )
    return list(result.scalars().all()), total


async def create_profile(db: AsyncSession, profile_in: ProfileCreate) -> Profile:
    db_profile = Profile(**profile_in.model_dump())
    db.add(db_profile)
    await db.commit()
    await db.refresh(db_profile)
    return db_profile


async def update_profile(db: AsyncSession, db_profile: Profile, profile_in: ProfileUpdate) -> Profile:
    for field, value in profile_in.model_dump(exclude_unset=True).items():
        setattr(db_profile, field, value)
    await db.commit()
    await db.refresh(db_profile)
    return db_profile


async def delete_profile(db: AsyncSession, db_profile: Profile) -> None:
    await db.delete(db_profile)
    await db.commit()


async def count_profiles(db: AsyncSession) -> int:
    return (await db.execute(select(func.count(Profile.id)))).scalar_one()

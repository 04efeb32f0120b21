# backend/storefront/api/deps.py
"""
Módulo de dependencias para FastAPI.

Este archivo centraliza todas las dependencias que pueden ser inyectadas
en los endpoints de la API: sesión de base de datos, configuración, Redis,
usuario autenticado y servicios.
"""

from typing import AsyncGenerator, Optional

from fastapi import Depends, Request
from redis.asyncio import Redis
from sqlalchemy.ext.asyncio import AsyncSession

from storefront.core.config import settings, Settings
from storefront.core.exceptions import AuthenticationError, PermissionDeniedError
from storefront.core.security import AuthUser, decode_access_token, USER_ROLES
from storefront.crud import profile_crud
from storefront.db import base  # noqa: F401  registra todos los modelos
from storefront.db.database import AsyncSessionLocal
from storefront.db.redis_client import get_redis_client
from storefront.services.cart_service import CartService
from storefront.services.payment_service import HypayGateway


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """
    Dependencia de FastAPI para obtener una sesión de base de datos asíncrona.
    Se asegura de que la sesión se cierre siempre después de la petición.
    """
    async with AsyncSessionLocal() as session:
        yield session


def get_settings() -> Settings:
    """
    Dependencia de FastAPI para obtener el objeto de configuración.
    """
    return settings


def get_redis() -> Redis:
    return get_redis_client()


def _extract_token(request: Request, settings: Settings) -> Optional[str]:
    """Bearer en la cabecera Authorization o cookie de sesión."""
    authorization = request.headers.get("Authorization")
    if authorization and authorization.lower().startswith("bearer "):
        return authorization[7:].strip()
    return request.cookies.get(settings.AUTH_COOKIE_NAME)


async def get_current_user(
    request: Request,
    db: AsyncSession = Depends(get_db),
    settings: Settings = Depends(get_settings),
) -> Optional[AuthUser]:
    """
    Usuario de la sesión o None si la petición es anónima.
    El rol guardado en el perfil tiene prioridad sobre el del token.
    """
    token = _extract_token(request, settings)
    if not token:
        return None
    user = decode_access_token(token, settings)
    profile = await profile_crud.get_profile(db, user.id)
    if profile is not None:
        if profile.status != "active":
            raise PermissionDeniedError("Account is not active")
        if profile.user_role in USER_ROLES:
            user.role = profile.user_role
        user.email = user.email or profile.email
    return user


async def require_user(user: Optional[AuthUser] = Depends(get_current_user)) -> AuthUser:
    if user is None:
        raise AuthenticationError("Authentication required")
    return user


async def require_admin(user: AuthUser = Depends(require_user)) -> AuthUser:
    if not user.is_admin:
        raise PermissionDeniedError("Admin access required")
    return user


def get_cart_service(
    redis: Redis = Depends(get_redis),
    settings: Settings = Depends(get_settings),
) -> CartService:
    """
    Dependencia para obtener el servicio de carrito.
    """
    return CartService(redis, settings)


def get_payment_gateway(
    db: AsyncSession = Depends(get_db),
    settings: Settings = Depends(get_settings),
) -> HypayGateway:
    return HypayGateway(settings, db)

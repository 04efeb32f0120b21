# backend/storefront/core/security.py
"""
Validación de los tokens de sesión emitidos por el servicio de autenticación.

El servicio de autenticación firma tokens JWT (HS256) con un secreto compartido;
aquí solo se verifican y se traducen a un AuthUser.
"""

from dataclasses import dataclass
from typing import Optional

import jwt

from storefront.core.config import Settings
from storefront.core.exceptions import AuthenticationError

# Roles de negocio (columna profiles.user_role)
ROLE_STANDARD = "standard"
ROLE_VERIFIED_MEMBERS = "verified_members"
ROLE_CUSTOMER = "customer"
ROLE_ADMIN = "admin"

USER_ROLES = (ROLE_STANDARD, ROLE_VERIFIED_MEMBERS, ROLE_CUSTOMER, ROLE_ADMIN)

# Roles que pueden ver precios en el catálogo
PRICE_VIEWER_ROLES = {ROLE_VERIFIED_MEMBERS, ROLE_CUSTOMER, ROLE_ADMIN}


@dataclass
class AuthUser:
    """Usuario autenticado extraído del token."""
    id: str
    email: Optional[str] = None
    role: str = ROLE_STANDARD

    @property
    def is_admin(self) -> bool:
        return self.role == ROLE_ADMIN


def decode_access_token(token: str, settings: Settings) -> AuthUser:
    """
    Verifica la firma y caducidad del token y devuelve el usuario.

    El rol se toma de app_metadata.user_role cuando existe; si no, se asume
    'standard'. El rol final puede sobrescribirse con el perfil en base de datos.
    """
    try:
        payload = jwt.decode(
            token,
            settings.SUPABASE_JWT_SECRET,
            algorithms=[settings.JWT_ALGORITHM],
            audience=settings.JWT_AUDIENCE,
        )
    except jwt.ExpiredSignatureError:
        raise AuthenticationError("Session expired")
    except jwt.InvalidTokenError:
        raise AuthenticationError("Invalid authentication token")

    user_id = payload.get("sub")
    if not user_id:
        raise AuthenticationError("Invalid authentication token")

    app_metadata = payload.get("app_metadata") or {}
    role = app_metadata.get("user_role") or ROLE_STANDARD
    if role not in USER_ROLES:
        role = ROLE_STANDARD

    return AuthUser(id=str(user_id), email=payload.get("email"), role=role)

# backend/storefront/core/exceptions.py
"""
Excepciones de negocio de la aplicación.

Los servicios y la capa CRUD lanzan estas excepciones; los manejadores
registrados en main.py las convierten en la respuesta estándar
{"success": false, "error": "..."} con el código HTTP correspondiente.
"""

from typing import Optional

# Códigos que indican un rechazo por políticas de seguridad a nivel de fila
PERMISSION_SQLSTATES = {"42501", "PGRST301"}


class AppError(Exception):
    """Error base con mensaje y código HTTP asociado."""
    status_code: int = 500

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code


class BadRequestError(AppError):
    status_code = 400


class AuthenticationError(AppError):
    status_code = 401


class PermissionDeniedError(AppError):
    status_code = 403


class NotFoundError(AppError):
    status_code = 404


class ConflictError(AppError):
    status_code = 409


class InvalidStatusTransitionError(BadRequestError):
    """Cambio de estado de pedido no permitido por el flujo de estados."""

    def __init__(self, current_status: str, new_status: str):
        super().__init__(f"Cannot change order status from '{current_status}' to '{new_status}'")
        self.current_status = current_status
        self.new_status = new_status


class PaymentGatewayError(AppError):
    """Fallo al comunicarse con la pasarela de pago."""
    status_code = 502


def is_permission_error(exc: BaseException) -> bool:
    """
    Detecta si un error de base de datos corresponde a un rechazo de permisos
    (RLS / GRANT) y no a un fallo real.
    """
    orig = getattr(exc, "orig", None)
    for candidate in (exc, orig):
        if candidate is None:
            continue
        code = getattr(candidate, "sqlstate", None) or getattr(candidate, "pgcode", None) or getattr(candidate, "code", None)
        if code in PERMISSION_SQLSTATES:
            return True
    message = str(exc).lower()
    return "policy" in message or "permission denied" in message

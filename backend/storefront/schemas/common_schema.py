# backend/storefront/schemas/common_schema.py
"""
Esquemas compartidos por todas las respuestas de la API.

Todas las rutas devuelven el sobre {success, data | error}.
"""

from typing import Generic, Optional, TypeVar
from pydantic import BaseModel, Field

T = TypeVar("T")


class ApiResponse(BaseModel, Generic[T]):
    """Sobre estándar de respuesta."""
    success: bool = True
    data: Optional[T] = None
    error: Optional[str] = None
    message: Optional[str] = None


class Pagination(BaseModel):
    page: int = Field(1, ge=1)
    page_size: int = Field(50, ge=1)
    total: Optional[int] = None
    has_more: bool = False
    total_pages: Optional[int] = None


def ok(data=None, message: Optional[str] = None) -> dict:
    """Construye un sobre de éxito listo para serializar."""
    body = {"success": True, "data": data}
    if message:
        body["message"] = message
    return body


def fail(error: str) -> dict:
    """Construye un sobre de error."""
    return {"success": False, "error": error}

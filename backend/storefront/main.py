# backend/storefront/main.py
"""
Punto de entrada principal de la aplicación FastAPI.

Configura la aplicación, registra los routers, traduce los errores al sobre
{"success": false, "error": "..."} y gestiona el ciclo de vida
(logging al arrancar; carritos pendientes, realtime y Redis al cerrar).
"""

import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError
from starlette.exceptions import HTTPException as StarletteHTTPException

from storefront.api.api_router import api_router
from storefront.core.config import settings
from storefront.core.exceptions import AppError, is_permission_error
from storefront.core.logging_config import setup_logging
from storefront.db.redis_client import close_redis_client
from storefront.schemas.common_schema import fail
from storefront.services.cart_service import flush_cart_writer
from storefront.services.realtime_service import cleanup_global_realtime_manager

logger = logging.getLogger(__name__)

# ========================================
# CONFIGURACIÓN DE LA APLICACIÓN FASTAPI
# ========================================

app = FastAPI(
    title=settings.PROJECT_NAME,
    openapi_url=f"{settings.API_PREFIX}/openapi.json",
    version=settings.PROJECT_VERSION,
    description="API de la tienda y el back office de Jean Darcel",
)

app.include_router(api_router, prefix=settings.API_PREFIX)

# ========================================
# MANEJO DE ERRORES
# ========================================

@app.exception_handler(AppError)
async def app_error_handler(request: Request, exc: AppError):
    if exc.status_code >= 500:
        logger.error(f"❌ {request.method} {request.url.path}: {exc.message}")
    return JSONResponse(status_code=exc.status_code, content=fail(exc.message))


@app.exception_handler(StarletteHTTPException)
async def http_error_handler(request: Request, exc: StarletteHTTPException):
    return JSONResponse(status_code=exc.status_code, content=fail(str(exc.detail)), headers=exc.headers)


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    errors = exc.errors()
    message = "; ".join(
        f"{'.'.join(str(p) for p in e.get('loc', ()) if p != 'body')}: {e.get('msg')}" for e in errors
    ) or "Invalid request"
    return JSONResponse(status_code=400, content=fail(message))


@app.exception_handler(SQLAlchemyError)
async def database_error_handler(request: Request, exc: SQLAlchemyError):
    # Un rechazo de las políticas de fila no es un fallo del servidor
    if is_permission_error(exc):
        logger.warning(f"⚠️ {request.method} {request.url.path}: acceso denegado por políticas")
        return JSONResponse(status_code=403, content=fail("No access"))
    logger.exception(f"❌ Error de base de datos en {request.method} {request.url.path}")
    return JSONResponse(status_code=500, content=fail("Database error"))


@app.exception_handler(Exception)
async def unexpected_error_handler(request: Request, exc: Exception):
    logger.exception(f"❌ Error inesperado en {request.method} {request.url.path}")
    return JSONResponse(status_code=500, content=fail("Internal server error"))


# ========================================
# ENDPOINTS RAÍZ Y VERIFICACIÓN DE ESTADO
# ========================================

@app.get("/", tags=["Root"])
async def read_root():
    """
    Endpoint raíz para verificación básica del estado de la API.

    Example:
        GET /
        Response: {"success": true, "data": {"message": "Bienvenido a ..."}}
    """
    return {
        "success": True,
        "data": {
            "message": f"Bienvenido a {settings.PROJECT_NAME} v{settings.PROJECT_VERSION}",
            "environment": settings.APP_ENVIRONMENT,
        },
    }

# ========================================
# EVENTOS DEL CICLO DE VIDA DE LA APLICACIÓN
# ========================================

@app.on_event("startup")
async def startup_event():
    setup_logging(settings)
    logger.info(f"✅ {settings.PROJECT_NAME} iniciado ({settings.APP_ENVIRONMENT})")
    if settings.HYPAY_SANDBOX:
        logger.info("🧪 Hypay en modo sandbox")


@app.on_event("shutdown")
async def shutdown_event():
    """Guarda los carritos pendientes y libera conexiones."""
    try:
        await flush_cart_writer()
        await cleanup_global_realtime_manager()
    finally:
        await close_redis_client()
    logger.info("👋 Aplicación detenida")

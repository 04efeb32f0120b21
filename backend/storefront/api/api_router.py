# backend/storefront/api/api_router.py
"""
Este archivo contiene el router principal de la API.

Se encarga de registrar todos los routers por dominio de negocio.
"""

from fastapi import APIRouter

from storefront.api.endpoints import (
    admin,
    cart,
    orders,
    payments,
    prices,
    products,
    realtime,
    settings,
)

# ========================================
# CONFIGURACIÓN DEL ROUTER PRINCIPAL
# ========================================

api_router = APIRouter()

# ========================================
# REGISTRO DE ROUTERS POR DOMINIO DE NEGOCIO
# ========================================

# Catálogo (lectura pública, escritura admin)
api_router.include_router(products.router, prefix="/products", tags=["Products"])

# Precios (solo roles autorizados)
api_router.include_router(prices.router, prefix="/prices", tags=["Prices"])

api_router.include_router(orders.router, prefix="/orders", tags=["Orders"])

api_router.include_router(cart.router, prefix="/cart", tags=["Cart"])

# Pasarela Hypay y webhooks
api_router.include_router(payments.router, prefix="/payments", tags=["Payments"])

api_router.include_router(settings.router, prefix="/settings", tags=["Settings"])

# Panel de administración
api_router.include_router(admin.router, prefix="/admin", tags=["Admin"])

# WebSocket de cambios en tiempo real
api_router.include_router(realtime.router, prefix="/realtime", tags=["Realtime"])

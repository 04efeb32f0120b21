# backend/storefront/db/redis_client.py
"""
Cliente Redis compartido.

Redis guarda los carritos, la caché corta del catálogo y transporta los
eventos de cambios (canales db_changes:*) hacia los suscriptores realtime.
"""
import logging
from typing import Optional

from redis.asyncio import Redis

from storefront.core.config import settings

logger = logging.getLogger(__name__)

# Conexión a Redis (se manejará de forma lazy)
_redis_client: Optional[Redis] = None


def get_redis_client() -> Redis:
    """Inicializa y devuelve el cliente de Redis."""
    global _redis_client
    if _redis_client is None:
        _redis_client = Redis.from_url(settings.REDIS_URL, decode_responses=True)
    return _redis_client


async def close_redis_client() -> None:
    """Cierra la conexión global (evento de shutdown)."""
    global _redis_client
    if _redis_client is not None:
        await _redis_client.aclose()
        _redis_client = None
        logger.info("🔌 Conexión a Redis cerrada")

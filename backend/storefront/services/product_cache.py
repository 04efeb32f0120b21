# backend/storefront/services/product_cache.py
"""
Caché corta (segundos) de los listados del catálogo en Redis.
"""
import hashlib
import json
import logging
from typing import Any, Dict, Optional

from redis.asyncio import Redis

logger = logging.getLogger(__name__)

CACHE_PREFIX = "products:list:"


def build_cache_key(params: Dict[str, Any]) -> str:
    raw = json.dumps(params, sort_keys=True, default=str)
    return CACHE_PREFIX + hashlib.sha1(raw.encode("utf-8")).hexdigest()


async def get_cached(redis: Redis, key: str) -> Optional[Any]:
    try:
        cached = await redis.get(key)
    except Exception as e:
        logger.warning(f"⚠️ CACHÉ: Error leyendo {key}: {e}")
        return None
    if not cached:
        return None
    try:
        return json.loads(cached)
    except json.JSONDecodeError:
        return None


async def set_cached(redis: Redis, key: str, value: Any, ttl: int) -> None:
    try:
        await redis.set(key, json.dumps(value, ensure_ascii=False, default=str), ex=ttl)
    except Exception as e:
        logger.warning(f"⚠️ CACHÉ: Error guardando {key}: {e}")


async def invalidate_products_cache(redis: Redis) -> None:
    try:
        keys = [key async for key in redis.scan_iter(match=CACHE_PREFIX + "*")]
        if keys:
            await redis.delete(*keys)
    except Exception as e:
        logger.warning(f"⚠️ CACHÉ: Error invalidando catálogo: {e}")

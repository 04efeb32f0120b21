# backend/storefront/services/realtime_service.py
"""
Notificaciones de cambios en la base de datos (realtime).

Los escritores publican cada cambio en el canal Redis db_changes:{schema}:{table}.
RealtimeManager mantiene exactamente una suscripción viva por clave
(tabla, evento, filtro): suscribirse de nuevo con la misma clave cierra
primero la suscripción anterior.
"""
import asyncio
import inspect
import json
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, Dict, Optional, Union

from redis.asyncio import Redis

from storefront.schemas.realtime_schema import RealtimeEvent, SubscriptionConfig

logger = logging.getLogger(__name__)

Callback = Callable[[RealtimeEvent], Union[None, Awaitable[None]]]


def get_channel_name(table: str, schema: str = "public") -> str:
    return f"db_changes:{schema}:{table}"


async def publish_change(
    redis: Redis,
    table: str,
    event_type: str,
    new: Optional[Dict[str, Any]] = None,
    old: Optional[Dict[str, Any]] = None,
    schema: str = "public",
) -> None:
    """
    Publica un evento de cambio. Si Redis no está disponible se registra el
    error y la escritura que lo originó sigue adelante.
    """
    event = RealtimeEvent(
        eventType=event_type,
        schema=schema,
        table=table,
        new=new or {},
        old=old or {},
        commit_timestamp=datetime.now(timezone.utc).isoformat(),
    )
    try:
        await redis.publish(get_channel_name(table, schema), event.model_dump_json(by_alias=True))
        logger.debug(f"📡 REALTIME: {event_type} publicado en {table}")
    except Exception as e:
        logger.error(f"❌ REALTIME: No se pudo publicar {event_type} en {table}: {e}")


# ========================================
# FILTROS ESTILO POSTGREST
# ========================================

def _coerce(raw: str, actual: Any) -> Any:
    """Convierte el valor del filtro al tipo del valor del registro."""
    if isinstance(actual, bool):
        return raw.lower() == "true"
    if isinstance(actual, (int, float)):
        try:
            return float(raw)
        except ValueError:
            return raw
    return raw


def matches_filter(record: Dict[str, Any], filter_expr: Optional[str]) -> bool:
    """
    Evalúa un filtro "columna=op.valor" sobre un registro.
    Operadores: eq, neq, gt, gte, lt, lte, in.(a,b)
    """
    if not filter_expr:
        return True
    column, sep, condition = filter_expr.partition("=")
    op, dot, raw_value = condition.partition(".")
    if not sep or not dot:
        logger.warning(f"⚠️ REALTIME: Filtro inválido '{filter_expr}'")
        return False
    if column not in record:
        return False
    actual = record.get(column)

    if op == "in":
        options = [v.strip().strip('"') for v in raw_value.strip("()").split(",")]
        return str(actual) in options
    if actual is None:
        return op == "neq" and raw_value != "null"

    expected = _coerce(raw_value, actual)
    if not isinstance(actual, (bool, int, float)):
        actual = str(actual)
    if op == "eq":
        return actual == expected
    if op == "neq":
        return actual != expected
    try:
        if op == "gt":
            return actual > expected
        if op == "gte":
            return actual >= expected
        if op == "lt":
            return actual < expected
        if op == "lte":
            return actual <= expected
    except TypeError:
        return False
    logger.warning(f"⚠️ REALTIME: Operador no soportado '{op}'")
    return False


def event_matches(config: SubscriptionConfig, event: RealtimeEvent) -> bool:
    if config.event not in (None, "*") and event.eventType != config.event:
        return False
    if not config.filter:
        return True
    record = event.old if event.eventType == "DELETE" else event.new
    return matches_filter(record, config.filter)


# ========================================
# GESTOR DE SUSCRIPCIONES
# ========================================

@dataclass
class _Subscription:
    config: SubscriptionConfig
    callback: Callback
    pubsub: Any
    task: asyncio.Task


class RealtimeManager:
    """Una suscripción viva por clave (tabla, evento, filtro)."""

    def __init__(self, redis: Redis):
        self.redis = redis
        self._subscriptions: Dict[str, _Subscription] = {}
        # Serializa subscribe/unsubscribe de una misma clave
        self._locks: Dict[str, asyncio.Lock] = {}

    def _lock_for(self, key: str) -> asyncio.Lock:
        lock = self._locks.get(key)
        if lock is None:
            lock = self._locks[key] = asyncio.Lock()
        return lock

    async def subscribe(self, config: SubscriptionConfig, callback: Callback) -> str:
        key = config.key
        async with self._lock_for(key):
            if key in self._subscriptions:
                logger.info(f"🔄 REALTIME: Reemplazando suscripción existente {key}")
                await self._remove(key)

            pubsub = self.redis.pubsub()
            await pubsub.subscribe(get_channel_name(config.table, config.schema_name))
            task = asyncio.create_task(self._listen(key, pubsub, config, callback))
            self._subscriptions[key] = _Subscription(config=config, callback=callback, pubsub=pubsub, task=task)
        logger.info(f"✅ REALTIME: Suscrito a {key}")
        return key

    async def _listen(self, key: str, pubsub: Any, config: SubscriptionConfig, callback: Callback) -> None:
        async for message in pubsub.listen():
            if message.get("type") != "message":
                continue
            try:
                event = RealtimeEvent.model_validate(json.loads(message["data"]))
            except (ValueError, TypeError) as e:
                logger.warning(f"⚠️ REALTIME: Mensaje ilegible en {key}: {e}")
                continue
            if not event_matches(config, event):
                continue
            try:
                result = callback(event)
                if inspect.isawaitable(result):
                    await result
            except Exception as e:
                logger.error(f"❌ REALTIME: Error en callback de {key}: {e}")

    async def unsubscribe(self, key: str) -> bool:
        async with self._lock_for(key):
            return await self._remove(key)

    async def _remove(self, key: str) -> bool:
        """Cierra la suscripción de la clave; quien llama tiene su lock."""
        subscription = self._subscriptions.pop(key, None)
        if subscription is None:
            return False
        subscription.task.cancel()
        try:
            await subscription.task
        except asyncio.CancelledError:
            pass
        try:
            await subscription.pubsub.unsubscribe()
            await subscription.pubsub.aclose()
        except Exception as e:
            logger.warning(f"⚠️ REALTIME: Error cerrando suscripción {key}: {e}")
        logger.info(f"🔌 REALTIME: Cancelada suscripción {key}")
        return True

    async def unsubscribe_all(self) -> None:
        for key in list(self._subscriptions):
            await self.unsubscribe(key)

    def is_subscribed(self, key: str) -> bool:
        return key in self._subscriptions

    @property
    def active_subscription_count(self) -> int:
        return len(self._subscriptions)

    @property
    def keys(self):
        return list(self._subscriptions)


# ========================================
# SUSCRIPCIONES HABITUALES
# ========================================

async def create_cart_subscription(manager: RealtimeManager, user_id: str, callback: Callback) -> str:
    config = SubscriptionConfig(table="cart_items", event="*", filter=f"user_id=eq.{user_id}")
    return await manager.subscribe(config, callback)


async def create_product_subscription(manager: RealtimeManager, callback: Callback) -> str:
    return await manager.subscribe(SubscriptionConfig(table="products", event="*"), callback)


async def create_order_subscription(manager: RealtimeManager, user_id: str, callback: Callback) -> str:
    config = SubscriptionConfig(table="orders", event="*", filter=f"client_id=eq.{user_id}")
    return await manager.subscribe(config, callback)


async def create_company_settings_subscription(manager: RealtimeManager, callback: Callback) -> str:
    return await manager.subscribe(SubscriptionConfig(table="settings", event="UPDATE"), callback)


# Gestor global del proceso (se manejará de forma lazy)
_global_manager: Optional[RealtimeManager] = None


def get_global_realtime_manager(redis: Optional[Redis] = None) -> RealtimeManager:
    global _global_manager
    if _global_manager is None:
        if redis is None:
            from storefront.db.redis_client import get_redis_client
            redis = get_redis_client()
        _global_manager = RealtimeManager(redis)
    return _global_manager


async def cleanup_global_realtime_manager() -> None:
    global _global_manager
    if _global_manager is not None:
        await _global_manager.unsubscribe_all()
        _global_manager = None

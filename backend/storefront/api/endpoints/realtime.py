# backend/storefront/api/endpoints/realtime.py
"""
Puente WebSocket hacia los canales de cambios.

Mensajes del cliente:
    {"action": "subscribe", "table": "orders", "event": "UPDATE", "filter": "client_id=eq.x"}
    {"action": "unsubscribe", "key": "orders-UPDATE-client_id=eq.x"}
"""

import logging

from fastapi import APIRouter, Depends, WebSocket, WebSocketDisconnect
from pydantic import ValidationError
from redis.asyncio import Redis

from storefront.api import deps
from storefront.schemas.realtime_schema import RealtimeEvent, SubscriptionConfig
from storefront.services.realtime_service import RealtimeManager

logger = logging.getLogger(__name__)
router = APIRouter()


@router.websocket("/ws")
async def realtime_socket(websocket: WebSocket, redis: Redis = Depends(deps.get_redis)):
    await websocket.accept()
    # Cada conexión tiene su propio gestor: al cerrar se eliminan sus suscripciones
    manager = RealtimeManager(redis)

    async def relay(event: RealtimeEvent):
        await websocket.send_json({"type": "change", "payload": event.model_dump(by_alias=True)})

    try:
        while True:
            message = await websocket.receive_json()
            action = message.get("action")
            if action == "subscribe":
                try:
                    config = SubscriptionConfig.model_validate(message)
                except ValidationError as e:
                    await websocket.send_json({"type": "error", "error": str(e)})
                    continue
                key = await manager.subscribe(config, relay)
                await websocket.send_json({"type": "subscribed", "key": key})
            elif action == "unsubscribe":
                removed = await manager.unsubscribe(message.get("key", ""))
                await websocket.send_json({"type": "unsubscribed", "key": message.get("key"), "removed": removed})
            else:
                await websocket.send_json({"type": "error", "error": f"Unknown action '{action}'"})
    except WebSocketDisconnect:
        logger.info("🔌 REALTIME: Cliente desconectado")
    finally:
        await manager.unsubscribe_all()

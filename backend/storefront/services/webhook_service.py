# backend/storefront/services/webhook_service.py
"""
Procesamiento de los eventos de la pasarela de pago.

Cada evento actualiza la sesión de pago y el pedido asociado, y publica el
cambio del pedido por el canal realtime.
"""
import logging
from datetime import datetime, timezone
from typing import Any, Dict, Optional, Tuple

from redis.asyncio import Redis
from sqlalchemy.ext.asyncio import AsyncSession

from storefront.crud import order_crud, payment_crud
from storefront.schemas.payment_schema import WebhookEvent
from storefront.services.payment_service import PaymentSuccessGuard, payment_success_guard
from storefront.services.realtime_service import publish_change

logger = logging.getLogger(__name__)

# evento -> (estado del pedido, estado del pago)
EVENT_STATUS_MAP: Dict[str, Tuple[Optional[str], str]] = {
    "payment.created": (None, "created"),
    "payment.processing": ("processing", "processing"),
    "payment.completed": ("confirmed", "completed"),
    "payment.success": ("confirmed", "completed"),
    "payment.failed": ("payment_failed", "failed"),
    "payment.declined": ("payment_failed", "failed"),
    "payment.cancelled": ("cancelled", "cancelled"),
    "payment.refunded": ("refunded", "refunded"),
    "payment.expired": ("payment_expired", "expired"),
}

SUCCESS_EVENTS = ("payment.completed", "payment.success")

# Pedidos que ya no admiten cambios de pago
CLOSED_ORDER_STATUSES = ("cancelled", "refunded")


def _stale_event_reason(db_order, event_name: str) -> Optional[str]:
    """Motivo para ignorar un evento que ya no aplica al pedido, o None."""
    if db_order.status in CLOSED_ORDER_STATUSES:
        return "order_closed"
    # Un pedido pagado solo puede pasar a reembolsado
    if db_order.payment_status == "completed" and event_name != "payment.refunded":
        return "already_completed"
    return None


async def handle_webhook_event(
    db: AsyncSession,
    redis: Redis,
    event: WebhookEvent,
    guard: PaymentSuccessGuard = payment_success_guard,
) -> Dict[str, Any]:
    """
    Aplica un evento; devuelve {"handled": bool, "event": ..., "reason"?: ...}.

    Si la sesión existe, el pedido afectado es el de la sesión y no el
    order_id que traiga el evento.
    """
    mapping = EVENT_STATUS_MAP.get(event.event)
    if mapping is None:
        logger.warning(f"⚠️ WEBHOOK: Evento desconocido '{event.event}'")
        return {"handled": False, "event": event.event, "reason": "unknown_event"}
    order_status, payment_status = mapping

    db_session = await payment_crud.get_session(db, event.session_id) if event.session_id else None
    order_id = db_session.order_id if db_session is not None else event.order_id
    if db_session is not None and event.order_id and event.order_id != db_session.order_id:
        logger.warning(f"⚠️ WEBHOOK: order_id {event.order_id} no coincide con la sesión {db_session.session_id}, se usa {order_id}")
    db_order = await order_crud.get_order(db, order_id) if order_id else None
    if db_order is None and event.session_id:
        db_order = await order_crud.get_order_by_payment_session(db, event.session_id)

    if db_order is not None:
        reason = _stale_event_reason(db_order, event.event)
        if reason is not None:
            logger.info(f"ℹ️ WEBHOOK: {event.event} ignorado para el pedido {db_order.id} ({reason})")
            return {"handled": False, "event": event.event, "reason": reason}
    if event.event in SUCCESS_EVENTS and not guard.should_handle(event.session_id or event.order_id):
        logger.info(f"ℹ️ WEBHOOK: Éxito duplicado para {event.session_id}, se ignora")
        return {"handled": False, "event": event.event, "reason": "duplicate"}

    transaction_id = event.transaction_id or event.data.get("transaction_id")

    if db_session is not None:
        session_updates: Dict[str, Any] = {"status": payment_status}
        if transaction_id:
            session_updates["transaction_id"] = transaction_id
        if event.error_message:
            session_updates["error_message"] = event.error_message
        if event.data.get("payment_method"):
            session_updates["payment_method"] = event.data["payment_method"]
        await payment_crud.update_session(db, db_session, **session_updates)

    if db_order is None:
        logger.warning(f"⚠️ WEBHOOK: Pedido no encontrado para el evento {event.event} ({order_id})")
        return {"handled": db_session is not None, "event": event.event, "reason": "order_not_found"}

    old = db_order.to_dict()
    updates: Dict[str, Any] = {"payment_status": payment_status}
    if order_status:
        updates["status"] = order_status
    if transaction_id:
        updates["transaction_id"] = transaction_id
    if event.session_id:
        updates["payment_session_id"] = event.session_id
    db_order = await order_crud.update_order(db, db_order, updates)

    logger.info(f"✅ WEBHOOK: {event.event} aplicado al pedido {db_order.id} -> {db_order.status}")
    await publish_change(redis, "orders", "UPDATE", new=db_order.to_dict(), old=old)
    return {"handled": True, "event": event.event, "order_id": db_order.id, "status": db_order.status}


async def cleanup_expired_sessions(db: AsyncSession) -> int:
    """Marca como expiradas las sesiones 'created' cuyo plazo ya pasó."""
    expired = await payment_crud.get_expired_sessions(db, datetime.now(timezone.utc))
    for db_session in expired:
        await payment_crud.update_session(db, db_session, status="expired")
    if expired:
        logger.info(f"🧹 PAGO: {len(expired)} sesiones expiradas")
    return len(expired)

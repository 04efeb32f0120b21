# backend/storefront/api/endpoints/payments.py
"""
Endpoints de la pasarela de pago Hypay.
"""

import json
import logging

from fastapi import APIRouter, Depends, Request, status
from pydantic import ValidationError
from redis.asyncio import Redis
from sqlalchemy.ext.asyncio import AsyncSession

from storefront.api import deps
from storefront.core.config import Settings
from storefront.core.exceptions import AuthenticationError, BadRequestError, NotFoundError
from storefront.core.security import AuthUser
from storefront.crud import order_crud, payment_crud
from storefront.db.models.payment_session_model import PaymentSession
from storefront.schemas.common_schema import ok
from storefront.schemas.payment_schema import (
    PaymentSessionCreate,
    RefundRequest,
    SandboxCompleteRequest,
    SuccessCallback,
    WebhookEvent,
)
from storefront.services import order_service
from storefront.services.payment_service import HypayGateway, verify_webhook_signature
from storefront.services.webhook_service import handle_webhook_event

logger = logging.getLogger(__name__)
router = APIRouter()


async def _get_owned_session(db: AsyncSession, session_id: str, user: AuthUser) -> PaymentSession:
    """Sesión de pago cuyo pedido pertenece al usuario (o cualquiera si es admin)."""
    db_session = await payment_crud.get_session(db, session_id)
    if db_session is None:
        raise NotFoundError("Payment session not found")
    # Las sesiones ajenas responden igual que las inexistentes
    try:
        order_service.ensure_can_access(await order_crud.get_order(db, db_session.order_id), user)
    except NotFoundError:
        raise NotFoundError("Payment session not found")
    return db_session


@router.post("/sessions", status_code=status.HTTP_201_CREATED)
async def create_payment_session(
    payment_in: PaymentSessionCreate,
    db: AsyncSession = Depends(deps.get_db),
    user: AuthUser = Depends(deps.require_user),
    gateway: HypayGateway = Depends(deps.get_payment_gateway),
):
    order = order_service.ensure_can_access(await order_crud.get_order(db, payment_in.order_id), user)
    if round(payment_in.amount, 2) != round(float(order.total_amount), 2):
        logger.warning(f"⚠️ PAGO: Importe {payment_in.amount} distinto del total {order.total_amount} del pedido {order.id}")
        raise BadRequestError("Payment amount does not match order total")
    session = await gateway.create_payment_session(payment_in)
    await order_crud.update_order(db, order, {"payment_session_id": session.session_id, "payment_status": "created"})
    return ok(session.model_dump(mode="json"))


@router.get("/sessions/{session_id}")
async def read_payment_session(
    session_id: str,
    db: AsyncSession = Depends(deps.get_db),
    user: AuthUser = Depends(deps.require_user),
    gateway: HypayGateway = Depends(deps.get_payment_gateway),
):
    await _get_owned_session(db, session_id, user)
    session = await gateway.get_payment_session(session_id)
    return ok(session.model_dump(mode="json"))


@router.get("/sessions/{session_id}/status")
async def read_payment_status(
    session_id: str,
    db: AsyncSession = Depends(deps.get_db),
    user: AuthUser = Depends(deps.require_user),
    gateway: HypayGateway = Depends(deps.get_payment_gateway),
):
    await _get_owned_session(db, session_id, user)
    payment_status = await gateway.get_payment_status(session_id)
    return ok(payment_status.model_dump())


@router.get("/orders/{order_id}/sessions")
async def read_order_payment_sessions(
    order_id: str,
    db: AsyncSession = Depends(deps.get_db),
    user: AuthUser = Depends(deps.require_user),
    gateway: HypayGateway = Depends(deps.get_payment_gateway),
):
    order_service.ensure_can_access(await order_crud.get_order(db, order_id), user)
    sessions = await gateway.get_payment_sessions_by_order(order_id)
    return ok([s.model_dump(mode="json") for s in sessions])


@router.post("/sessions/{session_id}/sandbox-complete")
async def complete_sandbox_payment(
    session_id: str,
    body: SandboxCompleteRequest,
    db: AsyncSession = Depends(deps.get_db),
    user: AuthUser = Depends(deps.require_user),
    gateway: HypayGateway = Depends(deps.get_payment_gateway),
):
    await _get_owned_session(db, session_id, user)
    payment_status = await gateway.complete_sandbox_payment(session_id, body.success)
    return ok(payment_status.model_dump())


@router.post("/refunds")
async def create_refund(
    refund_in: RefundRequest,
    admin: AuthUser = Depends(deps.require_admin),
    gateway: HypayGateway = Depends(deps.get_payment_gateway),
):
    result = await gateway.process_refund(refund_in.transaction_id, refund_in.amount, refund_in.reason)
    return ok(result)


@router.post("/webhook")
async def payment_webhook(
    request: Request,
    db: AsyncSession = Depends(deps.get_db),
    redis: Redis = Depends(deps.get_redis),
    settings: Settings = Depends(deps.get_settings),
):
    """Recibe eventos de Hypay; la firma viaja en X-Hypay-Signature."""
    payload = await request.body()
    signature = request.headers.get("X-Hypay-Signature")
    if not verify_webhook_signature(payload, signature, settings.HYPAY_SECRET_KEY, settings.APP_ENVIRONMENT):
        logger.warning("⚠️ WEBHOOK: Firma inválida")
        raise AuthenticationError("Invalid webhook signature")
    try:
        event = WebhookEvent.model_validate(json.loads(payload))
    except (json.JSONDecodeError, ValidationError) as e:
        raise BadRequestError(f"Invalid webhook payload: {e}")

    logger.info(f"📨 WEBHOOK: Evento {event.event} para sesión {event.session_id}")
    result = await handle_webhook_event(db, redis, event)
    return ok(result)


@router.post("/success-callback")
async def payment_success_callback(
    callback: SuccessCallback,
    db: AsyncSession = Depends(deps.get_db),
    redis: Redis = Depends(deps.get_redis),
    user: AuthUser = Depends(deps.require_user),
    gateway: HypayGateway = Depends(deps.get_payment_gateway),
):
    """
    Retorno del cliente tras un pago exitoso. Se confirma el estado con la
    pasarela antes de marcar el pedido.

    El pedido confirmado es siempre el de la sesión; un order_id distinto en
    el cuerpo se rechaza.
    """
    db_session = await _get_owned_session(db, callback.session_id, user)
    if callback.order_id and callback.order_id != db_session.order_id:
        logger.warning(f"⚠️ PAGO: La sesión {db_session.session_id} no pertenece al pedido {callback.order_id}")
        raise BadRequestError("Payment session does not belong to this order")

    payment_status = await gateway.get_payment_status(callback.session_id)
    if payment_status.status != "completed":
        return ok({"handled": False, "status": payment_status.status}, message="Payment not completed")

    event = WebhookEvent(
        event="payment.completed",
        session_id=db_session.session_id,
        order_id=db_session.order_id,
        transaction_id=callback.transaction_id or payment_status.transaction_id,
    )
    result = await handle_webhook_event(db, redis, event)
    return ok(result)

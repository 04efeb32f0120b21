# backend/storefront/services/payment_service.py
"""
Integración con la pasarela de pago Hypay.

- Creación de sesiones de pago (formulario para la página de pago alojada)
- Consulta de estado de pago
- Reembolsos
- Verificación de la firma de los webhooks
- Protección contra el doble procesamiento del retorno de pago exitoso
"""
import hashlib
import hmac
import logging
import time
import uuid
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional

import httpx
from sqlalchemy.ext.asyncio import AsyncSession

from storefront.core.config import Settings
from storefront.core.exceptions import BadRequestError, NotFoundError, PaymentGatewayError
from storefront.crud import payment_crud
from storefront.db.models.payment_session_model import PaymentSession
from storefront.schemas.payment_schema import (
    PaymentSessionCreate,
    PaymentSessionResponse,
    PaymentStatusResponse,
)

logger = logging.getLogger(__name__)

# Estados finales de una sesión de pago
FINAL_STATUSES = ("completed", "failed", "cancelled", "expired", "refunded")


def generate_session_id() -> str:
    return f"hypay_session_{int(time.time() * 1000)}_{uuid.uuid4().hex[:8]}"


# ========================================
# FIRMA DE WEBHOOKS
# ========================================

def compute_signature(payload: bytes, secret: str) -> str:
    return hmac.new(secret.encode("utf-8"), payload, hashlib.sha256).hexdigest()


def verify_webhook_signature(payload: bytes, signature: Optional[str], secret: Optional[str], environment: str = "development") -> bool:
    """
    HMAC-SHA256 en hexadecimal, comparado en tiempo constante.

    Sin secreto configurado solo se aceptan webhooks fuera de producción.
    """
    if not secret:
        if environment.lower() == "production":
            logger.error("❌ WEBHOOK: HYPAY_SECRET_KEY no configurada en producción")
            return False
        logger.warning("⚠️ WEBHOOK: Firma no verificada (sin HYPAY_SECRET_KEY)")
        return True
    if not signature:
        return False
    expected = compute_signature(payload, secret)
    return hmac.compare_digest(expected, signature.strip().lower())


# ========================================
# GUARDA DE RETORNO DE PAGO
# ========================================

class PaymentSuccessGuard:
    """Recuerda la última sesión procesada para no tratarla dos veces."""

    def __init__(self):
        self._last_session_id: Optional[str] = None

    def should_handle(self, session_id: Optional[str]) -> bool:
        if not session_id or session_id == self._last_session_id:
            return False
        self._last_session_id = session_id
        return True

    def reset(self) -> None:
        self._last_session_id = None

    @property
    def last_session_id(self) -> Optional[str]:
        return self._last_session_id


# Guarda compartida por el proceso
payment_success_guard = PaymentSuccessGuard()


# ========================================
# PASARELA
# ========================================

def _to_response(db_session: PaymentSession, form_data: Optional[Dict[str, Any]] = None) -> PaymentSessionResponse:
    return PaymentSessionResponse(
        session_id=db_session.session_id,
        order_id=db_session.order_id,
        amount=float(db_session.amount),
        currency=db_session.currency,
        status=db_session.status,
        payment_url=db_session.payment_url,
        form_data=form_data,
        transaction_id=db_session.transaction_id,
        expires_at=db_session.expires_at,
    )


class HypayGateway:
    """
    Cliente de la pasarela Hypay. Las sesiones se guardan en payment_sessions.
    """

    def __init__(self, settings: Settings, db: AsyncSession, transport: Optional[httpx.AsyncBaseTransport] = None):
        self.settings = settings
        self.db = db
        self.transport = transport

    def _get_api_client(self) -> httpx.AsyncClient:
        """Crea un cliente HTTP para la API REST de Hypay."""
        return httpx.AsyncClient(
            base_url=self.settings.HYPAY_API_URL,
            timeout=self.settings.HYPAY_TIMEOUT_SECONDS,
            transport=self.transport,
            headers={
                "Authorization": f"Bearer {self.settings.HYPAY_API_KEY or ''}",
                "X-Merchant-ID": self.settings.HYPAY_MERCHANT_ID or "",
            },
        )

    def build_form_data(self, session_id: str, payment: PaymentSessionCreate) -> Dict[str, Any]:
        """Campos del formulario de la página de pago alojada."""
        if not self.settings.HYPAY_MASOF:
            raise PaymentGatewayError("Payment gateway is not configured (missing Masof)", status_code=500)
        description = payment.description or f"Order {payment.order_id}"
        return {
            "action": "pay",
            "Masof": self.settings.HYPAY_MASOF,
            "PassP": self.settings.HYPAY_PASS_P or "",
            "Info": description,
            "Amount": int(round(payment.amount)),
            "UserId": "000000000",
            "ClientName": payment.customer_name,
            "email": payment.customer_email or "",
            "cell": payment.customer_phone or "",
            "Order": payment.order_id,
            "UTF8": "True",
            "UTF8out": "True",
            "MoreData": "True",
            "sendemail": "True" if payment.customer_email else "False",
            "Coin": 1,
            "Fild1": session_id,
            "Fild2": payment.source,
            "Fild3": description,
        }

    async def create_payment_session(self, payment: PaymentSessionCreate) -> PaymentSessionResponse:
        session_id = generate_session_id()
        form_data = self.build_form_data(session_id, payment)
        payment_url = str(httpx.URL(self.settings.HYPAY_BASE_URL, params=form_data))
        expires_at = datetime.now(timezone.utc) + timedelta(minutes=self.settings.PAYMENT_EXPIRY_MINUTES)

        db_session = await payment_crud.create_session(
            self.db,
            session_id=session_id,
            order_id=payment.order_id,
            amount=payment.amount,
            currency=payment.currency,
            status="created",
            customer_name=payment.customer_name,
            payment_url=payment_url,
            expires_at=expires_at,
        )
        logger.info(f"💳 PAGO: Sesión {session_id} creada para pedido {payment.order_id} ({payment.amount} {payment.currency})")
        return _to_response(db_session, form_data)

    async def get_payment_session(self, session_id: str) -> PaymentSessionResponse:
        db_session = await payment_crud.get_session(self.db, session_id)
        if db_session is None:
            raise NotFoundError("Payment session not found")
        return _to_response(db_session)

    async def get_payment_sessions_by_order(self, order_id: str) -> List[PaymentSessionResponse]:
        return [_to_response(s) for s in await payment_crud.get_sessions_by_order(self.db, order_id)]

    async def get_payment_status(self, session_id: str) -> PaymentStatusResponse:
        db_session = await payment_crud.get_session(self.db, session_id)
        if db_session is None:
            raise NotFoundError("Payment session not found")

        if self.settings.HYPAY_SANDBOX:
            if db_session.status not in FINAL_STATUSES:
                db_session = await payment_crud.update_session(
                    self.db, db_session,
                    status="completed",
                    transaction_id=db_session.transaction_id or f"sandbox_txn_{uuid.uuid4().hex[:12]}",
                    payment_method="credit_card",
                )
            return self._status_from_session(db_session)

        try:
            async with self._get_api_client() as client:
                response = await client.get(f"/v1/payments/{session_id}")
                response.raise_for_status()
                data = response.json()
        except httpx.HTTPError as e:
            logger.error(f"❌ PAGO: Error consultando estado de {session_id}: {e}")
            raise PaymentGatewayError("Failed to fetch payment status")

        db_session = await payment_crud.update_session(
            self.db, db_session,
            status=data.get("status", db_session.status),
            transaction_id=data.get("transaction_id") or db_session.transaction_id,
            payment_method=data.get("payment_method") or db_session.payment_method,
            error_message=data.get("error_message"),
        )
        return self._status_from_session(db_session)

    @staticmethod
    def _status_from_session(db_session: PaymentSession) -> PaymentStatusResponse:
        return PaymentStatusResponse(
            session_id=db_session.session_id,
            status=db_session.status,
            transaction_id=db_session.transaction_id,
            amount=float(db_session.amount) if db_session.amount is not None else None,
            payment_method=db_session.payment_method,
            error_message=db_session.error_message,
        )

    async def process_refund(self, transaction_id: str, amount: float, reason: Optional[str] = None) -> Dict[str, Any]:
        """Solicita un reembolso; el importe viaja en agorot."""
        payload = {
            "transaction_id": transaction_id,
            "amount": int(round(amount * 100)),
            "reason": reason or "Customer request",
        }
        if self.settings.HYPAY_SANDBOX:
            logger.info(f"🧪 PAGO: Reembolso simulado de {amount} para {transaction_id}")
            return {"refund_id": f"sandbox_refund_{uuid.uuid4().hex[:12]}", "status": "refunded", **payload}
        try:
            async with self._get_api_client() as client:
                response = await client.post("/v1/refunds", json=payload)
                response.raise_for_status()
                data = response.json()
        except httpx.HTTPError as e:
            logger.error(f"❌ PAGO: Error en reembolso de {transaction_id}: {e}")
            raise PaymentGatewayError("Refund request failed")
        logger.info(f"✅ PAGO: Reembolso solicitado para {transaction_id}")
        return data

    async def complete_sandbox_payment(self, session_id: str, success: bool = True) -> PaymentStatusResponse:
        """Marca una sesión como pagada o fallida (solo en sandbox)."""
        if not self.settings.HYPAY_SANDBOX:
            raise BadRequestError("Sandbox completion is only available in sandbox mode")
        db_session = await payment_crud.get_session(self.db, session_id)
        if db_session is None:
            raise NotFoundError("Payment session not found")
        updates = {"status": "completed" if success else "failed"}
        if success:
            updates["transaction_id"] = db_session.transaction_id or f"sandbox_txn_{uuid.uuid4().hex[:12]}"
            updates["payment_method"] = "credit_card"
        else:
            updates["error_message"] = "Sandbox payment declined"
        db_session = await payment_crud.update_session(self.db, db_session, **updates)
        return self._status_from_session(db_session)

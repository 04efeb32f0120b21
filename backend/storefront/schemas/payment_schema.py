# backend/storefront/schemas/payment_schema.py
"""
Esquemas de la pasarela de pago Hypay.
"""

from datetime import datetime
from typing import Optional, Dict, Any, Literal
from pydantic import BaseModel, Field, ConfigDict

PaymentStatus = Literal["created", "pending", "processing", "completed", "failed", "cancelled", "expired", "refunded"]


class PaymentSessionCreate(BaseModel):
    order_id: str
    amount: float = Field(..., gt=0)
    currency: str = "ILS"
    customer_name: str
    customer_email: Optional[str] = None
    customer_phone: Optional[str] = None
    description: Optional[str] = None
    source: str = "web"
    success_url: Optional[str] = None
    cancel_url: Optional[str] = None


class PaymentSessionResponse(BaseModel):
    session_id: str
    order_id: str
    amount: float
    currency: str
    status: str
    payment_url: Optional[str] = None
    form_data: Optional[Dict[str, Any]] = None
    transaction_id: Optional[str] = None
    expires_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class PaymentStatusResponse(BaseModel):
    session_id: str
    status: str
    transaction_id: Optional[str] = None
    amount: Optional[float] = None
    payment_method: Optional[str] = None
    error_message: Optional[str] = None


class RefundRequest(BaseModel):
    transaction_id: str
    amount: float = Field(..., gt=0)
    reason: Optional[str] = None


class WebhookEvent(BaseModel):
    event: str
    session_id: Optional[str] = None
    order_id: Optional[str] = None
    transaction_id: Optional[str] = None
    amount: Optional[float] = None
    status: Optional[str] = None
    error_message: Optional[str] = None
    data: Dict[str, Any] = {}


class SuccessCallback(BaseModel):
    session_id: str
    order_id: Optional[str] = None
    transaction_id: Optional[str] = None


class SandboxCompleteRequest(BaseModel):
    success: bool = True

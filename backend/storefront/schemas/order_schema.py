# backend/storefront/schemas/order_schema.py
"""
Se encarga de definir los esquemas Pydantic para el modelo Order.
"""

from pydantic import BaseModel, EmailStr, Field, ConfigDict, field_validator
from typing import List, Optional, Any, Dict
from datetime import datetime
import enum


class OrderStatus(str, enum.Enum):
    """Define los posibles estados de una orden."""
    PENDING = "pending"
    CONFIRMED = "confirmed"
    PROCESSING = "processing"
    SHIPPED = "shipped"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"
    PAYMENT_FAILED = "payment_failed"
    PAYMENT_EXPIRED = "payment_expired"
    REFUNDED = "refunded"


class OrderTotals(BaseModel):
    subtotal: float
    tax: float
    total: float
    item_count: int
    tax_rate: float


class OrderCreate(BaseModel):
    """Esquema para crear una orden; las líneas se sanean en el servidor."""
    customer_name: str
    customer_email: Optional[EmailStr] = None
    customer_phone: Optional[str] = None
    customer_address: Optional[str] = None
    notes: Optional[str] = None
    items: List[Dict[str, Any]] = Field(..., min_length=1)

    @field_validator("customer_name")
    @classmethod
    def validate_customer_name(cls, v):
        if not v or not v.strip():
            raise ValueError("Customer name is required")
        return v.strip()


class OrderUpdate(BaseModel):
    customer_name: Optional[str] = None
    customer_email: Optional[EmailStr] = None
    customer_phone: Optional[str] = None
    customer_address: Optional[str] = None
    notes: Optional[str] = None
    items: Optional[List[Dict[str, Any]]] = None
    status: Optional[OrderStatus] = None


class OrderResponse(BaseModel):
    id: str
    client_id: Optional[str] = None
    customer_name: str
    customer_email: Optional[str] = None
    customer_phone: Optional[str] = None
    customer_address: Optional[str] = None
    items: List[Dict[str, Any]] = []
    subtotal: float
    tax: float
    total_amount: float
    status: str
    notes: Optional[str] = None
    payment_status: Optional[str] = None
    payment_session_id: Optional[str] = None
    transaction_id: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class BulkStatusUpdate(BaseModel):
    order_ids: List[str] = Field(..., min_length=1)
    status: OrderStatus

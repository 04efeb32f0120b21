# backend/storefront/db/models/order_model.py
"""
Este archivo contiene el modelo de pedido para la aplicación.

Las líneas del pedido se guardan como JSON (instantánea del carrito en el
momento de la compra), no como tabla relacionada.
"""
import uuid

from sqlalchemy import Column, String, Text, Numeric, DateTime, ForeignKey
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from storefront.db.database import Base, JSONType


class Order(Base):
    __tablename__ = "orders"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    client_id = Column(String(36), ForeignKey("profiles.id", ondelete="SET NULL"), nullable=True, index=True)
    customer_name = Column(String(255), nullable=False)
    customer_email = Column(String(255), nullable=True)
    customer_phone = Column(String(50), nullable=True)
    customer_address = Column(Text, nullable=True)
    items = Column(JSONType, nullable=False, default=list)
    subtotal = Column(Numeric(10, 2), nullable=False, default=0)
    tax = Column(Numeric(10, 2), nullable=False, default=0)
    total_amount = Column(Numeric(10, 2), nullable=False, default=0)
    status = Column(String(30), nullable=False, default="pending", index=True)
    notes = Column(Text, nullable=True)

    # Estado del pago en la pasarela
    payment_status = Column(String(30), nullable=True)
    payment_session_id = Column(String(100), nullable=True, index=True)
    transaction_id = Column(String(100), nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), index=True)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    client = relationship("Profile", back_populates="orders")

    def __repr__(self):
        return f"<Order(id={self.id}, customer='{self.customer_name}', status='{self.status}')>"

    def to_dict(self):
        """Convierte el pedido a un diccionario (payload de eventos realtime)."""
        return {
            "id": self.id,
            "client_id": self.client_id,
            "customer_name": self.customer_name,
            "customer_email": self.customer_email,
            "customer_phone": self.customer_phone,
            "items": self.items or [],
            "subtotal": float(self.subtotal or 0),
            "tax": float(self.tax or 0),
            "total_amount": float(self.total_amount or 0),
            "status": self.status,
            "notes": self.notes,
            "payment_status": self.payment_status,
            "payment_session_id": self.payment_session_id,
            "transaction_id": self.transaction_id,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }

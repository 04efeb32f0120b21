# backend/storefront/db/models/payment_session_model.py
"""
Sesiones de pago abiertas en la pasarela Hypay.
"""
from sqlalchemy import Column, String, Text, Numeric, DateTime
from sqlalchemy.sql import func

from storefront.db.database import Base


class PaymentSession(Base):
    __tablename__ = "payment_sessions"

    session_id = Column(String(100), primary_key=True)
    order_id = Column(String(100), nullable=False, index=True)
    amount = Column(Numeric(10, 2), nullable=False)
    currency = Column(String(3), nullable=False, default="ILS")
    status = Column(String(30), nullable=False, default="created", index=True)
    customer_name = Column(String(255), nullable=True)
    payment_url = Column(Text, nullable=True)
    transaction_id = Column(String(100), nullable=True)
    payment_method = Column(String(50), nullable=True)
    error_message = Column(Text, nullable=True)
    expires_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    def __repr__(self):
        return f"<PaymentSession(id={self.session_id}, order_id={self.order_id}, status='{self.status}')>"

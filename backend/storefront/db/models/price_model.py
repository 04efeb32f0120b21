# backend/storefront/db/models/price_model.py
"""
Modelo de precios por producto.

Los precios viven en una tabla separada para que las políticas de acceso
(solo miembros verificados, clientes y administradores) se apliquen sin
afectar la lectura pública del catálogo.
"""
import uuid

from sqlalchemy import Column, String, Numeric, DateTime, ForeignKey, UniqueConstraint
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from storefront.db.database import Base


class Price(Base):
    __tablename__ = "prices"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    product_ref = Column(String(50), ForeignKey("products.ref", ondelete="CASCADE"), nullable=False, index=True)
    unit_price = Column(Numeric(10, 2), nullable=False)
    cost_price = Column(Numeric(10, 2), nullable=True)
    discount_price = Column(Numeric(10, 2), nullable=True)
    currency = Column(String(3), nullable=False, default="ILS")
    tier = Column(String(50), nullable=False, default="standard")
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    product = relationship("Product", back_populates="prices")

    __table_args__ = (
        UniqueConstraint("product_ref", "tier", name="uq_prices_product_tier"),
    )

    def __repr__(self):
        return f"<Price(product_ref='{self.product_ref}', unit_price={self.unit_price}, tier='{self.tier}')>"

# backend/storefront/db/models/settings_model.py
"""
Modelo de configuración de la empresa (tabla de una sola fila).
"""
import uuid

from sqlalchemy import Column, String, Text, Numeric, DateTime
from sqlalchemy.sql import func

from storefront.db.database import Base


class CompanySettings(Base):
    __tablename__ = "settings"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    company_name = Column(String(255), nullable=True)
    company_description = Column(Text, nullable=True)
    company_email = Column(String(255), nullable=True)
    company_phone = Column(String(50), nullable=True)
    company_address = Column(Text, nullable=True)
    company_logo = Column(String(500), nullable=True)
    tax_rate = Column(Numeric(6, 2), nullable=True)  # Porcentaje (ej: 18)
    currency = Column(String(3), nullable=False, default="ILS")
    invoice_footer_text = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    def to_dict(self):
        return {
            "id": self.id,
            "company_name": self.company_name,
            "company_description": self.company_description,
            "company_email": self.company_email,
            "company_phone": self.company_phone,
            "company_address": self.company_address,
            "company_logo": self.company_logo,
            "tax_rate": float(self.tax_rate) if self.tax_rate is not None else None,
            "currency": self.currency,
            "invoice_footer_text": self.invoice_footer_text,
        }

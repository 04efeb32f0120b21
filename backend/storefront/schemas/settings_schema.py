# backend/storefront/schemas/settings_schema.py
"""
Esquemas de la configuración de empresa.
"""

from typing import Optional
from pydantic import BaseModel, Field


class CompanySettingsBase(BaseModel):
    company_name: Optional[str] = None
    company_description: Optional[str] = None
    company_email: Optional[str] = None
    company_phone: Optional[str] = None
    company_address: Optional[str] = None
    company_logo: Optional[str] = None
    tax_rate: Optional[float] = Field(None, ge=0, le=100)
    currency: Optional[str] = None
    invoice_footer_text: Optional[str] = None


class CompanySettingsUpdate(CompanySettingsBase):
    pass


class CompanySettingsResponse(CompanySettingsBase):
    id: Optional[str] = None

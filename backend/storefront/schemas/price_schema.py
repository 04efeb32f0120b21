# backend/storefront/schemas/price_schema.py
"""
Esquemas de precios y de comprobación de acceso a precios.
"""

from typing import Optional
from pydantic import BaseModel, Field, ConfigDict


class PriceUpsert(BaseModel):
    unit_price: float = Field(..., ge=0)
    cost_price: Optional[float] = Field(None, ge=0)
    discount_price: Optional[float] = Field(None, ge=0)
    currency: str = "ILS"
    tier: str = "standard"


class PriceResponse(PriceUpsert):
    id: str
    product_ref: str

    model_config = ConfigDict(from_attributes=True)


class PriceAccessResponse(BaseModel):
    canViewPrices: bool
    role: Optional[str] = None
    userId: Optional[str] = None
    message: str

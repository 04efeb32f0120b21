# backend/storefront/schemas/product_schema.py
"""
Esquemas Pydantic para el modelo Product.
"""

from typing import Optional, List, Any
from pydantic import BaseModel, Field, ConfigDict, field_validator

# ========================================
# ESQUEMA BASE
# ========================================

class ProductBase(BaseModel):
    """Propiedades comunes compartidas entre esquemas de producto."""
    hebrew_name: Optional[str] = None
    english_name: Optional[str] = None
    french_name: Optional[str] = None
    header: Optional[str] = None
    short_description_he: Optional[str] = None
    description_he: Optional[str] = None
    skin_type_he: Optional[str] = None
    product_line: Optional[str] = None
    type: Optional[str] = None
    product_type: Optional[str] = None
    usage_instructions_he: Optional[str] = None
    active_ingredients_he: Optional[str] = None
    ingredients: Optional[Any] = None
    notice: Optional[str] = None
    unit_price: Optional[float] = Field(None, ge=0)
    size: Optional[str] = None
    qty: Optional[int] = None
    main_pic: Optional[str] = None
    pics: Optional[List[str]] = None


# ========================================
# ESQUEMAS PARA OPERACIONES
# ========================================

class ProductCreate(ProductBase):
    """Esquema para crear un nuevo producto; la referencia es obligatoria."""
    ref: str

    @field_validator("ref")
    @classmethod
    def validate_ref(cls, v):
        if not v or not v.strip():
            raise ValueError("Product ref is required")
        return v.strip()


class ProductUpdate(ProductBase):
    """Actualización parcial: solo se aplican los campos enviados."""
    pass


# ========================================
# ESQUEMAS DE RESPUESTA
# ========================================

class ProductResponse(ProductBase):
    id: str
    ref: str
    # Precio efectivo visible solo para roles autorizados
    price: Optional[float] = None

    model_config = ConfigDict(from_attributes=True)


class ProductFilters(BaseModel):
    """Valores distintos disponibles para los filtros del catálogo."""
    lines: List[str] = []
    productTypes: List[str] = []
    skinTypes: List[str] = []
    types: List[str] = []

# backend/storefront/schemas/cart_schema.py
"""
Esquemas Pydantic para el carrito de compras.
"""

from datetime import datetime
from typing import List, Optional
from pydantic import BaseModel, Field


class CartProductInfo(BaseModel):
    """Instantánea del producto guardada junto a la línea del carrito."""
    id: Optional[str] = None
    ref: Optional[str] = None
    product_name: Optional[str] = None
    main_pic: Optional[str] = None
    product_type: Optional[str] = None


class CartItem(BaseModel):
    product_id: str
    product_name: str = ""
    quantity: int = Field(1, ge=1)
    unit_price: float = 0.0
    total_price: float = 0.0
    unit_type: Optional[str] = None
    notes: Optional[str] = None
    product: Optional[CartProductInfo] = None


class Cart(BaseModel):
    items: List[CartItem] = []
    subtotal: float = 0.0
    total: float = 0.0
    item_count: int = 0
    last_updated: Optional[datetime] = None


class AddToCartRequest(BaseModel):
    """Producto a añadir; admite las mismas claves que sanitize_cart_item."""
    product_id: Optional[str] = None
    ref: Optional[str] = None
    product_name: Optional[str] = None
    unit_price: Optional[float] = None
    unit_type: Optional[str] = None
    main_pic: Optional[str] = None
    product_type: Optional[str] = None
    quantity: int = 1
    notes: Optional[str] = None


class UpdateCartItemRequest(BaseModel):
    quantity: int
    notes: Optional[str] = None


class UpdateCartItemPriceRequest(BaseModel):
    unit_price: float = Field(..., ge=0)


class CartTotals(BaseModel):
    subtotal: float
    tax: float
    total: float
    tax_rate: float
    item_count: int


class CheckoutRequest(BaseModel):
    customer_name: str
    customer_email: Optional[str] = None
    customer_phone: Optional[str] = None
    customer_address: Optional[str] = None
    notes: Optional[str] = None

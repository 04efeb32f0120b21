# backend/storefront/api/endpoints/cart.py
"""
Este archivo contiene los endpoints para el carrito de compras.

Se encarga de gestionar las operaciones de agregar productos, modificar
cantidades y precios, eliminar productos, obtener totales y procesar el checkout.
"""

from fastapi import APIRouter, Depends, status
from redis.asyncio import Redis
from sqlalchemy.ext.asyncio import AsyncSession
from typing import Optional
import logging

from storefront.api import deps
from storefront.core.exceptions import BadRequestError
from storefront.core.security import AuthUser
from storefront.crud import price_crud, product_crud
from storefront.schemas.cart_schema import (
    AddToCartRequest,
    CartTotals,
    CheckoutRequest,
    UpdateCartItemPriceRequest,
    UpdateCartItemRequest,
)
from storefront.schemas.common_schema import ok
from storefront.schemas.order_schema import OrderCreate, OrderResponse
from storefront.services.cart_service import CartService
from storefront.services.company_service import get_tax_rate
from storefront.services.order_calculations import calculate_order_totals
from storefront.services import order_service
from storefront.services.pricing_service import can_view_prices, get_effective_price

logger = logging.getLogger(__name__)

# Router para el carrito de compras
router = APIRouter()


@router.get("/{cart_id}")
async def get_cart(cart_id: str, cart_service: CartService = Depends(deps.get_cart_service)):
    """
    Obtiene el contenido del carrito.
    """
    cart = await cart_service.load_cart(cart_id)
    return ok(cart.to_schema().model_dump(mode="json"))


@router.post("/{cart_id}/items", status_code=status.HTTP_201_CREATED)
async def add_item_to_cart(
    cart_id: str,
    item: AddToCartRequest,
    db: AsyncSession = Depends(deps.get_db),
    user: Optional[AuthUser] = Depends(deps.get_current_user),
    cart_service: CartService = Depends(deps.get_cart_service),
):
    """
    Añade un producto al carrito. Los datos que falten se completan con el
    catálogo; si el producto ya está en el carrito se suma la cantidad.
    """
    ref = item.product_id or item.ref
    if not ref:
        raise BadRequestError("product_id is required")

    product_db = await product_crud.get_product_by_ref(db, ref)
    if product_db is not None:
        if item.product_name is None:
            item.product_name = product_db.hebrew_name or product_db.english_name
        item.main_pic = item.main_pic or product_db.main_pic
        item.product_type = item.product_type or product_db.product_type
        if item.unit_price is None and can_view_prices(user):
            price = await price_crud.get_price(db, ref)
            item.unit_price = get_effective_price(price) if price else float(product_db.unit_price or 0)

    payload = item.model_dump(exclude_none=True, exclude={"quantity", "notes"})
    payload["product_id"] = ref
    cart = await cart_service.add_item(cart_id, payload, item.quantity, item.notes)
    logger.info(f"🛒 CARRITO: {item.quantity} x '{ref}' añadido a {cart_id}")
    return ok(cart.to_schema().model_dump(mode="json"))


@router.put("/{cart_id}/items/{product_id}")
async def update_cart_item(
    cart_id: str,
    product_id: str,
    update: UpdateCartItemRequest,
    cart_service: CartService = Depends(deps.get_cart_service),
):
    """Cambia la cantidad (<= 0 elimina la línea) y las notas."""
    cart = await cart_service.update_item(cart_id, product_id, update.quantity, update.notes)
    return ok(cart.to_schema().model_dump(mode="json"))


@router.put("/{cart_id}/items/{product_id}/price")
async def update_cart_item_price(
    cart_id: str,
    product_id: str,
    update: UpdateCartItemPriceRequest,
    cart_service: CartService = Depends(deps.get_cart_service),
):
    cart = await cart_service.update_item_price(cart_id, product_id, update.unit_price)
    return ok(cart.to_schema().model_dump(mode="json"))


@router.delete("/{cart_id}/items/{product_id}")
async def remove_item_from_cart(
    cart_id: str,
    product_id: str,
    cart_service: CartService = Depends(deps.get_cart_service),
):
    """
    Elimina un producto del carrito.
    """
    cart = await cart_service.remove_item(cart_id, product_id)
    return ok(cart.to_schema().model_dump(mode="json"))


@router.delete("/{cart_id}")
async def clear_cart(cart_id: str, cart_service: CartService = Depends(deps.get_cart_service)):
    """
    Vacía completamente el carrito.
    """
    cart = await cart_service.clear_cart(cart_id)
    return ok(cart.to_schema().model_dump(mode="json"), message="Cart cleared")


@router.get("/{cart_id}/totals")
async def get_cart_totals(
    cart_id: str,
    db: AsyncSession = Depends(deps.get_db),
    cart_service: CartService = Depends(deps.get_cart_service),
):
    """Subtotal, impuesto y total con la tasa configurada por la empresa."""
    cart = await cart_service.load_cart(cart_id)
    totals = calculate_order_totals(cart.items, await get_tax_rate(db))
    return ok(CartTotals(**totals.model_dump()).model_dump())


@router.post("/{cart_id}/checkout", status_code=status.HTTP_201_CREATED)
async def checkout(
    cart_id: str,
    checkout_in: CheckoutRequest,
    db: AsyncSession = Depends(deps.get_db),
    redis: Redis = Depends(deps.get_redis),
    user: AuthUser = Depends(deps.require_user),
    cart_service: CartService = Depends(deps.get_cart_service),
):
    """
    Procesa el checkout:
    1. Crea el pedido con las líneas del carrito y los totales del servidor.
    2. Vacía el carrito (solo si el pedido se creó).
    """
    cart = await cart_service.load_cart(cart_id)
    if not cart.items:
        raise BadRequestError("Cart is empty")

    order_in = OrderCreate(
        **checkout_in.model_dump(),
        items=[item.model_dump() for item in cart.items],
    )
    order = await order_service.create_order(db, redis, user, order_in)
    await cart_service.clear_cart(cart_id)
    logger.info(f"✅ CHECKOUT: Carrito {cart_id} convertido en pedido {order.id}")
    return ok(OrderResponse.model_validate(order).model_dump(mode="json"), message="Order created")

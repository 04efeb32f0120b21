# backend/storefront/services/cart_service.py
"""
Servicio de Carrito de Compras para la aplicación.

El carrito vive en Redis bajo la clave cart:{cart_id} con el formato
{"items": [...], "lastUpdated": "...", "version": "1.0"}. Las escrituras se
agrupan con un retardo corto (debounce): varias ediciones seguidas producen
una sola escritura con el estado más reciente.
"""
import asyncio
import json
import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Tuple, Union

from redis.asyncio import Redis

from storefront.core.config import Settings
from storefront.core.exceptions import NotFoundError
from storefront.schemas import cart_schema
from storefront.schemas.cart_schema import CartItem, CartProductInfo

logger = logging.getLogger(__name__)

# ========================================
# SANEADO DE LÍNEAS
# ========================================

def _first(raw: Dict[str, Any], *keys: str) -> Any:
    for key in keys:
        value = raw.get(key)
        if value is not None and value != "":
            return value
    return None


def _to_quantity(value: Any) -> int:
    try:
        quantity = int(float(value))
    except (TypeError, ValueError):
        return 1
    return max(1, quantity or 1)


def _to_price(value: Any) -> float:
    try:
        return float(value)
    except (TypeError, ValueError):
        return 0.0


def sanitize_cart_item(raw: Dict[str, Any]) -> CartItem:
    """
    Normaliza una línea de carrito venga de donde venga (formulario, almacenamiento
    antiguo o catálogo). La cantidad nunca baja de 1.
    """
    product_id = _first(raw, "product_id", "ref")
    quantity = _to_quantity(raw.get("quantity"))
    unit_price = _to_price(_first(raw, "unit_price", "unitPrice"))

    product = None
    nested = raw.get("product")
    if isinstance(nested, dict):
        product = CartProductInfo(
            id=_str_or_none(nested.get("id")),
            ref=_str_or_none(nested.get("ref")),
            product_name=_first(nested, "product_name", "name"),
            main_pic=_first(nested, "main_pic", "mainPic"),
            product_type=_first(nested, "product_type", "productType"),
        )

    return CartItem(
        product_id=str(product_id or ""),
        product_name=str(_first(raw, "product_name", "productName") or ""),
        quantity=quantity,
        unit_price=unit_price,
        total_price=round(unit_price * quantity, 2),
        unit_type=_first(raw, "unit_type", "unitType"),
        notes=_first(raw, "notes", "notice"),
        product=product,
    )


def _str_or_none(value: Any) -> Optional[str]:
    return str(value) if value is not None else None


def calculate_cart_totals(items: List[CartItem]) -> Tuple[float, float, int]:
    """Devuelve (subtotal, total, número de unidades). El impuesto se aplica en el pedido."""
    subtotal = round(sum(item.unit_price * item.quantity for item in items), 2)
    item_count = sum(item.quantity for item in items)
    return subtotal, subtotal, item_count


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


# ========================================
# ESTADO DEL CARRITO
# ========================================

class Cart:
    """Carrito en memoria con las operaciones de edición."""

    def __init__(self, items: Optional[List[CartItem]] = None, last_updated: Optional[datetime] = None):
        self.items: List[CartItem] = list(items or [])
        self.last_updated = last_updated or _utcnow()

    def _touch(self):
        self.last_updated = _utcnow()

    def get_item(self, product_id: str) -> Optional[CartItem]:
        for item in self.items:
            if item.product_id == str(product_id):
                return item
        return None

    def has_item(self, product_id: str) -> bool:
        return self.get_item(product_id) is not None

    def add_item(self, product: Union[Dict[str, Any], cart_schema.AddToCartRequest], quantity: int = 1,
                 notes: Optional[str] = None) -> CartItem:
        """
        Añade un producto. Si ya está en el carrito se incrementa la cantidad de
        la línea existente y se conservan sus notas salvo que lleguen nuevas.
        """
        if not isinstance(product, dict):
            product = product.model_dump(exclude_none=True)
        if "product" not in product and (product.get("main_pic") or product.get("product_type")):
            product = {**product, "product": {
                "id": product.get("product_id") or product.get("ref"),
                "ref": product.get("ref"),
                "product_name": product.get("product_name"),
                "main_pic": product.get("main_pic"),
                "product_type": product.get("product_type"),
            }}
        new_item = sanitize_cart_item({**product, "quantity": max(1, int(quantity or 1)), "notes": notes})
        if not new_item.product_id:
            raise ValueError("Cart item requires product_id")

        existing = self.get_item(new_item.product_id)
        if existing:
            existing.quantity = max(1, existing.quantity + int(quantity or 0))
            existing.notes = notes or existing.notes
            existing.total_price = round(existing.unit_price * existing.quantity, 2)
            self._touch()
            return existing

        self.items.append(new_item)
        self._touch()
        return new_item

    def update_item(self, product_id: str, quantity: int, notes: Optional[str] = None) -> Optional[CartItem]:
        """Cambia la cantidad; con cantidad <= 0 la línea se elimina."""
        item = self.get_item(product_id)
        if item is None:
            raise NotFoundError(f"Cart item '{product_id}' not found")
        if quantity <= 0:
            self.remove_item(product_id)
            return None
        item.quantity = int(quantity)
        if notes is not None:
            item.notes = notes
        item.total_price = round(item.unit_price * item.quantity, 2)
        self._touch()
        return item

    def update_item_price(self, product_id: str, unit_price: float) -> CartItem:
        item = self.get_item(product_id)
        if item is None:
            raise NotFoundError(f"Cart item '{product_id}' not found")
        item.unit_price = _to_price(unit_price)
        item.total_price = round(item.unit_price * item.quantity, 2)
        self._touch()
        return item

    def remove_item(self, product_id: str) -> bool:
        before = len(self.items)
        self.items = [item for item in self.items if item.product_id != str(product_id)]
        self._touch()
        return len(self.items) < before

    def clear(self):
        self.items = []
        self._touch()

    @property
    def item_count(self) -> int:
        return calculate_cart_totals(self.items)[2]

    @property
    def subtotal(self) -> float:
        return calculate_cart_totals(self.items)[0]

    @property
    def total(self) -> float:
        return calculate_cart_totals(self.items)[1]

    def to_schema(self) -> cart_schema.Cart:
        subtotal, total, item_count = calculate_cart_totals(self.items)
        return cart_schema.Cart(
            items=self.items, subtotal=subtotal, total=total,
            item_count=item_count, last_updated=self.last_updated,
        )

    def to_storage(self, version: str) -> Dict[str, Any]:
        return {
            "items": [item.model_dump() for item in self.items],
            "lastUpdated": self.last_updated.isoformat(),
            "version": version,
        }

    @classmethod
    def from_storage(cls, payload: Any, version: str) -> "Cart":
        """
        Reconstruye el carrito guardado. Un payload corrupto o de otra versión
        se descarta y se devuelve un carrito vacío.
        """
        if isinstance(payload, (str, bytes)):
            try:
                payload = json.loads(payload)
            except (json.JSONDecodeError, UnicodeDecodeError):
                logger.warning("⚠️ CARRITO: Datos almacenados corruptos, se descartan")
                return cls()
        if not isinstance(payload, dict) or payload.get("version") != version:
            return cls()

        raw_items = payload.get("items")
        items = []
        if isinstance(raw_items, list):
            for raw in raw_items:
                if not isinstance(raw, dict):
                    continue
                item = sanitize_cart_item(raw)
                if item.product_id:
                    items.append(item)

        last_updated = None
        if payload.get("lastUpdated"):
            try:
                last_updated = datetime.fromisoformat(payload["lastUpdated"])
            except (TypeError, ValueError):
                last_updated = None
        return cls(items=items, last_updated=last_updated)


# ========================================
# ESCRITURA DIFERIDA
# ========================================

def _get_cart_key(cart_id: str) -> str:
    """Genera la clave de Redis para un carrito."""
    return f"cart:{cart_id}"


class DebouncedCartWriter:
    """
    Mantiene como máximo una escritura pendiente por carrito. Cada nueva edición
    reprograma la escritura; al vencer el retardo se guarda el último estado.

    Un payload solo deja de estar pendiente cuando Redis confirma la escritura;
    las escrituras de un mismo carrito se aplican en orden.
    """

    def __init__(self, redis: Redis, delay: float, ttl: Optional[int] = None):
        self.redis = redis
        self.delay = delay
        self.ttl = ttl
        self._pending: Dict[str, Dict[str, Any]] = {}
        # Temporizadores todavía en espera (se pueden cancelar)
        self._tasks: Dict[str, asyncio.Task] = {}
        # Escrituras ya en curso (no se cancelan)
        self._in_flight: Dict[str, asyncio.Task] = {}
        self.write_count = 0

    def schedule(self, cart_id: str, payload: Dict[str, Any]) -> None:
        self._pending[cart_id] = payload
        previous = self._tasks.pop(cart_id, None)
        if previous is not None and not previous.done():
            previous.cancel()
        self._tasks[cart_id] = asyncio.create_task(self._write_later(cart_id))

    def get_pending(self, cart_id: str) -> Optional[Dict[str, Any]]:
        return self._pending.get(cart_id)

    @property
    def pending_count(self) -> int:
        return len(self._pending)

    async def _write_later(self, cart_id: str) -> None:
        try:
            await asyncio.sleep(self.delay)
        except asyncio.CancelledError:
            return
        task = asyncio.current_task()
        if self._tasks.get(cart_id) is task:
            del self._tasks[cart_id]

        previous = self._in_flight.get(cart_id)
        self._in_flight[cart_id] = task
        try:
            if previous is not None:
                await asyncio.wait([previous])
            await self._write(cart_id)
        finally:
            if self._in_flight.get(cart_id) is task:
                del self._in_flight[cart_id]

    async def _write(self, cart_id: str) -> None:
        payload = self._pending.get(cart_id)
        if payload is None:
            return
        try:
            await self.redis.set(_get_cart_key(cart_id), json.dumps(payload, ensure_ascii=False), ex=self.ttl)
        except Exception as e:
            # Sigue pendiente: la próxima edición o el flush lo reintentan
            logger.error(f"❌ CARRITO: Error guardando carrito {cart_id}: {e}")
            return
        if self._pending.get(cart_id) is payload:
            del self._pending[cart_id]
        self.write_count += 1
        logger.debug(f"💾 CARRITO: Guardado {cart_id} ({len(payload.get('items', []))} líneas)")

    async def flush(self) -> None:
        """Espera las escrituras en curso y escribe de inmediato los carritos pendientes."""
        for task in list(self._tasks.values()):
            task.cancel()
        self._tasks.clear()
        if self._in_flight:
            await asyncio.wait(list(self._in_flight.values()))
        for cart_id in list(self._pending):
            await self._write(cart_id)


# Escritor compartido por todo el proceso (se manejará de forma lazy)
_cart_writer: Optional[DebouncedCartWriter] = None


def get_cart_writer(redis: Redis, settings: Settings) -> DebouncedCartWriter:
    global _cart_writer
    if _cart_writer is None or _cart_writer.redis is not redis:
        _cart_writer = DebouncedCartWriter(redis, settings.CART_SAVE_DEBOUNCE_SECONDS, settings.CART_TTL_SECONDS)
    return _cart_writer


async def flush_cart_writer() -> None:
    """Evento de shutdown: no perder ediciones pendientes."""
    if _cart_writer is not None:
        await _cart_writer.flush()


# ========================================
# SERVICIO
# ========================================

class CartService:
    """
    Servicio para gestionar carritos guardados en Redis.
    """
    def __init__(self, redis: Redis, settings: Settings, writer: Optional[DebouncedCartWriter] = None):
        self.redis = redis
        self.settings = settings
        self.writer = writer or get_cart_writer(redis, settings)

    async def load_cart(self, cart_id: str) -> Cart:
        version = self.settings.CART_STORAGE_VERSION
        pending = self.writer.get_pending(cart_id)
        if pending is not None:
            return Cart.from_storage(pending, version)
        try:
            stored = await self.redis.get(_get_cart_key(cart_id))
        except Exception as e:
            logger.error(f"❌ CARRITO: Error leyendo carrito {cart_id}: {e}")
            return Cart()
        if not stored:
            return Cart()
        return Cart.from_storage(stored, version)

    def _save(self, cart_id: str, cart: Cart) -> None:
        self.writer.schedule(cart_id, cart.to_storage(self.settings.CART_STORAGE_VERSION))

    async def add_item(self, cart_id: str, product, quantity: int = 1, notes: Optional[str] = None) -> Cart:
        cart = await self.load_cart(cart_id)
        cart.add_item(product, quantity, notes)
        self._save(cart_id, cart)
        return cart

    async def update_item(self, cart_id: str, product_id: str, quantity: int, notes: Optional[str] = None) -> Cart:
        cart = await self.load_cart(cart_id)
        cart.update_item(product_id, quantity, notes)
        self._save(cart_id, cart)
        return cart

    async def update_item_price(self, cart_id: str, product_id: str, unit_price: float) -> Cart:
        cart = await self.load_cart(cart_id)
        cart.update_item_price(product_id, unit_price)
        self._save(cart_id, cart)
        return cart

    async def remove_item(self, cart_id: str, product_id: str) -> Cart:
        cart = await self.load_cart(cart_id)
        if not cart.remove_item(product_id):
            raise NotFoundError(f"Cart item '{product_id}' not found")
        self._save(cart_id, cart)
        return cart

    async def clear_cart(self, cart_id: str) -> Cart:
        cart = await self.load_cart(cart_id)
        cart.clear()
        self._save(cart_id, cart)
        return cart

    async def flush(self) -> None:
        await self.writer.flush()

# backend/storefront/crud/product_crud.py

"""
Operaciones CRUD para el modelo Product.

Funcionalidades principales:
- Búsqueda por texto sobre referencia y nombres (hebreo / inglés)
- Filtros combinables por línea, tipo de producto, tipo de piel y tipo
- Paginación por página y tamaño de página
- Valores distintos para los filtros del catálogo
- Alta masiva (importación CSV) con actualización por referencia
"""

from typing import List, Optional, Dict, Tuple, Iterable
from sqlalchemy import or_, select, func
from sqlalchemy.ext.asyncio import AsyncSession

from storefront.db.models.product_model import Product
from storefront.schemas import product_schema

import logging

logger = logging.getLogger(__name__)

# ========================================
# OPERACIONES DE LECTURA (READ)
# ========================================

async def get_product_by_ref(db: AsyncSession, ref: str) -> Optional[Product]:
    """Obtiene un producto por su referencia de negocio."""
    result = await db.execute(select(Product).filter(Product.ref == ref))
    return result.scalars().first()


async def get_products_by_refs(db: AsyncSession, refs: Iterable[str]) -> List[Product]:
    refs = [r for r in refs if r]
    if not refs:
        return []
    result = await db.execute(select(Product).filter(Product.ref.in_(refs)))
    return list(result.scalars().all())


async def get_products(
    db: AsyncSession,
    search: Optional[str] = None,
    line: Optional[str] = None,
    product_type: Optional[str] = None,
    skin_type: Optional[str] = None,
    type_: Optional[str] = None,
    page: int = 1,
    page_size: int = 50,
) -> Tuple[List[Product], bool]:
    """
    Obtiene una página de productos con stock definido.

    Devuelve (productos, has_more); has_more es True cuando la página vino llena.
    """
    query = select(Product).filter(Product.qty.is_not(None))

    if search:
        pattern = f"%{search.strip()}%"
        query = query.filter(or_(
            Product.ref.ilike(pattern),
            Product.hebrew_name.ilike(pattern),
            Product.english_name.ilike(pattern),
        ))
    if line:
        pattern = f"%{line}%"
        query = query.filter(or_(Product.product_line.ilike(pattern), Product.skin_type_he.ilike(pattern)))
    if product_type:
        query = query.filter(Product.product_type.ilike(f"%{product_type}%"))
    if skin_type:
        query = query.filter(Product.skin_type_he.ilike(f"%{skin_type}%"))
    if type_:
        query = query.filter(Product.type.ilike(f"%{type_}%"))

    offset = (page - 1) * page_size
    query = query.order_by(Product.ref).offset(offset).limit(page_size)
    result = await db.execute(query)
    products = list(result.scalars().all())
    return products, len(products) == page_size


def _split_values(values: Iterable[Optional[str]]) -> List[str]:
    found = set()
    for value in values:
        if not value:
            continue
        for part in str(value).split(","):
            part = part.strip()
            if part:
                found.add(part)
    return sorted(found)


async def get_filter_values(db: AsyncSession) -> Dict[str, List[str]]:
    """Valores distintos (separados por comas en origen) para los filtros."""
    result = await db.execute(
        select(Product.product_line, Product.product_type, Product.skin_type_he, Product.type)
        .filter(Product.qty.is_not(None))
    )
    rows = result.all()
    return {
        "lines": _split_values(r[0] for r in rows),
        "productTypes": _split_values(r[1] for r in rows),
        "skinTypes": _split_values(r[2] for r in rows),
        "types": _split_values(r[3] for r in rows),
    }


async def count_products(db: AsyncSession) -> int:
    result = await db.execute(select(func.count(Product.id)))
    return result.scalar_one()


# ========================================
# OPERACIONES DE ESCRITURA
# ========================================

async def create_product(db: AsyncSession, product_in: product_schema.ProductCreate) -> Product:
    db_product = Product(**product_in.model_dump())
    db.add(db_product)
    await db.commit()
    await db.refresh(db_product)
    return db_product


async def update_product(db: AsyncSession, db_product: Product, product_in: product_schema.ProductUpdate) -> Product:
    """Actualización parcial: solo los campos enviados."""
    for field, value in product_in.model_dump(exclude_unset=True).items():
        setattr(db_product, field, value)
    await db.commit()
    await db.refresh(db_product)
    return db_product


async def delete_product(db: AsyncSession, db_product: Product) -> Product:
    await db.delete(db_product)
    await db.commit()
    return db_product


async def upsert_products(db: AsyncSession, products_in: List[product_schema.ProductCreate]) -> Tuple[int, int]:
    """
    Inserta o actualiza productos por referencia en una única transacción.
    Devuelve (creados, actualizados).
    """
    existing = {p.ref: p for p in await get_products_by_refs(db, [p.ref for p in products_in])}
    created = updated = 0
    for product_in in products_in:
        data = product_in.model_dump(exclude_none=True)
        db_product = existing.get(product_in.ref)
        if db_product is None:
            # Stock definido para que el producto aparezca en el catálogo
            data.setdefault("qty", 0)
            db.add(Product(**data))
            created += 1
        else:
            for field, value in data.items():
                setattr(db_product, field, value)
            updated += 1
    await db.commit()
    logger.info(f"📦 IMPORTACIÓN: {created} creados, {updated} actualizados")
    return created, updated

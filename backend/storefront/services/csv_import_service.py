# backend/storefront/services/csv_import_service.py
"""
Importación del catálogo desde CSV.

Las cabeceras se aceptan en inglés o en hebreo; los errores de validación se
devuelven en hebreo con el número de línea del fichero.
"""
import csv
import io
import logging
from typing import Any, Dict, List, Optional

from storefront.schemas.product_schema import ProductCreate

logger = logging.getLogger(__name__)

# campo -> cabeceras aceptadas (en minúsculas)
HEADER_ALIASES: Dict[str, tuple] = {
    "ref": ("ref no", "ref", 'מק"ט'),
    "hebrew_name": ("product name", "שם מוצר"),
    "english_name": ("product name 2", "שם מוצר 2"),
    "size": ("size", "גודל"),
    "product_line": ("brand", "מותג"),
    "product_type": ("categories", "קטגוריות"),
    "active_ingredients_he": ("key ingredients", "רכיבים עיקריים"),
    "description_he": ("description", "תיאור"),
    "usage_instructions_he": ("how to use", "אופן שימוש"),
    "notice": ("notes", "הערות"),
    "main_pic": ("image", "תמונה"),
}


def parse_csv(text: str) -> List[Dict[str, str]]:
    """Primera fila como cabecera; admite campos entre comillas y comillas escapadas."""
    text = text.lstrip("﻿")
    reader = csv.reader(io.StringIO(text))
    rows = [row for row in reader if any(cell.strip() for cell in row)]
    if not rows:
        return []
    headers = [h.strip() for h in rows[0]]
    result = []
    for row in rows[1:]:
        result.append({header: (row[i].strip() if i < len(row) else "") for i, header in enumerate(headers)})
    return result


def _lookup(row: Dict[str, str], aliases: tuple) -> Optional[str]:
    lowered = {key.strip().lower(): value for key, value in row.items()}
    for alias in aliases:
        value = lowered.get(alias)
        if value:
            return value.strip()
    return None


def transform_product(row: Dict[str, str]) -> Dict[str, Any]:
    product = {field: _lookup(row, aliases) for field, aliases in HEADER_ALIASES.items()}
    product["ref"] = product["ref"] or ""
    product["pics"] = [product["main_pic"]] if product.get("main_pic") else []
    return product


def deduplicate_rows(products: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """Conserva la primera fila de cada referencia."""
    seen = set()
    unique = []
    for product in products:
        ref = product.get("ref")
        if ref and ref in seen:
            continue
        if ref:
            seen.add(ref)
        unique.append(product)
    return unique


def validate_product_rows(products: List[Dict[str, Any]]) -> List[str]:
    errors = []
    for i, product in enumerate(products):
        if not product.get("ref"):
            errors.append(f"שורה {i + 2}: חסר מספר מוצר (ref no)")
        if not product.get("hebrew_name"):
            errors.append(f"שורה {i + 2}: חסר שם מוצר")
    return errors


def generate_preview(products: List[Dict[str, Any]], limit: int = 5) -> Dict[str, Any]:
    return {
        "total": len(products),
        "sample": products[:limit],
        "refs": [p.get("ref") for p in products[:limit]],
    }


def to_product_create(product: Dict[str, Any]) -> ProductCreate:
    return ProductCreate(**{k: v for k, v in product.items() if v not in (None, "")})


def prepare_import(text: str) -> Dict[str, Any]:
    """
    Parsea, transforma y valida un CSV. Las filas inválidas se excluyen y sus
    errores se devuelven junto con las válidas.
    """
    products = [transform_product(row) for row in parse_csv(text)]
    errors = validate_product_rows(products)
    valid = [p for p in products if p.get("ref") and p.get("hebrew_name")]
    valid = deduplicate_rows(valid)
    logger.info(f"📄 IMPORTACIÓN: {len(products)} filas, {len(valid)} válidas, {len(errors)} errores")
    return {
        "products": [to_product_create(p) for p in valid],
        "errors": errors,
        "preview": generate_preview(valid),
    }

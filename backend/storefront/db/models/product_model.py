# backend/storefront/db/models/product_model.py
"""
Modelo de producto del catálogo de cosmética.

Los textos descriptivos están en hebreo (sufijo _he); los nombres en inglés
y francés son secundarios.
"""
import uuid

from sqlalchemy import Column, Integer, String, Text, Numeric, DateTime
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from storefront.db.database import Base, JSONType


class Product(Base):
    __tablename__ = "products"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    ref = Column(String(50), unique=True, index=True, nullable=False)  # Referencia de negocio (ej: "12")

    # Nombres y descripciones
    hebrew_name = Column(Text, nullable=True, index=True)
    english_name = Column(Text, nullable=True)
    french_name = Column(Text, nullable=True)
    header = Column(Text, nullable=True)
    short_description_he = Column(Text, nullable=True)
    description_he = Column(Text, nullable=True)

    # Clasificación
    skin_type_he = Column(Text, nullable=True)
    product_line = Column(Text, nullable=True)
    type = Column(Text, nullable=True)
    product_type = Column(Text, nullable=True)

    # Detalles
    usage_instructions_he = Column(Text, nullable=True)
    active_ingredients_he = Column(Text, nullable=True)
    ingredients = Column(JSONType, nullable=True)
    notice = Column(Text, nullable=True)

    # Precio de lista e inventario
    unit_price = Column(Numeric(10, 2), nullable=True)
    size = Column(Text, nullable=True)
    qty = Column(Integer, nullable=True)

    # Imágenes
    main_pic = Column(Text, nullable=True)
    pics = Column(JSONType, nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    prices = relationship("Price", back_populates="product", cascade="all, delete-orphan", passive_deletes=True)

    def __repr__(self):
        return f"<Product(ref='{self.ref}', name='{self.hebrew_name}')>"

    def to_dict(self):
        """Convierte el producto en un diccionario apto para JSON."""
        return {
            "id": self.id,
            "ref": self.ref,
            "hebrew_name": self.hebrew_name,
            "english_name": self.english_name,
            "french_name": self.french_name,
            "header": self.header,
            "short_description_he": self.short_description_he,
            "description_he": self.description_he,
            "skin_type_he": self.skin_type_he,
            "product_line": self.product_line,
            "type": self.type,
            "product_type": self.product_type,
            "usage_instructions_he": self.usage_instructions_he,
            "active_ingredients_he": self.active_ingredients_he,
            "ingredients": self.ingredients,
            "notice": self.notice,
            "unit_price": float(self.unit_price) if self.unit_price is not None else None,
            "size": self.size,
            "qty": self.qty,
            "main_pic": self.main_pic,
            "pics": self.pics or [],
        }

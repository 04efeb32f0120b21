# backend/storefront/db/models/profile_model.py
"""
Se encarga de definir el modelo de perfil (cliente) para la aplicación.

El id coincide con el id del usuario en el servicio de autenticación.
"""
import uuid

from sqlalchemy import Column, String, Text, DateTime
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from storefront.db.database import Base, JSONType


class Profile(Base):
    __tablename__ = "profiles"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    email = Column(String(255), unique=True, index=True, nullable=False)
    name = Column(String(255), nullable=True)
    business_name = Column(String(255), nullable=True, index=True)
    phone_number = Column(String(50), nullable=True)
    address = Column(JSONType, nullable=True)
    user_role = Column(String(30), nullable=False, default="standard", index=True)
    status = Column(String(20), nullable=False, default="active", index=True)
    notes = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())
    last_login = Column(DateTime(timezone=True), nullable=True)

    # Relación con los pedidos
    orders = relationship("Order", back_populates="client", passive_deletes=True)

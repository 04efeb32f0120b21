# backend/storefront/db/database.py

"""
Conexión a la base de datos de la tienda.

- engine: motor asíncrono (asyncpg en producción; SQLALCHEMY_DATABASE_URI
  permite apuntar a otro motor, por ejemplo SQLite en las pruebas)
- AsyncSessionLocal: fábrica de sesiones usada por storefront/api/deps.py
- Base: clase declarativa de los modelos de storefront/db/models
- JSONType: columnas JSON (líneas de pedido, imágenes, direcciones)
"""

from sqlalchemy import JSON
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker, AsyncSession
from sqlalchemy.orm import declarative_base

from storefront.core.config import settings

engine = create_async_engine(settings.DATABASE_URL, pool_pre_ping=True)

# Los objetos siguen siendo legibles tras el commit (se devuelven en las respuestas)
AsyncSessionLocal = async_sessionmaker(
    bind=engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autoflush=False,
)

Base = declarative_base()

# JSONB en PostgreSQL, JSON genérico en el resto de motores
JSONType = JSON().with_variant(JSONB(), "postgresql")

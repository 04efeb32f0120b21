# backend/storefront/core/config.py
"""
Este archivo contiene la configuración de la aplicación.
"""

from pydantic_settings import BaseSettings
from typing import Optional
from pathlib import Path
import os

# Apunta al directorio 'backend/'
BASE_DIR = Path(__file__).resolve().parent.parent.parent

class Settings(BaseSettings):
    """
    Configuración de la aplicación usando Pydantic BaseSettings.
    Variables sensibles desde .env, defaults seguros para el resto.
    """
    # Configuración general del proyecto
    BASE_DIR: Path = BASE_DIR
    API_PREFIX: str = "/api"
    PROJECT_NAME: str = "Jean Darcel Storefront API"
    PROJECT_VERSION: str = "0.1.0"

    # Configuración de la base de datos
    POSTGRES_SERVER: str = os.getenv("POSTGRES_SERVER", "postgres")
    POSTGRES_USER: str = os.getenv("POSTGRES_USER", "user")
    POSTGRES_PASSWORD: str = os.getenv("POSTGRES_PASSWORD", "password")
    POSTGRES_DB: str = os.getenv("POSTGRES_DB", "jdarcel_db")
    POSTGRES_PORT: str = os.getenv("POSTGRES_PORT", "5432")
    SQLALCHEMY_DATABASE_URI: Optional[str] = None

    @property
    def DATABASE_URL(self) -> str:
        """URL de conexión a la base de datos asíncrona."""
        if self.SQLALCHEMY_DATABASE_URI:
            return self.SQLALCHEMY_DATABASE_URI
        return f"postgresql+asyncpg://{self.POSTGRES_USER}:{self.POSTGRES_PASSWORD}@{self.POSTGRES_SERVER}:{self.POSTGRES_PORT}/{self.POSTGRES_DB}"

    # Configuración de Redis (carritos, caché de catálogo y canales realtime)
    REDIS_HOST: str = os.getenv("REDIS_HOST", "localhost")
    REDIS_PORT: int = int(os.getenv("REDIS_PORT", 6379))

    @property
    def REDIS_URL(self) -> str:
        return f"redis://{self.REDIS_HOST}:{self.REDIS_PORT}"

    # Autenticación - el secreto JWT es obligatorio (sin default)
    SUPABASE_JWT_SECRET: str
    JWT_ALGORITHM: str = "HS256"
    JWT_AUDIENCE: str = "authenticated"
    AUTH_COOKIE_NAME: str = "sb-access-token"

    # Logging - Defaults seguros
    LOG_LEVEL: str = "INFO"
    LOG_FORMAT: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    LOG_FILE_PATH: Optional[str] = "logs/app.log"

    # Entorno - Del .env con default
    APP_ENVIRONMENT: str = "development"

    # Carrito
    CART_STORAGE_VERSION: str = "1.0"
    CART_SAVE_DEBOUNCE_SECONDS: float = 0.3
    CART_TTL_SECONDS: int = 60 * 60 * 24 * 30

    # Catálogo y negocio
    DEFAULT_TAX_RATE: float = 17
    DEFAULT_CURRENCY: str = "ILS"
    PRODUCTS_CACHE_TTL_SECONDS: int = 30

    # Hypay - pasarela de pago
    HYPAY_BASE_URL: str = "https://pay.hyp.co.il/p/"
    HYPAY_API_URL: str = "https://pay.hyp.co.il"
    HYPAY_MASOF: Optional[str] = None
    HYPAY_PASS_P: Optional[str] = None
    HYPAY_API_KEY: Optional[str] = None
    HYPAY_MERCHANT_ID: Optional[str] = None
    HYPAY_SECRET_KEY: Optional[str] = None
    HYPAY_SANDBOX: bool = True
    HYPAY_TIMEOUT_SECONDS: float = 15.0
    PAYMENT_EXPIRY_MINUTES: int = 30

    @property
    def is_production(self) -> bool:
        return self.APP_ENVIRONMENT.lower() == "production"

    class Config:
        env_file = ".env"
        case_sensitive = False

# Instancia global de la configuración
settings = Settings()

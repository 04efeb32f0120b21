# backend/storefront/core/logging_config.py
"""
Configuración centralizada del logging de la aplicación.

Se invoca una única vez al arrancar la API. Los módulos solo necesitan
`logger = logging.getLogger(__name__)`.
"""

import logging
from pathlib import Path

from storefront.core.config import Settings

_configured = False


def setup_logging(settings: Settings) -> None:
    """Configura el logger raíz según LOG_LEVEL, LOG_FORMAT y LOG_FILE_PATH."""
    global _configured
    if _configured:
        return

    level = getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO)
    formatter = logging.Formatter(settings.LOG_FORMAT)

    root_logger = logging.getLogger()
    root_logger.setLevel(level)

    console_handler = logging.StreamHandler()
    console_handler.setFormatter(formatter)
    root_logger.addHandler(console_handler)

    if settings.LOG_FILE_PATH:
        log_path = Path(settings.LOG_FILE_PATH)
        if not log_path.is_absolute():
            log_path = settings.BASE_DIR / log_path
        try:
            log_path.parent.mkdir(parents=True, exist_ok=True)
            file_handler = logging.FileHandler(log_path, encoding="utf-8")
            file_handler.setFormatter(formatter)
            root_logger.addHandler(file_handler)
        except OSError as e:
            root_logger.warning(f"⚠️ No se pudo abrir el fichero de log {log_path}: {e}")

    # SQLAlchemy es muy ruidoso en DEBUG
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
    _configured = True

# backend/tests/test_config.py
import pytest
from pydantic import ValidationError

from storefront.core.config import Settings


def test_jwt_secret_is_required(monkeypatch):
    monkeypatch.delenv("SUPABASE_JWT_SECRET", raising=False)
    with pytest.raises(ValidationError):
        Settings(_env_file=None)


def test_jwt_secret_is_read_from_environment(monkeypatch):
    monkeypatch.setenv("SUPABASE_JWT_SECRET", "from-env")
    assert Settings(_env_file=None).SUPABASE_JWT_SECRET == "from-env"


def test_unused_server_settings_are_not_declared():
    for name in ("APP_NAME", "APP_URL", "HOST", "PORT"):
        assert name not in Settings.model_fields

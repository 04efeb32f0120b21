# backend/tests/conftest.py
"""
Fixtures compartidas: base de datos SQLite en memoria, Redis falso en memoria,
cliente HTTP contra la app y tokens de sesión firmados.
"""
import asyncio
import fnmatch
import os
import time

# Configuración de pruebas antes de importar la aplicación
os.environ.setdefault("SQLALCHEMY_DATABASE_URI", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("LOG_FILE_PATH", "")
os.environ.setdefault("SUPABASE_JWT_SECRET", "test-jwt-secret")
os.environ.setdefault("HYPAY_MASOF", "4500123456")
os.environ.setdefault("HYPAY_PASS_P", "pass-p")
os.environ.setdefault("HYPAY_SECRET_KEY", "webhook-secret")

import httpx
import jwt
import pytest
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine, AsyncSession
from sqlalchemy.pool import StaticPool

from storefront.api import deps
from storefront.core.config import settings
from storefront.db.base import Base
from storefront.main import app
from storefront.services import cart_service
from storefront.services.payment_service import payment_success_guard


# ========================================
# REDIS FALSO
# ========================================

class FakePubSub:
    def __init__(self, redis: "FakeRedis"):
        self.redis = redis
        self.channels = set()
        self.queue: asyncio.Queue = asyncio.Queue()
        self.closed = False

    async def subscribe(self, *channels):
        for channel in channels:
            self.channels.add(channel)
            self.redis.subscribers.setdefault(channel, []).append(self)

    async def unsubscribe(self, *channels):
        for channel in channels or list(self.channels):
            self.channels.discard(channel)
            listeners = self.redis.subscribers.get(channel, [])
            if self in listeners:
                listeners.remove(self)

    async def aclose(self):
        self.closed = True

    async def listen(self):
        while True:
            yield await self.queue.get()


class FakeRedis:
    """Subconjunto de redis.asyncio.Redis usado por la aplicación."""

    def __init__(self):
        self.store = {}
        self.subscribers = {}
        self.published = []
        self.set_calls = 0

    async def get(self, key):
        return self.store.get(key)

    async def set(self, key, value, ex=None):
        self.store[key] = value
        self.set_calls += 1
        return True

    async def delete(self, *keys):
        removed = 0
        for key in keys:
            if self.store.pop(key, None) is not None:
                removed += 1
        return removed

    async def scan_iter(self, match="*"):
        for key in list(self.store):
            if fnmatch.fnmatch(key, match):
                yield key

    async def publish(self, channel, message):
        self.published.append((channel, message))
        listeners = self.subscribers.get(channel, [])
        for pubsub in listeners:
            pubsub.queue.put_nowait({"type": "message", "channel": channel, "data": message})
        return len(listeners)

    def pubsub(self):
        return FakePubSub(self)


@pytest.fixture
def fake_redis():
    return FakeRedis()


# ========================================
# BASE DE DATOS
# ========================================

@pytest.fixture
async def engine():
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(bind=engine, class_=AsyncSession, expire_on_commit=False, autoflush=False)


@pytest.fixture
async def db(session_factory):
    async with session_factory() as session:
        yield session


# ========================================
# ESTADO GLOBAL Y CLIENTE HTTP
# ========================================

@pytest.fixture(autouse=True)
def reset_global_state():
    payment_success_guard.reset()
    cart_service._cart_writer = None
    yield
    payment_success_guard.reset()
    cart_service._cart_writer = None


@pytest.fixture
async def client(session_factory, fake_redis):
    async def override_get_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[deps.get_db] = override_get_db
    app.dependency_overrides[deps.get_redis] = lambda: fake_redis
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as http_client:
        yield http_client
    app.dependency_overrides.clear()


def make_token(user_id: str, role: str = "standard", email: str = None, expires_in: int = 3600,
               secret: str = None) -> str:
    payload = {
        "sub": user_id,
        "aud": settings.JWT_AUDIENCE,
        "email": email or f"{user_id}@example.com",
        "app_metadata": {"user_role": role},
        "exp": int(time.time()) + expires_in,
    }
    return jwt.encode(payload, secret or settings.SUPABASE_JWT_SECRET, algorithm=settings.JWT_ALGORITHM)


@pytest.fixture
def auth_headers():
    def _headers(user_id: str = "user-1", role: str = "standard", **kwargs):
        return {"Authorization": f"Bearer {make_token(user_id, role, **kwargs)}"}
    return _headers


@pytest.fixture
def admin_headers(auth_headers):
    return auth_headers("admin-1", "admin")

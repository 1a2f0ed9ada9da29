# backend/app/tests/conftest.py
"""
Fixtures y helpers para pruebas con FastAPI + pytest-asyncio.
- MongoDB se reemplaza por mongomock (misma API que pymongo).
- El cliente Web Push se reemplaza por un fake programable por endpoint.
"""
import os
import sys
import uuid
from pathlib import Path

import mongomock
import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport
from pymongo.errors import ServerSelectionTimeoutError
from asgi_lifespan import LifespanManager

# ---- DB de test única por corrida y claves VAPID falsas (ANTES de importar app.main) ----
TEST_DB_NAME = f"status_push_test_{uuid.uuid4().hex[:8]}"
os.environ.setdefault("MONGO_DB", TEST_DB_NAME)
os.environ.setdefault("VAPID_PUBLIC_KEY", "BTestPublicKey")
os.environ.setdefault("VAPID_PRIVATE_KEY", "test-private-key")

# ---- asegurar imports absolutos 'app.*' ----
ROOT_DIR = Path(__file__).resolve().parents[1]   # .../backend/app
sys.path.insert(0, str(ROOT_DIR.parent))         # .../backend

from app.main import app  # noqa
from app.core.deps import get_push_client, get_subscription_repo  # noqa
from app.core.security import create_jwt  # noqa
from app.db import mongo  # noqa
from app.db.indexes import ensure_indexes  # noqa
from app.models.notification import DeliveryOutcome, DeliveryStatus  # noqa
from app.models.push_subscription import SubscriptionRepo  # noqa


class DownCollection:
    """Colección que simula MongoDB caído."""

    def __getattr__(self, name):
        def _fail(*args, **kwargs):
            raise ServerSelectionTimeoutError("mongo down")
        return _fail


class ScriptedPushClient:
    """
    Fake del cliente de entrega. Por defecto entrega todo; script[endpoint]
    puede ser un DeliveryStatus o una excepción a lanzar.
    """

    def __init__(self, script=None):
        self.script = dict(script or {})
        self.calls = []

    async def deliver(self, subscription, payload):
        self.calls.append((subscription.endpoint, payload))
        status = self.script.get(subscription.endpoint, DeliveryStatus.DELIVERED)
        if isinstance(status, Exception):
            raise status
        return DeliveryOutcome(
            subscription_id=subscription.id,
            status=status,
            diagnostic=None if status is DeliveryStatus.DELIVERED else "scripted",
        )


@pytest.fixture
def mongo_db():
    client = mongomock.MongoClient()
    client.drop_database(TEST_DB_NAME)
    db = client[TEST_DB_NAME]
    ensure_indexes(db)
    yield db
    client.drop_database(TEST_DB_NAME)
    client.close()


@pytest.fixture
def repo(mongo_db):
    return SubscriptionRepo(mongo_db)


@pytest.fixture
def push_client():
    return ScriptedPushClient()


@pytest_asyncio.fixture
async def async_client(monkeypatch, push_client):
    monkeypatch.setattr(mongo, "MongoClient", mongomock.MongoClient)
    app.dependency_overrides[get_push_client] = lambda: push_client
    try:
        async with LifespanManager(app):
            transport = ASGITransport(app=app)
            async with AsyncClient(transport=transport, base_url="http://testserver") as client:
                yield client
    finally:
        app.dependency_overrides.clear()

# -------- Helpers --------
def auth_headers(sub: str, role: str = "usuario") -> dict:
    token = create_jwt({"sub": sub, "role": role})
    return {"Authorization": f"Bearer {token}"}

def endpoint_for(label: str) -> str:
    return f"https://push.example.com/send/{label}-{uuid.uuid4().hex[:6]}"

def keys(p256dh: str = "BPubKey", auth: str = "authSecret") -> dict:
    return {"p256dh": p256dh, "auth": auth}

@pytest.fixture
def user_auth():
    sub = f"user_{uuid.uuid4().hex[:8]}"
    return {"sub": sub, "headers": auth_headers(sub)}

@pytest.fixture
def admin_auth():
    sub = f"admin_{uuid.uuid4().hex[:8]}"
    return {"sub": sub, "headers": auth_headers(sub, role="admin")}

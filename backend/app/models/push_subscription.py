# app/models/push_subscription.py
"""
Registro de suscripciones Web Push (colección push_subscriptions).
Fuente única de verdad de "a quién se le puede notificar".
"""
from __future__ import annotations

from collections.abc import Mapping
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, TypeVar

from anyio import to_thread
from bson import ObjectId
from bson.errors import InvalidId
from pydantic import BaseModel, Field, HttpUrl, TypeAdapter
from pydantic import ValidationError as PydanticValidationError
from pymongo.errors import DuplicateKeyError, PyMongoError

from ..core.errors import StoreFailure, ValidationError
from ..db.indexes import SUBSCRIPTIONS

T = TypeVar("T")

_REGISTER_ATTEMPTS = 3
_http_url = TypeAdapter(HttpUrl)


class _AllSubscribers:
    def __repr__(self) -> str:
        return "ALL"


# Selector para list_active: todas las suscripciones activas de todos los suscriptores
ALL = _AllSubscribers()


# ---------- Pydantic ----------
class PushKeys(BaseModel):
    p256dh: str
    auth: str


class Subscription(BaseModel):
    id: str = Field(..., alias="_id")
    subscriber_id: str
    endpoint: str
    keys: PushKeys
    is_active: bool = True
    created_at: datetime
    updated_at: datetime

    class Config:
        populate_by_name = True

    def subscription_info(self) -> Dict[str, Any]:
        """Formato que espera pywebpush."""
        return {"endpoint": self.endpoint, "keys": self.keys.model_dump()}


# ---------- validación ----------
def validate_endpoint(endpoint: Any) -> str:
    if not isinstance(endpoint, str) or not endpoint.strip():
        raise ValidationError("Valid endpoint required")
    try:
        _http_url.validate_python(endpoint)
    except PydanticValidationError:
        raise ValidationError("Valid endpoint required") from None
    return endpoint


def validate_keys(keys: Any) -> PushKeys:
    if isinstance(keys, PushKeys):
        keys = keys.model_dump()
    if not isinstance(keys, Mapping):
        raise ValidationError("p256dh key required")
    for name in ("p256dh", "auth"):
        value = keys.get(name)
        if not isinstance(value, str) or not value.strip():
            raise ValidationError(f"{name} key required")
    return PushKeys(p256dh=keys["p256dh"], auth=keys["auth"])


def _to_model(doc: Dict[str, Any]) -> Subscription:
    out = dict(doc)
    out["_id"] = str(out["_id"])
    return Subscription.model_validate(out)


# ---------- Repo ----------
class SubscriptionRepo:
    """
    Acceso a push_subscriptions. PyMongo es sincrónico: cada operación corre
    en un hilo (anyio) y los PyMongoError se convierten en StoreFailure.
    endpoint y keys nunca se actualizan en sitio; solo se borran y recrean.
    """

    def __init__(self, db):
        self.col = db[SUBSCRIPTIONS]

    async def _run(self, fn: Callable[[], T], op: str) -> T:
        try:
            return await to_thread.run_sync(fn)
        except PyMongoError as e:
            raise StoreFailure(f"push_subscriptions.{op}: {e}") from e

    async def register(self, subscriber_id: str, endpoint: str, keys: Any) -> Subscription:
        """
        Borra las filas previas de (subscriber_id, endpoint) y crea una activa nueva.
        Nunca falla por "ya existe".
        """
        endpoint = validate_endpoint(endpoint)
        push_keys = validate_keys(keys)

        def _replace() -> Dict[str, Any]:
            for _ in range(_REGISTER_ATTEMPTS):
                self.col.delete_many({"subscriber_id": subscriber_id, "endpoint": endpoint})
                now = datetime.now(timezone.utc)
                doc: Dict[str, Any] = {
                    "_id": ObjectId(),
                    "subscriber_id": subscriber_id,
                    "endpoint": endpoint,
                    "keys": push_keys.model_dump(),
                    "is_active": True,
                    "created_at": now,
                    "updated_at": now,
                }
                try:
                    self.col.insert_one(doc)
                except DuplicateKeyError:
                    # otra alta concurrente del mismo par se adelantó
                    continue
                return doc
            raise StoreFailure(f"push_subscriptions.register: conflicto persistente para {endpoint}")

        return _to_model(await self._run(_replace, "register"))

    async def unregister_all(self, subscriber_id: str) -> int:
        def _delete() -> int:
            return self.col.delete_many({"subscriber_id": subscriber_id}).deleted_count

        return await self._run(_delete, "unregister_all")

    async def list_active(self, subscriber_id: str | _AllSubscribers) -> List[Subscription]:
        """Orden no especificado."""
        query: Dict[str, Any] = {"is_active": True}
        if subscriber_id is not ALL:
            query["subscriber_id"] = subscriber_id

        def _fetch() -> List[Dict[str, Any]]:
            return list(self.col.find(query))

        return [_to_model(d) for d in await self._run(_fetch, "list_active")]

    async def count_active(self, subscriber_id: str) -> int:
        def _count() -> int:
            return self.col.count_documents({"subscriber_id": subscriber_id, "is_active": True})

        return await self._run(_count, "count_active")

    async def deactivate(self, subscription_id: str) -> bool:
        """
        Marca la suscripción como inactiva. Idempotente: si no existe o ya
        estaba inactiva no hace nada. Devuelve True si cambió algo.
        """
        try:
            oid = ObjectId(subscription_id)
        except (InvalidId, TypeError):
            return False

        def _update() -> bool:
            res = self.col.update_one(
                {"_id": oid, "is_active": True},
                {"$set": {"is_active": False, "updated_at": datetime.now(timezone.utc)}},
            )
            return res.modified_count > 0

        return await self._run(_update, "deactivate")

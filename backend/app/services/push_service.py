# app/services/push_service.py
"""
Servicio de notificaciones push: contrato que usa el resto del sistema.
Alta/baja/estado pasan directo al repo; los envíos van al dispatcher.
La identidad del llamador (y si es operador) ya viene verificada por la capa de auth.
"""
from typing import Any

from ..models.notification import DispatchResult, NotificationPayload
from ..models.push_subscription import Subscription, SubscriptionRepo
from .push_dispatcher import PushDispatcher


class PushService:
    def __init__(self, repo: SubscriptionRepo, dispatcher: PushDispatcher) -> None:
        self.repo = repo
        self.dispatcher = dispatcher

    async def subscribe(self, subscriber_id: str, endpoint: str, keys: Any) -> Subscription:
        return await self.repo.register(subscriber_id, endpoint, keys)

    async def unsubscribe(self, subscriber_id: str) -> int:
        return await self.repo.unregister_all(subscriber_id)

    async def is_subscribed(self, subscriber_id: str) -> bool:
        return await self.repo.count_active(subscriber_id) > 0

    async def notify_one(self, subscriber_id: str, payload: NotificationPayload) -> DispatchResult:
        return await self.dispatcher.send_to_subscriber(subscriber_id, payload)

    async def notify_all(self, payload: NotificationPayload) -> DispatchResult:
        return await self.dispatcher.send_to_all(payload)

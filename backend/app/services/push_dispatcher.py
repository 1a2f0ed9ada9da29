# app/services/push_dispatcher.py
"""
Fan-out de notificaciones push.
- Resuelve el conjunto destino (un suscriptor o ALL) con list_active.
- Entrega en paralelo con concurrencia acotada (task group + CapacityLimiter).
- Cada entrega es independiente: un endpoint lento o caído no afecta al resto.
- Las suscripciones con fallo permanente (404/410) se desactivan; si la poda
  falla solo se registra en el log.
"""
import logging
from typing import List, Sequence

import anyio

from ..models.notification import (
    DeliveryOutcome,
    DeliveryStatus,
    DispatchResult,
    NotificationPayload,
)
from ..models.push_subscription import ALL, Subscription, SubscriptionRepo
from .webpush_client import PushClient

logger = logging.getLogger("app.push")


class PushDispatcher:
    def __init__(self, repo: SubscriptionRepo, client: PushClient, max_concurrency: int = 10) -> None:
        self.repo = repo
        self.client = client
        self.max_concurrency = max(1, max_concurrency)

    async def send_to_subscriber(self, subscriber_id: str, payload: NotificationPayload) -> DispatchResult:
        targets = await self.repo.list_active(subscriber_id)
        return await self._dispatch(targets, payload, audience=f"subscriber={subscriber_id}")

    async def send_to_all(self, payload: NotificationPayload) -> DispatchResult:
        targets = await self.repo.list_active(ALL)
        return await self._dispatch(targets, payload, audience="all")

    async def _dispatch(
        self, targets: Sequence[Subscription], payload: NotificationPayload, *, audience: str
    ) -> DispatchResult:
        if not targets:
            logger.info(f"Push {audience}: sin suscripciones activas")
            return DispatchResult.empty()

        outcomes: List[DeliveryOutcome] = []
        limiter = anyio.CapacityLimiter(self.max_concurrency)
        async with anyio.create_task_group() as tg:
            for subscription in targets:
                tg.start_soon(self._deliver_one, subscription, payload, limiter, outcomes)

        sent = sum(1 for o in outcomes if o.delivered)
        total = len(targets)
        pruned = sum(1 for o in outcomes if o.status is DeliveryStatus.PERMANENT_FAILURE)
        logger.info(f"Push {audience}: enviados {sent}/{total}, podadas {pruned}")
        return DispatchResult(success=sent > 0, sent=sent, total=total)

    async def _deliver_one(
        self,
        subscription: Subscription,
        payload: NotificationPayload,
        limiter: anyio.CapacityLimiter,
        outcomes: List[DeliveryOutcome],
    ) -> None:
        async with limiter:
            try:
                outcome = await self.client.deliver(subscription, payload)
            except Exception as e:
                # el cliente no debería lanzar; si lo hace cuenta como transitorio
                logger.exception(f"Cliente push lanzó excepción para suscripción {subscription.id}")
                outcome = DeliveryOutcome(
                    subscription_id=subscription.id,
                    status=DeliveryStatus.TRANSIENT_FAILURE,
                    diagnostic=f"{type(e).__name__}: {e}",
                )
        outcomes.append(outcome)

        if outcome.status is DeliveryStatus.PERMANENT_FAILURE:
            await self._prune(outcome.subscription_id)

    async def _prune(self, subscription_id: str) -> None:
        try:
            await self.repo.deactivate(subscription_id)
        except Exception:
            logger.exception(f"No se pudo desactivar la suscripción {subscription_id}")
        else:
            logger.info(f"Suscripción {subscription_id} desactivada (endpoint inválido)")

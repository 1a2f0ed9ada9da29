# app/services/webpush_client.py
"""
Cliente de entrega Web Push (protocolo VAPID vía pywebpush).
- Entrega UN payload a UNA suscripción y clasifica el resultado.
- Nunca lanza: todo termina en un DeliveryOutcome.
- Las credenciales VAPID llegan por constructor (ver build_push_client).
"""
import logging
from typing import Any, Dict, Protocol

import anyio
from anyio import to_thread
from pywebpush import WebPushException, webpush

from ..core.config import Settings
from ..models.notification import DeliveryOutcome, DeliveryStatus, NotificationPayload
from ..models.push_subscription import Subscription

logger = logging.getLogger("app.push")

# endpoint dado de baja o expirado en el proveedor
GONE_STATUSES = (404, 410)

# margen sobre PUSH_TIMEOUT_SECONDS para firmar y cifrar antes del plazo total
DEADLINE_SLACK_SECONDS = 2.0


class PushClient(Protocol):
    async def deliver(self, subscription: Subscription, payload: NotificationPayload) -> DeliveryOutcome:
        ...


def _status_of(exc: WebPushException) -> int | None:
    # ojo: requests.Response es falsy para 4xx/5xx, no usar "if exc.response"
    response = getattr(exc, "response", None)
    if response is None:
        return None
    status = getattr(response, "status_code", None)
    return status if isinstance(status, int) else None


class WebPushClient:
    """
    El timeout de requests aplica a cada operación de socket, no al intento
    completo; por eso deliver() impone además un plazo total con fail_after.
    Si ese plazo vence, el intento cuenta como transitorio y el hilo de
    trabajo queda abandonado hasta que requests lo suelte.
    """

    def __init__(
        self,
        *,
        vapid_private_key: str,
        vapid_subject: str,
        timeout: float = 10.0,
        ttl: int = 86400,
        icon: str = "/icons/icon-192x192.png",
        badge: str = "/icons/icon-192x192.png",
        deadline_slack: float = DEADLINE_SLACK_SECONDS,
    ) -> None:
        self.vapid_private_key = vapid_private_key
        self.vapid_subject = vapid_subject
        self.timeout = timeout
        self.ttl = ttl
        self.icon = icon
        self.badge = badge
        self.deadline_slack = deadline_slack

    def _send(self, subscription_info: Dict[str, Any], data: str):
        return webpush(
            subscription_info=subscription_info,
            data=data,
            vapid_private_key=self.vapid_private_key,
            # pywebpush escribe aud/exp en este dict: uno nuevo por llamada
            vapid_claims={"sub": self.vapid_subject},
            timeout=self.timeout,
            ttl=self.ttl,
        )

    async def deliver(self, subscription: Subscription, payload: NotificationPayload) -> DeliveryOutcome:
        data = payload.to_wire(icon=self.icon, badge=self.badge)
        try:
            with anyio.fail_after(self.timeout + self.deadline_slack):
                response = await to_thread.run_sync(
                    self._send, subscription.subscription_info(), data, abandon_on_cancel=True
                )
        except WebPushException as e:
            status = _status_of(e)
            if status is not None and 200 <= status < 300:
                # pywebpush lanza con cualquier status > 202, aunque sea 2xx
                return DeliveryOutcome(subscription_id=subscription.id, status=DeliveryStatus.DELIVERED)
            if status in GONE_STATUSES:
                logger.info(f"Suscripción {subscription.id} expirada en el proveedor ({status})")
                return DeliveryOutcome(
                    subscription_id=subscription.id,
                    status=DeliveryStatus.PERMANENT_FAILURE,
                    diagnostic=f"gone:{status}",
                )
            logger.warning(f"Fallo de envío a suscripción {subscription.id}: {e}")
            return DeliveryOutcome(
                subscription_id=subscription.id,
                status=DeliveryStatus.TRANSIENT_FAILURE,
                diagnostic=f"push_error:{status}" if status else str(e),
            )
        except Exception as e:
            # red, timeout, plazo total vencido, claves corruptas: no se poda
            logger.warning(f"Error inesperado enviando a suscripción {subscription.id}: {e!r}")
            return DeliveryOutcome(
                subscription_id=subscription.id,
                status=DeliveryStatus.TRANSIENT_FAILURE,
                diagnostic=f"{type(e).__name__}: {e}",
            )

        status = getattr(response, "status_code", None)
        if isinstance(status, int) and 200 <= status < 300:
            return DeliveryOutcome(subscription_id=subscription.id, status=DeliveryStatus.DELIVERED)

        logger.warning(f"Respuesta inesperada para suscripción {subscription.id}: {status}")
        return DeliveryOutcome(
            subscription_id=subscription.id,
            status=DeliveryStatus.TRANSIENT_FAILURE,
            diagnostic=f"unexpected_status:{status}",
        )


class NullPushClient:
    """Se usa cuando faltan las claves VAPID: descarta el envío sin podar nada."""

    async def deliver(self, subscription: Subscription, payload: NotificationPayload) -> DeliveryOutcome:
        logger.debug(f"Push deshabilitado; se descarta envío a suscripción {subscription.id}")
        return DeliveryOutcome(
            subscription_id=subscription.id,
            status=DeliveryStatus.TRANSIENT_FAILURE,
            diagnostic="push_disabled",
        )


def build_push_client(cfg: Settings) -> PushClient:
    if not cfg.push_enabled:
        logger.warning("VAPID_PUBLIC_KEY/VAPID_PRIVATE_KEY no configuradas: envío push deshabilitado")
        return NullPushClient()
    return WebPushClient(
        vapid_private_key=cfg.VAPID_PRIVATE_KEY,
        vapid_subject=cfg.VAPID_SUBJECT,
        timeout=cfg.PUSH_TIMEOUT_SECONDS,
        ttl=cfg.PUSH_TTL_SECONDS,
        icon=cfg.PUSH_ICON,
        badge=cfg.PUSH_BADGE,
    )

# app/routes/push.py
"""
Rutas de notificaciones push. Todas requieren usuario autenticado;
send-to-user y send-to-all además requieren rol admin.
Los envíos siempre responden 200 con el agregado, aunque fallen todas las entregas.
"""
from typing import Annotated, Any, Dict, Optional

from fastapi import APIRouter, Depends, status
from pydantic import BaseModel, StringConstraints

from ..core.config import settings
from ..core.deps import current_user, get_push_service, require_admin
from ..models.notification import Body, DispatchResult, NotificationPayload, Title
from ..services.push_service import PushService

router = APIRouter()

NonEmpty = Annotated[str, StringConstraints(strip_whitespace=True, min_length=1)]


class KeysIn(BaseModel):
    p256dh: NonEmpty
    auth: NonEmpty


class SubscribeIn(BaseModel):
    endpoint: str
    keys: KeysIn


class SendToAllIn(BaseModel):
    title: Title
    message: Body
    data: Optional[Dict[str, Any]] = None

    def to_payload(self) -> NotificationPayload:
        return NotificationPayload(title=self.title, body=self.message, data=self.data or {})


class SendToUserIn(SendToAllIn):
    userId: NonEmpty


@router.get("/public-key", summary="Clave pública VAPID para el navegador")
async def public_key(user=Depends(current_user)):
    return {
        "publicKey": settings.VAPID_PUBLIC_KEY if settings.push_enabled else None,
        "enabled": settings.push_enabled,
    }


@router.post("/subscribe", status_code=status.HTTP_201_CREATED, summary="Registrar endpoint push")
async def subscribe(
    payload: SubscribeIn,
    user=Depends(current_user),
    svc: PushService = Depends(get_push_service),
):
    """
    Reemplaza cualquier registro previo del mismo (usuario, endpoint).
    """
    sub = await svc.subscribe(user["sub"], payload.endpoint, payload.keys.model_dump())
    return {"subscriptionId": sub.id}


@router.post("/unsubscribe", summary="Dar de baja todos mis endpoints")
async def unsubscribe(user=Depends(current_user), svc: PushService = Depends(get_push_service)):
    deleted = await svc.unsubscribe(user["sub"])
    return {"deletedSubscriptions": deleted}


@router.get("/status", summary="¿Tengo alguna suscripción activa?")
async def subscription_status(user=Depends(current_user), svc: PushService = Depends(get_push_service)):
    return {"isSubscribed": await svc.is_subscribed(user["sub"])}


@router.post("/send-to-user", response_model=DispatchResult, summary="Notificar a un usuario (admin)")
async def send_to_user(
    payload: SendToUserIn,
    admin=Depends(require_admin),
    svc: PushService = Depends(get_push_service),
):
    # usuario desconocido o sin suscripciones -> success=false, nunca 404
    return await svc.notify_one(payload.userId, payload.to_payload())


@router.post("/send-to-all", response_model=DispatchResult, summary="Notificar a todos (admin)")
async def send_to_all(
    payload: SendToAllIn,
    admin=Depends(require_admin),
    svc: PushService = Depends(get_push_service),
):
    return await svc.notify_all(payload.to_payload())

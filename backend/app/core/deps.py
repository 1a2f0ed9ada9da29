"""
Dependencias comunes para FastAPI:
- current_db
- current_user (via Authorization: Bearer <token>, emitido por la capa de auth)
- require_admin (operador)
- repo / cliente push / servicio push
"""
from fastapi import Depends, HTTPException, Request, status
from fastapi.security import OAuth2PasswordBearer
from pymongo.database import Database
from ..db.mongo import get_db
from ..core.config import settings
from ..core.security import decode_jwt
from ..models.push_subscription import SubscriptionRepo
from ..services.push_dispatcher import PushDispatcher
from ..services.push_service import PushService
from ..services.webpush_client import PushClient

# el login vive en el servicio de auth; aquí solo se valida el token
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/auth/login")

def current_db() -> Database:
    return get_db()

async def current_user(token: str = Depends(oauth2_scheme)) -> dict:
    try:
        payload = decode_jwt(token)
        return {"sub": payload["sub"], "role": payload.get("role")}
    except Exception:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Token inválido")

async def require_admin(user: dict = Depends(current_user)) -> dict:
    if user.get("role") != "admin":
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="No autorizado")
    return user

def get_subscription_repo(db=Depends(current_db)) -> SubscriptionRepo:
    return SubscriptionRepo(db)

def get_push_client(request: Request) -> PushClient:
    # se construye una vez en el lifespan (main.py)
    return request.app.state.push_client

def get_push_service(
    repo: SubscriptionRepo = Depends(get_subscription_repo),
    client: PushClient = Depends(get_push_client),
) -> PushService:
    dispatcher = PushDispatcher(repo, client, max_concurrency=settings.PUSH_MAX_CONCURRENCY)
    return PushService(repo, dispatcher)

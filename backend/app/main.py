# backend/app/main.py
"""
App FastAPI del subsistema de push: CORS, lifespan (startup/shutdown),
handlers de errores, router /push + middleware de trazas.
"""
import logging, time

# ⬇️ ANTES DE IMPORTAR settings: carga backend/.env
from dotenv import load_dotenv, find_dotenv
load_dotenv(find_dotenv(), override=True)

from contextlib import asynccontextmanager
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .db.mongo import connect_to_mongo, disconnect_from_mongo
from .core.config import settings
from .core.errors import StoreFailure, ValidationError
from .routes import push
from .services.webpush_client import build_push_client
from .telemetry.logging import setup_logging

setup_logging()
http_logger = logging.getLogger("app.http")

@asynccontextmanager
async def lifespan(app: FastAPI):
    connect_to_mongo()
    # credenciales VAPID inyectadas una sola vez; sin claves -> cliente nulo
    app.state.push_client = build_push_client(settings)
    yield
    disconnect_from_mongo()

app = FastAPI(title="Status Push API", version="0.1.0", lifespan=lifespan)

# ---------------- CORS ----------------
app.add_middleware(
    CORSMiddleware,
    allow_origins=getattr(settings, "CORS_ORIGINS", ["*"]),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# ---------------- Middleware de trazas ----------------
@app.middleware("http")
async def log_requests(request: Request, call_next):
    start = time.time()
    try:
        response = await call_next(request)
        dur = round(time.time() - start, 4)
        http_logger.info(f"{request.method} {request.url.path} -> {response.status_code} in {dur}s")
        return response
    except Exception as e:
        dur = round(time.time() - start, 4)
        http_logger.exception(f"{request.method} {request.url.path} EXC after {dur}s: {e}")
        raise

# ---------------- Errores ----------------
@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    errors = exc.errors()
    msg = errors[0].get("msg", "invalid_request") if errors else "invalid_request"
    return JSONResponse(status_code=400, content={"detail": msg})

@app.exception_handler(ValidationError)
async def validation_handler(request: Request, exc: ValidationError):
    return JSONResponse(status_code=400, content={"detail": str(exc)})

@app.exception_handler(StoreFailure)
async def store_failure_handler(request: Request, exc: StoreFailure):
    http_logger.error(f"{request.method} {request.url.path} store failure: {exc}")
    return JSONResponse(status_code=500, content={"detail": "store_unavailable"})

# ---------------- Healthcheck ----------------
@app.get("/health", tags=["misc"])
async def health():
    return {"ok": True}

# ---------------- Routers ----------------
app.include_router(push.router, prefix="/push", tags=["push"])

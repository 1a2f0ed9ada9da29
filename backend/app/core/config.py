"""
Configuración central del servicio de push (fuente única de verdad).
Lee variables de entorno y expone un objeto Settings tipado.
"""
import os
from pydantic import BaseModel, Field

class Settings(BaseModel):
    MONGO_URI: str = Field(default_factory=lambda: os.getenv("MONGO_URI", "mongodb://localhost:27017"))
    MONGO_DB: str  = Field(default_factory=lambda: os.getenv("MONGO_DB", "status_push"))
    JWT_SECRET: str = Field(default_factory=lambda: os.getenv("JWT_SECRET", "changeme"))
    JWT_EXPIRES_MIN: int = Field(default_factory=lambda: int(os.getenv("JWT_EXPIRES_MIN", "60")))
    CORS_ORIGINS: list[str] = Field(default_factory=lambda: ["*"])

    # ---- Web Push (VAPID) ----
    # Si falta alguna de las dos claves el envío queda deshabilitado (no rompe el alta).
    VAPID_PUBLIC_KEY: str = Field(default_factory=lambda: os.getenv("VAPID_PUBLIC_KEY", ""))
    VAPID_PRIVATE_KEY: str = Field(default_factory=lambda: os.getenv("VAPID_PRIVATE_KEY", ""))
    VAPID_SUBJECT: str = Field(default_factory=lambda: os.getenv("VAPID_SUBJECT", "mailto:admin@example.com"))

    PUSH_MAX_CONCURRENCY: int = Field(default_factory=lambda: int(os.getenv("PUSH_MAX_CONCURRENCY", "10")))
    PUSH_TIMEOUT_SECONDS: float = Field(default_factory=lambda: float(os.getenv("PUSH_TIMEOUT_SECONDS", "10")))
    PUSH_TTL_SECONDS: int = Field(default_factory=lambda: int(os.getenv("PUSH_TTL_SECONDS", "86400")))
    PUSH_ICON: str = Field(default_factory=lambda: os.getenv("PUSH_ICON", "/icons/icon-192x192.png"))
    PUSH_BADGE: str = Field(default_factory=lambda: os.getenv("PUSH_BADGE", "/icons/icon-192x192.png"))

    @property
    def push_enabled(self) -> bool:
        return bool(self.VAPID_PUBLIC_KEY and self.VAPID_PRIVATE_KEY)

settings = Settings()

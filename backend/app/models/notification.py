"""
Modelos efímeros del envío (no se persisten):
- NotificationPayload: lo que manda el operador.
- DeliveryOutcome: resultado de UN intento (suscripción x envío).
- DispatchResult: agregado que se devuelve al llamador.
"""
from __future__ import annotations

import json
from enum import Enum
from typing import Annotated, Any, Dict, Optional

from pydantic import BaseModel, Field, StringConstraints

Title = Annotated[str, StringConstraints(strip_whitespace=True, min_length=1, max_length=100)]
Body = Annotated[str, StringConstraints(strip_whitespace=True, min_length=1, max_length=300)]


class NotificationPayload(BaseModel):
    title: Title
    body: Body
    data: Dict[str, Any] = Field(default_factory=dict)

    def to_wire(self, *, icon: str, badge: str) -> str:
        """JSON que recibe el service worker del navegador."""
        return json.dumps({
            "title": self.title,
            "body": self.body,
            "icon": icon,
            "badge": badge,
            "data": self.data,
        })


class DeliveryStatus(str, Enum):
    DELIVERED = "delivered"
    TRANSIENT_FAILURE = "transient_failure"
    # endpoint 404/410: única condición que poda la suscripción
    PERMANENT_FAILURE = "permanent_failure"


class DeliveryOutcome(BaseModel):
    subscription_id: str
    status: DeliveryStatus
    diagnostic: Optional[str] = None

    @property
    def delivered(self) -> bool:
        return self.status is DeliveryStatus.DELIVERED


class DispatchResult(BaseModel):
    success: bool
    sent: int
    total: int

    @classmethod
    def empty(cls) -> "DispatchResult":
        return cls(success=False, sent=0, total=0)

from __future__ import annotations
from pydantic import BaseModel


class ToastIn(BaseModel):
    # any type string is accepted and forwarded as-is
    type: str = "info"
    message: str


class HealthOut(BaseModel):
    status: str
    app: str
    subscribers: int

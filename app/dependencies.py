import asyncio
from typing import Optional
from fastapi import Request
from app.infra.broadcaster import Broadcaster


def get_broadcaster(request: Request) -> Broadcaster:
    return request.app.state.broadcaster


def get_shutdown_event(request: Request) -> Optional[asyncio.Event]:
    return getattr(request.app.state, "shutdown", None)

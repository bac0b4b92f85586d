from __future__ import annotations
import asyncio, logging
from typing import Optional
from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.responses import StreamingResponse

from app.core.config import settings
from app.core.sse import STREAM_HEADERS, STREAM_MEDIA_TYPE
from app.dependencies import get_broadcaster, get_shutdown_event
from app.infra.broadcaster import Broadcaster
from app.infra.stream import StreamSession, StreamingUnsupportedError, supports_streaming

router = APIRouter()
logger = logging.getLogger("api.stream_routes")


@router.get("/sse")
async def sse_stream(
    request: Request,
    broadcaster: Broadcaster = Depends(get_broadcaster),
    shutdown: Optional[asyncio.Event] = Depends(get_shutdown_event),
):
    try:
        session = StreamSession(
            broadcaster,
            cancelled=shutdown,
            streaming_supported=supports_streaming(
                request.scope, allowed=settings.ALLOW_STREAMING
            ),
        )
    except StreamingUnsupportedError as e:
        logger.warning("rejecting stream: %s", e)
        raise HTTPException(status_code=500, detail=str(e))
    return StreamingResponse(
        session.events(), media_type=STREAM_MEDIA_TYPE, headers=STREAM_HEADERS
    )

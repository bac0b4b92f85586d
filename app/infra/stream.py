from __future__ import annotations
import asyncio, logging
from typing import AsyncIterator, Optional
from starlette.types import Scope

from app.core.sse import CONNECTED_EVENT, CONNECTED_PAYLOAD, TOAST_EVENT, format_event
from app.infra.broadcaster import Broadcaster, Mailbox

logger = logging.getLogger("infra.stream")


class StreamingUnsupportedError(RuntimeError):
    pass


def supports_streaming(scope: Scope, allowed: bool = True) -> bool:
    """HTTP/1.0 peers stream too: the body is written as produced and ended by close."""
    return allowed and scope.get("type") == "http"


class StreamSession:
    """One long-lived client connection turned into a push channel.

    The mailbox is only acquired once events() starts iterating and is always
    released when the iterator finishes, is closed or its task is cancelled.
    """

    def __init__(
        self,
        broadcaster: Broadcaster,
        cancelled: Optional[asyncio.Event] = None,
        streaming_supported: bool = True,
    ) -> None:
        if not streaming_supported:
            raise StreamingUnsupportedError("streaming unsupported")
        self.broadcaster = broadcaster
        self.cancelled = cancelled if cancelled is not None else asyncio.Event()
        self.mailbox: Optional[Mailbox] = None

    async def events(self) -> AsyncIterator[str]:
        mailbox = self.broadcaster.subscribe()
        self.mailbox = mailbox
        stopper: Optional[asyncio.Future] = None
        getter: Optional[asyncio.Future] = None
        try:
            logger.info(
                "stream connected",
                extra={"event": "connected", "subscribers": self.broadcaster.subscriber_count},
            )
            stopper = asyncio.ensure_future(self.cancelled.wait())
            yield format_event(CONNECTED_EVENT, CONNECTED_PAYLOAD)
            while not self.cancelled.is_set():
                getter = asyncio.ensure_future(mailbox.get())
                done, _ = await asyncio.wait(
                    {getter, stopper}, return_when=asyncio.FIRST_COMPLETED
                )
                if getter not in done:
                    break
                msg = getter.result()
                getter = None
                yield format_event(TOAST_EVENT, msg)
        finally:
            for task in (getter, stopper):
                if task is not None and not task.done():
                    task.cancel()
            self.broadcaster.unsubscribe(mailbox)
            logger.info(
                "stream disconnected",
                extra={
                    "event": "disconnected",
                    "subscribers": self.broadcaster.subscriber_count,
                },
            )

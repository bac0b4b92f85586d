from __future__ import annotations
import json, logging, sys, time, uuid, contextvars
from typing import Any, Dict
from starlette.datastructures import Headers, MutableHeaders
from starlette.types import ASGIApp, Message, Receive, Scope, Send
from app.core.config import settings

request_id_var: contextvars.ContextVar[str] = contextvars.ContextVar(
    "request_id", default="-"
)

_HANDLER_NAME = "app.json"


class JsonFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        base: Dict[str, Any] = {
            "ts": time.strftime(
                "%Y-%m-%dT%H:%M:%S",
                time.gmtime(getattr(record, "created", time.time())),
            ),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "request_id": getattr(record, "request_id", request_id_var.get("-")),
        }
        # Add common extras if present
        for k in ("event", "subscribers", "toast_type", "path", "status_code"):
            if hasattr(record, k):
                base[k] = getattr(record, k)
        if record.exc_info:
            base["exc"] = self.formatException(record.exc_info)
        return json.dumps(base, ensure_ascii=False)


class RequestIdMiddleware:
    """Binds an X-Request-ID (incoming or generated) to the logging context.

    Plain ASGI so long-lived streaming responses pass through untouched.
    """

    def __init__(self, app: ASGIApp) -> None:
        self.app = app

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return
        rid = Headers(scope=scope).get("x-request-id") or uuid.uuid4().hex[:12]

        async def send_with_id(message: Message) -> None:
            if message["type"] == "http.response.start":
                MutableHeaders(scope=message)["X-Request-ID"] = rid
            await send(message)

        token = request_id_var.set(rid)
        try:
            await self.app(scope, receive, send_with_id)
        finally:
            request_id_var.reset(token)


def setup_logging() -> None:
    # root -> JSON to stdout
    root = logging.getLogger()
    level = logging.getLevelName((settings.LOG_LEVEL or "INFO").upper())
    root.setLevel(level if isinstance(level, int) else logging.INFO)
    # Route uvicorn logs through root JSON handler
    for lg in ("uvicorn", "uvicorn.error", "uvicorn.access"):
        lgr = logging.getLogger(lg)
        # Remove their own handlers to avoid duplicate emission
        lgr.handlers.clear()
        lgr.propagate = True
        lgr.setLevel(root.level)
    # stdout handler, installed once
    if any(h.get_name() == _HANDLER_NAME for h in root.handlers):
        return
    sh = logging.StreamHandler(sys.stdout)
    sh.set_name(_HANDLER_NAME)
    sh.setFormatter(JsonFormatter())
    root.addHandler(sh)

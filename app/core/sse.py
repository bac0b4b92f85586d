from __future__ import annotations
import re
from typing import Dict

STREAM_MEDIA_TYPE = "text/event-stream"
STREAM_HEADERS: Dict[str, str] = {
    "Cache-Control": "no-cache",
    "Connection": "keep-alive",
    "X-Accel-Buffering": "no",
}

CONNECTED_EVENT = "connected"
CONNECTED_PAYLOAD = '{"status":"connected"}'
TOAST_EVENT = "sse-toast"

_LINE_BREAK = re.compile(r"\r\n|\r|\n")


def format_event(event: str, data: str) -> str:
    """Frame one server-sent event: `event:` line, `data:` line(s), blank line."""
    lines = _LINE_BREAK.split(data)
    body = "".join(f"data: {line}\n" for line in lines)
    return f"event: {event}\n{body}\n"

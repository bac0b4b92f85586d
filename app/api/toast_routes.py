from __future__ import annotations
import html, random, time
from fastapi import APIRouter, BackgroundTasks, Depends, Form, Response
from fastapi.responses import HTMLResponse

from app.api.schemas import ToastIn
from app.core.config import settings
from app.dependencies import get_broadcaster
from app.infra.broadcaster import Broadcaster

router = APIRouter()

TOAST_MESSAGES = {
    "success": "Operation completed successfully!",
    "error": "Something went wrong!",
    "info": "Here's some information for you.",
    "warning": "Please be careful with this action.",
}

SPAM_SEQUENCE = [
    ("success", "First toast incoming!"),
    ("error", "Oops, an error appeared!"),
    ("info", "Here's some info for you."),
    ("warning", "Warning: toast spam detected!"),
    ("success", "And we're done!"),
]

QUOTES = [
    "The best way to predict the future is to invent it. — Alan Kay",
    "Simplicity is the ultimate sophistication. — Leonardo da Vinci",
    "First, solve the problem. Then, write the code. — John Johnson",
    "Code is like humor. When you have to explain it, it's bad. — Cory House",
    "Make it work, make it right, make it fast. — Kent Beck",
    "Any fool can write code that a computer can understand. "
    "Good programmers write code that humans can understand. — Martin Fowler",
]


def _spam(broadcaster: Broadcaster, interval: float) -> None:
    for toast_type, message in SPAM_SEQUENCE:
        broadcaster.publish_toast(toast_type, message)
        time.sleep(interval)


@router.post("/trigger-toast")
def trigger_toast(
    type: str = Form(default=""),
    broadcaster: Broadcaster = Depends(get_broadcaster),
):
    toast_type = type or "success"
    # unknown types keep their value but borrow the info text
    message = TOAST_MESSAGES.get(toast_type) or TOAST_MESSAGES["info"]
    broadcaster.publish_toast(toast_type, message)
    return Response(status_code=200)


@router.post("/delete-item")
def delete_item(broadcaster: Broadcaster = Depends(get_broadcaster)):
    # simulated work so the client can show a loading state
    time.sleep(settings.ACTION_DELAY_SECONDS)
    broadcaster.publish_toast("success", "Item deleted successfully!")
    return Response(status_code=200)


@router.post("/form-submit")
def form_submit(
    name: str = Form(default=""),
    email: str = Form(default=""),
    broadcaster: Broadcaster = Depends(get_broadcaster),
):
    time.sleep(settings.ACTION_DELAY_SECONDS)
    broadcaster.publish_toast("success", f"Form submitted! Name: {name}, Email: {email}")
    return Response(status_code=200)


@router.post("/spam-toasts")
def spam_toasts(
    background: BackgroundTasks, broadcaster: Broadcaster = Depends(get_broadcaster)
):
    background.add_task(_spam, broadcaster, settings.SPAM_INTERVAL_SECONDS)
    return Response(status_code=200)


@router.post("/publish")
def publish(req: ToastIn, broadcaster: Broadcaster = Depends(get_broadcaster)):
    broadcaster.publish_toast(req.type, req.message)
    return Response(status_code=200)


@router.get("/random-quote", response_class=HTMLResponse)
def random_quote():
    quote = html.escape(random.choice(QUOTES), quote=False)
    return HTMLResponse(f'<blockquote class="text-lg italic">"{quote}"</blockquote>')

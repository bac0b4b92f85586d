import asyncio
from pathlib import Path
from fastapi import Depends, FastAPI
from fastapi.responses import FileResponse
from fastapi.middleware.cors import CORSMiddleware
from app.api.schemas import HealthOut
from app.core.config import settings
from app.core.logging import RequestIdMiddleware, setup_logging
from app.dependencies import get_broadcaster
from app.infra.broadcaster import Broadcaster

app = FastAPI(title=settings.APP_NAME)

setup_logging()

# One broadcaster per application; handlers reach it through get_broadcaster
app.state.broadcaster = Broadcaster(capacity=settings.MAILBOX_CAPACITY)

app.add_middleware(RequestIdMiddleware)

# CORS (for a separately served UI)
if settings.CORS_ALLOW_ORIGINS:
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ALLOW_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )


@app.on_event("startup")
async def on_startup():
    app.state.shutdown = asyncio.Event()


@app.on_event("shutdown")
async def on_shutdown():
    shutdown = getattr(app.state, "shutdown", None)
    if shutdown is not None:
        shutdown.set()


from app.api.stream_routes import router as stream_router
from app.api.toast_routes import router as toast_router

app.include_router(stream_router)
app.include_router(toast_router)

WEB_DIR = Path(__file__).resolve().parent / "web"


@app.get("/", include_in_schema=False)
def index():
    return FileResponse(WEB_DIR / "index.html")


@app.get("/health", response_model=HealthOut)
def health(broadcaster: Broadcaster = Depends(get_broadcaster)):
    return HealthOut(
        status="ok", app=settings.APP_NAME, subscribers=broadcaster.subscriber_count
    )

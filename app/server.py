import logging
import uvicorn
from app.core.config import settings
from app.core.logging import setup_logging

setup_logging()
logger = logging.getLogger("server")


def main():
    logger.info("Server running at http://%s:%s", settings.HOST, settings.PORT)
    # open streams never finish on their own; cancel them after the grace period
    uvicorn.run(
        "app.main:app",
        host=settings.HOST,
        port=settings.PORT,
        log_config=None,
        timeout_graceful_shutdown=settings.SHUTDOWN_GRACE_SECONDS,
    )


if __name__ == "__main__":
    main()

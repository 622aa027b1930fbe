"""
FastAPI app entrypoint.

Inventory + restock notifications. The failed-delivery retry job is optional (RETRY_JOB_ENABLED).
"""
import logging
from contextlib import asynccontextmanager
from pathlib import Path

from apscheduler.schedulers.background import BackgroundScheduler
from dotenv import load_dotenv
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

# Load .env from backend/ before any app code
load_dotenv(Path(__file__).resolve().parent.parent / ".env")

from stocknotify.api.routes import catalog, inbox, notifications, push
from stocknotify.config import settings
from stocknotify.core.constants import RETRY_JOB_ID
from stocknotify.core.errors import NotificationError, error_to_http
from stocknotify.scheduler.retry_job import run_retry_failed_deliveries_job

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    scheduler = None
    if settings.retry_job_enabled:
        scheduler = BackgroundScheduler()
        scheduler.add_job(
            run_retry_failed_deliveries_job,
            "interval",
            seconds=settings.retry_interval_seconds,
            id=RETRY_JOB_ID,
            max_instances=1,
            coalesce=True,
        )
        scheduler.start()
        logger.info("Retry job scheduled every %ss", settings.retry_interval_seconds)
    app.state.scheduler = scheduler
    logger.info("Backend ready (channel sender: %s)", settings.channel_sender)
    yield
    if scheduler is not None:
        scheduler.shutdown(wait=False)


app = FastAPI(title="Stock Notify", version="0.1.0", lifespan=lifespan)


@app.exception_handler(NotificationError)
async def notification_error_handler(request: Request, exc: NotificationError) -> JSONResponse:
    http_exc = error_to_http(exc)
    if http_exc.status_code >= 500:
        logger.error("Unhandled notification error on %s: %s", request.url.path, exc)
    return JSONResponse(status_code=http_exc.status_code, content={"detail": http_exc.detail})


app.include_router(catalog.router, prefix="/api", tags=["catalog"])
app.include_router(notifications.router, prefix="/api", tags=["notifications"])
app.include_router(push.router, prefix="/api", tags=["push"])
app.include_router(inbox.router, prefix="/api", tags=["inbox"])


@app.get("/", include_in_schema=False)
def root():
    """Root: point to API docs and health."""
    return {"message": "Stock Notify API", "docs": "/docs", "health": "/health"}


@app.get("/health")
def health() -> dict[str, str]:
    return {"status": "ok"}

"""
Availability service - FastAPI entry point.

Serves availability lookups, the rollover cron trigger and onboarding
generation. Optionally runs the minute-tick rollover worker in-process.
"""
import asyncio
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, Response
from fastapi.middleware.cors import CORSMiddleware
from starlette.middleware.base import BaseHTTPMiddleware

from src.api.router import api_router
from src.config import Settings, get_settings
from src.database import dispose_engine
from src.utils.heartbeat import close_redis
from src.utils.logging import configure_structured_logging, correlation_scope

logger = logging.getLogger("availability")

CORRELATION_HEADER = "X-Correlation-ID"
WORKER_SHUTDOWN_TIMEOUT_SECONDS = 10.0
DEV_ORIGINS = ["http://localhost:3000", "http://localhost:5173"]


class CorrelationIdMiddleware(BaseHTTPMiddleware):
    """Binds the caller's X-Correlation-ID (or a new one) for the request and echoes it back."""

    async def dispatch(self, request: Request, call_next) -> Response:
        with correlation_scope(request.headers.get(CORRELATION_HEADER)) as cid:
            response = await call_next(request)
        response.headers[CORRELATION_HEADER] = cid
        return response


def _init_sentry(settings: Settings) -> None:
    if not settings.sentry_dsn:
        return
    try:
        import sentry_sdk
        sentry_sdk.init(
            dsn=settings.sentry_dsn,
            traces_sample_rate=0.1,
            environment=settings.app_env,
        )
        logger.info("Sentry initialized")
    except Exception as e:
        logger.warning("Sentry initialization failed: %s", str(e))


def _start_workers(settings: Settings) -> list[asyncio.Task]:
    if not settings.availability_rollover_worker_enabled:
        logger.info(
            "Rollover worker disabled; expecting an external scheduler on "
            "/api/v1/cron/availability-rollover"
        )
        return []

    from src.workers.availability_rollover import run_availability_rollover
    logger.info("Rollover worker started")
    return [asyncio.create_task(run_availability_rollover(), name="availability_rollover")]


async def _stop_workers(tasks: list[asyncio.Task]) -> None:
    """Cancel workers and wait; a slot write in flight finishes before its task ends."""
    for task in tasks:
        task.cancel()
    if not tasks:
        return
    _, pending = await asyncio.wait(tasks, timeout=WORKER_SHUTDOWN_TIMEOUT_SECONDS)
    if pending:
        logger.warning("%d workers did not stop within %.0fs", len(pending), WORKER_SHUTDOWN_TIMEOUT_SECONDS)
        await asyncio.gather(*pending, return_exceptions=True)


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings = get_settings()
    logger.info("Availability service starting (env=%s)", settings.app_env)

    if not settings.cron_secret:
        logger.warning("CRON_SECRET not set: rollover trigger and admin endpoints are unauthenticated")
    _init_sentry(settings)
    workers = _start_workers(settings)

    yield

    logger.info("Availability service shutting down (%d workers)", len(workers))
    await _stop_workers(workers)
    await close_redis()
    await dispose_engine()
    logger.info("Availability service shutdown complete")


def _allowed_origins(settings: Settings) -> list[str]:
    origins = [o.strip() for o in settings.allowed_origins.split(",") if o.strip()]
    if settings.app_env == "development":
        origins += DEV_ORIGINS
    return origins


def create_app() -> FastAPI:
    settings = get_settings()
    configure_structured_logging(settings.log_level)

    app = FastAPI(
        title="Availability Service",
        description="Provider availability slots and timezone-aware rollover",
        version="1.0.0",
        lifespan=lifespan,
    )
    app.add_middleware(
        CORSMiddleware,
        allow_origins=_allowed_origins(settings),
        allow_credentials=True,
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["Authorization", "Content-Type", CORRELATION_HEADER],
    )
    # Added after CORS so it wraps it and every response carries the header
    app.add_middleware(CorrelationIdMiddleware)
    app.include_router(api_router)
    return app


app = create_app()

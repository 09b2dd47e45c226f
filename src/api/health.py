"""
Health endpoints for load balancers and monitoring.

- GET /health       - liveness, 200 whenever the process serves requests
- GET /health/ready - database and Redis reachable
- GET /health/deep  - ready checks plus rollover worker heartbeat freshness
"""
import logging
import time
from datetime import datetime, timezone
from typing import Awaitable, Callable

from fastapi import APIRouter, Depends
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from src.database import get_db

logger = logging.getLogger(__name__)
router = APIRouter(tags=["health"])

VERSION = "1.0.0"

# The worker stamps every minute; five missed ticks means it is stuck
WORKER_STALE_SECONDS = 300


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


async def _timed_check(name: str, check: Callable[[], Awaitable[object]]) -> dict:
    """Run one dependency check, reporting health and latency instead of raising."""
    started = time.monotonic()
    try:
        await check()
    except Exception as e:
        logger.warning("Health: %s check failed: %s", name, str(e))
        return {"healthy": False, "error": str(e)}
    return {"healthy": True, "latency_ms": round((time.monotonic() - started) * 1000, 1)}


async def _check_database(db: AsyncSession) -> dict:
    return await _timed_check("database", lambda: db.execute(text("SELECT 1")))


async def _check_redis() -> dict:
    from src.utils.heartbeat import get_redis

    async def ping():
        client = await get_redis()
        await client.ping()

    return await _timed_check("redis", ping)


async def _check_rollover_worker() -> dict:
    """Healthy when the in-process worker is off (an external cron drives rollover)."""
    from src.config import get_settings
    if not get_settings().availability_rollover_worker_enabled:
        return {"healthy": True, "note": "worker disabled (external trigger)"}

    from src.utils.heartbeat import last_heartbeat
    from src.workers.availability_rollover import WORKER_NAME
    try:
        beat = await last_heartbeat(WORKER_NAME)
    except Exception as e:
        logger.warning("Health: worker heartbeat check failed: %s", str(e))
        return {"healthy": False, "error": str(e)}

    if beat is None:
        return {"healthy": False, "last_heartbeat": None}
    age = (datetime.now(timezone.utc) - beat).total_seconds()
    return {
        "healthy": age < WORKER_STALE_SECONDS,
        "last_heartbeat": beat.isoformat(),
        "age_seconds": int(age),
    }


@router.get("/health")
async def health_check():
    return {"status": "healthy", "timestamp": _now_iso(), "version": VERSION}


@router.get("/health/ready")
async def readiness_check(db: AsyncSession = Depends(get_db)):
    checks = {
        "database": (await _check_database(db))["healthy"],
        "redis": (await _check_redis())["healthy"],
    }
    return {
        "status": "ready" if all(checks.values()) else "degraded",
        "checks": checks,
        "timestamp": _now_iso(),
    }


@router.get("/health/deep")
async def deep_health_check(db: AsyncSession = Depends(get_db)):
    """
    Database and Redis are critical. A stale rollover worker only degrades:
    availability already written stays readable until the window runs out.
    """
    checks = {
        "database": await _check_database(db),
        "redis": await _check_redis(),
        "rollover_worker": await _check_rollover_worker(),
    }

    if not (checks["database"]["healthy"] and checks["redis"]["healthy"]):
        status = "unhealthy"
    elif not checks["rollover_worker"]["healthy"]:
        status = "degraded"
    else:
        status = "healthy"

    return {"status": status, "checks": checks, "timestamp": _now_iso(), "version": VERSION}

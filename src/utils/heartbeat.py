"""
Shared Redis client plus worker heartbeats.

The rollover worker stamps its key after every tick; /health/deep reads it
back to tell a stuck loop from a healthy one. Alert cooldowns share the client.
"""
import logging
from datetime import datetime, timezone
from typing import Optional

import redis.asyncio as aioredis

logger = logging.getLogger(__name__)

HEARTBEAT_KEY_PREFIX = "availability:worker_health:"

_client: Optional[aioredis.Redis] = None


async def get_redis() -> aioredis.Redis:
    """Lazily connect on first use."""
    global _client
    if _client is None:
        from src.config import get_settings
        _client = aioredis.Redis.from_url(get_settings().redis_url, decode_responses=True)
    return _client


async def close_redis() -> None:
    global _client
    if _client is not None:
        await _client.aclose()
    _client = None


def heartbeat_key(worker: str) -> str:
    return f"{HEARTBEAT_KEY_PREFIX}{worker}"


async def record_heartbeat(worker: str, ttl_seconds: int = 300) -> None:
    """Stamp the worker's key with the current UTC time. Never raises."""
    try:
        client = await get_redis()
        await client.set(heartbeat_key(worker), datetime.now(timezone.utc).isoformat(), ex=ttl_seconds)
    except Exception as e:
        logger.warning("Heartbeat write failed for %s: %s", worker, str(e), extra={"worker": worker})


async def last_heartbeat(worker: str) -> Optional[datetime]:
    """Last stamp, or None if the key expired or was never written."""
    client = await get_redis()
    stamp = await client.get(heartbeat_key(worker))
    return datetime.fromisoformat(stamp) if stamp else None

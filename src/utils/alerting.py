"""
Operational alerts for the availability service.

Channels:
1. Structured log at ERROR/CRITICAL (always)
2. Webhook (Discord/Slack) when ALERT_WEBHOOK_URL is set

Each alert type has a cooldown so a persistent failure (e.g. the database
being down for every rollover tick) produces one alert, not one per minute.
Cooldowns live in Redis so restarts don't re-fire them; an in-process dict
takes over when Redis is unreachable.
"""
import logging
import time
from typing import Mapping, Optional

logger = logging.getLogger(__name__)

ALERT_COOLDOWN_SECONDS = 300

ALERT_COOLDOWN_OVERRIDES: dict[str, int] = {
    # The worker ticks every minute; one alert per hour is enough for a stuck loop
    "rollover_worker_error": 3600,
}

COOLDOWN_KEY_PREFIX = "availability:alert_cooldown:"

SEVERITY_ICONS = {
    "critical": "\U0001f6a8",
    "error": "❌",
    "warning": "⚠️",
}

# Business ids listed in a webhook message before truncating
MAX_LISTED_BUSINESSES = 10

_local_cooldowns: dict[str, float] = {}  # alert_type -> monotonic expiry


class AlertType:
    """Alert type constants."""
    ROLLOVER_FAILED = "rollover_failed"
    ROLLOVER_WORKER_ERROR = "rollover_worker_error"
    HEALTH_CHECK_FAILED = "health_check_failed"


def _cooldown_seconds(alert_type: str) -> int:
    return ALERT_COOLDOWN_OVERRIDES.get(alert_type, ALERT_COOLDOWN_SECONDS)


async def send_alert(
    alert_type: str,
    message: str,
    correlation_id: Optional[str] = None,
    severity: str = "error",
    extra: Optional[dict] = None,
) -> None:
    """Log and forward an alert unless its type is cooling down."""
    if not await _acquire_cooldown(alert_type):
        logger.debug("Alert %s suppressed (cooldown)", alert_type)
        return

    from src.utils.logging import get_correlation_id
    cid = correlation_id or get_correlation_id()

    log_message = f"ALERT [{alert_type}]: {message}"
    if cid:
        log_message += f" (correlation_id={cid})"
    logger.log(
        logging.CRITICAL if severity == "critical" else logging.ERROR,
        log_message,
        extra={"error_code": alert_type},
    )

    await _send_webhook_alert(alert_type, message, severity, cid, extra)


async def alert_rollover_failures(failed: Mapping[str, str], total: int) -> None:
    """
    One alert per rollover batch with failures. Escalates to critical when
    no business in the batch succeeded, which usually means shared
    infrastructure (database, settings) is broken rather than one tenant's data.
    """
    if not failed:
        return
    ids = sorted(failed)
    listed = ", ".join(ids[:MAX_LISTED_BUSINESSES])
    if len(ids) > MAX_LISTED_BUSINESSES:
        listed += f" (+{len(ids) - MAX_LISTED_BUSINESSES} more)"

    first_error = failed[ids[0]]
    await send_alert(
        AlertType.ROLLOVER_FAILED,
        f"Availability rollover failed for {len(failed)} of {total} businesses",
        severity="critical" if len(failed) == total else "error",
        extra={"business_ids": listed, "first_error": first_error},
    )


async def _acquire_cooldown(alert_type: str) -> bool:
    """
    Returns True if the alert may be sent, recording the cooldown atomically
    (Redis SET NX EX). Falls back to process memory when Redis errors.
    """
    cooldown = _cooldown_seconds(alert_type)

    try:
        from src.utils.heartbeat import get_redis
        redis = await get_redis()
        acquired = await redis.set(f"{COOLDOWN_KEY_PREFIX}{alert_type}", "1", nx=True, ex=cooldown)
        return bool(acquired)
    except Exception as e:
        logger.debug("Alert cooldown Redis check failed, using in-memory fallback: %s", str(e))

    now = time.monotonic()
    if now < _local_cooldowns.get(alert_type, 0):
        return False
    _local_cooldowns[alert_type] = now + cooldown
    return True


def _format_webhook_content(
    alert_type: str,
    message: str,
    severity: str,
    correlation_id: Optional[str],
    extra: Optional[dict],
) -> str:
    lines = [f"{SEVERITY_ICONS.get(severity, chr(0x2139))} **{alert_type}**", message]
    if correlation_id:
        lines.append(f"`correlation_id: {correlation_id}`")
    for key, val in (extra or {}).items():
        lines.append(f"`{key}: {val}`")
    return "\n".join(lines)


async def _send_webhook_alert(
    alert_type: str,
    message: str,
    severity: str,
    correlation_id: Optional[str],
    extra: Optional[dict],
) -> None:
    """POST to the configured Discord/Slack webhook. Never raises."""
    try:
        from src.config import get_settings
        webhook_url = get_settings().alert_webhook_url
        if not webhook_url:
            return

        import httpx

        content = _format_webhook_content(alert_type, message, severity, correlation_id, extra)
        async with httpx.AsyncClient(timeout=5.0) as client:
            await client.post(webhook_url, json={"content": content})
    except Exception as e:
        logger.warning("Failed to send webhook alert: %s", str(e))

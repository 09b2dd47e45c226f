"""
Cron trigger for availability rollover.

An external scheduler calls this at least once per UTC minute window where a
business may hit local midnight (hourly covers whole-hour offsets; every 15
minutes covers all of them). Accepts GET (scheduler) and POST (manual, with
an optional current_utc_time for testing).
"""
import hmac
import logging
import time
from datetime import datetime, timezone
from typing import Optional

from fastapi import APIRouter, Body, Header, HTTPException

from src.config import get_settings
from src.schemas.availability import RolloverRequest, RolloverResponse
from src.services.rollover_scheduler import orchestrate
from src.utils.timezone import DateUtilsError, parse_utc_instant, truncate_to_minute

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/v1/cron", tags=["cron"])


def verify_cron_secret(authorization: Optional[str]) -> None:
    secret = get_settings().cron_secret
    if not secret:
        return
    expected = f"Bearer {secret}"
    if not authorization or not hmac.compare_digest(authorization, expected):
        logger.error("Unauthorized availability rollover trigger")
        raise HTTPException(status_code=401, detail="Unauthorized")


async def _handle_rollover(
    authorization: Optional[str],
    payload: Optional[RolloverRequest],
) -> RolloverResponse:
    verify_cron_secret(authorization)

    if payload and payload.current_utc_time:
        try:
            now = parse_utc_instant(payload.current_utc_time)
        except DateUtilsError as e:
            raise HTTPException(status_code=400, detail=str(e))
    else:
        now = datetime.now(timezone.utc)

    started = time.monotonic()
    try:
        batch = await orchestrate(truncate_to_minute(now))
    except Exception as e:
        logger.error("Availability rollover trigger failed: %s", str(e), exc_info=True)
        raise HTTPException(status_code=500, detail="Internal server error")
    elapsed_ms = int((time.monotonic() - started) * 1000)

    summary = batch.to_dict()
    logger.info("Availability rollover trigger completed in %dms", elapsed_ms)
    return RolloverResponse(
        success=True,
        message="Availability rollover completed successfully",
        businesses=summary["businesses"],
        written=summary["written"],
        failed=summary["failed"],
        execution_time=f"{elapsed_ms}ms",
        timestamp=datetime.now(timezone.utc).isoformat(),
    )


@router.get("/availability-rollover", response_model=RolloverResponse)
async def trigger_rollover(
    authorization: Optional[str] = Header(default=None),
):
    return await _handle_rollover(authorization, None)


@router.post("/availability-rollover", response_model=RolloverResponse)
async def trigger_rollover_manual(
    payload: Optional[RolloverRequest] = Body(default=None),
    authorization: Optional[str] = Header(default=None),
):
    return await _handle_rollover(authorization, payload)

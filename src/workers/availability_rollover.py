"""
Availability rollover worker - in-process trigger for the rollover orchestrator.
Enabled with AVAILABILITY_ROLLOVER_WORKER_ENABLED; deployments with an external
cron hitting /api/v1/cron/availability-rollover leave it off.

Process:
1. Sleep until the next UTC minute boundary
2. Run orchestrate() for that minute (businesses at local 00:00 roll over)
3. Record heartbeat
Every UTC offset in use is a multiple of 15 minutes, so each business's
local midnight lands on exactly one tick.
"""
import asyncio
import logging
from datetime import datetime, timezone, timedelta
from typing import Optional

from src.services.rollover_scheduler import RolloverBatchResult, orchestrate
from src.utils.alerting import AlertType, send_alert
from src.utils.heartbeat import record_heartbeat
from src.utils.logging import correlation_scope, log_extra
from src.utils.timezone import truncate_to_minute

logger = logging.getLogger(__name__)

WORKER_NAME = "availability_rollover"
HEARTBEAT_TTL_SECONDS = 300


def seconds_until_next_minute(now: datetime) -> float:
    next_minute = truncate_to_minute(now) + timedelta(minutes=1)
    return max(0.0, (next_minute - now).total_seconds())


async def run_rollover_tick(now: Optional[datetime] = None) -> RolloverBatchResult:
    """One trigger: orchestrate rollover for the minute containing `now`."""
    tick = truncate_to_minute(now or datetime.now(timezone.utc))
    with correlation_scope():
        return await orchestrate(tick)


async def run_availability_rollover():
    """Main loop - one orchestrate() per UTC minute."""
    logger.info("Availability rollover worker started", extra=log_extra(worker=WORKER_NAME))

    while True:
        now = datetime.now(timezone.utc)
        await asyncio.sleep(seconds_until_next_minute(now))

        try:
            batch = await run_rollover_tick()
            if batch.total:
                logger.info(
                    "Rollover tick processed %d businesses (%d failed)",
                    batch.total, len(batch.failed), extra=log_extra(worker=WORKER_NAME),
                )
        except asyncio.CancelledError:
            logger.info("Availability rollover worker stopping", extra=log_extra(worker=WORKER_NAME))
            raise
        except Exception as e:
            logger.error(
                "Availability rollover worker error: %s", str(e),
                exc_info=True, extra=log_extra(worker=WORKER_NAME),
            )
            await send_alert(
                AlertType.ROLLOVER_WORKER_ERROR,
                f"Availability rollover tick failed: {e}",
            )

        await record_heartbeat(WORKER_NAME, ttl_seconds=HEARTBEAT_TTL_SECONDS)

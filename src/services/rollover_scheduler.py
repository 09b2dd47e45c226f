"""
Rollover orchestration across all businesses.

Invoked by a periodic trigger with the current instant. Selects businesses
whose local calendar date starts at that instant and rolls each one over
concurrently. One business failing never cancels or fails the others.
"""
import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Callable, Optional, Sequence

from sqlalchemy.ext.asyncio import AsyncSession

from src.database import async_session_factory
from src.models.business import Business
from src.services.rollover import RolloverResult, rollover_one
from src.services.roster import list_active_businesses
from src.utils.alerting import alert_rollover_failures
from src.utils.logging import log_extra
from src.utils.timezone import InvalidTimezoneError, ensure_utc, is_local_midnight

logger = logging.getLogger(__name__)


@dataclass
class RolloverBatchResult:
    succeeded: list[RolloverResult] = field(default_factory=list)
    failed: dict[str, str] = field(default_factory=dict)  # business_id -> error

    @property
    def total(self) -> int:
        return len(self.succeeded) + len(self.failed)

    def to_dict(self) -> dict:
        return {
            "businesses": self.total,
            "succeeded": [str(r.business_id) for r in self.succeeded],
            "written": sum(1 for r in self.succeeded if r.written),
            "failed": self.failed,
        }


async def find_businesses_needing_rollover(
    now: datetime,
    session_factory: Callable[[], AsyncSession] = async_session_factory,
) -> list[Business]:
    """Active businesses whose local calendar date begins in the minute of `now`."""
    now = ensure_utc(now)
    async with session_factory() as db:
        businesses = await list_active_businesses(db)

    due = []
    for business in businesses:
        try:
            if is_local_midnight(now, business.time_zone):
                due.append(business)
        except InvalidTimezoneError as e:
            logger.error(
                "Skipping business %s with invalid timezone: %s",
                str(business.id)[:8], str(e),
                extra=log_extra(business_id=business.id, error_code="invalid_timezone"),
            )

    logger.debug("%d of %d businesses at local midnight for %s", len(due), len(businesses), now.isoformat())
    return due


async def rollover_many(
    businesses: Sequence[Business],
    now: datetime,
    session_factory: Callable[[], AsyncSession] = async_session_factory,
    max_concurrency: Optional[int] = None,
    window_days: Optional[int] = None,
    step_minutes: Optional[int] = None,
) -> RolloverBatchResult:
    """
    Roll over every business concurrently and collect a result or error per business.
    Errors are logged and returned, never raised as a combined failure.
    """
    batch = RolloverBatchResult()
    if not businesses:
        return batch

    if max_concurrency is None:
        from src.config import get_settings
        max_concurrency = get_settings().rollover_max_concurrency
    semaphore = asyncio.Semaphore(max(1, max_concurrency))

    async def _run(business: Business) -> RolloverResult:
        async with semaphore:
            return await rollover_one(
                business,
                now,
                session_factory=session_factory,
                window_days=window_days,
                step_minutes=step_minutes,
            )

    outcomes = await asyncio.gather(
        *(_run(business) for business in businesses),
        return_exceptions=True,
    )

    for business, outcome in zip(businesses, outcomes):
        if isinstance(outcome, asyncio.CancelledError):
            batch.failed[str(business.id)] = "cancelled"
            logger.warning(
                "Availability rollover cancelled for business %s", str(business.id)[:8],
                extra=log_extra(business_id=business.id),
            )
        elif isinstance(outcome, BaseException):
            batch.failed[str(business.id)] = f"{type(outcome).__name__}: {outcome}"
            logger.error(
                "Availability rollover failed for business %s: %s",
                str(business.id)[:8], str(outcome),
                exc_info=(type(outcome), outcome, outcome.__traceback__),
                extra=log_extra(business_id=business.id, error_code="rollover_failed"),
            )
        else:
            batch.succeeded.append(outcome)

    await alert_rollover_failures(batch.failed, batch.total)

    return batch


async def orchestrate(
    now: datetime,
    session_factory: Callable[[], AsyncSession] = async_session_factory,
    max_concurrency: Optional[int] = None,
) -> RolloverBatchResult:
    """Find businesses at local midnight and roll them over. No-op when there are none."""
    now = ensure_utc(now)
    logger.info("Starting availability rollover check for %s", now.isoformat())

    due = await find_businesses_needing_rollover(now, session_factory=session_factory)
    if not due:
        logger.info("No businesses need rollover at this time")
        return RolloverBatchResult()

    batch = await rollover_many(
        due, now, session_factory=session_factory, max_concurrency=max_concurrency
    )
    logger.info(
        "Availability rollover complete: %d succeeded, %d failed",
        len(batch.succeeded), len(batch.failed),
    )
    return batch

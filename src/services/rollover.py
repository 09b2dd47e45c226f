"""
Rollover engine - keeps one business's availability window valid as its
local calendar advances.

For a given instant:
1. today = the business-local calendar date
2. generate every missing date until >= window_days dates on/after today exist
3. drop every date strictly before today
4. persist the merged table in one conditional write

Missed runs are caught up in a single pass (any number of stale dates are
dropped), and a second run at the same instant changes nothing.
"""
import asyncio
import logging
import uuid
from dataclasses import dataclass, field
from datetime import datetime
from typing import Callable, Mapping, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from src.database import async_session_factory
from src.models.business import Business
from src.services.availability_store import AvailabilitySlotsStore, ConcurrentUpdateError
from src.services.roster import ProviderRoster, load_provider_roster
from src.services.slot_generator import DaySlotTable, ensure_complete_buckets, generate_day_slots
from src.utils.logging import log_extra
from src.utils.timezone import (
    add_days,
    calendar_date,
    date_range,
    is_valid_date_string,
    parse_date_string,
)

logger = logging.getLogger(__name__)

DEFAULT_WINDOW_DAYS = 30


@dataclass
class RolloverResult:
    business_id: uuid.UUID
    today: str
    added_dates: list[str] = field(default_factory=list)
    pruned_dates: list[str] = field(default_factory=list)
    written: bool = False

    def to_dict(self) -> dict:
        return {
            "business_id": str(self.business_id),
            "today": self.today,
            "added_dates": self.added_dates,
            "pruned_dates": self.pruned_dates,
            "written": self.written,
        }


def roll_window(
    existing: Mapping[str, dict],
    today: str,
    generate: Callable[[str], DaySlotTable],
    window_days: int = DEFAULT_WINDOW_DAYS,
) -> tuple[dict[str, DaySlotTable], list[str], list[str]]:
    """
    Pure window maintenance. Returns (merged, added_dates, pruned_dates).

    Walks forward from today generating any date not already present until
    window_days dates on/after today exist, so gaps are filled before the
    far end is extended. Keys that are not valid dates are dropped.
    """
    today_date = parse_date_string(today)

    merged: dict[str, DaySlotTable] = {}
    pruned: list[str] = []
    for key, table in existing.items():
        if not is_valid_date_string(key):
            logger.warning("Dropping malformed availability date key %r", key)
            pruned.append(key)
            continue
        merged[key] = ensure_complete_buckets(table)

    future_count = sum(1 for key in merged if parse_date_string(key) >= today_date)

    added: list[str] = []
    cursor = today
    while future_count < window_days:
        if cursor not in merged:
            merged[cursor] = generate(cursor)
            added.append(cursor)
            future_count += 1
        cursor = add_days(cursor, 1)

    # Prune after generating so a crash mid-way never shortens the future window
    for key in sorted(merged):
        if parse_date_string(key) < today_date:
            del merged[key]
            pruned.append(key)

    return dict(sorted(merged.items())), added, pruned


def _generator_for(roster: ProviderRoster, step_minutes: int) -> Callable[[str], DaySlotTable]:
    def generate(date_str: str) -> DaySlotTable:
        return generate_day_slots(roster.providers, roster.calendars, date_str, step_minutes)
    return generate


def _resolve_defaults(window_days: Optional[int], step_minutes: Optional[int]) -> tuple[int, int]:
    if window_days is not None and step_minutes is not None:
        return window_days, step_minutes
    from src.config import get_settings
    settings = get_settings()
    return (
        window_days if window_days is not None else settings.availability_window_days,
        step_minutes if step_minutes is not None else settings.slot_step_minutes,
    )


async def _write(
    db: AsyncSession,
    store: AvailabilitySlotsStore,
    business_id: uuid.UUID,
    slots: dict,
    expected_version: Optional[int],
) -> None:
    await store.upsert(business_id, slots, expected_version=expected_version)
    await db.commit()


async def _finish_write(coro) -> None:
    """
    Run a write to completion even if the caller is cancelled meanwhile.
    The table is replaced in one statement, so a finished write is never partial.
    """
    task = asyncio.ensure_future(coro)
    try:
        await asyncio.shield(task)
    except asyncio.CancelledError:
        await task
        raise


async def rollover_one(
    business: Business,
    now: datetime,
    session_factory: Callable[[], AsyncSession] = async_session_factory,
    window_days: Optional[int] = None,
    step_minutes: Optional[int] = None,
) -> RolloverResult:
    """Advance one business's availability window to the local date of `now`."""
    window_days, step_minutes = _resolve_defaults(window_days, step_minutes)
    today = calendar_date(now, business.time_zone)
    result = RolloverResult(business_id=business.id, today=today)
    context = log_extra(business_id=business.id, date=today)

    async with session_factory() as db:
        store = AvailabilitySlotsStore(db)
        record = await store.find_by_business(business.id)
        existing = dict(record.slots or {}) if record is not None else {}

        roster = await load_provider_roster(db, business.id)
        if roster.is_empty:
            logger.info(
                "Business %s has no provider calendars; new dates will be empty",
                str(business.id)[:8], extra=context,
            )

        merged, added, pruned = roll_window(
            existing, today, _generator_for(roster, step_minutes), window_days
        )
        result.added_dates = added
        result.pruned_dates = pruned

        if record is not None and merged == existing:
            logger.debug("Availability for %s already current", str(business.id)[:8], extra=context)
            return result

        expected_version = record.version if record is not None else None
        try:
            await _finish_write(_write(db, store, business.id, merged, expected_version))
        except ConcurrentUpdateError as e:
            await db.rollback()
            logger.warning(
                "Rollover for %s lost a concurrent update, next run will reconcile: %s",
                str(business.id)[:8], str(e), extra=context,
            )
            return result

    result.written = True
    logger.info(
        "Rolled over availability for %s: today=%s added=%d pruned=%d",
        str(business.id)[:8], today, len(added), len(pruned), extra=context,
    )
    return result


async def seed_business_availability(
    business: Business,
    now: datetime,
    session_factory: Callable[[], AsyncSession] = async_session_factory,
    days: Optional[int] = None,
    step_minutes: Optional[int] = None,
) -> list[str]:
    """
    Onboarding: write `days` consecutive dates starting tomorrow (business-local),
    replacing whatever the business had. Returns the generated date keys.
    """
    days, step_minutes = _resolve_defaults(days, step_minutes)
    tomorrow = add_days(calendar_date(now, business.time_zone), 1)
    dates = date_range(tomorrow, days)

    async with session_factory() as db:
        roster = await load_provider_roster(db, business.id)
        generate = _generator_for(roster, step_minutes)
        slots = {date_str: generate(date_str) for date_str in dates}

        store = AvailabilitySlotsStore(db)
        await store.replace(business.id, slots)
        await db.commit()

    logger.info(
        "Generated initial availability for %s: %s to %s (%d providers with calendars)",
        str(business.id)[:8], dates[0] if dates else "-", dates[-1] if dates else "-",
        len(roster.calendars), extra=log_extra(business_id=business.id),
    )
    return dates

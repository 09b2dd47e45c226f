"""
Slot generator - turns provider working-hours calendars into a per-duration
table of bookable start times with provider-availability counts for one date.

Pure and synchronous: no I/O, no timezone conversion. The caller supplies a
date that is already business-local.

Output shape (DaySlotTable):
    {"30": [["09:00", 2], ["09:30", 2], ...], "45": [...], ..., "360": []}
Every supported duration key is always present; zero counts are omitted.
"""
import logging
from collections import Counter
from enum import IntEnum
from typing import Any, Iterable, Mapping, Optional

from src.schemas.calendar import CalendarConfig, minutes_to_time
from src.utils.timezone import weekday_key

logger = logging.getLogger(__name__)

DEFAULT_SLOT_STEP_MINUTES = 30


class DurationBucket(IntEnum):
    """Appointment lengths (minutes) for which slots are generated independently."""
    MIN_30 = 30
    MIN_45 = 45
    MIN_60 = 60
    MIN_90 = 90
    MIN_120 = 120
    MIN_150 = 150
    MIN_180 = 180
    MIN_240 = 240
    MIN_300 = 300
    MIN_360 = 360

    @property
    def key(self) -> str:
        return str(self.value)


DURATION_BUCKETS: tuple[DurationBucket, ...] = tuple(DurationBucket)
DURATION_KEYS: tuple[str, ...] = tuple(b.key for b in DURATION_BUCKETS)

DaySlotTable = dict[str, list[list]]


def empty_day_table() -> DaySlotTable:
    """All duration buckets present, all empty."""
    return {key: [] for key in DURATION_KEYS}


def ensure_complete_buckets(table: Optional[Mapping[str, Any]]) -> DaySlotTable:
    """Fill in any missing duration bucket with an empty sequence."""
    completed = empty_day_table()
    for key, entries in (table or {}).items():
        if key in completed:
            completed[key] = [list(entry) for entry in entries or []]
    return completed


def _provider_key(provider: Any) -> Any:
    return getattr(provider, "id", provider)


def _candidate_starts(
    start_minutes: int,
    usable_end_minutes: int,
    duration_minutes: int,
    step_minutes: int,
) -> Iterable[int]:
    """Start times on the step grid anchored at start with t + duration <= usable end."""
    cursor = start_minutes
    while cursor + duration_minutes <= usable_end_minutes:
        yield cursor
        cursor += step_minutes


def generate_day_slots(
    providers: Iterable[Any],
    calendar_settings_by_provider: Mapping[Any, Optional[CalendarConfig]],
    target_date: str,
    step_minutes: int = DEFAULT_SLOT_STEP_MINUTES,
) -> DaySlotTable:
    """
    Build the DaySlotTable for target_date.

    Candidate times are the union of every working provider's step grid.
    At each candidate t the count is the number of providers whose buffered
    window covers [t, t + d), so providers starting off each other's grid
    still count at each other's times.
    """
    if step_minutes <= 0:
        raise ValueError(f"step_minutes must be positive, got {step_minutes}")

    day_key = weekday_key(target_date)

    # (start, end - buffer) per provider working that weekday
    windows: list[tuple[int, int]] = []
    for provider in providers:
        config = calendar_settings_by_provider.get(_provider_key(provider))
        if config is None:
            continue
        window = config.window_for(day_key)
        if window is None:
            continue
        windows.append((window.start_minutes, window.end_minutes - config.buffer_minutes))

    table = empty_day_table()
    for bucket in DURATION_BUCKETS:
        candidates = set()
        for start, usable_end in windows:
            candidates.update(_candidate_starts(start, usable_end, bucket.value, step_minutes))

        counts = Counter()
        for t in candidates:
            counts[t] = sum(
                1 for start, usable_end in windows
                if start <= t and t + bucket.value <= usable_end
            )
        table[bucket.key] = [
            [minutes_to_time(t), count]
            for t, count in sorted(counts.items())
            if count >= 1
        ]

    logger.debug(
        "Generated slots for %s (%s): %d working providers, %d 60-min starts",
        target_date, day_key, len(windows), len(table[DurationBucket.MIN_60.key]),
    )
    return table

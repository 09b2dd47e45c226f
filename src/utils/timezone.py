"""
Timezone and calendar-date utilities for availability scheduling.

All functions are pure: the current instant is always passed in, never read
from the wall clock. Date strings are business-local calendar dates in
YYYY-MM-DD form. Malformed dates and unknown timezones raise immediately.
"""
import re
from datetime import date, datetime, timedelta, timezone
from functools import lru_cache
from typing import Iterable, Union
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

DATE_FORMAT = "%Y-%m-%d"
_DATE_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")

WEEKDAY_KEYS = ("mon", "tue", "wed", "thu", "fri", "sat", "sun")

# Granularity of midnight detection; triggers fire on minute boundaries
MIDNIGHT_TICK = timedelta(minutes=1)

DateLike = Union[str, date, datetime]


class DateUtilsError(ValueError):
    """Base class for date/timezone input errors."""
    pass


class InvalidDateError(DateUtilsError):
    """Raised for malformed date strings or unusable instants."""
    pass


class InvalidTimezoneError(DateUtilsError):
    """Raised for unknown IANA timezone identifiers."""
    pass


@lru_cache(maxsize=512)
def get_zoneinfo(timezone_str: str) -> ZoneInfo:
    """
    Resolve an IANA timezone identifier.
    Only the ZoneInfo object is cached; offsets are always computed per instant.
    """
    if not timezone_str or not isinstance(timezone_str, str):
        raise InvalidTimezoneError(f"Missing timezone identifier: {timezone_str!r}")
    try:
        return ZoneInfo(timezone_str)
    except (ZoneInfoNotFoundError, ValueError) as e:
        raise InvalidTimezoneError(f"Unknown timezone: {timezone_str}") from e


def is_valid_timezone(timezone_str: str) -> bool:
    try:
        get_zoneinfo(timezone_str)
        return True
    except InvalidTimezoneError:
        return False


def ensure_utc(instant: datetime) -> datetime:
    """Normalize an aware datetime to UTC. Naive datetimes are rejected."""
    if not isinstance(instant, datetime):
        raise InvalidDateError(f"Expected datetime, got {type(instant).__name__}")
    if instant.tzinfo is None or instant.tzinfo.utcoffset(instant) is None:
        raise InvalidDateError(f"Instant must be timezone-aware: {instant.isoformat()}")
    return instant.astimezone(timezone.utc)


def parse_utc_instant(value: str) -> datetime:
    """
    Parse an ISO-8601 instant such as "2025-01-15T13:00:00.000Z".
    The string must carry an explicit offset or a trailing Z.
    """
    if not value or not isinstance(value, str):
        raise InvalidDateError(f"Invalid instant: {value!r}")
    raw = value.strip()
    if raw.endswith(("Z", "z")):
        raw = raw[:-1] + "+00:00"
    try:
        parsed = datetime.fromisoformat(raw)
    except ValueError as e:
        raise InvalidDateError(f"Invalid instant: {value}") from e
    return ensure_utc(parsed)


def truncate_to_minute(instant: datetime) -> datetime:
    return ensure_utc(instant).replace(second=0, microsecond=0)


def to_local(instant: datetime, timezone_str: str) -> datetime:
    """Project a UTC instant into the business timezone (offset recomputed per instant)."""
    return ensure_utc(instant).astimezone(get_zoneinfo(timezone_str))


def is_local_midnight(instant: datetime, timezone_str: str) -> bool:
    """
    True during the first minute of a new local calendar date (seconds ignored).

    Normally that is 00:00. Where a DST change skips midnight (America/Santiago
    springs forward 23:59 -> 01:00) it is the first wall-clock minute that exists.
    A fall-back that repeats 00:00 still fires once, on the first pass.
    """
    current = truncate_to_minute(instant)
    return calendar_date(current, timezone_str) != calendar_date(current - MIDNIGHT_TICK, timezone_str)


def calendar_date(instant: datetime, timezone_str: str) -> str:
    """Business-local calendar date (YYYY-MM-DD) of a UTC instant."""
    return to_local(instant, timezone_str).date().isoformat()


def is_valid_date_string(value) -> bool:
    if not isinstance(value, str) or not _DATE_RE.match(value):
        return False
    try:
        date.fromisoformat(value)
    except ValueError:
        return False
    return True


def parse_date_string(value: str) -> date:
    if not is_valid_date_string(value):
        raise InvalidDateError(f"Invalid date string (expected YYYY-MM-DD): {value!r}")
    return date.fromisoformat(value)


def add_days(value: DateLike, days: int) -> DateLike:
    """
    Calendar arithmetic: returns the same type it was given.

    For aware datetimes the wall-clock time is kept and the offset is
    recomputed, so crossing a DST change never shifts the local date.
    """
    if isinstance(value, str):
        return (parse_date_string(value) + timedelta(days=days)).isoformat()
    if isinstance(value, datetime):
        if value.tzinfo is None:
            raise InvalidDateError(f"Instant must be timezone-aware: {value.isoformat()}")
        # Aware + timedelta is wall-clock arithmetic in Python; normalize the fold/offset.
        shifted = value + timedelta(days=days)
        return shifted.astimezone(timezone.utc).astimezone(value.tzinfo)
    if isinstance(value, date):
        return value + timedelta(days=days)
    raise InvalidDateError(f"Unsupported value for add_days: {value!r}")


def yesterday(value: DateLike) -> DateLike:
    return add_days(value, -1)


def weekday_key(date_str: str) -> str:
    """'2025-01-13' -> 'mon'"""
    return WEEKDAY_KEYS[parse_date_string(date_str).weekday()]


def date_range(start: str, count: int) -> list[str]:
    """count consecutive calendar dates beginning at start."""
    first = parse_date_string(start)
    return [(first + timedelta(days=offset)).isoformat() for offset in range(count)]


def next_date_after_existing_keys(
    existing_keys: Iterable[str],
    now: datetime,
    timezone_str: str,
) -> str:
    """
    Date immediately following the latest key present.
    With no keys, falls back to today in timezone_str.
    """
    keys = list(existing_keys)
    if not keys:
        return calendar_date(now, timezone_str)
    latest = max(parse_date_string(k) for k in keys)
    return (latest + timedelta(days=1)).isoformat()

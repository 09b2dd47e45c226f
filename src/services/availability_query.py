"""
Read-side availability lookups used by the booking assistant.
Answers "what's open on this date for a job of N minutes" from the stored slot table.
"""
import logging
from typing import Mapping, Optional

from src.schemas.availability import DayAvailability, SlotOption
from src.schemas.calendar import time_to_minutes
from src.services.slot_generator import DURATION_BUCKETS
from src.utils.timezone import is_valid_date_string, parse_date_string

logger = logging.getLogger(__name__)


def find_best_duration_match(duration_minutes: int) -> int:
    """
    Smallest supported bucket that fits the requested duration.
    Requests longer than the largest bucket use the largest bucket.
    """
    if duration_minutes <= 0:
        raise ValueError(f"Duration must be positive, got {duration_minutes}")
    for bucket in DURATION_BUCKETS:
        if bucket.value >= duration_minutes:
            return bucket.value
    return DURATION_BUCKETS[-1].value


def format_time_for_display(time_str: str) -> str:
    """'13:30' -> '1:30 PM'"""
    minutes = time_to_minutes(time_str)
    hour, minute = divmod(minutes, 60)
    suffix = "AM" if hour < 12 else "PM"
    hour12 = hour % 12 or 12
    return f"{hour12}:{minute:02d} {suffix}"


def _ordinal_suffix(day: int) -> str:
    if 11 <= day <= 13:
        return "th"
    return {1: "st", 2: "nd", 3: "rd"}.get(day % 10, "th")


def format_date_for_display(date_str: str) -> str:
    """'2025-01-13' -> 'Monday, 13th January'"""
    d = parse_date_string(date_str)
    return f"{d.strftime('%A')}, {d.day}{_ordinal_suffix(d.day)} {d.strftime('%B')}"


def format_availability_message(date_str: str, slots: list[SlotOption]) -> str:
    display_date = format_date_for_display(date_str)
    if not slots:
        return f"Unfortunately, we're fully booked on {display_date}."
    if len(slots) == 1:
        return f"On {display_date}, I have {format_time_for_display(slots[0].time)} available."
    if len(slots) == 2:
        first, second = (format_time_for_display(s.time) for s in slots)
        return f"On {display_date}, I have {first} and {second} available."
    first = format_time_for_display(slots[0].time)
    last = format_time_for_display(slots[-1].time)
    return f"On {display_date}, I have availability from {first} to {last}."


def check_day_availability(
    slots: Mapping[str, dict],
    date_str: str,
    service_duration_minutes: Optional[int],
) -> DayAvailability:
    """
    Look up bookable start times for one business-local date.
    Bad input comes back as success=False with an error, never as an exception.
    """
    if not is_valid_date_string(date_str):
        return DayAvailability(success=False, date=str(date_str), error="Invalid date format")
    if not service_duration_minutes or service_duration_minutes <= 0:
        return DayAvailability(
            success=False,
            date=date_str,
            formatted_message="Service duration required",
            error="Missing service duration",
        )

    bucket = find_best_duration_match(service_duration_minutes)
    day_table = slots.get(date_str)
    if day_table is None:
        return DayAvailability(
            success=False,
            date=date_str,
            duration_minutes=bucket,
            error="Date outside the availability window",
        )

    options = [
        SlotOption(time=time_str, provider_count=count)
        for time_str, count in day_table.get(str(bucket), [])
        if count >= 1
    ]
    options.sort(key=lambda s: time_to_minutes(s.time))

    return DayAvailability(
        success=True,
        date=date_str,
        duration_minutes=bucket,
        available_slots=options,
        formatted_message=format_availability_message(date_str, options),
    )

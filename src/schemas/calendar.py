"""
Calendar settings schema - validated view of a provider's working hours
and scheduling preferences as stored in calendar_settings JSONB columns.
"""
import re
from typing import Optional
from pydantic import BaseModel, ConfigDict, Field, AliasChoices, field_validator, model_validator

from src.utils.timezone import WEEKDAY_KEYS

_TIME_RE = re.compile(r"^([01]\d|2[0-3]):([0-5]\d)$")


def time_to_minutes(value: str) -> int:
    """'09:30' -> 570"""
    match = _TIME_RE.match(value or "")
    if not match:
        raise ValueError(f"Invalid time (expected HH:MM, 24h): {value!r}")
    return int(match.group(1)) * 60 + int(match.group(2))


def minutes_to_time(minutes: int) -> str:
    """570 -> '09:30'"""
    return f"{minutes // 60:02d}:{minutes % 60:02d}"


class WorkingWindow(BaseModel):
    start: str
    end: str

    @field_validator("start", "end")
    @classmethod
    def _check_format(cls, v: str) -> str:
        time_to_minutes(v)
        return v

    @model_validator(mode="after")
    def _check_order(self) -> "WorkingWindow":
        if self.start_minutes >= self.end_minutes:
            raise ValueError(f"Working window start {self.start} must be before end {self.end}")
        return self

    @property
    def start_minutes(self) -> int:
        return time_to_minutes(self.start)

    @property
    def end_minutes(self) -> int:
        return time_to_minutes(self.end)


class SchedulingSettings(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="allow")

    # "bufferTime" is the legacy key written by older onboarding flows
    buffer_minutes: int = Field(
        default=0,
        ge=0,
        validation_alias=AliasChoices("buffer_minutes", "bufferMinutes", "bufferTime"),
    )


class CalendarConfig(BaseModel):
    """A provider's weekly working hours plus scheduling preferences."""

    working_hours: dict[str, Optional[WorkingWindow]] = Field(default_factory=dict)
    scheduling_settings: SchedulingSettings = Field(default_factory=SchedulingSettings)

    @field_validator("working_hours")
    @classmethod
    def _check_weekdays(cls, v: dict) -> dict:
        unknown = [k for k in v if k not in WEEKDAY_KEYS]
        if unknown:
            raise ValueError(f"Unknown weekday keys: {unknown}")
        return v

    @classmethod
    def from_row(cls, working_hours: Optional[dict], settings: Optional[dict]) -> "CalendarConfig":
        return cls(
            working_hours=working_hours or {},
            scheduling_settings=SchedulingSettings.model_validate(settings or {}),
        )

    def window_for(self, day_key: str) -> Optional[WorkingWindow]:
        """Working window for a weekday key; None for a day off or an unlisted day."""
        return self.working_hours.get(day_key)

    @property
    def buffer_minutes(self) -> int:
        return self.scheduling_settings.buffer_minutes

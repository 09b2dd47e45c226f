"""
Availability response schemas - what the booking layer and API see.
"""
from typing import Optional
from pydantic import AliasChoices, BaseModel, Field


class SlotOption(BaseModel):
    time: str
    provider_count: int


class DayAvailability(BaseModel):
    success: bool
    date: str
    duration_minutes: Optional[int] = None
    available_slots: list[SlotOption] = Field(default_factory=list)
    formatted_message: str = ""
    error: Optional[str] = None


class RolloverRequest(BaseModel):
    # ISO-8601 instant with offset or Z; defaults to the trigger's wall clock
    current_utc_time: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("current_utc_time", "currentUtcTime"),
    )


class RolloverResponse(BaseModel):
    success: bool
    message: str
    businesses: int = 0
    written: int = 0
    failed: dict[str, str] = Field(default_factory=dict)
    execution_time: str
    timestamp: str

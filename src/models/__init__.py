"""
Database models - import all models here so Alembic can discover them.
"""
from src.models.business import Business
from src.models.provider import Provider
from src.models.calendar_settings import CalendarSettings
from src.models.availability_slots import AvailabilitySlots

__all__ = [
    "Business",
    "Provider",
    "CalendarSettings",
    "AvailabilitySlots",
]

"""
Read-only access to businesses, provider rosters and calendar settings.
The surrounding platform owns these tables; availability code never writes them.
"""
import logging
import uuid
from dataclasses import dataclass, field

from pydantic import ValidationError
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from src.models.business import Business
from src.models.provider import Provider
from src.models.calendar_settings import CalendarSettings
from src.schemas.calendar import CalendarConfig
from src.utils.logging import log_extra

logger = logging.getLogger(__name__)


@dataclass
class ProviderRoster:
    """Providers of one business plus their parsed calendar settings."""
    business_id: uuid.UUID
    providers: list[Provider] = field(default_factory=list)
    calendars: dict[uuid.UUID, CalendarConfig] = field(default_factory=dict)

    @property
    def is_empty(self) -> bool:
        return not self.calendars


async def list_active_businesses(db: AsyncSession) -> list[Business]:
    result = await db.execute(
        select(Business).where(Business.is_active == True).order_by(Business.created_at)  # noqa: E712
    )
    return list(result.scalars().all())


async def get_business(db: AsyncSession, business_id: uuid.UUID) -> Business | None:
    return await db.get(Business, business_id)


async def load_provider_roster(db: AsyncSession, business_id: uuid.UUID) -> ProviderRoster:
    """
    Active providers for a business with their calendar settings.

    Providers without settings are kept in the roster but contribute nothing.
    Settings that fail validation are logged and treated as missing.
    """
    result = await db.execute(
        select(Provider, CalendarSettings)
        .outerjoin(CalendarSettings, CalendarSettings.provider_id == Provider.id)
        .where(Provider.business_id == business_id, Provider.is_active == True)  # noqa: E712
        .order_by(Provider.created_at)
    )

    roster = ProviderRoster(business_id=business_id)
    for provider, settings_row in result.all():
        roster.providers.append(provider)
        if settings_row is None:
            continue
        try:
            roster.calendars[provider.id] = CalendarConfig.from_row(
                settings_row.working_hours, settings_row.settings
            )
        except ValidationError as e:
            logger.warning(
                "Invalid calendar settings for provider %s, excluding from availability: %s",
                str(provider.id)[:8], str(e),
                extra=log_extra(business_id=business_id, provider_id=provider.id),
            )

    return roster

"""
Availability store - persistence for the one-row-per-business slot table.

Writes are conditional on the version that was read, so two overlapping
rollovers for the same business cannot both commit. The loser gets a
ConcurrentUpdateError; its work is redone by the next scheduled run.
"""
import logging
import uuid
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from src.models.availability_slots import AvailabilitySlots

logger = logging.getLogger(__name__)


class ConcurrentUpdateError(Exception):
    """Raised when the row changed between read and write."""
    pass


class AvailabilitySlotsStore:
    """Point reads/writes of AvailabilitySlots keyed by business. Caller owns the commit."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def find_by_business(self, business_id: uuid.UUID) -> Optional[AvailabilitySlots]:
        result = await self.db.execute(
            select(AvailabilitySlots).where(AvailabilitySlots.business_id == business_id)
        )
        return result.scalar_one_or_none()

    async def upsert(
        self,
        business_id: uuid.UUID,
        slots: dict,
        expected_version: Optional[int] = None,
    ) -> int:
        """
        Write the full slot table in a single statement. Returns the new version.

        expected_version=None means "no row was read": insert, failing on an
        existing row. Otherwise update only if the stored version still matches.
        """
        if expected_version is None:
            return await self._insert(business_id, slots)

        result = await self.db.execute(
            update(AvailabilitySlots)
            .where(
                AvailabilitySlots.business_id == business_id,
                AvailabilitySlots.version == expected_version,
            )
            .values(
                slots=slots,
                version=expected_version + 1,
                updated_at=datetime.now(timezone.utc),
            )
        )
        if result.rowcount == 0:
            raise ConcurrentUpdateError(
                f"Availability for business {str(business_id)[:8]} changed since version {expected_version}"
            )
        return expected_version + 1

    async def _insert(self, business_id: uuid.UUID, slots: dict) -> int:
        row = AvailabilitySlots(business_id=business_id, slots=slots, version=1)
        self.db.add(row)
        try:
            await self.db.flush()
        except IntegrityError as e:
            raise ConcurrentUpdateError(
                f"Availability for business {str(business_id)[:8]} was created concurrently"
            ) from e
        return 1

    async def replace(self, business_id: uuid.UUID, slots: dict) -> int:
        """Unconditional overwrite, used by onboarding and bulk regeneration."""
        existing = await self.find_by_business(business_id)
        if existing is None:
            return await self._insert(business_id, slots)
        return await self.upsert(business_id, slots, expected_version=existing.version)

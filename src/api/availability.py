"""
Availability API - read access to a business's generated slot table.
"""
import logging
import uuid
from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession

from src.database import get_db
from src.schemas.availability import DayAvailability
from src.services.availability_query import check_day_availability
from src.services.availability_store import AvailabilitySlotsStore
from src.services.roster import get_business

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/v1/availability", tags=["availability"])


def _parse_business_id(business_id: str) -> uuid.UUID:
    try:
        return uuid.UUID(business_id)
    except ValueError:
        raise HTTPException(status_code=400, detail="Invalid business id")


@router.get("/{business_id}", response_model=DayAvailability)
async def get_day_availability(
    business_id: str,
    date: str = Query(..., description="Business-local date, YYYY-MM-DD"),
    duration_minutes: int = Query(..., gt=0),
    db: AsyncSession = Depends(get_db),
):
    """Bookable start times on one date for a job of duration_minutes."""
    bid = _parse_business_id(business_id)
    if await get_business(db, bid) is None:
        raise HTTPException(status_code=404, detail="Business not found")

    record = await AvailabilitySlotsStore(db).find_by_business(bid)
    slots = record.slots if record is not None else {}

    result = check_day_availability(slots, date, duration_minutes)
    if not result.success and result.error == "Invalid date format":
        raise HTTPException(status_code=400, detail=result.error)
    return result


@router.get("/{business_id}/window")
async def get_availability_window(
    business_id: str,
    db: AsyncSession = Depends(get_db),
):
    """Dates currently held for a business (first, last, count)."""
    bid = _parse_business_id(business_id)
    business = await get_business(db, bid)
    if business is None:
        raise HTTPException(status_code=404, detail="Business not found")

    record = await AvailabilitySlotsStore(db).find_by_business(bid)
    dates = sorted(record.slots) if record is not None else []
    return {
        "business_id": str(bid),
        "time_zone": business.time_zone,
        "first_date": dates[0] if dates else None,
        "last_date": dates[-1] if dates else None,
        "date_count": len(dates),
        "version": record.version if record is not None else None,
        "updated_at": record.updated_at.isoformat() if record is not None and record.updated_at else None,
    }

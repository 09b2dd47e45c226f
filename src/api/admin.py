"""
Admin API - onboarding-time availability generation.
"""
import logging
import uuid
from datetime import datetime, timezone
from typing import Optional
from fastapi import APIRouter, Depends, Header, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession

from src.api.cron import verify_cron_secret
from src.database import get_db
from src.services.availability_store import ConcurrentUpdateError
from src.services.rollover import seed_business_availability
from src.services.roster import get_business, list_active_businesses
from src.utils.timezone import is_valid_timezone

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/v1/admin", tags=["admin"])


@router.get("/businesses")
async def list_businesses(
    authorization: Optional[str] = Header(default=None),
    db: AsyncSession = Depends(get_db),
):
    """List active businesses with their timezone."""
    verify_cron_secret(authorization)
    businesses = await list_active_businesses(db)
    return [
        {
            "id": str(b.id),
            "name": b.name,
            "time_zone": b.time_zone,
            "valid_time_zone": is_valid_timezone(b.time_zone),
            "created_at": b.created_at.isoformat() if b.created_at else None,
        }
        for b in businesses
    ]


@router.post("/businesses/{business_id}/availability")
async def generate_business_availability(
    business_id: str,
    days: Optional[int] = Query(default=None, gt=0, le=366),
    authorization: Optional[str] = Header(default=None),
    db: AsyncSession = Depends(get_db),
):
    """Generate (or regenerate) a business's window starting tomorrow, local time."""
    verify_cron_secret(authorization)
    try:
        bid = uuid.UUID(business_id)
    except ValueError:
        raise HTTPException(status_code=400, detail="Invalid business id")

    business = await get_business(db, bid)
    if business is None:
        raise HTTPException(status_code=404, detail="Business not found")
    if not is_valid_timezone(business.time_zone):
        raise HTTPException(status_code=400, detail=f"Invalid timezone: {business.time_zone}")

    try:
        dates = await seed_business_availability(business, datetime.now(timezone.utc), days=days)
    except ConcurrentUpdateError:
        raise HTTPException(status_code=409, detail="Availability is being updated, retry shortly")
    return {
        "business_id": str(bid),
        "first_date": dates[0] if dates else None,
        "last_date": dates[-1] if dates else None,
        "date_count": len(dates),
    }

"""
Tests for src/api/availability.py and src/api/admin.py - read access to the
slot table and onboarding-time generation.
"""
import uuid
import pytest
from unittest.mock import AsyncMock, MagicMock, patch
from fastapi import HTTPException

from src.api.admin import generate_business_availability, list_businesses
from src.api.availability import get_availability_window, get_day_availability
from src.services.availability_store import AvailabilitySlotsStore, ConcurrentUpdateError
from src.services.slot_generator import empty_day_table


async def _store_slots(session_factory, business_id, slots):
    async with session_factory() as db:
        await AvailabilitySlotsStore(db).upsert(business_id, slots)
        await db.commit()


def _open_settings():
    settings = MagicMock()
    settings.cron_secret = ""
    return settings


class TestGetDayAvailability:
    async def test_returns_slots(self, db, session_factory, make_business):
        business = await make_business()
        table = empty_day_table()
        table["60"] = [["09:00", 2]]
        await _store_slots(session_factory, business.id, {"2025-01-16": table})

        result = await get_day_availability(
            business_id=str(business.id), date="2025-01-16", duration_minutes=60, db=db,
        )

        assert result.success is True
        assert result.available_slots[0].time == "09:00"
        assert result.available_slots[0].provider_count == 2

    async def test_no_table_yet(self, db, make_business):
        business = await make_business()
        result = await get_day_availability(
            business_id=str(business.id), date="2025-01-16", duration_minutes=60, db=db,
        )
        assert result.success is False
        assert result.error == "Date outside the availability window"

    async def test_bad_business_id_is_400(self, db):
        with pytest.raises(HTTPException) as exc:
            await get_day_availability(business_id="nope", date="2025-01-16", duration_minutes=60, db=db)
        assert exc.value.status_code == 400

    async def test_unknown_business_is_404(self, db):
        with pytest.raises(HTTPException) as exc:
            await get_day_availability(
                business_id=str(uuid.uuid4()), date="2025-01-16", duration_minutes=60, db=db,
            )
        assert exc.value.status_code == 404

    async def test_bad_date_is_400(self, db, make_business):
        business = await make_business()
        with pytest.raises(HTTPException) as exc:
            await get_day_availability(business_id=str(business.id), date="16-01-2025", duration_minutes=60, db=db)
        assert exc.value.status_code == 400


class TestGetAvailabilityWindow:
    async def test_summary(self, db, session_factory, make_business):
        business = await make_business("Europe/London")
        await _store_slots(session_factory, business.id, {
            "2025-01-16": empty_day_table(),
            "2025-01-15": empty_day_table(),
        })

        result = await get_availability_window(business_id=str(business.id), db=db)

        assert result["time_zone"] == "Europe/London"
        assert result["first_date"] == "2025-01-15"
        assert result["last_date"] == "2025-01-16"
        assert result["date_count"] == 2
        assert result["version"] == 1

    async def test_empty(self, db, make_business):
        business = await make_business()
        result = await get_availability_window(business_id=str(business.id), db=db)
        assert result["date_count"] == 0
        assert result["first_date"] is None


class TestAdmin:
    async def test_list_businesses(self, db, make_business):
        await make_business("Europe/London")
        await make_business("Not/AZone")
        with patch("src.api.cron.get_settings", return_value=_open_settings()):
            result = await list_businesses(authorization=None, db=db)
        assert {b["time_zone"]: b["valid_time_zone"] for b in result} == {
            "Europe/London": True, "Not/AZone": False,
        }

    async def test_generate_calls_seed(self, db, make_business):
        business = await make_business()
        with (
            patch("src.api.cron.get_settings", return_value=_open_settings()),
            patch(
                "src.api.admin.seed_business_availability",
                new_callable=AsyncMock,
                return_value=["2025-01-17", "2025-01-18"],
            ) as mock_seed,
        ):
            result = await generate_business_availability(
                business_id=str(business.id), days=2, authorization=None, db=db,
            )

        assert mock_seed.call_args.kwargs["days"] == 2
        assert result["first_date"] == "2025-01-17"
        assert result["date_count"] == 2

    async def test_generate_conflict_is_409(self, db, make_business):
        business = await make_business()
        with (
            patch("src.api.cron.get_settings", return_value=_open_settings()),
            patch(
                "src.api.admin.seed_business_availability",
                new_callable=AsyncMock,
                side_effect=ConcurrentUpdateError("busy"),
            ),
        ):
            with pytest.raises(HTTPException) as exc:
                await generate_business_availability(
                    business_id=str(business.id), days=None, authorization=None, db=db,
                )
        assert exc.value.status_code == 409

    async def test_generate_invalid_timezone_is_400(self, db, make_business):
        business = await make_business("Not/AZone")
        with patch("src.api.cron.get_settings", return_value=_open_settings()):
            with pytest.raises(HTTPException) as exc:
                await generate_business_availability(
                    business_id=str(business.id), days=None, authorization=None, db=db,
                )
        assert exc.value.status_code == 400

    async def test_requires_secret_when_configured(self, db):
        settings = MagicMock()
        settings.cron_secret = "s3cret"
        with patch("src.api.cron.get_settings", return_value=settings):
            with pytest.raises(HTTPException) as exc:
                await list_businesses(authorization="Bearer nope", db=db)
        assert exc.value.status_code == 401

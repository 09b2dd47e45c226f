"""
Test configuration and fixtures.
Uses SQLite (aiosqlite) for fast tests. Redis and alert webhooks are mocked.
"""
import os

os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")

import uuid
import pytest
from unittest.mock import AsyncMock, patch
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker
from sqlalchemy.ext.compiler import compiles
from sqlalchemy.dialects.postgresql import JSONB

from src.database import Base
from src.models import Business, Provider, CalendarSettings


# Register JSONB as JSON for SQLite compatibility in tests
@compiles(JSONB, "sqlite")
def _compile_jsonb_sqlite(type_, compiler, **kw):
    return "JSON"


WEEKDAY_HOURS = {
    "mon": {"start": "09:00", "end": "17:00"},
    "tue": {"start": "09:00", "end": "17:00"},
    "wed": {"start": "09:00", "end": "17:00"},
    "thu": {"start": "09:00", "end": "17:00"},
    "fri": {"start": "09:00", "end": "17:00"},
    "sat": None,
    "sun": None,
}

WEEKEND_HOURS = {
    "mon": None,
    "tue": None,
    "wed": None,
    "thu": None,
    "fri": None,
    "sat": {"start": "07:00", "end": "13:00"},
    "sun": {"start": "07:00", "end": "13:00"},
}


@pytest.fixture
async def session_factory(tmp_path):
    """
    File-backed SQLite so concurrent rollover tasks (one session each)
    see the same database.
    """
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'availability.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    yield factory
    await engine.dispose()


@pytest.fixture
async def db(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture(autouse=True)
def mock_redis():
    """Mock for async Redis - prevents real Redis calls in tests."""
    with patch("src.utils.heartbeat.get_redis") as mock:
        redis_mock = AsyncMock()
        redis_mock.set = AsyncMock(return_value=True)
        redis_mock.get = AsyncMock(return_value=None)
        redis_mock.ping = AsyncMock(return_value=True)
        mock.return_value = redis_mock
        yield redis_mock


@pytest.fixture
def make_business(db):
    async def _make(time_zone="Australia/Melbourne", name=None, is_active=True):
        business = Business(
            id=uuid.uuid4(),
            name=name or f"Business {time_zone}",
            time_zone=time_zone,
            is_active=is_active,
        )
        db.add(business)
        await db.commit()
        return business
    return _make


@pytest.fixture
def make_provider(db):
    async def _make(business, working_hours=None, settings=None, name="Provider", is_active=True):
        provider = Provider(
            id=uuid.uuid4(),
            business_id=business.id,
            name=name,
            is_active=is_active,
        )
        db.add(provider)
        await db.flush()
        if working_hours is not None:
            db.add(CalendarSettings(
                provider_id=provider.id,
                working_hours=working_hours,
                settings=settings if settings is not None else {"bufferMinutes": 0},
            ))
        await db.commit()
        return provider
    return _make

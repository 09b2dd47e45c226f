"""
Tests for src/database.py and src/config.py.
"""
import pytest
from unittest.mock import MagicMock
from pydantic import ValidationError

from src.config import Settings
from src.database import _engine_options


def _settings(url, env="production"):
    return MagicMock(database_url=url, app_env=env, database_pool_size=20, database_max_overflow=10)


class TestEngineOptions:
    def test_postgres_gets_pool_limits(self):
        options = _engine_options(_settings("postgresql+asyncpg://u:p@db/availability"))
        assert options["pool_size"] == 20
        assert options["max_overflow"] == 10
        assert options["pool_pre_ping"] is True
        assert options["echo"] is False

    def test_sqlite_skips_pool_limits(self):
        options = _engine_options(_settings("sqlite+aiosqlite:///./local.db", env="development"))
        assert "pool_size" not in options
        assert options["echo"] is True


class TestSettings:
    def test_defaults(self, monkeypatch):
        monkeypatch.setenv("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
        settings = Settings(_env_file=None)
        assert settings.availability_window_days == 30
        assert settings.slot_step_minutes == 30
        assert settings.availability_rollover_worker_enabled is False
        assert settings.cron_secret == ""

    def test_env_overrides(self, monkeypatch):
        monkeypatch.setenv("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
        monkeypatch.setenv("AVAILABILITY_WINDOW_DAYS", "45")
        monkeypatch.setenv("AVAILABILITY_ROLLOVER_WORKER_ENABLED", "true")
        settings = Settings(_env_file=None)
        assert settings.availability_window_days == 45
        assert settings.availability_rollover_worker_enabled is True

    def test_rejects_zero_window(self, monkeypatch):
        monkeypatch.setenv("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
        monkeypatch.setenv("AVAILABILITY_WINDOW_DAYS", "0")
        with pytest.raises(ValidationError):
            Settings(_env_file=None)

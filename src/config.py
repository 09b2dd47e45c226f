"""
Application configuration using pydantic-settings.
All config is validated at startup - fail fast if anything is missing.
"""
from pydantic import Field
from pydantic_settings import BaseSettings
from functools import lru_cache


class Settings(BaseSettings):
    # Application
    app_env: str = "development"
    app_host: str = "0.0.0.0"
    app_port: int = 8000
    log_level: str = "INFO"
    allowed_origins: str = ""  # Comma-separated CORS origins (auto-includes localhost in dev)

    # Database
    database_url: str
    database_pool_size: int = 20
    database_max_overflow: int = 10

    # Redis (worker heartbeats, alert cooldowns)
    redis_url: str = "redis://localhost:6379/0"

    # Cron trigger - Bearer secret required on /cron/availability-rollover when set
    cron_secret: str = ""

    # Availability window
    availability_window_days: int = Field(default=30, ge=1, le=366)
    slot_step_minutes: int = Field(default=30, ge=5, le=120)
    rollover_max_concurrency: int = Field(default=10, ge=1)

    # In-process trigger (off by default; an external scheduler usually calls the cron endpoint)
    availability_rollover_worker_enabled: bool = False

    # Sentry
    sentry_dsn: str = ""

    # Alerting
    alert_webhook_url: str = ""  # Discord/Slack webhook URL for critical alerts

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"


@lru_cache()
def get_settings() -> Settings:
    return Settings()

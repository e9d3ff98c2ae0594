"""Application configuration via pydantic-settings."""

from __future__ import annotations

from functools import lru_cache
from typing import List, Literal, Optional

from pydantic import Field, computed_field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Fleet booking settings, read from the environment or a ``.env`` file."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Application
    app_name: str = "Fleet Booking"
    app_version: str = "1.0.0"
    environment: Literal["development", "staging", "production"] = "development"
    debug: bool = False
    api_prefix: str = "/api/v1"
    log_level: str = "INFO"
    cors_origins: List[str] = ["http://localhost:3000", "http://localhost:8080"]

    # Uvicorn
    host: str = "0.0.0.0"
    port: int = 8000
    workers: int = 4

    # PostgreSQL (bookings, vehicles, drivers)
    postgres_host: str = "localhost"
    postgres_port: int = 5432
    postgres_user: str = "fleet"
    postgres_password: str = Field(default="fleet_secret")
    postgres_db: str = "fleet_booking"
    db_pool_size: int = 20
    db_max_overflow: int = 10
    database_url_override: Optional[str] = None  # e.g. sqlite+aiosqlite:// for tests

    @computed_field
    @property
    def database_url(self) -> str:
        """Async SQLAlchemy URL; the override wins when set."""
        if self.database_url_override:
            return self.database_url_override
        return (
            f"postgresql+asyncpg://{self.postgres_user}:{self.postgres_password}"
            f"@{self.postgres_host}:{self.postgres_port}/{self.postgres_db}"
        )

    # Celery broker and result backend (Redis)
    redis_host: str = "localhost"
    redis_port: int = 6379
    redis_password: Optional[str] = None
    redis_db: int = 0
    celery_always_eager: bool = False  # run tasks inline

    @computed_field
    @property
    def redis_url(self) -> str:
        auth = f":{self.redis_password}@" if self.redis_password else ""
        return f"redis://{auth}{self.redis_host}:{self.redis_port}/{self.redis_db}"

    # Booking policy
    auto_approve_bookings: bool = False
    stale_booking_check_minutes: int = Field(default=15, ge=1, le=59)
    trip_reminder_lead_hours: int = Field(default=24, ge=1)

    # Outbound webhooks for notifications and booking events
    notification_webhook_url: Optional[str] = None
    event_webhook_url: Optional[str] = None
    admin_notification_recipient: str = "transport-admin"
    webhook_timeout_seconds: float = 10.0


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


settings = get_settings()

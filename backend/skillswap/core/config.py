# backend/skillswap/core/config.py
import logging
import os
from pathlib import Path
from typing import Literal

from dotenv import load_dotenv
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from .constants import CANCELLATION_WINDOW_HOURS, PENDING_EXPIRY_DAYS


def is_running_tests() -> bool:
    """
    Detect if code is running under pytest.

    PYTEST_CURRENT_TEST is set automatically by pytest during test runs, and is
    not expected to be present in production environments.
    """
    return os.getenv("PYTEST_CURRENT_TEST") is not None


logger = logging.getLogger(__name__)

# Load .env file only if not in CI
if not os.getenv("CI"):
    env_path = Path(__file__).parent.parent.parent / ".env"  # Goes up to backend/.env
    logger.debug("[CONFIG] Looking for .env at: %s (exists=%s)", env_path, env_path.exists())
    load_dotenv(env_path)


class Settings(BaseSettings):
    environment: str = Field(default="development", description="Deployment environment name")
    is_testing: bool = False  # Set to True when running tests
    log_level: str = Field(default="INFO", description="Root log level")

    # Storage
    database_url: str = Field(
        default="sqlite:///./skillswap.db",
        description="SQLAlchemy URL for the session store",
    )
    database_echo: bool = False
    redis_url: str = "redis://localhost:6379/0"

    # Participant locking for the check-then-write critical section
    session_lock_backend: Literal["local", "redis"] = Field(
        default="local",
        description="Where participant locks live: in-process or Redis",
    )
    session_lock_namespace: str = "skillswap"
    session_lock_ttl_seconds: int = Field(default=30, ge=1)
    session_lock_timeout_seconds: float = Field(default=10.0, gt=0)
    session_lock_poll_interval_seconds: float = Field(default=0.05, gt=0)

    # Session policy
    cancellation_window_hours: int = Field(
        default=CANCELLATION_WINDOW_HOURS,
        ge=0,
        description="Minimum lead time before an accepted session may be cancelled",
    )
    pending_expiry_days: int = Field(
        default=PENDING_EXPIRY_DAYS,
        ge=1,
        description="Age past scheduled_date after which pending sessions expire",
    )

    # Background jobs
    expiry_cleanup_hour_utc: int = Field(default=3, ge=0, le=23)
    celery_broker_url: str | None = None
    celery_result_backend: str | None = None

    model_config = SettingsConfigDict(
        env_file=".env" if not os.getenv("CI") else None,
        case_sensitive=False,
        extra="ignore",
    )

    @field_validator("log_level")
    @classmethod
    def _normalize_log_level(cls, v: str) -> str:
        level = (v or "INFO").strip().upper()
        if level not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"Unsupported log level: {v}")
        return level

    def get_database_url(self) -> str:
        """Return the database URL for the current context."""
        return self.database_url

    def get_broker_url(self) -> str:
        """Broker URL for Celery, falling back to the shared Redis instance."""
        return self.celery_broker_url or self.redis_url


settings = Settings()

"""
Environment configuration for the exam scheduler.

Process-level knobs (database, Redis, Celery, logging, timezone, locks)
come from the environment or a local .env file. Booking rules an admin
can change at runtime live in the scheduling_settings table instead.
"""

from functools import lru_cache
from pathlib import Path
from typing import List, Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from dotenv import load_dotenv
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

# .env values never override variables already set in the environment
env_path = Path('.') / '.env'
load_dotenv(dotenv_path=env_path)


class Settings(BaseSettings):
    """Deployment configuration, read once per process."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
    )

    APP_NAME: str = Field(default="Exam Scheduler", alias="PROJECT_NAME")
    ENVIRONMENT: str = "development"

    # Database configuration
    DATABASE_URL: str = "sqlite:///./exam_scheduler.db"
    DATABASE_ECHO: bool = False

    # Scheduling rules (seed values for the scheduling_settings row)
    HOLD_DURATION_MINUTES: int = Field(default=15, ge=1)
    WORKING_DAYS_RULE: int = Field(default=6, ge=0)
    MAX_CANDIDATES_PER_DAY: int = Field(default=100, ge=0)
    CANDIDATES_PER_PROCTOR: int = Field(default=10, ge=1)
    RESERVE_PERCENTAGE: int = Field(default=10, ge=0, le=100)
    SEARCH_HORIZON_MONTHS: int = Field(default=2, ge=1)

    # Background jobs
    REAPER_INTERVAL_SECONDS: int = Field(default=60, ge=1)
    SCHEDULER_TIMEZONE: str = "Europe/Athens"
    REMINDER_HOUR: int = Field(default=8, ge=0, le=23)
    DEADLINE_HOUR: int = Field(default=12, ge=0, le=23)
    REMINDER_DAYS_BEFORE: int = Field(default=4, ge=1)

    # Comma separated user ids that receive admin notifications
    ADMIN_USER_IDS: str = ""

    # Approval serialization: none | local | redis
    APPROVAL_LOCK_BACKEND: str = "none"
    APPROVAL_LOCK_TIMEOUT_SECONDS: float = Field(default=10, gt=0)

    # Redis / Celery
    REDIS_URL: str = "redis://localhost:6379/0"
    CELERY_BROKER_URL: Optional[str] = None
    CELERY_RESULT_BACKEND: Optional[str] = None

    # Logging
    LOG_LEVEL: str = "INFO"
    LOG_FORMAT: str = "json"
    LOG_SQL_QUERIES: bool = False

    @field_validator("SCHEDULER_TIMEZONE")
    @classmethod
    def validate_timezone(cls, v: str) -> str:
        """Reject timezone names the zoneinfo database does not know."""
        try:
            ZoneInfo(v)
        except (ZoneInfoNotFoundError, ValueError) as exc:
            raise ValueError(f"Unknown timezone: {v}") from exc
        return v

    @field_validator("APPROVAL_LOCK_BACKEND")
    @classmethod
    def validate_lock_backend(cls, v: str) -> str:
        v = v.lower().strip()
        if v not in {"none", "local", "redis"}:
            raise ValueError("APPROVAL_LOCK_BACKEND must be one of: none, local, redis")
        return v

    @field_validator("LOG_LEVEL")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        v = v.upper()
        if v not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"Invalid log level: {v}")
        return v

    @property
    def admin_user_ids(self) -> List[str]:
        """Parse ADMIN_USER_IDS into a list"""
        return [uid.strip() for uid in self.ADMIN_USER_IDS.split(",") if uid.strip()]

    @property
    def celery_broker_url(self) -> str:
        return self.CELERY_BROKER_URL or self.REDIS_URL

    @property
    def celery_result_backend(self) -> str:
        return self.CELERY_RESULT_BACKEND or self.REDIS_URL

    def is_sqlite(self) -> bool:
        """Check if the configured database is SQLite"""
        return self.DATABASE_URL.startswith("sqlite")


@lru_cache()
def get_settings() -> Settings:
    """Process-wide Settings, built on first use."""
    return Settings()


settings = get_settings()

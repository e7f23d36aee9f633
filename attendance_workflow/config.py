from __future__ import annotations

import logging
from datetime import time, timedelta
from typing import Literal

from pydantic import Field, ValidationError
from pydantic_settings import BaseSettings, SettingsConfigDict

from attendance_workflow.exceptions import ConfigurationError

logger = logging.getLogger(__name__)


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    app_name: str = "Attendance Workflow"
    app_version: str = "0.1.0"
    debug: bool = False
    environment: Literal["development", "staging", "production"] = "development"
    log_level: str = "INFO"
    database_url: str = "postgresql+asyncpg://attendance:attendance@db:5432/attendance"
    db_pool_size: int = Field(default=5, ge=1, le=100)
    cors_origins: list[str] = ["http://localhost:5173", "http://localhost:8000"]
    # "auto" probes the database for snapshot isolation at startup.
    transaction_mode: Literal["auto", "transactional", "sequential"] = "auto"


class GraceSettings(BaseSettings):
    """Thresholds used by request validation and approval.

    Every value is range-checked. An unparsable or out-of-range value makes
    the whole object unavailable (see ``get_grace_settings``), it never
    falls back to the default.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    checkout_grace_hours: int = Field(default=24, ge=1, le=48)
    adjust_request_max_days: int = Field(default=7, ge=1, le=30)
    ot_start_time: time = time(17, 31)
    ot_min_duration_minutes: int = Field(default=30, ge=1, le=720)
    ot_max_pending_per_month: int = Field(default=31, ge=1, le=31)

    @property
    def session_max(self) -> timedelta:
        """Longest allowed span between anchor check-in and checkout."""
        return timedelta(hours=self.checkout_grace_hours)

    @property
    def submission_max(self) -> timedelta:
        """Longest allowed delay between anchor check-in and submission."""
        return timedelta(days=self.adjust_request_max_days)

    @property
    def ot_min_duration(self) -> timedelta:
        return timedelta(minutes=self.ot_min_duration_minutes)


_settings: Settings | None = None
_grace_settings: GraceSettings | None = None
_grace_error: str | None = None


def get_settings() -> Settings:
    """Return cached settings instance."""
    global _settings
    if _settings is None:
        _settings = Settings()
    return _settings


def get_grace_settings() -> GraceSettings:
    """Return cached grace thresholds, failing closed on invalid configuration.

    The load is attempted once per process. When it fails, every later call
    raises ``ConfigurationError`` so dependent requests are rejected instead
    of being validated against a guessed threshold.
    """
    global _grace_settings, _grace_error
    if _grace_settings is not None:
        return _grace_settings
    if _grace_error is None:
        try:
            _grace_settings = GraceSettings()
        except ValidationError as exc:
            fields = sorted({str(err["loc"][0]) for err in exc.errors() if err.get("loc")})
            _grace_error = f"Invalid grace configuration: {', '.join(fields) or 'unknown'}"
            logger.error("%s; requests depending on it will be rejected", _grace_error)
        else:
            return _grace_settings
    raise ConfigurationError(_grace_error or "Invalid grace configuration")


def reset_grace_settings() -> None:
    """Forget the cached grace thresholds (tests and config reloads)."""
    global _grace_settings, _grace_error
    _grace_settings = None
    _grace_error = None

"""Application configuration via pydantic-settings."""

from __future__ import annotations

import logging
from functools import lru_cache
from typing import List, Literal, Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Application
    app_name: str = "Booking Desk"
    app_version: str = "1.0.0"
    environment: Literal["development", "staging", "production"] = "development"
    debug: bool = False
    api_prefix: str = "/api/v1"
    log_level: str = "INFO"

    # Server
    host: str = "0.0.0.0"
    port: int = 8000

    # Booking backend
    backend_base_url: str = "http://localhost:8080/api"
    access_token: Optional[str] = Field(default=None)

    # Timeouts (seconds)
    mutation_timeout_seconds: float = 8.0
    lookup_timeout_seconds: float = 10.0
    slow_request_seconds: float = 1.0

    # Check-in verification
    required_checkin_status: Literal["CHECKED_IN"] = "CHECKED_IN"
    scan_poll_interval_seconds: float = 0.25

    # Notifications
    notification_feed_limit: int = 1000

    # CORS
    cors_origins: List[str] = ["http://localhost:3000"]


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


settings = get_settings()


def configure_logging(level: str | None = None) -> None:
    """Configure root logging from settings."""
    logging.basicConfig(
        level=(level or settings.log_level).upper(),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )

# SPDX-FileCopyrightText: 2026 Andrew Grimberg <tykeal@bardicgrove.org>
# SPDX-License-Identifier: Apache-2.0
"""Application configuration using Pydantic settings."""

from functools import lru_cache

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

    # Database
    database_url: str = Field(
        default="sqlite:///./data/rental-relist.db",
        description="SQLite database URL",
    )

    # Advertising policy
    max_active_listings: int = Field(
        default=5,
        ge=1,
        le=100,
        description="Default number of properties an owner may advertise at once",
    )
    minimum_stay_days: int = Field(
        default=7,
        ge=1,
        le=28,
        description="Shortest bookable stay; stays are chosen in multiples of it",
    )
    max_stay_weeks: int = Field(
        default=4,
        ge=1,
        le=12,
        description="Longest stay offered by the date picker, in stay units",
    )

    # Availability
    segment_cache_ttl_seconds: int = Field(
        default=300,
        ge=0,
        description="Time-to-live of cached display segments",
    )
    calendar_feed_timeout_seconds: float = Field(
        default=10.0,
        gt=0,
        description="Timeout for fetching external iCal feeds",
    )

    # Cancellation
    cancellation_max_retries: int = Field(
        default=3,
        ge=1,
        le=10,
        description="Attempts at a cancellation before reporting a conflict",
    )

    # Messages
    default_language: str = Field(
        default="en",
        description="Language for outcome and error messages",
    )

    # Application mode
    standalone_mode: bool = Field(
        default=False,
        description="Disable gateway authentication for development",
    )

    # Server configuration
    host: str = Field(
        default="0.0.0.0",
        description="Server host",
    )
    port: int = Field(
        default=8099,
        description="Server port",
    )
    log_level: str = Field(
        default="INFO",
        description="Logging level",
    )


@lru_cache
def get_settings() -> Settings:
    """Get cached application settings.

    Returns:
        Application settings instance.
    """
    return Settings()

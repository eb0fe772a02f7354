from __future__ import annotations

from functools import lru_cache
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Booking core configuration read from environment variables."""

    booking_api_base_url: str = Field("http://localhost:8000/api", alias="BOOKING_API_BASE_URL")
    booking_api_timeout: float = Field(30.0, alias="BOOKING_API_TIMEOUT")
    booking_api_retries: int = Field(2, alias="BOOKING_API_RETRIES")
    booking_api_retry_wait: float = Field(0.5, alias="BOOKING_API_RETRY_WAIT")

    mock_fallback_enabled: bool = Field(
        True,
        alias="MOCK_FALLBACK_ENABLED",
        description="Return demo data when the booking backend cannot be reached",
    )
    demo_base_rate: int = Field(45_000, alias="DEMO_BASE_RATE")
    demo_tax_rate: float = Field(0.10, alias="DEMO_TAX_RATE")
    currency: str = Field("NGN", alias="CURRENCY")
    currency_symbol: str = Field("₦", alias="CURRENCY_SYMBOL")

    pending_minutes: int = Field(30, alias="PENDING_MINUTES")

    session_storage_key: str = Field("emilyBookingState", alias="SESSION_STORAGE_KEY")
    use_redis_session_storage: bool = Field(False, alias="USE_REDIS_SESSION_STORAGE")
    redis_url: str = Field("redis://127.0.0.1:6379/0", alias="REDIS_URL")
    session_ttl_seconds: int = Field(
        86_400,
        alias="SESSION_TTL_SECONDS",
        description="Lifetime of a stored booking draft in Redis",
    )

    # Lagos, no DST
    hotel_utc_offset_hours: int = Field(1, alias="HOTEL_UTC_OFFSET_HOURS")
    same_day_cutoff_hour: int = Field(18, alias="SAME_DAY_CUTOFF_HOUR")

    max_adults: int = Field(6, alias="MAX_ADULTS")
    max_children: int = Field(4, alias="MAX_CHILDREN")
    child_age_max: int = Field(17, alias="CHILD_AGE_MAX")
    large_party_threshold: int = Field(4, alias="LARGE_PARTY_THRESHOLD")

    suite_url: str = Field("/rooms.html?suite=atlantic", alias="SUITE_URL")
    rooms_url: str = Field("/rooms.html", alias="ROOMS_URL")

    log_level: str = Field("INFO", alias="LOG_LEVEL")
    app_env: Literal["dev", "prod", "test"] = Field("dev", alias="APP_ENV")
    api_prefix: str = "/api"

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", case_sensitive=False)


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()


__all__ = ["Settings", "get_settings"]

from functools import lru_cache
import os
from typing import List, Optional

from pydantic import Field, computed_field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    debug: bool = False
    project_name: str = "DriverOS API"
    app_version: str = "1.0.0"
    environment: str = "development"
    log_level: str = "INFO"

    # Raw CORS origins string - read from env
    cors_origins_raw: Optional[str] = Field(
        default=None,
        alias="CORS_ORIGINS"
    )

    @computed_field
    @property
    def backend_cors_origins(self) -> List[str]:
        """Parse CORS_ORIGINS from environment variable (comma-separated string)."""
        raw = self.cors_origins_raw
        if not raw:
            raw = os.environ.get("BACKEND_CORS_ORIGINS") or ""

        if not raw or not raw.strip():
            return []

        origins = []
        for origin in raw.split(","):
            origin = origin.strip()
            if origin:
                # Normalize protocol to lowercase (Https -> https, Http -> http)
                if origin.lower().startswith("https://"):
                    origin = "https://" + origin[8:]
                elif origin.lower().startswith("http://"):
                    origin = "http://" + origin[7:]
                origins.append(origin.rstrip("/"))
        return origins

    # Local development falls back to SQLite; deployments set a postgres URL
    database_url: str = "sqlite+aiosqlite:///./driveros.db"
    database_pool_timeout: int = 10

    # Slot booking
    booking_max_retries: int = Field(default=3, ge=1)  # Attempts when a booking loses a race
    upcoming_slot_days: int = Field(default=7, ge=1)

    # Rate limiting (slowapi syntax)
    rate_limit_default: str = "200/minute"
    rate_limit_enabled: bool = True
    redis_url: Optional[str] = None  # Shared limiter storage across workers


@lru_cache
def get_settings() -> Settings:
    return Settings()

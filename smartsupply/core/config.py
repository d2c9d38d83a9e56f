# smartsupply/core/config.py
"""
Application settings loaded from environment variables (and .env).

Every threshold used by the cache policy lives here so that nothing is
hardcoded in the coordinator or the sync job.
"""

import logging
from functools import lru_cache

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_CACHE_DATABASE_URL = "sqlite+aiosqlite:///data/db/customer_cache.sqlite"


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    # --- Remote directory API ---
    api_base_url: str = "http://localhost:5000/api"
    api_timeout_seconds: float = 10.0

    # --- Local store (empty string disables persistence) ---
    cache_database_url: str = DEFAULT_CACHE_DATABASE_URL

    # --- Search policy ---
    search_trust_window_seconds: float = 30.0
    search_min_query_length: int = 2

    # --- Background sync policy ---
    sync_max_age_seconds: float = 300.0
    sync_check_interval_seconds: float = 60.0
    background_sync_enabled: bool = True

    log_level: str = "INFO"

    @field_validator(
        "api_timeout_seconds", "sync_max_age_seconds", "sync_check_interval_seconds"
    )
    @classmethod
    def _positive(cls, value: float, info) -> float:
        if value <= 0:
            raise ValueError(f"{info.field_name} must be > 0, got {value}")
        return value

    @field_validator("search_trust_window_seconds")
    @classmethod
    def _non_negative(cls, value: float) -> float:
        if value < 0:
            raise ValueError(f"search_trust_window_seconds must be >= 0, got {value}")
        return value

    @field_validator("search_min_query_length")
    @classmethod
    def _min_length(cls, value: int) -> int:
        if value < 1:
            raise ValueError(f"search_min_query_length must be >= 1, got {value}")
        return value


@lru_cache
def get_settings() -> Settings:
    return Settings()


def configure_logging(level: str = "INFO") -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s - %(levelname)s - [%(name)s] - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("apscheduler").setLevel(logging.WARNING)

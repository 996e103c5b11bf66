"""Runtime settings for the reservation service."""

from __future__ import annotations

from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Settings loaded from ``ROOMRES_*`` environment variables or ``.env``."""

    app_name: str = "Meeting Room Reservation Service"
    log_level: str = "INFO"
    default_weekly_occurrences: int = Field(default=4, ge=1)
    max_weekly_occurrences: int = Field(default=52, ge=1)
    seed_demo_data: bool = False

    model_config = SettingsConfigDict(env_prefix="ROOMRES_", env_file=".env")


@lru_cache
def get_settings() -> Settings:
    return Settings()

import logging
from typing import Literal, Optional

from pydantic import Field, HttpUrl
from pydantic_settings import BaseSettings, SettingsConfigDict


class AppSettings(BaseSettings):
    """Application settings loaded from environment variables or .env file."""

    # Match Rules
    goals_to_win: int = Field(
        2, ge=1, description="Goals needed to win a match context outright."
    )
    match_minutes: int = Field(
        8, ge=1, description="Length of a normal match context in minutes."
    )
    overtime_minutes: int = Field(
        2, ge=1, description="Length of an overtime period in minutes."
    )

    # Clock Configuration
    clock_direction: Literal["down", "up"] = Field(
        "down",
        description="Count down from the limit or up from 0:00 towards it.",
    )
    clock_tick_seconds: float = Field(
        1.0, gt=0, description="Wall-clock seconds between clock ticks."
    )
    clock_snapshot_dir: str = Field(
        ".clock", description="Directory for persisted clock snapshots."
    )

    # Storage Configuration
    storage_backend: Literal["memory", "supabase"] = Field(
        "memory", description="Where fixtures, matches and events are stored."
    )
    supabase_url: Optional[HttpUrl] = Field(
        None, description="URL for the Supabase project."
    )
    supabase_key: Optional[str] = Field(
        None, description="Anon or service key for the Supabase project."
    )
    store_retry_attempts: int = Field(
        3,
        ge=1,
        description="Attempts the calling layer makes when the store is unavailable.",
    )

    # Logging Configuration
    log_level: str = Field(
        "INFO", description="Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)."
    )

    # Pydantic Settings Configuration
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        case_sensitive=False,
    )


def load_settings() -> AppSettings:
    """Loads and validates application settings."""
    try:
        settings = AppSettings()
        log_level_upper = settings.log_level.upper()
        # Validate log_level even if loaded from .env
        if log_level_upper not in ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]:
            logging.warning(
                f"Invalid LOG_LEVEL '{settings.log_level}' found in .env or default. Using INFO."
            )
            settings.log_level = "INFO"
        else:
            settings.log_level = log_level_upper
        return settings
    except Exception as e:
        logging.exception(f"Error loading application settings: {e}")
        raise SystemExit("Failed to load application settings. Exiting.")


settings: AppSettings = load_settings()

"""
Application configuration using Pydantic Settings.

Engine tunables live here next to the server settings so deployments can
adjust the scheduling bounds without code changes.
"""

from functools import lru_cache
from typing import List, Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
    )

    # ===========================================
    # Environment
    # ===========================================
    ENVIRONMENT: Literal["local", "production"] = "local"
    DEBUG: bool = True
    LOG_LEVEL: str = "INFO"

    # ===========================================
    # Server
    # ===========================================
    HOST: str = "0.0.0.0"
    PORT: int = 8000
    ALLOWED_ORIGINS: List[str] = Field(
        default=["http://localhost:3000", "http://localhost:5173"]
    )

    # IANA timezone used to decide what "today" is for the engine
    TIMEZONE: str = "UTC"

    # ===========================================
    # Scheduling engine
    # ===========================================
    # Longest session the engine will create (also capped by daily hours)
    MAX_SESSION_HOURS: float = 4.0
    # Retry rounds when a task's hours do not fit on the first try (even mode)
    MAX_REDISTRIBUTION_ROUNDS: int = 10
    # Global fill passes after a task is deleted (even mode)
    MAX_GLOBAL_REDISTRIBUTION_PASSES: int = 3
    # Day offsets 0..N searched from today for a missed session's new slot
    MISSED_SESSION_SEARCH_DAYS: int = 14
    # Day offsets 0..N checked by the redistribution pre-flight gate
    PREFLIGHT_LOOKAHEAD_DAYS: int = 7

    # Defaults for new user settings (a 0 minimum also falls back)
    DEFAULT_MIN_SESSION_MINUTES: int = 15
    DEFAULT_STUDY_WINDOW_START_HOUR: int = 6
    DEFAULT_STUDY_WINDOW_END_HOUR: int = 23


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached settings instance.

    Using lru_cache ensures settings are loaded only once.
    """
    return Settings()

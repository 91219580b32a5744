"""Runtime settings for the race server.

Values are read from environment variables prefixed with ``RACE_`` (or a
local ``.env`` file) so deployments can tune the listener and the start
countdown without code changes.
"""
from __future__ import annotations

from functools import lru_cache
from typing import List

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Server settings with development defaults."""

    model_config = SettingsConfigDict(
        env_prefix="RACE_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Listener
    host: str = "0.0.0.0"
    port: int = 8080

    # Seconds between ``game_starting`` and ``game_started``
    start_delay_seconds: float = 3.0

    # Length of the human-typable room codes (A-Z0-9)
    room_code_length: int = Field(default=6, ge=4, le=32)

    # Logging
    log_level: str = "INFO"
    log_json: bool = False

    # Allow all origins during development – restrict in production.
    cors_origins: List[str] = ["*"]


@lru_cache
def get_settings() -> Settings:
    """Return the cached process-wide settings instance."""
    return Settings()


__all__ = ["Settings", "get_settings"]

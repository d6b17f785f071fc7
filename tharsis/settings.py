"""
Settings - Process configuration.

Values come from the environment (prefix ``THARSIS_``) or a ``.env`` file,
loaded by pydantic-settings. Defaults suit local development.

Example ``.env``:
    THARSIS_DATABASE_PATH=/var/lib/tharsis/games.db
    THARSIS_MAX_GAME_DAYS=30
    THARSIS_SESSION_IDLE_SECONDS=1800
    THARSIS_SERVER_ID=change-me
    THARSIS_PORT=8080
"""

from __future__ import annotations
from functools import lru_cache
from typing import Optional
import secrets

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    # SQLite file holding snapshots and ledgers
    database_path: str = "tharsis.db"

    # Unfinished games older than this are purged. None disables purging,
    # since long-running games would otherwise be lost.
    max_game_days: Optional[int] = Field(None, ge=1)

    # Cached games idle longer than this are dropped from memory. None keeps
    # them for the life of the process.
    session_idle_seconds: Optional[int] = Field(3600, ge=1)

    # Secret required by administrative routes
    server_id: str = Field(default_factory=lambda: secrets.token_hex(6))

    host: str = "0.0.0.0"
    port: int = 8080
    allowed_origins: list[str] = Field(default_factory=lambda: ["*"])

    log_level: str = "INFO"

    model_config = SettingsConfigDict(
        env_prefix="THARSIS_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )


@lru_cache
def get_settings() -> Settings:
    """Return the process-wide settings, loaded once."""
    return Settings()

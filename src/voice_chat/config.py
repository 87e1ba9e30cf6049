"""Configuration loaded from environment variables and an optional .env file."""

from functools import lru_cache
from pathlib import Path
from typing import List, Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings. Every field can be set as ``VOICE_CHAT_<NAME>``."""

    model_config = SettingsConfigDict(
        env_prefix="VOICE_CHAT_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Storage
    repository_backend: Literal["file", "memory"] = "file"
    data_file: Path = Path(".data") / "chats.json"
    assistants_file: Path = Path("assistants.json")

    # Business rules
    max_chats_per_user: int = Field(default=50, ge=1)

    # Rate limiting
    rate_limit: int = Field(default=50, ge=1)
    rate_limit_window: int = Field(default=60, ge=1)
    # only safe when a proxy strips client-supplied X-User-Id headers
    trust_user_header: bool = True

    # Logging
    log_level: str = "INFO"
    json_logs: bool = False

    cors_origins: List[str] = ["*"]


@lru_cache
def get_settings() -> Settings:
    """Return the cached Settings instance."""
    return Settings()

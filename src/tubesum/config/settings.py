"""Application settings loaded from environment variables and config files."""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import List, Optional

import yaml
from pydantic import BaseModel, ConfigDict, Field, HttpUrl, PositiveFloat, PositiveInt, SecretStr
from pydantic.networks import PostgresDsn
from pydantic_settings import BaseSettings, SettingsConfigDict

from tubesum.config import CONFIG_ROOT

DEFAULT_CHANNEL_SEED_PATH = CONFIG_ROOT / "channels.yaml"


class ChannelSeed(BaseModel):
    """A channel entry declared in a YAML seed file."""

    url: str = Field(min_length=1)
    category: str = Field(default="main", min_length=1, max_length=50)

    model_config = ConfigDict(extra="forbid")


class ChannelSeedFile(BaseModel):
    """Top-level structure of a channel seed file."""

    channels: List[ChannelSeed] = Field(default_factory=list)

    model_config = ConfigDict(extra="forbid")


def load_channel_seeds(seed_path: Path = DEFAULT_CHANNEL_SEED_PATH) -> ChannelSeedFile:
    """Parse a YAML channel seed file; a missing file yields no channels."""

    if not seed_path.exists():
        return ChannelSeedFile()

    raw_data = yaml.safe_load(seed_path.read_text(encoding="utf-8")) or {}

    channels: List[ChannelSeed] = []
    for entry in raw_data.get("channels", []) or []:
        if isinstance(entry, str):
            entry = {"url": entry}
        channels.append(ChannelSeed(**entry))
    return ChannelSeedFile(channels=channels)


class Settings(BaseSettings):
    """Primary application settings for the tubesum service and CLI."""

    database_url: PostgresDsn = Field(alias="DATABASE_URL")
    youtube_api_key: Optional[SecretStr] = Field(default=None, alias="YOUTUBE_API_KEY")
    openrouter_api_key: Optional[SecretStr] = Field(default=None, alias="OPENROUTER_API_KEY")
    openrouter_model: str = Field(default="openrouter/free", alias="OPENROUTER_MODEL")
    openrouter_base_url: HttpUrl = Field(default="https://openrouter.ai/api/v1", alias="OPENROUTER_BASE_URL")
    app_url: str = Field(default="http://localhost:4000", alias="APP_URL")
    langfuse_public_key: Optional[SecretStr] = Field(default=None, alias="LANGFUSE_PUBLIC_KEY")
    langfuse_secret_key: Optional[SecretStr] = Field(default=None, alias="LANGFUSE_SECRET_KEY")
    langfuse_host: Optional[HttpUrl] = Field(default=None, alias="LANGFUSE_HOST")

    lookback_hours: PositiveInt = Field(default=24, alias="LOOKBACK_HOURS")
    min_transcript_chars: PositiveInt = Field(default=100, alias="MIN_TRANSCRIPT_CHARS")
    max_transcript_chars: PositiveInt = Field(default=8000, alias="MAX_TRANSCRIPT_CHARS")
    fallback_summary_chars: PositiveInt = Field(default=300, alias="FALLBACK_SUMMARY_CHARS")
    transcript_languages: List[str] = Field(default_factory=lambda: ["en"], alias="TRANSCRIPT_LANGUAGES")
    external_timeout_seconds: PositiveFloat = Field(default=60.0, alias="EXTERNAL_TIMEOUT_SECONDS")

    fetch_schedule: str = Field(default="0 5 * * *", alias="FETCH_SCHEDULE")
    run_on_startup: bool = Field(default=True, alias="RUN_ON_STARTUP")
    job_ttl_seconds: int = Field(default=300, ge=0, alias="JOB_TTL_SECONDS")

    admin_api_token: Optional[SecretStr] = Field(default=None, alias="ADMIN_API_TOKEN")
    api_host: str = Field(default="0.0.0.0", alias="API_HOST")
    api_port: PositiveInt = Field(default=4000, alias="API_PORT")
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return a cached instance of the application settings."""

    return Settings()


__all__ = [
    "ChannelSeed",
    "ChannelSeedFile",
    "DEFAULT_CHANNEL_SEED_PATH",
    "Settings",
    "get_settings",
    "load_channel_seeds",
]

from __future__ import annotations

from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings.

    Values may be provided via environment variables prefixed with
    ``TEAMSYNC_``. The analysis engine reads none of these.
    """

    model_config = SettingsConfigDict(env_prefix="TEAMSYNC_", case_sensitive=False)

    # HTTP
    host: str = "127.0.0.1"
    port: int = 3000
    cors_allow_origins: str = Field("*", description="Comma-separated origins")

    # Storage
    data_dir: str = Field("data", description="Transcripts and uploads live under here")

    # Speech-to-text service
    transcription_api_key: Optional[str] = Field(None, description="STT service API key")
    transcription_base_url: str = "https://api.assemblyai.com/v2"
    poll_interval_s: float = Field(3.0, gt=0)
    poll_timeout_s: float = Field(600.0, gt=0)
    http_timeout_s: int = Field(40, gt=0)


def load_settings() -> Settings:
    return Settings()  # type: ignore[call-arg]

"""Application configuration."""

from functools import lru_cache
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Runtime configuration loaded from environment variables."""

    database_url: str = "sqlite:///./reelstudio.db"
    database_echo: bool = False

    auth_provider: Literal["mock", "firebase"] = "firebase"
    firebase_project_id: str | None = None
    firebase_audience: str | None = None
    internal_secret: str

    provider: Literal["mock", "http"] = "http"
    provider_base_url: str = "https://ark.cn-beijing.volces.com/api/v3"
    provider_api_key: str | None = None
    provider_timeout_seconds: float = Field(default=20.0, gt=0)

    reconcile_batch_limit: int = Field(default=100, ge=1)
    log_level: str = "INFO"

    model_config = SettingsConfigDict(env_prefix="REELSTUDIO_", extra="ignore")


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()

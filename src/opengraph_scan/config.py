from __future__ import annotations

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    user_agent: str = Field(default="facebookexternalhit", alias="OG_USER_AGENT")
    referer: str | None = Field(default=None, alias="OG_REFERER")

    timeout_s: float = Field(default=20.0, gt=0, alias="OG_TIMEOUT_S")

    max_redirects: int = Field(default=10, ge=0, alias="OG_MAX_REDIRECTS")
    resolve_redirects: bool = Field(default=True, alias="OG_RESOLVE_REDIRECTS")

    validate_specification: bool = Field(default=False, alias="OG_VALIDATE_SPECIFICATION")

    log_level: str = Field(default="INFO", alias="OG_LOG_LEVEL")


def load_settings() -> Settings:
    return Settings()

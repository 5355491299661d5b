"""
Configuration management using Pydantic Settings.

All configuration values are loaded from environment variables
with sensible defaults where appropriate. Arguments passed to
FoundationClient take precedence over these values.
"""

from functools import lru_cache
from pathlib import Path
from typing import Literal

from dotenv import load_dotenv
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

# .env is looked up in the current working directory
ENV_FILE = Path.cwd() / ".env"

load_dotenv(ENV_FILE)


class FoundationSettings(BaseSettings):
    """Foundation appliance connection configuration."""

    model_config = SettingsConfigDict(
        env_file=str(ENV_FILE),
        env_prefix="FOUNDATION_",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    ip: str = ""
    port: int = Field(default=8000, ge=1, le=65535)
    base_path: str = "/foundation/"
    timeout_seconds: float = Field(default=55.0, gt=0)
    network_details_timeout: int = Field(default=45, ge=1)
    mock: bool = False

    def base_url(self, ip: str) -> str:
        """Build the API base URL for an appliance IP."""
        path = "/" + self.base_path.strip("/") + "/"
        return f"http://{ip}:{self.port}{path}"


class LogSettings(BaseSettings):
    """Logging configuration."""

    model_config = SettingsConfigDict(
        env_file=str(ENV_FILE),
        env_prefix="LOG_",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    level: str = "INFO"
    format: Literal["json", "text"] = "text"
    redact_secrets: bool = True


class Settings(BaseSettings):
    """Main settings class that aggregates all configuration sections."""

    model_config = SettingsConfigDict(
        env_file=str(ENV_FILE),
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    foundation: FoundationSettings = Field(default_factory=FoundationSettings)
    log: LogSettings = Field(default_factory=LogSettings)


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()

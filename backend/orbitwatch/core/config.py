"""
Application Configuration

All settings loaded from environment variables (or a local .env file).
"""

import logging
from functools import lru_cache
from typing import Dict

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from orbitwatch.schemas.space import SourceId


class Settings(BaseSettings):
    """Application settings from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Application
    app_name: str = "OrbitWatch"
    app_version: str = "0.1.0"
    environment: str = "development"
    log_level: str = "INFO"

    # Server
    host: str = "0.0.0.0"
    port: int = 3000

    # Database (required - startup fails without it)
    database_url: str

    # Upstream sources
    nasa_api_url: str = "https://visualization.osdr.nasa.gov/biodata/api/v2/datasets/?format=json"
    nasa_api_key: str = "DEMO_KEY"
    nasa_api_base: str = "https://api.nasa.gov"
    where_iss_url: str = "https://api.wheretheiss.at/v1/satellites/25544"
    spacex_api_url: str = "https://api.spacexdata.com/v4/launches/next"
    http_timeout_seconds: float = 20.0

    # Refresh intervals (seconds)
    fetch_every_seconds: int = Field(default=600, ge=1)  # OSDR
    iss_every_seconds: int = Field(default=120, ge=1)
    apod_every_seconds: int = Field(default=43200, ge=1)
    neo_every_seconds: int = Field(default=7200, ge=1)
    donki_every_seconds: int = Field(default=3600, ge=1)
    spacex_every_seconds: int = Field(default=3600, ge=1)

    # Background polling
    scheduler_enabled: bool = True

    # Global rate limit for the HTTP API
    rate_limit_requests: int = Field(default=5, ge=1)
    rate_limit_window_seconds: float = Field(default=1.0, gt=0)

    def schedule_config(self) -> Dict[SourceId, int]:
        """Refresh interval per source, in seconds."""
        return {
            SourceId.ISS: self.iss_every_seconds,
            SourceId.OSDR: self.fetch_every_seconds,
            SourceId.APOD: self.apod_every_seconds,
            SourceId.NEO: self.neo_every_seconds,
            SourceId.DONKI: self.donki_every_seconds,
            SourceId.SPACEX: self.spacex_every_seconds,
        }


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


def configure_logging(level: str = "INFO") -> None:
    """Configure root logging for the service."""
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)-8s %(name)s: %(message)s",
    )
    # aiohttp access logs are noisy at INFO
    logging.getLogger("aiohttp.access").setLevel(logging.WARNING)

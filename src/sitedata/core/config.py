"""Application configuration loaded from environment and config files."""

from __future__ import annotations

from pydantic import Field
from pydantic_settings import BaseSettings


class GeocoderConfig(BaseSettings):
    """Geocoder provider configuration."""

    model_config = {"env_prefix": "SITEDATA_GEOCODER_"}

    provider: str = "mock"
    base_url: str = "https://maps.googleapis.com"
    api_key: str | None = None
    timeout_seconds: float = 10.0


class SourcesConfig(BaseSettings):
    """Source fetcher configuration."""

    model_config = {"env_prefix": "SITEDATA_SOURCES_"}

    config_path: str = "config/sources.yml"
    fetch_timeout_seconds: float = 90.0
    simulate_latency: bool = False


class SolarConfig(BaseSettings):
    """Downstream solar snapshot store configuration."""

    model_config = {"env_prefix": "SITEDATA_SOLAR_"}

    freshness_seconds: float = 3600.0


class Settings(BaseSettings):
    """Root application settings."""

    model_config = {"env_prefix": "SITEDATA_"}

    environment: str = "development"
    debug: bool = False
    log_level: str = "INFO"

    geocoder: GeocoderConfig = Field(default_factory=GeocoderConfig)
    sources: SourcesConfig = Field(default_factory=SourcesConfig)
    solar: SolarConfig = Field(default_factory=SolarConfig)

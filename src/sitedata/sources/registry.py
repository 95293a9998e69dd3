"""Fetcher registry and construction from the sources config file."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

import yaml

from sitedata.core.config import SourcesConfig
from sitedata.core.types import ConnectionStatus, SourceName
from sitedata.sources.base import FetcherConfig, FetcherSchema, SourceFetcher
from sitedata.sources.providers import PROVIDER_REGISTRY, MockSolarPotentialProvider
from sitedata.sources.solar_store import SolarStore

logger = logging.getLogger(__name__)

_PROJECT_ROOT = Path(__file__).resolve().parents[3]


def resolve_config_path(config_path: str | Path) -> Path:
    """Resolve a config path against the working directory, then the project root."""
    path = Path(config_path)
    if path.is_absolute() or path.exists():
        return path
    return _PROJECT_ROOT / path


def read_sources_file(config_path: str | Path) -> dict[str, Any]:
    """Load the sources YAML file, or an empty mapping when it does not exist."""
    path = resolve_config_path(config_path)
    if not path.exists():
        logger.info("Sources config %s not found, using defaults", path)
        return {}
    with open(path) as fh:
        return yaml.safe_load(fh) or {}


class FetcherRegistry:
    """Registry for source fetchers. Provides register/get/list and health checking."""

    def __init__(self) -> None:
        self._fetchers: dict[str, SourceFetcher] = {}

    def register(self, fetcher: SourceFetcher) -> None:
        """Register a fetcher, replacing any fetcher with the same name."""
        self._fetchers[fetcher.name] = fetcher

    def get(self, name: str) -> SourceFetcher | None:
        return self._fetchers.get(name)

    def all(self) -> list[SourceFetcher]:
        return list(self._fetchers.values())

    def list_fetchers(self) -> list[FetcherSchema]:
        """List registered fetchers with their schemas."""
        schemas = []
        for fetcher in self._fetchers.values():
            schema = getattr(fetcher, "schema", None)
            if schema is None:
                schema = FetcherSchema(
                    name=fetcher.name,
                    requires_coordinates=fetcher.requires_coordinates,
                    timeout_seconds=fetcher.timeout_seconds,
                )
            schemas.append(schema)
        return schemas

    def health_check_all(self) -> dict[str, ConnectionStatus]:
        return {schema.name: schema.status for schema in self.list_fetchers()}

    @property
    def fetcher_names(self) -> list[str]:
        return list(self._fetchers.keys())

    def __len__(self) -> int:
        return len(self._fetchers)


def create_default_registry(
    config: SourcesConfig | None = None,
    solar_store: SolarStore | None = None,
) -> FetcherRegistry:
    """Build a registry holding one fetcher per known source.

    Per-source settings come from the ``sources`` section of the config
    file. Simulated latency is only applied when ``simulate_latency`` is set.
    """
    config = config or SourcesConfig()
    file_data = read_sources_file(config.config_path)
    source_settings: dict[str, Any] = file_data.get("sources", {}) or {}

    registry = FetcherRegistry()
    for source in SourceName:
        settings = dict(source_settings.get(source.value, {}) or {})
        if not config.simulate_latency:
            settings.pop("latency_seconds", None)
        fetcher_config = FetcherConfig(name=source.value, **settings)

        cls = PROVIDER_REGISTRY[source]
        if cls is MockSolarPotentialProvider:
            fetcher = cls(config=fetcher_config, solar_store=solar_store)
        else:
            fetcher = cls(config=fetcher_config)
        registry.register(fetcher)
    return registry

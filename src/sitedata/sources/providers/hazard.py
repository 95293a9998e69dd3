"""Mock ASCE hazard providers for the 7-16 and 7-22 standards."""

from __future__ import annotations

from abc import abstractmethod
from typing import Any

from pydantic import BaseModel

from sitedata.core.types import SourceName
from sitedata.sources.base import FetcherConfig
from sitedata.sources.models import (
    FetchContext,
    FetchError,
    FetchErrorKind,
    HazardV1Result,
    HazardV2Result,
)
from sitedata.sources.providers.mock import MockFixtureFetcher

# Risk category II wind speeds (mph) and ground snow loads (lb/ft2).
_FIXTURE_HAZARDS: list[dict[str, Any]] = [
    {"lat": 40.0150, "lng": -105.2705, "7-16": (115, 40), "7-22": (110, 35)},
    {"lat": 40.2598, "lng": -76.8825, "7-16": (115, 30), "7-22": (107, 33)},
    {"lat": 30.4900, "lng": -84.3000, "7-16": (120, 0), "7-22": (118, 0)},
]


class _MockHazardProvider(MockFixtureFetcher):
    """Wind speed and snow load at a location for one ASCE standard."""

    requires_coordinates = True
    standard: str = ""

    def _default_fixtures(self) -> list[dict[str, Any]]:
        return _FIXTURE_HAZARDS

    @abstractmethod
    def _build(self, wind_speed: Any, snow_load: Any) -> BaseModel:
        """Wrap the loads in this standard's result type."""

    async def _do_fetch(self, ctx: FetchContext) -> BaseModel:
        await self._simulate_latency()
        row = self._lookup_location(ctx)
        loads = row.get(self.standard)
        if not loads:
            raise FetchError(
                self.name,
                f"No ASCE {self.standard} report for this location",
                FetchErrorKind.NOT_FOUND,
            )
        wind_speed, snow_load = loads
        if wind_speed is None and snow_load is None:
            raise FetchError(self.name, "Report had no wind or snow values", FetchErrorKind.MALFORMED)
        return self._build(wind_speed, snow_load)


class MockHazardProviderV1(_MockHazardProvider):
    """ASCE 7-16 loads, reported as wind_speed_716 / snow_load_716."""

    standard = "7-16"

    def __init__(
        self,
        config: FetcherConfig | None = None,
        fixtures: list[dict[str, Any]] | None = None,
    ) -> None:
        super().__init__(config or FetcherConfig(name=SourceName.HAZARD_ASCE_7_16.value), fixtures)

    def _build(self, wind_speed: Any, snow_load: Any) -> HazardV1Result:
        return HazardV1Result(wind_speed_716=wind_speed, snow_load_716=snow_load)


class MockHazardProviderV2(_MockHazardProvider):
    """ASCE 7-22 loads, reported as wind_speed / snow_load."""

    standard = "7-22"

    def __init__(
        self,
        config: FetcherConfig | None = None,
        fixtures: list[dict[str, Any]] | None = None,
    ) -> None:
        super().__init__(config or FetcherConfig(name=SourceName.HAZARD_ASCE_7_22.value), fixtures)

    def _build(self, wind_speed: Any, snow_load: Any) -> HazardV2Result:
        return HazardV2Result(wind_speed=wind_speed, snow_load=snow_load)

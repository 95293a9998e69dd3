"""Mock solar potential provider backed by building-insights style fixtures."""

from __future__ import annotations

from typing import Any

from sitedata.core.types import SourceName
from sitedata.sources.base import FetcherConfig
from sitedata.sources.models import FetchContext, FetchError, FetchErrorKind, SolarResult
from sitedata.sources.providers.mock import MockFixtureFetcher
from sitedata.sources.solar_store import SolarSnapshot, SolarStore

_FIXTURE_BUILDINGS: list[dict[str, Any]] = [
    {
        "lat": 40.0150,
        "lng": -105.2705,
        "building_insights": {
            "imageryQuality": "HIGH",
            "solarPotential": {
                "maxArrayPanelsCount": 38,
                "maxArrayAreaMeters2": 74.6,
                "maxSunshineHoursPerYear": 1712.4,
            },
        },
        "data_layers": {"imageryQuality": "HIGH", "dsmUrl": "fixture://dsm/boulder"},
    },
    {
        "lat": 30.4900,
        "lng": -84.3000,
        "building_insights": {
            "imageryQuality": "MEDIUM",
            "solarPotential": {
                "maxArrayPanelsCount": 52,
                "maxArrayAreaMeters2": 101.9,
                "maxSunshineHoursPerYear": 1598.0,
            },
        },
        "data_layers": {"imageryQuality": "MEDIUM"},
    },
]


def summarize_building_insights(insights: dict[str, Any]) -> dict[str, Any]:
    """Pull the record-level solar summary out of a building insights payload."""
    potential = insights.get("solarPotential")
    if not isinstance(potential, dict):
        raise ValueError("building insights missing solarPotential")
    return {
        "solar_max_panels": potential.get("maxArrayPanelsCount"),
        "solar_max_array_area_m2": potential.get("maxArrayAreaMeters2"),
        "solar_sunshine_hours_per_year": potential.get("maxSunshineHoursPerYear"),
        "solar_imagery_quality": insights.get("imageryQuality"),
    }


class MockSolarPotentialProvider(MockFixtureFetcher):
    """Solar potential for the building closest to the given coordinates.

    Every successful lookup is saved to the SolarStore. A fresh snapshot for
    the same address and location is reused instead of querying again; without
    coordinates any fresh snapshot for the address is reused.
    """

    requires_coordinates = True

    def __init__(
        self,
        config: FetcherConfig | None = None,
        fixtures: list[dict[str, Any]] | None = None,
        solar_store: SolarStore | None = None,
    ) -> None:
        super().__init__(config or FetcherConfig(name=SourceName.SOLAR_POTENTIAL.value), fixtures)
        self._store = solar_store or SolarStore()

    @property
    def store(self) -> SolarStore:
        return self._store

    def _default_fixtures(self) -> list[dict[str, Any]]:
        return _FIXTURE_BUILDINGS

    async def _do_fetch(self, ctx: FetchContext) -> SolarResult:
        cached = self._store.fresh(ctx.address, ctx.coordinates)
        if cached is not None:
            return self._to_result(cached.building_insights, cached.data_layers)

        await self._simulate_latency()
        row = self._lookup_location(ctx)
        result = self._to_result(row["building_insights"], row.get("data_layers", {}))
        self._store.save(
            SolarSnapshot(
                address=ctx.address,
                coordinates=ctx.coordinates,
                building_insights=result.building_insights,
                data_layers=result.data_layers,
            )
        )
        return result

    def _to_result(self, insights: dict[str, Any], layers: dict[str, Any]) -> SolarResult:
        try:
            summary = summarize_building_insights(insights)
        except ValueError as exc:
            raise FetchError(self.name, str(exc), FetchErrorKind.MALFORMED) from exc
        return SolarResult(**summary, building_insights=insights, data_layers=layers)

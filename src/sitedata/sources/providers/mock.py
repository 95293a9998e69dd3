"""Shared behaviour for fixture-backed mock providers."""

from __future__ import annotations

import asyncio
from typing import Any

from sitedata.geo.models import Coordinates
from sitedata.geo.service import normalize_address
from sitedata.sources.base import BaseSourceFetcher, FetcherConfig
from sitedata.sources.models import FetchContext, FetchError, FetchErrorKind


class MockFixtureFetcher(BaseSourceFetcher):
    """Answers from in-memory fixtures, optionally after simulated latency.

    Fixtures are keyed by address for address-based providers and looked up
    by rounded coordinates for coordinate-based ones.
    """

    coordinate_precision = 2

    def __init__(
        self,
        config: FetcherConfig,
        fixtures: list[dict[str, Any]] | None = None,
    ) -> None:
        super().__init__(config)
        self._by_address: dict[str, dict[str, Any]] = {}
        self._by_location: dict[tuple[float, float], dict[str, Any]] = {}
        for row in fixtures if fixtures is not None else self._default_fixtures():
            self._index(row)

    def _default_fixtures(self) -> list[dict[str, Any]]:
        return []

    def _index(self, row: dict[str, Any]) -> None:
        if "address" in row:
            self._by_address[normalize_address(row["address"])] = row
        if "lat" in row and "lng" in row:
            self._by_location[self._location_key(row["lat"], row["lng"])] = row

    def _location_key(self, lat: float, lng: float) -> tuple[float, float]:
        return (round(lat, self.coordinate_precision), round(lng, self.coordinate_precision))

    async def _simulate_latency(self) -> None:
        if self._config.latency_seconds > 0:
            await asyncio.sleep(self._config.latency_seconds)

    def _lookup_address(self, address: str) -> dict[str, Any]:
        key = normalize_address(address)
        row = self._by_address.get(key)
        if row is None:
            # Partial match fallback
            for known, candidate in self._by_address.items():
                if key in known or known in key:
                    row = candidate
                    break
        if row is None:
            raise FetchError(self.name, f"No record for {address!r}", FetchErrorKind.NOT_FOUND)
        return row

    def _lookup_location(self, ctx: FetchContext) -> dict[str, Any]:
        coords: Coordinates | None = ctx.coordinates
        if coords is None:
            raise FetchError(self.name, "Coordinates are required", FetchErrorKind.MALFORMED)
        row = self._by_location.get(self._location_key(coords.lat, coords.lng))
        if row is None:
            raise FetchError(
                self.name,
                f"No data at ({coords.lat:.5f}, {coords.lng:.5f})",
                FetchErrorKind.NOT_FOUND,
            )
        return row

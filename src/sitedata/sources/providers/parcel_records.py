"""Mock parcel records provider (county parcel data)."""

from __future__ import annotations

from typing import Any

from sitedata.core.types import SourceName
from sitedata.sources.base import FetcherConfig
from sitedata.sources.models import FetchContext, FetchError, FetchErrorKind, ParcelRecordsResult
from sitedata.sources.providers.mock import MockFixtureFetcher

_FIXTURE_PARCELS: list[dict[str, Any]] = [
    {
        "address": "123 Solar Way, Boulder, CO 80302",
        "parcel_number": "1463-19-2-05-004",
        "owner": "Rivera Family Trust",
        "lot_size": "0.17 acres",
        "land_use": "Single Family Residential",
    },
    {
        "address": "45 Market St, Harrisburg, PA 17101",
        "parcel_number": "04-014-021-000-0000",
        "owner": "Keystone Holdings LLC",
        "land_use": "Mixed Use",
    },
]


class MockParcelRecordsProvider(MockFixtureFetcher):
    """Parcel number, owner, lot size and land use looked up by address."""

    requires_coordinates = False

    def __init__(
        self,
        config: FetcherConfig | None = None,
        fixtures: list[dict[str, Any]] | None = None,
    ) -> None:
        super().__init__(config or FetcherConfig(name=SourceName.PARCEL_RECORDS.value), fixtures)

    def _default_fixtures(self) -> list[dict[str, Any]]:
        return _FIXTURE_PARCELS

    async def _do_fetch(self, ctx: FetchContext) -> ParcelRecordsResult:
        await self._simulate_latency()
        row = self._lookup_address(ctx.address)
        result = ParcelRecordsResult(**{k: v for k, v in row.items() if k != "address"})
        # A parcel hit without an id or owner is not a match.
        if result.parcel_number is None and result.owner is None:
            raise FetchError(self.name, "Parcel had no id or owner", FetchErrorKind.MALFORMED)
        return result

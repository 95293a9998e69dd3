"""Mock lot records provider (listing-site style property facts)."""

from __future__ import annotations

from typing import Any

from sitedata.core.types import SourceName
from sitedata.sources.base import FetcherConfig
from sitedata.sources.models import FetchContext, FetchError, FetchErrorKind, LotRecordsResult
from sitedata.sources.providers.mock import MockFixtureFetcher

_FIXTURE_LOTS: list[dict[str, Any]] = [
    {
        "address": "123 Solar Way, Boulder, CO 80302",
        "lot_size": 7405,
        "parcel_number": "146319205004",
        "interior_area": "2,140 sqft",
        "structure_area": "2,560",
        "new_construction": False,
        "year_built": 1998,
    },
    {
        "address": "45 Market St, Harrisburg, PA 17101",
        "lot_size": 0.21,
        "parcel_number": "04-014-021",
        "interior_area": "1,680 sqft",
        "new_construction": False,
        "year_built": 1925,
    },
    {
        "address": "900 Ridge Rd, Tallahassee, FL 32303",
        "lot_size": "0.52 Acres",
        "interior_area": "2,905 sqft",
        "new_construction": True,
        "year_built": 2024,
    },
]


def format_lot_size(value: Any) -> str | None:
    """Render a bare lot size number with a unit.

    Values below 500 are taken to be acres, larger ones square feet. Values
    that already carry a unit are returned unchanged.
    """
    if value is None:
        return None
    text = str(value).strip()
    lowered = text.lower()
    if "sqft" in lowered or "acre" in lowered:
        return text
    try:
        number = float(text.replace(",", ""))
    except ValueError:
        return text
    shown = f"{number:g}"
    return f"{shown} Acres" if number < 500 else f"{shown} sqft"


class MockLotRecordsProvider(MockFixtureFetcher):
    """Lot size, parcel and building facts looked up by address."""

    requires_coordinates = False

    def __init__(
        self,
        config: FetcherConfig | None = None,
        fixtures: list[dict[str, Any]] | None = None,
    ) -> None:
        super().__init__(config or FetcherConfig(name=SourceName.LOT_RECORDS.value), fixtures)

    def _default_fixtures(self) -> list[dict[str, Any]]:
        return _FIXTURE_LOTS

    async def _do_fetch(self, ctx: FetchContext) -> LotRecordsResult:
        await self._simulate_latency()
        row = self._lookup_address(ctx.address)
        fields = {k: v for k, v in row.items() if k != "address"}
        fields["lot_size"] = format_lot_size(fields.get("lot_size"))
        result = LotRecordsResult(**fields)
        if not result.record_fields():
            raise FetchError(self.name, "Listing had no usable fields", FetchErrorKind.MALFORMED)
        return result

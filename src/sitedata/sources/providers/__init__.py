"""Provider registry for source fetchers."""

from __future__ import annotations

from sitedata.core.types import SourceName
from sitedata.sources.base import BaseSourceFetcher
from sitedata.sources.providers.hazard import MockHazardProviderV1, MockHazardProviderV2
from sitedata.sources.providers.lot_records import MockLotRecordsProvider
from sitedata.sources.providers.parcel_records import MockParcelRecordsProvider
from sitedata.sources.providers.solar import MockSolarPotentialProvider

PROVIDER_REGISTRY: dict[str, type[BaseSourceFetcher]] = {
    SourceName.LOT_RECORDS: MockLotRecordsProvider,
    SourceName.PARCEL_RECORDS: MockParcelRecordsProvider,
    SourceName.HAZARD_ASCE_7_16: MockHazardProviderV1,
    SourceName.HAZARD_ASCE_7_22: MockHazardProviderV2,
    SourceName.SOLAR_POTENTIAL: MockSolarPotentialProvider,
}

__all__ = [
    "PROVIDER_REGISTRY",
    "MockHazardProviderV1",
    "MockHazardProviderV2",
    "MockLotRecordsProvider",
    "MockParcelRecordsProvider",
    "MockSolarPotentialProvider",
]

"""Tests for source fetchers: base error handling, mock providers, registry."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest
from pydantic import BaseModel

from sitedata.core.config import SourcesConfig
from sitedata.core.types import ConnectionStatus, SourceName
from sitedata.geo.models import Coordinates
from sitedata.sources.base import BaseSourceFetcher, FetcherConfig
from sitedata.sources.models import (
    FetchContext,
    FetchError,
    FetchErrorKind,
    HazardV1Result,
    HazardV2Result,
    LotRecordsResult,
    ParcelRecordsResult,
    SolarResult,
)
from sitedata.sources.providers import (
    MockHazardProviderV1,
    MockHazardProviderV2,
    MockLotRecordsProvider,
    MockParcelRecordsProvider,
    MockSolarPotentialProvider,
)
from sitedata.sources.providers.hazard import _MockHazardProvider
from sitedata.sources.providers.lot_records import format_lot_size
from sitedata.sources.registry import FetcherRegistry, create_default_registry
from sitedata.sources.solar_store import SolarSnapshot, SolarStore

BOULDER = "123 Solar Way, Boulder, CO 80302"
BOULDER_CTX = FetchContext(
    address=BOULDER,
    coordinates=Coordinates(lat=40.0150, lng=-105.2705),
    state="CO",
)


class _ScriptedBase(BaseSourceFetcher):
    """BaseSourceFetcher whose _do_fetch replays a list of actions."""

    def __init__(self, actions: list, config: FetcherConfig | None = None) -> None:
        super().__init__(config or FetcherConfig(name="scripted"))
        self._actions = list(actions)

    async def _do_fetch(self, ctx: FetchContext) -> BaseModel:
        action = self._actions.pop(0)
        if isinstance(action, Exception):
            raise action
        return action


class TestBaseSourceFetcher:
    @pytest.mark.asyncio
    async def test_success(self) -> None:
        fetcher = _ScriptedBase([HazardV2Result(wind_speed=110)])
        outcome = await fetcher.fetch(BOULDER_CTX)
        assert outcome.success
        assert outcome.source == "scripted"
        assert outcome.data.wind_speed == 110
        assert outcome.elapsed_ms >= 0

    @pytest.mark.asyncio
    async def test_fetch_error_becomes_failed_outcome(self) -> None:
        fetcher = _ScriptedBase([FetchError("scripted", "boom", FetchErrorKind.MALFORMED)])
        outcome = await fetcher.fetch(BOULDER_CTX)
        assert not outcome.success
        assert outcome.error == "boom"
        assert outcome.error_kind == FetchErrorKind.MALFORMED

    @pytest.mark.asyncio
    async def test_unexpected_exception_becomes_failed_outcome(self) -> None:
        fetcher = _ScriptedBase([RuntimeError("kaboom")])
        outcome = await fetcher.fetch(BOULDER_CTX)
        assert not outcome.success
        assert outcome.error_kind == FetchErrorKind.UNEXPECTED
        assert "kaboom" in outcome.error

    @pytest.mark.asyncio
    async def test_disabled(self) -> None:
        fetcher = _ScriptedBase([], FetcherConfig(name="scripted", enabled=False))
        outcome = await fetcher.fetch(BOULDER_CTX)
        assert not outcome.success
        assert outcome.error_kind == FetchErrorKind.DISABLED
        assert fetcher.health_check() == ConnectionStatus.DISABLED

    @pytest.mark.asyncio
    async def test_degrades_after_repeated_failures_and_recovers(self) -> None:
        fetcher = _ScriptedBase([
            FetchError("scripted", "down"),
            FetchError("scripted", "down"),
            HazardV2Result(wind_speed=110),
        ])
        await fetcher.fetch(BOULDER_CTX)
        assert fetcher.health_check() == ConnectionStatus.CONNECTED
        await fetcher.fetch(BOULDER_CTX)
        assert fetcher.health_check() == ConnectionStatus.DEGRADED
        await fetcher.fetch(BOULDER_CTX)
        assert fetcher.health_check() == ConnectionStatus.CONNECTED

    @pytest.mark.asyncio
    async def test_not_found_does_not_degrade(self) -> None:
        fetcher = _ScriptedBase([
            FetchError("scripted", "missing", FetchErrorKind.NOT_FOUND),
            FetchError("scripted", "missing", FetchErrorKind.NOT_FOUND),
        ])
        await fetcher.fetch(BOULDER_CTX)
        await fetcher.fetch(BOULDER_CTX)
        assert fetcher.health_check() == ConnectionStatus.CONNECTED

    def test_schema(self) -> None:
        fetcher = MockHazardProviderV1(
            FetcherConfig(name=SourceName.HAZARD_ASCE_7_16, timeout_seconds=5, description="loads")
        )
        schema = fetcher.schema
        assert schema.name == "hazard_asce_7_16"
        assert schema.requires_coordinates is True
        assert schema.timeout_seconds == 5
        assert schema.description == "loads"


class TestFormatLotSize:
    def test_small_number_is_acres(self) -> None:
        assert format_lot_size(0.21) == "0.21 Acres"

    def test_large_number_is_sqft(self) -> None:
        assert format_lot_size(7405) == "7405 sqft"

    def test_comma_number(self) -> None:
        assert format_lot_size("7,405") == "7405 sqft"

    def test_unit_is_kept(self) -> None:
        assert format_lot_size("0.52 Acres") == "0.52 Acres"

    def test_none(self) -> None:
        assert format_lot_size(None) is None


class TestMockLotRecordsProvider:
    def setup_method(self) -> None:
        self.provider = MockLotRecordsProvider()

    def test_name(self) -> None:
        assert self.provider.name == "lot_records"
        assert self.provider.requires_coordinates is False

    @pytest.mark.asyncio
    async def test_found(self) -> None:
        outcome = await self.provider.fetch(FetchContext(address=BOULDER))
        assert outcome.success
        assert isinstance(outcome.data, LotRecordsResult)
        assert outcome.data.lot_size == "7405 sqft"
        assert outcome.data.parcel_number == "146319205004"
        assert outcome.data.new_construction is False
        assert outcome.data.year_built == 1998

    @pytest.mark.asyncio
    async def test_not_found(self) -> None:
        outcome = await self.provider.fetch(FetchContext(address="1 Nowhere Lane"))
        assert not outcome.success
        assert outcome.error_kind == FetchErrorKind.NOT_FOUND

    @pytest.mark.asyncio
    async def test_empty_listing_is_malformed(self) -> None:
        provider = MockLotRecordsProvider(fixtures=[{"address": "1 Empty Ct"}])
        outcome = await provider.fetch(FetchContext(address="1 Empty Ct"))
        assert not outcome.success
        assert outcome.error_kind == FetchErrorKind.MALFORMED


class TestMockParcelRecordsProvider:
    @pytest.mark.asyncio
    async def test_found(self) -> None:
        outcome = await MockParcelRecordsProvider().fetch(FetchContext(address=BOULDER))
        assert outcome.success
        assert isinstance(outcome.data, ParcelRecordsResult)
        assert outcome.data.owner == "Rivera Family Trust"

    @pytest.mark.asyncio
    async def test_no_parcel_in_fixtures(self) -> None:
        ctx = FetchContext(address="900 Ridge Rd, Tallahassee, FL 32303")
        outcome = await MockParcelRecordsProvider().fetch(ctx)
        assert outcome.error_kind == FetchErrorKind.NOT_FOUND

    @pytest.mark.asyncio
    async def test_parcel_without_id_or_owner_is_malformed(self) -> None:
        provider = MockParcelRecordsProvider(
            fixtures=[{"address": "2 Vacant Lot", "land_use": "Vacant"}]
        )
        outcome = await provider.fetch(FetchContext(address="2 Vacant Lot"))
        assert outcome.error_kind == FetchErrorKind.MALFORMED


class TestMockHazardProviders:
    def test_base_requires_result_builder(self) -> None:
        with pytest.raises(TypeError):
            _MockHazardProvider(FetcherConfig(name="hazard"))

    @pytest.mark.asyncio
    async def test_v1_reports_716_fields(self) -> None:
        outcome = await MockHazardProviderV1().fetch(BOULDER_CTX)
        assert isinstance(outcome.data, HazardV1Result)
        assert outcome.data.record_fields() == {"wind_speed_716": 115, "snow_load_716": 40}

    @pytest.mark.asyncio
    async def test_v2_reports_722_fields(self) -> None:
        outcome = await MockHazardProviderV2().fetch(BOULDER_CTX)
        assert isinstance(outcome.data, HazardV2Result)
        assert outcome.data.record_fields() == {"wind_speed": 110, "snow_load": 35}

    @pytest.mark.asyncio
    async def test_missing_coordinates_is_malformed(self) -> None:
        outcome = await MockHazardProviderV2().fetch(FetchContext(address=BOULDER))
        assert outcome.error_kind == FetchErrorKind.MALFORMED

    @pytest.mark.asyncio
    async def test_unknown_location(self) -> None:
        ctx = FetchContext(address="x", coordinates=Coordinates(lat=0.0, lng=0.0))
        outcome = await MockHazardProviderV1().fetch(ctx)
        assert outcome.error_kind == FetchErrorKind.NOT_FOUND


class TestMockSolarPotentialProvider:
    @pytest.mark.asyncio
    async def test_found_and_saved(self) -> None:
        store = SolarStore()
        provider = MockSolarPotentialProvider(solar_store=store)
        outcome = await provider.fetch(BOULDER_CTX)
        assert outcome.success
        assert isinstance(outcome.data, SolarResult)
        assert outcome.data.record_fields() == {
            "solar_max_panels": 38,
            "solar_max_array_area_m2": 74.6,
            "solar_sunshine_hours_per_year": 1712.4,
            "solar_imagery_quality": "HIGH",
        }
        assert store.count == 1
        assert store.latest(BOULDER).data_layers["imageryQuality"] == "HIGH"

    @pytest.mark.asyncio
    async def test_fresh_snapshot_is_reused(self) -> None:
        store = SolarStore()
        provider = MockSolarPotentialProvider(solar_store=store)
        await provider.fetch(BOULDER_CTX)
        # A second lookup without coordinates still succeeds from the store.
        outcome = await provider.fetch(FetchContext(address=BOULDER))
        assert outcome.success
        assert outcome.data.solar_max_panels == 38
        assert store.count == 1

    @pytest.mark.asyncio
    async def test_snapshot_at_other_location_is_not_reused(self) -> None:
        store = SolarStore()
        provider = MockSolarPotentialProvider(solar_store=store)
        await provider.fetch(BOULDER_CTX)
        moved = FetchContext(address=BOULDER, coordinates=Coordinates(lat=30.49, lng=-84.3))
        outcome = await provider.fetch(moved)
        assert outcome.data.solar_max_panels == 52
        assert store.count == 2

    @pytest.mark.asyncio
    async def test_missing_solar_potential_is_malformed(self) -> None:
        provider = MockSolarPotentialProvider(
            fixtures=[{"lat": 1.0, "lng": 1.0, "building_insights": {"imageryQuality": "LOW"}}]
        )
        ctx = FetchContext(address="x", coordinates=Coordinates(lat=1.0, lng=1.0))
        outcome = await provider.fetch(ctx)
        assert outcome.error_kind == FetchErrorKind.MALFORMED
        assert provider.store.count == 0


class TestSolarStore:
    def _snapshot(self, address: str = BOULDER, **overrides) -> SolarSnapshot:
        return SolarSnapshot(
            address=address,
            coordinates=Coordinates(lat=40.0150, lng=-105.2705),
            **overrides,
        )

    def test_latest_matches_normalized_address(self) -> None:
        store = SolarStore()
        store.save(self._snapshot(building_insights={"n": 1}))
        store.save(self._snapshot(building_insights={"n": 2}))
        assert store.latest("123 solar way  boulder co 80302").building_insights == {"n": 2}
        assert len(store.history(BOULDER)) == 2

    def test_fresh_matches_location(self) -> None:
        store = SolarStore()
        store.save(self._snapshot())
        assert store.fresh(BOULDER, Coordinates(lat=40.01500001, lng=-105.2705)) is not None
        assert store.fresh(BOULDER, Coordinates(lat=40.2598, lng=-76.8825)) is None
        assert store.fresh(BOULDER) is not None

    def test_latest_missing(self) -> None:
        assert SolarStore().latest(BOULDER) is None

    def test_fresh_window(self) -> None:
        store = SolarStore(freshness_seconds=3600)
        saved_at = datetime(2026, 1, 1, tzinfo=timezone.utc)
        store.save(self._snapshot(saved_at=saved_at))
        assert store.fresh(BOULDER, now=saved_at + timedelta(minutes=59)) is not None
        assert store.fresh(BOULDER, now=saved_at + timedelta(minutes=61)) is None


class TestFetcherRegistry:
    def test_register_and_get(self) -> None:
        registry = FetcherRegistry()
        fetcher = MockLotRecordsProvider()
        registry.register(fetcher)
        assert registry.get("lot_records") is fetcher
        assert registry.get("missing") is None
        assert len(registry) == 1

    def test_default_registry_has_every_source(self) -> None:
        registry = create_default_registry(SourcesConfig())
        assert registry.fetcher_names == [source.value for source in SourceName]

    def test_default_registry_reads_config_file(self, tmp_path) -> None:
        config_file = tmp_path / "sources.yml"
        config_file.write_text(
            "sources:\n"
            "  lot_records:\n"
            "    enabled: false\n"
            "    timeout_seconds: 12\n"
            "    latency_seconds: 3.0\n"
        )
        registry = create_default_registry(SourcesConfig(config_path=str(config_file)))
        lot = registry.get("lot_records")
        assert lot.timeout_seconds == 12
        assert registry.health_check_all()["lot_records"] == ConnectionStatus.DISABLED
        # Latency is dropped unless simulation is switched on.
        assert lot._config.latency_seconds == 0.0

    def test_missing_config_file_uses_defaults(self, tmp_path) -> None:
        registry = create_default_registry(SourcesConfig(config_path=str(tmp_path / "nope.yml")))
        assert len(registry) == len(SourceName)
        assert all(f.timeout_seconds is None for f in registry.all())

    def test_shared_solar_store(self) -> None:
        store = SolarStore()
        registry = create_default_registry(SourcesConfig(), solar_store=store)
        assert registry.get("solar_potential").store is store

    def test_list_fetchers_for_plain_protocol_objects(self) -> None:
        from conftest import ScriptedFetcher

        registry = FetcherRegistry()
        registry.register(ScriptedFetcher("scripted", requires_coordinates=True))
        [schema] = registry.list_fetchers()
        assert schema.name == "scripted"
        assert schema.requires_coordinates is True
        assert schema.status == ConnectionStatus.CONNECTED

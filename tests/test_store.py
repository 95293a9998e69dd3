"""Tests for the enrichment store: session tokens, snapshots, diagnostics."""

from __future__ import annotations

import pytest

from sitedata.core.types import StaleSessionIgnored
from sitedata.enrichment.models import SourceStatus
from sitedata.enrichment.store import EnrichmentStore
from sitedata.sources.models import FetchErrorKind, FetchOutcome, HazardV2Result


class TestEnrichmentStore:
    def setup_method(self) -> None:
        self.store = EnrichmentStore()
        self.store.begin_session(1, "123 Solar Way")

    def test_begin_session_resets_record(self) -> None:
        self.store.merge(1, "hazard_asce_7_22", HazardV2Result(wind_speed=110))
        self.store.begin_session(2, "45 Market St")
        record = self.store.current()
        assert record.address == "45 Market St"
        assert record.wind_speed is None
        assert record.sources == {}
        assert self.store.active_token == 2

    def test_tokens_must_increase(self) -> None:
        with pytest.raises(ValueError, match="must be greater"):
            self.store.begin_session(1, "again")

    def test_merge_returns_snapshot(self) -> None:
        record = self.store.merge(1, "hazard_asce_7_22", HazardV2Result(wind_speed=110))
        assert record.wind_speed == 110
        record.sources["tampered"] = {}
        assert "tampered" not in self.store.current().sources

    def test_stale_merge_is_rejected(self) -> None:
        self.store.begin_session(2, "45 Market St")
        with pytest.raises(StaleSessionIgnored) as exc_info:
            self.store.merge(1, "hazard_asce_7_22", HazardV2Result(wind_speed=110))
        assert exc_info.value.token == 1
        assert exc_info.value.active_token == 2
        assert self.store.current().wind_speed is None

    def test_stale_failure_is_rejected(self) -> None:
        self.store.begin_session(2, "45 Market St")
        outcome = FetchOutcome.failed("lot_records", "down", FetchErrorKind.UNAVAILABLE)
        with pytest.raises(StaleSessionIgnored):
            self.store.record_failure(1, outcome)
        assert self.store.diagnostics() == []

    def test_record_failure(self) -> None:
        outcome = FetchOutcome.failed("lot_records", "down", FetchErrorKind.TIMEOUT, 12.5)
        self.store.record_failure(1, outcome)
        [report] = self.store.diagnostics()
        assert report.source == "lot_records"
        assert report.status == SourceStatus.FAILED
        assert report.error_kind == FetchErrorKind.TIMEOUT
        assert report.elapsed_ms == 12.5
        # Failures leave the record alone.
        assert self.store.current().sources == {}

    def test_precedence_copy(self) -> None:
        precedence = self.store.precedence
        precedence["owner"].append("elsewhere")
        assert "elsewhere" not in self.store.precedence["owner"]

    def test_is_active(self) -> None:
        assert self.store.is_active(1)
        assert not self.store.is_active(2)


class TestEmptyStore:
    def test_no_session(self) -> None:
        store = EnrichmentStore()
        assert store.active_token is None
        with pytest.raises(StaleSessionIgnored):
            store.merge(1, "hazard_asce_7_22", HazardV2Result(wind_speed=110))

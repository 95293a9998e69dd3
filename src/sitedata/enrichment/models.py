"""Enrichment data models: the merged property record and session reports."""

from __future__ import annotations

from enum import StrEnum
from typing import Any

from pydantic import BaseModel, Field

from sitedata.geo.models import Coordinates
from sitedata.sources.models import FetchErrorKind, FieldValue

RECORD_FIELDS: tuple[str, ...] = (
    "lot_size",
    "parcel_number",
    "owner",
    "land_use",
    "wind_speed",
    "snow_load",
    "wind_speed_716",
    "snow_load_716",
    "interior_area",
    "structure_area",
    "year_built",
    "new_construction",
    "solar_max_panels",
    "solar_max_array_area_m2",
    "solar_sunshine_hours_per_year",
    "solar_imagery_quality",
)


class PropertyRecord(BaseModel):
    """Enrichment result for one address.

    ``sources`` holds every field each source supplied with its raw value;
    ``attribution`` names the source whose value won for each populated field.
    """

    address: str = ""
    lot_size: FieldValue = None
    parcel_number: str | None = None
    owner: str | None = None
    land_use: str | None = None
    wind_speed: FieldValue = None
    snow_load: FieldValue = None
    wind_speed_716: FieldValue = None
    snow_load_716: FieldValue = None
    interior_area: FieldValue = None
    structure_area: FieldValue = None
    year_built: int | str | None = None
    new_construction: bool | None = None
    solar_max_panels: int | None = None
    solar_max_array_area_m2: float | None = None
    solar_sunshine_hours_per_year: float | None = None
    solar_imagery_quality: str | None = None
    sources: dict[str, dict[str, Any]] = Field(default_factory=dict)
    attribution: dict[str, str] = Field(default_factory=dict)

    def populated_fields(self) -> dict[str, Any]:
        """Return the record fields that currently hold a value."""
        return {
            name: getattr(self, name)
            for name in RECORD_FIELDS
            if getattr(self, name) is not None
        }


class SessionState(StrEnum):
    IDLE = "idle"
    SESSION_OPEN = "session_open"
    FETCHERS_RUNNING = "fetchers_running"
    SETTLED = "settled"
    SUPERSEDED = "superseded"


class SourceStatus(StrEnum):
    PENDING = "pending"
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    SKIPPED = "skipped"


class SourceReport(BaseModel):
    """What happened to one source during a session."""

    source: str
    status: SourceStatus = SourceStatus.PENDING
    error: str | None = None
    error_kind: FetchErrorKind | None = None
    elapsed_ms: float | None = None


class SessionReport(BaseModel):
    """Diagnostics for one enrichment session."""

    token: int
    address: str
    state: SessionState = SessionState.SESSION_OPEN
    coordinates: Coordinates | None = None
    geocode_error: str | None = None
    dispatched: int = 0
    settled: int = 0
    sources: dict[str, SourceReport] = Field(default_factory=dict)

    @property
    def superseded(self) -> bool:
        return self.state == SessionState.SUPERSEDED

    def failures(self) -> list[SourceReport]:
        return [r for r in self.sources.values() if r.status == SourceStatus.FAILED]

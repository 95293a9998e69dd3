"""Source fetcher data models: fetch context, partial results and outcomes."""

from __future__ import annotations

from enum import StrEnum
from typing import Annotated, Any, ClassVar, Literal, Union

from pydantic import BaseModel, Field

from sitedata.core.types import SitedataError
from sitedata.geo.models import Coordinates

FieldValue = str | int | float | None


class FetchContext(BaseModel):
    """Shared context handed to every fetcher in a session."""

    address: str
    coordinates: Coordinates | None = None
    state: str = ""

    @property
    def has_coordinates(self) -> bool:
        return self.coordinates is not None


class _PartialBase(BaseModel):
    """Common behaviour for provider results."""

    model_config = {"frozen": True}

    # Payload fields that are carried along but never merged into the record.
    _unmerged: ClassVar[frozenset[str]] = frozenset()

    def record_fields(self) -> dict[str, Any]:
        """Return the non-null values this result contributes to a PropertyRecord."""
        exclude = {"kind", *self._unmerged}
        return self.model_dump(exclude=exclude, exclude_none=True)


class LotRecordsResult(_PartialBase):
    kind: Literal["lot_records"] = "lot_records"
    lot_size: FieldValue = None
    parcel_number: str | None = None
    owner: str | None = None
    land_use: str | None = None
    interior_area: FieldValue = None
    structure_area: FieldValue = None
    new_construction: bool | None = None
    year_built: int | str | None = None


class ParcelRecordsResult(_PartialBase):
    kind: Literal["parcel_records"] = "parcel_records"
    parcel_number: str | None = None
    owner: str | None = None
    lot_size: FieldValue = None
    land_use: str | None = None


class HazardV1Result(_PartialBase):
    """ASCE 7-16 wind and snow loads."""

    kind: Literal["hazard_7_16"] = "hazard_7_16"
    wind_speed_716: FieldValue = None
    snow_load_716: FieldValue = None


class HazardV2Result(_PartialBase):
    """ASCE 7-22 wind and snow loads."""

    kind: Literal["hazard_7_22"] = "hazard_7_22"
    wind_speed: FieldValue = None
    snow_load: FieldValue = None


class SolarResult(_PartialBase):
    kind: Literal["solar"] = "solar"
    solar_max_panels: int | None = None
    solar_max_array_area_m2: float | None = None
    solar_sunshine_hours_per_year: float | None = None
    solar_imagery_quality: str | None = None
    building_insights: dict[str, Any] = Field(default_factory=dict)
    data_layers: dict[str, Any] = Field(default_factory=dict)

    _unmerged: ClassVar[frozenset[str]] = frozenset({"building_insights", "data_layers"})


PartialRecord = Annotated[
    Union[LotRecordsResult, ParcelRecordsResult, HazardV1Result, HazardV2Result, SolarResult],
    Field(discriminator="kind"),
]


class FetchErrorKind(StrEnum):
    """Categories of fetcher failure."""

    TIMEOUT = "timeout"
    UNAVAILABLE = "unavailable"
    MALFORMED = "malformed"
    NOT_FOUND = "not_found"
    DISABLED = "disabled"
    UNEXPECTED = "unexpected"


class FetchError(SitedataError):
    """A provider-specific failure, isolated to that provider's contribution."""

    def __init__(
        self,
        source: str,
        message: str,
        kind: FetchErrorKind = FetchErrorKind.UNAVAILABLE,
    ) -> None:
        super().__init__(f"{source}: {message}")
        self.source = source
        self.message = message
        self.kind = kind


class FetchOutcome(BaseModel):
    """Settled result of one fetcher invocation."""

    source: str
    success: bool
    data: PartialRecord | None = None
    error: str | None = None
    error_kind: FetchErrorKind | None = None
    elapsed_ms: float = 0.0

    @classmethod
    def succeeded(cls, source: str, data: Any, elapsed_ms: float = 0.0) -> FetchOutcome:
        return cls(source=source, success=True, data=data, elapsed_ms=elapsed_ms)

    @classmethod
    def failed(
        cls,
        source: str,
        error: str,
        kind: FetchErrorKind = FetchErrorKind.UNEXPECTED,
        elapsed_ms: float = 0.0,
    ) -> FetchOutcome:
        return cls(
            source=source,
            success=False,
            error=error,
            error_kind=kind,
            elapsed_ms=elapsed_ms,
        )

    @classmethod
    def from_error(cls, error: FetchError, elapsed_ms: float = 0.0) -> FetchOutcome:
        return cls.failed(error.source, error.message, error.kind, elapsed_ms)

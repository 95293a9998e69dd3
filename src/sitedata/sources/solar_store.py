"""In-memory, append-only store for solar potential snapshots."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Any

from pydantic import BaseModel, Field

from sitedata.geo.models import Coordinates
from sitedata.geo.service import normalize_address

_LOCATION_PRECISION = 4


def _same_location(a: Coordinates, b: Coordinates) -> bool:
    return (
        round(a.lat, _LOCATION_PRECISION) == round(b.lat, _LOCATION_PRECISION)
        and round(a.lng, _LOCATION_PRECISION) == round(b.lng, _LOCATION_PRECISION)
    )


class SolarSnapshot(BaseModel):
    address: str
    coordinates: Coordinates
    building_insights: dict[str, Any] = Field(default_factory=dict)
    data_layers: dict[str, Any] = Field(default_factory=dict)
    saved_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class SolarStore:
    """Keeps every saved snapshot; lookups return the most recent per address."""

    def __init__(self, freshness_seconds: float = 3600.0) -> None:
        self._snapshots: list[SolarSnapshot] = []
        self._freshness = timedelta(seconds=freshness_seconds)

    def save(self, snapshot: SolarSnapshot) -> SolarSnapshot:
        self._snapshots.append(snapshot)
        return snapshot

    def latest(self, address: str) -> SolarSnapshot | None:
        key = normalize_address(address)
        for snapshot in reversed(self._snapshots):
            if normalize_address(snapshot.address) == key:
                return snapshot
        return None

    def fresh(
        self,
        address: str,
        coordinates: Coordinates | None = None,
        now: datetime | None = None,
    ) -> SolarSnapshot | None:
        """Return the latest snapshot if it is younger than the freshness window.

        With ``coordinates``, only snapshots taken at the same rounded location
        are considered.
        """
        candidates = reversed(self.history(address))
        if coordinates is not None:
            candidates = (s for s in candidates if _same_location(s.coordinates, coordinates))
        snapshot = next(candidates, None)
        if snapshot is None:
            return None
        now = now or datetime.now(timezone.utc)
        if now - snapshot.saved_at < self._freshness:
            return snapshot
        return None

    def history(self, address: str) -> list[SolarSnapshot]:
        key = normalize_address(address)
        return [s for s in self._snapshots if normalize_address(s.address) == key]

    @property
    def count(self) -> int:
        return len(self._snapshots)

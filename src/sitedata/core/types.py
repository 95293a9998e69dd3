"""Core type definitions shared across all sitedata modules."""

from __future__ import annotations

from enum import StrEnum


class SourceName(StrEnum):
    """Names of the data sources that contribute to a property record.

    Declaration order is the fallback precedence order used when a field has
    no explicit precedence entry.
    """

    PARCEL_RECORDS = "parcel_records"
    LOT_RECORDS = "lot_records"
    HAZARD_ASCE_7_16 = "hazard_asce_7_16"
    HAZARD_ASCE_7_22 = "hazard_asce_7_22"
    SOLAR_POTENTIAL = "solar_potential"


class ConnectionStatus(StrEnum):
    """Fetcher connection health status."""

    CONNECTED = "connected"
    DEGRADED = "degraded"
    DISABLED = "disabled"


class SitedataError(Exception):
    """Base class for sitedata errors."""


class StaleSessionIgnored(SitedataError):
    """A result arrived for a session that is no longer active."""

    def __init__(self, token: int, active_token: int | None) -> None:
        super().__init__(f"Session {token} is stale (active session: {active_token})")
        self.token = token
        self.active_token = active_token

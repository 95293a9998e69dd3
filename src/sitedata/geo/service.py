"""Geocoder protocol, implementations and factory."""

from __future__ import annotations

from typing import Protocol, runtime_checkable

import httpx

from sitedata.core.config import GeocoderConfig
from sitedata.core.types import SitedataError
from sitedata.geo.models import Coordinates, GeocodeResult


class GeocodeFailure(SitedataError):
    """Coordinates could not be resolved for an address."""

    def __init__(self, address: str, reason: str) -> None:
        super().__init__(f"Could not geocode {address!r}: {reason}")
        self.address = address
        self.reason = reason


@runtime_checkable
class Geocoder(Protocol):
    """Protocol for address geocoders."""

    async def resolve(self, address: str) -> GeocodeResult: ...

    async def close(self) -> None: ...


def normalize_address(address: str) -> str:
    """Lowercase an address and collapse punctuation and whitespace."""
    return " ".join(address.lower().replace(",", " ").split())


class MockGeocoder:
    """Mock geocoder with fixture addresses for development/testing."""

    def __init__(self, fixtures: dict[str, GeocodeResult] | None = None) -> None:
        self._results: dict[str, GeocodeResult] = {}
        if fixtures is None:
            self._load_fixtures()
        else:
            for address, result in fixtures.items():
                self._results[normalize_address(address)] = result

    def _load_fixtures(self) -> None:
        fixtures = [
            GeocodeResult(
                address="123 Solar Way, Boulder, CO 80302",
                coordinates=Coordinates(lat=40.0150, lng=-105.2705),
                state="CO",
                formatted_address="123 Solar Way, Boulder, CO 80302, USA",
            ),
            GeocodeResult(
                address="45 Market St, Harrisburg, PA 17101",
                coordinates=Coordinates(lat=40.2598, lng=-76.8825),
                state="PA",
                formatted_address="45 Market St, Harrisburg, PA 17101, USA",
            ),
            GeocodeResult(
                address="900 Ridge Rd, Tallahassee, FL 32303",
                coordinates=Coordinates(lat=30.4900, lng=-84.3000),
                state="FL",
                formatted_address="900 Ridge Rd, Tallahassee, FL 32303, USA",
            ),
        ]
        for result in fixtures:
            self._results[normalize_address(result.address)] = result

    async def resolve(self, address: str) -> GeocodeResult:
        if not address.strip():
            raise GeocodeFailure(address, "empty address")
        key = normalize_address(address)
        result = self._results.get(key)
        if result is None:
            # Partial match fallback
            for known, candidate in self._results.items():
                if key in known or known in key:
                    result = candidate
                    break
        if result is None:
            raise GeocodeFailure(address, "Address not found")
        return result.model_copy(update={"address": address})

    async def close(self) -> None:
        return None


class GoogleGeocoder:
    """Resolves addresses through the Google Maps Geocoding API."""

    def __init__(self, config: GeocoderConfig) -> None:
        self.config = config
        self._http = httpx.AsyncClient(
            base_url=config.base_url,
            timeout=httpx.Timeout(config.timeout_seconds),
        )

    async def resolve(self, address: str) -> GeocodeResult:
        if not address.strip():
            raise GeocodeFailure(address, "empty address")
        if not self.config.api_key:
            raise GeocodeFailure(address, "Geocoding API key missing")

        try:
            resp = await self._http.get(
                "/maps/api/geocode/json",
                params={"address": address, "key": self.config.api_key},
            )
            resp.raise_for_status()
            data = resp.json()
        except (httpx.HTTPError, ValueError) as exc:
            raise GeocodeFailure(address, str(exc)) from exc

        results = data.get("results") or []
        if data.get("status") != "OK" or not results:
            raise GeocodeFailure(address, data.get("error_message") or "Address not found")

        first = results[0]
        try:
            location = first["geometry"]["location"]
            coordinates = Coordinates(lat=location["lat"], lng=location["lng"])
        except (KeyError, TypeError) as exc:
            raise GeocodeFailure(address, f"malformed response: {exc}") from exc

        state = ""
        for component in first.get("address_components", []):
            if "administrative_area_level_1" in component.get("types", []):
                state = component.get("short_name", "")
                break

        return GeocodeResult(
            address=address,
            coordinates=coordinates,
            state=state,
            formatted_address=first.get("formatted_address", ""),
        )

    async def close(self) -> None:
        await self._http.aclose()


GEOCODER_REGISTRY: dict[str, type] = {
    "mock": MockGeocoder,
    "google": GoogleGeocoder,
}


def create_geocoder(config: GeocoderConfig) -> Geocoder:
    """Factory: select and instantiate a geocoder based on config.provider."""

    provider = config.provider.lower()
    if provider not in GEOCODER_REGISTRY:
        available = ", ".join(sorted(GEOCODER_REGISTRY))
        raise ValueError(
            f"Unknown geocoder provider {config.provider!r}. "
            f"Available: {available}"
        )

    if provider == "mock":
        return MockGeocoder()
    return GEOCODER_REGISTRY[provider](config)

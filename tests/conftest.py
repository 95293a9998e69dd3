"""Shared test fixtures and helpers."""

from __future__ import annotations

import asyncio
from typing import Any

import pytest

from sitedata.geo.models import Coordinates, GeocodeResult
from sitedata.geo.service import GeocodeFailure
from sitedata.sources.models import FetchContext, FetchErrorKind, FetchOutcome

BOULDER = "123 Solar Way, Boulder, CO 80302"
BOULDER_COORDS = Coordinates(lat=40.0150, lng=-105.2705)


class ScriptedFetcher:
    """Fetcher double that settles after ``delay`` with a fixed outcome.

    ``result`` may be a partial record or a callable taking the FetchContext.
    ``error`` produces a failed outcome; ``raises`` escapes fetch() entirely.
    """

    def __init__(
        self,
        name: str,
        result: Any = None,
        error: str | None = None,
        kind: FetchErrorKind = FetchErrorKind.UNAVAILABLE,
        delay: float = 0.0,
        requires_coordinates: bool = False,
        timeout_seconds: float | None = None,
        raises: Exception | None = None,
    ) -> None:
        self.name = name
        self.requires_coordinates = requires_coordinates
        self.timeout_seconds = timeout_seconds
        self._result = result
        self._error = error
        self._kind = kind
        self._delay = delay
        self._raises = raises
        self.calls: list[FetchContext] = []

    async def fetch(self, ctx: FetchContext) -> FetchOutcome:
        self.calls.append(ctx)
        await asyncio.sleep(self._delay)
        if self._raises is not None:
            raise self._raises
        if self._error is not None:
            return FetchOutcome.failed(self.name, self._error, self._kind)
        result = self._result(ctx) if callable(self._result) else self._result
        return FetchOutcome.succeeded(self.name, result)


class ScriptedGeocoder:
    """Geocoder double resolving every address to the same coordinates."""

    def __init__(
        self,
        coordinates: Coordinates | None = BOULDER_COORDS,
        delay: float = 0.0,
        fail_reason: str | None = None,
    ) -> None:
        self._coordinates = coordinates
        self._delay = delay
        self._fail_reason = fail_reason
        self.calls: list[str] = []
        self.closed = False

    async def resolve(self, address: str) -> GeocodeResult:
        self.calls.append(address)
        await asyncio.sleep(self._delay)
        if self._fail_reason is not None or self._coordinates is None:
            raise GeocodeFailure(address, self._fail_reason or "Address not found")
        return GeocodeResult(address=address, coordinates=self._coordinates, state="CO")

    async def close(self) -> None:
        self.closed = True


class EventRecorder:
    """Bus subscriber that keeps every event it receives."""

    def __init__(self) -> None:
        self.events: list[Any] = []

    def __call__(self, event: Any) -> None:
        self.events.append(event)

    def of_type(self, event_type: str) -> list[Any]:
        return [e for e in self.events if e.type == event_type]

    def types(self) -> list[str]:
        return [str(e.type) for e in self.events]

    def for_token(self, token: int) -> list[Any]:
        return [e for e in self.events if e.token == token]


@pytest.fixture
def recorder() -> EventRecorder:
    return EventRecorder()


@pytest.fixture
def geocoder() -> ScriptedGeocoder:
    return ScriptedGeocoder()


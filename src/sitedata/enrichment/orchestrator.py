"""Drives enrichment sessions: geocode, fan out to fetchers, merge, notify.

One session runs per ``enrich`` call. Starting a new session supersedes any
session still in flight: the old session's remaining results become no-ops
in the store and it publishes no further events.

State per session::

    session_open -> fetchers_running -> settled
                 \\-> superseded (from either open state)
"""

from __future__ import annotations

import asyncio
import itertools
import logging
import time
from typing import Iterable

from sitedata.core.config import Settings
from sitedata.core.types import StaleSessionIgnored
from sitedata.enrichment.events import (
    CompletedEvent,
    EnrichmentEvent,
    EventBus,
    StartedEvent,
    UpdatedEvent,
)
from sitedata.enrichment.merge import load_precedence
from sitedata.enrichment.models import (
    SessionReport,
    SessionState,
    SourceReport,
    SourceStatus,
)
from sitedata.enrichment.store import EnrichmentStore
from sitedata.geo.models import Coordinates
from sitedata.geo.service import GeocodeFailure, Geocoder, create_geocoder
from sitedata.sources.base import SourceFetcher
from sitedata.sources.models import FetchContext, FetchErrorKind, FetchOutcome
from sitedata.sources.registry import FetcherRegistry, create_default_registry
from sitedata.sources.solar_store import SolarStore

logger = logging.getLogger(__name__)

_OPEN_STATES = (SessionState.SESSION_OPEN, SessionState.FETCHERS_RUNNING)


class Orchestrator:
    """Runs enrichment sessions against a store and publishes their events."""

    def __init__(
        self,
        geocoder: Geocoder,
        fetchers: FetcherRegistry | Iterable[SourceFetcher],
        store: EnrichmentStore | None = None,
        bus: EventBus | None = None,
        fetch_timeout_seconds: float = 90.0,
    ) -> None:
        self._geocoder = geocoder
        if isinstance(fetchers, FetcherRegistry):
            self._registry = fetchers
        else:
            self._registry = FetcherRegistry()
            for fetcher in fetchers:
                self._registry.register(fetcher)
        self._store = store or EnrichmentStore()
        self._bus = bus or EventBus()
        self._fetch_timeout = fetch_timeout_seconds
        self._tokens = itertools.count(1)
        self._session: SessionReport | None = None
        self._background: set[asyncio.Task] = set()

    @property
    def store(self) -> EnrichmentStore:
        return self._store

    @property
    def bus(self) -> EventBus:
        return self._bus

    @property
    def registry(self) -> FetcherRegistry:
        return self._registry

    @property
    def state(self) -> SessionState:
        if self._session is None:
            return SessionState.IDLE
        return self._session.state

    @property
    def active_token(self) -> int | None:
        return self._store.active_token

    @property
    def session(self) -> SessionReport | None:
        return self._session.model_copy(deep=True) if self._session else None

    # -- public API ----------------------------------------------------------

    def submit(self, address: str, coordinates: Coordinates | None = None) -> asyncio.Task:
        """Open a session now and run the rest of it as a background task.

        The new session is active (and ``started`` published) before this
        returns, so ``active_token`` already names it.
        """
        self._validate(address)
        # Raises RuntimeError before any session state changes.
        asyncio.get_running_loop()
        report = self._open_session(address)
        task = asyncio.create_task(self._drive(report, coordinates))
        # The loop only keeps weak references to tasks.
        self._background.add(task)
        task.add_done_callback(self._background.discard)
        return task

    async def enrich(
        self,
        address: str,
        coordinates: Coordinates | None = None,
    ) -> SessionReport:
        """Run one enrichment session for ``address``.

        ``coordinates`` skips geocoding when the caller already knows them.
        Returns the session report; a superseded session's report has state
        ``superseded`` and its results never reached the store.
        """
        self._validate(address)
        report = self._open_session(address)
        return await self._drive(report, coordinates)

    async def close(self) -> None:
        await self._geocoder.close()

    async def _drive(
        self,
        report: SessionReport,
        coordinates: Coordinates | None,
    ) -> SessionReport:
        token = report.token
        address = report.address
        ctx = await self._build_context(report, coordinates)
        if not self._store.is_active(token):
            return self._discard(report)

        report.state = SessionState.FETCHERS_RUNNING
        fetchers = self._applicable(ctx, report)
        await self._run_fetchers(report, ctx, fetchers)
        if not self._store.is_active(token):
            return self._discard(report)

        report.state = SessionState.SETTLED
        logger.info(
            "Session %d for %r settled: %d/%d sources succeeded",
            token,
            address,
            report.dispatched - len(report.failures()),
            report.dispatched,
        )
        self._publish(
            token,
            CompletedEvent(
                token=token,
                address=address,
                record=self._store.current(),
                report=report.model_copy(deep=True),
            ),
        )
        return report

    # -- session lifecycle ---------------------------------------------------

    @staticmethod
    def _validate(address: str) -> None:
        if not isinstance(address, str) or not address.strip():
            raise ValueError("address must be a non-empty string")

    def _open_session(self, address: str) -> SessionReport:
        previous = self._session
        if previous is not None and previous.state in _OPEN_STATES:
            previous.state = SessionState.SUPERSEDED
            logger.info("Session %d for %r superseded", previous.token, previous.address)

        token = next(self._tokens)
        report = SessionReport(token=token, address=address)
        self._session = report
        self._store.begin_session(token, address)
        self._publish(token, StartedEvent(token=token, address=address))
        return report

    def _discard(self, report: SessionReport) -> SessionReport:
        report.state = SessionState.SUPERSEDED
        logger.debug("Discarding settlement of superseded session %d", report.token)
        return report

    async def _build_context(
        self,
        report: SessionReport,
        coordinates: Coordinates | None,
    ) -> FetchContext:
        if coordinates is not None:
            report.coordinates = coordinates
            return FetchContext(address=report.address, coordinates=coordinates)

        try:
            result = await self._geocoder.resolve(report.address)
        except GeocodeFailure as exc:
            logger.warning("Geocoding failed for %r: %s", report.address, exc.reason)
            report.geocode_error = exc.reason
            return FetchContext(address=report.address)
        except Exception as exc:
            logger.exception("Geocoder raised unexpectedly for %r", report.address)
            report.geocode_error = f"{type(exc).__name__}: {exc}"
            return FetchContext(address=report.address)

        report.coordinates = result.coordinates
        return FetchContext(
            address=report.address,
            coordinates=result.coordinates,
            state=result.state,
        )

    def _applicable(self, ctx: FetchContext, report: SessionReport) -> list[SourceFetcher]:
        applicable = []
        for fetcher in self._registry.all():
            if fetcher.requires_coordinates and not ctx.has_coordinates:
                report.sources[fetcher.name] = SourceReport(
                    source=fetcher.name, status=SourceStatus.SKIPPED
                )
                logger.info("Skipping %s: no coordinates for %r", fetcher.name, ctx.address)
                continue
            report.sources[fetcher.name] = SourceReport(source=fetcher.name)
            applicable.append(fetcher)
        return applicable

    # -- fan-out and join ----------------------------------------------------

    async def _run_fetchers(
        self,
        report: SessionReport,
        ctx: FetchContext,
        fetchers: list[SourceFetcher],
    ) -> None:
        tasks = [
            asyncio.create_task(self._settle(fetcher, ctx), name=f"fetch:{fetcher.name}")
            for fetcher in fetchers
        ]
        report.dispatched = len(tasks)
        try:
            for next_settled in asyncio.as_completed(tasks):
                outcome = await next_settled
                report.settled += 1
                self._apply(report, outcome)
        except asyncio.CancelledError:
            for task in tasks:
                task.cancel()
            raise

    async def _settle(self, fetcher: SourceFetcher, ctx: FetchContext) -> FetchOutcome:
        """Await one fetcher, converting timeouts and escapes into failed outcomes."""
        timeout = fetcher.timeout_seconds or self._fetch_timeout
        start = time.monotonic()
        try:
            outcome = await asyncio.wait_for(fetcher.fetch(ctx), timeout)
        except asyncio.TimeoutError:
            return FetchOutcome.failed(
                fetcher.name,
                f"Timed out after {timeout:g}s",
                FetchErrorKind.TIMEOUT,
                _elapsed_ms(start),
            )
        except Exception as exc:
            logger.exception("Fetcher %s escaped its failure boundary", fetcher.name)
            return FetchOutcome.failed(
                fetcher.name,
                f"{type(exc).__name__}: {exc}",
                FetchErrorKind.UNEXPECTED,
                _elapsed_ms(start),
            )

        if outcome.source != fetcher.name:
            outcome = outcome.model_copy(update={"source": fetcher.name})
        if outcome.success and outcome.data is None:
            return FetchOutcome.failed(
                fetcher.name,
                "Fetcher reported success without data",
                FetchErrorKind.MALFORMED,
                outcome.elapsed_ms,
            )
        return outcome

    def _apply(self, report: SessionReport, outcome: FetchOutcome) -> None:
        token = report.token
        entry = report.sources.setdefault(outcome.source, SourceReport(source=outcome.source))
        entry.elapsed_ms = outcome.elapsed_ms

        if outcome.success:
            entry.status = SourceStatus.SUCCEEDED
            try:
                record = self._store.merge(token, outcome.source, outcome.data)
            except StaleSessionIgnored as exc:
                logger.debug("Ignoring %s result: %s", outcome.source, exc)
                return
            self._publish(
                token,
                UpdatedEvent(
                    token=token,
                    address=report.address,
                    source=outcome.source,
                    record=record,
                ),
            )
            return

        entry.status = SourceStatus.FAILED
        entry.error = outcome.error
        entry.error_kind = outcome.error_kind
        logger.warning(
            "Source %s failed for %r [%s]: %s",
            outcome.source,
            report.address,
            outcome.error_kind,
            outcome.error,
        )
        try:
            self._store.record_failure(token, outcome)
        except StaleSessionIgnored as exc:
            logger.debug("Ignoring %s failure: %s", outcome.source, exc)

    def _publish(self, token: int, event: EnrichmentEvent) -> None:
        # A handler may start a new session mid-delivery.
        self._bus.publish(event, is_current=lambda: self._store.is_active(token))


def _elapsed_ms(start: float) -> float:
    return round((time.monotonic() - start) * 1000, 2)


def create_orchestrator(
    settings: Settings | None = None,
    solar_store: SolarStore | None = None,
) -> Orchestrator:
    """Wire an Orchestrator from settings: geocoder, fetchers, precedence and store."""
    settings = settings or Settings()
    solar_store = solar_store or SolarStore(settings.solar.freshness_seconds)
    registry = create_default_registry(settings.sources, solar_store=solar_store)
    store = EnrichmentStore(load_precedence(settings.sources.config_path))
    return Orchestrator(
        geocoder=create_geocoder(settings.geocoder),
        fetchers=registry,
        store=store,
        fetch_timeout_seconds=settings.sources.fetch_timeout_seconds,
    )

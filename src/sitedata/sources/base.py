"""Base source fetcher with Protocol definition and ABC implementation."""

from __future__ import annotations

import logging
import time
from abc import ABC, abstractmethod
from typing import Protocol, runtime_checkable

from pydantic import BaseModel

from sitedata.core.types import ConnectionStatus
from sitedata.sources.models import (
    FetchContext,
    FetchError,
    FetchErrorKind,
    FetchOutcome,
)

logger = logging.getLogger(__name__)


class FetcherConfig(BaseModel):
    """Configuration for a source fetcher."""

    name: str
    enabled: bool = True
    timeout_seconds: float | None = None
    description: str = ""
    latency_seconds: float = 0.0


class FetcherSchema(BaseModel):
    """Schema describing a fetcher's requirements and health."""

    name: str
    description: str = ""
    requires_coordinates: bool = False
    timeout_seconds: float | None = None
    status: ConnectionStatus = ConnectionStatus.CONNECTED


@runtime_checkable
class SourceFetcher(Protocol):
    """Protocol for property data sources."""

    @property
    def name(self) -> str: ...

    @property
    def requires_coordinates(self) -> bool: ...

    @property
    def timeout_seconds(self) -> float | None: ...

    async def fetch(self, ctx: FetchContext) -> FetchOutcome: ...


class BaseSourceFetcher(ABC):
    """Abstract base class for source fetchers.

    Converts every failure raised by ``_do_fetch`` into a failed
    FetchOutcome, times each call, and tracks connection health.
    """

    requires_coordinates: bool = False

    def __init__(self, config: FetcherConfig) -> None:
        self._config = config
        self._status = (
            ConnectionStatus.CONNECTED if config.enabled else ConnectionStatus.DISABLED
        )
        self._consecutive_failures = 0

    @property
    def name(self) -> str:
        return self._config.name

    @property
    def timeout_seconds(self) -> float | None:
        return self._config.timeout_seconds

    @property
    def schema(self) -> FetcherSchema:
        return FetcherSchema(
            name=self.name,
            description=self._config.description,
            requires_coordinates=self.requires_coordinates,
            timeout_seconds=self.timeout_seconds,
            status=self._status,
        )

    @abstractmethod
    async def _do_fetch(self, ctx: FetchContext) -> BaseModel:
        """Query the provider. Subclasses implement this and may raise FetchError."""

    async def fetch(self, ctx: FetchContext) -> FetchOutcome:
        """Run the fetch and always return a settled outcome."""
        if not self._config.enabled:
            return FetchOutcome.failed(self.name, "Fetcher is disabled", FetchErrorKind.DISABLED)

        start = time.monotonic()
        try:
            data = await self._do_fetch(ctx)
            outcome = FetchOutcome.succeeded(self.name, data, self._elapsed_ms(start))
        except FetchError as exc:
            outcome = FetchOutcome.from_error(exc, self._elapsed_ms(start))
        except Exception as exc:
            logger.exception("Fetcher %s raised unexpectedly", self.name)
            outcome = FetchOutcome.failed(
                self.name,
                f"{type(exc).__name__}: {exc}",
                FetchErrorKind.UNEXPECTED,
                self._elapsed_ms(start),
            )

        self._update_status(outcome)
        return outcome

    def health_check(self) -> ConnectionStatus:
        return self._status

    def _update_status(self, outcome: FetchOutcome) -> None:
        if outcome.success:
            self._consecutive_failures = 0
            self._status = ConnectionStatus.CONNECTED
            return
        # Not-found answers mean the provider is reachable.
        if outcome.error_kind == FetchErrorKind.NOT_FOUND:
            return
        self._consecutive_failures += 1
        if self._consecutive_failures >= 2:
            self._status = ConnectionStatus.DEGRADED

    @staticmethod
    def _elapsed_ms(start: float) -> float:
        return round((time.monotonic() - start) * 1000, 2)

"""In-memory store holding the active session's merged record."""

from __future__ import annotations

from sitedata.core.types import StaleSessionIgnored
from sitedata.enrichment.merge import DEFAULT_PRECEDENCE, Precedence, merge_partial
from sitedata.enrichment.models import PropertyRecord, SourceReport, SourceStatus
from sitedata.sources.models import FetchOutcome, PartialRecord


class EnrichmentStore:
    """Current property record, its provenance, and the active session token.

    Every write names the session token it belongs to. Writes for any token
    other than the active one raise StaleSessionIgnored and change nothing.
    """

    def __init__(self, precedence: Precedence | None = None) -> None:
        self._precedence = precedence if precedence is not None else dict(DEFAULT_PRECEDENCE)
        self._active_token: int | None = None
        self._record = PropertyRecord()
        self._failures: dict[str, SourceReport] = {}

    @property
    def active_token(self) -> int | None:
        return self._active_token

    @property
    def precedence(self) -> Precedence:
        return {field: list(order) for field, order in self._precedence.items()}

    def is_active(self, token: int) -> bool:
        return self._active_token == token

    def begin_session(self, token: int, address: str) -> None:
        """Reset record, provenance and diagnostics and make ``token`` active."""
        if self._active_token is not None and token <= self._active_token:
            raise ValueError(
                f"Session token {token} must be greater than the active token {self._active_token}"
            )
        self._active_token = token
        self._record = PropertyRecord(address=address)
        self._failures = {}

    def merge(self, token: int, source_name: str, partial: PartialRecord) -> PropertyRecord:
        """Apply one source's result and return a snapshot of the cumulative record."""
        self._check(token)
        self._record = merge_partial(self._record, partial, source_name, self._precedence)
        return self.current()

    def record_failure(self, token: int, outcome: FetchOutcome) -> None:
        """Add a failed fetch to the session diagnostics."""
        self._check(token)
        self._failures[outcome.source] = SourceReport(
            source=outcome.source,
            status=SourceStatus.FAILED,
            error=outcome.error,
            error_kind=outcome.error_kind,
            elapsed_ms=outcome.elapsed_ms,
        )

    def current(self) -> PropertyRecord:
        return self._record.model_copy(deep=True)

    def diagnostics(self) -> list[SourceReport]:
        return [report.model_copy() for report in self._failures.values()]

    def _check(self, token: int) -> None:
        if token != self._active_token:
            raise StaleSessionIgnored(token, self._active_token)

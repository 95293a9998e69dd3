"""Property data enrichment: store, merge rules, events and orchestration."""

from sitedata.enrichment.events import EventBus, EventType
from sitedata.enrichment.models import PropertyRecord, SessionReport, SessionState
from sitedata.enrichment.orchestrator import Orchestrator
from sitedata.enrichment.store import EnrichmentStore

__all__ = [
    "EnrichmentStore",
    "EventBus",
    "EventType",
    "Orchestrator",
    "PropertyRecord",
    "SessionReport",
    "SessionState",
]

"""Typed enrichment events and the in-process event bus."""

from __future__ import annotations

import logging
from enum import StrEnum
from typing import Annotated, Callable, Literal, Union

from pydantic import BaseModel, Field

from sitedata.enrichment.models import PropertyRecord, SessionReport

logger = logging.getLogger(__name__)


class EventType(StrEnum):
    STARTED = "started"
    UPDATED = "updated"
    COMPLETED = "completed"


class StartedEvent(BaseModel):
    type: Literal[EventType.STARTED] = EventType.STARTED
    token: int
    address: str


class UpdatedEvent(BaseModel):
    type: Literal[EventType.UPDATED] = EventType.UPDATED
    token: int
    address: str
    source: str
    record: PropertyRecord


class CompletedEvent(BaseModel):
    type: Literal[EventType.COMPLETED] = EventType.COMPLETED
    token: int
    address: str
    record: PropertyRecord
    report: SessionReport


EnrichmentEvent = Annotated[
    Union[StartedEvent, UpdatedEvent, CompletedEvent],
    Field(discriminator="type"),
]

EventHandler = Callable[[EnrichmentEvent], None]


class EventBus:
    """Synchronous publish/subscribe for enrichment events.

    Handlers run in subscription order, in the order events are published.
    A failing handler is logged and does not block the others.
    """

    def __init__(self) -> None:
        self._subscribers: list[tuple[EventHandler, EventType | None]] = []

    def subscribe(
        self,
        handler: EventHandler,
        event_type: EventType | None = None,
    ) -> Callable[[], None]:
        """Register ``handler``; returns a function that unsubscribes it."""
        entry = (handler, event_type)
        self._subscribers.append(entry)

        def unsubscribe() -> None:
            if entry in self._subscribers:
                self._subscribers.remove(entry)

        return unsubscribe

    def publish(
        self,
        event: EnrichmentEvent,
        is_current: Callable[[], bool] | None = None,
    ) -> None:
        """Deliver ``event`` to matching handlers.

        ``is_current`` is checked before each handler; once it returns False
        the remaining handlers are skipped.
        """
        for handler, event_type in list(self._subscribers):
            if is_current is not None and not is_current():
                logger.debug(
                    "Dropping %s event for superseded session %d", event.type, event.token
                )
                return
            if event_type is not None and event.type != event_type:
                continue
            try:
                handler(event)
            except Exception:
                logger.exception("Event handler %r failed on %s event", handler, event.type)

    @property
    def subscriber_count(self) -> int:
        return len(self._subscribers)

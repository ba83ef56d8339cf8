"""EventCollector - the event ingestion path."""

from __future__ import annotations

import uuid

import structlog
from sqlalchemy.exc import SQLAlchemyError

from beacon.models.application import Application
from beacon.models.event import Event
from beacon.schemas import EventIn
from beacon.stores.events import EventStore
from beacon.utils.datetime import Clock, to_naive_utc, utcnow

logger = structlog.get_logger()


class EventCollector:
    """Writes client events to the event log.

    Cached summaries are not invalidated here; they catch up once their
    TTL runs out.
    """

    def __init__(self, event_store: EventStore, *, clock: Clock = utcnow) -> None:
        self._events = event_store
        self._clock = clock
        self._log = logger.bind(service="ingestion")

    async def collect(self, application: Application, event_in: EventIn) -> Event:
        """Append one event for the authenticated application.

        Raises:
            SQLAlchemyError: Storage failures propagate to the caller
        """
        event = Event(
            id=str(uuid.uuid4()),
            application_id=application.id,
            event_name=event_in.event,
            url=event_in.url,
            referrer=event_in.referrer,
            device_type=event_in.device,
            client_user_id=event_in.client_user_id,
            ip_address=str(event_in.ip_address) if event_in.ip_address else None,
            event_metadata=event_in.metadata,
            timestamp=to_naive_utc(event_in.timestamp),
            ingested_at=self._clock(),
        )

        try:
            await self._events.append(event)
        except SQLAlchemyError as e:
            self._log.error(
                "event.collect_failed",
                application_id=application.id,
                event_name=event.event_name,
                error=str(e),
            )
            raise

        self._log.debug(
            "event.collected",
            application_id=application.id,
            event_name=event.event_name,
        )
        return event

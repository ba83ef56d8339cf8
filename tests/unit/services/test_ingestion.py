"""Unit tests for EventCollector."""

from __future__ import annotations

from datetime import UTC, datetime, timedelta, timezone
from unittest.mock import AsyncMock

import pytest
from sqlalchemy.exc import OperationalError

from beacon.models.application import Application
from beacon.schemas import EventIn
from beacon.services.ingestion import EventCollector
from beacon.stores.events import EventFilter, EventStore
from tests.fakes import FakeClock


@pytest.fixture
def collector(event_store: EventStore, clock: FakeClock) -> EventCollector:
    return EventCollector(event_store, clock=clock)


class TestCollect:
    async def test_event_is_persisted_with_server_fields(
        self,
        collector: EventCollector,
        event_store: EventStore,
        application: Application,
        clock: FakeClock,
    ):
        event_in = EventIn.model_validate(
            {
                "event": "click",
                "url": "https://acme.test/pricing",
                "referrer": "https://search.test/",
                "device": "mobile",
                "clientUserId": "u1",
                "ipAddress": "192.168.1.7",
                "timestamp": "2024-05-01T10:00:00Z",
                "metadata": {"browser": "Safari", "tags": ["a", "b"], "nested": {"x": 1}},
            }
        )

        event = await collector.collect(application, event_in)

        assert event.application_id == application.id
        assert event.ingested_at == clock()
        assert event.timestamp == datetime(2024, 5, 1, 10, 0, 0)
        assert event.ip_address == "192.168.1.7"

        [stored] = await event_store.find_events(EventFilter(application_id=application.id))
        assert stored.id == event.id
        assert stored.device_type == "mobile"
        assert stored.event_metadata == {"browser": "Safari", "tags": ["a", "b"], "nested": {"x": 1}}

    async def test_aware_timestamp_is_normalised_to_utc(
        self,
        collector: EventCollector,
        application: Application,
    ):
        local = datetime(2024, 5, 1, 12, 0, 0, tzinfo=timezone(timedelta(hours=2)))

        event = await collector.collect(
            application,
            EventIn(event="view", device="desktop", timestamp=local),
        )

        assert event.timestamp == datetime(2024, 5, 1, 10, 0, 0)
        assert event.timestamp.tzinfo is None

    async def test_storage_failure_propagates(
        self,
        event_store: EventStore,
        application: Application,
        monkeypatch: pytest.MonkeyPatch,
    ):
        monkeypatch.setattr(
            event_store,
            "append",
            AsyncMock(side_effect=OperationalError("INSERT", {}, Exception("locked"))),
        )
        collector = EventCollector(event_store)

        with pytest.raises(OperationalError):
            await collector.collect(
                application,
                EventIn(event="view", device="desktop", timestamp=datetime.now(UTC)),
            )


class TestEventInValidation:
    def test_invalid_ip_rejected(self):
        with pytest.raises(ValueError):
            EventIn(event="view", device="desktop", timestamp=datetime.now(UTC), ip_address="nope")

    def test_empty_event_name_rejected(self):
        with pytest.raises(ValueError):
            EventIn(event="", device="desktop", timestamp=datetime.now(UTC))

    def test_camel_case_aliases(self):
        event_in = EventIn.model_validate(
            {"event": "view", "device": "tablet", "timestamp": "2024-01-01T00:00:00", "clientUserId": "u7"}
        )
        assert event_in.client_user_id == "u7"

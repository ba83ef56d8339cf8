"""Unit tests for EventStore queries."""

from __future__ import annotations

import uuid
from datetime import datetime

import pytest

from beacon.models.application import Application
from beacon.models.event import Event
from beacon.models.user import User
from beacon.stores.credentials import CredentialStore
from beacon.stores.events import EventFilter, EventStore


def _event(
    name: str,
    *,
    app: str = "app-1",
    user: str | None = None,
    device: str = "desktop",
    at: datetime = datetime(2024, 1, 10, 12, 0, 0),
) -> Event:
    return Event(
        id=str(uuid.uuid4()),
        application_id=app,
        event_name=name,
        device_type=device,
        client_user_id=user,
        timestamp=at,
    )


@pytest.fixture
async def seeded(
    event_store: EventStore,
    credential_store: CredentialStore,
    owner: User,
) -> EventStore:
    for app_id in ("app-1", "app-2"):
        await credential_store.create_application(
            Application(id=app_id, name=app_id, owner_id=owner.id)
        )
    for event in (
        _event("click", user="u1", at=datetime(2024, 1, 1, 0, 0, 0)),
        _event("click", user="u1", device="mobile", at=datetime(2024, 1, 15)),
        _event("click", user="u2", device="mobile", at=datetime(2024, 1, 31, 23, 0)),
        _event("click", at=datetime(2024, 2, 1)),
        _event("view", user="u1", at=datetime(2024, 1, 20)),
        _event("click", app="app-2", user="u9"),
    ):
        await event_store.append(event)
    return event_store


class TestAggregates:
    async def test_count_is_scoped_to_application(self, seeded: EventStore):
        assert await seeded.count_events(EventFilter("app-1", event_name="click")) == 4
        assert await seeded.count_events(EventFilter("app-2", event_name="click")) == 1

    async def test_bounds_are_inclusive(self, seeded: EventStore):
        event_filter = EventFilter(
            "app-1",
            event_name="click",
            start=datetime(2024, 1, 1, 0, 0, 0),
            end=datetime(2024, 1, 31, 23, 0),
        )
        assert await seeded.count_events(event_filter) == 3

    async def test_distinct_users_skip_anonymous(self, seeded: EventStore):
        assert await seeded.count_distinct_users(EventFilter("app-1", event_name="click")) == 2

    async def test_group_by_device(self, seeded: EventStore):
        breakdown = await seeded.group_count_by_device(EventFilter("app-1", event_name="click"))
        assert breakdown == {"desktop": 2, "mobile": 2}

    async def test_find_events_newest_first(self, seeded: EventStore):
        events = await seeded.find_events(EventFilter("app-1", client_user_id="u1"))

        assert [e.timestamp for e in events] == [
            datetime(2024, 1, 20),
            datetime(2024, 1, 15),
            datetime(2024, 1, 1),
        ]

    async def test_find_events_oldest_first_with_limit(self, seeded: EventStore):
        events = await seeded.find_events(
            EventFilter("app-1", client_user_id="u1"),
            newest_first=False,
            limit=1,
        )

        assert [e.timestamp for e in events] == [datetime(2024, 1, 1)]

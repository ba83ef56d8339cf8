"""EventStore - append-only event log with aggregate queries."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any

from sqlalchemy import distinct, func, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from beacon.db.session import session_scope
from beacon.models.event import Event


@dataclass(frozen=True)
class EventFilter:
    """Selection of events. Time bounds are inclusive."""

    application_id: str
    event_name: str | None = None
    client_user_id: str | None = None
    start: datetime | None = None
    end: datetime | None = None

    def clauses(self) -> list[Any]:
        conditions: list[Any] = [Event.application_id == self.application_id]
        if self.event_name is not None:
            conditions.append(Event.event_name == self.event_name)
        if self.client_user_id is not None:
            conditions.append(Event.client_user_id == self.client_user_id)
        if self.start is not None:
            conditions.append(Event.timestamp >= self.start)
        if self.end is not None:
            conditions.append(Event.timestamp <= self.end)
        return conditions


class EventStore:
    """Repository for Event rows. Rows are inserted, never updated."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    async def append(self, event: Event) -> Event:
        async with session_scope(self._session_factory) as session:
            session.add(event)
            await session.flush()
        return event

    async def count_events(self, event_filter: EventFilter) -> int:
        query = select(func.count()).select_from(Event).where(*event_filter.clauses())
        async with session_scope(self._session_factory) as session:
            result = await session.execute(query)
            return int(result.scalar_one())

    async def count_distinct_users(self, event_filter: EventFilter) -> int:
        """Distinct client_user_id values; events without a user id don't count."""
        query = select(func.count(distinct(Event.client_user_id))).where(
            *event_filter.clauses()
        )
        async with session_scope(self._session_factory) as session:
            result = await session.execute(query)
            return int(result.scalar_one())

    async def group_count_by_device(self, event_filter: EventFilter) -> dict[str, int]:
        query = (
            select(Event.device_type, func.count())
            .where(*event_filter.clauses())
            .group_by(Event.device_type)
        )
        async with session_scope(self._session_factory) as session:
            result = await session.execute(query)
            return {device: int(count) for device, count in result.all()}

    async def find_events(
        self,
        event_filter: EventFilter,
        *,
        newest_first: bool = True,
        limit: int | None = None,
    ) -> list[Event]:
        order = Event.timestamp.desc() if newest_first else Event.timestamp.asc()
        query = select(Event).where(*event_filter.clauses()).order_by(order)
        if limit is not None:
            query = query.limit(limit)
        async with session_scope(self._session_factory) as session:
            result = await session.execute(query)
            return list(result.scalars().all())

"""SummaryEngine - cached event summaries and per-user statistics.

Both queries are scoped to the authenticated application and memoized in
the aggregation cache for a fixed TTL. New events do not invalidate cached
results, so answers may be up to one TTL stale.
"""

from __future__ import annotations

from datetime import date, datetime

import structlog

from beacon.cache.base import CacheBackend, build_cache_key
from beacon.errors import NotFoundError
from beacon.models.application import Application
from beacon.models.event import Event
from beacon.schemas import EventSummary, UserStats
from beacon.stores.events import EventFilter, EventStore
from beacon.utils.datetime import end_bound, start_bound

logger = structlog.get_logger()

DEFAULT_SUMMARY_TTL_SECONDS = 300

# Metadata fields copied from the latest event into user stats
_DEVICE_DETAIL_FIELDS = ("browser", "os", "screenSize")


def _device_details(event: Event) -> dict:
    metadata = event.event_metadata or {}
    return {name: metadata[name] for name in _DEVICE_DETAIL_FIELDS if name in metadata}


class SummaryEngine:
    """Answers summary queries from the cache, falling back to the event log."""

    def __init__(
        self,
        event_store: EventStore,
        cache: CacheBackend,
        *,
        ttl_seconds: int = DEFAULT_SUMMARY_TTL_SECONDS,
    ) -> None:
        self._events = event_store
        self._cache = cache
        self._ttl = ttl_seconds
        self._log = logger.bind(service="summary")

    async def get_event_summary(
        self,
        application: Application,
        event_name: str,
        start_date: date | datetime | None = None,
        end_date: date | datetime | None = None,
        *,
        application_id: str | None = None,
    ) -> EventSummary:
        """Count, unique users and device breakdown for one event name.

        Args:
            application: Authenticated application; the only scope used
            event_name: Event to summarise
            start_date: Inclusive lower bound; a date means its midnight
            end_date: Inclusive upper bound; a date covers the whole day
            application_id: Caller-supplied id, ignored if it differs

        Returns:
            EventSummary, possibly served from cache
        """
        if application_id is not None and application_id != application.id:
            self._log.warning(
                "summary.application_id_ignored",
                requested=application_id,
                application_id=application.id,
            )

        key = build_cache_key(
            "event-summary",
            application.id,
            event_name,
            start_date.isoformat() if start_date is not None else None,
            end_date.isoformat() if end_date is not None else None,
        )
        cached = await self._cache.get(key)
        if cached is not None:
            self._log.debug("summary.cache_hit", key=key)
            return EventSummary.model_validate(cached)
        self._log.debug("summary.cache_miss", key=key)

        event_filter = EventFilter(
            application_id=application.id,
            event_name=event_name,
            start=start_bound(start_date) if start_date is not None else None,
            end=end_bound(end_date) if end_date is not None else None,
        )
        summary = EventSummary(
            event=event_name,
            count=await self._events.count_events(event_filter),
            unique_users=await self._events.count_distinct_users(event_filter),
            device_breakdown=await self._events.group_count_by_device(event_filter),
            application_id=application.id,
        )

        await self._cache.set(key, summary.model_dump(mode="json"), self._ttl)
        return summary

    async def get_user_stats(
        self,
        application: Application,
        client_user_id: str,
    ) -> UserStats:
        """Total events for one client user and details of their latest event.

        Raises:
            NotFoundError: If the user has no events in this application
        """
        key = build_cache_key("user-stats", application.id, client_user_id)
        cached = await self._cache.get(key)
        if cached is not None:
            self._log.debug("summary.cache_hit", key=key)
            return UserStats.model_validate(cached)
        self._log.debug("summary.cache_miss", key=key)

        event_filter = EventFilter(
            application_id=application.id,
            client_user_id=client_user_id,
        )
        total = await self._events.count_events(event_filter)
        if total == 0:
            raise NotFoundError(
                f"No data found for user {client_user_id}",
                details={"user_id": client_user_id},
            )

        latest = (await self._events.find_events(event_filter, newest_first=True, limit=1))[0]
        stats = UserStats(
            user_id=client_user_id,
            total_events=total,
            application_id=application.id,
            device_details=_device_details(latest),
            ip_address=latest.ip_address,
            last_seen=latest.timestamp,
        )

        await self._cache.set(key, stats.model_dump(mode="json"), self._ttl)
        return stats

"""Client endpoints: event collection and summaries.

All routes authenticate the calling application by its ``X-API-Key``
header. Queries are always scoped to that application.
"""

from __future__ import annotations

from datetime import date, datetime

from fastapi import APIRouter, Query

from beacon.api.dependencies import ApplicationDep, EventCollectorDep, SummaryEngineDep
from beacon.errors import ValidationError
from beacon.schemas import CamelModel, EventIn, EventSummary, UserStats
from beacon.utils.datetime import end_bound, start_bound

router = APIRouter()


class CollectedEventResponse(CamelModel):
    id: str
    event: str
    timestamp: datetime


def _parse_bound(name: str, value: str | None) -> date | datetime | None:
    """Parse a date bound.

    ``YYYY-MM-DD`` stays a date (whole-day semantics); anything longer must
    be an ISO datetime.
    """
    if value is None:
        return None
    try:
        if len(value) == 10:
            return date.fromisoformat(value)
        return datetime.fromisoformat(value)
    except ValueError as e:
        raise ValidationError(
            f"{name} must be an ISO date or datetime",
            details={name: value},
        ) from e


@router.post("/collect", response_model=CollectedEventResponse, status_code=201)
async def collect_event(
    event_in: EventIn,
    application: ApplicationDep,
    collector: EventCollectorDep,
) -> CollectedEventResponse:
    """Record one event for the calling application."""
    event = await collector.collect(application, event_in)
    return CollectedEventResponse(id=event.id, event=event.event_name, timestamp=event.timestamp)


@router.get("/event-summary", response_model=EventSummary)
async def event_summary(
    application: ApplicationDep,
    engine: SummaryEngineDep,
    event: str = Query(..., min_length=1),
    start_date: str | None = Query(None, alias="startDate"),
    end_date: str | None = Query(None, alias="endDate"),
    app_id: str | None = Query(None),
) -> EventSummary:
    """Count, unique users and device breakdown for one event name.

    ``app_id`` is accepted for compatibility but only the authenticated
    application is ever queried. Results may lag new events by up to the
    cache TTL.
    """
    start = _parse_bound("startDate", start_date)
    end = _parse_bound("endDate", end_date)
    if start is not None and end is not None and start_bound(start) > end_bound(end):
        raise ValidationError(
            "startDate must not be after endDate",
            details={"startDate": start_date, "endDate": end_date},
        )

    return await engine.get_event_summary(
        application,
        event,
        start,
        end,
        application_id=app_id,
    )


@router.get("/user-stats", response_model=UserStats)
async def user_stats(
    application: ApplicationDep,
    engine: SummaryEngineDep,
    user_id: str = Query(..., alias="userId", min_length=1),
) -> UserStats:
    """Event total and latest-event snapshot for one client user."""
    return await engine.get_user_stats(application, user_id)

"""Datetime helpers.

Provides UTC timestamp helpers without using deprecated ``datetime.utcnow()``.
"""

from __future__ import annotations

from collections.abc import Callable
from datetime import UTC, date, datetime, time

# Injected wherever "now" matters so tests can pin time.
Clock = Callable[[], datetime]

_END_OF_DAY = time(23, 59, 59, 999000)


def utcnow() -> datetime:
    """Return current UTC time as a naive datetime.

    Timestamps are stored as naive UTC datetimes in the models.
    """
    return datetime.now(UTC).replace(tzinfo=None)


def to_naive_utc(value: datetime) -> datetime:
    """Normalize an aware datetime to naive UTC; naive values pass through."""
    if value.tzinfo is None:
        return value
    return value.astimezone(UTC).replace(tzinfo=None)


def start_bound(value: date | datetime) -> datetime:
    """Lower inclusive bound: a bare date means midnight of that day."""
    if isinstance(value, datetime):
        return to_naive_utc(value)
    return datetime.combine(value, time.min)


def end_bound(value: date | datetime) -> datetime:
    """Upper inclusive bound: a bare date covers the whole calendar day."""
    if isinstance(value, datetime):
        return to_naive_utc(value)
    return datetime.combine(value, _END_OF_DAY)

"""Typed values exchanged between the core and its callers.

Field names are snake_case in Python and camelCase on the wire.
"""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field, IPvAnyAddress, JsonValue
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Base model exposing camelCase aliases on the wire."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class EventIn(CamelModel):
    """An event as submitted by a client application."""

    event: str = Field(min_length=1, max_length=255)
    url: str | None = Field(default=None, max_length=2048)
    referrer: str | None = Field(default=None, max_length=2048)
    device: str = Field(min_length=1, max_length=64)
    client_user_id: str | None = Field(default=None, max_length=255)
    ip_address: IPvAnyAddress | None = None
    timestamp: datetime
    # browser, os, screenSize and any custom data
    metadata: dict[str, JsonValue] | None = None


class EventSummary(CamelModel):
    """Aggregate over one event name of one application."""

    event: str
    count: int
    unique_users: int
    device_breakdown: dict[str, int]
    application_id: str


class UserStats(CamelModel):
    """Event total for one client user plus a snapshot of their latest event."""

    user_id: str
    total_events: int
    application_id: str
    device_details: dict[str, JsonValue]
    ip_address: str | None
    last_seen: datetime


class ApiKeyMetadata(CamelModel):
    """Displayable key facts; never the hash or the plaintext."""

    id: str
    key_prefix: str
    created_at: datetime
    expires_at: datetime
    revoked_at: datetime | None
    last_used_at: datetime | None

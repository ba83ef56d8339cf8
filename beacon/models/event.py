"""Event data model.

Events are append-only: written once by ingestion, never updated.
"""

from datetime import datetime
from typing import TYPE_CHECKING, Optional

from pydantic import JsonValue
from sqlalchemy import JSON, Column, DateTime, Index
from sqlmodel import Field, Relationship, SQLModel

from beacon.utils.datetime import utcnow

if TYPE_CHECKING:
    from beacon.models.application import Application

# Free-form client metadata: nested maps, lists and scalars only
EventMetadata = dict[str, JsonValue]


class Event(SQLModel, table=True):
    """A single usage event submitted by a client application."""

    __tablename__ = "events"
    __table_args__ = (
        Index("ix_events_app_timestamp", "application_id", "timestamp"),
        Index("ix_events_app_name_timestamp", "application_id", "event_name", "timestamp"),
        Index("ix_events_app_user_timestamp", "application_id", "client_user_id", "timestamp"),
    )

    id: str = Field(primary_key=True)
    application_id: str = Field(foreign_key="applications.id", ondelete="CASCADE")

    event_name: str = Field(index=True)
    url: Optional[str] = Field(default=None)
    referrer: Optional[str] = Field(default=None)
    device_type: str = Field()
    client_user_id: Optional[str] = Field(default=None, index=True)
    ip_address: Optional[str] = Field(default=None)

    # Column is named "metadata"; the attribute can't be, SQLModel reserves it
    event_metadata: Optional[EventMetadata] = Field(
        default=None,
        sa_column=Column("metadata", JSON, nullable=True),
    )

    # Client-asserted time of the event
    timestamp: datetime = Field(index=True, sa_type=DateTime)
    # Server-asserted time of ingestion
    ingested_at: datetime = Field(default_factory=utcnow, sa_type=DateTime)

    application: Optional["Application"] = Relationship(back_populates="events")

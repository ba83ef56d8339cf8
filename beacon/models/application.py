"""Application data model.

An application is the tenant unit: API keys and events belong to it.
Deleting an application cascades to both.
"""

from datetime import datetime
from typing import TYPE_CHECKING, Optional

from sqlalchemy import DateTime
from sqlmodel import Field, Relationship, SQLModel

from beacon.utils.datetime import utcnow

if TYPE_CHECKING:
    from beacon.models.api_key import ApiKey
    from beacon.models.event import Event
    from beacon.models.user import User


class Application(SQLModel, table=True):
    """Client application registered by an owner."""

    __tablename__ = "applications"

    id: str = Field(primary_key=True)
    name: str = Field(max_length=100)
    owner_id: str = Field(foreign_key="users.id", ondelete="CASCADE", index=True)

    created_at: datetime = Field(default_factory=utcnow, sa_type=DateTime)
    updated_at: datetime = Field(
        default_factory=utcnow,
        sa_type=DateTime,
        sa_column_kwargs={"onupdate": utcnow},
    )

    owner: Optional["User"] = Relationship(back_populates="applications")
    api_keys: list["ApiKey"] = Relationship(
        back_populates="application",
        cascade_delete=True,
    )
    # Rows are removed by the database cascade, not loaded first
    events: list["Event"] = Relationship(
        back_populates="application",
        cascade_delete=True,
        passive_deletes=True,
    )

"""Owner account model.

Owners sign in through an external identity provider; Beacon only keeps
the fields needed to attribute applications to them.
"""

from datetime import datetime
from typing import TYPE_CHECKING, Optional

from sqlalchemy import DateTime
from sqlmodel import Field, Relationship, SQLModel

from beacon.utils.datetime import utcnow

if TYPE_CHECKING:
    from beacon.models.application import Application


class User(SQLModel, table=True):
    """Application owner."""

    __tablename__ = "users"

    id: str = Field(primary_key=True)
    email: str = Field(unique=True, index=True)
    name: Optional[str] = Field(default=None)
    google_id: Optional[str] = Field(default=None, unique=True)

    created_at: datetime = Field(default_factory=utcnow, sa_type=DateTime)
    updated_at: datetime = Field(
        default_factory=utcnow,
        sa_type=DateTime,
        sa_column_kwargs={"onupdate": utcnow},
    )

    applications: list["Application"] = Relationship(
        back_populates="owner",
        cascade_delete=True,
    )

"""API Key data model.

Stores bcrypt hashes of client API keys. Plaintext keys are never stored;
key_prefix keeps the first few plaintext chars for display and for
narrowing candidates during validation.
"""

from datetime import datetime
from enum import Enum
from typing import TYPE_CHECKING, Optional

from sqlalchemy import DateTime
from sqlmodel import Field, Relationship, SQLModel

from beacon.utils.datetime import utcnow

if TYPE_CHECKING:
    from beacon.models.application import Application


class ApiKeyState(str, Enum):
    """Lifecycle state of a key. EXPIRED is derived from time, never stored."""

    ACTIVE = "active"
    REVOKED = "revoked"
    EXPIRED = "expired"


class ApiKey(SQLModel, table=True):
    """API key issued to an application."""

    __tablename__ = "api_keys"

    id: str = Field(primary_key=True)
    key_hash: str = Field(unique=True)  # bcrypt digest
    key_prefix: str = Field(index=True)
    application_id: str = Field(
        foreign_key="applications.id",
        ondelete="CASCADE",
        index=True,
    )

    expires_at: datetime = Field(sa_type=DateTime)
    revoked_at: Optional[datetime] = Field(default=None, sa_type=DateTime)  # set once, never cleared
    last_used_at: Optional[datetime] = Field(default=None, sa_type=DateTime)

    created_at: datetime = Field(default_factory=utcnow, sa_type=DateTime)
    updated_at: datetime = Field(
        default_factory=utcnow,
        sa_type=DateTime,
        sa_column_kwargs={"onupdate": utcnow},
    )

    application: Optional["Application"] = Relationship(back_populates="api_keys")

    @property
    def is_revoked(self) -> bool:
        return self.revoked_at is not None

    def is_expired(self, now: datetime) -> bool:
        return self.expires_at <= now

    def is_usable(self, now: datetime) -> bool:
        """Usable iff not revoked and not past expiry."""
        return not self.is_revoked and not self.is_expired(now)

    def state(self, now: datetime) -> ApiKeyState:
        if self.is_revoked:
            return ApiKeyState.REVOKED
        if self.is_expired(now):
            return ApiKeyState.EXPIRED
        return ApiKeyState.ACTIVE

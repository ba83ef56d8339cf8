"""CredentialStore - durable storage for owners, applications and API keys."""

from __future__ import annotations

import uuid
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Any

import structlog
from sqlalchemy import update
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from sqlalchemy.orm import selectinload
from sqlmodel import select

from beacon.db.session import session_scope
from beacon.models.api_key import ApiKey
from beacon.models.application import Application
from beacon.models.user import User

logger = structlog.get_logger()

# Keys are only ever mutated to record revocation or last use
_MUTABLE_KEY_FIELDS = frozenset({"revoked_at", "last_used_at"})


def _check_key_fields(fields: dict[str, Any]) -> None:
    illegal = set(fields) - _MUTABLE_KEY_FIELDS
    if illegal:
        raise ValueError(f"API key fields are immutable: {sorted(illegal)}")


class CredentialStore:
    """Repository for User, Application and ApiKey rows.

    Each call runs in its own session unless the store was obtained from
    ``transaction()``, in which case all calls share one session and commit
    together.
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        *,
        session: AsyncSession | None = None,
    ) -> None:
        self._session_factory = session_factory
        self._session = session

    @asynccontextmanager
    async def _scope(self) -> AsyncIterator[AsyncSession]:
        if self._session is not None:
            yield self._session
        else:
            async with session_scope(self._session_factory) as session:
                yield session

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[CredentialStore]:
        """Group several store calls into one commit.

        Usage:
            async with store.transaction() as tx:
                await tx.bulk_update_api_keys(ids, revoked_at=now)
                await tx.create_api_key(new_key)
        """
        if self._session is not None:
            yield self
            return
        async with session_scope(self._session_factory) as session:
            yield CredentialStore(self._session_factory, session=session)

    # ------------------------------------------------------------------
    # Users
    # ------------------------------------------------------------------

    async def create_user(self, user: User) -> User:
        async with self._scope() as session:
            session.add(user)
            await session.flush()
        return user

    async def find_user_by_id(self, user_id: str) -> User | None:
        async with self._scope() as session:
            return await session.get(User, user_id)

    async def get_or_create_user(
        self,
        *,
        email: str,
        name: str | None = None,
        google_id: str | None = None,
    ) -> User:
        """Return the owner with this email, creating or refreshing it.

        Identity-provider logins call this on every sign-in so the stored
        name and provider id follow the latest profile.
        """
        async with self._scope() as session:
            result = await session.execute(select(User).where(User.email == email))
            user = result.scalars().first()
            if user is None:
                user = User(id=str(uuid.uuid4()), email=email, name=name, google_id=google_id)
                session.add(user)
                logger.info("user.created", user_id=user.id)
            else:
                user.name = name or user.name
                user.google_id = google_id or user.google_id
            await session.flush()
            return user

    # ------------------------------------------------------------------
    # Applications
    # ------------------------------------------------------------------

    async def create_application(self, application: Application) -> Application:
        async with self._scope() as session:
            session.add(application)
            await session.flush()
        return application

    async def find_application_by_id(
        self,
        application_id: str,
        owner_id: str | None = None,
    ) -> Application | None:
        """Find an application, optionally restricted to one owner."""
        query = select(Application).where(Application.id == application_id)
        if owner_id is not None:
            query = query.where(Application.owner_id == owner_id)

        async with self._scope() as session:
            result = await session.execute(query)
            return result.scalars().first()

    # ------------------------------------------------------------------
    # API keys
    # ------------------------------------------------------------------

    async def create_api_key(self, api_key: ApiKey) -> ApiKey:
        async with self._scope() as session:
            session.add(api_key)
            await session.flush()
        return api_key

    async def find_api_key_by_id(self, api_key_id: str) -> ApiKey | None:
        """Find a key with its application loaded."""
        async with self._scope() as session:
            result = await session.execute(
                select(ApiKey)
                .where(ApiKey.id == api_key_id)
                .options(selectinload(ApiKey.application))
            )
            return result.scalars().first()

    async def find_api_keys_by_application(self, application_id: str) -> list[ApiKey]:
        """All keys of an application, newest first."""
        async with self._scope() as session:
            result = await session.execute(
                select(ApiKey)
                .where(ApiKey.application_id == application_id)
                .order_by(ApiKey.created_at.desc(), ApiKey.id.desc())
            )
            return list(result.scalars().all())

    async def find_api_keys_by_prefix(self, key_prefix: str) -> list[ApiKey]:
        """Candidate keys sharing a display prefix, with applications loaded."""
        async with self._scope() as session:
            result = await session.execute(
                select(ApiKey)
                .where(ApiKey.key_prefix == key_prefix)
                .options(selectinload(ApiKey.application))
            )
            return list(result.scalars().all())

    async def find_all_api_keys_with_application(self) -> list[ApiKey]:
        async with self._scope() as session:
            result = await session.execute(
                select(ApiKey).options(selectinload(ApiKey.application))
            )
            return list(result.scalars().all())

    async def update_api_key(self, api_key_id: str, **fields: Any) -> ApiKey | None:
        """Set revoked_at and/or last_used_at on one key.

        Returns:
            The updated key, or None if it does not exist
        """
        _check_key_fields(fields)
        async with self._scope() as session:
            api_key = await session.get(ApiKey, api_key_id)
            if api_key is None:
                return None
            for name, value in fields.items():
                setattr(api_key, name, value)
            await session.flush()
            return api_key

    async def bulk_update_api_keys(self, api_key_ids: list[str], **fields: Any) -> int:
        """Set the same fields on many keys in one statement.

        Setting revoked_at only touches keys that are not revoked yet, so
        the first revocation time of a key is never overwritten.

        Returns:
            Number of rows updated
        """
        _check_key_fields(fields)
        if not api_key_ids:
            return 0
        query = update(ApiKey).where(ApiKey.id.in_(api_key_ids))
        if "revoked_at" in fields:
            query = query.where(ApiKey.revoked_at.is_(None))
        async with self._scope() as session:
            result = await session.execute(
                query
                .values(**fields)
                .execution_options(synchronize_session=False)
            )
            return result.rowcount or 0

"""KeyManager - API key lifecycle.

Issues, validates, revokes and rotates the API keys client applications
authenticate with. Plaintext keys leave this module exactly once, in the
return value of the call that created them, and are never logged.

Validation narrows candidates by the stored non-secret prefix before
running bcrypt, so the cost per request stays bounded no matter how many
keys exist.
"""

from __future__ import annotations

import asyncio
import uuid
from datetime import datetime, timedelta

import structlog

from beacon.config import ApiKeyConfig
from beacon.errors import (
    AlreadyRevokedError,
    ForbiddenError,
    InternalError,
    NotFoundError,
    UnauthenticatedError,
)
from beacon.models.api_key import ApiKey
from beacon.models.application import Application
from beacon.schemas import ApiKeyMetadata
from beacon.services.hashing import KeyHasher
from beacon.stores.credentials import CredentialStore
from beacon.utils.datetime import Clock, utcnow

logger = structlog.get_logger()


class KeyManager:
    """Manages applications' API keys."""

    def __init__(
        self,
        store: CredentialStore,
        hasher: KeyHasher,
        config: ApiKeyConfig,
        *,
        clock: Clock = utcnow,
    ) -> None:
        self._store = store
        self._hasher = hasher
        self._config = config
        self._clock = clock
        self._log = logger.bind(manager="key")
        self._background_tasks: set[asyncio.Task[None]] = set()

    # ------------------------------------------------------------------
    # Issuance
    # ------------------------------------------------------------------

    async def register_application(
        self,
        name: str,
        owner_id: str,
    ) -> tuple[Application, str, ApiKey]:
        """Create an application and its first API key.

        Returns:
            Tuple of (application, plaintext_key, api_key_record)
        """
        application_id = str(uuid.uuid4())
        # Hash outside the transaction so it stays short
        minted = await self._mint(application_id)

        now = self._clock()
        async with self._store.transaction() as tx:
            application = await tx.create_application(
                Application(
                    id=application_id,
                    name=name,
                    owner_id=owner_id,
                    created_at=now,
                    updated_at=now,
                )
            )
            plaintext, api_key = await self._issue(tx, application, minted)

        self._log.info(
            "application.registered",
            application_id=application.id,
            owner_id=owner_id,
        )
        return application, plaintext, api_key

    async def issue_key(self, application: Application) -> tuple[str, ApiKey]:
        """Issue a new key for an application.

        Returns:
            Tuple of (plaintext_key, api_key_record). The caller must not
            keep the plaintext beyond handing it to the owner.
        """
        return await self._issue(self._store, application)

    async def _mint(self, application_id: str) -> tuple[str, ApiKey]:
        """Generate and hash a secret; the record is not stored yet."""
        plaintext = self._hasher.generate_secret(self._config.secret_length)
        key_hash = await asyncio.to_thread(self._hasher.hash, plaintext)
        now = self._clock()
        api_key = ApiKey(
            id=str(uuid.uuid4()),
            key_hash=key_hash,
            key_prefix=plaintext[: self._config.prefix_length],
            application_id=application_id,
            expires_at=now + timedelta(days=self._config.default_expiration_days),
            created_at=now,
            updated_at=now,
        )
        return plaintext, api_key

    async def _issue(
        self,
        store: CredentialStore,
        application: Application,
        minted: tuple[str, ApiKey] | None = None,
    ) -> tuple[str, ApiKey]:
        plaintext, api_key = minted or await self._mint(application.id)
        await store.create_api_key(api_key)

        self._log.info(
            "api_key.issued",
            api_key_id=api_key.id,
            key_prefix=api_key.key_prefix,
            application_id=application.id,
            expires_at=api_key.expires_at.isoformat(),
        )
        return plaintext, api_key

    # ------------------------------------------------------------------
    # Validation
    # ------------------------------------------------------------------

    async def validate_key(self, plaintext: str | None) -> Application:
        """Resolve a presented key to its application.

        Every failure mode (missing, unknown, revoked, expired) raises the
        same error so callers can't tell them apart.

        Returns:
            The application owning the key

        Raises:
            UnauthenticatedError: Key is not a usable key
            InternalError: Key matched but its application is missing
        """
        if not plaintext or len(plaintext) < self._config.prefix_length:
            raise UnauthenticatedError()

        candidates = await self._store.find_api_keys_by_prefix(
            plaintext[: self._config.prefix_length]
        )
        for api_key in candidates:
            matched = await asyncio.to_thread(self._hasher.verify, plaintext, api_key.key_hash)
            if not matched:
                continue

            now = self._clock()
            if api_key.is_revoked:
                self._log.warning("api_key.rejected.revoked", api_key_id=api_key.id)
                raise UnauthenticatedError()
            if api_key.is_expired(now):
                self._log.warning("api_key.rejected.expired", api_key_id=api_key.id)
                raise UnauthenticatedError()
            if api_key.application is None:
                self._log.error("api_key.orphaned", api_key_id=api_key.id)
                raise InternalError("API key configuration error")

            self._schedule_touch(api_key.id, now)
            return api_key.application

        raise UnauthenticatedError()

    def _schedule_touch(self, api_key_id: str, used_at: datetime) -> None:
        task = asyncio.create_task(self._touch_last_used(api_key_id, used_at))
        self._background_tasks.add(task)
        task.add_done_callback(self._background_tasks.discard)

    async def _touch_last_used(self, api_key_id: str, used_at: datetime) -> None:
        """Record last use. Best effort: failures are logged, never raised."""
        try:
            await self._store.update_api_key(api_key_id, last_used_at=used_at)
        except Exception as e:
            self._log.error(
                "api_key.touch_failed",
                api_key_id=api_key_id,
                error=str(e),
                exc_info=True,
            )

    async def wait_for_background_tasks(self) -> None:
        """Wait for pending last-used updates (shutdown, tests)."""
        if self._background_tasks:
            await asyncio.gather(*self._background_tasks)

    # ------------------------------------------------------------------
    # Revocation and rotation
    # ------------------------------------------------------------------

    async def revoke(self, api_key_id: str, owner_id: str) -> ApiKey:
        """Revoke one key.

        Raises:
            NotFoundError: No such key
            ForbiddenError: Key belongs to another owner's application
            AlreadyRevokedError: Key was revoked before
        """
        api_key = await self._store.find_api_key_by_id(api_key_id)
        if api_key is None:
            raise NotFoundError("API key not found", details={"api_key_id": api_key_id})
        if api_key.application is None or api_key.application.owner_id != owner_id:
            raise ForbiddenError("You do not own this API key")
        if api_key.is_revoked:
            raise AlreadyRevokedError(details={"api_key_id": api_key_id})

        # Conditional update: of two concurrent revokes only one matches
        updated = await self._store.bulk_update_api_keys([api_key_id], revoked_at=self._clock())
        if updated == 0:
            raise AlreadyRevokedError(details={"api_key_id": api_key_id})

        revoked = await self._store.find_api_key_by_id(api_key_id)
        if revoked is None:
            raise NotFoundError("API key not found", details={"api_key_id": api_key_id})

        self._log.info(
            "api_key.revoked",
            api_key_id=api_key_id,
            application_id=api_key.application_id,
        )
        return revoked

    async def regenerate(self, application_id: str, owner_id: str) -> tuple[str, ApiKey]:
        """Revoke every usable key of an application and issue a new one.

        Bulk revocation and the new key commit in one transaction: either
        both are visible or neither is.

        Raises:
            NotFoundError: No such application
            ForbiddenError: Application belongs to another owner
        """
        application = await self._get_owned_application(application_id, owner_id)
        # Hash outside the transaction so it stays short
        minted = await self._mint(application.id)

        async with self._store.transaction() as tx:
            now = self._clock()
            existing = await tx.find_api_keys_by_application(application.id)
            usable_ids = [k.id for k in existing if k.is_usable(now)]
            revoked_count = await tx.bulk_update_api_keys(usable_ids, revoked_at=now)
            plaintext, api_key = await self._issue(tx, application, minted)

        self._log.info(
            "api_key.regenerated",
            application_id=application.id,
            revoked_count=revoked_count,
            api_key_id=api_key.id,
        )
        return plaintext, api_key

    async def list_key_metadata(
        self,
        application_id: str,
        owner_id: str,
    ) -> list[ApiKeyMetadata]:
        """Key metadata for an owned application, newest first.

        Raises:
            NotFoundError: Application absent or not owned by owner_id
        """
        application = await self._store.find_application_by_id(application_id, owner_id)
        if application is None:
            raise NotFoundError("Application not found or access denied")

        keys = await self._store.find_api_keys_by_application(application.id)
        return [
            ApiKeyMetadata(
                id=k.id,
                key_prefix=k.key_prefix,
                created_at=k.created_at,
                expires_at=k.expires_at,
                revoked_at=k.revoked_at,
                last_used_at=k.last_used_at,
            )
            for k in keys
        ]

    async def _get_owned_application(self, application_id: str, owner_id: str) -> Application:
        application = await self._store.find_application_by_id(application_id)
        if application is None:
            raise NotFoundError(
                "Application not found",
                details={"application_id": application_id},
            )
        if application.owner_id != owner_id:
            raise ForbiddenError("You do not own this application")
        return application

"""Unit tests for CredentialStore."""

from __future__ import annotations

from datetime import datetime, timedelta

import pytest

from beacon.models.api_key import ApiKey
from beacon.models.application import Application
from beacon.models.user import User
from beacon.stores.credentials import CredentialStore

NOW = datetime(2024, 6, 1, 12, 0, 0)


def _key(key_id: str, application_id: str, *, prefix: str = "abc123", created_at: datetime = NOW) -> ApiKey:
    return ApiKey(
        id=key_id,
        key_hash=f"hash-{key_id}",
        key_prefix=prefix,
        application_id=application_id,
        expires_at=created_at + timedelta(days=365),
        created_at=created_at,
        updated_at=created_at,
    )


class TestApplications:
    async def test_find_application_scoped_to_owner(
        self,
        credential_store: CredentialStore,
        application: Application,
        owner: User,
        other_owner: User,
    ):
        assert (await credential_store.find_application_by_id(application.id)).id == application.id
        assert (await credential_store.find_application_by_id(application.id, owner.id)) is not None
        assert (await credential_store.find_application_by_id(application.id, other_owner.id)) is None

    async def test_get_or_create_user_is_idempotent(self, credential_store: CredentialStore):
        first = await credential_store.get_or_create_user(email="a@example.com")
        second = await credential_store.get_or_create_user(email="a@example.com", name="A")

        assert first.id == second.id
        assert second.name == "A"


class TestApiKeys:
    async def test_find_by_application_newest_first(
        self,
        credential_store: CredentialStore,
        application: Application,
    ):
        await credential_store.create_api_key(_key("k1", application.id, created_at=NOW))
        await credential_store.create_api_key(
            _key("k2", application.id, prefix="def456", created_at=NOW + timedelta(minutes=1))
        )

        keys = await credential_store.find_api_keys_by_application(application.id)

        assert [k.id for k in keys] == ["k2", "k1"]

    async def test_find_by_prefix_loads_application(
        self,
        credential_store: CredentialStore,
        application: Application,
    ):
        await credential_store.create_api_key(_key("k1", application.id))

        [found] = await credential_store.find_api_keys_by_prefix("abc123")

        assert found.application.id == application.id
        assert await credential_store.find_api_keys_by_prefix("zzzzzz") == []

    async def test_find_all_with_application(
        self,
        credential_store: CredentialStore,
        application: Application,
    ):
        await credential_store.create_api_key(_key("k1", application.id))

        [found] = await credential_store.find_all_api_keys_with_application()

        assert found.application.name == application.name

    async def test_update_key(self, credential_store: CredentialStore, application: Application):
        await credential_store.create_api_key(_key("k1", application.id))

        updated = await credential_store.update_api_key("k1", last_used_at=NOW)

        assert updated.last_used_at == NOW
        assert await credential_store.update_api_key("missing", last_used_at=NOW) is None

    async def test_immutable_fields_rejected(
        self,
        credential_store: CredentialStore,
        application: Application,
    ):
        await credential_store.create_api_key(_key("k1", application.id))

        with pytest.raises(ValueError):
            await credential_store.update_api_key("k1", key_hash="other")
        with pytest.raises(ValueError):
            await credential_store.bulk_update_api_keys(["k1"], expires_at=NOW)

    async def test_bulk_update(self, credential_store: CredentialStore, application: Application):
        await credential_store.create_api_key(_key("k1", application.id))
        await credential_store.create_api_key(_key("k2", application.id, prefix="def456"))
        await credential_store.create_api_key(_key("k3", application.id, prefix="ghi789"))

        count = await credential_store.bulk_update_api_keys(["k1", "k2"], revoked_at=NOW)

        assert count == 2
        keys = {k.id: k for k in await credential_store.find_api_keys_by_application(application.id)}
        assert keys["k1"].revoked_at == NOW
        assert keys["k2"].revoked_at == NOW
        assert keys["k3"].revoked_at is None

    async def test_bulk_revoke_skips_revoked_keys(
        self,
        credential_store: CredentialStore,
        application: Application,
    ):
        """A key's first revocation time is never overwritten."""
        earlier = NOW - timedelta(days=1)
        await credential_store.create_api_key(_key("k1", application.id))
        await credential_store.create_api_key(_key("k2", application.id, prefix="def456"))
        await credential_store.bulk_update_api_keys(["k1"], revoked_at=earlier)

        count = await credential_store.bulk_update_api_keys(["k1", "k2"], revoked_at=NOW)

        assert count == 1
        assert (await credential_store.find_api_key_by_id("k1")).revoked_at == earlier
        assert (await credential_store.find_api_key_by_id("k2")).revoked_at == NOW

    async def test_bulk_update_with_no_ids(self, credential_store: CredentialStore):
        assert await credential_store.bulk_update_api_keys([], revoked_at=NOW) == 0


class TestTransaction:
    async def test_commits_together(self, credential_store: CredentialStore, application: Application):
        async with credential_store.transaction() as tx:
            await tx.create_api_key(_key("k1", application.id))
            await tx.create_api_key(_key("k2", application.id, prefix="def456"))

        keys = await credential_store.find_api_keys_by_application(application.id)
        assert {k.id for k in keys} == {"k1", "k2"}

    async def test_rolls_back_on_error(
        self,
        credential_store: CredentialStore,
        application: Application,
    ):
        with pytest.raises(RuntimeError):
            async with credential_store.transaction() as tx:
                await tx.create_api_key(_key("k1", application.id))
                raise RuntimeError("boom")

        assert await credential_store.find_api_keys_by_application(application.id) == []

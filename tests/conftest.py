"""Shared fixtures: a file-backed SQLite database per test and the core objects."""

from __future__ import annotations

import uuid
from datetime import datetime

import pytest
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlmodel import SQLModel

import beacon.models  # noqa: F401
from beacon.config import ApiKeyConfig
from beacon.db.session import enable_sqlite_foreign_keys
from beacon.managers.key import KeyManager
from beacon.models.application import Application
from beacon.models.user import User
from beacon.services.hashing import KeyHasher
from beacon.stores.credentials import CredentialStore
from beacon.stores.events import EventStore
from tests.fakes import FakeClock


@pytest.fixture
async def session_factory(tmp_path) -> async_sessionmaker[AsyncSession]:
    """Create a SQLite database under tmp_path.

    File-backed so every store session sees the same data.
    """
    engine = enable_sqlite_foreign_keys(
        create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'beacon.db'}", echo=False)
    )

    async with engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)

    yield async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

    await engine.dispose()


@pytest.fixture
def credential_store(session_factory) -> CredentialStore:
    return CredentialStore(session_factory)


@pytest.fixture
def event_store(session_factory) -> EventStore:
    return EventStore(session_factory)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock(datetime(2024, 6, 1, 12, 0, 0))


@pytest.fixture
def api_key_config() -> ApiKeyConfig:
    """Key settings with bcrypt at its minimum cost for speed."""
    return ApiKeyConfig(bcrypt_rounds=4)


@pytest.fixture
def hasher(api_key_config: ApiKeyConfig) -> KeyHasher:
    return KeyHasher(rounds=api_key_config.bcrypt_rounds)


@pytest.fixture
def key_manager(
    credential_store: CredentialStore,
    hasher: KeyHasher,
    api_key_config: ApiKeyConfig,
    clock: FakeClock,
) -> KeyManager:
    return KeyManager(credential_store, hasher, api_key_config, clock=clock)


async def _make_user(store: CredentialStore, email: str) -> User:
    return await store.create_user(User(id=str(uuid.uuid4()), email=email, name=email.split("@")[0]))


@pytest.fixture
async def owner(credential_store: CredentialStore) -> User:
    return await _make_user(credential_store, "owner@example.com")


@pytest.fixture
async def other_owner(credential_store: CredentialStore) -> User:
    return await _make_user(credential_store, "intruder@example.com")


@pytest.fixture
async def application(credential_store: CredentialStore, owner: User) -> Application:
    return await credential_store.create_application(
        Application(id="app-acme", name="Acme", owner_id=owner.id)
    )

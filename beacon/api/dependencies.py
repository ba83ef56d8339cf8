"""FastAPI dependencies for Beacon API.

Provides dependency injection for:
- Stores, cache and services (process-wide singletons)
- Owner authentication (session token)
- Identity gateway authentication (shared secret)
- Client application authentication (API key)
"""

from __future__ import annotations

from functools import lru_cache
from typing import Annotated

import structlog
from fastapi import Depends, Header, Request

from beacon.cache.base import CacheBackend, create_cache
from beacon.config import get_settings
from beacon.db.session import get_session_factory
from beacon.errors import UnauthenticatedError
from beacon.managers.key import KeyManager
from beacon.models.application import Application
from beacon.services.hashing import KeyHasher
from beacon.services.ingestion import EventCollector
from beacon.services.session_token import SessionTokenService
from beacon.services.summary import SummaryEngine
from beacon.stores.credentials import CredentialStore
from beacon.stores.events import EventStore

logger = structlog.get_logger()

API_KEY_HEADER = "X-API-Key"
IDENTITY_SECRET_HEADER = "X-Identity-Secret"


@lru_cache
def get_credential_store() -> CredentialStore:
    return CredentialStore(get_session_factory())


@lru_cache
def get_event_store() -> EventStore:
    return EventStore(get_session_factory())


@lru_cache
def get_cache() -> CacheBackend:
    """Get the process-wide aggregation cache."""
    return create_cache(get_settings().cache)


@lru_cache
def get_key_manager() -> KeyManager:
    settings = get_settings()
    return KeyManager(
        store=get_credential_store(),
        hasher=KeyHasher(rounds=settings.api_key.bcrypt_rounds),
        config=settings.api_key,
    )


@lru_cache
def get_summary_engine() -> SummaryEngine:
    return SummaryEngine(
        event_store=get_event_store(),
        cache=get_cache(),
        ttl_seconds=get_settings().cache.summary_ttl_seconds,
    )


@lru_cache
def get_event_collector() -> EventCollector:
    return EventCollector(get_event_store())


@lru_cache
def get_session_token_service() -> SessionTokenService:
    return SessionTokenService(get_settings().security)


async def authenticate_owner(
    request: Request,
    tokens: Annotated[SessionTokenService, Depends(get_session_token_service)],
    store: Annotated[CredentialStore, Depends(get_credential_store)],
) -> str:
    """Authenticate an application owner and return their user id.

    Raises:
        UnauthenticatedError: Missing/invalid token or unknown user
    """
    auth_header = request.headers.get("Authorization")
    if not auth_header or not auth_header.startswith("Bearer "):
        raise UnauthenticatedError("Authentication required")

    user_id = tokens.decode(auth_header[7:])
    if await store.find_user_by_id(user_id) is None:
        logger.warning("auth.owner.unknown_user", user_id=user_id)
        raise UnauthenticatedError()
    return user_id


async def authenticate_identity_gateway(
    tokens: Annotated[SessionTokenService, Depends(get_session_token_service)],
    secret: Annotated[str | None, Header(alias=IDENTITY_SECRET_HEADER)] = None,
) -> None:
    """Admit only the identity gateway to the sign-in callback.

    Raises:
        UnauthenticatedError: Shared secret missing, wrong, or not configured
    """
    tokens.check_callback_secret(secret)


async def authenticate_application(
    key_mgr: Annotated[KeyManager, Depends(get_key_manager)],
    api_key: Annotated[str | None, Header(alias=API_KEY_HEADER)] = None,
) -> Application:
    """Authenticate a client application by its API key.

    Raises:
        UnauthenticatedError: Missing, unknown, revoked or expired key
    """
    if not api_key:
        logger.warning("auth.api_key.missing")
        raise UnauthenticatedError("API key is missing")
    return await key_mgr.validate_key(api_key)


# Type aliases for cleaner dependency injection
KeyManagerDep = Annotated[KeyManager, Depends(get_key_manager)]
CredentialStoreDep = Annotated[CredentialStore, Depends(get_credential_store)]
SessionTokenDep = Annotated[SessionTokenService, Depends(get_session_token_service)]
SummaryEngineDep = Annotated[SummaryEngine, Depends(get_summary_engine)]
EventCollectorDep = Annotated[EventCollector, Depends(get_event_collector)]
OwnerDep = Annotated[str, Depends(authenticate_owner)]
ApplicationDep = Annotated[Application, Depends(authenticate_application)]

"""Owner endpoints: application registration and API key management.

Owner routes require a session token (``Authorization: Bearer``), which
the sign-in callback hands out once the identity gateway has confirmed
the owner.
"""

from __future__ import annotations

from datetime import datetime

from fastapi import APIRouter, Depends
from pydantic import Field

from beacon.api.dependencies import (
    CredentialStoreDep,
    KeyManagerDep,
    OwnerDep,
    SessionTokenDep,
    authenticate_identity_gateway,
)
from beacon.models.api_key import ApiKey
from beacon.schemas import ApiKeyMetadata, CamelModel

router = APIRouter()


# Request/Response Models


class SignInRequest(CamelModel):
    """Owner profile confirmed by the identity provider."""

    email: str = Field(min_length=3, max_length=320)
    name: str | None = Field(default=None, max_length=200)
    google_id: str | None = Field(default=None, max_length=255)


class OwnerProfile(CamelModel):
    id: str
    email: str
    name: str | None = None


class SignInResponse(CamelModel):
    user: OwnerProfile
    access_token: str


class RegisterApplicationRequest(CamelModel):
    """Request to register a client application."""

    name: str = Field(min_length=1, max_length=100)


class IssuedKeyResponse(CamelModel):
    """A freshly issued key.

    The plaintext ``api_key`` is returned here and never again.
    """

    application_id: str
    api_key: str
    api_key_id: str
    key_prefix: str
    expires_at: datetime


class RegisterApplicationResponse(IssuedKeyResponse):
    name: str
    created_at: datetime


class RegenerateKeyRequest(CamelModel):
    application_id: str


class RevokeKeyRequest(CamelModel):
    api_key_id: str


def _key_to_metadata(api_key: ApiKey) -> ApiKeyMetadata:
    """Convert ApiKey model to API response."""
    return ApiKeyMetadata(
        id=api_key.id,
        key_prefix=api_key.key_prefix,
        created_at=api_key.created_at,
        expires_at=api_key.expires_at,
        revoked_at=api_key.revoked_at,
        last_used_at=api_key.last_used_at,
    )


# Endpoints


@router.post(
    "/google/callback",
    response_model=SignInResponse,
    dependencies=[Depends(authenticate_identity_gateway)],
)
async def sign_in(
    request: SignInRequest,
    tokens: SessionTokenDep,
    store: CredentialStoreDep,
) -> SignInResponse:
    """Create or refresh the owner and return a session token."""
    user, token = await tokens.sign_in(
        store,
        email=request.email,
        name=request.name,
        google_id=request.google_id,
    )
    return SignInResponse(
        user=OwnerProfile(id=user.id, email=user.email, name=user.name),
        access_token=token,
    )


@router.post("/register", response_model=RegisterApplicationResponse, status_code=201)
async def register_application(
    request: RegisterApplicationRequest,
    key_mgr: KeyManagerDep,
    owner: OwnerDep,
) -> RegisterApplicationResponse:
    """Register an application and return its first API key."""
    application, plaintext, api_key = await key_mgr.register_application(request.name, owner)
    return RegisterApplicationResponse(
        application_id=application.id,
        name=application.name,
        created_at=application.created_at,
        api_key=plaintext,
        api_key_id=api_key.id,
        key_prefix=api_key.key_prefix,
        expires_at=api_key.expires_at,
    )


@router.get("/applications/{application_id}/api-keys", response_model=list[ApiKeyMetadata])
async def list_api_keys(
    application_id: str,
    key_mgr: KeyManagerDep,
    owner: OwnerDep,
) -> list[ApiKeyMetadata]:
    """List key metadata for an owned application, newest first.

    Hashes and plaintext keys are never part of the response.
    """
    return await key_mgr.list_key_metadata(application_id, owner)


@router.post("/api-keys/regenerate", response_model=IssuedKeyResponse)
async def regenerate_api_key(
    request: RegenerateKeyRequest,
    key_mgr: KeyManagerDep,
    owner: OwnerDep,
) -> IssuedKeyResponse:
    """Revoke every usable key of an application and issue a new one."""
    plaintext, api_key = await key_mgr.regenerate(request.application_id, owner)
    return IssuedKeyResponse(
        application_id=api_key.application_id,
        api_key=plaintext,
        api_key_id=api_key.id,
        key_prefix=api_key.key_prefix,
        expires_at=api_key.expires_at,
    )


@router.post("/api-keys/revoke", response_model=ApiKeyMetadata)
async def revoke_api_key(
    request: RevokeKeyRequest,
    key_mgr: KeyManagerDep,
    owner: OwnerDep,
) -> ApiKeyMetadata:
    """Revoke a single API key."""
    api_key = await key_mgr.revoke(request.api_key_id, owner)
    return _key_to_metadata(api_key)

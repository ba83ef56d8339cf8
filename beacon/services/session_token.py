"""Owner session tokens.

After the identity provider confirms an owner, Beacon hands out a signed
JWT carrying the user id. Owner-only endpoints decode it back.
"""

from __future__ import annotations

import hmac
from datetime import UTC, datetime, timedelta

import jwt
import structlog

from beacon.config import SecurityConfig
from beacon.errors import UnauthenticatedError
from beacon.models.user import User
from beacon.stores.credentials import CredentialStore

logger = structlog.get_logger()


class SessionTokenService:
    """Issue and decode HS256 owner session tokens."""

    def __init__(self, config: SecurityConfig) -> None:
        self._config = config

    def issue(self, user_id: str, email: str | None = None) -> str:
        now = datetime.now(UTC)
        payload = {
            "sub": user_id,
            "iat": now,
            "exp": now + timedelta(minutes=self._config.jwt_expiration_minutes),
        }
        if email:
            payload["email"] = email
        return jwt.encode(payload, self._config.jwt_secret, algorithm=self._config.jwt_algorithm)

    def decode(self, token: str) -> str:
        """Return the user id in a valid token.

        Raises:
            UnauthenticatedError: Bad signature, expired, or no subject
        """
        try:
            payload = jwt.decode(
                token,
                self._config.jwt_secret,
                algorithms=[self._config.jwt_algorithm],
                options={"require": ["sub", "exp"]},
            )
        except jwt.PyJWTError as e:
            logger.debug("session_token.rejected", reason=type(e).__name__)
            raise UnauthenticatedError("Invalid or expired session token") from e
        return payload["sub"]

    def check_callback_secret(self, presented: str | None) -> None:
        """Verify the shared secret sent by the identity gateway.

        Raises:
            UnauthenticatedError: Callback disabled, secret missing or wrong
        """
        expected = self._config.identity_callback_secret
        if not expected or not presented:
            raise UnauthenticatedError("Identity callback not authorized")
        if not hmac.compare_digest(presented.encode(), expected.encode()):
            logger.warning("session_token.callback_rejected")
            raise UnauthenticatedError("Identity callback not authorized")

    async def sign_in(
        self,
        store: CredentialStore,
        *,
        email: str,
        name: str | None = None,
        google_id: str | None = None,
    ) -> tuple[User, str]:
        """Exchange an identity confirmed by the provider for a session token.

        Returns:
            Tuple of (user, token)
        """
        user = await store.get_or_create_user(email=email, name=name, google_id=google_id)
        logger.info("session_token.issued", user_id=user.id)
        return user, self.issue(user.id, user.email)

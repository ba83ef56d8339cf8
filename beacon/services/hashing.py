"""KeyHasher - secret generation and one-way hashing for API keys.

Keys are bearer tokens, so the digest uses bcrypt: salted and
deliberately slow. Verification is constant-time inside bcrypt itself.
"""

from __future__ import annotations

import math
import secrets
from collections.abc import Callable

import bcrypt

from beacon.errors import InternalError

DEFAULT_SECRET_LENGTH = 32


class KeyHasher:
    """bcrypt hashing plus CSPRNG secret generation."""

    def __init__(
        self,
        rounds: int = 10,
        random_bytes: Callable[[int], bytes] = secrets.token_bytes,
    ) -> None:
        """
        Args:
            rounds: bcrypt cost factor
            random_bytes: CSPRNG byte source (injectable for tests)
        """
        self._rounds = rounds
        self._random_bytes = random_bytes

    def hash(self, secret: str) -> str:
        """Hash a plaintext secret with a fresh salt.

        Raises:
            InternalError: If the OS entropy source fails
        """
        try:
            salt = bcrypt.gensalt(rounds=self._rounds)
        except OSError as e:
            raise InternalError("Entropy source unavailable") from e
        return bcrypt.hashpw(secret.encode(), salt).decode()

    def verify(self, secret: str, digest: str) -> bool:
        """Check a plaintext secret against a stored digest.

        Malformed digests and over-long secrets verify as False.
        """
        try:
            return bcrypt.checkpw(secret.encode(), digest.encode())
        except ValueError:
            return False

    def generate_secret(self, length: int = DEFAULT_SECRET_LENGTH) -> str:
        """Generate ``length`` hex characters of random key material.

        Raises:
            InternalError: If the entropy source fails
        """
        if length < 1:
            raise ValueError("length must be positive")
        try:
            raw = self._random_bytes(math.ceil(length / 2))
        except OSError as e:
            raise InternalError("Entropy source unavailable") from e
        return raw.hex()[:length]

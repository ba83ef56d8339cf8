"""Beacon error types.

Error codes are stable identifiers for programmatic handling. The core
raises these; only the HTTP boundary turns them into responses.
"""

from __future__ import annotations

from typing import Any


class BeaconError(Exception):
    """Base error for all Beacon exceptions."""

    code: str = "internal_error"
    message: str = "An internal error occurred"
    status_code: int = 500

    def __init__(
        self,
        message: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        self.message = message or self.__class__.message
        self.details = details or {}
        super().__init__(self.message)

    def to_dict(self, request_id: str | None = None) -> dict[str, Any]:
        """Render the error envelope returned by the API."""
        error: dict[str, Any] = {
            "code": self.code,
            "message": self.message,
        }
        if request_id:
            error["request_id"] = request_id
        if self.details:
            error["details"] = self.details
        return {"error": error}


class UnauthenticatedError(BeaconError):
    """Missing, wrong, revoked or expired credential (401).

    Deliberately does not say which of those it was.
    """

    code = "unauthenticated"
    message = "Invalid or expired credentials"
    status_code = 401


class NotFoundError(BeaconError):
    """Resource not found or not visible to the caller (404)."""

    code = "not_found"
    message = "Resource not found"
    status_code = 404


class ForbiddenError(BeaconError):
    """Resource exists but belongs to another owner (403)."""

    code = "forbidden"
    message = "Permission denied"
    status_code = 403


class AlreadyRevokedError(BeaconError):
    """API key was revoked before (400)."""

    code = "already_revoked"
    message = "API key already revoked"
    status_code = 400


class ValidationError(BeaconError):
    """Request validation error (400)."""

    code = "validation_error"
    message = "Validation error"
    status_code = 400


class InternalError(BeaconError):
    """Storage or crypto failure (500)."""

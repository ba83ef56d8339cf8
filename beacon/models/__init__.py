"""SQLModel data models."""

from beacon.models.api_key import ApiKey, ApiKeyState
from beacon.models.application import Application
from beacon.models.event import Event
from beacon.models.user import User

__all__ = [
    "ApiKey",
    "ApiKeyState",
    "Application",
    "Event",
    "User",
]

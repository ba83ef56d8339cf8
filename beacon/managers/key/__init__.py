"""API key manager."""

from beacon.managers.key.key import KeyManager

__all__ = ["KeyManager"]

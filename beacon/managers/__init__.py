"""Manager layer - business logic."""

from beacon.managers.key import KeyManager

__all__ = ["KeyManager"]

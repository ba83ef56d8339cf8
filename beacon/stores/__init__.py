"""Persistence layer.

Stores wrap the relational database behind small repository interfaces
used by the managers and services.
"""

from beacon.stores.credentials import CredentialStore
from beacon.stores.events import EventFilter, EventStore

__all__ = ["CredentialStore", "EventFilter", "EventStore"]

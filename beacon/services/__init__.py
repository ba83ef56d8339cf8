"""Beacon services layer."""

from beacon.services.hashing import KeyHasher
from beacon.services.ingestion import EventCollector
from beacon.services.session_token import SessionTokenService
from beacon.services.summary import SummaryEngine

__all__ = ["EventCollector", "KeyHasher", "SessionTokenService", "SummaryEngine"]

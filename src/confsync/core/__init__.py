"""
Core abstractions and interfaces for the conference sync engine.
"""

from .models import (
    ContentSnapshot, Session, Speaker, Track, Room, Day, Sponsor,
    ConferenceInfo, ApiEndpoints, CacheMetadata, FeatureFlagSet,
    FetchKind, FetchOutcome, SyncState,
)
from .connector import Connector
from .state_store import KeyValueStore
from .versioning import compare_versions, is_newer

__all__ = [
    "ContentSnapshot",
    "Session",
    "Speaker",
    "Track",
    "Room",
    "Day",
    "Sponsor",
    "ConferenceInfo",
    "ApiEndpoints",
    "CacheMetadata",
    "FeatureFlagSet",
    "FetchKind",
    "FetchOutcome",
    "SyncState",
    "Connector",
    "KeyValueStore",
    "compare_versions",
    "is_newer",
]

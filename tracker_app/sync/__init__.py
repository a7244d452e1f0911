"""
External events feed sync: feed client, name matching and the reconciler.
"""

from __future__ import annotations

from .feed_client import EventbriteClient, FeedAnswer, FeedAttendee, FeedEvent
from .matching import ProfileMatcher, name_similarity, normalize_name
from .reconciler import (
    AttendeeSyncResult,
    ConsentQuestions,
    RefreshResult,
    SessionSyncResult,
    SyncReconciler,
)

__all__ = [
    "AttendeeSyncResult",
    "ConsentQuestions",
    "EventbriteClient",
    "FeedAnswer",
    "FeedAttendee",
    "FeedEvent",
    "ProfileMatcher",
    "RefreshResult",
    "SessionSyncResult",
    "SyncReconciler",
    "name_similarity",
    "normalize_name",
]

"""Versioned remote-feed synchronisation with a hot-swappable lookup cache."""

from .cache import LookupCache
from .exceptions import (
    DownloadError,
    FeedSyncError,
    ParseError,
    PermanentConfigError,
    TransientNetworkError,
)
from .records import FeedRecord, LookupTable
from .source import FeedSource
from .sync import SyncOutcome, SyncPhase, SyncScheduler, SyncState

__all__ = [
    "DownloadError",
    "FeedRecord",
    "FeedSource",
    "FeedSyncError",
    "LookupCache",
    "LookupTable",
    "ParseError",
    "PermanentConfigError",
    "SyncOutcome",
    "SyncPhase",
    "SyncScheduler",
    "SyncState",
    "TransientNetworkError",
]

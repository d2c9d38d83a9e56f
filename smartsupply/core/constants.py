"""
Centralized constants for the customer cache.
Removes "magic strings" and gives strong typing to shared values.
"""

from enum import Enum, unique

# Fixed key of the sync marker row in the sync_metadata table
LAST_SYNC_KEY = "lastSync"


@unique
class CacheState(str, Enum):
    """Lifecycle states of the customer cache coordinator."""

    UNINITIALIZED = "uninitialized"
    LOADING = "loading"
    READY = "ready"
    SYNCING = "syncing"


@unique
class ResultSource(str, Enum):
    """Where the data returned by a cache operation came from."""

    MEMORY = "memory"
    LOCAL = "local"
    REMOTE = "remote"
    CACHED = "cached"

"""Snapshot cache and refresh coordination."""

from .coordinator import SnapshotCoordinator
from .events import Subscription
from .types import CacheEntry, CacheState, CacheStats, FetchOutcome, SnapshotEvent

__all__ = [
    "CacheEntry",
    "CacheState",
    "CacheStats",
    "FetchOutcome",
    "SnapshotCoordinator",
    "SnapshotEvent",
    "Subscription",
]

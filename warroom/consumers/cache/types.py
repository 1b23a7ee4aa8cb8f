"""Cache data types.

Dataclasses for cache entries, events and statistics.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum

from warroom.core import CacheKey, LeagueDescriptor, Snapshot


class CacheState(str, Enum):
    """Lifecycle of a cache entry."""

    PENDING = "pending"  # registered, no data yet
    FRESH = "fresh"  # fetched within TTL
    STALE = "stale"  # TTL elapsed or last fetch failed


@dataclass
class CacheEntry:
    """A cache slot. Owned and mutated only by the coordinator."""

    key: CacheKey
    descriptor: LeagueDescriptor
    state: CacheState = CacheState.PENDING
    value: Snapshot | None = None
    fetched_at: float | None = None  # monotonic clock
    fetched_at_wall: datetime | None = None
    applied_sequence: int = 0
    last_error: str | None = None


@dataclass(frozen=True)
class FetchOutcome:
    """Result of one fetch task, shared by every caller awaiting it."""

    value: Snapshot
    stale: bool = False


@dataclass(frozen=True)
class SnapshotEvent:
    """Emitted once per cache write affecting a league."""

    key: CacheKey
    value: Snapshot
    stale: bool = False
    changed_player_ids: frozenset[str] = field(default_factory=frozenset)


@dataclass
class CacheStats:
    """Snapshot cache statistics."""

    total_entries: int
    pending_count: int
    fresh_count: int
    stale_count: int
    in_flight_count: int
    ttl_seconds: float
    current_week: int | None
    last_refresh: datetime | None
    last_error: str | None

    def to_dict(self) -> dict:
        """Convert to JSON-serializable dict."""
        return {
            "total_entries": self.total_entries,
            "pending_count": self.pending_count,
            "fresh_count": self.fresh_count,
            "stale_count": self.stale_count,
            "in_flight_count": self.in_flight_count,
            "ttl_seconds": self.ttl_seconds,
            "current_week": self.current_week,
            "last_refresh": self.last_refresh.isoformat() if self.last_refresh else None,
            "last_error": self.last_error,
        }

"""Sleeper weekly stats and projections.

Sleeper serves a whole week's stat lines in one payload, so each
(season, week) is fetched once and held for a short TTL.
"""

import logging
import threading

from warroom.core import StatsProvider
from warroom.providers.sleeper.client import SleeperClient
from warroom.utilities.cache import TTLCache, make_cache_key

logger = logging.getLogger(__name__)

# Stat lines change during live games; projections rarely do
CACHE_TTL_STATS = 60
CACHE_TTL_PROJECTIONS = 30 * 60


def _index_by_player(payload: dict | list) -> dict[str, dict[str, float]]:
    """Normalize both payload shapes to player_id -> stats.

    Older responses are a dict keyed by player_id; newer ones are a list of
    {"player_id": ..., "stats": {...}} rows.
    """
    if isinstance(payload, dict):
        return {str(pid): stats or {} for pid, stats in payload.items()}
    indexed = {}
    for row in payload:
        pid = row.get("player_id")
        if pid is not None:
            indexed[str(pid)] = row.get("stats") or {}
    return indexed


class SleeperStatsProvider(StatsProvider):
    """StatsProvider backed by Sleeper's weekly stats endpoints."""

    def __init__(self, client: SleeperClient | None = None):
        self._client = client or SleeperClient()
        self._cache = TTLCache()
        self._load_lock = threading.Lock()

    def _load(self, kind: str, year: int, week: int) -> dict[str, dict[str, float]]:
        cache_key = make_cache_key(kind, year, week)
        cached = self._cache.get(cache_key)
        if cached is not None:
            return cached

        # One loader at a time so concurrent lookups share a single download
        with self._load_lock:
            cached = self._cache.get(cache_key)
            if cached is not None:
                return cached
            if kind == "stats":
                payload = self._client.get_weekly_stats(year, week)
                ttl = CACHE_TTL_STATS
            else:
                payload = self._client.get_weekly_projections(year, week)
                ttl = CACHE_TTL_PROJECTIONS
            indexed = _index_by_player(payload)
            self._cache.set(cache_key, indexed, ttl)
            logger.debug("[SLEEPER] Loaded %s for %d week %d (%d players)", kind, year, week, len(indexed))
            return indexed

    def get_player_stats(self, player_id: str, week: int, year: int) -> dict[str, float] | None:
        return self._load("stats", year, week).get(player_id)

    def get_player_projection(
        self, player_id: str, week: int, year: int
    ) -> dict[str, float] | None:
        return self._load("projections", year, week).get(player_id)

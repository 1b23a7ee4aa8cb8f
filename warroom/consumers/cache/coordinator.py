"""Snapshot cache and refresh coordinator.

Owns every cache entry. Hydration requests for the same key coalesce onto
one in-flight future; the check-and-insert happens under the same lock that
guards the cache map. Fetches run on a bounded pool so refreshing many
leagues never exceeds MAX_WORKERS concurrent upstream fetches.

Each fetch is tagged with a per-key sequence number. A slower, older fetch
never overwrites a newer result.
"""

import logging
import threading
import time
from collections import defaultdict
from collections.abc import Callable, Iterable, Mapping
from concurrent.futures import Future, ThreadPoolExecutor, as_completed
from datetime import datetime, timezone

from warroom.core import (
    CacheKey,
    IdentityResolutionFailure,
    LeagueDescriptor,
    MatchupSnapshot,
    NetworkError,
    Platform,
    Snapshot,
    TeamSnapshot,
    WarRoomError,
)
from warroom.consumers.reconcile import LeagueReconciler
from warroom.services import derived_state, playoffs

from .events import Subscription
from .types import CacheEntry, CacheState, CacheStats, FetchOutcome, SnapshotEvent

logger = logging.getLogger(__name__)

DEFAULT_LIVE_TTL = 90.0
DEFAULT_IDLE_TTL = 300.0


class SnapshotCoordinator:
    """Per-league-per-week snapshot cache with deduplicated hydration.

    Usage:
        coordinator = SnapshotCoordinator(
            reconcilers={Platform.SLEEPER: LeagueReconciler(SleeperPlatform())},
            identities={Platform.SLEEPER: user_id},
        )
        coordinator.warm_leagues(descriptors, week=6)
        snapshot = coordinator.hydrate(coordinator.key_for(descriptors[0]))
        coordinator.refresh()
    """

    # Max concurrent league fetches (upstream rate limits)
    MAX_WORKERS = 3

    def __init__(
        self,
        reconcilers: Mapping[Platform, LeagueReconciler],
        identities: Mapping[Platform, str],
        live_ttl: float = DEFAULT_LIVE_TTL,
        idle_ttl: float = DEFAULT_IDLE_TTL,
        max_workers: int | None = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self._reconcilers = dict(reconcilers)
        self._identities = dict(identities)
        self._live_ttl = live_ttl
        self._idle_ttl = idle_ttl
        self._clock = clock
        self._pool = ThreadPoolExecutor(
            max_workers=max_workers or self.MAX_WORKERS,
            thread_name_prefix="league-fetch",
        )

        self._lock = threading.Lock()
        self._entries: dict[CacheKey, CacheEntry] = {}
        self._in_flight: dict[CacheKey, tuple[int, Future]] = {}
        self._next_sequence = 0
        self._descriptors: dict[tuple[Platform, str], LeagueDescriptor] = {}
        self._subscribers: dict[tuple[Platform, str], list[Subscription]] = defaultdict(list)
        self._last_my_team: dict[tuple[Platform, str], TeamSnapshot] = {}
        self._generation = 0
        self._week: int | None = None
        self._last_refresh: datetime | None = None
        self._last_error: str | None = None
        self._closed = False

    # -------------------------------------------------------------------------
    # Registration
    # -------------------------------------------------------------------------

    @property
    def current_week(self) -> int | None:
        return self._week

    def key_for(self, descriptor: LeagueDescriptor, week: int | None = None) -> CacheKey:
        week = week if week is not None else self._week
        if week is None:
            raise ValueError("No week set; call warm_leagues first")
        return CacheKey(descriptor.id, descriptor.platform, descriptor.season_year, week)

    def descriptors(self) -> list[LeagueDescriptor]:
        with self._lock:
            return list(self._descriptors.values())

    def warm_leagues(self, descriptors: Iterable[LeagueDescriptor], week: int) -> list[CacheKey]:
        """Register pending entries for leagues. Never touches the network.

        A week different from the current one evicts the old week's entries.
        """
        keys = []
        with self._lock:
            if self._week is not None and week != self._week:
                self._evict_other_weeks_locked(week)
            self._week = week
            for descriptor in descriptors:
                self._descriptors[descriptor.league_key] = descriptor
                key = CacheKey(descriptor.id, descriptor.platform, descriptor.season_year, week)
                self._entries.setdefault(key, CacheEntry(key=key, descriptor=descriptor))
                keys.append(key)
        logger.info("[CACHE] Warmed %d leagues for week %d", len(keys), week)
        return keys

    def discover_leagues(self, season: int, week: int) -> dict:
        """Fetch each platform's league list for the user and warm them.

        A platform that fails is recorded and skipped; the others still warm.

        Returns:
            Dict with warmed league count and per-platform errors
        """
        descriptors: list[LeagueDescriptor] = []
        errors: dict[str, str] = {}
        for platform, reconciler in self._reconcilers.items():
            identity = self._identities.get(platform)
            if not identity:
                logger.info("[CACHE] No identity for %s, skipping discovery", platform.value)
                continue
            try:
                found = reconciler.client.fetch_leagues(identity, season)
            except WarRoomError as e:
                logger.warning("[CACHE] League discovery failed for %s: %s", platform.value, e)
                errors[platform.value] = str(e)
                continue
            logger.info("[CACHE] Found %d %s leagues", len(found), platform.value)
            descriptors.extend(found)

        self.warm_leagues(descriptors, week)
        return {"leagues": len(descriptors), "errors": errors}

    def set_week(self, week: int) -> int:
        """Switch the current week and evict every other week's entries.

        Returns:
            Number of entries evicted
        """
        with self._lock:
            self._week = week
            return self._evict_other_weeks_locked(week)

    def _evict_other_weeks_locked(self, week: int) -> int:
        stale_keys = [k for k in self._entries if k.week != week]
        for key in stale_keys:
            del self._entries[key]
            self._in_flight.pop(key, None)
        if stale_keys:
            logger.info("[CACHE] Evicted %d entries from other weeks", len(stale_keys))
        return len(stale_keys)

    def _descriptor_locked(self, key: CacheKey) -> LeagueDescriptor:
        descriptor = self._descriptors.get(key.league_key)
        if descriptor is not None:
            return descriptor
        # Unregistered league: settings are resolved by the reconciler
        return LeagueDescriptor(
            id=key.league_id,
            name=key.league_id,
            platform=key.platform,
            season_year=key.season_year,
            total_teams=0,
        )

    # -------------------------------------------------------------------------
    # TTL
    # -------------------------------------------------------------------------

    def _current_ttl_locked(self) -> float:
        for entry in self._entries.values():
            if entry.value is not None and derived_state.is_live(entry.value):
                return self._live_ttl
        return self._idle_ttl

    def current_ttl(self) -> float:
        """Live TTL while any tracked game is live, idle TTL otherwise."""
        with self._lock:
            return self._current_ttl_locked()

    def _is_fresh_locked(self, entry: CacheEntry) -> bool:
        if entry.state != CacheState.FRESH or entry.fetched_at is None:
            return False
        if self._clock() - entry.fetched_at >= self._current_ttl_locked():
            entry.state = CacheState.STALE
            return False
        return True

    # -------------------------------------------------------------------------
    # Reads
    # -------------------------------------------------------------------------

    def hydrate(self, key: CacheKey, timeout: float | None = None) -> Snapshot:
        """Return a fresh snapshot for key, fetching if needed.

        Concurrent callers for the same key share one fetch and receive the
        same snapshot or the same error. A caller that times out does not
        cancel the fetch.

        Raises:
            NetworkError: fetch failed and no fallback applied
            IdentityResolutionFailure: the user's team is not in the league
            ReconciliationGap: the user's matchup could not be built
            concurrent.futures.TimeoutError: timeout elapsed first
        """
        with self._lock:
            entry = self._entries.get(key)
            if entry is not None and entry.value is not None and self._is_fresh_locked(entry):
                logger.debug("[CACHE] Hit %s", key)
                return entry.value
            future = self._join_or_launch_locked(key, force=False)
        return future.result(timeout=timeout).value

    def cached_snapshot(self, key: CacheKey) -> Snapshot | None:
        """Non-blocking peek. Returns stale data too."""
        with self._lock:
            entry = self._entries.get(key)
            return entry.value if entry else None

    def entry_state(self, key: CacheKey) -> CacheState | None:
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            self._is_fresh_locked(entry)
            return entry.state

    def is_stale(self, key: CacheKey) -> bool:
        return self.entry_state(key) == CacheState.STALE

    def observe(self, league: CacheKey | LeagueDescriptor | tuple[Platform, str]) -> Subscription:
        """Subscribe to cache writes for a league (every week)."""
        league_key = league if isinstance(league, tuple) else league.league_key
        subscription = Subscription(league_key, on_close=self._unsubscribe)
        with self._lock:
            self._subscribers[league_key].append(subscription)
        return subscription

    def _unsubscribe(self, subscription: Subscription) -> None:
        with self._lock:
            subscribers = self._subscribers.get(subscription.league_key)
            if subscribers and subscription in subscribers:
                subscribers.remove(subscription)
                if not subscribers:
                    del self._subscribers[subscription.league_key]

    # -------------------------------------------------------------------------
    # Fetching
    # -------------------------------------------------------------------------

    def _join_or_launch_locked(self, key: CacheKey, force: bool) -> Future:
        if self._closed:
            raise RuntimeError("Coordinator is closed")

        if not force and key in self._in_flight:
            logger.debug("[CACHE] Joining in-flight fetch for %s", key)
            return self._in_flight[key][1]

        self._next_sequence += 1
        sequence = self._next_sequence
        if key not in self._entries:
            self._entries[key] = CacheEntry(key=key, descriptor=self._descriptor_locked(key))
        future = self._pool.submit(self._run_fetch, key, sequence, self._generation)
        self._in_flight[key] = (sequence, future)
        return future

    def _run_fetch(self, key: CacheKey, sequence: int, generation: int) -> FetchOutcome:
        with self._lock:
            entry = self._entries.get(key)
            descriptor = entry.descriptor if entry else self._descriptor_locked(key)
        reconciler = self._reconcilers.get(key.platform)
        identity = self._identities.get(key.platform)

        try:
            if reconciler is None or not identity:
                raise IdentityResolutionFailure(key.league_id, key.platform.value)
            logger.debug("[CACHE] Fetching %s (seq %d)", key, sequence)
            value = reconciler.reconcile(descriptor, key.week, identity)
        except WarRoomError as e:
            logger.warning("[CACHE] Fetch failed for %s: %s", key, e)
            return self._fallback(key, sequence, generation, descriptor, reconciler, e)
        else:
            return self._store(key, sequence, generation, value, stale=False)
        finally:
            with self._lock:
                current = self._in_flight.get(key)
                if current is not None and current[0] == sequence:
                    del self._in_flight[key]

    def _store(
        self,
        key: CacheKey,
        sequence: int,
        generation: int,
        value: Snapshot,
        stale: bool,
    ) -> FetchOutcome:
        with self._lock:
            entry = self._entries.get(key)
            if generation != self._generation or entry is None:
                logger.debug("[CACHE] Dropping result for cleared/evicted %s", key)
                return FetchOutcome(value, stale=stale)
            if sequence <= entry.applied_sequence:
                logger.debug(
                    "[CACHE] Discarding seq %d for %s (newer seq %d already applied)",
                    sequence,
                    key,
                    entry.applied_sequence,
                )
                return FetchOutcome(entry.value, stale=entry.state == CacheState.STALE)

            previous = entry.value
            entry.value = value
            entry.applied_sequence = sequence
            entry.state = CacheState.STALE if stale else CacheState.FRESH
            entry.fetched_at = self._clock()
            entry.fetched_at_wall = datetime.now(timezone.utc)
            entry.last_error = None
            if isinstance(value, MatchupSnapshot) and not value.is_eliminated:
                self._last_my_team[key.league_key] = value.my_team
            subscribers = list(self._subscribers.get(key.league_key, ()))

        changed = derived_state.changed_players(previous, value)
        if previous is not None and changed:
            logger.debug("[CACHE] %s: %d players changed", key, len(changed))
        self._publish(subscribers, SnapshotEvent(key, value, stale, frozenset(changed)))
        return FetchOutcome(value, stale=stale)

    def _fallback(
        self,
        key: CacheKey,
        sequence: int,
        generation: int,
        descriptor: LeagueDescriptor,
        reconciler: LeagueReconciler | None,
        error: WarRoomError,
    ) -> FetchOutcome:
        """Degrade a failed fetch, or re-raise when nothing applies.

        Order: last-known-good value marked stale, then (network failures
        during playoffs only) an eliminated snapshot built from the last
        known roster for the user's team. Identity failures always raise.
        """
        last_known = None
        subscribers: list[Subscription] = []
        with self._lock:
            entry = self._entries.get(key)
            self._last_error = str(error)
            if entry is not None and generation == self._generation:
                entry.last_error = str(error)
                if entry.value is not None and not isinstance(error, IdentityResolutionFailure):
                    if sequence > entry.applied_sequence:
                        # Superseded fetches leave newer state alone
                        entry.state = CacheState.STALE
                        subscribers = list(self._subscribers.get(key.league_key, ()))
                    last_known = FetchOutcome(entry.value, stale=entry.state == CacheState.STALE)
            my_team = self._last_my_team.get(key.league_key)

        if last_known is not None:
            logger.info("[CACHE] Serving last-known-good value for %s", key)
            self._publish(subscribers, SnapshotEvent(key, last_known.value, stale=True))
            return last_known

        if isinstance(error, NetworkError) and my_team is not None and reconciler is not None:
            if playoffs.is_playoff_week(key.week, reconciler.playoff_week_start(descriptor)):
                logger.info("[CACHE] Using playoff-elimination snapshot for %s", key)
                snapshot = playoffs.build_eliminated_snapshot(key, descriptor.name, my_team)
                return self._store(key, sequence, generation, snapshot, stale=True)

        raise error

    def _publish(self, subscribers: list[Subscription], event: SnapshotEvent) -> None:
        for subscription in subscribers:
            subscription.publish(event)

    # -------------------------------------------------------------------------
    # Refresh
    # -------------------------------------------------------------------------

    def refresh(
        self,
        league_id: str | None = None,
        force: bool = False,
        platform: Platform | None = None,
    ) -> dict:
        """Refresh warmed leagues for the current week.

        Args:
            league_id: Only this league (None = all warmed leagues)
            force: Bypass TTL and supersede in-flight fetches
            platform: Only leagues on this platform

        Returns:
            Dict with refreshed/stale/failed/skipped counts and per-league errors
        """
        results: dict = {"refreshed": 0, "stale": 0, "failed": 0, "skipped": 0, "errors": {}}
        futures: dict[Future, CacheKey] = {}

        with self._lock:
            if self._week is None:
                logger.warning("[CACHE] Refresh requested before any leagues were warmed")
                return results
            for descriptor in self._descriptors.values():
                if league_id is not None and descriptor.id != league_id:
                    continue
                if platform is not None and descriptor.platform != platform:
                    continue
                key = CacheKey(descriptor.id, descriptor.platform, descriptor.season_year, self._week)
                entry = self._entries.setdefault(key, CacheEntry(key=key, descriptor=descriptor))
                if not force and entry.value is not None and self._is_fresh_locked(entry):
                    results["skipped"] += 1
                    continue
                futures[self._join_or_launch_locked(key, force)] = key

        if league_id is not None and not futures and not results["skipped"]:
            logger.warning("[CACHE] Refresh requested for unknown league %s", league_id)

        # Per-league error capture: one failure never aborts siblings
        for future in as_completed(futures):
            key = futures[future]
            try:
                outcome = future.result()
            except Exception as e:
                results["failed"] += 1
                results["errors"][key.league_id] = str(e)
                logger.warning("[CACHE] Refresh failed for %s: %s", key, e)
                continue
            if outcome.stale:
                results["stale"] += 1
            else:
                results["refreshed"] += 1

        with self._lock:
            self._last_refresh = datetime.now(timezone.utc)
            if results["errors"]:
                self._last_error = next(iter(results["errors"].values()))

        logger.info(
            "[CACHE] Refresh complete: %d refreshed, %d stale, %d failed, %d skipped",
            results["refreshed"],
            results["stale"],
            results["failed"],
            results["skipped"],
        )
        return results

    # -------------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------------

    def clear_caches(self) -> None:
        """Drop every entry and registered league (logout).

        In-flight fetches finish but their results are discarded. Leagues
        must be warmed again before refresh does anything.
        """
        with self._lock:
            count = len(self._entries)
            self._entries.clear()
            self._in_flight.clear()
            self._descriptors.clear()
            self._last_my_team.clear()
            self._week = None
            self._generation += 1
        logger.info("[CACHE] Cleared %d entries", count)

    def stats(self) -> CacheStats:
        with self._lock:
            counts = {state: 0 for state in CacheState}
            for entry in self._entries.values():
                self._is_fresh_locked(entry)
                counts[entry.state] += 1
            return CacheStats(
                total_entries=len(self._entries),
                pending_count=counts[CacheState.PENDING],
                fresh_count=counts[CacheState.FRESH],
                stale_count=counts[CacheState.STALE],
                in_flight_count=len(self._in_flight),
                ttl_seconds=self._current_ttl_locked(),
                current_week=self._week,
                last_refresh=self._last_refresh,
                last_error=self._last_error,
            )

    def close(self) -> None:
        """Cancel queued fetches, end all subscriptions, close reconcilers."""
        with self._lock:
            if self._closed:
                return
            self._closed = True
            subscriptions = [s for subs in self._subscribers.values() for s in subs]
            self._subscribers.clear()
        self._pool.shutdown(wait=False, cancel_futures=True)
        for subscription in subscriptions:
            subscription.close()
        for reconciler in self._reconcilers.values():
            reconciler.close()
        logger.info("[CACHE] Coordinator closed")

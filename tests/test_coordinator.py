"""Tests for the snapshot coordinator.

Covers fetch deduplication, the sequence guard against out-of-order
writes, stale and playoff fallbacks, week eviction, refresh fan-out, and
update subscriptions.
"""

import threading
import time
from concurrent.futures import ThreadPoolExecutor

import pytest

from warroom.consumers.cache import CacheState, SnapshotCoordinator, SnapshotEvent, Subscription
from warroom.core import CacheKey, IdentityResolutionFailure, NetworkError, Platform
from warroom.services.playoffs import ELIMINATED_OPPONENT_NAME

from tests.fakes import FakePlatform, FakeReconciler, make_descriptor, make_matchup


class FakeClock:
    def __init__(self):
        self.now = 1000.0

    def __call__(self) -> float:
        return self.now


def network_error(status_code: int = 503) -> NetworkError:
    return NetworkError("https://api.sleeper.app/v1/league/L1/rosters", "http", status_code=status_code)


@pytest.fixture
def make_coordinator():
    created = []

    def factory(reconciler, identity="me", **kwargs) -> SnapshotCoordinator:
        identities = {Platform.SLEEPER: identity} if identity else {}
        coordinator = SnapshotCoordinator({Platform.SLEEPER: reconciler}, identities, **kwargs)
        created.append(coordinator)
        return coordinator

    yield factory
    for coordinator in created:
        coordinator.close()


class TestHydrateDeduplication:
    """Concurrent hydrates for one key share a single fetch."""

    def test_concurrent_callers_share_one_fetch(self, make_coordinator):
        """Five callers, one network fetch, one snapshot object."""
        reconciler = FakeReconciler()
        gate = threading.Event()
        reconciler.gates[0] = gate
        coordinator = make_coordinator(reconciler)
        key = coordinator.warm_leagues([make_descriptor()], week=6)[0]

        with ThreadPoolExecutor(max_workers=5) as pool:
            futures = [pool.submit(coordinator.hydrate, key, 5) for _ in range(5)]
            assert reconciler.started.acquire(timeout=2)
            time.sleep(0.1)
            gate.set()
            results = [f.result(timeout=5) for f in futures]

        assert reconciler.calls == 1
        assert all(r is results[0] for r in results)

    def test_concurrent_callers_share_one_error(self, make_coordinator):
        """A failed fetch surfaces the same error to every waiting caller."""
        reconciler = FakeReconciler(handler=lambda d, w, i, n: network_error())
        gate = threading.Event()
        reconciler.gates[0] = gate
        coordinator = make_coordinator(reconciler)
        key = coordinator.warm_leagues([make_descriptor()], week=6)[0]

        errors = []
        with ThreadPoolExecutor(max_workers=4) as pool:
            futures = [pool.submit(coordinator.hydrate, key, 5) for _ in range(4)]
            assert reconciler.started.acquire(timeout=2)
            time.sleep(0.1)
            gate.set()
            for future in futures:
                with pytest.raises(NetworkError) as exc_info:
                    future.result(timeout=5)
                errors.append(exc_info.value)

        assert reconciler.calls == 1
        assert all(e is errors[0] for e in errors)

    def test_fresh_entry_served_from_cache(self, make_coordinator):
        clock = FakeClock()
        reconciler = FakeReconciler()
        coordinator = make_coordinator(reconciler, clock=clock, idle_ttl=300)
        key = coordinator.warm_leagues([make_descriptor()], week=6)[0]

        first = coordinator.hydrate(key)
        clock.now += 120
        assert coordinator.hydrate(key) is first
        assert reconciler.calls == 1

    def test_expired_entry_is_refetched(self, make_coordinator):
        clock = FakeClock()
        reconciler = FakeReconciler()
        coordinator = make_coordinator(reconciler, clock=clock, idle_ttl=300)
        key = coordinator.warm_leagues([make_descriptor()], week=6)[0]

        coordinator.hydrate(key)
        clock.now += 301
        assert coordinator.entry_state(key) == CacheState.STALE
        second = coordinator.hydrate(key)

        assert reconciler.calls == 2
        assert second.my_team.current_score == 102.0

    def test_live_games_shorten_ttl(self, make_coordinator):
        def live(descriptor, week, identity, n):
            key = CacheKey(descriptor.id, descriptor.platform, descriptor.season_year, week)
            return make_matchup(key, 50.0, 40.0, live=True)

        coordinator = make_coordinator(FakeReconciler(handler=live), live_ttl=90, idle_ttl=300)
        key = coordinator.warm_leagues([make_descriptor()], week=6)[0]

        assert coordinator.current_ttl() == 300
        coordinator.hydrate(key)
        assert coordinator.current_ttl() == 90

    def test_unregistered_league_gets_bare_descriptor(self, make_coordinator):
        seen = []

        def handler(descriptor, week, identity, n):
            seen.append(descriptor)
            return FakeReconciler._default(descriptor, week, identity, n)

        coordinator = make_coordinator(FakeReconciler(handler=handler))
        key = CacheKey("L9", Platform.SLEEPER, 2025, 6)

        coordinator.hydrate(key)

        assert seen[0].id == "L9"
        assert seen[0].settings == {}


class TestSequenceGuard:
    """An older, slower fetch never overwrites a newer result."""

    def test_slow_older_fetch_does_not_overwrite(self, make_coordinator):
        reconciler = FakeReconciler()
        gate = threading.Event()
        reconciler.gates[0] = gate
        coordinator = make_coordinator(reconciler)
        key = coordinator.warm_leagues([make_descriptor()], week=6)[0]

        with ThreadPoolExecutor(max_workers=1) as pool:
            slow = pool.submit(coordinator.hydrate, key, 5)
            assert reconciler.started.acquire(timeout=2)

            result = coordinator.refresh(force=True)
            assert result["refreshed"] == 1
            assert coordinator.cached_snapshot(key).my_team.current_score == 102.0

            gate.set()
            slow_result = slow.result(timeout=5)

        assert coordinator.cached_snapshot(key).my_team.current_score == 102.0
        # The superseded caller still sees what the cache holds
        assert slow_result.my_team.current_score == 102.0


class TestFallbacks:
    """Failure handling in hydrate and refresh."""

    def test_network_failure_serves_last_known_good(self, make_coordinator):
        def handler(descriptor, week, identity, n):
            if n == 1:
                return FakeReconciler._default(descriptor, week, identity, n)
            return network_error()

        reconciler = FakeReconciler(handler=handler)
        coordinator = make_coordinator(reconciler)
        key = coordinator.warm_leagues([make_descriptor()], week=6)[0]

        first = coordinator.hydrate(key)
        result = coordinator.refresh(force=True)

        assert result["stale"] == 1
        assert result["failed"] == 0
        assert coordinator.is_stale(key)
        assert coordinator.cached_snapshot(key) is first
        # Stale entries refetch on hydrate and fall back again
        assert coordinator.hydrate(key) is first
        assert reconciler.calls == 3
        assert coordinator.stats().last_error is not None

    def test_network_failure_without_cache_raises(self, make_coordinator):
        coordinator = make_coordinator(FakeReconciler(handler=lambda d, w, i, n: network_error()))
        key = coordinator.warm_leagues([make_descriptor()], week=6)[0]

        with pytest.raises(NetworkError):
            coordinator.hydrate(key)
        assert coordinator.cached_snapshot(key) is None

    def test_identity_failure_propagates(self, make_coordinator):
        handler = lambda d, w, i, n: IdentityResolutionFailure(d.id, "sleeper")  # noqa: E731
        coordinator = make_coordinator(FakeReconciler(handler=handler))
        key = coordinator.warm_leagues([make_descriptor()], week=6)[0]

        with pytest.raises(IdentityResolutionFailure):
            coordinator.hydrate(key)

    def test_identity_failure_does_not_fall_back_to_cache(self, make_coordinator):
        def handler(descriptor, week, identity, n):
            if n == 1:
                return FakeReconciler._default(descriptor, week, identity, n)
            return IdentityResolutionFailure(descriptor.id, "sleeper")

        coordinator = make_coordinator(FakeReconciler(handler=handler))
        key = coordinator.warm_leagues([make_descriptor()], week=6)[0]
        coordinator.hydrate(key)

        result = coordinator.refresh(force=True)

        assert result["failed"] == 1
        assert "L1" in result["errors"]

    def test_missing_identity_is_identity_failure(self, make_coordinator):
        reconciler = FakeReconciler()
        coordinator = make_coordinator(reconciler, identity=None)
        key = coordinator.warm_leagues([make_descriptor()], week=6)[0]

        with pytest.raises(IdentityResolutionFailure):
            coordinator.hydrate(key)
        assert reconciler.calls == 0

    def test_playoff_network_failure_builds_eliminated_snapshot(self, make_coordinator):
        """During playoffs a failed fetch falls back to the last known roster."""

        def handler(descriptor, week, identity, n):
            if week == 15:
                return FakeReconciler._default(descriptor, week, identity, n)
            return network_error()

        coordinator = make_coordinator(FakeReconciler(handler=handler))
        descriptor = make_descriptor()
        week15 = coordinator.warm_leagues([descriptor], week=15)[0]
        coordinator.hydrate(week15)

        week16 = coordinator.key_for(descriptor, 16)
        snapshot = coordinator.hydrate(week16)

        assert snapshot.is_eliminated
        assert snapshot.my_team.team_id == "1"
        assert snapshot.opponent_team.name == ELIMINATED_OPPONENT_NAME
        assert coordinator.is_stale(week16)

    def test_regular_season_failure_skips_playoff_fallback(self, make_coordinator):
        def handler(descriptor, week, identity, n):
            if week == 5:
                return FakeReconciler._default(descriptor, week, identity, n)
            return network_error()

        coordinator = make_coordinator(FakeReconciler(handler=handler))
        descriptor = make_descriptor()
        coordinator.hydrate(coordinator.warm_leagues([descriptor], week=5)[0])

        with pytest.raises(NetworkError):
            coordinator.hydrate(coordinator.key_for(descriptor, 6))


class TestWeekAndClear:
    """Week changes and explicit clears."""

    def test_week_change_evicts_previous_week(self, make_coordinator):
        coordinator = make_coordinator(FakeReconciler())
        descriptor = make_descriptor()
        week5 = coordinator.warm_leagues([descriptor], week=5)[0]
        coordinator.hydrate(week5)

        week6 = coordinator.warm_leagues([descriptor], week=6)[0]

        assert week5 != week6
        assert coordinator.cached_snapshot(week5) is None
        assert coordinator.cached_snapshot(week6) is None
        assert coordinator.stats().total_entries == 1
        assert coordinator.current_week == 6

    def test_set_week_reports_evicted_count(self, make_coordinator):
        coordinator = make_coordinator(FakeReconciler())
        descriptors = [make_descriptor("A"), make_descriptor("B")]
        coordinator.warm_leagues(descriptors, week=5)

        assert coordinator.set_week(6) == 2
        assert coordinator.stats().total_entries == 0

    def test_clear_caches_removes_everything(self, make_coordinator):
        coordinator = make_coordinator(FakeReconciler())
        key = coordinator.warm_leagues([make_descriptor()], week=6)[0]
        coordinator.hydrate(key)

        coordinator.clear_caches()

        assert coordinator.cached_snapshot(key) is None
        assert coordinator.stats().total_entries == 0

    def test_clear_discards_in_flight_result(self, make_coordinator):
        reconciler = FakeReconciler()
        gate = threading.Event()
        reconciler.gates[0] = gate
        coordinator = make_coordinator(reconciler)
        key = coordinator.warm_leagues([make_descriptor()], week=6)[0]

        with ThreadPoolExecutor(max_workers=1) as pool:
            pending = pool.submit(coordinator.hydrate, key, 5)
            assert reconciler.started.acquire(timeout=2)
            coordinator.clear_caches()
            gate.set()
            # The waiting caller still gets its snapshot
            assert pending.result(timeout=5) is not None

        assert coordinator.cached_snapshot(key) is None

    def test_clear_caches_forgets_leagues(self, make_coordinator):
        reconciler = FakeReconciler()
        coordinator = make_coordinator(reconciler)
        coordinator.warm_leagues([make_descriptor("A"), make_descriptor("B")], week=6)

        coordinator.clear_caches()
        result = coordinator.refresh(force=True)

        assert coordinator.descriptors() == []
        assert coordinator.current_week is None
        assert result["refreshed"] == 0
        assert reconciler.calls == 0

    def test_rewarmed_week_accepts_new_fetch(self, make_coordinator):
        """A key evicted and warmed again stores its next fetch."""
        coordinator = make_coordinator(FakeReconciler())
        descriptor = make_descriptor()
        week5 = coordinator.warm_leagues([descriptor], week=5)[0]
        first = coordinator.hydrate(week5)

        coordinator.set_week(6)
        coordinator.warm_leagues([descriptor], week=5)
        second = coordinator.hydrate(week5)

        assert second is not first
        assert coordinator.cached_snapshot(week5) is second
        assert coordinator.entry_state(week5) == CacheState.FRESH

    def test_warm_leagues_registers_pending_entries(self, make_coordinator):
        reconciler = FakeReconciler()
        coordinator = make_coordinator(reconciler)
        keys = coordinator.warm_leagues([make_descriptor("A"), make_descriptor("B")], week=6)

        stats = coordinator.stats()
        assert stats.pending_count == 2
        assert all(coordinator.entry_state(k) == CacheState.PENDING for k in keys)
        assert reconciler.calls == 0


class TestRefresh:
    """Refresh fan-out across warmed leagues."""

    def test_one_failure_does_not_abort_siblings(self, make_coordinator):
        def handler(descriptor, week, identity, n):
            if descriptor.id == "bad":
                return network_error(500)
            return FakeReconciler._default(descriptor, week, identity, n)

        coordinator = make_coordinator(FakeReconciler(handler=handler))
        coordinator.warm_leagues([make_descriptor("good"), make_descriptor("bad")], week=6)

        result = coordinator.refresh()

        assert result["refreshed"] == 1
        assert result["failed"] == 1
        assert "bad" in result["errors"]

    def test_concurrency_is_bounded(self, make_coordinator):
        lock = threading.Lock()
        active = 0
        peak = 0

        def handler(descriptor, week, identity, n):
            nonlocal active, peak
            with lock:
                active += 1
                peak = max(peak, active)
            time.sleep(0.05)
            with lock:
                active -= 1
            return FakeReconciler._default(descriptor, week, identity, n)

        coordinator = make_coordinator(FakeReconciler(handler=handler), max_workers=2)
        coordinator.warm_leagues([make_descriptor(f"L{i}") for i in range(6)], week=6)

        result = coordinator.refresh()

        assert result["refreshed"] == 6
        assert peak <= 2

    def test_fresh_leagues_are_skipped_unless_forced(self, make_coordinator):
        reconciler = FakeReconciler()
        coordinator = make_coordinator(reconciler)
        coordinator.warm_leagues([make_descriptor()], week=6)

        coordinator.refresh()
        assert coordinator.refresh()["skipped"] == 1
        assert coordinator.refresh(force=True)["refreshed"] == 1
        assert reconciler.calls == 2

    def test_refresh_single_league(self, make_coordinator):
        reconciler = FakeReconciler()
        coordinator = make_coordinator(reconciler)
        coordinator.warm_leagues([make_descriptor("A"), make_descriptor("B")], week=6)

        result = coordinator.refresh(league_id="B")

        assert result["refreshed"] == 1
        assert reconciler.calls == 1

    def test_refresh_before_warm_is_a_no_op(self, make_coordinator):
        coordinator = make_coordinator(FakeReconciler())
        assert coordinator.refresh()["refreshed"] == 0


class TestObserve:
    """Subscribers receive one event per cache write."""

    def test_events_carry_snapshot_and_changed_players(self, make_coordinator):
        coordinator = make_coordinator(FakeReconciler())
        descriptor = make_descriptor()
        key = coordinator.warm_leagues([descriptor], week=6)[0]

        with coordinator.observe(descriptor) as events:
            snapshot = coordinator.hydrate(key)
            first = events.get(timeout=1)
            coordinator.refresh(force=True)
            second = events.get(timeout=1)

        assert first.value is snapshot
        assert not first.stale
        assert first.changed_player_ids == {"p1", "p2"}
        # Only my player's score moved between fetches
        assert second.changed_player_ids == {"p1"}

    def test_stale_fallback_emits_stale_event(self, make_coordinator):
        def handler(descriptor, week, identity, n):
            if n == 1:
                return FakeReconciler._default(descriptor, week, identity, n)
            return network_error()

        coordinator = make_coordinator(FakeReconciler(handler=handler))
        descriptor = make_descriptor()
        key = coordinator.warm_leagues([descriptor], week=6)[0]
        coordinator.hydrate(key)

        with coordinator.observe(key) as events:
            coordinator.refresh(force=True)
            event = events.get(timeout=1)

        assert event.stale

    def test_closed_subscription_stops_receiving(self, make_coordinator):
        coordinator = make_coordinator(FakeReconciler())
        descriptor = make_descriptor()
        key = coordinator.warm_leagues([descriptor], week=6)[0]

        events = coordinator.observe(descriptor)
        events.close()
        coordinator.hydrate(key)

        assert events.closed
        assert events.get(timeout=0.1) is None

    def test_slow_reader_loses_oldest_events(self):
        key = CacheKey("L1", Platform.SLEEPER, 2025, 6)
        events = Subscription(key.league_key, maxsize=3)
        published = [SnapshotEvent(key, make_matchup(key, my_score=float(n))) for n in range(5)]
        for event in published:
            events.publish(event)

        assert [events.get(timeout=0) for _ in range(3)] == published[2:]
        assert events.get(timeout=0) is None

    def test_close_fits_in_full_backlog(self):
        key = CacheKey("L1", Platform.SLEEPER, 2025, 6)
        events = Subscription(key.league_key, maxsize=2)
        for n in range(2):
            events.publish(SnapshotEvent(key, make_matchup(key, my_score=float(n))))

        events.close()

        assert len(list(events)) == 1


class TestDiscovery:
    """League discovery through each platform's client."""

    def test_discovered_leagues_are_warmed(self, make_coordinator):
        client = FakePlatform(leagues=[make_descriptor("A"), make_descriptor("B")])
        coordinator = make_coordinator(FakeReconciler(client=client))

        result = coordinator.discover_leagues(2025, week=6)

        assert result == {"leagues": 2, "errors": {}}
        assert {d.id for d in coordinator.descriptors()} == {"A", "B"}
        assert coordinator.stats().pending_count == 2

    def test_failed_platform_is_recorded(self, make_coordinator):
        client = FakePlatform()
        client.error = network_error()
        coordinator = make_coordinator(FakeReconciler(client=client))

        result = coordinator.discover_leagues(2025, week=6)

        assert result["leagues"] == 0
        assert "sleeper" in result["errors"]

"""Tests for the background refresh scheduler."""

import threading
import time
from unittest.mock import MagicMock

import pytest

from warroom.consumers.scheduler import RefreshScheduler


@pytest.fixture
def coordinator():
    coordinator = MagicMock()
    coordinator.current_ttl.return_value = 1.0
    coordinator.refresh.return_value = {"refreshed": 1, "stale": 0, "failed": 0, "skipped": 0, "errors": {}}
    return coordinator


def wait_for(predicate, timeout: float = 5.0) -> bool:
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(0.05)
    return False


def test_run_once_records_result(coordinator):
    scheduler = RefreshScheduler(coordinator)

    result = scheduler.run_once()

    assert result["refreshed"] == 1
    assert scheduler.last_result == result
    assert scheduler.last_run is not None
    coordinator.refresh.assert_called_once_with()


def test_start_and_stop(coordinator):
    scheduler = RefreshScheduler(coordinator)

    assert scheduler.start()
    assert not scheduler.start()
    assert wait_for(lambda: coordinator.refresh.called)
    assert scheduler.is_running

    assert scheduler.stop(timeout=5)
    assert not scheduler.is_running


def test_stop_when_not_running(coordinator):
    assert RefreshScheduler(coordinator).stop()


def test_paused_scheduler_skips_refreshes(coordinator):
    scheduler = RefreshScheduler(coordinator, run_on_start=False)
    scheduler.pause()
    assert scheduler.is_paused

    scheduler.start()
    try:
        time.sleep(1.5)
        assert not coordinator.refresh.called

        scheduler.resume()
        assert not scheduler.is_paused
        assert wait_for(lambda: coordinator.refresh.called)
    finally:
        assert scheduler.stop(timeout=5)


def test_stop_wakes_paused_loop(coordinator):
    scheduler = RefreshScheduler(coordinator, run_on_start=False)
    scheduler.pause()
    scheduler.start()
    time.sleep(1.2)

    assert scheduler.stop(timeout=5)


def test_refresh_errors_keep_loop_alive(coordinator):
    calls = threading.Semaphore(0)

    def flaky_refresh():
        calls.release()
        raise RuntimeError("boom")

    coordinator.refresh.side_effect = flaky_refresh
    scheduler = RefreshScheduler(coordinator)
    scheduler.start()
    try:
        assert calls.acquire(timeout=5)
        assert calls.acquire(timeout=5)
        assert scheduler.is_running
    finally:
        scheduler.stop(timeout=5)

"""Background auto-refresh for warmed leagues.

Runs coordinator.refresh() in a daemon thread. The interval follows the
coordinator's TTL: short while any tracked game is live, long otherwise.
pause()/resume() mirror the app moving to background and foreground.

The FastAPI lifespan owns start() and stop().
"""

import logging
import threading
import time
from datetime import datetime

from warroom.consumers.cache import SnapshotCoordinator

logger = logging.getLogger(__name__)


class RefreshScheduler:
    """Periodic league refresh in a daemon thread.

    Usage:
        scheduler = RefreshScheduler(coordinator)
        scheduler.start()
        # ... application runs ...
        scheduler.stop()
    """

    def __init__(self, coordinator: SnapshotCoordinator, run_on_start: bool = True):
        """Create a stopped scheduler.

        Args:
            coordinator: Coordinator whose warmed leagues get refreshed
            run_on_start: Refresh immediately when the thread starts
        """
        self._coordinator = coordinator
        self._run_on_start = run_on_start

        self._thread: threading.Thread | None = None
        self._stop_event = threading.Event()
        self._resume_event = threading.Event()
        self._resume_event.set()
        self._running = False
        self._last_run: datetime | None = None
        self._last_result: dict | None = None

    @property
    def is_running(self) -> bool:
        return self._running and self._thread is not None and self._thread.is_alive()

    @property
    def is_paused(self) -> bool:
        return not self._resume_event.is_set()

    @property
    def last_run(self) -> datetime | None:
        return self._last_run

    @property
    def last_result(self) -> dict | None:
        return self._last_result

    def start(self) -> bool:
        """Launch the refresh thread.

        Returns:
            False when a refresh thread is already alive
        """
        if self.is_running:
            logger.warning("[SCHEDULER] Already running")
            return False

        self._stop_event.clear()
        self._running = True
        self._thread = threading.Thread(
            target=self._run_loop,
            name="refresh-scheduler",
            daemon=True,
        )
        self._thread.start()
        logger.info("[SCHEDULER] Started (interval follows cache TTL)")
        return True

    def stop(self, timeout: float = 30.0) -> bool:
        """Signal the refresh thread and wait for it to exit.

        Args:
            timeout: Seconds to wait on the thread

        Returns:
            False if the thread was still alive after timeout
        """
        if not self.is_running:
            return True

        logger.info("[SCHEDULER] Stopping...")
        self._stop_event.set()
        # Wake a paused loop so it can exit
        self._resume_event.set()
        self._running = False

        if self._thread:
            self._thread.join(timeout=timeout)
            if self._thread.is_alive():
                logger.warning("[SCHEDULER] Thread did not stop in time")
                return False

        logger.info("[SCHEDULER] Stopped")
        return True

    def pause(self) -> None:
        """Suspend refreshes (app backgrounded)."""
        if not self.is_paused:
            self._resume_event.clear()
            logger.info("[SCHEDULER] Paused")

    def resume(self) -> None:
        """Resume refreshes (app foregrounded)."""
        if self.is_paused:
            self._resume_event.set()
            logger.info("[SCHEDULER] Resumed")

    def run_once(self) -> dict:
        """Refresh synchronously on the caller's thread."""
        return self._run_refresh()

    def _run_loop(self) -> None:
        """Thread body. Sleeps one TTL between refreshes and blocks while paused."""
        if self._run_on_start:
            try:
                self._run_refresh()
            except Exception as e:
                logger.exception("[SCHEDULER] Error in initial refresh: %s", e)

        while not self._stop_event.is_set():
            # Re-read each cycle: TTL shortens once a game goes live
            interval_seconds = self._coordinator.current_ttl()
            for _ in range(max(1, int(interval_seconds))):
                if self._stop_event.is_set():
                    return
                time.sleep(1)

            self._resume_event.wait()
            if self._stop_event.is_set():
                return

            try:
                self._run_refresh()
            except Exception as e:
                logger.exception("[SCHEDULER] Error in refresh: %s", e)

    def _run_refresh(self) -> dict:
        self._last_run = datetime.now()
        result = self._coordinator.refresh()
        self._last_result = result
        return result

"""Snapshot update subscriptions.

The coordinator pushes SnapshotEvents to subscribers; consumers read from
their own queue instead of polling shared state.
"""

import queue
from collections.abc import Callable, Iterator

from .types import SnapshotEvent

_CLOSED = object()

# Per-subscriber backlog; a slow reader loses the oldest events first
MAX_PENDING_EVENTS = 100


class Subscription:
    """A stream of SnapshotEvents for one league.

    Iterate to block on events until close() is called:

        with coordinator.observe(league_key) as events:
            for event in events:
                render(event.value)
    """

    def __init__(
        self,
        league_key: tuple,
        on_close: Callable[["Subscription"], None] | None = None,
        maxsize: int = MAX_PENDING_EVENTS,
    ):
        self.league_key = league_key
        self._queue: queue.Queue = queue.Queue(maxsize=maxsize)
        self._on_close = on_close
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def _put(self, item) -> None:
        while True:
            try:
                self._queue.put_nowait(item)
                return
            except queue.Full:
                try:
                    self._queue.get_nowait()
                except queue.Empty:
                    pass

    def publish(self, event: SnapshotEvent) -> None:
        if not self._closed:
            self._put(event)

    def get(self, timeout: float | None = None) -> SnapshotEvent | None:
        """Next event, or None on timeout or once closed."""
        try:
            item = self._queue.get(timeout=timeout)
        except queue.Empty:
            return None
        if item is _CLOSED:
            # Keep the marker for any other reader
            self._put(_CLOSED)
            return None
        return item

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        self._put(_CLOSED)
        if self._on_close:
            self._on_close(self)

    def __iter__(self) -> Iterator[SnapshotEvent]:
        while True:
            event = self.get()
            if event is None:
                return
            yield event

    def __enter__(self) -> "Subscription":
        return self

    def __exit__(self, *exc) -> None:
        self.close()

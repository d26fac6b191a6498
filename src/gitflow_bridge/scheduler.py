import logging
import threading
from collections.abc import Callable

from .constants import APP_NAME, DEFAULT_REFRESH_INTERVAL
from .snapshot import Snapshot

logger = logging.getLogger(APP_NAME)


class RefreshScheduler:
    """Triggers snapshot refreshes from a timer and from host signals.

    Requests go through a single-slot queue: at most one refresh runs at a
    time and at most one more is pending. A request that arrives while a
    refresh is running replaces the pending one, so the last snapshot
    delivered always reflects a refresh that started after the latest trigger.

    The refresh runs on the thread of whichever trigger started it; later
    triggers return immediately.

    Attributes:
        refresh (Callable[[], Snapshot]): Produces a new snapshot.
        on_snapshot (Callable[[Snapshot], None]): Receives each snapshot.
        interval (float): Seconds between timer triggers.
    """

    def __init__(
        self,
        refresh: Callable[[], Snapshot],
        on_snapshot: Callable[[Snapshot], None],
        interval: float = DEFAULT_REFRESH_INTERVAL,
    ):
        self.refresh = refresh
        self.on_snapshot = on_snapshot
        self.interval = interval
        self._lock = threading.Lock()
        self._in_flight = False
        self._pending: str | None = None
        self._stop = threading.Event()
        self._timer: threading.Thread | None = None

    def request(self, reason: str) -> bool:
        """Asks for a refresh.

        Args:
            reason (str): What triggered the request (for logging).

        Returns:
            bool: True if this call ran the refresh, False if it was queued
            behind one already in flight.
        """
        with self._lock:
            if self._in_flight:
                self._pending = reason
                return False
            self._in_flight = True

        while True:
            self._run_once(reason)
            with self._lock:
                if self._pending is None:
                    self._in_flight = False
                    return True
                reason, self._pending = self._pending, None

    def _run_once(self, reason: str) -> None:
        logger.debug(f"Refreshing snapshot ({reason})")
        try:
            snapshot = self.refresh()
            self.on_snapshot(snapshot)
        except Exception:
            logger.exception(f"REFRESH ERROR ({reason})")

    # --- Host Signals ---

    def document_saved(self) -> bool:
        return self.request("save")

    def vcs_state_changed(self) -> bool:
        return self.request("vcs")

    def user_refresh(self) -> bool:
        return self.request("user")

    # --- Timer ---

    def _tick(self, stop: threading.Event) -> None:
        while not stop.wait(self.interval):
            self.request("timer")

    def start(self) -> None:
        """Starts the periodic timer. Calling it twice has no effect."""
        if self._timer is not None and self._timer.is_alive():
            return
        # A timer thread only watches the event it was started with.
        self._stop = threading.Event()
        self._timer = threading.Thread(
            target=self._tick, args=(self._stop,), daemon=True
        )
        self._timer.start()

    def stop(self) -> None:
        """Stops the timer.

        A refresh already in progress runs to completion; its timer thread
        exits afterwards even if start() is called again in the meantime.
        """
        self._stop.set()
        if self._timer is not None:
            if self._timer is not threading.current_thread():
                self._timer.join(timeout=self.interval)
            self._timer = None

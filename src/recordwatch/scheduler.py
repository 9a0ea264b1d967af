"""Cancellable periodic tasks."""

import logging
import threading
from typing import Callable, Optional

logger = logging.getLogger(__name__)


class PeriodicTask:
    """
    Runs an action every ``interval_s`` seconds on a daemon thread.

    The first run happens one interval after ``start()``. Exceptions raised
    by the action are logged and the schedule continues. ``cancel()`` stops
    the schedule; a run already in progress is allowed to finish.
    """

    def __init__(self, name: str, interval_s: float, action: Callable[[], None]):
        if interval_s <= 0:
            raise ValueError("interval_s must be > 0")
        self.name = name
        self.interval_s = interval_s
        self.action = action
        self._cancelled = threading.Event()
        self._thread: Optional[threading.Thread] = None
        self._lock = threading.Lock()

    def start(self) -> bool:
        """
        Start the schedule.

        Returns:
            True if started, False if already running
        """
        with self._lock:
            if self._thread is not None and self._thread.is_alive():
                return False
            self._cancelled = threading.Event()
            self._thread = threading.Thread(
                target=self._run,
                args=(self._cancelled,),
                name=self.name,
                daemon=True,
            )
            self._thread.start()
            return True

    def cancel(self, timeout: Optional[float] = 2.0) -> None:
        """Cancel the schedule and wait up to ``timeout`` for the thread."""
        with self._lock:
            thread = self._thread
            self._cancelled.set()
            self._thread = None

        if thread is not None and thread is not threading.current_thread():
            thread.join(timeout=timeout)

    @property
    def is_running(self) -> bool:
        thread = self._thread
        return thread is not None and thread.is_alive()

    def _run(self, cancelled: threading.Event) -> None:
        logger.debug(f"{self.name} started, interval={self.interval_s}s")
        while not cancelled.wait(timeout=self.interval_s):
            try:
                self.action()
            except Exception as e:
                logger.error(f"{self.name} failed: {e}", exc_info=True)
        logger.debug(f"{self.name} stopped")

"""Two-lane ingestion queue: primary lane plus a single-retry lane."""

import logging
import queue
import threading
from pathlib import Path
from typing import Callable, List, Optional, Union

from .audit import AuditLog
from .scheduler import PeriodicTask

logger = logging.getLogger(__name__)


class IngestionQueue:
    """
    Sequences recording paths through an ingest callable.

    Paths enter the primary lane. A path whose ingest fails moves to the
    retry lane; the retry lane is drained on a periodic timer and a path
    that fails there is dropped with a terminal audit entry.

    Each lane is a thread-safe FIFO with exactly one consumer at a time:
    the primary worker thread (woken on every enqueue) and the retry
    timer. The drain methods are public so callers and tests can drive
    the queue synchronously.
    """

    def __init__(
        self,
        ingest: Callable[[Path], bool],
        audit: AuditLog,
        retry_interval_s: float = 5.0,
    ):
        """
        Initialize the queue.

        Args:
            ingest: Callable returning True on success, False to retry
            audit: Audit log for terminal failures
            retry_interval_s: Period of the retry lane drain
        """
        self.ingest = ingest
        self.audit = audit
        self.retry_interval_s = retry_interval_s

        self._primary: "queue.Queue[Path]" = queue.Queue()
        self._retry: "queue.Queue[Path]" = queue.Queue()
        self._primary_drain_lock = threading.Lock()
        self._retry_drain_lock = threading.Lock()
        self._retry_put_lock = threading.Lock()

        self._wakeup = threading.Event()
        self._stop_event = threading.Event()
        self._worker: Optional[threading.Thread] = None
        self._retry_task = PeriodicTask("RetryDrain", retry_interval_s, self.drain_retry)
        self._lock = threading.Lock()

        self._stats_lock = threading.Lock()
        self.succeeded = 0
        self.dropped = 0

    def enqueue(self, path: Union[str, Path]) -> None:
        """Add a path to the primary lane and wake the primary worker."""
        self._primary.put(Path(path))
        self._wakeup.set()

    def enqueue_retry(self, path: Union[str, Path]) -> bool:
        """
        Add a path that already failed once to the retry lane.

        Returns:
            False if the path is already waiting in the retry lane
        """
        path = Path(path)
        with self._retry_put_lock:
            with self._retry.mutex:
                if path in self._retry.queue:
                    return False
            self._retry.put(path)
        return True

    def drain_primary(self) -> int:
        """
        Attempt every path currently in the primary lane.

        Paths enqueued while draining are left for the next invocation.

        Returns:
            Number of paths attempted
        """
        with self._primary_drain_lock:
            depth = self._primary.qsize()
            attempted = 0
            for _ in range(depth):
                try:
                    path = self._primary.get_nowait()
                except queue.Empty:
                    break
                attempted += 1
                if self._attempt(path):
                    self._count_success()
                else:
                    logger.info(f"Moving {path} to retry queue")
                    self.enqueue_retry(path)
            return attempted

    def drain_retry(self) -> int:
        """
        Retry every path currently in the retry lane, in FIFO order.

        A path that fails again is dropped.

        Returns:
            Number of paths attempted
        """
        with self._retry_drain_lock:
            snapshot = self._take_all(self._retry)
            for path in snapshot:
                if self._attempt(path):
                    self._count_success()
                else:
                    self.audit.error(f"Failed to process file: {path}")
                    with self._stats_lock:
                        self.dropped += 1
            return len(snapshot)

    def _attempt(self, path: Path) -> bool:
        try:
            return bool(self.ingest(path))
        except Exception as e:
            logger.error(f"Unexpected error ingesting {path}: {e}", exc_info=True)
            self.audit.error(f"Unexpected error ingesting {path}: {e!r}")
            return False

    def _count_success(self) -> None:
        with self._stats_lock:
            self.succeeded += 1

    @staticmethod
    def _take_all(lane: "queue.Queue[Path]") -> List[Path]:
        items = []
        while True:
            try:
                items.append(lane.get_nowait())
            except queue.Empty:
                return items

    @property
    def primary_size(self) -> int:
        return self._primary.qsize()

    @property
    def retry_size(self) -> int:
        return self._retry.qsize()

    def primary_paths(self) -> List[Path]:
        """Snapshot of the primary lane contents."""
        with self._primary.mutex:
            return list(self._primary.queue)

    def retry_paths(self) -> List[Path]:
        """Snapshot of the retry lane contents."""
        with self._retry.mutex:
            return list(self._retry.queue)

    def start(self) -> bool:
        """
        Start the primary worker and the retry timer.

        Returns:
            True if started, False if already running
        """
        with self._lock:
            if self._worker is not None and self._worker.is_alive():
                return False

            self._stop_event.clear()
            self._worker = threading.Thread(
                target=self._primary_loop,
                name="PrimaryDrain",
                daemon=True,
            )
            self._worker.start()
            self._retry_task.start()

            if self._primary.qsize():
                self._wakeup.set()
            return True

    def stop(self, timeout: float = 5.0) -> None:
        """Stop the worker and the retry timer; an in-flight ingest completes."""
        with self._lock:
            worker = self._worker
            self._worker = None
            self._stop_event.set()
            self._wakeup.set()

        self._retry_task.cancel(timeout=timeout)
        if worker is not None:
            worker.join(timeout=timeout)

    @property
    def is_running(self) -> bool:
        worker = self._worker
        return worker is not None and worker.is_alive()

    def _primary_loop(self) -> None:
        logger.debug("Primary drain loop started")
        while not self._stop_event.is_set():
            if not self._wakeup.wait(timeout=0.5):
                continue
            self._wakeup.clear()
            if self._stop_event.is_set():
                break
            try:
                self.drain_primary()
            except Exception as e:
                logger.error(f"Primary drain loop error: {e}", exc_info=True)
        logger.debug("Primary drain loop stopped")

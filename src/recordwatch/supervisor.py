"""Self-healing directory watch using the watchdog library."""

import logging
import threading
from pathlib import Path
from typing import Callable, Optional

from watchdog.events import (
    FileSystemEventHandler,
    FileCreatedEvent,
    FileMovedEvent,
)
from watchdog.observers import Observer

from .audit import AuditLog
from .config import has_extension, normalize_extension
from .exceptions import FolderNotFoundError, WatchFailureError
from .scheduler import PeriodicTask

logger = logging.getLogger(__name__)


class AudioFileEventHandler(FileSystemEventHandler):
    """Handler that forwards newly created audio files to the supervisor."""

    def __init__(self, supervisor: "WatchSupervisor", extension: str):
        super().__init__()
        self.supervisor = supervisor
        self.extension = normalize_extension(extension)

    def _matches(self, path: str) -> bool:
        return has_extension(path, self.extension)

    def on_created(self, event):
        if not isinstance(event, FileCreatedEvent):
            return
        if self._matches(event.src_path):
            self.supervisor.dispatch(Path(event.src_path))

    def on_moved(self, event):
        # Recorders often write a temp file and rename it once complete.
        if not isinstance(event, FileMovedEvent):
            return
        if self._matches(event.dest_path) and not self._matches(event.src_path):
            self.supervisor.dispatch(Path(event.dest_path))


class WatchSupervisor:
    """
    Owns the recursive watch over the recordings folder and keeps it alive.

    The watch has an ``enabled`` flag gating event delivery. A liveness poll
    runs every ``liveness_interval_s`` and hands a dead observer or emitter
    thread to ``handle_error`` for an immediate restart. A status check
    runs every ``status_check_interval_s`` and restarts the watch when it is
    disabled or its observer thread has died; a refresh runs every
    ``refresh_interval_s`` and recycles the observer unconditionally.
    """

    def __init__(
        self,
        folder: Path,
        on_file: Callable[[Path], None],
        audit: AuditLog,
        extension: str = ".wav",
        recursive: bool = True,
        status_check_interval_s: float = 300.0,
        refresh_interval_s: float = 3600.0,
        liveness_interval_s: float = 1.0,
        observer_factory: Callable[[], Observer] = Observer,
    ):
        """
        Initialize the supervisor.

        Args:
            folder: Directory to watch
            on_file: Called with each new audio file path; must not block
            audit: Audit log for lifecycle events
            extension: Audio file extension to report
            recursive: Whether subdirectories are watched
            status_check_interval_s: Period of the self-check
            refresh_interval_s: Period of the unconditional refresh
            liveness_interval_s: Period of the observer thread liveness poll
            observer_factory: Builds watchdog observers
        """
        self.folder = Path(folder)
        self.on_file = on_file
        self.audit = audit
        self.extension = extension
        self.recursive = recursive
        self.observer_factory = observer_factory

        self._observer: Optional[Observer] = None
        self._enabled = False
        self._running = False
        self._lock = threading.RLock()

        self._status_task = PeriodicTask(
            "WatchStatusCheck", status_check_interval_s, self.check_status
        )
        self._refresh_task = PeriodicTask(
            "WatchRefresh", refresh_interval_s, self.refresh
        )
        self._liveness_task = PeriodicTask(
            "WatchLiveness", liveness_interval_s, self.check_liveness
        )

    @property
    def is_running(self) -> bool:
        return self._running

    @property
    def is_enabled(self) -> bool:
        return self._enabled

    def is_healthy(self) -> bool:
        """Check the watch is enabled and its observer and emitter threads are alive."""
        observer = self._observer
        if not self._enabled or observer is None or not observer.is_alive():
            return False
        return all(emitter.is_alive() for emitter in observer.emitters)

    def start(self) -> bool:
        """
        Enable the watch and schedule the periodic checks.

        Returns:
            True if started, False if already running

        Raises:
            FolderNotFoundError: If the watched folder does not exist
        """
        with self._lock:
            if self._running:
                return False
            if not self.folder.is_dir():
                raise FolderNotFoundError(f"Watched folder does not exist: {self.folder}")

            self._arm()
            self._running = True

        self._status_task.start()
        self._refresh_task.start()
        self._liveness_task.start()
        self.audit.write(f"File Monitor started: {self.folder}")
        return True

    def stop(self) -> bool:
        """
        Disable the watch and cancel the periodic checks.

        Returns:
            True if stopped, False if not running
        """
        with self._lock:
            if not self._running:
                return False
            self._running = False
            self._enabled = False

        self._status_task.cancel()
        self._refresh_task.cancel()
        self._liveness_task.cancel()

        with self._lock:
            self._disarm()

        self.audit.write(f"File Monitor stopped: {self.folder}")
        return True

    def disable(self) -> None:
        """Stop delivering events without tearing down the observer."""
        self._enabled = False

    def rearm(self) -> None:
        """Reassert the enabled state while running."""
        if self._running and not self._enabled:
            self._enabled = True

    def dispatch(self, path: Path) -> None:
        """Hand a new audio file to ``on_file`` and rearm the watch."""
        if not self._enabled:
            logger.debug(f"Watch disabled, ignoring {path}")
            return
        try:
            self.on_file(path)
        except Exception as e:
            self.handle_error(e)
        finally:
            self.rearm()

    def handle_error(self, error: BaseException) -> None:
        """Log a watch error together with the watch state and restart."""
        self.audit.error(f"Watcher error: {error}")
        self.audit.write(f"Watcher status: enabled={self._enabled}")
        self.restart()

    def check_liveness(self) -> None:
        """Report a dead observer or emitter thread of an enabled watch as a watch error."""
        if not self._running or not self._enabled:
            return
        if self._observer is None or self.is_healthy():
            return
        self.handle_error(WatchFailureError(f"Watch thread on {self.folder} stopped"))

    def check_status(self) -> None:
        """Periodic self-check; restarts the watch when it is not healthy."""
        if not self._running:
            return
        self.audit.write(f"Status check - watcher enabled: {self._enabled}")
        if not self.is_healthy():
            failure = WatchFailureError(f"Watch on {self.folder} is not active")
            logger.warning(str(failure))
            self.audit.write("Watcher is not enabled. Attempting to restart...", level=logging.WARNING)
            self.restart()

    def refresh(self) -> None:
        """Recycle the observer regardless of its state."""
        if not self._running:
            return
        logger.info(f"Refreshing watch on {self.folder}")
        self.restart(force=True)

    def restart(self, force: bool = False) -> bool:
        """
        Restart the watch if it is unhealthy, or always when ``force`` is set.

        A failed restart is logged and leaves the watch disabled until the
        next status check.

        Returns:
            True if the watch was restarted
        """
        with self._lock:
            if not self._running:
                return False
            if not force and self.is_healthy():
                return False
            try:
                self._disarm()
                self._arm()
            except Exception as e:
                self._enabled = False
                self.audit.error(f"Error restarting watcher: {e}")
                return False

        self.audit.write(f"Watcher restarted: {self.folder}")
        return True

    def _arm(self) -> None:
        if not self.folder.is_dir():
            raise FolderNotFoundError(f"Watched folder does not exist: {self.folder}")
        observer = self.observer_factory()
        observer.schedule(
            AudioFileEventHandler(self, self.extension),
            str(self.folder),
            recursive=self.recursive,
        )
        observer.start()
        self._observer = observer
        self._enabled = True

    def _disarm(self) -> None:
        self._enabled = False
        observer = self._observer
        self._observer = None
        if observer is None:
            return
        try:
            observer.stop()
            if observer.is_alive() and observer is not threading.current_thread():
                observer.join(timeout=5.0)
        except Exception as e:
            logger.warning(f"Error stopping observer: {e}")

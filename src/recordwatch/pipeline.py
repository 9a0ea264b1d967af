"""Recording ingestion pipeline orchestrator."""

import logging
import threading
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Tuple, Union

from .audit import AuditLog
from .config import RecordWatchConfig
from .ingest_queue import IngestionQueue
from .ingestor import Ingestor
from .parser import CallFileParser
from .scanner import DirectoryScanner
from .store import CallRecordStore
from .supervisor import WatchSupervisor

logger = logging.getLogger(__name__)


class RecordWatchPipeline:
    """
    Main orchestrator for recording ingestion.

    Wires the audit log, parser, store, ingestion queue, watch supervisor
    and directory scanner together, and exposes the control operations
    used by the API and the CLI.
    """

    def __init__(self, config: Optional[RecordWatchConfig] = None):
        """
        Initialize the pipeline.

        Args:
            config: Pipeline configuration
        """
        self.config = config or RecordWatchConfig()

        self._write_lock = threading.Lock()
        self.audit = AuditLog(self.config.log_dir)
        self.parser = CallFileParser(read_duration=self.config.read_duration)
        self.store = CallRecordStore(
            self.config.db_path,
            write_lock=self._write_lock,
            audit=self.audit,
        )
        self.ingestor = Ingestor(self.parser, self.store, self.audit)
        self.queue = IngestionQueue(
            self.ingestor.ingest,
            self.audit,
            retry_interval_s=self.config.retry_interval_s,
        )
        self.supervisor = WatchSupervisor(
            self.config.folder_path,
            self.queue.enqueue,
            self.audit,
            extension=self.config.extension,
            recursive=self.config.recursive,
            status_check_interval_s=self.config.status_check_interval_s,
            refresh_interval_s=self.config.refresh_interval_s,
            liveness_interval_s=self.config.liveness_interval_s,
        )
        self.scanner = DirectoryScanner(
            self.audit,
            extension=self.config.extension,
            recursive=self.config.recursive,
        )
        self._lock = threading.Lock()

    def start(self) -> bool:
        """
        Start watching the configured folder.

        Returns:
            True if started, False if already running

        Raises:
            FolderNotFoundError: If the configured folder does not exist
        """
        with self._lock:
            started = self.supervisor.start()
            if started:
                self.queue.start()
            return started

    def stop(self) -> bool:
        """
        Stop watching; in-flight ingests complete, queued paths are kept.

        Returns:
            True if stopped, False if not running
        """
        with self._lock:
            stopped = self.supervisor.stop()
            self.queue.stop()
            return stopped

    @property
    def is_running(self) -> bool:
        return self.supervisor.is_running

    def scan(
        self,
        folder: Optional[Union[str, Path]] = None,
        from_time: Optional[datetime] = None,
        to_time: Optional[datetime] = None,
    ) -> List[Path]:
        """List audio files under ``folder`` (default: the watched folder)."""
        return self.scanner.scan(folder or self.config.folder_path, from_time, to_time)

    def ingest(self, path: Union[str, Path]) -> bool:
        """Parse and persist one recording."""
        return self.ingestor.ingest(path)

    def ingest_batch(self, paths: Iterable[Union[str, Path]]) -> int:
        """
        Ingest paths synchronously; failures are handed to the retry lane.

        When the queue is not running there is no retry timer, so failed
        paths get their single retry before this returns.

        Returns:
            Number of paths ingested on the first attempt
        """
        count = 0
        for path in paths:
            if self.ingest(path):
                count += 1
            else:
                self.queue.enqueue_retry(path)
        if not self.queue.is_running:
            self.queue.drain_retry()
        return count

    def collect(
        self,
        from_time: Optional[datetime] = None,
        to_time: Optional[datetime] = None,
        folder: Optional[Union[str, Path]] = None,
    ) -> Tuple[int, int]:
        """
        Scan the folder and ingest every file found.

        Returns:
            (files found, files ingested)
        """
        paths = self.scan(folder, from_time, to_time)
        if not paths:
            return 0, 0
        ingested = self.ingest_batch(paths)
        self.audit.write(f"Collected {ingested} of {len(paths)} file(s) from {folder or self.config.folder_path}")
        return len(paths), ingested

    def status(self) -> Dict[str, Any]:
        """Snapshot of the pipeline state."""
        return {
            "running": self.supervisor.is_running,
            "watch_enabled": self.supervisor.is_enabled,
            "watch_healthy": self.supervisor.is_healthy(),
            "folder": str(self.config.folder_path),
            "primary_queue": self.queue.primary_size,
            "retry_queue": self.queue.retry_size,
            "succeeded": self.queue.succeeded,
            "dropped": self.queue.dropped,
            "records": self.store.count(),
        }

    def close(self) -> None:
        """Stop the pipeline and release all resources."""
        self.stop()
        self.store.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False

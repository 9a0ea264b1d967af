"""
Call Recording Watcher Package

Watches a directory tree for new call recordings, derives a call record
from each file name and stores it exactly once per file name.

Features:
- Self-healing recursive directory watch
- Primary and retry ingestion lanes
- File name grammar parser with audio duration read
- Idempotent SQLite persistence keyed by file name
- Daily audit log files
- One-shot and periodic directory backfill
"""

from .models import CallRecord, PersistOutcome

from .config import RecordWatchConfig

from .exceptions import (
    RecordWatchError,
    ConfigError,
    MalformedNameError,
    DuplicateRecordError,
    TransientIOError,
    WatchFailureError,
    FolderNotFoundError,
)

from .audit import AuditLog
from .parser import CallFileParser, parse_file_name
from .store import CallRecordStore
from .scheduler import PeriodicTask
from .ingestor import Ingestor
from .ingest_queue import IngestionQueue
from .supervisor import WatchSupervisor, AudioFileEventHandler
from .scanner import DirectoryScanner
from .pipeline import RecordWatchPipeline


__all__ = [
    # Models
    "CallRecord",
    "PersistOutcome",
    # Config
    "RecordWatchConfig",
    # Exceptions
    "RecordWatchError",
    "ConfigError",
    "MalformedNameError",
    "DuplicateRecordError",
    "TransientIOError",
    "WatchFailureError",
    "FolderNotFoundError",
    # Components
    "AuditLog",
    "CallFileParser",
    "parse_file_name",
    "CallRecordStore",
    "PeriodicTask",
    "Ingestor",
    "IngestionQueue",
    "WatchSupervisor",
    "AudioFileEventHandler",
    "DirectoryScanner",
    # Main Pipeline
    "RecordWatchPipeline",
]

__version__ = "0.1.0"

"""
Call record store for the recordwatch package.
"""

import logging
import sqlite3
import threading
from pathlib import Path
from typing import List, Optional

from .audit import AuditLog
from .exceptions import DuplicateRecordError, TransientIOError
from .models import CallRecord, PersistOutcome

logger = logging.getLogger(__name__)

_COLUMNS = (
    "call_reference",
    "call_info",
    "parties",
    "party_a",
    "party_b",
    "extension",
    "external_number",
    "captured_at",
    "file_name",
    "full_path",
    "containing_folder",
    "duration_seconds",
)


class CallRecordStore:
    """
    SQLite-backed store holding one row per recording file name.

    ``persist`` performs check-then-insert under a write lock shared by
    every ingest path of the owning pipeline; the unique index on
    ``file_name`` backs it up against writers outside the process.
    """

    def __init__(
        self,
        db_path: Path,
        write_lock: Optional[threading.Lock] = None,
        audit: Optional[AuditLog] = None,
    ):
        """
        Initialize the store.

        Args:
            db_path: Path to the SQLite database file
            write_lock: Lock serializing persist calls; a private one is
                created when omitted
            audit: Audit log receiving persistence failures
        """
        self.db_path = Path(db_path)
        self.audit = audit
        self._write_lock = write_lock or threading.Lock()
        self._lock = threading.Lock()
        self._conn: Optional[sqlite3.Connection] = None
        self._closed = False

        self._init_db()

    def _init_db(self) -> None:
        """Initialize database schema."""
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self._conn = sqlite3.connect(
            str(self.db_path),
            check_same_thread=False,
            isolation_level=None,
        )
        self._conn.row_factory = sqlite3.Row
        self._conn.execute("PRAGMA journal_mode=WAL")
        self._conn.execute("PRAGMA synchronous=NORMAL")

        self._conn.executescript("""
            CREATE TABLE IF NOT EXISTS call_records (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                call_reference TEXT NOT NULL DEFAULT '',
                call_info TEXT NOT NULL DEFAULT '',
                parties TEXT NOT NULL DEFAULT '',
                party_a TEXT NOT NULL DEFAULT '',
                party_b TEXT NOT NULL DEFAULT '',
                extension TEXT NOT NULL DEFAULT '',
                external_number TEXT NOT NULL DEFAULT '',
                captured_at TEXT NOT NULL DEFAULT '',
                file_name TEXT NOT NULL,
                full_path TEXT NOT NULL DEFAULT '',
                containing_folder TEXT NOT NULL DEFAULT '',
                duration_seconds INTEGER,
                created_at TEXT DEFAULT CURRENT_TIMESTAMP
            );

            CREATE UNIQUE INDEX IF NOT EXISTS idx_call_records_file_name
            ON call_records(file_name);
        """)

    def _connection(self) -> sqlite3.Connection:
        if self._closed or self._conn is None:
            raise TransientIOError("Store is closed")
        return self._conn

    def count_by_file_name(self, file_name: str) -> int:
        """Count stored rows with the given file name."""
        with self._lock:
            cursor = self._connection().execute(
                "SELECT COUNT(*) FROM call_records WHERE file_name = ?",
                (file_name,),
            )
            return cursor.fetchone()[0]

    def insert(self, record: CallRecord) -> int:
        """
        Insert a record unconditionally.

        Returns:
            Row ID of the new record

        Raises:
            DuplicateRecordError: If the file name is already stored
            sqlite3.Error: On any other database failure
        """
        data = record.to_dict()
        placeholders = ", ".join("?" * len(_COLUMNS))
        with self._lock:
            try:
                cursor = self._connection().execute(
                    f"INSERT INTO call_records ({', '.join(_COLUMNS)}) VALUES ({placeholders})",
                    [data[column] for column in _COLUMNS],
                )
            except sqlite3.IntegrityError as e:
                raise DuplicateRecordError(
                    f"{record.file_name} already exists", file_name=record.file_name
                ) from e
            return cursor.lastrowid

    def persist(self, record: CallRecord) -> PersistOutcome:
        """
        Insert the record unless its file name is already stored.

        Never raises; database failures are reported as
        ``PersistOutcome.ERROR``.
        """
        with self._write_lock:
            try:
                if self.count_by_file_name(record.file_name) > 0:
                    return PersistOutcome.ALREADY_EXISTS
                self.insert(record)
                return PersistOutcome.INSERTED
            except DuplicateRecordError:
                return PersistOutcome.ALREADY_EXISTS
            except (sqlite3.Error, TransientIOError, UnicodeEncodeError) as e:
                logger.error(f"Failed to persist {record.file_name}: {e}", exc_info=True)
                if self.audit:
                    self.audit.error(f"Failed to persist {record.file_name}: {e!r}")
                return PersistOutcome.ERROR

    def get(self, file_name: str) -> Optional[CallRecord]:
        """Get a stored record by file name."""
        with self._lock:
            row = self._connection().execute(
                "SELECT * FROM call_records WHERE file_name = ?",
                (file_name,),
            ).fetchone()
        return CallRecord.from_dict(dict(row)) if row else None

    def count(self) -> int:
        """Total number of stored records."""
        with self._lock:
            return self._connection().execute("SELECT COUNT(*) FROM call_records").fetchone()[0]

    def list_file_names(self) -> List[str]:
        """All stored file names in insertion order."""
        with self._lock:
            rows = self._connection().execute(
                "SELECT file_name FROM call_records ORDER BY id"
            ).fetchall()
        return [row[0] for row in rows]

    def close(self) -> None:
        """Close the store and release resources."""
        if self._closed:
            return

        self._closed = True
        with self._lock:
            if self._conn:
                self._conn.close()
                self._conn = None

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False

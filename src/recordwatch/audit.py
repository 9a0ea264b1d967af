"""Append-only audit log partitioned by calendar day."""

import logging
import threading
from datetime import date, datetime
from pathlib import Path
from typing import Callable, Iterable, Optional

from .models import CallRecord

logger = logging.getLogger(__name__)


class AuditLog:
    """
    Writes timestamped lines to ``log_dir/log_YYYY-MM-DD.txt``.

    Every entry is also mirrored to the stdlib logger. Writes are
    serialized by an instance lock so concurrent entries never interleave,
    and write failures are swallowed.
    """

    def __init__(
        self,
        log_dir: Path,
        clock: Callable[[], datetime] = datetime.now,
        lock: Optional[threading.Lock] = None,
    ):
        """
        Initialize the audit log.

        Args:
            log_dir: Directory for the daily log files (created on demand)
            clock: Source of the current local time
            lock: Write lock; a private one is created when omitted
        """
        self.log_dir = Path(log_dir)
        self._clock = clock
        self._lock = lock or threading.Lock()

    def path_for(self, day: date) -> Path:
        """Return the log file path for a calendar day."""
        return self.log_dir / f"log_{day.isoformat()}.txt"

    def write(self, message: str, level: int = logging.INFO) -> None:
        """Append one timestamped entry."""
        logger.log(level, message)
        now = self._clock()
        self._append(now, [f"{now.isoformat(sep=' ', timespec='seconds')}: {message}"])

    def error(self, message: str) -> None:
        self.write(message, level=logging.ERROR)

    def write_record(self, record: CallRecord) -> None:
        """Append the detail block of a newly stored record."""
        now = self._clock()
        lines = [f"{now.isoformat(sep=' ', timespec='seconds')}: {record.file_name} record was created."]
        lines.extend(record.describe())
        lines.append("")
        self._append(now, lines)

    def _append(self, now: datetime, lines: Iterable[str]) -> None:
        text = "\n".join(lines) + "\n"
        with self._lock:
            try:
                self.log_dir.mkdir(parents=True, exist_ok=True)
                with open(
                    self.path_for(now.date()), "a", encoding="utf-8", errors="backslashreplace"
                ) as f:
                    f.write(text)
            except (OSError, ValueError) as e:
                logger.debug(f"Audit log write failed: {e}")

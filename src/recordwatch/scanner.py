"""One-shot directory scan used for backfill."""

import logging
from datetime import datetime
from pathlib import Path
from typing import List, Optional, Union

from .audit import AuditLog
from .config import has_extension, normalize_extension

logger = logging.getLogger(__name__)


class DirectoryScanner:
    """Lists existing audio files, optionally filtered by modification time."""

    def __init__(self, audit: AuditLog, extension: str = ".wav", recursive: bool = True):
        self.audit = audit
        self.extension = normalize_extension(extension)
        self.recursive = recursive

    def scan(
        self,
        folder: Union[str, Path],
        from_time: Optional[datetime] = None,
        to_time: Optional[datetime] = None,
    ) -> List[Path]:
        """
        List audio files under ``folder``.

        Args:
            folder: Directory to scan
            from_time: Exclude files last modified before this time
            to_time: Exclude files last modified after this time

        Returns:
            Sorted list of matching file paths; empty if the folder is missing
        """
        folder = Path(folder)
        if not folder.is_dir():
            self.audit.error(f"Path is wrong: {folder}")
            return []

        lower = from_time.timestamp() if from_time else None
        upper = to_time.timestamp() if to_time else None

        candidates = folder.rglob("*") if self.recursive else folder.iterdir()
        found = []
        for path in candidates:
            if not has_extension(path, self.extension):
                continue
            try:
                if not path.is_file():
                    continue
                mtime = path.stat().st_mtime
            except OSError as e:
                logger.debug(f"Skipping {path}: {e}")
                continue
            if lower is not None and mtime < lower:
                continue
            if upper is not None and mtime > upper:
                continue
            found.append(path)

        found.sort()
        logger.info(f"Scan of {folder} found {len(found)} file(s)")
        return found

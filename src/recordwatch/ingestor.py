"""Single-file ingest: parse a recording path and persist its record."""

import logging
from pathlib import Path
from typing import Union

from .audit import AuditLog
from .exceptions import MalformedNameError, TransientIOError
from .models import PersistOutcome
from .parser import CallFileParser
from .store import CallRecordStore

logger = logging.getLogger(__name__)


class Ingestor:
    """Combines the parser and the store; every failure becomes ``False``."""

    def __init__(self, parser: CallFileParser, store: CallRecordStore, audit: AuditLog):
        self.parser = parser
        self.store = store
        self.audit = audit

    def ingest(self, path: Union[str, Path]) -> bool:
        """
        Parse and persist one recording.

        Returns:
            True if the record was inserted or already stored, False if the
            path should be retried
        """
        path = Path(path)
        self.audit.write(f"Parse process started for {path}")

        try:
            record = self.parser.parse(path)
        except MalformedNameError as e:
            self.audit.write(str(e), level=logging.WARNING)
            return False
        except TransientIOError as e:
            self.audit.write(str(e), level=logging.WARNING)
            return False

        outcome = self.store.persist(record)

        if outcome is PersistOutcome.ALREADY_EXISTS:
            self.audit.write(f"{record.file_name} already exists. Skipping insertion.")
        elif outcome is PersistOutcome.INSERTED:
            self.audit.write(f"{record.file_name} insertion completed.")
            self.audit.write_record(record)
        else:
            return False

        self.audit.write(f"{record.file_name} completed")
        return True

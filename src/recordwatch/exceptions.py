"""Custom exceptions for the recordwatch package."""


class RecordWatchError(Exception):
    """Base exception for all recordwatch errors."""
    pass


class ConfigError(RecordWatchError):
    """Invalid configuration value."""
    pass


class MalformedNameError(RecordWatchError):
    """File name does not fit the recording name grammar."""

    def __init__(self, message: str, file_name: str = ""):
        super().__init__(message)
        self.file_name = file_name


class DuplicateRecordError(RecordWatchError):
    """A record with the same file name is already stored."""

    def __init__(self, message: str, file_name: str = ""):
        super().__init__(message)
        self.file_name = file_name


class TransientIOError(RecordWatchError):
    """File not fully written yet, or the store is temporarily unreachable."""
    pass


class WatchFailureError(RecordWatchError):
    """The directory watch errored or was found disabled."""
    pass


class FolderNotFoundError(RecordWatchError):
    """Watched folder does not exist."""
    pass

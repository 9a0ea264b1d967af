"""Configuration for the recordwatch package."""

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Mapping, Optional, Union

from .exceptions import ConfigError


_TRUE_VALUES = {"1", "true", "yes", "on"}
_FALSE_VALUES = {"0", "false", "no", "off"}
_INTERVAL_FIELDS = (
    "status_check_interval_s",
    "refresh_interval_s",
    "liveness_interval_s",
    "retry_interval_s",
    "gather_interval_s",
)


def normalize_extension(extension: str) -> str:
    """Return a lower-case extension with a leading dot (``WAV`` -> ``.wav``)."""
    extension = extension.strip().lower()
    if not extension:
        raise ConfigError("extension must not be empty")
    if not extension.startswith("."):
        extension = "." + extension
    return extension


def has_extension(path: Union[str, Path], extension: str) -> bool:
    """Check if a path carries ``extension`` (a normalized extension), ignoring case."""
    return Path(path).suffix.lower() == extension


@dataclass
class RecordWatchConfig:
    """
    Configuration options for the recording ingestion pipeline.

    Attributes:
        folder_path: Root directory watched for new recordings
        log_dir: Directory holding the daily audit log files
        db_path: Path to the SQLite database holding call records
        extension: Audio file extension to ingest (case-insensitive)
        recursive: Whether subdirectories are watched and scanned
        read_duration: Whether the audio header is read for the duration
        status_check_interval_s: Period of the watch self-check
        refresh_interval_s: Period of the unconditional watch refresh
        liveness_interval_s: Period of the watch thread liveness poll
        retry_interval_s: Period of the retry queue drain
        gather_interval_s: Period of the rescan loop used by ``gather``
    """
    folder_path: Path = field(default_factory=lambda: Path("recordings"))
    log_dir: Path = field(default_factory=lambda: Path("logs"))
    db_path: Path = field(default_factory=lambda: Path("recordwatch.db"))
    extension: str = ".wav"
    recursive: bool = True
    read_duration: bool = True
    status_check_interval_s: float = 300.0
    refresh_interval_s: float = 3600.0
    liveness_interval_s: float = 1.0
    retry_interval_s: float = 5.0
    gather_interval_s: float = 10.0

    def __post_init__(self):
        self.folder_path = Path(self.folder_path)
        self.log_dir = Path(self.log_dir)
        self.db_path = Path(self.db_path)
        self.extension = normalize_extension(self.extension)
        for name in _INTERVAL_FIELDS:
            if getattr(self, name) <= 0:
                raise ConfigError(f"{name} must be > 0")

    @classmethod
    def from_env(
        cls,
        prefix: str = "RECORDWATCH_",
        environ: Optional[Mapping[str, str]] = None,
    ) -> "RecordWatchConfig":
        """
        Build a configuration from environment variables.

        Unset variables fall back to the dataclass defaults.

        Args:
            prefix: Prefix shared by all variable names
            environ: Mapping to read instead of ``os.environ``

        Returns:
            A new configuration

        Raises:
            ConfigError: If a value cannot be converted
        """
        env = os.environ if environ is None else environ
        kwargs = {}

        for name in ("folder_path", "log_dir", "db_path"):
            value = env.get(prefix + name.upper())
            if value:
                kwargs[name] = Path(value).expanduser()

        extension = env.get(prefix + "EXTENSION")
        if extension:
            kwargs["extension"] = extension

        for name in ("recursive", "read_duration"):
            value = env.get(prefix + name.upper())
            if value is not None and value != "":
                kwargs[name] = _parse_bool(prefix + name.upper(), value)

        for name in _INTERVAL_FIELDS:
            value = env.get(prefix + name.upper())
            if value:
                try:
                    kwargs[name] = float(value)
                except ValueError:
                    raise ConfigError(f"{prefix + name.upper()} must be a number, got {value!r}")

        return cls(**kwargs)


def _parse_bool(name: str, value: str) -> bool:
    lowered = value.strip().lower()
    if lowered in _TRUE_VALUES:
        return True
    if lowered in _FALSE_VALUES:
        return False
    raise ConfigError(f"{name} must be a boolean, got {value!r}")

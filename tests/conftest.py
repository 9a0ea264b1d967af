"""Shared fixtures for recordwatch tests."""

import time
import wave
from pathlib import Path

import pytest


SAMPLE_NAME = "[Dialer%3AMakeCall]_0707702777-105_20240805131501(135).wav"


def write_wav(path: Path, seconds: float = 2.0, framerate: int = 8000) -> Path:
    """Write a silent mono 16-bit WAV file."""
    path.parent.mkdir(parents=True, exist_ok=True)
    with wave.open(str(path), "wb") as w:
        w.setnchannels(1)
        w.setsampwidth(2)
        w.setframerate(framerate)
        w.writeframes(b"\x00\x00" * int(seconds * framerate))
    return path


def wait_for(predicate, timeout: float = 5.0, interval: float = 0.05) -> bool:
    """Poll ``predicate`` until it returns truthy or the timeout expires."""
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(interval)
    return bool(predicate())


@pytest.fixture
def make_recording(tmp_path):
    """Create a WAV recording under ``tmp_path / 'recordings'``."""
    def _make(name: str = SAMPLE_NAME, seconds: float = 2.0, subdir: str = "") -> Path:
        folder = tmp_path / "recordings"
        if subdir:
            folder = folder / subdir
        return write_wav(folder / name, seconds=seconds)
    return _make


def read_audit(log_dir: Path) -> str:
    """Concatenate every audit log file in ``log_dir``."""
    if not log_dir.exists():
        return ""
    return "".join(p.read_text(encoding="utf-8") for p in sorted(log_dir.glob("log_*.txt")))

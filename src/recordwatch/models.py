"""Data models for the recordwatch package."""

from dataclasses import dataclass, asdict
from enum import Enum
from typing import Optional


class PersistOutcome(Enum):
    """Result of a persistence attempt."""
    INSERTED = "inserted"
    ALREADY_EXISTS = "already_exists"
    ERROR = "error"

    @property
    def succeeded(self) -> bool:
        return self is not PersistOutcome.ERROR


@dataclass(frozen=True)
class CallRecord:
    """
    Metadata derived from one call-recording file name.

    Attributes:
        call_reference: Digits inside the first parenthesized group
        call_info: Call trigger tag with bracket characters removed
        parties: Raw dash-separated party segment
        party_a: Left half of the party segment
        party_b: Right half of the party segment
        extension: Party of four characters or fewer
        external_number: Party longer than four characters
        captured_at: 14-digit timestamp string from the file name
        file_name: File name including extension (unique key)
        full_path: Full path of the file
        containing_folder: Directory holding the file
        duration_seconds: Audio duration, when the header was read
    """
    call_reference: str
    call_info: str
    parties: str
    party_a: str
    party_b: str
    extension: str
    external_number: str
    captured_at: str
    file_name: str
    full_path: str
    containing_folder: str
    duration_seconds: Optional[int] = None

    def __post_init__(self):
        if not self.file_name:
            raise ValueError("file_name must not be empty")

    def to_dict(self) -> dict:
        """Convert to dictionary for serialization."""
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict) -> "CallRecord":
        """Create from dictionary (extra keys such as ``id`` are ignored)."""
        return cls(
            call_reference=data.get("call_reference", ""),
            call_info=data.get("call_info", ""),
            parties=data.get("parties", ""),
            party_a=data.get("party_a", ""),
            party_b=data.get("party_b", ""),
            extension=data.get("extension", ""),
            external_number=data.get("external_number", ""),
            captured_at=data.get("captured_at", ""),
            file_name=data["file_name"],
            full_path=data.get("full_path", ""),
            containing_folder=data.get("containing_folder", ""),
            duration_seconds=data.get("duration_seconds"),
        )

    def describe(self) -> list:
        """Human-readable detail lines for the audit log."""
        return [
            f"FullPath: {self.full_path}",
            f"FileName: {self.file_name}",
            f"CallReference: {self.call_reference}",
            f"CallInfo: {self.call_info}",
            f"Folder: {self.containing_folder}",
            f"Parties: {self.parties}",
            f"Extension: {self.extension}",
            f"PartyB: {self.party_b}",
            f"ExternalNumber: {self.external_number}",
            f"CapturedAt: {self.captured_at}",
            f"Seconds: {self.duration_seconds if self.duration_seconds is not None else ''}",
        ]

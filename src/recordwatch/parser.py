"""
Recording file name parser.

File names follow the pattern::

    [<call info>]_<party a>-<party b>_<14-digit timestamp>(<call reference>).wav

for example ``[Dialer%3AMakeCall]_0707702777-105_20240805131501(135).wav``.
Only the first three underscore-delimited segments are read. Missing
sub-fields inside a segment are left empty; fewer than three segments is
a hard failure.
"""

import logging
import re
from dataclasses import replace
from pathlib import Path
from typing import Tuple, Union

import mutagen

from .exceptions import MalformedNameError, TransientIOError
from .models import CallRecord

logger = logging.getLogger(__name__)

EXTENSION_MAX_LENGTH = 4

_BRACKETS_RE = re.compile(r"[\[\]]")
_TIMESTAMP_RE = re.compile(r"(\d{14})")
_REFERENCE_RE = re.compile(r"\((\d+)\)")


def split_parties(segment: str) -> Tuple[str, str]:
    """Return the first two dash-separated halves; a missing dash leaves party B empty."""
    pieces = segment.split("-")
    if len(pieces) < 2:
        return segment, ""
    return pieces[0], pieces[1]


def classify_parties(party_a: str, party_b: str) -> Tuple[str, str]:
    """
    Derive (extension, external_number) from the two parties by length.

    Party B is classified first and party A second, so when both fall in
    the same length class party A takes the slot.
    """
    extension = ""
    external_number = ""
    for party in (party_b, party_a):
        if not party:
            continue
        if len(party) <= EXTENSION_MAX_LENGTH:
            extension = party
        else:
            external_number = party
    return extension, external_number


def parse_file_name(path: Union[str, Path]) -> CallRecord:
    """
    Parse a recording path into a CallRecord without touching the file.

    Args:
        path: Path (or bare file name) of the recording

    Returns:
        CallRecord with ``duration_seconds`` unset

    Raises:
        MalformedNameError: If the name has fewer than three segments
    """
    path = Path(path)
    file_name = path.name
    segments = path.stem.split("_")

    if len(segments) < 3:
        raise MalformedNameError(
            f"File name does not match expected format: {file_name}",
            file_name=file_name,
        )

    call_info = _BRACKETS_RE.sub("", segments[0])

    parties = segments[1]
    party_a, party_b = split_parties(parties)
    extension, external_number = classify_parties(party_a, party_b)

    timestamp_match = _TIMESTAMP_RE.search(segments[2])
    reference_match = _REFERENCE_RE.search(segments[2])

    return CallRecord(
        call_reference=reference_match.group(1) if reference_match else "",
        call_info=call_info,
        parties=parties,
        party_a=party_a,
        party_b=party_b,
        extension=extension,
        external_number=external_number,
        captured_at=timestamp_match.group(1) if timestamp_match else "",
        file_name=file_name,
        full_path=str(path),
        containing_folder=str(path.parent),
    )


def read_duration_seconds(path: Path) -> int:
    """
    Read the audio duration in whole seconds.

    Raises:
        TransientIOError: If the header cannot be read (file still being
            written, truncated, or gone)
    """
    try:
        audio = mutagen.File(str(path))
    except Exception as e:
        # mutagen may raise format-specific errors on truncated headers
        raise TransientIOError(f"Cannot read audio header of {path}: {e}") from e

    length = getattr(getattr(audio, "info", None), "length", None)
    if length is None:
        raise TransientIOError(f"Unrecognized audio header: {path}")
    return int(length)


class CallFileParser:
    """Turns recording paths into CallRecords, optionally reading the duration."""

    def __init__(self, read_duration: bool = True):
        """
        Initialize the parser.

        Args:
            read_duration: Whether to read the audio header for the duration
        """
        self.read_duration = read_duration

    def parse(self, path: Union[str, Path]) -> CallRecord:
        """
        Parse a recording path.

        Raises:
            MalformedNameError: If the name does not fit the grammar
            TransientIOError: If the audio header cannot be read
        """
        path = Path(path)
        record = parse_file_name(path)
        if not self.read_duration:
            return record

        seconds = read_duration_seconds(path)
        logger.debug(f"Read duration {seconds}s for {path}")
        return replace(record, duration_seconds=seconds)

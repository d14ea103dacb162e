"""
Two-line element history and nearest-epoch selection.

This module loads a history of TLE records for a single satellite,
orders them by epoch and answers "which element set should be used at
time t" queries.
"""

import bisect
import calendar
import logging
import math
from dataclasses import dataclass
from datetime import datetime, timedelta
from pathlib import Path
from typing import Iterable, Iterator, List, Optional, Sequence, Union

from .errors import ParseError

logger = logging.getLogger(__name__)

# Epoch field on TLE line 1 (zero-indexed, end exclusive)
EPOCH_FIELD_START = 18
EPOCH_FIELD_END = 32

# Two-digit epoch years below the pivot belong to the 2000s
EPOCH_YEAR_PIVOT = 57

SECONDS_PER_DAY = 86400


def parse_tle_epoch(field: str) -> float:
    """
    Convert a TLE epoch field (YYDDD.DDDDDDDD) to a UNIX timestamp.

    The fractional day is converted to whole seconds by rounding.

    Args:
        field: Epoch field taken from TLE line 1

    Returns:
        Seconds since 1970-01-01 UTC

    Raises:
        ParseError: If the field is absent or malformed
    """
    text = field.strip()
    if len(text) < 3:
        raise ParseError(f"Missing TLE epoch field: {field!r}")

    try:
        year = int(text[:2])
        day_of_year = float(text[2:])
    except ValueError:
        raise ParseError(f"Malformed TLE epoch field: {field!r}")
    if not math.isfinite(day_of_year):
        raise ParseError(f"Malformed TLE epoch field: {field!r}")

    full_year = 2000 + year if year < EPOCH_YEAR_PIVOT else 1900 + year
    whole_day = math.floor(day_of_year)
    days_in_year = 366 if calendar.isleap(full_year) else 365
    if not 1 <= whole_day <= days_in_year:
        raise ParseError(f"TLE epoch day out of range: {field!r}")

    seconds = int(math.floor((day_of_year - whole_day) * SECONDS_PER_DAY + 0.5))
    epoch = datetime(full_year, 1, 1) + timedelta(days=whole_day - 1, seconds=seconds)
    return float(calendar.timegm(epoch.timetuple()))


@dataclass(frozen=True)
class ElementRecord:
    """A single TLE record with its epoch as a UNIX timestamp."""

    line1: str
    line2: str
    epoch_timestamp: float
    name: Optional[str] = None

    @classmethod
    def from_lines(cls, line1: str, line2: str, name: Optional[str] = None) -> "ElementRecord":
        """Build a record, reading the epoch from line 1."""
        if len(line1) < EPOCH_FIELD_END:
            raise ParseError(f"TLE line 1 too short for epoch field: {line1!r}")
        epoch = parse_tle_epoch(line1[EPOCH_FIELD_START:EPOCH_FIELD_END])
        return cls(line1=line1, line2=line2, epoch_timestamp=epoch, name=name)

    @property
    def epoch(self) -> datetime:
        """Epoch as a naive UTC datetime."""
        return datetime(1970, 1, 1) + timedelta(seconds=self.epoch_timestamp)


class ElementStore:
    """
    Epoch-ordered collection of element sets for one satellite.

    The store is built once and never modified. Records are sorted by
    epoch; records sharing an epoch keep their order of appearance.
    """

    def __init__(self, records: Iterable[ElementRecord]) -> None:
        self.records: List[ElementRecord] = sorted(records, key=lambda r: r.epoch_timestamp)
        self._epochs: List[float] = [r.epoch_timestamp for r in self.records]
        logger.info(f"Loaded {len(self.records)} element sets")

    @classmethod
    def load(cls, records: Iterable[Sequence[str]]) -> "ElementStore":
        """
        Create a store from raw TLE records.

        Args:
            records: (line1, line2) pairs or (name, line1, line2) triples

        Returns:
            ElementStore instance

        Raises:
            ParseError: If a record's epoch field is malformed or absent
        """
        parsed = []
        for record in records:
            if len(record) == 3:
                name, line1, line2 = record
            elif len(record) == 2:
                name = None
                line1, line2 = record
            else:
                raise ParseError(f"Expected 2 or 3 lines per TLE record, got {len(record)}")
            parsed.append(ElementRecord.from_lines(line1.rstrip(), line2.rstrip(), name))
        return cls(parsed)

    @classmethod
    def from_lines(cls, lines: Iterable[str]) -> "ElementStore":
        """Group TLE/3LE text lines into records and load them."""
        return cls.load(_group_tle_lines(lines))

    @classmethod
    def from_file(cls, tle_file_path: Union[str, Path]) -> "ElementStore":
        """
        Create an ElementStore from a TLE file.

        Raises:
            FileNotFoundError: If the file doesn't exist
            ParseError: If a record is malformed
        """
        tle_path = Path(tle_file_path)
        if not tle_path.exists():
            raise FileNotFoundError(f"TLE file not found: {tle_file_path}")

        with open(tle_path, "r") as f:
            return cls.from_lines(f.read().splitlines())

    def __len__(self) -> int:
        return len(self.records)

    def __getitem__(self, index: int) -> ElementRecord:
        return self.records[index]

    def __iter__(self) -> Iterator[ElementRecord]:
        return iter(self.records)

    @property
    def epochs(self) -> List[float]:
        return list(self._epochs)

    def select(self, time: float) -> Optional[int]:
        """
        Find the element set whose epoch is closest to a given time.

        Queries outside the covered epoch range clamp to the first or last
        record. When two neighbours are equally close the earlier one wins.

        Args:
            time: UNIX timestamp

        Returns:
            Index of the selected record, or None if the store is empty
        """
        epochs = self._epochs
        if not epochs:
            return None

        insert_index = bisect.bisect_left(epochs, time)
        if insert_index < len(epochs) and epochs[insert_index] == time:
            return insert_index
        if insert_index == 0:
            return 0
        if insert_index >= len(epochs):
            return len(epochs) - 1

        before = insert_index - 1
        after = insert_index
        if abs(epochs[before] - time) <= abs(epochs[after] - time):
            return before
        return after


def _group_tle_lines(lines: Iterable[str]) -> List[List[str]]:
    """Pair TLE lines into records, attaching any preceding name line."""
    records = []
    pending_name = None
    iterator = iter(enumerate(lines, start=1))
    for line_number, raw in iterator:
        line = raw.rstrip()
        if not line.strip():
            continue
        if not line.startswith("1 "):
            pending_name = line.strip()
            continue

        try:
            _, line2 = next(iterator)
        except StopIteration:
            raise ParseError("TLE line 1 without a matching line 2", line_number)
        line2 = line2.rstrip()
        if not line2.startswith("2 "):
            raise ParseError(f"Expected TLE line 2, got {line2!r}", line_number + 1)

        if pending_name is not None:
            records.append([pending_name, line, line2])
        else:
            records.append([line, line2])
        pending_name = None
    return records

"""
Tropical-cyclone best-track loading and interpolation.

This module reads ATCF b-deck files, keeps one fix per synoptic time and
interpolates storm position and intensity at arbitrary query times.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Iterable, Iterator, NamedTuple, Optional, Tuple, Union

import numpy as np

from .errors import ParseError

logger = logging.getLogger(__name__)

# ATCF b-deck column layout (zero-indexed, end exclusive)
DATETIME_FIELD = (8, 18)  # YYYYMMDDHH
HOUR_FIELD = (16, 18)
LATITUDE_FIELD = (35, 39)  # tenths of degree + N/S flag at column 38
LONGITUDE_FIELD = (41, 46)  # tenths of degree + E/W flag at column 45
INTENSITY_FIELD = (48, 51)  # max sustained wind, kt

# Intensity value used by the b-deck format for "unknown"
MISSING_INTENSITY = 999

DEFAULT_CADENCE_HOURS = 6


@dataclass(frozen=True)
class TrackFix:
    """A single best-track fix."""

    timestamp: float  # UNIX seconds, UTC
    intensity: float  # kt
    latitude: float  # degrees, -90 to +90
    longitude: float  # degrees, 0 to 360

    @property
    def time(self) -> datetime:
        return datetime.fromtimestamp(self.timestamp, tz=timezone.utc).replace(tzinfo=None)


class TrackPoint(NamedTuple):
    """Storm state interpolated at a query time."""

    latitude: float
    longitude: float
    intensity: float


@dataclass
class TrackCursor:
    """
    Search position reused across interpolation calls.

    A cursor belongs to a single caller. Queries made in increasing time
    order only scan forward from the cursor.
    """

    index: int = 0


class BestTrack:
    """
    Time-ordered storm fixes stored as parallel arrays.

    Fix times are strictly increasing. Longitudes are in [0, 360), with
    western longitudes stored as 360 minus their magnitude.
    """

    def __init__(self, fixes: Iterable[TrackFix]) -> None:
        fixes = list(fixes)
        self.time = np.array([f.timestamp for f in fixes], dtype=float)
        self.intensity = np.array([f.intensity for f in fixes], dtype=float)
        self.latitude = np.array([f.latitude for f in fixes], dtype=float)
        self.longitude = np.array([f.longitude for f in fixes], dtype=float)

        if len(self.time) > 1 and np.any(np.diff(self.time) <= 0):
            raise ValueError("Track fixes must be strictly increasing in time")

    @classmethod
    def from_lines(
        cls, lines: Iterable[str], cadence_hours: int = DEFAULT_CADENCE_HOURS
    ) -> "BestTrack":
        """
        Parse b-deck lines into a track.

        Only fixes whose hour is a multiple of ``cadence_hours`` are kept,
        and of several records sharing a time (one per wind-radii
        threshold) only the first is kept.

        Args:
            lines: Raw b-deck lines
            cadence_hours: Synoptic interval to retain

        Returns:
            BestTrack instance

        Raises:
            ParseError: If a retained record has a malformed field or its
                time does not follow the previous retained fix
        """
        if cadence_hours <= 0:
            raise ValueError(f"Invalid cadence: {cadence_hours}. Must be positive.")

        fixes = []
        last_stamp = None
        for line_number, raw in enumerate(lines, start=1):
            line = raw.rstrip("\r\n")
            if not line.strip():
                continue

            stamp = line[DATETIME_FIELD[0]:DATETIME_FIELD[1]]
            hour = _parse_int(line[HOUR_FIELD[0]:HOUR_FIELD[1]], "hour", line_number)
            if hour % cadence_hours != 0:
                continue
            if stamp == last_stamp:
                continue
            last_stamp = stamp

            fix = _parse_fix(line, stamp, line_number)
            if fixes and fix.timestamp <= fixes[-1].timestamp:
                raise ParseError(
                    f"Fix time {stamp} does not follow previous fix {fixes[-1].time:%Y%m%d%H}",
                    line_number,
                )
            fixes.append(fix)

        logger.info(f"Loaded {len(fixes)} track fixes ({cadence_hours}-hourly)")
        return cls(fixes)

    @classmethod
    def from_file(
        cls, bdeck_file_path: Union[str, Path], cadence_hours: int = DEFAULT_CADENCE_HOURS
    ) -> "BestTrack":
        """Load a track from a b-deck file."""
        bdeck_path = Path(bdeck_file_path)
        if not bdeck_path.exists():
            raise FileNotFoundError(f"b-deck file not found: {bdeck_file_path}")

        with open(bdeck_path, "r") as f:
            return cls.from_lines(f.read().splitlines(), cadence_hours)

    def __len__(self) -> int:
        return len(self.time)

    def fix(self, index: int) -> TrackFix:
        return TrackFix(
            timestamp=float(self.time[index]),
            intensity=float(self.intensity[index]),
            latitude=float(self.latitude[index]),
            longitude=float(self.longitude[index]),
        )

    def fixes(self) -> Iterator[TrackFix]:
        for i in range(len(self)):
            yield self.fix(i)

    def _point(self, index: int) -> TrackPoint:
        return TrackPoint(
            float(self.latitude[index]),
            float(self.longitude[index]),
            float(self.intensity[index]),
        )

    def interpolate(self, query_time: float, cursor: TrackCursor) -> Optional[TrackPoint]:
        """
        Interpolate storm position and intensity at a query time.

        The cursor is moved to the lower bracketing fix on every successful
        lookup. Forward queries scan from the cursor; a query before the
        cursor falls back to a binary search over the whole track.

        Args:
            query_time: UNIX timestamp
            cursor: Caller-owned search position

        Returns:
            TrackPoint, or None if query_time lies outside the track
        """
        times = self.time
        n = len(times)
        if n == 0:
            return None
        if query_time < times[0] or query_time > times[-1]:
            return None

        i = min(max(cursor.index, 0), n - 1)
        if query_time < times[i]:
            found = int(np.searchsorted(times, query_time, side="left"))
            if found < n and times[found] == query_time:
                cursor.index = found
                return self._point(found)
            i = found - 1
        else:
            while i + 1 < n and times[i + 1] < query_time:
                i += 1

        if times[i] == query_time:
            cursor.index = i
            return self._point(i)
        if i + 1 < n and times[i + 1] == query_time:
            cursor.index = i + 1
            return self._point(i + 1)
        if i + 1 >= n:
            return None

        t0 = times[i]
        t1 = times[i + 1]
        factor = (query_time - t0) / (t1 - t0)

        lat = self.latitude[i] + factor * (self.latitude[i + 1] - self.latitude[i])
        lon = self.longitude[i] + factor * (self.longitude[i + 1] - self.longitude[i])
        intensity = self.intensity[i] + factor * (self.intensity[i + 1] - self.intensity[i])

        cursor.index = i
        return TrackPoint(float(lat), float(lon), float(intensity))


def _parse_int(text: str, field: str, line_number: int) -> int:
    try:
        return int(text.strip())
    except ValueError:
        raise ParseError(f"Malformed {field} field: {text!r}", line_number)


def _parse_coordinate(text: str, digits: int, field: str, line_number: int) -> Tuple[float, str]:
    """Split a b-deck coordinate into its magnitude in degrees and hemisphere flag."""
    if len(text) < digits + 1:
        raise ParseError(f"Truncated {field} field: {text!r}", line_number)
    value = "".join(text[:digits].split())
    try:
        return float(value) / 10.0, text[digits]
    except ValueError:
        raise ParseError(f"Malformed {field} field: {text!r}", line_number)


def _parse_fix(line: str, stamp: str, line_number: int) -> TrackFix:
    try:
        when = datetime.strptime(stamp, "%Y%m%d%H").replace(tzinfo=timezone.utc)
    except ValueError:
        raise ParseError(f"Malformed date-time field: {stamp!r}", line_number)

    lat, lat_flag = _parse_coordinate(
        line[LATITUDE_FIELD[0]:LATITUDE_FIELD[1]], 3, "latitude", line_number
    )
    if lat_flag == "S":
        lat = -lat

    lon, lon_flag = _parse_coordinate(
        line[LONGITUDE_FIELD[0]:LONGITUDE_FIELD[1]], 4, "longitude", line_number
    )
    if lon_flag == "W":
        lon = (360.0 - lon) % 360.0

    # Short-style records drop a separator space; the wind is then the tail
    if len(line) < INTENSITY_FIELD[1]:
        wind_text = line[-3:]
    else:
        wind_text = line[INTENSITY_FIELD[0]:INTENSITY_FIELD[1]]
    wind = _parse_int(wind_text.strip().strip(","), "intensity", line_number)
    if wind == MISSING_INTENSITY:
        wind = 0

    return TrackFix(timestamp=when.timestamp(), intensity=float(wind), latitude=lat, longitude=lon)

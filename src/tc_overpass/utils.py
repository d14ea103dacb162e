"""
Utility functions for the overpass finder.

This module provides logging setup, UTC timestamp conversion, geodesic
distance and TLE download helpers used throughout the package.
"""

import calendar
import logging
import os
from datetime import datetime, timedelta
from pathlib import Path
from typing import Dict, Optional, Union

import requests
from geopy.distance import geodesic

logger = logging.getLogger(__name__)

UNIX_EPOCH = datetime(1970, 1, 1)


def setup_logging(level: str = "INFO", log_file: Optional[str] = None) -> None:
    """
    Set up logging configuration.

    Args:
        level: Logging level (DEBUG, INFO, WARNING, ERROR)
        log_file: Optional log file path

    Environment Variables:
        TC_OVERPASS_LOG_LEVEL: Override log level (DEBUG, INFO, WARNING, ERROR)
    """
    env_level = os.environ.get("TC_OVERPASS_LOG_LEVEL")
    if env_level:
        level = env_level
    log_level = getattr(logging, level.upper(), logging.INFO)

    formatter = logging.Formatter(
        '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )

    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)

    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    # stderr, keeping stdout for event listings
    console_handler = logging.StreamHandler()
    console_handler.setFormatter(formatter)
    root_logger.addHandler(console_handler)

    if log_file:
        file_handler = logging.FileHandler(log_file)
        file_handler.setFormatter(formatter)
        root_logger.addHandler(file_handler)

    logger.debug(f"Logging configured at {level} level")


DATETIME_FORMATS = (
    "%Y-%m-%d %H:%M:%S",
    "%Y-%m-%d %H:%M",
    "%Y-%m-%dT%H:%M:%S",
    "%Y-%m-%dT%H:%M:%SZ",
    "%Y-%m-%d",
    "%Y%m%d%H",
)


def parse_datetime(date_string: str) -> datetime:
    """
    Parse a UTC date string in one of the accepted formats.

    Args:
        date_string: Date string, e.g. "2023-08-25 18:00" or "2023082518"

    Returns:
        Naive datetime in UTC

    Raises:
        ValueError: If no format matches
    """
    for fmt in DATETIME_FORMATS:
        try:
            return datetime.strptime(date_string.strip(), fmt)
        except ValueError:
            continue

    raise ValueError(f"Unable to parse datetime: {date_string}")


def timestamp_to_datetime(timestamp: float) -> datetime:
    """Convert UNIX seconds to a naive UTC datetime (microsecond precision)."""
    return UNIX_EPOCH + timedelta(microseconds=round(timestamp * 1_000_000))


def datetime_to_timestamp(dt: datetime) -> float:
    """Convert a datetime (naive values are taken as UTC) to UNIX seconds."""
    if dt.tzinfo is not None:
        return dt.timestamp()
    return calendar.timegm(dt.timetuple()) + dt.microsecond / 1_000_000


def calculate_ground_distance(
    lat1: float, lon1: float,
    lat2: float, lon2: float
) -> float:
    """
    Calculate the geodesic distance between two points on the WGS84 ellipsoid.

    Args:
        lat1, lon1: First point coordinates (degrees)
        lat2, lon2: Second point coordinates (degrees, either longitude convention)

    Returns:
        Distance in kilometers
    """
    lon1 = (lon1 + 180.0) % 360.0 - 180.0
    lon2 = (lon2 + 180.0) % 360.0 - 180.0
    return geodesic((lat1, lon1), (lat2, lon2)).km


def download_tle_file(url: str, output_file: Union[str, Path]) -> bool:
    """
    Download TLE file from URL.

    Args:
        url: URL to download TLE data from
        output_file: Local file path to save TLE data

    Returns:
        True if successful, False otherwise
    """
    try:
        logger.info(f"Downloading TLE data from {url}")

        response = requests.get(url, timeout=30)
        response.raise_for_status()

        output_path = Path(output_file)
        output_path.parent.mkdir(parents=True, exist_ok=True)

        with open(output_path, 'w') as f:
            f.write(response.text)

        logger.info(f"TLE data saved to {output_path}")
        return True

    except requests.RequestException as e:
        logger.error(f"Error downloading TLE file: {e}")
        return False


def get_common_tle_sources() -> Dict[str, str]:
    """
    Get dictionary of TLE sources for common storm-observing satellites.

    Returns:
        Dictionary mapping source names to URLs
    """
    return {
        "aqua": "https://celestrak.org/NORAD/elements/gp.php?CATNR=27424&FORMAT=tle",
        "terra": "https://celestrak.org/NORAD/elements/gp.php?CATNR=25994&FORMAT=tle",
        "noaa20": "https://celestrak.org/NORAD/elements/gp.php?CATNR=43013&FORMAT=tle",
        "suomi_npp": "https://celestrak.org/NORAD/elements/gp.php?CATNR=37849&FORMAT=tle",
        "celestrak_weather": "https://celestrak.org/NORAD/elements/gp.php?GROUP=weather&FORMAT=tle",
        "celestrak_resource": "https://celestrak.org/NORAD/elements/gp.php?GROUP=resource&FORMAT=tle",
    }

"""
Text rendering of overpass events.
"""

from datetime import datetime
from typing import Optional

# MODIS Level-1B 1 km granule prefixes by platform
MODIS_PRODUCT_PREFIXES = {
    "aqua": "MYD021KM",
    "terra": "MOD021KM",
}

# MODIS granules start every 5 minutes
GRANULE_MINUTES = 5


def modis_granule_name(scan_time: datetime, platform: str) -> str:
    """
    Name of the MODIS L1B granule containing a scan time.

    Args:
        scan_time: UTC time of the observation
        platform: "aqua" or "terra"

    Returns:
        Granule name such as ``MYD021KM.A2023237.1835``
    """
    try:
        prefix = MODIS_PRODUCT_PREFIXES[platform.lower()]
    except KeyError:
        raise ValueError(f"Unknown MODIS platform: {platform}")

    minute = (scan_time.minute // GRANULE_MINUTES) * GRANULE_MINUTES
    granule_start = scan_time.replace(minute=minute, second=0, microsecond=0)
    return f"{prefix}{granule_start.strftime('.A%Y%j.%H%M')}"


def format_event(event, platform: Optional[str] = None) -> str:
    """One-line listing of an event, optionally with its MODIS granule name."""
    when = event.time
    granule = modis_granule_name(when, platform) if platform else ""
    return (
        f"{when.strftime('%Y-%m-%d %H:%M:%S')} - "
        f"Distance: {event.cpa_distance:4.0f} km  "
        f"Zenith: {event.sat_zenith:4.1f}° "
        f"Intensity: {event.intensity:3.0f} kt   "
        f"{granule}"
    ).rstrip()

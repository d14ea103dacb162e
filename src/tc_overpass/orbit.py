"""
Satellite orbit propagation and observer geometry.

This module wraps the orbit-predictor library: it propagates a single
TLE record and reports the satellite as seen from a ground observer
(elevation, elevation rate and sub-satellite point).
"""

import logging
import math
from dataclasses import dataclass
from functools import lru_cache
from typing import Any, Dict, Optional, Tuple

import numpy as np
from orbit_predictor.locations import Location  # type: ignore[import-untyped]
from orbit_predictor.sources import get_predictor_from_tle_lines  # type: ignore[import-untyped]

from .elements import ElementRecord
from .utils import timestamp_to_datetime

logger = logging.getLogger(__name__)

# WGS84 constants
WGS84_A_KM = 6378.137
WGS84_F = 1.0 / 298.257223563
WGS84_E2 = WGS84_F * (2.0 - WGS84_F)

# Half-width of the central difference used for elevation rate
RATE_DELTA_SECONDS = 0.5

# Bisection tolerance when pinning a horizon crossing
REFINE_TOLERANCE_SECONDS = 1e-3
REFINE_MAX_ITERS = 64

POSITION_CACHE_SIZE = 4096


@dataclass(frozen=True)
class Observation:
    """Satellite state as seen from an observer at one instant."""

    time: float  # UNIX seconds
    elevation: float  # degrees
    elevation_rate: float  # degrees per second
    latitude: float  # sub-satellite point, degrees
    longitude: float  # sub-satellite point, degrees
    altitude_km: float


def make_location(latitude: float, longitude: float, name: str = "observer") -> Location:
    """
    Build a sea-level observer location.

    Longitudes given in [0, 360) are wrapped to [-180, 180).
    """
    longitude = (longitude + 180.0) % 360.0 - 180.0
    return Location(name, latitude, longitude, 0.0)


def geodetic_to_ecef(lat_deg: float, lon_deg: float, alt_km: float) -> np.ndarray:
    """Convert geodetic (WGS84) coordinates to ECEF in km."""
    lat = math.radians(lat_deg)
    lon = math.radians(lon_deg)
    sin_lat = math.sin(lat)
    cos_lat = math.cos(lat)

    n = WGS84_A_KM / math.sqrt(1.0 - WGS84_E2 * sin_lat ** 2)

    x = (n + alt_km) * cos_lat * math.cos(lon)
    y = (n + alt_km) * cos_lat * math.sin(lon)
    z = (n * (1.0 - WGS84_E2) + alt_km) * sin_lat
    return np.array([x, y, z])


class SatelliteOrbit:
    """
    Propagates one element set and observes it from ground locations.

    All times are UNIX timestamps (float seconds, UTC).
    """

    def __init__(self, record: ElementRecord, satellite_name: Optional[str] = None) -> None:
        """
        Initialize satellite orbit from an element record.

        Args:
            record: Element set to propagate
            satellite_name: Optional display name (defaults to the record name)

        Raises:
            ValueError: If the TLE lines cannot be parsed by the propagator
        """
        self.record = record
        self.satellite_name = satellite_name or record.name or "satellite"

        try:
            self.predictor = get_predictor_from_tle_lines([record.line1, record.line2])
        except Exception as e:
            logger.error(f"Failed to initialize satellite orbit: {e}")
            raise ValueError(f"Invalid TLE data for satellite {self.satellite_name}: {e}")

        self._observer_cache: Dict[Tuple[float, float, float], Tuple[np.ndarray, np.ndarray]] = {}
        self._get_position = lru_cache(maxsize=POSITION_CACHE_SIZE)(self._get_position_impl)
        logger.debug(f"Initialized orbit for {self.satellite_name} (epoch {record.epoch})")

    def _get_position_impl(self, time: float) -> Any:
        return self.predictor.get_position(timestamp_to_datetime(time))

    def _observer_frame(self, location: Location) -> Tuple[np.ndarray, np.ndarray]:
        """Cached observer ECEF position and local up vector."""
        key = (location.latitude_deg, location.longitude_deg, location.elevation_m)
        if key not in self._observer_cache:
            lat = math.radians(location.latitude_deg)
            lon = math.radians(location.longitude_deg)
            up = np.array([
                math.cos(lat) * math.cos(lon),
                math.cos(lat) * math.sin(lon),
                math.sin(lat),
            ])
            ground = geodetic_to_ecef(
                location.latitude_deg, location.longitude_deg, location.elevation_m / 1000.0
            )
            self._observer_cache[key] = (ground, up)
        return self._observer_cache[key]

    def elevation_at(self, time: float, location: Location) -> float:
        """Elevation of the satellite above the observer's horizon, in degrees."""
        position = self._get_position(time)
        ground, up = self._observer_frame(location)

        rho = np.asarray(position.position_ecef, dtype=float) - ground
        range_km = float(np.linalg.norm(rho))
        if range_km <= 0:
            return 90.0
        sin_el = max(-1.0, min(1.0, float(np.dot(rho, up)) / range_km))
        return math.degrees(math.asin(sin_el))

    def subsatellite_point(self, time: float) -> Tuple[float, float, float]:
        """Return (latitude, longitude, altitude_km) below the satellite."""
        lat, lon, alt = self._get_position(time).position_llh
        return float(lat), float(lon), float(alt)

    def observe(self, time: float, location: Location) -> Observation:
        """
        Observe the satellite from a ground location.

        Elevation rate is a central difference over RATE_DELTA_SECONDS.
        """
        elevation = self.elevation_at(time, location)
        rate = (
            self.elevation_at(time + RATE_DELTA_SECONDS, location)
            - self.elevation_at(time - RATE_DELTA_SECONDS, location)
        ) / (2.0 * RATE_DELTA_SECONDS)
        lat, lon, alt = self.subsatellite_point(time)
        return Observation(
            time=time,
            elevation=elevation,
            elevation_rate=rate,
            latitude=lat,
            longitude=lon,
            altitude_km=alt,
        )

    def refine_crossing(
        self, location: Location, t_before: float, t_after: float, min_elevation: float
    ) -> Observation:
        """
        Pin the time the elevation crosses min_elevation between two times.

        Uses bisection on the elevation above the mask. If both ends lie on
        the same side of the mask, the observation at t_after is returned.

        Args:
            location: Ground observer
            t_before: Time before the crossing
            t_after: Time after the crossing
            min_elevation: Elevation mask in degrees

        Returns:
            Observation at the crossing (accurate to REFINE_TOLERANCE_SECONDS)
        """
        g_left = self.elevation_at(t_before, location) - min_elevation
        g_right = self.elevation_at(t_after, location) - min_elevation
        if (g_left < 0) == (g_right < 0):
            return self.observe(t_after, location)

        t_left = t_before
        t_right = t_after
        for _ in range(REFINE_MAX_ITERS):
            if t_right - t_left <= REFINE_TOLERANCE_SECONDS:
                break
            t_mid = (t_left + t_right) / 2.0
            g_mid = self.elevation_at(t_mid, location) - min_elevation
            if (g_mid < 0) == (g_left < 0):
                t_left = t_mid
                g_left = g_mid
            else:
                t_right = t_mid

        return self.observe(t_right, location)

    def refine_rise_time(
        self, location: Location, time: float, min_elevation: float, step: float = 1.0
    ) -> Observation:
        """Refine an acquisition (AOS) known to lie within [time, time + step]."""
        return self.refine_crossing(location, time, time + step, min_elevation)

    def refine_set_time(
        self, location: Location, time: float, min_elevation: float, step: float = 1.0
    ) -> Observation:
        """Refine a loss of signal (LOS) known to lie within [time, time + step]."""
        return self.refine_crossing(location, time, time + step, min_elevation)

    def __repr__(self) -> str:
        return f"SatelliteOrbit(name='{self.satellite_name}', epoch={self.record.epoch})"

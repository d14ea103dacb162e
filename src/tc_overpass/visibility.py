"""
Satellite visibility windows and closest-approach refinement.

This module scans observer geometry over time to bracket rise (AOS) and
set (LOS) of each satellite pass, and bisects the elevation rate to find
the time of maximum elevation, used as the closest-approach proxy.
"""

import logging
from dataclasses import dataclass
from typing import List, Optional

from orbit_predictor.locations import Location  # type: ignore[import-untyped]

from .orbit import Observation, SatelliteOrbit, make_location
from .utils import calculate_ground_distance

logger = logging.getLogger(__name__)

# =============================================================================
# CONSTANTS
# =============================================================================

# Horizon scan stepping. Coarse steps would overshoot the crossing near the
# mask, so the scan drops to the fine step inside the band around it.
COARSE_STEP_SECONDS = 10.0
FINE_STEP_SECONDS = 1.0
FINE_BAND_DEG = 5.0

# Maximum-elevation bisection
MAX_ELEVATION_TOLERANCE_SECONDS = 1e-6
MAX_ELEVATION_MAX_ITERS = 10000

# Longest pass we walk back through when the scan starts mid-pass
MAX_WALK_BACK_SECONDS = 86400.0


@dataclass
class MaxElevation:
    """Time and value of the maximum elevation within a pass."""

    time: float
    elevation: float  # degrees
    observation: Observation
    converged: bool
    iterations: int = 0


@dataclass
class VisibilityWindow:
    """A satellite pass bounded by acquisition and loss of signal."""

    aos: Optional[Observation] = None
    los: Optional[Observation] = None
    max_elevation: Optional[MaxElevation] = None

    @property
    def is_complete(self) -> bool:
        return self.aos is not None and self.los is not None

    @property
    def duration_seconds(self) -> float:
        if not self.is_complete:
            return 0.0
        return self.los.time - self.aos.time


@dataclass
class SatPassEvent:
    """Closest approach of a pass relative to one observer."""

    cpa_time: float
    cpa_distance: float  # km, observer to sub-satellite point
    elevation: float  # degrees, at closest approach
    converged: bool = True


class PassFinder:
    """
    Finds satellite passes over a ground observer.

    The satellite must provide ``observe``, ``elevation_at``,
    ``refine_rise_time`` and ``refine_set_time`` (see SatelliteOrbit).
    """

    def __init__(self, satellite: SatelliteOrbit, min_elevation_deg: float = 0.0) -> None:
        self.satellite = satellite
        self.min_elevation_deg = min_elevation_deg

    def _step_size(self, elevation: float) -> float:
        if abs(elevation - self.min_elevation_deg) > FINE_BAND_DEG:
            return COARSE_STEP_SECONDS
        return FINE_STEP_SECONDS

    def _walk_back_to_rise(self, location: Location, start_time: float) -> Optional[float]:
        """
        Step backward from a time when the satellite is visible until it is not.

        Returns:
            First time found below the mask, or None if the walk gave up
        """
        current = start_time
        while start_time - current <= MAX_WALK_BACK_SECONDS:
            elevation = self.satellite.elevation_at(current, location)
            if elevation < self.min_elevation_deg:
                return current
            current -= self._step_size(elevation)
        logger.warning(
            f"Satellite visible for over {MAX_WALK_BACK_SECONDS:.0f}s before "
            f"{start_time:.0f}; scanning from start"
        )
        return None

    def find_windows(
        self,
        location: Location,
        start_time: float,
        stop_time: float,
        include_max_elevation: bool = False,
    ) -> List[VisibilityWindow]:
        """
        Find complete visibility windows between two times.

        The scan alternates between looking for a rise and looking for a
        set. A pass still open at stop_time is dropped, so every returned
        window has both AOS and LOS. If the satellite is already up at
        start_time the scan first walks back to that pass's rise.

        Args:
            location: Ground observer
            start_time: Scan start (UNIX seconds)
            stop_time: Scan horizon (UNIX seconds)
            include_max_elevation: Also locate each window's maximum elevation

        Returns:
            List of complete VisibilityWindow objects in chronological order
        """
        threshold = self.min_elevation_deg
        current = start_time

        if self.satellite.elevation_at(start_time, location) >= threshold:
            rise_before = self._walk_back_to_rise(location, start_time)
            if rise_before is not None:
                current = rise_before

        windows = []
        while True:
            window = VisibilityWindow()

            # Scan for rise
            while current < stop_time:
                obs = self.satellite.observe(current, location)
                if obs.elevation >= threshold and obs.elevation_rate > 0:
                    window.aos = self.satellite.refine_rise_time(
                        location, current - FINE_STEP_SECONDS, threshold, FINE_STEP_SECONDS
                    )
                    break
                current += self._step_size(obs.elevation)

            if window.aos is None:
                break

            # Scan for set
            while True:
                obs = self.satellite.observe(current, location)
                if obs.elevation <= threshold and obs.elevation_rate < 0:
                    window.los = self.satellite.refine_set_time(
                        location, current - FINE_STEP_SECONDS, threshold, FINE_STEP_SECONDS
                    )
                    break
                current += self._step_size(obs.elevation)
                if current >= stop_time:
                    break

            if not window.is_complete:
                logger.debug(f"Dropping pass still open at scan horizon {stop_time:.0f}")
                break

            if include_max_elevation:
                window.max_elevation = self.find_max_elevation(
                    location, window.aos.time, window.los.time
                )
            windows.append(window)

        logger.debug(
            f"Found {len(windows)} windows over {(stop_time - start_time) / 3600:.1f}h"
        )
        return windows

    def find_max_elevation(self, location: Location, t_lo: float, t_hi: float) -> MaxElevation:
        """
        Locate the maximum elevation inside a pass by bisecting the elevation rate.

        The bracket must contain a single sign change of the elevation
        rate. If the midpoint rate differs in sign from neither bound the
        search stops early and the midpoint is returned with
        ``converged=False``; the same happens when the iteration cap is hit.

        Args:
            location: Ground observer
            t_lo: Bracket start, typically AOS
            t_hi: Bracket end, typically LOS

        Returns:
            MaxElevation at the best estimate of the rate root
        """
        lower_time = t_lo
        upper_time = t_hi
        lower_rate = self.satellite.observe(lower_time, location).elevation_rate
        upper_rate = self.satellite.observe(upper_time, location).elevation_rate

        candidate = (lower_time + upper_time) / 2.0
        obs = self.satellite.observe(candidate, location)
        iterations = 0
        converged = False

        while True:
            if abs(upper_time - lower_time) <= MAX_ELEVATION_TOLERANCE_SECONDS:
                converged = True
                break
            if iterations >= MAX_ELEVATION_MAX_ITERS:
                break

            rate = obs.elevation_rate
            if rate == 0.0:
                converged = True
                break
            if rate * lower_rate < 0:
                upper_time = candidate
                upper_rate = rate
            elif rate * upper_rate < 0:
                lower_time = candidate
                lower_rate = rate
            else:
                break

            iterations += 1
            candidate = (lower_time + upper_time) / 2.0
            obs = self.satellite.observe(candidate, location)

        if not converged:
            logger.debug(
                f"Max elevation search stopped after {iterations} iterations "
                f"with bracket {upper_time - lower_time:.3g}s"
            )

        return MaxElevation(
            time=candidate,
            elevation=obs.elevation,
            observation=obs,
            converged=converged,
            iterations=iterations,
        )

    def get_passes(
        self, start_time: float, interval_seconds: float, latitude: float, longitude: float
    ) -> List[SatPassEvent]:
        """
        Closest approaches of all passes over a point within an interval.

        Args:
            start_time: Interval start (UNIX seconds)
            interval_seconds: Interval length
            latitude: Observer latitude (degrees)
            longitude: Observer longitude (degrees, either convention)

        Returns:
            One SatPassEvent per complete pass, in chronological order
        """
        location = make_location(latitude, longitude)
        windows = self.find_windows(location, start_time, start_time + interval_seconds)

        events = []
        for window in windows:
            cpa = self.find_max_elevation(location, window.aos.time, window.los.time)
            distance = calculate_ground_distance(
                latitude, longitude, cpa.observation.latitude, cpa.observation.longitude
            )
            events.append(
                SatPassEvent(
                    cpa_time=cpa.time,
                    cpa_distance=distance,
                    elevation=cpa.elevation,
                    converged=cpa.converged,
                )
            )
        return events

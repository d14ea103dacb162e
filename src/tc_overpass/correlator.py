"""
Storm/satellite pass correlation.

This module provides the StormPassCorrelator class that ties element
selection, pass search and track interpolation together for every fix
of a best track, and exports the resulting overpass events.
"""

from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Union
import csv
import json
import logging

import pandas as pd

from .config import CorrelationConfig
from .elements import ElementStore
from .orbit import SatelliteOrbit
from .parallel import correlate_in_parallel, get_optimal_workers
from .track import BestTrack, TrackCursor
from .utils import timestamp_to_datetime
from .visibility import PassFinder

logger = logging.getLogger(__name__)

EVENT_FIELDS = ["cpa_time", "cpa_distance_km", "sat_zenith_deg", "intensity_kt"]


@dataclass(frozen=True)
class StormPassEvent:
    """A satellite overpass of a storm that met the intensity and distance thresholds."""

    cpa_time: float  # UNIX seconds
    cpa_distance: float  # km
    sat_zenith: float  # degrees
    intensity: float  # kt

    @property
    def time(self) -> datetime:
        return timestamp_to_datetime(self.cpa_time)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "cpa_time": self.time.isoformat(timespec="seconds"),
            "cpa_distance_km": round(self.cpa_distance, 1),
            "sat_zenith_deg": round(self.sat_zenith, 2),
            "intensity_kt": round(self.intensity, 1),
        }


class StormPassCorrelator:
    """
    Finds satellite overpasses of a tropical cyclone.

    Each track fix is processed independently: the element set nearest
    the fix time is used to find passes over the next ``step_hours``,
    the track is interpolated at each pass's closest approach, and the
    pass is searched again from the interpolated storm position before
    the distance threshold is applied.

    Inputs are never modified, so fixes can be processed in any order
    and in separate worker processes.
    """

    def __init__(
        self,
        elements: ElementStore,
        track: BestTrack,
        config: Optional[CorrelationConfig] = None,
        satellite_name: Optional[str] = None,
    ) -> None:
        """
        Initialize the correlator.

        Args:
            elements: Element history of the satellite
            track: Storm best track
            config: Run parameters (defaults to CorrelationConfig())
            satellite_name: Optional display name
        """
        self.elements = elements
        self.track = track
        self.config = config or CorrelationConfig()
        self.satellite_name = satellite_name
        self._finders: Dict[int, PassFinder] = {}

        logger.info(
            f"Initialized StormPassCorrelator with {len(elements)} element sets "
            f"and {len(track)} track fixes"
        )

    def __getstate__(self) -> Dict[str, Any]:
        # Propagators are rebuilt lazily in each worker process
        state = self.__dict__.copy()
        state["_finders"] = {}
        return state

    def _pass_finder(self, element_index: int) -> PassFinder:
        """Get the cached PassFinder for an element set, building it on first use."""
        if element_index not in self._finders:
            satellite = SatelliteOrbit(self.elements[element_index], self.satellite_name)
            self._finders[element_index] = PassFinder(
                satellite, min_elevation_deg=self.config.min_elevation_deg
            )
        return self._finders[element_index]

    def correlate_fix(self, fix_index: int) -> List[StormPassEvent]:
        """
        Find qualifying overpasses starting from one track fix.

        Args:
            fix_index: Index of the fix in the track

        Returns:
            Events in chronological order of the passes found
        """
        config = self.config
        fix = self.track.fix(fix_index)

        element_index = self.elements.select(fix.timestamp)
        if element_index is None:
            logger.debug(f"No element set for fix {fix_index}; skipping")
            return []
        finder = self._pass_finder(element_index)

        candidates = finder.get_passes(
            fix.timestamp, config.step_seconds, fix.latitude, fix.longitude
        )

        events = []
        cursor = TrackCursor(fix_index)
        half_window = config.refine_half_window_seconds
        for candidate in candidates:
            point = self.track.interpolate(candidate.cpa_time, cursor)
            if point is None:
                continue
            if point.intensity < config.intensity_threshold_kt:
                continue

            refined = finder.get_passes(
                candidate.cpa_time - half_window,
                2 * half_window,
                point.latitude,
                point.longitude,
            )
            for event in refined:
                if event.cpa_distance <= config.distance_threshold_km:
                    events.append(
                        StormPassEvent(
                            cpa_time=event.cpa_time,
                            cpa_distance=event.cpa_distance,
                            sat_zenith=90.0 - event.elevation,
                            intensity=point.intensity,
                        )
                    )

        if events:
            logger.debug(f"Fix {fix_index}: {len(events)} of {len(candidates)} passes kept")
        return events

    def run(
        self,
        max_workers: Optional[int] = None,
        progress_callback: Optional[Callable[[int, int], None]] = None,
    ) -> List[StormPassEvent]:
        """
        Correlate every fix of the track.

        Args:
            max_workers: Worker processes (None = config value, then auto-detect)
            progress_callback: Optional callback(completed, total) for progress

        Returns:
            Events ordered by fix, then chronologically within a fix
        """
        num_fixes = len(self.track)
        if num_fixes == 0 or len(self.elements) == 0:
            logger.warning("Nothing to correlate: empty track or element history")
            return []

        if max_workers is None:
            max_workers = self.config.max_workers
        workers = get_optimal_workers(max_workers, num_fixes)

        if workers <= 1:
            logger.info(f"Correlating {num_fixes} fixes serially")
            events = []
            for i in range(num_fixes):
                try:
                    events.extend(self.correlate_fix(i))
                except Exception as e:
                    # One bad fix must not abort the batch
                    logger.error(f"Error correlating fix {i}: {e}")
                if progress_callback:
                    progress_callback(i + 1, num_fixes)
        else:
            events = correlate_in_parallel(self, workers, progress_callback)

        logger.info(f"Found {len(events)} overpasses across {num_fixes} fixes")
        return events

    def get_summary(self, events: List[StormPassEvent]) -> Dict[str, Any]:
        """Summary statistics for a list of events."""
        if not events:
            return {
                "total_events": 0,
                "fixes_analyzed": len(self.track),
                "min_distance_km": None,
                "min_zenith_deg": None,
                "max_intensity_kt": None,
            }

        return {
            "total_events": len(events),
            "fixes_analyzed": len(self.track),
            "min_distance_km": round(min(e.cpa_distance for e in events), 1),
            "min_zenith_deg": round(min(e.sat_zenith for e in events), 2),
            "max_intensity_kt": round(max(e.intensity for e in events), 1),
        }

    def export_events(
        self,
        events: List[StormPassEvent],
        output_file: Union[str, Path],
        format: str = "auto"
    ) -> None:
        """
        Export events to file.

        Args:
            events: Events from run()
            output_file: Output file path
            format: Output format ("json", "csv", or "auto")
        """
        output_path = Path(output_file)

        if format == "auto":
            format = output_path.suffix.lower().lstrip('.')
            if format not in ["json", "csv"]:
                format = "json"

        rows = [e.to_dict() for e in sorted(events, key=lambda e: e.cpa_time)]

        try:
            if format == "json":
                self._export_json(rows, output_path)
            elif format == "csv":
                self._export_csv(rows, output_path)
            else:
                raise ValueError(f"Unsupported format: {format}")

            logger.info(f"Exported {len(rows)} events to {output_path}")

        except (OSError, ValueError) as e:
            logger.error(f"Error exporting events: {e}")
            raise

    def _export_json(self, rows: List[Dict[str, Any]], output_path: Path) -> None:
        """Export events to JSON format."""
        export_data = {
            "metadata": {
                "satellite": self.satellite_name,
                "export_time": datetime.now(timezone.utc).isoformat(timespec="seconds"),
                "total_events": len(rows),
                "config": self.config.to_dict(),
            },
            "events": rows
        }

        with open(output_path, 'w') as f:
            json.dump(export_data, f, indent=2)

    def _export_csv(self, rows: List[Dict[str, Any]], output_path: Path) -> None:
        """Export events to CSV format."""
        if not rows:
            with open(output_path, 'w', newline='') as f:
                writer = csv.writer(f)
                writer.writerow(EVENT_FIELDS)
            return

        df = pd.DataFrame(rows, columns=EVENT_FIELDS)
        df.to_csv(output_path, index=False)

"""
Correlation run configuration.

Thresholds and search parameters consumed by the storm/satellite
correlation pipeline.
"""

from dataclasses import asdict, dataclass
from typing import Any, Dict, Optional
import logging

logger = logging.getLogger(__name__)


@dataclass
class CorrelationConfig:
    """
    Parameters of a correlation run.

    Validated on construction; invalid values raise ValueError.
    """
    step_hours: float = 6.0  # look-ahead per track fix
    intensity_threshold_kt: float = 100.0
    distance_threshold_km: float = 1165.0
    min_elevation_deg: float = 0.0
    cadence_hours: int = 6  # synoptic interval kept from the track file
    refine_half_window_seconds: float = 1800.0
    max_workers: Optional[int] = None

    def __post_init__(self):
        if self.step_hours <= 0:
            raise ValueError(f"Invalid step_hours: {self.step_hours}. Must be > 0.")
        if self.intensity_threshold_kt < 0:
            raise ValueError(
                f"Invalid intensity threshold: {self.intensity_threshold_kt}. Must be >= 0."
            )
        if self.distance_threshold_km < 0:
            raise ValueError(
                f"Invalid distance threshold: {self.distance_threshold_km}. Must be >= 0."
            )
        if not -90 <= self.min_elevation_deg < 90:
            raise ValueError(
                f"Invalid min_elevation_deg: {self.min_elevation_deg}. "
                f"Must be between -90 and 90 degrees."
            )
        if self.cadence_hours <= 0 or 24 % self.cadence_hours != 0:
            raise ValueError(
                f"Invalid cadence_hours: {self.cadence_hours}. Must divide 24."
            )
        if self.refine_half_window_seconds <= 0:
            raise ValueError(
                f"Invalid refine window: {self.refine_half_window_seconds}. Must be > 0."
            )
        if self.max_workers is not None and self.max_workers < 1:
            raise ValueError(f"Invalid max_workers: {self.max_workers}. Must be >= 1.")

    @property
    def step_seconds(self) -> float:
        return self.step_hours * 3600.0

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

"""
Storm Overpass Finder

Predicts when an Earth-observing satellite passes close to a tropical
cyclone, combining a satellite's TLE history with the storm's ATCF best
track.
"""

from .config import CorrelationConfig
from .correlator import StormPassCorrelator, StormPassEvent
from .elements import ElementRecord, ElementStore
from .errors import ParseError
from .orbit import SatelliteOrbit
from .track import BestTrack, TrackCursor, TrackFix, TrackPoint
from .visibility import PassFinder, SatPassEvent, VisibilityWindow

__version__ = "0.1.0"

__all__ = [
    "BestTrack",
    "CorrelationConfig",
    "ElementRecord",
    "ElementStore",
    "ParseError",
    "PassFinder",
    "SatelliteOrbit",
    "SatPassEvent",
    "StormPassCorrelator",
    "StormPassEvent",
    "TrackCursor",
    "TrackFix",
    "TrackPoint",
    "VisibilityWindow",
]

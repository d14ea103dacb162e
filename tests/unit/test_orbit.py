"""
Tests for the orbit module.

Uses the real orbit-predictor propagator with the sample ICEYE TLE.
"""

import calendar
import math
from datetime import datetime

import numpy as np
import pytest

from tc_overpass.elements import ElementRecord
from tc_overpass.orbit import (
    Observation,
    SatelliteOrbit,
    WGS84_A_KM,
    WGS84_F,
    geodetic_to_ecef,
    make_location,
)

# Close to the sample TLE epoch
T0 = float(calendar.timegm(datetime(2025, 11, 2, 6, 0, 0).timetuple()))


class TestGeodeticToEcef:
    """Tests for geodetic_to_ecef."""

    def test_equator_prime_meridian(self) -> None:
        np.testing.assert_allclose(geodetic_to_ecef(0.0, 0.0, 0.0), [WGS84_A_KM, 0.0, 0.0])

    def test_north_pole(self) -> None:
        polar_radius = WGS84_A_KM * (1.0 - WGS84_F)
        np.testing.assert_allclose(
            geodetic_to_ecef(90.0, 0.0, 0.0), [0.0, 0.0, polar_radius], atol=1e-6
        )

    def test_altitude_adds_radially_at_equator(self) -> None:
        np.testing.assert_allclose(
            geodetic_to_ecef(0.0, 90.0, 100.0), [0.0, WGS84_A_KM + 100.0, 0.0], atol=1e-6
        )


class TestMakeLocation:
    """Tests for make_location."""

    def test_wraps_east_longitude(self) -> None:
        location = make_location(21.5, 299.0)

        assert location.latitude_deg == 21.5
        assert location.longitude_deg == pytest.approx(-61.0)
        assert location.elevation_m == 0.0

    def test_keeps_signed_longitude(self) -> None:
        assert make_location(-15.0, 145.0).longitude_deg == pytest.approx(145.0)


class TestSatelliteOrbit:
    """Tests for SatelliteOrbit with a real propagator."""

    def test_name_from_record(self, sample_satellite) -> None:
        assert sample_satellite.satellite_name == "ICEYE-X44"
        assert "ICEYE-X44" in repr(sample_satellite)

    def test_name_override(self, sample_tle_lines) -> None:
        record = ElementRecord.from_lines(*sample_tle_lines)
        assert SatelliteOrbit(record, "CUSTOM").satellite_name == "CUSTOM"

    def test_subsatellite_point(self, sample_satellite) -> None:
        lat, lon, alt = sample_satellite.subsatellite_point(T0)

        assert -98.0 <= lat <= 98.0
        assert -180.0 <= lon <= 360.0
        assert 400.0 < alt < 700.0

    def test_overhead_elevation(self, sample_satellite) -> None:
        lat, lon, _ = sample_satellite.subsatellite_point(T0)
        location = make_location(lat, lon)

        assert sample_satellite.elevation_at(T0, location) > 85.0

    def test_antipode_below_horizon(self, sample_satellite) -> None:
        lat, lon, _ = sample_satellite.subsatellite_point(T0)
        location = make_location(-lat, lon + 180.0)

        assert sample_satellite.elevation_at(T0, location) < -60.0

    def test_observe(self, sample_satellite) -> None:
        lat, lon, _ = sample_satellite.subsatellite_point(T0)
        location = make_location(lat, lon)

        obs = sample_satellite.observe(T0 - 120.0, location)

        assert isinstance(obs, Observation)
        assert obs.time == T0 - 120.0
        # Still approaching the overhead point
        assert obs.elevation_rate > 0

    def test_refine_crossing(self, sample_satellite) -> None:
        lat, lon, _ = sample_satellite.subsatellite_point(T0)
        location = make_location(lat, lon)

        # Walk back from overhead to a time below the horizon
        t = T0
        while sample_satellite.elevation_at(t, location) >= 0:
            t -= 10.0

        obs = sample_satellite.refine_crossing(location, t, t + 10.0, 0.0)

        assert t <= obs.time <= t + 10.0
        assert obs.elevation == pytest.approx(0.0, abs=0.01)

    def test_refine_crossing_without_sign_change(self, sample_satellite) -> None:
        lat, lon, _ = sample_satellite.subsatellite_point(T0)
        location = make_location(lat, lon)

        obs = sample_satellite.refine_crossing(location, T0 - 1.0, T0, 0.0)
        assert obs.time == T0

    def test_position_cache(self, sample_satellite) -> None:
        sample_satellite.subsatellite_point(T0)
        sample_satellite.subsatellite_point(T0)

        info = sample_satellite._get_position.cache_info()
        assert info.hits >= 1

    def test_elevation_bounded(self, sample_satellite) -> None:
        location = make_location(25.0, 300.0)
        for k in range(0, 6000, 250):
            elevation = sample_satellite.elevation_at(T0 + k, location)
            assert -90.0 <= elevation <= 90.0
            assert not math.isnan(elevation)

"""
Tests for the correlation configuration.
"""

import pytest

from tc_overpass.config import CorrelationConfig


class TestCorrelationConfig:
    """Tests for CorrelationConfig dataclass."""

    def test_defaults(self) -> None:
        config = CorrelationConfig()

        assert config.step_hours == 6.0
        assert config.intensity_threshold_kt == 100.0
        assert config.distance_threshold_km == 1165.0
        assert config.min_elevation_deg == 0.0
        assert config.cadence_hours == 6
        assert config.max_workers is None

    def test_step_seconds(self) -> None:
        assert CorrelationConfig(step_hours=1.5).step_seconds == 5400.0

    def test_to_dict(self) -> None:
        data = CorrelationConfig(max_workers=2).to_dict()

        assert data["max_workers"] == 2
        assert data["refine_half_window_seconds"] == 1800.0

    @pytest.mark.parametrize("kwargs", [
        {"step_hours": 0},
        {"step_hours": -6},
        {"intensity_threshold_kt": -1},
        {"distance_threshold_km": -0.5},
        {"min_elevation_deg": 90},
        {"min_elevation_deg": -91},
        {"cadence_hours": 0},
        {"cadence_hours": 5},
        {"refine_half_window_seconds": 0},
        {"max_workers": 0},
    ])
    def test_invalid(self, kwargs) -> None:
        with pytest.raises(ValueError):
            CorrelationConfig(**kwargs)

    @pytest.mark.parametrize("cadence", [1, 3, 6, 12, 24])
    def test_valid_cadences(self, cadence) -> None:
        assert CorrelationConfig(cadence_hours=cadence).cadence_hours == cadence

"""
Pytest configuration and shared fixtures.

This file is automatically loaded by pytest and provides:
- Custom markers for test categorization
- Shared fixtures for TLE and b-deck test data
"""

import sys
from datetime import datetime
from pathlib import Path
from typing import Any, Callable, List, Tuple

import pytest
from _pytest.config import Config
from _pytest.python import Function

# Add src to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))


def pytest_collection_modifyitems(config: Config, items: List[Function]) -> None:
    """Auto-mark tests under tests/integration."""
    for item in items:
        if "integration" in str(item.fspath):
            item.add_marker(pytest.mark.integration)


def pytest_configure(config: Config) -> None:
    """Register custom markers."""
    config.addinivalue_line(
        "markers", "slow: marks tests as slow (deselect with '-m \"not slow\"')"
    )
    config.addinivalue_line("markers", "integration: marks integration tests")


# =============================================================================
# FIXTURES - Common test data
# =============================================================================


@pytest.fixture
def sample_tle_lines() -> Tuple[str, str]:
    """Sample TLE data for ICEYE-X44 (epoch 2025-11-02 05:17 UTC)."""
    return (
        "1 62707U 25009DC  25306.22031033  .00004207  00000+0  39848-3 0  9995",
        "2 62707  97.7269  23.9854 0002193 135.9671 224.1724 14.94137357 66022",
    )


@pytest.fixture
def sample_tle_file(sample_tle_lines: Tuple[str, str], tmp_path: Path) -> Path:
    tle_file = tmp_path / "iceye.tle"
    tle_file.write_text(f"ICEYE-X44\n{sample_tle_lines[0]}\n{sample_tle_lines[1]}\n")
    return tle_file


@pytest.fixture
def sample_satellite(sample_tle_lines: Tuple[str, str]) -> Any:
    """Create a SatelliteOrbit for the sample TLE."""
    from tc_overpass.elements import ElementRecord
    from tc_overpass.orbit import SatelliteOrbit

    record = ElementRecord.from_lines(*sample_tle_lines, name="ICEYE-X44")
    return SatelliteOrbit(record)


@pytest.fixture
def tle_line1() -> Callable[[str], str]:
    """Build a TLE line 1 carrying the given epoch field."""

    def build(epoch: str) -> str:
        return f"1 27424U 02022A   {epoch:<14}  .00000000  00000-0  00000-0 0  9990"

    return build


@pytest.fixture
def bdeck_line() -> Callable[..., str]:
    """
    Build an ATCF b-deck line.

    Latitude and longitude are given in tenths of a degree as strings,
    e.g. bdeck_line("2023082518", "215", "N", "610", "W", 120).
    """

    def build(
        stamp: str,
        lat: str = "215",
        ns: str = "N",
        lon: str = "610",
        ew: str = "W",
        wind: Any = 120,
    ) -> str:
        return (
            f"AL, 09, {stamp},   , BEST,   0, {lat:>3}{ns}, {lon:>4}{ew}, "
            f"{wind:>3}, 1006, HU"
        )

    return build


@pytest.fixture
def base_datetime() -> datetime:
    """Standard base datetime for tests."""
    return datetime(2023, 8, 25, 0, 0, 0)

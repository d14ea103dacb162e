"""
Tests for the parallel processing module.
"""

from unittest.mock import MagicMock, patch

import pytest

from tc_overpass import parallel
from tc_overpass.parallel import (
    _correlate_fix_worker,
    _get_mp_context,
    _init_worker,
    correlate_in_parallel,
    get_optimal_workers,
)


class FakeCorrelator:
    """Picklable stand-in returning one labelled event per fix."""

    def __init__(self, num_fixes: int, failing=()) -> None:
        self.track = list(range(num_fixes))
        self.failing = set(failing)

    def correlate_fix(self, fix_index: int):
        if fix_index in self.failing:
            raise ValueError(f"bad fix {fix_index}")
        return [f"fix{fix_index}"] * (fix_index % 2 + 1)


class TestGetOptimalWorkers:
    """Tests for get_optimal_workers function."""

    @patch('os.cpu_count')
    def test_default_uses_all_cores(self, mock_cpu) -> None:
        mock_cpu.return_value = 8
        assert get_optimal_workers() == 8

    @patch('os.cpu_count')
    def test_respects_max_workers(self, mock_cpu) -> None:
        mock_cpu.return_value = 16
        assert get_optimal_workers(max_workers=4) == 4

    @patch('os.cpu_count')
    def test_max_workers_cant_exceed_cpu(self, mock_cpu) -> None:
        mock_cpu.return_value = 4
        assert get_optimal_workers(max_workers=16) == 4

    @patch('os.cpu_count')
    def test_limited_by_fix_count(self, mock_cpu) -> None:
        mock_cpu.return_value = 8
        assert get_optimal_workers(num_fixes=3) == 3

    @patch('os.cpu_count')
    def test_cpu_count_unknown(self, mock_cpu) -> None:
        mock_cpu.return_value = None
        assert get_optimal_workers() == 4

    @patch('os.cpu_count')
    def test_at_least_one(self, mock_cpu) -> None:
        mock_cpu.return_value = 8
        assert get_optimal_workers(max_workers=0) == 1


class TestWorker:
    """Tests for the worker-side helpers."""

    def test_worker_uses_installed_correlator(self) -> None:
        _init_worker(FakeCorrelator(3))
        try:
            assert _correlate_fix_worker(1) == (1, ["fix1", "fix1"])
        finally:
            parallel._worker_correlator = None

    def test_mp_context_fallback(self) -> None:
        with patch('tc_overpass.parallel.mp.get_context', side_effect=ValueError):
            assert _get_mp_context() is None


class TestCorrelateInParallel:
    """Tests for correlate_in_parallel."""

    def test_results_in_fix_order(self) -> None:
        events = correlate_in_parallel(FakeCorrelator(5), max_workers=2)

        assert events == ["fix0", "fix1", "fix1", "fix2", "fix3", "fix3", "fix4"]

    def test_failing_fix_skipped(self) -> None:
        events = correlate_in_parallel(FakeCorrelator(4, failing={1}), max_workers=2)

        assert events == ["fix0", "fix2", "fix3", "fix3"]

    def test_progress_callback(self) -> None:
        progress = MagicMock()
        correlate_in_parallel(FakeCorrelator(3), max_workers=2, progress_callback=progress)

        assert progress.call_count == 3
        progress.assert_called_with(3, 3)

    def test_matches_serial(self) -> None:
        correlator = FakeCorrelator(6)
        serial = [e for i in range(6) for e in correlator.correlate_fix(i)]

        assert correlate_in_parallel(correlator, max_workers=3) == serial

"""
Unit tests for signal processing helpers.

Tests cover:
- Linear interpolation and extrapolation
- Detrending
- Moving average edge handling
- Robust statistics (mean, median, IQR filter)
- Peak and trough detection
"""

import pytest # pyright: ignore[reportMissingImports]
import numpy as np
from pathlib import Path

import sys
sys.path.insert(0, str(Path(__file__).parent.parent))

from signal_processing import (
    interpolate_linear,
    detrend_linear,
    moving_average,
    mean,
    median,
    iqr_filter_outliers,
    find_peaks,
    find_troughs
)


class TestInterpolateLinear:
    """Test interpolation onto new sample positions."""

    def test_interior_points(self):
        result = interpolate_linear([0, 10, 20], [0.0, 1.0, 0.0], [5, 15])
        assert result == pytest.approx([0.5, 0.5])

    def test_extrapolates_from_end_segments(self):
        """Values outside the known range follow the end slopes, unclamped."""
        result = interpolate_linear([0, 10, 20], [0.0, 1.0, 3.0], [-10, 30])
        assert result[0] == pytest.approx(-1.0)
        assert result[1] == pytest.approx(5.0)

    def test_mismatched_lengths(self):
        with pytest.raises(ValueError):
            interpolate_linear([0, 1, 2], [0.0, 1.0], [0.5])

    def test_too_few_points(self):
        with pytest.raises(ValueError):
            interpolate_linear([0], [1.0], [0.5])

    def test_not_increasing(self):
        with pytest.raises(ValueError):
            interpolate_linear([0, 2, 1], [0.0, 1.0, 2.0], [0.5])


class TestDetrendLinear:
    """Test least-squares detrending."""

    def test_removes_line(self):
        values = 3.0 + 0.5 * np.arange(20)
        assert np.allclose(detrend_linear(values), 0.0)

    def test_idempotent(self):
        rng = np.random.default_rng(7)
        values = rng.normal(size=50) + 0.1 * np.arange(50)
        once = detrend_linear(values)
        assert np.allclose(detrend_linear(once), once)

    def test_single_point(self):
        assert detrend_linear([4.2]).tolist() == [0.0]


class TestMovingAverage:
    """Test centred, boundary-clipped smoothing."""

    def test_window_two_is_three_point_average(self):
        result = moving_average([0.0, 3.0, 6.0, 9.0], 2)
        # Edge windows hold two samples, interior windows three
        assert result == pytest.approx([1.5, 3.0, 6.0, 7.5])

    def test_window_larger_than_signal(self):
        values = [1.0, 2.0, 3.0]
        assert moving_average(values, 5).tolist() == values

    def test_window_below_one(self):
        values = [1.0, 5.0, 2.0]
        assert moving_average(values, 0).tolist() == values


class TestRobustStatistics:
    """Test mean, median and IQR outlier filtering."""

    def test_empty_inputs(self):
        assert mean([]) == 0.0
        assert median([]) == 0.0
        assert iqr_filter_outliers([]) == []

    def test_even_median(self):
        assert median([4.0, 1.0, 3.0, 2.0]) == pytest.approx(2.5)

    def test_iqr_drops_outlier(self):
        values = [1.0, 1.1, 0.9, 1.05, 0.95, 10.0, 1.0, 1.02]
        filtered = iqr_filter_outliers(values)
        assert 10.0 not in filtered
        assert len(filtered) == len(values) - 1

    def test_iqr_keeps_order(self):
        values = [3.0, 1.0, 2.0]
        assert iqr_filter_outliers(values) == [3.0, 1.0, 2.0]


class TestPeakDetection:
    """Test peak and trough finding."""

    def test_sine_peak_spacing(self):
        """Peak spacing of a sampled sine matches its period."""
        period = 10
        values = np.sin(2 * np.pi * np.arange(60) / period + 0.3)
        peaks = find_peaks(values, min_distance=1, prominence=0.1)

        spacing = np.diff(peaks)
        assert len(peaks) >= 4
        assert np.all(np.abs(spacing - period) <= 0.05 * period)

    def test_troughs_mirror_peaks(self):
        values = np.sin(2 * np.pi * np.arange(60) / 10 + 0.3)
        assert find_troughs(values, 1, 0.1) == find_peaks(-values, 1, 0.1)

    def test_prominence_gate(self):
        values = [0.0, 1.0, 0.0, 0.05, 0.0, 1.0, 0.0]
        assert find_peaks(values, prominence=0.5) == [1, 5]
        assert find_peaks(values, prominence=0.0) == [1, 3, 5]

    def test_min_distance_keeps_higher(self):
        values = [0.0, 1.0, 0.5, 2.0, 0.0]
        assert find_peaks(values, min_distance=3) == [3]

    def test_plateau_is_not_peak(self):
        assert find_peaks([0.0, 1.0, 1.0, 0.0]) == []

    def test_short_signal(self):
        assert find_peaks([1.0, 2.0]) == []


if __name__ == '__main__':
    pytest.main([__file__, '-v'])

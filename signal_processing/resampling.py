"""
Resampling, detrending and robust aggregation helpers.

Landmark streams arrive at irregular intervals (detector latency varies from
frame to frame) and carry slow drift from the subject shifting in their seat.
Periodic-motion analysis needs a uniformly sampled, drift-free signal.

Engineering approach:
- Linear interpolation onto a uniform grid (extrapolating at the edges)
- Least-squares linear detrending against sample index
- Edge-clipped moving average for light smoothing
- Nearest-rank IQR filtering before taking a median amplitude
"""

import logging
from typing import List, Sequence, Union

import numpy as np
from scipy import signal
from scipy.interpolate import interp1d

logger = logging.getLogger(__name__)

ArrayLike = Union[Sequence[float], np.ndarray]


def interpolate_linear(
    xs: ArrayLike,
    ys: ArrayLike,
    xs_new: ArrayLike
) -> np.ndarray:
    """
    Piecewise linear interpolation with linear extrapolation.

    Query points outside [xs[0], xs[-1]] are extrapolated from the slope of
    the nearest end segment; values are never clamped.

    Args:
        xs: Known sample positions (strictly increasing, at least 2)
        ys: Known sample values
        xs_new: Query positions

    Returns:
        Interpolated values at xs_new

    Raises:
        ValueError: If inputs are mismatched, too short or not increasing
    """
    xs = np.asarray(xs, dtype=float)
    ys = np.asarray(ys, dtype=float)

    if xs.shape != ys.shape:
        raise ValueError(f"xs and ys length mismatch: {len(xs)} != {len(ys)}")
    if len(xs) < 2:
        raise ValueError("Interpolation requires at least 2 known points")
    if np.any(np.diff(xs) <= 0):
        raise ValueError("xs must be strictly increasing")

    interpolator = interp1d(
        xs,
        ys,
        kind='linear',
        fill_value='extrapolate',
        assume_sorted=True
    )

    return interpolator(np.asarray(xs_new, dtype=float))


def detrend_linear(values: ArrayLike) -> np.ndarray:
    """
    Remove the least-squares linear trend (fitted against sample index).

    Used to strip slow translation (leaning, drifting) so that only the
    oscillatory component of a landmark trajectory remains.
    """
    values = np.asarray(values, dtype=float)
    if len(values) < 2:
        # A single point is its own trend
        return np.zeros_like(values)

    return signal.detrend(values, type='linear')


def moving_average(values: ArrayLike, window_size: int) -> np.ndarray:
    """
    Centred moving average with boundary-clipped windows.

    Each output sample averages the inputs within window_size // 2 positions
    on either side. Windows are narrower at the edges (no padding).

    Args:
        values: Input signal
        window_size: Nominal window length; half-width is window_size // 2

    Returns:
        Smoothed signal (input unchanged if window_size < 1 or longer than
        the signal)
    """
    values = np.asarray(values, dtype=float)
    n = len(values)

    if window_size < 1 or window_size > n:
        return values

    half_window = window_size // 2
    cumulative = np.concatenate([[0.0], np.cumsum(values)])

    idx = np.arange(n)
    lo = np.clip(idx - half_window, 0, n - 1)
    hi = np.clip(idx + half_window, 0, n - 1)

    sums = cumulative[hi + 1] - cumulative[lo]
    counts = hi - lo + 1

    return sums / counts


def mean(values: ArrayLike) -> float:
    """Arithmetic mean (0.0 for an empty input)."""
    values = np.asarray(values, dtype=float)
    if len(values) == 0:
        return 0.0
    return float(np.mean(values))


def median(values: ArrayLike) -> float:
    """Median, averaging the two middle values for even lengths (0.0 if empty)."""
    values = np.asarray(values, dtype=float)
    if len(values) == 0:
        return 0.0
    return float(np.median(values))


def iqr_filter_outliers(values: ArrayLike) -> List[float]:
    """
    Drop outliers using the 1.5 * IQR rule.

    Quartiles are taken by nearest rank on the sorted values
    (index floor(0.25 n) and floor(0.75 n)), not by interpolation.

    Args:
        values: Sample values

    Returns:
        Values within [Q1 - 1.5 IQR, Q3 + 1.5 IQR], in original order
    """
    values = [float(v) for v in values]
    if not values:
        return []

    ordered = sorted(values)
    n = len(ordered)
    q1 = ordered[int(np.floor(n * 0.25))]
    q3 = ordered[int(np.floor(n * 0.75))]
    iqr = q3 - q1

    lower = q1 - 1.5 * iqr
    upper = q3 + 1.5 * iqr

    return [v for v in values if lower <= v <= upper]

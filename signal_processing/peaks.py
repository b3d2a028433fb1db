"""
Peak and trough detection for short motion signals.

Prominence here is measured against the lowest value between the candidate
and each signal edge (not against the nearest higher peak as in topographic
prominence). This overstates prominence on multi-modal signals but is the
behaviour the nodding/hand-raise thresholds were tuned against.
"""

from typing import List

import numpy as np


def find_peaks(
    values,
    min_distance: int = 1,
    prominence: float = 0.0
) -> List[int]:
    """
    Find strict local maxima with distance suppression and prominence gating.

    Algorithm:
    1. Scan interior samples for strict local maxima (greater than both
       neighbours).
    2. A candidate closer than min_distance to an accepted peak replaces that
       peak if it is higher, otherwise it is dropped.
    3. Any other candidate is accepted when
       min(value - left_min, value - right_min) >= prominence, with left_min
       and right_min the minima out to each edge of the signal.

    Args:
        values: 1D signal
        min_distance: Minimum index distance between accepted peaks
        prominence: Minimum prominence threshold

    Returns:
        Sorted list of peak indices
    """
    values = np.asarray(values, dtype=float)
    n = len(values)
    if n < 3:
        return []

    # Minimum from the left edge up to i, and from i to the right edge
    left_minima = np.minimum.accumulate(values)
    right_minima = np.minimum.accumulate(values[::-1])[::-1]

    peaks: List[int] = []

    for i in range(1, n - 1):
        current = values[i]
        if not (current > values[i - 1] and current > values[i + 1]):
            continue

        merged = False
        for j, accepted in enumerate(peaks):
            if abs(i - accepted) < min_distance:
                if current > values[accepted]:
                    peaks[j] = i
                merged = True
                break

        if merged:
            continue

        peak_prominence = min(current - left_minima[i], current - right_minima[i])
        if peak_prominence >= prominence:
            peaks.append(i)

    return sorted(peaks)


def find_troughs(
    values,
    min_distance: int = 1,
    prominence: float = 0.0
) -> List[int]:
    """Find troughs by running find_peaks on the negated signal."""
    return find_peaks(-np.asarray(values, dtype=float), min_distance, prominence)

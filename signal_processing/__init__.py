"""
Numeric helpers for landmark signal analysis.

This package provides the building blocks used by the motion estimators:
1. Resampling (linear interpolation onto a uniform grid)
2. Detrending and moving-average smoothing
3. Robust aggregation (median, IQR outlier filtering)
4. Peak/trough detection with prominence gating
"""

from .resampling import (
    interpolate_linear,
    detrend_linear,
    moving_average,
    mean,
    median,
    iqr_filter_outliers
)
from .peaks import find_peaks, find_troughs

__all__ = [
    'interpolate_linear',
    'detrend_linear',
    'moving_average',
    'mean',
    'median',
    'iqr_filter_outliers',
    'find_peaks',
    'find_troughs',
]

"""
Periodic motion analysis from landmark trajectories.

This package implements peak-based oscillation estimation:
1. Head nodding (face-size normalized vertical motion, smoothed across calls)
2. Hand raising (wrist height relative to shoulder, with raise hysteresis)
3. Rolling sample buffers feeding both estimators

Rationale:
- Nodding along to music and raising a hand are deliberate, rhythmic
  reactions; their frequency and amplitude drive the audio mapping
- Estimators are pure; the caller owns buffers and smoothing state
"""

from .periodic_motion import (
    FacePositionSample,
    HandPositionSample,
    MotionEstimate,
    PeriodicMotionConfig,
    RaiseHysteresis,
    NODDING_CONFIG,
    HAND_RAISE_CONFIG,
    estimate_periodic_motion,
    estimate_nodding,
    estimate_hand_raise,
    smooth_amplitude,
    nodding_config_from,
    hand_raise_config_from
)
from .buffers import RollingBuffer

__all__ = [
    'FacePositionSample',
    'HandPositionSample',
    'MotionEstimate',
    'PeriodicMotionConfig',
    'RaiseHysteresis',
    'NODDING_CONFIG',
    'HAND_RAISE_CONFIG',
    'estimate_periodic_motion',
    'estimate_nodding',
    'estimate_hand_raise',
    'smooth_amplitude',
    'nodding_config_from',
    'hand_raise_config_from',
    'RollingBuffer',
]

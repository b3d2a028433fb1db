"""
Periodic motion estimation (head nodding, hand raising).

Estimates the frequency and amplitude of a repetitive movement from a short
window (~3 seconds) of timestamped landmark positions, without an FFT:
peak detection on a resampled, detrended signal is more stable than spectral
analysis on windows this short.

Rationale:
- Nodding is a vertical oscillation of the face; face-size normalization
  makes its amplitude independent of the subject's distance from the camera
- Hand raising is measured as wrist height relative to the shoulder, so a
  steadily raised hand (no oscillation) is still reported through a
  hysteresis-gated is_raised flag
- Amplitude is the median peak-to-trough distance after IQR outlier removal,
  robust to single-frame landmark glitches

Engineering approach:
- One algorithm, parameterized by PeriodicMotionConfig (normalization
  strategy, prominence, noise floor, optional raise hysteresis)
- Pure functions: the caller threads the previous is_raised flag and the
  smoothed amplitude across calls
- Insufficient data is a normal condition and yields the zero estimate
"""

import logging
from dataclasses import dataclass, replace
from typing import Dict, List, Mapping, Optional, Sequence

import numpy as np

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

logger = logging.getLogger(__name__)

FACE_SIZE = 'face_size'
RELATIVE = 'relative'

AMPLITUDE_SMOOTHING_FACTOR = 0.4


@dataclass
class FacePositionSample:
    """
    Face bounding-box position at one detector frame.

    Attributes:
        timestamp: Frame time in milliseconds
        x: Face centre X (pixels)
        y: Face centre Y (pixels)
        width: Face box width (pixels)
        height: Face box height (pixels)
    """
    timestamp: int
    x: float
    y: float
    width: float
    height: float


@dataclass
class HandPositionSample:
    """
    Wrist and shoulder heights for one side of the body.

    Coordinates are normalized image coordinates (0 = top of frame), so the
    wrist is above the shoulder when wrist_y < shoulder_y.
    """
    timestamp: int
    wrist_y: float
    shoulder_y: float


@dataclass
class MotionEstimate:
    """
    Result of one periodic-motion analysis.

    Attributes:
        frequency: Cycle frequency in Hz (0 when no motion detected)
        amplitude: Robust peak-to-trough amplitude (0 when no motion detected)
        is_raised: Hand-raise state, None for estimators without hysteresis
    """
    frequency: float = 0.0
    amplitude: float = 0.0
    is_raised: Optional[bool] = None


@dataclass
class RaiseHysteresis:
    """
    Count-based hysteresis on the most recent uniform samples.

    A lowered hand rises when at least raise_count of the last `window`
    samples exceed raise_threshold; a raised hand lowers only when at least
    lower_count of them fall below lower_threshold.
    """
    raise_threshold: float = 0.03
    lower_threshold: float = 0.01
    window: int = 10
    raise_count: int = 7
    lower_count: int = 8

    def update(self, relative_signal: np.ndarray, previous_is_raised: bool) -> bool:
        recent = np.asarray(relative_signal, dtype=float)[-self.window:]
        above = int(np.sum(recent > self.raise_threshold))
        below = int(np.sum(recent < self.lower_threshold))

        if previous_is_raised:
            return below < self.lower_count
        return above >= self.raise_count


@dataclass
class PeriodicMotionConfig:
    """
    Parameters of one periodic-motion estimator variant.

    Attributes:
        name: Variant name used in log messages
        normalization: FACE_SIZE (x/y/width/height channels) or
                       RELATIVE (wrist_y/shoulder_y channels)
        frame_threshold: Minimum raw and resampled sample count
        target_rate_hz: Uniform resampling rate
        prominence: Minimum peak prominence
        min_amplitude: Noise floor below which no motion is reported
        min_cycles: Minimum peak-to-peak intervals required
        smoothing_window: Moving-average window size
        peak_min_distance: Minimum index distance between peaks
        hysteresis: Optional raise/lower hysteresis (hand raise only)
    """
    name: str
    normalization: str
    frame_threshold: int = 10
    target_rate_hz: float = 10.0
    prominence: float = 0.015
    min_amplitude: float = 0.005
    min_cycles: int = 2
    smoothing_window: int = 2
    peak_min_distance: int = 1
    hysteresis: Optional[RaiseHysteresis] = None

    def with_overrides(self, overrides: Optional[Dict]) -> 'PeriodicMotionConfig':
        """Return a copy with values from a config section applied."""
        if not overrides:
            return self

        updates = {
            key: overrides[key]
            for key in (
                'frame_threshold', 'target_rate_hz', 'prominence',
                'min_amplitude', 'min_cycles', 'smoothing_window',
                'peak_min_distance'
            )
            if key in overrides
        }

        hysteresis = self.hysteresis
        hysteresis_overrides = overrides.get('hysteresis')
        if hysteresis is not None and hysteresis_overrides:
            hysteresis = replace(hysteresis, **{
                key: value for key, value in hysteresis_overrides.items()
                if key in RaiseHysteresis.__dataclass_fields__
            })

        return replace(self, hysteresis=hysteresis, **updates)


NODDING_CONFIG = PeriodicMotionConfig(
    name='nodding',
    normalization=FACE_SIZE,
    prominence=0.015,
    min_amplitude=0.005
)

HAND_RAISE_CONFIG = PeriodicMotionConfig(
    name='hand_raise',
    normalization=RELATIVE,
    prominence=0.01,
    min_amplitude=0.01,
    hysteresis=RaiseHysteresis()
)

_REQUIRED_CHANNELS = {
    FACE_SIZE: ('x', 'y', 'width', 'height'),
    RELATIVE: ('wrist_y', 'shoulder_y'),
}


def nodding_config_from(config: Optional[Dict]) -> PeriodicMotionConfig:
    """Build the nodding estimator config from the 'motion.nodding' section."""
    section = (config or {}).get('motion', {}).get('nodding', {})
    return NODDING_CONFIG.with_overrides(section)


def hand_raise_config_from(config: Optional[Dict]) -> PeriodicMotionConfig:
    """Build the hand-raise estimator config from the 'motion.hand_raise' section."""
    section = (config or {}).get('motion', {}).get('hand_raise', {})
    return HAND_RAISE_CONFIG.with_overrides(section)


def estimate_periodic_motion(
    timestamps: Sequence[float],
    channels: Mapping[str, Sequence[float]],
    config: PeriodicMotionConfig,
    previous_is_raised: bool = False
) -> MotionEstimate:
    """
    Estimate frequency and amplitude of a periodic movement.

    Algorithm:
    1. Validate lengths and finiteness
    2. Normalize timestamps to 0, keep the strictly increasing subsequence
    3. Resample every channel onto a uniform grid at target_rate_hz
    4. Build the motion signal (face-size normalized Y, or shoulder - wrist)
    5. Detrend, smooth, find peaks and troughs
    6. Frequency from mean peak-to-peak interval; amplitude as the median of
       IQR-filtered peak-to-nearest-trough distances
    7. Gate on the noise floor, round (2 decimals Hz, 3 decimals amplitude)

    Args:
        timestamps: Sample times in milliseconds
        channels: Raw position channels keyed by name (see _REQUIRED_CHANNELS)
        config: Estimator variant
        previous_is_raised: Previous hand-raise state (hysteresis variants)

    Returns:
        MotionEstimate (zero estimate when data is insufficient)

    Raises:
        ValueError: For unknown normalization, missing channels or channel
                    arrays whose length differs from timestamps
    """
    required = _REQUIRED_CHANNELS.get(config.normalization)
    if required is None:
        raise ValueError(f"Unknown normalization: {config.normalization!r}")

    missing = [name for name in required if name not in channels]
    if missing:
        raise ValueError(f"{config.name}: missing channels {missing}")

    ts = np.asarray(timestamps, dtype=float)
    raw = {name: np.asarray(channels[name], dtype=float) for name in required}

    for name, values in raw.items():
        if len(values) != len(ts):
            raise ValueError(
                f"{config.name}: channel '{name}' has {len(values)} samples, "
                f"expected {len(ts)}"
            )

    if len(ts) < config.frame_threshold:
        logger.debug(f"{config.name}: {len(ts)} samples < {config.frame_threshold}")
        return _zero_estimate(config)

    if not np.all(np.isfinite(ts)) or not all(np.all(np.isfinite(v)) for v in raw.values()):
        logger.debug(f"{config.name}: non-finite input values")
        return _zero_estimate(config)

    ts = ts - ts[0]
    keep = _strictly_increasing_indices(ts)
    if len(keep) < config.frame_threshold:
        logger.debug(f"{config.name}: only {len(keep)} monotonic samples")
        return _zero_estimate(config)

    ts = ts[keep]
    raw = {name: values[keep] for name, values in raw.items()}

    span = ts[-1] - ts[0]
    if span <= 0:
        return _zero_estimate(config)

    num_samples = int(np.ceil(span * config.target_rate_hz / 1000.0))
    if num_samples < config.frame_threshold:
        logger.debug(f"{config.name}: {num_samples} resampled points over {span:.0f}ms")
        return _zero_estimate(config)

    uniform_times = np.linspace(0.0, span, num_samples)
    uniform = {
        name: interpolate_linear(ts, values, uniform_times)
        for name, values in raw.items()
    }
    if not all(np.all(np.isfinite(v)) for v in uniform.values()):
        return _zero_estimate(config)

    motion_signal = _build_motion_signal(uniform, config)
    if motion_signal is None:
        return _zero_estimate(config)

    is_raised = None
    if config.hysteresis is not None:
        is_raised = config.hysteresis.update(motion_signal, previous_is_raised)

    smoothed = moving_average(detrend_linear(motion_signal), config.smoothing_window)

    peaks = find_peaks(smoothed, config.peak_min_distance, config.prominence)
    troughs = find_troughs(smoothed, config.peak_min_distance, config.prominence)

    cycle_times = np.diff(uniform_times[peaks]) if len(peaks) > 1 else np.array([])
    if len(cycle_times) < config.min_cycles:
        logger.debug(f"{config.name}: {len(cycle_times)} cycles < {config.min_cycles}")
        return MotionEstimate(0.0, 0.0, is_raised)

    mean_cycle = mean(cycle_times)
    frequency = 1000.0 / mean_cycle if mean_cycle > 0 else 0.0

    amplitudes = _peak_to_trough_amplitudes(smoothed, peaks, troughs)
    filtered = iqr_filter_outliers(amplitudes)
    amplitude = median(filtered) if filtered else 0.0

    if amplitude < config.min_amplitude:
        return MotionEstimate(0.0, 0.0, is_raised)

    amplitude = round(float(amplitude), 3)
    if amplitude == 0.0:
        return MotionEstimate(0.0, 0.0, is_raised)

    return MotionEstimate(
        frequency=round(float(frequency), 2),
        amplitude=amplitude,
        is_raised=is_raised
    )


def estimate_nodding(
    samples: Sequence[FacePositionSample],
    config: PeriodicMotionConfig = NODDING_CONFIG
) -> MotionEstimate:
    """Estimate head nodding from face position samples."""
    return estimate_periodic_motion(
        [s.timestamp for s in samples],
        {
            'x': [s.x for s in samples],
            'y': [s.y for s in samples],
            'width': [s.width for s in samples],
            'height': [s.height for s in samples],
        },
        config
    )


def estimate_hand_raise(
    samples: Sequence[HandPositionSample],
    previous_is_raised: bool = False,
    config: PeriodicMotionConfig = HAND_RAISE_CONFIG
) -> MotionEstimate:
    """Estimate hand raising (frequency, amplitude, is_raised) for one side."""
    return estimate_periodic_motion(
        [s.timestamp for s in samples],
        {
            'wrist_y': [s.wrist_y for s in samples],
            'shoulder_y': [s.shoulder_y for s in samples],
        },
        config,
        previous_is_raised=previous_is_raised
    )


def smooth_amplitude(
    previous: float,
    raw_amplitude: float,
    alpha: float = AMPLITUDE_SMOOTHING_FACTOR,
    floor: float = 0.0
) -> float:
    """
    Exponential smoothing of successive amplitude estimates.

    smoothed = previous * (1 - alpha) + raw * alpha, rounded to 3 decimals.
    Rounding alone stalls a decay at 0.001, so while the raw amplitude is 0
    a smoothed value below max(floor, 0.002) snaps to 0.
    """
    smoothed = round(previous * (1.0 - alpha) + raw_amplitude * alpha, 3)
    if raw_amplitude == 0.0 and smoothed < max(floor, 0.002):
        return 0.0
    return smoothed


def _zero_estimate(config: PeriodicMotionConfig) -> MotionEstimate:
    is_raised = False if config.hysteresis is not None else None
    return MotionEstimate(0.0, 0.0, is_raised)


def _strictly_increasing_indices(ts: np.ndarray) -> np.ndarray:
    """Indices of the first-seen strictly increasing subsequence."""
    keep = []
    last = -np.inf
    for i, t in enumerate(ts):
        if t > last:
            keep.append(i)
            last = t
    return np.asarray(keep, dtype=int)


def _build_motion_signal(
    uniform: Dict[str, np.ndarray],
    config: PeriodicMotionConfig
) -> Optional[np.ndarray]:
    if config.normalization == FACE_SIZE:
        face_size = np.sqrt(mean(uniform['width']) * mean(uniform['height']))
        if not np.isfinite(face_size) or face_size <= 0:
            logger.debug(f"{config.name}: invalid face size {face_size}")
            return None
        # Only vertical motion is analyzed; x is validated but unused
        return uniform['y'] / face_size

    # Positive when the wrist is above the shoulder
    return uniform['shoulder_y'] - uniform['wrist_y']


def _peak_to_trough_amplitudes(
    values: np.ndarray,
    peaks: List[int],
    troughs: List[int]
) -> List[float]:
    if not troughs:
        return []

    amplitudes = []
    for peak in peaks:
        nearest = min(troughs, key=lambda trough: abs(trough - peak))
        amplitudes.append(abs(float(values[peak]) - float(values[nearest])))
    return amplitudes

"""
Reaction state classification from facial expression intensities.

Combines blend-shape intensities (smile, jaw-open) averaged over a short
window with the nodding flag into one of six reaction states:
happy, surprised, neutral, nodding+happy, nodding+surprised, nodding+neutral.

Rationale:
- Averaging over ~1 second (about 5 detector frames) removes single-frame
  blend-shape jitter
- Dual thresholds per emotion (activate high, deactivate low) stop the state
  flickering when an expression hovers near a single cut-off
- Nodding is a plain amplitude threshold; the amplitude is already smoothed
  upstream

Engineering approach:
- Pure functions; the caller threads the previous dominant emotion
- A window with too few samples is "no classification" (None), which callers
  treat as "keep the previous recommendation"
"""

import logging
import numbers
from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence

import numpy as np

logger = logging.getLogger(__name__)

HAPPY = 'happy'
SURPRISED = 'surprised'
NEUTRAL = 'neutral'
BASE_EMOTIONS = (HAPPY, SURPRISED, NEUTRAL)

NODDING_PREFIX = 'nodding+'
REACTION_STATES = tuple(
    [NODDING_PREFIX + emotion for emotion in BASE_EMOTIONS] + list(BASE_EMOTIONS)
)


@dataclass
class ExpressionSample:
    """
    Expression intensities at one detector frame.

    Attributes:
        timestamp: Frame time in milliseconds
        smiling: Smile intensity (0-1)
        jaw_open: Jaw-open intensity (0-1)
    """
    timestamp: int
    smiling: float = 0.0
    jaw_open: float = 0.0


@dataclass
class ReactionThresholds:
    """Window and threshold settings for reaction classification."""
    analysis_window_ms: float = 1000.0
    min_samples: int = 3
    smiling_high: float = 0.1
    smiling_low: float = 0.05
    jaw_open_high: float = 0.1
    jaw_open_low: float = 0.05
    nodding: float = 0.005

    @classmethod
    def from_config(cls, config: Optional[Dict]) -> 'ReactionThresholds':
        section = (config or {}).get('reaction', {})
        defaults = cls()
        return cls(
            analysis_window_ms=section.get('analysis_window_ms', defaults.analysis_window_ms),
            min_samples=section.get('min_samples', defaults.min_samples),
            smiling_high=section.get('smiling_threshold', defaults.smiling_high),
            smiling_low=section.get('smiling_release_threshold', defaults.smiling_low),
            jaw_open_high=section.get('jaw_open_threshold', defaults.jaw_open_high),
            jaw_open_low=section.get('jaw_open_release_threshold', defaults.jaw_open_low),
            nodding=section.get('nodding_threshold', defaults.nodding)
        )


@dataclass
class ExpressionClassification:
    """
    Outcome of classifying one expression window.

    Attributes:
        dominant_emotion: happy/surprised/neutral, or None when deferred
        mean_smiling: Mean smile intensity over the window
        mean_jaw_open: Mean jaw-open intensity over the window
        sample_count: Samples inside the window
    """
    dominant_emotion: Optional[str]
    mean_smiling: float = 0.0
    mean_jaw_open: float = 0.0
    sample_count: int = 0

    @property
    def is_deferred(self) -> bool:
        return self.dominant_emotion is None


def select_analysis_window(
    samples: Sequence[ExpressionSample],
    window_ms: float
) -> List[ExpressionSample]:
    """
    Samples within window_ms of the newest sample (inclusive).

    Samples without a timestamp are ignored.
    """
    timed = [s for s in samples if s is not None and s.timestamp is not None]
    if not timed:
        return []

    newest = max(s.timestamp for s in timed)
    return [s for s in timed if newest - s.timestamp <= window_ms]


def determine_dominant_emotion(
    mean_smiling: float,
    mean_jaw_open: float,
    previous_emotion: Optional[str] = None,
    thresholds: Optional[ReactionThresholds] = None
) -> str:
    """
    Pick the dominant emotion with per-emotion hysteresis.

    The previous emotion is kept until its own release threshold is crossed.
    Otherwise happy (smile above the activation threshold) is checked before
    surprised (jaw-open above the activation threshold); neither means neutral.
    """
    t = thresholds or ReactionThresholds()

    if previous_emotion == HAPPY and not mean_smiling < t.smiling_low:
        return HAPPY
    if previous_emotion == SURPRISED and not mean_jaw_open < t.jaw_open_low:
        return SURPRISED

    if mean_smiling > t.smiling_high:
        return HAPPY
    if mean_jaw_open > t.jaw_open_high:
        return SURPRISED
    return NEUTRAL


def classify_expression_window(
    samples: Sequence[ExpressionSample],
    previous_emotion: Optional[str] = None,
    thresholds: Optional[ReactionThresholds] = None
) -> ExpressionClassification:
    """
    Classify the dominant emotion over the most recent expression window.

    Args:
        samples: Expression samples (any order)
        previous_emotion: Dominant emotion of the previous classification
        thresholds: Window and threshold settings

    Returns:
        ExpressionClassification (dominant_emotion None when fewer than
        min_samples fall inside the window)
    """
    t = thresholds or ReactionThresholds()
    window = select_analysis_window(samples, t.analysis_window_ms)

    if len(window) < t.min_samples:
        logger.debug(f"Expression window has {len(window)} samples < {t.min_samples}")
        return ExpressionClassification(None, sample_count=len(window))

    mean_smiling = float(np.mean([s.smiling or 0.0 for s in window]))
    mean_jaw_open = float(np.mean([s.jaw_open or 0.0 for s in window]))

    emotion = determine_dominant_emotion(
        mean_smiling,
        mean_jaw_open,
        previous_emotion,
        t
    )

    return ExpressionClassification(
        dominant_emotion=emotion,
        mean_smiling=mean_smiling,
        mean_jaw_open=mean_jaw_open,
        sample_count=len(window)
    )


def is_nodding(nodding_amplitude, threshold: float = 0.005) -> bool:
    """True when the amplitude is a finite number above the threshold."""
    if isinstance(nodding_amplitude, bool) or not isinstance(nodding_amplitude, numbers.Real):
        return False
    return bool(np.isfinite(nodding_amplitude)) and nodding_amplitude > threshold


def compose_reaction_state(
    dominant_emotion: Optional[str],
    nodding_amplitude: float,
    threshold: float = 0.005
) -> Optional[str]:
    """
    Combine the dominant emotion with the nodding flag.

    Returns:
        'nodding+<emotion>' when nodding, '<emotion>' otherwise, None when the
        emotion is None
    """
    if dominant_emotion is None:
        return None
    if is_nodding(nodding_amplitude, threshold):
        return NODDING_PREFIX + dominant_emotion
    return dominant_emotion

"""
Audio recommendation generation from reaction states.

Looks the reaction state up in the mapping tables and emits a Recommendation
only when it differs meaningfully from the previous emission.

Rationale:
- The reaction tick runs once per second; downstream audio nodes should only
  be retuned when something actually changed
- Small tolerances on numeric fields absorb float noise from re-smoothed
  nodding amplitudes and user-edited tables

Engineering approach:
- A deferred classification (no reaction state) never emits and never
  clears the last emission
- The generator owns only its last emission; tables are passed per call
"""

import logging
import time
from dataclasses import asdict, dataclass
from typing import Any, Callable, Dict, List, Optional

from .classifier import is_nodding
from .mappings import AnomalyHook, MappingTables, log_anomaly

logger = logging.getLogger(__name__)


@dataclass
class Recommendation:
    """
    Audio-processing parameters for one reaction state.

    Attributes:
        reaction_state: One of the six reaction states
        dominant_emotion: happy, surprised or neutral
        is_nodding: Whether the nodding amplitude crossed its threshold
        nodding_amplitude: Smoothed amplitude (0 when not nodding)
        eq_preset: Matching preset keyword, or 'custom'
        eq_vector: 6-band gains in dB
        volume_multiplier: Gain factor (1.0 = unchanged)
        rhythmic_enhancement: Percent (0-100)
        reverb_amount: Percent (0-100)
        delay_amount: Percent (0-100)
        timestamp: Milliseconds
        sample_count: Expression samples behind the classification
    """
    reaction_state: str
    dominant_emotion: str
    is_nodding: bool
    nodding_amplitude: float
    eq_preset: str
    eq_vector: List[float]
    volume_multiplier: float
    rhythmic_enhancement: float
    reverb_amount: float
    delay_amount: float
    timestamp: int
    sample_count: int

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class RecommendationThresholds:
    """Tolerances below which two recommendations count as equal."""
    parameter_tolerance: float = 0.01
    nodding_amplitude_tolerance: float = 0.005
    nodding_threshold: float = 0.005

    @classmethod
    def from_config(cls, config: Optional[Dict]) -> 'RecommendationThresholds':
        section = (config or {}).get('recommendation', {})
        defaults = cls()
        return cls(
            parameter_tolerance=section.get(
                'parameter_tolerance', defaults.parameter_tolerance
            ),
            nodding_amplitude_tolerance=section.get(
                'nodding_amplitude_tolerance', defaults.nodding_amplitude_tolerance
            ),
            nodding_threshold=(config or {}).get('reaction', {}).get(
                'nodding_threshold', defaults.nodding_threshold
            )
        )


def has_recommendation_changed(
    new: Optional[Recommendation],
    old: Optional[Recommendation],
    thresholds: Optional[RecommendationThresholds] = None
) -> bool:
    """
    Decide whether a new recommendation should be emitted.

    Args:
        new: Candidate recommendation
        old: Last emitted recommendation
        thresholds: Numeric tolerances

    Returns:
        True when either side is missing, the reaction state or EQ preset
        differs, or any numeric parameter moved past its tolerance
    """
    if new is None or old is None:
        return True

    t = thresholds or RecommendationThresholds()

    if new.reaction_state != old.reaction_state:
        return True
    if new.eq_preset != old.eq_preset:
        return True

    for name in ('volume_multiplier', 'rhythmic_enhancement', 'reverb_amount', 'delay_amount'):
        if abs(getattr(new, name) - getattr(old, name)) > t.parameter_tolerance:
            return True

    return abs(new.nodding_amplitude - old.nodding_amplitude) > t.nodding_amplitude_tolerance


class RecommendationGenerator:
    """
    Change-debounced recommendation emitter.

    Usage:
        generator = RecommendationGenerator(on_recommendation=apply_audio)
        generator.process('nodding+happy', 'happy', 0.012, tables)
    """

    def __init__(
        self,
        on_recommendation: Optional[Callable[[Recommendation], None]] = None,
        on_anomaly: Optional[AnomalyHook] = None,
        thresholds: Optional[RecommendationThresholds] = None
    ):
        self.on_recommendation = on_recommendation
        self.on_anomaly = on_anomaly or log_anomaly
        self.thresholds = thresholds or RecommendationThresholds()
        self._last: Optional[Recommendation] = None

        logger.info("RecommendationGenerator initialized")

    @property
    def last_recommendation(self) -> Optional[Recommendation]:
        return self._last

    def build(
        self,
        reaction_state: str,
        dominant_emotion: str,
        nodding_amplitude: float,
        tables: Optional[MappingTables] = None,
        timestamp: Optional[int] = None,
        sample_count: int = 0
    ) -> Recommendation:
        """Resolve the mapping tables for a reaction state."""
        tables = tables if tables is not None else MappingTables()
        resolved = tables.lookup(reaction_state, self.on_anomaly)

        nodding = is_nodding(nodding_amplitude, self.thresholds.nodding_threshold)
        if timestamp is None:
            timestamp = int(time.time() * 1000)

        return Recommendation(
            reaction_state=reaction_state,
            dominant_emotion=dominant_emotion,
            is_nodding=nodding,
            nodding_amplitude=float(nodding_amplitude) if nodding else 0.0,
            eq_preset=resolved.eq_preset,
            eq_vector=resolved.eq_vector,
            volume_multiplier=resolved.volume_multiplier,
            rhythmic_enhancement=resolved.rhythmic_enhancement,
            reverb_amount=resolved.reverb_amount,
            delay_amount=resolved.delay_amount,
            timestamp=int(timestamp),
            sample_count=int(sample_count)
        )

    def process(
        self,
        reaction_state: Optional[str],
        dominant_emotion: Optional[str],
        nodding_amplitude: float,
        tables: Optional[MappingTables] = None,
        timestamp: Optional[int] = None,
        sample_count: int = 0
    ) -> Optional[Recommendation]:
        """
        Run one reaction tick.

        Returns:
            The emitted Recommendation, or None when the state was deferred
            or nothing changed
        """
        if reaction_state is None:
            logger.debug("No reaction state this tick; keeping last recommendation")
            return None

        candidate = self.build(
            reaction_state,
            dominant_emotion,
            nodding_amplitude,
            tables,
            timestamp,
            sample_count
        )

        if not has_recommendation_changed(candidate, self._last, self.thresholds):
            logger.debug(f"Recommendation unchanged ({reaction_state})")
            return None

        self._last = candidate
        logger.info(
            f"Recommendation: {candidate.reaction_state} eq={candidate.eq_preset} "
            f"volume={candidate.volume_multiplier:.2f}"
        )

        if self.on_recommendation is not None:
            self.on_recommendation(candidate)

        return candidate

    def reset(self) -> None:
        self._last = None

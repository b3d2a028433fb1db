"""
Reaction pipeline coordinator.

Owns the rolling sample buffers and every piece of state threaded between
ticks (smoothed nodding amplitude, per-hand raise hysteresis, sticky dominant
emotion, last emitted recommendation).

Three ticks drive the pipeline:
1. Sampling: add_frame() appends whatever samples a detector frame carries
2. Motion (~200 ms): update_motion() re-estimates nodding and hand raising
3. Reaction (~1 s): update_recommendation() classifies the expression window
   and emits a recommendation when it changed

Sampling and analysis may run on different threads; buffers lock internally
and estimators only ever see copied snapshots.
"""

import logging
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Union

from motion_analysis import (
    MotionEstimate,
    RollingBuffer,
    estimate_hand_raise,
    estimate_nodding,
    hand_raise_config_from,
    nodding_config_from,
    smooth_amplitude
)
from motion_analysis.periodic_motion import AMPLITUDE_SMOOTHING_FACTOR
from reaction_mapping import (
    MappingTables,
    Recommendation,
    RecommendationGenerator,
    RecommendationThresholds,
    ReactionThresholds,
    classify_expression_window,
    compose_reaction_state
)
from reaction_mapping.mappings import AnomalyHook

from .frames import DetectorFrame, parse_frame

logger = logging.getLogger(__name__)

HAND_SIDES = ('left', 'right')


class ReactionPipeline:
    """
    Buffers detector frames and turns them into audio recommendations.

    Usage:
        pipeline = ReactionPipeline(config, on_recommendation=apply_audio)
        pipeline.add_frame(frame)
        pipeline.update_motion()           # every ~200 ms
        pipeline.update_recommendation()   # every ~1 s
    """

    def __init__(
        self,
        config: Optional[Dict] = None,
        tables: Optional[MappingTables] = None,
        on_recommendation: Optional[Callable[[Recommendation], None]] = None,
        on_anomaly: Optional[AnomalyHook] = None
    ):
        config = config or {}
        pipeline_cfg = config.get('pipeline', {})

        self.nodding_config = nodding_config_from(config)
        self.hand_raise_config = hand_raise_config_from(config)
        self.amplitude_smoothing = config.get('motion', {}).get('nodding', {}).get(
            'amplitude_smoothing', AMPLITUDE_SMOOTHING_FACTOR
        )
        self.reaction_thresholds = ReactionThresholds.from_config(config)

        self.motion_interval_ms = pipeline_cfg.get('motion_interval_ms', 200)
        self.reaction_interval_ms = pipeline_cfg.get('reaction_interval_ms', 1000)

        self.face_buffer = RollingBuffer(pipeline_cfg.get('face_window_ms', 3000), 'face')
        self.hand_buffers = {
            side: RollingBuffer(pipeline_cfg.get('hand_window_ms', 3000), f'{side}_hand')
            for side in HAND_SIDES
        }
        self.expression_buffer = RollingBuffer(
            pipeline_cfg.get('expression_window_ms', 10000), 'expression'
        )

        self.tables = tables if tables is not None else MappingTables.from_config(config)
        self.generator = RecommendationGenerator(
            on_recommendation=on_recommendation,
            on_anomaly=on_anomaly,
            thresholds=RecommendationThresholds.from_config(config)
        )

        self._reset_state()

        logger.info(
            f"ReactionPipeline initialized: motion every {self.motion_interval_ms} ms, "
            f"reaction every {self.reaction_interval_ms} ms"
        )

    def _reset_state(self) -> None:
        self.nodding = MotionEstimate()
        self.nodding_amplitude = 0.0
        self.hands: Dict[str, MotionEstimate] = {
            side: MotionEstimate(is_raised=False) for side in HAND_SIDES
        }
        self.reaction_state: Optional[str] = None
        self.dominant_emotion: Optional[str] = None

    @property
    def left_hand(self) -> MotionEstimate:
        return self.hands['left']

    @property
    def right_hand(self) -> MotionEstimate:
        return self.hands['right']

    @property
    def last_recommendation(self) -> Optional[Recommendation]:
        return self.generator.last_recommendation

    def set_tables(self, tables: MappingTables) -> None:
        """Replace the mapping tables; takes effect on the next reaction tick."""
        self.tables = tables

    def add_frame(self, frame: Union[DetectorFrame, Mapping[str, Any]]) -> DetectorFrame:
        """
        Sampling tick: buffer the samples carried by one frame.

        A frame without a face drops the face buffer and zeroes nodding; a
        frame without one side's hand does the same for that hand.
        """
        if not isinstance(frame, DetectorFrame):
            frame = parse_frame(frame)

        if frame.face is not None:
            self.face_buffer.append(frame.face)
        elif len(self.face_buffer) or self.nodding_amplitude:
            logger.debug(f"Frame {frame.timestamp}: face lost, nodding cleared")
            self._clear_nodding()

        if frame.expression is not None:
            self.expression_buffer.append(frame.expression)

        for side, buffer in self.hand_buffers.items():
            sample = frame.hands.get(side)
            if sample is not None:
                buffer.append(sample)
            elif len(buffer) or self.hands[side].is_raised:
                logger.debug(f"Frame {frame.timestamp}: {side} hand lost, cleared")
                self._clear_hand(side)

        return frame

    def _clear_nodding(self) -> None:
        self.face_buffer.clear()
        self.nodding = MotionEstimate()
        self.nodding_amplitude = 0.0

    def _clear_hand(self, side: str) -> None:
        self.hand_buffers[side].clear()
        self.hands[side] = MotionEstimate(is_raised=False)

    def update_motion(self) -> None:
        """Motion tick: re-estimate nodding and both hands from the buffers."""
        face_samples = self.face_buffer.snapshot_and_prune()
        if len(face_samples) >= self.nodding_config.frame_threshold:
            self.nodding = estimate_nodding(face_samples, self.nodding_config)
            self.nodding_amplitude = smooth_amplitude(
                self.nodding_amplitude,
                self.nodding.amplitude,
                self.amplitude_smoothing,
                floor=self.nodding_config.min_amplitude
            )
            logger.debug(
                f"Nodding: {self.nodding.frequency} Hz, raw {self.nodding.amplitude}, "
                f"smoothed {self.nodding_amplitude}"
            )

        for side, buffer in self.hand_buffers.items():
            hand_samples = buffer.snapshot_and_prune()
            if len(hand_samples) < self.hand_raise_config.frame_threshold:
                continue

            previous = bool(self.hands[side].is_raised)
            self.hands[side] = estimate_hand_raise(
                hand_samples,
                previous_is_raised=previous,
                config=self.hand_raise_config
            )
            if bool(self.hands[side].is_raised) != previous:
                logger.debug(f"{side} hand raised: {self.hands[side].is_raised}")

    def update_recommendation(self, timestamp: Optional[int] = None) -> Optional[Recommendation]:
        """
        Reaction tick: classify, compose the reaction state, run the generator.

        Args:
            timestamp: Recommendation time in ms (defaults to the newest
                expression sample)

        Returns:
            The emitted Recommendation, or None
        """
        samples = self.expression_buffer.snapshot_and_prune()
        classification = classify_expression_window(
            samples,
            self.dominant_emotion,
            self.reaction_thresholds
        )

        if classification.is_deferred:
            logger.debug(
                f"Reaction tick deferred: {classification.sample_count} samples in window"
            )
            return None

        self.dominant_emotion = classification.dominant_emotion
        self.reaction_state = compose_reaction_state(
            self.dominant_emotion,
            self.nodding_amplitude,
            self.reaction_thresholds.nodding
        )

        if timestamp is None:
            timestamp = self.expression_buffer.newest_timestamp

        return self.generator.process(
            self.reaction_state,
            self.dominant_emotion,
            self.nodding_amplitude,
            self.tables,
            timestamp,
            classification.sample_count
        )

    def replay(
        self,
        frames: Iterable[Union[DetectorFrame, Mapping[str, Any]]]
    ) -> List[Recommendation]:
        """
        Feed recorded frames in order, running ticks on frame time.

        Returns:
            Recommendations emitted during the replay
        """
        emitted = []
        last_motion = None
        last_reaction = None

        for raw in frames:
            frame = self.add_frame(raw)
            now = frame.timestamp

            if last_motion is None or now - last_motion >= self.motion_interval_ms:
                self.update_motion()
                last_motion = now

            if last_reaction is None or now - last_reaction >= self.reaction_interval_ms:
                recommendation = self.update_recommendation(now)
                if recommendation is not None:
                    emitted.append(recommendation)
                last_reaction = now

        logger.info(f"Replay finished: {len(emitted)} recommendations emitted")
        return emitted

    def reset(self) -> None:
        """Clear buffers and all threaded state for a new session."""
        self.face_buffer.clear()
        self.expression_buffer.clear()
        for buffer in self.hand_buffers.values():
            buffer.clear()

        self._reset_state()
        self.generator.reset()

        logger.info("ReactionPipeline reset")

"""
Unit tests for reaction state classification and recommendation mapping.

Tests cover:
- Expression window selection and emotion hysteresis
- Reaction state composition with nodding
- Mapping table lookups, presets and malformed entries
- Change-debounced recommendation emission
"""

import pytest # pyright: ignore[reportMissingImports]
from pathlib import Path

import sys
sys.path.insert(0, str(Path(__file__).parent.parent))

from reaction_mapping import (
    HAPPY,
    SURPRISED,
    NEUTRAL,
    ExpressionSample,
    ReactionThresholds,
    MappingTables,
    Recommendation,
    RecommendationGenerator,
    classify_expression_window,
    determine_dominant_emotion,
    compose_reaction_state,
    has_recommendation_changed,
    preset_name_for,
    resolve_eq
)


def expression_window(smiling=0.0, jaw_open=0.0, count=5, start_ms=0, step_ms=200):
    return [
        ExpressionSample(start_ms + i * step_ms, smiling, jaw_open)
        for i in range(count)
    ]


class AnomalyRecorder:
    """Collects anomaly reports."""

    def __init__(self):
        self.reports = []

    def __call__(self, table, reaction_state, value):
        self.reports.append((table, reaction_state, value))


class TestExpressionClassification:
    """Test dominant emotion classification."""

    def test_hysteresis_sequence(self):
        """Smile decays through the dead band before returning to neutral."""
        emotion = NEUTRAL
        observed = []
        for smiling in [0.11, 0.09, 0.07, 0.04]:
            emotion = determine_dominant_emotion(smiling, 0.0, emotion)
            observed.append(emotion)

        assert observed == [HAPPY, HAPPY, HAPPY, NEUTRAL]

    def test_sticky_emotion_survives_other_activation(self):
        """An active emotion holds until its own release threshold."""
        assert determine_dominant_emotion(0.08, 0.5, HAPPY) == HAPPY
        assert determine_dominant_emotion(0.3, 0.08, SURPRISED) == SURPRISED

    def test_happy_checked_before_surprised(self):
        assert determine_dominant_emotion(0.2, 0.2, NEUTRAL) == HAPPY
        assert determine_dominant_emotion(0.0, 0.2, None) == SURPRISED

    def test_window_uses_recent_samples_only(self):
        samples = expression_window(smiling=0.9, count=5, start_ms=0)
        samples += expression_window(smiling=0.0, count=6, start_ms=5000)

        result = classify_expression_window(samples, NEUTRAL)
        assert result.dominant_emotion == NEUTRAL
        assert result.sample_count == 6
        assert result.mean_smiling == pytest.approx(0.0)

    def test_window_boundary_inclusive(self):
        samples = [ExpressionSample(t, 0.5, 0.0) for t in (0, 500, 1000)]
        result = classify_expression_window(samples)
        assert result.sample_count == 3
        assert result.dominant_emotion == HAPPY

    def test_too_few_samples_defers(self):
        result = classify_expression_window(expression_window(smiling=0.5, count=2))
        assert result.is_deferred
        assert result.dominant_emotion is None

    def test_thresholds_from_config(self):
        thresholds = ReactionThresholds.from_config({
            'reaction': {'smiling_threshold': 0.3, 'min_samples': 2}
        })
        assert thresholds.smiling_high == 0.3
        assert thresholds.min_samples == 2
        assert thresholds.jaw_open_high == 0.1


class TestReactionStateComposition:
    """Test combining the emotion with nodding."""

    def test_nodding_prefix(self):
        assert compose_reaction_state(HAPPY, 0.01) == 'nodding+happy'
        assert compose_reaction_state(HAPPY, 0.001) == HAPPY

    def test_deferred_emotion(self):
        assert compose_reaction_state(None, 0.5) is None

    def test_non_finite_amplitude_is_not_nodding(self):
        assert compose_reaction_state(SURPRISED, float('nan')) == SURPRISED
        assert compose_reaction_state(SURPRISED, None) == SURPRISED


class TestMappingTables:
    """Test table lookups and EQ resolution."""

    def test_default_tables(self):
        resolved = MappingTables().lookup('nodding+neutral')
        assert resolved.eq_preset == 'bass-boost'
        assert resolved.eq_vector == [8.0, 6.0, 3.0, 0.0, -2.0, -3.0]
        assert resolved.volume_multiplier == pytest.approx(1.45)

        surprised = MappingTables().lookup('surprised')
        assert surprised.reverb_amount == 50
        assert surprised.delay_amount == 40

    def test_missing_key_falls_back_silently(self):
        recorder = AnomalyRecorder()
        resolved = MappingTables.empty().lookup('happy', recorder)

        assert resolved.eq_preset == 'flat'
        assert resolved.eq_vector == [0.0] * 6
        assert resolved.volume_multiplier == 1.0
        assert resolved.rhythmic_enhancement == 0.0
        assert recorder.reports == []

    def test_preset_keyword(self):
        assert resolve_eq('warm') == ('warm', [3.0, 6.0, 3.0, 0.0, 0.0, 0.0])

    def test_vector_identity(self):
        assert preset_name_for([-4, -3, 5, 8, 7, 3]) == 'vocal'
        assert preset_name_for([1, 1, 1, 1, 1, 1]) == 'custom'

    def test_malformed_eq_reported(self):
        recorder = AnomalyRecorder()
        assert resolve_eq([1, 2, 3], 'happy', recorder) == ('flat', [0.0] * 6)
        assert resolve_eq('loudness', 'happy', recorder)[0] == 'flat'
        assert resolve_eq([0, 0, 0, 0, 0, float('inf')], 'happy', recorder)[0] == 'flat'

        assert [r[0] for r in recorder.reports] == ['eq', 'eq', 'eq']

    def test_malformed_volume_reported(self):
        recorder = AnomalyRecorder()
        tables = MappingTables(volume={'happy': 'loud'}, reverb={'happy': float('nan')})
        resolved = tables.lookup('happy', recorder)

        assert resolved.volume_multiplier == 1.0
        assert resolved.reverb_amount == 0.0
        assert ('volume', 'happy', 'loud') in recorder.reports
        assert len(recorder.reports) == 2

    def test_from_config_overlays_defaults(self):
        tables = MappingTables.from_config({
            'mappings': {'volume': {'happy': 1.1}, 'eq': {'happy': 'bright'}}
        })
        resolved = tables.lookup('happy')

        assert resolved.volume_multiplier == pytest.approx(1.1)
        assert resolved.eq_preset == 'bright'
        assert tables.volume['nodding+neutral'] == 1.45


class TestRecommendationGenerator:
    """Test change-debounced emission."""

    def test_identical_ticks_emit_once(self):
        emitted = []
        generator = RecommendationGenerator(on_recommendation=emitted.append)
        tables = MappingTables()

        first = generator.process(HAPPY, HAPPY, 0.0, tables, timestamp=1000)
        second = generator.process(HAPPY, HAPPY, 0.0, tables, timestamp=2000)

        assert first is not None
        assert second is None
        assert len(emitted) == 1
        assert generator.last_recommendation is first

    def test_volume_change_emits_again(self):
        emitted = []
        generator = RecommendationGenerator(on_recommendation=emitted.append)
        generator.process(HAPPY, HAPPY, 0.0, MappingTables(), timestamp=1000)

        louder = MappingTables(volume={'happy': 1.02})
        generator.process(HAPPY, HAPPY, 0.0, louder, timestamp=2000)

        assert len(emitted) == 2
        assert emitted[-1].volume_multiplier == pytest.approx(1.02)

    def test_small_volume_change_ignored(self):
        generator = RecommendationGenerator()
        generator.process(HAPPY, HAPPY, 0.0, MappingTables(), timestamp=1000)
        result = generator.process(HAPPY, HAPPY, 0.0, MappingTables(volume={'happy': 1.005}))
        assert result is None

    def test_deferred_state_skipped(self):
        emitted = []
        generator = RecommendationGenerator(on_recommendation=emitted.append)
        generator.process(HAPPY, HAPPY, 0.0, MappingTables(), timestamp=1000)

        assert generator.process(None, None, 0.0, MappingTables()) is None
        assert len(emitted) == 1
        assert generator.last_recommendation.reaction_state == HAPPY

    def test_nodding_fields(self):
        generator = RecommendationGenerator()
        nodding = generator.build('nodding+happy', HAPPY, 0.012, MappingTables(), 0, 5)
        still = generator.build(HAPPY, HAPPY, 0.003, MappingTables(), 0, 5)

        assert nodding.is_nodding is True
        assert nodding.nodding_amplitude == pytest.approx(0.012)
        assert nodding.eq_preset == 'vocal'
        assert still.is_nodding is False
        assert still.nodding_amplitude == 0.0

    def test_reset(self):
        emitted = []
        generator = RecommendationGenerator(on_recommendation=emitted.append)
        generator.process(NEUTRAL, NEUTRAL, 0.0, MappingTables(), timestamp=1000)
        generator.reset()
        generator.process(NEUTRAL, NEUTRAL, 0.0, MappingTables(), timestamp=2000)

        assert len(emitted) == 2

    def test_to_dict(self):
        recommendation = RecommendationGenerator().build(
            'surprised', SURPRISED, 0.0, MappingTables(), timestamp=1234, sample_count=4
        )
        record = recommendation.to_dict()

        assert record['reaction_state'] == 'surprised'
        assert record['eq_vector'] == [0.0] * 6
        assert record['timestamp'] == 1234
        assert record['sample_count'] == 4


class TestChangePredicate:
    """Test has_recommendation_changed."""

    def make(self, **overrides):
        fields = dict(
            reaction_state=HAPPY,
            dominant_emotion=HAPPY,
            is_nodding=False,
            nodding_amplitude=0.0,
            eq_preset='flat',
            eq_vector=[0.0] * 6,
            volume_multiplier=1.0,
            rhythmic_enhancement=100.0,
            reverb_amount=0.0,
            delay_amount=0.0,
            timestamp=0,
            sample_count=5
        )
        fields.update(overrides)
        return Recommendation(**fields)

    def test_missing_side(self):
        assert has_recommendation_changed(self.make(), None)
        assert has_recommendation_changed(None, self.make())

    def test_tolerances(self):
        base = self.make()
        assert not has_recommendation_changed(self.make(reverb_amount=0.005), base)
        assert has_recommendation_changed(self.make(reverb_amount=0.02), base)
        assert not has_recommendation_changed(self.make(nodding_amplitude=0.004), base)
        assert has_recommendation_changed(self.make(nodding_amplitude=0.006), base)

    def test_identity_fields(self):
        base = self.make()
        assert has_recommendation_changed(self.make(eq_preset='warm'), base)
        assert has_recommendation_changed(self.make(reaction_state=NEUTRAL), base)
        assert not has_recommendation_changed(self.make(timestamp=999), base)


if __name__ == '__main__':
    pytest.main([__file__, '-v'])

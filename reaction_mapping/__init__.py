"""
Reaction state classification and audio recommendation mapping.

Turns expression windows plus the nodding amplitude into one of six reaction
states, then maps each state through user-editable tables into EQ, volume
and effect settings.
"""

from .classifier import (
    HAPPY,
    SURPRISED,
    NEUTRAL,
    REACTION_STATES,
    ExpressionSample,
    ExpressionClassification,
    ReactionThresholds,
    classify_expression_window,
    determine_dominant_emotion,
    compose_reaction_state,
    is_nodding
)
from .mappings import (
    EQ_BANDS,
    EQ_BAND_FREQUENCIES_HZ,
    EQ_PRESETS,
    MappingTables,
    ResolvedMapping,
    preset_name_for,
    resolve_eq
)
from .recommendation import (
    Recommendation,
    RecommendationGenerator,
    RecommendationThresholds,
    has_recommendation_changed
)

__all__ = [
    'HAPPY',
    'SURPRISED',
    'NEUTRAL',
    'REACTION_STATES',
    'ExpressionSample',
    'ExpressionClassification',
    'ReactionThresholds',
    'classify_expression_window',
    'determine_dominant_emotion',
    'compose_reaction_state',
    'is_nodding',
    'EQ_BANDS',
    'EQ_BAND_FREQUENCIES_HZ',
    'EQ_PRESETS',
    'MappingTables',
    'ResolvedMapping',
    'preset_name_for',
    'resolve_eq',
    'Recommendation',
    'RecommendationGenerator',
    'RecommendationThresholds',
    'has_recommendation_changed',
]

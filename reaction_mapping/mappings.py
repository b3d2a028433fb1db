"""
Reaction-state to audio-parameter mapping tables.

Five user-editable tables map each reaction state to:
- EQ: 6-band gain vector in dB (low, low-mid, mid, high-mid, high, presence),
  stored either as a vector or as a legacy preset keyword
- Volume multiplier (1.0 = unchanged)
- Rhythmic enhancement, reverb and delay amounts (0-100 %)

Lookups never raise. A missing entry falls back to the neutral value (flat EQ,
volume 1.0, effects 0). A malformed entry falls back the same way and is
reported through an anomaly hook so a bad setting cannot silence playback.
"""

import logging
import numbers
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Tuple

import numpy as np

logger = logging.getLogger(__name__)

EQ_BANDS = ('low', 'low_mid', 'mid', 'high_mid', 'high', 'presence')
EQ_BAND_FREQUENCIES_HZ = (60, 170, 350, 1000, 3500, 10000)

FLAT_PRESET = 'flat'
CUSTOM_PRESET = 'custom'

EQ_PRESETS: Dict[str, Tuple[float, ...]] = {
    'flat': (0, 0, 0, 0, 0, 0),
    'bass-boost': (8, 6, 3, 0, -2, -3),
    'treble-boost': (-3, -2, 0, 3, 6, 8),
    'vocal': (-4, -3, 5, 8, 7, 3),
    'warm': (3, 6, 3, 0, 0, 0),
    'bright': (0, 0, 0, 0, 6, 9),
    'muddy': (-3, -6, -3, 0, 0, 0),
    'harsh': (0, 0, 0, -3, -6, -3),
}

DEFAULT_EQ_MAPPINGS = {
    'nodding+happy': list(EQ_PRESETS['vocal']),
    'nodding+surprised': list(EQ_PRESETS['treble-boost']),
    'nodding+neutral': list(EQ_PRESETS['bass-boost']),
    'happy': list(EQ_PRESETS['flat']),
    'surprised': list(EQ_PRESETS['flat']),
    'neutral': list(EQ_PRESETS['flat']),
}

DEFAULT_VOLUME_MAPPINGS = {
    'nodding+happy': 1.3,
    'nodding+surprised': 1.3,
    'nodding+neutral': 1.45,
    'happy': 1.0,
    'surprised': 1.0,
    'neutral': 1.0,
}

DEFAULT_RHYTHMIC_ENHANCEMENT_MAPPINGS = {
    'nodding+happy': 0,
    'nodding+surprised': 0,
    'nodding+neutral': 0,
    'happy': 100,
    'surprised': 0,
    'neutral': 0,
}

DEFAULT_REVERB_MAPPINGS = {
    'nodding+happy': 0,
    'nodding+surprised': 0,
    'nodding+neutral': 0,
    'happy': 0,
    'surprised': 50,
    'neutral': 0,
}

DEFAULT_DELAY_MAPPINGS = {
    'nodding+happy': 0,
    'nodding+surprised': 0,
    'nodding+neutral': 0,
    'happy': 0,
    'surprised': 40,
    'neutral': 0,
}

DEFAULT_VOLUME = 1.0
DEFAULT_EFFECT_AMOUNT = 0.0

AnomalyHook = Callable[[str, Optional[str], Any], None]


def log_anomaly(table: str, reaction_state: Optional[str], value: Any) -> None:
    """Default anomaly hook: log and carry on with the fallback."""
    logger.warning(
        f"Malformed {table} mapping for '{reaction_state}': {value!r}; using default"
    )


@dataclass
class ResolvedMapping:
    """Audio parameters looked up for one reaction state."""
    eq_preset: str
    eq_vector: List[float]
    volume_multiplier: float
    rhythmic_enhancement: float
    reverb_amount: float
    delay_amount: float


@dataclass
class MappingTables:
    """
    The five reaction-state mapping tables.

    Tables are plain dicts owned by the settings layer; replace them between
    ticks rather than mutating them during analysis.
    """
    eq: Dict[str, Any] = field(default_factory=lambda: dict(DEFAULT_EQ_MAPPINGS))
    volume: Dict[str, Any] = field(default_factory=lambda: dict(DEFAULT_VOLUME_MAPPINGS))
    rhythmic_enhancement: Dict[str, Any] = field(
        default_factory=lambda: dict(DEFAULT_RHYTHMIC_ENHANCEMENT_MAPPINGS)
    )
    reverb: Dict[str, Any] = field(default_factory=lambda: dict(DEFAULT_REVERB_MAPPINGS))
    delay: Dict[str, Any] = field(default_factory=lambda: dict(DEFAULT_DELAY_MAPPINGS))

    @classmethod
    def empty(cls) -> 'MappingTables':
        """Tables with no entries (every lookup uses the fallback)."""
        return cls(eq={}, volume={}, rhythmic_enhancement={}, reverb={}, delay={})

    @classmethod
    def from_config(cls, config: Optional[Dict]) -> 'MappingTables':
        """
        Overlay the 'mappings' config section on the default tables.

        Example YAML:
            mappings:
              volume:
                nodding+neutral: 1.2
              eq:
                happy: warm
        """
        section = (config or {}).get('mappings', {}) or {}
        tables = cls()

        for name in ('eq', 'volume', 'rhythmic_enhancement', 'reverb', 'delay'):
            overrides = section.get(name)
            if overrides:
                merged = dict(getattr(tables, name))
                merged.update(overrides)
                setattr(tables, name, merged)

        return tables

    def lookup(
        self,
        reaction_state: Optional[str],
        on_anomaly: Optional[AnomalyHook] = None
    ) -> ResolvedMapping:
        """Resolve every table for one reaction state."""
        hook = on_anomaly or log_anomaly
        eq_preset, eq_vector = resolve_eq(self.eq.get(reaction_state), reaction_state, hook)

        return ResolvedMapping(
            eq_preset=eq_preset,
            eq_vector=eq_vector,
            volume_multiplier=resolve_numeric(
                'volume', self.volume.get(reaction_state), reaction_state, DEFAULT_VOLUME, hook
            ),
            rhythmic_enhancement=resolve_numeric(
                'rhythmic_enhancement', self.rhythmic_enhancement.get(reaction_state),
                reaction_state, DEFAULT_EFFECT_AMOUNT, hook
            ),
            reverb_amount=resolve_numeric(
                'reverb', self.reverb.get(reaction_state), reaction_state,
                DEFAULT_EFFECT_AMOUNT, hook
            ),
            delay_amount=resolve_numeric(
                'delay', self.delay.get(reaction_state), reaction_state,
                DEFAULT_EFFECT_AMOUNT, hook
            )
        )


def preset_name_for(vector) -> str:
    """Name of the preset equal to this vector, or 'custom'."""
    values = tuple(float(v) for v in vector)
    for name, preset in EQ_PRESETS.items():
        if values == tuple(float(v) for v in preset):
            return name
    return CUSTOM_PRESET


def resolve_eq(
    entry: Any,
    reaction_state: Optional[str] = None,
    on_anomaly: Optional[AnomalyHook] = None
) -> Tuple[str, List[float]]:
    """
    Resolve an EQ mapping entry to (preset identity, 6-band vector).

    Accepts a 6-vector or a preset keyword. A missing entry is flat; any other
    shape is reported and treated as flat.
    """
    flat = [float(v) for v in EQ_PRESETS[FLAT_PRESET]]

    if entry is None:
        return FLAT_PRESET, flat

    if isinstance(entry, str):
        if entry in EQ_PRESETS:
            return entry, [float(v) for v in EQ_PRESETS[entry]]
        (on_anomaly or log_anomaly)('eq', reaction_state, entry)
        return FLAT_PRESET, flat

    if isinstance(entry, (list, tuple, np.ndarray)) and len(entry) == len(EQ_BANDS):
        if all(_is_finite_number(v) for v in entry):
            vector = [float(v) for v in entry]
            return preset_name_for(vector), vector

    (on_anomaly or log_anomaly)('eq', reaction_state, entry)
    return FLAT_PRESET, flat


def resolve_numeric(
    table: str,
    entry: Any,
    reaction_state: Optional[str],
    default: float,
    on_anomaly: Optional[AnomalyHook] = None
) -> float:
    """Resolve a scalar mapping entry, falling back to default."""
    if entry is None:
        return default
    if _is_finite_number(entry):
        return float(entry)

    (on_anomaly or log_anomaly)(table, reaction_state, entry)
    return default


def _is_finite_number(value: Any) -> bool:
    if isinstance(value, bool) or not isinstance(value, numbers.Real):
        return False
    return bool(np.isfinite(value))

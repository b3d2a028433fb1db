"""
Detector frame adapters.

Converts per-frame detector output (face landmarks, blend-shape scores, pose
keypoints) into the timestamped samples consumed by the motion estimators and
the reaction classifier.

Payload fields (all optional except timestamp):
- face: precomputed box {center_x, center_y, width, height}
- face_landmarks: normalized [x, y] points (or {x, y} dicts)
- expression / expressionScores: {smiling, jaw_open | jawOpen}
- blendshapes: [{categoryName, score}, ...] or {name: score}
- hands: {left: {wrist_y, shoulder_y}, right: {...}}
- pose_landmarks: 33 normalized pose keypoints
- frame_width / frame_height: pixel size used for face_landmarks boxes

Anything missing or malformed simply produces no sample of that kind.
"""

import logging
import math
import numbers
from dataclasses import dataclass, field
from typing import Any, Dict, Mapping, Optional, Sequence, Tuple

from motion_analysis import FacePositionSample, HandPositionSample
from reaction_mapping import ExpressionSample

logger = logging.getLogger(__name__)

DEFAULT_FRAME_WIDTH = 640
DEFAULT_FRAME_HEIGHT = 480

# MediaPipe Pose landmark indices
LEFT_SHOULDER = 11
RIGHT_SHOULDER = 12
LEFT_WRIST = 15
RIGHT_WRIST = 16

HAND_KEYPOINTS = {
    'left': (LEFT_WRIST, LEFT_SHOULDER),
    'right': (RIGHT_WRIST, RIGHT_SHOULDER),
}


@dataclass
class FaceBox:
    """Face bounding box in pixels."""
    left: int
    top: int
    width: int
    height: int
    center_x: int
    center_y: int


@dataclass
class FaceReactions:
    """Blend-shape derived expression intensities (0-1)."""
    smiling: float = 0.0
    jaw_open: float = 0.0


@dataclass
class DetectorFrame:
    """
    Samples carried by one detector frame.

    Attributes:
        timestamp: Frame time in milliseconds
        face: Face position sample, if a face was detected
        expression: Expression sample, if blend-shapes were available
        hands: Hand samples keyed by 'left' / 'right'
    """
    timestamp: int
    face: Optional[FacePositionSample] = None
    expression: Optional[ExpressionSample] = None
    hands: Dict[str, HandPositionSample] = field(default_factory=dict)


def compute_face_bounding_box(
    landmarks: Optional[Sequence],
    frame_width: int = DEFAULT_FRAME_WIDTH,
    frame_height: int = DEFAULT_FRAME_HEIGHT
) -> Optional[FaceBox]:
    """
    Bounding box of normalized face landmarks, scaled to pixels.

    Args:
        landmarks: Normalized (0-1) points as [x, y] pairs or {x, y} dicts
        frame_width: Frame width in pixels
        frame_height: Frame height in pixels

    Returns:
        FaceBox, or None when there are no usable landmarks
    """
    if not landmarks:
        return None

    points = [p for p in (_point_xy(lm) for lm in landmarks) if p is not None]
    if not points:
        return None

    xs = [p[0] for p in points]
    ys = [p[1] for p in points]
    min_x, max_x = min(xs), max(xs)
    min_y, max_y = min(ys), max(ys)

    left = _round_half_up(min_x * frame_width)
    top = _round_half_up(min_y * frame_height)
    width = _round_half_up((max_x - min_x) * frame_width)
    height = _round_half_up((max_y - min_y) * frame_height)

    return FaceBox(
        left=left,
        top=top,
        width=width,
        height=height,
        center_x=_round_half_up(left + width / 2),
        center_y=_round_half_up(top + height / 2)
    )


def extract_face_reactions(blendshapes: Any) -> FaceReactions:
    """
    Smile and jaw-open intensities from blend-shape scores.

    Smiling is the mean of mouthSmileLeft and mouthSmileRight. Missing scores
    count as 0; both values are rounded to 3 decimals.
    """
    if not blendshapes:
        return FaceReactions()

    if isinstance(blendshapes, Mapping):
        scores = dict(blendshapes)
    else:
        scores = {}
        for entry in blendshapes:
            if isinstance(entry, Mapping) and 'categoryName' in entry:
                scores.setdefault(entry['categoryName'], entry.get('score', 0))

    def score(name: str) -> float:
        value = scores.get(name, 0)
        return float(value) if _is_finite(value) else 0.0

    smiling = (score('mouthSmileLeft') + score('mouthSmileRight')) / 2
    return FaceReactions(
        smiling=round(smiling, 3),
        jaw_open=round(score('jawOpen'), 3)
    )


def extract_hand_samples(
    timestamp: int,
    pose_landmarks: Optional[Sequence]
) -> Dict[str, HandPositionSample]:
    """Per-side wrist/shoulder samples from 33 pose keypoints."""
    hands = {}
    if not pose_landmarks:
        return hands

    for side, (wrist_idx, shoulder_idx) in HAND_KEYPOINTS.items():
        if len(pose_landmarks) <= max(wrist_idx, shoulder_idx):
            continue
        wrist = _point_xy(pose_landmarks[wrist_idx])
        shoulder = _point_xy(pose_landmarks[shoulder_idx])
        if wrist is None or shoulder is None:
            continue
        hands[side] = HandPositionSample(timestamp, wrist[1], shoulder[1])

    return hands


def parse_frame(payload: Mapping[str, Any]) -> DetectorFrame:
    """
    Convert one detector payload into a DetectorFrame.

    Raises:
        ValueError: If the payload has no usable timestamp
    """
    timestamp = payload.get('timestamp') if isinstance(payload, Mapping) else None
    if not _is_finite(timestamp):
        raise ValueError(f"Detector frame has no usable timestamp: {timestamp!r}")
    timestamp = int(timestamp)

    frame = DetectorFrame(timestamp=timestamp)
    frame.face = _parse_face(timestamp, payload)
    frame.expression = _parse_expression(timestamp, payload)
    frame.hands = _parse_hands(timestamp, payload)

    return frame


def _parse_face(timestamp: int, payload: Mapping) -> Optional[FacePositionSample]:
    face = payload.get('face')
    if isinstance(face, Mapping):
        values = (
            face.get('center_x', face.get('centerX')),
            face.get('center_y', face.get('centerY')),
            face.get('width'),
            face.get('height')
        )
        if all(_is_finite(v) for v in values):
            return FacePositionSample(timestamp, *(float(v) for v in values))
        logger.debug(f"Frame {timestamp}: incomplete face box ignored")
        return None

    box = compute_face_bounding_box(
        payload.get('face_landmarks'),
        payload.get('frame_width', DEFAULT_FRAME_WIDTH),
        payload.get('frame_height', DEFAULT_FRAME_HEIGHT)
    )
    if box is None:
        return None
    return FacePositionSample(timestamp, box.center_x, box.center_y, box.width, box.height)


def _parse_expression(timestamp: int, payload: Mapping) -> Optional[ExpressionSample]:
    scores = payload.get('expression', payload.get('expressionScores'))
    if isinstance(scores, Mapping):
        smiling = scores.get('smiling', 0)
        jaw_open = scores.get('jaw_open', scores.get('jawOpen', 0))
        return ExpressionSample(
            timestamp,
            float(smiling) if _is_finite(smiling) else 0.0,
            float(jaw_open) if _is_finite(jaw_open) else 0.0
        )

    blendshapes = payload.get('blendshapes')
    if blendshapes:
        reactions = extract_face_reactions(blendshapes)
        return ExpressionSample(timestamp, reactions.smiling, reactions.jaw_open)

    return None


def _parse_hands(timestamp: int, payload: Mapping) -> Dict[str, HandPositionSample]:
    hands = payload.get('hands')
    if isinstance(hands, Mapping):
        samples = {}
        for side in HAND_KEYPOINTS:
            entry = hands.get(side)
            if not isinstance(entry, Mapping):
                continue
            wrist_y = entry.get('wrist_y')
            shoulder_y = entry.get('shoulder_y')
            if _is_finite(wrist_y) and _is_finite(shoulder_y):
                samples[side] = HandPositionSample(timestamp, float(wrist_y), float(shoulder_y))
        return samples

    return extract_hand_samples(timestamp, payload.get('pose_landmarks'))


def _point_xy(landmark: Any) -> Optional[Tuple[float, float]]:
    if isinstance(landmark, Mapping):
        x, y = landmark.get('x'), landmark.get('y')
    elif isinstance(landmark, (list, tuple)) and len(landmark) >= 2:
        x, y = landmark[0], landmark[1]
    else:
        return None

    if _is_finite(x) and _is_finite(y):
        return float(x), float(y)
    return None


def _is_finite(value: Any) -> bool:
    if isinstance(value, bool) or not isinstance(value, numbers.Real):
        return False
    return math.isfinite(value)


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))

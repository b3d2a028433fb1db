"""
Sensing pipeline: detector frames in, audio recommendations out.

1. Frame adapters (face box, blend-shape reactions, pose keypoints)
2. ReactionPipeline coordinator (buffers, motion and reaction ticks)
"""

from .frames import (
    DetectorFrame,
    FaceBox,
    FaceReactions,
    compute_face_bounding_box,
    extract_face_reactions,
    extract_hand_samples,
    parse_frame
)
from .coordinator import ReactionPipeline

__all__ = [
    'DetectorFrame',
    'FaceBox',
    'FaceReactions',
    'compute_face_bounding_box',
    'extract_face_reactions',
    'extract_hand_samples',
    'parse_frame',
    'ReactionPipeline',
]

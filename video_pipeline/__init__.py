"""
Video analysis pipeline for behavioral stress observation.

This package turns pose landmarks into a stress timeline:
1. Pose feature extraction (posture, movement, hand fidgeting, leg bouncing)
2. Temporal aggregation (throttled, timestamped stress points)
3. Session monitoring (start/stop lifecycle, frame-synchronous processing)

Pose estimation itself is performed by an external provider; this package
only consumes its normalized landmarks.
"""

from .pose_analyzer import (
    PoseFeatureExtractor,
    ExtractorState,
    compute_posture_score,
    compute_movement_score,
    compute_hand_fidgeting_score,
    compute_leg_bouncing_score,
    normalize_landmarks
)
from .temporal_agg import StressTimelineAggregator
from .stress_monitor import StressMonitor

__all__ = [
    'PoseFeatureExtractor',
    'ExtractorState',
    'compute_posture_score',
    'compute_movement_score',
    'compute_hand_fidgeting_score',
    'compute_leg_bouncing_score',
    'normalize_landmarks',
    'StressTimelineAggregator',
    'StressMonitor',
]

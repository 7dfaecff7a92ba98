"""
Synthetic pose frames for feature extraction tests.

Creates MediaPipe-style 33-keypoint frames (normalized coordinates) of a
seated, upright person. Indices follow video_pipeline/pose_analyzer.py.

Geometry of the base frame (y grows downwards):
- ears at y=0.30, shoulders at y=0.40, hips at y=0.50, knees at y=0.65
- posture score = (1 + 1 + 0.7 + 0.7) / 4 = 0.85
"""

from typing import Dict, Iterable, List, Optional

NUM_POSE_LANDMARKS = 33

BASE_POSITIONS = {
    0: (0.50, 0.28),   # nose
    7: (0.46, 0.30),   # left ear
    8: (0.54, 0.30),   # right ear
    11: (0.40, 0.40),  # left shoulder
    12: (0.60, 0.40),  # right shoulder
    13: (0.38, 0.46),  # left elbow
    14: (0.62, 0.46),  # right elbow
    15: (0.42, 0.52),  # left wrist
    16: (0.58, 0.52),  # right wrist
    19: (0.43, 0.54),  # left index
    20: (0.57, 0.54),  # right index
    21: (0.44, 0.53),  # left thumb
    22: (0.56, 0.53),  # right thumb
    23: (0.44, 0.50),  # left hip
    24: (0.56, 0.50),  # right hip
    25: (0.44, 0.65),  # left knee
    26: (0.56, 0.65),  # right knee
}


def make_frame(
    dx: float = 0.0,
    dy: float = 0.0,
    visibility: float = 0.9,
    indices: Optional[Iterable[int]] = None
) -> List[Dict[str, float]]:
    """
    Build a 33-landmark frame, optionally shifted.

    Args:
        dx, dy: Offset applied to the shifted landmarks
        visibility: Visibility of every landmark
        indices: Landmarks to shift (default: all)
    """
    shifted = set(range(NUM_POSE_LANDMARKS)) if indices is None else set(indices)
    frame = []
    for idx in range(NUM_POSE_LANDMARKS):
        x, y = BASE_POSITIONS.get(idx, (0.5, 0.6))
        if idx in shifted:
            x, y = x + dx, y + dy
        frame.append({'x': x, 'y': y, 'visibility': visibility})
    return frame


def without(frame: List[Dict[str, float]], indices: Iterable[int]) -> List[Optional[Dict[str, float]]]:
    """Copy of a frame with the given landmarks missing (None)."""
    missing = set(indices)
    return [None if idx in missing else dict(lm) for idx, lm in enumerate(frame)]


def with_visibility(frame: List[Dict[str, float]], indices: Iterable[int], visibility: float) -> List[Dict[str, float]]:
    """Copy of a frame with the visibility of some landmarks replaced."""
    changed = set(indices)
    result = []
    for idx, lm in enumerate(frame):
        lm = dict(lm)
        if idx in changed:
            lm['visibility'] = visibility
        result.append(lm)
    return result

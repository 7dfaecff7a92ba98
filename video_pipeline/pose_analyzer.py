"""
Pose feature extraction for behavioral stress observation.

Behavioral markers extracted per frame:
1. Posture - levelness of shoulders/hips, head and spine alignment
2. Movement - windowed whole-body movement speed
3. Hand fidgeting - displacement of head, shoulders, wrists and fingers
4. Leg bouncing - vertical knee displacement

Engineering decisions:
- Landmarks come from an external pose provider (MediaPipe Pose index
  layout, 33 keypoints, coordinates normalized to [0, 1])
- Temporal features depend on the immediately preceding frame, so the
  retained state lives in an explicit ExtractorState threaded through each
  call (one per session, never shared)
- Missing or low-visibility landmarks degrade to neutral/zero scores and
  never raise

Interpretation:
- Low posture score → slumped, tilted or hunched body
- High movement → restlessness, postural shifts
- High hand fidgeting → self-soothing, touching face or hair
- High leg bouncing → nervous knee/foot tapping
"""

import logging
from collections import deque
from dataclasses import dataclass, field
from typing import Any, Deque, Dict, List, Optional, Sequence, Tuple

import numpy as np

from core.data_models import Landmark, StressScoreComponents, clamp_unit
from utils.config_loader import get_nested_config

logger = logging.getLogger(__name__)


# MediaPipe Pose landmark indices
# See: https://google.github.io/mediapipe/solutions/pose.html
LEFT_EAR = 7
RIGHT_EAR = 8
LEFT_SHOULDER = 11
RIGHT_SHOULDER = 12
LEFT_WRIST = 15
RIGHT_WRIST = 16
LEFT_INDEX = 19
RIGHT_INDEX = 20
LEFT_THUMB = 21
RIGHT_THUMB = 22
LEFT_HIP = 23
RIGHT_HIP = 24
LEFT_KNEE = 25
RIGHT_KNEE = 26

# Ears, shoulders, wrists, index fingers and thumbs
HAND_FIDGET_INDICES = [
    LEFT_EAR, RIGHT_EAR,
    LEFT_SHOULDER, RIGHT_SHOULDER,
    LEFT_WRIST, RIGHT_WRIST,
    LEFT_INDEX, RIGHT_INDEX,
    LEFT_THUMB, RIGHT_THUMB,
]

POSTURE_INDICES = [LEFT_SHOULDER, RIGHT_SHOULDER, LEFT_HIP, RIGHT_HIP, LEFT_EAR, RIGHT_EAR]

# Empirical posture constants (penalty per unit of vertical delta)
LEVELNESS_PENALTY = 5.0
ALIGNMENT_PENALTY = 3.0

NEUTRAL_POSTURE_SCORE = 0.5

DEFAULT_VISIBILITY_THRESHOLD = 0.5
DEFAULT_MOVEMENT_WINDOW = 10
DEFAULT_MOVEMENT_SCALE = 10.0
DEFAULT_HAND_MAX_DISPLACEMENT = 0.05
DEFAULT_KNEE_MAX_DISPLACEMENT = 0.03


Frame = List[Optional[Landmark]]


@dataclass
class ExtractorState:
    """
    Per-session state retained between frames.

    Attributes:
        window_size: Number of movement speeds kept in the rolling window
        prev_landmarks: Landmarks of the last frame used for movement
        prev_timestamp_ms: Timestamp of that frame
        prev_knees: (left, right) knee positions of the last frame with both
            knees visible
        movement_history: Rolling window of movement speeds
    """
    window_size: int = DEFAULT_MOVEMENT_WINDOW
    prev_landmarks: Optional[Frame] = None
    prev_timestamp_ms: Optional[float] = None
    prev_knees: Optional[Tuple[Landmark, Landmark]] = None
    movement_history: Deque[float] = field(init=False)

    def __post_init__(self):
        self.movement_history = deque(maxlen=max(1, int(self.window_size)))

    @property
    def has_reference_frame(self) -> bool:
        return bool(self.prev_landmarks)

    def reset(self):
        """Discard all retained frames; the next movement score is 0."""
        self.prev_landmarks = None
        self.prev_timestamp_ms = None
        self.prev_knees = None
        self.movement_history.clear()


def normalize_landmarks(frame: Any) -> Frame:
    """
    Convert a provider frame into a list of Landmark (or None) by index.

    Malformed records become None so the anatomical index contract is
    preserved; a frame that is not a sequence becomes an empty list.
    """
    if frame is None:
        return []
    try:
        records = list(frame)
    except TypeError:
        logger.debug("Pose frame is not a sequence; treating as empty")
        return []
    return [Landmark.from_record(record) for record in records]


def _landmark_at(landmarks: Sequence[Optional[Landmark]], index: int) -> Optional[Landmark]:
    if index < len(landmarks):
        return landmarks[index]
    return None


def _is_visible(landmark: Optional[Landmark], threshold: float) -> bool:
    return landmark is not None and landmark.visibility > threshold


def _mean_displacement(
    current: Sequence[Optional[Landmark]],
    previous: Sequence[Optional[Landmark]],
    indices: Sequence[int],
    visibility_threshold: float
) -> float:
    """
    Mean Euclidean displacement over the given landmark indices.

    Only landmarks visible in the current frame and present in the previous
    frame contribute. Returns 0 when none qualify.
    """
    current_points = []
    previous_points = []

    for idx in indices:
        cur = _landmark_at(current, idx)
        prev = _landmark_at(previous, idx)
        if prev is None or not _is_visible(cur, visibility_threshold):
            continue
        current_points.append((cur.x, cur.y))
        previous_points.append((prev.x, prev.y))

    if not current_points:
        return 0.0

    displacements = np.linalg.norm(
        np.array(current_points) - np.array(previous_points),
        axis=1
    )
    return float(np.mean(displacements))


def compute_posture_score(landmarks: Sequence[Optional[Landmark]]) -> float:
    """
    Compute posture alignment score.

    Method: average of four alignment sub-scores from vertical deltas
    - shoulder levelness, hip levelness (penalty 5 per unit)
    - ear line vs shoulder line, shoulder line vs hip line (penalty 3 per unit)

    Returns:
        Posture score (0-1, higher = better aligned). 0.5 when any of the
        ear, shoulder or hip landmarks is missing.
    """
    points = [_landmark_at(landmarks, idx) for idx in POSTURE_INDICES]
    if any(point is None for point in points):
        return NEUTRAL_POSTURE_SCORE

    l_shoulder, r_shoulder, l_hip, r_hip, l_ear, r_ear = points

    shoulder_mid_y = (l_shoulder.y + r_shoulder.y) / 2
    hip_mid_y = (l_hip.y + r_hip.y) / 2
    ear_mid_y = (l_ear.y + r_ear.y) / 2

    shoulder_slope = abs(l_shoulder.y - r_shoulder.y)
    hip_slope = abs(l_hip.y - r_hip.y)
    head_alignment = abs(ear_mid_y - shoulder_mid_y)
    spine_alignment = abs(shoulder_mid_y - hip_mid_y)

    sub_scores = [
        max(0.0, 1.0 - shoulder_slope * LEVELNESS_PENALTY),
        max(0.0, 1.0 - hip_slope * LEVELNESS_PENALTY),
        max(0.0, 1.0 - head_alignment * ALIGNMENT_PENALTY),
        max(0.0, 1.0 - spine_alignment * ALIGNMENT_PENALTY),
    ]

    return clamp_unit(np.mean(sub_scores))


def compute_movement_score(
    landmarks: Sequence[Optional[Landmark]],
    timestamp_ms: float,
    state: ExtractorState,
    visibility_threshold: float = DEFAULT_VISIBILITY_THRESHOLD,
    movement_scale: float = DEFAULT_MOVEMENT_SCALE
) -> float:
    """
    Compute windowed movement score and advance the reference frame.

    Method:
    - Mean displacement of all visible landmarks vs. the previous frame
    - Divide by elapsed time to get a speed (units/second)
    - Push into the rolling window, return window mean * scale

    The first call after (re)initialization only stores the frame and
    returns exactly 0. A non-increasing timestamp returns 0 without
    touching the retained state.

    Returns:
        Movement score (0-1, higher = more movement)
    """
    if not state.has_reference_frame:
        state.prev_landmarks = list(landmarks)
        state.prev_timestamp_ms = timestamp_ms
        return 0.0

    elapsed_ms = timestamp_ms - state.prev_timestamp_ms
    if not elapsed_ms > 0:
        logger.debug(f"Non-increasing frame timestamp ({elapsed_ms:.1f}ms); movement skipped")
        return 0.0

    avg_displacement = _mean_displacement(
        landmarks,
        state.prev_landmarks,
        range(len(landmarks)),
        visibility_threshold
    )
    speed = avg_displacement / (elapsed_ms / 1000.0)

    # deque(maxlen) drops the oldest speed
    state.movement_history.append(speed)

    state.prev_landmarks = list(landmarks)
    state.prev_timestamp_ms = timestamp_ms

    return clamp_unit(np.mean(state.movement_history) * movement_scale)


def compute_hand_fidgeting_score(
    landmarks: Sequence[Optional[Landmark]],
    state: ExtractorState,
    visibility_threshold: float = DEFAULT_VISIBILITY_THRESHOLD,
    max_displacement: float = DEFAULT_HAND_MAX_DISPLACEMENT
) -> float:
    """
    Compute hand fidgeting score.

    Method: mean displacement of ears, shoulders, wrists and fingers since
    the previous reference frame, scaled by the max expected displacement
    per frame. Reads but does not modify the retained state.

    Returns:
        Fidgeting score (0-1), 0 without a reference frame
    """
    if not state.has_reference_frame:
        return 0.0

    avg_displacement = _mean_displacement(
        landmarks,
        state.prev_landmarks,
        HAND_FIDGET_INDICES,
        visibility_threshold
    )
    return clamp_unit(avg_displacement / max_displacement)


def compute_leg_bouncing_score(
    landmarks: Sequence[Optional[Landmark]],
    state: ExtractorState,
    visibility_threshold: float = DEFAULT_VISIBILITY_THRESHOLD,
    max_displacement: float = DEFAULT_KNEE_MAX_DISPLACEMENT
) -> float:
    """
    Compute leg bouncing score.

    Method: larger of the two knees' absolute vertical displacement since
    the last frame with both knees visible, scaled by the max expected
    displacement per frame.

    Returns:
        Leg bouncing score (0-1), 0 when either knee is not visible
    """
    left_knee = _landmark_at(landmarks, LEFT_KNEE)
    right_knee = _landmark_at(landmarks, RIGHT_KNEE)

    if not (_is_visible(left_knee, visibility_threshold) and
            _is_visible(right_knee, visibility_threshold)):
        return 0.0

    max_dy = 0.0
    if state.prev_knees is not None:
        prev_left, prev_right = state.prev_knees
        max_dy = max(abs(left_knee.y - prev_left.y), abs(right_knee.y - prev_right.y))

    state.prev_knees = (left_knee, right_knee)

    return clamp_unit(max_dy / max_displacement)


class PoseFeatureExtractor:
    """
    Turn pose frames into bounded stress sub-scores.

    Frames must be delivered in arrival order; one extractor per session.
    Not safe for concurrent use.

    Usage:
        extractor = PoseFeatureExtractor(config)
        components = extractor.extract(landmarks, timestamp_ms)
    """

    def __init__(self, config: Optional[Dict] = None):
        """
        Initialize feature extractor.

        Args:
            config: Configuration dict; reads the 'pose' section
        """
        self.visibility_threshold = get_nested_config(
            config, 'pose.visibility_threshold', DEFAULT_VISIBILITY_THRESHOLD)
        self.movement_scale = get_nested_config(
            config, 'pose.movement_scale', DEFAULT_MOVEMENT_SCALE)
        self.hand_max_displacement = get_nested_config(
            config, 'pose.hand_max_displacement', DEFAULT_HAND_MAX_DISPLACEMENT)
        self.knee_max_displacement = get_nested_config(
            config, 'pose.knee_max_displacement', DEFAULT_KNEE_MAX_DISPLACEMENT)

        self.state = ExtractorState(
            window_size=get_nested_config(config, 'pose.movement_window_size', DEFAULT_MOVEMENT_WINDOW)
        )

        logger.info(
            f"Pose feature extractor initialized: visibility>{self.visibility_threshold}, "
            f"window={self.state.window_size}"
        )

    def posture(self, landmarks: Any) -> float:
        return compute_posture_score(normalize_landmarks(landmarks))

    def movement(self, landmarks: Any, timestamp_ms: float) -> float:
        return compute_movement_score(
            normalize_landmarks(landmarks),
            timestamp_ms,
            self.state,
            self.visibility_threshold,
            self.movement_scale
        )

    def hand_fidgeting(self, landmarks: Any) -> float:
        return compute_hand_fidgeting_score(
            normalize_landmarks(landmarks),
            self.state,
            self.visibility_threshold,
            self.hand_max_displacement
        )

    def leg_bouncing(self, landmarks: Any) -> float:
        return compute_leg_bouncing_score(
            normalize_landmarks(landmarks),
            self.state,
            self.visibility_threshold,
            self.knee_max_displacement
        )

    def extract(self, landmarks: Any, timestamp_ms: float) -> StressScoreComponents:
        """
        Compute all four sub-scores for one frame.

        Args:
            landmarks: Pose frame (sequence of landmark records by index)
            timestamp_ms: Frame timestamp in milliseconds (monotonic)

        Returns:
            StressScoreComponents
        """
        frame = normalize_landmarks(landmarks)
        if not frame:
            logger.debug(f"Empty pose frame at {timestamp_ms:.0f}ms")

        posture = compute_posture_score(frame)
        # Hand fidgeting reads the reference frame before movement replaces it
        hand_fidgeting = compute_hand_fidgeting_score(
            frame, self.state, self.visibility_threshold, self.hand_max_displacement)
        leg_bouncing = compute_leg_bouncing_score(
            frame, self.state, self.visibility_threshold, self.knee_max_displacement)
        movement = compute_movement_score(
            frame, timestamp_ms, self.state, self.visibility_threshold, self.movement_scale)

        return StressScoreComponents(
            posture=posture,
            movement=movement,
            hand_fidgeting=hand_fidgeting,
            leg_bouncing=leg_bouncing
        )

    def reset(self):
        """Reset temporal tracking state."""
        self.state.reset()

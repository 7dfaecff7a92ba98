"""
Core data models for the stress observation and identity matching core.

All scores and confidences are bounded to [0, 1] at construction time so that
downstream consumers (session persistence, analytics) never see out-of-range
values regardless of which computation produced them.
"""

import logging
import math
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, Optional, Tuple

from .enums import StressState

logger = logging.getLogger(__name__)


def clamp_unit(value: float) -> float:
    """Clamp a value to [0, 1]; NaN and non-numeric values map to 0."""
    try:
        value = float(value)
    except (TypeError, ValueError):
        return 0.0
    if math.isnan(value):
        return 0.0
    return max(0.0, min(1.0, value))


def freeze_descriptor(values: Iterable) -> Tuple[float, ...]:
    """
    Convert a descriptor to an immutable tuple of floats.

    Malformed descriptors (non-iterable or non-numeric items) become an
    empty tuple, which never matches anything.
    """
    try:
        return tuple(float(v) for v in values)
    except (TypeError, ValueError):
        logger.debug("Malformed face descriptor replaced by empty descriptor")
        return ()


@dataclass(frozen=True)
class Landmark:
    """
    Single tracked body keypoint.

    Attributes:
        x: Horizontal position, normalized to frame width (0-1)
        y: Vertical position, normalized to frame height (0-1)
        visibility: Tracking confidence reported by the pose provider (0-1)
    """
    x: float
    y: float
    visibility: float = 1.0

    @classmethod
    def from_record(cls, record: Any) -> Optional['Landmark']:
        """
        Build a landmark from a provider record.

        Accepts a Landmark, a mapping with 'x', 'y' and optional 'visibility'
        keys, or an (x, y[, visibility]) sequence. Anything else, including
        non-finite coordinates, yields None (treated as a missing landmark).
        """
        if record is None:
            return None
        if isinstance(record, cls):
            landmark = record
        else:
            try:
                if isinstance(record, dict):
                    x, y = record['x'], record['y']
                    visibility = record.get('visibility', 1.0)
                else:
                    x, y = record[0], record[1]
                    visibility = record[2] if len(record) > 2 else 1.0
                landmark = cls(float(x), float(y), float(visibility))
            except (KeyError, IndexError, TypeError, ValueError):
                return None

        if not (math.isfinite(landmark.x) and math.isfinite(landmark.y)):
            return None
        if math.isnan(landmark.visibility):
            return None
        return landmark


@dataclass(frozen=True)
class StressScoreComponents:
    """
    Per-frame behavioral sub-scores, each clamped to [0, 1].

    Attributes:
        posture: Alignment quality (higher = more upright and level)
        movement: Windowed whole-body movement speed (higher = more movement)
        hand_fidgeting: Upper-body/hand displacement since previous frame
        leg_bouncing: Knee vertical displacement since previous frame
    """
    posture: float = 0.5
    movement: float = 0.0
    hand_fidgeting: float = 0.0
    leg_bouncing: float = 0.0

    def __post_init__(self):
        """Clamp all components to the unit interval."""
        for name in ('posture', 'movement', 'hand_fidgeting', 'leg_bouncing'):
            object.__setattr__(self, name, clamp_unit(getattr(self, name)))

    def to_dict(self) -> Dict[str, float]:
        return {
            'posture': self.posture,
            'movement': self.movement,
            'handFidgeting': self.hand_fidgeting,
            'legBouncing': self.leg_bouncing,
        }


@dataclass(frozen=True)
class StressAssessment:
    """
    Classifier output for a single frame.

    Attributes:
        state: Discrete stress state
        confidence: Confidence in the state (0-1)
        components: Sub-scores the decision was based on
        fidgeting: Combined hand/leg fidgeting value used by the rules
    """
    state: StressState
    confidence: float
    components: StressScoreComponents
    fidgeting: float = 0.0

    def __post_init__(self):
        object.__setattr__(self, 'confidence', clamp_unit(self.confidence))
        object.__setattr__(self, 'fidgeting', clamp_unit(self.fidgeting))


@dataclass(frozen=True)
class StressPoint:
    """
    Timestamped entry of the session stress log. Immutable once created.

    Attributes:
        timestamp_ms: Milliseconds since session start
        state: Discrete stress state
        confidence: Confidence in the state (0-1)
        components: Sub-scores at the time of the sample
        question_ref: Question that triggered a forced point, if any
        fidgeting: Combined hand/leg fidgeting at the time of the sample
    """
    timestamp_ms: float
    state: StressState
    confidence: float
    components: StressScoreComponents = field(default_factory=StressScoreComponents)
    question_ref: Optional[str] = None
    fidgeting: float = 0.0

    def __post_init__(self):
        object.__setattr__(self, 'confidence', clamp_unit(self.confidence))
        object.__setattr__(self, 'fidgeting', clamp_unit(self.fidgeting))

    @property
    def is_question_event(self) -> bool:
        """True for points forced by a question being asked."""
        return self.question_ref is not None

    def to_dict(self) -> Dict[str, Any]:
        """Persistence record for the external session store."""
        details = self.components.to_dict()
        details['fidgeting'] = self.fidgeting
        record = {
            'timestamp': self.timestamp_ms,
            'state': self.state.value,
            'confidence': self.confidence,
            'details': details,
        }
        if self.question_ref is not None:
            record['question'] = self.question_ref
        return record


@dataclass(frozen=True)
class QuestionEvent:
    """Out-of-band 'question asked' event injected by the session UI."""
    question_ref: str
    timestamp_ms: float


@dataclass(frozen=True)
class GalleryEntry:
    """
    Enrolled face descriptor.

    Attributes:
        descriptor: Fixed-length embedding (stored as an immutable tuple)
        identity_ref: Opaque reference to the enrolled identity
        metadata: Opaque data owned by the identity store (e.g. snapshot ref)
    """
    descriptor: Tuple[float, ...]
    identity_ref: str
    metadata: Dict[str, Any] = field(default_factory=dict)

    def __post_init__(self):
        if not isinstance(self.descriptor, tuple):
            object.__setattr__(self, 'descriptor', freeze_descriptor(self.descriptor))

    @property
    def dimension(self) -> int:
        return len(self.descriptor)


@dataclass(frozen=True)
class MatchResult:
    """
    Outcome of matching a query descriptor against a gallery.

    A non-match (is_new=True) is a valid result, not an error: the caller is
    expected to trigger enrollment.
    """
    identity_ref: Optional[str]
    distance: float
    confidence: float
    is_new: bool

    def __post_init__(self):
        object.__setattr__(self, 'confidence', clamp_unit(self.confidence))

    @property
    def matched(self) -> bool:
        return not self.is_new

    def to_dict(self) -> Dict[str, Any]:
        return {
            'identityRef': self.identity_ref,
            'distance': self.distance,
            'confidence': self.confidence,
            'isNew': self.is_new,
        }

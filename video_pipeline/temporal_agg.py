"""
Temporal aggregation of per-frame stress assessments.

Rationale:
- The classifier runs at the pose provider's frame rate (~30 FPS), far
  denser than a session log needs
- A throttled sample (at most one per interval) gives a compact timeline
- Questions asked by the counsellor are anchored on the timeline
  immediately, regardless of the throttle

Engineering approach:
- Session-relative time: elapsed = now - session_start (monotonic clock)
- Sample kept only if elapsed - last_emitted > throttle interval; otherwise
  dropped (no buffering, no catch-up)
- Forced question points bypass the throttle and do not reset it
- Emitted points are immutable and appended to a log ordered by
  timestamp; a question stamped before the last emitted point is dropped
"""

import logging
from typing import Callable, List, Optional, Tuple

from core.data_models import QuestionEvent, StressAssessment, StressPoint, StressScoreComponents
from core.enums import StressState

logger = logging.getLogger(__name__)

DEFAULT_THROTTLE_INTERVAL_MS = 1000.0
QUESTION_CONFIDENCE = 0.7


class StressTimelineAggregator:
    """
    Throttle classifier output into a sparse, timestamped stress log.

    Usage:
        aggregator = StressTimelineAggregator(throttle_interval_ms=1000)
        aggregator.start(session_start_ms)
        point = aggregator.record(assessment, now_ms)      # None if throttled
        aggregator.mark_question(QuestionEvent('q-1', now_ms))
    """

    def __init__(
        self,
        throttle_interval_ms: float = DEFAULT_THROTTLE_INTERVAL_MS,
        on_point: Optional[Callable[[StressPoint], None]] = None,
        question_confidence: float = QUESTION_CONFIDENCE
    ):
        """
        Initialize timeline aggregator.

        Args:
            throttle_interval_ms: Minimum elapsed time between sampled points
            on_point: Optional sink called with every emitted point
            question_confidence: Confidence attached to forced question points
        """
        self.throttle_interval_ms = float(throttle_interval_ms)
        self.on_point = on_point
        self.question_confidence = question_confidence

        self.session_start_ms: Optional[float] = None
        self.last_emitted_ms: Optional[float] = None
        self.last_components: Optional[StressScoreComponents] = None
        self.last_fidgeting = 0.0
        self._points: List[StressPoint] = []

        logger.info(f"Stress timeline aggregator initialized: throttle={self.throttle_interval_ms}ms")

    @property
    def started(self) -> bool:
        return self.session_start_ms is not None

    @property
    def points(self) -> Tuple[StressPoint, ...]:
        """Emitted points in emission order."""
        return tuple(self._points)

    def start(self, session_start_ms: float):
        """Begin a new session timeline, discarding the previous one."""
        self.session_start_ms = float(session_start_ms)
        self.last_emitted_ms = None
        self.last_components = None
        self.last_fidgeting = 0.0
        self._points = []

    def elapsed_ms(self, now_ms: float) -> float:
        """Session-relative time for a clock reading."""
        if not self.started:
            logger.debug(f"Timeline not started; anchoring session start at {now_ms:.0f}ms")
            self.start(now_ms)
        return now_ms - self.session_start_ms

    def record(self, assessment: StressAssessment, now_ms: float) -> Optional[StressPoint]:
        """
        Offer a classifier output to the timeline.

        Args:
            assessment: Classifier output for the current frame
            now_ms: Clock reading (same monotonic source as start())

        Returns:
            The emitted StressPoint, or None if the sample was throttled
        """
        elapsed = self.elapsed_ms(now_ms)
        self.last_components = assessment.components
        self.last_fidgeting = assessment.fidgeting

        if self.last_emitted_ms is not None and not elapsed - self.last_emitted_ms > self.throttle_interval_ms:
            return None

        self.last_emitted_ms = elapsed
        return self._emit(StressPoint(
            timestamp_ms=elapsed,
            state=assessment.state,
            confidence=assessment.confidence,
            components=assessment.components,
            fidgeting=assessment.fidgeting
        ))

    def mark_question(self, event: QuestionEvent) -> Optional[StressPoint]:
        """
        Emit a forced vigilance point for a question being asked.

        The point carries the most recent frame's components (neutral
        components if no frame was seen yet) and leaves the throttle
        untouched.

        Returns:
            The emitted StressPoint, or None if the question is stamped
            before the last emitted point
        """
        elapsed = self.elapsed_ms(event.timestamp_ms)
        if self._points and elapsed < self._points[-1].timestamp_ms:
            logger.debug(
                f"Question {event.question_ref} at {elapsed:.0f}ms precedes last point "
                f"at {self._points[-1].timestamp_ms:.0f}ms; dropped"
            )
            return None

        components = self.last_components or StressScoreComponents()

        logger.info(f"Question {event.question_ref} marked at {elapsed:.0f}ms")

        return self._emit(StressPoint(
            timestamp_ms=elapsed,
            state=StressState.VIGILANCE,
            confidence=self.question_confidence,
            components=components,
            question_ref=event.question_ref,
            fidgeting=self.last_fidgeting
        ))

    def _emit(self, point: StressPoint) -> StressPoint:
        self._points.append(point)
        if self.on_point is not None:
            self.on_point(point)
        return point

"""
Live stress monitoring for one counselling session.

Pipeline per frame (single-threaded, strict arrival order):
    pose landmarks → PoseFeatureExtractor → classify_stress_state
                   → StressTimelineAggregator → stress point log

Lifecycle:
- start(): initialize the external pose provider (boolean result, no
  retry), clear all extractor state, anchor the session clock
- process_frame(): only accepted while running
- stop(): discard extractor state; the first frame after a restart has
  movement 0 again

Timing uses a monotonic clock (time.monotonic by default). Callers passing
explicit timestamps must take them from a monotonic source as well, and pass
the session start in that same time base to start(session_start_ms=...).
"""

import logging
import time
from typing import Any, Callable, Dict, Optional, Tuple

from core.data_models import QuestionEvent, StressAssessment, StressPoint
from core.enums import StressState
from core.interfaces import ExternalProvider, initialize_provider
from scoring.stress_state import build_stress_rules, classify_stress_state
from utils.config_loader import get_nested_config

from .pose_analyzer import PoseFeatureExtractor
from .temporal_agg import DEFAULT_THROTTLE_INTERVAL_MS, QUESTION_CONFIDENCE, StressTimelineAggregator

logger = logging.getLogger(__name__)


class StressMonitor:
    """
    Frame-synchronous stress observation for a single session.

    Not thread-safe: feed frames from one thread, in arrival order. Use one
    monitor per session.

    Usage:
        monitor = StressMonitor(config, pose_provider=provider,
                                on_stress_point=session_log.append)
        if monitor.start():
            for landmarks in frames:
                monitor.process_frame(landmarks)
            monitor.ask_question('question-7')
            monitor.stop()
    """

    def __init__(
        self,
        config: Optional[Dict] = None,
        pose_provider: Optional[ExternalProvider] = None,
        clock: Optional[Callable[[], float]] = None,
        on_stress_point: Optional[Callable[[StressPoint], None]] = None
    ):
        """
        Initialize monitor.

        Args:
            config: Configuration dict (see configs/thresholds.yaml)
            pose_provider: External pose capability; None if landmarks are
                supplied from elsewhere
            clock: Monotonic clock returning seconds (default time.monotonic)
            on_stress_point: Sink called with every emitted stress point
        """
        self.config = config
        self.pose_provider = pose_provider
        self.clock = clock or time.monotonic

        self.extractor = PoseFeatureExtractor(config)
        self.rules = build_stress_rules(config)
        self.aggregator = StressTimelineAggregator(
            throttle_interval_ms=get_nested_config(
                config, 'timeline.throttle_interval_ms', DEFAULT_THROTTLE_INTERVAL_MS),
            on_point=on_stress_point,
            question_confidence=get_nested_config(
                config, 'stress.vigilance.confidence', QUESTION_CONFIDENCE)
        )

        self.running = False
        self.current_assessment: Optional[StressAssessment] = None

    @property
    def current_state(self) -> Optional[StressState]:
        """State of the most recent frame (None before the first frame)."""
        if self.current_assessment is None:
            return None
        return self.current_assessment.state

    @property
    def points(self) -> Tuple[StressPoint, ...]:
        """Stress points emitted since the last start()."""
        return self.aggregator.points

    def now_ms(self) -> float:
        return self.clock() * 1000.0

    def start(self, session_start_ms: Optional[float] = None) -> bool:
        """
        Start accepting frames.

        Args:
            session_start_ms: Session start in the time base of the frame
                timestamps (default: clock now)

        Returns:
            True if running, False if the pose provider failed to initialize
        """
        if self.running:
            logger.warning("Stress monitor already running")
            return True

        if not initialize_provider(self.pose_provider):
            logger.warning("Stress monitor not started: pose provider unavailable")
            return False

        self.extractor.reset()
        self.current_assessment = None
        if session_start_ms is None:
            session_start_ms = self.now_ms()
        self.aggregator.start(session_start_ms)
        self.running = True

        logger.info("Stress monitor started")
        return True

    def stop(self) -> Tuple[StressPoint, ...]:
        """
        Stop accepting frames and discard extractor state.

        Returns:
            Stress points of the session that just ended
        """
        if not self.running:
            return self.points

        self.running = False
        self.extractor.reset()

        if self.pose_provider is not None:
            try:
                self.pose_provider.close()
            except Exception as e:
                logger.warning(f"Pose provider failed to close: {e}")

        logger.info(f"Stress monitor stopped: {len(self.points)} stress points")
        return self.points

    def process_frame(self, landmarks: Any, timestamp_ms: Optional[float] = None) -> Optional[StressAssessment]:
        """
        Process one pose frame.

        Args:
            landmarks: Landmark records in pose index order
            timestamp_ms: Monotonic frame time in ms (default: clock now)

        Returns:
            StressAssessment for the frame, or None if the monitor is stopped
        """
        if not self.running:
            logger.warning("Frame received while stress monitor is stopped; ignored")
            return None

        if timestamp_ms is None:
            timestamp_ms = self.now_ms()

        components = self.extractor.extract(landmarks, timestamp_ms)
        assessment = classify_stress_state(components, self.config, self.rules)

        self.current_assessment = assessment
        self.aggregator.record(assessment, timestamp_ms)

        return assessment

    def ask_question(self, question_ref: str, timestamp_ms: Optional[float] = None) -> Optional[StressPoint]:
        """
        Anchor a question on the stress timeline.

        Returns:
            The forced vigilance StressPoint, or None if the monitor is stopped
            or the question is stamped before the last stress point
        """
        if not self.running:
            logger.warning(f"Question {question_ref} asked while stress monitor is stopped; ignored")
            return None

        if timestamp_ms is None:
            timestamp_ms = self.now_ms()

        return self.aggregator.mark_question(QuestionEvent(question_ref, timestamp_ms))

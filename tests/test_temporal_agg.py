"""
Unit tests for stress timeline aggregation.

Tests cover:
- Throttled sampling against session-relative time
- Forced question points (unthrottled, vigilance)
- Immutability and persistence records of emitted points
"""

import dataclasses

import pytest # pyright: ignore[reportMissingImports]
from pathlib import Path

import sys
sys.path.insert(0, str(Path(__file__).parent.parent))

from core.data_models import QuestionEvent, StressAssessment, StressScoreComponents
from core.enums import StressState
from video_pipeline.temporal_agg import StressTimelineAggregator


def make_assessment(state=StressState.CALM, confidence=0.9, posture=0.9):
    return StressAssessment(
        state=state,
        confidence=confidence,
        components=StressScoreComponents(posture=posture, movement=0.1, hand_fidgeting=0.05, leg_bouncing=0.0),
        fidgeting=0.025
    )


class TestThrottledSampling:
    """Test throttled sampling."""

    def test_first_sample_always_emitted(self):
        aggregator = StressTimelineAggregator(throttle_interval_ms=1000)
        aggregator.start(5000.0)

        point = aggregator.record(make_assessment(), 5000.0)

        assert point is not None
        assert point.timestamp_ms == 0.0
        assert point.state is StressState.CALM

    def test_samples_within_interval_dropped(self):
        aggregator = StressTimelineAggregator(throttle_interval_ms=1000)
        aggregator.start(0.0)
        aggregator.record(make_assessment(), 0.0)

        assert aggregator.record(make_assessment(), 500.0) is None
        assert aggregator.record(make_assessment(), 1000.0) is None
        assert aggregator.record(make_assessment(), 1001.0) is not None
        assert len(aggregator.points) == 2

    def test_ten_second_run_at_30fps(self):
        aggregator = StressTimelineAggregator(throttle_interval_ms=1000)
        aggregator.start(0.0)

        for frame_idx in range(300):
            aggregator.record(make_assessment(), frame_idx * 1000.0 / 30.0)

        assert 9 <= len(aggregator.points) <= 11

        gaps = [b.timestamp_ms - a.timestamp_ms for a, b in zip(aggregator.points, aggregator.points[1:])]
        assert all(gap > 1000.0 for gap in gaps)

    def test_timestamps_are_session_relative(self):
        aggregator = StressTimelineAggregator()
        aggregator.start(120000.0)

        aggregator.record(make_assessment(), 120000.0)
        point = aggregator.record(make_assessment(), 121500.0)

        assert point.timestamp_ms == 1500.0

    def test_no_catch_up_after_gap(self):
        aggregator = StressTimelineAggregator(throttle_interval_ms=1000)
        aggregator.start(0.0)
        aggregator.record(make_assessment(), 0.0)

        aggregator.record(make_assessment(), 5000.0)
        aggregator.record(make_assessment(), 5100.0)

        assert [p.timestamp_ms for p in aggregator.points] == [0.0, 5000.0]

    def test_record_before_start_anchors_session(self):
        aggregator = StressTimelineAggregator()

        point = aggregator.record(make_assessment(), 42.0)

        assert aggregator.started
        assert point.timestamp_ms == 0.0

    def test_restart_clears_log(self):
        aggregator = StressTimelineAggregator()
        aggregator.start(0.0)
        aggregator.record(make_assessment(), 0.0)

        aggregator.start(10000.0)

        assert aggregator.points == ()
        assert aggregator.record(make_assessment(), 10000.0).timestamp_ms == 0.0


class TestQuestionEvents:
    """Test forced question points."""

    def test_question_point_is_vigilance(self):
        aggregator = StressTimelineAggregator()
        aggregator.start(0.0)
        aggregator.record(make_assessment(state=StressState.TENSE, posture=0.3), 0.0)

        point = aggregator.mark_question(QuestionEvent('q-1', 250.0))

        assert point.state is StressState.VIGILANCE
        assert point.question_ref == 'q-1'
        assert point.timestamp_ms == 250.0
        assert point.confidence == 0.7
        assert point.components.posture == pytest.approx(0.3)
        assert point.is_question_event

    def test_question_before_any_frame_uses_neutral_components(self):
        aggregator = StressTimelineAggregator()
        aggregator.start(0.0)

        point = aggregator.mark_question(QuestionEvent('q-1', 10.0))

        assert point.components == StressScoreComponents()

    def test_questions_bypass_and_keep_throttle(self):
        aggregator = StressTimelineAggregator(throttle_interval_ms=1000)
        aggregator.start(0.0)
        aggregator.record(make_assessment(), 0.0)

        aggregator.mark_question(QuestionEvent('q-1', 100.0))
        aggregator.mark_question(QuestionEvent('q-2', 150.0))

        # Throttle still measured from the sampled point at 0ms
        assert aggregator.record(make_assessment(), 900.0) is None
        assert aggregator.record(make_assessment(), 1050.0) is not None
        assert len(aggregator.points) == 4

    def test_ten_second_run_with_questions(self):
        aggregator = StressTimelineAggregator(throttle_interval_ms=1000)
        aggregator.start(0.0)
        question_times = {45: 'q-1', 160: 'q-2', 250: 'q-3'}

        for frame_idx in range(300):
            now = frame_idx * 1000.0 / 30.0
            aggregator.record(make_assessment(), now)
            if frame_idx in question_times:
                aggregator.mark_question(QuestionEvent(question_times[frame_idx], now))

        questions = [p for p in aggregator.points if p.is_question_event]
        sampled = [p for p in aggregator.points if not p.is_question_event]

        assert len(questions) == 3
        assert all(p.state is StressState.VIGILANCE for p in questions)
        assert 9 <= len(sampled) <= 11

    def test_question_before_last_point_dropped(self):
        aggregator = StressTimelineAggregator(throttle_interval_ms=1000)
        aggregator.start(0.0)
        aggregator.record(make_assessment(), 0.0)
        aggregator.record(make_assessment(), 2000.0)

        assert aggregator.mark_question(QuestionEvent('q-late', 1500.0)) is None
        assert aggregator.mark_question(QuestionEvent('q-now', 2000.0)) is not None

        timestamps = [p.timestamp_ms for p in aggregator.points]
        assert timestamps == sorted(timestamps)
        assert len(aggregator.points) == 3


class TestStressPoints:
    """Test emitted stress points."""

    def test_points_are_immutable(self):
        aggregator = StressTimelineAggregator()
        point = aggregator.record(make_assessment(), 0.0)

        with pytest.raises(dataclasses.FrozenInstanceError):
            point.state = StressState.TENSE

    def test_sink_receives_points_in_order(self):
        received = []
        aggregator = StressTimelineAggregator(throttle_interval_ms=1000, on_point=received.append)
        aggregator.start(0.0)

        aggregator.record(make_assessment(), 0.0)
        aggregator.record(make_assessment(), 10.0)
        aggregator.mark_question(QuestionEvent('q-1', 20.0))

        assert received == list(aggregator.points)
        assert len(received) == 2

    def test_persistence_record(self):
        aggregator = StressTimelineAggregator()
        aggregator.start(0.0)
        aggregator.record(make_assessment(), 0.0)
        point = aggregator.mark_question(QuestionEvent('q-9', 300.0))

        record = point.to_dict()

        assert record['timestamp'] == 300.0
        assert record['state'] == 'vigilance'
        assert record['question'] == 'q-9'
        assert set(record['details']) == {'posture', 'movement', 'handFidgeting', 'legBouncing', 'fidgeting'}
        assert record['details']['fidgeting'] == pytest.approx(0.025)
        assert aggregator.points[0].to_dict()['details']['fidgeting'] == pytest.approx(0.025)
        assert 'question' not in aggregator.points[0].to_dict()


if __name__ == '__main__':
    pytest.main([__file__, '-v'])

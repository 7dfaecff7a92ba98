"""
Shared session types for the stress and identity core.

Data contracts exchanged between the frame pipeline, the state classifier,
the timeline aggregator and the identity matcher.
"""

from .enums import StressState
from .data_models import (
    Landmark,
    StressScoreComponents,
    StressAssessment,
    StressPoint,
    QuestionEvent,
    GalleryEntry,
    MatchResult,
    clamp_unit,
)
from .interfaces import ExternalProvider, initialize_provider

__all__ = [
    'StressState',
    'Landmark',
    'StressScoreComponents',
    'StressAssessment',
    'StressPoint',
    'QuestionEvent',
    'GalleryEntry',
    'MatchResult',
    'clamp_unit',
    'ExternalProvider',
    'initialize_provider',
]

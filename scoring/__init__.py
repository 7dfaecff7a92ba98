"""
Behavioral stress scoring.

This package maps pose sub-scores to interpretable outputs:
1. Stress state (calm / vigilance / tense) with a confidence (0-1)
2. Stress distribution over a session log (percent of points per state)

All outputs are:
- Interpretable (transparent thresholds, ordered rule table)
- Bounded (confidences clamped to [0, 1])
- Non-diagnostic (behavioral observation, not medical diagnosis)
"""

from .stress_state import (
    StressRule,
    build_stress_rules,
    classify_stress_state,
    combine_fidgeting,
    evaluate_rules,
    DEFAULT_STRESS_RULES
)
from .stress_distribution import compute_stress_distribution

__all__ = [
    'StressRule',
    'build_stress_rules',
    'classify_stress_state',
    'combine_fidgeting',
    'evaluate_rules',
    'DEFAULT_STRESS_RULES',
    'compute_stress_distribution',
]

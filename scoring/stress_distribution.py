"""
Stress distribution over a session log.

Summarizes how much of a session (or several sessions) was spent in each
stress state, counting every logged point, forced question points included.
"""

import logging
from typing import Dict, Iterable

from core.data_models import StressPoint
from core.enums import StressState

logger = logging.getLogger(__name__)


def compute_stress_distribution(points: Iterable[StressPoint]) -> Dict:
    """
    Compute per-state percentages of a stress point log.

    Args:
        points: Stress points from one or more sessions

    Returns:
        Dictionary with:
        - total_points: Number of points counted
        - counts: Points per state value
        - percentages: Share of points per state value (0-100), all 0 for
          an empty log
        - dominant_state: Most frequent state value (None for an empty log;
          ties resolve in calm, vigilance, tense order)
    """
    counts = {state.value: 0 for state in StressState}

    for point in points:
        counts[point.state.value] += 1

    total = sum(counts.values())

    if total == 0:
        logger.debug("Empty stress log; distribution is all zero")
        return {
            'total_points': 0,
            'counts': counts,
            'percentages': {state: 0.0 for state in counts},
            'dominant_state': None,
        }

    percentages = {state: count / total * 100.0 for state, count in counts.items()}
    dominant_state = max(counts, key=lambda state: counts[state])

    return {
        'total_points': total,
        'counts': counts,
        'percentages': percentages,
        'dominant_state': dominant_state,
    }

"""
Enumerations for the stress observation core.
"""

from enum import Enum


class StressState(Enum):
    """Discrete behavioral stress states (closed set)."""
    CALM = "calm"
    VIGILANCE = "vigilance"  # Alert, guarded but composed
    TENSE = "tense"

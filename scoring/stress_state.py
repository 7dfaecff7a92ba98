"""
Stress state classification.

Maps the four pose sub-scores to one of three discrete states:
- calm: upright posture, little movement, little fidgeting
- vigilance: acceptable posture, moderate movement/fidgeting
- tense: everything else

Engineering approach:
- Ordered rule table evaluated top-down, first match wins
- Thresholds are strict comparisons (posture > min, movement < max, ...)
- Final confidence is always clamped to [0, 1]; the tense formula can
  exceed 1 before clamping (e.g. posture=0, movement=1, fidgeting=1 → 2)
- Pure and stateless: safe to call from any session
"""

import logging
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional, Tuple

from core.data_models import StressAssessment, StressScoreComponents, clamp_unit
from core.enums import StressState
from utils.config_loader import get_nested_config

logger = logging.getLogger(__name__)

ConfidenceFn = Callable[[float, float, float], float]


@dataclass(frozen=True)
class StressRule:
    """
    One row of the classification table.

    A threshold of None means the rule does not constrain that score; a
    rule with no thresholds always matches.

    Attributes:
        state: State assigned when the rule matches
        confidence: Function (posture, movement, fidgeting) -> raw confidence
        posture_min: Posture must be strictly greater than this
        movement_max: Movement must be strictly less than this
        fidgeting_max: Combined fidgeting must be strictly less than this
    """
    state: StressState
    confidence: ConfidenceFn
    posture_min: Optional[float] = None
    movement_max: Optional[float] = None
    fidgeting_max: Optional[float] = None

    def matches(self, posture: float, movement: float, fidgeting: float) -> bool:
        if self.posture_min is not None and not posture > self.posture_min:
            return False
        if self.movement_max is not None and not movement < self.movement_max:
            return False
        if self.fidgeting_max is not None and not fidgeting < self.fidgeting_max:
            return False
        return True


def _calm_confidence(posture: float, movement: float, fidgeting: float) -> float:
    return (posture + (1.0 - movement) + (1.0 - fidgeting)) / 3.0


def _tense_confidence(posture: float, movement: float, fidgeting: float) -> float:
    return 1.0 - posture + 0.5 * movement + 0.5 * fidgeting


def _fixed_confidence(value: float) -> ConfidenceFn:
    def confidence(posture: float, movement: float, fidgeting: float) -> float:
        return value
    return confidence


def build_stress_rules(config: Optional[Dict] = None) -> List[StressRule]:
    """
    Build the ordered classification table.

    Args:
        config: Configuration dict; reads 'stress.calm' and 'stress.vigilance'

    Returns:
        Rules in evaluation order (calm, vigilance, tense fallback)
    """
    calm = get_nested_config(config, 'stress.calm', {}) or {}
    vigilance = get_nested_config(config, 'stress.vigilance', {}) or {}

    return [
        StressRule(
            state=StressState.CALM,
            confidence=_calm_confidence,
            posture_min=calm.get('posture_min', 0.7),
            movement_max=calm.get('movement_max', 0.3),
            fidgeting_max=calm.get('fidgeting_max', 0.2),
        ),
        StressRule(
            state=StressState.VIGILANCE,
            confidence=_fixed_confidence(vigilance.get('confidence', 0.7)),
            posture_min=vigilance.get('posture_min', 0.5),
            movement_max=vigilance.get('movement_max', 0.6),
            fidgeting_max=vigilance.get('fidgeting_max', 0.5),
        ),
        StressRule(
            state=StressState.TENSE,
            confidence=_tense_confidence,
        ),
    ]


DEFAULT_STRESS_RULES = build_stress_rules()


def combine_fidgeting(
    hand_fidgeting: float,
    leg_bouncing: float,
    hand_weight: float = 0.5,
    leg_weight: float = 0.5
) -> float:
    """Weighted combination of hand fidgeting and leg bouncing."""
    return hand_weight * hand_fidgeting + leg_weight * leg_bouncing


def evaluate_rules(
    posture: float,
    movement: float,
    fidgeting: float,
    rules: Optional[List[StressRule]] = None
) -> Tuple[StressState, float]:
    """
    Evaluate the rule table on raw scores.

    Returns:
        (state, confidence) with confidence clamped to [0, 1]. Falls back to
        tense if no rule matches (custom tables without a catch-all row).
    """
    for rule in DEFAULT_STRESS_RULES if rules is None else rules:
        if rule.matches(posture, movement, fidgeting):
            return rule.state, clamp_unit(rule.confidence(posture, movement, fidgeting))

    logger.debug("No stress rule matched; falling back to tense")
    return StressState.TENSE, clamp_unit(_tense_confidence(posture, movement, fidgeting))


def classify_stress_state(
    components: StressScoreComponents,
    config: Optional[Dict] = None,
    rules: Optional[List[StressRule]] = None
) -> StressAssessment:
    """
    Classify one frame's sub-scores into a stress state.

    Args:
        components: Pose sub-scores for the frame
        config: Configuration dict (fidgeting weights, rule thresholds)
        rules: Pre-built rule table; built from config when omitted

    Returns:
        StressAssessment with state, clamped confidence and combined fidgeting
    """
    if rules is None:
        rules = build_stress_rules(config) if config else DEFAULT_STRESS_RULES

    fidgeting = combine_fidgeting(
        components.hand_fidgeting,
        components.leg_bouncing,
        get_nested_config(config, 'stress.fidgeting_weights.hand', 0.5),
        get_nested_config(config, 'stress.fidgeting_weights.leg', 0.5),
    )

    state, confidence = evaluate_rules(components.posture, components.movement, fidgeting, rules)

    return StressAssessment(
        state=state,
        confidence=confidence,
        components=components,
        fidgeting=fidgeting
    )

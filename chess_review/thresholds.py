"""Expected-points-loss budgets per classification.

The same budget table drives two things: ``classify_by_epl`` (the
authoritative tiering used by the classifier) and ``loss_threshold``,
which restates a budget as a centipawn loss for display and tuning.
The two are not guaranteed to agree exactly at tier boundaries.
"""

from __future__ import annotations

import math

from chess_review.models import Classification
from chess_review.win_probability import centipawns_from_win_probability, win_probability

# Maximum win-probability loss allowed for each label
EPL_BUDGETS: dict[Classification, float] = {
    Classification.BEST: 0.0,
    Classification.EXCELLENT: 0.02,
    Classification.GOOD: 0.05,
    Classification.INACCURACY: 0.10,
    Classification.MISTAKE: 0.20,
    Classification.BLUNDER: math.inf,
}

# Losses at or below this count as no loss at all
BEST_EPL_TOLERANCE = 0.0001

# Ordered tiers checked by classify_by_epl
_EPL_TIERS = [
    (EPL_BUDGETS[Classification.EXCELLENT], Classification.EXCELLENT),
    (EPL_BUDGETS[Classification.GOOD], Classification.GOOD),
    (EPL_BUDGETS[Classification.INACCURACY], Classification.INACCURACY),
    (EPL_BUDGETS[Classification.MISTAKE], Classification.MISTAKE),
]


def classify_by_epl(epl: float) -> Classification:
    """Map a non-best move's expected points loss to its tier."""
    for budget, label in _EPL_TIERS:
        if epl <= budget:
            return label
    return Classification.BLUNDER


def loss_threshold(classification: Classification, prior_eval: float) -> float:
    """Maximum centipawn loss a move may have and keep ``classification``.

    Args:
        classification: Label to get the threshold for.
        prior_eval: Evaluation before the move, mover-relative centipawns.

    Returns:
        Non-negative centipawn threshold, or +inf when the budget cannot be
        expressed in centipawns (blunder, labels without a budget, or a
        target probability of 0).
    """
    budget = EPL_BUDGETS.get(classification, math.inf)
    if math.isinf(budget):
        return math.inf

    target = max(0.0, win_probability(prior_eval) - budget)
    target_cp = centipawns_from_win_probability(target)
    if target_cp == -math.inf:
        return math.inf

    return max(0.0, prior_eval - target_cp)

"""Win-probability model.

Logistic curve over centipawns, calibrated so +400 cp is roughly a 90 %
chance for the side the score favours. Mate scores saturate.
"""

from __future__ import annotations

import math

from chess_review.perspective import MoverRelative

# Logistic scale in centipawns
_SCALE = 400

# Saturated probabilities for forced mates, whatever the distance
MATE_WIN_PROBABILITY = 0.999
MATE_LOSS_PROBABILITY = 0.001


def win_probability(value: float, mate_in: int | None = None) -> float:
    """Convert a mover-relative score to a win probability on [0, 1].

    Args:
        value: Centipawns from the mover's point of view.
        mate_in: Mover-relative mate distance, if the score is a mate.

    Returns:
        Win probability for the mover.
    """
    if mate_in is not None:
        return MATE_WIN_PROBABILITY if mate_in > 0 else MATE_LOSS_PROBABILITY
    return 1 / (1 + math.pow(10, -value / _SCALE))


def centipawns_from_win_probability(probability: float) -> float:
    """Inverse of ``win_probability`` for non-mate scores.

    Returns -inf at or below 0 and +inf at or above 1.
    """
    if probability <= 0:
        return -math.inf
    if probability >= 1:
        return math.inf
    return -_SCALE * math.log10(1 / probability - 1)


def score_win_probability(score: MoverRelative) -> float:
    return win_probability(score.value, score.mate_in)


def expected_points_loss(best: MoverRelative, played: MoverRelative) -> float:
    """Win probability given up by playing ``played`` instead of ``best``."""
    return score_win_probability(best) - score_win_probability(played)

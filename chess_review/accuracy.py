"""Per-side accuracy from expected points loss.

Each scored move contributes ``100 - EPL * 100 * leniency`` (clamped to
0..100). Book and forced moves are not scored but are still tallied.
"""

from __future__ import annotations

from typing import Sequence

from chess_review.models import (
    COLORS,
    Classification,
    ClassificationContext,
    Position,
    color_name,
)
from chess_review.perspective import to_mover_relative
from chess_review.win_probability import score_win_probability

# Moves after a position this bad (from the previous score's side) are
# penalized less
LENIENCY_WIN_PROBABILITY = 0.15
LENIENCY_FACTOR = 0.7

_UNSCORED = (Classification.BOOK, Classification.FORCED)


def leniency_factor(context: ClassificationContext) -> float:
    """Return 0.7 when the previous position was already lost, else 1.0."""
    previous = to_mover_relative(context.previous, not context.mover)
    if score_win_probability(previous) <= LENIENCY_WIN_PROBABILITY:
        return LENIENCY_FACTOR
    return 1.0


def move_accuracy(epl: float, leniency: float = 1.0) -> float:
    """Accuracy of a single move on a 0..100 scale."""
    return max(0.0, min(100.0, 100 - epl * 100 * leniency))


def side_accuracy(contributions: Sequence[float]) -> float:
    """Average of per-move accuracies; 100 when the side has none."""
    if not contributions:
        return 100.0
    return sum(contributions) / (100 * len(contributions)) * 100


def compute_accuracies(positions: Sequence[Position]) -> dict[str, float]:
    """Accuracy percentage for each side.

    Args:
        positions: Classified positions, initial position first.

    Returns:
        Dict with "white" and "black" accuracies (0-100).
    """
    contributions: dict[str, list[float]] = {color: [] for color in COLORS}

    for position in positions[1:]:
        if position.classification in _UNSCORED:
            continue
        context = position.context
        if context is None:
            epl, leniency = 0.0, 1.0
        else:
            epl, leniency = context.epl, leniency_factor(context)
        contributions[color_name(position.mover)].append(move_accuracy(epl, leniency))

    return {color: side_accuracy(values) for color, values in contributions.items()}


def tally_classifications(positions: Sequence[Position]) -> dict[str, dict[str, int]]:
    """Count each label per side over every move of the game."""
    tally = {color: {label.value: 0 for label in Classification} for color in COLORS}
    for position in positions[1:]:
        if position.classification is None:
            continue
        tally[color_name(position.mover)][position.classification.value] += 1
    return tally

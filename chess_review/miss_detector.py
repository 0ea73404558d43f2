"""Missed-tactic detection.

A miss is a suboptimal move in a position where the best move was a
clear, forcing win (a short mate or a decisive material gain) that stood
well above every alternative, and the played move gave a good part of it
back.
"""

from __future__ import annotations

from chess_review.perspective import MoverRelative
from chess_review.win_probability import expected_points_loss

MIN_MISS_EPL = 0.10

# Best move counts as tactical at this eval, or with a mate this short
TACTICAL_EVAL = 300
TACTICAL_MATE_DISTANCE = 5

# Best must beat second best by this much
MIN_TACTICAL_GAP = 200

# Played must lose at least this much against best
MIN_EVAL_LOSS = 150

# Mate distances compared as centipawns: per move of distance, and a flat
# gap when only one side of the comparison is a mate
MATE_DISTANCE_CP = 100
MATE_GAP_CP = 500


def _is_tactical(best: MoverRelative) -> bool:
    short_mate = best.mate_in is not None and 0 < best.mate_in <= TACTICAL_MATE_DISTANCE
    return best.value >= TACTICAL_EVAL or short_mate


def _tactical_gap(best: MoverRelative, second: MoverRelative) -> float:
    if best.mate_in is not None and second.mate_in is not None:
        return abs(best.mate_in - second.mate_in) * MATE_DISTANCE_CP
    if best.mate_in is not None:
        return MATE_GAP_CP
    return abs(best.value - second.value)


def _eval_loss(best: MoverRelative, played: MoverRelative) -> float:
    if best.mate_in is not None and played.mate_in is not None:
        return (best.mate_in - played.mate_in) * MATE_DISTANCE_CP
    if best.mate_in is not None:
        return MATE_GAP_CP
    return best.value - played.value


def is_miss(
    best: MoverRelative,
    second: MoverRelative,
    played: MoverRelative,
    played_move: str | None = None,
    best_move: str | None = None,
) -> bool:
    """Decide whether a move failed to find a forced winning tactic.

    Args:
        best: Score after the engine's best move, mover-relative.
        second: Score after the engine's second choice, mover-relative.
        played: Score after the played move, mover-relative.
        played_move: UCI of the move played.
        best_move: UCI of the engine's best move.

    Returns:
        True if the move is a miss.
    """
    if played_move and best_move and played_move == best_move:
        return False

    if expected_points_loss(best, played) < MIN_MISS_EPL:
        return False

    if not _is_tactical(best):
        return False

    if _tactical_gap(best, second) < MIN_TACTICAL_GAP:
        return False

    return _eval_loss(best, played) >= MIN_EVAL_LOSS

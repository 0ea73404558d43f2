"""White-relative and mover-relative scores.

Engine output is stored white-relative: positive favours White and a
positive mate distance means White delivers mate. Classification math
works mover-relative. The two conventions are kept apart by type and
the only way across is ``to_mover_relative`` with an explicit color.
"""

from __future__ import annotations

from dataclasses import dataclass

import chess


@dataclass(frozen=True)
class WhiteRelative:
    """A score from White's point of view.

    ``value`` is centipawns for cp scores and the signed mate distance for
    mate scores. ``mate_in`` is set only for mate scores that still have a
    distance to play out.
    """

    value: int
    mate_in: int | None = None


@dataclass(frozen=True)
class MoverRelative:
    """A score from the point of view of one side (the mover)."""

    value: int
    mate_in: int | None = None


def multiplier(color: chess.Color) -> int:
    """Return +1 for White and -1 for Black."""
    return 1 if color == chess.WHITE else -1


def to_mover_relative(score: WhiteRelative, color: chess.Color) -> MoverRelative:
    """Convert a stored white-relative score to the given side's view.

    Args:
        score: White-relative score attached to some position.
        color: The side whose perspective is wanted. For a score attached to
            a position this is the color that made the move leading into it.

    Returns:
        The same score, sign-adjusted for ``color``.
    """
    sign = multiplier(color)
    mate_in = score.mate_in * sign if score.mate_in is not None else None
    return MoverRelative(value=score.value * sign, mate_in=mate_in)

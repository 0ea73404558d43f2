"""Move classification.

Turns a fully evaluated position sequence into labelled positions. The
work is split into stages that each take a list of positions and return a
new one:

    classify_positions -> annotate_openings -> apply_book_overlay -> annotate_line_sans

Engine scores stay white-relative on every Position. Mover-relative
scores only exist inside ``classify_move``: the after-move scores are
read from the mover's side, the previous position's score from the
opposite side (it belongs to the opponent's move).
"""

from __future__ import annotations

import logging
from dataclasses import replace
from typing import TYPE_CHECKING, Sequence

import chess

from chess_review.board_cache import BoardCache
from chess_review.miss_detector import is_miss
from chess_review.models import (
    Classification,
    ClassificationContext,
    EngineLine,
    Evaluation,
    Position,
)
from chess_review.perspective import MoverRelative, WhiteRelative, to_mover_relative
from chess_review.sacrifice import is_brilliant_sacrifice
from chess_review.thresholds import BEST_EPL_TOLERANCE, classify_by_epl
from chess_review.win_probability import expected_points_loss, score_win_probability

if TYPE_CHECKING:
    from chess_review.openings import OpeningsDB

logger = logging.getLogger(__name__)

# Great: the only move that does not lose
ONLY_MOVE_SECOND_MAX = -200
ONLY_MOVE_BEST_MIN = -100

# Great: turning points
LOSING_WIN_PROBABILITY = 0.15
EQUAL_EVAL = 50
WINNING_EVAL = 150

# Great: punishing a blunder needs this gap between best and second best
PUNISH_GAP = 200

# Brilliant: not brilliant when second best wins this much too
WINNING_ANYWAY_EVAL = 300

# Blunder demotion: still this far ahead, or already this far behind
STILL_WINNING_EVAL = 600
ALREADY_LOST_EVAL = -600

# Book overlay only while the move lost less than this
BOOK_MAX_EPL = 0.01


def _is_great(
    best: MoverRelative,
    second: MoverRelative,
    played: MoverRelative,
    previous: MoverRelative,
    best_white: int,
    second_white: int,
    previous_label: Classification | None,
) -> bool:
    only_move = second.value < ONLY_MOVE_SECOND_MAX and best.value >= ONLY_MOVE_BEST_MIN

    was_losing = score_win_probability(previous) <= LOSING_WIN_PROBABILITY
    was_equal = abs(previous.value) <= EQUAL_EVAL and previous.mate_in is None
    now_equal = abs(played.value) <= EQUAL_EVAL and played.mate_in is None
    now_winning = played.value >= WINNING_EVAL or (
        played.mate_in is not None and played.mate_in > 0
    )
    turning_point = (
        (was_losing and now_equal)
        or (was_equal and now_winning)
        or (was_losing and now_winning)
    )

    punishes_blunder = (
        previous_label == Classification.BLUNDER
        and abs(best_white - second_white) >= PUNISH_GAP
    )

    return only_move or turning_point or punishes_blunder


def _is_winning_anyway(best: MoverRelative, second: MoverRelative) -> bool:
    if best.mate_in is not None:
        return best.mate_in > 0 and second.value >= WINNING_ANYWAY_EVAL
    return best.value >= WINNING_ANYWAY_EVAL and second.value >= WINNING_ANYWAY_EVAL


def _is_brilliant(
    previous: Position,
    position: Position,
    best: MoverRelative,
    second: MoverRelative,
    played: MoverRelative,
    boards: BoardCache,
) -> bool:
    if position.move is None or played.value < 0 or _is_winning_anyway(best, second):
        return False

    try:
        move = chess.Move.from_uci(position.move.uci)
    except ValueError:
        logger.debug("Unparseable move %r at %s", position.move.uci, position.fen)
        return False

    if move.promotion is not None or "=" in (position.move.san or ""):
        return False

    return is_brilliant_sacrifice(boards.get(previous.fen), boards.get(position.fen), move)


def demote_blunder(
    label: Classification,
    best: MoverRelative,
    played: MoverRelative,
) -> Classification:
    """Soften a blunder that does not change the practical outcome.

    A move that keeps an overwhelming advantage, or that was played from an
    already hopeless position, is labelled good instead.
    """
    if label != Classification.BLUNDER:
        return label
    if played.value >= STILL_WINNING_EVAL or best.value <= ALREADY_LOST_EVAL:
        return Classification.GOOD
    return label


def classify_move(
    previous: Position,
    position: Position,
    boards: BoardCache,
    previous_label: Classification | None = None,
) -> Position:
    """Label the move leading from ``previous`` to ``position``.

    Args:
        previous: Position before the move, with its engine lines.
        position: Position after the move.
        boards: Board cache shared across the game.
        previous_label: Label already given to the move into ``previous``.

    Returns:
        A copy of ``position`` with classification and context set.
    """
    top = previous.line(1)
    second = previous.line(2)
    if top is None:
        logger.warning("No engine line for %s; labelling the next move book", previous.fen)
        return replace(position, classification=Classification.BOOK)

    board = boards.get(position.fen)
    played_line = position.line(1)
    top_lines = position.top_lines
    if played_line is None:
        # Terminal position: nothing to search
        evaluation = Evaluation.mate(0) if board.is_checkmate() else Evaluation.cp(0)
        played_line = EngineLine(id=1, depth=0, evaluation=evaluation, move_uci="")
        top_lines = (played_line,) + top_lines

    mover = position.mover
    best_white = top.evaluation.white()
    played_white = played_line.evaluation.white()
    second_white = second.evaluation.white() if second is not None else None

    best = to_mover_relative(best_white, mover)
    played = to_mover_relative(played_white, mover)
    epl = expected_points_loss(best, played)

    classified = replace(
        position,
        top_lines=top_lines,
        context=ClassificationContext(
            mover=mover,
            best_after=best_white,
            played_after=played_white,
            previous=best_white,
            second_after=second_white,
            epl=epl,
        ),
    )

    if boards.get(previous.fen).legal_moves.count() <= 1:
        return replace(classified, classification=Classification.FORCED)

    played_uci = position.move.uci if position.move else None

    if second_white is None:
        # Miss compares against the best line itself, Great and Brilliant
        # against a level score
        logger.warning(
            "Missing second engine line at %s (move %s)", previous.fen, played_uci
        )
        miss_second = best
        great_second_white = WhiteRelative(0)
    else:
        miss_second = to_mover_relative(second_white, mover)
        great_second_white = second_white
    second_mover = to_mover_relative(great_second_white, mover)

    if epl <= BEST_EPL_TOLERANCE or top.move_uci == played_uci:
        label = Classification.BEST
    elif is_miss(best, miss_second, played, played_uci, top.move_uci):
        label = Classification.MISS
    else:
        label = classify_by_epl(epl)

    if label == Classification.BEST:
        previous_mover = to_mover_relative(best_white, not mover)
        if _is_great(
            best,
            second_mover,
            played,
            previous_mover,
            best_white.value,
            great_second_white.value,
            previous_label,
        ):
            label = Classification.GREAT
        elif _is_brilliant(previous, position, best, second_mover, played, boards):
            label = Classification.BRILLIANT

    label = demote_blunder(label, best, played)
    return replace(classified, classification=label)


def classify_positions(
    positions: Sequence[Position],
    boards: BoardCache | None = None,
) -> list[Position]:
    """Classify every move of a game.

    The first position has no move and is labelled book. Every other
    position gets exactly one label.

    Args:
        positions: Evaluated positions, initial position first.
        boards: Optional board cache; a fresh one is used otherwise.

    Returns:
        New list of labelled positions.
    """
    if not positions:
        return []

    boards = boards if boards is not None else BoardCache()
    classified = [replace(positions[0], classification=Classification.BOOK, context=None)]

    for index in range(1, len(positions)):
        position = replace(positions[index], classification=None, context=None)
        result = classify_move(
            classified[index - 1],
            position,
            boards,
            previous_label=classified[index - 1].classification,
        )
        if result.classification is None:
            result = replace(result, classification=Classification.BOOK)
        classified.append(result)

    return classified


def annotate_openings(
    positions: Sequence[Position],
    openings: OpeningsDB | None,
) -> list[Position]:
    """Attach opening names looked up by FEN placement."""
    if openings is None:
        return list(positions)
    return [
        replace(position, opening=openings.opening_name(position.fen))
        for position in positions
    ]


def apply_book_overlay(positions: Sequence[Position]) -> list[Position]:
    """Relabel the opening stretch of the game as book.

    Walks forward from the first move while the position has a known
    opening name and the move lost almost nothing. The first move failing
    either test ends the book stretch for good.
    """
    result = list(positions)
    for index in range(1, len(result)):
        position = result[index]
        epl = position.context.epl if position.context is not None else 0.0
        if not position.opening or epl >= BOOK_MAX_EPL:
            break
        result[index] = replace(position, classification=Classification.BOOK)
    return result


def annotate_line_sans(
    positions: Sequence[Position],
    boards: BoardCache | None = None,
) -> list[Position]:
    """Fill in SAN for every engine line from its UCI move.

    Unplayable moves get an empty SAN; delivered-mate lines are skipped.
    """
    boards = boards if boards is not None else BoardCache()
    result: list[Position] = []
    for position in positions:
        lines = []
        for line in position.top_lines:
            if line.evaluation.is_mate and line.evaluation.value == 0:
                lines.append(line)
                continue
            board = boards.get(position.fen)
            try:
                move = chess.Move.from_uci(line.move_uci)
            except ValueError:
                move = None
            san = board.san(move) if move is not None and board.is_legal(move) else ""
            lines.append(replace(line, move_san=san))
        result.append(replace(position, top_lines=tuple(lines)))
    return result

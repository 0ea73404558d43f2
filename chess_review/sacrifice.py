"""Sacrifice detection for brilliant-move classification.

Works on python-chess boards: finds pieces the mover left hanging after a
move and checks that at least one of them can really be taken, i.e. the
capture neither walks into losing an equal-or-bigger piece nor (for
pieces below a rook) allows an immediate mate.
"""

from __future__ import annotations

import math
from dataclasses import dataclass

import chess

# Material values for trade and hanging checks
_PIECE_VALUES: dict[int, float] = {
    chess.PAWN: 1,
    chess.KNIGHT: 3,
    chess.BISHOP: 3,
    chess.ROOK: 5,
    chess.QUEEN: 9,
    chess.KING: math.inf,
}

# Promotion choices tried for every simulated capture, plain move first
_PROMOTIONS: tuple[int | None, ...] = (
    None,
    chess.BISHOP,
    chess.KNIGHT,
    chess.ROOK,
    chess.QUEEN,
)

# Pieces that can be sacrificed (kings and pawns never count)
_SACRIFICE_TYPES = (chess.KNIGHT, chess.BISHOP, chess.ROOK, chess.QUEEN)


def _piece_value(piece_type: int) -> float:
    """Return the standard piece value for a piece type."""
    return _PIECE_VALUES.get(piece_type, 0)


@dataclass(frozen=True)
class InfluencingPiece:
    """A piece attacking or defending a square."""

    square: chess.Square
    color: chess.Color
    piece_type: int

    @property
    def value(self) -> float:
        return _piece_value(self.piece_type)


def _with_turn(board: chess.Board, color: chess.Color) -> chess.Board:
    """Copy the board with ``color`` to move."""
    result = board.copy(stack=False)
    if result.turn != color:
        result.turn = color
        result.ep_square = None
    return result


def get_attackers(board: chess.Board, square: chess.Square) -> list[InfluencingPiece]:
    """Pieces that can legally capture the piece on ``square``.

    An adjacent enemy king is included when some other piece attacks too,
    since it backs up the capture even if it cannot take first.
    """
    piece = board.piece_at(square)
    if piece is None:
        return []

    enemy = not piece.color
    attacker_board = _with_turn(board, enemy)

    attackers: list[InfluencingPiece] = []
    seen: set[chess.Square] = set()
    for move in attacker_board.generate_legal_moves(to_mask=chess.BB_SQUARES[square]):
        if move.from_square in seen:
            continue
        seen.add(move.from_square)
        attacker = attacker_board.piece_at(move.from_square)
        attackers.append(InfluencingPiece(move.from_square, enemy, attacker.piece_type))

    king_square = attacker_board.king(enemy)
    if (
        attackers
        and king_square is not None
        and king_square not in seen
        and chess.square_distance(king_square, square) == 1
    ):
        attackers.append(InfluencingPiece(king_square, enemy, chess.KING))

    return attackers


def get_defenders(board: chess.Board, square: chess.Square) -> list[InfluencingPiece]:
    """Pieces that could recapture on ``square``.

    With an attacker present, the first attacker takes and the pieces able
    to take it back are returned. Without one, an enemy queen is dropped on
    the square and its attackers are returned.
    """
    piece = board.piece_at(square)
    if piece is None:
        return []

    attackers = get_attackers(board, square)
    if attackers:
        test_attacker = attackers[0]
        capture_board = _with_turn(board, test_attacker.color)
        for promotion in _PROMOTIONS:
            move = chess.Move(test_attacker.square, square, promotion=promotion)
            if capture_board.is_legal(move):
                capture_board.push(move)
                return get_attackers(capture_board, square)
        return []

    queen_board = _with_turn(board, piece.color)
    queen_board.set_piece_at(square, chess.Piece(chess.QUEEN, not piece.color))
    return get_attackers(queen_board, square)


def is_piece_hanging(
    last_board: chess.Board,
    board: chess.Board,
    square: chess.Square,
) -> bool:
    """Whether the piece on ``square`` can be won after the last move.

    Args:
        last_board: Position before the last move.
        board: Position after the last move.
        square: Square of the piece to test.

    Returns:
        True if the piece is en prise.
    """
    piece = board.piece_at(square)
    if piece is None:
        return False

    last_piece = last_board.piece_at(square)
    attackers = get_attackers(board, square)
    defenders = get_defenders(board, square)
    value = _piece_value(piece.piece_type)

    # Just traded for something at least as valuable
    if (
        last_piece is not None
        and last_piece.color != piece.color
        and _piece_value(last_piece.piece_type) >= value
    ):
        return False

    # Rook took a minor piece and a single minor piece can take it back:
    # an exchange sacrifice, not a hanging rook
    if (
        piece.piece_type == chess.ROOK
        and last_piece is not None
        and _piece_value(last_piece.piece_type) == 3
        and len(attackers) == 1
        and attackers[0].value == 3
    ):
        return False

    if any(attacker.value < value for attacker in attackers):
        return True

    if len(attackers) > len(defenders):
        cheapest_attacker = min(attacker.value for attacker in attackers)

        # Taking would cost the attacker more than it wins
        if value < cheapest_attacker and any(
            defender.value < cheapest_attacker for defender in defenders
        ):
            return False

        # A pawn defender means the pawn, not the piece, is what drops
        if any(defender.value == 1 for defender in defenders):
            return False

        return True

    return False


def find_sacrificed_pieces(
    last_board: chess.Board,
    board: chess.Board,
    move: chess.Move,
) -> list[InfluencingPiece]:
    """The mover's pieces left hanging by ``move``.

    Pieces worth no more than the piece just captured (or, for a quiet
    move, the piece that moved) are skipped: a fair trade is happening.
    """
    mover = last_board.turn
    reference = last_board.piece_at(move.to_square) or last_board.piece_at(move.from_square)
    reference_value = _piece_value(reference.piece_type) if reference is not None else 0

    sacrificed: list[InfluencingPiece] = []
    for piece_type in _SACRIFICE_TYPES:
        if reference is not None and reference_value >= _piece_value(piece_type):
            continue
        for square in board.pieces(piece_type, mover):
            if is_piece_hanging(last_board, board, square):
                sacrificed.append(InfluencingPiece(square, mover, piece_type))
    return sacrificed


def _capture_hangs_heavier_piece(
    board: chess.Board,
    capture_board: chess.Board,
    heaviest: float,
) -> bool:
    """Whether the capturing side now hangs a piece worth >= ``heaviest``."""
    capturer = not capture_board.turn
    for square, piece in capture_board.piece_map().items():
        if piece.color != capturer or piece.piece_type in (chess.KING, chess.PAWN):
            continue
        if _piece_value(piece.piece_type) >= heaviest and is_piece_hanging(
            board, capture_board, square
        ):
            return True
    return False


def _allows_mate_in_one(board: chess.Board) -> bool:
    for move in board.legal_moves:
        board.push(move)
        mate = board.is_checkmate()
        board.pop()
        if mate:
            return True
    return False


def is_viable_sacrifice(board: chess.Board, sacrificed: list[InfluencingPiece]) -> bool:
    """Whether any sacrificed piece can actually be taken.

    Args:
        board: Position after the sacrificing move (opponent to move).
        sacrificed: Hanging pieces found by ``find_sacrificed_pieces``.

    Returns:
        True if at least one capture is a real acceptance of the sacrifice.
    """
    if not sacrificed:
        return False

    heaviest = max(piece.value for piece in sacrificed)

    for piece in sacrificed:
        for attacker in get_attackers(board, piece.square):
            for promotion in _PROMOTIONS:
                move = chess.Move(attacker.square, piece.square, promotion=promotion)
                if not board.is_legal(move):
                    continue

                capture_board = board.copy(stack=False)
                capture_board.push(move)

                if _capture_hangs_heavier_piece(board, capture_board, heaviest):
                    continue

                # Rooks and queens count even when taking them allows mate
                if piece.value >= _piece_value(chess.ROOK):
                    return True
                if not _allows_mate_in_one(capture_board):
                    return True

    return False


def is_brilliant_sacrifice(
    last_board: chess.Board,
    board: chess.Board,
    move: chess.Move,
) -> bool:
    """Whether ``move`` sacrificed material in a way that counts as brilliant.

    Moves played out of check are forced and never count.

    Args:
        last_board: Position before the move.
        board: Position after the move.
        move: The move played.

    Returns:
        True if a real sacrifice was made.
    """
    if last_board.is_check():
        return False

    sacrificed = find_sacrificed_pieces(last_board, board, move)
    return is_viable_sacrifice(board, sacrificed)

"""MCP server for chess game review.

Exposes the review pipeline to an LLM agent via FastMCP. Reviews are
computed per call and never stored.
"""

from __future__ import annotations

import io
import logging
import sys
from pathlib import Path

# Add project root and mcp-server dir to path for imports
_PROJECT_ROOT = Path(__file__).resolve().parent.parent
_MCP_SERVER_DIR = Path(__file__).resolve().parent
sys.path.insert(0, str(_PROJECT_ROOT))
sys.path.insert(0, str(_MCP_SERVER_DIR))

import chess
import chess.pgn
from mcp.server.fastmcp import FastMCP

from chess_review.engine import (
    DEFAULT_DEPTH,
    DEFAULT_MULTIPV,
    ChessEngine,
    evaluation_coverage,
    is_evaluation_complete,
    positions_from_game,
)
from chess_review.models import Position
from chess_review.openings import OpeningsDB
from chess_review.review import review_game as run_review

from response_schemas import minify_report  # noqa: E402

logger = logging.getLogger(__name__)

mcp = FastMCP("chess-review")

# Opening recognition (graceful degradation if index not built)
_openings_db = OpeningsDB()


def _review_response(positions: list[Position]) -> dict:
    """Run the review pipeline and minify the result."""
    if not is_evaluation_complete(positions):
        return {
            "error": (
                f"Evaluation incomplete: {evaluation_coverage(positions):.0%} "
                "of positions have engine lines"
            )
        }
    report = run_review(positions, _openings_db)
    return minify_report(report.to_dict())


# ---------------------------------------------------------------------------
# Review tools
# ---------------------------------------------------------------------------


@mcp.tool()
def review_game(
    pgn: str,
    depth: int = DEFAULT_DEPTH,
    multipv: int = DEFAULT_MULTIPV,
) -> dict:
    """Review a complete game: label every move and score both sides.

    Creates a temporary engine, evaluates every position of the PGN's
    main line and classifies each move.

    Args:
        pgn: PGN text of the game (first game is used).
        depth: Analysis depth (default 16).
        multipv: Engine lines per position (default 3).

    Returns:
        Dict with accuracies, classifications, quality and per-move labels.
    """
    try:
        game = chess.pgn.read_game(io.StringIO(pgn))
    except ValueError as exc:
        return {"error": f"Invalid PGN: {exc}"}
    if game is None:
        return {"error": "No game found in PGN"}
    if game.errors:
        return {"error": f"Invalid PGN: {game.errors[0]}"}

    positions = positions_from_game(game)
    if len(positions) < 2:
        return {"error": "Game has no moves to review"}

    try:
        engine = ChessEngine()
    except FileNotFoundError as exc:
        return {"error": str(exc)}
    try:
        evaluated = engine.evaluate_positions(positions, depth=depth, multipv=multipv)
    finally:
        engine.close()

    return _review_response(evaluated)


@mcp.tool()
def classify_evaluations(positions: list[dict]) -> dict:
    """Classify a game that was already evaluated elsewhere.

    No engine is used. Each position needs a FEN, the move leading into
    it (except the first) and its white-relative top lines.

    Args:
        positions: List of dicts with fen, move {uci, san} and top_lines
            [{id, depth, evaluation {type, value}, move_uci}].

    Returns:
        Dict with accuracies, classifications, quality and per-move labels.
    """
    if not positions:
        return {"error": "No positions given"}

    try:
        parsed = [Position.from_dict(raw) for raw in positions]
    except ValueError as exc:
        return {"error": str(exc)}

    return _review_response(parsed)


@mcp.tool()
def identify_opening(fen: str) -> dict:
    """Identify the named opening of a position.

    Args:
        fen: FEN string of the position.

    Returns:
        Dict with fen, eco, name, family and in_book.
    """
    try:
        chess.Board(fen)
    except ValueError as exc:
        return {"error": f"Invalid FEN: {exc}"}

    match = _openings_db.identify_fen(fen)
    if match is None:
        return {"fen": fen, "eco": None, "name": None, "family": None, "in_book": False}
    return {
        "fen": fen,
        "eco": match["eco"],
        "name": match["name"],
        "family": match["family"],
        "in_book": True,
    }


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------

if __name__ == "__main__":
    mcp.run()

"""Stockfish evaluation adapter for game review.

Wraps Stockfish via the python-chess UCI interface. Provides:
- Multi-PV analysis of a position as white-relative EngineLines
- Evaluation of a whole game's position sequence
- Position sequences built from PGN games
- The completeness check callers run before classifying
- CLI: analyze a FEN, or evaluate a PGN game to JSON
"""

from __future__ import annotations

import argparse
import json
import logging
import os
import shutil
from dataclasses import replace
from pathlib import Path
from typing import Sequence

import chess
import chess.engine
import chess.pgn

from chess_review.models import EngineLine, Evaluation, Move, Position

logger = logging.getLogger(__name__)

# Stockfish search paths in priority order
_STOCKFISH_PATHS = [
    "/opt/homebrew/bin/stockfish",
    "/usr/local/bin/stockfish",
    "/usr/bin/stockfish",
]

DEFAULT_DEPTH = 16
DEFAULT_MULTIPV = 3

# Share of positions that need at least one line before a review may run
COMPLETENESS_RATIO = 0.9


def _find_stockfish() -> str:
    """Auto-detect Stockfish binary path.

    Checks $STOCKFISH_PATH, then known install paths, then falls back to
    PATH lookup.

    Returns:
        Path to Stockfish binary.

    Raises:
        FileNotFoundError: If Stockfish is not found anywhere.
    """
    env_path = os.environ.get("STOCKFISH_PATH")
    if env_path and Path(env_path).is_file():
        return env_path

    for path_str in _STOCKFISH_PATHS:
        if Path(path_str).is_file():
            return path_str

    which_result = shutil.which("stockfish")
    if which_result is not None:
        return which_result

    raise FileNotFoundError(
        "Stockfish not found. Install it or set STOCKFISH_PATH."
    )


def lines_from_infos(board: chess.Board, infos: list[dict], depth: int) -> list[EngineLine]:
    """Convert python-chess analysis infos to white-relative EngineLines.

    Infos without a principal variation (terminal positions) are skipped.

    Args:
        board: Position that was analysed.
        infos: Result of ``SimpleEngine.analyse(..., multipv=n)``.
        depth: Requested depth, used when an info carries none.

    Returns:
        Lines ordered by rank.
    """
    lines: list[EngineLine] = []
    for rank, info in enumerate(infos, 1):
        pv = info.get("pv") or []
        score = info.get("score")
        if not pv or score is None:
            continue

        white_score = score.white()
        mate = white_score.mate()
        if mate is not None:
            evaluation = Evaluation.mate(mate)
        else:
            evaluation = Evaluation.cp(white_score.score())

        lines.append(EngineLine(
            id=info.get("multipv", rank),
            depth=info.get("depth", depth),
            evaluation=evaluation,
            move_uci=pv[0].uci(),
            move_san=board.san(pv[0]),
        ))

    return sorted(lines, key=lambda line: line.id)


class ChessEngine:
    """Stockfish wrapper producing review-ready evaluations."""

    def __init__(self, stockfish_path: str | None = None) -> None:
        """Initialize engine with Stockfish.

        Args:
            stockfish_path: Explicit path to Stockfish binary.
                If None, auto-detects from known locations.

        Raises:
            FileNotFoundError: If Stockfish is not found.
        """
        self._stockfish_path = stockfish_path or _find_stockfish()
        self._engine = self._open_engine()

    def _open_engine(self) -> chess.engine.SimpleEngine:
        """Open a fresh Stockfish process.

        Returns:
            New SimpleEngine instance.
        """
        return chess.engine.SimpleEngine.popen_uci(self._stockfish_path)

    def _ensure_engine(self) -> None:
        """Ensure engine process is alive, restart once if terminated."""
        try:
            self._engine.ping()
        except chess.engine.EngineTerminatedError:
            logger.warning("Stockfish process terminated; restarting")
            self._engine = self._open_engine()

    def analyze_position(
        self,
        board: chess.Board,
        depth: int = DEFAULT_DEPTH,
        multipv: int = DEFAULT_MULTIPV,
    ) -> list[EngineLine]:
        """Multi-PV analysis of a position.

        Args:
            board: Position to analyze.
            depth: Analysis depth.
            multipv: Number of principal variations.

        Returns:
            White-relative engine lines, best first. Empty for finished games.
        """
        if board.is_game_over():
            return []

        self._ensure_engine()

        try:
            return self._analyze_position_inner(board, depth, multipv)
        except chess.engine.EngineTerminatedError:
            logger.warning("Stockfish died during analysis; retrying once")
            self._engine = self._open_engine()
            return self._analyze_position_inner(board, depth, multipv)

    def _analyze_position_inner(
        self,
        board: chess.Board,
        depth: int,
        multipv: int,
    ) -> list[EngineLine]:
        """Internal analysis without crash recovery."""
        infos = self._engine.analyse(
            board,
            chess.engine.Limit(depth=depth),
            multipv=multipv,
        )
        if isinstance(infos, dict):
            infos = [infos]
        return lines_from_infos(board, infos, depth)

    def evaluate_positions(
        self,
        positions: Sequence[Position],
        depth: int = DEFAULT_DEPTH,
        multipv: int = DEFAULT_MULTIPV,
    ) -> list[Position]:
        """Fill in engine lines for every position of a game.

        Args:
            positions: Positions without lines.
            depth: Analysis depth.
            multipv: Number of principal variations.

        Returns:
            New list of positions with ``top_lines`` set.
        """
        evaluated = []
        for index, position in enumerate(positions):
            lines = self.analyze_position(chess.Board(position.fen), depth, multipv)
            logger.debug("Evaluated %d/%d: %s", index + 1, len(positions), position.fen)
            evaluated.append(replace(position, top_lines=tuple(lines)))
        return evaluated

    def close(self) -> None:
        """Clean up Stockfish process."""
        try:
            self._engine.quit()
        except chess.engine.EngineTerminatedError:
            pass


def positions_from_game(game: chess.pgn.Game) -> list[Position]:
    """Build the position sequence of a game's main line.

    Args:
        game: Parsed PGN game.

    Returns:
        Initial position followed by one position per move.
    """
    board = game.board()
    positions = [Position(fen=board.fen())]
    for move in game.mainline_moves():
        san = board.san(move)
        board.push(move)
        positions.append(Position(fen=board.fen(), move=Move(uci=move.uci(), san=san)))
    return positions


def evaluation_coverage(positions: Sequence[Position]) -> float:
    """Share of positions with at least one engine line."""
    if not positions:
        return 0.0
    covered = sum(1 for position in positions if position.top_lines)
    return covered / len(positions)


def is_evaluation_complete(
    positions: Sequence[Position],
    ratio: float = COMPLETENESS_RATIO,
) -> bool:
    """Whether enough positions are evaluated to classify the game."""
    return evaluation_coverage(positions) >= ratio


# ---------------------------------------------------------------------------
# CLI interface
# ---------------------------------------------------------------------------


def _cli_analyze(fen: str, depth: int, multipv: int) -> None:
    """Analyze a FEN position and print the top lines.

    Args:
        fen: FEN string of the position to analyze.
        depth: Analysis depth.
        multipv: Number of lines.
    """
    engine = ChessEngine()
    try:
        board = chess.Board(fen)
        lines = engine.analyze_position(board, depth=depth, multipv=multipv)

        print(f"Position: {fen}")
        print(f"Side to move: {'White' if board.turn else 'Black'}")
        print()

        for line in lines:
            evaluation = line.evaluation
            score_str = (
                f"Mate in {evaluation.value}"
                if evaluation.is_mate
                else f"{evaluation.value / 100.0:+.2f}"
            )
            print(f"  Line {line.id}: {score_str}  {line.move_san} (depth {line.depth})")
    finally:
        engine.close()


def _cli_evaluate(pgn_path: str, depth: int, multipv: int) -> None:
    """Evaluate every position of a PGN game and print them as JSON.

    The output is the position list accepted by the classify_evaluations
    MCP tool.

    Args:
        pgn_path: PGN file; the first game is used.
        depth: Analysis depth.
        multipv: Lines per position.
    """
    with open(pgn_path, encoding="utf-8") as f:
        game = chess.pgn.read_game(f)
    if game is None:
        raise SystemExit(f"No game found in {pgn_path}")

    engine = ChessEngine()
    try:
        positions = engine.evaluate_positions(positions_from_game(game), depth, multipv)
    finally:
        engine.close()

    print(json.dumps([position.to_dict() for position in positions], indent=2))


def main() -> None:
    """CLI entry point for engine.py."""
    parser = argparse.ArgumentParser(
        description="Stockfish adapter - analyze positions or evaluate whole games"
    )
    subparsers = parser.add_subparsers(dest="command", help="Command to run")

    # analyze subcommand
    analyze_parser = subparsers.add_parser("analyze", help="Analyze a FEN position")
    analyze_parser.add_argument("fen", type=str, help="FEN string to analyze")

    # evaluate subcommand
    evaluate_parser = subparsers.add_parser(
        "evaluate", help="Evaluate every position of a PGN game (JSON output)"
    )
    evaluate_parser.add_argument("pgn", type=str, help="PGN file")

    for sub in (analyze_parser, evaluate_parser):
        sub.add_argument("--depth", type=int, default=DEFAULT_DEPTH, help="Search depth")
        sub.add_argument("--multipv", type=int, default=DEFAULT_MULTIPV, help="Lines per position")

    args = parser.parse_args()

    if args.command == "analyze":
        _cli_analyze(args.fen, args.depth, args.multipv)
    elif args.command == "evaluate":
        _cli_evaluate(args.pgn, args.depth, args.multipv)
    else:
        parser.print_help()


if __name__ == "__main__":
    main()

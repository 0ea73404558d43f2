"""Game review: classify every move of a game and score both sides.

``review_game`` runs the pure pipeline over an evaluated position
sequence. The CLI reads a PGN, evaluates it with Stockfish and prints the
review as a table (or JSON).

Usage:
    python -m chess_review.review game.pgn --depth 16
    python -m chess_review.review game.pgn --json
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from typing import Sequence

import chess.pgn
from rich.console import Console
from rich.table import Table

from chess_review.accuracy import compute_accuracies, tally_classifications
from chess_review.board_cache import BoardCache
from chess_review.classifier import (
    annotate_line_sans,
    annotate_openings,
    apply_book_overlay,
    classify_positions,
)
from chess_review.engine import (
    DEFAULT_DEPTH,
    DEFAULT_MULTIPV,
    ChessEngine,
    evaluation_coverage,
    is_evaluation_complete,
    positions_from_game,
)
from chess_review.models import Classification, GameReport, Position
from chess_review.openings import OpeningsDB

logger = logging.getLogger(__name__)

# Label colors for the terminal table
_LABEL_STYLES = {
    Classification.BRILLIANT: "bold cyan",
    Classification.GREAT: "blue",
    Classification.BEST: "green",
    Classification.EXCELLENT: "green",
    Classification.GOOD: "bright_green",
    Classification.INACCURACY: "yellow",
    Classification.MISTAKE: "dark_orange",
    Classification.MISS: "magenta",
    Classification.BLUNDER: "bold red",
    Classification.BOOK: "grey62",
    Classification.FORCED: "grey62",
}


def review_game(
    positions: Sequence[Position],
    openings: OpeningsDB | None = None,
    boards: BoardCache | None = None,
) -> GameReport:
    """Classify every move and compute both sides' accuracy.

    The caller is responsible for passing a fully evaluated game (see
    ``engine.is_evaluation_complete``). Re-running on the same input gives
    the same report.

    Args:
        positions: Evaluated positions, initial position first.
        openings: Opening book used for names and the book overlay.
        boards: Board cache; cleared before use.

    Returns:
        GameReport with labelled positions, accuracies and tallies.
    """
    boards = boards if boards is not None else BoardCache()
    boards.clear()

    classified = classify_positions(positions, boards)
    named = annotate_openings(classified, openings)
    booked = apply_book_overlay(named)
    final = annotate_line_sans(booked, boards)

    return GameReport(
        positions=final,
        accuracies=compute_accuracies(final),
        classifications=tally_classifications(final),
    )


def _format_eval(position: Position) -> str:
    line = position.line(1)
    if line is None:
        return ""
    evaluation = line.evaluation
    if evaluation.is_mate:
        return f"M{evaluation.value}" if evaluation.value else "#"
    return f"{evaluation.value / 100.0:+.2f}"


def render_report(report: GameReport, console: Console) -> None:
    """Print a review as a rich table followed by the accuracy summary."""
    table = Table(title="Game Review")
    table.add_column("#", justify="right")
    table.add_column("Move")
    table.add_column("Classification")
    table.add_column("Eval", justify="right")
    table.add_column("Best")
    table.add_column("Opening")

    positions = report.positions
    for index in range(1, len(positions)):
        position = positions[index]
        previous = positions[index - 1]
        move_number = (index + 1) // 2
        prefix = f"{move_number}." if index % 2 == 1 else f"{move_number}..."
        label = position.classification
        best = previous.line(1)
        table.add_row(
            str(index),
            f"{prefix} {position.move.san if position.move else '?'}",
            f"[{_LABEL_STYLES[label]}]{label.value}[/]" if label else "",
            _format_eval(position),
            best.move_san or best.move_uci if best else "",
            position.opening or "",
        )

    console.print(table)

    for color in ("white", "black"):
        counts = report.classifications[color]
        summary = ", ".join(f"{name} {count}" for name, count in counts.items() if count)
        console.print(
            f"[bold]{color.capitalize()}[/] accuracy: {report.accuracies[color]:.1f}%  ({summary})"
        )


def main() -> None:
    """CLI entry point for review.py."""
    parser = argparse.ArgumentParser(description="Review a chess game with Stockfish")
    parser.add_argument("pgn", type=str, help="PGN file (first game is reviewed)")
    parser.add_argument("--depth", type=int, default=DEFAULT_DEPTH, help="Search depth")
    parser.add_argument("--multipv", type=int, default=DEFAULT_MULTIPV, help="Lines per position")
    parser.add_argument("--stockfish", type=str, default=None, help="Path to Stockfish binary")
    parser.add_argument("--json", action="store_true", help="Print the report as JSON")
    parser.add_argument("--verbose", action="store_true", help="Debug logging")

    args = parser.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )

    try:
        with open(args.pgn, encoding="utf-8") as f:
            game = chess.pgn.read_game(f)
    except OSError as exc:
        print(f"Error: could not read {args.pgn}: {exc}", file=sys.stderr)
        sys.exit(1)
    if game is None:
        print(f"Error: no game found in {args.pgn}", file=sys.stderr)
        sys.exit(1)

    engine = ChessEngine(args.stockfish)
    try:
        positions = engine.evaluate_positions(
            positions_from_game(game), depth=args.depth, multipv=args.multipv
        )
    finally:
        engine.close()

    if not is_evaluation_complete(positions):
        print(
            f"Error: only {evaluation_coverage(positions):.0%} of positions evaluated",
            file=sys.stderr,
        )
        sys.exit(1)

    report = review_game(positions, OpeningsDB())

    if args.json:
        print(json.dumps(report.to_dict(), indent=2))
    else:
        render_report(report, Console())


if __name__ == "__main__":
    main()

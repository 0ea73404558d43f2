"""Shared test fixtures with dual-mode support (mocked vs real Stockfish).

Usage:
    pytest tests/                  # Fast, mocked engine (no Stockfish)
    pytest tests/ --e2e            # Real Stockfish for integration tests

Fixtures:
    mock_chess_engine  - A mock ChessEngine producing synthetic multi-PV
                         lines. None when --e2e is passed.
    openings_db        - OpeningsDB over a small in-memory placement index.
    enable_validation  - Sets CHESS_REVIEW_VALIDATE=1 for schema validation.
"""

from __future__ import annotations

import os
from dataclasses import replace
from unittest.mock import MagicMock

import chess
import pytest

from chess_review.models import EngineLine, Evaluation
from chess_review.openings import OpeningsDB, placement
from chess_review.perspective import multiplier


# ---------------------------------------------------------------------------
# CLI option and marker registration
# ---------------------------------------------------------------------------


def pytest_addoption(parser):
    """Register --e2e CLI flag for real Stockfish tests."""
    parser.addoption(
        "--e2e",
        action="store_true",
        default=False,
        help="Run with real Stockfish engine (no mocks).",
    )


def pytest_configure(config):
    """Register the e2e marker."""
    config.addinivalue_line(
        "markers", "e2e: mark test as end-to-end (requires real Stockfish)"
    )


def pytest_collection_modifyitems(config, items):
    """Skip e2e tests unless --e2e is passed."""
    if config.getoption("--e2e"):
        return
    skip_e2e = pytest.mark.skip(reason="needs --e2e and a Stockfish binary")
    for item in items:
        if "e2e" in item.keywords:
            item.add_marker(skip_e2e)


# ---------------------------------------------------------------------------
# Mock chess engine fixture
# ---------------------------------------------------------------------------


def _mock_lines(board: chess.Board, multipv: int) -> list[EngineLine]:
    """Synthetic lines: first legal move +15, each next one 40 cp worse."""
    if board.is_game_over():
        return []
    sign = multiplier(board.turn)
    lines = []
    for rank, move in enumerate(list(board.legal_moves)[:multipv], 1):
        lines.append(EngineLine(
            id=rank,
            depth=12,
            evaluation=Evaluation.cp(15 - sign * 40 * (rank - 1)),
            move_uci=move.uci(),
            move_san=board.san(move),
        ))
    return lines


def _make_mock_engine() -> MagicMock:
    """Create a mock ChessEngine returning synthetic analysis."""
    mock = MagicMock()

    def _analyze_position(board: chess.Board, depth: int = 16, multipv: int = 3):
        return _mock_lines(board, multipv)

    def _evaluate_positions(positions, depth: int = 16, multipv: int = 3):
        return [
            replace(p, top_lines=tuple(_mock_lines(chess.Board(p.fen), multipv)))
            for p in positions
        ]

    mock.analyze_position = MagicMock(side_effect=_analyze_position)
    mock.evaluate_positions = MagicMock(side_effect=_evaluate_positions)
    mock.close = MagicMock()
    return mock


@pytest.fixture()
def mock_chess_engine(request):
    """A mock ChessEngine instance; None when --e2e is passed."""
    if request.config.getoption("--e2e"):
        return None
    return _make_mock_engine()


# ---------------------------------------------------------------------------
# Openings fixture
# ---------------------------------------------------------------------------

# Italian Game move order, each ply with the opening named at it
_BOOK_LINE = [
    ("e2e4", "C20", "King's Pawn Game"),
    ("e7e5", "C20", "King's Pawn Game"),
    ("g1f3", "C40", "King's Knight Opening"),
    ("b8c6", "C44", "King's Knight Opening: Normal Variation"),
    ("f1c4", "C50", "Italian Game"),
]


@pytest.fixture()
def openings_db(tmp_path):
    """OpeningsDB whose index covers the first five plies of the Italian."""
    board = chess.Board()
    index = {}
    for uci, eco, name in _BOOK_LINE:
        board.push_uci(uci)
        index[placement(board.fen())] = {"eco": eco, "name": name}
    return OpeningsDB(db_path=str(tmp_path / "missing.db"), index=index)


# ---------------------------------------------------------------------------
# Schema validation fixture
# ---------------------------------------------------------------------------


@pytest.fixture(autouse=True)
def enable_validation():
    """Set CHESS_REVIEW_VALIDATE=1 for the test session.

    Restores the original env var value after the test.
    """
    original = os.environ.get("CHESS_REVIEW_VALIDATE")
    os.environ["CHESS_REVIEW_VALIDATE"] = "1"
    yield
    if original is None:
        os.environ.pop("CHESS_REVIEW_VALIDATE", None)
    else:
        os.environ["CHESS_REVIEW_VALIDATE"] = original

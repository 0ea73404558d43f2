"""Tests for the review data models and their dict parsing."""

from __future__ import annotations

import logging

import chess
import pytest

from chess_review.models import (
    CLASSIFICATION_VALUES,
    Classification,
    EngineLine,
    Evaluation,
    Move,
    Position,
    color_name,
)
from chess_review.perspective import WhiteRelative

_AFTER_E4 = "rnbqkbnr/pppppppp/8/8/4P3/8/PPPP1PPP/RNBQKBNR b KQkq - 0 1"


class TestEvaluation:

    def test_mate_distance(self):
        assert Evaluation.mate(-3).mate_in == -3
        assert Evaluation.mate(-3).white() == WhiteRelative(value=-3, mate_in=-3)

    def test_delivered_mate_has_no_distance(self):
        assert Evaluation.mate(0).is_mate
        assert Evaluation.mate(0).mate_in is None

    def test_centipawns_have_no_distance(self):
        assert Evaluation.cp(120).white() == WhiteRelative(120)

    def test_from_dict(self):
        assert Evaluation.from_dict({"type": "mate", "value": "2"}) == Evaluation.mate(2)
        assert Evaluation.from_dict({"kind": "cp", "value": -35}) == Evaluation.cp(-35)

    @pytest.mark.parametrize("data", [
        {"type": "pawns", "value": 1},
        {"type": "cp"},
        {"type": "cp", "value": "lots"},
        None,
        "cp 30",
    ])
    def test_from_dict_rejects(self, data):
        with pytest.raises(ValueError):
            Evaluation.from_dict(data)


class TestEngineLine:

    def test_camel_case_keys(self):
        line = EngineLine.from_dict({
            "id": 2, "depth": 18, "evaluation": {"type": "cp", "value": 10},
            "moveUCI": "d2d4", "moveSAN": "d4",
        })
        assert (line.id, line.move_uci, line.move_san) == (2, "d2d4", "d4")

    def test_missing_rank(self):
        with pytest.raises(ValueError, match="Malformed"):
            EngineLine.from_dict({"evaluation": {"type": "cp", "value": 0}})


class TestPosition:

    def test_mover_is_opposite_of_side_to_move(self):
        position = Position(fen=_AFTER_E4)
        assert position.side_to_move == chess.BLACK
        assert position.mover == chess.WHITE

    def test_line_by_rank(self):
        second = EngineLine(id=2, depth=1, evaluation=Evaluation.cp(0), move_uci="d2d4")
        position = Position(fen=chess.STARTING_FEN, top_lines=(second,))
        assert position.line(2) is second
        assert position.line(1) is None

    def test_from_dict_drops_malformed_lines(self, caplog):
        data = {
            "fen": chess.STARTING_FEN,
            "top_lines": [
                {"id": 1, "depth": 10, "evaluation": {"type": "cp", "value": 25}, "move_uci": "e2e4"},
                {"id": 2, "depth": 10, "evaluation": {"type": "??"}, "move_uci": "d2d4"},
            ],
        }
        with caplog.at_level(logging.WARNING, logger="chess_review.models"):
            position = Position.from_dict(data)
        assert [line.id for line in position.top_lines] == [1]
        assert "Dropping malformed engine line" in caplog.text

    def test_from_dict_drops_line_without_evaluation(self, caplog):
        data = {
            "fen": chess.STARTING_FEN,
            "top_lines": [
                {"id": 1, "depth": 10, "evaluation": {"type": "cp", "value": 25}, "move_uci": "e2e4"},
                {"id": 2, "depth": 10, "evaluation": None, "move_uci": "d2d4"},
            ],
        }
        with caplog.at_level(logging.WARNING, logger="chess_review.models"):
            position = Position.from_dict(data)
        assert [line.id for line in position.top_lines] == [1]

    def test_null_san_read_as_empty(self):
        position = Position.from_dict({"fen": _AFTER_E4, "move": {"uci": "e2e4", "san": None}})
        assert position.move == Move(uci="e2e4", san="")

    def test_from_dict_rejects_non_string_uci(self):
        with pytest.raises(ValueError, match="Malformed move"):
            Position.from_dict({"fen": _AFTER_E4, "move": {"uci": 42}})

    def test_from_dict_rejects_bad_fen(self):
        with pytest.raises(ValueError, match="Invalid FEN"):
            Position.from_dict({"fen": "nonsense"})

    def test_from_dict_requires_fen(self):
        with pytest.raises(ValueError):
            Position.from_dict({"move": {"uci": "e2e4"}})

    def test_to_dict_round_trip(self):
        line = EngineLine(id=1, depth=12, evaluation=Evaluation.mate(4), move_uci="e7e5", move_san="e5")
        position = Position(fen=_AFTER_E4, top_lines=(line,), classification=Classification.BEST)
        data = position.to_dict()
        assert data["classification"] == "best"
        assert Position.from_dict(data).top_lines == (line,)


def test_color_name():
    assert color_name(chess.WHITE) == "white"
    assert color_name(chess.BLACK) == "black"


def test_every_label_has_a_value():
    assert set(CLASSIFICATION_VALUES) == set(Classification)
    assert CLASSIFICATION_VALUES[Classification.BLUNDER] == 0.0
    assert CLASSIFICATION_VALUES[Classification.GOOD] == 0.65

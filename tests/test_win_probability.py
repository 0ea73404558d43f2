"""Tests for the win-probability model and score perspectives."""

from __future__ import annotations

import math

import chess
import pytest

from chess_review.perspective import MoverRelative, WhiteRelative, multiplier, to_mover_relative
from chess_review.win_probability import (
    MATE_LOSS_PROBABILITY,
    MATE_WIN_PROBABILITY,
    centipawns_from_win_probability,
    expected_points_loss,
    score_win_probability,
    win_probability,
)


# ---------------------------------------------------------------------------
# win_probability
# ---------------------------------------------------------------------------


class TestWinProbability:

    def test_equal_position_is_even(self):
        assert win_probability(0) == pytest.approx(0.5)

    def test_plus_400_is_about_ninety_percent(self):
        assert win_probability(400) == pytest.approx(1 / 1.1)

    def test_symmetric(self):
        assert win_probability(150) + win_probability(-150) == pytest.approx(1.0)

    def test_monotonic(self):
        values = [win_probability(cp) for cp in (-900, -300, 0, 300, 900)]
        assert values == sorted(values)

    def test_mate_for_mover_saturates_high(self):
        assert win_probability(3, mate_in=3) == MATE_WIN_PROBABILITY
        assert win_probability(25, mate_in=25) == MATE_WIN_PROBABILITY

    def test_mate_against_mover_saturates_low(self):
        assert win_probability(-1, mate_in=-1) == MATE_LOSS_PROBABILITY

    def test_score_wrapper(self):
        assert score_win_probability(MoverRelative(200)) == pytest.approx(win_probability(200))


class TestInverse:

    def test_even_is_zero(self):
        assert centipawns_from_win_probability(0.5) == pytest.approx(0.0)

    @pytest.mark.parametrize("cp", [-1500, -600, -150, -1, 1, 90, 400, 1000, 2500])
    def test_round_trip(self, cp):
        assert centipawns_from_win_probability(win_probability(cp)) == pytest.approx(cp)

    def test_bounds_are_infinite(self):
        assert centipawns_from_win_probability(0.0) == -math.inf
        assert centipawns_from_win_probability(1.0) == math.inf


class TestExpectedPointsLoss:

    def test_same_score_loses_nothing(self):
        assert expected_points_loss(MoverRelative(80), MoverRelative(80)) == 0

    def test_worse_move_loses_points(self):
        epl = expected_points_loss(MoverRelative(100), MoverRelative(-100))
        assert epl == pytest.approx(win_probability(100) - win_probability(-100))
        assert epl > 0

    def test_missing_mate_for_equality(self):
        epl = expected_points_loss(MoverRelative(2, mate_in=2), MoverRelative(0))
        assert epl == pytest.approx(MATE_WIN_PROBABILITY - 0.5)


# ---------------------------------------------------------------------------
# Perspective conversion
# ---------------------------------------------------------------------------


class TestPerspective:

    def test_multiplier(self):
        assert multiplier(chess.WHITE) == 1
        assert multiplier(chess.BLACK) == -1

    def test_white_keeps_sign(self):
        assert to_mover_relative(WhiteRelative(120), chess.WHITE) == MoverRelative(120)

    def test_black_flips_centipawns(self):
        assert to_mover_relative(WhiteRelative(120), chess.BLACK) == MoverRelative(-120)

    def test_black_flips_mate_distance(self):
        score = WhiteRelative(value=-3, mate_in=-3)
        assert to_mover_relative(score, chess.BLACK) == MoverRelative(value=3, mate_in=3)

    def test_delivered_mate_has_no_distance(self):
        assert to_mover_relative(WhiteRelative(0), chess.BLACK).mate_in is None

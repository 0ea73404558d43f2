"""Tests for EPL tiering and centipawn loss thresholds."""

from __future__ import annotations

import math

import pytest

from chess_review.models import Classification
from chess_review.thresholds import classify_by_epl, loss_threshold


class TestClassifyByEpl:

    @pytest.mark.parametrize("epl, expected", [
        (0.0, Classification.EXCELLENT),
        (0.02, Classification.EXCELLENT),
        (0.03, Classification.GOOD),
        (0.05, Classification.GOOD),
        (0.07, Classification.INACCURACY),
        (0.10, Classification.INACCURACY),
        (0.15, Classification.MISTAKE),
        (0.20, Classification.MISTAKE),
        (0.25, Classification.BLUNDER),
        (0.9, Classification.BLUNDER),
    ])
    def test_tiers(self, epl, expected):
        assert classify_by_epl(epl) == expected


class TestLossThreshold:

    def test_blunder_is_unbounded(self):
        assert loss_threshold(Classification.BLUNDER, 0) == math.inf

    def test_labels_without_budget_are_unbounded(self):
        assert loss_threshold(Classification.BOOK, 0) == math.inf

    def test_best_allows_no_loss(self):
        assert loss_threshold(Classification.BEST, 0) == pytest.approx(0.0)

    def test_excellent_from_equal(self):
        threshold = loss_threshold(Classification.EXCELLENT, 0)
        assert 10 < threshold < 20

    def test_wider_budget_wider_threshold(self):
        excellent = loss_threshold(Classification.EXCELLENT, 50)
        good = loss_threshold(Classification.GOOD, 50)
        mistake = loss_threshold(Classification.MISTAKE, 50)
        assert excellent < good < mistake

    def test_winning_positions_tolerate_more_centipawns(self):
        assert loss_threshold(Classification.GOOD, 600) > loss_threshold(Classification.GOOD, 0)

    def test_lost_position_budget_unreachable(self):
        assert loss_threshold(Classification.MISTAKE, -2000) == math.inf

    def test_never_negative(self):
        for label in (Classification.EXCELLENT, Classification.GOOD, Classification.INACCURACY):
            for prior in (-800, -100, 0, 100, 800):
                assert loss_threshold(label, prior) >= 0

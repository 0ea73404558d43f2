"""Tests for the FEN-keyed board cache."""

from __future__ import annotations

import chess
import pytest

from chess_review.board_cache import DEFAULT_CAPACITY, BoardCache

_FENS = [
    chess.STARTING_FEN,
    "rnbqkbnr/pppppppp/8/8/4P3/8/PPPP1PPP/RNBQKBNR b KQkq - 0 1",
    "rnbqkbnr/pppp1ppp/8/4p3/4P3/8/PPPP1PPP/RNBQKBNR w KQkq - 0 2",
]


def test_default_capacity():
    assert DEFAULT_CAPACITY == 100


def test_parses_once():
    cache = BoardCache()
    first = cache.get(_FENS[0])
    assert cache.get(_FENS[0]) is first
    assert first.fen() == _FENS[0]
    assert len(cache) == 1


def test_evicts_oldest():
    cache = BoardCache(capacity=2)
    for fen in _FENS:
        cache.get(fen)
    assert len(cache) == 2
    assert _FENS[0] not in cache
    assert _FENS[1] in cache and _FENS[2] in cache


def test_clear():
    cache = BoardCache()
    cache.get(_FENS[0])
    cache.clear()
    assert len(cache) == 0


def test_invalid_fen_raises():
    with pytest.raises(ValueError):
        BoardCache().get("not a fen")


def test_capacity_must_be_positive():
    with pytest.raises(ValueError, match="capacity"):
        BoardCache(capacity=0)

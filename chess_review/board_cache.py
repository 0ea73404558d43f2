"""Bounded cache of parsed boards keyed by FEN."""

from __future__ import annotations

import chess

DEFAULT_CAPACITY = 100


class BoardCache:
    """FEN -> chess.Board cache with oldest-first eviction.

    Cached boards are shared; callers copy before pushing moves.
    """

    def __init__(self, capacity: int = DEFAULT_CAPACITY) -> None:
        if capacity < 1:
            raise ValueError("BoardCache capacity must be at least 1")
        self._capacity = capacity
        self._boards: dict[str, chess.Board] = {}

    def get(self, fen: str) -> chess.Board:
        """Return the board for ``fen``, parsing it on first use.

        Raises:
            ValueError: If the FEN cannot be parsed.
        """
        board = self._boards.get(fen)
        if board is None:
            board = chess.Board(fen)
            if len(self._boards) >= self._capacity:
                del self._boards[next(iter(self._boards))]
            self._boards[fen] = board
        return board

    def clear(self) -> None:
        self._boards.clear()

    def __len__(self) -> int:
        return len(self._boards)

    def __contains__(self, fen: object) -> bool:
        return fen in self._boards

"""Shared data models for the game review pipeline.

Position, EngineLine and Evaluation are the contract between the engine
adapter, the classifier and anything consuming a GameReport (CLI, MCP
server). Every evaluation stored here is white-relative.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum

import chess

from chess_review.perspective import WhiteRelative

logger = logging.getLogger(__name__)


class Classification(str, Enum):
    """Fixed set of move labels."""

    BRILLIANT = "brilliant"
    GREAT = "great"
    BEST = "best"
    EXCELLENT = "excellent"
    GOOD = "good"
    INACCURACY = "inaccuracy"
    MISTAKE = "mistake"
    MISS = "miss"
    BLUNDER = "blunder"
    BOOK = "book"
    FORCED = "forced"


# Quality weight of each label, 0 (worst) to 1 (no loss)
CLASSIFICATION_VALUES: dict[Classification, float] = {
    Classification.BLUNDER: 0.0,
    Classification.MISTAKE: 0.2,
    Classification.MISS: 0.3,
    Classification.INACCURACY: 0.4,
    Classification.GOOD: 0.65,
    Classification.EXCELLENT: 0.9,
    Classification.BEST: 1.0,
    Classification.GREAT: 1.0,
    Classification.BRILLIANT: 1.0,
    Classification.BOOK: 1.0,
    Classification.FORCED: 1.0,
}

COLORS = ("white", "black")


def color_name(color: chess.Color) -> str:
    """Return "white" or "black" for a python-chess color."""
    return "white" if color == chess.WHITE else "black"


@dataclass(frozen=True)
class Evaluation:
    """White-relative engine score.

    ``kind`` is "cp" or "mate". For mate scores ``value`` is the signed
    distance (positive: White mates).
    """

    kind: str
    value: int

    @classmethod
    def cp(cls, value: int) -> Evaluation:
        return cls(kind="cp", value=value)

    @classmethod
    def mate(cls, distance: int) -> Evaluation:
        return cls(kind="mate", value=distance)

    @property
    def is_mate(self) -> bool:
        return self.kind == "mate"

    @property
    def mate_in(self) -> int | None:
        """Signed mate distance, or None.

        A mate already on the board (distance 0) has nothing left to count
        and is scored like a level position.
        """
        if self.is_mate and self.value != 0:
            return self.value
        return None

    def white(self) -> WhiteRelative:
        return WhiteRelative(value=self.value, mate_in=self.mate_in)

    def to_dict(self) -> dict:
        return {"type": self.kind, "value": self.value}

    @classmethod
    def from_dict(cls, data: dict) -> Evaluation:
        """Parse ``{"type": "cp" | "mate", "value": int}``.

        Raises:
            ValueError: If the data is not a dict, the type is unknown or the
                value is not numeric.
        """
        if not isinstance(data, dict):
            raise ValueError(f"Evaluation must be a dict: {data!r}")
        kind = data.get("type", data.get("kind"))
        if kind not in ("cp", "mate"):
            raise ValueError(f"Unknown evaluation type: {kind!r}")
        try:
            value = int(data["value"])
        except (KeyError, TypeError, ValueError) as exc:
            raise ValueError(f"Invalid evaluation value in {data!r}") from exc
        return cls(kind=kind, value=value)


@dataclass(frozen=True)
class EngineLine:
    """One ranked candidate move at a position (id 1 = principal variation)."""

    id: int
    depth: int
    evaluation: Evaluation
    move_uci: str
    move_san: str | None = None

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "depth": self.depth,
            "evaluation": self.evaluation.to_dict(),
            "move_uci": self.move_uci,
            "move_san": self.move_san,
        }

    @classmethod
    def from_dict(cls, data: dict) -> EngineLine:
        """Parse a line dict. Accepts snake_case and camelCase move keys."""
        try:
            return cls(
                id=int(data["id"]),
                depth=int(data.get("depth", 0)),
                evaluation=Evaluation.from_dict(data["evaluation"]),
                move_uci=data.get("move_uci", data.get("moveUCI", "")) or "",
                move_san=data.get("move_san", data.get("moveSAN")),
            )
        except (KeyError, TypeError, AttributeError) as exc:
            raise ValueError(f"Malformed engine line: {data!r}") from exc


@dataclass(frozen=True)
class Move:
    """The move leading into a position."""

    uci: str
    san: str


@dataclass(frozen=True)
class ClassificationContext:
    """Per-move values computed once by the classifier.

    All scores are white-relative. ``mover`` is the side that played the
    move; ``previous`` belongs to the position before it and is read from
    the opposite side's view.
    """

    mover: chess.Color
    best_after: WhiteRelative
    played_after: WhiteRelative
    previous: WhiteRelative
    second_after: WhiteRelative | None
    epl: float


@dataclass(frozen=True)
class Position:
    """One ply of a game."""

    fen: str
    move: Move | None = None
    top_lines: tuple[EngineLine, ...] = ()
    classification: Classification | None = None
    opening: str | None = None
    context: ClassificationContext | None = None

    def line(self, rank: int) -> EngineLine | None:
        """Return the engine line with the given rank, if present."""
        for line in self.top_lines:
            if line.id == rank:
                return line
        return None

    @property
    def side_to_move(self) -> chess.Color:
        parts = self.fen.split(" ")
        return chess.BLACK if len(parts) > 1 and parts[1] == "b" else chess.WHITE

    @property
    def mover(self) -> chess.Color:
        """The side that made the move leading into this position."""
        return not self.side_to_move

    def to_dict(self) -> dict:
        return {
            "fen": self.fen,
            "move": {"uci": self.move.uci, "san": self.move.san} if self.move else None,
            "top_lines": [line.to_dict() for line in self.top_lines],
            "classification": self.classification.value if self.classification else None,
            "opening": self.opening,
        }

    @classmethod
    def from_dict(cls, data: dict) -> Position:
        """Parse an evaluated position dict.

        Lines without a usable evaluation are dropped (logged), so a
        partial multi-PV result degrades to a missing line rather than an
        error.

        Raises:
            ValueError: If the FEN or move is missing or malformed.
        """
        if not isinstance(data, dict) or not isinstance(data.get("fen"), str):
            raise ValueError(f"Position needs a FEN string: {data!r}")
        try:
            chess.Board(data["fen"])
        except ValueError as exc:
            raise ValueError(f"Invalid FEN: {data['fen']!r}") from exc

        move = None
        raw_move = data.get("move")
        if raw_move:
            try:
                move = Move(uci=raw_move["uci"], san=raw_move.get("san") or "")
            except (KeyError, TypeError, AttributeError) as exc:
                raise ValueError(f"Malformed move: {raw_move!r}") from exc
            if not isinstance(move.uci, str):
                raise ValueError(f"Malformed move: {raw_move!r}")

        lines: list[EngineLine] = []
        for raw_line in data.get("top_lines", data.get("topLines", [])) or []:
            try:
                lines.append(EngineLine.from_dict(raw_line))
            except ValueError:
                logger.warning("Dropping malformed engine line at %s: %r", data["fen"], raw_line)

        return cls(fen=data["fen"], move=move, top_lines=tuple(lines))


def _empty_tally() -> dict[str, dict[str, int]]:
    return {color: {label.value: 0 for label in Classification} for color in COLORS}


@dataclass
class GameReport:
    """Result of reviewing one game."""

    positions: list[Position] = field(default_factory=list)
    accuracies: dict[str, float] = field(
        default_factory=lambda: {"white": 100.0, "black": 100.0}
    )
    classifications: dict[str, dict[str, int]] = field(default_factory=_empty_tally)

    def to_dict(self) -> dict:
        return {
            "accuracies": dict(self.accuracies),
            "classifications": {
                color: dict(counts) for color, counts in self.classifications.items()
            },
            "positions": [position.to_dict() for position in self.positions],
        }

"""Response schemas and minification for MCP tool responses.

Minifies game reviews to reduce LLM context token waste: the full
report carries every engine line of every position, the agent only
needs the move, its label and the engine's preferred move.
"""

from __future__ import annotations

import os

from chess_review.models import CLASSIFICATION_VALUES, Classification


# ---------------------------------------------------------------------------
# Minification functions
# ---------------------------------------------------------------------------


def minify_position(position: dict, previous: dict | None) -> dict:
    """Minify one reviewed position for MCP response.

    Keeps the played move, its label and opening, the evaluation after
    the move and the engine's best move from the previous position.

    Args:
        position: Position dict (from Position.to_dict).
        previous: The preceding position dict, or None for the first one.

    Returns:
        Minified dict.
    """
    move = position.get("move") or {}
    result = {
        "move": move.get("san") or move.get("uci"),
        "classification": position.get("classification"),
    }

    lines = position.get("top_lines") or []
    if lines:
        result["eval"] = lines[0].get("evaluation")

    previous_lines = (previous or {}).get("top_lines") or []
    if previous_lines:
        best = previous_lines[0]
        result["best_move"] = best.get("move_san") or best.get("move_uci")

    # Only include opening when in book
    if position.get("opening"):
        result["opening"] = position["opening"]

    return result


def minify_report(report: dict) -> dict:
    """Minify a GameReport dict for MCP response.

    Drops the initial position and non-principal engine lines, compacts
    tallies to non-zero counts and adds a mean label quality per side.

    Args:
        report: Full report dict (from GameReport.to_dict).

    Returns:
        Minified dict with accuracies, classifications, quality, moves.
    """
    positions = report.get("positions", [])
    moves = [
        minify_position(positions[i], positions[i - 1])
        for i in range(1, len(positions))
    ]

    classifications = {}
    quality = {}
    for color, counts in report.get("classifications", {}).items():
        classifications[color] = {label: n for label, n in counts.items() if n}
        total = sum(counts.values())
        weighted = sum(
            CLASSIFICATION_VALUES[Classification(label)] * n
            for label, n in counts.items()
        )
        quality[color] = round(weighted / total, 3) if total else 1.0

    return {
        "accuracies": {
            color: round(value, 1)
            for color, value in report.get("accuracies", {}).items()
        },
        "classifications": classifications,
        "quality": quality,
        "moves": moves,
    }


# ---------------------------------------------------------------------------
# Validation schemas (dict-based)
# ---------------------------------------------------------------------------

REPORT_SCHEMA = {
    "accuracies": dict,
    "classifications": dict,
    "quality": dict,
    "moves": list,
}

OPENING_SCHEMA = {
    "fen": str,
    "eco": (str, type(None)),
    "name": (str, type(None)),
    "family": (str, type(None)),
    "in_book": bool,
}

ERROR_SCHEMA = {
    "error": str,
}


def validate_response(response: dict, schema: dict) -> list[str]:
    """Validate a response dict against a schema.

    Only runs when CHESS_REVIEW_VALIDATE=1 env var is set.

    Args:
        response: Response dict to validate.
        schema: Dict mapping key names to expected types (or tuple of types).

    Returns:
        List of validation error strings (empty = valid).
    """
    if os.environ.get("CHESS_REVIEW_VALIDATE") != "1":
        return []

    if not isinstance(response, dict):
        return [f"Response is not a dict: {type(response).__name__}"]

    errors = []
    for key, expected_types in schema.items():
        if key not in response:
            errors.append(f"Missing key: {key}")
            continue

        value = response[key]
        if not isinstance(value, expected_types):
            if isinstance(expected_types, tuple):
                expected = "(" + ", ".join(t.__name__ for t in expected_types) + ")"
            else:
                expected = expected_types.__name__
            errors.append(f"Key '{key}': expected {expected}, got {type(value).__name__}")

    return errors

"""Opening recognition by board placement.

Looks positions up in a placement index (FEN board field -> opening) and
enriches matches from the SQLite database built by
chess_review/build_openings_db.py.

Usage:
    from chess_review.openings import OpeningsDB
    db = OpeningsDB()
    db.opening_name("rnbqkbnr/pp1ppppp/8/2p5/4P3/8/PPPP1PPP/RNBQKBNR w KQkq - 0 2")
"""

import json
import logging
import os
import sqlite3

_PACKAGE_DIR = os.path.dirname(os.path.abspath(__file__))
_PROJECT_ROOT = os.path.dirname(_PACKAGE_DIR)
_DEFAULT_DB = os.path.join(_PROJECT_ROOT, "data", "openings.db")
_DEFAULT_INDEX = os.path.join(_PROJECT_ROOT, "data", "openings_index.json")

logger = logging.getLogger(__name__)


def placement(fen):
    """Return the piece-placement field of a FEN or EPD string."""
    return fen.strip().split(" ")[0]


class OpeningsDB:
    """Opening book keyed by piece placement.

    A missing or unreadable index simply means no position is in book.
    """

    def __init__(self, db_path=None, index_path=None, index=None):
        self._db_path = db_path or _DEFAULT_DB
        self._index_path = index_path or _DEFAULT_INDEX
        self._index = index if index is not None else self._load_index()

    def __len__(self):
        return len(self._index)

    def _load_index(self):
        """Load the placement index from JSON. Returns empty dict if unavailable."""
        if not os.path.exists(self._index_path):
            logger.info("Openings index not found at %s; book lookup disabled", self._index_path)
            return {}
        try:
            with open(self._index_path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (json.JSONDecodeError, OSError) as exc:
            logger.warning("Could not read openings index %s: %s", self._index_path, exc)
            return {}
        if not isinstance(data, dict):
            logger.warning("Openings index %s is not a JSON object", self._index_path)
            return {}
        return data

    def _get_conn(self):
        """Open a new SQLite connection (thread-safe pattern)."""
        if not os.path.exists(self._db_path):
            return None
        try:
            conn = sqlite3.connect(self._db_path)
            conn.row_factory = sqlite3.Row
            return conn
        except sqlite3.Error:
            return None

    def identify_fen(self, fen):
        """Identify the named opening whose placement matches ``fen``.

        Args:
            fen: FEN (or EPD) string of the position.

        Returns:
            Dict with eco, name, family, pgn keys, or None if not in book.
        """
        if not self._index or not fen:
            return None

        entry = self._index.get(placement(fen))
        if entry is None:
            return None

        eco = entry.get("eco", "")
        name = entry.get("name", "")
        family = name.split(":")[0].strip() if ":" in name else name
        return {
            "eco": eco,
            "name": name,
            "family": family,
            "pgn": self._get_pgn_for_eco_name(eco, name),
        }

    def opening_name(self, fen):
        """Name of the opening at ``fen``, or None when out of book."""
        if not self._index or not fen:
            return None
        entry = self._index.get(placement(fen))
        return entry.get("name") if entry else None

    def _get_pgn_for_eco_name(self, eco, name):
        """Look up PGN for a specific opening by ECO + name."""
        conn = self._get_conn()
        if conn is None:
            return ""
        try:
            row = conn.execute(
                "SELECT pgn FROM openings WHERE eco = ? AND name = ? LIMIT 1",
                (eco, name),
            ).fetchone()
            return row["pgn"] if row else ""
        except sqlite3.Error:
            return ""
        finally:
            conn.close()

#!/usr/bin/env python3
"""Build the openings book from Lichess chess-openings TSV files.

Downloads the five ECO volumes (a.tsv .. e.tsv) and writes:
  - openings_index.json: board placement -> {eco, name}, used for lookup
  - openings.db: SQLite table of every line, used to enrich matches

Usage:
    python -m chess_review.build_openings_db
    python -m chess_review.build_openings_db --data-dir /tmp/book --refresh
"""

import argparse
import csv
import io
import json
import logging
import os
import sqlite3
import sys
import tempfile
import urllib.request

import chess.pgn

logger = logging.getLogger(__name__)

_BASE_URL = "https://github.com/lichess-org/chess-openings/raw/master"
_VOLUMES = ["a.tsv", "b.tsv", "c.tsv", "d.tsv", "e.tsv"]

_PROJECT_ROOT = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
_DEFAULT_DATA_DIR = os.path.join(_PROJECT_ROOT, "data")

_COLUMNS = ("eco", "name", "pgn", "uci", "epd", "placement", "num_moves")


def download_tsvs(raw_dir, refresh=False):
    """Fetch the TSV volumes into ``raw_dir``, reusing earlier downloads.

    Raises:
        OSError: If a volume cannot be downloaded.
    """
    os.makedirs(raw_dir, exist_ok=True)
    paths = []
    for volume in _VOLUMES:
        local_path = os.path.join(raw_dir, volume)
        if refresh or not os.path.exists(local_path):
            url = f"{_BASE_URL}/{volume}"
            logger.info("Downloading %s", url)
            urllib.request.urlretrieve(url, local_path)
        else:
            logger.info("Using cached %s", volume)
        paths.append(local_path)
    return paths


def _replay(pgn_text):
    """Replay a PGN move list; returns (uci moves, final board) or None."""
    game = chess.pgn.read_game(io.StringIO(pgn_text))
    if game is None:
        return None
    board = game.board()
    moves = []
    for move in game.mainline_moves():
        moves.append(move.uci())
        board.push(move)
    return moves, board


def parse_tsv_rows(rows):
    """Turn TSV rows (dicts with eco, name, pgn) into opening records.

    Rows whose PGN does not replay are skipped.
    """
    openings = []
    for row in rows:
        pgn = row.get("pgn", "").strip()
        replayed = _replay(pgn)
        if replayed is None:
            logger.debug("Skipping unparseable row %r", row)
            continue
        moves, board = replayed
        epd = board.epd()
        openings.append({
            "eco": row.get("eco", "").strip(),
            "name": row.get("name", "").strip(),
            "pgn": pgn,
            "uci": " ".join(moves),
            "epd": epd,
            "placement": board.board_fen(),
            "num_moves": len(moves),
        })
    return openings


def parse_tsvs(paths):
    """Read every volume into one list of opening records."""
    openings = []
    for path in paths:
        with open(path, "r", encoding="utf-8") as f:
            openings.extend(parse_tsv_rows(csv.DictReader(f, delimiter="\t")))
    return openings


def build_index(openings):
    """Map each board placement to one opening.

    When several lines transpose into the same placement, the one reached
    by the longest move sequence wins (its name is the most specific).
    """
    index = {}
    plies = {}
    for opening in openings:
        key = opening["placement"]
        if plies.get(key, -1) >= opening["num_moves"]:
            continue
        index[key] = {"eco": opening["eco"], "name": opening["name"]}
        plies[key] = opening["num_moves"]
    return index


def _atomic_write(path, suffix, write):
    """Call ``write(tmp_path)`` then move the temp file over ``path``."""
    directory = os.path.dirname(path) or "."
    os.makedirs(directory, exist_ok=True)
    tmp_fd, tmp_path = tempfile.mkstemp(suffix=suffix, dir=directory)
    os.close(tmp_fd)
    try:
        write(tmp_path)
        os.replace(tmp_path, path)
    except Exception:
        if os.path.exists(tmp_path):
            os.unlink(tmp_path)
        raise
    return path


def write_index(index, path):
    """Write the placement index as compact JSON."""
    def _write(tmp_path):
        with open(tmp_path, "w", encoding="utf-8") as f:
            json.dump(index, f, separators=(",", ":"))

    return _atomic_write(path, ".json", _write)


def build_sqlite(openings, path):
    """Write every opening line to an indexed SQLite table."""
    def _write(tmp_path):
        conn = sqlite3.connect(tmp_path)
        try:
            conn.execute(
                "CREATE TABLE openings ("
                "id INTEGER PRIMARY KEY AUTOINCREMENT, "
                "eco TEXT NOT NULL, name TEXT NOT NULL, pgn TEXT NOT NULL, "
                "uci TEXT NOT NULL, epd TEXT NOT NULL, placement TEXT NOT NULL, "
                "num_moves INTEGER NOT NULL)"
            )
            conn.executemany(
                f"INSERT INTO openings ({', '.join(_COLUMNS)}) "
                f"VALUES ({', '.join(':' + c for c in _COLUMNS)})",
                openings,
            )
            for column in ("eco", "name", "placement"):
                conn.execute(f"CREATE INDEX idx_{column} ON openings({column})")
            conn.commit()
        finally:
            conn.close()

    return _atomic_write(path, ".db", _write)


def main():
    """CLI entry point for build_openings_db.py."""
    parser = argparse.ArgumentParser(description="Build the openings book for game review")
    parser.add_argument(
        "--data-dir", default=_DEFAULT_DATA_DIR, help="Output directory (default: data/)"
    )
    parser.add_argument("--refresh", action="store_true", help="Re-download the TSV volumes")
    args = parser.parse_args()

    logging.basicConfig(level=logging.INFO, format="%(message)s")

    try:
        paths = download_tsvs(os.path.join(args.data_dir, "openings_raw"), args.refresh)
    except OSError as exc:
        print(f"ERROR: download failed: {exc}", file=sys.stderr)
        print("Check your internet connection and try again.", file=sys.stderr)
        sys.exit(1)

    openings = parse_tsvs(paths)
    logger.info("%d openings parsed", len(openings))

    db_path = build_sqlite(openings, os.path.join(args.data_dir, "openings.db"))
    logger.info("Wrote %s (%s bytes)", db_path, f"{os.path.getsize(db_path):,}")

    index = build_index(openings)
    index_path = write_index(index, os.path.join(args.data_dir, "openings_index.json"))
    logger.info("Wrote %s (%d placements)", index_path, len(index))


if __name__ == "__main__":
    main()

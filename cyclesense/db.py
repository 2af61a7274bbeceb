"""
CycleSense Persistence Layer
=============================

SQLite-backed JSON blob store for saving and restoring games.

Design:
  - Each "save" is a JSON document stored in a single row
  - Rows are keyed by (save_type, save_key)
  - No ORM: sqlite3 + json
  - WAL mode and a connection per call

Save types:
  - "game"  → full Game state (session, catalog, ledger, rounds)

Decimals are written as strings so NAVs keep their 2-place scale.
"""

from __future__ import annotations

import json
import logging
import sqlite3
import time
from pathlib import Path
from typing import Optional

from cyclesense.config import DEFAULT_DB_PATH

_log = logging.getLogger("cyclesense.db")

SAVE_TYPE_GAME = "game"
DEFAULT_SAVE_KEY = "current"

_db_path: Path = DEFAULT_DB_PATH


def set_db_path(path: str | Path):
    """Override the database file path (e.g. for testing)."""
    global _db_path
    _db_path = Path(path)


def get_db_path() -> Path:
    return _db_path


def _connect() -> sqlite3.Connection:
    _db_path.parent.mkdir(parents=True, exist_ok=True)
    conn = sqlite3.connect(str(_db_path), timeout=10)
    conn.execute("PRAGMA journal_mode=WAL")
    conn.row_factory = sqlite3.Row
    return conn


def init_db():
    """Create tables if they don't exist. Safe to call multiple times."""
    conn = _connect()
    try:
        conn.executescript("""
            CREATE TABLE IF NOT EXISTS saves (
                id          INTEGER PRIMARY KEY AUTOINCREMENT,
                save_type   TEXT    NOT NULL,
                save_key    TEXT    NOT NULL,
                label       TEXT    NOT NULL DEFAULT '',
                data        TEXT    NOT NULL,
                created_at  REAL    NOT NULL,
                updated_at  REAL    NOT NULL,
                UNIQUE(save_type, save_key)
            );

            CREATE INDEX IF NOT EXISTS idx_saves_updated
                ON saves(updated_at DESC);
        """)
        conn.commit()
        _log.info(f"Database initialized at {_db_path}")
    finally:
        conn.close()


# ═══════════════════════════════════════════════════════════════
# CORE CRUD
# ═══════════════════════════════════════════════════════════════

def save_blob(save_type: str, save_key: str, data: dict, label: str = ""):
    """Upsert a JSON blob. Overwrites if (save_type, save_key) already exists."""
    now = time.time()
    blob = json.dumps(data, default=str)
    conn = _connect()
    try:
        conn.execute(
            """
            INSERT INTO saves (save_type, save_key, label, data, created_at, updated_at)
            VALUES (?, ?, ?, ?, ?, ?)
            ON CONFLICT(save_type, save_key)
            DO UPDATE SET data=excluded.data, label=excluded.label, updated_at=excluded.updated_at
            """,
            (save_type, save_key, label, blob, now, now),
        )
        conn.commit()
        _log.debug(f"Saved {save_type}/{save_key} ({len(blob)} bytes)")
    finally:
        conn.close()


def load_blob(save_type: str, save_key: str) -> Optional[dict]:
    """Load a JSON blob. Returns None if not found."""
    conn = _connect()
    try:
        row = conn.execute(
            "SELECT data FROM saves WHERE save_type=? AND save_key=?",
            (save_type, save_key),
        ).fetchone()
        if row is None:
            return None
        return json.loads(row["data"])
    finally:
        conn.close()


def delete_blob(save_type: str, save_key: str) -> bool:
    """Delete a JSON blob. Returns False if there was nothing to delete."""
    conn = _connect()
    try:
        cur = conn.execute(
            "DELETE FROM saves WHERE save_type=? AND save_key=?",
            (save_type, save_key),
        )
        conn.commit()
        return cur.rowcount > 0
    finally:
        conn.close()


def list_saves(save_type: str | None = None) -> list[dict]:
    """List saved blobs (without loading full data). Returns metadata dicts."""
    conn = _connect()
    try:
        if save_type:
            rows = conn.execute(
                """
                SELECT save_type, save_key, label, created_at, updated_at,
                       length(data) as data_size
                FROM saves WHERE save_type=?
                ORDER BY updated_at DESC
                """,
                (save_type,),
            ).fetchall()
        else:
            rows = conn.execute(
                """
                SELECT save_type, save_key, label, created_at, updated_at,
                       length(data) as data_size
                FROM saves
                ORDER BY updated_at DESC
                """,
            ).fetchall()
        return [dict(r) for r in rows]
    finally:
        conn.close()


# ═══════════════════════════════════════════════════════════════
# GAME SERIALIZATION
# ═══════════════════════════════════════════════════════════════

def save_game(game, save_key: str = DEFAULT_SAVE_KEY, label: str = ""):
    """Persist the whole game under ``save_key``."""
    init_db()
    if not label and game.session is not None:
        label = f"{game.session.mode} game, round {game.session.current_round}"
    save_blob(SAVE_TYPE_GAME, save_key, game.to_dict(), label=label)
    _log.info(f"Saved game to {save_key}")


def load_game(save_key: str = DEFAULT_SAVE_KEY, rng=None):
    """Restore a saved game.  Returns None if nothing is saved under the key."""
    from cyclesense.game import Game

    init_db()
    data = load_blob(SAVE_TYPE_GAME, save_key)
    if data is None:
        return None
    _log.info(f"Loaded game from {save_key}")
    return Game.from_dict(data, rng=rng)


def delete_game(save_key: str) -> bool:
    init_db()
    deleted = delete_blob(SAVE_TYPE_GAME, save_key)
    if deleted:
        _log.info(f"Deleted saved game {save_key}")
    return deleted

from __future__ import annotations

import json
import logging
import sqlite3
import time
from pathlib import Path

from .game_core import SessionResult
from .stats import UserStats

logger = logging.getLogger(__name__)

SCHEMA_VERSION = 1

STATS_KEY = "misparia_stats_v2"
API_KEY_KEY = "misparia_api_key"


def open_db(path: Path) -> sqlite3.Connection:
    path.parent.mkdir(parents=True, exist_ok=True)
    conn = sqlite3.connect(path)
    conn.execute("PRAGMA journal_mode=WAL;")
    conn.execute("PRAGMA synchronous=NORMAL;")
    _migrate(conn)
    return conn


def _utc_now_iso() -> str:
    return time.strftime("%Y-%m-%dT%H:%M:%SZ", time.gmtime(time.time()))


def _migrate(conn: sqlite3.Connection) -> None:
    row = conn.execute("PRAGMA user_version;").fetchone()
    ver = int(row[0]) if row else 0
    if ver >= SCHEMA_VERSION:
        return

    with conn:
        conn.execute(
            """
            CREATE TABLE IF NOT EXISTS kv (
                key TEXT PRIMARY KEY,
                value TEXT NOT NULL,
                updated_at_utc TEXT NOT NULL
            );
            """
        )
        conn.execute(
            """
            CREATE TABLE IF NOT EXISTS game_session (
                id INTEGER PRIMARY KEY,
                mode TEXT NOT NULL,
                score INTEGER NOT NULL,
                answered INTEGER NOT NULL,
                correct INTEGER NOT NULL,
                duration_s REAL NOT NULL,
                completed INTEGER NOT NULL,
                app_version TEXT NOT NULL,
                recorded_at_utc TEXT NOT NULL
            );
            """
        )
        conn.execute("CREATE INDEX IF NOT EXISTS idx_game_session_mode ON game_session(mode);")
        conn.execute(f"PRAGMA user_version={SCHEMA_VERSION};")


class LocalStore:
    """Durable client-side storage: stats, credential and the session log.

    Every call opens and closes its own connection so the store can be used
    from short-lived UI callbacks without lifecycle bookkeeping.
    """

    def __init__(self, path: Path) -> None:
        self._path = path

    @property
    def path(self) -> Path:
        return self._path

    def get(self, key: str) -> str | None:
        conn = open_db(self._path)
        try:
            row = conn.execute("SELECT value FROM kv WHERE key = ?", (key,)).fetchone()
        finally:
            conn.close()
        return None if row is None else str(row[0])

    def put(self, key: str, value: str) -> None:
        conn = open_db(self._path)
        try:
            with conn:
                conn.execute(
                    """
                    INSERT INTO kv(key, value, updated_at_utc) VALUES (?, ?, ?)
                    ON CONFLICT(key) DO UPDATE SET value = excluded.value,
                        updated_at_utc = excluded.updated_at_utc
                    """,
                    (key, value, _utc_now_iso()),
                )
        finally:
            conn.close()

    def delete(self, key: str) -> None:
        conn = open_db(self._path)
        try:
            with conn:
                conn.execute("DELETE FROM kv WHERE key = ?", (key,))
        finally:
            conn.close()

    def load_stats(self) -> UserStats:
        """Saved stats, or a zeroed default when absent or unreadable."""

        try:
            raw = self.get(STATS_KEY)
        except sqlite3.DatabaseError as err:
            logger.warning("store at %s unreadable, starting fresh: %s", self._path, err)
            return UserStats()
        if raw is None:
            return UserStats()
        try:
            return UserStats.from_dict(json.loads(raw))
        except (json.JSONDecodeError, ValueError) as err:
            logger.warning("stored stats unreadable, starting fresh: %s", err)
            return UserStats()

    def save_stats(self, stats: UserStats) -> None:
        self.put(STATS_KEY, json.dumps(stats.to_dict(), ensure_ascii=False))

    def clear_stats(self) -> None:
        self.delete(STATS_KEY)

    def record_session(self, result: SessionResult, *, app_version: str) -> int:
        conn = open_db(self._path)
        try:
            with conn:
                cur = conn.execute(
                    """
                    INSERT INTO game_session(
                        mode, score, answered, correct, duration_s, completed,
                        app_version, recorded_at_utc
                    )
                    VALUES (?, ?, ?, ?, ?, ?, ?, ?)
                    """,
                    (
                        str(result.mode.value),
                        int(result.score),
                        int(result.answered),
                        int(result.correct),
                        float(result.duration_s),
                        1 if result.completed else 0,
                        app_version,
                        _utc_now_iso(),
                    ),
                )
                return int(cur.lastrowid)
        finally:
            conn.close()

    def session_count(self, mode: str | None = None) -> int:
        conn = open_db(self._path)
        try:
            if mode is None:
                row = conn.execute("SELECT COUNT(*) FROM game_session").fetchone()
            else:
                row = conn.execute("SELECT COUNT(*) FROM game_session WHERE mode = ?", (mode,)).fetchone()
        finally:
            conn.close()
        return int(row[0])

    def best_score(self, mode: str) -> int:
        conn = open_db(self._path)
        try:
            row = conn.execute("SELECT MAX(score) FROM game_session WHERE mode = ?", (mode,)).fetchone()
        finally:
            conn.close()
        return 0 if row is None or row[0] is None else int(row[0])

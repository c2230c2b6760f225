from __future__ import annotations

import os
from pathlib import Path
import sqlite3
import time
from typing import Protocol

from .results import RoundResult

SCHEMA_VERSION = 1

DB_PATH_ENV = "SOUND_MEMORY_DB_PATH"

HIGH_SCORE_KEY = "high_score"
SOUND_ENABLED_KEY = "sound_enabled"


class ScoreStore(Protocol):
    """Durable key-value settings plus a round history."""

    def read_high_score(self) -> int: ...
    def write_high_score(self, score: int) -> None: ...
    def read_sound_enabled(self) -> bool: ...
    def write_sound_enabled(self, enabled: bool) -> None: ...
    def record_round(self, result: RoundResult) -> None: ...


def default_db_path() -> Path:
    explicit = os.environ.get(DB_PATH_ENV)
    if explicit:
        return Path(explicit).expanduser()
    return Path.home() / ".sound_memory.sqlite3"


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
            CREATE TABLE IF NOT EXISTS setting (
                key TEXT PRIMARY KEY,
                value TEXT NOT NULL
            );
            """
        )
        conn.execute(
            """
            CREATE TABLE IF NOT EXISTS round_result (
                id INTEGER PRIMARY KEY,
                mode TEXT NOT NULL,
                rng_seed INTEGER NOT NULL,
                round_id INTEGER NOT NULL,
                score INTEGER NOT NULL,
                level INTEGER NOT NULL,
                best_combo INTEGER NOT NULL,
                sequence_length INTEGER NOT NULL,
                levels_completed INTEGER NOT NULL,
                mistakes INTEGER NOT NULL,
                duration_s REAL NOT NULL,
                ended_by TEXT NOT NULL,
                new_high_score INTEGER NOT NULL,
                completed_at_utc TEXT NOT NULL
            );
            """
        )
        conn.execute("CREATE INDEX IF NOT EXISTS idx_round_result_score ON round_result(score);")
        conn.execute(f"PRAGMA user_version={SCHEMA_VERSION};")


class SqliteScoreStore:
    """ScoreStore on a single sqlite file.

    Each call opens and closes its own connection; writes only happen at
    terminal transitions and on preference toggles.
    """

    def __init__(self, path: Path) -> None:
        self._path = path

    @property
    def path(self) -> Path:
        return self._path

    def read_high_score(self) -> int:
        raw = self._read_setting(HIGH_SCORE_KEY)
        if raw is None:
            return 0
        try:
            return max(0, int(raw))
        except ValueError:
            return 0

    def write_high_score(self, score: int) -> None:
        self._write_setting(HIGH_SCORE_KEY, str(max(0, int(score))))

    def read_sound_enabled(self) -> bool:
        raw = self._read_setting(SOUND_ENABLED_KEY)
        if raw is None:
            return True
        return raw.strip().lower() == "true"

    def write_sound_enabled(self, enabled: bool) -> None:
        self._write_setting(SOUND_ENABLED_KEY, "true" if enabled else "false")

    def record_round(self, result: RoundResult) -> None:
        conn = open_db(self._path)
        try:
            with conn:
                conn.execute(
                    """
                    INSERT INTO round_result(
                        mode, rng_seed, round_id, score, level, best_combo,
                        sequence_length, levels_completed, mistakes, duration_s,
                        ended_by, new_high_score, completed_at_utc
                    )
                    VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                    """,
                    (
                        str(result.mode.value),
                        int(result.seed),
                        int(result.round_id),
                        int(result.score),
                        int(result.level),
                        int(result.best_combo),
                        int(result.sequence_length),
                        int(result.levels_completed),
                        int(result.mistakes),
                        float(result.duration_s),
                        str(result.ended_by.value),
                        1 if result.new_high_score else 0,
                        _utc_now_iso(),
                    ),
                )
        finally:
            conn.close()

    def recent_rounds(self, limit: int = 10) -> list[tuple[str, int, int]]:
        """(mode, score, level) of the latest rounds, newest first."""

        conn = open_db(self._path)
        try:
            rows = conn.execute(
                "SELECT mode, score, level FROM round_result ORDER BY id DESC LIMIT ?",
                (int(limit),),
            ).fetchall()
        finally:
            conn.close()
        return [(str(m), int(s), int(lv)) for m, s, lv in rows]

    def _read_setting(self, key: str) -> str | None:
        conn = open_db(self._path)
        try:
            row = conn.execute("SELECT value FROM setting WHERE key = ?", (key,)).fetchone()
        finally:
            conn.close()
        return None if row is None else str(row[0])

    def _write_setting(self, key: str, value: str) -> None:
        conn = open_db(self._path)
        try:
            with conn:
                conn.execute(
                    "INSERT INTO setting(key, value) VALUES (?, ?) "
                    "ON CONFLICT(key) DO UPDATE SET value = excluded.value",
                    (key, value),
                )
        finally:
            conn.close()

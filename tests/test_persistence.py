from __future__ import annotations

from pathlib import Path

import pytest

from sound_memory.memory_core import GameMode, RoundEventKind
from sound_memory.persistence import DB_PATH_ENV, SqliteScoreStore, default_db_path, open_db
from sound_memory.results import RoundResult


def _result(score: int, *, mode: GameMode = GameMode.NORMAL) -> RoundResult:
    return RoundResult(
        mode=mode,
        seed=42,
        round_id=1,
        score=score,
        level=3,
        best_combo=2,
        sequence_length=3,
        levels_completed=2,
        mistakes=1,
        duration_s=12.5,
        ended_by=RoundEventKind.MISMATCH,
        new_high_score=True,
    )


def test_defaults_on_fresh_database(tmp_path: Path) -> None:
    store = SqliteScoreStore(tmp_path / "scores.sqlite3")
    assert store.read_high_score() == 0
    assert store.read_sound_enabled() is True
    assert store.recent_rounds() == []


def test_settings_round_trip_and_survive_reopen(tmp_path: Path) -> None:
    path = tmp_path / "nested" / "scores.sqlite3"
    store = SqliteScoreStore(path)
    store.write_high_score(120)
    store.write_high_score(150)
    store.write_sound_enabled(False)

    reopened = SqliteScoreStore(path)
    assert reopened.read_high_score() == 150
    assert reopened.read_sound_enabled() is False


def test_record_round_keeps_history_newest_first(tmp_path: Path) -> None:
    store = SqliteScoreStore(tmp_path / "scores.sqlite3")
    store.record_round(_result(30))
    store.record_round(_result(70, mode=GameMode.SURVIVAL))

    assert store.recent_rounds() == [("survival", 70, 3), ("normal", 30, 3)]
    assert store.recent_rounds(limit=1) == [("survival", 70, 3)]


def test_schema_version_is_set(tmp_path: Path) -> None:
    conn = open_db(tmp_path / "scores.sqlite3")
    try:
        assert conn.execute("PRAGMA user_version;").fetchone()[0] == 1
    finally:
        conn.close()


def test_default_path_honours_environment(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    monkeypatch.setenv(DB_PATH_ENV, str(tmp_path / "custom.sqlite3"))
    assert default_db_path() == tmp_path / "custom.sqlite3"

    monkeypatch.delenv(DB_PATH_ENV)
    assert default_db_path().name == ".sound_memory.sqlite3"

"""
DatabaseManager transaction behavior tests.

These tests are used to detect early issues such as transactions failing to
rollback/commit, or broken exception chains.
"""

from __future__ import annotations

from datetime import datetime
from pathlib import Path

import pytest

from playdeck.core.database import DatabaseManager


def _insert_playlist_row(db, playlist_id: str):
    db.execute(
        "INSERT INTO playlists (id, name, created_at, updated_at) VALUES (?, ?, ?, ?)",
        (playlist_id, "P", datetime.now().isoformat(), datetime.now().isoformat()),
    )


@pytest.fixture(params=["file", "memory"])
def db(request, tmp_path: Path):
    path = str(tmp_path / "t.db") if request.param == "file" else ":memory:"
    manager = DatabaseManager(path)
    yield manager
    manager.close()


def test_transaction_commits_on_success(db):
    with db.transaction():
        _insert_playlist_row(db, "p1")

    row = db.fetch_one("SELECT id FROM playlists WHERE id = ?", ("p1",))
    assert row is not None


def test_transaction_rolls_back_on_exception(db):
    with pytest.raises(RuntimeError):
        with db.transaction():
            _insert_playlist_row(db, "p1")
            raise RuntimeError("boom")

    row = db.fetch_one("SELECT id FROM playlists WHERE id = ?", ("p1",))
    assert row is None


def test_rollback_covers_bulk_writes(db):
    with pytest.raises(RuntimeError):
        with db.transaction():
            _insert_playlist_row(db, "p1")
            db.execute_many(
                "INSERT INTO playlist_items (playlist_id, position, track_id) VALUES (?, ?, ?)",
                [("p1", 0, "a"), ("p1", 1, "b")],
            )
            raise RuntimeError("boom")

    assert db.fetch_all("SELECT * FROM playlist_items") == []


def test_writes_after_transaction_autocommit(db):
    with db.transaction():
        _insert_playlist_row(db, "p1")
    _insert_playlist_row(db, "p2")

    assert len(db.fetch_all("SELECT id FROM playlists")) == 2

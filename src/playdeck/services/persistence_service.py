"""
Persistence Service Module

Durable storage of library items, playlists and settings.

Writes are queued on a single worker thread so the playback core never
waits on disk. A failed write is logged and published as ERROR_OCCURRED;
it is not retried and in-memory state is left as it is.
"""

from __future__ import annotations

from concurrent.futures import Future, ThreadPoolExecutor
from typing import Any, Callable, List, Optional
import logging
import sqlite3

from playdeck.core.database import DatabaseManager
from playdeck.core.errors import PersistenceError
from playdeck.core.event_bus import EventBus, EventType
from playdeck.models.playlist import Playlist
from playdeck.models.track import Track

logger = logging.getLogger(__name__)


class PersistenceService:
    """
    Asynchronous persistence provider over sqlite

    Example:
        persistence = PersistenceService(DatabaseManager("playdeck.db"))
        persistence.save_track(track)
        persistence.flush()
        tracks = persistence.load_tracks()
    """

    def __init__(self, db: DatabaseManager, event_bus: Optional[EventBus] = None):
        self._db = db
        self._event_bus = event_bus or EventBus()
        self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="Persistence")

    # ===== Writes (asynchronous) =====

    def save_track(self, track: Track) -> "Future[bool]":
        return self._submit(f"save track {track.id}", self._write_track, track)

    def delete_track(self, track_id: str) -> "Future[bool]":
        return self._submit(f"delete track {track_id}", self._remove_track, track_id)

    def save_playlist(self, playlist: Playlist) -> "Future[bool]":
        # Snapshot so later in-memory edits do not race the writer
        return self._submit(f"save playlist {playlist.id}", self._write_playlist, playlist.copy())

    def delete_playlist(self, playlist_id: str) -> "Future[bool]":
        return self._submit(f"delete playlist {playlist_id}", self._remove_playlist, playlist_id)

    def save_settings(self, config: Any) -> "Future[bool]":
        """Persist the settings blob (a ConfigService)."""
        return self._submit("save settings", self._write_settings, config)

    def flush(self, timeout: Optional[float] = None) -> None:
        """Block until every write queued so far has been attempted."""
        self._executor.submit(lambda: None).result(timeout)

    def shutdown(self) -> None:
        self._executor.shutdown(wait=True)

    # ===== Reads (synchronous, at start-up) =====

    def load_tracks(self) -> List[Track]:
        rows = self._db.fetch_all("SELECT * FROM library_items ORDER BY added_at, rowid")
        return [Track.from_dict(row) for row in rows]

    def load_playlists(self) -> List[Playlist]:
        playlists = []
        for row in self._db.fetch_all("SELECT * FROM playlists ORDER BY created_at, rowid"):
            items = self._db.fetch_all(
                "SELECT track_id FROM playlist_items WHERE playlist_id = ? ORDER BY position",
                (row["id"],),
            )
            row["track_ids"] = [item["track_id"] for item in items]
            playlists.append(Playlist.from_dict(row))
        return playlists

    # ===== Worker =====

    def _submit(self, description: str, func: Callable[..., None], *args: Any) -> "Future[bool]":
        return self._executor.submit(self._run, description, func, *args)

    def _run(self, description: str, func: Callable[..., None], *args: Any) -> bool:
        try:
            func(*args)
            return True
        except (sqlite3.Error, OSError, PersistenceError) as e:
            logger.warning("Failed to %s: %s", description, e)
            self._event_bus.publish_sync(
                EventType.ERROR_OCCURRED, PersistenceError(f"Failed to {description}: {e}")
            )
            return False

    def _write_track(self, track: Track) -> None:
        data = track.to_dict()
        self._db.execute(
            """
            INSERT OR REPLACE INTO library_items
                (id, name, media_type, source_locator, thumbnail, duration_ms, artist, album, added_at)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (data["id"], data["name"], data["media_type"], data["source_locator"], data["thumbnail"],
             data["duration_ms"], data["artist"], data["album"], data["added_at"]),
        )

    def _remove_track(self, track_id: str) -> None:
        with self._db.transaction():
            self._db.delete("library_items", "id = ?", (track_id,))
            self._db.delete("playlist_items", "track_id = ?", (track_id,))

    def _write_playlist(self, playlist: Playlist) -> None:
        data = playlist.to_dict()
        with self._db.transaction():
            self._db.execute(
                """
                INSERT INTO playlists (id, name, cover_path, created_at, updated_at)
                VALUES (?, ?, ?, ?, ?)
                ON CONFLICT(id) DO UPDATE SET
                    name = excluded.name,
                    cover_path = excluded.cover_path,
                    updated_at = excluded.updated_at
                """,
                (data["id"], data["name"], data["cover_path"], data["created_at"], data["updated_at"]),
            )
            self._db.delete("playlist_items", "playlist_id = ?", (playlist.id,))
            self._db.execute_many(
                "INSERT INTO playlist_items (playlist_id, position, track_id) VALUES (?, ?, ?)",
                [(playlist.id, position, track_id) for position, track_id in enumerate(playlist.track_ids)],
            )

    def _remove_playlist(self, playlist_id: str) -> None:
        with self._db.transaction():
            self._db.delete("playlist_items", "playlist_id = ?", (playlist_id,))
            self._db.delete("playlists", "id = ?", (playlist_id,))

    def _write_settings(self, config: Any) -> None:
        if not config.save():
            raise PersistenceError("configuration file could not be written")

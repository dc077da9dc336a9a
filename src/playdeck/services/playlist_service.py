"""
Playlist Service Module

Manages user-defined playlists.
"""

from datetime import datetime
from typing import Dict, List, Optional
import logging
import threading

from playdeck.core.event_bus import EventBus, EventType
from playdeck.models.playlist import Playlist
from playdeck.models.track import Track

logger = logging.getLogger(__name__)


class PlaylistService:
    """
    Playlist Service

    Provides creation, editing, deletion, and other functions for playlists.
    Callers receive copies; edits go through the service.

    Example:
        service = PlaylistService(persistence=persistence)

        playlist = service.create("My Favorites")
        service.add_track(playlist.id, track.id)
        tracks = service.get_tracks(playlist.id, library)
    """

    def __init__(self, persistence=None, event_bus: Optional[EventBus] = None):
        self._persistence = persistence
        self._event_bus = event_bus or EventBus()
        self._playlists: Dict[str, Playlist] = {}
        self._lock = threading.RLock()

    def load(self) -> int:
        if self._persistence is None:
            return 0
        playlists = self._persistence.load_playlists()
        with self._lock:
            self._playlists = {p.id: p for p in playlists}
        logger.info("Loaded %d playlists", len(playlists))
        return len(playlists)

    def create(self, name: str, cover_path: Optional[str] = None) -> Playlist:
        """
        Create a playlist

        Args:
            name: Playlist name
            cover_path: Optional cover image

        Returns:
            Playlist: The created playlist
        """
        playlist = Playlist(name=name, cover_path=cover_path)
        with self._lock:
            self._playlists[playlist.id] = playlist
        self._save(playlist)
        self._event_bus.publish_sync(EventType.PLAYLIST_CREATED, playlist.copy())
        return playlist.copy()

    def get(self, playlist_id: str) -> Optional[Playlist]:
        with self._lock:
            playlist = self._playlists.get(playlist_id)
            return playlist.copy() if playlist else None

    def get_all(self) -> List[Playlist]:
        with self._lock:
            return [p.copy() for p in self._playlists.values()]

    def get_tracks(self, playlist_id: str, library) -> List[Track]:
        """Resolve a playlist's songs against the library, in playlist order."""
        playlist = self.get(playlist_id)
        if playlist is None:
            return []
        return library.get_tracks_by_ids(playlist.track_ids)

    def rename(self, playlist_id: str, name: str) -> bool:
        return self._edit(playlist_id, lambda p: setattr(p, "name", name))

    def set_cover(self, playlist_id: str, cover_path: Optional[str]) -> bool:
        return self._edit(playlist_id, lambda p: setattr(p, "cover_path", cover_path))

    def add_track(self, playlist_id: str, track_id: str) -> bool:
        """Append a track id (repeats allowed)."""
        return self._edit(playlist_id, lambda p: p.track_ids.append(track_id))

    def remove_track(self, playlist_id: str, track_id: str) -> bool:
        """Remove the first occurrence of a track id."""
        with self._lock:
            playlist = self._playlists.get(playlist_id)
            if playlist is None or track_id not in playlist.track_ids:
                return False
            return self._edit(playlist_id, lambda p: p.track_ids.remove(track_id))

    def remove_track_everywhere(self, track_id: str) -> List[str]:
        """
        Drop every occurrence of a track id from all playlists.

        Returns:
            List[str]: Ids of the playlists that changed
        """
        changed = []
        with self._lock:
            for playlist in self._playlists.values():
                if track_id not in playlist.track_ids:
                    continue
                playlist.track_ids = [t for t in playlist.track_ids if t != track_id]
                playlist.updated_at = datetime.now()
                changed.append(playlist.copy())

        for playlist in changed:
            self._save(playlist)
            self._event_bus.publish_sync(EventType.PLAYLIST_UPDATED, playlist)
        return [p.id for p in changed]

    def delete(self, playlist_id: str) -> bool:
        with self._lock:
            playlist = self._playlists.pop(playlist_id, None)
        if playlist is None:
            return False

        if self._persistence is not None:
            self._persistence.delete_playlist(playlist_id)
        self._event_bus.publish_sync(EventType.PLAYLIST_DELETED, playlist_id)
        return True

    def _edit(self, playlist_id: str, change) -> bool:
        with self._lock:
            playlist = self._playlists.get(playlist_id)
            if playlist is None:
                logger.warning("Unknown playlist: %s", playlist_id)
                return False
            change(playlist)
            playlist.updated_at = datetime.now()
            snapshot = playlist.copy()

        self._save(snapshot)
        self._event_bus.publish_sync(EventType.PLAYLIST_UPDATED, snapshot)
        return True

    def _save(self, playlist: Playlist) -> None:
        if self._persistence is not None:
            self._persistence.save_playlist(playlist)

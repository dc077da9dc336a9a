"""
Media Library Service Module

In-memory collection of library items, loaded from and written through to
the persistence provider.
"""

from dataclasses import replace
from typing import TYPE_CHECKING, Iterable, List, Optional
import logging
import threading

from playdeck.core.event_bus import EventBus, EventType
from playdeck.models.track import Track

if TYPE_CHECKING:
    from playdeck.app.protocols import IPersistenceProvider

logger = logging.getLogger(__name__)


class LibraryService:
    """
    Media Library Service

    The playback core only reads from the library; items are added,
    renamed and removed here.

    Example:
        library = LibraryService(persistence=persistence)
        library.load()

        library.add(Track.from_path("/music/song.mp3"))
        queue = library.rotated_from(track_id)
    """

    def __init__(self, persistence: Optional["IPersistenceProvider"] = None, event_bus: Optional[EventBus] = None):
        self._persistence = persistence
        self._event_bus = event_bus or EventBus()
        self._tracks: List[Track] = []
        self._lock = threading.RLock()

    def load(self) -> int:
        """Replace the in-memory library with the persisted one."""
        if self._persistence is None:
            return 0
        tracks = self._persistence.load_tracks()
        with self._lock:
            self._tracks = tracks
        logger.info("Loaded %d library items", len(tracks))
        return len(tracks)

    # ===== Query Functionality =====

    def get_all_tracks(self) -> List[Track]:
        """Get all tracks in library order"""
        with self._lock:
            return self._tracks.copy()

    def get_track(self, track_id: str) -> Optional[Track]:
        with self._lock:
            for track in self._tracks:
                if track.id == track_id:
                    return track
        return None

    def get_tracks_by_ids(self, track_ids: Iterable[str]) -> List[Track]:
        """Resolve ids in the given order; unknown ids are skipped, repeats kept."""
        with self._lock:
            by_id = {t.id: t for t in self._tracks}
        return [by_id[t_id] for t_id in track_ids if t_id in by_id]

    def get_recently_added(self, limit: int = 10) -> List[Track]:
        with self._lock:
            tracks = sorted(self._tracks, key=lambda t: t.added_at, reverse=True)
        return tracks[:limit]

    def rotated_from(self, track_id: str) -> List[Track]:
        """
        The whole library rotated so the given item comes first.

        Returns:
            List[Track]: Rotated library, empty if the id is unknown
        """
        with self._lock:
            for index, track in enumerate(self._tracks):
                if track.id == track_id:
                    return self._tracks[index:] + self._tracks[:index]
        return []

    def __len__(self) -> int:
        return len(self._tracks)

    def __contains__(self, track_id: object) -> bool:
        return self.get_track(track_id) is not None

    # ===== Editing =====

    def add(self, track: Track) -> Track:
        with self._lock:
            self._tracks.append(track)
        if self._persistence is not None:
            self._persistence.save_track(track)
        self._event_bus.publish_sync(EventType.TRACK_ADDED, track)
        return track

    def remove(self, track_id: str) -> Optional[Track]:
        """Remove an item from the library; returns it, or None if unknown."""
        with self._lock:
            track = self.get_track(track_id)
            if track is None:
                return None
            self._tracks.remove(track)

        if self._persistence is not None:
            self._persistence.delete_track(track_id)
        self._event_bus.publish_sync(EventType.TRACK_REMOVED, track)
        return track

    def rename(self, track_id: str, name: str) -> Optional[Track]:
        """
        Give a library item a new display name.

        Tracks are immutable, so the item is replaced by an edited copy
        that keeps its place in the library.

        Returns:
            The renamed track, or None if the id is unknown or the name blank
        """
        name = name.strip()
        if not name:
            return None

        with self._lock:
            for index, track in enumerate(self._tracks):
                if track.id == track_id:
                    renamed = replace(track, name=name)
                    self._tracks[index] = renamed
                    break
            else:
                return None

        if self._persistence is not None:
            self._persistence.save_track(renamed)
        self._event_bus.publish_sync(EventType.TRACK_UPDATED, renamed)
        logger.info("Renamed library item %s to %s", track_id, name)
        return renamed

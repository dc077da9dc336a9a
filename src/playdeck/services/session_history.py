"""
Recently played tracks
"""

from typing import List
import threading

from playdeck.models.track import Track

HISTORY_LIMIT = 10


class SessionHistory:
    """Most-recent-first, deduplicated by track id, bounded"""

    def __init__(self, limit: int = HISTORY_LIMIT):
        self._limit = limit
        self._items: List[Track] = []
        self._lock = threading.Lock()

    @property
    def limit(self) -> int:
        return self._limit

    @property
    def items(self) -> List[Track]:
        with self._lock:
            return self._items.copy()

    def record(self, track: Track) -> None:
        """Move (or add) a track to the front, evicting the oldest past the limit."""
        with self._lock:
            self._items = [t for t in self._items if t.id != track.id]
            self._items.insert(0, track)
            del self._items[self._limit:]

    def forget(self, track_id: str) -> bool:
        with self._lock:
            before = len(self._items)
            self._items = [t for t in self._items if t.id != track_id]
            return len(self._items) != before

    def replace(self, track: Track) -> bool:
        with self._lock:
            for index, item in enumerate(self._items):
                if item.id == track.id:
                    self._items[index] = track
                    return True
        return False

    def clear(self) -> None:
        with self._lock:
            self._items.clear()

    def __len__(self) -> int:
        return len(self._items)

    def __contains__(self, track_id: object) -> bool:
        return any(t.id == track_id for t in self._items)

"""
Queue Model Module

Ordered playback queue with a shuffle permutation and a cursor.

Two index spaces are kept apart:

- ``QueuePosition``: raw index into the queue list
- ``TraversalCursor``: position within the play order. With shuffle active
  the playing slot is ``shuffle_order[cursor]``; otherwise cursor and
  queue position coincide.

``cursor_to_position`` / ``position_to_cursor`` are the only places the two
are translated.
"""

from typing import List, Optional, Sequence
import logging
import random

from playdeck.core.errors import QueueInvariantViolation
from playdeck.models.playback import PlaybackModes, QueueEntry, QueuePosition, TraversalCursor
from playdeck.models.track import Track

logger = logging.getLogger(__name__)


def cursor_to_position(
    cursor: int, shuffle_order: Sequence[int], queue_length: int, shuffle: bool
) -> Optional[QueuePosition]:
    """
    Translate a traversal cursor into the queue slot it designates.

    Returns:
        The queue position, or None if the queue is empty or the cursor is out of range
    """
    if not 0 <= cursor < queue_length:
        return None
    if shuffle and len(shuffle_order) == queue_length:
        return QueuePosition(shuffle_order[cursor])
    return QueuePosition(cursor)


def position_to_cursor(
    position: int, shuffle_order: Sequence[int], queue_length: int, shuffle: bool
) -> TraversalCursor:
    """
    Translate a queue slot into the traversal cursor that plays it.

    A position missing from a stale shuffle order is used as a direct cursor.
    """
    if shuffle and len(shuffle_order) == queue_length:
        try:
            return TraversalCursor(list(shuffle_order).index(position))
        except ValueError:
            pass
    return TraversalCursor(position)


class QueueModel:
    """
    Playback queue

    Duplicates are allowed; membership is positional. Every position
    mutation on an empty queue is a no-op.

    Example:
        modes = PlaybackModes()
        queue = QueueModel(modes)
        queue.set_queue([a, b, c])
        queue.advance()   # -> b
    """

    def __init__(self, modes: Optional[PlaybackModes] = None, rng: Optional[random.Random] = None):
        self._modes = modes if modes is not None else PlaybackModes()
        self._rng = rng or random.Random()
        self._tracks: List[Track] = []
        self._cursor: int = 0
        self._shuffle_order: List[int] = []

    # ===== State =====

    @property
    def modes(self) -> PlaybackModes:
        return self._modes

    @property
    def tracks(self) -> List[Track]:
        return self._tracks.copy()

    @property
    def current_index(self) -> TraversalCursor:
        """The traversal cursor (a queue position when shuffle is inactive)"""
        return TraversalCursor(self._cursor)

    @property
    def shuffle_order(self) -> List[int]:
        return self._shuffle_order.copy()

    @property
    def is_shuffled(self) -> bool:
        """Shuffle is on and the order matches the queue length"""
        return self._modes.shuffle and len(self._shuffle_order) == len(self._tracks)

    @property
    def is_empty(self) -> bool:
        return not self._tracks

    def __len__(self) -> int:
        return len(self._tracks)

    @property
    def current_position(self) -> Optional[QueuePosition]:
        """Queue slot that is playing (or about to)"""
        return cursor_to_position(
            self._cursor, self._shuffle_order, len(self._tracks), self._modes.shuffle
        )

    @property
    def current_track(self) -> Optional[Track]:
        position = self.current_position
        if position is None:
            return None
        return self._tracks[position]

    def entries(self) -> List[QueueEntry]:
        """Queue rows in queue order, with the playing slot flagged."""
        playing = self.current_position
        return [QueueEntry(i, track, i == playing) for i, track in enumerate(self._tracks)]

    # ===== Mutation =====

    def set_queue(self, tracks: Sequence[Track], start_index: int = 0) -> None:
        """
        Replace the queue wholesale.

        Args:
            tracks: New queue contents
            start_index: Queue slot to start from (clamped into range)
        """
        self._tracks = list(tracks)
        self._shuffle_order = []
        if not self._tracks:
            self._cursor = 0
            return

        start_index = max(0, min(start_index, len(self._tracks) - 1))
        self._cursor = start_index
        if self._modes.shuffle:
            self.regenerate_shuffle_order(anchor=start_index)

    def append(self, track: Track) -> None:
        """Add to the end; in shuffle the new slot is also played last."""
        was_shuffled = self.is_shuffled
        self._tracks.append(track)
        if was_shuffled:
            self._shuffle_order.append(len(self._tracks) - 1)

    def remove_at(self, position: int) -> Optional[Track]:
        """
        Remove the track at a queue position.

        Returns:
            The removed track, or None if the position is out of range

        Raises:
            QueueInvariantViolation: If the position is the slot currently playing
        """
        if not 0 <= position < len(self._tracks):
            return None

        if position == self.current_position:
            track = self._tracks[position]
            raise QueueInvariantViolation(
                f"Cannot remove the playing item at queue position {position}", track.id
            )

        shuffled = self.is_shuffled
        removed = self._tracks.pop(position)

        if shuffled:
            slot = self._shuffle_order.index(position)
            del self._shuffle_order[slot]
            self._shuffle_order = [p - 1 if p > position else p for p in self._shuffle_order]
            if slot < self._cursor:
                self._cursor -= 1
        elif position < self._cursor:
            self._cursor -= 1

        return removed

    def remove_track_id(self, track_id: str) -> int:
        """
        Remove every non-playing slot holding a track id.

        Returns:
            Number of slots removed
        """
        removed = 0
        for position in range(len(self._tracks) - 1, -1, -1):
            if self._tracks[position].id != track_id or position == self.current_position:
                continue
            self.remove_at(position)
            removed += 1
        return removed

    def replace_track(self, track: Track) -> int:
        """Swap in a new record for every slot holding its id; order is kept."""
        replaced = 0
        for position, queued in enumerate(self._tracks):
            if queued.id == track.id:
                self._tracks[position] = track
                replaced += 1
        return replaced

    def clear_to_current(self) -> None:
        """Collapse the queue to the playing track (or to empty)."""
        current = self.current_track
        self._tracks = [current] if current is not None else []
        self._cursor = 0
        self._shuffle_order = [0] if current is not None and self._modes.shuffle else []

    def set_shuffle(self, enabled: bool) -> None:
        """
        Switch shuffle on or off without changing the playing track.

        Enabling anchors a fresh order on the playing slot (cursor 0);
        disabling translates the cursor back into a queue position.
        """
        if enabled == self._modes.shuffle:
            return

        playing = self.current_position
        self._modes.shuffle = enabled
        if enabled:
            self.regenerate_shuffle_order(anchor=playing)
        else:
            self._shuffle_order = []
            self._cursor = playing if playing is not None else 0

    def regenerate_shuffle_order(self, anchor: Optional[int] = None) -> None:
        """
        Build a new shuffle order.

        The anchor slot (default: the playing slot) is kept first and the
        remaining slots are shuffled uniformly. The cursor is reset to 0.
        """
        length = len(self._tracks)
        if length == 0:
            self._shuffle_order = []
            self._cursor = 0
            return

        if anchor is None:
            anchor = self.current_position
        if anchor is None or not 0 <= anchor < length:
            anchor = 0

        rest = [i for i in range(length) if i != anchor]
        self._rng.shuffle(rest)
        self._shuffle_order = [anchor] + rest
        self._cursor = 0
        logger.debug("Shuffle order regenerated: %s", self._shuffle_order)

    # ===== Traversal =====

    def advance(self) -> Optional[Track]:
        """
        Move to the next track in play order.

        Returns:
            The new current track, or None at the end of the queue (repeat off)
        """
        if not self._tracks:
            return None

        if self._modes.shuffle and not self.is_shuffled:
            self.regenerate_shuffle_order()

        if self._cursor < len(self._tracks) - 1:
            self._cursor += 1
            return self.current_track

        if not self._modes.repeat:
            return None

        self._cursor = 0
        if self._modes.shuffle:
            self.regenerate_shuffle_order(anchor=0)
        return self.current_track

    def retreat(self) -> Optional[Track]:
        """Move back one track in play order; never wraps."""
        if not self._tracks or self._cursor == 0:
            return None
        self._cursor -= 1
        return self.current_track

    def select_position(self, position: int) -> Optional[Track]:
        """Jump to a queue position; out-of-range positions are ignored."""
        if not 0 <= position < len(self._tracks):
            return None
        self._cursor = position_to_cursor(
            position, self._shuffle_order, len(self._tracks), self._modes.shuffle
        )
        return self.current_track

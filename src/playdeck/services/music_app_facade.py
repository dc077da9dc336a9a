# -*- coding: utf-8 -*-
"""
Music Application Facade Module

The user-intent surface: discrete intents addressed by library/playlist
ids and queue positions, delivered to the Transport Controller.

Design Principles:
- Presentation code should only depend on this Facade, not on the underlying services.
- The Facade only exposes use-case level methods.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, Callable, List, Optional

from playdeck.core.errors import QueueInvariantViolation

if TYPE_CHECKING:
    from enum import Enum
    from playdeck.app.protocols import IConfigService, IEventBus, IPersistenceProvider
    from playdeck.models.playback import PlaybackModes, ProgressInfo, QueueEntry
    from playdeck.models.playlist import Playlist
    from playdeck.models.track import Track
    from playdeck.services.library_service import LibraryService
    from playdeck.services.playlist_service import PlaylistService
    from playdeck.services.transport_controller import ControllerState, TransportController

logger = logging.getLogger(__name__)


class MusicAppFacade:
    """Music Application Facade

    Usage Example:
        facade = container.facade
        facade.subscribe(EventType.TRACK_STARTED, on_track)

        facade.play_track(track_id)
        facade.toggle_shuffle()
        facade.next_track()
    """

    def __init__(
        self,
        controller: "TransportController",
        library: "LibraryService",
        playlist_service: "PlaylistService",
        config: "IConfigService",
        event_bus: "IEventBus",
        persistence: Optional["IPersistenceProvider"] = None,
    ):
        """Initialize the facade.

        Args:
            controller: Transport controller
            library: Media library service
            playlist_service: Playlist service
            config: Configuration service
            event_bus: Event bus
            persistence: Persistence provider for settings (optional)
        """
        self._controller = controller
        self._library = library
        self._playlist = playlist_service
        self._config = config
        self._event_bus = event_bus
        self._persistence = persistence

    # =========================================================================
    # Starting playback
    # =========================================================================

    def play_track(self, track_id: str) -> bool:
        """Play a library item now.

        The queue becomes the whole library rotated so the item is first.

        Returns:
            True if playback started.
        """
        queue = self._library.rotated_from(track_id)
        if not queue:
            logger.warning("Unknown library item: %s", track_id)
            return False
        return self._controller.play_queue(queue, 0)

    def play_playlist(self, playlist_id: str, start_index: int = 0) -> bool:
        """Replace the queue with a playlist's songs and play."""
        tracks = self._playlist.get_tracks(playlist_id, self._library)
        if not tracks:
            logger.info("Playlist %s has nothing to play", playlist_id)
            return False
        return self._controller.play_queue(tracks, start_index)

    def play_queue_index(self, position: int) -> bool:
        """Jump to a queue position."""
        return self._controller.select(position)

    # =========================================================================
    # Transport
    # =========================================================================

    def toggle_play(self) -> None:
        self._controller.toggle_play()

    def play(self) -> bool:
        return self._controller.play()

    def pause(self) -> None:
        self._controller.pause()

    def stop(self) -> None:
        self._controller.stop()

    def next_track(self) -> bool:
        return self._controller.next()

    def previous_track(self) -> bool:
        return self._controller.previous()

    def seek(self, position_ms: int) -> bool:
        """Seek to a position in milliseconds."""
        return self._controller.seek(position_ms)

    def seek_percent(self, fraction: float) -> bool:
        """Seek to a fraction (0.0 - 1.0) of the track."""
        return self._controller.seek_percent(fraction)

    def set_volume(self, volume: float) -> float:
        volume = self._controller.set_volume(volume)
        self._config.set("playback.default_volume", volume)
        return volume

    # =========================================================================
    # Modes & settings
    # =========================================================================

    def toggle_shuffle(self) -> bool:
        return self._controller.toggle_shuffle()

    def toggle_repeat(self) -> bool:
        return self._controller.toggle_repeat()

    def set_auto_play_next(self, enabled: bool) -> None:
        """Change the auto-advance setting and persist it."""
        self._config.set("playback.auto_play_next", enabled)
        if self._persistence is not None:
            self._persistence.save_settings(self._config)

    @property
    def auto_play_next(self) -> bool:
        return bool(self._config.get("playback.auto_play_next", True))

    # =========================================================================
    # Queue editing
    # =========================================================================

    def add_to_queue(self, track_id: str) -> bool:
        track = self._library.get_track(track_id)
        if track is None:
            return False
        self._controller.add_to_queue(track)
        return True

    def add_playlist_to_queue(self, playlist_id: str) -> int:
        tracks = self._playlist.get_tracks(playlist_id, self._library)
        for track in tracks:
            self._controller.add_to_queue(track)
        return len(tracks)

    def remove_from_queue(self, position: int) -> bool:
        """Remove a queue item; the playing item cannot be removed."""
        try:
            return self._controller.remove_from_queue(position) is not None
        except QueueInvariantViolation as e:
            logger.info("Queue edit refused: %s", e)
            return False

    def clear_queue(self) -> None:
        self._controller.clear_queue()

    # =========================================================================
    # Library
    # =========================================================================

    def add_library_item(self, track: "Track") -> "Track":
        return self._library.add(track)

    def create_playlist(self, name: str) -> "Playlist":
        return self._playlist.create(name)

    def add_to_playlist(self, playlist_id: str, track_id: str) -> bool:
        if self._library.get_track(track_id) is None:
            return False
        return self._playlist.add_track(playlist_id, track_id)

    def remove_library_item(self, track_id: str) -> bool:
        """Delete an item from the library, every playlist and the queue.

        If the item is playing it is paused and keeps its queue slot.
        """
        if self._library.remove(track_id) is None:
            return False
        self._playlist.remove_track_everywhere(track_id)
        self._controller.forget_track(track_id)
        return True

    def rename_library_item(self, track_id: str, name: str) -> bool:
        """Rename an item; queued and recently played entries follow."""
        renamed = self._library.rename(track_id, name)
        if renamed is None:
            return False
        self._controller.refresh_track(renamed)
        return True

    def get_all_tracks(self) -> List["Track"]:
        return self._library.get_all_tracks()

    def get_playlists(self) -> List["Playlist"]:
        return self._playlist.get_all()

    # =========================================================================
    # State queries
    # =========================================================================

    @property
    def state(self) -> "ControllerState":
        return self._controller.state

    @property
    def is_playing(self) -> bool:
        return self._controller.is_playing

    @property
    def current_track(self) -> Optional["Track"]:
        return self._controller.current_track

    @property
    def modes(self) -> "PlaybackModes":
        return self._controller.modes

    def get_progress(self) -> "ProgressInfo":
        return self._controller.progress

    def get_queue_entries(self) -> List["QueueEntry"]:
        return self._controller.queue_entries()

    def get_recently_played(self) -> List["Track"]:
        return self._controller.recently_played()

    # =========================================================================
    # Events
    # =========================================================================

    def subscribe(self, event_type: "Enum", callback: Callable[[Any], None]) -> str:
        return self._event_bus.subscribe(event_type, callback)

    def unsubscribe(self, subscription_id: str) -> bool:
        return self._event_bus.unsubscribe(subscription_id)

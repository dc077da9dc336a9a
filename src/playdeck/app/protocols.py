# -*- coding: utf-8 -*-
"""
Protocols Definition Module

Defines the interface protocols (Protocol) for the collaborators the
playback core talks to. Uses Protocol instead of ABC to support
structural subtyping checks.

Design Decisions:
- Default to using Protocol + @runtime_checkable
- ABC is only used for base classes that share default implementations (AudioEngineBase)
- Runtime conformance of the concrete services is checked in the tests
"""

from __future__ import annotations

from enum import Enum
from typing import (
    TYPE_CHECKING,
    Any,
    Callable,
    Iterable,
    List,
    Optional,
    Protocol,
    runtime_checkable,
)

if TYPE_CHECKING:
    from playdeck.models.playlist import Playlist
    from playdeck.models.track import Track


@runtime_checkable
class IEventBus(Protocol):
    """Event Bus Interface

    One-way notifications to the presentation layer.
    """

    def subscribe(self, event_type: Enum, callback: Callable[[Any], None]) -> str:
        """Subscribe to an event

        Returns:
            Subscription ID, used to unsubscribe
        """
        ...

    def unsubscribe(self, subscription_id: str) -> bool:
        ...

    def publish(self, event_type: Enum, data: Any = None) -> None:
        ...

    def publish_sync(self, event_type: Enum, data: Any = None) -> None:
        ...


@runtime_checkable
class IConfigService(Protocol):
    """Configuration Service Interface (dot-separated keys)"""

    def get(self, key: str, default: Any = None) -> Any:
        ...

    def set(self, key: str, value: Any) -> None:
        ...

    def save(self) -> bool:
        ...


@runtime_checkable
class ILibraryProvider(Protocol):
    """Library provider: yields Track records, never mutated by the core"""

    def get_track(self, track_id: str) -> Optional["Track"]:
        ...

    def get_all_tracks(self) -> List["Track"]:
        ...

    def get_tracks_by_ids(self, track_ids: Iterable[str]) -> List["Track"]:
        ...

    def rotated_from(self, track_id: str) -> List["Track"]:
        ...


@runtime_checkable
class IPersistenceProvider(Protocol):
    """Persistence provider: asynchronous durable storage, may fail"""

    def save_track(self, track: "Track") -> Any:
        ...

    def delete_track(self, track_id: str) -> Any:
        ...

    def save_playlist(self, playlist: "Playlist") -> Any:
        ...

    def delete_playlist(self, playlist_id: str) -> Any:
        ...

    def save_settings(self, config: Any) -> Any:
        ...

    def load_tracks(self) -> List["Track"]:
        ...

    def load_playlists(self) -> List["Playlist"]:
        ...

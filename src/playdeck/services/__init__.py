"""
Service Layer Module
"""

from .queue_model import QueueModel, cursor_to_position, position_to_cursor
from .session_history import SessionHistory
from .playback_session import PlaybackSession
from .transport_controller import TransportController, ControllerState
from .config_service import ConfigService
from .library_service import LibraryService
from .playlist_service import PlaylistService
from .persistence_service import PersistenceService
from .music_app_facade import MusicAppFacade

__all__ = [
    'QueueModel',
    'cursor_to_position',
    'position_to_cursor',
    'SessionHistory',
    'PlaybackSession',
    'TransportController',
    'ControllerState',
    'ConfigService',
    'LibraryService',
    'PlaylistService',
    'PersistenceService',
    'MusicAppFacade',
]

"""
Data Models Module
"""

from .track import Track, MediaType
from .playlist import Playlist
from .playback import (
    PlaybackModes,
    ProgressInfo,
    QueueEntry,
    QueuePosition,
    TraversalCursor,
    format_time,
)

__all__ = [
    'Track',
    'MediaType',
    'Playlist',
    'PlaybackModes',
    'ProgressInfo',
    'QueueEntry',
    'QueuePosition',
    'TraversalCursor',
    'format_time',
]

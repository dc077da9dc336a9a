"""
Playback Core Module
"""

from .errors import (
    PlaybackError,
    SourceUnreadable,
    PlaybackRejected,
    QueueInvariantViolation,
    StaleEvent,
    PersistenceError,
)
from .event_bus import EventBus, EventType
from .audio_engine import AudioEngineBase, PygameAudioEngine, PlayerState, PlaybackEndInfo
from .engine_factory import AudioEngineFactory
from .source_resolver import BlobStore, ResolvedSource, SourceResolver
from .transport import Transport, TransportEvent, TransportEventKind, TransportResult
from .database import DatabaseManager

__all__ = [
    'PlaybackError',
    'SourceUnreadable',
    'PlaybackRejected',
    'QueueInvariantViolation',
    'StaleEvent',
    'PersistenceError',
    'EventBus',
    'EventType',
    'AudioEngineBase',
    'PygameAudioEngine',
    'PlayerState',
    'PlaybackEndInfo',
    'AudioEngineFactory',
    'BlobStore',
    'ResolvedSource',
    'SourceResolver',
    'Transport',
    'TransportEvent',
    'TransportEventKind',
    'TransportResult',
    'DatabaseManager',
]

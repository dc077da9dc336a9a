"""
Playback error taxonomy
"""

from typing import Optional


class PlaybackError(Exception):
    """Base class for errors raised or reported by the playback core"""

    def __init__(self, message: str = "", track_id: Optional[str] = None):
        super().__init__(message)
        self.track_id = track_id


class SourceUnreadable(PlaybackError):
    """The source locator could not be resolved or opened as a stream"""


class PlaybackRejected(PlaybackError):
    """The output declined to start playback"""


class QueueInvariantViolation(PlaybackError):
    """A queue edit would remove the slot that is currently playing"""


class StaleEvent(PlaybackError):
    """A transport event belongs to a load that has since been superseded"""


class PersistenceError(PlaybackError):
    """A durable store operation failed"""

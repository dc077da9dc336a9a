"""
Playback value types shared by the queue, the controller and presenters
"""

from dataclasses import dataclass
from typing import NewType, Optional

from .track import Track

# Raw index into the queue list
QueuePosition = NewType("QueuePosition", int)
# Position within the (possibly shuffled) traversal order
TraversalCursor = NewType("TraversalCursor", int)


@dataclass
class PlaybackModes:
    """Shuffle / repeat flags"""
    shuffle: bool = False
    repeat: bool = False


@dataclass(frozen=True)
class QueueEntry:
    """One queue row as reported to the presentation layer"""
    position: int
    track: Track
    is_current: bool = False


def format_time(ms: Optional[int]) -> str:
    """Format milliseconds as m:ss ("0:00" when unknown)"""
    if not ms or ms < 0:
        return "0:00"
    total_seconds = int(ms) // 1000
    return f"{total_seconds // 60}:{total_seconds % 60:02d}"


@dataclass(frozen=True)
class ProgressInfo:
    """Transport progress snapshot"""
    position_ms: int = 0
    duration_ms: int = 0

    @property
    def position_str(self) -> str:
        return format_time(self.position_ms)

    @property
    def duration_str(self) -> str:
        return format_time(self.duration_ms)

    @property
    def percent(self) -> float:
        """Progress bar fill, 0-100"""
        if self.duration_ms <= 0:
            return 0.0
        return max(0.0, min(100.0, self.position_ms * 100.0 / self.duration_ms))

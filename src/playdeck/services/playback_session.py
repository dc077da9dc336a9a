"""
Playback session aggregate: queue, modes and history owned together
"""

from typing import Optional
import random

from playdeck.models.playback import PlaybackModes
from playdeck.services.queue_model import QueueModel
from playdeck.services.session_history import SessionHistory


class PlaybackSession:
    """
    Everything the Transport Controller mutates on behalf of the user

    Mode changes are routed through here so the queue can keep the playing
    track in place when shuffle is toggled.
    """

    def __init__(
        self,
        modes: Optional[PlaybackModes] = None,
        rng: Optional[random.Random] = None,
        history: Optional[SessionHistory] = None,
    ):
        self._modes = modes if modes is not None else PlaybackModes()
        self._queue = QueueModel(self._modes, rng)
        self._history = history or SessionHistory()

    @property
    def queue(self) -> QueueModel:
        return self._queue

    @property
    def history(self) -> SessionHistory:
        return self._history

    @property
    def modes(self) -> PlaybackModes:
        return self._modes

    def set_shuffle(self, enabled: bool) -> None:
        self._queue.set_shuffle(enabled)

    def toggle_shuffle(self) -> bool:
        self.set_shuffle(not self._modes.shuffle)
        return self._modes.shuffle

    def set_repeat(self, enabled: bool) -> None:
        self._modes.repeat = enabled

    def toggle_repeat(self) -> bool:
        self._modes.repeat = not self._modes.repeat
        return self._modes.repeat

    @property
    def loops_single_track(self) -> bool:
        """Repeat on a one-track queue without shuffle restarts that track"""
        return self._modes.repeat and len(self._queue) == 1 and not self._modes.shuffle

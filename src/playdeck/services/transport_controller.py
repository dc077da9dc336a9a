"""
Transport Controller Module

State machine that turns user intents and Transport events into queue
moves and transport commands:

    IDLE --load--> LOADING --loaded--> PAUSED --play--> PLAYING
    PLAYING <--pause/play--> PAUSED
    PLAYING/PAUSED --ended--> ENDED --auto-advance--> LOADING | PLAYING | IDLE
    any --load/play failed--> ERROR

All commands run under one re-entrant lock. Each load is stamped with a
token by the Transport; events carrying any other token are dropped.
"""

from typing import List, Optional, Sequence
from enum import Enum
import logging
import threading

from playdeck.core.errors import PlaybackError, SourceUnreadable, StaleEvent
from playdeck.core.event_bus import EventBus, EventType
from playdeck.core.transport import Transport, TransportEvent, TransportEventKind
from playdeck.models.playback import PlaybackModes, ProgressInfo, QueueEntry
from playdeck.models.track import Track
from playdeck.services.playback_session import PlaybackSession

logger = logging.getLogger(__name__)


class ControllerState(Enum):
    """Transport controller state"""
    IDLE = "idle"           # No track loaded
    LOADING = "loading"
    PLAYING = "playing"
    PAUSED = "paused"
    ENDED = "ended"
    ERROR = "error"


class TransportController:
    """
    Transport Controller

    Example:
        controller = TransportController(transport, PlaybackSession())
        controller.play_queue(tracks)
        controller.next()
        controller.previous()
    """

    # "previous" restarts the current track once playback is past this point
    RESTART_THRESHOLD_MS = 3000

    def __init__(
        self,
        transport: Transport,
        session: Optional[PlaybackSession] = None,
        config=None,
        event_bus: Optional[EventBus] = None,
    ):
        self._transport = transport
        self._session = session or PlaybackSession()
        self._config = config
        self._event_bus = event_bus or EventBus()

        self._lock = threading.RLock()
        self._state = ControllerState.IDLE
        self._expected_token: Optional[int] = None
        # Bumped by every load, pause and stop; a pending play() whose
        # sequence number is no longer current must not reopen PLAYING
        self._command_seq = 0
        self._pending_play: Optional[int] = None
        self._auto_play_next = True
        self._last_error: Optional[PlaybackError] = None

        self._transport.set_listener(self.on_transport_event)

    # ===== State =====

    @property
    def state(self) -> ControllerState:
        return self._state

    @property
    def session(self) -> PlaybackSession:
        return self._session

    @property
    def transport(self) -> Transport:
        return self._transport

    @property
    def modes(self) -> PlaybackModes:
        return self._session.modes

    @property
    def current_track(self) -> Optional[Track]:
        """The track the transport has loaded, None when idle"""
        return self._transport.current_track

    @property
    def is_playing(self) -> bool:
        return self._state == ControllerState.PLAYING

    @property
    def progress(self) -> ProgressInfo:
        return self._transport.progress

    @property
    def last_error(self) -> Optional[PlaybackError]:
        return self._last_error

    @property
    def auto_play_next(self) -> bool:
        if self._config is not None:
            return bool(self._config.get("playback.auto_play_next", True))
        return self._auto_play_next

    @auto_play_next.setter
    def auto_play_next(self, enabled: bool) -> None:
        if self._config is not None:
            self._config.set("playback.auto_play_next", enabled)
        else:
            self._auto_play_next = enabled

    def queue_entries(self) -> List[QueueEntry]:
        with self._lock:
            return self._session.queue.entries()

    def recently_played(self) -> List[Track]:
        return self._session.history.items

    # ===== Intents: playback =====

    def play_queue(self, tracks: Sequence[Track], start_index: int = 0) -> bool:
        """
        Replace the queue and start playing from a position.

        Args:
            tracks: New queue contents
            start_index: Queue position to start from

        Returns:
            bool: Whether playback started
        """
        with self._lock:
            queue = self._session.queue
            queue.set_queue(tracks, start_index)
            self._publish_queue()

            track = queue.current_track
            if track is None:
                self._go_idle()
                return False
            return self._activate(track)

    def play(self) -> bool:
        """Resume the loaded track, or load the current queue item."""
        with self._lock:
            if self._state == ControllerState.PLAYING:
                return True

            if self._state == ControllerState.PAUSED and self._transport.is_loaded:
                return self._start(self._next_command())

            track = self._session.queue.current_track
            if track is None:
                return False
            return self._activate(track)

    def pause(self) -> None:
        with self._lock:
            self._next_command()
            if self._transport.is_loaded and not self._transport.paused:
                self._transport.pause()
            if self._state == ControllerState.PLAYING:
                self._set_state(ControllerState.PAUSED)

    def toggle_play(self) -> None:
        with self._lock:
            if self._state == ControllerState.PLAYING:
                self.pause()
            else:
                self.play()

    def stop(self) -> None:
        """Release the loaded track; the queue is kept."""
        with self._lock:
            self._next_command()
            self._go_idle()

    def next(self) -> bool:
        """
        Advance to the next queue item and play it.

        At the end of the queue (repeat off) a playing or paused track is
        left alone; otherwise the controller settles in IDLE.
        """
        with self._lock:
            track = self._session.queue.advance()
            if track is not None:
                self._publish_queue()
                return self._activate(track)

            if self._state not in (ControllerState.PLAYING, ControllerState.PAUSED, ControllerState.LOADING):
                self._go_idle()
            logger.debug("End of queue reached")
            return False

    def previous(self) -> bool:
        """
        Restart the current track if it is past the restart threshold,
        otherwise step back one queue item (no wraparound).
        """
        with self._lock:
            if self._transport.is_loaded and self._transport.position_ms > self.RESTART_THRESHOLD_MS:
                self._transport.seek(0)
                return True

            track = self._session.queue.retreat()
            if track is None:
                return False
            self._publish_queue()
            return self._activate(track)

    def select(self, position: int) -> bool:
        """Jump to the item at a queue position and play it."""
        with self._lock:
            track = self._session.queue.select_position(position)
            if track is None:
                logger.warning("Queue position %d out of range", position)
                return False
            self._publish_queue()
            return self._activate(track)

    def seek(self, position_ms: float) -> bool:
        """Seek within the loaded track; the playing/paused state is kept."""
        with self._lock:
            return self._transport.seek(position_ms)

    def seek_percent(self, fraction: float) -> bool:
        """Seek to a fraction (0.0 - 1.0) of the track."""
        with self._lock:
            return self._transport.seek_percent(fraction)

    def set_volume(self, volume: float) -> float:
        with self._lock:
            volume = self._transport.set_volume(volume)
        self._event_bus.publish_sync(EventType.VOLUME_CHANGED, volume)
        return volume

    def poll(self) -> None:
        """Host loop tick: progress reporting and end detection."""
        with self._lock:
            self._transport.poll()

    # ===== Intents: modes =====

    def set_shuffle(self, enabled: bool) -> None:
        with self._lock:
            self._session.set_shuffle(enabled)
            self._publish_modes()
            self._publish_queue()

    def toggle_shuffle(self) -> bool:
        with self._lock:
            self.set_shuffle(not self.modes.shuffle)
            return self.modes.shuffle

    def set_repeat(self, enabled: bool) -> None:
        with self._lock:
            self._session.set_repeat(enabled)
            self._publish_modes()

    def toggle_repeat(self) -> bool:
        with self._lock:
            self.set_repeat(not self.modes.repeat)
            return self.modes.repeat

    # ===== Intents: queue editing =====

    def add_to_queue(self, track: Track) -> None:
        with self._lock:
            self._session.queue.append(track)
            self._publish_queue()

    def remove_from_queue(self, position: int) -> Optional[Track]:
        """
        Remove a queue item.

        Raises:
            QueueInvariantViolation: If the position is the one playing
        """
        with self._lock:
            removed = self._session.queue.remove_at(position)
            if removed is not None:
                self._publish_queue()
            return removed

    def clear_queue(self) -> None:
        """Keep only the playing item."""
        with self._lock:
            queue = self._session.queue
            queue.clear_to_current()
            if queue.is_empty:
                self._go_idle()
            self._publish_queue()

    def forget_track(self, track_id: str) -> None:
        """
        Drop a deleted library item from the session.

        The playing slot cannot be removed, so a playing item is paused
        and stays queued.
        """
        with self._lock:
            current = self._session.queue.current_track
            if current is not None and current.id == track_id:
                self.pause()

            if self._session.queue.remove_track_id(track_id):
                self._publish_queue()
            if self._session.history.forget(track_id):
                self._event_bus.publish_sync(EventType.HISTORY_CHANGED, self._session.history.items)

    def refresh_track(self, track: Track) -> None:
        """Point queue and history entries at an edited library record."""
        with self._lock:
            self._transport.replace_track(track)
            if self._session.queue.replace_track(track):
                self._publish_queue()
            if self._session.history.replace(track):
                self._event_bus.publish_sync(EventType.HISTORY_CHANGED, self._session.history.items)

    def shutdown(self) -> None:
        with self._lock:
            self._next_command()
            self._expected_token = None
            self._transport.cleanup()
            self._set_state(ControllerState.IDLE)

    # ===== Transport events =====

    def on_transport_event(self, event: TransportEvent) -> None:
        """Transport listener; may be called from a backend thread."""
        with self._lock:
            try:
                self._check_current(event)
            except StaleEvent as e:
                logger.debug("Dropping %s", e)
                return

            if event.kind == TransportEventKind.PROGRESS:
                self._event_bus.publish_sync(EventType.POSITION_CHANGED, event.progress)
            elif event.kind == TransportEventKind.STARTED:
                if self._pending_play is not None and self._pending_play == self._command_seq:
                    self._set_state(ControllerState.PLAYING)
                self._event_bus.publish_sync(EventType.TRACK_STARTED, self.current_track)
            elif event.kind == TransportEventKind.PAUSED:
                if self._state == ControllerState.PLAYING:
                    self._set_state(ControllerState.PAUSED)
                self._event_bus.publish_sync(EventType.TRACK_PAUSED, self.current_track)
            elif event.kind == TransportEventKind.ENDED:
                self._on_ended()
            elif event.kind == TransportEventKind.ERROR:
                track = self.current_track
                self._fail(SourceUnreadable(event.reason, track.id if track else None))

    def _check_current(self, event: TransportEvent) -> None:
        if event.token is None or event.token != self._expected_token:
            raise StaleEvent(
                f"stale {event.kind.value} event (token {event.token}, expected {self._expected_token})"
            )

    def _on_ended(self) -> None:
        if self._state not in (ControllerState.PLAYING, ControllerState.PAUSED):
            logger.debug("Ignoring end of track in state %s", self._state.value)
            return

        track = self.current_track
        self._set_state(ControllerState.ENDED)
        self._event_bus.publish_sync(EventType.TRACK_ENDED, track)

        if self._session.loops_single_track:
            seq = self._next_command()
            self._transport.seek(0)
            self._start(seq)
        elif self.auto_play_next:
            next_track = self._session.queue.advance()
            if next_track is None:
                self._go_idle()
                return
            self._publish_queue()
            self._activate(next_track)
        else:
            self._go_idle()

    # ===== Internals =====

    def _next_command(self) -> int:
        self._command_seq += 1
        return self._command_seq

    def _activate(self, track: Track) -> bool:
        """Load a track and start it."""
        seq = self._next_command()
        self._set_state(ControllerState.LOADING)

        result = self._transport.load(track)
        self._expected_token = result.token
        if not result:
            self._fail(result.error)
            return False

        self._set_state(ControllerState.PAUSED)
        self._session.history.record(track)
        self._event_bus.publish_sync(EventType.TRACK_LOADED, track)
        self._event_bus.publish_sync(EventType.HISTORY_CHANGED, self._session.history.items)

        return self._start(seq)

    def _start(self, seq: int) -> bool:
        outer, self._pending_play = self._pending_play, seq
        try:
            result = self._transport.play()
        finally:
            self._pending_play = outer

        if seq != self._command_seq or result.token != self._expected_token:
            logger.debug("Play request superseded, leaving state %s", self._state.value)
            return False

        if not result:
            self._fail(result.error)
            return False

        self._set_state(ControllerState.PLAYING)
        return True

    def _go_idle(self) -> None:
        was_loaded = self._transport.is_loaded
        self._transport.release()
        self._expected_token = None
        self._set_state(ControllerState.IDLE)
        if was_loaded:
            self._event_bus.publish_sync(EventType.PLAYBACK_STOPPED, None)

    def _fail(self, error: Optional[PlaybackError]) -> None:
        self._last_error = error or PlaybackError("Playback failed")
        logger.error("Playback error: %s", self._last_error)
        self._set_state(ControllerState.ERROR)
        self._event_bus.publish_sync(EventType.ERROR_OCCURRED, self._last_error)

    def _set_state(self, state: ControllerState) -> None:
        if state == self._state:
            return
        logger.debug("Controller state %s -> %s", self._state.value, state.value)
        self._state = state
        self._event_bus.publish_sync(EventType.STATE_CHANGED, state)

    def _publish_queue(self) -> None:
        self._event_bus.publish_sync(EventType.QUEUE_CHANGED, self._session.queue.entries())

    def _publish_modes(self) -> None:
        modes = self._session.modes
        self._event_bus.publish_sync(EventType.MODES_CHANGED, PlaybackModes(modes.shuffle, modes.repeat))

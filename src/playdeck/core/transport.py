"""
Transport Module

Wraps one output engine and exposes the load / play / pause / seek surface
the Transport Controller drives. Every load is stamped with a new token;
events carry the token of the load they belong to so the controller can
drop events from superseded loads.

load() and play() never raise: failures come back as a TransportResult.
"""

from __future__ import annotations

import logging
import threading
from contextlib import contextmanager
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Iterator, Optional

from playdeck.core.audio_engine import AudioEngineBase, PlayerState, PlaybackEndInfo
from playdeck.core.errors import PlaybackError, PlaybackRejected, SourceUnreadable
from playdeck.core.source_resolver import ResolvedSource, SourceResolver
from playdeck.models.playback import ProgressInfo
from playdeck.models.track import Track

logger = logging.getLogger(__name__)


class TransportEventKind(Enum):
    PROGRESS = "progress"
    STARTED = "started"
    PAUSED = "paused"
    ENDED = "ended"
    ERROR = "error"


@dataclass(frozen=True)
class TransportEvent:
    """Notification from the Transport to its listener"""
    kind: TransportEventKind
    # None when the event cannot be attributed to the active load
    token: Optional[int]
    position_ms: int = 0
    duration_ms: int = 0
    reason: str = ""

    @property
    def progress(self) -> ProgressInfo:
        return ProgressInfo(self.position_ms, self.duration_ms)


@dataclass(frozen=True)
class TransportResult:
    """Outcome of load() / play()"""
    ok: bool
    token: int
    error: Optional[PlaybackError] = None

    @classmethod
    def success(cls, token: int) -> "TransportResult":
        return cls(True, token)

    @classmethod
    def failure(cls, token: int, error: PlaybackError) -> "TransportResult":
        return cls(False, token, error)

    def __bool__(self) -> bool:
        return self.ok


@dataclass
class _LoadedMedia:
    token: int
    track: Track
    source: ResolvedSource
    # Engine load the source was opened by
    load_id: int


TransportListener = Callable[[TransportEvent], None]


class Transport:
    """
    Transport over a single output engine

    Example:
        transport = Transport(AudioEngineFactory.create("pygame"))
        transport.set_listener(controller.on_transport_event)

        if transport.load(track):
            transport.play()
    """

    def __init__(
        self,
        engine: AudioEngineBase,
        resolver: Optional[SourceResolver] = None,
        listener: Optional[TransportListener] = None,
    ):
        self._engine = engine
        self._resolver = resolver or SourceResolver(allow_streams=engine.supports_urls())
        self._listener = listener
        self._token = 0
        self._active: Optional[_LoadedMedia] = None
        # Per thread: set while that thread is inside an engine command
        self._local = threading.local()

        self._engine.set_on_end(self._on_engine_end)
        self._engine.set_on_error(self._on_engine_error)

    # ===== Properties =====

    @property
    def engine(self) -> AudioEngineBase:
        return self._engine

    @property
    def resolver(self) -> SourceResolver:
        return self._resolver

    @property
    def token(self) -> int:
        """Token of the most recent load (or release)"""
        return self._token

    @property
    def current_track(self) -> Optional[Track]:
        """The track last loaded successfully, None once released"""
        return self._active.track if self._active else None

    @property
    def is_loaded(self) -> bool:
        return self._active is not None

    @property
    def paused(self) -> bool:
        return self._engine.state != PlayerState.PLAYING

    @property
    def position_ms(self) -> int:
        if self._active is None:
            return 0
        return max(0, self._engine.get_position())

    @property
    def duration_ms(self) -> int:
        """Engine duration, falling back to the track's hint; 0 if unknown"""
        if self._active is None:
            return 0
        return self._engine.get_duration() or self._active.track.duration_hint_ms

    @property
    def volume(self) -> float:
        return self._engine.volume

    @property
    def progress(self) -> ProgressInfo:
        return ProgressInfo(self.position_ms, self.duration_ms)

    def set_listener(self, listener: Optional[TransportListener]) -> None:
        self._listener = listener

    # ===== Commands =====

    def load(self, track: Track) -> TransportResult:
        """
        Load a track, superseding whatever was loaded before.

        The previous source is stopped and its transient handle released
        before the new locator is resolved.
        """
        self._token += 1
        token = self._token
        self._release_active()

        if track.is_video and not self._engine.supports_video():
            logger.info("Engine %s has no video output, playing audio of %s",
                        self._engine.get_engine_name(), track.name)

        try:
            source = self._resolver.resolve(track.source_locator)
        except SourceUnreadable as e:
            e.track_id = track.id
            logger.error("Cannot resolve %s: %s", track.name, e)
            return TransportResult.failure(token, e)

        try:
            with self._command():
                loaded = self._engine.load(source.location)
            reason = "" if loaded else "engine rejected the source"
        except Exception as e:
            loaded, reason = False, str(e)

        if not loaded:
            source.release()
            logger.error("Failed to load %s: %s", track.name, reason)
            return TransportResult.failure(
                token, SourceUnreadable(f"Cannot open {track.name}: {reason}", track.id)
            )

        self._active = _LoadedMedia(token, track, source, self._engine.load_id)
        logger.debug("Loaded %s (token %d)", track.name, token)
        return TransportResult.success(token)

    def play(self) -> TransportResult:
        """Start or resume the loaded source."""
        active = self._active
        if active is None:
            return TransportResult.failure(self._token, PlaybackRejected("No source loaded"))

        try:
            with self._command():
                if self._engine.state == PlayerState.PAUSED:
                    self._engine.resume()
                    started = self._engine.state == PlayerState.PLAYING
                else:
                    started = self._engine.play()
            reason = "" if started else "output declined to start"
        except Exception as e:
            started, reason = False, str(e)

        if not started:
            logger.error("Playback of %s rejected: %s", active.track.name, reason)
            return TransportResult.failure(
                active.token, PlaybackRejected(f"Cannot play {active.track.name}: {reason}", active.track.id)
            )

        # A pause issued while play() was pending wins
        if self._engine.state == PlayerState.PLAYING and self._active is active:
            self._emit(TransportEventKind.STARTED, active.token)
        return TransportResult.success(active.token)

    def pause(self) -> None:
        if self._active is None or self._engine.state != PlayerState.PLAYING:
            return
        self._engine.pause()
        self._emit(TransportEventKind.PAUSED, self._active.token)

    def seek(self, position_ms: float) -> bool:
        """Seek within [0, duration]; no-op while the duration is unknown."""
        duration = self.duration_ms
        if self._active is None or duration <= 0:
            return False

        target = int(max(0, min(position_ms, duration)))
        self._engine.seek(target)
        self._emit(TransportEventKind.PROGRESS, self._active.token, position_ms=target)
        return True

    def seek_percent(self, fraction: float) -> bool:
        """Seek to a fraction (0.0 - 1.0) of the duration."""
        duration = self.duration_ms
        if duration <= 0:
            return False
        return self.seek(duration * fraction)

    def set_volume(self, volume: float) -> float:
        volume = max(0.0, min(1.0, volume))
        self._engine.set_volume(volume)
        return volume

    def poll(self) -> None:
        """Report progress and detect the end of the source (host loop tick)."""
        if self._active is None:
            return
        if self._engine.state == PlayerState.PLAYING:
            self._emit(TransportEventKind.PROGRESS, self._active.token)
        self._engine.check_if_ended()

    def replace_track(self, track: Track) -> None:
        """Swap the loaded track's record for an edited one with the same id."""
        active = self._active
        if active is not None and active.track.id == track.id:
            active.track = track

    def release(self) -> None:
        """Tear the session down; later events from it are stale."""
        self._token += 1
        self._release_active()

    def cleanup(self) -> None:
        self.release()
        self._engine.cleanup()

    # ===== Internals =====

    def _release_active(self) -> None:
        active, self._active = self._active, None
        if active is None:
            return
        try:
            self._engine.stop()
        except Exception as e:
            logger.warning("Engine stop failed: %s", e)
        active.source.release()

    @contextmanager
    def _command(self) -> Iterator[None]:
        # Engine errors raised synchronously inside a command are reported
        # through the command's result, not as events
        previous = getattr(self._local, "commanding", False)
        self._local.commanding = True
        try:
            yield
        finally:
            self._local.commanding = previous

    def _emit(self, kind: TransportEventKind, token: Optional[int],
              position_ms: Optional[int] = None, reason: str = "") -> None:
        if self._listener is None:
            return
        event = TransportEvent(
            kind=kind,
            token=token,
            position_ms=self.position_ms if position_ms is None else position_ms,
            duration_ms=self.duration_ms,
            reason=reason,
        )
        self._listener(event)

    def _on_engine_end(self, info: PlaybackEndInfo) -> None:
        active = self._active
        token = None
        if active is not None and info.load_id == active.load_id:
            token = active.token
        self._emit(TransportEventKind.ENDED, token, reason=info.reason)

    def _on_engine_error(self, message: str) -> None:
        if getattr(self._local, "commanding", False):
            logger.debug("Engine error during command: %s", message)
            return
        self._emit(TransportEventKind.ERROR, self._active.token if self._active else None, reason=message)

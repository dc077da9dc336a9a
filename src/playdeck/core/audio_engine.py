"""
Audio Engine Module - Output sinks driven by the Transport

Each engine owns one underlying output device and plays one source at a
time. Engines report failures through return values and the error callback;
the natural end of a source is reported through the end callback.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional, Callable
from enum import Enum
import threading
import logging

logger = logging.getLogger(__name__)


class PlayerState(Enum):
    """Engine status"""
    IDLE = "idle"           # Nothing loaded
    PLAYING = "playing"
    PAUSED = "paused"
    STOPPED = "stopped"     # Loaded, not started, or finished
    ERROR = "error"


@dataclass(frozen=True)
class PlaybackEndInfo:
    """Playback end info, stamped with the engine load it belongs to."""
    ended_source: Optional[str]
    load_id: int = 0
    reason: str = "ended"


class AudioEngineBase(ABC):
    """
    Abstract Base Class for Audio Engines

    Positions and durations are in milliseconds. A duration of 0 means unknown.
    """

    def __init__(self):
        self._state: PlayerState = PlayerState.IDLE
        self._volume: float = 1.0
        self._current_source: Optional[str] = None
        self._load_id: int = 0
        self._on_end_callback: Optional[Callable[[PlaybackEndInfo], None]] = None
        self._on_error_callback: Optional[Callable[[str], None]] = None

    @staticmethod
    def probe() -> bool:
        """
        Check if engine dependencies are available (without touching playback state)

        Returns:
            bool: True if dependencies are available
        """
        return False

    @property
    def state(self) -> PlayerState:
        """Get the current playback state"""
        return self._state

    @property
    def volume(self) -> float:
        """Get the current volume"""
        return self._volume

    @property
    def current_source(self) -> Optional[str]:
        """Get the path or URL of the currently loaded source"""
        return self._current_source

    @property
    def load_id(self) -> int:
        """Counter bumped by every load(); a reloaded source gets a new id"""
        return self._load_id

    @abstractmethod
    def load(self, source: str) -> bool:
        """
        Load a source

        Implementations call _begin_load() first so end events of earlier
        loads can be told apart from this one.

        Args:
            source: Local file path or URL

        Returns:
            bool: True if loading was successful
        """

    @abstractmethod
    def play(self) -> bool:
        """
        Start playback of the loaded source

        Returns:
            bool: True if playback started successfully
        """

    @abstractmethod
    def pause(self) -> None:
        """Pause playback"""

    @abstractmethod
    def resume(self) -> None:
        """Resume playback"""

    @abstractmethod
    def stop(self) -> None:
        """Stop playback"""

    @abstractmethod
    def seek(self, position_ms: int) -> None:
        """Seek to a position in milliseconds"""

    @abstractmethod
    def set_volume(self, volume: float) -> None:
        """Set the volume (0.0 - 1.0)"""

    @abstractmethod
    def get_position(self) -> int:
        """Current position in milliseconds"""

    @abstractmethod
    def get_duration(self) -> int:
        """Duration of the loaded source in milliseconds, 0 if unknown"""

    @abstractmethod
    def check_if_ended(self) -> bool:
        """
        Check if playback has ended (called periodically by the host loop)

        Returns:
            bool: True if playback has ended
        """

    def set_on_end(self, callback: Optional[Callable[[PlaybackEndInfo], None]]) -> None:
        """Set the playback end callback"""
        self._on_end_callback = callback

    def set_on_error(self, callback: Optional[Callable[[str], None]]) -> None:
        """Set the error callback"""
        self._on_error_callback = callback

    def supports_video(self) -> bool:
        """Whether the engine can render video sources"""
        return False

    def supports_urls(self) -> bool:
        """Whether the engine can open http(s) sources directly"""
        return False

    def cleanup(self) -> None:
        """Release the output device"""

    def get_engine_name(self) -> str:
        return "base"

    def _begin_load(self) -> int:
        self._load_id += 1
        return self._load_id

    def _end_info(self) -> PlaybackEndInfo:
        return PlaybackEndInfo(ended_source=self._current_source, load_id=self._load_id)

    def _report_error(self, message: str) -> None:
        self._state = PlayerState.ERROR
        if self._on_error_callback:
            self._on_error_callback(message)


class PygameAudioEngine(AudioEngineBase):
    """
    Audio engine implementation based on Pygame

    Uses pygame.mixer.music, so it plays one local audio file at a time.
    pygame only reports the time elapsed since play() was called, so seeks
    are tracked as an offset on top of that clock.
    """

    _initialized = False
    _mixer_refcount = 0
    _lock = threading.Lock()

    @staticmethod
    def probe() -> bool:
        """Check if pygame dependency is available (without initializing mixer)"""
        try:
            import pygame
            return hasattr(pygame, 'mixer')
        except ImportError:
            return False

    def __init__(self):
        super().__init__()
        self._duration_ms: int = 0
        self._playback_started = False
        self._cleaned_up = False
        # Position bookkeeping: position = base + (get_pos() - anchor)
        self._base_ms: int = 0
        self._anchor_ms: int = 0
        self._start_ms: int = 0

        self._acquire_mixer()

    def _acquire_mixer(self) -> None:
        """Initialize the shared pygame mixer, reference counted across engines."""
        import pygame

        with PygameAudioEngine._lock:
            if not PygameAudioEngine._initialized:
                pygame.mixer.init(frequency=44100, size=-16, channels=2, buffer=2048)
                PygameAudioEngine._initialized = True
            PygameAudioEngine._mixer_refcount += 1

    def load(self, source: str) -> bool:
        """Load an audio file"""
        self._begin_load()
        try:
            import pygame

            if self._state in (PlayerState.PLAYING, PlayerState.PAUSED):
                self.stop()

            pygame.mixer.music.load(source)
            self._current_source = source
            self._state = PlayerState.STOPPED
            self._playback_started = False
            self._base_ms = self._anchor_ms = self._start_ms = 0
            self._duration_ms = self._get_duration_from_file(source)
            return True

        except Exception as e:
            self._current_source = None
            self._report_error(f"Failed to load file: {e}")
            return False

    def _get_duration_from_file(self, file_path: str) -> int:
        """Read the duration from the file tags"""
        try:
            from mutagen import File
            audio = File(file_path)
            if audio and audio.info:
                return int(audio.info.length * 1000)
        except Exception as e:
            logger.debug("Could not read duration of %s: %s", file_path, e)
        return 0

    def play(self) -> bool:
        """Start playback"""
        if self._current_source is None:
            return False

        try:
            import pygame

            pygame.mixer.music.play(start=self._start_ms / 1000.0)
            self._base_ms = self._start_ms
            self._anchor_ms = 0
            self._start_ms = 0
            self._state = PlayerState.PLAYING
            self._playback_started = True
            return True

        except Exception as e:
            self._report_error(f"Playback failed: {e}")
            return False

    def pause(self) -> None:
        """Pause playback"""
        import pygame

        if self._state == PlayerState.PLAYING:
            pygame.mixer.music.pause()
            self._state = PlayerState.PAUSED

    def resume(self) -> None:
        """Resume playback"""
        import pygame

        if self._state == PlayerState.PAUSED:
            pygame.mixer.music.unpause()
            self._state = PlayerState.PLAYING

    def stop(self) -> None:
        """Stop playback"""
        import pygame

        pygame.mixer.music.stop()
        if self._current_source is not None:
            self._state = PlayerState.STOPPED
        self._playback_started = False

    def seek(self, position_ms: int) -> None:
        """Seek to a specified position"""
        import pygame

        if self._state not in (PlayerState.PLAYING, PlayerState.PAUSED):
            # Applied by the next play()
            self._start_ms = max(0, position_ms)
            return

        try:
            # pygame's set_pos takes seconds
            pygame.mixer.music.set_pos(position_ms / 1000.0)
            self._base_ms = position_ms
            self._anchor_ms = max(0, pygame.mixer.music.get_pos())
        except Exception as e:
            logger.warning("Seek failed: %s", e)

    def set_volume(self, volume: float) -> None:
        """Set the volume"""
        import pygame

        self._volume = max(0.0, min(1.0, volume))
        pygame.mixer.music.set_volume(self._volume)

    def get_position(self) -> int:
        """Get the current playback position"""
        import pygame

        if self._state not in (PlayerState.PLAYING, PlayerState.PAUSED):
            return self._start_ms

        elapsed = pygame.mixer.music.get_pos()
        if elapsed < 0:
            return self._base_ms
        position = self._base_ms + max(0, elapsed - self._anchor_ms)
        if self._duration_ms > 0:
            position = min(position, self._duration_ms)
        return position

    def get_duration(self) -> int:
        """Get total audio duration"""
        return self._duration_ms

    def check_if_ended(self) -> bool:
        """
        Check if playback has ended

        Called periodically by the host loop on the control thread.
        """
        import pygame

        if not (self._playback_started and self._state == PlayerState.PLAYING):
            return False

        try:
            busy = pygame.mixer.music.get_busy()
        except Exception as e:
            logger.warning("Pygame mixer not initialized, cannot check playback status: %s", e)
            self._state = PlayerState.ERROR
            self._playback_started = False
            return False

        if busy:
            return False

        self._state = PlayerState.STOPPED
        self._playback_started = False
        if self._on_end_callback:
            self._on_end_callback(self._end_info())
        return True

    def cleanup(self) -> None:
        """Clean up resources"""
        import pygame

        with PygameAudioEngine._lock:
            if self._cleaned_up:
                return
            self._cleaned_up = True

            if PygameAudioEngine._mixer_refcount > 0:
                PygameAudioEngine._mixer_refcount -= 1

            should_quit = PygameAudioEngine._initialized and PygameAudioEngine._mixer_refcount == 0

        try:
            pygame.mixer.music.stop()
        except Exception as e:
            logger.debug("Pygame stop during cleanup failed: %s", e)

        if should_quit:
            try:
                pygame.mixer.quit()
            except Exception as e:
                logger.warning("Pygame cleanup failed: %s", e)
            finally:
                with PygameAudioEngine._lock:
                    PygameAudioEngine._initialized = False

    def get_engine_name(self) -> str:
        """Get the engine name"""
        return "pygame"

"""
VLC Engine Implementation

Output sink based on python-vlc. Unlike the pygame engine it can render
video items and open http(s) locators directly.

libvlc delivers end/error events on its own thread; they are forwarded
through the regular engine callbacks and serialised by the Transport
Controller.
"""

from __future__ import annotations

import logging
import threading
import time
from typing import Any, Optional

from playdeck.core.audio_engine import AudioEngineBase, PlayerState

logger = logging.getLogger(__name__)

try:
    import vlc
    VLC_AVAILABLE = True
except (ImportError, OSError):
    vlc = None  # type: ignore
    VLC_AVAILABLE = False
    logger.debug("python-vlc or libvlc is missing; VLCEngine is unavailable.")

# Seconds to wait for libvlc to parse media metadata on load
PARSE_TIMEOUT_S = 3.0


class VLCEngine(AudioEngineBase):
    """VLC-based engine for audio and video sources"""

    ENGINE_OPTIONS = ("enable_video",)

    @staticmethod
    def probe() -> bool:
        """Check if python-vlc dependencies are available."""
        return VLC_AVAILABLE

    def __init__(self, enable_video: bool = True):
        if not VLC_AVAILABLE:
            raise ImportError("The python-vlc library is not installed.")

        super().__init__()

        args = [] if enable_video else ["--no-video"]
        self._instance: Any = vlc.Instance(*args)
        self._player: Any = self._instance.media_player_new()
        self._media: Optional[Any] = None
        self._enable_video = enable_video

        self._duration_ms: int = 0
        self._playback_started: bool = False
        self._lock = threading.Lock()

        events = self._player.event_manager()
        events.event_attach(vlc.EventType.MediaPlayerEndReached, self._on_end_reached)
        events.event_attach(vlc.EventType.MediaPlayerEncounteredError, self._on_vlc_error)

    def _on_end_reached(self, event: Any) -> None:
        with self._lock:
            info = self._end_info()
            self._state = PlayerState.STOPPED
            self._playback_started = False

        if self._on_end_callback:
            self._on_end_callback(info)

    def _on_vlc_error(self, event: Any) -> None:
        self._report_error("VLC playback error")

    def load(self, source: str) -> bool:
        """Load a file or URL and wait briefly for its duration."""
        try:
            with self._lock:
                self._begin_load()
                if self._state in (PlayerState.PLAYING, PlayerState.PAUSED):
                    self._player.stop()

                old_media = self._media
                self._media = self._instance.media_new(source)
                self._player.set_media(self._media)
                if old_media is not None:
                    old_media.release()

                parse_flag = vlc.MediaParseFlag.network if "://" in source else vlc.MediaParseFlag.local
                self._media.parse_with_options(parse_flag, int(PARSE_TIMEOUT_S * 1000))
                deadline = time.monotonic() + PARSE_TIMEOUT_S
                while time.monotonic() < deadline:
                    if self._media.get_parsed_status() == vlc.MediaParsedStatus.done:
                        break
                    time.sleep(0.05)

                if self._media.get_parsed_status() == vlc.MediaParsedStatus.failed:
                    raise IOError(f"cannot open {source}")

                self._current_source = source
                self._duration_ms = max(0, self._media.get_duration())
                self._state = PlayerState.STOPPED
                self._playback_started = False
                return True

        except Exception as e:
            logger.error("Failed to load source: %s", e)
            self._current_source = None
            self._report_error(f"Failed to load source: {e}")
            return False

    def play(self) -> bool:
        """Start playback."""
        try:
            with self._lock:
                if self._media is None:
                    return False

                self._player.audio_set_volume(int(self._volume * 100))
                if self._player.play() != 0:
                    return False
                self._state = PlayerState.PLAYING
                self._playback_started = True
                return True

        except Exception as e:
            logger.error("Playback failed: %s", e)
            self._report_error(f"Playback failed: {e}")
            return False

    def pause(self) -> None:
        with self._lock:
            if self._state == PlayerState.PLAYING:
                self._player.set_pause(1)
                self._state = PlayerState.PAUSED

    def resume(self) -> None:
        with self._lock:
            if self._state == PlayerState.PAUSED:
                self._player.set_pause(0)
                self._state = PlayerState.PLAYING

    def stop(self) -> None:
        with self._lock:
            self._player.stop()
            if self._current_source is not None:
                self._state = PlayerState.STOPPED
            self._playback_started = False

    def seek(self, position_ms: int) -> None:
        with self._lock:
            if self._duration_ms > 0:
                self._player.set_time(int(position_ms))

    def set_volume(self, volume: float) -> None:
        self._volume = max(0.0, min(1.0, volume))
        self._player.audio_set_volume(int(self._volume * 100))

    def get_position(self) -> int:
        pos = self._player.get_time()
        return pos if pos > 0 else 0

    def get_duration(self) -> int:
        if self._duration_ms <= 0 and self._media is not None:
            # Streams often only report a length once playback has started
            self._duration_ms = max(0, self._player.get_length())
        return self._duration_ms

    def check_if_ended(self) -> bool:
        """End is reported by the MediaPlayerEndReached event; this only reports it."""
        if self._media is None:
            return False
        return self._player.get_state() == vlc.State.Ended

    def supports_video(self) -> bool:
        return self._enable_video

    def supports_urls(self) -> bool:
        return True

    def get_engine_name(self) -> str:
        return "vlc"

    def cleanup(self) -> None:
        """Clean up resources."""
        with self._lock:
            try:
                self._player.stop()
                self._player.release()
                if self._media:
                    self._media.release()
                    self._media = None
                self._instance.release()
            except Exception as e:
                logger.warning("VLC cleanup failed: %s", e)

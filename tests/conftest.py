"""
Test Configuration File

Unified setup for Python path, avoiding sys.path.insert in each test file.
Provides an in-memory output engine so the playback core can be driven
without an audio device.
"""

import sys
from pathlib import Path
from typing import Callable, Dict, List, Optional, Set

import pytest

# Add the src directory to the Python path
src_path = Path(__file__).parent.parent / "src"
if str(src_path) not in sys.path:
    sys.path.insert(0, str(src_path))

from playdeck.core.audio_engine import AudioEngineBase, PlaybackEndInfo, PlayerState  # noqa: E402
from playdeck.models.track import Track  # noqa: E402


class FakeEngine(AudioEngineBase):
    """
    Scriptable engine

    - ``unloadable``: sources whose load() fails
    - ``reject_play``: play() reports failure (autoplay policy)
    - ``on_play``: hook run inside play() before it returns
    - ``auto_finish``: check_if_ended() ends a playing source immediately
    """

    ENGINE_OPTIONS = ("supports_streams",)

    def __init__(self, supports_streams: bool = True, duration_ms: int = 180_000):
        super().__init__()
        self.supports_streams = supports_streams
        self.default_duration = duration_ms
        self.durations: Dict[str, int] = {}
        self.unloadable: Set[str] = set()
        self.reject_play = False
        self.on_play: Optional[Callable[[], None]] = None
        self.auto_finish = False

        self.loads: List[str] = []
        self.seeks: List[int] = []
        self.play_calls = 0
        self.cleaned_up = False

        self.position = 0
        self._duration = 0

    @staticmethod
    def probe() -> bool:
        return True

    def load(self, source: str) -> bool:
        self._begin_load()
        self.loads.append(source)
        if source in self.unloadable:
            self._current_source = None
            self._report_error(f"cannot open {source}")
            return False
        self._current_source = source
        self._duration = self.durations.get(source, self.default_duration)
        self.position = 0
        self._state = PlayerState.STOPPED
        return True

    def play(self) -> bool:
        self.play_calls += 1
        if self.reject_play:
            self._report_error("playback not allowed")
            return False
        self._state = PlayerState.PLAYING
        if self.on_play is not None:
            hook, self.on_play = self.on_play, None
            hook()
        return True

    def pause(self) -> None:
        if self._state == PlayerState.PLAYING:
            self._state = PlayerState.PAUSED

    def resume(self) -> None:
        if self._state == PlayerState.PAUSED:
            self._state = PlayerState.PLAYING

    def stop(self) -> None:
        if self._current_source is not None:
            self._state = PlayerState.STOPPED

    def seek(self, position_ms: int) -> None:
        self.seeks.append(position_ms)
        self.position = position_ms

    def set_volume(self, volume: float) -> None:
        self._volume = max(0.0, min(1.0, volume))

    def get_position(self) -> int:
        return self.position

    def get_duration(self) -> int:
        return self._duration

    def check_if_ended(self) -> bool:
        if self.auto_finish and self._state == PlayerState.PLAYING:
            self.finish()
            return True
        return False

    def finish(self, source: Optional[str] = None, load_id: Optional[int] = None) -> None:
        """Simulate the natural end of a source (an earlier load with load_id)."""
        self._state = PlayerState.STOPPED
        self.position = self._duration
        if self._on_end_callback:
            self._on_end_callback(PlaybackEndInfo(
                ended_source=source or self._current_source,
                load_id=self.load_id if load_id is None else load_id,
            ))

    def fail(self, message: str = "device lost") -> None:
        """Simulate an asynchronous decoder failure."""
        self._report_error(message)

    def supports_video(self) -> bool:
        return True

    def supports_urls(self) -> bool:
        return self.supports_streams

    def cleanup(self) -> None:
        self.cleaned_up = True

    def get_engine_name(self) -> str:
        return "fake"


def make_tracks(*names: str) -> List[Track]:
    """Tracks with stream locators (no files needed)"""
    return [
        Track(id=name.lower(), name=name, source_locator=f"http://media.test/{name.lower()}.mp3")
        for name in names
    ]


@pytest.fixture
def fake_engine():
    return FakeEngine()


@pytest.fixture(autouse=True)
def reset_singletons():
    """Give every test its own event bus and configuration."""
    from playdeck.core.event_bus import EventBus
    from playdeck.services.config_service import ConfigService

    EventBus.reset_instance()
    ConfigService.reset_instance()
    yield
    EventBus.reset_instance()
    ConfigService.reset_instance()


@pytest.fixture
def config(tmp_path):
    from playdeck.services.config_service import ConfigService
    return ConfigService(str(tmp_path / "config.yaml"))


@pytest.fixture
def recorder():
    """Collects events published on the bus: recorder.of(EventType.X)"""
    from playdeck.core.event_bus import EventBus

    class Recorder:
        def __init__(self):
            self.events = []
            self._bus = EventBus()

        def listen(self, *event_types):
            for event_type in event_types:
                self._bus.subscribe(event_type, lambda data, t=event_type: self.events.append((t, data)))
            return self

        def of(self, event_type):
            return [data for t, data in self.events if t == event_type]

    return Recorder()

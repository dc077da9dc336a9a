"""
Audio Engine Unit Tests

Test PygameAudioEngine against a stand-in mixer, and the factory's backend
selection and fallback.
"""

import sys
from unittest.mock import MagicMock, patch

import pytest

from conftest import FakeEngine
from playdeck.core import engine_factory
from playdeck.core.audio_engine import AudioEngineBase, PlaybackEndInfo, PlayerState, PygameAudioEngine
from playdeck.core.engine_factory import AudioEngineFactory


@pytest.fixture
def pygame_mock(monkeypatch):
    """A MagicMock standing in for the pygame module."""
    module = MagicMock()
    module.mixer.music.get_pos.return_value = 0
    module.mixer.music.get_busy.return_value = True
    monkeypatch.setattr(PygameAudioEngine, "_initialized", False)
    monkeypatch.setattr(PygameAudioEngine, "_mixer_refcount", 0)
    with patch.dict(sys.modules, {"pygame": module}):
        yield module


@pytest.fixture
def engine(pygame_mock, tmp_path):
    engine = PygameAudioEngine()
    source = tmp_path / "song.mp3"
    source.write_bytes(b"not really audio")
    engine.test_source = str(source)
    return engine


class TestPygameAudioEngine:
    """Tests for the pygame backend."""

    def test_engine_name(self, engine):
        assert engine.get_engine_name() == "pygame"
        assert engine.supports_video() is False
        assert engine.supports_urls() is False

    def test_mixer_shared_between_engines(self, pygame_mock, engine):
        second = PygameAudioEngine()

        assert pygame_mock.mixer.init.call_count == 1

        engine.cleanup()
        pygame_mock.mixer.quit.assert_not_called()
        second.cleanup()
        pygame_mock.mixer.quit.assert_called_once()

    def test_load_and_play(self, pygame_mock, engine):
        assert engine.load(engine.test_source) is True
        assert engine.state == PlayerState.STOPPED
        assert engine.current_source == engine.test_source
        # mutagen cannot parse the stub file
        assert engine.get_duration() == 0

        assert engine.play() is True
        assert engine.state == PlayerState.PLAYING
        pygame_mock.mixer.music.play.assert_called_once_with(start=0.0)

    def test_load_failure_reports_error(self, pygame_mock, engine):
        errors = []
        engine.set_on_error(errors.append)
        pygame_mock.mixer.music.load.side_effect = RuntimeError("unsupported format")

        assert engine.load(engine.test_source) is False

        assert engine.state == PlayerState.ERROR
        assert "unsupported format" in errors[0]

    def test_play_without_source(self, engine):
        assert engine.play() is False

    def test_pause_resume(self, pygame_mock, engine):
        engine.load(engine.test_source)
        engine.play()

        engine.pause()
        assert engine.state == PlayerState.PAUSED
        engine.resume()
        assert engine.state == PlayerState.PLAYING
        pygame_mock.mixer.music.unpause.assert_called_once()

    def test_seek_before_play_applies_on_start(self, pygame_mock, engine):
        engine.load(engine.test_source)

        engine.seek(12_000)
        assert engine.get_position() == 12_000

        engine.play()
        pygame_mock.mixer.music.play.assert_called_once_with(start=12.0)

    def test_position_tracks_seek_offset(self, pygame_mock, engine):
        engine.load(engine.test_source)
        engine.play()
        pygame_mock.mixer.music.get_pos.return_value = 4_000

        engine.seek(60_000)
        pygame_mock.mixer.music.set_pos.assert_called_once_with(60.0)

        pygame_mock.mixer.music.get_pos.return_value = 6_500
        assert engine.get_position() == 62_500

    def test_volume_clamped(self, pygame_mock, engine):
        engine.set_volume(3.0)
        assert engine.volume == 1.0
        pygame_mock.mixer.music.set_volume.assert_called_with(1.0)

    def test_end_detection(self, pygame_mock, engine):
        ended = []
        engine.set_on_end(ended.append)
        engine.load(engine.test_source)
        engine.play()

        assert engine.check_if_ended() is False
        pygame_mock.mixer.music.get_busy.return_value = False
        assert engine.check_if_ended() is True

        assert ended == [PlaybackEndInfo(ended_source=engine.test_source, load_id=1)]
        assert engine.state == PlayerState.STOPPED
        # Reported once
        assert engine.check_if_ended() is False

    def test_reload_gets_new_load_id(self, pygame_mock, engine):
        ended = []
        engine.set_on_end(ended.append)
        engine.load(engine.test_source)
        engine.load(engine.test_source)
        engine.play()
        pygame_mock.mixer.music.get_busy.return_value = False

        engine.check_if_ended()

        assert engine.load_id == 2
        assert ended[0].load_id == 2

    def test_paused_source_never_ends(self, pygame_mock, engine):
        engine.load(engine.test_source)
        engine.play()
        engine.pause()
        pygame_mock.mixer.music.get_busy.return_value = False

        assert engine.check_if_ended() is False


class BrokenEngine(FakeEngine):
    def __init__(self, **kwargs):
        raise RuntimeError("no device")


class UnprobedEngine(FakeEngine):
    @staticmethod
    def probe() -> bool:
        return False


class TestAudioEngineFactory:
    """Tests for the AudioEngineFactory."""

    @pytest.fixture(autouse=True)
    def registry(self, monkeypatch):
        registry = {"fake": FakeEngine, "broken": BrokenEngine, "missing": UnprobedEngine}
        monkeypatch.setattr(engine_factory, "_ENGINE_REGISTRY", registry)
        monkeypatch.setattr(AudioEngineFactory, "PRIORITY_ORDER", ["broken", "missing", "fake"])
        return registry

    def test_create_named_backend(self):
        engine = AudioEngineFactory.create("fake")
        assert isinstance(engine, FakeEngine)

    def test_options_filtered_per_engine(self):
        engine = AudioEngineFactory.create("fake", supports_streams=False, enable_video=True)
        assert engine.supports_urls() is False

    def test_fallback_when_backend_fails(self):
        engine = AudioEngineFactory.create("broken")
        assert engine.get_engine_name() == "fake"

    def test_fallback_for_unknown_backend(self):
        engine = AudioEngineFactory.create("nonexistent_backend")
        assert engine.get_engine_name() == "fake"

    def test_no_backend_available(self, registry):
        del registry["fake"]
        with pytest.raises(RuntimeError):
            AudioEngineFactory.create("broken")

    def test_available_backends_follow_priority(self):
        assert AudioEngineFactory.get_available_backends() == ["broken", "fake"]
        assert AudioEngineFactory.is_available("missing") is False
        assert AudioEngineFactory.is_available("nonexistent") is False

    def test_register_engine(self, registry):
        engine_factory.register_engine("other", FakeEngine)
        assert registry["other"] is FakeEngine


class TestEngineBase:

    def test_base_is_abstract(self):
        with pytest.raises(TypeError):
            AudioEngineBase()

    def test_base_probe_is_false(self):
        assert AudioEngineBase.probe() is False


@pytest.fixture
def vlc_mock(monkeypatch):
    """A MagicMock standing in for python-vlc, with media that parses at once."""
    from playdeck.core import vlc_engine

    module = MagicMock()
    media = module.Instance.return_value.media_new.return_value
    media.get_parsed_status.return_value = module.MediaParsedStatus.done
    media.get_duration.return_value = 200_000
    player = module.Instance.return_value.media_player_new.return_value
    player.play.return_value = 0
    monkeypatch.setattr(vlc_engine, "vlc", module)
    monkeypatch.setattr(vlc_engine, "VLC_AVAILABLE", True)
    return module


class TestVLCEngine:
    """Tests for the VLC backend."""

    def make_engine(self, **kwargs):
        from playdeck.core.vlc_engine import VLCEngine
        return VLCEngine(**kwargs)

    def test_video_flag(self, vlc_mock):
        engine = self.make_engine(enable_video=False)

        vlc_mock.Instance.assert_called_once_with("--no-video")
        assert engine.supports_video() is False
        assert engine.supports_urls() is True

    def test_load_and_play(self, vlc_mock):
        engine = self.make_engine()

        assert engine.load("https://cdn.test/clip.mp4") is True
        assert engine.get_duration() == 200_000
        assert engine.play() is True
        assert engine.state == PlayerState.PLAYING

    def test_unparseable_media(self, vlc_mock):
        media = vlc_mock.Instance.return_value.media_new.return_value
        media.get_parsed_status.return_value = vlc_mock.MediaParsedStatus.failed
        engine = self.make_engine()
        errors = []
        engine.set_on_error(errors.append)

        assert engine.load("/missing.mkv") is False
        assert engine.current_source is None
        assert len(errors) == 1

    def test_player_refuses_to_start(self, vlc_mock):
        vlc_mock.Instance.return_value.media_player_new.return_value.play.return_value = -1
        engine = self.make_engine()
        engine.load("/music/a.flac")

        assert engine.play() is False
        assert engine.state == PlayerState.STOPPED

    def test_end_event_forwarded(self, vlc_mock):
        engine = self.make_engine()
        ended = []
        engine.set_on_end(ended.append)
        engine.load("/music/a.flac")
        engine.play()

        engine._on_end_reached(None)

        assert ended == [PlaybackEndInfo(ended_source="/music/a.flac", load_id=1)]
        assert engine.state == PlayerState.STOPPED

    def test_unavailable_without_library(self, monkeypatch):
        from playdeck.core import vlc_engine

        monkeypatch.setattr(vlc_engine, "VLC_AVAILABLE", False)
        assert vlc_engine.VLCEngine.probe() is False
        with pytest.raises(ImportError):
            vlc_engine.VLCEngine()

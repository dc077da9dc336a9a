"""
Service Layer Tests
"""

import sqlite3

import pytest

from conftest import make_tracks
from playdeck.core.database import DatabaseManager
from playdeck.core.errors import PersistenceError
from playdeck.core.event_bus import EventBus, EventType
from playdeck.models.playlist import Playlist
from playdeck.models.track import Track
from playdeck.services.library_service import LibraryService
from playdeck.services.persistence_service import PersistenceService
from playdeck.services.playlist_service import PlaylistService


@pytest.fixture
def db(tmp_path):
    manager = DatabaseManager(str(tmp_path / "library.db"))
    yield manager
    manager.close()


@pytest.fixture
def persistence(db):
    service = PersistenceService(db, EventBus())
    yield service
    service.shutdown()


class TestConfigService:
    """Configuration Service Tests"""

    def test_singleton(self, tmp_path):
        from playdeck.services.config_service import ConfigService

        config1 = ConfigService(str(tmp_path / "config.yaml"))
        config2 = ConfigService(str(tmp_path / "config.yaml"))
        assert config1 is config2

    def test_get_default(self, config):
        volume = config.get("playback.default_volume", 0.5)
        assert isinstance(volume, (int, float))
        assert 0.0 <= volume <= 1.0
        assert config.get("playback.auto_play_next") is True

    def test_set_and_get(self, config):
        config.set("test.value", 123)
        assert config.get("test.value") == 123


class TestLibraryService:
    """Media Library Service Tests"""

    def test_add_and_query(self, recorder):
        recorder.listen(EventType.TRACK_ADDED)
        library = LibraryService()
        a, b = make_tracks("A", "B")

        library.add(a)
        library.add(b)

        assert len(library) == 2
        assert "a" in library
        assert library.get_track("b") is b
        assert library.get_track("zzz") is None
        assert recorder.of(EventType.TRACK_ADDED) == [a, b]

    def test_rotated_from(self):
        library = LibraryService()
        for track in make_tracks("A", "B", "C", "D"):
            library.add(track)

        assert [t.name for t in library.rotated_from("c")] == ["C", "D", "A", "B"]
        assert library.rotated_from("missing") == []

    def test_get_tracks_by_ids(self):
        library = LibraryService()
        for track in make_tracks("A", "B"):
            library.add(track)

        tracks = library.get_tracks_by_ids(["b", "gone", "a", "b"])

        assert [t.name for t in tracks] == ["B", "A", "B"]

    def test_remove(self, recorder):
        recorder.listen(EventType.TRACK_REMOVED)
        library = LibraryService()
        a, = make_tracks("A")
        library.add(a)

        assert library.remove("a") is a
        assert library.remove("a") is None
        assert len(library) == 0
        assert recorder.of(EventType.TRACK_REMOVED) == [a]

    def test_rename(self, recorder):
        recorder.listen(EventType.TRACK_UPDATED)
        library = LibraryService()
        for track in make_tracks("A", "B", "C"):
            library.add(track)

        renamed = library.rename("b", "  Better Name ")

        assert renamed.name == "Better Name"
        assert renamed.source_locator == "http://media.test/b.mp3"
        assert [t.name for t in library.get_all_tracks()] == ["A", "Better Name", "C"]
        assert recorder.of(EventType.TRACK_UPDATED) == [renamed]

    def test_rename_rejects_unknown_id_and_blank_name(self):
        library = LibraryService()
        for track in make_tracks("A"):
            library.add(track)

        assert library.rename("zzz", "Name") is None
        assert library.rename("a", "   ") is None
        assert library.get_track("a").name == "A"

    def test_recently_added(self):
        from datetime import datetime, timedelta

        library = LibraryService()
        now = datetime.now()
        for offset, name in enumerate(["old", "mid", "new"]):
            library.add(Track(id=name, name=name, added_at=now + timedelta(minutes=offset)))

        assert [t.id for t in library.get_recently_added(2)] == ["new", "mid"]

    def test_persisted_across_restart(self, db, persistence):
        library = LibraryService(persistence=persistence)
        a, b = make_tracks("A", "B")
        library.add(a)
        library.add(b)
        library.remove("a")
        persistence.flush()

        reloaded = LibraryService(persistence=persistence)
        assert reloaded.load() == 1
        assert reloaded.get_all_tracks() == [b]

    def test_rename_persisted(self, persistence):
        library = LibraryService(persistence=persistence)
        for track in make_tracks("A", "B"):
            library.add(track)
        library.rename("a", "Renamed")
        persistence.flush()

        reloaded = LibraryService(persistence=persistence)
        reloaded.load()
        assert sorted(t.name for t in reloaded.get_all_tracks()) == ["B", "Renamed"]


class TestPlaylistService:
    """Playlist Service Tests"""

    def test_create_playlist(self, recorder):
        recorder.listen(EventType.PLAYLIST_CREATED)
        service = PlaylistService()

        playlist = service.create("Test Playlist", "/covers/a.png")

        assert playlist.name == "Test Playlist"
        assert playlist.cover_path == "/covers/a.png"
        assert recorder.of(EventType.PLAYLIST_CREATED)[0].id == playlist.id

    def test_callers_get_copies(self):
        service = PlaylistService()
        playlist = service.create("Mix")

        playlist.track_ids.append("a")

        assert service.get(playlist.id).track_ids == []

    def test_add_and_remove_tracks(self, recorder):
        recorder.listen(EventType.PLAYLIST_UPDATED)
        service = PlaylistService()
        playlist = service.create("Mix")

        service.add_track(playlist.id, "a")
        service.add_track(playlist.id, "b")
        service.add_track(playlist.id, "a")
        assert service.remove_track(playlist.id, "a") is True
        assert service.remove_track(playlist.id, "zzz") is False

        assert service.get(playlist.id).track_ids == ["b", "a"]
        assert len(recorder.of(EventType.PLAYLIST_UPDATED)) == 4

    def test_unknown_playlist(self):
        service = PlaylistService()
        assert service.add_track("missing", "a") is False
        assert service.rename("missing", "x") is False
        assert service.delete("missing") is False
        assert service.get("missing") is None

    def test_rename_and_cover(self):
        service = PlaylistService()
        playlist = service.create("Mix")

        service.rename(playlist.id, "Road Trip")
        service.set_cover(playlist.id, "/covers/road.jpg")

        updated = service.get(playlist.id)
        assert updated.name == "Road Trip"
        assert updated.cover_path == "/covers/road.jpg"
        assert updated.updated_at >= playlist.updated_at

    def test_get_tracks_resolves_against_library(self):
        library = LibraryService()
        for track in make_tracks("A", "B"):
            library.add(track)
        service = PlaylistService()
        playlist = service.create("Mix")
        for track_id in ("b", "ghost", "a", "b"):
            service.add_track(playlist.id, track_id)

        assert [t.name for t in service.get_tracks(playlist.id, library)] == ["B", "A", "B"]
        assert service.get_tracks("missing", library) == []

    def test_remove_track_everywhere(self):
        service = PlaylistService()
        first = service.create("One")
        second = service.create("Two")
        untouched = service.create("Three")
        service.add_track(first.id, "a")
        service.add_track(first.id, "a")
        service.add_track(second.id, "a")
        service.add_track(untouched.id, "b")

        changed = service.remove_track_everywhere("a")

        assert sorted(changed) == sorted([first.id, second.id])
        assert service.get(first.id).track_ids == []
        assert service.get(untouched.id).track_ids == ["b"]

    def test_delete(self, recorder):
        recorder.listen(EventType.PLAYLIST_DELETED)
        service = PlaylistService()
        playlist = service.create("Mix")

        assert service.delete(playlist.id) is True
        assert service.get_all() == []
        assert recorder.of(EventType.PLAYLIST_DELETED) == [playlist.id]

    def test_persisted_across_restart(self, persistence):
        service = PlaylistService(persistence=persistence)
        keep = service.create("Keep")
        gone = service.create("Gone")
        service.add_track(keep.id, "a")
        service.add_track(keep.id, "b")
        service.add_track(keep.id, "a")
        service.rename(keep.id, "Kept")
        service.delete(gone.id)
        persistence.flush()

        reloaded = PlaylistService(persistence=persistence)
        assert reloaded.load() == 1
        playlist = reloaded.get(keep.id)
        assert playlist.name == "Kept"
        assert playlist.track_ids == ["a", "b", "a"]


class TestPersistenceService:
    """Persistence Service Tests"""

    def test_track_round_trip(self, persistence):
        track = Track.from_path("/music/Song.flac", artist="Artist", duration_hint_ms=200_000)

        assert persistence.save_track(track).result() is True

        assert persistence.load_tracks() == [track]

    def test_save_track_twice_replaces(self, persistence):
        track = Track(id="t", name="Old", source_locator="/a.mp3")
        persistence.save_track(track)
        persistence.save_track(Track(id="t", name="New", source_locator="/a.mp3"))
        persistence.flush()

        assert [t.name for t in persistence.load_tracks()] == ["New"]

    def test_delete_track_clears_playlist_items(self, db, persistence):
        persistence.save_track(Track(id="a", name="A", source_locator="/a.mp3"))
        persistence.save_playlist(Playlist(id="p", name="P", track_ids=["a", "b"]))
        persistence.delete_track("a").result()

        rows = db.fetch_all("SELECT track_id FROM playlist_items WHERE playlist_id = ?", ("p",))
        assert [r["track_id"] for r in rows] == ["b"]

    def test_playlist_snapshot_taken_at_submit(self, persistence):
        playlist = Playlist(id="p", name="P", track_ids=["a"])
        future = persistence.save_playlist(playlist)
        playlist.track_ids.append("b")
        future.result()

        assert persistence.load_playlists()[0].track_ids == ["a"]

    def test_delete_playlist(self, persistence):
        persistence.save_playlist(Playlist(id="p", name="P", track_ids=["a"]))
        assert persistence.delete_playlist("p").result() is True
        assert persistence.load_playlists() == []

    def test_failed_write_is_reported(self, persistence, recorder, monkeypatch):
        recorder.listen(EventType.ERROR_OCCURRED)

        def locked(*args, **kwargs):
            raise sqlite3.OperationalError("disk I/O error")
        monkeypatch.setattr(persistence, "_write_track", locked)

        assert persistence.save_track(make_tracks("A")[0]).result() is False

        errors = recorder.of(EventType.ERROR_OCCURRED)
        assert len(errors) == 1
        assert isinstance(errors[0], PersistenceError)

    def test_save_settings(self, persistence, config):
        config.set("playback.auto_play_next", False)

        assert persistence.save_settings(config).result() is True
        assert config.config_path.exists()

    def test_save_settings_failure(self, persistence, recorder):
        recorder.listen(EventType.ERROR_OCCURRED)

        class ReadOnlyConfig:
            def save(self):
                return False

        assert persistence.save_settings(ReadOnlyConfig()).result() is False
        assert len(recorder.of(EventType.ERROR_OCCURRED)) == 1

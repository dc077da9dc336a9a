"""
Regression tests for ConfigService path handling and isolation.

Goal: Avoid overwriting repository template configuration files and ensure
that the test environment does not pollute the real user directories.
"""

from __future__ import annotations

from pathlib import Path

import pytest
import yaml

from playdeck.services.config_service import DEFAULT_CONFIG_PATH, ConfigService

REPO_ROOT = Path(__file__).parent.parent


def _sandbox_user_config_dir(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> Path:
    base = tmp_path / "user-config"
    # Set for Windows/Mac/Linux to avoid platform differences leaking to real user directories
    monkeypatch.setenv("APPDATA", str(base))
    monkeypatch.setenv("XDG_CONFIG_HOME", str(base))
    monkeypatch.setattr(ConfigService, "_get_user_config_path", staticmethod(lambda: base / "playdeck" / "config.yaml"))
    return base


def test_custom_config_path_save_and_reload_round_trip(tmp_path: Path, monkeypatch: pytest.MonkeyPatch):
    _sandbox_user_config_dir(monkeypatch, tmp_path)

    custom_path = tmp_path / "isolated.yaml"
    config = ConfigService(str(custom_path))
    config.set("playback.auto_play_next", False)

    assert config.save() is True
    assert custom_path.exists()

    # Custom mode should not write to the default user directory
    assert ConfigService._get_user_config_path().exists() is False

    ConfigService.reset_instance()
    config2 = ConfigService(str(custom_path))
    assert config2.get("playback.auto_play_next") is False
    # Keys missing from the file keep their defaults
    assert config2.get("playback.default_volume") == 0.7


def test_passing_default_template_path_does_not_write_to_repo_template(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
):
    _sandbox_user_config_dir(monkeypatch, tmp_path)
    monkeypatch.chdir(REPO_ROOT)

    template_path = Path(DEFAULT_CONFIG_PATH)
    before = template_path.read_text(encoding="utf-8")

    # When the default template path is passed, it should still save to the user directory
    # (avoiding writing back to the repository file).
    config = ConfigService(DEFAULT_CONFIG_PATH)
    config.set("playback.default_volume", 0.2)
    assert config.save() is True

    user_config_path = ConfigService._get_user_config_path()
    assert user_config_path.exists()

    after = template_path.read_text(encoding="utf-8")
    assert after == before


def test_default_mode_user_config_overrides_template(tmp_path: Path, monkeypatch: pytest.MonkeyPatch):
    _sandbox_user_config_dir(monkeypatch, tmp_path)
    monkeypatch.chdir(REPO_ROOT)

    user_config_path = ConfigService._get_user_config_path()
    user_config_path.parent.mkdir(parents=True, exist_ok=True)
    user_config_path.write_text(yaml.safe_dump({"audio": {"backend": "vlc"}}), encoding="utf-8")

    config = ConfigService()
    assert config.get("audio.backend") == "vlc"


def test_unreadable_config_falls_back_to_defaults(tmp_path: Path):
    broken = tmp_path / "broken.yaml"
    broken.write_text("playback: [unclosed", encoding="utf-8")

    config = ConfigService(str(broken))

    assert config.get("playback.auto_play_next") is True


def test_get_missing_key_returns_default(config):
    assert config.get("playback.nonexistent", 42) == 42
    assert config.get("playback.default_volume.deeper") is None


def test_get_all_is_a_copy(config):
    snapshot = config.get_all()
    snapshot["playback"]["default_volume"] = 0.0

    assert config.get("playback.default_volume") == 0.7


def test_reset_restores_defaults(config):
    config.set("audio.backend", "vlc")
    config.reset()
    assert config.get("audio.backend") == "pygame"

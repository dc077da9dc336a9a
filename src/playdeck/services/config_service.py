"""
Configuration Service Module

Manages application configuration read/write.
"""

from typing import Any, Dict, Optional
from pathlib import Path
import copy
import os
import sys
import yaml
import threading
import logging

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = "config/default_config.yaml"


class ConfigService:
    """
    Configuration Service - Singleton Pattern

    Built-in defaults, overlaid with the repository template and the user's
    configuration file (YAML).

    Usage Example:
        config = ConfigService("config/default_config.yaml")

        # Get configuration
        volume = config.get("playback.default_volume", 0.7)

        # Set configuration
        config.set("playback.auto_play_next", False)
        config.save()
    """

    _instance: Optional['ConfigService'] = None
    _lock = threading.Lock()

    def __new__(cls, config_path: Optional[str] = None) -> 'ConfigService':
        if cls._instance is None:
            with cls._lock:
                if cls._instance is None:
                    cls._instance = super().__new__(cls)
                    cls._instance._initialized = False
        return cls._instance

    def __init__(self, config_path: Optional[str] = None):
        if self._initialized:
            return

        provided_path = Path(config_path) if config_path else None

        # A custom path is used for both loading and saving (test isolation);
        # the repository template is never written to
        self._use_custom_path = provided_path is not None and provided_path != Path(DEFAULT_CONFIG_PATH)

        if self._use_custom_path:
            self._user_config_path = provided_path
        else:
            self._user_config_path = self._get_user_config_path()

        self._config: Dict[str, Any] = {}
        self._lock = threading.Lock()
        self._initialized = True

        self._load()

    @staticmethod
    def _get_user_config_path() -> Path:
        """Get user configuration file path (platform-specific)"""
        if sys.platform == "win32":
            base = Path(os.environ.get("APPDATA", Path.home() / "AppData" / "Roaming"))
        elif sys.platform == "darwin":
            base = Path.home() / "Library" / "Application Support"
        else:
            base = Path(os.environ.get("XDG_CONFIG_HOME", Path.home() / ".config"))
        return base / "playdeck" / "config.yaml"

    @property
    def config_path(self) -> Path:
        return self._user_config_path

    def _load(self) -> None:
        """Load and merge from default and user configuration"""
        self._config = self._get_default_config()

        sources = [self._user_config_path] if self._use_custom_path else [
            Path(DEFAULT_CONFIG_PATH), self._user_config_path
        ]
        for path in sources:
            if not path.exists():
                continue
            try:
                with open(path, 'r', encoding='utf-8') as f:
                    self._deep_merge(self._config, yaml.safe_load(f) or {})
            except (OSError, yaml.YAMLError) as e:
                logger.warning("Failed to load configuration %s: %s", path, e)

    def _deep_merge(self, base: Dict, override: Dict) -> None:
        """Deep merge dictionaries, override overwrites base"""
        for key, value in override.items():
            if key in base and isinstance(base[key], dict) and isinstance(value, dict):
                self._deep_merge(base[key], value)
            else:
                base[key] = value

    def _get_default_config(self) -> Dict[str, Any]:
        """Get default configuration"""
        return {
            'app': {
                'name': 'playdeck',
                'version': '1.0.0',
            },
            'audio': {
                'backend': 'pygame',
                'enable_video': True,
            },
            'playback': {
                'default_volume': 0.7,
                'auto_play_next': True,
                # Reserved; playback is never gapless
                'gapless_playback': False,
                'progress_interval_ms': 250,
            },
            'storage': {
                'db_path': None,
            },
        }

    def get(self, key: str, default: Any = None) -> Any:
        """
        Get a configuration value.

        Supports dot-separated nested keys, e.g., "playback.default_volume".

        Args:
            key: Configuration key
            default: Default value

        Returns:
            Configuration value or the default value.
        """
        with self._lock:
            value = self._config
            try:
                for k in key.split('.'):
                    value = value[k]
                return value
            except (KeyError, TypeError):
                return default

    def set(self, key: str, value: Any) -> None:
        """
        Set a configuration value.

        Args:
            key: Configuration key (dot-separated)
            value: Configuration value
        """
        with self._lock:
            keys = key.split('.')
            config = self._config

            for k in keys[:-1]:
                config = config.setdefault(k, {})

            config[keys[-1]] = value

    def get_all(self) -> Dict[str, Any]:
        """Get a copy of all configuration."""
        with self._lock:
            return copy.deepcopy(self._config)

    def save(self) -> bool:
        """
        Save configuration to the user configuration file.

        Returns:
            bool: True if saving was successful.
        """
        try:
            self._user_config_path.parent.mkdir(parents=True, exist_ok=True)

            with self._lock:
                with open(self._user_config_path, 'w', encoding='utf-8') as f:
                    yaml.safe_dump(self._config, f, allow_unicode=True, default_flow_style=False)
            logger.debug("Configuration saved to: %s", self._user_config_path)
            return True
        except (OSError, yaml.YAMLError) as e:
            logger.error("Failed to save configuration: %s", e)
            return False

    def reload(self) -> None:
        self._load()

    def reset(self) -> None:
        """Reset to default configuration."""
        with self._lock:
            self._config = self._get_default_config()

    @classmethod
    def reset_instance(cls) -> None:
        """Reset the singleton instance (for testing only)."""
        with cls._lock:
            cls._instance = None

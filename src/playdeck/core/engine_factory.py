"""
Audio Engine Factory

Creates output sinks by backend name, with fallback to the next available one.
"""

import logging
from typing import Any, List, Type, Dict, Optional

from playdeck.core.audio_engine import AudioEngineBase, PygameAudioEngine

logger = logging.getLogger(__name__)

# Engine registry
_ENGINE_REGISTRY: Dict[str, Type[AudioEngineBase]] = {}


def register_engine(name: str, engine_class: Type[AudioEngineBase]) -> None:
    """
    Register an audio engine.

    Args:
        name: Engine name identifier
        engine_class: Engine class
    """
    _ENGINE_REGISTRY[name] = engine_class


register_engine("pygame", PygameAudioEngine)

try:
    from playdeck.core.vlc_engine import VLCEngine
    register_engine("vlc", VLCEngine)
except Exception:
    logger.debug("VLC backend unavailable")


class AudioEngineFactory:
    """
    Audio Engine Factory

    Usage Example:
        engine = AudioEngineFactory.create("vlc", enable_video=True)
        backends = AudioEngineFactory.get_available_backends()
    """

    # Backend priority (fallback order)
    PRIORITY_ORDER = ["pygame", "vlc"]

    @classmethod
    def create(cls, backend: str = "pygame", **options: Any) -> AudioEngineBase:
        """
        Create a specified audio engine, falling back by priority if it fails.

        Args:
            backend: Backend name ("pygame", "vlc")
            **options: Engine options, passed only to engines that declare them

        Returns:
            AudioEngineBase: Audio engine instance

        Raises:
            RuntimeError: If no backends are available
        """
        if backend in _ENGINE_REGISTRY:
            try:
                engine = cls._instantiate(backend, options)
                logger.info("Using audio backend: %s", backend)
                return engine
            except Exception as e:
                logger.warning("Failed to create %s backend: %s, attempting fallback", backend, e)
        else:
            logger.warning("Unknown audio backend %r, attempting fallback", backend)

        return cls.create_best_available(exclude=[backend], **options)

    @classmethod
    def create_best_available(
        cls, exclude: Optional[List[str]] = None, **options: Any
    ) -> AudioEngineBase:
        """Try each registered backend in priority order."""
        exclude = exclude or []

        for backend in cls.PRIORITY_ORDER:
            if backend in exclude or backend not in _ENGINE_REGISTRY:
                continue

            try:
                engine = cls._instantiate(backend, options)
                logger.info("Using audio backend: %s", backend)
                return engine
            except Exception as e:
                logger.debug("Backend %s unavailable: %s", backend, e)

        raise RuntimeError("No audio backends available. Please install pygame or python-vlc.")

    @staticmethod
    def _instantiate(backend: str, options: Dict[str, Any]) -> AudioEngineBase:
        engine_class = _ENGINE_REGISTRY[backend]
        accepted = getattr(engine_class, "ENGINE_OPTIONS", ())
        return engine_class(**{k: v for k, v in options.items() if k in accepted})

    @classmethod
    def get_available_backends(cls) -> List[str]:
        """Available backend names, sorted by priority (probe only, no device access)."""
        return [b for b in cls.PRIORITY_ORDER if cls.is_available(b)]

    @classmethod
    def is_available(cls, backend: str) -> bool:
        """Check if a backend's dependencies can be imported."""
        engine_class = _ENGINE_REGISTRY.get(backend)
        if engine_class is None:
            return False
        try:
            return bool(engine_class.probe())
        except Exception:
            return False

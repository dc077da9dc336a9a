# -*- coding: utf-8 -*-
"""
Container Factory Module

Responsible for creating and assembling all application dependencies.

This is the **only** instance creation point (Composition Root) for the application.
"""

from __future__ import annotations

import logging
import random
from typing import TYPE_CHECKING, Optional

if TYPE_CHECKING:
    from playdeck.app.container import AppContainer
    from playdeck.core.audio_engine import AudioEngineBase

logger = logging.getLogger(__name__)


class AppContainerFactory:
    """Application Container Factory

    Usage Example:
        # In main.py
        container = AppContainerFactory.create(config_path=args.config)

        # In tests
        container = AppContainerFactory.create_for_testing(FakeEngine(), config_path=str(tmp_path / "c.yaml"))
    """

    @staticmethod
    def create(
        config_path: Optional[str] = None,
        backend: Optional[str] = None,
        db_path: Optional[str] = None,
    ) -> "AppContainer":
        """Create Application Container

        Args:
            config_path: Configuration file path
            backend: Output backend, overriding ``audio.backend``
            db_path: Database path, overriding ``storage.db_path``

        Returns:
            A configured AppContainer instance
        """
        from playdeck.core.engine_factory import AudioEngineFactory
        from playdeck.services.config_service import ConfigService

        logger.info("Creating application container...")

        config = ConfigService(config_path)
        backend = backend or config.get("audio.backend", "pygame")
        try:
            engine = AudioEngineFactory.create(
                backend, enable_video=bool(config.get("audio.enable_video", True))
            )
        except RuntimeError as e:
            logger.error("Failed to create audio engine: %s", e)
            raise

        container = AppContainerFactory._assemble(
            config, engine, db_path or config.get("storage.db_path")
        )
        logger.info("Application container creation complete")
        return container

    @staticmethod
    def create_for_testing(
        engine: "AudioEngineBase",
        config_path: Optional[str] = None,
        db_path: str = ":memory:",
        rng: Optional[random.Random] = None,
    ) -> "AppContainer":
        """Create a container for testing

        Uses the given engine and an in-memory database.
        """
        from playdeck.services.config_service import ConfigService

        logger.info("Creating test application container...")
        return AppContainerFactory._assemble(ConfigService(config_path), engine, db_path, rng)

    @staticmethod
    def _assemble(config, engine, db_path, rng: Optional[random.Random] = None) -> "AppContainer":
        from playdeck.app.container import AppContainer
        from playdeck.core.database import DatabaseManager
        from playdeck.core.event_bus import EventBus
        from playdeck.core.transport import Transport
        from playdeck.services.library_service import LibraryService
        from playdeck.services.music_app_facade import MusicAppFacade
        from playdeck.services.persistence_service import PersistenceService
        from playdeck.services.playback_session import PlaybackSession
        from playdeck.services.playlist_service import PlaylistService
        from playdeck.services.transport_controller import TransportController

        # === 1. Infrastructure Layer ===
        event_bus = EventBus()
        db = DatabaseManager(db_path)
        persistence = PersistenceService(db, event_bus)

        # === 2. Library (reloaded at start; the queue always starts empty) ===
        library = LibraryService(persistence=persistence, event_bus=event_bus)
        playlist_service = PlaylistService(persistence=persistence, event_bus=event_bus)
        library.load()
        playlist_service.load()

        # === 3. Playback core ===
        transport = Transport(engine)
        controller = TransportController(
            transport,
            PlaybackSession(rng=rng),
            config=config,
            event_bus=event_bus,
        )
        controller.set_volume(float(config.get("playback.default_volume", 0.7)))

        # === 4. Facade ===
        facade = MusicAppFacade(
            controller=controller,
            library=library,
            playlist_service=playlist_service,
            config=config,
            event_bus=event_bus,
            persistence=persistence,
        )

        return AppContainer(
            config=config,
            event_bus=event_bus,
            db=db,
            facade=facade,
            controller=controller,
            _library=library,
            _playlist_service=playlist_service,
            _persistence=persistence,
        )

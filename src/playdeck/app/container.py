# -*- coding: utf-8 -*-
"""
Application Container Module

Defines the dependency container for the application, holding all service instances centrally.

Design Principles:
- Only the host (CLI or GUI shell) holds the complete AppContainer
- Presentation code accesses services via the facade, not the container
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from playdeck.app.protocols import IConfigService, IEventBus
    from playdeck.core.database import DatabaseManager
    from playdeck.services.music_app_facade import MusicAppFacade
    from playdeck.services.transport_controller import TransportController


@dataclass
class AppContainer:
    """Application Dependency Container

    Usage Example:
        container = AppContainerFactory.create()
        container.facade.play_track(track_id)
        ...
        container.cleanup()
    """

    # === Public Attributes ===
    config: "IConfigService"
    event_bus: "IEventBus"
    db: "DatabaseManager"
    facade: "MusicAppFacade"
    controller: "TransportController"

    # === Internal Service References ===
    _library: Any = field(default=None, repr=False)
    _playlist_service: Any = field(default=None, repr=False)
    _persistence: Any = field(default=None, repr=False)

    def cleanup(self) -> None:
        """Clean up all resources

        Should be called when the application exits.
        """
        if self.controller is not None:
            self.controller.shutdown()

        # Pending writes go out before the database is closed
        if self._persistence is not None:
            self._persistence.shutdown()

        if self.event_bus is not None and hasattr(self.event_bus, 'shutdown'):
            self.event_bus.shutdown()

        if self.db is not None:
            self.db.close()

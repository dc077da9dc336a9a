# -*- coding: utf-8 -*-
"""
Event Bus Module - Publish-Subscribe Pattern Implementation

Carries one-way notifications from the playback core to whatever renders
it (terminal presenter, GUI shell, tests). Publishing never blocks the core
on a slow or failing subscriber.
"""

from typing import Dict, Callable, Any, Optional
from enum import Enum
import threading
import uuid
import logging
from concurrent.futures import ThreadPoolExecutor

logger = logging.getLogger(__name__)


class EventType(Enum):
    """Event type enumeration"""

    # Transport events
    TRACK_LOADED = "track_loaded"
    TRACK_STARTED = "track_started"
    TRACK_PAUSED = "track_paused"
    TRACK_ENDED = "track_ended"
    PLAYBACK_STOPPED = "playback_stopped"  # Manual stop or queue exhausted
    POSITION_CHANGED = "position_changed"
    VOLUME_CHANGED = "volume_changed"
    STATE_CHANGED = "state_changed"

    # Queue / session events
    QUEUE_CHANGED = "queue_changed"
    MODES_CHANGED = "modes_changed"
    HISTORY_CHANGED = "history_changed"

    # Library events
    PLAYLIST_CREATED = "playlist_created"
    PLAYLIST_UPDATED = "playlist_updated"
    PLAYLIST_DELETED = "playlist_deleted"
    TRACK_ADDED = "track_added"
    TRACK_REMOVED = "track_removed"
    TRACK_UPDATED = "track_updated"

    # System events
    CONFIG_CHANGED = "config_changed"
    ERROR_OCCURRED = "error_occurred"


class EventBus:
    """
    Event Bus - Singleton Pattern

    Usage example:
        event_bus = EventBus()

        def on_track_started(track):
            logger.info("Playing: %s", track.name)

        sub_id = event_bus.subscribe(EventType.TRACK_STARTED, on_track_started)
        event_bus.publish_sync(EventType.TRACK_STARTED, track)
        event_bus.unsubscribe(sub_id)
    """

    _instance: Optional['EventBus'] = None
    _lock = threading.Lock()

    def __new__(cls) -> 'EventBus':
        if cls._instance is None:
            with cls._lock:
                if cls._instance is None:
                    cls._instance = super().__new__(cls)
                    cls._instance._initialized = False
        return cls._instance

    def __init__(self):
        if self._initialized:
            return

        self._subscribers: Dict[EventType, Dict[str, Callable]] = {}
        self._executor = ThreadPoolExecutor(max_workers=2, thread_name_prefix="EventBus")
        self._sub_lock = threading.Lock()
        self._initialized = True

    def subscribe(
        self,
        event_type: EventType,
        callback: Callable[[Any], None]
    ) -> str:
        """
        Subscribe to event

        Args:
            event_type: Event type
            callback: Callback function, receiving event data as an argument

        Returns:
            str: Subscription ID, used for unsubscription
        """
        subscription_id = str(uuid.uuid4())

        with self._sub_lock:
            self._subscribers.setdefault(event_type, {})[subscription_id] = callback

        return subscription_id

    def unsubscribe(self, subscription_id: str) -> bool:
        """Remove a subscription; returns False when the ID is unknown"""
        with self._sub_lock:
            for callbacks in self._subscribers.values():
                if subscription_id in callbacks:
                    del callbacks[subscription_id]
                    return True
        return False

    def publish(self, event_type: EventType, data: Any = None) -> None:
        """Publish event; callbacks run on the bus thread pool"""
        for callback in self._callbacks_for(event_type):
            self._executor.submit(self._safe_call, callback, data)

    def publish_sync(self, event_type: EventType, data: Any = None) -> None:
        """Publish event; callbacks run inline on the calling thread"""
        for callback in self._callbacks_for(event_type):
            self._safe_call(callback, data)

    def _callbacks_for(self, event_type: EventType) -> list:
        with self._sub_lock:
            return list(self._subscribers.get(event_type, {}).values())

    def _safe_call(self, callback: Callable, data: Any) -> None:
        """Safely call a callback function"""
        try:
            callback(data)
        except Exception as e:
            # Do not publish ERROR_OCCURRED here, a failing error handler would loop
            logger.error("Event callback execution error: %s", e)

    def clear(self) -> None:
        """Clear all subscriptions"""
        with self._sub_lock:
            self._subscribers.clear()

    def shutdown(self) -> None:
        """Shutdown the event bus"""
        self._executor.shutdown(wait=True)

    @classmethod
    def reset_instance(cls) -> None:
        """Reset the singleton instance (for testing only)"""
        with cls._lock:
            if cls._instance is not None:
                cls._instance.shutdown()
                cls._instance = None

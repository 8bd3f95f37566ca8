"""
Event system for the annotation workflow.

Provides a decoupled way for the annotation core to notify UI components
(renderer, playback widget, submission handler) about state changes
without depending on specific UI frameworks.
"""

from enum import Enum
from typing import Any, Callable, Dict, List, Optional, Union
from dataclasses import dataclass
import logging

logger = logging.getLogger(__name__)


class EventType(Enum):
    """Types of events that can occur during annotation."""

    # Review workflow
    STATE_CHANGED = "stateChanged"
    CONFIRMED = "confirmed"
    SUBMITTED = "submitted"

    # Annotation data
    EDITED = "edited"
    SELECTED = "selected"

    # Interaction
    NAVIGATED = "navigated"
    MODE_CHANGED = "modeChanged"
    VIEW_CHANGED = "viewChanged"


@dataclass
class AnnotationEvent:
    """Event that occurs during annotation."""

    event_type: EventType
    data: Optional[Dict[str, Any]] = None

    def __post_init__(self):
        if self.data is None:
            self.data = {}


class EventEmitter:
    """
    Simple event emitter for pub/sub pattern.

    Listeners run synchronously, in subscription order.
    """

    def __init__(self):
        self._listeners: Dict[EventType, List[Callable]] = {}

    @staticmethod
    def _event_type(event_type: Union[EventType, str]) -> EventType:
        if isinstance(event_type, EventType):
            return event_type
        return EventType(event_type)

    def on(
        self,
        event_type: Union[EventType, str],
        callback: Callable[[AnnotationEvent], None],
    ):
        """Subscribe to an event type, by member or by name."""
        event_type = self._event_type(event_type)
        if event_type not in self._listeners:
            self._listeners[event_type] = []
        self._listeners[event_type].append(callback)

    def off(
        self,
        event_type: Union[EventType, str],
        callback: Callable[[AnnotationEvent], None],
    ):
        """Unsubscribe from an event type."""
        event_type = self._event_type(event_type)
        if event_type in self._listeners and callback in self._listeners[event_type]:
            self._listeners[event_type].remove(callback)

    def emit(self, event: AnnotationEvent):
        """Emit an event to all subscribers."""
        if event.event_type in self._listeners:
            for callback in list(self._listeners[event.event_type]):
                try:
                    callback(event)
                except Exception:
                    # Log but don't crash on listener errors
                    logger.exception(
                        f"Error in {event.event_type.value} event listener"
                    )

    def listener_count(self, event_type: Union[EventType, str]) -> int:
        return len(self._listeners.get(self._event_type(event_type), []))

    def clear(self):
        """Clear all event listeners."""
        self._listeners.clear()

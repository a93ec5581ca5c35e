"""
Event dispatcher for decoupled real-time updates.

Services emit events after their transaction commits; the WebSocket layer
subscribes and broadcasts them to dashboard clients.

Usage in services:
    from app.services.event_dispatcher import emit_event, EventType

    await emit_event(EventType.SLOT_BOOKED, {
        "slot_id": slot.id,
        "booking_id": booking.id,
        "booked": slot.booked,
    })
"""
import asyncio
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, List, Optional

from app.utils.time import utcnow

logger = logging.getLogger(__name__)


class EventType(str, Enum):
    """Event types for real-time updates."""
    # Slot events
    SLOT_BOOKED = "slot.booked"
    SLOT_BOOKING_CANCELLED = "slot.booking_cancelled"
    SLOT_STATUS_CHANGED = "slot.status_changed"

    # Trip events
    TRIP_STATUS_CHANGED = "trip.status_changed"
    TRIP_EVENT_ADDED = "trip.event_added"

    # Container events
    CONTAINER_HOLD_ADDED = "container.hold_added"
    CONTAINER_HOLD_RESOLVED = "container.hold_resolved"

    # Vessel / driver events
    VESSEL_STATUS_CHANGED = "vessel.status_changed"
    DRIVER_STATUS_CHANGED = "driver.status_changed"


@dataclass
class Event:
    """Represents an event to be dispatched."""
    type: EventType
    data: Dict[str, Any]
    timestamp: str = field(default_factory=lambda: utcnow().isoformat())
    terminal_id: Optional[str] = None

    def to_message(self) -> Dict[str, Any]:
        return {
            "type": self.type.value,
            "data": self.data,
            "timestamp": self.timestamp,
            "terminal_id": self.terminal_id,
        }


# Type for event handlers
EventHandler = Callable[[Event], Any]


class EventDispatcher:
    """
    Central event dispatcher for real-time updates.

    Implements a simple pub/sub pattern for decoupling
    business logic from notification logic.
    """

    def __init__(self) -> None:
        self._handlers: Dict[EventType, List[EventHandler]] = {}
        self._global_handlers: List[EventHandler] = []

    def subscribe(self, event_type: EventType, handler: EventHandler) -> None:
        """Subscribe to a specific event type."""
        self._handlers.setdefault(event_type, []).append(handler)
        logger.debug("Handler subscribed to %s", event_type.value)

    def subscribe_all(self, handler: EventHandler) -> None:
        """Subscribe to all events."""
        if handler not in self._global_handlers:
            self._global_handlers.append(handler)

    def unsubscribe_all(self, handler: EventHandler) -> None:
        self._global_handlers = [h for h in self._global_handlers if h != handler]

    async def emit(self, event: Event) -> None:
        """Emit an event to all subscribers. Handler failures are logged, never raised."""
        handlers = self._handlers.get(event.type, []) + self._global_handlers

        if not handlers:
            logger.debug("No handlers for event %s", event.type.value)
            return

        tasks = []
        for handler in handlers:
            try:
                result = handler(event)
                if asyncio.iscoroutine(result):
                    tasks.append(result)
            except Exception as e:
                logger.error("Error in event handler for %s: %s", event.type.value, e)

        if tasks:
            results = await asyncio.gather(*tasks, return_exceptions=True)
            for result in results:
                if isinstance(result, Exception):
                    logger.error("Error in event handler for %s: %s", event.type.value, result)

        logger.debug("Event %s dispatched to %d handlers", event.type.value, len(handlers))


# Global dispatcher instance
_dispatcher = EventDispatcher()


def get_dispatcher() -> EventDispatcher:
    """Get the global event dispatcher."""
    return _dispatcher


async def emit_event(
    event_type: EventType,
    data: Dict[str, Any],
    terminal_id: Optional[str] = None,
) -> None:
    """
    Emit an event to all subscribers.

    Args:
        event_type: Type of event
        data: Event data payload (must be JSON serializable)
        terminal_id: Terminal the event concerns, when there is one
    """
    await _dispatcher.emit(Event(type=event_type, data=data, terminal_id=terminal_id))

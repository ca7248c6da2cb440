"""
Booking event broadcasting for real-time observers.

Purely observational: no scheduling logic depends on delivery, and a
failing subscriber is logged and skipped.
"""

import logging
from collections import defaultdict
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List
from uuid import uuid4

logger = logging.getLogger(__name__)

WILDCARD = "*"


class BookingEventName:
    CREATED = "booking:created"
    SUBMITTED = "booking:submitted"
    APPROVED = "booking:approved"
    REJECTED = "booking:rejected"
    CANCELLED = "booking:cancelled"
    EXPIRED = "booking:expired"
    SETTINGS_UPDATED = "settings:updated"


@dataclass
class DispatchedEvent:
    """An emitted event and its delivery outcome."""

    event_type: str
    payload: Dict[str, Any]
    delivered: int = 0
    failed: int = 0
    event_id: str = field(default_factory=lambda: str(uuid4()))
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": self.event_type,
            "event_id": self.event_id,
            "payload": self.payload,
            "timestamp": self.timestamp.isoformat(),
        }


Handler = Callable[[DispatchedEvent], None]


class EventBroadcaster:
    """In-process synchronous publish/subscribe."""

    def __init__(self):
        self._handlers: Dict[str, List[Handler]] = defaultdict(list)

    def subscribe(self, event_type: str, handler: Handler) -> None:
        """Subscribe to one event type, or to all with ``"*"``."""
        self._handlers[event_type].append(handler)
        logger.info(f"Registered handler for event type: {event_type}")

    def unsubscribe(self, event_type: str, handler: Handler) -> None:
        if handler in self._handlers.get(event_type, []):
            self._handlers[event_type].remove(handler)

    def emit(self, event_type: str, payload: Dict[str, Any]) -> DispatchedEvent:
        event = DispatchedEvent(event_type=event_type, payload=payload)
        for handler in [*self._handlers.get(event_type, []), *self._handlers.get(WILDCARD, [])]:
            try:
                handler(event)
                event.delivered += 1
            except Exception as e:
                event.failed += 1
                logger.error(f"Event handler failed for {event_type}: {e}", exc_info=True)
        logger.debug(f"Broadcast event: {event_type}", extra={"delivered": event.delivered})
        return event


event_broadcaster = EventBroadcaster()

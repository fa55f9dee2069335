"""Lifecycle event publishing for downstream consumers."""

from __future__ import annotations

from typing import Any, Protocol, runtime_checkable

from uvocollab.events.contracts import EventEnvelope, TransitionEvent
from uvocollab.events.servicebus import ServiceBusPublisher


@runtime_checkable
class EventPublisher(Protocol):
    """Protocol for publishing collaboration events to connected consumers."""

    async def publish(self, event_type: str, data: dict[str, Any]) -> None:
        """Broadcast an event to all connected consumers."""
        ...


__all__ = [
    "EventEnvelope",
    "EventPublisher",
    "ServiceBusPublisher",
    "TransitionEvent",
]

"""Typed contracts for collaboration events."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel

from uvocollab.models.collaboration import CollaborationStatus, CollaborationType


class EventEnvelope(BaseModel):
    """Canonical event envelope used on Service Bus."""

    event: str
    data: dict[str, Any]


class TransitionEvent(BaseModel):
    """Payload of a ``collaboration-transition`` event."""

    collaboration_id: str
    type: CollaborationType
    from_status: CollaborationStatus | None
    to_status: CollaborationStatus
    caller_id: str

"""Data models for Cosmos DB document types."""

from uvocollab.models.caller import Caller, Role
from uvocollab.models.collaboration import (
    Collaboration,
    CollaborationStatus,
    CollaborationType,
    Deliverable,
    EscrowStatus,
    NegotiationEntry,
    PaymentDirection,
    SchedulingDetails,
)
from uvocollab.models.notification import Notification, NotificationType

__all__ = [
    "Caller",
    "Collaboration",
    "CollaborationStatus",
    "CollaborationType",
    "Deliverable",
    "EscrowStatus",
    "NegotiationEntry",
    "Notification",
    "NotificationType",
    "PaymentDirection",
    "Role",
    "SchedulingDetails",
]

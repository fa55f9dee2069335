"""Collaboration lifecycle: transition table, guards and side effects."""

from uvocollab.lifecycle.commission import CommissionSplit, split_commission
from uvocollab.lifecycle.manager import CollaborationLifecycleManager
from uvocollab.lifecycle.requests import (
    CounterOffer,
    FeedbackRequest,
    GuestAppearanceRequest,
    PaymentResult,
    PitchRequest,
)
from uvocollab.lifecycle.transitions import (
    TERMINAL_STATUSES,
    allowed_targets,
    can_transition,
    milestone_label,
)

__all__ = [
    "TERMINAL_STATUSES",
    "CollaborationLifecycleManager",
    "CommissionSplit",
    "CounterOffer",
    "FeedbackRequest",
    "GuestAppearanceRequest",
    "PaymentResult",
    "PitchRequest",
    "allowed_targets",
    "can_transition",
    "milestone_label",
    "split_commission",
]

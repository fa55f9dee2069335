"""Collaboration transition table and derived milestone labels.

The tables here are the only place that decides whether a status change is
legal. ``declined`` is reachable from every non-terminal status and is not
listed per row.
"""

from __future__ import annotations

from uvocollab.errors import InvalidState
from uvocollab.models.collaboration import CollaborationStatus as S
from uvocollab.models.collaboration import CollaborationType

TERMINAL_STATUSES = frozenset({S.COMPLETED, S.DECLINED})

_PITCH_TRANSITIONS: dict[S, frozenset[S]] = {
    S.PENDING_REVIEW: frozenset({S.PENDING_PAYMENT}),
    S.PENDING_PAYMENT: frozenset({S.AWAITING_CONTRACT}),
    S.AWAITING_CONTRACT: frozenset({S.IN_PROGRESS}),
    S.IN_PROGRESS: frozenset({S.COMPLETED}),
}

_GUEST_TRANSITIONS: dict[S, frozenset[S]] = {
    S.PENDING_AGREEMENT: frozenset({S.PENDING_PAYMENT, S.SCHEDULING}),
    S.PENDING_PAYMENT: frozenset({S.AWAITING_CONTRACT}),
    S.AWAITING_CONTRACT: frozenset({S.IN_PROGRESS}),
    S.SCHEDULING: frozenset({S.SCHEDULED}),
    S.SCHEDULED: frozenset({S.POST_PRODUCTION}),
    S.IN_PROGRESS: frozenset({S.POST_PRODUCTION}),
    S.POST_PRODUCTION: frozenset({S.COMPLETED}),
}


def _table(collaboration_type: CollaborationType) -> dict[S, frozenset[S]]:
    if collaboration_type == CollaborationType.GUEST_APPEARANCE:
        return _GUEST_TRANSITIONS
    return _PITCH_TRANSITIONS


def initial_status(collaboration_type: CollaborationType) -> S:
    if collaboration_type == CollaborationType.GUEST_APPEARANCE:
        return S.PENDING_AGREEMENT
    return S.PENDING_REVIEW


def allowed_targets(collaboration_type: CollaborationType, current: S) -> frozenset[S]:
    """Return every status reachable in one step from ``current``."""
    if current in TERMINAL_STATUSES:
        return frozenset()
    return _table(collaboration_type).get(current, frozenset()) | {S.DECLINED}


def can_transition(collaboration_type: CollaborationType, current: S, target: S) -> bool:
    return target in allowed_targets(collaboration_type, current)


def ensure_transition(collaboration_type: CollaborationType, current: S, target: S) -> None:
    """Raise ``InvalidState`` unless ``current -> target`` is a legal edge."""
    if not can_transition(collaboration_type, current, target):
        raise InvalidState(
            f"Cannot move a {collaboration_type.value} collaboration"
            f" from {current.value} to {target.value}"
        )


def reachable_statuses(collaboration_type: CollaborationType) -> frozenset[S]:
    """Every status reachable from the initial status of ``collaboration_type``."""
    seen = {initial_status(collaboration_type)}
    frontier = list(seen)
    while frontier:
        current = frontier.pop()
        for target in allowed_targets(collaboration_type, current):
            if target not in seen:
                seen.add(target)
                frontier.append(target)
    return frozenset(seen)


_MILESTONES: dict[S, str] = {
    S.PENDING_REVIEW: "Pitch submitted",
    S.PENDING_AGREEMENT: "Negotiating terms",
    S.PENDING_PAYMENT: "Awaiting payment",
    S.AWAITING_CONTRACT: "Contract out for signature",
    S.SCHEDULING: "Scheduling recording",
    S.SCHEDULED: "Recording scheduled",
    S.IN_PROGRESS: "Work in progress",
    S.POST_PRODUCTION: "Post-production",
    S.COMPLETED: "Completed",
    S.DECLINED: "Declined",
}


def milestone_label(collaboration_type: CollaborationType, status: S) -> str:
    """Display label for a status; never persisted."""
    if collaboration_type == CollaborationType.PODCAST and status == S.AWAITING_CONTRACT:
        return "Guest release out for signature"
    if collaboration_type == CollaborationType.GUEST_APPEARANCE and status == S.IN_PROGRESS:
        return "Recording in progress"
    return _MILESTONES[status]

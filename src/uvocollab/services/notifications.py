"""Notification sink: renders lifecycle notifications and persists them for polling."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, NamedTuple, Protocol, runtime_checkable

from uvocollab.models.notification import Notification, NotificationType

if TYPE_CHECKING:
    from uvocollab.database.repositories.notifications import NotificationRepository

logger = logging.getLogger(__name__)


class NotificationContent(NamedTuple):
    title: str
    message: str
    action_text: str


_TEMPLATES: dict[NotificationType, NotificationContent] = {
    NotificationType.COLLABORATION_PROPOSAL: NotificationContent(
        "New Collaboration Proposal",
        "{name} sent you a collaboration proposal.",
        "Review Proposal",
    ),
    NotificationType.COLLABORATION_ACCEPTED: NotificationContent(
        "Proposal Accepted",
        "{name} accepted your collaboration proposal!",
        "View Collaboration",
    ),
    NotificationType.COLLABORATION_DECLINED: NotificationContent(
        "Proposal Declined",
        "{name} declined the collaboration.",
        "View Details",
    ),
    NotificationType.COLLABORATION_COUNTER_OFFER: NotificationContent(
        "New Counter-Offer Received",
        "{name} has sent a counter-offer of ${amount:.2f} for the guest appearance.",
        "Review Counter-Offer",
    ),
    NotificationType.PAYMENT_RECEIVED: NotificationContent(
        "Payment Received",
        "Payment of ${amount:.2f} has been received and held in escrow.",
        "View Collaboration",
    ),
    NotificationType.CONTRACT_SENT: NotificationContent(
        "Contract Sent for Signature",
        "Your collaboration agreement is ready. Check your email to sign it.",
        "View Collaboration",
    ),
    NotificationType.CONTRACT_SIGNED: NotificationContent(
        "Contract Signed",
        "All parties have signed the agreement. The collaboration is now in progress.",
        "View Collaboration",
    ),
    NotificationType.DELIVERABLE_UPLOADED: NotificationContent(
        "New Deliverable",
        "{name} uploaded a new deliverable: {file_name}.",
        "View Files",
    ),
    NotificationType.SCHEDULE_PROPOSED: NotificationContent(
        "Recording Times Proposed",
        "{name} proposed {slot_count} recording time(s). Pick one that works for you.",
        "Choose a Time",
    ),
    NotificationType.SCHEDULE_DECLINED: NotificationContent(
        "Proposed Times Declined",
        "{name} could not make any of the proposed times. Please propose new ones.",
        "Propose Times",
    ),
    NotificationType.RECORDING_SCHEDULED: NotificationContent(
        "Recording Scheduled",
        "Your recording is confirmed for {date}.",
        "View Schedule",
    ),
    NotificationType.RECORDING_LINK_ADDED: NotificationContent(
        "Recording Link Ready",
        "The recording link for your session is ready on {platform}.",
        "Open Link",
    ),
    NotificationType.RECORDING_COMPLETED: NotificationContent(
        "Recording Complete",
        "The recording has been marked complete and is now in post-production.",
        "View Collaboration",
    ),
    NotificationType.EPISODE_RELEASED: NotificationContent(
        "Episode Released",
        "The episode you appeared in has been released.",
        "Listen Now",
    ),
    NotificationType.PAYMENT_RELEASED: NotificationContent(
        "Payment Released",
        "Your payment of ${amount:.2f} has been released and will be transferred shortly.",
        "View Details",
    ),
    NotificationType.FEEDBACK_RECEIVED: NotificationContent(
        "New Feedback",
        "{name} rated your collaboration {rating} out of 5.",
        "View Feedback",
    ),
}


def render_notification(notification_type: NotificationType, **context: Any) -> NotificationContent:
    """Fill the template for ``notification_type``.

    Missing ``name`` falls back to a neutral phrase; missing ``amount`` to zero.
    """
    template = _TEMPLATES[notification_type]
    values: dict[str, Any] = {
        "name": "The other party",
        "amount": 0.0,
        "file_name": "a file",
        "slot_count": 1,
        "platform": "the recording platform",
        "rating": 5,
        "date": "the agreed date",
    }
    values.update({k: v for k, v in context.items() if v is not None})
    return template._replace(message=template.message.format(**values))


@runtime_checkable
class NotificationSink(Protocol):
    """Accepts notifications for later delivery; callers treat it as fire-and-forget."""

    async def notify(
        self,
        recipient_id: str,
        notification_type: NotificationType,
        title: str,
        message: str,
        action_url: str | None = None,
        *,
        action_text: str | None = None,
        metadata: dict[str, Any] | None = None,
    ) -> None: ...


class NotificationService:
    """Persist notifications to the notifications container."""

    def __init__(self, repo: NotificationRepository) -> None:
        self._repo = repo

    async def notify(
        self,
        recipient_id: str,
        notification_type: NotificationType,
        title: str,
        message: str,
        action_url: str | None = None,
        *,
        action_text: str | None = None,
        metadata: dict[str, Any] | None = None,
    ) -> None:
        notification = Notification(
            user_id=recipient_id,
            type=notification_type,
            title=title,
            message=message,
            action_url=action_url,
            action_text=action_text,
            metadata=metadata or {},
        )
        await self._repo.create(notification)
        logger.debug(
            "Notification stored — user=%s type=%s", recipient_id, notification_type
        )

    async def list_for_user(
        self, user_id: str, *, unread_only: bool = False, limit: int = 50
    ) -> list[Notification]:
        return await self._repo.list_for_user(
            user_id, unread_only=unread_only, limit=limit
        )

    async def mark_read(self, user_id: str, notification_ids: list[str]) -> int:
        return await self._repo.mark_read(user_id, notification_ids)

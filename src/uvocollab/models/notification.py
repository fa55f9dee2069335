"""Notification document model: persisted for later polling by the recipient."""

from __future__ import annotations

from enum import StrEnum
from typing import Any

from pydantic import Field

from uvocollab.models.base import DocumentBase


class NotificationType(StrEnum):
    COLLABORATION_PROPOSAL = "collaboration_proposal"
    COLLABORATION_ACCEPTED = "collaboration_accepted"
    COLLABORATION_DECLINED = "collaboration_declined"
    COLLABORATION_COUNTER_OFFER = "collaboration_counter_offer"
    PAYMENT_RECEIVED = "payment_received"
    CONTRACT_SENT = "contract_sent"
    CONTRACT_SIGNED = "contract_signed"
    DELIVERABLE_UPLOADED = "deliverable_uploaded"
    SCHEDULE_PROPOSED = "schedule_proposed"
    SCHEDULE_DECLINED = "schedule_declined"
    RECORDING_SCHEDULED = "recording_scheduled"
    RECORDING_LINK_ADDED = "recording_link_added"
    RECORDING_COMPLETED = "recording_completed"
    EPISODE_RELEASED = "episode_released"
    PAYMENT_RELEASED = "payment_released"
    FEEDBACK_RECEIVED = "feedback_received"


class Notification(DocumentBase):
    user_id: str
    type: NotificationType
    title: str
    message: str
    action_url: str | None = None
    action_text: str | None = None
    read: bool = False
    metadata: dict[str, Any] = Field(default_factory=dict)

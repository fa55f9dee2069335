"""Collaboration document model: the record whose status the lifecycle owns."""

from __future__ import annotations

import uuid
from datetime import datetime
from enum import StrEnum

from pydantic import BaseModel, Field

from uvocollab.models.base import DocumentBase, utcnow


class CollaborationType(StrEnum):
    LEGEND = "legend"
    PODCAST = "podcast"
    GUEST_APPEARANCE = "guest_appearance"


class CollaborationStatus(StrEnum):
    PENDING_REVIEW = "pending_review"
    PENDING_AGREEMENT = "pending_agreement"
    PENDING_PAYMENT = "pending_payment"
    AWAITING_CONTRACT = "awaiting_contract"
    SCHEDULING = "scheduling"
    SCHEDULED = "scheduled"
    IN_PROGRESS = "in_progress"
    POST_PRODUCTION = "post_production"
    COMPLETED = "completed"
    DECLINED = "declined"


class PaymentDirection(StrEnum):
    PODCAST_PAYS_GUEST = "podcast_pays_guest"
    GUEST_PAYS_PODCAST = "guest_pays_podcast"
    FREE = "free"


class EscrowStatus(StrEnum):
    HELD = "held"
    RELEASED = "released"


class Deliverable(BaseModel):
    """A file uploaded as project output while work is in progress."""

    file_name: str
    file_url: str
    file_size: int = 0
    uploaded_by: str = ""
    uploaded_at: datetime = Field(default_factory=utcnow)


class NegotiationEntry(BaseModel):
    """One proposal in the guest-appearance negotiation.

    ``previous_price`` and ``previous_topics`` hold the terms the entry counters.
    """

    proposed_by: str
    proposed_price: float
    proposed_topics: list[str] = Field(default_factory=list)
    proposed_dates: str | None = None
    message: str = ""
    previous_price: float | None = None
    previous_topics: list[str] = Field(default_factory=list)
    timestamp: datetime = Field(default_factory=utcnow)


class SchedulingDetails(BaseModel):
    date: datetime
    time: str
    timezone: str
    duration: str = "60 minutes"


class ProposalStatus(StrEnum):
    PROPOSED = "proposed"
    ACCEPTED = "accepted"
    DECLINED = "declined"
    SUPERSEDED = "superseded"


class ScheduleProposal(BaseModel):
    """Recording slots offered by one party; the other party picks one or declines.

    Only the newest proposal is open. Proposing again supersedes the rest.
    """

    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    proposed_by: str
    slots: list[SchedulingDetails]
    message: str = ""
    status: ProposalStatus = ProposalStatus.PROPOSED
    accepted_slot_index: int | None = None
    decline_reason: str = ""
    created_at: datetime = Field(default_factory=utcnow)
    responded_at: datetime | None = None


class Feedback(BaseModel):
    """A party's rating of the other party once the collaboration is completed."""

    from_user_id: str
    to_user_id: str
    rating: int
    review: str = ""
    would_collaborate_again: bool
    is_public: bool = True
    created_at: datetime = Field(default_factory=utcnow)


class Collaboration(DocumentBase):
    """A paid (or free) collaboration between a buyer and a payee."""

    type: CollaborationType = CollaborationType.LEGEND
    status: CollaborationStatus = CollaborationStatus.PENDING_REVIEW
    buyer_id: str
    legend_id: str | None = None
    podcast_id: str | None = None
    podcast_owner_id: str | None = None
    guest_id: str | None = None
    service_id: str
    price: float
    payment_direction: PaymentDirection | None = None
    initiated_by: str | None = None

    # Legend pitch
    pitch_message: str | None = None
    pitch_demo_url: str | None = None
    pitch_best_work_url: str | None = None

    # Podcast pitch
    topic_proposal: str | None = None
    guest_bio: str | None = None
    proposed_dates: str | None = None
    press_kit_url: str | None = None

    # Guest appearance
    proposed_topics: list[str] = Field(default_factory=list)
    agreed_topics: list[str] = Field(default_factory=list)
    negotiation_history: list[NegotiationEntry] = Field(default_factory=list)
    schedule_proposals: list[ScheduleProposal] = Field(default_factory=list)
    scheduling_details: SchedulingDetails | None = None
    recording_url: str | None = None
    recording_platform: str | None = None
    episode_url: str | None = None

    deliverables: list[Deliverable] = Field(default_factory=list)
    feedback: list[Feedback] = Field(default_factory=list)

    # Money
    platform_commission: float | None = None
    legend_amount: float | None = None
    escrow_status: EscrowStatus | None = None
    pending_tx_ref: str | None = None
    transaction_id: str | None = None
    tx_ref: str | None = None

    # Contract
    docusign_envelope_id: str | None = None
    contract_url: str | None = None

    accepted_at: datetime | None = None
    paid_at: datetime | None = None
    contract_sent_at: datetime | None = None
    all_parties_signed_at: datetime | None = None
    scheduled_at: datetime | None = None
    recorded_at: datetime | None = None
    completed_at: datetime | None = None
    declined_at: datetime | None = None

    @property
    def payee_id(self) -> str | None:
        """The party that receives the money (or provides the service)."""
        if self.type == CollaborationType.LEGEND:
            return self.legend_id
        if self.type == CollaborationType.PODCAST:
            return self.podcast_owner_id
        if self.buyer_id == self.guest_id:
            return self.podcast_owner_id
        return self.guest_id

    @property
    def party_ids(self) -> set[str]:
        candidates = (
            self.buyer_id,
            self.legend_id,
            self.podcast_owner_id,
            self.guest_id,
        )
        return {uid for uid in candidates if uid}

    def counterparty_of(self, uid: str) -> str | None:
        """Return the other party for notifications; ``None`` if ambiguous."""
        if self.type == CollaborationType.GUEST_APPEARANCE:
            if uid == self.guest_id:
                return self.podcast_owner_id
            if uid == self.podcast_owner_id:
                return self.guest_id
            return None
        if uid == self.buyer_id:
            return self.payee_id
        if uid == self.payee_id:
            return self.buyer_id
        return None

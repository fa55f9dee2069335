"""Request payloads accepted by the lifecycle manager and the HTTP API."""

from __future__ import annotations

from pydantic import BaseModel, Field

from uvocollab.models.collaboration import CollaborationType


class PitchRequest(BaseModel):
    """A buyer's pitch to a Legend or to a podcast."""

    type: CollaborationType = CollaborationType.LEGEND
    service_id: str
    price: float
    legend_id: str | None = None
    podcast_id: str | None = None
    podcast_owner_id: str | None = None
    pitch_message: str | None = None
    pitch_demo_url: str | None = None
    pitch_best_work_url: str | None = None
    topic_proposal: str | None = None
    guest_bio: str | None = None
    proposed_dates: str | None = None
    press_kit_url: str | None = None


class GuestAppearanceRequest(BaseModel):
    guest_id: str
    podcast_id: str
    podcast_owner_id: str
    service_id: str
    price: float
    proposed_topics: list[str] = Field(default_factory=list)
    agreed_topics: list[str] = Field(default_factory=list)
    proposed_dates: str | None = None
    message: str | None = None


class CounterOffer(BaseModel):
    price: float
    topics: list[str] = Field(default_factory=list)
    dates: str | None = None
    message: str = ""


class PaymentResult(BaseModel):
    """Outcome reported by the payment processor for a checkout."""

    transaction_id: str
    tx_ref: str
    amount: float
    successful: bool


class FeedbackRequest(BaseModel):
    """A party's rating of the other party after completion."""

    rating: int
    review: str = ""
    would_collaborate_again: bool
    is_public: bool = True

"""Every lifecycle operation refuses callers who are not party to the collaboration."""

from __future__ import annotations

from datetime import UTC, datetime

import pytest

from uvocollab.errors import Unauthorized
from uvocollab.lifecycle.requests import (
    CounterOffer,
    FeedbackRequest,
    GuestAppearanceRequest,
    PaymentResult,
    PitchRequest,
)
from uvocollab.models.collaboration import CollaborationType, Deliverable, SchedulingDetails

_SLOT = SchedulingDetails(date=datetime(2026, 11, 3, tzinfo=UTC), time="18:00", timezone="UTC")

_OPERATIONS = {
    "get": lambda m, c, cid: m.get(c, cid),
    "respond_to_pitch": lambda m, c, cid: m.respond_to_pitch(c, cid, accept=True),
    "counter_offer": lambda m, c, cid: m.counter_offer(
        c, cid, CounterOffer(price=10, topics=["Touring"], message="Counter")
    ),
    "respond_to_agreement": lambda m, c, cid: m.respond_to_agreement(c, cid, accept=True),
    "begin_checkout": lambda m, c, cid: m.begin_checkout(c, cid, "ref-1"),
    "capture_payment": lambda m, c, cid: m.capture_payment(
        c,
        cid,
        PaymentResult(transaction_id="txn-1", tx_ref="ref-1", amount=500, successful=True),
    ),
    "send_contract": lambda m, c, cid: m.send_contract(c, cid),
    "record_signatures": lambda m, c, cid: m.record_signatures(
        c, cid, envelope_id="env-1", signed_contract_url="https://esign.example.com/s.pdf"
    ),
    "add_deliverable": lambda m, c, cid: m.add_deliverable(
        c, cid, Deliverable(file_name="verse.wav", file_url="https://files.example.com/v.wav")
    ),
    "mark_complete": lambda m, c, cid: m.mark_complete(c, cid),
    "confirm_schedule": lambda m, c, cid: m.confirm_schedule(c, cid, _SLOT),
    "propose_schedule": lambda m, c, cid: m.propose_schedule(c, cid, [_SLOT]),
    "respond_to_schedule": lambda m, c, cid: m.respond_to_schedule(
        c, cid, "proposal-1", accept=True, slot_index=0
    ),
    "set_recording_link": lambda m, c, cid: m.set_recording_link(c, cid, "https://zoom.us/j/1"),
    "mark_recording_complete": lambda m, c, cid: m.mark_recording_complete(c, cid),
    "release_episode": lambda m, c, cid: m.release_episode(
        c, cid, "https://podcasts.example.com/ep/1"
    ),
    "submit_feedback": lambda m, c, cid: m.submit_feedback(
        c, cid, FeedbackRequest(rating=5, would_collaborate_again=True)
    ),
    "decline": lambda m, c, cid: m.decline(c, cid),
}


async def _legend_pitch(manager, artist) -> str:
    collaboration = await manager.submit_pitch(
        artist,
        PitchRequest(
            type=CollaborationType.LEGEND,
            service_id="svc-1",
            price=500,
            legend_id="legend-1",
            pitch_message="I have been producing soulful R&B for ten years and want a verse.",
            pitch_best_work_url="https://soundcloud.com/artist/best",
        ),
    )
    return collaboration.id


async def _guest_appearance(manager, guest) -> str:
    collaboration = await manager.initiate_guest_appearance(
        guest,
        GuestAppearanceRequest(
            guest_id="guest-1",
            podcast_id="pod-1",
            podcast_owner_id="owner-1",
            service_id="svc-guest",
            price=0,
            proposed_topics=["Touring on a budget"],
        ),
    )
    return collaboration.id


class TestNonPartyCallers:
    """Test that strangers cannot act on collaborations."""

    @pytest.mark.parametrize("operation", sorted(_OPERATIONS))
    async def test_stranger_rejected_on_pitch(
        self, operation, manager, artist, stranger, collaborations, notifications
    ) -> None:
        """Verify a stranger gets Unauthorized and the pitch is left untouched."""
        collaboration_id = await _legend_pitch(manager, artist)
        before = collaborations.documents[collaboration_id].copy()
        sent_before = len(notifications.sent)

        with pytest.raises(Unauthorized):
            await _OPERATIONS[operation](manager, stranger, collaboration_id)

        assert collaborations.writes == 0
        assert collaborations.documents[collaboration_id] == before
        assert len(notifications.sent) == sent_before

    @pytest.mark.parametrize("operation", sorted(_OPERATIONS))
    async def test_stranger_rejected_on_guest_appearance(
        self, operation, manager, guest, stranger, collaborations, notifications
    ) -> None:
        """Verify a stranger gets Unauthorized and the appearance is left untouched."""
        collaboration_id = await _guest_appearance(manager, guest)
        before = collaborations.documents[collaboration_id].copy()
        sent_before = len(notifications.sent)

        with pytest.raises(Unauthorized):
            await _OPERATIONS[operation](manager, stranger, collaboration_id)

        assert collaborations.writes == 0
        assert collaborations.documents[collaboration_id] == before
        assert len(notifications.sent) == sent_before

"""Tests for the collaboration routes."""

from __future__ import annotations

from datetime import UTC, datetime
from unittest.mock import AsyncMock, MagicMock

import pytest
from fastapi import HTTPException

from uvocollab.lifecycle.requests import FeedbackRequest, PaymentResult
from uvocollab.models.caller import Caller
from uvocollab.models.collaboration import (
    Collaboration,
    CollaborationStatus,
    CollaborationType,
    SchedulingDetails,
)
from uvocollab.routes.collaborations import (
    RecordingLinkBody,
    RespondBody,
    ScheduleProposalBody,
    ScheduleResponseBody,
    capture_payment,
    decline,
    get_collaboration,
    list_collaborations,
    propose_schedule,
    respond_to_pitch,
    respond_to_schedule,
    set_recording_link,
    submit_feedback,
)


def _collaboration(**overrides: object) -> Collaboration:
    values: dict[str, object] = {
        "id": "collab-1",
        "buyer_id": "artist-1",
        "legend_id": "legend-1",
        "service_id": "svc-1",
        "price": 500,
    }
    values.update(overrides)
    return Collaboration.model_validate(values)


def _guest_collaboration(**overrides: object) -> Collaboration:
    values: dict[str, object] = {
        "id": "collab-2",
        "type": CollaborationType.GUEST_APPEARANCE,
        "status": CollaborationStatus.SCHEDULING,
        "buyer_id": "guest-1",
        "guest_id": "guest-1",
        "podcast_id": "pod-1",
        "podcast_owner_id": "owner-1",
        "service_id": "svc-guest",
        "price": 0,
    }
    values.update(overrides)
    return Collaboration.model_validate(values)


def _request(uid: str = "artist-1") -> MagicMock:
    request = MagicMock()
    request.session = {"user": {"uid": uid}}
    request.app.state.lifecycle = AsyncMock()
    return request


class TestCollaborationRoutes:
    """Test the Collaboration Routes."""

    async def test_get_returns_serialized_document(self) -> None:
        """Verify get passes the session caller and returns JSON-ready data."""
        request = _request()
        request.app.state.lifecycle.get.return_value = _collaboration()

        body = await get_collaboration(request, "collab-1")

        assert body["id"] == "collab-1"
        assert body["status"] == "pending_review"
        assert body["milestone"] == "Pitch submitted"
        request.app.state.lifecycle.get.assert_awaited_once_with(
            Caller(uid="artist-1"), "collab-1"
        )

    async def test_respond_forwards_decision(self) -> None:
        """Verify the accept flag reaches the lifecycle manager."""
        request = _request("legend-1")
        request.app.state.lifecycle.respond_to_pitch.return_value = _collaboration(
            status=CollaborationStatus.PENDING_PAYMENT
        )

        body = await respond_to_pitch(request, "collab-1", RespondBody(accept=True))

        assert body["status"] == "pending_payment"
        kwargs = request.app.state.lifecycle.respond_to_pitch.await_args.kwargs
        assert kwargs["accept"] is True

    async def test_payment_forwards_result(self) -> None:
        """Verify the payment result is handed over unchanged."""
        request = _request()
        request.app.state.lifecycle.capture_payment.return_value = _collaboration(
            status=CollaborationStatus.AWAITING_CONTRACT
        )
        result = PaymentResult(transaction_id="t-1", tx_ref="r-1", amount=500, successful=True)

        await capture_payment(request, "collab-1", result)

        assert request.app.state.lifecycle.capture_payment.await_args[0][2] is result

    async def test_list_returns_callers_collaborations(self) -> None:
        """Verify listing serializes every collaboration."""
        request = _request()
        request.app.state.lifecycle.list_for_caller.return_value = [_collaboration()]

        body = await list_collaborations(request)

        assert [c["id"] for c in body] == ["collab-1"]

    async def test_requires_session(self) -> None:
        """Verify anonymous requests are rejected before reaching the manager."""
        request = _request()
        request.session = {}

        with pytest.raises(HTTPException) as exc_info:
            await decline(request, "collab-1")

        assert exc_info.value.status_code == 401
        request.app.state.lifecycle.decline.assert_not_awaited()

    async def test_propose_schedule_forwards_slots(self) -> None:
        """Verify proposed slots and the message reach the lifecycle manager."""
        request = _request("guest-1")
        request.app.state.lifecycle.propose_schedule.return_value = _guest_collaboration()
        slot = SchedulingDetails(
            date=datetime(2026, 11, 3, tzinfo=UTC), time="18:00", timezone="UTC"
        )

        body = await propose_schedule(
            request, "collab-2", ScheduleProposalBody(slots=[slot], message="Evenings work")
        )

        assert body["milestone"] == "Scheduling recording"
        args = request.app.state.lifecycle.propose_schedule.await_args
        assert args.args[2] == [slot]
        assert args.kwargs["message"] == "Evenings work"

    async def test_respond_to_schedule_forwards_choice(self) -> None:
        """Verify the chosen slot index is handed to the manager."""
        request = _request("owner-1")
        request.app.state.lifecycle.respond_to_schedule.return_value = _guest_collaboration(
            status=CollaborationStatus.SCHEDULED
        )

        await respond_to_schedule(
            request, "collab-2", "prop-1", ScheduleResponseBody(accept=True, slot_index=1)
        )

        args = request.app.state.lifecycle.respond_to_schedule.await_args
        assert args.args[1:] == ("collab-2", "prop-1")
        assert args.kwargs["accept"] is True
        assert args.kwargs["slot_index"] == 1

    async def test_set_recording_link_forwards_url(self) -> None:
        """Verify the recording URL and platform reach the manager."""
        request = _request("owner-1")
        request.app.state.lifecycle.set_recording_link.return_value = _guest_collaboration()

        await set_recording_link(
            request,
            "collab-2",
            RecordingLinkBody(recording_url="https://zoom.us/j/1", platform="zoom"),
        )

        args = request.app.state.lifecycle.set_recording_link.await_args
        assert args.args[2] == "https://zoom.us/j/1"
        assert args.kwargs["platform"] == "zoom"

    async def test_submit_feedback_forwards_rating(self) -> None:
        """Verify the feedback payload is handed over unchanged."""
        request = _request()
        request.app.state.lifecycle.submit_feedback.return_value = _collaboration(
            status=CollaborationStatus.COMPLETED
        )
        feedback = FeedbackRequest(rating=5, would_collaborate_again=True)

        body = await submit_feedback(request, "collab-1", feedback)

        assert body["milestone"] == "Completed"
        assert request.app.state.lifecycle.submit_feedback.await_args.args[2] is feedback

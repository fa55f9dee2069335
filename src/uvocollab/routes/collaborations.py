"""Collaboration routes — one endpoint per lifecycle operation."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from fastapi import APIRouter, Request, status
from pydantic import BaseModel

from uvocollab.auth.middleware import get_caller
from uvocollab.lifecycle.requests import (
    CounterOffer,
    FeedbackRequest,
    GuestAppearanceRequest,
    PaymentResult,
    PitchRequest,
)
from uvocollab.lifecycle.transitions import milestone_label
from uvocollab.models.collaboration import Deliverable, SchedulingDetails

if TYPE_CHECKING:
    from uvocollab.lifecycle.manager import CollaborationLifecycleManager
    from uvocollab.models.collaboration import Collaboration

router = APIRouter(prefix="/api/collaborations", tags=["collaborations"])


class RespondBody(BaseModel):
    accept: bool


class CheckoutBody(BaseModel):
    tx_ref: str


class ScheduleBody(BaseModel):
    details: SchedulingDetails
    recording_url: str | None = None


class ScheduleProposalBody(BaseModel):
    slots: list[SchedulingDetails]
    message: str = ""


class ScheduleResponseBody(BaseModel):
    accept: bool
    slot_index: int | None = None
    decline_reason: str = ""


class RecordingLinkBody(BaseModel):
    recording_url: str
    platform: str | None = None


class ReleaseBody(BaseModel):
    episode_url: str


def _lifecycle(request: Request) -> CollaborationLifecycleManager:
    return request.app.state.lifecycle


def _serialize(collaboration: Collaboration) -> dict[str, Any]:
    body = collaboration.model_dump(mode="json")
    body["milestone"] = milestone_label(collaboration.type, collaboration.status)
    return body


@router.get("/")
async def list_collaborations(request: Request) -> list[dict[str, Any]]:
    """List collaborations the caller is a party to."""
    caller = get_caller(request)
    collaborations = await _lifecycle(request).list_for_caller(caller)
    return [_serialize(c) for c in collaborations]


@router.post("/", status_code=status.HTTP_201_CREATED)
async def submit_pitch(request: Request, body: PitchRequest) -> dict[str, Any]:
    caller = get_caller(request)
    return _serialize(await _lifecycle(request).submit_pitch(caller, body))


@router.post("/guest", status_code=status.HTTP_201_CREATED)
async def initiate_guest_appearance(
    request: Request, body: GuestAppearanceRequest
) -> dict[str, Any]:
    caller = get_caller(request)
    return _serialize(await _lifecycle(request).initiate_guest_appearance(caller, body))


@router.get("/{collaboration_id}")
async def get_collaboration(request: Request, collaboration_id: str) -> dict[str, Any]:
    caller = get_caller(request)
    return _serialize(await _lifecycle(request).get(caller, collaboration_id))


@router.post("/{collaboration_id}/respond")
async def respond_to_pitch(
    request: Request, collaboration_id: str, body: RespondBody
) -> dict[str, Any]:
    """Accept or decline a Legend or podcast pitch."""
    caller = get_caller(request)
    collaboration = await _lifecycle(request).respond_to_pitch(
        caller, collaboration_id, accept=body.accept
    )
    return _serialize(collaboration)


@router.post("/{collaboration_id}/counter-offer")
async def counter_offer(
    request: Request, collaboration_id: str, body: CounterOffer
) -> dict[str, Any]:
    caller = get_caller(request)
    return _serialize(
        await _lifecycle(request).counter_offer(caller, collaboration_id, body)
    )


@router.post("/{collaboration_id}/agreement")
async def respond_to_agreement(
    request: Request, collaboration_id: str, body: RespondBody
) -> dict[str, Any]:
    """Accept or decline the current guest appearance terms."""
    caller = get_caller(request)
    collaboration = await _lifecycle(request).respond_to_agreement(
        caller, collaboration_id, accept=body.accept
    )
    return _serialize(collaboration)


@router.post("/{collaboration_id}/checkout")
async def begin_checkout(
    request: Request, collaboration_id: str, body: CheckoutBody
) -> dict[str, Any]:
    caller = get_caller(request)
    return _serialize(
        await _lifecycle(request).begin_checkout(caller, collaboration_id, body.tx_ref)
    )


@router.post("/{collaboration_id}/payment")
async def capture_payment(
    request: Request, collaboration_id: str, body: PaymentResult
) -> dict[str, Any]:
    """Record a verified payment and move the collaboration to contract signing."""
    caller = get_caller(request)
    return _serialize(
        await _lifecycle(request).capture_payment(caller, collaboration_id, body)
    )


@router.post("/{collaboration_id}/contract")
async def send_contract(request: Request, collaboration_id: str) -> dict[str, Any]:
    caller = get_caller(request)
    return _serialize(await _lifecycle(request).send_contract(caller, collaboration_id))


@router.post("/{collaboration_id}/deliverables")
async def add_deliverable(
    request: Request, collaboration_id: str, body: Deliverable
) -> dict[str, Any]:
    caller = get_caller(request)
    return _serialize(
        await _lifecycle(request).add_deliverable(caller, collaboration_id, body)
    )


@router.post("/{collaboration_id}/complete")
async def mark_complete(request: Request, collaboration_id: str) -> dict[str, Any]:
    caller = get_caller(request)
    return _serialize(await _lifecycle(request).mark_complete(caller, collaboration_id))


@router.post("/{collaboration_id}/schedule")
async def confirm_schedule(
    request: Request, collaboration_id: str, body: ScheduleBody
) -> dict[str, Any]:
    caller = get_caller(request)
    collaboration = await _lifecycle(request).confirm_schedule(
        caller, collaboration_id, body.details, recording_url=body.recording_url
    )
    return _serialize(collaboration)


@router.post("/{collaboration_id}/recording-complete")
async def mark_recording_complete(
    request: Request, collaboration_id: str
) -> dict[str, Any]:
    caller = get_caller(request)
    return _serialize(
        await _lifecycle(request).mark_recording_complete(caller, collaboration_id)
    )


@router.post("/{collaboration_id}/release")
async def release_episode(
    request: Request, collaboration_id: str, body: ReleaseBody
) -> dict[str, Any]:
    caller = get_caller(request)
    return _serialize(
        await _lifecycle(request).release_episode(caller, collaboration_id, body.episode_url)
    )


@router.post("/{collaboration_id}/decline")
async def decline(request: Request, collaboration_id: str) -> dict[str, Any]:
    caller = get_caller(request)
    return _serialize(await _lifecycle(request).decline(caller, collaboration_id))


@router.post("/{collaboration_id}/schedule/proposals")
async def propose_schedule(
    request: Request, collaboration_id: str, body: ScheduleProposalBody
) -> dict[str, Any]:
    """Offer recording slots to the other party."""
    caller = get_caller(request)
    collaboration = await _lifecycle(request).propose_schedule(
        caller, collaboration_id, body.slots, message=body.message
    )
    return _serialize(collaboration)


@router.post("/{collaboration_id}/schedule/proposals/{proposal_id}/respond")
async def respond_to_schedule(
    request: Request, collaboration_id: str, proposal_id: str, body: ScheduleResponseBody
) -> dict[str, Any]:
    caller = get_caller(request)
    collaboration = await _lifecycle(request).respond_to_schedule(
        caller,
        collaboration_id,
        proposal_id,
        accept=body.accept,
        slot_index=body.slot_index,
        decline_reason=body.decline_reason,
    )
    return _serialize(collaboration)


@router.put("/{collaboration_id}/recording-link")
async def set_recording_link(
    request: Request, collaboration_id: str, body: RecordingLinkBody
) -> dict[str, Any]:
    caller = get_caller(request)
    collaboration = await _lifecycle(request).set_recording_link(
        caller, collaboration_id, body.recording_url, platform=body.platform
    )
    return _serialize(collaboration)


@router.post("/{collaboration_id}/feedback")
async def submit_feedback(
    request: Request, collaboration_id: str, body: FeedbackRequest
) -> dict[str, Any]:
    caller = get_caller(request)
    return _serialize(
        await _lifecycle(request).submit_feedback(caller, collaboration_id, body)
    )

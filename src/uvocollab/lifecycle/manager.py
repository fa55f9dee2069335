"""Collaboration lifecycle manager.

Every status change goes through this class. Each operation loads the
collaboration, checks that the caller may act on it, checks the transition
against the table in ``transitions``, mutates the in-memory model, and writes
the single document with an etag guard. Side effects (contract dispatch,
notifications, events) run after the write; their failures are logged and
never undo the transition.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any
from urllib.parse import urlsplit

from uvocollab.errors import (
    Conflict,
    InvalidState,
    NotFound,
    PreconditionFailed,
    Unauthorized,
    UpstreamFailure,
)
from uvocollab.events.contracts import TransitionEvent
from uvocollab.lifecycle.commission import split_commission
from uvocollab.lifecycle.transitions import (
    TERMINAL_STATUSES,
    ensure_transition,
    initial_status,
)
from uvocollab.models.base import utcnow
from uvocollab.models.collaboration import (
    Collaboration,
    CollaborationStatus,
    CollaborationType,
    Deliverable,
    EscrowStatus,
    Feedback,
    NegotiationEntry,
    PaymentDirection,
    ProposalStatus,
    ScheduleProposal,
    SchedulingDetails,
)
from uvocollab.models.notification import NotificationType
from uvocollab.services.contracts import (
    ContractDispatchError,
    ContractKind,
    ContractRequest,
)
from uvocollab.services.notifications import render_notification

if TYPE_CHECKING:
    from collections.abc import Iterable

    from uvocollab.database.repositories.collaborations import CollaborationRepository
    from uvocollab.events import EventPublisher
    from uvocollab.lifecycle.requests import (
        CounterOffer,
        FeedbackRequest,
        GuestAppearanceRequest,
        PaymentResult,
        PitchRequest,
    )
    from uvocollab.models.caller import Caller
    from uvocollab.services.contracts import ContractDispatcher, ContractEnvelope
    from uvocollab.services.notifications import NotificationSink

logger = logging.getLogger(__name__)

MIN_PITCH_MESSAGE_LENGTH = 50
MIN_RATING = 1
MAX_RATING = 5

RECORDING_PLATFORMS = {
    "zoom.us": "zoom",
    "riverside.fm": "riverside",
    "streamyard.com": "streamyard",
    "zencastr.com": "zencastr",
}

# The recording link may change until the recording is done.
RECORDING_LINK_STATUSES = frozenset(
    {
        CollaborationStatus.SCHEDULING,
        CollaborationStatus.SCHEDULED,
        CollaborationStatus.AWAITING_CONTRACT,
        CollaborationStatus.IN_PROGRESS,
    }
)


def _require_party(caller: Caller, collaboration: Collaboration) -> None:
    if caller.is_override or caller.uid in collaboration.party_ids:
        return
    raise Unauthorized("You are not a party to this collaboration")


def _require_one_of(caller: Caller, allowed: Iterable[str | None], message: str) -> None:
    if caller.is_override or caller.uid in {uid for uid in allowed if uid}:
        return
    raise Unauthorized(message)


def _require_guest_appearance(collaboration: Collaboration) -> None:
    if collaboration.type != CollaborationType.GUEST_APPEARANCE:
        raise InvalidState("This operation only applies to guest appearances")


def _stamp(collaboration: Collaboration, field_name: str) -> None:
    """Set a lifecycle timestamp unless it has already been set."""
    if getattr(collaboration, field_name) is None:
        setattr(collaboration, field_name, utcnow())


def _clean_topics(topics: Iterable[str]) -> list[str]:
    return [topic.strip() for topic in topics if topic and topic.strip()]


def _response_notification(*, accept: bool) -> NotificationType:
    if accept:
        return NotificationType.COLLABORATION_ACCEPTED
    return NotificationType.COLLABORATION_DECLINED


def _is_http_url(url: str) -> bool:
    return url.startswith(("http://", "https://"))


def _describe_slot(slot: SchedulingDetails) -> str:
    return f"{slot.date:%B %d, %Y} at {slot.time} {slot.timezone}"


def _detect_platform(url: str) -> str:
    host = (urlsplit(url).hostname or "").lower()
    for domain, platform in RECORDING_PLATFORMS.items():
        if host == domain or host.endswith(f".{domain}"):
            return platform
    return "other"


def _supersede_open_proposals(collaboration: Collaboration) -> None:
    for proposal in collaboration.schedule_proposals:
        if proposal.status == ProposalStatus.PROPOSED:
            proposal.status = ProposalStatus.SUPERSEDED


class CollaborationLifecycleManager:
    """Owns the ``status`` field of collaboration documents."""

    def __init__(
        self,
        collaborations: CollaborationRepository,
        notifications: NotificationSink,
        contracts: ContractDispatcher,
        events: EventPublisher | None = None,
        *,
        base_url: str = "",
    ) -> None:
        self._collaborations = collaborations
        self._notifications = notifications
        self._contracts = contracts
        self._events = events
        self._base_url = base_url.rstrip("/")

    # Reads

    async def get(self, caller: Caller, collaboration_id: str) -> Collaboration:
        collaboration, _ = await self._load(caller, collaboration_id)
        return collaboration

    async def list_for_caller(self, caller: Caller) -> list[Collaboration]:
        return await self._collaborations.list_for_user(caller.uid)

    # Creation

    async def submit_pitch(self, caller: Caller, request: PitchRequest) -> Collaboration:
        """Create a Legend or podcast pitch in ``pending_review``."""
        if request.type == CollaborationType.GUEST_APPEARANCE:
            raise PreconditionFailed("Use the guest appearance flow for guest collaborations")

        if request.type == CollaborationType.LEGEND:
            payee_id = request.legend_id
            if not payee_id:
                raise PreconditionFailed("legend_id is required")
            message = (request.pitch_message or "").strip()
            if len(message) < MIN_PITCH_MESSAGE_LENGTH:
                raise PreconditionFailed(
                    f"Pitch message must be at least {MIN_PITCH_MESSAGE_LENGTH} characters"
                )
            if not (request.pitch_best_work_url or "").strip():
                raise PreconditionFailed("A link to your best work is required")
        else:
            # TODO: resolve the owner from the podcast record instead of trusting the request.
            payee_id = request.podcast_owner_id
            if not request.podcast_id or not payee_id:
                raise PreconditionFailed("podcast_id and podcast_owner_id are required")
            if not (request.topic_proposal or "").strip():
                raise PreconditionFailed("A topic proposal is required")

        if payee_id == caller.uid:
            raise PreconditionFailed("You cannot request a collaboration with yourself")
        if request.price <= 0:
            raise PreconditionFailed("Invalid price")

        collaboration = Collaboration(
            type=request.type,
            status=initial_status(request.type),
            buyer_id=caller.uid,
            legend_id=request.legend_id if request.type == CollaborationType.LEGEND else None,
            podcast_id=request.podcast_id,
            podcast_owner_id=request.podcast_owner_id,
            service_id=request.service_id,
            price=request.price,
            initiated_by=caller.uid,
            pitch_message=(request.pitch_message or "").strip() or None,
            pitch_demo_url=request.pitch_demo_url,
            pitch_best_work_url=(request.pitch_best_work_url or "").strip() or None,
            topic_proposal=request.topic_proposal,
            guest_bio=request.guest_bio,
            proposed_dates=request.proposed_dates,
            press_kit_url=request.press_kit_url,
        )
        await self._collaborations.create(collaboration)
        logger.info(
            "Pitch submitted — id=%s type=%s buyer=%s payee=%s",
            collaboration.id,
            collaboration.type,
            caller.uid,
            payee_id,
        )
        await self._after_transition(caller, collaboration, None)
        await self._notify(
            [payee_id], NotificationType.COLLABORATION_PROPOSAL, collaboration, name=caller.name
        )
        return collaboration

    async def initiate_guest_appearance(
        self, caller: Caller, request: GuestAppearanceRequest
    ) -> Collaboration:
        """Create a guest appearance in ``pending_agreement``.

        The buyer follows from price and initiator: free appearances are
        "bought" by the initiator, otherwise whoever initiates pays.
        """
        # TODO: resolve podcast_owner_id from the podcast record instead of trusting the request.
        if caller.uid not in (request.guest_id, request.podcast_owner_id):
            raise Unauthorized("You are not authorized to initiate this collaboration")
        if request.guest_id == request.podcast_owner_id:
            raise PreconditionFailed("You cannot request a collaboration with yourself")
        if request.price < 0:
            raise PreconditionFailed("Invalid price: price cannot be negative")
        topics = _clean_topics(request.agreed_topics or request.proposed_topics)
        if not topics:
            raise PreconditionFailed("At least one topic must be provided")

        existing = await self._collaborations.list_active_guest_appearances(
            request.guest_id, request.podcast_id
        )
        if existing:
            raise PreconditionFailed(
                "An active collaboration already exists between this guest and podcast"
            )

        if request.price == 0:
            direction = PaymentDirection.FREE
        elif caller.uid == request.guest_id:
            direction = PaymentDirection.GUEST_PAYS_PODCAST
        else:
            direction = PaymentDirection.PODCAST_PAYS_GUEST

        collaboration = Collaboration(
            type=CollaborationType.GUEST_APPEARANCE,
            status=initial_status(CollaborationType.GUEST_APPEARANCE),
            buyer_id=caller.uid,
            guest_id=request.guest_id,
            podcast_id=request.podcast_id,
            podcast_owner_id=request.podcast_owner_id,
            service_id=request.service_id,
            price=request.price,
            payment_direction=direction,
            initiated_by=caller.uid,
            proposed_topics=_clean_topics(request.proposed_topics) or topics,
            agreed_topics=_clean_topics(request.agreed_topics),
            proposed_dates=request.proposed_dates,
        )
        message = (request.message or "").strip()
        if message:
            collaboration.negotiation_history.append(
                NegotiationEntry(
                    proposed_by=caller.uid,
                    proposed_price=request.price,
                    proposed_topics=topics,
                    proposed_dates=request.proposed_dates,
                    message=message,
                )
            )

        await self._collaborations.create(collaboration)
        logger.info(
            "Guest appearance initiated — id=%s guest=%s podcast=%s direction=%s",
            collaboration.id,
            request.guest_id,
            request.podcast_id,
            direction,
        )
        await self._after_transition(caller, collaboration, None)
        await self._notify(
            [collaboration.counterparty_of(caller.uid)],
            NotificationType.COLLABORATION_PROPOSAL,
            collaboration,
            action_path="agreement",
            name=caller.name,
        )
        return collaboration

    # Pitch review

    async def respond_to_pitch(
        self, caller: Caller, collaboration_id: str, *, accept: bool
    ) -> Collaboration:
        """The payee accepts (``pending_payment``) or declines a pitch."""
        collaboration, etag = await self._load(caller, collaboration_id)
        if collaboration.type == CollaborationType.GUEST_APPEARANCE:
            raise InvalidState("Guest appearances are answered through the agreement flow")
        _require_one_of(
            caller,
            [collaboration.payee_id],
            "You do not have permission to respond to this pitch",
        )
        if collaboration.status != CollaborationStatus.PENDING_REVIEW:
            raise InvalidState(f"Cannot respond to pitch with status: {collaboration.status}")

        previous = collaboration.status
        if accept:
            self._advance(collaboration, CollaborationStatus.PENDING_PAYMENT)
            _stamp(collaboration, "accepted_at")
        else:
            self._advance(collaboration, CollaborationStatus.DECLINED)
            _stamp(collaboration, "declined_at")
        await self._commit(caller, collaboration, etag, previous)

        await self._notify(
            [collaboration.buyer_id],
            _response_notification(accept=accept),
            collaboration,
            name=caller.name,
        )
        return collaboration

    # Guest negotiation

    async def counter_offer(
        self, caller: Caller, collaboration_id: str, offer: CounterOffer
    ) -> Collaboration:
        """Append a counter-offer; status stays ``pending_agreement``."""
        collaboration, etag = await self._load(caller, collaboration_id)
        _require_guest_appearance(collaboration)
        self._require_negotiator(caller, collaboration)
        if collaboration.status != CollaborationStatus.PENDING_AGREEMENT:
            raise InvalidState("Counter-offers are only allowed while terms are pending agreement")

        message = offer.message.strip()
        topics = _clean_topics(offer.topics)
        if not message:
            raise PreconditionFailed("Please provide a message explaining your counter-offer")
        if not topics:
            raise PreconditionFailed("Please specify at least one topic")
        if offer.price < 0:
            raise PreconditionFailed("Invalid price: price cannot be negative")

        collaboration.negotiation_history.append(
            NegotiationEntry(
                proposed_by=caller.uid,
                proposed_price=offer.price,
                proposed_topics=topics,
                proposed_dates=offer.dates,
                message=message,
                previous_price=collaboration.price,
                previous_topics=list(collaboration.proposed_topics or collaboration.agreed_topics),
            )
        )
        collaboration.price = offer.price
        collaboration.proposed_topics = topics
        collaboration.proposed_dates = offer.dates
        await self._commit(caller, collaboration, etag, collaboration.status)
        logger.info(
            "Counter-offer recorded — id=%s by=%s price=%.2f entries=%d",
            collaboration.id,
            caller.uid,
            offer.price,
            len(collaboration.negotiation_history),
        )

        await self._notify(
            self._others(collaboration, caller),
            NotificationType.COLLABORATION_COUNTER_OFFER,
            collaboration,
            action_path="agreement",
            name=caller.name,
            amount=offer.price,
        )
        return collaboration

    async def respond_to_agreement(
        self, caller: Caller, collaboration_id: str, *, accept: bool
    ) -> Collaboration:
        """Accept the latest terms or decline, only while ``pending_agreement``.

        Accepting a free appearance goes straight to ``scheduling``; a paid one
        waits for payment.
        """
        collaboration, etag = await self._load(caller, collaboration_id)
        _require_guest_appearance(collaboration)
        self._require_negotiator(caller, collaboration)
        if collaboration.status != CollaborationStatus.PENDING_AGREEMENT:
            raise InvalidState(
                f"Cannot respond to agreement with status: {collaboration.status}"
            )

        previous = collaboration.status
        if accept:
            target = (
                CollaborationStatus.SCHEDULING
                if collaboration.price == 0
                else CollaborationStatus.PENDING_PAYMENT
            )
            self._advance(collaboration, target)
            collaboration.agreed_topics = list(
                collaboration.proposed_topics or collaboration.agreed_topics
            )
            self._settle_payment_direction(collaboration)
            _stamp(collaboration, "accepted_at")
        else:
            self._advance(collaboration, CollaborationStatus.DECLINED)
            _stamp(collaboration, "declined_at")
        await self._commit(caller, collaboration, etag, previous)

        await self._notify(
            self._others(collaboration, caller),
            _response_notification(accept=accept),
            collaboration,
            name=caller.name,
        )
        return collaboration

    # Payment and contract

    async def begin_checkout(
        self, caller: Caller, collaboration_id: str, tx_ref: str
    ) -> Collaboration:
        """Record the processor reference of a checkout the buyer has started."""
        collaboration, etag = await self._load(caller, collaboration_id)
        if caller.uid != collaboration.buyer_id:
            raise Unauthorized("Only the buyer can pay for this collaboration")
        if collaboration.status != CollaborationStatus.PENDING_PAYMENT:
            raise InvalidState("Collaboration is not awaiting payment")
        if not tx_ref:
            raise PreconditionFailed("A transaction reference is required")

        collaboration.pending_tx_ref = tx_ref
        await self._commit(caller, collaboration, etag, collaboration.status)
        return collaboration

    async def capture_payment(
        self, caller: Caller, collaboration_id: str, result: PaymentResult
    ) -> Collaboration:
        """Move a funded collaboration to ``awaiting_contract`` and send the contract."""
        collaboration, etag = await self._load(caller, collaboration_id)
        _require_one_of(caller, [collaboration.buyer_id], "Unauthorized - not the buyer")
        ensure_transition(
            collaboration.type, collaboration.status, CollaborationStatus.AWAITING_CONTRACT
        )
        if not result.successful:
            raise UpstreamFailure("Payment verification failed with the payment processor")
        if collaboration.pending_tx_ref and result.tx_ref != collaboration.pending_tx_ref:
            raise PreconditionFailed("Transaction reference mismatch")
        if result.amount != collaboration.price:
            raise PreconditionFailed("Payment verification failed - amount mismatch")

        previous = collaboration.status
        self._advance(collaboration, CollaborationStatus.AWAITING_CONTRACT)
        if collaboration.platform_commission is None and collaboration.legend_amount is None:
            split = split_commission(collaboration.price)
            collaboration.platform_commission = split.platform_commission
            collaboration.legend_amount = split.legend_amount
        collaboration.transaction_id = result.transaction_id
        collaboration.tx_ref = result.tx_ref
        collaboration.escrow_status = EscrowStatus.HELD
        _stamp(collaboration, "paid_at")
        etag = await self._commit(caller, collaboration, etag, previous)

        await self._notify(
            [collaboration.payee_id],
            NotificationType.PAYMENT_RECEIVED,
            collaboration,
            amount=collaboration.price,
        )
        return await self._dispatch_contract_best_effort(caller, collaboration, etag)

    async def send_contract(self, caller: Caller, collaboration_id: str) -> Collaboration:
        """Dispatch the contract explicitly, e.g. after a failed automatic dispatch."""
        collaboration, etag = await self._load(caller, collaboration_id)
        if collaboration.status != CollaborationStatus.AWAITING_CONTRACT:
            raise InvalidState(
                f"Invalid status. Expected 'awaiting_contract', got '{collaboration.status}'"
            )
        if collaboration.docusign_envelope_id:
            raise PreconditionFailed("Contract has already been sent for signature")

        try:
            envelope = await self._contracts.dispatch(self._contract_request(collaboration))
        except ContractDispatchError as exc:
            logger.warning("Contract dispatch failed — id=%s error=%s", collaboration.id, exc)
            raise UpstreamFailure(f"Failed to send contract: {exc}") from exc

        updated = collaboration.model_copy(deep=True)
        self._apply_envelope(updated, envelope)
        try:
            await self._commit(caller, updated, etag, updated.status)
        except Conflict:
            await self._void_envelope(envelope.envelope_id, collaboration.id)
            raise
        await self._notify(updated.party_ids, NotificationType.CONTRACT_SENT, updated)
        return updated

    async def record_signatures(
        self,
        caller: Caller,
        collaboration_id: str,
        *,
        envelope_id: str,
        signed_contract_url: str,
    ) -> Collaboration:
        """Both parties signed: ``awaiting_contract`` -> ``in_progress``."""
        if not caller.is_override:
            raise Unauthorized("Only the signing service can confirm signatures")
        collaboration, etag = await self._load(caller, collaboration_id)
        ensure_transition(
            collaboration.type, collaboration.status, CollaborationStatus.IN_PROGRESS
        )
        if collaboration.docusign_envelope_id != envelope_id:
            raise PreconditionFailed("Envelope ID mismatch")

        previous = collaboration.status
        self._advance(collaboration, CollaborationStatus.IN_PROGRESS)
        collaboration.contract_url = signed_contract_url
        _stamp(collaboration, "all_parties_signed_at")
        await self._commit(caller, collaboration, etag, previous)

        await self._notify(
            collaboration.party_ids, NotificationType.CONTRACT_SIGNED, collaboration
        )
        return collaboration

    # Work

    async def add_deliverable(
        self, caller: Caller, collaboration_id: str, deliverable: Deliverable
    ) -> Collaboration:
        collaboration, etag = await self._load(caller, collaboration_id)
        if collaboration.status != CollaborationStatus.IN_PROGRESS:
            raise InvalidState("Deliverables can only be uploaded while work is in progress")

        collaboration.deliverables.append(
            deliverable.model_copy(update={"uploaded_by": caller.uid, "uploaded_at": utcnow()})
        )
        await self._commit(caller, collaboration, etag, collaboration.status)
        logger.info(
            "Deliverable added — id=%s by=%s count=%d",
            collaboration.id,
            caller.uid,
            len(collaboration.deliverables),
        )

        await self._notify(
            self._others(collaboration, caller),
            NotificationType.DELIVERABLE_UPLOADED,
            collaboration,
            name=caller.name,
            file_name=deliverable.file_name,
        )
        return collaboration

    async def mark_complete(self, caller: Caller, collaboration_id: str) -> Collaboration:
        """Buyer confirms delivery; escrow is released to the payee.

        Requires at least one deliverable so funds are never released before
        anything was delivered.
        """
        collaboration, etag = await self._load(caller, collaboration_id)
        if collaboration.type == CollaborationType.GUEST_APPEARANCE:
            raise InvalidState("Guest appearances complete when the episode is released")
        ensure_transition(collaboration.type, collaboration.status, CollaborationStatus.COMPLETED)
        if not collaboration.deliverables:
            raise PreconditionFailed(
                "Cannot mark as complete: No deliverables have been uploaded yet"
            )
        if caller.uid != collaboration.buyer_id:
            raise Unauthorized("Only the buyer can mark as complete")

        previous = collaboration.status
        self._advance(collaboration, CollaborationStatus.COMPLETED)
        collaboration.escrow_status = EscrowStatus.RELEASED
        _stamp(collaboration, "completed_at")
        await self._commit(caller, collaboration, etag, previous)

        await self._notify(
            [collaboration.payee_id],
            NotificationType.PAYMENT_RELEASED,
            collaboration,
            amount=collaboration.legend_amount,
        )
        return collaboration

    # Guest recording

    async def confirm_schedule(
        self,
        caller: Caller,
        collaboration_id: str,
        details: SchedulingDetails,
        *,
        recording_url: str | None = None,
    ) -> Collaboration:
        collaboration, etag = await self._load(caller, collaboration_id)
        _require_guest_appearance(collaboration)
        self._require_negotiator(caller, collaboration)
        ensure_transition(collaboration.type, collaboration.status, CollaborationStatus.SCHEDULED)

        previous = collaboration.status
        self._advance(collaboration, CollaborationStatus.SCHEDULED)
        collaboration.scheduling_details = details
        if recording_url:
            collaboration.recording_url = recording_url
            collaboration.recording_platform = _detect_platform(recording_url)
        _supersede_open_proposals(collaboration)
        _stamp(collaboration, "scheduled_at")
        await self._commit(caller, collaboration, etag, previous)

        await self._notify(
            self._others(collaboration, caller),
            NotificationType.RECORDING_SCHEDULED,
            collaboration,
            date=_describe_slot(details),
        )
        return collaboration

    async def propose_schedule(
        self,
        caller: Caller,
        collaboration_id: str,
        slots: list[SchedulingDetails],
        *,
        message: str = "",
    ) -> Collaboration:
        """Offer recording slots to the other party; earlier open proposals are superseded."""
        collaboration, etag = await self._load(caller, collaboration_id)
        _require_guest_appearance(collaboration)
        self._require_negotiator(caller, collaboration)
        if collaboration.status != CollaborationStatus.SCHEDULING:
            raise InvalidState("Recording times can only be proposed while scheduling")
        if not slots:
            raise PreconditionFailed("Propose at least one time slot")
        if any(not slot.time.strip() or not slot.timezone.strip() for slot in slots):
            raise PreconditionFailed("Each slot must have date, time, and timezone")

        _supersede_open_proposals(collaboration)
        proposal = ScheduleProposal(
            proposed_by=caller.uid, slots=slots, message=message.strip()
        )
        collaboration.schedule_proposals.append(proposal)
        await self._commit(caller, collaboration, etag, collaboration.status)
        logger.info(
            "Schedule proposed — id=%s by=%s proposal=%s slots=%d",
            collaboration.id,
            caller.uid,
            proposal.id,
            len(slots),
        )

        await self._notify(
            self._others(collaboration, caller),
            NotificationType.SCHEDULE_PROPOSED,
            collaboration,
            action_path="schedule",
            name=caller.name,
            slot_count=len(slots),
        )
        return collaboration

    async def respond_to_schedule(
        self,
        caller: Caller,
        collaboration_id: str,
        proposal_id: str,
        *,
        accept: bool,
        slot_index: int | None = None,
        decline_reason: str = "",
    ) -> Collaboration:
        """Accept one slot of the open proposal (``scheduling`` -> ``scheduled``) or decline it.

        Declining leaves the collaboration in ``scheduling`` for a new proposal.
        """
        collaboration, etag = await self._load(caller, collaboration_id)
        _require_guest_appearance(collaboration)
        self._require_negotiator(caller, collaboration)
        if collaboration.status != CollaborationStatus.SCHEDULING:
            raise InvalidState(
                f"Cannot respond to a schedule proposal with status: {collaboration.status}"
            )
        proposal = next(
            (p for p in collaboration.schedule_proposals if p.id == proposal_id), None
        )
        if proposal is None:
            raise NotFound("Proposal not found")
        if proposal.status != ProposalStatus.PROPOSED:
            raise InvalidState("This proposal has already been responded to")
        if proposal.proposed_by == caller.uid:
            raise PreconditionFailed("Cannot respond to your own proposal")
        if accept and (slot_index is None or not 0 <= slot_index < len(proposal.slots)):
            raise PreconditionFailed("Invalid slot index")

        previous = collaboration.status
        proposal.responded_at = utcnow()
        if accept:
            slot = proposal.slots[slot_index]
            self._advance(collaboration, CollaborationStatus.SCHEDULED)
            proposal.status = ProposalStatus.ACCEPTED
            proposal.accepted_slot_index = slot_index
            _supersede_open_proposals(collaboration)
            collaboration.scheduling_details = slot
            _stamp(collaboration, "scheduled_at")
        else:
            proposal.status = ProposalStatus.DECLINED
            proposal.decline_reason = decline_reason.strip()
        await self._commit(caller, collaboration, etag, previous)

        if accept:
            await self._notify(
                collaboration.party_ids,
                NotificationType.RECORDING_SCHEDULED,
                collaboration,
                date=_describe_slot(slot),
            )
        else:
            await self._notify(
                [proposal.proposed_by],
                NotificationType.SCHEDULE_DECLINED,
                collaboration,
                action_path="schedule",
                name=caller.name,
            )
        return collaboration

    async def set_recording_link(
        self,
        caller: Caller,
        collaboration_id: str,
        recording_url: str,
        *,
        platform: str | None = None,
    ) -> Collaboration:
        """Set or replace the recording session link; the platform is detected if omitted."""
        collaboration, etag = await self._load(caller, collaboration_id)
        _require_guest_appearance(collaboration)
        _require_one_of(
            caller,
            [collaboration.podcast_owner_id],
            "Only the podcast owner can set the recording link",
        )
        if collaboration.status not in RECORDING_LINK_STATUSES:
            raise InvalidState(
                f"Cannot set the recording link with status: {collaboration.status}"
            )
        if not _is_http_url(recording_url):
            raise PreconditionFailed("Invalid URL format")

        collaboration.recording_url = recording_url
        collaboration.recording_platform = platform or _detect_platform(recording_url)
        await self._commit(caller, collaboration, etag, collaboration.status)
        logger.info(
            "Recording link set — id=%s platform=%s",
            collaboration.id,
            collaboration.recording_platform,
        )

        if collaboration.status == CollaborationStatus.SCHEDULED:
            await self._notify(
                [collaboration.guest_id],
                NotificationType.RECORDING_LINK_ADDED,
                collaboration,
                platform=collaboration.recording_platform,
            )
        return collaboration

    async def mark_recording_complete(
        self, caller: Caller, collaboration_id: str
    ) -> Collaboration:
        collaboration, etag = await self._load(caller, collaboration_id)
        _require_guest_appearance(collaboration)
        _require_one_of(
            caller,
            [collaboration.podcast_owner_id],
            "Only the podcast owner can mark recording as complete",
        )
        ensure_transition(
            collaboration.type, collaboration.status, CollaborationStatus.POST_PRODUCTION
        )

        previous = collaboration.status
        self._advance(collaboration, CollaborationStatus.POST_PRODUCTION)
        _stamp(collaboration, "recorded_at")
        await self._commit(caller, collaboration, etag, previous)

        await self._notify(
            [collaboration.guest_id], NotificationType.RECORDING_COMPLETED, collaboration
        )
        return collaboration

    async def release_episode(
        self, caller: Caller, collaboration_id: str, episode_url: str
    ) -> Collaboration:
        """Publishing the episode completes a guest appearance and releases escrow."""
        collaboration, etag = await self._load(caller, collaboration_id)
        _require_guest_appearance(collaboration)
        _require_one_of(
            caller,
            [collaboration.podcast_owner_id],
            "Only the podcast owner can mark episode as released",
        )
        ensure_transition(collaboration.type, collaboration.status, CollaborationStatus.COMPLETED)
        if not _is_http_url(episode_url):
            raise PreconditionFailed("Invalid episode URL format")

        previous = collaboration.status
        self._advance(collaboration, CollaborationStatus.COMPLETED)
        collaboration.episode_url = episode_url
        released = collaboration.escrow_status == EscrowStatus.HELD
        if released:
            collaboration.escrow_status = EscrowStatus.RELEASED
        _stamp(collaboration, "completed_at")
        await self._commit(caller, collaboration, etag, previous)

        await self._notify(
            [collaboration.guest_id], NotificationType.EPISODE_RELEASED, collaboration
        )
        if released:
            await self._notify(
                [collaboration.payee_id],
                NotificationType.PAYMENT_RELEASED,
                collaboration,
                amount=collaboration.legend_amount,
            )
        return collaboration

    # Feedback

    async def submit_feedback(
        self, caller: Caller, collaboration_id: str, request: FeedbackRequest
    ) -> Collaboration:
        """Record one rating per party for the other party once completed."""
        collaboration, etag = await self._load(caller, collaboration_id)
        if caller.uid not in collaboration.party_ids:
            raise Unauthorized("Only the parties to a collaboration can leave feedback")
        if collaboration.status != CollaborationStatus.COMPLETED:
            raise InvalidState("Feedback can only be submitted for completed collaborations")
        if not MIN_RATING <= request.rating <= MAX_RATING:
            raise PreconditionFailed(f"Rating must be between {MIN_RATING} and {MAX_RATING}")
        if any(entry.from_user_id == caller.uid for entry in collaboration.feedback):
            raise PreconditionFailed("Feedback already submitted for this collaboration")
        recipient_id = collaboration.counterparty_of(caller.uid)
        if recipient_id is None:
            raise PreconditionFailed("Could not determine who the feedback is for")

        collaboration.feedback.append(
            Feedback(
                from_user_id=caller.uid,
                to_user_id=recipient_id,
                rating=request.rating,
                review=request.review.strip(),
                would_collaborate_again=request.would_collaborate_again,
                is_public=request.is_public,
            )
        )
        await self._commit(caller, collaboration, etag, collaboration.status)
        logger.info(
            "Feedback recorded — id=%s from=%s to=%s rating=%d",
            collaboration.id,
            caller.uid,
            recipient_id,
            request.rating,
        )

        await self._notify(
            [recipient_id],
            NotificationType.FEEDBACK_RECEIVED,
            collaboration,
            name=caller.name,
            rating=request.rating,
        )
        return collaboration

    # Cancellation

    async def decline(self, caller: Caller, collaboration_id: str) -> Collaboration:
        """Move any non-terminal collaboration to ``declined``."""
        collaboration, etag = await self._load(caller, collaboration_id)
        if collaboration.status in TERMINAL_STATUSES:
            raise InvalidState(
                f"Collaboration is already {collaboration.status} and cannot be declined"
            )

        previous = collaboration.status
        self._advance(collaboration, CollaborationStatus.DECLINED)
        _stamp(collaboration, "declined_at")
        await self._commit(caller, collaboration, etag, previous)

        await self._notify(
            self._others(collaboration, caller),
            NotificationType.COLLABORATION_DECLINED,
            collaboration,
            name=caller.name,
        )
        return collaboration

    # Internals

    async def _load(self, caller: Caller, collaboration_id: str) -> tuple[Collaboration, str]:
        loaded = await self._collaborations.get_with_etag(collaboration_id)
        if loaded is None:
            raise NotFound("Collaboration not found")
        collaboration, etag = loaded
        _require_party(caller, collaboration)
        return collaboration, etag

    @staticmethod
    def _advance(collaboration: Collaboration, target: CollaborationStatus) -> None:
        ensure_transition(collaboration.type, collaboration.status, target)
        collaboration.status = target

    @staticmethod
    def _require_negotiator(caller: Caller, collaboration: Collaboration) -> None:
        _require_one_of(
            caller,
            [collaboration.guest_id, collaboration.podcast_owner_id],
            "Only the guest or the podcast owner can respond to this collaboration",
        )

    @staticmethod
    def _settle_payment_direction(collaboration: Collaboration) -> None:
        """Re-derive the payment direction once the negotiated price is final."""
        if collaboration.price == 0:
            collaboration.payment_direction = PaymentDirection.FREE
        elif collaboration.buyer_id == collaboration.guest_id:
            collaboration.payment_direction = PaymentDirection.GUEST_PAYS_PODCAST
        else:
            collaboration.payment_direction = PaymentDirection.PODCAST_PAYS_GUEST

    @staticmethod
    def _others(collaboration: Collaboration, caller: Caller) -> set[str]:
        return collaboration.party_ids - {caller.uid}

    @staticmethod
    def _contract_request(collaboration: Collaboration) -> ContractRequest:
        kind = (
            ContractKind.COLLABORATION_AGREEMENT
            if collaboration.type == CollaborationType.LEGEND
            else ContractKind.GUEST_RELEASE
        )
        return ContractRequest(
            collaboration_id=collaboration.id,
            kind=kind,
            buyer_id=collaboration.buyer_id,
            payee_id=collaboration.payee_id or "",
            service_id=collaboration.service_id,
            price=collaboration.price,
        )

    @staticmethod
    def _apply_envelope(collaboration: Collaboration, envelope: ContractEnvelope) -> None:
        collaboration.docusign_envelope_id = envelope.envelope_id
        collaboration.contract_url = envelope.document_url
        _stamp(collaboration, "contract_sent_at")

    async def _commit(
        self,
        caller: Caller,
        collaboration: Collaboration,
        etag: str,
        previous: CollaborationStatus,
    ) -> str:
        new_etag = await self._collaborations.replace_if_unchanged(collaboration, etag)
        if collaboration.status != previous:
            logger.info(
                "Collaboration transitioned — id=%s from=%s to=%s caller=%s",
                collaboration.id,
                previous,
                collaboration.status,
                caller.uid,
            )
            await self._after_transition(caller, collaboration, previous)
        return new_etag

    async def _after_transition(
        self,
        caller: Caller,
        collaboration: Collaboration,
        previous: CollaborationStatus | None,
    ) -> None:
        if self._events is None:
            return
        event = TransitionEvent(
            collaboration_id=collaboration.id,
            type=collaboration.type,
            from_status=previous,
            to_status=collaboration.status,
            caller_id=caller.uid,
        )
        try:
            await self._events.publish("collaboration-transition", event.model_dump(mode="json"))
        except Exception:  # noqa: BLE001
            logger.warning(
                "Failed to publish transition event — id=%s", collaboration.id, exc_info=True
            )

    async def _dispatch_contract_best_effort(
        self, caller: Caller, collaboration: Collaboration, etag: str
    ) -> Collaboration:
        """Send the contract on ``awaiting_contract`` entry without failing the payment.

        Returns the collaboration as stored. An envelope that could not be
        recorded on an ``awaiting_contract`` document is voided so it cannot be
        signed.
        """
        try:
            envelope = await self._contracts.dispatch(self._contract_request(collaboration))
        except Exception:  # noqa: BLE001
            logger.warning(
                "Contract dispatch after payment failed — id=%s; send it again manually",
                collaboration.id,
                exc_info=True,
            )
            return collaboration

        try:
            stored = await self._store_envelope(caller, collaboration, etag, envelope)
        except Exception:  # noqa: BLE001
            logger.warning(
                "Failed to record contract envelope — id=%s envelope=%s",
                collaboration.id,
                envelope.envelope_id,
                exc_info=True,
            )
            stored = None
        if stored is None or stored.docusign_envelope_id != envelope.envelope_id:
            await self._void_envelope(envelope.envelope_id, collaboration.id)
            return stored or collaboration

        await self._notify(stored.party_ids, NotificationType.CONTRACT_SENT, stored)
        return stored

    async def _store_envelope(
        self,
        caller: Caller,
        collaboration: Collaboration,
        etag: str,
        envelope: ContractEnvelope,
    ) -> Collaboration:
        """Write the envelope, reloading once if the document changed during dispatch."""
        updated = collaboration.model_copy(deep=True)
        self._apply_envelope(updated, envelope)
        try:
            await self._commit(caller, updated, etag, updated.status)
        except Conflict:
            logger.info(
                "Collaboration changed during contract dispatch — id=%s; reloading",
                collaboration.id,
            )
        else:
            return updated

        current, etag = await self._load(caller, collaboration.id)
        if (
            current.status != CollaborationStatus.AWAITING_CONTRACT
            or current.docusign_envelope_id
        ):
            logger.warning(
                "Contract envelope orphaned — id=%s envelope=%s status=%s",
                current.id,
                envelope.envelope_id,
                current.status,
            )
            return current
        self._apply_envelope(current, envelope)
        await self._commit(caller, current, etag, current.status)
        return current

    async def _void_envelope(self, envelope_id: str, collaboration_id: str) -> None:
        try:
            await self._contracts.void(
                envelope_id, "Collaboration is no longer awaiting this contract"
            )
        except Exception:  # noqa: BLE001
            logger.error(
                "Failed to void orphaned contract envelope — id=%s envelope=%s",
                collaboration_id,
                envelope_id,
                exc_info=True,
            )

    async def _notify(
        self,
        recipients: Iterable[str | None],
        notification_type: NotificationType,
        collaboration: Collaboration,
        *,
        action_path: str = "",
        **context: Any,
    ) -> None:
        """Create a notification per recipient; failures are logged, never raised."""
        content = render_notification(notification_type, **context)
        action_url = f"{self._base_url}/collaboration/{collaboration.id}"
        if action_path:
            action_url = f"{action_url}/{action_path}"
        metadata: dict[str, Any] = {"collaboration_id": collaboration.id}
        if context.get("amount") is not None:
            metadata["amount"] = context["amount"]

        for recipient_id in sorted({uid for uid in recipients if uid}):
            try:
                await self._notifications.notify(
                    recipient_id,
                    notification_type,
                    content.title,
                    content.message,
                    action_url,
                    action_text=content.action_text,
                    metadata=metadata,
                )
            except Exception:  # noqa: BLE001
                logger.warning(
                    "Failed to create notification — user=%s type=%s collaboration=%s",
                    recipient_id,
                    notification_type,
                    collaboration.id,
                    exc_info=True,
                )

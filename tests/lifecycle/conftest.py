"""In-memory collaborators for lifecycle manager scenarios."""

from __future__ import annotations

import asyncio
import itertools
from collections.abc import Awaitable, Callable
from typing import Any

import pytest

from uvocollab.errors import Conflict
from uvocollab.lifecycle.manager import CollaborationLifecycleManager
from uvocollab.models.caller import Caller, Role
from uvocollab.models.collaboration import Collaboration
from uvocollab.services.contracts import (
    ContractDispatchError,
    ContractEnvelope,
    ContractRequest,
)


class InMemoryCollaborations:
    """Stores serialized documents with an etag that changes on every write."""

    def __init__(self) -> None:
        self.documents: dict[str, dict[str, Any]] = {}
        self.writes = 0
        self.yield_on_read = False
        self._etags = itertools.count(1)

    def _store(self, collaboration: Collaboration) -> str:
        etag = f"etag-{next(self._etags)}"
        body = collaboration.model_dump(mode="json")
        body["_etag"] = etag
        self.documents[collaboration.id] = body
        return etag

    def load(self, collaboration_id: str) -> Collaboration:
        return Collaboration.model_validate(self.documents[collaboration_id])

    def touch(self, collaboration_id: str) -> None:
        """Rewrite the document unchanged so its etag moves on."""
        self._store(self.load(collaboration_id))

    async def create(self, collaboration: Collaboration) -> Collaboration:
        self._store(collaboration)
        return collaboration

    async def get_with_etag(self, collaboration_id: str) -> tuple[Collaboration, str] | None:
        body = self.documents.get(collaboration_id)
        if body is None:
            return None
        if self.yield_on_read:
            # Let a concurrent request read the same version before either writes.
            await asyncio.sleep(0)
        return Collaboration.model_validate(body), body["_etag"]

    async def replace_if_unchanged(self, collaboration: Collaboration, etag: str) -> str:
        current = self.documents[collaboration.id]
        if current["_etag"] != etag:
            raise Conflict("Collaboration was modified by another request. Refresh and try again.")
        self.writes += 1
        return self._store(collaboration)

    async def list_for_user(self, uid: str) -> list[Collaboration]:
        return [c for c in (self.load(cid) for cid in self.documents) if uid in c.party_ids]

    async def list_active_guest_appearances(
        self, guest_id: str, podcast_id: str
    ) -> list[Collaboration]:
        return [
            c
            for c in (self.load(cid) for cid in self.documents)
            if c.guest_id == guest_id
            and c.podcast_id == podcast_id
            and c.status not in ("completed", "declined")
        ]


class RecordingNotifications:
    def __init__(self) -> None:
        self.sent: list[dict[str, Any]] = []
        self.fail = False

    async def notify(
        self,
        recipient_id: str,
        notification_type: Any,
        title: str,
        message: str,
        action_url: str | None = None,
        *,
        action_text: str | None = None,
        metadata: dict[str, Any] | None = None,
    ) -> None:
        if self.fail:
            raise RuntimeError("notification store unavailable")
        self.sent.append(
            {
                "recipient_id": recipient_id,
                "type": notification_type,
                "title": title,
                "message": message,
                "action_url": action_url,
                "metadata": metadata or {},
            }
        )

    def types_for(self, recipient_id: str) -> list[str]:
        return [n["type"] for n in self.sent if n["recipient_id"] == recipient_id]


class FakeContracts:
    def __init__(self) -> None:
        self.requests: list[ContractRequest] = []
        self.voided: list[str] = []
        self.fail = False
        self.during_dispatch: Callable[[], Awaitable[object]] | None = None

    async def dispatch(self, request: ContractRequest) -> ContractEnvelope:
        if self.fail:
            raise ContractDispatchError("gateway unavailable")
        self.requests.append(request)
        if self.during_dispatch is not None:
            await self.during_dispatch()
        return ContractEnvelope(
            envelope_id=f"env-{len(self.requests)}",
            document_url=f"https://esign.example.com/env-{len(self.requests)}",
        )

    async def void(self, envelope_id: str, reason: str) -> None:
        self.voided.append(envelope_id)


class RecordingEvents:
    def __init__(self) -> None:
        self.published: list[tuple[str, dict[str, Any]]] = []

    async def publish(self, event_type: str, data: dict[str, Any]) -> None:
        self.published.append((event_type, data))


@pytest.fixture
def collaborations() -> InMemoryCollaborations:
    return InMemoryCollaborations()


@pytest.fixture
def notifications() -> RecordingNotifications:
    return RecordingNotifications()


@pytest.fixture
def contracts() -> FakeContracts:
    return FakeContracts()


@pytest.fixture
def events() -> RecordingEvents:
    return RecordingEvents()


@pytest.fixture
def manager(
    collaborations: InMemoryCollaborations,
    notifications: RecordingNotifications,
    contracts: FakeContracts,
    events: RecordingEvents,
) -> CollaborationLifecycleManager:
    return CollaborationLifecycleManager(
        collaborations,  # type: ignore[arg-type]
        notifications,
        contracts,
        events,
        base_url="https://uvocollab.test",
    )


@pytest.fixture
def artist() -> Caller:
    return Caller(uid="artist-1")


@pytest.fixture
def legend() -> Caller:
    return Caller(uid="legend-1", role=Role.LEGEND)


@pytest.fixture
def guest() -> Caller:
    return Caller(uid="guest-1")


@pytest.fixture
def owner() -> Caller:
    return Caller(uid="owner-1")


@pytest.fixture
def stranger() -> Caller:
    return Caller(uid="stranger-1")


@pytest.fixture
def admin() -> Caller:
    return Caller(uid="admin-1", role=Role.ADMIN)

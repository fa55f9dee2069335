"""Repository for the collaborations container (partitioned by /id)."""

from __future__ import annotations

from typing import Any, cast

from azure.core import MatchConditions
from azure.cosmos.exceptions import CosmosHttpResponseError, CosmosResourceNotFoundError

from uvocollab.database.repositories.base import BaseRepository
from uvocollab.errors import Conflict
from uvocollab.models.base import utcnow
from uvocollab.models.collaboration import (
    Collaboration,
    CollaborationStatus,
    CollaborationType,
)

_HTTP_PRECONDITION_FAILED = 412

ACTIVE_GUEST_STATUSES = (
    CollaborationStatus.PENDING_AGREEMENT,
    CollaborationStatus.PENDING_PAYMENT,
    CollaborationStatus.AWAITING_CONTRACT,
    CollaborationStatus.SCHEDULING,
    CollaborationStatus.SCHEDULED,
    CollaborationStatus.IN_PROGRESS,
    CollaborationStatus.POST_PRODUCTION,
)


class CollaborationRepository(BaseRepository[Collaboration]):
    """Provide data access for the collaborations container."""

    container_name = "collaborations"
    model_class = Collaboration

    async def get_with_etag(self, collaboration_id: str) -> tuple[Collaboration, str] | None:
        """Read a collaboration along with the etag needed for a guarded write."""
        try:
            data = cast(
                "dict[str, Any]",
                await self._container.read_item(
                    item=collaboration_id, partition_key=collaboration_id
                ),
            )
        except CosmosResourceNotFoundError:
            return None
        if data.get("deleted_at") is not None:
            return None
        return self.model_class.model_validate(data), cast("str", data.get("_etag", ""))

    async def replace_if_unchanged(self, collaboration: Collaboration, etag: str) -> str:
        """Write the collaboration only if nobody else wrote it since ``etag``.

        Returns the new etag. Raises ``Conflict`` when the document was modified
        concurrently.
        """
        collaboration.updated_at = utcnow()
        try:
            saved = await self._container.replace_item(
                item=collaboration.id,
                body=self._to_body(collaboration),
                etag=etag,
                match_condition=MatchConditions.IfNotModified,
            )
        except CosmosHttpResponseError as exc:
            if exc.status_code == _HTTP_PRECONDITION_FAILED:
                raise Conflict(
                    "Collaboration was modified by another request. Refresh and try again."
                ) from exc
            raise
        return cast("str", (saved or {}).get("_etag", ""))

    async def list_for_user(self, uid: str) -> list[Collaboration]:
        """Fetch every collaboration where the user is a party, newest first."""
        return await self.query(
            "SELECT * FROM c WHERE (c.buyer_id = @uid OR c.legend_id = @uid"
            " OR c.guest_id = @uid OR c.podcast_owner_id = @uid)"
            " AND NOT IS_DEFINED(c.deleted_at)"
            " ORDER BY c.created_at DESC",
            [{"name": "@uid", "value": uid}],
        )

    async def list_active_guest_appearances(
        self, guest_id: str, podcast_id: str
    ) -> list[Collaboration]:
        """Fetch non-terminal guest appearances between a guest and a podcast."""
        return await self.query(
            "SELECT * FROM c WHERE c.type = @type"
            " AND c.guest_id = @guest_id"
            " AND c.podcast_id = @podcast_id"
            " AND ARRAY_CONTAINS(@statuses, c.status)"
            " AND NOT IS_DEFINED(c.deleted_at)",
            [
                {"name": "@type", "value": CollaborationType.GUEST_APPEARANCE.value},
                {"name": "@guest_id", "value": guest_id},
                {"name": "@podcast_id", "value": podcast_id},
                {"name": "@statuses", "value": [s.value for s in ACTIVE_GUEST_STATUSES]},
            ],
        )

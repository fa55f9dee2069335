"""Repository for the notifications container (partitioned by /user_id)."""

from __future__ import annotations

from uvocollab.database.repositories.base import BaseRepository
from uvocollab.models.notification import Notification


class NotificationRepository(BaseRepository[Notification]):
    container_name = "notifications"
    model_class = Notification

    async def list_for_user(
        self, user_id: str, *, unread_only: bool = False, limit: int = 50
    ) -> list[Notification]:
        """Fetch a user's most recent notifications."""
        unread_clause = " AND c.read = false" if unread_only else ""
        return await self.query(
            "SELECT TOP @limit * FROM c WHERE c.user_id = @user_id"
            f"{unread_clause}"
            " AND NOT IS_DEFINED(c.deleted_at)"
            " ORDER BY c.created_at DESC",
            [
                {"name": "@user_id", "value": user_id},
                {"name": "@limit", "value": limit},
            ],
        )

    async def mark_read(self, user_id: str, notification_ids: list[str]) -> int:
        """Mark the given notifications read; returns how many changed."""
        changed = 0
        for notification_id in notification_ids:
            notification = await self.get(notification_id, user_id)
            if notification is None or notification.user_id != user_id or notification.read:
                continue
            notification.read = True
            await self.update(notification, user_id)
            changed += 1
        return changed

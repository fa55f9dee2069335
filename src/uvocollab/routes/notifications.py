"""Notification routes — in-app notifications are polled, not pushed."""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Query, Request
from pydantic import BaseModel, Field

from uvocollab.auth.middleware import get_caller

router = APIRouter(prefix="/api/notifications", tags=["notifications"])


class MarkReadBody(BaseModel):
    ids: list[str] = Field(default_factory=list)


@router.get("/")
async def list_notifications(
    request: Request,
    unread_only: bool = False,
    limit: int = Query(50, ge=1, le=100),
) -> list[dict[str, Any]]:
    caller = get_caller(request)
    notifications = await request.app.state.notifications.list_for_user(
        caller.uid, unread_only=unread_only, limit=limit
    )
    return [n.model_dump(mode="json") for n in notifications]


@router.post("/read")
async def mark_read(request: Request, body: MarkReadBody) -> dict[str, int]:
    """Mark the caller's notifications as read; ids of other users are skipped."""
    caller = get_caller(request)
    updated = await request.app.state.notifications.mark_read(caller.uid, body.ids)
    return {"updated": updated}

"""Authentication helpers — the identity provider stores claims in the session."""

from __future__ import annotations

import hmac
import logging
from typing import Any

from fastapi import HTTPException, Request, status
from pydantic import ValidationError

from uvocollab.models.caller import Caller, Role

logger = logging.getLogger(__name__)

WEBHOOK_SECRET_HEADER = "X-Webhook-Secret"


def get_user(request: Request) -> dict[str, Any] | None:
    """Extract the authenticated user claims from the session, if present."""
    return request.session.get("user") if hasattr(request, "session") else None


def require_authenticated_user(request: Request) -> dict[str, Any]:
    """Return the authenticated user claims or raise HTTP 401."""
    user = get_user(request)
    if not user or not user.get("uid"):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Authentication required",
        )
    return user


def get_caller(request: Request) -> Caller:
    """Convert the session claims into a ``Caller``.

    ``system`` is never accepted from a session; only the webhook acts as it.
    """
    user = require_authenticated_user(request)
    try:
        caller = Caller.model_validate(
            {
                "uid": user["uid"],
                "role": user.get("role") or Role.NEW_ARTIST,
                "name": user.get("name") or None,
            }
        )
    except ValidationError as exc:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid session claims",
        ) from exc
    if caller.role == Role.SYSTEM:
        logger.warning("Session claimed system role — uid=%s", caller.uid)
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Role not allowed for interactive sessions",
        )
    return caller


def require_webhook_secret(request: Request) -> Caller:
    """Authenticate the e-signature webhook by shared secret; returns the system caller."""
    expected = request.app.state.settings.contracts.webhook_secret
    provided = request.headers.get(WEBHOOK_SECRET_HEADER, "")
    if not expected or not hmac.compare_digest(provided, expected):
        logger.warning("Webhook rejected — invalid or missing shared secret")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid webhook secret",
        )
    return Caller.system()

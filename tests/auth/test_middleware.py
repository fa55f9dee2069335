"""Tests for the authentication helpers."""

from __future__ import annotations

from unittest.mock import MagicMock

import pytest
from fastapi import HTTPException

from uvocollab.auth.middleware import (
    WEBHOOK_SECRET_HEADER,
    get_caller,
    get_user,
    require_webhook_secret,
)
from uvocollab.models.caller import Role


def _request(session: dict | None = None) -> MagicMock:
    request = MagicMock()
    request.session = session if session is not None else {}
    return request


def test_get_user_returns_none_without_session():
    request = MagicMock()
    del request.session  # Simulate no session attribute
    assert get_user(request) is None


def test_get_user_returns_user_from_session():
    request = _request({"user": {"uid": "artist-1"}})
    assert get_user(request) == {"uid": "artist-1"}


def test_get_caller_defaults_role():
    caller = get_caller(_request({"user": {"uid": "artist-1"}}))
    assert caller.uid == "artist-1"
    assert caller.role == Role.NEW_ARTIST


def test_get_caller_reads_display_name():
    caller = get_caller(_request({"user": {"uid": "artist-1", "name": "Nia Waves"}}))
    assert caller.name == "Nia Waves"


def test_get_caller_reads_admin_role():
    caller = get_caller(_request({"user": {"uid": "admin-1", "role": "admin"}}))
    assert caller.is_override is True


def test_get_caller_raises_401_without_user():
    with pytest.raises(HTTPException) as exc_info:
        get_caller(_request())
    assert exc_info.value.status_code == 401


def test_get_caller_rejects_unknown_role():
    with pytest.raises(HTTPException) as exc_info:
        get_caller(_request({"user": {"uid": "u-1", "role": "superuser"}}))
    assert exc_info.value.status_code == 401


def test_get_caller_refuses_system_role_from_session():
    with pytest.raises(HTTPException) as exc_info:
        get_caller(_request({"user": {"uid": "u-1", "role": "system"}}))
    assert exc_info.value.status_code == 403


def test_webhook_secret_accepts_matching_header():
    request = MagicMock()
    request.app.state.settings.contracts.webhook_secret = "s3cret"
    request.headers = {WEBHOOK_SECRET_HEADER: "s3cret"}
    assert require_webhook_secret(request).role == Role.SYSTEM


def test_webhook_secret_rejects_mismatch():
    request = MagicMock()
    request.app.state.settings.contracts.webhook_secret = "s3cret"
    request.headers = {WEBHOOK_SECRET_HEADER: "wrong"}
    with pytest.raises(HTTPException) as exc_info:
        require_webhook_secret(request)
    assert exc_info.value.status_code == 401


def test_webhook_secret_rejects_when_unconfigured():
    request = MagicMock()
    request.app.state.settings.contracts.webhook_secret = ""
    request.headers = {}
    with pytest.raises(HTTPException):
        require_webhook_secret(request)


"""Tests for app factory wiring, lifespan and error mapping."""

from __future__ import annotations

from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from fastapi.testclient import TestClient

from uvocollab.app import create_app
from uvocollab.errors import InvalidState
from uvocollab.lifecycle.manager import CollaborationLifecycleManager


def _settings(*, servicebus_connection_string: str) -> SimpleNamespace:
    """Create minimal settings for app factory and lifespan wiring tests."""
    return SimpleNamespace(
        app=SimpleNamespace(
            secret_key="test-secret",
            is_development=False,
            log_level="INFO",
            slow_request_ms=800,
            env="test",
            base_url="https://uvocollab.test",
        ),
        cosmos=SimpleNamespace(endpoint="https://cosmos.example.com", key="k", database="db"),
        servicebus=SimpleNamespace(
            connection_string=servicebus_connection_string,
            topic_name="collaboration-events",
        ),
        contracts=SimpleNamespace(
            api_url="", api_key="", webhook_secret="s3cret", timeout=5.0
        ),
    )


def _cosmos() -> MagicMock:
    cosmos = MagicMock()
    cosmos.initialize = AsyncMock()
    cosmos.close = AsyncMock()
    cosmos.database = MagicMock()
    return cosmos


def _contracts() -> MagicMock:
    contracts = MagicMock()
    contracts.close = AsyncMock()
    return contracts


@pytest.mark.unit
def test_lifespan_wires_publisher_when_servicebus_configured() -> None:
    """Lifespan wires the publisher and lifecycle manager when Service Bus is configured."""
    settings = _settings(
        servicebus_connection_string="Endpoint=sb://test.servicebus.windows.net/;SharedAccessKeyName=key;SharedAccessKey=abc",
    )
    cosmos = _cosmos()
    contracts = _contracts()
    publisher = MagicMock()
    publisher.close = AsyncMock()

    with (
        patch("uvocollab.app.load_settings", return_value=settings),
        patch("uvocollab.app.configure_logging"),
        patch("uvocollab.app.CosmosClient", return_value=cosmos),
        patch("uvocollab.app.ESignClient", return_value=contracts),
        patch("uvocollab.app.ServiceBusPublisher", return_value=publisher) as publisher_cls,
    ):
        app = create_app()
        with TestClient(app):
            assert app.state.event_publisher is publisher
            assert isinstance(app.state.lifecycle, CollaborationLifecycleManager)

    publisher_cls.assert_called_once_with(settings.servicebus)
    cosmos.initialize.assert_awaited_once()
    publisher.close.assert_awaited_once()
    contracts.close.assert_awaited_once()
    cosmos.close.assert_awaited_once()


@pytest.mark.unit
def test_lifespan_skips_publisher_when_servicebus_not_configured() -> None:
    """Lifespan leaves the publisher unset when Service Bus is disabled."""
    settings = _settings(servicebus_connection_string="")

    with (
        patch("uvocollab.app.load_settings", return_value=settings),
        patch("uvocollab.app.configure_logging"),
        patch("uvocollab.app.CosmosClient", return_value=_cosmos()),
        patch("uvocollab.app.ESignClient", return_value=_contracts()),
        patch("uvocollab.app.ServiceBusPublisher") as publisher_cls,
    ):
        app = create_app()
        with TestClient(app):
            assert app.state.event_publisher is None

    publisher_cls.assert_not_called()


@pytest.mark.unit
def test_collaboration_errors_map_to_json() -> None:
    """Lifecycle rejections are returned as {"error": message} with their status code."""
    settings = _settings(servicebus_connection_string="")

    with (
        patch("uvocollab.app.load_settings", return_value=settings),
        patch("uvocollab.app.configure_logging"),
        patch("uvocollab.app.CosmosClient", return_value=_cosmos()),
        patch("uvocollab.app.ESignClient", return_value=_contracts()),
    ):
        app = create_app()
        with TestClient(app) as client:
            app.state.lifecycle = AsyncMock()
            app.state.lifecycle.decline.side_effect = InvalidState("Already completed")
            with patch("uvocollab.routes.collaborations.get_caller"):
                response = client.post("/api/collaborations/collab-1/decline")

    assert response.status_code == 409
    assert response.json() == {"error": "Already completed"}


@pytest.mark.unit
def test_anonymous_request_is_401() -> None:
    """Routes reject requests without a session user."""
    settings = _settings(servicebus_connection_string="")

    with (
        patch("uvocollab.app.load_settings", return_value=settings),
        patch("uvocollab.app.configure_logging"),
        patch("uvocollab.app.CosmosClient", return_value=_cosmos()),
        patch("uvocollab.app.ESignClient", return_value=_contracts()),
    ):
        app = create_app()
        with TestClient(app) as client:
            response = client.get("/api/collaborations/collab-1")

    assert response.status_code == 401

"""Tests for the local dependency pre-flight checks."""

from __future__ import annotations

from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock, patch

import httpx

from uvocollab.health import check_emulators


def _settings(cosmos_endpoint: str, esign_url: str = "") -> SimpleNamespace:
    return SimpleNamespace(
        cosmos=SimpleNamespace(endpoint=cosmos_endpoint),
        contracts=SimpleNamespace(api_url=esign_url),
    )


def _client(get: AsyncMock) -> MagicMock:
    client = MagicMock()
    client.__aenter__ = AsyncMock(return_value=client)
    client.__aexit__ = AsyncMock(return_value=False)
    client.get = get
    return client


async def test_missing_cosmos_endpoint_fails() -> None:
    """A missing endpoint fails the pre-flight check."""
    with patch("uvocollab.health.httpx.AsyncClient", return_value=_client(AsyncMock())):
        assert await check_emulators(_settings("")) is False


async def test_unreachable_emulator_fails() -> None:
    """A local emulator that refuses connections fails the check."""
    get = AsyncMock(side_effect=httpx.ConnectError("refused"))
    with patch("uvocollab.health.httpx.AsyncClient", return_value=_client(get)):
        assert await check_emulators(_settings("http://localhost:8081")) is False


async def test_managed_endpoints_are_not_checked() -> None:
    """HTTPS endpoints are assumed to be managed services."""
    get = AsyncMock()
    with patch("uvocollab.health.httpx.AsyncClient", return_value=_client(get)):
        ok = await check_emulators(
            _settings("https://cosmos.example.com", "https://esign.example.com")
        )
    assert ok is True
    get.assert_not_awaited()


async def test_reachable_local_dependencies_pass() -> None:
    """Reachable emulators pass the check."""
    get = AsyncMock(return_value=httpx.Response(200))
    with patch("uvocollab.health.httpx.AsyncClient", return_value=_client(get)):
        assert await check_emulators(
            _settings("http://localhost:8081", "http://localhost:9000")
        ) is True

"""Pre-flight health checks for local emulator dependencies."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING
from urllib.parse import urlparse

import httpx

if TYPE_CHECKING:
    from uvocollab.config import Settings

logger = logging.getLogger(__name__)


async def check_emulators(settings: Settings) -> bool:
    """Verify local dependencies are reachable. Return False if any are down.

    HTTPS endpoints are treated as managed services and not checked.
    """
    failures: list[str] = []
    async with httpx.AsyncClient(timeout=3) as client:
        cosmos_url = settings.cosmos.endpoint
        if not cosmos_url:
            failures.append("COSMOS_ENDPOINT is not set — add it to .env (see .env.example)")
        elif not cosmos_url.startswith("https://"):
            try:
                await client.get(f"{cosmos_url.rstrip('/')}/")
            except httpx.ConnectError:
                failures.append(
                    f"Cosmos DB emulator is not running at {urlparse(cosmos_url).netloc}"
                )

        esign_url = settings.contracts.api_url
        if esign_url and not esign_url.startswith("https://"):
            try:
                await client.get(f"{esign_url.rstrip('/')}/health")
            except httpx.ConnectError:
                failures.append(
                    f"E-signature sandbox is not running at {urlparse(esign_url).netloc}"
                )
        elif not esign_url:
            logger.warning("ESIGN_API_URL is not set — contracts cannot be dispatched")

    if failures:
        for failure in failures:
            logger.error(failure)
        logger.error("Start the local dependencies with: docker compose up -d")
        return False
    return True

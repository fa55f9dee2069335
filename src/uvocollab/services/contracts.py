"""Contract generation and e-signature dispatch over the signing gateway's HTTP API."""

from __future__ import annotations

import logging
from enum import StrEnum
from typing import TYPE_CHECKING, Protocol, runtime_checkable

import httpx
from pydantic import BaseModel, ValidationError

if TYPE_CHECKING:
    from uvocollab.config import ContractConfig

logger = logging.getLogger(__name__)


class ContractKind(StrEnum):
    COLLABORATION_AGREEMENT = "collaboration_agreement"
    GUEST_RELEASE = "guest_release"


class ContractRequest(BaseModel):
    """Everything the gateway needs to render the document and invite both signers."""

    collaboration_id: str
    kind: ContractKind
    buyer_id: str
    payee_id: str
    service_id: str
    price: float


class ContractEnvelope(BaseModel):
    envelope_id: str
    document_url: str


class ContractDispatchError(Exception):
    """The signing gateway could not create or send the envelope."""


@runtime_checkable
class ContractDispatcher(Protocol):
    async def dispatch(self, request: ContractRequest) -> ContractEnvelope: ...

    async def void(self, envelope_id: str, reason: str) -> None: ...


class ESignClient:
    """HTTP client for the e-signature gateway."""

    def __init__(
        self,
        config: ContractConfig,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._config = config
        self._client = httpx.AsyncClient(
            base_url=config.api_url,
            timeout=config.timeout,
            headers={"Authorization": f"Bearer {config.api_key}"},
            transport=transport,
        )

    async def dispatch(self, request: ContractRequest) -> ContractEnvelope:
        """Create an envelope for the collaboration and send it to both parties."""
        if not self._config.api_url:
            raise ContractDispatchError("ESIGN_API_URL is not configured")

        try:
            response = await self._client.post(
                "/envelopes", json=request.model_dump(mode="json")
            )
            response.raise_for_status()
        except httpx.HTTPError as exc:
            raise ContractDispatchError(
                f"Signing gateway request failed: {exc}"
            ) from exc

        try:
            envelope = ContractEnvelope.model_validate(response.json())
        except (ValueError, ValidationError) as exc:
            raise ContractDispatchError("Signing gateway returned an invalid envelope") from exc

        logger.info(
            "Contract dispatched — collaboration=%s envelope=%s",
            request.collaboration_id,
            envelope.envelope_id,
        )
        return envelope

    async def void(self, envelope_id: str, reason: str) -> None:
        """Cancel an envelope that was sent but can no longer be signed."""
        try:
            response = await self._client.post(
                f"/envelopes/{envelope_id}/void", json={"reason": reason}
            )
            response.raise_for_status()
        except httpx.HTTPError as exc:
            raise ContractDispatchError(f"Failed to void envelope {envelope_id}: {exc}") from exc
        logger.info("Contract voided — envelope=%s reason=%s", envelope_id, reason)

    async def ping(self) -> bool:
        """Return True when the gateway answers its health endpoint."""
        if not self._config.api_url:
            return False
        try:
            response = await self._client.get("/health")
        except httpx.HTTPError:
            return False
        return response.is_success

    async def close(self) -> None:
        await self._client.aclose()

"""E-signature webhook — the signing service reports completed envelopes here."""

from __future__ import annotations

import logging
from typing import Any

from fastapi import APIRouter, Request
from pydantic import BaseModel

from uvocollab.auth.middleware import require_webhook_secret

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/contract", tags=["contracts"])

COMPLETED_EVENT = "envelope-completed"


class SignatureWebhook(BaseModel):
    event: str
    collaboration_id: str
    envelope_id: str
    signed_contract_url: str = ""


@router.post("/webhook")
async def contract_webhook(request: Request, body: SignatureWebhook) -> dict[str, Any]:
    """Advance the collaboration once every party has signed.

    Events other than envelope completion are acknowledged and ignored.
    """
    caller = require_webhook_secret(request)
    if body.event != COMPLETED_EVENT:
        logger.info(
            "Webhook event ignored — event=%s envelope=%s", body.event, body.envelope_id
        )
        return {"status": "ignored"}

    collaboration = await request.app.state.lifecycle.record_signatures(
        caller,
        body.collaboration_id,
        envelope_id=body.envelope_id,
        signed_contract_url=body.signed_contract_url,
    )
    return {"status": "ok", "collaboration_status": collaboration.status}
